"""Observability module for metrics and monitoring."""

from jobinsight.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
    track_embedding_request,
    track_llm_request,
    track_navigation_attempt,
    track_search_request,
    track_similarity_query,
    track_stage_degradation,
    track_vectorstore_operation,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "get_metrics_content_type",
    "track_embedding_request",
    "track_llm_request",
    "track_navigation_attempt",
    "track_search_request",
    "track_similarity_query",
    "track_stage_degradation",
    "track_vectorstore_operation",
]
