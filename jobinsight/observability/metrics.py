"""Prometheus metrics for the job insight pipeline.

Provides metrics instrumentation for:
- HTTP request latency and counts
- Browser navigation attempts and search requests
- Degraded pipeline stages
- LLM token usage and latency
- Embedding request latency
- Vector store operations
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from jobinsight.logging_config import get_logger

logger = get_logger(__name__)

# HTTP Request Metrics
HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Scraping Metrics
NAVIGATION_ATTEMPTS_TOTAL = Counter(
    "scrape_navigation_attempts_total",
    "Browser navigation attempts",
    ["page_kind", "outcome"],  # page_kind: search, detail
)

SEARCH_REQUEST_DURATION = Histogram(
    "search_request_duration_seconds",
    "End-to-end search request duration in seconds",
    ["status"],
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0],
)

SEARCH_REQUEST_TOTAL = Counter(
    "search_requests_total",
    "Total search requests",
    ["status"],
)

SEARCH_LISTINGS_RETURNED = Histogram(
    "search_listings_returned",
    "Listings returned per search request",
    buckets=[0, 1, 2, 3, 5, 10, 20],
)

STAGE_DEGRADATIONS_TOTAL = Counter(
    "pipeline_stage_degradations_total",
    "Non-fatal pipeline stage failures",
    ["stage"],
)

# LLM Metrics
LLM_REQUEST_DURATION = Histogram(
    "llm_request_duration_seconds",
    "LLM request duration in seconds",
    ["model", "status"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
)

LLM_TOKENS_TOTAL = Counter(
    "llm_tokens_total",
    "Total LLM tokens used",
    ["model", "type"],  # "type" label values: prompt, completion
)

LLM_REQUEST_TOTAL = Counter(
    "llm_requests_total",
    "Total LLM requests",
    ["model", "status"],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

EMBEDDING_BATCH_SIZE = Histogram(
    "embedding_batch_size",
    "Embedding batch size",
    ["model"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500],
)

# Vector Store Metrics
VECTORSTORE_OPERATION_DURATION = Histogram(
    "vectorstore_operation_duration_seconds",
    "Vector store operation duration",
    ["operation", "status"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
)

SIMILARITY_TOP_SCORE = Histogram(
    "similarity_top_score",
    "Top similarity score per insight query",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request and collect metrics."""
        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        endpoint = self._normalize_endpoint(request.url.path)

        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).observe(duration)

        HTTP_REQUEST_TOTAL.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        if path.startswith("/health"):
            return "/health"
        # Insight ids are unbounded; keep only the resource name
        if path.startswith("/api/v1/jobs/"):
            parts = path.split("/")
            if len(parts) >= 5:
                return f"/api/v1/jobs/{parts[4]}"
        return path


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def track_navigation_attempt(page_kind: str, success: bool) -> None:
    """Track a single browser navigation attempt.

    Args:
        page_kind: "search" or "detail".
        success: Whether the attempt loaded the page.
    """
    outcome = "success" if success else "error"
    NAVIGATION_ATTEMPTS_TOTAL.labels(page_kind=page_kind, outcome=outcome).inc()


def track_search_request(
    duration: float,
    listings_returned: int,
    success: bool = True,
) -> None:
    """Track an end-to-end search request.

    Args:
        duration: Request duration in seconds.
        listings_returned: Number of listings handed back to the caller.
        success: Whether the request completed without a fatal error.
    """
    status = "success" if success else "error"

    SEARCH_REQUEST_DURATION.labels(status=status).observe(duration)
    SEARCH_REQUEST_TOTAL.labels(status=status).inc()
    if success:
        SEARCH_LISTINGS_RETURNED.observe(listings_returned)


def track_stage_degradation(stage: str) -> None:
    """Count a non-fatal failure of a pipeline stage."""
    STAGE_DEGRADATIONS_TOTAL.labels(stage=stage).inc()


def track_llm_request(
    model: str,
    duration: float,
    prompt_tokens: int,
    completion_tokens: int,
    success: bool = True,
) -> None:
    """Track LLM request metrics.

    Args:
        model: LLM model name.
        duration: Request duration in seconds.
        prompt_tokens: Number of prompt tokens.
        completion_tokens: Number of completion tokens.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    LLM_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    LLM_REQUEST_TOTAL.labels(model=model, status=status).inc()

    if success:
        LLM_TOKENS_TOTAL.labels(model=model, type="prompt").inc(prompt_tokens)
        LLM_TOKENS_TOTAL.labels(model=model, type="completion").inc(completion_tokens)


def track_embedding_request(
    model: str,
    duration: float,
    batch_size: int,
    success: bool = True,
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        duration: Request duration in seconds.
        batch_size: Number of texts in the batch.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()
    EMBEDDING_BATCH_SIZE.labels(model=model).observe(batch_size)


def track_vectorstore_operation(
    operation: str,
    duration: float,
    success: bool = True,
) -> None:
    """Track a vector store round trip.

    Args:
        operation: upsert, retrieve, search, scroll, delete.
        duration: Operation duration in seconds.
        success: Whether the operation succeeded.
    """
    status = "success" if success else "error"
    VECTORSTORE_OPERATION_DURATION.labels(operation=operation, status=status).observe(
        duration
    )


def track_similarity_query(top_score: float) -> None:
    """Record the best score of an insight similarity query."""
    if top_score > 0:
        SIMILARITY_TOP_SCORE.observe(top_score)
