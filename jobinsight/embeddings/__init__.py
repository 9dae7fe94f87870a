"""Embedding services and index-width adaptation."""

from jobinsight.embeddings.adapter import (
    EmbeddingAdapter,
    group_means,
    l2_normalize,
    reduce_dimensions,
)
from jobinsight.embeddings.models import EmbeddingResult
from jobinsight.embeddings.service import EmbeddingService, HTTPEmbeddingService

__all__ = [
    "EmbeddingAdapter",
    "EmbeddingResult",
    "EmbeddingService",
    "HTTPEmbeddingService",
    "group_means",
    "l2_normalize",
    "reduce_dimensions",
]
