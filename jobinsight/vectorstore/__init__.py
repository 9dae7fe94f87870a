"""Vector storage for insight narratives."""

from jobinsight.vectorstore.client import InsightStore, flatten_metadata, generate_id
from jobinsight.vectorstore.models import (
    InsightRecord,
    SearchResult,
    SimilarityMatch,
    VectorRecord,
)
from jobinsight.vectorstore.service import QdrantVectorStore, VectorStore, build_filter

__all__ = [
    "InsightRecord",
    "InsightStore",
    "QdrantVectorStore",
    "SearchResult",
    "SimilarityMatch",
    "VectorRecord",
    "VectorStore",
    "build_filter",
    "flatten_metadata",
    "generate_id",
]
