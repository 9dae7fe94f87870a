"""Insight persistence and similarity lookup on top of a VectorStore."""

import secrets
import string
import time
from typing import Any

from jobinsight.config import QdrantSettings, get_settings
from jobinsight.embeddings.adapter import EmbeddingAdapter
from jobinsight.exceptions import (
    ConfigurationError,
    EmbeddingDimensionError,
    ErrorCode,
    ValidationError,
    VectorStoreError,
)
from jobinsight.logging_config import get_logger
from jobinsight.observability.metrics import track_similarity_query
from jobinsight.vectorstore.models import (
    InsightRecord,
    SearchResult,
    SimilarityMatch,
    VectorRecord,
)
from jobinsight.vectorstore.service import QdrantVectorStore, VectorStore

logger = get_logger(__name__)

TEXT_KEY = "text"
TYPE_KEY = "type"

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 9


def generate_id(prefix: str = "insight") -> str:
    """Generate ``{prefix}_{epoch_millis}_{9 base36 chars}``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def flatten_metadata(metadata: dict[str, Any], parent: str = "") -> dict[str, Any]:
    """Flatten metadata into payload-safe key/value pairs.

    None values are dropped, nested mappings are joined with ``_``, lists
    become lists of strings and other scalars are kept as they are.
    """
    flat: dict[str, Any] = {}
    for key, value in metadata.items():
        name = f"{parent}_{key}" if parent else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            flat.update(flatten_metadata(value, name))
        elif isinstance(value, (list, tuple, set)):
            flat[name] = [str(item) for item in value if item is not None]
        elif isinstance(value, (str, int, float, bool)):
            flat[name] = value
        else:
            flat[name] = str(value)
    return flat


class InsightStore:
    """Stores insight narratives as vectors and finds similar ones.

    Every vector written has exactly the index width; the check runs before
    the backing store is contacted.
    """

    def __init__(
        self,
        adapter: EmbeddingAdapter | None = None,
        vector_store: VectorStore | None = None,
        settings: QdrantSettings | None = None,
    ) -> None:
        """Initialize the insight store.

        Args:
            adapter: Produces index-width embeddings.
            vector_store: Backing vector database.
            settings: Collection name and index width.

        Raises:
            ConfigurationError: If the adapter width differs from the index width.
        """
        self._settings = settings or get_settings().qdrant
        self._adapter = adapter or EmbeddingAdapter(store_dimensions=self._settings.dimensions)
        self._vector_store = vector_store or QdrantVectorStore(self._settings)

        if self._adapter.dimensions != self._settings.dimensions:
            raise ConfigurationError(
                "Embedding adapter width does not match the index width",
                details={
                    "adapter_dimensions": self._adapter.dimensions,
                    "index_dimensions": self._settings.dimensions,
                },
            )

    @property
    def collection(self) -> str:
        return self._settings.collection_name

    @property
    def dimensions(self) -> int:
        return self._settings.dimensions

    async def close(self) -> None:
        """Close the adapter and the backing store."""
        await self._adapter.close()
        close = getattr(self._vector_store, "close", None)
        if close is not None:
            await close()

    def _check_dimensions(self, record_id: str, vector: list[float]) -> None:
        if len(vector) != self.dimensions:
            raise EmbeddingDimensionError(
                f"Vector for {record_id} has {len(vector)} dimensions, "
                f"index requires {self.dimensions}",
                details={
                    "record_id": record_id,
                    "expected": self.dimensions,
                    "actual": len(vector),
                },
            )

    async def upsert(
        self,
        record_id: str,
        vector: list[float],
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Write a vector under ``record_id``, replacing any previous one.

        Raises:
            EmbeddingDimensionError: If the vector has the wrong width.
            VectorStoreError: If the backing store rejects the write.
        """
        self._check_dimensions(record_id, vector)

        await self._vector_store.upsert(
            self.collection,
            [
                VectorRecord(
                    id=record_id,
                    vector=vector,
                    payload=flatten_metadata(metadata or {}),
                )
            ],
        )
        logger.debug("Upserted record", extra={"record_id": record_id})
        return record_id

    async def store(
        self,
        text: str,
        insight_type: str,
        metadata: dict[str, Any] | None = None,
        prefix: str = "insight",
    ) -> InsightRecord:
        """Embed ``text`` and persist it under a freshly generated id.

        Raises:
            EmbeddingError: If the text cannot be embedded.
            VectorStoreError: If the write fails.
        """
        record_id = generate_id(prefix)
        vector = await self._adapter.embed(text)
        payload = {
            **flatten_metadata(metadata or {}),
            TEXT_KEY: text,
            TYPE_KEY: insight_type,
        }

        await self.upsert(record_id, vector, payload)

        logger.info(
            "Stored insight",
            extra={"record_id": record_id, "insight_type": insight_type},
        )
        return InsightRecord(
            id=record_id,
            text=text,
            insight_type=insight_type,
            metadata={k: v for k, v in payload.items() if k not in (TEXT_KEY, TYPE_KEY)},
            vector=vector,
        )

    async def fetch(self, record_id: str) -> dict[str, Any] | None:
        """Fetch the stored metadata of a record, or None if absent."""
        results = await self._vector_store.retrieve(self.collection, [record_id])
        if not results:
            return None
        return results[0].payload

    async def get(self, record_id: str) -> InsightRecord | None:
        """Fetch a stored insight with its vector, or None if absent."""
        results = await self._vector_store.retrieve(
            self.collection,
            [record_id],
            with_vectors=True,
        )
        if not results:
            return None
        return self._to_record(results[0])

    async def delete(self, record_id: str) -> None:
        """Delete a record. Deleting an absent id is not an error."""
        await self._vector_store.delete(self.collection, [record_id])
        logger.info("Deleted record", extra={"record_id": record_id})

    async def query(
        self,
        text: str,
        metadata_filter: dict[str, Any] | None = None,
        top_k: int = 5,
    ) -> list[SimilarityMatch]:
        """Find stored insights similar to ``text``.

        The query text is always embedded through the adapter, so query and
        stored vectors share one reduction.

        Args:
            text: Query text.
            metadata_filter: Optional metadata filter.
            top_k: Maximum matches.

        Returns:
            Matches in descending score order, scores in [0, 1].

        Raises:
            ValidationError: If ``top_k`` is negative.
            EmbeddingError: If the text cannot be embedded.
            VectorStoreError: If the search fails.
        """
        if top_k < 0:
            raise ValidationError(
                "top_k must not be negative",
                details={"top_k": top_k},
            )
        if top_k == 0:
            return []

        vector = await self._adapter.embed(text)
        self._check_dimensions("query", vector)

        results = await self._vector_store.search(
            self.collection,
            vector,
            limit=top_k,
            filters=metadata_filter,
        )

        matches = sorted(
            (
                SimilarityMatch(
                    id=result.id,
                    score=min(max(result.score, 0.0), 1.0),
                    metadata=result.payload,
                )
                for result in results
            ),
            key=lambda match: match.score,
            reverse=True,
        )

        track_similarity_query(matches[0].score if matches else 0.0)
        logger.debug(
            f"Similarity query returned {len(matches)} matches",
            extra={"top_k": top_k, "filtered": bool(metadata_filter)},
        )
        return matches

    async def verify_collection(self) -> None:
        """Check the backing collection exists with the index width.

        Raises:
            VectorStoreError: If it is missing or has another width.
        """
        if not await self._vector_store.collection_exists(self.collection):
            raise VectorStoreError(
                f"Collection not found: {self.collection}",
                code=ErrorCode.COLLECTION_NOT_FOUND,
                details={"collection": self.collection},
            )

        actual = await self._vector_store.collection_dimensions(self.collection)
        if actual != self.dimensions:
            raise VectorStoreError(
                f"Collection {self.collection} has {actual} dimensions, "
                f"expected {self.dimensions}",
                code=ErrorCode.COLLECTION_DIMENSION_MISMATCH,
                details={
                    "collection": self.collection,
                    "expected": self.dimensions,
                    "actual": actual,
                },
            )

    async def ensure_collection(self) -> bool:
        """Create the collection if missing, then verify it.

        Returns:
            True if the collection was created.
        """
        created = False
        if not await self._vector_store.collection_exists(self.collection):
            await self._vector_store.create_collection(self.collection, self.dimensions)
            created = True
        await self.verify_collection()
        return created

    async def list(
        self,
        metadata_filter: dict[str, Any] | None = None,
        limit: int = 100,
    ) -> list[InsightRecord]:
        """List stored records matching a metadata filter, without vectors.

        Nothing is embedded; the filter alone selects records.

        Raises:
            ValidationError: If the filter uses an unsupported operator.
            VectorStoreError: If the scan fails.
        """
        results = await self._vector_store.scroll(
            self.collection,
            filters=metadata_filter,
            limit=limit,
        )
        logger.debug(
            f"Listed {len(results)} records",
            extra={"filtered": bool(metadata_filter), "limit": limit},
        )
        return [self._to_record(result) for result in results]

    @staticmethod
    def _to_record(result: SearchResult) -> InsightRecord:
        metadata = dict(result.payload)
        return InsightRecord(
            id=result.id,
            text=str(metadata.pop(TEXT_KEY, "")),
            insight_type=str(metadata.pop(TYPE_KEY, "")),
            metadata=metadata,
            vector=result.vector or [],
        )
