"""Vector store interface and Qdrant implementation."""

import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from uuid import NAMESPACE_URL, uuid5

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchAny,
    MatchValue,
    PointIdsList,
    PointStruct,
    VectorParams,
)

from jobinsight.config import QdrantSettings, get_settings
from jobinsight.exceptions import ErrorCode, ValidationError, VectorStoreError
from jobinsight.logging_config import get_logger
from jobinsight.observability.metrics import track_vectorstore_operation
from jobinsight.vectorstore.models import SearchResult, VectorRecord

logger = get_logger(__name__)

RECORD_ID_KEY = "record_id"


def point_id(record_id: str) -> str:
    """Map a record id to the UUID Qdrant stores it under."""
    return str(uuid5(NAMESPACE_URL, record_id))


def build_filter(filters: dict[str, Any] | None) -> Filter | None:
    """Translate a metadata filter into a Qdrant filter.

    Supported forms: ``{key: value}``, ``{key: {"$eq": value}}``,
    ``{key: {"$in": [...]}}`` and ``{"$and": [filter, ...]}``.

    Raises:
        ValidationError: For unsupported operators.
    """
    if not filters:
        return None
    conditions = _conditions(filters)
    return Filter(must=conditions) if conditions else None  # type: ignore[arg-type]


def _conditions(filters: dict[str, Any]) -> list[FieldCondition]:
    conditions: list[FieldCondition] = []
    for key, value in filters.items():
        if key == "$and":
            for clause in value:
                conditions.extend(_conditions(clause))
            continue
        if key.startswith("$"):
            raise ValidationError(
                f"Unsupported filter operator: {key}",
                details={"operator": key},
            )

        if isinstance(value, dict):
            if set(value) == {"$eq"}:
                conditions.append(FieldCondition(key=key, match=MatchValue(value=value["$eq"])))
            elif set(value) == {"$in"}:
                conditions.append(FieldCondition(key=key, match=MatchAny(any=list(value["$in"]))))
            else:
                raise ValidationError(
                    f"Unsupported filter on {key}: {sorted(value)}",
                    details={"field": key, "operators": sorted(value)},
                )
        else:
            conditions.append(FieldCondition(key=key, match=MatchValue(value=value)))
    return conditions


@asynccontextmanager
async def _tracked(operation: str) -> AsyncIterator[None]:
    start = time.perf_counter()
    try:
        yield
    except Exception:
        track_vectorstore_operation(operation, time.perf_counter() - start, success=False)
        raise
    track_vectorstore_operation(operation, time.perf_counter() - start)


class VectorStore(ABC):
    """Abstract base class for vector stores.

    Records are addressed by caller-chosen string ids.
    """

    @abstractmethod
    async def create_collection(self, name: str, dimensions: int) -> None:
        """Create a new collection.

        Raises:
            VectorStoreError: If creation fails or the collection exists.
        """
        ...

    @abstractmethod
    async def delete_collection(self, name: str) -> None:
        """Delete a collection.

        Raises:
            VectorStoreError: If deletion fails.
        """
        ...

    @abstractmethod
    async def collection_exists(self, name: str) -> bool:
        """Check if a collection exists."""
        ...

    @abstractmethod
    async def collection_dimensions(self, name: str) -> int:
        """Get the vector width of a collection.

        Raises:
            VectorStoreError: If the collection is missing.
        """
        ...

    @abstractmethod
    async def upsert(self, collection: str, records: list[VectorRecord]) -> int:
        """Insert or update records.

        Returns:
            Number of records upserted.

        Raises:
            VectorStoreError: If upsert fails.
        """
        ...

    @abstractmethod
    async def retrieve(
        self,
        collection: str,
        ids: list[str],
        with_vectors: bool = False,
    ) -> list[SearchResult]:
        """Fetch records by id. Missing ids are omitted.

        Raises:
            VectorStoreError: If the lookup fails.
        """
        ...

    @abstractmethod
    async def search(
        self,
        collection: str,
        vector: list[float],
        limit: int = 10,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchResult]:
        """Search for similar vectors.

        Args:
            collection: Collection name.
            vector: Query vector.
            limit: Maximum results to return.
            filters: Optional metadata filter.

        Raises:
            VectorStoreError: If search fails.
        """
        ...

    @abstractmethod
    async def scroll(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
    ) -> list[SearchResult]:
        """List records matching a metadata filter, without ranking.

        Raises:
            VectorStoreError: If the scan fails.
        """
        ...

    @abstractmethod
    async def delete(self, collection: str, ids: list[str]) -> int:
        """Delete records by ID.

        Returns:
            Number of ids submitted for deletion.

        Raises:
            VectorStoreError: If deletion fails.
        """
        ...


class QdrantVectorStore(VectorStore):
    """Qdrant vector store implementation.

    Qdrant only accepts UUID or integer point ids, so each record id is
    mapped through ``point_id`` and also kept in the payload under
    ``record_id``.
    """

    def __init__(
        self,
        settings: QdrantSettings | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize Qdrant vector store.

        Args:
            settings: Qdrant configuration.
            client: Existing client (for testing).
        """
        self._settings = settings or get_settings().qdrant
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            api_key = None
            if self._settings.api_key:
                api_key = self._settings.api_key.get_secret_value()

            self._client = AsyncQdrantClient(
                url=self._settings.url,
                api_key=api_key,
            )
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    async def create_collection(self, name: str, dimensions: int) -> None:
        """Create a cosine-distance collection."""
        client = await self._get_client()

        try:
            if await client.collection_exists(name):
                raise VectorStoreError(
                    f"Collection already exists: {name}",
                    code=ErrorCode.COLLECTION_EXISTS,
                    details={"collection": name},
                )

            await client.create_collection(
                collection_name=name,
                vectors_config=VectorParams(
                    size=dimensions,
                    distance=Distance.COSINE,
                ),
            )
            logger.info(f"Created collection: {name}", extra={"dimensions": dimensions})

        except VectorStoreError:
            raise
        except Exception as e:
            raise VectorStoreError(
                f"Failed to create collection: {e}",
                details={"collection": name, "error": str(e)},
            ) from e

    async def delete_collection(self, name: str) -> None:
        """Delete a Qdrant collection."""
        client = await self._get_client()

        try:
            if not await client.collection_exists(name):
                raise VectorStoreError(
                    f"Collection not found: {name}",
                    code=ErrorCode.COLLECTION_NOT_FOUND,
                    details={"collection": name},
                )

            await client.delete_collection(name)
            logger.info(f"Deleted collection: {name}")

        except VectorStoreError:
            raise
        except Exception as e:
            raise VectorStoreError(
                f"Failed to delete collection: {e}",
                details={"collection": name, "error": str(e)},
            ) from e

    async def collection_exists(self, name: str) -> bool:
        """Check if collection exists."""
        client = await self._get_client()
        try:
            return await client.collection_exists(name)
        except Exception as e:
            raise VectorStoreError(
                f"Failed to check collection: {e}",
                details={"collection": name, "error": str(e)},
            ) from e

    async def collection_dimensions(self, name: str) -> int:
        """Read the vector size from the collection config."""
        client = await self._get_client()

        try:
            if not await client.collection_exists(name):
                raise VectorStoreError(
                    f"Collection not found: {name}",
                    code=ErrorCode.COLLECTION_NOT_FOUND,
                    details={"collection": name},
                )
            info = await client.get_collection(name)
            vectors = info.config.params.vectors
            if isinstance(vectors, dict):
                # Named vectors; the index uses a single unnamed one
                vectors = next(iter(vectors.values()))
            return int(vectors.size)  # type: ignore[union-attr]

        except VectorStoreError:
            raise
        except Exception as e:
            raise VectorStoreError(
                f"Failed to read collection config: {e}",
                details={"collection": name, "error": str(e)},
            ) from e

    async def upsert(self, collection: str, records: list[VectorRecord]) -> int:
        """Upsert records into collection."""
        if not records:
            return 0

        client = await self._get_client()
        points = [
            PointStruct(
                id=point_id(record.id),
                vector=record.vector,
                payload={**record.payload, RECORD_ID_KEY: record.id},
            )
            for record in records
        ]

        try:
            async with _tracked("upsert"):
                await client.upsert(collection_name=collection, points=points)
        except Exception as e:
            raise VectorStoreError(
                f"Failed to upsert records: {e}",
                details={"collection": collection, "error": str(e)},
            ) from e

        logger.debug(
            f"Upserted {len(points)} records",
            extra={"collection": collection},
        )
        return len(points)

    async def retrieve(
        self,
        collection: str,
        ids: list[str],
        with_vectors: bool = False,
    ) -> list[SearchResult]:
        """Fetch records by id."""
        if not ids:
            return []

        client = await self._get_client()

        try:
            async with _tracked("retrieve"):
                points = await client.retrieve(
                    collection_name=collection,
                    ids=[point_id(record_id) for record_id in ids],
                    with_payload=True,
                    with_vectors=with_vectors,
                )
        except Exception as e:
            raise VectorStoreError(
                f"Failed to retrieve records: {e}",
                details={"collection": collection, "error": str(e)},
            ) from e

        return [
            self._to_result(point.id, point.payload, vector=point.vector)
            for point in points
        ]

    async def search(
        self,
        collection: str,
        vector: list[float],
        limit: int = 10,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchResult]:
        """Search for similar vectors."""
        query_filter = build_filter(filters)
        client = await self._get_client()

        try:
            async with _tracked("search"):
                results = await client.query_points(
                    collection_name=collection,
                    query=vector,
                    limit=limit,
                    query_filter=query_filter,
                    with_payload=True,
                )
        except Exception as e:
            raise VectorStoreError(
                f"Failed to search: {e}",
                details={"collection": collection, "error": str(e)},
            ) from e

        return [
            self._to_result(
                point.id,
                point.payload,
                score=point.score if point.score is not None else 0.0,
            )
            for point in results.points
        ]

    async def scroll(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int = 100,
    ) -> list[SearchResult]:
        """List records matching a filter with a single scroll page."""
        scroll_filter = build_filter(filters)
        client = await self._get_client()

        try:
            async with _tracked("scroll"):
                points, _next_offset = await client.scroll(
                    collection_name=collection,
                    scroll_filter=scroll_filter,
                    limit=limit,
                    with_payload=True,
                    with_vectors=False,
                )
        except Exception as e:
            raise VectorStoreError(
                f"Failed to scroll records: {e}",
                details={"collection": collection, "error": str(e)},
            ) from e

        return [self._to_result(point.id, point.payload) for point in points]

    async def delete(self, collection: str, ids: list[str]) -> int:
        """Delete records by ID."""
        if not ids:
            return 0

        client = await self._get_client()

        try:
            async with _tracked("delete"):
                await client.delete(
                    collection_name=collection,
                    points_selector=PointIdsList(
                        points=[point_id(record_id) for record_id in ids]  # type: ignore[misc]
                    ),
                )
        except Exception as e:
            raise VectorStoreError(
                f"Failed to delete records: {e}",
                details={"collection": collection, "error": str(e)},
            ) from e

        logger.debug(
            f"Deleted {len(ids)} records",
            extra={"collection": collection},
        )
        return len(ids)

    @staticmethod
    def _to_result(
        raw_id: Any,
        payload: dict[str, Any] | None,
        score: float = 0.0,
        vector: Any = None,
    ) -> SearchResult:
        payload = dict(payload) if payload else {}
        record_id = payload.pop(RECORD_ID_KEY, None) or str(raw_id)
        return SearchResult(
            id=record_id,
            score=score,
            payload=payload,
            vector=list(vector) if isinstance(vector, list) else None,
        )
