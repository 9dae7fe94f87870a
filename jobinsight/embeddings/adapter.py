"""Fixed-width embeddings for the insight index.

The embedding model produces vectors wider than the index accepts. Vectors
are shrunk by averaging contiguous groups of components, then rescaled to
unit length so cosine scores stay comparable.
"""

import math
from collections.abc import Sequence

from jobinsight.config import get_settings
from jobinsight.embeddings.service import EmbeddingService, HTTPEmbeddingService
from jobinsight.exceptions import (
    ConfigurationError,
    EmbeddingDimensionError,
    ErrorCode,
)
from jobinsight.logging_config import get_logger

logger = get_logger(__name__)


def l2_normalize(vector: Sequence[float]) -> list[float]:
    """Scale a vector to unit Euclidean length.

    Raises:
        EmbeddingDimensionError: If the vector has zero norm.
    """
    norm = math.sqrt(math.fsum(x * x for x in vector))
    if norm == 0.0:
        raise EmbeddingDimensionError(
            "Cannot normalize a zero vector",
            details={"dimensions": len(vector)},
        )
    return [x / norm for x in vector]


def group_means(vector: Sequence[float], target: int) -> list[float]:
    """Average contiguous groups of components down to ``target`` values.

    With ``g = ceil(len(vector) / target)``, component ``i`` is the mean of
    ``vector[i*g:(i+1)*g]``. A group that starts past the end of the vector
    contributes 0.0. The result is not normalized.

    Raises:
        EmbeddingDimensionError: If ``target`` is out of range.
    """
    native = len(vector)
    if target <= 0 or target > native:
        raise EmbeddingDimensionError(
            f"Cannot reduce {native} dimensions to {target}",
            details={"native": native, "target": target},
        )

    group = math.ceil(native / target)
    means: list[float] = []
    for i in range(target):
        chunk = vector[i * group : (i + 1) * group]
        means.append(math.fsum(chunk) / len(chunk) if chunk else 0.0)
    return means


def reduce_dimensions(vector: Sequence[float], target: int) -> list[float]:
    """Reduce a vector to ``target`` components.

    Components are averaged by ``group_means`` and the result is
    L2-normalized.

    Args:
        vector: Native embedding.
        target: Output width; must not exceed the native width.

    Returns:
        Unit-length vector of length ``target``.

    Raises:
        EmbeddingDimensionError: If ``target`` is out of range or the
            reduced vector has zero norm.
    """
    return l2_normalize(group_means(vector, target))


class EmbeddingAdapter:
    """Turns text into vectors of exactly the index width."""

    def __init__(
        self,
        service: EmbeddingService | None = None,
        native_dimensions: int | None = None,
        store_dimensions: int | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            service: Native embedding service.
            native_dimensions: Width the service produces.
            store_dimensions: Width the index accepts.

        Raises:
            ConfigurationError: If the native width is smaller than the
                index width.
        """
        settings = get_settings()
        self._service = service or HTTPEmbeddingService(settings.embedding)
        self._native_dimensions = native_dimensions or settings.embedding.native_dimensions
        self._store_dimensions = store_dimensions or settings.qdrant.dimensions

        if self._native_dimensions < self._store_dimensions:
            raise ConfigurationError(
                "Embedding model produces fewer dimensions than the index requires",
                details={
                    "native_dimensions": self._native_dimensions,
                    "store_dimensions": self._store_dimensions,
                },
            )

    @property
    def dimensions(self) -> int:
        """Width of every vector returned by ``embed``."""
        return self._store_dimensions

    @property
    def native_dimensions(self) -> int:
        return self._native_dimensions

    async def embed(self, text: str) -> list[float]:
        """Embed text and fit the vector to the index width.

        Raises:
            EmbeddingError: If the embedding service fails.
            EmbeddingDimensionError: If the service returned an unexpected
                width or the vector cannot be normalized.
        """
        result = await self._service.embed(text)
        return self.fit(result.embedding)

    def fit(self, native: Sequence[float]) -> list[float]:
        """Fit a native vector to the index width."""
        if len(native) != self._native_dimensions:
            raise EmbeddingDimensionError(
                f"Expected {self._native_dimensions}-dimensional embedding, "
                f"got {len(native)}",
                code=ErrorCode.EMBEDDING_DIMENSION_MISMATCH,
                details={
                    "expected": self._native_dimensions,
                    "actual": len(native),
                },
            )

        if self._native_dimensions == self._store_dimensions:
            return list(native)

        return reduce_dimensions(native, self._store_dimensions)

    async def close(self) -> None:
        """Close the underlying service if it holds a connection."""
        close = getattr(self._service, "close", None)
        if close is not None:
            await close()
