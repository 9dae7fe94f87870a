"""Embedding data models."""

from pydantic import BaseModel, Field, model_validator


class EmbeddingResult(BaseModel):
    """A native-width embedding as returned by the embedding service.

    Attributes:
        text: The text that was embedded.
        embedding: The vector, at the model's native width.
        model: The model that produced it.
        dimensions: Number of components in ``embedding``.
    """

    text: str = Field(description="Embedded text")
    embedding: list[float] = Field(description="Native embedding vector")
    model: str = Field(description="Model used for embedding")
    dimensions: int = Field(description="Vector dimensions")

    @model_validator(mode="after")
    def _check_dimensions(self) -> "EmbeddingResult":
        if self.dimensions != len(self.embedding):
            raise ValueError(
                f"dimensions ({self.dimensions}) does not match "
                f"embedding length ({len(self.embedding)})"
            )
        return self
