"""Vector store data models."""

from typing import Any

from pydantic import BaseModel, Field


class VectorRecord(BaseModel):
    """A point as written to the backing vector database.

    Attributes:
        id: Caller-facing record identifier.
        vector: Index-width embedding.
        payload: Metadata stored alongside the vector.
    """

    id: str = Field(description="Record identifier")
    vector: list[float] = Field(description="Embedding vector")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Metadata payload",
    )


class SearchResult(BaseModel):
    """A raw hit from the backing vector database.

    Attributes:
        id: Record identifier.
        score: Backend similarity score.
        payload: Stored metadata.
        vector: Stored vector, when requested.
    """

    id: str = Field(description="Record identifier")
    score: float = Field(default=0.0, description="Similarity score")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Record metadata",
    )
    vector: list[float] | None = Field(default=None, description="Stored vector")


class InsightRecord(BaseModel):
    """A stored insight narrative.

    Attributes:
        id: Record identifier, ``{prefix}_{epoch_millis}_{random}``.
        text: Narrative text.
        insight_type: ``job_insight``, ``combined_job_insight`` or ``saved_job``.
        metadata: Flattened metadata.
        vector: Index-width embedding of ``text``.
    """

    id: str = Field(description="Record identifier")
    text: str = Field(description="Insight narrative")
    insight_type: str = Field(description="Kind of record")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Flattened metadata",
    )
    vector: list[float] = Field(default_factory=list, description="Embedding vector")


class SimilarityMatch(BaseModel):
    """One result of a similarity query."""

    id: str = Field(description="Record identifier")
    score: float = Field(ge=0.0, le=1.0, description="Similarity, higher is closer")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Stored metadata",
    )
