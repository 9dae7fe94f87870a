"""API routes for job search and insight lookup."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from jobinsight.exceptions import ErrorCode, PipelineStage, VectorStoreError
from jobinsight.logging_config import get_logger
from jobinsight.pipeline.coordinator import PipelineCoordinator
from jobinsight.pipeline.models import SearchResponse
from jobinsight.scraping.models import Listing
from jobinsight.vectorstore.models import InsightRecord, SimilarityMatch

logger = get_logger(__name__)


router = APIRouter(prefix="/api/v1/jobs", tags=["Jobs"])


def get_coordinator(request: Request) -> PipelineCoordinator:
    """Coordinator built at startup."""
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        logger.warning("Pipeline not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Pipeline not configured",
                "message": "The search pipeline starts with the application lifespan",
            },
        )
    return coordinator


Coordinator = Annotated[PipelineCoordinator, Depends(get_coordinator)]


class InsightResponse(BaseModel):
    """A stored insight, without its vector."""

    id: str = Field(description="Record identifier")
    text: str = Field(description="Insight narrative")
    insight_type: str = Field(description="Kind of record")
    metadata: dict[str, Any] = Field(description="Stored metadata")


class SaveListingRequest(BaseModel):
    """Request body for saving a listing."""

    user_id: str = Field(min_length=1, description="Owner of the saved listing")
    listing: Listing = Field(description="Listing to save")


class SaveListingResponse(BaseModel):
    """Response from saving a listing."""

    id: str = Field(description="Record identifier")
    user_id: str = Field(description="Owner of the saved listing")


class DeleteSavedResponse(BaseModel):
    """Response from removing a saved listing."""

    id: str = Field(description="Record identifier")
    message: str = Field(description="Outcome")


def _insight_response(record: InsightRecord) -> InsightResponse:
    return InsightResponse(
        id=record.id,
        text=record.text,
        insight_type=record.insight_type,
        metadata=record.metadata,
    )


@router.get("/search", response_model=SearchResponse)
async def search_endpoint(
    coordinator: Coordinator,
    keywords: str = Query(min_length=1, description="Search keywords"),
    location: str = Query(default="", description="Search location"),
    user_id: str | None = Query(default=None, description="Owner of stored insights"),
) -> SearchResponse:
    """Scrape listings and generate insights for a search."""
    return await coordinator.search_jobs(keywords, location, user_id=user_id)


@router.get("/insights/{record_id}", response_model=InsightResponse)
async def insight_endpoint(record_id: str, coordinator: Coordinator) -> InsightResponse:
    """Look up a stored insight."""
    record = await coordinator.get_insight(record_id)
    if record is None:
        raise VectorStoreError(
            f"Insight not found: {record_id}",
            code=ErrorCode.RECORD_NOT_FOUND,
            details={"id": record_id},
            stage=PipelineStage.QUERY,
        )
    return _insight_response(record)


@router.get("/similar-insights", response_model=list[SimilarityMatch])
async def similar_insights_endpoint(
    coordinator: Coordinator,
    text: str = Query(min_length=1, description="Text to compare against stored insights"),
    insight_type: str | None = Query(default=None, description="Restrict to one record type"),
    user_id: str | None = Query(default=None, description="Restrict to one owner"),
    top_k: int = Query(default=5, ge=1, le=20, description="Maximum matches"),
) -> list[SimilarityMatch]:
    """Find stored insights similar to a piece of text."""
    metadata_filter: dict[str, Any] = {}
    if insight_type:
        metadata_filter["type"] = insight_type
    if user_id:
        metadata_filter["user_id"] = user_id

    return await coordinator.find_similar_insights(
        text,
        metadata_filter=metadata_filter or None,
        top_k=top_k,
    )


@router.post(
    "/saved",
    response_model=SaveListingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def save_listing_endpoint(
    request: SaveListingRequest,
    coordinator: Coordinator,
) -> SaveListingResponse:
    """Save a listing for a user."""
    record = await coordinator.save_listing(request.listing, request.user_id)
    return SaveListingResponse(id=record.id, user_id=request.user_id)


@router.get("/saved", response_model=list[InsightResponse])
async def list_saved_endpoint(
    coordinator: Coordinator,
    user_id: str = Query(min_length=1, description="Owner of the saved listings"),
) -> list[InsightResponse]:
    """List the listings a user has saved."""
    records = await coordinator.list_saved(user_id)
    return [_insight_response(record) for record in records]


@router.delete("/saved/{record_id}", response_model=DeleteSavedResponse)
async def delete_saved_endpoint(
    record_id: str,
    coordinator: Coordinator,
    user_id: str = Query(min_length=1, description="Owner of the saved listing"),
) -> DeleteSavedResponse:
    """Remove a saved listing owned by the user."""
    await coordinator.delete_saved(record_id, user_id)
    return DeleteSavedResponse(id=record_id, message="Job removed from saved jobs")
