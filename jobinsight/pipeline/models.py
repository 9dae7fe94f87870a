"""Search pipeline request and response models."""

from pydantic import BaseModel, Field

from jobinsight.scraping.models import Listing, StageIssue


class SearchResponse(BaseModel):
    """Outcome of one search request.

    Attributes:
        keywords: Search keywords as submitted.
        location: Search location as submitted.
        listings: Listings in result-page order, each with its own issues.
        combined_insight: Narrative across all listings, if generated.
        combined_insight_id: Store id of the combined narrative, if stored.
        issues: Request-level degradations.
    """

    keywords: str = Field(description="Search keywords")
    location: str = Field(description="Search location")
    listings: list[Listing] = Field(default_factory=list, description="Enriched listings")
    combined_insight: str | None = Field(
        default=None,
        description="Narrative across all listings",
    )
    combined_insight_id: str | None = Field(
        default=None,
        description="Store id of the combined narrative",
    )
    issues: list[StageIssue] = Field(
        default_factory=list,
        description="Request-level degradations",
    )
