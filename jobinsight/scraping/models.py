"""Listing data models."""

from pydantic import BaseModel, ConfigDict, Field

from jobinsight.exceptions import ErrorCode, JobInsightError, PipelineStage

# Description placeholder when no extraction strategy yields usable text.
DESCRIPTION_UNAVAILABLE = "Full description not available."


class StageIssue(BaseModel):
    """Structured record of a pipeline stage that degraded.

    Attributes:
        stage: Stage that failed.
        code: Error code of the underlying failure.
        message: Human-readable cause.
    """

    stage: PipelineStage = Field(description="Stage that failed")
    code: ErrorCode = Field(description="Error code")
    message: str = Field(description="Failure cause")

    @classmethod
    def from_error(
        cls,
        error: JobInsightError,
        stage: PipelineStage | None = None,
    ) -> "StageIssue":
        """Build an issue from a caught application error."""
        return cls(stage=stage or error.stage, code=error.code, message=error.message)


class _ListingFields(BaseModel):
    """Fields shared by summaries and enriched listings."""

    title: str = Field(min_length=1, description="Job title")
    company: str = Field(min_length=1, description="Hiring company")
    location: str = Field(default="", description="Job location")
    salary: str | None = Field(default=None, description="Salary as displayed")
    job_type: str | None = Field(default=None, description="Employment type")
    posted_date: str = Field(default="", description="Posted date as displayed")
    url: str = Field(description="Listing detail page URL")
    source: str = Field(description="Site the listing was scraped from")


class ListingSummary(_ListingFields):
    """A job posting as shown on a search results page.

    Immutable once extracted.
    """

    model_config = ConfigDict(frozen=True)


class Listing(_ListingFields):
    """A listing enriched by the pipeline.

    Each stage fills in its own field; a failed stage leaves the others intact
    and appends a StageIssue.
    """

    model_config = ConfigDict(validate_assignment=True)

    description: str = Field(
        default=DESCRIPTION_UNAVAILABLE,
        description="Full description text",
    )
    insights: str | None = Field(default=None, description="Generated narrative")
    store_id: str | None = Field(default=None, description="Vector store record id")
    issues: list[StageIssue] = Field(
        default_factory=list,
        description="Degraded stages for this listing",
    )

    @classmethod
    def from_summary(cls, summary: ListingSummary) -> "Listing":
        """Start an enriched listing from an extracted summary."""
        return cls(**summary.model_dump())

    @property
    def has_description(self) -> bool:
        """Whether the description is usable for insight generation."""
        return bool(self.description.strip()) and (
            self.description != DESCRIPTION_UNAVAILABLE
        )

    def record_issue(self, issue: StageIssue) -> None:
        """Attach a degraded-stage record."""
        self.issues.append(issue)
