"""Application exception hierarchy.

All custom exceptions inherit from JobInsightError.
Each exception has an error code and the pipeline stage that raised it,
so failures can be reported as structured objects.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "JOB-1000"
    CONFIGURATION_ERROR = "JOB-1001"
    VALIDATION_ERROR = "JOB-1002"

    # Scraping errors (2xxx)
    SCRAPE_UNAVAILABLE = "JOB-2000"
    NAVIGATION_EXHAUSTED = "JOB-2001"
    NO_LISTINGS_FOUND = "JOB-2002"
    DETAIL_FETCH_DEGRADED = "JOB-2003"
    PAGE_ERROR = "JOB-2004"
    BROWSER_UNAVAILABLE = "JOB-2005"

    # Embedding errors (3xxx)
    EMBEDDING_SERVICE_ERROR = "JOB-3000"
    EMBEDDING_DIMENSION_MISMATCH = "JOB-3001"

    # Vector store errors (4xxx)
    VECTOR_STORE_ERROR = "JOB-4000"
    COLLECTION_NOT_FOUND = "JOB-4001"
    COLLECTION_EXISTS = "JOB-4002"
    COLLECTION_DIMENSION_MISMATCH = "JOB-4003"
    STORAGE_DEGRADED = "JOB-4004"
    RECORD_NOT_FOUND = "JOB-4005"

    # LLM errors (5xxx)
    LLM_SERVICE_ERROR = "JOB-5000"
    LLM_TIMEOUT = "JOB-5001"
    LLM_RATE_LIMIT = "JOB-5002"
    LLM_CONTEXT_LENGTH = "JOB-5003"
    INSIGHT_UNAVAILABLE = "JOB-5004"

    # Pipeline errors (6xxx)
    PIPELINE_ERROR = "JOB-6000"
    REQUEST_TIMEOUT = "JOB-6001"


class PipelineStage(str, Enum):
    """Stage of the search pipeline an error or degradation belongs to."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    BROWSER = "browser"
    SEARCH = "search"
    DETAIL_FETCH = "detail_fetch"
    INSIGHT = "insight"
    EMBEDDING = "embedding"
    STORAGE = "storage"
    COMBINED_INSIGHT = "combined_insight"
    COMBINED_STORAGE = "combined_storage"
    QUERY = "query"
    PIPELINE = "pipeline"


class JobInsightError(Exception):
    """Base exception for all job insight errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
        stage: Pipeline stage that failed.
    """

    default_code = ErrorCode.INTERNAL_ERROR
    default_stage = PipelineStage.PIPELINE

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        stage: PipelineStage | None = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.stage = stage or self.default_stage
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "stage": self.stage.value,
                "details": self.details,
            }
        }


class ConfigurationError(JobInsightError):
    """Configuration or environment error."""

    default_code = ErrorCode.CONFIGURATION_ERROR
    default_stage = PipelineStage.CONFIGURATION


class ValidationError(JobInsightError):
    """Input validation error."""

    default_code = ErrorCode.VALIDATION_ERROR
    default_stage = PipelineStage.VALIDATION


class PageError(JobInsightError):
    """A browser page primitive (navigate, wait, evaluate) failed."""

    default_code = ErrorCode.PAGE_ERROR
    default_stage = PipelineStage.BROWSER


class ScrapeUnavailableError(JobInsightError):
    """The listing site could not be scraped for this request."""

    default_code = ErrorCode.SCRAPE_UNAVAILABLE
    default_stage = PipelineStage.SEARCH


class BrowserUnavailableError(ScrapeUnavailableError):
    """The headless browser could not be launched or given a page."""

    default_code = ErrorCode.BROWSER_UNAVAILABLE
    default_stage = PipelineStage.BROWSER


class NavigationExhaustedError(ScrapeUnavailableError):
    """Every navigation attempt to a page failed."""

    default_code = ErrorCode.NAVIGATION_EXHAUSTED


class NoListingsFoundError(ScrapeUnavailableError):
    """The search results page yielded zero listings."""

    default_code = ErrorCode.NO_LISTINGS_FOUND


class DetailFetchDegradedError(JobInsightError):
    """A listing's detail page could not be loaded."""

    default_code = ErrorCode.DETAIL_FETCH_DEGRADED
    default_stage = PipelineStage.DETAIL_FETCH


class EmbeddingError(JobInsightError):
    """Embedding service error."""

    default_code = ErrorCode.EMBEDDING_SERVICE_ERROR
    default_stage = PipelineStage.EMBEDDING


class EmbeddingDimensionError(EmbeddingError):
    """A vector does not have the width the receiving side requires."""

    default_code = ErrorCode.EMBEDDING_DIMENSION_MISMATCH


class VectorStoreError(JobInsightError):
    """Vector store operation error."""

    default_code = ErrorCode.VECTOR_STORE_ERROR
    default_stage = PipelineStage.STORAGE


class StorageDegradedError(VectorStoreError):
    """An insight could not be persisted; the listing continues without an id."""

    default_code = ErrorCode.STORAGE_DEGRADED


class LLMError(JobInsightError):
    """LLM service error."""

    default_code = ErrorCode.LLM_SERVICE_ERROR
    default_stage = PipelineStage.INSIGHT


class InsightUnavailableError(JobInsightError):
    """No narrative could be generated; the listing continues without one."""

    default_code = ErrorCode.INSIGHT_UNAVAILABLE
    default_stage = PipelineStage.INSIGHT


class RequestTimeoutError(JobInsightError):
    """A search request exceeded its wall-clock limit."""

    default_code = ErrorCode.REQUEST_TIMEOUT
    default_stage = PipelineStage.PIPELINE
