"""Listing acquisition: browser sessions, page extraction, scrape orchestration."""

from jobinsight.scraping.extractor import PageExtractor
from jobinsight.scraping.models import (
    DESCRIPTION_UNAVAILABLE,
    Listing,
    ListingSummary,
    StageIssue,
)
from jobinsight.scraping.orchestrator import ScrapeOrchestrator, ScrapeRun, ScrapeState
from jobinsight.scraping.session import (
    PageSession,
    PlaywrightPageSession,
    open_browser_session,
)

__all__ = [
    "DESCRIPTION_UNAVAILABLE",
    "Listing",
    "ListingSummary",
    "PageExtractor",
    "PageSession",
    "PlaywrightPageSession",
    "ScrapeOrchestrator",
    "ScrapeRun",
    "ScrapeState",
    "StageIssue",
    "open_browser_session",
]
