"""Scrape orchestration: browser session lifecycle, navigation retries, sequencing."""

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from enum import Enum
from urllib.parse import quote

from jobinsight.config import ScraperSettings, get_settings
from jobinsight.exceptions import (
    DetailFetchDegradedError,
    NavigationExhaustedError,
    NoListingsFoundError,
    PageError,
    PipelineStage,
)
from jobinsight.logging_config import get_logger
from jobinsight.observability.metrics import (
    track_navigation_attempt,
    track_stage_degradation,
)
from jobinsight.scraping.extractor import MAIN_CONTENT_SELECTOR, PageExtractor
from jobinsight.scraping.models import DESCRIPTION_UNAVAILABLE, Listing, StageIssue
from jobinsight.scraping.session import PageSession, open_browser_session

logger = get_logger(__name__)


class ScrapeState(str, Enum):
    """Lifecycle of one search request."""

    IDLE = "idle"
    BROWSER_READY = "browser_ready"
    SEARCH_NAVIGATED = "search_navigated"
    SUMMARIES_EXTRACTED = "summaries_extracted"
    DETAIL_FETCHING = "detail_fetching"
    INSIGHT_PENDING = "insight_pending"
    STORE_PENDING = "store_pending"
    DONE = "done"
    FAILED = "failed"


class ScrapeRun:
    """State of a single search request as it moves through the pipeline."""

    def __init__(self, keywords: str, location: str) -> None:
        self.keywords = keywords
        self.location = location
        self.state = ScrapeState.IDLE
        self.history: list[ScrapeState] = [ScrapeState.IDLE]

    def advance(self, state: ScrapeState) -> None:
        logger.debug(
            f"Scrape state {self.state.value} -> {state.value}",
            extra={"keywords": self.keywords, "location": self.location},
        )
        self.state = state
        self.history.append(state)


SessionFactory = Callable[[], AbstractAsyncContextManager[PageSession]]
ListingHandler = Callable[[Listing, ScrapeRun], Awaitable[None]]


class ScrapeOrchestrator:
    """Drives one browser session through a search and its listing pages.

    Listings are processed strictly one after another on a single page:
    concurrent detail navigation against the same site trips its
    anti-scraping defenses, and the site publishes no rate limit to pace
    parallel requests against. Keep this sequential.
    """

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        extractor: PageExtractor | None = None,
        settings: ScraperSettings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            session_factory: Returns an async context manager yielding a
                PageSession. Defaults to a headless Playwright browser.
            extractor: Page extractor.
            settings: Scraper configuration.
            sleep: Awaitable used between navigation attempts.
        """
        self._settings = settings or get_settings().scraper
        self._session_factory = session_factory or (
            lambda: open_browser_session(self._settings)
        )
        self._extractor = extractor or PageExtractor(self._settings)
        self._sleep = sleep

    def build_search_url(self, keywords: str, location: str) -> str:
        """Format the search results URL for a keyword/location pair."""
        return self._settings.search_url.format(
            keywords=quote(keywords, safe=""),
            location=quote(location, safe=""),
        )

    async def navigate(
        self,
        session: PageSession,
        url: str,
        stage: PipelineStage = PipelineStage.DETAIL_FETCH,
    ) -> None:
        """Navigate with a fixed number of attempts and a fixed delay.

        Args:
            session: Page to navigate.
            url: Target URL.
            stage: Stage reported if every attempt fails.

        Raises:
            NavigationExhaustedError: If every attempt failed.
        """
        attempts = self._settings.navigation_retries
        page_kind = "search" if stage == PipelineStage.SEARCH else "detail"
        last_error: PageError | None = None

        for attempt in range(1, attempts + 1):
            try:
                await session.goto(url, timeout=self._settings.navigation_timeout)
            except PageError as e:
                last_error = e
                track_navigation_attempt(page_kind, success=False)
                logger.warning(
                    f"Navigation attempt {attempt}/{attempts} failed",
                    extra={"url": url, "error": e.message},
                )
                if attempt < attempts:
                    await self._sleep(self._settings.retry_delay)
                continue

            track_navigation_attempt(page_kind, success=True)
            return

        raise NavigationExhaustedError(
            f"Could not load {page_kind} page after {attempts} attempts",
            details={
                "url": url,
                "attempts": attempts,
                "error": last_error.message if last_error else None,
            },
            stage=stage,
        )

    async def scrape(
        self,
        keywords: str,
        location: str,
        limit: int | None = None,
        on_listing: ListingHandler | None = None,
        run: ScrapeRun | None = None,
    ) -> list[Listing]:
        """Scrape listings for a search and hand each one downstream.

        Each listing's description is fetched, then ``on_listing`` is awaited
        before the next listing is visited. The browser session is closed on
        every exit path.

        Args:
            keywords: Search keywords.
            location: Search location.
            limit: Maximum listings (defaults to settings).
            on_listing: Downstream stage run per listing.
            run: Request state tracker; created if not supplied.

        Returns:
            Listings in result-page order.

        Raises:
            NavigationExhaustedError: If the search page never loaded.
            NoListingsFoundError: If no summaries were extracted.
        """
        run = run or ScrapeRun(keywords, location)
        limit = limit or self._settings.max_listings
        search_url = self.build_search_url(keywords, location)

        logger.info(
            "Scraping listings",
            extra={"keywords": keywords, "location": location, "limit": limit},
        )

        try:
            async with self._session_factory() as session:
                run.advance(ScrapeState.BROWSER_READY)

                await self.navigate(session, search_url, stage=PipelineStage.SEARCH)
                run.advance(ScrapeState.SEARCH_NAVIGATED)
                await self._wait_for_main_content(session)

                summaries = await self._extractor.extract_summaries(session, limit)
                if not summaries:
                    raise NoListingsFoundError(
                        "No listings found for search",
                        details={"keywords": keywords, "location": location},
                    )
                run.advance(ScrapeState.SUMMARIES_EXTRACTED)

                listings: list[Listing] = []
                for summary in summaries:
                    listing = Listing.from_summary(summary)
                    run.advance(ScrapeState.DETAIL_FETCHING)
                    listing.description = await self._fetch_description(session, listing)
                    if on_listing is not None:
                        await on_listing(listing, run)
                    listings.append(listing)

            run.advance(ScrapeState.DONE)
        except BaseException:
            run.advance(ScrapeState.FAILED)
            raise

        logger.info(
            f"Scraped {len(listings)} listings",
            extra={"keywords": keywords, "location": location},
        )
        return listings

    async def _wait_for_main_content(self, session: PageSession) -> None:
        try:
            found = await session.wait_for_selector(
                MAIN_CONTENT_SELECTOR,
                timeout=self._settings.selector_timeout,
            )
        except PageError as e:
            logger.debug(f"Main content wait failed: {e.message}")
            return
        if not found:
            logger.debug("Main content container not found")

    async def _fetch_description(self, session: PageSession, listing: Listing) -> str:
        try:
            if not listing.url:
                raise DetailFetchDegradedError("Listing has no detail URL")
            try:
                await self.navigate(session, listing.url, stage=PipelineStage.DETAIL_FETCH)
            except NavigationExhaustedError as e:
                raise DetailFetchDegradedError(e.message, details=e.details) from e
        except DetailFetchDegradedError as e:
            logger.warning(
                "Detail page unavailable, continuing without description",
                extra={"url": listing.url, "title": listing.title, "error": e.message},
            )
            listing.record_issue(StageIssue.from_error(e))
            track_stage_degradation(e.stage.value)
            return DESCRIPTION_UNAVAILABLE

        return await self._extractor.extract_full_description(session, listing.url)
