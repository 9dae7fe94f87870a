"""Browser page sessions.

The scraper only talks to the browser through the ``PageSession`` protocol,
so extraction and orchestration can run against a scripted fake in tests.
``PlaywrightPageSession`` is the production implementation.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Protocol, runtime_checkable

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Browser, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from jobinsight.config import ScraperSettings, get_settings
from jobinsight.exceptions import BrowserUnavailableError, PageError
from jobinsight.logging_config import get_logger

logger = get_logger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]

EXTRA_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Upgrade-Insecure-Requests": "1",
}


@runtime_checkable
class PageSession(Protocol):
    """Minimal browser page capability used by the scraper.

    Timeouts are in seconds. Failures surface as ``PageError``.
    """

    async def goto(self, url: str, timeout: float) -> None:
        """Navigate to ``url`` and wait for the DOM to be ready."""
        ...

    async def wait_for_selector(self, selector: str, timeout: float) -> bool:
        """Wait for ``selector`` to attach; False when the wait times out."""
        ...

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run ``script`` in the page and return its JSON-serializable result."""
        ...

    async def close(self) -> None:
        """Release the page."""
        ...


class PlaywrightPageSession:
    """PageSession backed by a Playwright page."""

    def __init__(self, page: Page) -> None:
        self._page = page
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def goto(self, url: str, timeout: float) -> None:
        try:
            await self._page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=timeout * 1000,
            )
        except PlaywrightError as e:
            raise PageError(
                f"Navigation to {url} failed: {e}",
                details={"url": url},
            ) from e

    async def wait_for_selector(self, selector: str, timeout: float) -> bool:
        try:
            await self._page.wait_for_selector(
                selector,
                state="attached",
                timeout=timeout * 1000,
            )
        except PlaywrightTimeoutError:
            return False
        except PlaywrightError as e:
            raise PageError(
                f"Waiting for {selector} failed: {e}",
                details={"selector": selector},
            ) from e
        return True

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            return await self._page.evaluate(script, arg)
        except PlaywrightError as e:
            raise PageError(f"In-page evaluation failed: {e}") from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._page.close()
        except PlaywrightError as e:
            logger.warning(f"Closing page failed: {e}")


async def _new_page(browser: Browser, settings: ScraperSettings) -> Page:
    try:
        context = await browser.new_context(
            user_agent=settings.user_agent,
            viewport={
                "width": settings.viewport_width,
                "height": settings.viewport_height,
            },
            extra_http_headers=EXTRA_HEADERS,
        )
        page = await context.new_page()
    except PlaywrightError as e:
        raise BrowserUnavailableError(f"Browser page setup failed: {e}") from e

    page.set_default_navigation_timeout(settings.navigation_timeout * 1000)
    return page


@asynccontextmanager
async def open_browser_session(
    settings: ScraperSettings | None = None,
) -> AsyncIterator[PageSession]:
    """Launch a headless browser and yield a page session.

    The page, browser and Playwright driver are released on every exit
    path, including cancellation of the enclosing task.

    Args:
        settings: Scraper configuration.

    Yields:
        A ready PageSession.

    Raises:
        BrowserUnavailableError: If the browser or its page cannot be created.
    """
    settings = settings or get_settings().scraper

    async with async_playwright() as playwright:
        try:
            browser = await playwright.chromium.launch(
                headless=settings.headless,
                args=BROWSER_ARGS,
            )
        except PlaywrightError as e:
            logger.error(f"Browser launch failed: {e}")
            raise BrowserUnavailableError(
                f"Browser launch failed: {e}",
                details={"headless": settings.headless},
            ) from e

        try:
            session = PlaywrightPageSession(await _new_page(browser, settings))
            logger.debug("Browser session opened")
            try:
                yield session
            finally:
                await session.close()
        finally:
            await browser.close()
            logger.debug("Browser session closed")
