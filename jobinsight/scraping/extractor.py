"""Listing extraction from live result and detail pages.

Both extraction paths are selector cascades: the target site's markup drifts,
so every structural assumption has ordered fallbacks.
"""

from typing import Any, NamedTuple

from pydantic import ValidationError as PydanticValidationError

from jobinsight.config import ScraperSettings, get_settings
from jobinsight.logging_config import get_logger
from jobinsight.scraping.cascade import Strategy, first_match
from jobinsight.scraping.models import DESCRIPTION_UNAVAILABLE, ListingSummary
from jobinsight.scraping.session import PageSession

logger = get_logger(__name__)


class ResultLayout(NamedTuple):
    """A known search results layout: the container and its card nodes."""

    name: str
    container: str
    cards: str


RESULT_LAYOUTS: tuple[ResultLayout, ...] = (
    ResultLayout(
        "card-grid",
        'div[data-testid="job-search-results-container"] > div.flex.flex-col.gap-4',
        ":scope > div[data-id]",
    ),
    ResultLayout(
        "results-container",
        'div[data-testid="job-search-results-container"]',
        "div[data-id]",
    ),
    ResultLayout(
        "search-card-widget",
        "dhi-search-cards-widget",
        "dhi-search-card",
    ),
)

PRIMARY_DESCRIPTION_SELECTOR = 'div[data-testid="job-description"]'

ALTERNATIVE_DESCRIPTION_SELECTORS: tuple[str, ...] = (
    'div[data-cy="job-description"]',
    'div[class*="job-description"]',
    'div[class*="description"]',
    'div[itemprop="description"]',
    'div[class*="job-details"]',
    'div[class*="jobDescription"]',
    'div[class*="job-detail-description"]',
    'div[class*="job-detail__description"]',
)

MAIN_CONTENT_SELECTOR = "main"

# Cards are read in one round trip. Field selectors are relative to each card.
CARD_EXTRACTION_SCRIPT = """
({container, cards, limit}) => {
    const root = document.querySelector(container);
    if (!root) return [];
    const text = (card, selector) => {
        const el = card.querySelector(selector);
        return el ? el.textContent.trim() : null;
    };
    return Array.from(root.querySelectorAll(cards)).slice(0, limit).map((card) => {
        const link = card.querySelector('a[data-testid="job-search-job-detail-link"]');
        return {
            title: link ? link.textContent.trim() : null,
            url: link ? link.href : null,
            company: text(card, 'a[href^="/company-profile/"] p'),
            location: text(card, '.text-sm.font-normal.text-zinc-600:nth-of-type(1)'),
            postedDate: text(card, '.text-sm.font-normal.text-zinc-600:nth-of-type(2)'),
            jobType: text(card, '[aria-labelledby="employmentType-label"] p'),
            salary: text(card, '[aria-labelledby="salary-label"]'),
        };
    });
}
"""

ELEMENT_TEXT_SCRIPT = """
(selector) => {
    const el = document.querySelector(selector);
    return el ? el.textContent.trim() : null;
}
"""

BODY_TEXT_SCRIPT = """
() => document.body ? document.body.textContent.replace(/\\s+/g, ' ').trim() : ''
"""

# Raw cards requested per wanted listing; invalid cards are dropped after reading.
CARD_OVERSCAN = 3


class PageExtractor:
    """Extracts listing summaries and full descriptions from a PageSession."""

    def __init__(
        self,
        settings: ScraperSettings | None = None,
        layouts: tuple[ResultLayout, ...] = RESULT_LAYOUTS,
        description_selectors: tuple[str, ...] = ALTERNATIVE_DESCRIPTION_SELECTORS,
    ) -> None:
        """Initialize the extractor.

        Args:
            settings: Scraper configuration.
            layouts: Result layouts, tried in order.
            description_selectors: Fallback description selectors, tried in order.
        """
        self._settings = settings or get_settings().scraper
        self._layouts = layouts
        self._description_selectors = description_selectors

    async def extract_summaries(
        self,
        session: PageSession,
        limit: int,
    ) -> list[ListingSummary]:
        """Extract up to ``limit`` listing summaries from a results page.

        The first layout whose container appears within the selector timeout
        is used for the whole batch. Cards without a title or company are
        dropped.

        Args:
            session: Page showing search results.
            limit: Maximum summaries to return.

        Returns:
            Summaries in page order.
        """
        if limit <= 0:
            return []

        layout = await self._resolve_layout(session)
        if layout is None:
            logger.warning("No known results layout found on page")
            return []

        raw_cards = await session.evaluate(
            CARD_EXTRACTION_SCRIPT,
            {
                "container": layout.container,
                "cards": layout.cards,
                "limit": limit * CARD_OVERSCAN,
            },
        )

        summaries: list[ListingSummary] = []
        for raw in raw_cards or []:
            summary = self._parse_card(raw)
            if summary is None:
                continue
            summaries.append(summary)
            if len(summaries) >= limit:
                break

        logger.info(
            f"Extracted {len(summaries)} listing summaries",
            extra={"layout": layout.name, "cards_read": len(raw_cards or [])},
        )
        return summaries

    async def extract_full_description(self, session: PageSession, url: str) -> str:
        """Extract the full description from a loaded detail page.

        Cascade: primary container, alternative containers, main content
        region, collapsed body text. The first candidate longer than the
        minimum length wins.

        Args:
            session: Page showing the listing detail.
            url: Listing URL, for logging.

        Returns:
            Description text, or ``DESCRIPTION_UNAVAILABLE``.
        """
        result = await first_match(
            self._description_strategies(session),
            accept=self._is_meaningful,
        )
        if result is None:
            logger.info("No meaningful description found", extra={"url": url})
            return DESCRIPTION_UNAVAILABLE

        logger.debug(
            f"Description found via {result.name}",
            extra={"url": url, "length": len(result.value)},
        )
        return result.value.strip()

    async def _resolve_layout(self, session: PageSession) -> ResultLayout | None:
        async def wait_for(layout: ResultLayout) -> ResultLayout | None:
            found = await session.wait_for_selector(
                layout.container,
                timeout=self._settings.selector_timeout,
            )
            return layout if found else None

        result = await first_match(
            [(layout.name, lambda layout=layout: wait_for(layout)) for layout in self._layouts]
        )
        return result.value if result else None

    def _description_strategies(self, session: PageSession) -> list[Strategy[str]]:
        async def primary() -> str | None:
            if not await session.wait_for_selector(
                PRIMARY_DESCRIPTION_SELECTOR,
                timeout=self._settings.selector_timeout,
            ):
                return None
            return await session.evaluate(ELEMENT_TEXT_SCRIPT, PRIMARY_DESCRIPTION_SELECTOR)

        async def element_text(selector: str) -> str | None:
            return await session.evaluate(ELEMENT_TEXT_SCRIPT, selector)

        async def body_text() -> str | None:
            return await session.evaluate(BODY_TEXT_SCRIPT)

        strategies: list[Strategy[str]] = [("primary", primary)]
        strategies.extend(
            (f"alternative:{selector}", lambda selector=selector: element_text(selector))
            for selector in self._description_selectors
        )
        strategies.append(
            ("main-content", lambda: element_text(MAIN_CONTENT_SELECTOR))
        )
        strategies.append(("body", body_text))
        return strategies

    def _is_meaningful(self, text: str) -> bool:
        return len(text.strip()) > self._settings.min_description_length

    def _parse_card(self, raw: dict[str, Any]) -> ListingSummary | None:
        title = _clean(raw.get("title"))
        company = _clean(raw.get("company"))
        if not title or not company:
            return None

        try:
            return ListingSummary(
                title=title,
                company=company,
                location=_clean(raw.get("location")) or "",
                salary=_clean(raw.get("salary")),
                job_type=_clean(raw.get("jobType")),
                posted_date=_clean(raw.get("postedDate")) or "",
                url=_clean(raw.get("url")) or "",
                source=self._settings.source_name,
            )
        except PydanticValidationError as e:
            logger.debug(f"Dropping malformed card: {e}")
            return None


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None
