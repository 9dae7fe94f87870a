"""Insight narrative generation for scraped listings."""

from jobinsight.config import PipelineSettings, get_settings
from jobinsight.exceptions import InsightUnavailableError, JobInsightError, LLMError
from jobinsight.llm.client import LLMClient
from jobinsight.llm.prompts import MarketInsightPromptTemplate
from jobinsight.logging_config import get_logger
from jobinsight.scraping.models import Listing
from jobinsight.vectorstore.client import InsightStore
from jobinsight.vectorstore.models import SimilarityMatch

logger = get_logger(__name__)

INSUFFICIENT_DATA_NARRATIVE = "Unable to generate insights: No job description available."

LISTING_INSIGHT_TYPE = "job_insight"
COMBINED_INSIGHT_TYPE = "combined_job_insight"


class InsightSynthesizer:
    """Generates market insight narratives with an LLM.

    Prompts are enriched with similar prior insights when an insight store is
    available. Context lookup is best-effort; generation is not.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        insight_store: InsightStore | None = None,
        prompt_template: MarketInsightPromptTemplate | None = None,
        settings: PipelineSettings | None = None,
    ) -> None:
        """Initialize the synthesizer.

        Args:
            llm_client: LLM client for generation.
            insight_store: Source of similar prior insights. No context if None.
            prompt_template: Prompt template.
            settings: Pipeline configuration.
        """
        self._settings = settings or get_settings().pipeline
        self._llm_client = llm_client
        self._insight_store = insight_store
        self._prompt_template = prompt_template or MarketInsightPromptTemplate(
            excerpt_chars=self._settings.context_excerpt_chars
        )

    async def synthesize(self, listing: Listing) -> str:
        """Generate the narrative for one listing.

        A listing without a usable description gets
        ``INSUFFICIENT_DATA_NARRATIVE`` and no LLM call is made.

        Raises:
            InsightUnavailableError: If the LLM call fails.
        """
        if not listing.has_description:
            logger.info(
                "Skipping insight generation, no description",
                extra={"title": listing.title, "company": listing.company},
            )
            return INSUFFICIENT_DATA_NARRATIVE

        context = await self._find_context(
            _query_text(listing),
            {"type": LISTING_INSIGHT_TYPE},
        )
        system_prompt, user_prompt = self._prompt_template.build_listing_prompt(
            listing,
            context,
        )
        return await self._generate(
            system_prompt,
            user_prompt,
            extra={"title": listing.title, "company": listing.company},
        )

    async def synthesize_combined(self, listings: list[Listing]) -> str:
        """Generate one narrative across several listings.

        Listings without a usable description are left out of the prompt.
        If none remain, ``INSUFFICIENT_DATA_NARRATIVE`` is returned without an
        LLM call.

        Raises:
            InsightUnavailableError: If the LLM call fails.
        """
        usable = [listing for listing in listings if listing.has_description]
        if not usable:
            logger.info(
                "Skipping combined insight, no listing has a description",
                extra={"listing_count": len(listings)},
            )
            return INSUFFICIENT_DATA_NARRATIVE

        query_text = "\n".join(_query_text(listing) for listing in usable)
        context = await self._find_context(query_text, {"type": COMBINED_INSIGHT_TYPE})
        system_prompt, user_prompt = self._prompt_template.build_combined_prompt(
            usable,
            context,
        )
        return await self._generate(
            system_prompt,
            user_prompt,
            extra={"listing_count": len(usable), "excluded": len(listings) - len(usable)},
        )

    async def _find_context(
        self,
        query_text: str,
        metadata_filter: dict[str, str],
    ) -> list[SimilarityMatch]:
        if self._insight_store is None or self._settings.context_top_k == 0:
            return []

        try:
            matches = await self._insight_store.query(
                query_text,
                metadata_filter=metadata_filter,
                top_k=self._settings.context_top_k,
            )
        except JobInsightError as e:
            logger.warning(
                "Similar insight lookup failed, continuing without context",
                extra={"error": e.message, "code": e.code.value},
            )
            return []

        logger.debug(f"Found {len(matches)} similar insights for context")
        return matches

    async def _generate(
        self,
        system_prompt: str,
        user_prompt: str,
        extra: dict[str, object],
    ) -> str:
        try:
            result = await self._llm_client.generate_text(
                prompt=user_prompt,
                system_prompt=system_prompt,
            )
        except LLMError as e:
            logger.warning(
                f"Insight generation failed: {e.message}",
                extra={**extra, "code": e.code.value},
            )
            raise InsightUnavailableError(
                f"Insight generation failed: {e.message}",
                details={"cause": e.code.value, **e.details},
            ) from e

        if result.truncated:
            logger.warning("Insight narrative truncated at max_tokens", extra=extra)

        logger.info(
            "Generated insight",
            extra={**extra, "tokens_used": result.total_tokens},
        )
        return result.content


def _query_text(listing: Listing) -> str:
    return f"{listing.title} {listing.company} {listing.description}"
