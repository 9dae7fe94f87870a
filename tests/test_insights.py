"""Tests for insight synthesis."""

from unittest.mock import AsyncMock

import pytest

from jobinsight.config import PipelineSettings
from jobinsight.exceptions import (
    ErrorCode,
    InsightUnavailableError,
    LLMError,
    VectorStoreError,
)
from jobinsight.insights.synthesizer import (
    COMBINED_INSIGHT_TYPE,
    INSUFFICIENT_DATA_NARRATIVE,
    LISTING_INSIGHT_TYPE,
    InsightSynthesizer,
)
from jobinsight.llm.models import GenerationResult
from jobinsight.scraping.models import DESCRIPTION_UNAVAILABLE, Listing
from jobinsight.vectorstore.models import SimilarityMatch


@pytest.fixture
def llm_client() -> AsyncMock:
    client = AsyncMock()
    client.generate_text.return_value = GenerationResult(
        content="1. Market Overview\n- Strong demand",
        model="gpt-4",
        finish_reason="stop",
        total_tokens=300,
    )
    return client


@pytest.fixture
def insight_store() -> AsyncMock:
    store = AsyncMock()
    store.query.return_value = [
        SimilarityMatch(
            id="insight_1_abc",
            score=0.9,
            metadata={"title": "Backend Engineer", "text": "Prior narrative about Python demand"},
        )
    ]
    return store


class TestSynthesize:
    """Tests for single-listing insight generation."""

    async def test_returns_narrative_verbatim(
        self,
        llm_client: AsyncMock,
        listing: Listing,
    ) -> None:
        """The generated text is returned unmodified."""
        synthesizer = InsightSynthesizer(llm_client, settings=PipelineSettings())

        narrative = await synthesizer.synthesize(listing)

        assert narrative == "1. Market Overview\n- Strong demand"
        prompt = llm_client.generate_text.await_args.kwargs["prompt"]
        assert "Senior Python Engineer" in prompt
        assert "job market analyst" in llm_client.generate_text.await_args.kwargs["system_prompt"]

    async def test_sentinel_description_skips_llm(
        self,
        llm_client: AsyncMock,
        insight_store: AsyncMock,
        listing: Listing,
    ) -> None:
        """No description means no LLM call and the insufficient-data narrative."""
        listing.description = DESCRIPTION_UNAVAILABLE
        synthesizer = InsightSynthesizer(llm_client, insight_store, settings=PipelineSettings())

        narrative = await synthesizer.synthesize(listing)

        assert narrative == INSUFFICIENT_DATA_NARRATIVE
        llm_client.generate_text.assert_not_called()
        insight_store.query.assert_not_called()

    async def test_blank_description_skips_llm(
        self,
        llm_client: AsyncMock,
        listing: Listing,
    ) -> None:
        """Whitespace-only descriptions are treated as missing."""
        listing.description = "   "
        synthesizer = InsightSynthesizer(llm_client, settings=PipelineSettings())

        assert await synthesizer.synthesize(listing) == INSUFFICIENT_DATA_NARRATIVE
        llm_client.generate_text.assert_not_called()

    async def test_context_from_similar_insights(
        self,
        llm_client: AsyncMock,
        insight_store: AsyncMock,
        listing: Listing,
    ) -> None:
        """Prior listing insights are looked up and added to the prompt."""
        synthesizer = InsightSynthesizer(
            llm_client,
            insight_store,
            settings=PipelineSettings(context_top_k=3),
        )

        await synthesizer.synthesize(listing)

        insight_store.query.assert_awaited_once()
        assert insight_store.query.await_args.kwargs == {
            "metadata_filter": {"type": LISTING_INSIGHT_TYPE},
            "top_k": 3,
        }
        prompt = llm_client.generate_text.await_args.kwargs["prompt"]
        assert "Context from Similar Jobs" in prompt
        assert "Prior narrative about Python demand" in prompt

    async def test_context_failure_is_not_fatal(
        self,
        llm_client: AsyncMock,
        insight_store: AsyncMock,
        listing: Listing,
    ) -> None:
        """A failing similarity lookup generates without context."""
        insight_store.query.side_effect = VectorStoreError("Qdrant unreachable")
        synthesizer = InsightSynthesizer(llm_client, insight_store, settings=PipelineSettings())

        narrative = await synthesizer.synthesize(listing)

        assert narrative.startswith("1. Market Overview")
        prompt = llm_client.generate_text.await_args.kwargs["prompt"]
        assert "Context from Similar Jobs" not in prompt

    async def test_context_disabled(
        self,
        llm_client: AsyncMock,
        insight_store: AsyncMock,
        listing: Listing,
    ) -> None:
        """A zero context_top_k skips the lookup."""
        synthesizer = InsightSynthesizer(
            llm_client,
            insight_store,
            settings=PipelineSettings(context_top_k=0),
        )

        await synthesizer.synthesize(listing)

        insight_store.query.assert_not_called()

    async def test_llm_failure_raises_insight_unavailable(
        self,
        llm_client: AsyncMock,
        listing: Listing,
    ) -> None:
        """LLM errors surface as InsightUnavailableError with the cause."""
        llm_client.generate_text.side_effect = LLMError(
            "Rate limit exceeded",
            code=ErrorCode.LLM_RATE_LIMIT,
            details={"status_code": 429},
        )
        synthesizer = InsightSynthesizer(llm_client, settings=PipelineSettings())

        with pytest.raises(InsightUnavailableError) as exc_info:
            await synthesizer.synthesize(listing)

        assert exc_info.value.details == {"cause": "JOB-5002", "status_code": 429}
        assert isinstance(exc_info.value.__cause__, LLMError)

    async def test_truncated_narrative_is_kept(
        self,
        llm_client: AsyncMock,
        listing: Listing,
    ) -> None:
        """A narrative cut at max_tokens is still returned."""
        llm_client.generate_text.return_value = GenerationResult(
            content="1. Market Overview\n- Demand is",
            model="gpt-4",
            finish_reason="length",
        )
        synthesizer = InsightSynthesizer(llm_client, settings=PipelineSettings())

        assert await synthesizer.synthesize(listing) == "1. Market Overview\n- Demand is"


class TestSynthesizeCombined:
    """Tests for the combined insight."""

    async def test_excludes_listings_without_description(
        self,
        llm_client: AsyncMock,
        listing: Listing,
    ) -> None:
        """Only listings with a description reach the prompt."""
        missing = listing.model_copy(
            update={"title": "Ghost Role", "description": DESCRIPTION_UNAVAILABLE}
        )
        synthesizer = InsightSynthesizer(llm_client, settings=PipelineSettings())

        await synthesizer.synthesize_combined([listing, missing])

        prompt = llm_client.generate_text.await_args.kwargs["prompt"]
        assert "Senior Python Engineer" in prompt
        assert "Ghost Role" not in prompt
        assert "combined insights" in prompt

    async def test_no_usable_listings(
        self,
        llm_client: AsyncMock,
        listing: Listing,
    ) -> None:
        """Nothing to analyze yields the insufficient-data narrative."""
        listing.description = DESCRIPTION_UNAVAILABLE
        synthesizer = InsightSynthesizer(llm_client, settings=PipelineSettings())

        assert await synthesizer.synthesize_combined([listing]) == INSUFFICIENT_DATA_NARRATIVE
        assert await synthesizer.synthesize_combined([]) == INSUFFICIENT_DATA_NARRATIVE
        llm_client.generate_text.assert_not_called()

    async def test_context_filtered_by_combined_type(
        self,
        llm_client: AsyncMock,
        insight_store: AsyncMock,
        listing: Listing,
    ) -> None:
        """Combined prompts draw context from prior combined insights."""
        synthesizer = InsightSynthesizer(llm_client, insight_store, settings=PipelineSettings())

        await synthesizer.synthesize_combined([listing])

        metadata_filter = insight_store.query.await_args.kwargs["metadata_filter"]
        assert metadata_filter == {"type": COMBINED_INSIGHT_TYPE}

    async def test_llm_failure(self, llm_client: AsyncMock, listing: Listing) -> None:
        """Combined generation failures raise InsightUnavailableError."""
        llm_client.generate_text.side_effect = LLMError("down", code=ErrorCode.LLM_TIMEOUT)
        synthesizer = InsightSynthesizer(llm_client, settings=PipelineSettings())

        with pytest.raises(InsightUnavailableError):
            await synthesizer.synthesize_combined([listing])
