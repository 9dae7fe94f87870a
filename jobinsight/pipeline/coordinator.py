"""Search pipeline: scrape, synthesize, embed, store."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from jobinsight.config import Settings, get_settings
from jobinsight.embeddings.adapter import EmbeddingAdapter
from jobinsight.embeddings.service import HTTPEmbeddingService
from jobinsight.exceptions import (
    ErrorCode,
    InsightUnavailableError,
    JobInsightError,
    PipelineStage,
    RequestTimeoutError,
    StorageDegradedError,
    ValidationError,
    VectorStoreError,
)
from jobinsight.insights.synthesizer import (
    COMBINED_INSIGHT_TYPE,
    INSUFFICIENT_DATA_NARRATIVE,
    LISTING_INSIGHT_TYPE,
    InsightSynthesizer,
)
from jobinsight.llm.client import OpenAICompatibleClient
from jobinsight.logging_config import get_logger
from jobinsight.observability.metrics import (
    track_search_request,
    track_stage_degradation,
)
from jobinsight.pipeline.models import SearchResponse
from jobinsight.scraping.models import Listing, StageIssue
from jobinsight.scraping.orchestrator import ScrapeOrchestrator, ScrapeRun, ScrapeState
from jobinsight.vectorstore.client import InsightStore
from jobinsight.vectorstore.models import InsightRecord, SimilarityMatch
from jobinsight.vectorstore.service import QdrantVectorStore

logger = get_logger(__name__)

SAVED_LISTING_TYPE = "saved_job"
SAVED_LISTING_LIMIT = 100

Closer = Callable[[], Awaitable[None]]


def _utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


def _listing_metadata(listing: Listing) -> dict[str, Any]:
    return listing.model_dump(
        include={
            "title",
            "company",
            "description",
            "location",
            "salary",
            "job_type",
            "posted_date",
            "url",
            "source",
        }
    )


def jobs_data(listings: list[Listing]) -> str:
    """Compact ``title|company|location|job_type|salary`` rows joined by ``;``."""
    return ";".join(
        "|".join(
            str(value) if value is not None else ""
            for value in (
                listing.title,
                listing.company,
                listing.location,
                listing.job_type,
                listing.salary,
            )
        )
        for listing in listings
    )


class PipelineCoordinator:
    """Runs search requests end to end.

    Scraping failures are fatal. Insight and storage failures degrade the
    affected listing only: they are logged, recorded as a StageIssue, and
    the request carries on.
    """

    def __init__(
        self,
        orchestrator: ScrapeOrchestrator,
        synthesizer: InsightSynthesizer,
        insight_store: InsightStore,
        settings: Settings | None = None,
        closers: list[Closer] | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            orchestrator: Listing scraper.
            synthesizer: Narrative generator.
            insight_store: Insight persistence and similarity lookup.
            settings: Application settings.
            closers: Client shutdown callbacks run by ``close``.
        """
        self._settings = settings or get_settings()
        self._orchestrator = orchestrator
        self._synthesizer = synthesizer
        self._insight_store = insight_store
        self._closers = list(closers or [])

    async def close(self) -> None:
        """Close the clients this coordinator was given."""
        for close in self._closers:
            await close()
        self._closers.clear()

    async def search_jobs(
        self,
        keywords: str,
        location: str,
        user_id: str | None = None,
    ) -> SearchResponse:
        """Scrape listings for a search and enrich each with an insight.

        Args:
            keywords: Search keywords.
            location: Search location.
            user_id: Owner recorded on stored insights.

        Returns:
            Listings plus the combined insight.

        Raises:
            ValidationError: If keywords are blank.
            ScrapeUnavailableError: If the search could not be scraped.
            RequestTimeoutError: If the request exceeded its deadline.
        """
        keywords = keywords.strip()
        location = location.strip()
        if not keywords:
            raise ValidationError("Keywords are required", details={"field": "keywords"})

        limit = self._settings.pipeline.request_timeout or None
        start = time.perf_counter()

        try:
            async with asyncio.timeout(limit) as deadline:
                response = await self._run_search(keywords, location, user_id)
        except TimeoutError as e:
            track_search_request(time.perf_counter() - start, 0, success=False)
            if not deadline.expired():
                raise
            logger.error(
                "Search request timed out",
                extra={"keywords": keywords, "location": location, "timeout": limit},
            )
            raise RequestTimeoutError(
                f"Search request exceeded {limit:g}s",
                details={"keywords": keywords, "location": location, "timeout": limit},
            ) from e
        except JobInsightError as e:
            track_search_request(time.perf_counter() - start, 0, success=False)
            logger.error(
                f"Search request failed: {e.message}",
                extra={"code": e.code.value, "stage": e.stage.value},
            )
            raise

        track_search_request(time.perf_counter() - start, len(response.listings))
        return response

    async def _run_search(
        self,
        keywords: str,
        location: str,
        user_id: str | None,
    ) -> SearchResponse:
        base_metadata = {
            "keywords": keywords,
            "search_location": location,
            "user_id": user_id,
        }

        async def enrich(listing: Listing, run: ScrapeRun) -> None:
            run.advance(ScrapeState.INSIGHT_PENDING)
            await self._attach_insight(listing)
            run.advance(ScrapeState.STORE_PENDING)
            await self._store_insight(listing, base_metadata)

        listings = await self._orchestrator.scrape(
            keywords,
            location,
            on_listing=enrich,
            run=ScrapeRun(keywords, location),
        )

        response = SearchResponse(keywords=keywords, location=location, listings=listings)
        if self._settings.pipeline.combined_insights:
            await self._attach_combined_insight(response, user_id)

        logger.info(
            "Search completed",
            extra={
                "keywords": keywords,
                "location": location,
                "listings": len(listings),
                "stored": sum(1 for listing in listings if listing.store_id),
            },
        )
        return response

    async def _attach_insight(self, listing: Listing) -> None:
        try:
            listing.insights = await self._synthesizer.synthesize(listing)
        except InsightUnavailableError as e:
            listing.record_issue(StageIssue.from_error(e, PipelineStage.INSIGHT))
            track_stage_degradation(PipelineStage.INSIGHT.value)

    async def _store_insight(self, listing: Listing, base_metadata: dict[str, Any]) -> None:
        if listing.insights is None or listing.insights == INSUFFICIENT_DATA_NARRATIVE:
            return

        try:
            record = await self._insight_store.store(
                listing.insights,
                LISTING_INSIGHT_TYPE,
                {
                    **_listing_metadata(listing),
                    **base_metadata,
                    "timestamp": _utc_timestamp(),
                },
            )
        except JobInsightError as e:
            issue = self._storage_issue(e, PipelineStage.STORAGE)
            listing.record_issue(issue)
            logger.warning(
                "Insight not stored, listing kept without id",
                extra={"title": listing.title, "company": listing.company, "error": e.message},
            )
            return

        listing.store_id = record.id

    async def _attach_combined_insight(
        self,
        response: SearchResponse,
        user_id: str | None,
    ) -> None:
        try:
            combined = await self._synthesizer.synthesize_combined(response.listings)
        except InsightUnavailableError as e:
            response.issues.append(StageIssue.from_error(e, PipelineStage.COMBINED_INSIGHT))
            track_stage_degradation(PipelineStage.COMBINED_INSIGHT.value)
            return

        response.combined_insight = combined
        if combined == INSUFFICIENT_DATA_NARRATIVE:
            return

        try:
            record = await self._insight_store.store(
                combined,
                COMBINED_INSIGHT_TYPE,
                {
                    "jobs_data": jobs_data(response.listings),
                    "job_count": len(response.listings),
                    "keywords": response.keywords,
                    "location": response.location,
                    "timestamp": _utc_timestamp(),
                    "user_id": user_id,
                },
                prefix="insight",
            )
        except JobInsightError as e:
            response.issues.append(self._storage_issue(e, PipelineStage.COMBINED_STORAGE))
            logger.warning(
                "Combined insight not stored",
                extra={"keywords": response.keywords, "error": e.message},
            )
            return

        response.combined_insight_id = record.id

    @staticmethod
    def _storage_issue(error: JobInsightError, stage: PipelineStage) -> StageIssue:
        degraded = StorageDegradedError(
            f"Insight could not be stored: {error.message}",
            details={"cause": error.code.value},
            stage=stage,
        )
        track_stage_degradation(stage.value)
        return StageIssue.from_error(degraded)

    async def get_insight(self, record_id: str) -> InsightRecord | None:
        """Look up a stored insight by id.

        Raises:
            VectorStoreError: If the lookup fails.
        """
        if not record_id.strip():
            raise ValidationError("Record id is required", details={"field": "id"})
        return await self._insight_store.get(record_id)

    async def find_similar_insights(
        self,
        text: str,
        metadata_filter: dict[str, Any] | None = None,
        top_k: int = 5,
    ) -> list[SimilarityMatch]:
        """Find stored insights similar to a piece of text.

        Raises:
            ValidationError: If the text is blank.
            EmbeddingError: If the text cannot be embedded.
            VectorStoreError: If the search fails.
        """
        if not text.strip():
            raise ValidationError("Query text is required", details={"field": "text"})
        return await self._insight_store.query(
            text,
            metadata_filter=metadata_filter,
            top_k=top_k,
        )

    async def save_listing(self, listing: Listing, user_id: str) -> InsightRecord:
        """Store a listing a user chose to keep.

        The description is embedded when present, otherwise the title and
        company.

        Raises:
            ValidationError: If the user id is blank.
            EmbeddingError: If the text cannot be embedded.
            VectorStoreError: If the write fails.
        """
        if not user_id.strip():
            raise ValidationError("User id is required", details={"field": "user_id"})

        text = (
            listing.description
            if listing.has_description
            else f"{listing.title} at {listing.company}"
        )
        return await self._insight_store.store(
            text,
            SAVED_LISTING_TYPE,
            {
                **_listing_metadata(listing),
                "user_id": user_id,
                "saved_at": _utc_timestamp(),
            },
            prefix="job",
        )

    async def list_saved(self, user_id: str) -> list[InsightRecord]:
        """List the listings a user has saved, newest first.

        Raises:
            ValidationError: If the user id is blank.
            VectorStoreError: If the scan fails.
        """
        if not user_id.strip():
            raise ValidationError("User id is required", details={"field": "user_id"})

        records = await self._insight_store.list(
            {"user_id": user_id, "type": SAVED_LISTING_TYPE},
            limit=SAVED_LISTING_LIMIT,
        )
        return sorted(
            records,
            key=lambda record: str(record.metadata.get("saved_at", "")),
            reverse=True,
        )

    async def delete_saved(self, record_id: str, user_id: str) -> None:
        """Remove a saved listing owned by ``user_id``.

        Records of another user or another type are reported as missing and
        left in place.

        Raises:
            ValidationError: If either id is blank.
            VectorStoreError: If no such saved listing exists for the user,
                or the delete fails.
        """
        if not record_id.strip():
            raise ValidationError("Record id is required", details={"field": "id"})
        if not user_id.strip():
            raise ValidationError("User id is required", details={"field": "user_id"})

        metadata = await self._insight_store.fetch(record_id)
        if (
            metadata is None
            or metadata.get("type") != SAVED_LISTING_TYPE
            or metadata.get("user_id") != user_id
        ):
            raise VectorStoreError(
                f"Saved listing not found: {record_id}",
                code=ErrorCode.RECORD_NOT_FOUND,
                details={"id": record_id, "user_id": user_id},
                stage=PipelineStage.QUERY,
            )

        await self._insight_store.delete(record_id)
        logger.info(
            "Removed saved listing",
            extra={"record_id": record_id, "user_id": user_id},
        )


def build_coordinator(settings: Settings | None = None) -> PipelineCoordinator:
    """Construct a coordinator and every client it needs from settings."""
    settings = settings or get_settings()

    embedding_service = HTTPEmbeddingService(settings.embedding)
    adapter = EmbeddingAdapter(
        embedding_service,
        native_dimensions=settings.embedding.native_dimensions,
        store_dimensions=settings.qdrant.dimensions,
    )
    insight_store = InsightStore(adapter, QdrantVectorStore(settings.qdrant), settings.qdrant)
    llm_client = OpenAICompatibleClient(settings.llm)

    return PipelineCoordinator(
        orchestrator=ScrapeOrchestrator(settings=settings.scraper),
        synthesizer=InsightSynthesizer(
            llm_client,
            insight_store=insight_store,
            settings=settings.pipeline,
        ),
        insight_store=insight_store,
        settings=settings,
        closers=[llm_client.close, insight_store.close],
    )
