"""Tests for job search API routes."""

from unittest.mock import MagicMock

from httpx import ASGITransport, AsyncClient

from jobinsight.api.app import _get_status_code, app
from jobinsight.exceptions import (
    BrowserUnavailableError,
    ErrorCode,
    NavigationExhaustedError,
    PipelineStage,
    RequestTimeoutError,
    ValidationError,
    VectorStoreError,
)
from jobinsight.pipeline.models import SearchResponse
from jobinsight.scraping.models import Listing
from jobinsight.vectorstore.models import InsightRecord, SimilarityMatch


class TestSearchRoute:
    """Tests for GET /api/v1/jobs/search."""

    async def test_returns_listings(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
        listing: Listing,
    ) -> None:
        """Search returns listings and the combined insight."""
        listing.insights = "Strong demand."
        listing.store_id = "insight_1_abc"
        coordinator.search_jobs.return_value = SearchResponse(
            keywords="python",
            location="Austin",
            listings=[listing],
            combined_insight="Combined view.",
        )

        response = await client.get(
            "/api/v1/jobs/search",
            params={"keywords": "python", "location": "Austin"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["listings"][0]["title"] == "Senior Python Engineer"
        assert data["listings"][0]["store_id"] == "insight_1_abc"
        assert data["combined_insight"] == "Combined view."
        coordinator.search_jobs.assert_awaited_once_with("python", "Austin", user_id=None)

    async def test_requires_keywords(self, client: AsyncClient) -> None:
        """Missing keywords is a request validation error."""
        response = await client.get("/api/v1/jobs/search")
        assert response.status_code == 422

    async def test_scrape_failure_maps_to_502(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
    ) -> None:
        """Fatal scrape errors are returned as structured 502s."""
        coordinator.search_jobs.side_effect = NavigationExhaustedError(
            "Could not load search page after 3 attempts"
        )

        response = await client.get("/api/v1/jobs/search", params={"keywords": "python"})

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "JOB-2001"
        assert error["stage"] == "search"

    async def test_browser_failure_is_structured(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
    ) -> None:
        """A browser that cannot start is a JSON 502 naming the browser stage."""
        coordinator.search_jobs.side_effect = BrowserUnavailableError(
            "Browser launch failed: Executable doesn't exist"
        )

        response = await client.get("/api/v1/jobs/search", params={"keywords": "python"})

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "JOB-2005"
        assert error["stage"] == "browser"

    async def test_timeout_maps_to_504(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
    ) -> None:
        """Request deadline expiry is a 504."""
        coordinator.search_jobs.side_effect = RequestTimeoutError("Search request exceeded 600s")

        response = await client.get("/api/v1/jobs/search", params={"keywords": "python"})

        assert response.status_code == 504

    async def test_unconfigured_pipeline_returns_503(self) -> None:
        """Routes report 503 before the pipeline is built."""
        app.state.coordinator = None
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/api/v1/jobs/search", params={"keywords": "python"})

        assert response.status_code == 503


class TestInsightRoute:
    """Tests for GET /api/v1/jobs/insights/{id}."""

    async def test_returns_record_without_vector(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
    ) -> None:
        """A stored insight is returned without its vector."""
        coordinator.get_insight.return_value = InsightRecord(
            id="insight_1_abc",
            text="Narrative",
            insight_type="job_insight",
            metadata={"title": "Engineer"},
            vector=[0.1] * 4,
        )

        response = await client.get("/api/v1/jobs/insights/insight_1_abc")

        assert response.status_code == 200
        data = response.json()
        assert data["text"] == "Narrative"
        assert "vector" not in data

    async def test_missing_record_is_404(self, client: AsyncClient) -> None:
        """An unknown id yields a structured 404."""
        response = await client.get("/api/v1/jobs/insights/insight_0_missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "JOB-4005"


class TestSimilarInsightsRoute:
    """Tests for GET /api/v1/jobs/similar-insights."""

    async def test_builds_metadata_filter(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
    ) -> None:
        """Type and user parameters become a metadata filter."""
        coordinator.find_similar_insights.return_value = [
            SimilarityMatch(id="insight_1_abc", score=0.91, metadata={"type": "job_insight"})
        ]

        response = await client.get(
            "/api/v1/jobs/similar-insights",
            params={"text": "python backend", "insight_type": "job_insight", "top_k": 3},
        )

        assert response.status_code == 200
        assert response.json()[0]["score"] == 0.91
        coordinator.find_similar_insights.assert_awaited_once_with(
            "python backend",
            metadata_filter={"type": "job_insight"},
            top_k=3,
        )

    async def test_no_filter_when_unrestricted(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
    ) -> None:
        """Without restrictions no filter is passed."""
        await client.get("/api/v1/jobs/similar-insights", params={"text": "data"})

        assert coordinator.find_similar_insights.await_args.kwargs["metadata_filter"] is None

    async def test_validation_error_is_400(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
    ) -> None:
        """Coordinator validation errors map to 400."""
        coordinator.find_similar_insights.side_effect = ValidationError("Query text is required")

        response = await client.get("/api/v1/jobs/similar-insights", params={"text": " "})

        assert response.status_code == 400


class TestSaveRoute:
    """Tests for the /api/v1/jobs/saved routes."""

    async def test_saves_listing(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
        listing: Listing,
    ) -> None:
        """A saved listing returns its record id."""
        coordinator.save_listing.return_value = InsightRecord(
            id="job_1_abc",
            text=listing.description,
            insight_type="saved_job",
        )

        response = await client.post(
            "/api/v1/jobs/saved",
            json={"user_id": "user-7", "listing": listing.model_dump(mode="json")},
        )

        assert response.status_code == 201
        assert response.json() == {"id": "job_1_abc", "user_id": "user-7"}

    async def test_lists_saved_listings(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
    ) -> None:
        """A user's saved listings come back without vectors."""
        coordinator.list_saved.return_value = [
            InsightRecord(
                id="job_1_abc",
                text="Build APIs",
                insight_type="saved_job",
                metadata={"user_id": "user-7", "title": "Engineer"},
                vector=[0.1] * 4,
            )
        ]

        response = await client.get("/api/v1/jobs/saved", params={"user_id": "user-7"})

        assert response.status_code == 200
        [saved] = response.json()
        assert saved["id"] == "job_1_abc"
        assert saved["metadata"]["title"] == "Engineer"
        assert "vector" not in saved
        coordinator.list_saved.assert_awaited_once_with("user-7")

    async def test_list_requires_user(self, client: AsyncClient) -> None:
        """Listing saved jobs needs an owner."""
        response = await client.get("/api/v1/jobs/saved")
        assert response.status_code == 422

    async def test_deletes_saved_listing(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
    ) -> None:
        """The owner can remove a saved listing."""
        response = await client.delete(
            "/api/v1/jobs/saved/job_1_abc",
            params={"user_id": "user-7"},
        )

        assert response.status_code == 200
        assert response.json() == {"id": "job_1_abc", "message": "Job removed from saved jobs"}
        coordinator.delete_saved.assert_awaited_once_with("job_1_abc", "user-7")

    async def test_delete_of_foreign_listing_is_404(
        self,
        client: AsyncClient,
        coordinator: MagicMock,
    ) -> None:
        """A listing the user does not own is reported as not found."""
        coordinator.delete_saved.side_effect = VectorStoreError(
            "Saved listing not found: job_1_abc",
            code=ErrorCode.RECORD_NOT_FOUND,
            stage=PipelineStage.QUERY,
        )

        response = await client.delete(
            "/api/v1/jobs/saved/job_1_abc",
            params={"user_id": "user-8"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "JOB-4005"


class TestStatusCodes:
    """Tests for error code to HTTP status mapping."""

    def test_known_codes(self) -> None:
        """Mapped codes get their status."""
        assert _get_status_code(ErrorCode.VALIDATION_ERROR) == 400
        assert _get_status_code(ErrorCode.NO_LISTINGS_FOUND) == 404
        assert _get_status_code(ErrorCode.COLLECTION_EXISTS) == 409
        assert _get_status_code(ErrorCode.LLM_RATE_LIMIT) == 429
        assert _get_status_code(ErrorCode.BROWSER_UNAVAILABLE) == 502

    def test_unmapped_codes_are_500(self) -> None:
        """Anything else is an internal error."""
        assert _get_status_code(ErrorCode.EMBEDDING_DIMENSION_MISMATCH) == 500
