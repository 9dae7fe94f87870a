"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from jobinsight.api.app import app
from jobinsight.pipeline.coordinator import PipelineCoordinator
from jobinsight.scraping.models import Listing


@pytest.fixture
def coordinator() -> MagicMock:
    """Pipeline coordinator double with async operations."""
    mock = MagicMock(spec=PipelineCoordinator)
    mock.search_jobs = AsyncMock()
    mock.get_insight = AsyncMock(return_value=None)
    mock.find_similar_insights = AsyncMock(return_value=[])
    mock.save_listing = AsyncMock()
    mock.list_saved = AsyncMock(return_value=[])
    mock.delete_saved = AsyncMock()
    mock.close = AsyncMock()
    return mock


@pytest.fixture
async def client(coordinator: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    The lifespan does not run under ASGITransport, so the coordinator double
    is installed on app state directly.

    Yields:
        AsyncClient configured for testing.
    """
    app.state.coordinator = coordinator
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.state.coordinator = None


@pytest.fixture
def listing() -> Listing:
    """A listing with a usable description."""
    return Listing(
        title="Senior Python Engineer",
        company="Acme Corp",
        location="Austin, TX",
        salary="$150,000 - $180,000",
        job_type="Full-time",
        posted_date="Posted 2 days ago",
        url="https://www.dice.com/job-detail/abc123",
        source="Dice",
        description=(
            "Build async data pipelines in Python with FastAPI, Qdrant and "
            "Playwright. Five years of backend experience required."
        ),
    )
