"""FastAPI application entry point.

Configures the application with logging, exception handling, metrics, and
health checks. The search pipeline is built once per process in the lifespan.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from jobinsight import __version__
from jobinsight.api.routes import router
from jobinsight.config import get_settings
from jobinsight.exceptions import ErrorCode, JobInsightError
from jobinsight.logging_config import get_logger, setup_logging
from jobinsight.observability import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)
from jobinsight.pipeline.coordinator import build_coordinator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the pipeline on startup and closes its clients on shutdown.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting Job Insight service",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
        },
    )

    coordinator = build_coordinator(settings)
    app.state.coordinator = coordinator

    try:
        yield
    finally:
        logger.info("Shutting down Job Insight service")
        app.state.coordinator = None
        await coordinator.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Job Insight Pipeline",
        description="Job listing acquisition with AI market insights and semantic search",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.coordinator = None

    app.add_middleware(MetricsMiddleware)
    app.add_exception_handler(JobInsightError, job_insight_exception_handler)

    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Observability"])
    app.include_router(router)

    return app


async def job_insight_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Convert JobInsightError exceptions to structured JSON responses."""
    if not isinstance(exc, JobInsightError):
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": str(exc),
                    "stage": "pipeline",
                    "details": {},
                }
            },
        )

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "stage": exc.stage.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=_get_status_code(exc.code),
        content=exc.to_dict(),
    )


_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NO_LISTINGS_FOUND: 404,
    ErrorCode.RECORD_NOT_FOUND: 404,
    ErrorCode.COLLECTION_NOT_FOUND: 404,
    ErrorCode.COLLECTION_EXISTS: 409,
    ErrorCode.LLM_RATE_LIMIT: 429,
    ErrorCode.SCRAPE_UNAVAILABLE: 502,
    ErrorCode.BROWSER_UNAVAILABLE: 502,
    ErrorCode.NAVIGATION_EXHAUSTED: 502,
    ErrorCode.LLM_TIMEOUT: 504,
    ErrorCode.REQUEST_TIMEOUT: 504,
}


def _get_status_code(error_code: ErrorCode) -> int:
    """Map error code to HTTP status code. Unlisted codes are 500."""
    return _STATUS_CODES.get(error_code, 500)


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with version and timestamp.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Kubernetes readiness probe.

    Ready once configuration loaded and the pipeline has been built.
    """
    checks: dict[str, str] = {
        "config": "ok",
        "pipeline": "ok" if request.app.state.coordinator is not None else "not_configured",
    }

    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe."""
    return {"status": "alive"}


async def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


app = create_app()
