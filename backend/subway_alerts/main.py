"""Main FastAPI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from subway_alerts import __version__
from subway_alerts.api import alerts
from subway_alerts.api.alerts import get_feed_service
from subway_alerts.core.config import settings
from subway_alerts.core.logging import configure_logging
from subway_alerts.core.telemetry import get_tracer_provider, shutdown_tracer_provider
from subway_alerts.middleware import AccessLoggingMiddleware
from subway_alerts.services.alert_feed_service import AlertFeedService, AlertPoller, build_feed_service
from subway_alerts.services.alert_pipeline import AlertPipeline

# Configure logging at module level so Uvicorn startup logs go through structlog pipeline
configure_logging(log_level=settings.LOG_LEVEL)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - initialize OTEL TracerProvider, wire the feed and start polling."""
    # TracerProvider is created after fork so each worker gets its own BatchSpanProcessor
    if settings.OTEL_ENABLED and (provider := get_tracer_provider()):
        trace.set_tracer_provider(provider)
        logger.info("otel_tracer_provider_initialized")

    http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
    poller: AlertPoller | None = None

    if settings.POLLING_ENABLED:
        try:
            feed = build_feed_service(http_client)
        except ValueError:
            await http_client.aclose()
            raise
        poller = AlertPoller(feed)
        poller.start()
    else:
        logger.info("polling_disabled", message="serving without alert sources")
        feed = AlertFeedService(sources=[], pipeline=AlertPipeline())

    app.state.feed_service = feed
    logger.info("startup_complete", polling=settings.POLLING_ENABLED, tracked_lines=settings.TRACKED_LINES)

    yield

    logger.info("shutdown_starting")
    if poller is not None:
        await poller.stop()
    await http_client.aclose()
    if settings.OTEL_ENABLED:
        shutdown_tracer_provider()
    logger.info("shutdown_complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="TTC subway and LRT service alerts, normalized and de-duplicated",
    version=__version__,
    lifespan=lifespan,
)

# Instrumentor wraps the ASGI application; TracerProvider is set later in lifespan
if settings.OTEL_ENABLED:
    FastAPIInstrumentor().instrument_app(
        app,
        excluded_urls=",".join(settings.OTEL_EXCLUDED_URLS),
    )
    logger.info("otel_fastapi_instrumented", excluded_urls=settings.OTEL_EXCLUDED_URLS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Access logging middleware (replaces uvicorn.access logs with structlog)
app.add_middleware(AccessLoggingMiddleware)

app.include_router(alerts.router, prefix=settings.API_PREFIX)
if settings.DEBUG:
    app.include_router(alerts.debug_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": settings.PROJECT_NAME, "version": __version__}


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/ready")
async def readiness_check(feed: AlertFeedService = Depends(get_feed_service)) -> dict[str, str]:
    """Readiness check endpoint - ready once a snapshot has been produced."""
    snapshot = await feed.get_snapshot()
    if snapshot is None:
        return {"status": "starting"}
    return {"status": "ready", "lastUpdated": snapshot.last_updated.isoformat()}
