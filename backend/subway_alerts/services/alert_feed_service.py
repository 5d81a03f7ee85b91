"""
Alert feed: gathers all sources, runs the pipeline and keeps the served snapshot.

The snapshot lives in an in-memory aiocache cache with a TTL, so a stalled
poller eventually stops serving stale alerts. Refreshes are serialized with an
asyncio lock so two pipeline runs never interleave.
"""

import asyncio
import uuid
from contextlib import suppress
from datetime import UTC, datetime
from typing import Protocol

import httpx
import structlog
from aiocache import Cache

from subway_alerts.core.cache import BoundedTTLCache
from subway_alerts.core.config import settings
from subway_alerts.core.telemetry import service_span
from subway_alerts.schemas.alerts import AlertSet, AlertSnapshot
from subway_alerts.services.alert_builder import AlertRecordBuilder
from subway_alerts.services.alert_pipeline import AlertPipeline
from subway_alerts.services.extraction_service import HttpAlertExtractor, RateLimitedExtractor
from subway_alerts.services.ttc_alerts_service import TTCLiveAlertsSource

logger = structlog.get_logger(__name__)

SNAPSHOT_CACHE_KEY = "alerts:snapshot"


class AlertSource(Protocol):
    """Anything that can produce an AlertSet on demand."""

    name: str

    async def fetch(self) -> AlertSet:
        """Fetch the source's current and upcoming alerts."""
        ...


class AlertFeedService:
    """
    Refreshes and serves the alert snapshot.

    Args:
        sources: Alert sources in priority order (earlier sources win duplicates)
        pipeline: Pipeline combining the sources' results
        snapshot_cache: aiocache cache for the snapshot (in-memory by default)
        snapshot_ttl: Snapshot lifetime in seconds (defaults to settings.SNAPSHOT_TTL_SECONDS)
    """

    def __init__(
        self,
        sources: list[AlertSource],
        pipeline: AlertPipeline,
        snapshot_cache: Cache | None = None,
        snapshot_ttl: int | None = None,
    ) -> None:
        self.sources = sources
        self.pipeline = pipeline
        # Namespaced per instance so separate feeds never read each other's snapshot
        self.cache = (
            snapshot_cache
            if snapshot_cache is not None
            else Cache(Cache.MEMORY, namespace=f"subway_alerts:{uuid.uuid4().hex[:12]}")
        )
        self.snapshot_ttl = snapshot_ttl if snapshot_ttl is not None else settings.SNAPSHOT_TTL_SECONDS
        self._lock = asyncio.Lock()

    async def _fetch_source(self, source: AlertSource) -> AlertSet:
        """Fetch one source; a failing source contributes an empty set."""
        try:
            return await source.fetch()
        except Exception as e:
            logger.error("alert_source_failed", source=source.name, error=str(e), exc_info=e)
            return AlertSet()

    async def refresh(self) -> AlertSnapshot:
        """
        Fetch every source concurrently, run the pipeline and store the snapshot.

        Returns:
            The new snapshot
        """
        async with self._lock:
            with service_span("alert.feed.refresh", "alert-feed", **{"feed.sources": len(self.sources)}) as span:
                results = await asyncio.gather(*(self._fetch_source(source) for source in self.sources))
                alert_set = self.pipeline.run(list(results))

                snapshot = AlertSnapshot(
                    alerts=alert_set.current,
                    upcoming=alert_set.upcoming,
                    last_updated=datetime.now(UTC),
                )
                await self.cache.set(SNAPSHOT_CACHE_KEY, snapshot, ttl=self.snapshot_ttl)

                span.set_attribute("alerts.current_count", len(snapshot.alerts))
                span.set_attribute("alerts.upcoming_count", len(snapshot.upcoming))

        logger.info(
            "alert_feed_refreshed",
            current=len(snapshot.alerts),
            upcoming=len(snapshot.upcoming),
            last_updated=snapshot.last_updated.isoformat(),
        )
        return snapshot

    async def get_snapshot(self) -> AlertSnapshot | None:
        """Return the last stored snapshot, or None if none exists or it expired."""
        return await self.cache.get(SNAPSHOT_CACHE_KEY)


class AlertPoller:
    """
    Background task that refreshes the feed on a fixed interval.

    The first refresh runs immediately. Errors are logged and polling carries on.

    Args:
        feed: Feed service to refresh
        interval: Seconds between refreshes (defaults to settings.POLL_INTERVAL_SECONDS)
    """

    def __init__(self, feed: AlertFeedService, interval: float | None = None) -> None:
        self.feed = feed
        self.interval = interval if interval is not None else settings.POLL_INTERVAL_SECONDS
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            try:
                await self.feed.refresh()
            except Exception as e:
                logger.error("alert_poll_failed", error=str(e), exc_info=e)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start polling (no-op if already running)."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="alert-poller")
        logger.info("alert_poller_started", interval_seconds=self.interval)

    async def stop(self) -> None:
        """Cancel the polling task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("alert_poller_stopped")


def build_feed_service(http_client: httpx.AsyncClient | None = None) -> AlertFeedService:
    """
    Wire the production feed: TTC live alerts through the HTTP extractor.

    Args:
        http_client: Shared httpx client for outbound requests

    Returns:
        Configured AlertFeedService

    Raises:
        ValueError: If EXTRACTION_SERVICE_URL is not configured
    """
    extractor = RateLimitedExtractor(
        HttpAlertExtractor(client=http_client),
        cache=BoundedTTLCache(
            max_size=settings.EXTRACTION_CACHE_MAX_SIZE,
            ttl_seconds=settings.EXTRACTION_CACHE_TTL_SECONDS,
        ),
    )
    builder = AlertRecordBuilder(
        cache=BoundedTTLCache(
            max_size=settings.EXTRACTION_CACHE_MAX_SIZE,
            ttl_seconds=settings.EXTRACTION_CACHE_TTL_SECONDS,
        ),
    )
    source = TTCLiveAlertsSource(extractor=extractor, builder=builder, http_client=http_client)
    pipeline = AlertPipeline(
        deduplicate_by_direction=settings.DEDUPLICATE_BY_DIRECTION,
        reject_malformed=settings.REJECT_MALFORMED_ALERTS,
    )
    return AlertFeedService(sources=[source], pipeline=pipeline)
