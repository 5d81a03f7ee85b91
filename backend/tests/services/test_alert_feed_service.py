"""Tests for the alert feed service and poller."""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
from opentelemetry.trace import StatusCode
from subway_alerts.core.config import settings
from subway_alerts.schemas.alerts import AlertEffect, AlertRecord, AlertSet, AlertStatus
from subway_alerts.services.alert_feed_service import (
    SNAPSHOT_CACHE_KEY,
    AlertFeedService,
    AlertPoller,
    build_feed_service,
)
from subway_alerts.services.alert_pipeline import AlertPipeline
from subway_alerts.services.ttc_alerts_service import TTCLiveAlertsSource

from tests.helpers.otel import assert_span_status, get_span_by_name

MakeRecord = Callable[..., AlertRecord]


class StaticSource:
    """Source returning the same AlertSet on every fetch."""

    def __init__(self, name: str, alert_set: AlertSet) -> None:
        self.name = name
        self.alert_set = alert_set
        self.fetches = 0

    async def fetch(self) -> AlertSet:
        self.fetches += 1
        return self.alert_set


class FailingSource:
    name = "broken"

    async def fetch(self) -> AlertSet:
        raise RuntimeError("feed unreachable")


class TestAlertFeedService:
    """Tests for AlertFeedService."""

    async def test_no_snapshot_before_first_refresh(self, feed_service: AlertFeedService) -> None:
        assert await feed_service.get_snapshot() is None

    async def test_refresh_runs_pipeline_over_all_sources(self, make_record: MakeRecord) -> None:
        suspension = make_record()
        duplicate = make_record()
        delay = make_record(start="King", end="Queen", effect=AlertEffect.SIGNIFICANT_DELAYS)
        upcoming = make_record(line="2", start="Kipling", end="Jane", status=AlertStatus.FUTURE)
        feed = AlertFeedService(
            sources=[
                StaticSource("primary", AlertSet(current=[suspension, delay])),
                StaticSource("secondary", AlertSet(current=[duplicate], upcoming=[upcoming])),
            ],
            pipeline=AlertPipeline(),
        )
        before = datetime.now(UTC)

        snapshot = await feed.refresh()

        assert [r.id for r in snapshot.alerts] == [suspension.id]
        assert [r.id for r in snapshot.upcoming] == [upcoming.id]
        assert before <= snapshot.last_updated <= datetime.now(UTC)
        assert await feed.get_snapshot() == snapshot

    async def test_failing_source_does_not_block_others(self, make_record: MakeRecord) -> None:
        record = make_record()
        feed = AlertFeedService(
            sources=[FailingSource(), StaticSource("primary", AlertSet(current=[record]))],
            pipeline=AlertPipeline(),
        )

        with patch("subway_alerts.services.alert_feed_service.logger") as mock_logger:
            snapshot = await feed.refresh()

        assert snapshot.alerts == [record]
        assert mock_logger.error.call_args[0][0] == "alert_source_failed"
        assert mock_logger.error.call_args[1]["source"] == "broken"

    async def test_snapshot_stored_with_ttl(self) -> None:
        cache = AsyncMock()
        feed = AlertFeedService(sources=[], pipeline=AlertPipeline(), snapshot_cache=cache, snapshot_ttl=30)

        snapshot = await feed.refresh()

        cache.set.assert_awaited_once_with(SNAPSHOT_CACHE_KEY, snapshot, ttl=30)

    async def test_snapshot_expires(self) -> None:
        feed = AlertFeedService(sources=[], pipeline=AlertPipeline(), snapshot_ttl=0.05)  # type: ignore[arg-type]

        await feed.refresh()
        assert await feed.get_snapshot() is not None

        await asyncio.sleep(0.2)
        assert await feed.get_snapshot() is None

    async def test_feeds_do_not_share_snapshots(self, seeded_feed: AlertFeedService) -> None:
        other = AlertFeedService(sources=[], pipeline=AlertPipeline())

        assert await seeded_feed.get_snapshot() is not None
        assert await other.get_snapshot() is None

    async def test_concurrent_refreshes_are_serialized(self, make_record: MakeRecord) -> None:
        active = 0
        overlaps = 0

        class SlowSource:
            name = "slow"

            async def fetch(self) -> AlertSet:
                nonlocal active, overlaps
                active += 1
                overlaps = max(overlaps, active)
                await asyncio.sleep(0.01)
                active -= 1
                return AlertSet(current=[make_record()])

        feed = AlertFeedService(sources=[SlowSource()], pipeline=AlertPipeline())

        await asyncio.gather(feed.refresh(), feed.refresh(), feed.refresh())

        assert overlaps == 1

    async def test_records_span(self, make_record: MakeRecord, otel_enabled_provider: tuple) -> None:
        _, exporter = otel_enabled_provider
        feed = AlertFeedService(
            sources=[StaticSource("primary", AlertSet(current=[make_record()]))],
            pipeline=AlertPipeline(),
        )

        await feed.refresh()

        span = get_span_by_name(exporter, "alert.feed.refresh")
        assert_span_status(span, StatusCode.OK)
        assert span.attributes["feed.sources"] == 1
        assert span.attributes["alerts.current_count"] == 1
        # The pipeline span is nested inside the refresh span
        pipeline_span = get_span_by_name(exporter, "alert.pipeline.run")
        assert pipeline_span.parent is not None
        assert pipeline_span.parent.span_id == span.context.span_id


class TestAlertPoller:
    """Tests for AlertPoller."""

    async def test_refreshes_until_stopped(self, feed_service: AlertFeedService) -> None:
        refreshed = asyncio.Event()
        calls = 0

        async def refresh() -> None:
            nonlocal calls
            calls += 1
            if calls >= 2:
                refreshed.set()

        feed_service.refresh = refresh  # type: ignore[method-assign]
        poller = AlertPoller(feed_service, interval=0)

        poller.start()
        assert poller.running is True
        await asyncio.wait_for(refreshed.wait(), timeout=1)
        await poller.stop()

        assert poller.running is False
        assert calls >= 2

    async def test_keeps_polling_after_errors(self, feed_service: AlertFeedService) -> None:
        recovered = asyncio.Event()
        outcomes = [RuntimeError("pipeline exploded"), None]

        async def refresh() -> None:
            outcome = outcomes.pop(0) if outcomes else None
            if isinstance(outcome, Exception):
                raise outcome
            recovered.set()

        feed_service.refresh = refresh  # type: ignore[method-assign]
        poller = AlertPoller(feed_service, interval=0)

        with patch("subway_alerts.services.alert_feed_service.logger") as mock_logger:
            poller.start()
            await asyncio.wait_for(recovered.wait(), timeout=1)
            await poller.stop()

        assert mock_logger.error.call_args_list[0][0][0] == "alert_poll_failed"

    async def test_start_is_idempotent(self, feed_service: AlertFeedService) -> None:
        poller = AlertPoller(feed_service, interval=60)

        poller.start()
        first_task = poller._task
        poller.start()

        assert poller._task is first_task
        await poller.stop()

    async def test_stop_without_start(self, feed_service: AlertFeedService) -> None:
        poller = AlertPoller(feed_service)

        await poller.stop()

        assert poller.running is False
        assert poller.interval == settings.POLL_INTERVAL_SECONDS


class TestBuildFeedService:
    """Tests for production wiring."""

    def test_wires_ttc_source(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "EXTRACTION_SERVICE_URL", "http://extract.test/v1/extract")
        monkeypatch.setattr(settings, "DEDUPLICATE_BY_DIRECTION", False)

        feed = build_feed_service()

        assert len(feed.sources) == 1
        assert isinstance(feed.sources[0], TTCLiveAlertsSource)
        assert feed.pipeline.deduplicate_by_direction is False
        assert feed.pipeline.reject_malformed is True

    def test_requires_extraction_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "EXTRACTION_SERVICE_URL", None)

        with pytest.raises(ValueError, match="EXTRACTION_SERVICE_URL"):
            build_feed_service()
