"""Pytest configuration and fixtures."""

import os

# Set test configuration BEFORE any subway_alerts imports
# This must be done before subway_alerts.core.config loads settings
os.environ["DEBUG"] = "true"
os.environ["POLLING_ENABLED"] = "false"
os.environ["OTEL_SDK_DISABLED"] = "true"

import itertools
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import UTC, datetime
from typing import Any

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from subway_alerts.main import app
from subway_alerts.schemas.alerts import (
    AlertEffect,
    AlertRecord,
    AlertSnapshot,
    AlertStatus,
    Direction,
    DraftAlert,
)
from subway_alerts.services.alert_feed_service import SNAPSHOT_CACHE_KEY, AlertFeedService
from subway_alerts.services.alert_pipeline import AlertPipeline

pytest_plugins = ["tests.fixtures.otel"]


# Record factories


@pytest.fixture
def make_record() -> Callable[..., AlertRecord]:
    """
    Factory for AlertRecords with sensible defaults.

    Ids are sequential (``rec-1``, ``rec-2``, ...) so tests can refer to them.

    Example:
        def test_something(make_record):
            record = make_record(start="King", end="Queen", effect=AlertEffect.SIGNIFICANT_DELAYS)
    """
    counter = itertools.count(1)

    def _make(**overrides: Any) -> AlertRecord:  # noqa: ANN401
        start = overrides.get("start", "Union")
        end = overrides.get("end", "Bloor-Yonge")
        data: dict[str, Any] = {
            "id": f"rec-{next(counter)}",
            "line": "1",
            "start": start,
            "end": end,
            "reason": "Track work",
            "status": AlertStatus.ACTIVE,
            "direction": Direction.BOTH_WAYS,
            "single_station": start == end,
            "shuttle": False,
            "effect": AlertEffect.NO_SERVICE,
            "original_text": "No service between Union and Bloor-Yonge",
        }
        data.update(overrides)
        return AlertRecord(**data)

    return _make


@pytest.fixture
def make_draft() -> Callable[..., DraftAlert]:
    """Factory for DraftAlerts accepting the loose extraction-style input."""

    def _make(**overrides: Any) -> DraftAlert:  # noqa: ANN401
        data: dict[str, Any] = {
            "line": "1",
            "start": "Union",
            "end": "Bloor-Yonge",
            "reason": "Track work",
            "status": "active",
            "direction": "Both Ways",
            "severity": "Suspension",
            "original_text": "Line 1: No service between Union and Bloor-Yonge due to track work.",
        }
        data.update(overrides)
        return DraftAlert.model_validate(data)

    return _make


# App fixtures


@pytest.fixture
def feed_service() -> AlertFeedService:
    """Feed service with no sources; tests seed snapshots through its cache."""
    return AlertFeedService(sources=[], pipeline=AlertPipeline())


@pytest.fixture
async def seeded_feed(feed_service: AlertFeedService, make_record: Callable[..., AlertRecord]) -> AlertFeedService:
    """Feed service whose cache already holds a snapshot with one current and one upcoming alert."""
    snapshot = AlertSnapshot(
        alerts=[make_record()],
        upcoming=[make_record(status=AlertStatus.FUTURE, start="Kipling", end="Jane", line="2")],
        last_updated=datetime(2025, 3, 1, 12, 0, tzinfo=UTC),
    )
    await feed_service.cache.set(SNAPSHOT_CACHE_KEY, snapshot)
    return feed_service


@pytest.fixture
def client() -> Generator[TestClient]:
    """
    FastAPI synchronous test client for making HTTP requests.

    Yields:
        Synchronous test client with app context
    """
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient]:
    """
    FastAPI asynchronous HTTP client for async endpoint testing.

    The lifespan does not run for ASGITransport, so the feed service is
    provided through dependency overrides by each test.

    Yields:
        Async HTTP client with ASGI transport
    """
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
