"""OpenTelemetry test fixtures."""

from collections.abc import Generator

import pytest
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter


@pytest.fixture
def otel_enabled_provider(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[tuple[TracerProvider, InMemorySpanExporter]]:
    """Fixture that provides TracerProvider with InMemorySpanExporter for testing.

    SAFE: Uses InMemorySpanExporter - no network calls, spans captured in memory only.

    Sets up:
    - OTEL_ENABLED=True
    - OTEL_SDK_DISABLED unset (enables SDK)
    - SimpleSpanProcessor for deterministic synchronous processing

    Yields:
        Tuple of (TracerProvider, InMemorySpanExporter) - use exporter.get_finished_spans()
        to verify span creation in tests.

    Example:
        def test_pipeline_span(otel_enabled_provider):
            _, exporter = otel_enabled_provider
            AlertPipeline().run([])
            assert exporter.get_finished_spans()[0].name == "alert.pipeline.run"
    """
    # Import here to avoid circular dependency
    from subway_alerts.core.config import settings  # noqa: PLC0415

    # Enable OTEL SDK (disabled by default in conftest.py)
    monkeypatch.delenv("OTEL_SDK_DISABLED", raising=False)
    monkeypatch.setattr(settings, "OTEL_ENABLED", True)

    exporter = InMemorySpanExporter()
    resource = Resource(
        attributes={
            "service.name": "ttc-subway-alerts-test",
            "service.version": "0.1.0-test",
            "deployment.environment": "test",
        }
    )
    provider = TracerProvider(resource=resource)
    # SimpleSpanProcessor exports synchronously, so spans are visible right after they end
    provider.add_span_processor(SimpleSpanProcessor(exporter))

    # Bypass set_tracer_provider() which has override protection
    trace._TRACER_PROVIDER = provider  # type: ignore[attr-defined]

    yield provider, exporter

    exporter.clear()
    trace._TRACER_PROVIDER = None  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def reset_tracer_provider() -> Generator[None]:
    """
    Reset OTEL telemetry module globals before and after each test.

    Yields:
        None
    """
    from subway_alerts.core import telemetry  # noqa: PLC0415  # Lazy import to avoid circular dependency

    telemetry._tracer_provider = None  # type: ignore[attr-defined]
    trace._TRACER_PROVIDER = None  # type: ignore[attr-defined]

    yield

    telemetry._tracer_provider = None  # type: ignore[attr-defined]
    telemetry._logger_provider = None  # type: ignore[attr-defined]
    trace._TRACER_PROVIDER = None  # type: ignore[attr-defined]
