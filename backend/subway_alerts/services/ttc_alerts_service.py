"""TTC live alerts source: fetches the official feed and builds alert records."""

from typing import Any

import httpx
import structlog
from opentelemetry.trace import SpanKind

from subway_alerts.core.config import settings
from subway_alerts.core.telemetry import service_span
from subway_alerts.schemas.alerts import AlertRecord, AlertSet, AlertStatus
from subway_alerts.services.alert_builder import AlertRecordBuilder
from subway_alerts.services.extraction_service import AlertExtractor

logger = structlog.get_logger(__name__)

# Route types in the live feed that belong to rapid transit
RAPID_TRANSIT_ROUTE_TYPES = frozenset({"Subway", "LRT"})


def alert_text(route: dict[str, Any]) -> str:
    """
    Pick the most detailed alert text from a live feed route entry.

    Preference: headerText, customHeaderText, description, title, alertTitle.

    Examples:
        >>> alert_text({"title": "Line 1 delay", "headerText": "Delays of up to 10 minutes"})
        'Delays of up to 10 minutes'
        >>> alert_text({"alertTitle": "Line 4 closure"})
        'Line 4 closure'
    """
    for field in ("headerText", "customHeaderText", "description", "title", "alertTitle"):
        value = route.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


class TTCLiveAlertsSource:
    """
    Source for the TTC live alerts feed.

    Each rapid transit route entry for a tracked line is extracted into a
    draft, built into a record and sorted into current (active) or upcoming
    (future) alerts. Cleared alerts and records without a line or start
    station are discarded at this boundary.

    Args:
        extractor: Turns alert text into DraftAlerts
        builder: Turns DraftAlerts into AlertRecords
        http_client: Shared httpx client; a short-lived client is used when omitted
        url: Live alerts endpoint (defaults to settings.TTC_LIVE_ALERTS_URL)
        tracked_lines: Line ids to keep (defaults to settings.TRACKED_LINES)
    """

    name = "ttc-live-alerts"

    def __init__(
        self,
        extractor: AlertExtractor,
        builder: AlertRecordBuilder,
        http_client: httpx.AsyncClient | None = None,
        url: str | None = None,
        tracked_lines: list[str] | None = None,
    ) -> None:
        self.extractor = extractor
        self.builder = builder
        self.http_client = http_client
        self.url = url or settings.TTC_LIVE_ALERTS_URL
        self.tracked_lines = set(tracked_lines if tracked_lines is not None else settings.TRACKED_LINES)

    async def _get_document(self) -> Any:  # noqa: ANN401
        if self.http_client is not None:
            response = await self.http_client.get(self.url, timeout=settings.HTTP_TIMEOUT_SECONDS)
        else:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
                response = await client.get(self.url)
        response.raise_for_status()
        return response.json()

    def _tracked_routes(self, document: Any) -> list[dict[str, Any]]:  # noqa: ANN401
        routes = document.get("routes") if isinstance(document, dict) else None
        if not isinstance(routes, list):
            logger.warning("ttc_live_alerts_unexpected_shape")
            return []

        return [
            route
            for route in routes
            if isinstance(route, dict)
            and route.get("routeType") in RAPID_TRANSIT_ROUTE_TYPES
            and str(route.get("route")) in self.tracked_lines
        ]

    async def _record_for_route(self, route: dict[str, Any]) -> AlertRecord | None:
        text = alert_text(route)
        if not text:
            return None

        draft = await self.extractor.extract(text)
        if draft is None:
            return None

        record = self.builder.build(draft)
        if not record.line or not record.start:
            logger.debug("ttc_live_alert_discarded", reason="missing_line_or_start", text=text[:120])
            return None

        if record.status == AlertStatus.ACTIVE:
            # The feed's route id is more reliable than the extracted line
            record = record.model_copy(update={"line": str(route.get("route"))})
        return record

    async def fetch(self) -> AlertSet:
        """
        Fetch and build the current and upcoming alerts from the live feed.

        Returns:
            AlertSet of active (current) and future (upcoming) records; an empty
            set if the feed cannot be fetched or parsed
        """
        with service_span("ttc.fetch_live_alerts", self.name, kind=SpanKind.CLIENT) as span:
            try:
                document = await self._get_document()
            except (httpx.HTTPError, ValueError) as e:
                logger.error("ttc_live_alerts_fetch_failed", url=self.url, error=str(e), exc_info=e)
                span.set_attribute("alerts.fetch_failed", True)
                return AlertSet()

            routes = self._tracked_routes(document)
            current: list[AlertRecord] = []
            upcoming: list[AlertRecord] = []

            for route in routes:
                record = await self._record_for_route(route)
                if record is None:
                    continue

                # Duplicates are removed by the pipeline
                if record.status == AlertStatus.ACTIVE:
                    current.append(record)
                elif record.status == AlertStatus.FUTURE:
                    upcoming.append(record)

            span.set_attribute("alerts.routes", len(routes))
            span.set_attribute("alerts.current_count", len(current))
            span.set_attribute("alerts.upcoming_count", len(upcoming))

        logger.info(
            "ttc_live_alerts_fetched",
            routes=len(routes),
            current=len(current),
            upcoming=len(upcoming),
        )
        return AlertSet(current=current, upcoming=upcoming)
