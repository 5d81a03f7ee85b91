"""
Alert record builder.

Turns a best-effort DraftAlert from the extraction step into a canonical
AlertRecord: station names are normalized against the catalog, display flags
are derived from the source text, and an effect classification is chosen.
"""

import time
import uuid
from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

import structlog

from subway_alerts.core.cache import BoundedTTLCache
from subway_alerts.core.config import settings
from subway_alerts.data.stations import DEFAULT_CATALOG, StationCatalog
from subway_alerts.helpers.station_normalizer import resolve_station
from subway_alerts.schemas.alerts import AlertEffect, AlertRecord, AlertStatus, DraftAlert, Severity

logger = structlog.get_logger(__name__)

# Ordered keyword groups: the first group with a keyword found in the source
# text decides the effect. Delay wording is checked before suspension wording.
EFFECT_RULES: tuple[tuple[AlertEffect, tuple[str, ...]], ...] = (
    (
        AlertEffect.SIGNIFICANT_DELAYS,
        ("slower than usual", "slow", "delay", "reduced speed", "move slower"),
    ),
    (
        AlertEffect.NO_SERVICE,
        ("no service", "suspended", "closed", "not stopping", "bypass"),
    ),
)

_DELAY_SEVERITIES = frozenset({Severity.DELAY, Severity.MINOR})


def classify_effect(text: str, severity: Severity | None) -> AlertEffect:
    """
    Classify the map effect of an alert.

    Keyword evidence in the source text wins over the reported severity. With
    no keyword match, Delay/Minor severities map to SIGNIFICANT_DELAYS and
    everything else (including no severity at all) to NO_SERVICE.

    Args:
        text: Original alert text
        severity: Severity reported by the extraction step

    Returns:
        AlertEffect for the alert

    Examples:
        >>> classify_effect("Trains are moving slower than usual", Severity.SUSPENSION)
        <AlertEffect.SIGNIFICANT_DELAYS: 'SIGNIFICANT_DELAYS'>
        >>> classify_effect("No service between Kipling and Jane", Severity.DELAY)
        <AlertEffect.NO_SERVICE: 'NO_SERVICE'>
        >>> classify_effect("Service update", None)
        <AlertEffect.NO_SERVICE: 'NO_SERVICE'>
    """
    lowered = text.lower()
    for effect, keywords in EFFECT_RULES:
        if any(keyword in lowered for keyword in keywords):
            return effect

    return AlertEffect.SIGNIFICANT_DELAYS if severity in _DELAY_SEVERITIES else AlertEffect.NO_SERVICE


def to_epoch_millis(dt: datetime | None, tz: ZoneInfo) -> int | None:
    """
    Convert a timestamp to epoch milliseconds.

    Naive datetimes are interpreted in ``tz`` (the transit agency's local zone).

    Examples:
        >>> to_epoch_millis(datetime(2025, 1, 1, tzinfo=ZoneInfo("UTC")), ZoneInfo("UTC"))
        1735689600000
        >>> to_epoch_millis(None, ZoneInfo("UTC")) is None
        True
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return int(dt.timestamp() * 1000)


def generate_alert_id() -> str:
    """Return a fresh alert id: epoch milliseconds plus a random suffix."""
    return f"{time.time_ns() // 1_000_000}-{uuid.uuid4().hex[:8]}"


class AlertRecordBuilder:
    """
    Builds canonical AlertRecords from DraftAlerts.

    The builder never rejects a draft: a draft without a line or start station
    still yields a record (with empty strings), and unresolved station names are
    kept as raw text with ``stations_resolved=False``. Rejection is the
    pipeline's decision.

    Args:
        catalog: Station catalog used for normalization
        cache: Optional memoization cache keyed by draft; cached records keep
            their original id
        timezone: IANA zone used for naive timestamps (defaults to settings.TIMEZONE)
        id_factory: Callable returning fresh record ids
    """

    def __init__(
        self,
        catalog: StationCatalog = DEFAULT_CATALOG,
        cache: BoundedTTLCache[DraftAlert, AlertRecord] | None = None,
        timezone: str | None = None,
        id_factory: Callable[[], str] = generate_alert_id,
    ) -> None:
        self.catalog = catalog
        self.cache = cache
        self.timezone = ZoneInfo(timezone or settings.TIMEZONE)
        self._id_factory = id_factory

    def _resolve(self, raw: str | None, draft: DraftAlert) -> tuple[str, bool]:
        """Resolve a station name, falling back to the raw text."""
        if raw is None:
            return "", False

        match = resolve_station(raw, self.catalog)
        if match is None:
            logger.warning("station_unresolved", raw_station=raw, line=draft.line)
            return raw, False

        if match.rule == "longest_contained_name":
            logger.debug("station_resolved_by_containment", raw_station=raw, station=match.name)
        return match.name, True

    def build(self, draft: DraftAlert) -> AlertRecord:
        """
        Build an AlertRecord from a draft.

        A missing end station defaults to the start station (single-station
        alert). A missing status is treated as active.

        Args:
            draft: Draft produced by the extraction step

        Returns:
            Canonical AlertRecord
        """
        if self.cache is not None and (cached := self.cache.get(draft)) is not None:
            return cached

        start, start_resolved = self._resolve(draft.start, draft)
        if draft.end is None:
            end, end_resolved = start, start_resolved
        else:
            end, end_resolved = self._resolve(draft.end, draft)

        record = AlertRecord(
            id=self._id_factory(),
            line=draft.line or "",
            start=start,
            end=end,
            reason=draft.reason or "",
            status=draft.status or AlertStatus.ACTIVE,
            direction=draft.direction,
            single_station=start == end,
            shuttle="shuttle" in draft.original_text.lower(),
            effect=classify_effect(draft.original_text, draft.severity),
            active_start_time=to_epoch_millis(draft.start_time, self.timezone),
            active_end_time=to_epoch_millis(draft.end_time, self.timezone),
            original_text=draft.original_text,
            stations_resolved=start_resolved and end_resolved,
        )

        if self.cache is not None:
            self.cache.set(draft, record)
        return record
