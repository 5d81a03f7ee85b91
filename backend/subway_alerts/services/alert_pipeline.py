"""
Alert deduplication and redundancy filtering.

Combines the alert sets of every source into the single set that is served:

1. Concatenate current alerts of all sources (earlier sources win duplicates)
2. Concatenate upcoming alerts and drop exact (line, start, end) duplicates
3. Split current alerts into active and non-active (e.g. cleared)
4. Drop duplicate active alerts by key
5. Admit non-active alerts unless their key was seen or they overlap an
   active alert on the same line
6. Drop non-suspension alerts whose range lies inside an active NO_SERVICE
   alert on the same line
7. Return the survivors and the deduplicated upcoming list

The pipeline is synchronous and pure. It never raises for bad records; a
record with an empty line or start station is either rejected (reported as a
MalformedAlertError) or passed through untouched.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from subway_alerts.core.exceptions import MalformedAlertError
from subway_alerts.core.telemetry import service_span
from subway_alerts.data.stations import DEFAULT_CATALOG, StationCatalog
from subway_alerts.helpers.range_helpers import is_subset_range, ranges_overlap
from subway_alerts.schemas.alerts import AlertEffect, AlertRecord, AlertSet, AlertStatus

logger = structlog.get_logger(__name__)

AlertKey = tuple[str, ...]
SourceResult = AlertSet | Mapping[str, Sequence[AlertRecord | Mapping[str, Any]]]


@dataclass
class PipelineReport:
    """Counts of what a pipeline run dropped, for logging and tests."""

    current_in: int = 0
    upcoming_in: int = 0
    duplicates_dropped: int = 0
    upcoming_duplicates_dropped: int = 0
    cleared_suppressed: int = 0
    redundant_filtered: int = 0
    malformed: list[MalformedAlertError] = field(default_factory=list)


def _coerce_source(source: SourceResult) -> AlertSet:
    """Accept an AlertSet or a {"current": [...], "upcoming": [...]} mapping."""
    if isinstance(source, AlertSet):
        return source
    if isinstance(source, Mapping):
        return AlertSet.model_validate(
            {"current": source.get("current") or [], "upcoming": source.get("upcoming") or []}
        )
    msg = f"Each source result must be an AlertSet or a mapping, got {type(source).__name__}"
    raise TypeError(msg)


def _missing_fields(record: AlertRecord) -> list[str]:
    return [name for name in ("line", "start") if not getattr(record, name)]


class AlertPipeline:
    """
    Produces the served alert set from per-source alert sets.

    Args:
        catalog: Station catalog used for range comparisons
        deduplicate_by_direction: Include direction in the active dedup key so
            per-direction alerts on the same segment are kept apart
        reject_malformed: Drop records with an empty line or start station
            instead of passing them through
    """

    def __init__(
        self,
        catalog: StationCatalog = DEFAULT_CATALOG,
        deduplicate_by_direction: bool = True,
        reject_malformed: bool = True,
    ) -> None:
        self.catalog = catalog
        self.deduplicate_by_direction = deduplicate_by_direction
        self.reject_malformed = reject_malformed

    def _active_key(self, record: AlertRecord) -> AlertKey:
        if self.deduplicate_by_direction:
            return (record.line, record.start, record.end, record.direction or "")
        return (record.line, record.start, record.end)

    def _screen(self, records: Iterable[AlertRecord], report: PipelineReport) -> list[AlertRecord]:
        """Drop malformed records when rejection is enabled."""
        if not self.reject_malformed:
            return list(records)

        kept: list[AlertRecord] = []
        for record in records:
            if missing := _missing_fields(record):
                report.malformed.append(MalformedAlertError(record, missing))
                logger.warning("alert_rejected_malformed", alert_id=record.id, missing_fields=missing)
                continue
            kept.append(record)
        return kept

    def _dedupe_upcoming(self, upcoming: list[AlertRecord], report: PipelineReport) -> list[AlertRecord]:
        seen: set[AlertKey] = set()
        unique: list[AlertRecord] = []
        for record in upcoming:
            key = (record.line, record.start, record.end)
            if key in seen:
                report.upcoming_duplicates_dropped += 1
                continue
            seen.add(key)
            unique.append(record)
        return unique

    def _is_redundant(self, record: AlertRecord, others: list[AlertRecord]) -> bool:
        """Check whether a non-suspension record lies inside an active suspension."""
        if record.effect == AlertEffect.NO_SERVICE:
            return False

        return any(
            other is not record
            and other.line == record.line
            and other.effect == AlertEffect.NO_SERVICE
            and other.status == AlertStatus.ACTIVE
            and is_subset_range(record.line, record.start, record.end, other.start, other.end, self.catalog)
            for other in others
        )

    def run_with_report(self, source_results: Sequence[SourceResult]) -> tuple[AlertSet, PipelineReport]:
        """
        Run the pipeline and report what was dropped.

        Args:
            source_results: One AlertSet (or equivalent mapping) per source, in
                priority order

        Returns:
            Tuple of (served AlertSet, PipelineReport)

        Raises:
            TypeError: If source_results is not a list or tuple, or contains
                something other than an AlertSet or mapping
        """
        if not isinstance(source_results, list | tuple):
            msg = f"source_results must be a list or tuple, got {type(source_results).__name__}"
            raise TypeError(msg)

        sources = [_coerce_source(source) for source in source_results]
        report = PipelineReport()

        with service_span("alert.pipeline.run", "alert-pipeline", **{"pipeline.sources": len(sources)}) as span:
            current = [record for source in sources for record in source.current]
            upcoming = [record for source in sources for record in source.upcoming]
            report.current_in = len(current)
            report.upcoming_in = len(upcoming)

            current = self._screen(current, report)
            upcoming = self._dedupe_upcoming(self._screen(upcoming, report), report)

            active = [record for record in current if record.status == AlertStatus.ACTIVE]
            non_active = [record for record in current if record.status != AlertStatus.ACTIVE]

            seen: set[AlertKey] = set()
            unique_active: list[AlertRecord] = []
            for record in active:
                key = self._active_key(record)
                if key in seen:
                    report.duplicates_dropped += 1
                    continue
                seen.add(key)
                unique_active.append(record)

            admitted = list(unique_active)
            for record in non_active:
                key = self._active_key(record)
                if key in seen:
                    report.duplicates_dropped += 1
                    continue
                if any(
                    other.line == record.line
                    and ranges_overlap(record.line, record.start, record.end, other.start, other.end, self.catalog)
                    for other in unique_active
                ):
                    report.cleared_suppressed += 1
                    continue
                seen.add(key)
                admitted.append(record)

            survivors = [record for record in admitted if not self._is_redundant(record, admitted)]
            report.redundant_filtered = len(admitted) - len(survivors)

            span.set_attribute("pipeline.current_out", len(survivors))
            span.set_attribute("pipeline.upcoming_out", len(upcoming))
            span.set_attribute("pipeline.malformed", len(report.malformed))

        logger.info(
            "alert_pipeline_completed",
            sources=len(sources),
            current_in=report.current_in,
            current_out=len(survivors),
            upcoming_out=len(upcoming),
            duplicates_dropped=report.duplicates_dropped,
            cleared_suppressed=report.cleared_suppressed,
            redundant_filtered=report.redundant_filtered,
            malformed=len(report.malformed),
        )
        return AlertSet(current=survivors, upcoming=upcoming), report

    def run(self, source_results: Sequence[SourceResult]) -> AlertSet:
        """
        Run the pipeline.

        Examples:
            >>> AlertPipeline().run([AlertSet(), AlertSet()])
            AlertSet(current=[], upcoming=[])
        """
        alert_set, _ = self.run_with_report(source_results)
        return alert_set
