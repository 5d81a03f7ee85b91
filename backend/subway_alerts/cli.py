#!/usr/bin/env python3
"""CLI tool for inspecting station normalization and the alert pipeline.

Usage:
    # Normalize raw station names
    uv run python -m subway_alerts.cli normalize "St. George Station" VMC

    # Check whether one station range lies inside another
    uv run python -m subway_alerts.cli subset 1 King Queen Union Bloor-Yonge

    # List the stations of a line in order
    uv run python -m subway_alerts.cli stations 2

    # Run the pipeline over draft alerts stored as JSON ("-" reads stdin)
    uv run python -m subway_alerts.cli pipeline drafts.json

The pipeline input is a JSON list with one entry per source. An entry is
either a list of draft objects (sorted into current/upcoming by status) or an
object with "current" and "upcoming" lists of drafts.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from subway_alerts.core.logging import configure_logging
from subway_alerts.data.stations import DEFAULT_CATALOG
from subway_alerts.helpers.range_helpers import is_subset_range
from subway_alerts.helpers.station_normalizer import resolve_station
from subway_alerts.schemas.alerts import AlertSet, AlertStatus, DraftAlert
from subway_alerts.services.alert_builder import AlertRecordBuilder
from subway_alerts.services.alert_pipeline import AlertPipeline


def cmd_normalize(args: argparse.Namespace) -> int:
    """
    Print the canonical name of each raw station name.

    Returns:
        Exit code (0 if every name resolved, 1 otherwise)
    """
    unresolved = 0
    for raw in args.names:
        match = resolve_station(raw)
        if match is None:
            unresolved += 1
            print(f"❌ {raw!r}: unresolved")
        else:
            print(f"✅ {raw!r} -> {match.name} ({match.rule})")
    return 1 if unresolved else 0


def cmd_subset(args: argparse.Namespace) -> int:
    """
    Report whether range A is a subset of range B.

    Returns:
        Exit code (0 if A is a subset of B, 1 otherwise)
    """
    result = is_subset_range(args.line, args.a_start, args.a_end, args.b_start, args.b_end)
    verdict = "is" if result else "is not"
    print(f"{args.a_start} - {args.a_end} {verdict} within {args.b_start} - {args.b_end} on line {args.line}")
    return 0 if result else 1


def cmd_stations(args: argparse.Namespace) -> int:
    """
    List the stations of a line in order.

    Returns:
        Exit code (0 for success, 1 for unknown line)
    """
    stations = DEFAULT_CATALOG.stations_of_line(args.line)
    if not stations:
        known = ", ".join(DEFAULT_CATALOG.line_ids())
        print(f"❌ Error: Unknown line '{args.line}' (known lines: {known})", file=sys.stderr)
        return 1

    for index, station in enumerate(stations):
        interchange = [line for line in DEFAULT_CATALOG.lines_for_station(station) if line != args.line]
        suffix = f"  (also line {', '.join(interchange)})" if interchange else ""
        print(f"{index:3d}  {station}{suffix}")
    return 0


def _build_source(entry: Any, builder: AlertRecordBuilder) -> AlertSet:  # noqa: ANN401
    """Build one source's AlertSet from a JSON entry of drafts."""
    if isinstance(entry, list):
        records = [builder.build(DraftAlert.model_validate(item)) for item in entry if isinstance(item, dict)]
        return AlertSet(
            current=[record for record in records if record.status != AlertStatus.FUTURE],
            upcoming=[record for record in records if record.status == AlertStatus.FUTURE],
        )
    if isinstance(entry, dict):
        return AlertSet(
            current=[builder.build(DraftAlert.model_validate(item)) for item in entry.get("current", [])],
            upcoming=[builder.build(DraftAlert.model_validate(item)) for item in entry.get("upcoming", [])],
        )
    msg = f"Source entries must be lists or objects, got {type(entry).__name__}"
    raise ValueError(msg)


def cmd_pipeline(args: argparse.Namespace) -> int:
    """
    Build drafts into records, run the pipeline and print the result as JSON.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        raw = sys.stdin.read() if args.file == "-" else Path(args.file).read_text(encoding="utf-8")
        document = json.loads(raw)
        if not isinstance(document, list):
            msg = "Pipeline input must be a JSON list of sources"
            raise ValueError(msg)

        builder = AlertRecordBuilder()
        sources = [_build_source(entry, builder) for entry in document]
    except (OSError, ValueError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    pipeline = AlertPipeline(deduplicate_by_direction=not args.ignore_direction)
    alert_set, report = pipeline.run_with_report(sources)

    print(alert_set.model_dump_json(by_alias=True, indent=2))
    for error in report.malformed:
        print(f"⚠️  {error}", file=sys.stderr)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="TTC subway alert tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # normalize command
    normalize_parser = subparsers.add_parser(
        "normalize",
        help="Normalize raw station names",
        description="Resolve raw station names to canonical catalog names.",
    )
    normalize_parser.add_argument("names", nargs="+", help="Raw station names")

    # subset command
    subset_parser = subparsers.add_parser(
        "subset",
        help="Check whether range A lies within range B",
        description="Compare two station ranges on one line, ignoring listing order.",
    )
    subset_parser.add_argument("line", help="Line id (e.g. 1)")
    subset_parser.add_argument("a_start", help="First station of range A")
    subset_parser.add_argument("a_end", help="Second station of range A")
    subset_parser.add_argument("b_start", help="First station of range B")
    subset_parser.add_argument("b_end", help="Second station of range B")

    # stations command
    stations_parser = subparsers.add_parser(
        "stations",
        help="List the stations of a line",
        description="Print the ordered station sequence of a line with interchanges.",
    )
    stations_parser.add_argument("line", help="Line id (e.g. 1)")

    # pipeline command
    pipeline_parser = subparsers.add_parser(
        "pipeline",
        help="Run the alert pipeline over draft alerts",
        description="Build draft alerts from a JSON file and print the deduplicated alert set.",
    )
    pipeline_parser.add_argument("file", help="JSON file of sources, or '-' for stdin")
    pipeline_parser.add_argument(
        "--ignore-direction",
        action="store_true",
        help="Deduplicate active alerts by (line, start, end) only",
    )

    args = parser.parse_args(argv)

    # Show help if no command provided
    if not args.command:
        parser.print_help()
        return 1

    command_handlers = {
        "normalize": cmd_normalize,
        "subset": cmd_subset,
        "stations": cmd_stations,
        "pipeline": cmd_pipeline,
    }

    if handler := command_handlers.get(args.command):
        return handler(args)

    print(f"❌ Unknown command: {args.command}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    # stdout carries command output
    configure_logging(log_level="WARNING", stream=sys.stderr)
    sys.exit(main())
