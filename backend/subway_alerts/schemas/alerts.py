"""Pydantic schemas for subway alert data."""

import re
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class AlertStatus(StrEnum):
    """Lifecycle status of an alert relative to the current time."""

    ACTIVE = "active"
    FUTURE = "future"
    CLEARED = "cleared"


class Direction(StrEnum):
    """Direction of travel affected by an alert."""

    NORTHBOUND = "Northbound"
    SOUTHBOUND = "Southbound"
    EASTBOUND = "Eastbound"
    WESTBOUND = "Westbound"
    BOTH_WAYS = "Both Ways"


class Severity(StrEnum):
    """Severity reported by the extraction step."""

    SUSPENSION = "Suspension"
    DELAY = "Delay"
    MINOR = "Minor"


class AlertEffect(StrEnum):
    """Display classification of an alert on the map."""

    NO_SERVICE = "NO_SERVICE"
    SIGNIFICANT_DELAYS = "SIGNIFICANT_DELAYS"


# "Line 1", "line 2 Bloor-Danforth" -> "1", "2"
_LINE_PREFIX = re.compile(r"^line\s+(\w+)", re.IGNORECASE)


def _match_enum[E: StrEnum](enum_cls: type[E], value: Any) -> E | None:
    """
    Match a loose value against an enum's values, ignoring case and spacing.

    Returns None for blanks and unknown values instead of raising.
    """
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None

    folded = " ".join(value.split()).casefold()
    for member in enum_cls:
        if folded in (member.value.casefold(), member.name.casefold().replace("_", " ")):
            return member
    return None


# ==================== Extraction Schemas ====================


class DraftAlert(BaseModel):
    """
    Best-effort structured alert produced by the extraction step.

    Every field is optional because extraction output may be incomplete,
    mis-cased or use colloquial station names. Missing values are None (never
    an empty string), so downstream code can tell "absent" from "blank".
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    line: str | None = None
    start: str | None = None
    end: str | None = None
    reason: str | None = None
    status: AlertStatus | None = None
    direction: Direction | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    severity: Severity | None = None
    original_text: str = Field(default="", alias="originalText")

    @field_validator("start", "end", "reason", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> str | None:
        """Strip strings and map blank or non-string values to None."""
        if not isinstance(v, str):
            return None
        return v.strip() or None

    @field_validator("line", mode="before")
    @classmethod
    def coerce_line(cls, v: Any) -> str | None:
        """Accept integer line ids and "Line N" labels."""
        if isinstance(v, bool):
            return None
        if isinstance(v, int):
            return str(v)
        if not isinstance(v, str) or not v.strip():
            return None
        line = v.strip()
        if match := _LINE_PREFIX.match(line):
            return match.group(1)
        return line

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> AlertStatus | None:
        """Match status case-insensitively; unknown values become None."""
        return _match_enum(AlertStatus, v)

    @field_validator("direction", mode="before")
    @classmethod
    def coerce_direction(cls, v: Any) -> Direction | None:
        """Match direction case-insensitively; unknown values become None."""
        return _match_enum(Direction, v)

    @field_validator("severity", mode="before")
    @classmethod
    def coerce_severity(cls, v: Any) -> Severity | None:
        """Match severity case-insensitively; unknown values become None."""
        return _match_enum(Severity, v)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> datetime | None:
        """Parse ISO-8601 strings; anything unparseable becomes None."""
        if isinstance(v, datetime):
            return v
        if not isinstance(v, str) or not v.strip():
            return None
        try:
            return datetime.fromisoformat(v.strip())
        except ValueError:
            return None

    @field_validator("original_text", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        """Missing source text is an empty string."""
        return v if isinstance(v, str) else ""


# ==================== Response Schemas ====================


class AlertRecord(BaseModel):
    """
    Canonical alert served to clients.

    Built fresh on every pipeline run and never mutated afterwards. Serialized
    with camelCase field names (``singleStation``, ``activeStartTime``, ...).
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    line: str
    start: str
    end: str
    reason: str = ""
    status: AlertStatus
    direction: Direction | None = None
    single_station: bool
    shuttle: bool
    effect: AlertEffect
    active_start_time: int | None = None  # Epoch milliseconds
    active_end_time: int | None = None  # Epoch milliseconds
    original_text: str = ""
    stations_resolved: bool = True  # False when start or end is raw unresolved text


class AlertSet(BaseModel):
    """Current and upcoming alerts, as produced by a source or the pipeline."""

    model_config = ConfigDict(frozen=True)

    current: list[AlertRecord] = Field(default_factory=list)
    upcoming: list[AlertRecord] = Field(default_factory=list)


class AlertSnapshot(BaseModel):
    """Last served pipeline result with its refresh time."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    alerts: list[AlertRecord] = Field(default_factory=list)
    upcoming: list[AlertRecord] = Field(default_factory=list)
    last_updated: datetime
