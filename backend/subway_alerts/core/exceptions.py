"""Exception types for alert processing."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from subway_alerts.schemas.alerts import AlertRecord


class AlertServiceError(Exception):
    """Base exception for alert service errors."""

    pass


class ExtractionError(AlertServiceError):
    """Raised when the extraction service cannot turn alert text into a draft."""

    pass


class ExtractionRateLimitedError(ExtractionError):
    """Raised when the extraction service rejects a call for rate limiting (retryable)."""

    def __init__(self, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(
            "Extraction service rate limited the request"
            + (f" (retry after {retry_after}s)" if retry_after is not None else "")
        )


class MalformedAlertError(AlertServiceError):
    """
    Describes an alert record that lacks a usable line or start station.

    The pipeline collects these instead of raising them, so one bad record
    never takes down a whole polling cycle.
    """

    def __init__(self, record: AlertRecord, missing_fields: list[str]) -> None:
        self.record = record
        self.missing_fields = missing_fields
        super().__init__(f"Alert {record.id} is missing required fields: {', '.join(missing_fields)}")
