"""Application configuration."""

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # API Settings
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "TTC Subway Alerts"
    DEBUG: bool = False
    ALLOWED_ORIGINS: str = "*"

    @field_validator("ALLOWED_ORIGINS", mode="after")
    @classmethod
    def parse_cors(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated CORS origins or pass through list."""
        return v if isinstance(v, list) else [origin.strip() for origin in v.split(",")]

    # Transit Settings
    TIMEZONE: str = "America/Toronto"  # Zone used for ISO timestamps without an offset
    TRACKED_LINES: str = "1,2,4,5,6"

    @field_validator("TRACKED_LINES", mode="after")
    @classmethod
    def parse_tracked_lines(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated line ids or pass through list, filtering out empty strings."""
        if isinstance(v, list):
            return [line for line in v if line]
        return [line.strip() for line in v.split(",") if line.strip()]

    # TTC Live Alerts Settings
    TTC_LIVE_ALERTS_URL: str = "https://alerts.ttc.ca/api/alerts/live-alerts"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Extraction Service Settings
    EXTRACTION_SERVICE_URL: str | None = Field(default=None, validation_alias="SECRET_EXTRACTION_SERVICE_URL")
    EXTRACTION_API_KEY: str | None = Field(default=None, validation_alias="SECRET_EXTRACTION_API_KEY")
    EXTRACTION_MIN_INTERVAL_SECONDS: float = 0.5  # Minimum spacing between extraction calls
    EXTRACTION_MAX_RETRIES: int = 3
    EXTRACTION_BACKOFF_BASE_SECONDS: float = 1.0  # Doubles on every rate-limited attempt
    EXTRACTION_CACHE_MAX_SIZE: int = 512
    EXTRACTION_CACHE_TTL_SECONDS: int = 21600  # 6 hours

    # Polling Settings
    POLLING_ENABLED: bool = True
    POLL_INTERVAL_SECONDS: float = 60.0
    SNAPSHOT_TTL_SECONDS: int = 600  # Served snapshot expires if polling stalls

    # Pipeline Settings
    DEDUPLICATE_BY_DIRECTION: bool = True  # Keep per-direction alerts for "Both Ways" merging
    REJECT_MALFORMED_ALERTS: bool = True  # Drop records with empty line/start instead of passing through

    @field_validator("EXTRACTION_CACHE_MAX_SIZE", "EXTRACTION_MAX_RETRIES", mode="after")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Ensure counters that size caches and retry loops are at least 1."""
        if v < 1:
            msg = f"Value must be at least 1, got {v}"
            raise ValueError(msg)
        return v

    # OpenTelemetry Settings (for observability)
    OTEL_ENABLED: bool = True
    OTEL_SERVICE_NAME: str = "ttc-subway-alerts"
    OTEL_ENVIRONMENT: str = "production"

    # OTLP Exporter Endpoints (separate for traces and logs)
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: str | None = None
    OTEL_EXPORTER_OTLP_LOGS_ENDPOINT: str | None = None
    OTEL_EXPORTER_OTLP_HEADERS: str | None = Field(default=None, validation_alias="SECRET_OTEL_HEADERS")
    OTEL_EXCLUDED_URLS: str = "/health,/ready"

    # Log level for OTLP log export (NOTSET exports all levels)
    OTEL_LOG_LEVEL: str = "NOTSET"

    @field_validator("OTEL_EXCLUDED_URLS", mode="after")
    @classmethod
    def parse_otel_excluded_urls(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated excluded URLs or pass through list, filtering out empty strings."""
        if isinstance(v, list):
            return [url for url in v if url]
        return [url.strip() for url in v.split(",") if url.strip()]

    @field_validator("OTEL_LOG_LEVEL", mode="after")
    @classmethod
    def validate_otel_log_level(cls, v: str) -> str:
        """Validate and normalize OTEL log level."""
        normalized = v.upper()
        valid_levels = logging.getLevelNamesMapping()
        if normalized not in valid_levels:
            msg = f"Invalid OTEL_LOG_LEVEL '{v}'. Must be one of: {', '.join(sorted(valid_levels.keys()))}"
            raise ValueError(msg)
        return normalized

    # Logging Settings
    LOG_LEVEL: str = "INFO"

    @field_validator("LOG_LEVEL", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        normalized = v.upper()
        valid_levels = logging.getLevelNamesMapping()
        if normalized not in valid_levels:
            msg = f"Invalid LOG_LEVEL '{v}'. Must be one of: {', '.join(sorted(valid_levels.keys()))}"
            raise ValueError(msg)
        return normalized


settings = Settings()


def require_config(*field_names: str) -> None:
    """
    Validate that required configuration fields are set.

    This utility should be called by modules before they use optional
    configuration, to fail fast with a clear message.

    Args:
        *field_names: Names of required configuration fields

    Raises:
        ValueError: If any required field is missing or None

    Example:
        from subway_alerts.core.config import require_config, settings
        require_config("EXTRACTION_SERVICE_URL")
    """
    missing = []
    for field in field_names:
        value = getattr(settings, field, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)

    if missing:
        msg = f"Required configuration missing: {', '.join(missing)}"
        raise ValueError(msg)
