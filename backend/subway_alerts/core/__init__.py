"""Core infrastructure: configuration, logging, telemetry and caching."""
