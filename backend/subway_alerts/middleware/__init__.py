"""ASGI middleware."""

from subway_alerts.middleware.access_logging import AccessLoggingMiddleware

__all__ = ["AccessLoggingMiddleware"]
