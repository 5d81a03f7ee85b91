"""Access logging middleware using structlog with request id binding."""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from subway_alerts.core.config import settings

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class AccessLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log each HTTP request as one structured ``http_request`` event.

    A request id (taken from ``X-Request-ID`` or generated) is bound to the
    structlog context for the duration of the request and echoed back in the
    response headers. Probe endpoints (OTEL_EXCLUDED_URLS) are logged at debug
    level so polling health checks do not flood the logs.

    Log fields: method, path, status_code, duration_ms, client_ip,
    forwarded_for (when present), request_id.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Process request and log access information."""
        start_time = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        client_ip = request.client.host if request.client else "unknown"
        forwarded_for = None
        if xff_header := request.headers.get("x-forwarded-for"):
            forwarded_for = xff_header.split(",")[0].strip()

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        log_kwargs: dict[str, str | int | float | None] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
            "client_ip": client_ip,
            "request_id": request_id,
        }
        if forwarded_for:
            log_kwargs["forwarded_for"] = forwarded_for

        if request.url.path in settings.OTEL_EXCLUDED_URLS:
            logger.debug("http_request", **log_kwargs)
        else:
            logger.info("http_request", **log_kwargs)

        return response
