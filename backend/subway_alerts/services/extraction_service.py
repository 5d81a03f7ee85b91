"""
Natural-language extraction client.

Alert text is turned into a DraftAlert by an external extraction service. The
service is opaque to this package: anything implementing ``AlertExtractor``
can be plugged in. ``HttpAlertExtractor`` talks to an HTTP endpoint, and
``RateLimitedExtractor`` wraps any extractor with call spacing, retry with
exponential backoff on rate limiting, and a bounded result cache.
"""

import asyncio
import json
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx
import structlog
from opentelemetry.trace import SpanKind
from pydantic import ValidationError

from subway_alerts.core.cache import BoundedTTLCache
from subway_alerts.core.config import require_config, settings
from subway_alerts.core.exceptions import ExtractionError, ExtractionRateLimitedError
from subway_alerts.core.telemetry import service_span
from subway_alerts.schemas.alerts import DraftAlert

logger = structlog.get_logger(__name__)


class AlertExtractor(Protocol):
    """Protocol for anything that can turn alert text into a DraftAlert."""

    async def extract(self, text: str) -> DraftAlert | None:
        """Return a draft for the text, or None if nothing usable was extracted."""
        ...


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def _strip_code_fence(body: str) -> str:
    """Remove a markdown code fence the extraction model sometimes wraps JSON in."""
    stripped = body.strip()
    if stripped.startswith("```"):
        stripped = stripped.removeprefix("```json").removeprefix("```")
        stripped = stripped.removesuffix("```")
    return stripped.strip()


class HttpAlertExtractor:
    """
    Extractor backed by an HTTP extraction endpoint.

    POSTs ``{"text": ..., "current_time": ...}`` and expects a JSON object with
    the DraftAlert fields (``line``, ``start``, ``end``, ``reason``, ``status``,
    ``direction``, ``start_time``, ``end_time``, ``severity``).

    Args:
        url: Endpoint URL (defaults to settings.EXTRACTION_SERVICE_URL)
        api_key: Bearer token (defaults to settings.EXTRACTION_API_KEY)
        client: Shared httpx client; a short-lived client is used when omitted
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        if url is None:
            require_config("EXTRACTION_SERVICE_URL")
            url = settings.EXTRACTION_SERVICE_URL
        self.url = url
        self.api_key = api_key if api_key is not None else settings.EXTRACTION_API_KEY
        self.client = client
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        if self.client is not None:
            return await self.client.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.url, json=payload, headers=headers)

    async def extract(self, text: str) -> DraftAlert | None:
        """
        Extract a draft from alert text.

        Args:
            text: Original alert text

        Returns:
            DraftAlert, or None if the response was not a JSON object

        Raises:
            ExtractionRateLimitedError: If the service answered 429
            ExtractionError: On transport errors or other error statuses
        """
        payload = {"text": text, "current_time": datetime.now(UTC).isoformat()}

        with service_span("extraction.extract", "extraction-service", kind=SpanKind.CLIENT) as span:
            try:
                response = await self._post(payload)
            except httpx.HTTPError as e:
                msg = f"Extraction request failed: {e!s}"
                raise ExtractionError(msg) from e

            span.set_attribute("http.status_code", response.status_code)
            if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
                raise ExtractionRateLimitedError(_parse_retry_after(response.headers.get("Retry-After")))
            if response.is_error:
                msg = f"Extraction service returned HTTP {response.status_code}"
                raise ExtractionError(msg)

            try:
                data = json.loads(_strip_code_fence(response.text))
            except ValueError:
                logger.warning("extraction_invalid_json", body=response.text[:200])
                return None

            if not isinstance(data, dict):
                logger.warning("extraction_unexpected_shape", shape=type(data).__name__)
                return None

            # original_text is always the text that was sent
            fields = {key: value for key, value in data.items() if key not in ("originalText", "original_text")}
            try:
                return DraftAlert.model_validate({**fields, "original_text": text})
            except ValidationError as e:
                logger.warning("extraction_validation_failed", error=str(e))
                return None


class RateLimitedExtractor:
    """
    Wraps an extractor with call spacing, retries and a result cache.

    - Calls are serialized and spaced at least ``min_interval`` seconds apart.
    - A rate-limited call is retried after ``backoff_base * 2**attempt``
      seconds (or the server's Retry-After, if longer), up to ``max_attempts``
      attempts in total.
    - Drafts with a line and start station are cached by text, so a cache hit
      skips the extraction call entirely.
    - Extraction errors are logged and mapped to None; they never propagate.

    Args:
        extractor: Wrapped extractor
        cache: Optional text -> DraftAlert cache
        min_interval: Minimum seconds between calls
        max_attempts: Total attempts per text (>= 1)
        backoff_base: Base delay in seconds for exponential backoff
        sleep: Awaitable sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)
    """

    def __init__(
        self,
        extractor: AlertExtractor,
        cache: BoundedTTLCache[str, DraftAlert] | None = None,
        min_interval: float | None = None,
        max_attempts: int | None = None,
        backoff_base: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.extractor = extractor
        self.cache = cache
        self.min_interval = min_interval if min_interval is not None else settings.EXTRACTION_MIN_INTERVAL_SECONDS
        self.max_attempts = max(max_attempts if max_attempts is not None else settings.EXTRACTION_MAX_RETRIES, 1)
        self.backoff_base = backoff_base if backoff_base is not None else settings.EXTRACTION_BACKOFF_BASE_SECONDS
        self._sleep = sleep
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_call: float | None = None

    async def _spaced_call(self, text: str) -> DraftAlert | None:
        async with self._lock:
            if self._last_call is not None:
                wait = self.min_interval - (self._clock() - self._last_call)
                if wait > 0:
                    await self._sleep(wait)
            self._last_call = self._clock()
            return await self.extractor.extract(text)

    async def extract(self, text: str) -> DraftAlert | None:
        """
        Extract a draft, honouring rate limits and the cache.

        Args:
            text: Original alert text

        Returns:
            DraftAlert, or None if extraction failed or produced nothing
        """
        if self.cache is not None and (cached := self.cache.get(text)) is not None:
            logger.debug("extraction_cache_hit", text_length=len(text))
            return cached

        for attempt in range(self.max_attempts):
            try:
                draft = await self._spaced_call(text)
            except ExtractionRateLimitedError as e:
                if attempt >= self.max_attempts - 1:
                    logger.error("extraction_rate_limit_exhausted", attempts=self.max_attempts)
                    return None
                wait = max(self.backoff_base * 2**attempt, e.retry_after or 0.0)
                logger.warning(
                    "extraction_rate_limited",
                    attempt=attempt + 1,
                    max_attempts=self.max_attempts,
                    wait_seconds=wait,
                )
                await self._sleep(wait)
                continue
            except ExtractionError as e:
                logger.error("extraction_failed", error=str(e), exc_info=e)
                return None

            if draft is not None and draft.line and draft.start and self.cache is not None:
                self.cache.set(text, draft)
            return draft

        return None
