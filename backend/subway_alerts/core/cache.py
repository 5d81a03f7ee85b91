"""
Bounded in-process memoization cache.

The extraction step and the record builder both see the same alert text on
every polling cycle. This cache keeps their results without growing forever:
entries are evicted least-recently-used once ``max_size`` is reached and
expire after ``ttl_seconds`` when a TTL is set.

Instances are injected rather than shared as module globals, so tests can
build a fresh cache and drive the clock explicitly.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass


@dataclass(frozen=True)
class CacheStats:
    """Counters describing cache effectiveness."""

    hits: int
    misses: int
    evictions: int
    expirations: int
    size: int


class BoundedTTLCache[K: Hashable, V]:
    """
    Thread-safe LRU cache with optional per-entry TTL.

    Args:
        max_size: Maximum number of entries kept (must be >= 1)
        ttl_seconds: Entry lifetime in seconds, or None for no expiry
        clock: Monotonic clock returning seconds (injectable for tests)

    Raises:
        ValueError: If max_size < 1 or ttl_seconds <= 0

    Example:
        >>> cache: BoundedTTLCache[str, int] = BoundedTTLCache(max_size=2)
        >>> cache.set("a", 1)
        >>> cache.set("b", 2)
        >>> cache.set("c", 3)  # evicts "a"
        >>> "a" in cache
        False
    """

    def __init__(
        self,
        max_size: int,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            msg = f"max_size must be at least 1, got {max_size}"
            raise ValueError(msg)
        if ttl_seconds is not None and ttl_seconds <= 0:
            msg = f"ttl_seconds must be positive, got {ttl_seconds}"
            raise ValueError(msg)

        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[K, tuple[V, float | None]] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def _is_expired(self, expires_at: float | None) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    def get(self, key: K, default: V | None = None) -> V | None:
        """
        Return the cached value for key, or default on a miss or expired entry.

        A hit marks the entry as most recently used.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return default

            value, expires_at = entry
            if self._is_expired(expires_at):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return default

            self._entries.move_to_end(key)
            self._hits += 1
            return value

    def set(self, key: K, value: V) -> None:
        """Store value under key, evicting the least recently used entry when full."""
        expires_at = self._clock() + self.ttl_seconds if self.ttl_seconds is not None else None
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            self._entries[key] = (value, expires_at)

            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
                self._evictions += 1

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not self._is_expired(entry[1])

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Remove every entry (counters are kept)."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        """Snapshot of hit/miss/eviction counters."""
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
                size=len(self._entries),
            )
