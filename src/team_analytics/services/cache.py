"""Time-to-live cache for computed analytics.

Entries are created on a miss, served while younger than the TTL and silently
superseded by the next successful computation once stale. A failed
computation stores nothing and leaves any stale entry in place.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional

from ..utils.datetime import Clock, SystemClock

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 300_000  # 5 minutes


@dataclass(frozen=True)
class CacheEntry:
    """A computed value and when it was produced"""
    key: str
    value: Any
    produced_at: datetime

    def age(self, now: datetime) -> timedelta:
        return now - self.produced_at

    def is_fresh(self, now: datetime, ttl_ms: float) -> bool:
        return self.age(now) < timedelta(milliseconds=ttl_ms)


class TTLCache:
    """Key-based memoization with a time-to-live policy.

    Only ever touched from the event loop thread, so no locking. Concurrent
    misses on the same key each run their producer; the last one to finish
    wins.
    """

    def __init__(self, ttl_ms: float = DEFAULT_TTL_MS, clock: Optional[Clock] = None):
        if ttl_ms < 0:
            raise ValueError(f"ttl_ms must be non-negative, got {ttl_ms}")
        self.ttl_ms = ttl_ms
        self.clock = clock or SystemClock()
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def _ttl(self, ttl_ms: Optional[float]) -> float:
        return self.ttl_ms if ttl_ms is None else ttl_ms

    def get_entry(self, key: str, ttl_ms: Optional[float] = None) -> Optional[CacheEntry]:
        """Return the entry for ``key`` if it is still fresh."""
        entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(self.clock.now(), self._ttl(ttl_ms)):
            return None
        return entry

    def get(self, key: str, default: Any = None, ttl_ms: Optional[float] = None) -> Any:
        entry = self.get_entry(key, ttl_ms)
        return entry.value if entry is not None else default

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` whether fresh or stale."""
        return self._entries.get(key)

    def put(self, key: str, value: Any) -> CacheEntry:
        """Store ``value`` under ``key``, superseding any previous entry."""
        entry = CacheEntry(key=key, value=value, produced_at=self.clock.now())
        self._entries[key] = entry
        return entry

    async def get_or_compute(self, key: str, producer: Callable[[], Awaitable[Any]],
                             ttl_ms: Optional[float] = None) -> Any:
        """Return the cached value for ``key`` or compute and store it.

        Args:
            key: Opaque cache key
            producer: Coroutine function computing the value on a miss
            ttl_ms: Optional TTL override for this lookup

        Returns:
            The fresh cached value, or the producer's result

        Raises:
            Whatever ``producer`` raises; nothing is cached in that case
        """
        entry = self.get_entry(key, ttl_ms)
        if entry is not None:
            self.hits += 1
            logger.debug(f"Cache hit for '{key}'")
            return entry.value

        self.misses += 1
        logger.debug(f"Cache miss for '{key}', computing")
        value = await producer()
        self.put(key, value)
        return value

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if an entry was present."""
        return self._entries.pop(key, None) is not None

    def clear(self):
        """Remove all entries unconditionally."""
        self._entries.clear()
        logger.debug("Analytics cache cleared")

    def __contains__(self, key: str) -> bool:
        return self.get_entry(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
