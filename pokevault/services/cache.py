"""
Time-windowed caches for upstream lookups.

Entries are fresh for ``duration`` after they were written. Stale entries
are kept (they are the fallback when the upstream is unavailable) until
they are overwritten, swept, or evicted by the size bound.
"""

import logging
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from threading import Lock
from typing import Generic, TypeVar

from pokevault.config import CACHE_DURATION_SECONDS, settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ENTRIES = 5000

# Sweep removes entries older than this many cache durations
SWEEP_AGE_MULTIPLIER = 24


def price_cache_key(name: str, set_id: str, number: str) -> str:
    """Normalized cache key for a card price."""
    return f"{name}-{set_id}-{number}".lower()


def image_cache_key(name: str, set_id: str, number: str) -> str:
    """Normalized cache key for a card image."""
    return f"img-{name}-{set_id}-{number}".lower()


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """A cached value and the time it was written."""

    value: T
    timestamp: datetime


class TimedCache(Generic[T]):
    """
    Thread-safe memoization map with time-based freshness and LRU bound.

    Usage:
        cache: TimedCache[Decimal | None] = TimedCache("price")
        entry = cache.get_fresh(key)
        if entry is None:
            cache.set(key, fetch())
    """

    def __init__(
        self,
        name: str,
        duration: timedelta = timedelta(seconds=CACHE_DURATION_SECONDS),
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.name = name
        self.duration = duration
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry[T]] = OrderedDict()
        self._lock = Lock()

    def is_fresh(self, entry: CacheEntry[T]) -> bool:
        """True while less than ``duration`` has passed since the write."""
        return self._clock() - entry.timestamp < self.duration

    def get(self, key: str) -> CacheEntry[T] | None:
        """Get an entry regardless of freshness."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
            return entry

    def get_fresh(self, key: str) -> CacheEntry[T] | None:
        """Get an entry only if it is still fresh."""
        entry = self.get(key)
        if entry is None or not self.is_fresh(entry):
            return None
        return entry

    def set(self, key: str, value: T) -> CacheEntry[T]:
        """Write (or overwrite) an entry stamped with the current time."""
        entry = CacheEntry(value=value, timestamp=self._clock())
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("CACHE_EVICTED", extra={"cache": self.name, "key": evicted})
        return entry

    def sweep(self, max_age: timedelta | None = None) -> int:
        """
        Remove entries older than ``max_age``.

        Defaults to ``SWEEP_AGE_MULTIPLIER`` cache durations.

        Returns:
            Number of entries removed
        """
        if max_age is None:
            max_age = self.duration * SWEEP_AGE_MULTIPLIER
        cutoff = self._clock() - max_age
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.timestamp < cutoff]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("CACHE_SWEPT", extra={"cache": self.name, "removed": len(expired)})
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries


# =============================================================================
# GLOBAL CACHE INSTANCES
# =============================================================================

_price_cache: TimedCache | None = None
_image_cache: TimedCache | None = None
_snapshot_cache: TimedCache | None = None
_sets_cache: TimedCache | None = None


def get_price_cache() -> TimedCache:
    """Get the process-wide price cache (key: ``price_cache_key``)."""
    global _price_cache
    if _price_cache is None:
        _price_cache = TimedCache(
            "price",
            duration=timedelta(seconds=settings.cache_duration_seconds),
            max_entries=settings.cache_max_entries,
        )
    return _price_cache


def get_image_cache() -> TimedCache:
    """Get the process-wide image URL cache (key: ``image_cache_key``)."""
    global _image_cache
    if _image_cache is None:
        _image_cache = TimedCache(
            "image",
            duration=timedelta(seconds=settings.cache_duration_seconds),
            max_entries=settings.cache_max_entries,
        )
    return _image_cache


def get_snapshot_cache() -> TimedCache:
    """Get the process-wide cache of raw price snapshots used for history."""
    global _snapshot_cache
    if _snapshot_cache is None:
        _snapshot_cache = TimedCache(
            "snapshot",
            duration=timedelta(seconds=settings.cache_duration_seconds),
            max_entries=settings.cache_max_entries,
        )
    return _snapshot_cache


def get_sets_cache() -> TimedCache:
    """Get the process-wide sets-list cache."""
    global _sets_cache
    if _sets_cache is None:
        _sets_cache = TimedCache(
            "sets",
            duration=timedelta(seconds=settings.sets_cache_duration_seconds),
            max_entries=1,
        )
    return _sets_cache


def sweep_caches() -> int:
    """Sweep every global cache. Returns the total number of entries removed."""
    return sum(
        cache.sweep()
        for cache in (get_price_cache(), get_image_cache(), get_snapshot_cache())
    )


def reset_caches() -> None:
    """Drop the global caches (for testing)."""
    global _price_cache, _image_cache, _snapshot_cache, _sets_cache
    _price_cache = None
    _image_cache = None
    _snapshot_cache = None
    _sets_cache = None
