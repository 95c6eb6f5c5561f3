"""Process-local TTL cache for built data marts."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, TypeVar, cast

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 180.0


@dataclass(frozen=True)
class MartCacheKey:
    """Uniquely identifies a mart by category and snapshot date."""

    category_id: str
    snapshot_date: str

    def __str__(self) -> str:
        return f"{self.category_id}:{self.snapshot_date}"


@dataclass(slots=True)
class CacheEntry:
    """Cached value together with the clock reading at which it was stored.

    ``value`` may be ``None``: a missing snapshot is cached as well so repeated
    requests for an unknown date do not rebuild anything until the entry
    expires.
    """

    value: object | None
    loaded_at: float


@dataclass(slots=True)
class MartCache:
    """TTL cache keyed by :class:`MartCacheKey`.

    Time is read from ``clock`` unless callers pass ``now`` explicitly, which
    lets tests drive expiry deterministically.  Entries are considered fresh
    while ``now - loaded_at <= ttl_seconds``.  There is no link to upstream
    data versions; :meth:`invalidate` and :meth:`clear` are the only ways to
    drop a fresh entry early.
    """

    ttl_seconds: float = DEFAULT_TTL_SECONDS
    clock: Callable[[], float] = time.monotonic
    _entries: Dict[MartCacheKey, CacheEntry] = field(default_factory=dict)

    def _now(self, now: float | None) -> float:
        return self.clock() if now is None else now

    def get(self, key: MartCacheKey, now: float | None = None) -> CacheEntry | None:
        """Return the fresh entry for ``key`` or ``None`` when absent/expired."""

        entry = self._entries.get(key)
        if entry is None:
            LOGGER.debug("cache.miss", extra={"key": str(key)})
            return None
        if self._now(now) - entry.loaded_at > self.ttl_seconds:
            self._entries.pop(key, None)
            LOGGER.debug("cache.expired", extra={"key": str(key)})
            return None
        LOGGER.debug("cache.hit", extra={"key": str(key)})
        return entry

    def put(self, key: MartCacheKey, value: T | None, now: float | None = None) -> CacheEntry:
        """Store ``value`` for ``key`` stamped with ``now``."""

        entry = CacheEntry(value=value, loaded_at=self._now(now))
        self._entries[key] = entry
        return entry

    def get_or_build(self, key: MartCacheKey, loader: Callable[[], T | None], now: float | None = None) -> T | None:
        """Return the cached value for ``key`` computing it with ``loader`` if needed."""

        stamp = self._now(now)
        entry = self.get(key, stamp)
        if entry is not None:
            return cast(T, entry.value)
        return cast(T, self.put(key, loader(), stamp).value)

    def has(self, key: MartCacheKey, now: float | None = None) -> bool:
        """Return ``True`` when ``key`` holds a fresh entry."""

        return self.get(key, now) is not None

    def invalidate(self, key: MartCacheKey) -> None:
        """Remove an entry if it exists."""

        self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop all cached marts."""

        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


GLOBAL_MART_CACHE = MartCache()


__all__ = [
    "CacheEntry",
    "DEFAULT_TTL_SECONDS",
    "GLOBAL_MART_CACHE",
    "MartCache",
    "MartCacheKey",
]
