"""
In-memory TTL cache for upstream payloads.

Each entry carries an absolute expiry. Expired entries are logically
absent: ``get`` reports a miss for them exactly as for keys that were
never stored, and callers must refetch in both cases. Eviction is lazy
(on lookup) with an optional ``purge_expired`` sweep.

The cache is accessed only from the event-loop thread, so no locking is
needed. Concurrent ``set`` calls for the same key leave the last
writer's value.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger


@dataclass(frozen=True)
class CacheEntry:
    """One stored payload with its creation and expiry timestamps."""

    key: str
    value: Any
    created_at: float
    expires_at: float

    @property
    def ttl_seconds(self) -> float:
        return self.expires_at - self.created_at

    def is_live(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class CacheHit:
    """Result of a successful lookup."""

    value: Any
    age_seconds: float


class TTLCache:
    """
    Key -> value store with per-entry time-to-live.

    Args:
        clock: Returns the current time in seconds (injectable for tests)
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def set(self, key: str, value: Any, ttl_minutes: float) -> None:
        """Store ``value`` under ``key`` until now + ttl_minutes."""
        now = self._clock()
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            created_at=now,
            expires_at=now + ttl_minutes * 60,
        )
        logger.debug(f"Cache SET {key} (ttl={ttl_minutes} min)")

    def get(self, key: str) -> CacheHit | None:
        """
        Look up a live entry.

        Returns:
            CacheHit with the value and its age, or None on a miss
            (unknown key or expired entry).
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        now = self._clock()
        if not entry.is_live(now):
            del self._entries[key]
            logger.debug(f"Cache EXPIRED {key}")
            return None

        return CacheHit(value=entry.value, age_seconds=now - entry.created_at)

    def get_age(self, key: str) -> float | None:
        """Age in seconds of the stored entry, live or not (diagnostics)."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._clock() - entry.created_at

    def clear(self) -> None:
        """Drop every entry (user-initiated force refresh)."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Cache cleared ({count} entries dropped)")

    def purge_expired(self) -> int:
        """Remove expired entries eagerly. Returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if not e.is_live(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> dict[str, Any]:
        """
        Diagnostic summary of live entries.

        Never used for cache behaviour.
        """
        now = self._clock()
        live = [e for e in self._entries.values() if e.is_live(now)]

        stats: dict[str, Any] = {
            "total_items": len(live),
            "oldest_item": None,
            "newest_item": None,
        }
        if not live:
            return stats

        oldest = min(live, key=lambda e: e.created_at)
        newest = max(live, key=lambda e: e.created_at)
        stats["oldest_item"] = {
            "key": oldest.key,
            "created_at": oldest.created_at,
            "age_seconds": now - oldest.created_at,
        }
        stats["newest_item"] = {
            "key": newest.key,
            "created_at": newest.created_at,
            "age_seconds": now - newest.created_at,
        }
        return stats

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for e in self._entries.values() if e.is_live(now))
