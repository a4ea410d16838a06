"""
Per-entry TTL cache placed in front of the external calendar client.

The cache is an explicitly constructed object: the application creates one at
startup and injects it into the availability and booking services.
"""

import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Dict, Generic, Hashable, List, TypeVar

import pendulum
from pendulum import DateTime

from ..domain.models import BusyInterval

T = TypeVar("T")


def utc_now() -> DateTime:
    return pendulum.now("UTC")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    expires_at: DateTime


class TTLCache(Generic[T]):
    """
    Keyed cache whose entries expire a fixed time after being stored.

    ``get``, ``set`` and ``invalidate`` are individually atomic. A reader may
    still race an evicting reader; the worst outcome is one extra upstream fetch.
    """

    def __init__(self, clock: Callable[[], DateTime] = utc_now):
        self._entries: Dict[Hashable, CacheEntry[T]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: Hashable) -> T | None:
        """Return the cached value, or None if absent or expired (evicting it)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: Hashable, value: T, ttl: timedelta) -> None:
        """Store a value that expires ``ttl`` after now."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def invalidate(self, key: Hashable) -> None:
        """Remove an entry; a no-op when absent."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass(frozen=True)
class CachedBusyTimes:
    """External busy intervals together with the window they were fetched for."""
    window_start: DateTime
    window_end: DateTime
    intervals: List[BusyInterval]

    def covers(self, start: DateTime, end: DateTime) -> bool:
        return self.window_start <= start and end <= self.window_end


class BusyTimeCache(TTLCache[CachedBusyTimes]):
    """TTL cache of external busy time, keyed by host id."""
