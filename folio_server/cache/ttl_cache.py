"""In-memory TTL cache with an injectable clock."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    expires_at: float


class TTLCache:
    """Keyed store whose entries are served only until they expire.

    Expired entries are ignored rather than evicted; the next ``set`` for the
    same key supersedes them. Writes replace the whole entry, so readers never
    observe a partially updated value.
    """

    def __init__(self, default_ttl_seconds: float = 30, clock: Callable[[], float] | None = None) -> None:
        self.default_ttl_seconds = max(0.001, float(default_ttl_seconds))
        self._clock = clock or time.time
        self._data: dict[str, CacheEntry[object]] = {}
        self._lock = Lock()

    def now(self) -> float:
        return self._clock()

    def get_entry(self, key: str) -> CacheEntry[object] | None:
        with self._lock:
            return self._data.get(key)

    def get(self, key: str) -> object | None:
        entry = self.get_entry(key)
        if entry is None or entry.expires_at <= self._clock():
            return None
        return entry.data

    def set(self, key: str, value: object, ttl_seconds: float | None = None) -> CacheEntry[object]:
        ttl = self.default_ttl_seconds if ttl_seconds is None else max(0.001, float(ttl_seconds))
        entry: CacheEntry[object] = CacheEntry(data=value, expires_at=self._clock() + ttl)
        with self._lock:
            self._data[key] = entry
        return entry

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
