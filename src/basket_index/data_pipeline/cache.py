"""Keyed in-process cache with a freshness window and a longer eviction window."""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class CacheState(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    MISS = "miss"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    written_at: float
    ttl: float

    def age(self, now: float) -> float:
        return max(0.0, now - self.written_at)

    def state(self, now: float) -> CacheState:
        age = self.age(now)
        if age < self.ttl:
            return CacheState.FRESH
        if age < 2 * self.ttl:
            return CacheState.STALE
        return CacheState.MISS

    def evictable(self, now: float) -> bool:
        return self.age(now) >= 2 * self.ttl


@dataclass(frozen=True)
class CacheLookup:
    state: CacheState
    payload: Any = None
    written_at: float | None = None

    @property
    def hit(self) -> bool:
        return self.state is not CacheState.MISS


class CacheService(Protocol):
    def get(self, key: str) -> CacheLookup: ...

    def put(self, key: str, payload: Any, ttl: float) -> None: ...

    def sweep(self) -> int: ...


class InMemoryKeyedCache:
    """Dictionary-backed ``CacheService``.

    ``get`` is a pure lookup and never deletes. Entries leave the store only
    through ``sweep``, which runs after every ``put`` once the store exceeds
    ``max_entries``: entries past twice their TTL go first, then the least
    recently written ones until the bound holds.
    """

    def __init__(self, max_entries: int = 50, clock: Callable[[], float] = time.time) -> None:
        self.max_entries = max(1, int(max_entries))
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, key: str) -> CacheLookup:
        entry = self._entries.get(key)
        if entry is None:
            return CacheLookup(CacheState.MISS)
        state = entry.state(self._clock())
        if state is CacheState.MISS:
            return CacheLookup(CacheState.MISS)
        return CacheLookup(state, entry.payload, entry.written_at)

    def put(self, key: str, payload: Any, ttl: float) -> None:
        self._entries[key] = CacheEntry(key=key, payload=payload, written_at=self._clock(), ttl=float(ttl))
        self._entries.move_to_end(key)
        self.sweep()

    def sweep(self) -> int:
        if len(self._entries) <= self.max_entries:
            return 0
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.evictable(now)]
        for key in expired:
            del self._entries[key]
        removed = len(expired)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            removed += 1
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
