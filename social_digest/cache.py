from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from cachetools import TLRUCache

DEFAULT_TTL_SECONDS = 60.0
DEFAULT_MAX_ENTRIES = 10000

ClockFn = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the clock reading after which it is no longer served."""

    value: Any
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    sets: int
    size: int


class ResourceCache:
    """
    Key -> value store with a per-entry expiry.

    `get` returns the CacheEntry itself, so an empty collection stored as a
    value is still a hit. Expired entries are never returned; they are purged
    lazily by the underlying TLRU cache.
    """

    def __init__(
        self,
        *,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        ttl_overrides: Mapping[str, float] | None = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: ClockFn | None = None,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be > 0")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._default_ttl = float(default_ttl)
        self._overrides = {k: float(v) for k, v in (ttl_overrides or {}).items()}
        for kind, ttl in self._overrides.items():
            if ttl <= 0:
                raise ValueError(f"ttl override for {kind!r} must be > 0")

        self._clock = clock or time.monotonic
        self._store: TLRUCache = TLRUCache(
            maxsize=int(max_entries),
            ttu=lambda _key, entry, _now: entry.expires_at,
            timer=self._clock,
        )

        self._hits = 0
        self._misses = 0
        self._sets = 0

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def ttl_for(self, kind: str | None) -> float:
        if kind is None:
            return self._default_ttl
        return self._overrides.get(kind, self._default_ttl)

    def get(self, key: str) -> CacheEntry | None:
        entry = self._store.get(key)
        if entry is None or not entry.is_fresh(self._clock()):
            self._misses += 1
            return None
        self._hits += 1
        return entry

    def set(
        self,
        key: str,
        value: Any,
        *,
        ttl: float | None = None,
        kind: str | None = None,
    ) -> CacheEntry:
        """Store `value` under `key`, replacing any existing entry and its expiry."""
        seconds = self.ttl_for(kind) if ttl is None else float(ttl)
        if seconds <= 0:
            raise ValueError("ttl must be > 0")

        entry = CacheEntry(value=value, expires_at=self._clock() + seconds)
        self._store.pop(key, None)
        self._store[key] = entry
        self._sets += 1
        return entry

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __len__(self) -> int:
        self._store.expire()
        return len(self._store)

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            sets=self._sets,
            size=len(self),
        )
