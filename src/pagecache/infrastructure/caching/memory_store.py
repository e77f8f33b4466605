# src/pagecache/infrastructure/caching/memory_store.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""In-process response store.

Synopsis:
    Dict-backed ``ResponseStore`` for single-process deployments and tests.
    Entries expire lazily on read, using a monotonic clock.

Design:
    * A ``threading.RLock`` guards the dict, so one store can be shared by
      several event loops (e.g. TestClient threads).
    * Expired entries are dropped lazily on read and swept on every write, so
      keys nobody reads again do not pile up.
    * ``default_expires`` applies to writes that carry no expiry. ``None``
      keeps such entries until they are deleted.

Layer:
    infrastructure/caching
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from pagecache.domain.entities.cache_entry import CacheEntry
from pagecache.domain.entities.cache_policy import Duration, to_seconds

__all__ = ["InMemoryResponseStore"]


class InMemoryResponseStore:
    """Process-local response store with per-entry expiry.

    Args:
        default_expires: Retention for entries written without an expiry.
        clock: Monotonic time source in seconds (injectable for tests).
    """

    def __init__(
        self,
        *,
        default_expires: Duration | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_expires = to_seconds(default_expires)
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, tuple[CacheEntry, float | None]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._lock:
            return self._live(key) is not None

    def _live(self, key: str) -> CacheEntry | None:
        item = self._entries.get(key)
        if item is None:
            return None
        entry, deadline = item
        if deadline is not None and self._clock() >= deadline:
            del self._entries[key]
            return None
        return entry

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, d) in self._entries.items() if d is not None and now >= d]
        for k in expired:
            del self._entries[k]

    async def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._live(key)

    async def set(self, key: str, entry: CacheEntry, *, expires: int | None = None) -> None:
        ttl = expires if expires is not None else self._default_expires
        now = self._clock()
        deadline = now + ttl if ttl else None
        with self._lock:
            self._sweep(now)
            self._entries[key] = (entry, deadline)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()
