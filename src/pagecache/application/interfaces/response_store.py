# src/pagecache/application/interfaces/response_store.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Application Interface: Response Store Port.

Synopsis:
    Minimal key-value contract the caching layer needs from persistence.
    Enables swapping Redis, in-memory, or other store implementations.

Layer:
    application/interfaces
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pagecache.domain.entities.cache_entry import CacheEntry


@runtime_checkable
class ResponseStore(Protocol):
    """Key-value store for cached responses with expiry semantics.

    Implementations own expiry enforcement and their own concurrency safety.
    They raise :class:`~pagecache.domain.exceptions.caching.StoreUnavailable`
    when the backend cannot serve a command.
    """

    async def get(self, key: str) -> CacheEntry | None:
        """Get a stored entry by key.

        Args:
            key: Cache key (unqualified; adapters may namespace it).

        Returns:
            The entry if present and unexpired, else ``None``.
        """

    async def set(self, key: str, entry: CacheEntry, *, expires: int | None = None) -> None:
        """Store an entry.

        Args:
            key: Cache key.
            entry: Entry to store.
            expires: Time-to-live in seconds. ``None`` applies the store's
                default retention.
        """

    async def delete(self, key: str) -> None:
        """Remove an entry; a missing key is not an error.

        Args:
            key: Cache key.
        """
