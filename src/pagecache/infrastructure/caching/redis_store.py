# src/pagecache/infrastructure/caching/redis_store.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Response Store (Redis-backed).

Synopsis:
    Implements the application ``ResponseStore`` Protocol on top of the shared
    Redis client from `infrastructure/caching/redis_client.py`. Entries are
    stored as JSON objects ``{"body": ..., "content_type": ...}``.

Design:
    * Key policy: ``<namespace>:<cache key>``, e.g. ``pagecache:v1:/blog``.
    * Pure JSON (utf-8) serialization; no pickle.
    * Expiry maps to Redis ``EX``; ``None`` stores without expiry.
    * Connection and command failures surface as ``StoreUnavailable``.
    * An unreadable payload is treated as a miss and logged.

Layer:
    infrastructure/caching
"""

from __future__ import annotations

import json
import logging
from typing import Any

from redis.exceptions import RedisError

from pagecache.domain.entities.cache_entry import CacheEntry
from pagecache.domain.exceptions.caching import StoreUnavailable
from pagecache.infrastructure.caching.redis_client import RedisClient, get_redis_client

__all__ = ["RedisResponseStore"]

logger = logging.getLogger(__name__)


class RedisResponseStore:
    """Redis implementation of the response store.

    Args:
        namespace: Prefix applied to all keys to avoid collisions.
        client: Explicit client. Defaults to the shared module client,
            looked up on every call so loop-aware re-initialization applies.
    """

    def __init__(self, *, namespace: str = "pagecache:v1", client: RedisClient | None = None) -> None:
        self._ns = namespace.rstrip(":")
        self._client = client

    @property
    def namespace(self) -> str:
        return self._ns

    def _k(self, key: str) -> str:
        return f"{self._ns}:{key}"

    def _redis(self) -> RedisClient:
        return self._client if self._client is not None else get_redis_client()

    def _unavailable(self, operation: str, key: str, exc: BaseException) -> StoreUnavailable:
        return StoreUnavailable(
            f"Redis {operation} failed",
            details={"operation": operation, "key": self._k(key), "error": str(exc)},
        )

    async def get(self, key: str) -> CacheEntry | None:
        """Return the stored entry for ``key``, if any.

        Raises:
            StoreUnavailable: If Redis cannot be reached.
        """
        try:
            raw: Any = await self._redis().get(self._k(key))
        except (RedisError, OSError) as exc:
            raise self._unavailable("get", key, exc) from exc
        if raw is None:
            return None
        try:
            return CacheEntry.from_mapping(json.loads(raw))
        except (TypeError, ValueError) as exc:
            logger.warning(
                "page_cache.corrupt_entry",
                extra={"extra": {"key": self._k(key), "error": str(exc)}},
            )
            return None

    async def set(self, key: str, entry: CacheEntry, *, expires: int | None = None) -> None:
        """Store ``entry`` under ``key`` with an optional expiry in seconds.

        Raises:
            StoreUnavailable: If Redis cannot be reached.
        """
        payload = json.dumps(entry.to_mapping(), ensure_ascii=False)
        try:
            await self._redis().set(self._k(key), payload, ex=expires or None)
        except (RedisError, OSError) as exc:
            raise self._unavailable("set", key, exc) from exc

    async def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored.

        Raises:
            StoreUnavailable: If Redis cannot be reached.
        """
        try:
            await self._redis().delete(self._k(key))
        except (RedisError, OSError) as exc:
            raise self._unavailable("delete", key, exc) from exc
