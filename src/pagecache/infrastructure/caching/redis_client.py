# src/pagecache/infrastructure/caching/redis_client.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Async Redis client factory.

Design notes:
    * A small Protocol (`RedisClient`) lists the commands the response store
      uses; ``redis.asyncio`` provides the concrete client.
    * Loop-aware: a call from a different event loop than the one that built
      the client builds a new client bound to the current loop. Starlette's
      TestClient runs each app on its own loop.
    * Test suites may inject a fakeredis client by assigning to the module-level
      `_client`; such a client is never replaced or closed.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias, cast, runtime_checkable

import redis.asyncio as aioredis

if TYPE_CHECKING:
    from redis.asyncio.client import Redis as _RedisGeneric

    AioredisRedis: TypeAlias = _RedisGeneric[str]
else:
    from redis.asyncio.client import Redis as AioredisRedis  # type: ignore[assignment]

from pagecache.config.settings import Settings, get_settings

__all__ = [
    "RedisClient",
    "close_redis",
    "get_redis_client",
    "init_redis",
]

logger = logging.getLogger(__name__)


@runtime_checkable
class RedisClient(Protocol):
    """Protocol for the subset of Redis methods used by the response store."""

    async def get(self, key: str) -> Any: ...
    async def set(self, key: str, value: Any, *, ex: int | None = None) -> Any: ...
    async def delete(self, *keys: str) -> Any: ...
    async def ping(self) -> Any: ...
    async def close(self) -> Any: ...


_client: RedisClient | Any | None = None
_client_loop_id: int | None = None


def _current_loop_id() -> int | None:
    """Return the id() of the running event loop, or None outside a loop."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return None
    return id(loop)


def _create_aioredis_client(url: str, settings: Settings) -> AioredisRedis:
    """Build the concrete asyncio Redis client from URL and settings."""
    _from_url: Any = aioredis.from_url
    client = _from_url(
        url=url,
        encoding="utf-8",
        decode_responses=True,
        health_check_interval=settings.redis_health_check_interval_s,
        socket_timeout=settings.redis_socket_timeout_s,
        socket_connect_timeout=settings.redis_socket_connect_timeout_s,
    )
    return cast(AioredisRedis, client)


def _is_fake_client(client: Any | None) -> bool:
    """Return True if the given client looks like a fakeredis instance."""
    if client is None:
        return False
    return type(client).__module__.startswith("fakeredis")


def init_redis(settings: Settings) -> None:
    """Initialize the global async Redis client for the current event loop.

    Idempotent per loop. A test-injected fakeredis client is left in place.

    Raises:
        RuntimeError: If ``settings.redis_url`` is not set.
    """
    global _client, _client_loop_id

    if _is_fake_client(_client):
        return

    loop_id = _current_loop_id()
    if _client is not None and _client_loop_id == loop_id:
        return

    if not settings.redis_url:
        raise RuntimeError("REDIS_URL is not configured")

    # Never close a client owned by another loop ("Event loop is closed").
    _client = cast(RedisClient, _create_aioredis_client(settings.redis_url, settings))
    _client_loop_id = loop_id
    logger.debug("redis client initialized", extra={"extra": {"loop_id": loop_id}})


async def close_redis() -> None:
    """Close the global Redis client at shutdown (best-effort)."""
    global _client, _client_loop_id

    if _client is not None and not _is_fake_client(_client):
        loop_id = _current_loop_id()
        if _client_loop_id is None or loop_id == _client_loop_id:
            with suppress(RuntimeError, ConnectionError):
                await _client.close()

    _client = None
    _client_loop_id = None


def get_redis_client() -> RedisClient:
    """Return the initialized Redis client (loop-aware, lazy init).

    Returns:
        RedisClient: Shared Redis client instance.

    Raises:
        RuntimeError: If the client could not be initialized.
    """
    if _is_fake_client(_client):
        return cast(RedisClient, _client)

    loop_id = _current_loop_id()
    if _client is None or (
        _client_loop_id is not None and loop_id is not None and loop_id != _client_loop_id
    ):
        init_redis(get_settings())

    if _client is None:
        raise RuntimeError("Redis client not initialized (init_redis failed)")

    return cast(RedisClient, _client)
