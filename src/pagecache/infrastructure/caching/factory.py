# src/pagecache/infrastructure/caching/factory.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Response store selection from settings."""

from __future__ import annotations

import logging

from pagecache.application.interfaces.response_store import ResponseStore
from pagecache.config.settings import CacheBackend, Settings
from pagecache.domain.exceptions.caching import CacheConfigurationError
from pagecache.infrastructure.caching.memory_store import InMemoryResponseStore
from pagecache.infrastructure.caching.redis_store import RedisResponseStore

__all__ = ["build_response_store"]

logger = logging.getLogger(__name__)


def build_response_store(settings: Settings) -> ResponseStore:
    """Build the response store configured by ``settings.cache_backend``.

    Raises:
        CacheConfigurationError: On an unsupported backend.
    """
    backend = settings.cache_backend
    if backend is CacheBackend.MEMORY:
        store: ResponseStore = InMemoryResponseStore(
            default_expires=settings.cache_default_expires_s
        )
    elif backend is CacheBackend.REDIS:
        store = RedisResponseStore(namespace=settings.cache_namespace)
    else:  # pragma: no cover - enum is exhaustive
        raise CacheConfigurationError(
            "Unsupported cache backend.", details={"backend": str(backend)}
        )

    logger.info(
        "response store selected",
        extra={"extra": {"backend": backend.value, "store": type(store).__name__}},
    )
    return store
