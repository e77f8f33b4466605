# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from fastapi import APIRouter, FastAPI
from fastapi.testclient import TestClient

from pagecache.adapters.routers.cached_route import install_page_cache
from pagecache.application.services.page_cache import PageCache
from pagecache.domain.entities.cache_entry import CacheEntry
from pagecache.domain.exceptions.caching import StoreUnavailable
from pagecache.infrastructure.caching.memory_store import InMemoryResponseStore


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Force pytest-anyio to use asyncio (not trio)."""
    return "asyncio"


class RecordingStore(InMemoryResponseStore):
    """In-memory store that records every call made to it."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.gets: list[str] = []
        self.sets: list[tuple[str, CacheEntry, int | None]] = []
        self.deletes: list[str] = []

    async def get(self, key: str) -> CacheEntry | None:
        self.gets.append(key)
        return await super().get(key)

    async def set(self, key: str, entry: CacheEntry, *, expires: int | None = None) -> None:
        self.sets.append((key, entry, expires))
        await super().set(key, entry, expires=expires)

    async def delete(self, key: str) -> None:
        self.deletes.append(key)
        await super().delete(key)


class FailingStore:
    """Store whose selected operations raise StoreUnavailable."""

    def __init__(self, *, fail_get: bool = True, fail_set: bool = True) -> None:
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.gets: list[str] = []
        self.sets: list[tuple[str, CacheEntry, int | None]] = []
        self._inner = InMemoryResponseStore()

    async def get(self, key: str) -> CacheEntry | None:
        self.gets.append(key)
        if self.fail_get:
            raise StoreUnavailable("store down", details={"operation": "get"})
        return await self._inner.get(key)

    async def set(self, key: str, entry: CacheEntry, *, expires: int | None = None) -> None:
        self.sets.append((key, entry, expires))
        if self.fail_set:
            raise StoreUnavailable("store down", details={"operation": "set"})
        await self._inner.set(key, entry, expires=expires)

    async def delete(self, key: str) -> None:
        await self._inner.delete(key)


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def make_client() -> Callable[..., TestClient]:
    """Build a TestClient over a bare app with a PageCache installed."""

    def _make(
        *routers: APIRouter,
        store: Any = None,
        caching_enabled: bool = True,
        raise_server_exceptions: bool = True,
    ) -> TestClient:
        app = FastAPI()
        install_page_cache(
            app,
            PageCache(store if store is not None else RecordingStore(), caching_enabled=caching_enabled),
        )
        for router in routers:
            app.include_router(router)
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)

    return _make


@pytest.fixture
def failing_store() -> Callable[..., FailingStore]:
    """Factory for stores that fail on get and/or set."""
    return FailingStore
