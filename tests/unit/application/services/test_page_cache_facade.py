# tests/unit/application/services/test_page_cache_facade.py
from __future__ import annotations

import pytest

from pagecache.application.services.page_cache import PageCache
from pagecache.domain.entities.cache_entry import CacheEntry
from pagecache.domain.entities.cache_outcome import Continue, Respond
from pagecache.domain.entities.cache_policy import (
    CachePolicy,
    RouteCacheDeclaration,
    RouteCacheOptions,
)
from pagecache.domain.entities.request_cache_state import RequestCacheState
from pagecache.domain.entities.request_context import RequestContext

CTX = RequestContext(path="/blog", method="GET")


def test_cache_without_arguments_returns_the_store(recording_store) -> None:
    page_cache = PageCache(recording_store)

    assert page_cache.cache() is recording_store
    assert page_cache.store is recording_store


def test_cache_accessor_takes_no_declaration(recording_store) -> None:
    page_cache = PageCache(recording_store)

    with pytest.raises(TypeError):
        page_cache.cache(True, expires=10)  # type: ignore[call-arg]
    assert not hasattr(page_cache, "registry")


def test_caching_flag_may_be_a_callable(recording_store) -> None:
    flag = {"on": False}
    page_cache = PageCache(recording_store, caching_enabled=lambda: flag["on"])

    assert page_cache.caching_enabled is False
    flag["on"] = True
    assert page_cache.caching_enabled is True

    page_cache.caching_enabled = False
    assert page_cache.caching_enabled is False


def test_policy_for_reads_global_flag_per_call(recording_store) -> None:
    page_cache = PageCache(recording_store, caching_enabled=False)
    declaration = RouteCacheDeclaration(
        declared=CachePolicy(enabled=True, expires=60), route=RouteCacheOptions(expires=15)
    )

    assert page_cache.policy_for(declaration) == CachePolicy(enabled=False, expires=15)
    page_cache.caching_enabled = True
    assert page_cache.policy_for(declaration) == CachePolicy(enabled=True, expires=15)


@pytest.mark.anyio
async def test_load_then_capture_roundtrip(recording_store) -> None:
    page_cache = PageCache(recording_store)
    policy = CachePolicy(enabled=True, expires=20)

    state = RequestCacheState()
    assert await page_cache.load(policy, CTX, state) == Continue()
    assert await page_cache.capture(policy, CTX, state, "fresh", "text/plain") is True
    assert recording_store.sets == [("/blog", CacheEntry("fresh", "text/plain"), 20)]

    again = RequestCacheState()
    assert await page_cache.load(policy, CTX, again) == Respond("fresh", "text/plain")
    assert await page_cache.capture(policy, CTX, again, "fresh", "text/plain") is False
    assert len(recording_store.sets) == 1


@pytest.mark.anyio
async def test_capture_requires_an_attempt(recording_store) -> None:
    page_cache = PageCache(recording_store)

    stored = await page_cache.capture(
        CachePolicy(enabled=True), CTX, RequestCacheState(), "body", "text/plain"
    )

    assert stored is False
    assert recording_store.sets == []


@pytest.mark.anyio
async def test_expire_deletes_entry(recording_store) -> None:
    page_cache = PageCache(recording_store)
    await recording_store.set("my_name", CacheEntry("x"))

    await page_cache.expire("my_name")

    assert recording_store.deletes == ["my_name"]
    assert await recording_store.get("my_name") is None
