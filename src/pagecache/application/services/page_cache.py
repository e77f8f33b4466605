# src/pagecache/application/services/page_cache.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Application Service: Page Cache facade.

Synopsis:
    Single object an application holds to cache route responses. It owns the
    response store and the global caching flag, and wires the load (gate) and
    capture use cases around them.

Usage:
    page_cache = PageCache(InMemoryResponseStore(), caching_enabled=True)
    page_cache.cache()            # → the store itself (accessor form)
    await page_cache.expire("my_name")

Layer:
    application/services
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pagecache.application.interfaces.response_store import ResponseStore
from pagecache.application.services.key_resolver import KeyResolver
from pagecache.application.services.policy_registry import resolve_policy
from pagecache.application.use_cases.load_cached_response import CacheDecision
from pagecache.application.use_cases.save_cached_response import ResponseCapture
from pagecache.domain.entities.cache_outcome import CacheOutcome
from pagecache.domain.entities.cache_policy import CachePolicy, RouteCacheDeclaration
from pagecache.domain.entities.request_cache_state import RequestCacheState
from pagecache.domain.entities.request_context import RequestContext

__all__ = ["PageCache"]


class PageCache:
    """Facade over a response store and the caching feature flag.

    Args:
        store: Response store implementation.
        caching_enabled: Global flag, or a zero-arg callable read on every
            request (lets the flag follow live configuration).
        resolver: Key resolver shared by load and capture.
    """

    def __init__(
        self,
        store: ResponseStore,
        *,
        caching_enabled: bool | Callable[[], bool] = True,
        resolver: KeyResolver | None = None,
    ) -> None:
        self._store = store
        self._caching_enabled = caching_enabled
        self._resolver = resolver or KeyResolver()
        self._decision = CacheDecision(store=store, resolver=self._resolver)
        self._capture = ResponseCapture(store=store, resolver=self._resolver)

    @property
    def store(self) -> ResponseStore:
        return self._store

    @property
    def caching_enabled(self) -> bool:
        """Current value of the global caching flag."""
        flag = self._caching_enabled
        return bool(flag()) if callable(flag) else bool(flag)

    @caching_enabled.setter
    def caching_enabled(self, value: bool | Callable[[], bool]) -> None:
        self._caching_enabled = value

    def cache(self) -> ResponseStore:
        """Return the store handle so application code can read or invalidate entries.

        Cache conditions are declared on controllers and routes, never here.
        """
        return self._store

    def policy_for(self, declaration: RouteCacheDeclaration) -> CachePolicy:
        """Resolve the effective policy of a route for the current request."""
        return resolve_policy(
            caching_enabled=self.caching_enabled,
            declared=declaration.declared,
            route=declaration.route,
        )

    async def load(
        self,
        policy: CachePolicy,
        ctx: RequestContext,
        state: RequestCacheState,
    ) -> CacheOutcome:
        """Run the cache gate for a request (see :class:`CacheDecision`)."""
        return await self._decision.evaluate(
            policy, ctx, state, caching_enabled=self.caching_enabled
        )

    async def capture(
        self,
        policy: CachePolicy,
        ctx: RequestContext,
        state: RequestCacheState,
        body: Any,
        content_type: str | None,
        *,
        status_code: int = 200,
    ) -> bool:
        """Persist a freshly generated response for a request that missed.

        Returns:
            True if a write was issued. Requests that never attempted caching,
            or that were served from the store, are not captured.
        """
        if not state.caching_attempted or state.cache_hit:
            return False
        return await self._capture.try_store(
            policy,
            ctx,
            body,
            content_type,
            state.effective_expiry,
            key=state.cache_key,
            status_code=status_code,
        )

    async def expire(self, key: str) -> None:
        """Manually invalidate a stored response."""
        await self._store.delete(key)
