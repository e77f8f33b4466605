# src/pagecache/application/use_cases/load_cached_response.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Use case: Load cached response (the cache gate).

Synopsis:
    Decides, per request, whether a previously stored response can be served
    verbatim. Applies the request guard (global flag, ``GET``/``HEAD`` only,
    route declared cacheable), resolves the key, consults the store and moves
    the request's cache state along ``FRESH → ATTEMPTED → HIT | MISS_RECORDED``.

Responsibilities:
    * Skip caching entirely for unsafe methods or when the feature is off.
    * Resolve the key once per request and remember it on the request state.
    * Turn a hit into an explicit ``Respond`` outcome (status 200 always).
    * Time the store lookup (DEBUG log + Prometheus histogram).

Errors:
    ``StoreUnavailable`` raised by the store propagates with the state left in
    ``ATTEMPTED``; callers degrade it to a miss.
"""

from __future__ import annotations

import logging
import time

from pagecache.application.interfaces.response_store import ResponseStore
from pagecache.application.services.key_resolver import KeyResolver
from pagecache.application.services.policy_registry import is_cacheable_request
from pagecache.domain.entities.cache_entry import CacheEntry
from pagecache.domain.entities.cache_outcome import CacheOutcome, Continue, Respond
from pagecache.domain.entities.cache_policy import CachePolicy
from pagecache.domain.entities.request_cache_state import RequestCacheState
from pagecache.domain.entities.request_context import RequestContext
from pagecache.domain.exceptions.caching import StoreUnavailable
from pagecache.infrastructure.observability.metrics import observe_page_cache_lookup

logger = logging.getLogger(__name__)


class CacheDecision:
    """Per-request gate in front of route execution."""

    def __init__(self, *, store: ResponseStore, resolver: KeyResolver | None = None) -> None:
        self._store = store
        self._resolver = resolver or KeyResolver()

    async def evaluate(
        self,
        policy: CachePolicy,
        ctx: RequestContext,
        state: RequestCacheState,
        *,
        caching_enabled: bool,
    ) -> CacheOutcome:
        """Apply the request guard and try the store.

        Args:
            policy: Effective route policy.
            ctx: Current request context.
            state: This request's cache state (must be ``FRESH``).
            caching_enabled: Global caching feature flag, read per request.

        Returns:
            ``Respond`` with the stored body on a hit, else ``Continue``. When the
            guard rejects the request the state stays ``FRESH``.
        """
        if not (policy.enabled and is_cacheable_request(ctx.method, caching_enabled=caching_enabled)):
            return Continue()

        state.mark_attempted(policy.expires)
        entry = await self.try_load(policy, ctx, state)
        if entry is None:
            return Continue()
        return Respond(body=entry.body, content_type=entry.content_type)

    async def try_load(
        self,
        policy: CachePolicy,
        ctx: RequestContext,
        state: RequestCacheState,
    ) -> CacheEntry | None:
        """Look up the stored response for this request.

        Args:
            policy: Effective route policy.
            ctx: Current request context.
            state: Request cache state in ``ATTEMPTED``.

        Returns:
            The stored entry on a hit, ``None`` on a miss.

        Raises:
            StoreUnavailable: If the store cannot be reached.
        """
        key = await self._resolver.effective_key(policy, ctx)
        state.cache_key = key

        began_at = time.perf_counter()
        try:
            entry = await self._store.get(key)
        except StoreUnavailable:
            observe_page_cache_lookup("error", time.perf_counter() - began_at)
            raise
        elapsed = time.perf_counter() - began_at

        if entry is None:
            state.mark_miss()
            observe_page_cache_lookup("miss", elapsed)
            return None

        state.mark_hit()
        observe_page_cache_lookup("hit", elapsed)
        logger.debug(
            "page_cache.get",
            extra={"extra": {"key": key, "hit": True, "elapsed_ms": round(elapsed * 1000.0, 3)}},
        )
        return entry
