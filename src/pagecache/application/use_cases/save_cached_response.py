# src/pagecache/application/use_cases/save_cached_response.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Use case: Save cached response (capture).

Synopsis:
    After a route ran without a cache hit, persist its body and content type
    under the same key the load step resolved, with the effective expiry.
    Only non-empty textual bodies are stored. Redirects are never stored, since
    a replay carries neither their status nor their ``Location`` header.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pagecache.application.interfaces.response_store import ResponseStore
from pagecache.application.services.key_resolver import KeyResolver
from pagecache.domain.entities.cache_entry import CacheEntry
from pagecache.domain.entities.cache_policy import CachePolicy
from pagecache.domain.entities.request_context import RequestContext
from pagecache.domain.exceptions.caching import StoreUnavailable
from pagecache.infrastructure.observability.metrics import observe_page_cache_store

logger = logging.getLogger(__name__)


class ResponseCapture:
    """Persist freshly generated responses for reuse."""

    def __init__(self, *, store: ResponseStore, resolver: KeyResolver | None = None) -> None:
        self._store = store
        self._resolver = resolver or KeyResolver()

    async def try_store(
        self,
        policy: CachePolicy,
        ctx: RequestContext,
        body: Any,
        content_type: str | None,
        expires: int | None,
        *,
        key: str | None = None,
        status_code: int = 200,
    ) -> bool:
        """Store the response if its body is non-empty text.

        Args:
            policy: Effective route policy.
            ctx: Request context the response was generated for.
            body: Response body; only ``str`` values are stored.
            content_type: Response content type.
            expires: Effective expiry in seconds; ``None`` uses the store default.
            key: Key already resolved for this request by the load step. When
                omitted it is resolved again with the same algorithm.
            status_code: Status the endpoint answered with; 3xx is skipped.

        Returns:
            True if a write was issued, False if the body was skipped.

        Raises:
            StoreUnavailable: If the store cannot be reached.
        """
        if not isinstance(body, str) or not body:
            return False
        if 300 <= status_code < 400:
            return False

        cache_key = key or await self._resolver.effective_key(policy, ctx)
        entry = CacheEntry(body=body, content_type=content_type)

        began_at = time.perf_counter()
        try:
            await self._store.set(cache_key, entry, expires=expires)
        except StoreUnavailable:
            observe_page_cache_store("error", time.perf_counter() - began_at)
            raise
        elapsed = time.perf_counter() - began_at

        observe_page_cache_store("stored", elapsed)
        logger.debug(
            "page_cache.set",
            extra={
                "extra": {
                    "key": cache_key,
                    "expires": expires,
                    "elapsed_ms": round(elapsed * 1000.0, 3),
                }
            },
        )
        return True
