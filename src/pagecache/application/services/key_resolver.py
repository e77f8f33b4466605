# src/pagecache/application/services/key_resolver.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Application Service: Cache Key Resolver.

Synopsis:
    Computes the key a response is stored and looked up under. Load and store
    both go through :meth:`KeyResolver.effective_key`, so a response captured
    for a request is always found again by an equivalent request.

Resolution order:
    1. No policy → ``None`` (caller falls back to the request path).
    2. Deferred key → evaluated now, against the request context.
    3. Static key → its literal name.
    4. Neither → ``None``.

Layer:
    application/services
"""

from __future__ import annotations

import inspect

from pagecache.domain.entities.cache_policy import CachePolicy, DeferredKey, StaticKey
from pagecache.domain.entities.request_context import RequestContext

__all__ = ["KeyResolver"]


class KeyResolver:
    """Stateless resolver for route cache keys."""

    async def resolve_key(self, policy: CachePolicy | None, ctx: RequestContext) -> str | None:
        """Return the route-declared key for this request, if any.

        Args:
            policy: Effective route policy, or ``None`` if the route has none.
            ctx: Current request context, passed to deferred keys.

        Returns:
            The resolved key, or ``None`` when the route declares no key.
        """
        if policy is None:
            return None
        key = policy.key
        if isinstance(key, DeferredKey):
            value = key.fn(ctx)
            if inspect.isawaitable(value):
                value = await value
            return None if value is None else str(value)
        if isinstance(key, StaticKey):
            return key.name
        return None

    async def effective_key(self, policy: CachePolicy | None, ctx: RequestContext) -> str:
        """Return the declared key, or the request path when none resolves."""
        return await self.resolve_key(policy, ctx) or ctx.path
