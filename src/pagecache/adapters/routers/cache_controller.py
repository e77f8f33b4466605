# src/pagecache/adapters/routers/cache_controller.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Cache-aware controller router.

Summary:
    ``APIRouter`` subclass grouping routes that share cache defaults. The
    controller holds a :class:`PolicyRegistry`; every route added to it is
    stamped with a snapshot of that registry at declaration time.

Usage:
    blog = CacheController(prefix="/blog", cache=True, expires=15)

    @blog.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return "recent posts"

    blog.expires(60)          # applies to routes declared below only

    @blog.get("/archive", response_class=PlainTextResponse)
    async def archive() -> str: ...

    app.include_router(blog)

Layer:
    adapters/routers
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi import APIRouter

from pagecache.adapters.routers.cached_route import CachedRoute
from pagecache.adapters.routers.declarations import bind_controller_registry
from pagecache.application.interfaces.response_store import ResponseStore
from pagecache.application.services.page_cache import PageCache
from pagecache.application.services.policy_registry import PolicyRegistry
from pagecache.domain.entities.cache_policy import CachePolicy, Duration

__all__ = ["CacheController"]


class CacheController(APIRouter):
    """Router whose routes inherit a controller-level cache declaration.

    Args:
        cache: Controller cache condition. ``True`` enables caching for every
            route; a mapping such as ``{"expires": 10}`` enables it with an
            expiry. ``None`` leaves routes uncached unless they opt in.
        expires: Initial default expiry for routes declared on the controller.
        page_cache: Optional facade returned by the :meth:`cache` accessor.
        **kwargs: Forwarded to :class:`fastapi.APIRouter`.
    """

    def __init__(
        self,
        *,
        cache: Any = None,
        expires: Duration | None = None,
        page_cache: PageCache | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("route_class", CachedRoute)
        super().__init__(**kwargs)
        self.registry = PolicyRegistry(default_expiry=expires)
        self.page_cache = page_cache
        if cache is not None:
            self.registry.declare_controller(cache)

    def expires(self, duration: Duration | None) -> None:
        """Set the default expiry for routes declared after this call."""
        self.registry.set_default_expiry(duration)

    def cache(self, *args: Any, **options: Any) -> ResponseStore | CachePolicy | None:
        """Declare the controller cache condition, or return the store.

        With no arguments returns the bound page cache's store (``None`` if the
        controller has no page cache).
        """
        if not args and not options:
            return self.page_cache.store if self.page_cache is not None else None
        return self.registry.declare_controller(*args, **options)

    def add_api_route(self, path: str, endpoint: Callable[..., Any], **kwargs: Any) -> None:
        bind_controller_registry(endpoint, self.registry)
        super().add_api_route(path, endpoint, **kwargs)
