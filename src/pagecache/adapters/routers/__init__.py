"""Routers Package Export (Adapters Layer).

Purpose:
    Stable import site for the declaration surface used by applications:

        from pagecache.adapters.routers import CacheController, cache_key, expires

Layer:
    adapters/routers
"""

from __future__ import annotations

from .cache_controller import CacheController
from .cached_route import CachedRoute, get_request_cache_state, install_page_cache
from .declarations import cache_key, cached, expires

__all__ = [
    "CacheController",
    "CachedRoute",
    "cache_key",
    "cached",
    "expires",
    "get_request_cache_state",
    "install_page_cache",
]
