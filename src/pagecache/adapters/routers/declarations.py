# src/pagecache/adapters/routers/declarations.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Route-level cache declarations (endpoint decorators).

Synopsis:
    Decorators that annotate an endpoint function with route-level cache
    options. They validate eagerly, so a bad declaration fails at import time,
    before any request is served. Annotations live on the endpoint itself,
    which keeps them attached when FastAPI copies routes in ``include_router``.

Usage:
    @blog.get("/post/{post_id}")
    @cache_key(fn=lambda ctx: f"post:{ctx.params['post_id']}")
    @expires(5)
    async def show_post(post_id: int) -> str: ...

Layer:
    adapters/routers
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import Any, Final, TypeVar

from pagecache.application.services.policy_registry import PolicyRegistry
from pagecache.domain.entities.cache_policy import (
    DeferredKey,
    Duration,
    KeyFunction,
    RouteCacheOptions,
    StaticKey,
    make_cache_key,
    to_seconds,
)
from pagecache.domain.exceptions.caching import CacheConfigurationError

__all__ = [
    "cache_key",
    "cached",
    "controller_registry",
    "expires",
    "route_cache_options",
]

F = TypeVar("F", bound=Callable[..., Any])

_OPTIONS_ATTR: Final[str] = "__page_cache_options__"
_REGISTRY_ATTR: Final[str] = "__page_cache_registry__"


def _target(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    # Bound methods forward attribute reads to __func__ but reject writes.
    return getattr(endpoint, "__func__", endpoint)


def route_cache_options(endpoint: Callable[..., Any]) -> RouteCacheOptions | None:
    """Return the route-level options declared on an endpoint, if any."""
    options = getattr(endpoint, _OPTIONS_ATTR, None)
    return options if isinstance(options, RouteCacheOptions) else None


def controller_registry(endpoint: Callable[..., Any]) -> PolicyRegistry | None:
    """Return the controller registry snapshot bound to an endpoint, if any."""
    registry = getattr(endpoint, _REGISTRY_ATTR, None)
    return registry if isinstance(registry, PolicyRegistry) else None


def bind_controller_registry(endpoint: Callable[..., Any], registry: PolicyRegistry) -> None:
    """Attach a controller registry snapshot unless one is already bound."""
    if controller_registry(endpoint) is None:
        setattr(_target(endpoint), _REGISTRY_ATTR, registry.snapshot())


def _update(endpoint: F, **changes: Any) -> F:
    current = route_cache_options(endpoint) or RouteCacheOptions()
    setattr(_target(endpoint), _OPTIONS_ATTR, replace(current, **changes))
    return endpoint


def expires(duration: Duration) -> Callable[[F], F]:
    """Set the expiry of a single route, overriding any controller default.

    Args:
        duration: Seconds or ``timedelta``.
    """
    seconds = to_seconds(duration)

    def decorator(endpoint: F) -> F:
        return _update(endpoint, expires=seconds)

    return decorator


def cache_key(name: Any = None, fn: KeyFunction | None = None) -> Callable[[F], F]:
    """Name the cache slot of a route.

    Args:
        name: Literal key shared by every request to the route.
        fn: Callable receiving the request context and returning the key;
            evaluated once per request.

    Raises:
        CacheConfigurationError: If both or neither of ``name`` and ``fn`` are
            given, or if the route already declared a key of the other kind.
    """
    key = make_cache_key(name, fn)

    def decorator(endpoint: F) -> F:
        existing = route_cache_options(endpoint)
        if existing is not None and existing.key is not None:
            kinds = {type(existing.key), type(key)}
            if kinds == {StaticKey, DeferredKey}:
                raise CacheConfigurationError(
                    "Can not provide both a cache key name and a key function.",
                    details={"endpoint": getattr(endpoint, "__name__", repr(endpoint))},
                )
        return _update(endpoint, key=key)

    return decorator


def cached(*args: Any, expires: Duration | None = None) -> Callable[[F], F]:
    """Declare a route cacheable, overriding the controller condition.

    Args:
        *args: Enable condition. No arguments means "enabled"; a single value
            enables caching iff truthy; a trailing mapping may carry ``expires``.
        expires: Inline expiry for this declaration.
    """
    condition = args or (True,)
    options: dict[str, Any] = {} if expires is None else {"expires": expires}
    # Evaluate once now so invalid declarations fail at import time.
    PolicyRegistry().declare_route(*condition, **options)

    def decorator(endpoint: F) -> F:
        return _update(endpoint, condition=tuple(condition), condition_options=options)

    return decorator
