# src/pagecache/domain/entities/cache_policy.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Cache Policy (Domain Entities).

Synopsis:
    Immutable declaration-time primitives describing how a route is cached:
    the cache key (static or deferred), the expiry, and whether caching is
    enabled at all. Policies are built once when routes are declared and are
    read-only while requests are served.

Layer:
    domain/entities
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any, TypeAlias

from pagecache.domain.exceptions.caching import CacheConfigurationError

if TYPE_CHECKING:  # typing-only
    from pagecache.domain.entities.request_context import RequestContext

Duration: TypeAlias = int | float | timedelta
KeyFunction: TypeAlias = Callable[["RequestContext"], str | Awaitable[str]]

__all__ = [
    "CacheKey",
    "CachePolicy",
    "DeferredKey",
    "Duration",
    "KeyFunction",
    "RouteCacheDeclaration",
    "RouteCacheOptions",
    "StaticKey",
    "make_cache_key",
    "to_seconds",
]


def to_seconds(value: Duration | None) -> int | None:
    """Normalize a duration to whole seconds.

    Args:
        value: Seconds as ``int``/``float``, a ``timedelta``, or ``None``.

    Returns:
        Whole seconds, or ``None`` when no duration was given.

    Raises:
        CacheConfigurationError: If the value is negative or not a duration.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise CacheConfigurationError(
            "Cache expiry must be a number of seconds or a timedelta.",
            details={"value": value},
        )
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, int | float):
        seconds = float(value)
    else:
        raise CacheConfigurationError(
            "Cache expiry must be a number of seconds or a timedelta.",
            details={"value": repr(value)},
        )
    if seconds < 0:
        raise CacheConfigurationError(
            "Cache expiry must not be negative.",
            details={"value": seconds},
        )
    return int(seconds)


@dataclass(frozen=True)
class StaticKey:
    """A cache key known at declaration time.

    Attributes:
        name: Literal key under which the route's response is stored.
    """

    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise CacheConfigurationError("StaticKey.name must be a non-empty string.")


@dataclass(frozen=True)
class DeferredKey:
    """A cache key computed per request from the request context.

    Attributes:
        fn: Callable receiving a :class:`RequestContext` and returning the key
            (or an awaitable resolving to it). Evaluated once per request.
    """

    fn: KeyFunction

    def __post_init__(self) -> None:
        if not callable(self.fn):
            raise CacheConfigurationError("DeferredKey.fn must be callable.")


CacheKey: TypeAlias = StaticKey | DeferredKey


def make_cache_key(name: Any = None, fn: KeyFunction | None = None) -> CacheKey:
    """Build a cache key from a literal name or a deferred callable.

    Args:
        name: Literal key. Non-string values (e.g. enums) are stringified.
        fn: Callable evaluated per request.

    Returns:
        StaticKey or DeferredKey.

    Raises:
        CacheConfigurationError: If both or neither of ``name`` and ``fn`` are given.
    """
    if name is not None and fn is not None:
        raise CacheConfigurationError("Can not provide both a cache key name and a key function.")
    if fn is not None:
        return DeferredKey(fn)
    if name is None:
        raise CacheConfigurationError("A cache key needs either a name or a key function.")
    return StaticKey(name.value if hasattr(name, "value") else str(name))


@dataclass(frozen=True)
class CachePolicy:
    """Effective caching policy for a route.

    Attributes:
        enabled: Whether caching is requested.
        expires: Expiry in whole seconds; ``None`` defers to the store default.
        key: Route key, or ``None`` to fall back to the request path.
    """

    enabled: bool = False
    expires: int | None = None
    key: CacheKey | None = None


@dataclass(frozen=True)
class RouteCacheOptions:
    """Route-level cache declarations collected from endpoint decorators.

    Attributes:
        condition: Raw cache-enable arguments, or ``None`` when the route did
            not declare its own condition.
        condition_options: Keyword options given with the condition (``expires``).
        expires: Route-level expiry override in seconds.
        key: Route-level cache key.
    """

    condition: tuple[Any, ...] | None = None
    condition_options: Mapping[str, Any] = field(default_factory=dict)
    expires: int | None = None
    key: CacheKey | None = None


@dataclass(frozen=True)
class RouteCacheDeclaration:
    """Everything a route needs to resolve its policy at request time.

    Attributes:
        declared: Policy produced by the owning registry when the route was
            declared (controller condition and default expiry snapshot).
        route: Route-level overrides.
    """

    declared: CachePolicy | None
    route: RouteCacheOptions = field(default_factory=RouteCacheOptions)
