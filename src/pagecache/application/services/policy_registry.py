# src/pagecache/application/services/policy_registry.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Application Service: Policy Registry.

Synopsis:
    Holds declaration-time cache defaults for a controller (a group of routes)
    and turns cache-enable conditions into declared policies. Also exposes the
    explicit precedence function used at request time:

        global caching flag → controller declaration → route override

Design:
    * The registry is mutated only while routes are being declared. Each route
      receives an immutable snapshot (:class:`RouteCacheDeclaration`), so a
      later ``set_default_expiry`` affects only routes declared afterwards.
    * Route-level expiry and key always win over controller values at
      evaluation time, regardless of source order.
    * Only ``GET`` and ``HEAD`` are ever cached.

Layer:
    application/services
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from pagecache.domain.entities.cache_policy import (
    CachePolicy,
    Duration,
    RouteCacheDeclaration,
    RouteCacheOptions,
    to_seconds,
)
from pagecache.domain.exceptions.caching import CacheConfigurationError

__all__ = [
    "CACHED_METHODS",
    "PolicyRegistry",
    "is_cacheable_request",
    "resolve_policy",
]

#: HTTP methods whose responses may be cached.
CACHED_METHODS: Final[frozenset[str]] = frozenset({"GET", "HEAD"})

_CONDITION_OPTIONS: Final[frozenset[str]] = frozenset({"expires"})


def is_cacheable_request(method: str, *, caching_enabled: bool) -> bool:
    """Return True if a request may use the cache at all.

    Args:
        method: HTTP method of the request.
        caching_enabled: Global caching feature flag.
    """
    return caching_enabled and method.upper() in CACHED_METHODS


def resolve_policy(
    *,
    caching_enabled: bool,
    declared: CachePolicy | None,
    route: RouteCacheOptions | None,
) -> CachePolicy:
    """Combine the three configuration tiers into one effective policy.

    Args:
        caching_enabled: Global caching feature flag.
        declared: Policy declared for the route through its registry (the
            controller condition and default expiry snapshot), if any.
        route: Route-level overrides, if any.

    Returns:
        The effective policy. ``enabled`` is False whenever the global flag is
        off or the route was never declared cacheable.
    """
    base = declared or CachePolicy()
    overrides = route or RouteCacheOptions()
    expires = overrides.expires if overrides.expires is not None else base.expires
    key = overrides.key if overrides.key is not None else base.key
    return CachePolicy(enabled=caching_enabled and base.enabled, expires=expires, key=key)


class PolicyRegistry:
    """Controller-scope cache defaults.

    Args:
        default_expiry: Initial default expiry for routes declared in scope.
    """

    def __init__(self, *, default_expiry: Duration | None = None) -> None:
        self._default_expiry: int | None = to_seconds(default_expiry)
        self._condition: tuple[Any, ...] | None = None
        self._condition_options: dict[str, Any] = {}

    @property
    def default_expiry(self) -> int | None:
        """Current controller default expiry in seconds."""
        return self._default_expiry

    @property
    def caching_declared(self) -> bool:
        """True if a controller-level cache condition was declared."""
        return self._condition is not None

    def set_default_expiry(self, duration: Duration | None) -> None:
        """Set the default expiry for every route declared from now on.

        Args:
            duration: Seconds or ``timedelta``; ``None`` clears the default.
        """
        self._default_expiry = to_seconds(duration)

    def declare_route(self, *args: Any, **options: Any) -> CachePolicy | None:
        """Evaluate a cache-enable condition against the current defaults.

        Accepted shapes:
            * ``()`` → caching not requested; returns ``None``.
            * ``(value,)`` → enabled iff ``value`` is truthy.
            * ``(*values, {"expires": n})`` → the trailing mapping overrides the
              default expiry; the remaining values must all be truthy.
            * ``expires=n`` keyword → same as a trailing mapping.

        Returns:
            The declared policy, or ``None`` if no condition was given.

        Raises:
            CacheConfigurationError: On unknown options or invalid expiry.
        """
        unknown = set(options) - _CONDITION_OPTIONS
        if unknown:
            raise CacheConfigurationError(
                "Unknown cache options.", details={"options": sorted(unknown)}
            )
        if not args and not options:
            return None

        values = list(args)
        trailing: Mapping[str, Any] | None = None
        if values and isinstance(values[-1], Mapping):
            trailing = values.pop()

        expires = self._default_expiry
        if trailing is not None and trailing.get("expires") is not None:
            expires = to_seconds(trailing["expires"])
        if options.get("expires") is not None:
            expires = to_seconds(options["expires"])

        if values:
            enabled = all(bool(v) for v in values)
        elif trailing is not None:
            enabled = bool(trailing)
        else:
            enabled = True

        return CachePolicy(enabled=enabled, expires=expires)

    def declare_controller(self, *args: Any, **options: Any) -> CachePolicy | None:
        """Record the controller-level cache condition.

        Routes declared afterwards inherit it unless they declare their own.

        Returns:
            The policy the condition evaluates to right now, or ``None`` if no
            condition was given (nothing is recorded in that case).
        """
        policy = self.declare_route(*args, **options)
        if policy is not None:
            self._condition = tuple(args)
            self._condition_options = dict(options)
        return policy

    def snapshot(self) -> PolicyRegistry:
        """Return a detached copy of the current defaults and condition."""
        copy = PolicyRegistry(default_expiry=self._default_expiry)
        copy._condition = self._condition
        copy._condition_options = dict(self._condition_options)
        return copy

    def bind(self, route: RouteCacheOptions | None = None) -> RouteCacheDeclaration:
        """Snapshot the declaration for a route being added to the controller.

        Args:
            route: Route-level options collected from endpoint decorators.

        Returns:
            An immutable declaration carrying the declared policy and overrides.
        """
        options = route or RouteCacheOptions()
        if options.condition is not None:
            declared = self.declare_route(*options.condition, **dict(options.condition_options))
        elif self._condition is not None:
            declared = self.declare_route(*self._condition, **self._condition_options)
        else:
            declared = None
        return RouteCacheDeclaration(declared=declared, route=options)
