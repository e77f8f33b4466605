# src/pagecache/domain/entities/request_cache_state.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Request Cache State (Domain Entity).

Synopsis:
    Transient, request-scoped flags recording whether caching was attempted for
    the current request and whether the store produced a hit. One instance is
    allocated per request and cleared on teardown; it is never shared between
    requests.

Transitions:
    FRESH ──mark_attempted──▶ ATTEMPTED ──mark_hit──▶ HIT
                                       └─mark_miss─▶ MISS_RECORDED
    any ──clear──▶ FRESH

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass

from pagecache.domain.enums.cache_phase import CachePhase
from pagecache.domain.exceptions.caching import InvalidCacheTransition


@dataclass
class RequestCacheState:
    """Mutable per-request cache flags.

    Attributes:
        phase: Current lifecycle phase.
        effective_expiry: Expiry (seconds) chosen for this request, if any.
        cache_key: Key resolved for this request, so load and capture share it.
    """

    phase: CachePhase = CachePhase.FRESH
    effective_expiry: int | None = None
    cache_key: str | None = None

    @property
    def caching_attempted(self) -> bool:
        """True once the policy applied and the store was consulted."""
        return self.phase is not CachePhase.FRESH

    @property
    def cache_hit(self) -> bool:
        """True if the response was served from the store."""
        return self.phase is CachePhase.HIT

    @property
    def is_fresh(self) -> bool:
        return self.phase is CachePhase.FRESH

    def mark_attempted(self, expiry: int | None) -> None:
        """Record that caching applies to this request.

        Args:
            expiry: Effective expiry in seconds for a later store write.

        Raises:
            InvalidCacheTransition: If the state is not ``FRESH``.
        """
        self._require(CachePhase.FRESH, target=CachePhase.ATTEMPTED)
        self.phase = CachePhase.ATTEMPTED
        self.effective_expiry = expiry

    def mark_hit(self) -> None:
        """Record a store hit."""
        self._require(CachePhase.ATTEMPTED, target=CachePhase.HIT)
        self.phase = CachePhase.HIT

    def mark_miss(self) -> None:
        """Record a store miss; the route will run and capture afterwards."""
        self._require(CachePhase.ATTEMPTED, target=CachePhase.MISS_RECORDED)
        self.phase = CachePhase.MISS_RECORDED

    def clear(self) -> None:
        """Reset every flag. Safe to call from any phase."""
        self.phase = CachePhase.FRESH
        self.effective_expiry = None
        self.cache_key = None

    def _require(self, expected: CachePhase, *, target: CachePhase) -> None:
        if self.phase is not expected:
            raise InvalidCacheTransition(
                f"Cannot move request cache state from {self.phase.value} to {target.value}.",
                details={"from": self.phase.value, "to": target.value},
            )
