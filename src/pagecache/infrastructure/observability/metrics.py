# src/pagecache/infrastructure/observability/metrics.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Prometheus metrics utilities (registry-aware, hot-reload safe).

Page cache metrics are exposed through accessor functions returning a
collector bound to the **current** ``prometheus_client.REGISTRY``:

    - Safe under hot reload and tests that swap the default registry.
    - No duplicate-registration errors.
    - Cache automatically resets when the active registry changes.

Metrics:
    page_cache_lookup_duration_seconds{result}   hit / miss / error
    page_cache_store_duration_seconds{result}    stored / error
    page_cache_requests_total{outcome}           hit / miss / bypass / error

Example:
    get_page_cache_lookup_duration_seconds().labels(result="hit").observe(0.002)
    record_page_cache_request("bypass")
"""

from __future__ import annotations

import logging
import threading
from contextlib import suppress
from typing import Final, TypeVar

import prometheus_client as prom
from prometheus_client import Counter, Histogram

__all__ = [
    "get_page_cache_lookup_duration_seconds",
    "get_page_cache_requests_total",
    "get_page_cache_store_duration_seconds",
    "observe_page_cache_lookup",
    "observe_page_cache_store",
    "record_page_cache_request",
]

_log = logging.getLogger(__name__)

# Store round-trips are expected to be fast; keep resolution at the low end.
_BUCKETS: Final[tuple[float, ...]] = (
    0.0005,
    0.001,
    0.0025,
    0.005,
    0.010,
    0.025,
    0.050,
    0.100,
    0.250,
    0.500,
    1.000,
)

_C = TypeVar("_C", Histogram, Counter)

# Collectors keyed by metric name within the currently-active registry.
_registry_id: int | None = None
_collectors: dict[str, Histogram | Counter] = {}
_lock = threading.RLock()


def _ensure_registry() -> None:
    """Drop cached collectors if the default registry was swapped (tests)."""
    global _registry_id
    with _lock:
        rid = id(prom.REGISTRY)
        if _registry_id != rid:
            _collectors.clear()
            _registry_id = rid


def _lookup_existing(name: str, kind: type[_C]) -> _C | None:
    """Return a collector of ``kind`` already registered under ``name``."""
    with _lock, suppress(Exception):
        mapping = getattr(prom.REGISTRY, "_names_to_collectors", None)
        if isinstance(mapping, dict):
            col = mapping.get(name)
            if isinstance(col, kind):
                return col
    return None


def _get_or_create(name: str, help_text: str, kind: type[_C], **kwargs: object) -> _C:
    """Get or create a registry-bound collector with stable identity.

    Strategy:
        1. Return from module cache if present for the active registry.
        2. Reuse a collector the registry already knows under this name.
        3. Otherwise register a new one; on a duplicate race, retry step 2.

    Args:
        name: Metric name (snake_case).
        help_text: Human-readable description.
        kind: ``Histogram`` or ``Counter``.
        **kwargs: Extra constructor arguments (``labelnames``, ``buckets``).

    Returns:
        Collector bound to ``prom.REGISTRY``.
    """
    _ensure_registry()
    with _lock:
        cached = _collectors.get(name)
        if isinstance(cached, kind):
            return cached

        existing = _lookup_existing(name, kind)
        if existing is not None:
            _collectors[name] = existing
            return existing

        try:
            col = kind(name, help_text, registry=prom.REGISTRY, **kwargs)  # type: ignore[arg-type]
        except ValueError as exc:
            if "Duplicated timeseries" in str(exc):
                again = _lookup_existing(name, kind)
                if again is not None:
                    _collectors[name] = again
                    return again
            _log.exception("Failed to register Prometheus collector %s", name)
            raise
        _collectors[name] = col
        return col


def get_page_cache_lookup_duration_seconds() -> Histogram:
    """Return histogram for response store lookups.

    Labels:
        result: ``hit`` / ``miss`` / ``error``.
    """
    return _get_or_create(
        "page_cache_lookup_duration_seconds",
        "Latency (seconds) of page cache store lookups.",
        Histogram,
        labelnames=("result",),
        buckets=_BUCKETS,
    )


def get_page_cache_store_duration_seconds() -> Histogram:
    """Return histogram for response store writes.

    Labels:
        result: ``stored`` / ``error``.
    """
    return _get_or_create(
        "page_cache_store_duration_seconds",
        "Latency (seconds) of page cache store writes.",
        Histogram,
        labelnames=("result",),
        buckets=_BUCKETS,
    )


def get_page_cache_requests_total() -> Counter:
    """Return counter of cached-route requests by outcome.

    Labels:
        outcome: ``hit`` / ``miss`` / ``bypass`` / ``error``.
    """
    return _get_or_create(
        "page_cache_requests_total",
        "Requests to cache-declared routes by cache outcome.",
        Counter,
        labelnames=("outcome",),
    )


def observe_page_cache_lookup(result: str, duration: float) -> None:
    """Record a lookup latency sample; never raises."""
    with suppress(Exception):
        get_page_cache_lookup_duration_seconds().labels(result=result).observe(duration)


def observe_page_cache_store(result: str, duration: float) -> None:
    """Record a write latency sample; never raises."""
    with suppress(Exception):
        get_page_cache_store_duration_seconds().labels(result=result).observe(duration)


def record_page_cache_request(outcome: str) -> None:
    """Count one cached-route request; never raises."""
    with suppress(Exception):
        get_page_cache_requests_total().labels(outcome=outcome).inc()
