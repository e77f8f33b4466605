# src/pagecache/adapters/routers/metrics_router.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Prometheus scrape endpoint (`/metrics`).

Registers the page cache metric families before rendering, so their
``# HELP``/``# TYPE`` lines appear on the very first scrape even when no
cached route has been hit yet.

Layer:
    adapters/routers
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from pagecache.infrastructure.logging.logger import get_json_logger
from pagecache.infrastructure.observability.metrics import (
    get_page_cache_lookup_duration_seconds,
    get_page_cache_requests_total,
    get_page_cache_store_duration_seconds,
)

logger = get_json_logger(__name__)
router = APIRouter()

_FAMILIES: tuple[Callable[[], object], ...] = (
    get_page_cache_lookup_duration_seconds,
    get_page_cache_store_duration_seconds,
    get_page_cache_requests_total,
)


def _ensure_registered() -> None:
    for getter in _FAMILIES:
        try:
            getter()
        except Exception as exc:  # pragma: no cover
            logger.debug(
                "metrics_router: failed registering metric",
                extra={"extra": {"metric": getattr(getter, "__name__", "?"), "error": str(exc)}},
            )


@router.get("/metrics", include_in_schema=False)
async def metrics_probe() -> Response:
    """Expose Prometheus metrics in text format."""
    _ensure_registered()
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
