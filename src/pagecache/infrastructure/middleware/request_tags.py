# src/pagecache/infrastructure/middleware/request_tags.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Request Tags Middleware.

Summary:
    Tags every request with a correlation id and every response with what the
    page cache did for it, then writes one access line per request.

Contract:
    • Reads:  X-Request-ID (optional; reused only when it matches the safe
      charset), request.state.page_cache_outcome (set by cached routes).
    • Writes: X-Request-ID (always), X-Page-Cache (``hit`` / ``miss`` /
      ``bypass`` / ``error``; only for responses of cached routes).
    • Stores: request.state.request_id (str).

Fields (access line):
    evt, method, path, status, cache, elapsed_ms. ``request_id`` comes from the
    logging contextvars.

Usage:
    app.add_middleware(RequestTagsMiddleware)
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Any, Final

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from pagecache.infrastructure.logging.logger import get_json_logger, set_request_context

__all__ = [
    "CACHE_OUTCOME_ATTR",
    "PAGE_CACHE_HEADER",
    "REQUEST_ID_HEADER",
    "RequestTagsMiddleware",
    "coerce_request_id",
]

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
PAGE_CACHE_HEADER: Final[str] = "X-Page-Cache"
CACHE_OUTCOME_ATTR: Final[str] = "page_cache_outcome"

_SAFE_ID: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9\-_.:@]{1,128}$")

_logger: logging.Logger = get_json_logger(__name__)


def coerce_request_id(raw: str | None) -> str:
    """Return ``raw`` when it is a safe id, else a fresh UUID4."""
    return raw if raw and _SAFE_ID.match(raw) else uuid.uuid4().hex


class RequestTagsMiddleware(BaseHTTPMiddleware):
    """Correlation id and cache outcome tagging for every request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = coerce_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        began_at = time.perf_counter()
        response = await call_next(request)

        outcome = getattr(request.state, CACHE_OUTCOME_ATTR, None)
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        if outcome is not None:
            response.headers[PAGE_CACHE_HEADER] = str(outcome)

        access: dict[str, Any] = {
            "evt": "access",
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "cache": outcome,
            "elapsed_ms": round((time.perf_counter() - began_at) * 1000.0, 2),
        }
        _logger.info("request.completed", extra={"extra": access})
        return response
