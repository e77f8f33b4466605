# src/pagecache/infrastructure/http/errors.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""JSON error envelopes for the HTTP surface.

Every error leaves the service as ``{"error": {code, http_status, message,
details?, trace_id?}}``. ``trace_id`` carries the request id assigned by
``RequestTagsMiddleware``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.responses import Response

from pagecache.domain.exceptions.base import DomainError
from pagecache.domain.exceptions.caching import CacheConfigurationError, InvalidCacheTransition

logger = logging.getLogger(__name__)

_DOMAIN_STATUS: dict[type[DomainError], int] = {
    CacheConfigurationError: 500,
    InvalidCacheTransition: 500,
}


def _jsonable(payload: dict[str, Any]) -> Any:
    # Validation error ctx may hold exception instances.
    return jsonable_encoder(payload, custom_encoder={Exception: str})


def _trace_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


def error_envelope(
    *,
    code: str,
    http_status: int,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
) -> dict[str, Any]:
    err: dict[str, Any] = {
        "code": code,
        "http_status": http_status,
        "message": message,
    }
    if details is not None:
        err["details"] = details
    if trace_id is not None:
        err["trace_id"] = trace_id
    return {"error": err}


async def handle_validation_error(request: Request, exc: RequestValidationError) -> Response:
    payload = error_envelope(
        code="VALIDATION_ERROR",
        http_status=422,
        message="Request validation failed",
        details={"errors": exc.errors()},
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=422, content=_jsonable(payload))


async def handle_http_exception(request: Request, exc: HTTPException) -> Response:
    payload = error_envelope(
        code="HTTP_ERROR",
        http_status=exc.status_code,
        message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
        details=None if isinstance(exc.detail, str) else {"detail": exc.detail},
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)


async def handle_domain_error(request: Request, exc: DomainError) -> Response:
    """Map a domain error to its envelope; cache errors are server faults."""
    status = next(
        (code for kind, code in _DOMAIN_STATUS.items() if isinstance(exc, kind)),
        400,
    )
    logger.error(
        "domain error",
        extra={"extra": {"path": request.url.path, **exc.describe()}},
    )
    payload = error_envelope(
        code=exc.code,
        http_status=status,
        message=exc.message,
        details=exc.details or None,
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=status, content=_jsonable(payload))


async def handle_unhandled_exception(request: Request, exc: Exception) -> Response:
    logger.exception("unhandled exception", extra={"extra": {"path": request.url.path}})
    payload = error_envelope(
        code="INTERNAL_ERROR",
        http_status=500,
        message="Internal server error",
        details=None,
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=500, content=payload)
