# src/pagecache/main.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""
Application Entry (Adapters Bootstrap)

Synopsis:
    FastAPI bootstrap that wires logging, middleware, structured error
    handlers, the metrics router and an installed :class:`PageCache`. Provides
    an application factory (`create_app`) and a module-level eager app (`app`)
    for ``uvicorn pagecache.main:app``.

Design:
    • Bootstrap only: no caching decisions are made here.
    • The response store is selected from settings unless one is injected.
    • Lifespan closes the shared Redis client on shutdown.
    • Routers passed to ``create_app`` are mounted after the built-in ones.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.responses import Response as StarletteResponse

from pagecache.adapters.routers.cached_route import install_page_cache
from pagecache.adapters.routers.metrics_router import router as metrics_router
from pagecache.application.interfaces.response_store import ResponseStore
from pagecache.application.services.page_cache import PageCache
from pagecache.config.settings import CacheBackend, Settings, get_settings
from pagecache.domain.exceptions.base import DomainError
from pagecache.infrastructure.caching.factory import build_response_store
from pagecache.infrastructure.caching.redis_client import close_redis
from pagecache.infrastructure.http.errors import (
    handle_domain_error,
    handle_http_exception,
    handle_unhandled_exception,
    handle_validation_error,
)
from pagecache.infrastructure.logging.logger import (
    configure_root_logging,
    get_json_logger,
)
from pagecache.infrastructure.middleware.request_tags import RequestTagsMiddleware

logger = get_json_logger(__name__)


# -----------------------------------------------------------------------------
# Lifespan
# -----------------------------------------------------------------------------
@asynccontextmanager
async def runtime_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Tear down shared clients when the application stops.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to FastAPI to serve requests.
    """
    try:
        yield
    finally:
        settings: Settings | None = getattr(app.state, "settings", None)
        if settings is not None and settings.cache_backend is CacheBackend.REDIS:
            await close_redis()
            logger.info("redis client closed")


# -----------------------------------------------------------------------------
# Exception handlers
# -----------------------------------------------------------------------------
def _patch_exception_handlers(app: FastAPI) -> None:
    """Replace default exception handlers with structured equivalents.

    Args:
        app: FastAPI application.
    """

    async def _http_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if isinstance(exc, StarletteHTTPException) and not isinstance(exc, HTTPException):
            exc = HTTPException(status_code=exc.status_code, detail=exc.detail)
        if not isinstance(exc, HTTPException):
            raise exc
        return await handle_http_exception(request, exc)

    async def _validation_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if not isinstance(exc, RequestValidationError):
            raise exc
        return await handle_validation_error(request, exc)

    async def _domain_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if not isinstance(exc, DomainError):
            raise exc
        return await handle_domain_error(request, exc)

    async def _unhandled_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        return await handle_unhandled_exception(request, exc)

    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------
def create_app(
    settings: Settings | None = None,
    store: ResponseStore | None = None,
    *,
    routers: Sequence[APIRouter] = (),
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Explicit settings; defaults to :func:`get_settings`.
        store: Explicit response store; defaults to the configured backend.
        routers: Application routers (typically ``CacheController`` instances).

    Returns:
        FastAPI: Configured application with a :class:`PageCache` installed on
        ``app.state.page_cache``.
    """
    settings = settings or get_settings()
    configure_root_logging(settings.log_level)

    app = FastAPI(
        title="Pagecache",
        version=settings.service_version,
        lifespan=runtime_lifespan,
    )
    app.state.settings = settings

    page_cache = PageCache(
        store if store is not None else build_response_store(settings),
        caching_enabled=settings.caching_enabled,
    )
    install_page_cache(app, page_cache)

    app.add_middleware(RequestTagsMiddleware)
    _patch_exception_handlers(app)

    app.include_router(metrics_router)

    @app.get("/healthz")
    async def healthz() -> JSONResponse:
        """Liveness probe reporting service identity and cache mode."""
        return JSONResponse(
            {
                "status": "ok",
                "service": settings.service_name,
                "version": settings.service_version,
                "caching_enabled": page_cache.caching_enabled,
                "cache_backend": settings.cache_backend.value,
            }
        )

    for router in routers:
        app.include_router(router)

    logger.info(
        "service_startup",
        extra={
            "extra": {
                "service": settings.service_name,
                "env": settings.environment.value,
                "version": settings.service_version,
                "caching_enabled": settings.caching_enabled,
                "cache_backend": settings.cache_backend.value,
            }
        },
    )
    return app


# Eager app for `uvicorn pagecache.main:app`.
app: FastAPI = create_app()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(
        "pagecache.main:create_app",
        factory=True,
        host="127.0.0.1",
        port=int(os.getenv("PORT", "8080")),
    )
