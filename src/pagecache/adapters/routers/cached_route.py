# src/pagecache/adapters/routers/cached_route.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Cached API route.

Summary:
    ``APIRoute`` subclass that wraps the endpoint in the page cache pipeline:

        resolve policy → gate (store lookup) → Respond(200) on hit
                                            → run endpoint → capture on miss

Contract:
    • Reads:  app.state.page_cache (PageCache). Absent → route runs uncached.
    • Stores: request.state.page_cache (RequestCacheState) for the lifetime of
      the request; removed and cleared in ``finally`` on every exit path.
    • Stores: request.state.page_cache_outcome (hit / miss / bypass / error),
      echoed by the request tags middleware.
    • Store failures never fail the request: a failed lookup counts as a miss,
      a failed write leaves the already-built response untouched.

Layer:
    adapters/routers
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from contextlib import suppress
from functools import cached_property
from typing import Any, TypeAlias

from fastapi import FastAPI, Request
from fastapi.routing import APIRoute
from starlette.responses import Response

from pagecache.adapters.routers.declarations import controller_registry, route_cache_options
from pagecache.application.services.page_cache import PageCache
from pagecache.application.services.policy_registry import PolicyRegistry
from pagecache.domain.entities.cache_outcome import Respond
from pagecache.domain.entities.cache_policy import CachePolicy, RouteCacheDeclaration
from pagecache.domain.entities.request_cache_state import RequestCacheState
from pagecache.domain.entities.request_context import RequestContext
from pagecache.domain.exceptions.caching import StoreUnavailable
from pagecache.infrastructure.logging.logger import get_json_logger
from pagecache.infrastructure.middleware.request_tags import CACHE_OUTCOME_ATTR
from pagecache.infrastructure.observability.metrics import record_page_cache_request

__all__ = [
    "CachedRoute",
    "build_request_context",
    "get_request_cache_state",
    "install_page_cache",
    "response_content_type",
    "response_text",
]

_logger: logging.Logger = get_json_logger(__name__)

_STATE_ATTR = "page_cache"

RouteHandler: TypeAlias = Callable[[Request], Coroutine[Any, Any, Response]]


def install_page_cache(app: FastAPI, page_cache: PageCache) -> PageCache:
    """Bind a :class:`PageCache` to an application for its cached routes."""
    app.state.page_cache = page_cache
    return page_cache


def get_request_cache_state(request: Request) -> RequestCacheState | None:
    """Return the cache state of an in-flight request, if it has one."""
    state = getattr(request.state, _STATE_ATTR, None)
    return state if isinstance(state, RequestCacheState) else None


def build_request_context(request: Request) -> RequestContext:
    """Build the read-only context handed to deferred cache keys.

    Path parameters take precedence over query parameters of the same name.
    """
    params: dict[str, Any] = dict(request.query_params)
    params.update(request.path_params)
    return RequestContext(
        path=request.url.path,
        method=request.method.upper(),
        params=params,
        request=request,
    )


def _declared_charset(content_type: str | None) -> str | None:
    for param in (content_type or "").split(";")[1:]:
        name, _, value = param.partition("=")
        if name.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"')
    return None


def response_text(response: Response) -> Any:
    """Return the response body as text when it is textual.

    Returns:
        The decoded body for buffered responses whose bytes decode with the
        charset declared in the content type, else the response charset.
        Otherwise the raw body object (``None`` for streaming/file responses),
        which capture skips.
    """
    body = getattr(response, "body", None)
    if isinstance(body, bytes | bytearray | memoryview):
        try:
            charset = (
                _declared_charset(response_content_type(response))
                or getattr(response, "charset", None)
                or "utf-8"
            )
            return bytes(body).decode(charset)
        except (UnicodeDecodeError, LookupError):
            return body
    return body


def response_content_type(response: Response) -> str | None:
    """Return the content type the client saw for a response."""
    return response.headers.get("content-type") or getattr(response, "media_type", None)


def _tag(request: Request, outcome: str) -> None:
    record_page_cache_request(outcome)
    setattr(request.state, CACHE_OUTCOME_ATTR, outcome)


def _replay(outcome: Respond) -> Response:
    # Re-encode with the charset the client was originally told about.
    charset = _declared_charset(outcome.content_type) or "utf-8"
    return Response(
        content=outcome.body.encode(charset),
        status_code=outcome.status_code,
        media_type=outcome.content_type,
    )


class CachedRoute(APIRoute):
    """API route whose responses may be served from and saved to the page cache."""

    @cached_property
    def cache_declaration(self) -> RouteCacheDeclaration | None:
        """Route cache declaration, or ``None`` if the route declares nothing."""
        registry = controller_registry(self.endpoint)
        options = route_cache_options(self.endpoint)
        if registry is None and options is None:
            return None
        return (registry or PolicyRegistry()).bind(options)

    def get_route_handler(self) -> RouteHandler:
        original_route_handler = super().get_route_handler()

        async def cached_route_handler(request: Request) -> Response:
            page_cache = getattr(request.app.state, "page_cache", None)
            declaration = self.cache_declaration
            if not isinstance(page_cache, PageCache) or declaration is None:
                return await original_route_handler(request)

            state = RequestCacheState()
            setattr(request.state, _STATE_ATTR, state)
            try:
                policy = page_cache.policy_for(declaration)
                return await self._serve(
                    request, page_cache, policy, state, original_route_handler
                )
            finally:
                state.clear()
                with suppress(AttributeError):
                    delattr(request.state, _STATE_ATTR)

        return cached_route_handler

    async def _serve(
        self,
        request: Request,
        page_cache: PageCache,
        policy: CachePolicy,
        state: RequestCacheState,
        handler: RouteHandler,
    ) -> Response:
        ctx = build_request_context(request)

        try:
            outcome = await page_cache.load(policy, ctx, state)
        except StoreUnavailable as exc:
            _logger.warning(
                "page_cache.store_unavailable",
                extra={"extra": {"operation": "get", "path": ctx.path, **exc.describe()}},
            )
            _tag(request, "error")
            state.mark_miss()
            outcome = None

        if isinstance(outcome, Respond):
            _tag(request, "hit")
            return _replay(outcome)

        response = await handler(request)

        if not state.caching_attempted:
            _tag(request, "bypass")
            return response
        if outcome is not None:
            _tag(request, "miss")

        try:
            await page_cache.capture(
                policy,
                ctx,
                state,
                response_text(response),
                response_content_type(response),
                status_code=response.status_code,
            )
        except StoreUnavailable as exc:
            _logger.warning(
                "page_cache.store_unavailable",
                extra={"extra": {"operation": "set", "path": ctx.path, **exc.describe()}},
            )
        return response
