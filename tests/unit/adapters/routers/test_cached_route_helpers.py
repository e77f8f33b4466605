# tests/unit/adapters/routers/test_cached_route_helpers.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response, StreamingResponse
from fastapi.testclient import TestClient

from pagecache.adapters.routers.cached_route import (
    build_request_context,
    install_page_cache,
    response_content_type,
    response_text,
)
from pagecache.application.services.page_cache import PageCache


def test_response_text_decodes_buffered_bodies() -> None:
    assert response_text(HTMLResponse("<b>ok</b>")) == "<b>ok</b>"
    assert response_text(JSONResponse({"a": 1})) == '{"a":1}'


def test_response_text_uses_declared_charset() -> None:
    declared = Response(
        content="café".encode("latin-1"), media_type="text/plain; charset=latin-1"
    )
    attribute = Response(content="café".encode("latin-1"))
    attribute.charset = "latin-1"

    assert response_text(declared) == "café"
    assert response_text(attribute) == "café"


def test_response_text_leaves_binary_and_streams_alone() -> None:
    raw = Response(content=b"\xff\xd8\xff", media_type="image/jpeg")
    stream = StreamingResponse(iter([b"x"]), media_type="text/plain")

    assert response_text(raw) == b"\xff\xd8\xff"
    assert response_text(stream) is None


def test_response_content_type_prefers_header() -> None:
    assert response_content_type(HTMLResponse("x")) == "text/html; charset=utf-8"
    assert response_content_type(Response(content=b"")) is None


def test_build_request_context_overlays_path_params() -> None:
    captured = {}
    app = FastAPI()

    @app.get("/post/{post_id}")
    async def post(post_id: str, request: Request) -> dict[str, str]:
        ctx = build_request_context(request)
        captured["ctx"] = ctx
        return {}

    TestClient(app).get("/post/9?post_id=shadowed&page=2")

    ctx = captured["ctx"]
    assert ctx.path == "/post/9"
    assert ctx.method == "GET"
    assert ctx.params == {"post_id": "9", "page": "2"}
    assert ctx.request is not None


def test_install_page_cache_binds_app_state(recording_store) -> None:
    app = FastAPI()
    page_cache = PageCache(recording_store)

    assert install_page_cache(app, page_cache) is page_cache
    assert app.state.page_cache is page_cache
