# tests/unit/adapters/routers/test_cached_route_pipeline.py
from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi import Request
from fastapi.responses import (
    PlainTextResponse,
    RedirectResponse,
    Response,
    StreamingResponse,
)
from prometheus_client import REGISTRY

from pagecache.adapters.routers.cache_controller import CacheController
from pagecache.adapters.routers.cached_route import get_request_cache_state
from pagecache.adapters.routers.declarations import cache_key, cached, expires
from pagecache.domain.entities.cache_entry import CacheEntry
from pagecache.domain.entities.request_cache_state import RequestCacheState


def _requests_total(outcome: str) -> float:
    return REGISTRY.get_sample_value("page_cache_requests_total", {"outcome": outcome}) or 0.0


def test_miss_then_hit_replays_body_and_content_type(make_client, recording_store) -> None:
    calls: list[str] = []
    blog = CacheController(prefix="/blog", cache=True)

    @blog.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        calls.append("index")
        return f"rendered #{len(calls)}"

    client = make_client(blog, store=recording_store)

    first = client.get("/blog/")
    second = client.get("/blog/")

    assert first.status_code == 200
    assert first.text == "rendered #1"
    assert second.status_code == 200
    assert second.text == "rendered #1"
    assert second.headers["content-type"] == first.headers["content-type"]
    assert calls == ["index"]
    assert recording_store.gets == ["/blog/", "/blog/"]
    assert [key for key, _, _ in recording_store.sets] == ["/blog/"]


def test_hit_always_replays_status_200(make_client, recording_store) -> None:
    blog = CacheController(cache=True)

    @blog.get("/created", status_code=201, response_class=PlainTextResponse)
    async def created() -> str:
        return "made"

    client = make_client(blog, store=recording_store)

    assert client.get("/created").status_code == 201
    replay = client.get("/created")
    assert replay.status_code == 200
    assert replay.text == "made"


def test_json_endpoints_are_cached_with_json_content_type(make_client, recording_store) -> None:
    calls: list[int] = []
    api = CacheController(cache=True)

    @api.get("/items")
    async def items() -> dict[str, list[int]]:
        calls.append(1)
        return {"items": [1, 2, 3]}

    client = make_client(api, store=recording_store)
    client.get("/items")
    replay = client.get("/items")

    assert replay.json() == {"items": [1, 2, 3]}
    assert replay.headers["content-type"] == "application/json"
    assert len(calls) == 1


@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
def test_unsafe_methods_never_touch_the_store(make_client, recording_store, method) -> None:
    forms = CacheController(cache=True)

    @forms.api_route(
        "/submit",
        methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
        response_class=PlainTextResponse,
    )
    async def submit() -> str:
        return "ok"

    client = make_client(forms, store=recording_store)
    assert client.request(method, "/submit").text == "ok"
    assert client.request(method, "/submit").text == "ok"

    assert recording_store.gets == []
    assert recording_store.sets == []


def test_head_miss_is_captured_and_served_to_get(make_client, recording_store) -> None:
    calls: list[str] = []
    pages = CacheController(cache=True)

    @pages.api_route("/page", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    async def page(request: Request) -> str:
        calls.append(request.method)
        return "page body"

    client = make_client(pages, store=recording_store)

    assert client.head("/page").status_code == 200
    replay = client.get("/page")

    assert replay.status_code == 200
    assert replay.text == "page body"
    assert calls == ["HEAD"]
    assert recording_store.gets == ["/page", "/page"]
    assert [key for key, _, _ in recording_store.sets] == ["/page"]


def test_global_flag_off_runs_every_request(make_client, recording_store) -> None:
    calls: list[int] = []
    blog = CacheController(cache=True)

    @blog.get("/post", response_class=PlainTextResponse)
    @expires(15)
    async def post() -> str:
        calls.append(1)
        return "post"

    client = make_client(blog, store=recording_store, caching_enabled=False)
    client.get("/post")
    client.get("/post")

    assert len(calls) == 2
    assert recording_store.gets == []
    assert recording_store.sets == []


def test_route_expiry_overrides_controller_default(make_client, recording_store) -> None:
    blog = CacheController(cache=True, expires=60)

    @blog.get("/fast", response_class=PlainTextResponse)
    @expires(5)
    async def fast() -> str:
        return "fast"

    @blog.get("/slow", response_class=PlainTextResponse)
    async def slow() -> str:
        return "slow"

    client = make_client(blog, store=recording_store)
    client.get("/fast")
    client.get("/slow")

    assert {key: ttl for key, _, ttl in recording_store.sets} == {"/fast": 5, "/slow": 60}


def test_decorator_order_does_not_matter(make_client, recording_store) -> None:
    blog = CacheController(cache=True, expires=60)

    @expires(7)
    @blog.get("/above", response_class=PlainTextResponse)
    async def above() -> str:
        return "above"

    client = make_client(blog, store=recording_store)
    client.get("/above")

    assert recording_store.sets[0][2] == 7


def test_controller_expires_applies_to_later_routes_only(make_client, recording_store) -> None:
    blog = CacheController(cache=True)

    @blog.get("/before", response_class=PlainTextResponse)
    async def before() -> str:
        return "before"

    blog.expires(60)

    @blog.get("/after", response_class=PlainTextResponse)
    async def after() -> str:
        return "after"

    client = make_client(blog, store=recording_store)
    client.get("/before")
    client.get("/after")

    assert {key: ttl for key, _, ttl in recording_store.sets} == {"/before": None, "/after": 60}


def test_static_key_shares_one_slot_across_paths(make_client, recording_store) -> None:
    pages = CacheController(cache=True)

    @pages.get("/page/{slug}", response_class=PlainTextResponse)
    @cache_key("my_name")
    async def page(slug: str) -> str:
        return f"page {slug}"

    client = make_client(pages, store=recording_store)

    assert client.get("/page/a").text == "page a"
    assert client.get("/page/b").text == "page a"
    assert recording_store.gets == ["my_name", "my_name"]


def test_deferred_key_uses_path_params(make_client, recording_store) -> None:
    calls: list[str] = []
    blog = CacheController(prefix="/blog", cache=True)

    @blog.get("/post/{post_id}", response_class=PlainTextResponse)
    @cache_key(fn=lambda ctx: f"post:{ctx.params['post_id']}")
    async def show(post_id: str, request: Request) -> str:
        calls.append(post_id)
        return f"post {post_id}"

    client = make_client(blog, store=recording_store)
    client.get("/blog/post/1")
    client.get("/blog/post/1?utm=x")
    client.get("/blog/post/2")

    assert calls == ["1", "2"]
    assert [key for key, _, _ in recording_store.sets] == ["post:1", "post:2"]


def test_route_condition_opts_out_of_controller_cache(make_client, recording_store) -> None:
    calls: list[int] = []
    blog = CacheController(cache=True)

    @blog.get("/live", response_class=PlainTextResponse)
    @cached(False)
    async def live() -> str:
        calls.append(1)
        return "live"

    client = make_client(blog, store=recording_store)
    client.get("/live")
    client.get("/live")

    assert len(calls) == 2
    assert recording_store.gets == []


def test_route_condition_opts_in_on_plain_controller(make_client, recording_store) -> None:
    blog = CacheController()

    @blog.get("/opt-in", response_class=PlainTextResponse)
    @cached(expires=9)
    async def opt_in() -> str:
        return "in"

    @blog.get("/plain", response_class=PlainTextResponse)
    async def plain() -> str:
        return "plain"

    client = make_client(blog, store=recording_store)
    client.get("/opt-in")
    client.get("/plain")

    assert recording_store.sets == [("/opt-in", CacheEntry("in", "text/plain; charset=utf-8"), 9)]


def test_non_textual_response_is_not_captured(make_client, recording_store) -> None:
    files = CacheController(cache=True)

    @files.get("/blob")
    async def blob() -> Response:
        return Response(content=b"\xff\xfe\x00binary", media_type="application/octet-stream")

    @files.get("/stream")
    async def stream() -> StreamingResponse:
        def chunks() -> Iterator[bytes]:
            yield b"chunk"

        return StreamingResponse(chunks(), media_type="text/plain")

    client = make_client(files, store=recording_store)
    client.get("/blob")
    client.get("/blob")
    client.get("/stream")

    assert recording_store.gets == ["/blob", "/blob", "/stream"]
    assert recording_store.sets == []


def test_redirects_are_not_replayed_as_empty_pages(make_client, recording_store) -> None:
    moved = CacheController(cache=True)

    @moved.get("/old")
    async def old() -> RedirectResponse:
        return RedirectResponse("/new")

    client = make_client(moved, store=recording_store)
    first = client.get("/old", follow_redirects=False)
    second = client.get("/old", follow_redirects=False)

    assert first.status_code == second.status_code == 307
    assert second.headers["location"] == "/new"
    assert recording_store.gets == ["/old", "/old"]
    assert recording_store.sets == []


def test_hit_replays_bytes_in_the_declared_charset(make_client, recording_store) -> None:
    pages = CacheController(cache=True)
    latin = "caf\u00e9 cr\u00e8me".encode("latin-1")

    @pages.get("/menu")
    async def menu() -> Response:
        return Response(content=latin, media_type="text/plain; charset=latin-1")

    client = make_client(pages, store=recording_store)
    first = client.get("/menu")
    second = client.get("/menu")

    assert len(recording_store.sets) == 1
    assert second.content == first.content == latin
    assert second.headers["content-type"] == "text/plain; charset=latin-1"


def test_state_is_cleared_after_each_request(make_client, recording_store) -> None:
    seen: list[RequestCacheState | None] = []
    blog = CacheController(cache=True)

    @blog.get("/inspect", response_class=PlainTextResponse)
    async def inspect(request: Request) -> str:
        state = get_request_cache_state(request)
        seen.append(state)
        return state.phase.value if state else "none"

    client = make_client(blog, store=recording_store)
    resp = client.get("/inspect")

    assert resp.text == "miss_recorded"
    assert seen[0] is not None
    assert seen[0].is_fresh
    assert seen[0].cache_key is None


def test_state_is_fresh_after_endpoint_error(make_client, recording_store) -> None:
    seen: list[RequestCacheState] = []
    attempts: list[int] = []
    blog = CacheController(cache=True)

    @blog.get("/flaky", response_class=PlainTextResponse)
    async def flaky(request: Request) -> str:
        state = get_request_cache_state(request)
        assert state is not None
        seen.append(state)
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("boom")
        return "recovered"

    client = make_client(blog, store=recording_store, raise_server_exceptions=False)

    assert client.get("/flaky").status_code == 500
    assert seen[0].is_fresh
    assert client.get("/flaky").text == "recovered"
    assert client.get("/flaky").text == "recovered"
    assert len(attempts) == 2
    assert seen[1] is not seen[0]


def test_store_failure_on_load_serves_fresh(make_client, failing_store) -> None:
    store = failing_store(fail_get=True, fail_set=False)
    blog = CacheController(cache=True)

    @blog.get("/down", response_class=PlainTextResponse)
    async def down() -> str:
        return "still here"

    client = make_client(blog, store=store)
    before = _requests_total("error")
    resp = client.get("/down")

    assert resp.status_code == 200
    assert resp.text == "still here"
    assert _requests_total("error") == before + 1
    # The miss is still captured once the store accepts writes.
    assert [key for key, _, _ in store.sets] == ["/down"]


def test_store_failure_on_write_still_returns_response(make_client, failing_store) -> None:
    store = failing_store(fail_get=False, fail_set=True)
    blog = CacheController(cache=True)

    @blog.get("/readonly", response_class=PlainTextResponse)
    async def readonly() -> str:
        return "served"

    client = make_client(blog, store=store)
    resp = client.get("/readonly")

    assert resp.status_code == 200
    assert resp.text == "served"
    assert len(store.sets) == 1


def test_deferred_key_error_propagates_as_server_error(make_client, recording_store) -> None:
    blog = CacheController(cache=True)

    @blog.get("/broken", response_class=PlainTextResponse)
    @cache_key(fn=lambda ctx: ctx.params["missing"])
    async def broken() -> str:
        return "never"

    client = make_client(blog, store=recording_store, raise_server_exceptions=False)

    assert client.get("/broken").status_code == 500
    assert recording_store.gets == []


def test_request_outcomes_are_counted(make_client, recording_store) -> None:
    blog = CacheController(cache=True)

    @blog.api_route("/counted", methods=["GET", "POST"], response_class=PlainTextResponse)
    async def counted() -> str:
        return "counted"

    client = make_client(blog, store=recording_store)
    hit, miss, bypass = (_requests_total(o) for o in ("hit", "miss", "bypass"))

    client.get("/counted")
    client.get("/counted")
    client.post("/counted")

    assert _requests_total("miss") == miss + 1
    assert _requests_total("hit") == hit + 1
    assert _requests_total("bypass") == bypass + 1


def test_routes_without_page_cache_run_uncached() -> None:
    from fastapi import FastAPI
    from fastapi.testclient import TestClient

    calls: list[int] = []
    blog = CacheController(cache=True)

    @blog.get("/bare", response_class=PlainTextResponse)
    async def bare() -> str:
        calls.append(1)
        return "bare"

    app = FastAPI()
    app.include_router(blog)
    client = TestClient(app)
    client.get("/bare")
    client.get("/bare")

    assert len(calls) == 2
