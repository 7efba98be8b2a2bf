"""
Pytest configuration and fixtures for feedview tests.

The backend is faked twice:
  - fake_backend: a FastAPI app mounted through httpx.ASGITransport, for
    exercising FeedClient against real HTTP semantics.
  - StubFeedClient: hand-driven futures, for controlling response order
    in coordinator tests.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse

from feedview.errors import FeedError
from feedview.models import FeedPage, Pagination, Post, QueryParams
from feedview.services.feed_client import FeedClient
from feedview.services.preference_store import MemoryStore, PreferenceStore

BASE_URL = "http://testserver"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def build_post(n: int, **overrides: Any) -> dict[str, Any]:
    """Wire-format post number n."""
    post = {
        "reddit_id": f"t3_{n:04d}",
        "title": f"Post {n} about Claude",
        "content": f"Body of post {n}",
        "subreddit": "ClaudeAI",
        "author": f"user{n}",
        "url": f"https://reddit.com/r/ClaudeAI/comments/{n}",
        "upvotes": n * 10,
        "num_comments": n,
        "created_at": (NOW - timedelta(hours=n)).isoformat(),
    }
    post.update(overrides)
    return post


def build_page(ids: list[int], page: int = 1, total_pages: int = 1, last_updated: str | None = None) -> FeedPage:
    return FeedPage(
        posts=[Post.model_validate(build_post(n)) for n in ids],
        pagination=Pagination(
            total=len(ids) * total_pages,
            total_pages=total_pages,
            has_prev=page > 1,
            has_next=page < total_pages,
        ),
        last_updated=last_updated,
    )


# ---------------------------------------------------------------------------
# FastAPI fake backend
# ---------------------------------------------------------------------------


class FakeBackend:
    """State behind the fake /api endpoints. Tests tweak these fields."""

    def __init__(self) -> None:
        self.posts: list[dict[str, Any]] = [build_post(n) for n in range(1, 46)]
        self.queries: list[str] = []
        self.params: list[dict[str, str]] = []
        self.status_code = 200
        self.body_override: Any = None
        self.raw_override: str | None = None
        self.refresh_calls = 0
        self.refresh_status = 202
        self.last_updated = NOW.isoformat()

    def list_posts(self, params: dict[str, str]) -> dict[str, Any]:
        search = params.get("search", "").lower()
        sort_by = params.get("sortBy", "created_at")
        reverse = params.get("sortOrder", "desc") == "desc"
        page = int(params.get("page", "1"))
        limit = int(params.get("limit", "20"))

        rows = [
            p
            for p in self.posts
            if search in p["title"].lower() or search in p["author"].lower() or search in (p["content"] or "").lower()
        ]
        rows.sort(key=lambda p: p[sort_by], reverse=reverse)

        total = len(rows)
        total_pages = (total + limit - 1) // limit
        start = (page - 1) * limit
        return {
            "success": True,
            "posts": rows[start : start + limit],
            "pagination": {
                "total": total,
                "totalPages": total_pages,
                "hasPrev": page > 1,
                "hasNext": page < total_pages,
            },
            "lastUpdated": self.last_updated,
        }


def create_app(backend: FakeBackend) -> FastAPI:
    app = FastAPI()

    @app.get("/api/posts")
    async def list_posts(request: Request):
        backend.queries.append(request.url.query)
        backend.params.append(dict(request.query_params))
        if backend.raw_override is not None:
            return HTMLResponse(backend.raw_override)
        if backend.status_code != 200:
            return JSONResponse({"error": "Internal error"}, status_code=backend.status_code)
        if backend.body_override is not None:
            return backend.body_override
        return backend.list_posts(dict(request.query_params))

    @app.post("/api/refresh")
    async def refresh():
        backend.refresh_calls += 1
        return JSONResponse({"success": True}, status_code=backend.refresh_status)

    return app


@pytest.fixture
def make_post():
    """Factory for wire-format posts: make_post(n, **overrides) -> dict."""
    return build_post


@pytest.fixture
def make_page():
    """Factory for FeedPage records: make_page(ids, page=1, total_pages=1, last_updated=None)."""
    return build_page


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend_transport(fake_backend) -> httpx.ASGITransport:
    """ASGI transport routing httpx requests into the fake backend."""
    return httpx.ASGITransport(app=create_app(fake_backend))


@pytest_asyncio.fixture
async def feed_client(backend_transport):
    """FeedClient wired to the in-process FastAPI backend."""
    client = FeedClient(BASE_URL, page_size=20, transport=backend_transport)
    yield client
    await client.aclose()


# ---------------------------------------------------------------------------
# Hand-driven client for ordering tests
# ---------------------------------------------------------------------------


class StubFeedClient:
    """
    FeedClient stand-in whose responses are resolved by the test.

    With `auto` set, every fetch returns (or raises) it immediately.
    Otherwise each fetch parks on a future in `pending`.
    """

    def __init__(self) -> None:
        self.calls: list[QueryParams] = []
        self.pending: list[asyncio.Future] = []
        self.auto: FeedPage | FeedError | None = None
        self.trigger_server_refresh = AsyncMock()

    async def fetch(self, params: QueryParams) -> FeedPage:
        self.calls.append(params)
        if isinstance(self.auto, FeedError):
            raise self.auto
        if self.auto is not None:
            return self.auto
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future

    def resolve(self, index: int, result: FeedPage | FeedError) -> None:
        future = self.pending[index]
        if future.done():
            return
        if isinstance(result, FeedError):
            future.set_exception(result)
        else:
            future.set_result(result)


@pytest.fixture
def stub_client() -> StubFeedClient:
    return StubFeedClient()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def preferences(memory_store) -> PreferenceStore:
    return PreferenceStore(memory_store, prefers_dark=lambda: False)


# ---------------------------------------------------------------------------
# Socket.IO stand-in
# ---------------------------------------------------------------------------


class FakeSocketClient:
    """Records handlers registered with on() so tests can fire server events."""

    def __init__(self, policy) -> None:
        self.policy = policy
        self.handlers: dict[str, Any] = {}
        self.connect = AsyncMock()
        self.shutdown = AsyncMock()

    def on(self, event, handler=None):
        self.handlers[event] = handler

    async def fire(self, event: str, *args: Any) -> None:
        await self.handlers[event](*args)


@pytest.fixture
def socket_factory():
    """Factory for LiveChannel; the created fake is exposed as factory.client."""

    def factory(policy):
        factory.client = FakeSocketClient(policy)
        return factory.client

    factory.client = None
    return factory
