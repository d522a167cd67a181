"""Integration test fixtures.

Wires the persistence API over in-memory SQLite, an HttpPageStore that talks
to it through httpx's ASGI transport, and a live application wrapped in
RenderStoreMiddleware. Renderer and store doubles come from tests/fakes.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
import httpx
import pytest
from starlette.applications import Starlette
from starlette.responses import HTMLResponse, Response
from starlette.routing import Route

from renderstore.api.app import create_app
from renderstore.api.db import PageDatabase
from renderstore.middleware import RenderStoreMiddleware
from tests.fakes import API_BASE, LIVE_HTML, LOGO

if TYPE_CHECKING:
    from starlette.requests import Request

    from renderstore.engine import RenderStore



async def _home(request: Request) -> Response:
    return HTMLResponse(LIVE_HTML)


async def _logo(request: Request) -> Response:
    return Response(LOGO, media_type="image/png")


async def _submit(request: Request) -> Response:
    return Response("accepted", status_code=201)


def build_live_app() -> Starlette:
    return Starlette(
        routes=[
            Route("/", _home),
            Route("/docs/{slug}", _home),
            Route("/logo.png", _logo),
            Route("/submit", _submit, methods=["POST"]),
        ]
    )


@pytest.fixture()
async def page_db():
    async with aiosqlite.connect(":memory:") as db:
        pages = PageDatabase(db)
        await pages.init_db()
        yield pages


@pytest.fixture()
async def api_client(page_db: PageDatabase):
    """httpx client bound to the persistence API app."""
    app = create_app(database=page_db)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url=API_BASE
    ) as client:
        yield client


@pytest.fixture()
async def site_client(render_store: RenderStore):
    """httpx client bound to the live app behind RenderStoreMiddleware."""
    app = RenderStoreMiddleware(build_live_app(), render_store)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="https://example.com"
    ) as client:
        yield client
