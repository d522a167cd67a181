"""ASGI middleware that puts a RenderStore in front of an application."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.datastructures import Headers

from renderstore.engine import PageRequest
from renderstore.negotiation import page_response

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Receive, Scope, Send

    from renderstore.engine import RenderStore
    from renderstore.models.page import Page

_INTERCEPTABLE_METHODS = ("GET", "HEAD")


def page_request_from_scope(scope: Scope) -> PageRequest:
    headers = Headers(scope=scope)
    raw_path = scope.get("raw_path")
    # Some servers leave the query string on raw_path
    path = raw_path.decode("latin-1").split("?", 1)[0] if raw_path else scope["path"]
    query = scope.get("query_string", b"")
    if query:
        path = f"{path}?{query.decode('latin-1')}"

    host = headers.get("host")
    if not host:
        server = scope.get("server")
        host = f"{server[0]}:{server[1]}" if server else "localhost"

    return PageRequest(
        scheme=scope.get("scheme", "http"),
        host=host,
        path=path,
        user_agent=headers.get("user-agent"),
        accept_encoding=headers.get("accept-encoding"),
    )


class RenderStoreMiddleware:
    """Serve cached snapshots to crawlers; everything else reaches *app* untouched."""

    def __init__(self, app: ASGIApp, render_store: RenderStore) -> None:
        self.app = app
        self.render_store = render_store

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in _INTERCEPTABLE_METHODS:
            await self.app(scope, receive, send)
            return

        request = page_request_from_scope(scope)

        async def send_page(page: Page) -> None:
            response = page_response(page, request.accept_encoding)
            await response(scope, receive, send)

        if await self.render_store.handle(request, send_page) is None:
            await self.app(scope, receive, send)
