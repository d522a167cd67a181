"""Persistence API consumed by HttpPageStore.

    GET    /api/page/data?secret=&hash=        raw page bytes, 404 if absent
    GET    /api/page/expiration?secret=&hash=  JSON number, 404 if absent
    POST   /api/page  {secret, page: {hash, url, expiration, data}}
    PUT    /api/page  (same as POST)
    DELETE /api/page?secret=&hash=

Input is validated before the database is touched; invalid input is a 400
with the standard error envelope.
"""

from __future__ import annotations

import contextlib
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from renderstore.api.db import PageDatabase
from renderstore.config import Settings
from renderstore.errors import ErrorCode, RenderStoreError
from renderstore.hashing import storage_key
from renderstore.models.api import PageKeyQuery, PutPageInput

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request

log = structlog.get_logger()


def _error_response(exc: RenderStoreError, status_code: int) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=status_code)


def _invalid_input(exc: ValidationError) -> RenderStoreError:
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return RenderStoreError(ErrorCode.INVALID_INPUT, message, recoverable=False)


def _key_query(request: Request) -> PageKeyQuery:
    try:
        return PageKeyQuery.model_validate(dict(request.query_params))
    except ValidationError as exc:
        raise _invalid_input(exc) from exc


def _not_found(query: PageKeyQuery) -> JSONResponse:
    exc = RenderStoreError(
        ErrorCode.PAGE_NOT_FOUND, f"Page {query.hash} does not exist", recoverable=False
    )
    return _error_response(exc, 404)


def _database(request: Request) -> PageDatabase:
    return request.app.state.database


async def get_page_data(request: Request) -> Response:
    try:
        query = _key_query(request)
    except RenderStoreError as exc:
        return _error_response(exc, 400)

    data = await _database(request).get_data(storage_key(query.secret, query.hash))
    if data is None:
        return _not_found(query)
    return Response(content=data, media_type="application/octet-stream")


async def get_page_expiration(request: Request) -> Response:
    try:
        query = _key_query(request)
    except RenderStoreError as exc:
        return _error_response(exc, 400)

    expiration = await _database(request).get_expiration(storage_key(query.secret, query.hash))
    if expiration is None:
        return _not_found(query)
    return JSONResponse(expiration)


async def put_page(request: Request) -> Response:
    try:
        body = await request.json()
    except ValueError:  # JSONDecodeError or a body that is not UTF-8
        exc = RenderStoreError(
            ErrorCode.INVALID_INPUT, "Request body must be JSON", recoverable=False
        )
        return _error_response(exc, 400)
    try:
        payload = PutPageInput.model_validate(body)
    except ValidationError as exc:
        return _error_response(_invalid_input(exc), 400)

    page = payload.page
    try:
        await _database(request).set_page(
            storage_key(payload.secret, page.hash), page.url, page.expiration, page.content()
        )
    except aiosqlite.Error as exc:
        log.error("db_write_error", op="set", key=page.hash, exc_info=True)
        error = RenderStoreError(ErrorCode.STORE_FAILED, str(exc), recoverable=True)
        return _error_response(error, 500)
    log.info("page_stored", key=page.hash, url=page.url)
    return Response(status_code=200)


async def delete_page(request: Request) -> Response:
    try:
        query = _key_query(request)
    except RenderStoreError as exc:
        return _error_response(exc, 400)

    try:
        await _database(request).delete_page(storage_key(query.secret, query.hash))
    except aiosqlite.Error as exc:
        log.error("db_write_error", op="delete", key=query.hash, exc_info=True)
        error = RenderStoreError(ErrorCode.STORE_FAILED, str(exc), recoverable=True)
        return _error_response(error, 500)
    log.info("page_deleted", key=query.hash)
    return Response(status_code=200)


def create_app(database: PageDatabase | None = None, settings: Settings | None = None) -> Starlette:
    """Build the API app.

    With *database* given the caller owns the connection; otherwise the
    lifespan opens ``settings.api.db_path`` and closes it on shutdown.
    """
    settings = settings or Settings()

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        if database is not None:
            yield
            return
        db_path = Path(settings.api.db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(db_path) as db:
            pages = PageDatabase(db)
            await pages.init_db()
            await pages.cleanup_expired(timedelta(days=settings.api.cleanup_grace_days))
            app.state.database = pages
            log.info("api_started", db_path=str(db_path))
            yield

    app = Starlette(
        routes=[
            Route("/api/page/data", get_page_data, methods=["GET"]),
            Route("/api/page/expiration", get_page_expiration, methods=["GET"]),
            Route("/api/page", put_page, methods=["POST", "PUT"]),
            Route("/api/page", delete_page, methods=["DELETE"]),
        ],
        middleware=[Middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"])],
        lifespan=lifespan,
    )
    if database is not None:
        app.state.database = database
    return app
