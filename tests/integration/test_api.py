"""Persistence API over in-memory SQLite, exercised through httpx."""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock

import aiosqlite
import httpx
import pytest

from renderstore.api.app import create_app
from renderstore.api.db import PageDatabase
from tests.fakes import API_BASE


def _put_body(secret: str = "abc", **page_overrides: object) -> dict[str, object]:
    page: dict[str, object] = {
        "hash": "h1",
        "url": "https://example.com/page",
        "expiration": 1_700_000_000,
        "data": base64.b64encode(b"\x1f\x8bsnapshot").decode("ascii"),
    }
    page.update(page_overrides)
    return {"secret": secret, "page": page}


class TestPageLifecycle:
    async def test_put_then_read(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.post("/api/page", json=_put_body())
        assert response.status_code == 200

        data = await api_client.get("/api/page/data", params={"secret": "abc", "hash": "h1"})
        assert data.status_code == 200
        assert data.content == b"\x1f\x8bsnapshot"

        expiration = await api_client.get(
            "/api/page/expiration", params={"secret": "abc", "hash": "h1"}
        )
        assert expiration.status_code == 200
        assert expiration.json() == 1_700_000_000

    async def test_put_method_accepted(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.put("/api/page", json=_put_body())
        assert response.status_code == 200

    async def test_delete(self, api_client: httpx.AsyncClient) -> None:
        await api_client.post("/api/page", json=_put_body())
        response = await api_client.delete("/api/page", params={"secret": "abc", "hash": "h1"})
        assert response.status_code == 200

        data = await api_client.get("/api/page/data", params={"secret": "abc", "hash": "h1"})
        assert data.status_code == 404

    async def test_secret_partitions_pages(self, api_client: httpx.AsyncClient) -> None:
        await api_client.post("/api/page", json=_put_body(secret="abc"))
        other = await api_client.get("/api/page/data", params={"secret": "xyz", "hash": "h1"})
        assert other.status_code == 404


class TestNotFound:
    async def test_missing_data(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.get("/api/page/data", params={"secret": "abc", "hash": "nope"})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PAGE_NOT_FOUND"

    async def test_missing_expiration(self, api_client: httpx.AsyncClient) -> None:
        response = await api_client.get(
            "/api/page/expiration", params={"secret": "abc", "hash": "nope"}
        )
        assert response.status_code == 404


class TestInvalidInput:
    """Malformed requests are rejected before the database is touched."""

    @pytest.fixture()
    def spy_db(self) -> AsyncMock:
        return AsyncMock(spec=PageDatabase)

    @pytest.fixture()
    async def spy_client(self, spy_db: AsyncMock):
        app = create_app(database=spy_db)
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url=API_BASE
        ) as client:
            yield client

    async def test_data_missing_hash(self, spy_client: httpx.AsyncClient, spy_db: AsyncMock) -> None:
        response = await spy_client.get("/api/page/data", params={"secret": "abc"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == "INVALID_INPUT"
        assert "hash" in body["error"]["message"]
        spy_db.get_data.assert_not_called()

    @pytest.mark.parametrize("path", ["/api/page/data", "/api/page/expiration"])
    async def test_missing_secret(
        self, spy_client: httpx.AsyncClient, spy_db: AsyncMock, path: str
    ) -> None:
        response = await spy_client.get(path, params={"hash": "h1"})
        assert response.status_code == 400
        spy_db.get_data.assert_not_called()
        spy_db.get_expiration.assert_not_called()

    async def test_secret_with_period(
        self, spy_client: httpx.AsyncClient, spy_db: AsyncMock
    ) -> None:
        response = await spy_client.get(
            "/api/page/expiration", params={"secret": "a.b", "hash": "h1"}
        )
        assert response.status_code == 400
        spy_db.get_expiration.assert_not_called()

    async def test_delete_missing_hash(
        self, spy_client: httpx.AsyncClient, spy_db: AsyncMock
    ) -> None:
        response = await spy_client.delete("/api/page", params={"secret": "abc"})
        assert response.status_code == 400
        spy_db.delete_page.assert_not_called()

    @pytest.mark.parametrize(
        "body",
        [
            {"page": _put_body()["page"]},
            {"secret": "abc"},
            _put_body(expiration="tomorrow"),
            _put_body(data="not base64!"),
            _put_body(url="ftp://example.com/"),
        ],
    )
    async def test_put_invalid_body(
        self, spy_client: httpx.AsyncClient, spy_db: AsyncMock, body: dict[str, object]
    ) -> None:
        response = await spy_client.post("/api/page", json=body)
        assert response.status_code == 400
        spy_db.set_page.assert_not_called()

    @pytest.mark.parametrize("content", [b"not json", b"\xff\xfe{bad"])
    async def test_put_non_json_body(
        self, spy_client: httpx.AsyncClient, spy_db: AsyncMock, content: bytes
    ) -> None:
        response = await spy_client.post("/api/page", content=content)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_INPUT"
        spy_db.set_page.assert_not_called()


class TestWriteFailure:
    async def test_database_error_is_500(self) -> None:
        db = AsyncMock(spec=PageDatabase)
        db.set_page.side_effect = aiosqlite.OperationalError("disk I/O error")
        app = create_app(database=db)
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url=API_BASE
        ) as client:
            response = await client.post("/api/page", json=_put_body())
        assert response.status_code == 500
        body = response.json()
        assert body["error"]["code"] == "STORE_FAILED"
        assert body["error"]["recoverable"] is True
