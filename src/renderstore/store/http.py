"""HTTP client for the hosted persistence API (see renderstore.api)."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING

import httpx

from renderstore.config import StoreSettings
from renderstore.store.base import PageData, StoreConfig, validate_secret

if TYPE_CHECKING:
    from renderstore.models.page import Page


def build_http_client(settings: StoreSettings | None = None) -> httpx.AsyncClient:
    settings = settings or StoreSettings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout_seconds),
        follow_redirects=True,
    )


class HttpPageStore:
    """PageStore backed by the persistence API, partitioned by *secret*.

    Absent pages (404) come back as ``None``; every other non-2xx status
    raises ``httpx.HTTPStatusError`` for the caller to handle.
    """

    def __init__(self, secret: str, client: httpx.AsyncClient, base_url: str) -> None:
        self._secret = validate_secret(secret)
        self._client = client
        self._base_url = base_url.rstrip("/")

    def _params(self, key: str) -> dict[str, str]:
        return {"secret": self._secret, "hash": key}

    async def get(self, key: str) -> PageData:
        response = await self._client.get(
            f"{self._base_url}/api/page/data", params=self._params(key)
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        if response.headers.get("content-type", "").startswith("application/json"):
            data = response.json()
            if isinstance(data, str):
                return data  # URL of the stored content
        return response.content

    async def get_expiration(self, key: str) -> float | None:
        response = await self._client.get(
            f"{self._base_url}/api/page/expiration", params=self._params(key)
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        expiration = response.json()
        # bool is an int subclass but never a valid timestamp
        if isinstance(expiration, bool) or not isinstance(expiration, int | float):
            return None
        return float(expiration)

    async def set(self, page: Page) -> None:
        response = await self._client.post(
            f"{self._base_url}/api/page",
            json={
                "secret": self._secret,
                "page": {
                    "hash": page.key,
                    "url": page.url,
                    "expiration": page.expiration,
                    "data": base64.b64encode(page.content).decode("ascii"),
                },
            },
        )
        response.raise_for_status()

    async def remove(self, key: str) -> None:
        response = await self._client.delete(
            f"{self._base_url}/api/page", params=self._params(key)
        )
        response.raise_for_status()


def default_config(
    secret: str,
    settings: StoreSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> StoreConfig:
    """Build a StoreConfig that talks to the hosted persistence API.

    Raises:
        RenderStoreError: INVALID_SECRET if *secret* is empty or malformed.
    """
    settings = settings or StoreSettings()
    store = HttpPageStore(secret, client or build_http_client(settings), settings.base_url)
    return StoreConfig(
        get=store.get,
        get_expiration=store.get_expiration,
        set=store.set,
        remove=store.remove,
    )
