"""Failure-tolerant wrapper around a PageStore.

Reads and writes catch every exception raised by the wrapped store and
degrade gracefully: ``get`` and ``get_expiration`` return ``None`` (treated
as a cache miss by the engine), ``set`` logs and returns. The wrapped store
is user-supplied, so no narrower exception type can be assumed. Errors are
logged with ``exc_info=True`` so they stay observable.

``remove`` is the exception: it is an explicit operation requested by the
embedding application, so failures are logged and re-raised as
``RenderStoreError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from renderstore.errors import ErrorCode, RenderStoreError
from renderstore.store.base import PageData, PageStore, maybe_await

if TYPE_CHECKING:
    from renderstore.models.page import Page

log = structlog.get_logger()


class RemoteStore:
    def __init__(self, store: PageStore) -> None:
        self._store = store

    async def get(self, key: str) -> PageData:
        try:
            return await maybe_await(self._store.get(key))
        except Exception:
            log.warning("store_read_error", op="get", key=key, exc_info=True)
            return None

    async def get_expiration(self, key: str) -> float | None:
        try:
            expiration = await maybe_await(self._store.get_expiration(key))
        except Exception:
            log.warning("store_read_error", op="get_expiration", key=key, exc_info=True)
            return None
        if isinstance(expiration, bool) or not isinstance(expiration, int | float):
            return None
        return float(expiration)

    async def set(self, page: Page) -> bool:
        """Persist *page*. Returns False (after logging) if the write failed."""
        try:
            await maybe_await(self._store.set(page))
        except Exception:
            log.warning("store_write_error", op="set", key=page.key, exc_info=True)
            return False
        return True

    async def remove(self, key: str) -> None:
        try:
            await maybe_await(self._store.remove(key))
        except Exception as exc:
            log.warning("store_write_error", op="remove", key=key, exc_info=True)
            raise RenderStoreError(
                ErrorCode.STORE_FAILED,
                f"Failed to remove page {key} from the remote store: {exc}",
                recoverable=True,
            ) from exc
