"""Process-local page cache in front of the remote store.

Owned by whoever builds the RenderStore and lives as long as the process.
Entries are advisory copies: any concurrent request may overwrite a slot and
the last write wins. There is no eviction; expiry is decided by the engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from renderstore.models.page import Page


class PageCache:
    def __init__(self) -> None:
        self._pages: dict[str, Page] = {}

    def get(self, key: str) -> Page | None:
        return self._pages.get(key)

    def put(self, page: Page) -> Page:
        self._pages[page.key] = page
        return page

    def pop(self, key: str) -> Page | None:
        return self._pages.pop(key, None)

    def clear(self) -> None:
        self._pages.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._pages

    def __len__(self) -> int:
        return len(self._pages)
