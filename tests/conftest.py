"""Shared fixtures. Test doubles live in tests/fakes.py."""

from __future__ import annotations

import pytest

from renderstore.engine import RenderStore
from renderstore.memory import PageCache
from tests.fakes import FakeRenderer, MemoryStore, SentPages


@pytest.fixture()
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def page_cache() -> PageCache:
    return PageCache()


@pytest.fixture()
def sent() -> SentPages:
    return SentPages()


@pytest.fixture()
async def render_store(store: MemoryStore, renderer: FakeRenderer, page_cache: PageCache):
    """RenderStore over the in-memory store and counting renderer."""
    rs = RenderStore(store, renderer, page_cache)  # type: ignore[arg-type]
    yield rs
    await rs.aclose()
