"""Unit-specific fixtures (no I/O beyond in-memory SQLite)."""

from __future__ import annotations

import aiosqlite
import pytest

from renderstore.api.db import PageDatabase


@pytest.fixture()
async def page_db():
    """In-memory SQLite page database for unit tests."""
    async with aiosqlite.connect(":memory:") as db:
        pages = PageDatabase(db)
        await pages.init_db()
        yield pages
