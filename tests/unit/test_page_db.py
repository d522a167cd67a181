"""Unit tests for renderstore.api.db."""

from __future__ import annotations

import time
from datetime import timedelta
from typing import TYPE_CHECKING

import aiosqlite
import pytest

if TYPE_CHECKING:
    from renderstore.api.db import PageDatabase


class TestPageDatabase:
    async def test_set_and_get(self, page_db: PageDatabase) -> None:
        await page_db.set_page("abch1", "https://example.com/", 1_700_000_000.5, b"\x1f\x8bdata")
        assert await page_db.get_data("abch1") == b"\x1f\x8bdata"
        assert await page_db.get_expiration("abch1") == 1_700_000_000.5

    async def test_get_nonexistent_returns_none(self, page_db: PageDatabase) -> None:
        assert await page_db.get_data("nonexistent") is None
        assert await page_db.get_expiration("nonexistent") is None

    async def test_upsert_overwrites(self, page_db: PageDatabase) -> None:
        await page_db.set_page("k", "https://example.com/", 1.0, b"v1")
        await page_db.set_page("k", "https://example.com/", 2.0, b"v2")
        assert await page_db.get_data("k") == b"v2"
        assert await page_db.get_expiration("k") == 2.0

    async def test_secrets_partition_keys(self, page_db: PageDatabase) -> None:
        await page_db.set_page("aaah1", "https://a.example/", 1.0, b"a")
        await page_db.set_page("bbbh1", "https://b.example/", 1.0, b"b")
        assert await page_db.get_data("aaah1") == b"a"
        assert await page_db.get_data("bbbh1") == b"b"

    async def test_delete(self, page_db: PageDatabase) -> None:
        await page_db.set_page("k", "https://example.com/", 1.0, b"v")
        assert await page_db.delete_page("k") is True
        assert await page_db.get_data("k") is None
        assert await page_db.delete_page("k") is False

    async def test_read_failure_returns_none(self, page_db: PageDatabase) -> None:
        """A database read error is a miss, not an exception."""
        original_execute = page_db._db.execute

        async def failing_execute(*args, **kwargs):
            raise aiosqlite.OperationalError("disk I/O error")

        page_db._db.execute = failing_execute  # type: ignore[assignment]
        assert await page_db.get_data("k") is None
        assert await page_db.get_expiration("k") is None
        page_db._db.execute = original_execute  # type: ignore[assignment]

    async def test_write_failure_raises(self, page_db: PageDatabase) -> None:
        """Writes must not be acknowledged when they did not happen."""
        original_execute = page_db._db.execute

        async def failing_execute(*args, **kwargs):
            raise aiosqlite.OperationalError("disk I/O error")

        page_db._db.execute = failing_execute  # type: ignore[assignment]
        with pytest.raises(aiosqlite.Error):
            await page_db.set_page("k", "https://example.com/", 1.0, b"v")
        with pytest.raises(aiosqlite.Error):
            await page_db.delete_page("k")
        page_db._db.execute = original_execute  # type: ignore[assignment]


class TestCleanupExpired:
    async def test_cleanup_deletes_old_entries(self, page_db: PageDatabase) -> None:
        """Pages expired more than the grace period ago are deleted."""
        eight_days_ago = time.time() - timedelta(days=8).total_seconds()
        await page_db.set_page("old", "https://example.com/old", eight_days_ago, b"old")

        assert await page_db.cleanup_expired(timedelta(days=7)) == 1
        assert await page_db.get_data("old") is None

    async def test_cleanup_preserves_recent_expired(self, page_db: PageDatabase) -> None:
        """Pages expired within the grace period are still served (and refreshed)."""
        two_days_ago = time.time() - timedelta(days=2).total_seconds()
        await page_db.set_page("recent", "https://example.com/recent", two_days_ago, b"recent")

        assert await page_db.cleanup_expired(timedelta(days=7)) == 0
        assert await page_db.get_data("recent") == b"recent"

    async def test_cleanup_failure_does_not_raise(self, page_db: PageDatabase) -> None:
        original_execute = page_db._db.execute

        async def failing_execute(*args, **kwargs):
            raise aiosqlite.OperationalError("disk I/O error")

        page_db._db.execute = failing_execute  # type: ignore[assignment]
        assert await page_db.cleanup_expired() == 0
        page_db._db.execute = original_execute  # type: ignore[assignment]
