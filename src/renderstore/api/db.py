"""SQLite page storage behind the persistence API.

Reads catch ``aiosqlite.Error`` and degrade to ``None`` (the API answers 404,
the same as for an absent page). Writes let ``aiosqlite.Error`` propagate so
the API can report a 500 instead of acknowledging data it did not store.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta

import aiosqlite
import structlog

log = structlog.get_logger()

_CREATE_PAGE_TABLE = """
CREATE TABLE IF NOT EXISTS pages (
    storage_key TEXT PRIMARY KEY,
    url         TEXT NOT NULL,
    expiration  REAL NOT NULL,
    data        BLOB NOT NULL,
    updated_at  TEXT NOT NULL
)
"""

_CREATE_PAGE_INDEX = "CREATE INDEX IF NOT EXISTS idx_pages_expiration ON pages(expiration)"


class PageDatabase:
    """Pages keyed by ``secret + hash`` (see renderstore.hashing.storage_key)."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_PAGE_TABLE)
        await self._db.execute(_CREATE_PAGE_INDEX)
        await self._db.commit()

    async def get_data(self, storage_key: str) -> bytes | None:
        """Stored gzip content. Returns ``None`` on miss or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT data FROM pages WHERE storage_key = ?", (storage_key,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("db_read_error", key=storage_key, exc_info=True)
            return None
        return None if row is None else bytes(row[0])

    async def get_expiration(self, storage_key: str) -> float | None:
        """Expiration in epoch seconds. Returns ``None`` on miss or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT expiration FROM pages WHERE storage_key = ?", (storage_key,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("db_read_error", key=storage_key, exc_info=True)
            return None
        return None if row is None else float(row[0])

    async def set_page(self, storage_key: str, url: str, expiration: float, data: bytes) -> None:
        await self._db.execute(
            "INSERT OR REPLACE INTO pages (storage_key, url, expiration, data, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (storage_key, url, expiration, data, datetime.now(UTC).isoformat()),
        )
        await self._db.commit()

    async def delete_page(self, storage_key: str) -> bool:
        """Delete a page. Returns False if nothing was stored under the key."""
        cursor = await self._db.execute("DELETE FROM pages WHERE storage_key = ?", (storage_key,))
        await self._db.commit()
        return cursor.rowcount > 0

    async def cleanup_expired(self, grace: timedelta = timedelta(days=7)) -> int:
        """Delete pages expired for longer than *grace*. Non-fatal on failure."""
        try:
            cutoff = time.time() - grace.total_seconds()
            cursor = await self._db.execute("DELETE FROM pages WHERE expiration < ?", (cutoff,))
            deleted = cursor.rowcount
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("db_cleanup_error", exc_info=True)
            return 0
        log.info("db_cleanup_complete", pages_deleted=deleted)
        return deleted
