"""SQLite-backed storage provider.

Persists cache envelopes to a local SQLite database (default
``data/content_cache.db``) so cached feeds survive process restarts, the
way browser local storage survives page reloads.  Uses ``aiosqlite`` for
async I/O; every ``aiosqlite.Error`` is re-raised as
:class:`~src.utils.errors.StorageError`.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from src.interfaces.storage_provider import IStorageProvider
from src.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/content_cache.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS {table} (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_UPSERT_SQL = """\
INSERT INTO {table} (key, value)
VALUES (?, ?)
ON CONFLICT(key)
DO UPDATE SET value      = excluded.value,
              updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

_SELECT_SQL = "SELECT value FROM {table} WHERE key = ?;"

_DELETE_SQL = "DELETE FROM {table} WHERE key = ?;"


class SQLiteStorageProvider(IStorageProvider):
    """Durable key-value storage in a single SQLite table.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Parent directories are created
        by :meth:`initialize`.
    table_name:
        Table name to use, so several stores can share one database.
    """

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        table_name: str = "kv_store",
    ) -> None:
        self._db_path = Path(db_path)
        self._table = table_name
        self._initialized = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the table if it doesn't exist.

        Called once at startup; the data methods also call it lazily so
        a forgotten ``initialize()`` never surfaces as "no such table".
        """
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_CREATE_TABLE_SQL.format(table=self._table))
                await db.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise StorageError(
                message=f"Could not initialize storage: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        self._initialized = True
        logger.info("storage_initialized", path=str(self._db_path), table=self._table)

    # ------------------------------------------------------------------
    # IStorageProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        await self._ensure_initialized()
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_SELECT_SQL.format(table=self._table), (key,))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StorageError(
                message=f"Read failed for key {key!r}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        await self._ensure_initialized()
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_UPSERT_SQL.format(table=self._table), (key, value))
                await db.commit()
        except aiosqlite.Error as exc:
            raise StorageError(
                message=f"Write failed for key {key!r}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("storage_set", key=key, size=len(value))

    async def remove(self, key: str) -> None:
        await self._ensure_initialized()
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_DELETE_SQL.format(table=self._table), (key,))
                await db.commit()
        except aiosqlite.Error as exc:
            raise StorageError(
                message=f"Delete failed for key {key!r}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("storage_remove", key=key)

    def get_provider_name(self) -> str:
        return "sqlite"

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()
