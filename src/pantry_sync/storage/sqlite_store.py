"""SQLite record store backed by aiosqlite."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

import aiosqlite

from pantry_sync.errors import StorageError
from pantry_sync.storage.base import RecordStore
from pantry_sync.storage.sqlite_records import SQLiteRecordsMixin
from pantry_sync.storage.sqlite_schema import SCHEMA, SCHEMA_VERSION, run_migrations

logger = logging.getLogger(__name__)


class SQLiteRecordStore(SQLiteRecordsMixin, RecordStore):
    """SQLite-based local record store.

    The single source of truth while offline. Uses one writer connection,
    so statements are serialized and every write commits on its own.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path).resolve() if str(db_path) != ":memory:" else None
        self._conn: aiosqlite.Connection | None = None

    @property
    def db_path(self) -> Path | None:
        return self._db_path

    async def initialize(self) -> None:
        """Open the connection and bring the schema to the current version.

        Existing databases are migrated before the full schema runs, so
        indexes on newly added columns can be created safely.
        """
        try:
            if self._db_path is not None:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
                self._conn = await aiosqlite.connect(self._db_path)
            else:
                self._conn = await aiosqlite.connect(":memory:")
            self._conn.row_factory = aiosqlite.Row

            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA synchronous=NORMAL")

            await self._conn.execute(
                "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)"
            )
            await self._conn.commit()

            async with self._conn.execute("SELECT version FROM schema_version") as cursor:
                row = await cursor.fetchone()

            if row is not None and row["version"] < SCHEMA_VERSION:
                await run_migrations(self._conn, row["version"])

            await self._conn.executescript(SCHEMA)

            if row is None:
                await self._conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
                )
                await self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open record store at {self._db_path}: {e}") from e

        logger.debug("Record store ready at %s", self._db_path or ":memory:")

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> SQLiteRecordStore:
        await self.initialize()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    def _ensure_conn(self) -> aiosqlite.Connection:
        """Ensure the connection is available."""
        if self._conn is None:
            raise StorageError("Record store not initialized. Call initialize() first.")
        return self._conn
