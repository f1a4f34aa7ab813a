"""SQLite record operations mixin."""

from __future__ import annotations

import functools
import logging
import sqlite3
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

from pantry_sync.core.record import Record
from pantry_sync.errors import StorageError
from pantry_sync.utils.timeutils import utcnow

if TYPE_CHECKING:
    import aiosqlite

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

_COLUMNS = (
    "local_id, remote_id, name, quantity, category, expiry_date, owner_id, "
    "synced, deleted, version, last_modified"
)


def storage_errors(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    """Re-raise sqlite failures from a store coroutine as StorageError."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return await func(*args, **kwargs)
        except sqlite3.Error as e:
            logger.error("Record store %s failed: %s", func.__name__, e)
            raise StorageError(f"{func.__name__} failed: {e}") from e

    return wrapper


def row_to_record(row: aiosqlite.Row | dict[str, Any]) -> Record:
    """Convert database row to Record."""
    last_modified_raw = row["last_modified"]
    return Record(
        local_id=int(row["local_id"]),
        remote_id=str(row["remote_id"] or ""),
        name=row["name"],
        quantity=row["quantity"],
        category=row["category"],
        expiry_date=row["expiry_date"],
        owner_id=row["owner_id"],
        synced=bool(row["synced"]),
        deleted=bool(row["deleted"]),
        version=int(row["version"]),
        last_modified=datetime.fromisoformat(last_modified_raw) if last_modified_raw else utcnow(),
    )


class SQLiteRecordsMixin:
    """Mixin providing record CRUD on the ``records`` table."""

    # ------------------------------------------------------------------
    # Protocol stubs: satisfied by SQLiteRecordStore at runtime.
    # ------------------------------------------------------------------

    def _ensure_conn(self) -> aiosqlite.Connection:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @storage_errors
    async def insert(self, record: Record) -> int:
        conn = self._ensure_conn()
        cursor = await conn.execute(
            """INSERT INTO records
               (remote_id, name, quantity, category, expiry_date, owner_id,
                synced, deleted, version, last_modified)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record.remote_id,
                record.name,
                record.quantity,
                record.category,
                record.expiry_date,
                record.owner_id,
                int(record.synced),
                int(record.deleted),
                record.version,
                record.last_modified.isoformat(),
            ),
        )
        await conn.commit()
        if cursor.lastrowid is None:
            raise StorageError("Insert did not return a local id")
        return cursor.lastrowid

    @storage_errors
    async def update(self, record: Record, *, expected_version: int | None = None) -> bool:
        conn = self._ensure_conn()
        sql = """UPDATE records SET
                    remote_id = ?, name = ?, quantity = ?, category = ?,
                    expiry_date = ?, owner_id = ?, synced = ?, deleted = ?,
                    version = ?, last_modified = ?
                 WHERE local_id = ?"""
        params: list[Any] = [
            record.remote_id,
            record.name,
            record.quantity,
            record.category,
            record.expiry_date,
            record.owner_id,
            int(record.synced),
            int(record.deleted),
            record.version,
            record.last_modified.isoformat(),
            record.local_id,
        ]
        if expected_version is not None:
            sql += " AND version = ?"
            params.append(expected_version)

        cursor = await conn.execute(sql, params)
        await conn.commit()
        return cursor.rowcount > 0

    @storage_errors
    async def delete(self, local_id: int) -> bool:
        conn = self._ensure_conn()
        cursor = await conn.execute("DELETE FROM records WHERE local_id = ?", (local_id,))
        await conn.commit()
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @storage_errors
    async def get_by_id(self, local_id: int) -> Record | None:
        conn = self._ensure_conn()
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM records WHERE local_id = ?", (local_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return row_to_record(row) if row else None

    @storage_errors
    async def get_by_remote_id(self, remote_id: str) -> Record | None:
        if not remote_id:
            return None
        conn = self._ensure_conn()
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM records WHERE remote_id = ?", (remote_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return row_to_record(row) if row else None

    @storage_errors
    async def list_all(self) -> list[Record]:
        conn = self._ensure_conn()
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM records WHERE deleted = 0 ORDER BY local_id ASC"
        ) as cursor:
            rows = await cursor.fetchall()
        return [row_to_record(r) for r in rows]

    @storage_errors
    async def list_unsynced(self) -> list[Record]:
        conn = self._ensure_conn()
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM records WHERE synced = 0 ORDER BY local_id ASC"
        ) as cursor:
            rows = await cursor.fetchall()
        return [row_to_record(r) for r in rows]

    @storage_errors
    async def search(self, text: str) -> list[Record]:
        conn = self._ensure_conn()
        escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        async with conn.execute(
            f"""SELECT {_COLUMNS} FROM records
                WHERE deleted = 0 AND name LIKE ? ESCAPE '\\'
                ORDER BY local_id ASC""",
            (f"%{escaped}%",),
        ) as cursor:
            rows = await cursor.fetchall()
        return [row_to_record(r) for r in rows]

    @storage_errors
    async def get_stats(self) -> dict[str, int]:
        conn = self._ensure_conn()
        async with conn.execute(
            """SELECT
                COUNT(*) as total,
                SUM(CASE WHEN synced = 0 THEN 1 ELSE 0 END) as pending,
                SUM(CASE WHEN synced = 1 THEN 1 ELSE 0 END) as synced,
                SUM(CASE WHEN deleted = 1 THEN 1 ELSE 0 END) as deleted
               FROM records"""
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return {"total": 0, "pending": 0, "synced": 0, "deleted": 0}
        return {
            "total": row["total"] or 0,
            "pending": row["pending"] or 0,
            "synced": row["synced"] or 0,
            "deleted": row["deleted"] or 0,
        }
