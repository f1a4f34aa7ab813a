"""SQLite schema definition for the local record store."""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import aiosqlite

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

# ── Migrations ──────────────────────────────────────────────────────
# Each entry maps (from_version -> to_version) with a list of SQL statements.
# Migrations run sequentially in initialize() when db version < SCHEMA_VERSION.

MIGRATIONS: dict[tuple[int, int], list[str]] = {}

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY);

-- AUTOINCREMENT keeps local ids from being reused after a purge
CREATE TABLE IF NOT EXISTS records (
    local_id INTEGER PRIMARY KEY AUTOINCREMENT,
    remote_id TEXT NOT NULL DEFAULT '',
    name TEXT NOT NULL,
    quantity TEXT NOT NULL,
    category TEXT NOT NULL,
    expiry_date TEXT NOT NULL,
    owner_id TEXT NOT NULL,
    synced INTEGER NOT NULL DEFAULT 0,
    deleted INTEGER NOT NULL DEFAULT 0,
    version INTEGER NOT NULL DEFAULT 1,
    last_modified TEXT NOT NULL DEFAULT ''
);

CREATE INDEX IF NOT EXISTS idx_records_remote_id ON records(remote_id) WHERE remote_id != '';
CREATE INDEX IF NOT EXISTS idx_records_synced ON records(synced, local_id);
"""


async def run_migrations(conn: aiosqlite.Connection, current_version: int) -> int:
    """Apply all pending migrations from current_version to SCHEMA_VERSION.

    Returns the final schema version after all migrations.
    """
    version = current_version

    while version < SCHEMA_VERSION:
        next_version = version + 1
        for sql in MIGRATIONS.get((version, next_version), []):
            try:
                await conn.execute(sql)
            except sqlite3.OperationalError as e:
                # Column/index may already exist after a partial migration.
                if "duplicate column" in str(e).lower() or "already exists" in str(e).lower():
                    logger.debug("Migration already applied: %s", e)
                else:
                    logger.warning("Migration statement failed: %s: %s", sql[:80], e)
        version = next_version
        logger.info("Migrated record store schema to version %d", version)

    await conn.execute("UPDATE schema_version SET version = ?", (SCHEMA_VERSION,))
    await conn.commit()

    return version
