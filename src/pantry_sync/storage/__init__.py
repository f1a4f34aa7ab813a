"""Local record store backends for pantry-sync."""

from pantry_sync.storage.base import RecordStore
from pantry_sync.storage.memory_store import InMemoryRecordStore
from pantry_sync.storage.sqlite_store import SQLiteRecordStore

__all__ = [
    "RecordStore",
    "InMemoryRecordStore",
    "SQLiteRecordStore",
]
