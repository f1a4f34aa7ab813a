"""In-memory record store for development and testing."""

from __future__ import annotations

from dataclasses import replace
from itertools import count

from pantry_sync.core.record import Record
from pantry_sync.storage.base import RecordStore


class InMemoryRecordStore(RecordStore):
    """Dict-based record store.

    Data is lost when the process exits. Local ids come from a monotonic
    counter and are never reused, even after a purge.
    """

    def __init__(self) -> None:
        self._records: dict[int, Record] = {}
        self._ids = count(1)

    async def insert(self, record: Record) -> int:
        local_id = next(self._ids)
        self._records[local_id] = replace(record, local_id=local_id)
        return local_id

    async def update(self, record: Record, *, expected_version: int | None = None) -> bool:
        current = self._records.get(record.local_id)
        if current is None:
            return False
        if expected_version is not None and current.version != expected_version:
            return False
        self._records[record.local_id] = record
        return True

    async def delete(self, local_id: int) -> bool:
        return self._records.pop(local_id, None) is not None

    async def get_by_id(self, local_id: int) -> Record | None:
        return self._records.get(local_id)

    async def get_by_remote_id(self, remote_id: str) -> Record | None:
        if not remote_id:
            return None
        for record in self._records.values():
            if record.remote_id == remote_id:
                return record
        return None

    async def list_all(self) -> list[Record]:
        return [r for _, r in sorted(self._records.items()) if not r.deleted]

    async def list_unsynced(self) -> list[Record]:
        return [r for _, r in sorted(self._records.items()) if not r.synced]

    async def search(self, text: str) -> list[Record]:
        needle = text.casefold()
        return [r for r in await self.list_all() if needle in r.name.casefold()]

    async def get_stats(self) -> dict[str, int]:
        records = list(self._records.values())
        return {
            "total": len(records),
            "pending": sum(1 for r in records if not r.synced),
            "synced": sum(1 for r in records if r.synced),
            "deleted": sum(1 for r in records if r.deleted),
        }
