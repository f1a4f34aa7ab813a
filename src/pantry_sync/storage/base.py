"""Abstract base class for local record store backends."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from pantry_sync.errors import StorageError

if TYPE_CHECKING:
    from pantry_sync.core.record import Record

logger = logging.getLogger(__name__)

RecordTransform = Callable[["Record"], "Record | None"]


class RecordStore(ABC):
    """
    Abstract interface for the local record store.

    The store exclusively owns the persisted representation of records.
    Every write is atomic per record. Backend failures are raised as
    StorageError and are never retried by the store itself.
    """

    # ========== Record Operations ==========

    @abstractmethod
    async def insert(self, record: Record) -> int:
        """
        Insert a new record.

        Args:
            record: The record to insert (its local_id is ignored)

        Returns:
            The assigned local_id
        """
        ...

    @abstractmethod
    async def update(self, record: Record, *, expected_version: int | None = None) -> bool:
        """
        Overwrite the stored record with the same local_id.

        Args:
            record: New snapshot of the record
            expected_version: If given, only write when the stored version
                still equals this value (compare-and-set)

        Returns:
            True if a row was written, False if the record does not exist
            or the stored version no longer matches
        """
        ...

    @abstractmethod
    async def delete(self, local_id: int) -> bool:
        """Physically remove a record. Returns True if it existed."""
        ...

    @abstractmethod
    async def get_by_id(self, local_id: int) -> Record | None:
        """Get a record by local id, tombstones included."""
        ...

    @abstractmethod
    async def get_by_remote_id(self, remote_id: str) -> Record | None:
        """Get a record by its remote identity, tombstones included."""
        ...

    @abstractmethod
    async def list_all(self) -> list[Record]:
        """All records that are not soft-deleted, ordered by local_id."""
        ...

    @abstractmethod
    async def list_unsynced(self) -> list[Record]:
        """All records with synced=False (tombstones included), ordered by local_id."""
        ...

    @abstractmethod
    async def search(self, text: str) -> list[Record]:
        """Case-insensitive substring match on name over non-deleted records."""
        ...

    @abstractmethod
    async def get_stats(self) -> dict[str, int]:
        """Counts: total, pending (unsynced), synced, deleted."""
        ...

    async def close(self) -> None:  # noqa: B027
        """Release backend resources. No-op by default."""

    # ========== Read-modify-write ==========

    async def apply(
        self,
        local_id: int,
        transform: RecordTransform,
        *,
        max_attempts: int = 3,
    ) -> Record | None:
        """
        Re-read a record, transform the snapshot and write it back.

        The write is conditional on the version that was read, so a
        concurrent writer that bumped the version in between forces a
        fresh read and a second application of ``transform``.

        Args:
            local_id: Record to modify
            transform: Pure function from current snapshot to new snapshot,
                or None to leave the record untouched
            max_attempts: Lost races tolerated before giving up

        Returns:
            The written snapshot, or None if the record is gone or
            transform declined

        Raises:
            StorageError: If every attempt lost a race
        """
        for attempt in range(1, max_attempts + 1):
            current = await self.get_by_id(local_id)
            if current is None:
                return None
            updated = transform(current)
            if updated is None:
                return None
            if await self.update(updated, expected_version=current.version):
                return updated
            logger.debug(
                "Concurrent write on record %d, retrying (%d/%d)",
                local_id,
                attempt,
                max_attempts,
            )
        raise StorageError(f"Record {local_id} kept changing, gave up after {max_attempts} attempts")
