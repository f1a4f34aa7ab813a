"""Record data structures - the synchronizable unit of pantry-sync."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from typing import Any

from pantry_sync.utils.timeutils import utcnow

CONTENT_FIELDS: tuple[str, ...] = ("name", "quantity", "category", "expiry_date", "owner_id")


class RecordState(StrEnum):
    """Sync state of a record, derived from its stored fields."""

    NEW = "new"  # never created remotely
    DIRTY = "dirty"  # has a remote identity, local edits not pushed
    PENDING_DELETE = "pending_delete"  # tombstone awaiting remote delete
    SYNCED = "synced"


@dataclass(frozen=True)
class Record:
    """
    A pantry record as held by the local store.

    Records are immutable snapshots. Every mutation returns a new
    snapshot that must be written back through the record store.

    Attributes:
        local_id: Store-assigned identity (0 until inserted), never reused
        remote_id: Identity assigned by the remote store on first create
        name: Product name
        quantity: Free-form quantity ("1 L", "6 eggs")
        category: Category label
        expiry_date: ISO date string (YYYY-MM-DD)
        owner_id: Identity of the owning user
        synced: True iff content equals the last exchanged remote content
        deleted: Tombstone marker, pending remote removal
        version: Monotonic mutation counter used for conflict resolution
        last_modified: Diagnostic timestamp, never used for conflicts
    """

    name: str
    quantity: str
    category: str
    expiry_date: str
    owner_id: str
    local_id: int = 0
    remote_id: str = ""
    synced: bool = False
    deleted: bool = False
    version: int = 1
    last_modified: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        name: str,
        quantity: str,
        category: str,
        expiry_date: str,
        owner_id: str,
    ) -> Record:
        """
        Factory method for a locally created record.

        The new record is unsynced, has no remote identity and starts
        at version 1.
        """
        return cls(
            name=name,
            quantity=quantity,
            category=category,
            expiry_date=expiry_date,
            owner_id=owner_id,
            version=1,
            synced=False,
            last_modified=utcnow(),
        )

    @property
    def state(self) -> RecordState:
        """Current position in the sync state machine."""
        if self.synced:
            return RecordState.SYNCED
        if self.deleted:
            return RecordState.PENDING_DELETE
        if not self.remote_id:
            return RecordState.NEW
        return RecordState.DIRTY

    def content(self) -> tuple[str, ...]:
        """Content fields only, for equality checks that ignore bookkeeping."""
        return tuple(getattr(self, name) for name in CONTENT_FIELDS)

    # ── Local mutations (bump version) ────────────────────────────────

    def with_changes(self, **changes: str) -> Record:
        """
        Apply a local edit to content fields.

        Args:
            **changes: New values for any of the content fields

        Returns:
            New Record with version + 1 and synced=False

        Raises:
            ValueError: If a non-content field is passed
        """
        unknown = set(changes) - set(CONTENT_FIELDS)
        if unknown:
            raise ValueError(f"Not editable content fields: {sorted(unknown)}")
        return replace(
            self,
            **changes,
            version=self.version + 1,
            synced=False,
            last_modified=utcnow(),
        )

    def soft_deleted(self) -> Record:
        """Mark as tombstone. Counts as a mutation."""
        return replace(
            self,
            deleted=True,
            version=self.version + 1,
            synced=False,
            last_modified=utcnow(),
        )

    # ── Bookkeeping transitions (version untouched) ───────────────────

    def mark_synced(self) -> Record:
        return replace(self, synced=True, last_modified=utcnow())

    def mark_unsynced(self) -> Record:
        return replace(self, synced=False, last_modified=utcnow())

    def with_remote_id(self, remote_id: str) -> Record:
        """
        Attach the identity assigned by the remote store.

        Raises:
            ValueError: If remote_id is empty or a different one is already set
        """
        if not remote_id:
            raise ValueError("remote_id must not be empty")
        if self.remote_id and self.remote_id != remote_id:
            raise ValueError(
                f"Record {self.local_id} already has remote_id {self.remote_id!r}"
            )
        return replace(self, remote_id=remote_id)

    def with_local_id(self, local_id: int) -> Record:
        return replace(self, local_id=local_id)

    def to_payload(self) -> dict[str, Any]:
        """Content plus version, as sent to the remote store."""
        return {
            "name": self.name,
            "quantity": self.quantity,
            "category": self.category,
            "expiry_date": self.expiry_date,
            "owner_id": self.owner_id,
            "version": self.version,
            "last_modified": self.last_modified.isoformat(),
        }
