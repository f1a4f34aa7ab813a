"""Abstract contract for the remote authoritative store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pantry_sync.core.expiry import ExpirySummary
    from pantry_sync.core.record import Record
    from pantry_sync.sync.protocol import RemoteRecord


class RemoteClient(ABC):
    """
    Logical operations against the remote store.

    Every call takes a caller-supplied bearer token; the client never
    manages token lifecycle. Calls fail independently by raising
    NetworkError, AuthError or RemoteError. Nothing is swallowed here.
    """

    @abstractmethod
    async def create(self, record: Record, token: str) -> RemoteRecord | None:
        """
        Create the record remotely.

        Returns:
            The created remote record, or None if the response carried
            no identity
        """
        ...

    @abstractmethod
    async def update(self, remote_id: str, record: Record, token: str) -> None:
        """Overwrite the remote record with the local content and version."""
        ...

    @abstractmethod
    async def delete(self, remote_id: str, token: str) -> None:
        """Delete the remote record. Deleting a missing record succeeds."""
        ...

    @abstractmethod
    async def get_by_id(self, remote_id: str, token: str) -> RemoteRecord | None:
        """Fetch one remote record. Returns None if the remote has no such record."""
        ...

    @abstractmethod
    async def list_all(self, token: str) -> list[RemoteRecord]:
        """Fetch every remote record visible to the token's identity."""
        ...

    @abstractmethod
    async def send_expiry_summary(self, summary: ExpirySummary, token: str) -> None:
        """Push aggregate expiry counts to the notification channel."""
        ...

    async def close(self) -> None:  # noqa: B027
        """Release transport resources. No-op by default."""
