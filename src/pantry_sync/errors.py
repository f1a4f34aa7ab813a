"""Error taxonomy for pantry-sync.

Remote and per-record failures are contained inside a reconciliation pass;
``ValidationError`` and ``StorageError`` raised on the user write path
propagate to the caller.
"""

from __future__ import annotations


class PantrySyncError(Exception):
    """Base class for all pantry-sync errors."""


class ValidationError(PantrySyncError):
    """Record input rejected before it reaches the store."""

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or []


class StorageError(PantrySyncError):
    """Local persistence failure."""


class AuthError(PantrySyncError):
    """Authorization token could not be obtained or was rejected."""


class RemoteError(PantrySyncError):
    """Remote store call failed or returned an unusable response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkError(RemoteError):
    """Remote store could not be reached."""
