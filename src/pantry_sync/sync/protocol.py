"""Wire models and pass results for push-based record sync."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pantry_sync.core.expiry import ExpirySummary
from pantry_sync.core.record import Record

# ============ Wire models ============


class RemoteRecord(BaseModel):
    """A record as returned by the remote store."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    remote_id: str = Field(..., alias="id", min_length=1, description="Remote identity")
    name: str = ""
    quantity: str = ""
    category: str = ""
    expiry_date: str = ""
    owner_id: str = ""
    version: int = Field(1, ge=0, description="Version last pushed by any writer")
    last_modified: datetime | None = None

    def content(self) -> tuple[str, ...]:
        """Content fields in the same order as Record.content()."""
        return (self.name, self.quantity, self.category, self.expiry_date, self.owner_id)


class RecordBody(BaseModel):
    """Request body for create and update."""

    name: str
    quantity: str
    category: str
    expiry_date: str
    owner_id: str
    version: int = Field(..., ge=1)
    last_modified: datetime

    @classmethod
    def from_record(cls, record: Record) -> RecordBody:
        return cls.model_validate(record.to_payload())


class ExpirySummaryPayload(BaseModel):
    """Request body for the expiry notification channel."""

    about_to_expire_count: int = Field(..., ge=0)
    expired_count: int = Field(..., ge=0)
    about_to_expire_items: list[str] = Field(default_factory=list)
    expired_items: list[str] = Field(default_factory=list)
    notification_days: int = Field(..., ge=0)

    @classmethod
    def from_summary(cls, summary: ExpirySummary) -> ExpirySummaryPayload:
        return cls(
            about_to_expire_count=summary.counts.expiring_soon,
            expired_count=summary.counts.expired,
            about_to_expire_items=list(summary.expiring_soon),
            expired_items=list(summary.expired),
            notification_days=summary.window_days,
        )


# ============ Pass results ============


class SyncOutcome(StrEnum):
    """What a reconciliation pass did with one record."""

    CREATED = "created"
    PUSHED = "pushed"
    PURGED = "purged"
    CONFLICT_SKIP = "conflict_skip"  # remote at least as new, push withheld
    SKIPPED_UNKNOWN = "skipped_unknown"  # remote state could not be read
    SKIPPED_RESOLVED = "skipped_resolved"  # already synced or gone on re-read
    FAILED = "failed"


@dataclass(frozen=True)
class RecordResult:
    """Outcome for a single record within a pass."""

    local_id: int
    outcome: SyncOutcome
    remote_id: str = ""
    detail: str = ""


@dataclass(frozen=True)
class SyncReport:
    """Summary of one reconciliation pass."""

    started_at: datetime
    finished_at: datetime
    results: list[RecordResult] = field(default_factory=list)
    error: str = ""

    def count(self, outcome: SyncOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def failed(self) -> int:
        return self.count(SyncOutcome.FAILED)

    @property
    def completed(self) -> int:
        return (
            self.count(SyncOutcome.CREATED)
            + self.count(SyncOutcome.PUSHED)
            + self.count(SyncOutcome.PURGED)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "processed": len(self.results),
            "outcomes": {o.value: self.count(o) for o in SyncOutcome if self.count(o)},
            "error": self.error,
        }
