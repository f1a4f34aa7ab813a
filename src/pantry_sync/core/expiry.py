"""Expiry classification over already-stored records.

Used by the expiry notifier and by the repository's freshness counts.
Read-only: nothing here touches sync state.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from pantry_sync.core.record import Record
from pantry_sync.core.validation import parse_iso_date


class Freshness(StrEnum):
    """Expiry bucket of a record relative to a reference day."""

    FRESH = "fresh"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ExpiryCounts:
    """Number of records per freshness bucket."""

    fresh: int = 0
    expiring_soon: int = 0
    expired: int = 0

    @property
    def total(self) -> int:
        return self.fresh + self.expiring_soon + self.expired


@dataclass(frozen=True)
class ExpirySummary:
    """Counts plus item names, as pushed to the notification channel."""

    counts: ExpiryCounts
    window_days: int
    expiring_soon: list[str] = field(default_factory=list)
    expired: list[str] = field(default_factory=list)

    @property
    def has_alerts(self) -> bool:
        return bool(self.expiring_soon or self.expired)


def days_until_expiry(expiry_date: str, today: date) -> int | None:
    """Days from today until expiry (negative once expired). None if unparseable."""
    parsed = parse_iso_date(expiry_date)
    if parsed is None:
        return None
    return (parsed - today).days


def classify(record: Record, today: date, window_days: int) -> Freshness:
    """
    Place a record into a freshness bucket.

    Records expiring within ``window_days`` (inclusive, today counts as 0)
    are EXPIRING_SOON. Unparseable dates are treated as FRESH so a bad
    value never raises an alert.
    """
    days = days_until_expiry(record.expiry_date, today)
    if days is None:
        return Freshness.FRESH
    if days < 0:
        return Freshness.EXPIRED
    if days <= window_days:
        return Freshness.EXPIRING_SOON
    return Freshness.FRESH


def count_by_freshness(records: Iterable[Record], today: date, window_days: int) -> ExpiryCounts:
    """Count records per freshness bucket. Tombstones are ignored."""
    tally = {bucket: 0 for bucket in Freshness}
    for record in records:
        if record.deleted:
            continue
        tally[classify(record, today, window_days)] += 1
    return ExpiryCounts(
        fresh=tally[Freshness.FRESH],
        expiring_soon=tally[Freshness.EXPIRING_SOON],
        expired=tally[Freshness.EXPIRED],
    )


def build_summary(records: Iterable[Record], today: date, window_days: int) -> ExpirySummary:
    """Build the notification summary for the given records."""
    live = [r for r in records if not r.deleted]
    expiring = [r.name for r in live if classify(r, today, window_days) == Freshness.EXPIRING_SOON]
    expired = [r.name for r in live if classify(r, today, window_days) == Freshness.EXPIRED]
    return ExpirySummary(
        counts=count_by_freshness(live, today, window_days),
        window_days=window_days,
        expiring_soon=expiring,
        expired=expired,
    )
