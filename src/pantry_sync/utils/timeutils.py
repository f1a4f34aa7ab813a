"""Timezone-aware time helpers."""

from __future__ import annotations

from datetime import UTC, date, datetime


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def today_utc() -> date:
    """Return the current UTC calendar date."""
    return utcnow().date()
