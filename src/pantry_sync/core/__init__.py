"""Core data models for pantry-sync."""

from pantry_sync.core.expiry import (
    ExpiryCounts,
    ExpirySummary,
    Freshness,
    build_summary,
    classify,
    count_by_freshness,
    days_until_expiry,
)
from pantry_sync.core.record import CONTENT_FIELDS, Record, RecordState
from pantry_sync.core.validation import validate_changes, validate_record_input

__all__ = [
    "CONTENT_FIELDS",
    "Record",
    "RecordState",
    "validate_record_input",
    "validate_changes",
    "ExpiryCounts",
    "ExpirySummary",
    "Freshness",
    "build_summary",
    "classify",
    "count_by_freshness",
    "days_until_expiry",
]
