"""Tests for wire models and pass reports."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from pantry_sync.core.record import Record
from pantry_sync.sync.protocol import (
    RecordBody,
    RecordResult,
    RemoteRecord,
    SyncOutcome,
    SyncReport,
)


class TestRemoteRecord:
    def test_id_alias_and_extra_fields(self) -> None:
        remote = RemoteRecord.model_validate(
            {"id": "r1", "name": "Milk", "version": 2, "server_only": True}
        )
        assert remote.remote_id == "r1"
        assert remote.version == 2
        assert remote.quantity == ""

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RemoteRecord.model_validate({"id": "", "version": 1})

    def test_content_matches_record_order(self) -> None:
        record = Record.create("Milk", "1 L", "Dairy", "2025-06-10", "user-1")
        remote = RemoteRecord.model_validate({"id": "r1", **record.to_payload()})
        assert remote.content() == record.content()


class TestRecordBody:
    def test_from_record(self) -> None:
        record = Record.create("Milk", "1 L", "Dairy", "2025-06-10", "user-1")
        body = RecordBody.from_record(record).model_dump(mode="json")

        assert body["version"] == 1
        assert body["owner_id"] == "user-1"
        assert set(body) == {
            "name",
            "quantity",
            "category",
            "expiry_date",
            "owner_id",
            "version",
            "last_modified",
        }


class TestSyncReport:
    def test_counts(self) -> None:
        now = datetime(2025, 6, 10, tzinfo=UTC)
        report = SyncReport(
            started_at=now,
            finished_at=now,
            results=[
                RecordResult(1, SyncOutcome.CREATED, "r1"),
                RecordResult(2, SyncOutcome.CONFLICT_SKIP, "r2"),
                RecordResult(3, SyncOutcome.FAILED, detail="offline"),
                RecordResult(4, SyncOutcome.PURGED),
            ],
        )

        assert report.completed == 2
        assert report.failed == 1
        assert report.to_dict()["outcomes"] == {
            "created": 1,
            "purged": 1,
            "conflict_skip": 1,
            "failed": 1,
        }
