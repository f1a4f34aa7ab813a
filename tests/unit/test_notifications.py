"""Tests for the expiry notifier."""

from __future__ import annotations

from datetime import date

from pantry_sync.errors import NetworkError
from pantry_sync.notifications import ExpiryNotifier
from pantry_sync.repository import PantryRepository
from pantry_sync.unified_config import NotificationSettings

TODAY = date(2025, 6, 10)


def _notifier(repo: PantryRepository, remote, identity, **settings: object) -> ExpiryNotifier:
    return ExpiryNotifier(repo, remote, identity, NotificationSettings(**settings))  # type: ignore[arg-type]


class TestExpiryNotifier:
    async def test_disabled(self, repo: PantryRepository, remote, identity) -> None:
        await repo.add_record("Milk", "1 L", "Dairy", "2025-06-09", "user-1")

        assert await _notifier(repo, remote, identity, enabled=False).run(TODAY) is None
        assert remote.summaries == []

    async def test_pushes_alerts(self, repo: PantryRepository, remote, identity) -> None:
        await repo.add_record("Milk", "1 L", "Dairy", "2025-06-11", "user-1")
        await repo.add_record("Eggs", "6", "Dairy", "2025-06-01", "user-1")
        await repo.add_record("Rice", "1 kg", "Grains", "2026-01-01", "user-1")

        summary = await _notifier(repo, remote, identity).run(TODAY)

        assert summary is not None
        assert summary.expiring_soon == ["Milk"]
        assert summary.expired == ["Eggs"]
        assert remote.summaries == [summary]

    async def test_nothing_to_report(self, repo: PantryRepository, remote, identity) -> None:
        await repo.add_record("Rice", "1 kg", "Grains", "2026-01-01", "user-1")

        summary = await _notifier(repo, remote, identity).run(TODAY)

        assert summary is not None
        assert summary.has_alerts is False
        assert remote.summaries == []

    async def test_push_failure_still_returns_summary(
        self, repo: PantryRepository, remote, identity
    ) -> None:
        await repo.add_record("Milk", "1 L", "Dairy", "2025-06-09", "user-1")
        remote.fail["send_expiry_summary"] = NetworkError("offline")

        summary = await _notifier(repo, remote, identity).run(TODAY)

        assert summary is not None
        assert summary.expired == ["Milk"]

    async def test_does_not_touch_sync_state(self, repo: PantryRepository, remote, identity) -> None:
        record = await repo.add_record("Milk", "1 L", "Dairy", "2025-06-09", "user-1")

        await _notifier(repo, remote, identity).run(TODAY)

        assert await repo.get(record.local_id) == record
        assert remote.ops("create") == []
