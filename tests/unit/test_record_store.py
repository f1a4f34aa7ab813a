"""Contract tests run against every record store backend."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from pantry_sync.core.record import Record
from pantry_sync.errors import StorageError
from pantry_sync.storage.base import RecordStore
from pantry_sync.storage.memory_store import InMemoryRecordStore
from pantry_sync.storage.sqlite_store import SQLiteRecordStore


def make_record(name: str = "Milk", **overrides: object) -> Record:
    fields: dict[str, object] = {
        "name": name,
        "quantity": "1 L",
        "category": "Dairy",
        "expiry_date": "2025-06-10",
        "owner_id": "user-1",
    }
    fields.update(overrides)
    return Record(**fields)  # type: ignore[arg-type]


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def any_store(request, tmp_path) -> AsyncGenerator[RecordStore, None]:
    if request.param == "memory":
        yield InMemoryRecordStore()
        return
    db = SQLiteRecordStore(tmp_path / "contract.db")
    await db.initialize()
    yield db
    await db.close()


async def _insert(store: RecordStore, name: str = "Milk", **overrides: object) -> Record:
    record = make_record(name, **overrides)
    local_id = await store.insert(record)
    stored = await store.get_by_id(local_id)
    assert stored is not None
    return stored


class TestInsertAndRead:
    async def test_insert_assigns_local_id(self, any_store: RecordStore) -> None:
        first = await _insert(any_store, "Milk")
        second = await _insert(any_store, "Eggs")

        assert first.local_id > 0
        assert second.local_id > first.local_id
        assert first.content() == make_record("Milk").content()

    async def test_get_missing(self, any_store: RecordStore) -> None:
        assert await any_store.get_by_id(999) is None
        assert await any_store.get_by_remote_id("nope") is None
        assert await any_store.get_by_remote_id("") is None

    async def test_get_by_remote_id(self, any_store: RecordStore) -> None:
        stored = await _insert(any_store, remote_id="r7", synced=True)
        found = await any_store.get_by_remote_id("r7")

        assert found is not None
        assert found.local_id == stored.local_id

    async def test_local_ids_never_reused(self, any_store: RecordStore) -> None:
        first = await _insert(any_store, "Milk")
        await any_store.delete(first.local_id)
        second = await _insert(any_store, "Eggs")

        assert second.local_id > first.local_id


class TestListing:
    async def test_list_all_excludes_tombstones(self, any_store: RecordStore) -> None:
        await _insert(any_store, "Milk")
        await _insert(any_store, "Eggs", deleted=True)
        await _insert(any_store, "Rice")

        names = [r.name for r in await any_store.list_all()]
        assert names == ["Milk", "Rice"]

    async def test_list_unsynced_includes_tombstones(self, any_store: RecordStore) -> None:
        await _insert(any_store, "Milk", synced=True, remote_id="r1")
        await _insert(any_store, "Eggs", deleted=True, remote_id="r2")
        await _insert(any_store, "Rice")

        names = [r.name for r in await any_store.list_unsynced()]
        assert names == ["Eggs", "Rice"]

    async def test_search_case_insensitive(self, any_store: RecordStore) -> None:
        await _insert(any_store, "Whole Milk")
        await _insert(any_store, "Oat milk")
        await _insert(any_store, "Milk powder", deleted=True)
        await _insert(any_store, "Eggs")

        names = [r.name for r in await any_store.search("MILK")]
        assert names == ["Whole Milk", "Oat milk"]

    async def test_search_treats_wildcards_literally(self, any_store: RecordStore) -> None:
        await _insert(any_store, "100% juice")
        await _insert(any_store, "Apple juice")

        names = [r.name for r in await any_store.search("%")]
        assert names == ["100% juice"]

    async def test_get_stats(self, any_store: RecordStore) -> None:
        await _insert(any_store, "Milk", synced=True, remote_id="r1")
        await _insert(any_store, "Eggs", deleted=True)
        await _insert(any_store, "Rice")

        assert await any_store.get_stats() == {
            "total": 3,
            "pending": 2,
            "synced": 1,
            "deleted": 1,
        }

    async def test_get_stats_empty(self, any_store: RecordStore) -> None:
        assert await any_store.get_stats() == {"total": 0, "pending": 0, "synced": 0, "deleted": 0}


class TestUpdate:
    async def test_update_persists(self, any_store: RecordStore) -> None:
        stored = await _insert(any_store)
        assert await any_store.update(stored.with_changes(quantity="2 L"))

        reread = await any_store.get_by_id(stored.local_id)
        assert reread is not None
        assert reread.quantity == "2 L"
        assert reread.version == 2

    async def test_update_missing_returns_false(self, any_store: RecordStore) -> None:
        ghost = make_record().with_local_id(42)
        assert await any_store.update(ghost) is False

    async def test_compare_and_set(self, any_store: RecordStore) -> None:
        stored = await _insert(any_store)
        edited = stored.with_changes(name="Oat milk")

        assert await any_store.update(edited, expected_version=5) is False
        assert await any_store.update(edited, expected_version=1) is True
        # The version moved on, so a write based on the old snapshot loses
        assert await any_store.update(stored.mark_synced(), expected_version=1) is False

    async def test_delete(self, any_store: RecordStore) -> None:
        stored = await _insert(any_store)

        assert await any_store.delete(stored.local_id) is True
        assert await any_store.get_by_id(stored.local_id) is None
        assert await any_store.delete(stored.local_id) is False


class TestApply:
    """Read-modify-write with retries on lost races."""

    async def test_apply_transforms_current_snapshot(self, any_store: RecordStore) -> None:
        stored = await _insert(any_store)
        result = await any_store.apply(stored.local_id, lambda r: r.with_changes(quantity="3"))

        assert result is not None
        assert result.version == 2
        reread = await any_store.get_by_id(stored.local_id)
        assert reread is not None
        assert reread.quantity == "3"

    async def test_apply_missing_record(self, any_store: RecordStore) -> None:
        assert await any_store.apply(404, lambda r: r.mark_synced()) is None

    async def test_apply_declined(self, any_store: RecordStore) -> None:
        stored = await _insert(any_store)
        assert await any_store.apply(stored.local_id, lambda r: None) is None

    async def test_apply_retries_after_concurrent_write(self, any_store: RecordStore) -> None:
        stored = await _insert(any_store)
        seen: list[int] = []
        pending_edits: list[Record] = []

        def transform(current: Record) -> Record:
            seen.append(current.version)
            if len(seen) == 1:
                # A user edit lands between the read and the write
                pending_edits.append(current.with_changes(name="Raced"))
            return current.mark_synced()

        original_update = any_store.update

        async def racing_update(record: Record, *, expected_version: int | None = None) -> bool:
            if pending_edits:
                await original_update(pending_edits.pop())
            return await original_update(record, expected_version=expected_version)

        any_store.update = racing_update  # type: ignore[method-assign]
        result = await any_store.apply(stored.local_id, transform)

        assert seen == [1, 2]
        assert result is not None
        assert result.synced is True
        assert result.name == "Raced"
        assert result.version == 2

    async def test_apply_gives_up(self, any_store: RecordStore) -> None:
        stored = await _insert(any_store)

        async def always_lose(record: Record, *, expected_version: int | None = None) -> bool:
            return False

        any_store.update = always_lose  # type: ignore[method-assign]
        with pytest.raises(StorageError, match="gave up after 2 attempts"):
            await any_store.apply(stored.local_id, lambda r: r.mark_synced(), max_attempts=2)
