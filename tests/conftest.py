"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from itertools import count

import pytest
import pytest_asyncio

from pantry_sync.core.expiry import ExpirySummary
from pantry_sync.core.record import Record
from pantry_sync.repository import PantryRepository
from pantry_sync.storage.memory_store import InMemoryRecordStore
from pantry_sync.storage.sqlite_store import SQLiteRecordStore
from pantry_sync.sync.auth import StaticIdentityProvider
from pantry_sync.sync.protocol import RemoteRecord
from pantry_sync.sync.remote import RemoteClient
from pantry_sync.sync.sync_engine import SyncEngine


class FakeRemote(RemoteClient):
    """In-memory remote store with failure injection and call hooks."""

    def __init__(self) -> None:
        self.records: dict[str, RemoteRecord] = {}
        self.calls: list[tuple[str, str]] = []
        self.tokens: list[str] = []
        self.summaries: list[ExpirySummary] = []
        # op name -> exception raised on every call to that op
        self.fail: dict[str, Exception] = {}
        # op name -> coroutine function awaited before the op runs
        self.before: dict[str, Callable[[], Awaitable[None]]] = {}
        self._ids = count(1)

    def seed(self, remote_id: str, version: int, **content: str) -> RemoteRecord:
        data = {"id": remote_id, "name": "", "version": version, **content}
        self.records[remote_id] = RemoteRecord.model_validate(data)
        return self.records[remote_id]

    def ops(self, name: str) -> list[str]:
        return [key for op, key in self.calls if op == name]

    async def _enter(self, op: str, key: str, token: str) -> None:
        self.calls.append((op, key))
        self.tokens.append(token)
        hook = self.before.get(op)
        if hook is not None:
            await hook()
        if op in self.fail:
            raise self.fail[op]

    @staticmethod
    def _to_remote(remote_id: str, record: Record) -> RemoteRecord:
        return RemoteRecord.model_validate({"id": remote_id, **record.to_payload()})

    async def create(self, record: Record, token: str) -> RemoteRecord | None:
        await self._enter("create", str(record.local_id), token)
        remote_id = f"r{next(self._ids)}"
        self.records[remote_id] = self._to_remote(remote_id, record)
        return self.records[remote_id]

    async def update(self, remote_id: str, record: Record, token: str) -> None:
        await self._enter("update", remote_id, token)
        self.records[remote_id] = self._to_remote(remote_id, record)

    async def delete(self, remote_id: str, token: str) -> None:
        await self._enter("delete", remote_id, token)
        self.records.pop(remote_id, None)

    async def get_by_id(self, remote_id: str, token: str) -> RemoteRecord | None:
        await self._enter("get_by_id", remote_id, token)
        return self.records.get(remote_id)

    async def list_all(self, token: str) -> list[RemoteRecord]:
        await self._enter("list_all", "", token)
        return list(self.records.values())

    async def send_expiry_summary(self, summary: ExpirySummary, token: str) -> None:
        await self._enter("send_expiry_summary", "", token)
        self.summaries.append(summary)


@pytest.fixture
def store() -> InMemoryRecordStore:
    """Create an in-memory record store."""
    return InMemoryRecordStore()


@pytest_asyncio.fixture
async def sqlite_store(tmp_path) -> AsyncGenerator[SQLiteRecordStore, None]:
    """Create an initialized SQLite record store in a temp directory."""
    db = SQLiteRecordStore(tmp_path / "records.db")
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def remote() -> FakeRemote:
    """Create an empty fake remote store."""
    return FakeRemote()


@pytest.fixture
def identity() -> StaticIdentityProvider:
    return StaticIdentityProvider("token-1")


@pytest.fixture
def engine(
    store: InMemoryRecordStore, remote: FakeRemote, identity: StaticIdentityProvider
) -> SyncEngine:
    """Create a sync engine over the in-memory store and fake remote."""
    return SyncEngine(store, remote, identity)


@pytest.fixture
def repo(
    store: InMemoryRecordStore, remote: FakeRemote, identity: StaticIdentityProvider
) -> PantryRepository:
    """Create a repository facade over the in-memory store and fake remote."""
    return PantryRepository(store, remote, identity)
