"""Repository facade: the single entry point for consumers.

Writes go to the local store first and are picked up by the sync engine;
reads never touch the network except ``fetch_remote()``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import date
from typing import TYPE_CHECKING, Any

from pantry_sync.core.expiry import ExpiryCounts, count_by_freshness
from pantry_sync.core.record import Record
from pantry_sync.core.validation import validate_changes, validate_record_input
from pantry_sync.errors import AuthError, RemoteError
from pantry_sync.storage.sqlite_store import SQLiteRecordStore
from pantry_sync.sync.client import HttpRemoteClient
from pantry_sync.sync.connectivity import ConnectivityMonitor
from pantry_sync.sync.sync_engine import CompletionHandler, SyncEngine
from pantry_sync.unified_config import NotificationSettings, SyncSettings, get_config
from pantry_sync.utils.timeutils import today_utc

if TYPE_CHECKING:
    from collections.abc import AsyncIterable

    from pantry_sync.storage.base import RecordStore
    from pantry_sync.sync.auth import IdentityProvider
    from pantry_sync.sync.protocol import RemoteRecord, SyncReport
    from pantry_sync.sync.remote import RemoteClient
    from pantry_sync.unified_config import UnifiedConfig

logger = logging.getLogger(__name__)


class PantryRepository:
    """
    Facade over the record store and the sync engine.

    Usage:
        async with await PantryRepository.open(identity, config) as repo:
            record = await repo.add_record("Milk", "1 L", "Dairy", "2025-06-01", "u1")
            await repo.sync()
    """

    def __init__(
        self,
        store: RecordStore,
        remote: RemoteClient,
        identity: IdentityProvider,
        *,
        settings: SyncSettings | None = None,
        notifications: NotificationSettings | None = None,
    ) -> None:
        self._store = store
        self._remote = remote
        self._identity = identity
        self._settings = settings or SyncSettings()
        self._notifications = notifications or NotificationSettings()
        self._engine = SyncEngine(
            store,
            remote,
            identity,
            max_write_attempts=self._settings.max_write_attempts,
        )
        self._tasks: list[asyncio.Task[Any]] = []
        self._monitor: AsyncIterable[bool] | None = None
        self._owns_resources = False

    @classmethod
    async def open(
        cls, identity: IdentityProvider, config: UnifiedConfig | None = None
    ) -> PantryRepository:
        """
        Build a repository on the configured SQLite database and remote endpoint.

        Args:
            identity: Token source for remote calls
            config: Configuration to use. Defaults to ``get_config()``.
        """
        if config is None:
            config = get_config()
        if not config.sync.base_url:
            raise ValueError("sync.base_url is not configured")

        config.data_dir.mkdir(parents=True, exist_ok=True)
        store = SQLiteRecordStore(config.db_path)
        await store.initialize()
        remote = HttpRemoteClient(
            config.sync.base_url, timeout=config.sync.request_timeout_seconds
        )
        repo = cls(
            store,
            remote,
            identity,
            settings=config.sync,
            notifications=config.notifications,
        )
        repo._owns_resources = True
        return repo

    @property
    def engine(self) -> SyncEngine:
        return self._engine

    @property
    def store(self) -> RecordStore:
        return self._store

    # ========== Writes ==========

    async def add_record(
        self,
        name: str,
        quantity: str,
        category: str,
        expiry_date: str,
        owner_id: str,
    ) -> Record:
        """
        Store a new record locally. It is created remotely by a later pass.

        Raises:
            ValidationError: If any field is blank or the date is malformed
            StorageError: If the local write fails
        """
        validate_record_input(name, quantity, category, expiry_date, owner_id)
        record = Record.create(
            name=name.strip(),
            quantity=quantity.strip(),
            category=category.strip(),
            expiry_date=expiry_date.strip(),
            owner_id=owner_id.strip(),
        )
        local_id = await self._store.insert(record)
        logger.debug("Added record %d (%s)", local_id, record.name)
        return record.with_local_id(local_id)

    async def add_record_now(
        self,
        name: str,
        quantity: str,
        category: str,
        expiry_date: str,
        owner_id: str,
    ) -> Record:
        """
        Store a new record locally, then try to create it remotely right away.

        A remote or auth failure leaves the record for the next pass.

        Returns:
            The stored record as it stands after the attempt
        """
        record = await self.add_record(name, quantity, category, expiry_date, owner_id)
        result = await self._engine.push_record(record.local_id)
        logger.debug("Immediate push of record %d: %s", record.local_id, result.outcome.value)
        return await self._store.get_by_id(record.local_id) or record

    async def update_record(self, local_id: int, **changes: str) -> Record | None:
        """
        Edit content fields of a live record.

        Returns:
            The updated record, or None if it does not exist or is deleted

        Raises:
            ValidationError: If a changed field is blank or the date is malformed
            ValueError: If a non-content field is passed
        """
        validate_changes(changes)
        cleaned = {key: value.strip() for key, value in changes.items()}
        updated = await self._store.apply(
            local_id,
            lambda r: None if r.deleted else r.with_changes(**cleaned),
            max_attempts=self._settings.max_write_attempts,
        )
        if updated is not None:
            self._push_if_reachable()
        return updated

    async def soft_delete(self, local_id: int) -> bool:
        """
        Tombstone a record.

        The remote delete and purge run in a background pass right away
        when the remote is known to be reachable, otherwise in a later one.
        """
        deleted = await self._store.apply(
            local_id,
            lambda r: None if r.deleted else r.soft_deleted(),
            max_attempts=self._settings.max_write_attempts,
        )
        if deleted is None:
            return False
        self._push_if_reachable()
        return True

    def _push_if_reachable(self) -> None:
        if getattr(self._monitor, "current", None) is True:
            self._engine.trigger()

    # ========== Reads ==========

    async def get(self, local_id: int) -> Record | None:
        return await self._store.get_by_id(local_id)

    async def get_by_remote_id(self, remote_id: str) -> Record | None:
        return await self._store.get_by_remote_id(remote_id)

    async def list_all(self) -> list[Record]:
        return await self._store.list_all()

    async def list_unsynced(self) -> list[Record]:
        return await self._store.list_unsynced()

    async def search(self, text: str) -> list[Record]:
        return await self._store.search(text)

    async def get_stats(self) -> dict[str, int]:
        return await self._store.get_stats()

    async def get_expiry_counts(
        self, today: date | None = None, window_days: int | None = None
    ) -> ExpiryCounts:
        """Count live records per freshness bucket."""
        window = self._notifications.window_days if window_days is None else window_days
        return count_by_freshness(await self._store.list_all(), today or today_utc(), window)

    async def fetch_remote(self) -> list[RemoteRecord]:
        """Read every remote record. Returns [] when the remote cannot be read."""
        try:
            token = await self._identity.get_token()
            return await self._remote.list_all(token)
        except (AuthError, RemoteError) as e:
            logger.warning("Cannot fetch remote records: %s", e)
            return []

    # ========== Sync ==========

    async def sync(self) -> SyncReport | None:
        return await self._engine.sync()

    @property
    def is_syncing(self) -> bool:
        return self._engine.is_syncing

    @property
    def last_report(self) -> SyncReport | None:
        return self._engine.last_report

    def on_sync_complete(self, handler: CompletionHandler) -> None:
        self._engine.on_complete(handler)

    # ========== Lifecycle ==========

    def start(self, monitor: AsyncIterable[bool] | None = None) -> None:
        """
        Spawn background sync triggers.

        Args:
            monitor: Reachability stream to watch. Defaults to HEAD
                probes of the configured base URL when one is set.
        """
        if self._tasks:
            raise RuntimeError("PantryRepository already started")

        if monitor is None and self._settings.base_url:
            monitor = ConnectivityMonitor.probing(
                self._settings.base_url,
                interval=self._settings.probe_interval_seconds,
                debounce_seconds=self._settings.debounce_seconds,
            )
        self._monitor = monitor
        if monitor is not None:
            self._tasks.append(asyncio.create_task(self._engine.watch(monitor)))
        if self._settings.sync_interval_seconds > 0:
            self._tasks.append(
                asyncio.create_task(
                    self._engine.run_periodic(self._settings.sync_interval_seconds)
                )
            )
        logger.info("Sync triggers started (%d tasks)", len(self._tasks))

    async def stop(self) -> None:
        """Cancel background triggers and wait for in-flight passes."""
        tasks, self._tasks = self._tasks, []
        self._monitor = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self._engine.drain()

    async def close(self) -> None:
        await self.stop()
        if self._owns_resources:
            await self._remote.close()
            await self._store.close()

    async def __aenter__(self) -> PantryRepository:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()
