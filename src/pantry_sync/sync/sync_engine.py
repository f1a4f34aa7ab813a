"""Sync engine: push-based reconciliation of local records with the remote store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, Awaitable, Callable
from typing import TYPE_CHECKING, Any

from pantry_sync.core.record import Record, RecordState
from pantry_sync.errors import AuthError, RemoteError, StorageError
from pantry_sync.sync.protocol import RecordResult, SyncOutcome, SyncReport
from pantry_sync.utils.timeutils import utcnow

if TYPE_CHECKING:
    from pantry_sync.storage.base import RecordStore
    from pantry_sync.sync.auth import IdentityProvider
    from pantry_sync.sync.remote import RemoteClient

logger = logging.getLogger(__name__)

CompletionHandler = Callable[[SyncReport], Awaitable[Any] | Any]


class SyncEngine:
    """Orchestrates reconciliation passes over locally unsynced records.

    One pass:
    1. Acquire the single-flight guard (a trigger while a pass runs is dropped)
    2. Snapshot the unsynced records
    3. Handle each record sequentially, re-reading it first
    4. Release the guard and publish a SyncReport

    Conflicts are resolved last-writer-wins by version; ties favour the
    remote. Per-record failures are logged and contained, so a pass never
    raises outward.
    """

    def __init__(
        self,
        store: RecordStore,
        remote: RemoteClient,
        identity: IdentityProvider,
        *,
        max_write_attempts: int = 3,
    ) -> None:
        self._store = store
        self._remote = remote
        self._identity = identity
        self._max_write_attempts = max_write_attempts

        self._guard = asyncio.Lock()
        self._is_syncing = False
        self._last_report: SyncReport | None = None
        self._handlers: list[CompletionHandler] = []
        self._tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def is_syncing(self) -> bool:
        """True while a pass (or single-record push) holds the guard."""
        return self._is_syncing

    @property
    def last_report(self) -> SyncReport | None:
        return self._last_report

    def on_complete(self, handler: CompletionHandler) -> None:
        """Register a handler called with every finished pass's report."""
        self._handlers.append(handler)

    def off_complete(self, handler: CompletionHandler) -> None:
        self._handlers = [h for h in self._handlers if h != handler]

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def sync(self) -> SyncReport | None:
        """
        Run one reconciliation pass.

        Returns:
            The pass report, or None if another pass was already running
            (the trigger is dropped, not queued)
        """
        if self._guard.locked():
            logger.debug("Sync pass already in progress, trigger dropped")
            return None

        async with self._guard:
            self._is_syncing = True
            try:
                report = await self._run_pass()
            finally:
                self._is_syncing = False

        self._last_report = report
        await self._publish(report)
        return report

    def trigger(self) -> asyncio.Task[SyncReport | None]:
        """Start a pass in the background. Dropped by the guard if one is running."""
        task = asyncio.create_task(self.sync())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for background passes started by ``trigger()``."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def push_record(self, local_id: int) -> RecordResult:
        """
        Reconcile a single record right away.

        Unlike ``sync()`` this waits for a running pass to finish instead
        of being dropped; the record is re-read under the guard, so one
        already handled by that pass is skipped.
        """
        async with self._guard:
            self._is_syncing = True
            try:
                return await self._reconcile(local_id)
            finally:
                self._is_syncing = False

    async def watch(self, connectivity: AsyncIterable[bool]) -> None:
        """Start a pass on every transition to reachable. Runs until the stream ends."""
        async for reachable in connectivity:
            if reachable:
                logger.info("Remote reachable, starting sync pass")
                self.trigger()
            else:
                logger.info("Remote unreachable, working offline")

    async def run_periodic(self, interval: float) -> None:
        """
        Start a pass every ``interval`` seconds until cancelled.

        Passes run as background tasks, so cancelling this loop never
        interrupts a pass; ``drain()`` waits for them.
        """
        if interval <= 0:
            raise ValueError("interval must be > 0")
        while True:
            await asyncio.sleep(interval)
            self.trigger()

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    async def _run_pass(self) -> SyncReport:
        started_at = utcnow()
        results: list[RecordResult] = []

        try:
            pending = await self._store.list_unsynced()
        except StorageError as e:
            logger.error("Sync pass aborted, cannot read unsynced records: %s", e)
            return SyncReport(started_at=started_at, finished_at=utcnow(), error=str(e))

        logger.info("Sync pass started: %d unsynced records", len(pending))
        for record in pending:
            results.append(await self._reconcile(record.local_id))

        report = SyncReport(started_at=started_at, finished_at=utcnow(), results=results)
        logger.info("Sync pass finished: %s", report.to_dict()["outcomes"])
        return report

    async def _reconcile(self, local_id: int) -> RecordResult:
        """Handle one record. Never raises."""
        try:
            current = await self._store.get_by_id(local_id)
            if current is None or current.synced:
                return RecordResult(local_id, SyncOutcome.SKIPPED_RESOLVED)

            state = current.state
            if state == RecordState.PENDING_DELETE:
                result = await self._handle_delete(current)
            elif state == RecordState.NEW:
                result = await self._handle_new(current)
            else:
                result = await self._handle_dirty(current)
        except Exception as e:
            logger.warning("Unexpected error syncing record %d", local_id, exc_info=True)
            return RecordResult(local_id, SyncOutcome.FAILED, detail=f"{type(e).__name__}: {e}")

        logger.debug(
            "Record %d: %s %s", result.local_id, result.outcome.value, result.detail or ""
        )
        return result

    async def _handle_delete(self, record: Record) -> RecordResult:
        if not record.remote_id:
            await self._store.delete(record.local_id)
            return RecordResult(record.local_id, SyncOutcome.PURGED, detail="never created remotely")

        try:
            token = await self._identity.get_token()
            await self._remote.delete(record.remote_id, token)
        except (AuthError, RemoteError) as e:
            logger.warning("Remote delete of %s failed: %s", record.remote_id, e)
            await self._write(record.local_id, lambda r: r.mark_unsynced() if r.deleted else None)
            return RecordResult(
                record.local_id, SyncOutcome.FAILED, record.remote_id, detail=str(e)
            )

        await self._store.delete(record.local_id)
        return RecordResult(record.local_id, SyncOutcome.PURGED, record.remote_id)

    async def _handle_new(self, record: Record) -> RecordResult:
        # Claim the record as synced before the remote call so it is not
        # created twice; reverted below on any failure.
        claimed = await self._write(
            record.local_id,
            lambda r: r.mark_synced() if r.state == RecordState.NEW else None,
        )
        if claimed is None:
            return RecordResult(record.local_id, SyncOutcome.SKIPPED_RESOLVED)

        try:
            token = await self._identity.get_token()
            created = await self._remote.create(claimed, token)
        except (AuthError, RemoteError) as e:
            logger.warning("Remote create of record %d failed: %s", record.local_id, e)
            await self._release_claim(record.local_id)
            return RecordResult(record.local_id, SyncOutcome.FAILED, detail=str(e))
        except BaseException:
            # Cancellation included; a second cancel must not stop the revert.
            await asyncio.shield(self._release_claim(record.local_id))
            raise

        if created is None:
            await self._release_claim(record.local_id)
            return RecordResult(record.local_id, SyncOutcome.FAILED, detail="empty create response")

        remote_id = created.remote_id
        # A local edit made during the call already reset synced=False;
        # only the remote identity is recorded in that case.
        settled = await self._write(record.local_id, lambda r: r.with_remote_id(remote_id))
        if settled is None:
            logger.warning(
                "Record %d vanished locally after remote create as %s", record.local_id, remote_id
            )
        return RecordResult(record.local_id, SyncOutcome.CREATED, remote_id)

    async def _handle_dirty(self, record: Record) -> RecordResult:
        try:
            token = await self._identity.get_token()
        except AuthError as e:
            logger.warning("No token to push %s: %s", record.remote_id, e)
            return RecordResult(record.local_id, SyncOutcome.FAILED, record.remote_id, str(e))

        try:
            remote = await self._remote.get_by_id(record.remote_id, token)
        except (AuthError, RemoteError) as e:
            logger.info("Cannot read remote %s, skipping this pass: %s", record.remote_id, e)
            return RecordResult(
                record.local_id, SyncOutcome.SKIPPED_UNKNOWN, record.remote_id, str(e)
            )

        if remote is None:
            return RecordResult(
                record.local_id, SyncOutcome.SKIPPED_UNKNOWN, record.remote_id, "not found remotely"
            )

        if record.version <= remote.version:
            return RecordResult(
                record.local_id,
                SyncOutcome.CONFLICT_SKIP,
                record.remote_id,
                f"local v{record.version} <= remote v{remote.version}",
            )

        try:
            await self._remote.update(record.remote_id, record, token)
        except (AuthError, RemoteError) as e:
            logger.warning("Remote update of %s failed: %s", record.remote_id, e)
            return RecordResult(record.local_id, SyncOutcome.FAILED, record.remote_id, str(e))

        pushed_version = record.version
        await self._write(
            record.local_id,
            lambda r: r.mark_synced() if r.version == pushed_version and not r.synced else None,
        )
        return RecordResult(record.local_id, SyncOutcome.PUSHED, record.remote_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _write(
        self, local_id: int, transform: Callable[[Record], Record | None]
    ) -> Record | None:
        return await self._store.apply(
            local_id, transform, max_attempts=self._max_write_attempts
        )

    async def _release_claim(self, local_id: int) -> None:
        await self._write(local_id, lambda r: r.mark_unsynced() if r.synced else None)

    async def _publish(self, report: SyncReport) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(report)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.warning("Sync completion handler error: %s", e)
