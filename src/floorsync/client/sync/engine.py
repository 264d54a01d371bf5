"""Sync engine pushing dirty records to the remote.

This module provides:
- SyncEngine: Runs one synchronization attempt at a time

One attempt:
    1. Check connectivity; abort with "no connectivity" when offline
    2. Collect the dirty sets of all kinds
    3. Push them as one batch (all-or-nothing on the remote)
    4. On acceptance, clear each record's dirty flag (version-conditional)
    5. On rejection, leave every flag untouched and report the errors

attempt_sync() never raises. Every error ends up in the returned
SyncResult and in the log; retrying is up to the caller (the poller or a
manual trigger).
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TYPE_CHECKING

from floorsync.client.sync.types import (
    NO_CONNECTIVITY,
    SYNC_IN_PROGRESS,
    PushResult,
    SyncBatch,
    SyncCallback,
    SyncResult,
)
from floorsync.core.config import SyncConfig
from floorsync.core.errors import PersistenceError, RemotePushError
from floorsync.core.models import utc_now
from floorsync.core.types import SyncState

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from floorsync.client.queries import DirtySetQuery
    from floorsync.client.store import RecordStore
    from floorsync.client.sync.types import ConnectivityProbe, RemotePusher
    from floorsync.client.tracker import SyncStateTracker

logger = logging.getLogger(__name__)


class SyncEngine:
    """Pushes dirty records to the remote, one attempt at a time.

    Concurrent calls to attempt_sync() are dropped, not queued: the second
    caller gets a skipped result immediately and nothing changes.

    Usage:
        engine = SyncEngine(store, queries, connectivity, remote, tracker)
        result = engine.attempt_sync()
        if not result.success:
            print(result.errors)
    """

    def __init__(
        self,
        store: RecordStore,
        queries: DirtySetQuery,
        connectivity: ConnectivityProbe,
        remote: RemotePusher,
        tracker: SyncStateTracker,
        config: SyncConfig | None = None,
        on_complete: SyncCallback | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the sync engine.

        Args:
            store: Record store whose dirty flags are cleared on success.
            queries: Dirty-set queries over the same store.
            connectivity: Connectivity capability.
            remote: Remote push capability.
            tracker: Process-wide sync status to keep up to date.
            config: Push timeout and related settings.
            on_complete: Optional callback after every non-skipped attempt.
            clock: Source of timestamps; defaults to UTC now.
        """
        self._store = store
        self._queries = queries
        self._connectivity = connectivity
        self._remote = remote
        self._tracker = tracker
        self._config = config or SyncConfig()
        self._on_complete = on_complete
        self._clock = clock or utc_now

        self._state = SyncState.IDLE
        self._guard = threading.Lock()

    @property
    def state(self) -> SyncState:
        """Current engine state."""
        return self._state

    def attempt_sync(self) -> SyncResult:
        """Run one synchronization attempt.

        Returns:
            SyncResult describing the outcome. Never raises.
        """
        if not self._guard.acquire(blocking=False):
            logger.debug("Sync already in progress, ignoring request")
            return SyncResult(success=False, skipped=True, errors=[SYNC_IN_PROGRESS])

        try:
            self._state = SyncState.SYNCING
            self._tracker.set_syncing(True)
            try:
                result = self._run()
            except Exception as e:
                logger.exception("Sync attempt failed")
                result = SyncResult(success=False, errors=[str(e) or "Unknown sync error"])

            result.finished_at = self._clock()
            try:
                self._record(result)
            except Exception:
                logger.exception("Failed to record sync result")
        finally:
            self._state = SyncState.IDLE
            self._tracker.set_syncing(False)
            self._guard.release()

        if self._on_complete:
            try:
                self._on_complete(result)
            except Exception:
                logger.exception("Sync completion callback failed")

        return result

    def _run(self) -> SyncResult:
        """Steps of one attempt; may raise, attempt_sync() catches."""
        if not self._tracker.refresh_online(self._connectivity):
            logger.info("Sync skipped: no connectivity")
            return SyncResult(success=False, errors=[NO_CONNECTIVITY])

        batch = self._queries.collect()
        if batch.is_empty:
            logger.debug("Nothing to sync")
            return SyncResult(success=True, synced_items=0)

        logger.info(
            f"Pushing {len(batch)} record(s): "
            f"{len(batch.downtime_events)} downtime, "
            f"{len(batch.maintenance_tasks)} maintenance, "
            f"{len(batch.alerts)} alerts"
        )

        try:
            push_result = self._push(batch)
        except RemotePushError as e:
            logger.warning(f"Push failed: {e}")
            return SyncResult(success=False, errors=[str(e)])

        if not push_result.accepted:
            errors = push_result.errors or ["remote rejected the batch"]
            logger.warning(f"Remote rejected batch: {'; '.join(errors)}")
            return SyncResult(success=False, errors=errors)

        self._mark_clean(batch)
        return SyncResult(success=True, synced_items=len(batch))

    def _push(self, batch: SyncBatch) -> PushResult:
        """Push a batch, bounded by the configured timeout.

        On timeout the push thread is abandoned; its eventual result is
        ignored and the records stay dirty.

        Raises:
            RemotePushError: On timeout or transport failure.
        """
        timeout = self._config.push_timeout
        if timeout is None:
            return self._remote.push(
                batch.downtime_events, batch.maintenance_tasks, batch.alerts
            )

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="floorsync-push")
        try:
            future = executor.submit(
                self._remote.push,
                batch.downtime_events,
                batch.maintenance_tasks,
                batch.alerts,
            )
            try:
                return future.result(timeout=timeout)
            except FutureTimeoutError:
                raise RemotePushError(f"push timed out after {timeout:g}s") from None
        finally:
            executor.shutdown(wait=False)

    def _mark_clean(self, batch: SyncBatch) -> None:
        """Clear dirty flags for every accepted record, best effort.

        A record that fails to clear, or that changed since it was
        collected, stays dirty and is pushed again next time.
        """
        kept_dirty = 0
        for kind, record in batch.records():
            try:
                if not self._store.mark_clean(kind, record.id, record.version):
                    kept_dirty += 1
                    logger.info(f"{kind.value} {record.id} changed during sync, keeping it dirty")
            except PersistenceError as e:
                kept_dirty += 1
                logger.warning(f"Failed to mark {kind.value} {record.id} clean: {e}")

        if kept_dirty:
            logger.info(f"{kept_dirty} record(s) remain dirty after sync")

    def _record(self, result: SyncResult) -> None:
        """Update the tracker (and persisted last-sync time) after an attempt."""
        pending = self._tracker.refresh_pending(self._queries)
        if not result.success:
            return

        finished_at = result.finished_at or self._clock()
        self._tracker.record_success(finished_at, pending)
        try:
            self._store.set_last_sync_at(finished_at)
        except PersistenceError as e:
            logger.warning(f"Failed to persist last sync time: {e}")
