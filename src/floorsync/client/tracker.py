"""Process-wide sync status.

This module provides:
- SyncStatus: Immutable snapshot of the sync status
- SyncStateTracker: Thread-safe holder of the current status with
  subscription support

Architecture:
    Engine ──writes──► SyncStateTracker ──snapshots──► CLI / poller
                              │
                              └──notifies──► subscribers

The tracker is created once per process and injected into the components
that read or write it. Only the sync engine and the tracker's own refresh
methods change it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

from floorsync.core.errors import PersistenceError
from floorsync.core.models import to_iso

if TYPE_CHECKING:
    from collections.abc import Callable

    from floorsync.client.queries import DirtySetQuery
    from floorsync.client.sync.types import ConnectivityProbe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncStatus:
    """Sync status at one point in time.

    Attributes:
        is_online: Whether the remote was reachable at the last poll.
        last_sync_time: When the last successful sync finished.
        pending_items: Number of dirty records at the last refresh.
        syncing: Whether a sync attempt is in progress.
    """

    is_online: bool = False
    last_sync_time: datetime | None = None
    pending_items: int = 0
    syncing: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "is_online": self.is_online,
            "last_sync_time": to_iso(self.last_sync_time) if self.last_sync_time else None,
            "pending_items": self.pending_items,
            "syncing": self.syncing,
        }


class SyncStateTracker:
    """Thread-safe, observable sync status.

    Usage:
        tracker = SyncStateTracker()
        unsubscribe = tracker.subscribe(lambda status: print(status))

        tracker.refresh_online(connectivity)
        tracker.refresh_pending(queries)

        unsubscribe()
    """

    def __init__(self, last_sync_time: datetime | None = None) -> None:
        """Initialize to offline, nothing pending, not syncing.

        Args:
            last_sync_time: Last successful sync restored from storage.
        """
        self._status = SyncStatus(last_sync_time=last_sync_time)
        self._lock = threading.Lock()
        self._listeners: list[Callable[[SyncStatus], None]] = []

    @property
    def status(self) -> SyncStatus:
        """Current status snapshot."""
        with self._lock:
            return self._status

    def subscribe(self, listener: Callable[[SyncStatus], None]) -> Callable[[], None]:
        """Register a listener called with the new status after each change.

        Returns:
            A function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # === Writers ===

    def set_online(self, is_online: bool) -> None:
        """Record the result of a connectivity poll."""
        self._update(is_online=is_online)

    def set_pending(self, pending_items: int) -> None:
        """Record the current number of dirty records."""
        self._update(pending_items=pending_items)

    def set_syncing(self, syncing: bool) -> None:
        """Record that a sync attempt started or ended."""
        self._update(syncing=syncing)

    def record_success(self, finished_at: datetime, pending_items: int = 0) -> None:
        """Record a successful sync."""
        self._update(last_sync_time=finished_at, pending_items=pending_items)

    # === Refresh ===

    def refresh_online(self, connectivity: ConnectivityProbe) -> bool:
        """Poll connectivity and store the result.

        A probe that raises counts as offline.
        """
        try:
            is_online = bool(connectivity.is_connected())
        except Exception as e:
            logger.warning(f"Connectivity check failed: {e}")
            is_online = False
        self.set_online(is_online)
        return is_online

    def refresh_pending(self, queries: DirtySetQuery) -> int:
        """Recount dirty records and store the result.

        On a storage error the previous count is kept.
        """
        try:
            count = queries.pending_count()
        except PersistenceError as e:
            logger.error(f"Error refreshing pending count: {e}")
            return self.status.pending_items
        self.set_pending(count)
        return count

    def _update(self, **changes: Any) -> None:
        """Apply changes atomically and notify listeners if anything changed."""
        with self._lock:
            new_status = replace(self._status, **changes)
            if new_status == self._status:
                return
            self._status = new_status
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(new_status)
            except Exception:
                logger.exception("Sync status listener failed")
