"""Background polling of connectivity and pending records.

This module provides:
- SyncPoller: Refreshes the sync status every poll interval and, when
  online with pending records, triggers a sync

Manual "sync now" requests and the poller both go through
SyncEngine.attempt_sync(), so at most one attempt runs at a time whichever
triggers it.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from floorsync.core.config import SyncConfig

if TYPE_CHECKING:
    from floorsync.client.queries import DirtySetQuery
    from floorsync.client.sync.engine import SyncEngine
    from floorsync.client.sync.types import ConnectivityProbe, SyncResult
    from floorsync.client.tracker import SyncStateTracker

logger = logging.getLogger(__name__)


class SyncPoller:
    """Periodic status refresh with optional automatic sync.

    Usage:
        poller = SyncPoller(engine, tracker, queries, connectivity)
        poller.start()
        ...
        poller.stop()
    """

    def __init__(
        self,
        engine: SyncEngine,
        tracker: SyncStateTracker,
        queries: DirtySetQuery,
        connectivity: ConnectivityProbe,
        config: SyncConfig | None = None,
    ) -> None:
        self._engine = engine
        self._tracker = tracker
        self._queries = queries
        self._connectivity = connectivity
        self._config = config or SyncConfig()

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        """True while the polling thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> SyncResult | None:
        """Refresh online state and pending count, syncing if warranted.

        Returns:
            The sync result if a sync was attempted, None otherwise.
        """
        is_online = self._tracker.refresh_online(self._connectivity)
        pending = self._tracker.refresh_pending(self._queries)

        if not (self._config.auto_sync and is_online and pending > 0):
            return None

        logger.debug(f"{pending} record(s) pending, triggering sync")
        return self._engine.attempt_sync()

    def start(self) -> None:
        """Start polling in a background thread."""
        if self.running:
            logger.warning("SyncPoller already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="SyncPoller",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"SyncPoller started (every {self._config.poll_interval:g}s)")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop polling.

        An attempt already in flight is left to finish in its thread.

        Args:
            timeout: Maximum time to wait for the thread to stop.
        """
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("SyncPoller stopped")

    def _run(self) -> None:
        """Poll immediately, then every poll interval until stopped."""
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("Error during sync poll")

            self._stop_event.wait(self._config.poll_interval)
