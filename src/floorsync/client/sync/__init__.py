"""Synchronization of dirty records with the remote.

Architecture:
    SyncPoller ──┐
                 ├──► SyncEngine.attempt_sync() ──► RemotePusher
    manual sync ─┘            │
                              ├──► DirtySetQuery (work list)
                              ├──► RecordStore.mark_clean()
                              └──► SyncStateTracker

Components:
- **SyncEngine**: One attempt at a time; never raises
- **SyncPoller**: Periodic connectivity/pending refresh, optional auto-sync
- **Types**: SyncBatch, PushResult, SyncResult and the capability protocols
"""

from floorsync.client.sync.engine import SyncEngine
from floorsync.client.sync.poller import SyncPoller
from floorsync.client.sync.types import (
    NO_CONNECTIVITY,
    SYNC_IN_PROGRESS,
    ConnectivityProbe,
    PushResult,
    RemotePusher,
    SyncBatch,
    SyncCallback,
    SyncResult,
)

__all__ = [
    # Constants
    "NO_CONNECTIVITY",
    "SYNC_IN_PROGRESS",
    # Types
    "ConnectivityProbe",
    "PushResult",
    "RemotePusher",
    "SyncBatch",
    "SyncCallback",
    "SyncResult",
    # Classes
    "SyncEngine",
    "SyncPoller",
]
