"""Dirty-set queries over the record store.

This module provides:
- DirtySetQuery: read-only selection of records awaiting upload

Results are read from the store on every call. The sync engine treats them
as the authoritative work list for the current attempt, so nothing here is
cached.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from floorsync.client.store import RecordFilter
from floorsync.client.sync.types import SyncBatch
from floorsync.core.types import EntityKind

if TYPE_CHECKING:
    from floorsync.client.store import RecordStore

_DIRTY = RecordFilter(dirty=True)


class DirtySetQuery:
    """Read-only view of the unsynced records in a RecordStore."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def unsynced(self, kind: EntityKind) -> list[Any]:
        """All records of ``kind`` with the dirty flag set."""
        return self._store.get(kind, _DIRTY)

    def collect(self) -> SyncBatch:
        """Collect the dirty records of every kind into one batch."""
        return SyncBatch(
            downtime_events=self.unsynced(EntityKind.DOWNTIME),
            maintenance_tasks=self.unsynced(EntityKind.MAINTENANCE),
            alerts=self.unsynced(EntityKind.ALERT),
        )

    def pending_count(self) -> int:
        """Number of dirty records across all kinds."""
        return sum(self._store.count(kind, _DIRTY) for kind in EntityKind)
