"""Shared types for sync operations.

This module provides:
- SyncBatch: The dirty records collected for one attempt
- PushResult: Outcome reported by a remote push capability
- SyncResult: Outcome of one attempt_sync() call
- ConnectivityProbe, RemotePusher: Capabilities consumed by the engine
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from floorsync.core.models import Alert, DowntimeEvent, MaintenanceTask
from floorsync.core.types import EntityKind

NO_CONNECTIVITY = "no connectivity"
SYNC_IN_PROGRESS = "sync already in progress"


@dataclass
class SyncBatch:
    """Dirty records of all kinds collected for one sync attempt."""

    downtime_events: list[DowntimeEvent] = field(default_factory=list)
    maintenance_tasks: list[MaintenanceTask] = field(default_factory=list)
    alerts: list[Alert] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.downtime_events) + len(self.maintenance_tasks) + len(self.alerts)

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to push."""
        return len(self) == 0

    def records(self) -> Iterator[tuple[EntityKind, Any]]:
        """Iterate over (kind, record) pairs."""
        for event in self.downtime_events:
            yield EntityKind.DOWNTIME, event
        for task in self.maintenance_tasks:
            yield EntityKind.MAINTENANCE, task
        for alert in self.alerts:
            yield EntityKind.ALERT, alert

    def to_payload(self) -> dict[str, list[dict[str, Any]]]:
        """Convert to the remote batch request body."""
        return {
            "downtime_events": [e.to_dict() for e in self.downtime_events],
            "maintenance_tasks": [t.to_dict() for t in self.maintenance_tasks],
            "alerts": [a.to_dict() for a in self.alerts],
        }


@dataclass
class PushResult:
    """Outcome of pushing one batch. The remote accepts all or nothing."""

    accepted: bool
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PushResult:
        """Create from API response dictionary."""
        return cls(
            accepted=bool(data.get("accepted", False)),
            errors=[str(e) for e in data.get("errors") or []],
        )


@dataclass
class SyncResult:
    """Outcome of one sync attempt.

    Attributes:
        success: True when the remote accepted the batch (or it was empty).
        synced_items: Number of records pushed and accepted.
        errors: Collected error messages; empty on success.
        skipped: True when the call was dropped because another attempt
            was in progress.
        finished_at: When the attempt ended.
    """

    success: bool
    synced_items: int = 0
    errors: list[str] = field(default_factory=list)
    skipped: bool = False
    finished_at: datetime | None = None


class ConnectivityProbe(Protocol):
    """Reports whether the remote is reachable (link and reachability)."""

    def is_connected(self) -> bool:
        ...


class RemotePusher(Protocol):
    """Pushes a batch to the remote.

    Implementations must be idempotent for records that were already
    accepted, since a record whose mark-clean failed is pushed again.
    """

    def push(
        self,
        downtime_events: list[DowntimeEvent],
        maintenance_tasks: list[MaintenanceTask],
        alerts: list[Alert],
    ) -> PushResult:
        ...


# Type alias for sync completion callback
SyncCallback = Callable[[SyncResult], None]
