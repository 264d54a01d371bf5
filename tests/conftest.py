"""Shared fixtures for floorsync tests.

Provides a deterministic clock, a record store on disk, and in-memory
stand-ins for the connectivity and remote push capabilities.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from floorsync.client.queries import DirtySetQuery
from floorsync.client.store import RecordStore
from floorsync.client.sync import PushResult, SyncEngine
from floorsync.client.tracker import SyncStateTracker
from floorsync.core.config import SyncConfig
from floorsync.core.types import AlertSeverity, AlertType

START = datetime(2025, 3, 10, 8, 0, 0, tzinfo=timezone.utc)


class Clock:
    """Clock advancing one second on every reading."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeConnectivity:
    """Connectivity probe with a settable answer."""

    def __init__(self, connected: bool = True) -> None:
        self.connected = connected
        self.error: Exception | None = None
        self.calls = 0

    def is_connected(self) -> bool:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.connected


class FakeRemote:
    """In-memory remote recording every pushed batch.

    Set ``accept``/``errors`` to reject, ``error`` to raise, ``release`` to
    block the push until the event is set, and ``during_push`` to run code
    while the push is in flight.
    """

    def __init__(self) -> None:
        self.accept = True
        self.errors: list[str] = []
        self.error: Exception | None = None
        self.release: threading.Event | None = None
        self.during_push: Callable[[], None] | None = None
        self.started = threading.Event()
        self.batches: list[dict[str, list[Any]]] = []

    def push(
        self,
        downtime_events: list[Any],
        maintenance_tasks: list[Any],
        alerts: list[Any],
    ) -> PushResult:
        self.batches.append({
            "downtime_events": list(downtime_events),
            "maintenance_tasks": list(maintenance_tasks),
            "alerts": list(alerts),
        })
        self.started.set()

        if self.release is not None:
            self.release.wait(timeout=5.0)
        if self.during_push is not None:
            self.during_push()
        if self.error is not None:
            raise self.error
        return PushResult(accepted=self.accept, errors=list(self.errors))

    @property
    def pushed_ids(self) -> list[str]:
        """Identifiers of every record pushed, in push order."""
        return [
            record.id
            for batch in self.batches
            for records in batch.values()
            for record in records
        ]


@pytest.fixture
def clock() -> Clock:
    """Deterministic clock starting 2025-03-10 08:00 UTC."""
    return Clock()


@pytest.fixture
def store(tmp_path: Path, clock: Clock) -> Generator[RecordStore, None, None]:
    """Create a RecordStore on a temporary database."""
    s = RecordStore(tmp_path / "floor.db", clock=clock)
    yield s
    s.close()


@pytest.fixture
def queries(store: RecordStore) -> DirtySetQuery:
    return DirtySetQuery(store)


@pytest.fixture
def tracker() -> SyncStateTracker:
    return SyncStateTracker()


@pytest.fixture
def connectivity() -> FakeConnectivity:
    return FakeConnectivity()


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def engine(
    store: RecordStore,
    queries: DirtySetQuery,
    connectivity: FakeConnectivity,
    remote: FakeRemote,
    tracker: SyncStateTracker,
    clock: Clock,
) -> SyncEngine:
    """SyncEngine wired to the fakes, with a 5 second push timeout."""
    return SyncEngine(
        store,
        queries,
        connectivity,
        remote,
        tracker,
        config=SyncConfig(push_timeout=5.0),
        clock=clock,
    )


@pytest.fixture
def make_downtime(store: RecordStore) -> Callable[..., str]:
    """Factory creating an active downtime event."""

    def _make(
        operator_id: str = "user_operator1",
        equipment_name: str = "Machine A",
        reason: str = "Mechanical Failure",
        **kwargs: Any,
    ) -> str:
        return store.create_downtime_event(
            operator_id=operator_id,
            equipment_id=f"equip_{equipment_name}",
            equipment_name=equipment_name,
            reason=reason,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_task(store: RecordStore) -> Callable[..., str]:
    """Factory creating a maintenance task with three items."""

    def _make(
        operator_id: str = "user_operator1",
        equipment_name: str = "Machine B",
        items: tuple[str, ...] = ("Check hydraulic fluid", "Clean work area", "Test emergency stop"),
    ) -> str:
        return store.create_maintenance_task(
            operator_id=operator_id,
            equipment_id=f"equip_{equipment_name}",
            equipment_name=equipment_name,
            checklist_id=f"checklist_{equipment_name}",
            checklist_name=f"{equipment_name} Maintenance Checklist",
            items=items,
        )

    return _make


@pytest.fixture
def make_alert(store: RecordStore) -> Callable[..., str]:
    """Factory creating an unacknowledged alert."""

    def _make(
        severity: AlertSeverity = AlertSeverity.HIGH,
        title: str = "Downtime Started: Machine A",
        related_id: str | None = None,
    ) -> str:
        return store.create_alert(
            type=AlertType.DOWNTIME,
            severity=severity,
            title=title,
            message="Operator John Operator reported downtime",
            related_id=related_id,
        )

    return _make
