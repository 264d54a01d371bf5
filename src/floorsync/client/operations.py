"""Floor actions used by the user-facing layer.

This module provides:
- FloorOperations: Downtime capture, maintenance checklists and alert
  handling on top of the record store

Each action mirrors what an operator does on the floor: starting downtime
also raises a supervisor alert, completing a checklist validates every item
and raises an alert, and every mutation refreshes the pending count in the
sync status.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from floorsync.client.store import RecordFilter
from floorsync.core.catalog import checklist_for, equipment_id
from floorsync.core.errors import NotFoundError, ValidationError
from floorsync.core.models import DowntimePatch, MaintenanceTaskPatch, utc_now
from floorsync.core.types import (
    AlertSeverity,
    AlertType,
    DowntimeStatus,
    EntityKind,
    TaskStatus,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from floorsync.client.queries import DirtySetQuery
    from floorsync.client.store import RecordStore
    from floorsync.client.tracker import SyncStateTracker
    from floorsync.core.models import Alert, DowntimeEvent, MaintenanceTask, User

logger = logging.getLogger(__name__)

ALERT_FILTERS = ("all", "unacknowledged", "acknowledged")


class FloorOperations:
    """Operator and supervisor actions."""

    def __init__(
        self,
        store: RecordStore,
        queries: DirtySetQuery,
        tracker: SyncStateTracker | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._queries = queries
        self._tracker = tracker
        self._clock = clock or utc_now

    def _refresh_pending(self) -> None:
        if self._tracker is not None:
            self._tracker.refresh_pending(self._queries)

    # === Downtime ===

    def start_downtime(
        self,
        user: User,
        equipment_name: str,
        reason: str,
        description: str | None = None,
    ) -> DowntimeEvent:
        """Report that a piece of equipment stopped.

        Also raises a high-severity downtime alert for supervisors.

        Raises:
            ValidationError: If equipment or reason is missing.
        """
        if not equipment_name or not reason:
            raise ValidationError("Please select equipment and reason")

        event_id = self._store.create_downtime_event(
            operator_id=user.id,
            equipment_id=equipment_id(equipment_name),
            equipment_name=equipment_name,
            start_time=self._clock(),
            reason=reason,
            description=description or None,
        )
        self._store.create_alert(
            type=AlertType.DOWNTIME,
            severity=AlertSeverity.HIGH,
            title=f"Downtime Started: {equipment_name}",
            message=(
                f"Operator {user.name} reported downtime for {equipment_name}. "
                f"Reason: {reason}"
            ),
            related_id=event_id,
        )
        self._refresh_pending()

        logger.info(f"Downtime started on {equipment_name} by {user.username}")
        return self._store.get_by_id(EntityKind.DOWNTIME, event_id)

    def resolve_downtime(self, event_id: str) -> DowntimeEvent:
        """Mark a downtime event resolved now.

        Raises:
            NotFoundError: If the event does not exist.
            ValidationError: If the event is already resolved.
        """
        event = self._store.get_by_id(EntityKind.DOWNTIME, event_id)
        if event is None:
            raise NotFoundError(EntityKind.DOWNTIME.value, event_id)
        if event.status == DowntimeStatus.RESOLVED:
            raise ValidationError(f"Downtime {event_id} is already resolved")

        self._store.update(
            EntityKind.DOWNTIME,
            event_id,
            DowntimePatch(status=DowntimeStatus.RESOLVED, end_time=self._clock()),
        )
        self._refresh_pending()
        return self._store.get_by_id(EntityKind.DOWNTIME, event_id)

    def active_downtime(self, operator_id: str | None = None) -> list[DowntimeEvent]:
        """Active downtime events, optionally for one operator."""
        return self._store.get(
            EntityKind.DOWNTIME,
            RecordFilter(operator_id=operator_id, status=DowntimeStatus.ACTIVE),
        )

    # === Maintenance ===

    def create_maintenance_task(self, user: User, equipment_name: str) -> MaintenanceTask:
        """Start a maintenance checklist for a piece of equipment.

        The checklist comes from the equipment's template.

        Raises:
            ValidationError: If equipment is missing.
        """
        if not equipment_name:
            raise ValidationError("Please select equipment")

        task_id = self._store.create_maintenance_task(
            operator_id=user.id,
            equipment_id=equipment_id(equipment_name),
            equipment_name=equipment_name,
            checklist_id=f"checklist_{equipment_name}",
            checklist_name=f"{equipment_name} Maintenance Checklist",
            items=checklist_for(equipment_name),
        )
        self._refresh_pending()
        return self._store.get_by_id(EntityKind.MAINTENANCE, task_id)

    def set_checklist_item(
        self,
        item_id: str,
        *,
        checked: bool | None = None,
        notes: str | None = None,
    ) -> MaintenanceTask:
        """Check, uncheck or annotate a checklist item.

        Checking the first item of a pending task moves the task to
        in-progress, which marks it for upload together with its items.

        Returns:
            The owning task after the change.

        Raises:
            NotFoundError: If the item does not exist.
            ValidationError: If unchecking an item of a completed task.
        """
        item = self._store.get_checklist_item(item_id)
        if item is None:
            raise NotFoundError("checklist item", item_id)

        self._store.update_checklist_item(item_id, checked=checked, notes=notes)

        task = self._store.get_by_id(EntityKind.MAINTENANCE, item.task_id)
        if checked and task.status == TaskStatus.PENDING:
            self._store.update(
                EntityKind.MAINTENANCE,
                task.id,
                MaintenanceTaskPatch(status=TaskStatus.IN_PROGRESS),
            )
            self._refresh_pending()
            task = self._store.get_by_id(EntityKind.MAINTENANCE, task.id)
        return task

    def complete_task(self, user: User, task_id: str) -> MaintenanceTask:
        """Complete a maintenance task and notify supervisors.

        Raises:
            NotFoundError: If the task does not exist.
            ValidationError: If any checklist item is unchecked or the task
                is already completed.
        """
        task = self._store.get_by_id(EntityKind.MAINTENANCE, task_id)
        if task is None:
            raise NotFoundError(EntityKind.MAINTENANCE.value, task_id)
        if task.status == TaskStatus.COMPLETED:
            raise ValidationError(f"Task {task_id} is already completed")
        if not task.all_checked:
            raise ValidationError("Please complete all checklist items")

        self._store.update(
            EntityKind.MAINTENANCE,
            task_id,
            MaintenanceTaskPatch(status=TaskStatus.COMPLETED, completed_at=self._clock()),
        )
        self._store.create_alert(
            type=AlertType.MAINTENANCE,
            severity=AlertSeverity.MEDIUM,
            title=f"Maintenance Completed: {task.equipment_name}",
            message=(
                f"Operator {user.name} completed maintenance checklist "
                f"for {task.equipment_name}"
            ),
            related_id=task_id,
        )
        self._refresh_pending()

        logger.info(f"Maintenance task {task_id} completed by {user.username}")
        return self._store.get_by_id(EntityKind.MAINTENANCE, task_id)

    def open_tasks(self, operator_id: str | None = None) -> list[MaintenanceTask]:
        """Tasks not yet completed, optionally for one operator."""
        tasks = self._store.get(EntityKind.MAINTENANCE, RecordFilter(operator_id=operator_id))
        return [t for t in tasks if t.status != TaskStatus.COMPLETED]

    # === Alerts ===

    def list_alerts(self, which: str = "unacknowledged") -> list[Alert]:
        """Alerts, newest first.

        Args:
            which: "all", "unacknowledged" or "acknowledged".
        """
        if which not in ALERT_FILTERS:
            raise ValueError(f"Unknown alert filter: {which}")
        acknowledged = None if which == "all" else which == "acknowledged"
        return self._store.get(EntityKind.ALERT, RecordFilter(acknowledged=acknowledged))

    def acknowledge_alert(self, user: User, alert_id: str) -> Alert:
        """Acknowledge an alert.

        Raises:
            NotFoundError: If the alert does not exist.
            ValidationError: If it is already acknowledged.
        """
        alert = self._store.get_by_id(EntityKind.ALERT, alert_id)
        if alert is None:
            raise NotFoundError(EntityKind.ALERT.value, alert_id)
        if alert.acknowledged:
            raise ValidationError(f"Alert {alert_id} is already acknowledged")

        self._store.acknowledge_alert(alert_id, user.id, self._clock())
        self._refresh_pending()
        return self._store.get_by_id(EntityKind.ALERT, alert_id)
