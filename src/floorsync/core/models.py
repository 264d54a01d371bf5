"""Domain records stored locally and pushed to the remote.

This module provides:
- DowntimeEvent, MaintenanceTask, ChecklistItem, Alert, User: record types
- DowntimePatch, MaintenanceTaskPatch, AlertPatch: typed partial updates
- validate_*: invariant checks shared by create and update

Records are plain dataclasses. The store hands out copies; mutating one has
no effect on stored state.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from floorsync.core.errors import ValidationError
from floorsync.core.types import (
    AlertSeverity,
    AlertType,
    DowntimeStatus,
    TaskStatus,
    UserRole,
)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Convert to UTC, assuming UTC for naive values."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    """Serialize a datetime to ISO-8601 in UTC."""
    return as_utc(value).isoformat(timespec="microseconds")


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO-8601 string, returning None for empty values."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_db_value(value: Any) -> Any:
    """Convert a Python value to its SQLite column representation."""
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    return value


def _iso_or_none(value: datetime | None) -> str | None:
    return to_iso(value) if value is not None else None


# === Records ===


@dataclass
class DowntimeEvent:
    """An equipment stoppage reported by an operator.

    Attributes:
        id: Unique record identifier.
        operator_id: User who reported the event.
        equipment_id: Equipment reference.
        equipment_name: Display name of the equipment.
        start_time: When the stoppage started.
        reason: Free-form category (see floorsync.core.catalog.DOWNTIME_REASONS).
        status: ACTIVE until resolved.
        created_at: Creation timestamp.
        updated_at: Timestamp of the last field mutation.
        end_time: When the stoppage ended, set iff status is RESOLVED.
        description: Optional operator notes.
        dirty: True while local changes are not confirmed by the remote.
        version: Incremented on every mutation.
    """

    id: str
    operator_id: str
    equipment_id: str
    equipment_name: str
    start_time: datetime
    reason: str
    status: DowntimeStatus
    created_at: datetime
    updated_at: datetime
    end_time: datetime | None = None
    description: str | None = None
    dirty: bool = True
    version: int = 1

    @property
    def duration_minutes(self) -> int | None:
        """Rounded duration in minutes, or None while still active."""
        if self.end_time is None:
            return None
        return round((self.end_time - self.start_time).total_seconds() / 60)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> DowntimeEvent:
        """Create DowntimeEvent from database row."""
        return cls(
            id=row["id"],
            operator_id=row["operator_id"],
            equipment_id=row["equipment_id"],
            equipment_name=row["equipment_name"],
            start_time=parse_iso(row["start_time"]),  # type: ignore[arg-type]
            reason=row["reason"],
            status=DowntimeStatus(row["status"]),
            created_at=parse_iso(row["created_at"]),  # type: ignore[arg-type]
            updated_at=parse_iso(row["updated_at"]),  # type: ignore[arg-type]
            end_time=parse_iso(row["end_time"]),
            description=row["description"],
            dirty=bool(row["dirty"]),
            version=row["version"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the remote batch representation."""
        return {
            "id": self.id,
            "operator_id": self.operator_id,
            "equipment_id": self.equipment_id,
            "equipment_name": self.equipment_name,
            "start_time": to_iso(self.start_time),
            "end_time": _iso_or_none(self.end_time),
            "reason": self.reason,
            "description": self.description,
            "status": self.status.value,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
            "version": self.version,
        }


@dataclass
class ChecklistItem:
    """A single inspection step owned by a maintenance task."""

    id: str
    task_id: str
    item_text: str
    checked: bool = False
    notes: str | None = None
    position: int = 0

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> ChecklistItem:
        """Create ChecklistItem from database row."""
        return cls(
            id=row["id"],
            task_id=row["task_id"],
            item_text=row["item_text"],
            checked=bool(row["checked"]),
            notes=row["notes"],
            position=row["position"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the remote batch representation."""
        return {
            "id": self.id,
            "task_id": self.task_id,
            "item_text": self.item_text,
            "checked": self.checked,
            "notes": self.notes,
        }


@dataclass
class MaintenanceTask:
    """A maintenance checklist run against one piece of equipment."""

    id: str
    operator_id: str
    equipment_id: str
    equipment_name: str
    checklist_id: str
    checklist_name: str
    status: TaskStatus
    created_at: datetime
    updated_at: datetime
    items: list[ChecklistItem] = field(default_factory=list)
    completed_at: datetime | None = None
    dirty: bool = True
    version: int = 1

    @property
    def all_checked(self) -> bool:
        """True when every checklist item is checked."""
        return all(item.checked for item in self.items)

    @classmethod
    def from_row(
        cls, row: sqlite3.Row, items: Sequence[ChecklistItem] = ()
    ) -> MaintenanceTask:
        """Create MaintenanceTask from database row and its items."""
        return cls(
            id=row["id"],
            operator_id=row["operator_id"],
            equipment_id=row["equipment_id"],
            equipment_name=row["equipment_name"],
            checklist_id=row["checklist_id"],
            checklist_name=row["checklist_name"],
            status=TaskStatus(row["status"]),
            created_at=parse_iso(row["created_at"]),  # type: ignore[arg-type]
            updated_at=parse_iso(row["updated_at"]),  # type: ignore[arg-type]
            items=list(items),
            completed_at=parse_iso(row["completed_at"]),
            dirty=bool(row["dirty"]),
            version=row["version"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the remote batch representation."""
        return {
            "id": self.id,
            "operator_id": self.operator_id,
            "equipment_id": self.equipment_id,
            "equipment_name": self.equipment_name,
            "checklist_id": self.checklist_id,
            "checklist_name": self.checklist_name,
            "items": [item.to_dict() for item in self.items],
            "status": self.status.value,
            "completed_at": _iso_or_none(self.completed_at),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
            "version": self.version,
        }


@dataclass
class Alert:
    """A notification for supervisors.

    Alerts have no updated_at; acknowledgement is their only mutation in
    normal use.
    """

    id: str
    type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    created_at: datetime
    related_id: str | None = None
    acknowledged: bool = False
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    dirty: bool = True
    version: int = 1

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Alert:
        """Create Alert from database row."""
        return cls(
            id=row["id"],
            type=AlertType(row["type"]),
            severity=AlertSeverity(row["severity"]),
            title=row["title"],
            message=row["message"],
            created_at=parse_iso(row["created_at"]),  # type: ignore[arg-type]
            related_id=row["related_id"],
            acknowledged=bool(row["acknowledged"]),
            acknowledged_by=row["acknowledged_by"],
            acknowledged_at=parse_iso(row["acknowledged_at"]),
            dirty=bool(row["dirty"]),
            version=row["version"],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the remote batch representation."""
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "related_id": self.related_id,
            "acknowledged": self.acknowledged,
            "acknowledged_by": self.acknowledged_by,
            "acknowledged_at": _iso_or_none(self.acknowledged_at),
            "created_at": to_iso(self.created_at),
            "version": self.version,
        }


@dataclass
class User:
    """A floor user. Credentials are handled outside this package."""

    id: str
    username: str
    role: UserRole
    name: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> User:
        """Create User from database row."""
        return cls(
            id=row["id"],
            username=row["username"],
            role=UserRole(row["role"]),
            name=row["name"],
        )


# === Patches ===


class _Patch:
    """Mixin for typed partial updates.

    Fields left as None are not applied, so a patch can set optional
    fields but never clear them. Records only move forward: a resolved
    event or a completed task is not reopened, and notes and descriptions
    are replaced rather than removed.
    """

    def changes(self) -> dict[str, Any]:
        """Provided fields mapped to their new values."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)  # type: ignore[arg-type]
            if getattr(self, f.name) is not None
        }

    def is_empty(self) -> bool:
        """True when no field is provided."""
        return not self.changes()

    def apply(self, record: Any) -> Any:
        """Return a copy of record with the provided fields applied."""
        return replace(record, **self.changes())


@dataclass(frozen=True)
class DowntimePatch(_Patch):
    """Settable fields of a DowntimeEvent. end_time and description cannot be cleared."""

    equipment_id: str | None = None
    equipment_name: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    reason: str | None = None
    description: str | None = None
    status: DowntimeStatus | None = None


@dataclass(frozen=True)
class MaintenanceTaskPatch(_Patch):
    """Settable fields of a MaintenanceTask. Items are updated separately.

    completed_at cannot be cleared, so a completed task stays completed.
    """

    equipment_id: str | None = None
    equipment_name: str | None = None
    checklist_id: str | None = None
    checklist_name: str | None = None
    status: TaskStatus | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class AlertPatch(_Patch):
    """Settable fields of an Alert. Acknowledgement and related_id cannot be cleared."""

    severity: AlertSeverity | None = None
    title: str | None = None
    message: str | None = None
    related_id: str | None = None
    acknowledged: bool | None = None
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None


# === Invariants ===


def validate_downtime(event: DowntimeEvent) -> None:
    """Check end_time is set iff resolved, and never precedes start_time.

    Raises:
        ValidationError: If the event breaks an invariant.
    """
    if event.status == DowntimeStatus.RESOLVED and event.end_time is None:
        raise ValidationError("resolved downtime requires an end time")
    if event.status == DowntimeStatus.ACTIVE and event.end_time is not None:
        raise ValidationError("active downtime cannot have an end time")
    if event.end_time is not None and as_utc(event.end_time) < as_utc(event.start_time):
        raise ValidationError("downtime end time precedes its start time")


def validate_task(task: MaintenanceTask) -> None:
    """Check completed_at is set iff completed, and completion needs all items.

    Raises:
        ValidationError: If the task breaks an invariant.
    """
    if task.status == TaskStatus.COMPLETED:
        if task.completed_at is None:
            raise ValidationError("completed task requires a completion time")
        unchecked = [item.item_text for item in task.items if not item.checked]
        if unchecked:
            raise ValidationError(
                f"cannot complete task with {len(unchecked)} unchecked item(s)"
            )
    elif task.completed_at is not None:
        raise ValidationError("only completed tasks can have a completion time")


def validate_alert(alert: Alert) -> None:
    """Check acknowledger identity and time are present iff acknowledged.

    Raises:
        ValidationError: If the alert breaks an invariant.
    """
    has_ack_details = (
        alert.acknowledged_by is not None and alert.acknowledged_at is not None
    )
    if alert.acknowledged and not has_ack_details:
        raise ValidationError("acknowledged alert requires acknowledger and time")
    if not alert.acknowledged and (
        alert.acknowledged_by is not None or alert.acknowledged_at is not None
    ):
        raise ValidationError("unacknowledged alert cannot carry acknowledgement")
