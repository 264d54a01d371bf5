"""Shared types for floorsync.

This module defines the enums used by the record store, the sync engine
and the command-line interface.
"""

from __future__ import annotations

from enum import Enum


class EntityKind(str, Enum):
    """Kind of synchronized record."""

    DOWNTIME = "downtime"
    MAINTENANCE = "maintenance"
    ALERT = "alert"


class DowntimeStatus(str, Enum):
    """Lifecycle of a downtime event."""

    ACTIVE = "active"
    RESOLVED = "resolved"


class TaskStatus(str, Enum):
    """Lifecycle of a maintenance task."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class AlertType(str, Enum):
    """What raised an alert."""

    DOWNTIME = "downtime"
    MAINTENANCE = "maintenance"
    SYSTEM = "system"


class AlertSeverity(str, Enum):
    """Severity of an alert, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class UserRole(str, Enum):
    """Role of a floor user."""

    OPERATOR = "operator"
    SUPERVISOR = "supervisor"


class SyncState(str, Enum):
    """State of the sync engine.

    Terminal results of an attempt are folded back into IDLE.
    """

    IDLE = "idle"
    SYNCING = "syncing"
