"""Core module - Shared records, configuration, errors and enums."""

from floorsync.core.config import ServerConfig, SyncConfig
from floorsync.core.errors import (
    ConnectivityError,
    FloorSyncError,
    NotFoundError,
    PersistenceError,
    RemotePushError,
    ValidationError,
)
from floorsync.core.models import (
    Alert,
    AlertPatch,
    ChecklistItem,
    DowntimeEvent,
    DowntimePatch,
    MaintenanceTask,
    MaintenanceTaskPatch,
    User,
)
from floorsync.core.types import (
    AlertSeverity,
    AlertType,
    DowntimeStatus,
    EntityKind,
    SyncState,
    TaskStatus,
    UserRole,
)

__all__ = [
    # Config
    "ServerConfig",
    "SyncConfig",
    # Errors
    "ConnectivityError",
    "FloorSyncError",
    "NotFoundError",
    "PersistenceError",
    "RemotePushError",
    "ValidationError",
    # Records
    "Alert",
    "AlertPatch",
    "ChecklistItem",
    "DowntimeEvent",
    "DowntimePatch",
    "MaintenanceTask",
    "MaintenanceTaskPatch",
    "User",
    # Types
    "AlertSeverity",
    "AlertType",
    "DowntimeStatus",
    "EntityKind",
    "SyncState",
    "TaskStatus",
    "UserRole",
]
