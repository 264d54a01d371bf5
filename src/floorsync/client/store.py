"""Local record store for the floor client.

This module provides:
- RecordStore: SQLite-based durable storage for downtime events,
  maintenance tasks (with their checklist items), alerts and users
- RecordFilter: Filtering options for RecordStore.get()

Architecture:
    Every synchronized record carries a ``dirty`` flag and a ``version``
    counter. Creates and updates set ``dirty`` and bump ``version``; only
    ``mark_clean()`` clears the flag, and only when the version pushed to
    the remote is still current. A record modified while a push is in
    flight therefore stays dirty for the next attempt.

    Each public call is atomic: single statements run in autocommit mode,
    multi-statement writes (task + items, read-validate-write updates) run
    inside one IMMEDIATE transaction. WAL mode keeps the database
    crash-consistent.
"""

from __future__ import annotations

import contextlib
import logging
import secrets
import sqlite3
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Union

from floorsync.core.errors import NotFoundError, PersistenceError, ValidationError
from floorsync.core.models import (
    Alert,
    AlertPatch,
    ChecklistItem,
    DowntimeEvent,
    DowntimePatch,
    MaintenanceTask,
    MaintenanceTaskPatch,
    User,
    parse_iso,
    to_db_value,
    to_iso,
    utc_now,
    validate_alert,
    validate_downtime,
    validate_task,
)
from floorsync.core.types import (
    AlertSeverity,
    AlertType,
    DowntimeStatus,
    EntityKind,
    TaskStatus,
    UserRole,
)

logger = logging.getLogger(__name__)

Record = Union[DowntimeEvent, MaintenanceTask, Alert]
Patch = Union[DowntimePatch, MaintenanceTaskPatch, AlertPatch]

_TABLES = {
    EntityKind.DOWNTIME: "downtime_events",
    EntityKind.MAINTENANCE: "maintenance_tasks",
    EntityKind.ALERT: "alerts",
}

_PATCH_TYPES: dict[EntityKind, type] = {
    EntityKind.DOWNTIME: DowntimePatch,
    EntityKind.MAINTENANCE: MaintenanceTaskPatch,
    EntityKind.ALERT: AlertPatch,
}

_STATUS_TYPES: dict[EntityKind, type] = {
    EntityKind.DOWNTIME: DowntimeStatus,
    EntityKind.MAINTENANCE: TaskStatus,
}

DEFAULT_USERS = (
    ("operator1", "John Operator", UserRole.OPERATOR),
    ("operator2", "Jane Operator", UserRole.OPERATOR),
    ("supervisor1", "Bob Supervisor", UserRole.SUPERVISOR),
)


def new_record_id(prefix: str) -> str:
    """Generate a record identifier unique within the device lifetime.

    Format: ``<prefix>_<epoch millis>_<10 hex chars>``.
    """
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


@dataclass(frozen=True)
class RecordFilter:
    """Filtering options for RecordStore.get().

    Attributes:
        operator_id: Only records owned by this operator (not for alerts).
        status: Only records in this status (not for alerts).
        dirty: Only dirty (True) or clean (False) records.
        acknowledged: Only acknowledged (True) or open (False) alerts.
        limit: Maximum number of records returned.
    """

    operator_id: str | None = None
    status: DowntimeStatus | TaskStatus | None = None
    dirty: bool | None = None
    acknowledged: bool | None = None
    limit: int | None = None


class RecordStore:
    """SQLite-based durable store for floor records."""

    def __init__(
        self,
        db_path: Path | str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Open (and create if needed) the record database.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
            clock: Source of timestamps; defaults to UTC now.

        Raises:
            PersistenceError: If the database cannot be opened.
        """
        self._clock = clock or utc_now
        self._lock = threading.RLock()

        if str(db_path) == ":memory:":
            self._db_path = None
            target = ":memory:"
        else:
            self._db_path = Path(db_path)
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            target = str(self._db_path)

        try:
            self._conn = sqlite3.connect(
                target,
                check_same_thread=False,
                isolation_level=None,  # Autocommit mode
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._create_tables()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open record store: {e}") from e

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                username TEXT UNIQUE NOT NULL,
                role TEXT NOT NULL,
                name TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS downtime_events (
                id TEXT PRIMARY KEY,
                operator_id TEXT NOT NULL,
                equipment_id TEXT NOT NULL,
                equipment_name TEXT NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT,
                reason TEXT NOT NULL,
                description TEXT,
                status TEXT NOT NULL,
                dirty INTEGER NOT NULL DEFAULT 1,
                version INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS maintenance_tasks (
                id TEXT PRIMARY KEY,
                operator_id TEXT NOT NULL,
                equipment_id TEXT NOT NULL,
                equipment_name TEXT NOT NULL,
                checklist_id TEXT NOT NULL,
                checklist_name TEXT NOT NULL,
                status TEXT NOT NULL,
                completed_at TEXT,
                dirty INTEGER NOT NULL DEFAULT 1,
                version INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS maintenance_checklist_items (
                id TEXT PRIMARY KEY,
                task_id TEXT NOT NULL,
                position INTEGER NOT NULL,
                item_text TEXT NOT NULL,
                checked INTEGER NOT NULL DEFAULT 0,
                notes TEXT,
                FOREIGN KEY (task_id) REFERENCES maintenance_tasks(id) ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS alerts (
                id TEXT PRIMARY KEY,
                type TEXT NOT NULL,
                severity TEXT NOT NULL,
                title TEXT NOT NULL,
                message TEXT NOT NULL,
                related_id TEXT,
                acknowledged INTEGER NOT NULL DEFAULT 0,
                acknowledged_by TEXT,
                acknowledged_at TEXT,
                dirty INTEGER NOT NULL DEFAULT 1,
                version INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            );

            -- Key-value sync state
            CREATE TABLE IF NOT EXISTS sync_state (
                key TEXT PRIMARY KEY,
                value TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_downtime_operator ON downtime_events(operator_id);
            CREATE INDEX IF NOT EXISTS idx_downtime_dirty ON downtime_events(dirty);
            CREATE INDEX IF NOT EXISTS idx_maintenance_operator ON maintenance_tasks(operator_id);
            CREATE INDEX IF NOT EXISTS idx_maintenance_dirty ON maintenance_tasks(dirty);
            CREATE INDEX IF NOT EXISTS idx_items_task ON maintenance_checklist_items(task_id);
            CREATE INDEX IF NOT EXISTS idx_alerts_acknowledged ON alerts(acknowledged);
            CREATE INDEX IF NOT EXISTS idx_alerts_dirty ON alerts(dirty);
        """)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> RecordStore:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    # === Low-level helpers ===

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Run one statement, translating storage failures."""
        with self._lock:
            try:
                return self._conn.execute(sql, params)
            except sqlite3.Error as e:
                logger.error(f"Storage error: {e}")
                raise PersistenceError(str(e)) from e

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[None]:
        """Run a block of statements atomically.

        Domain errors raised inside the block roll back and propagate
        unchanged; SQLite errors are wrapped in PersistenceError.
        """
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise PersistenceError(str(e)) from e
            try:
                yield
            except BaseException:
                with contextlib.suppress(sqlite3.Error):
                    self._conn.execute("ROLLBACK")
                raise
            try:
                self._conn.execute("COMMIT")
            except sqlite3.Error as e:
                with contextlib.suppress(sqlite3.Error):
                    self._conn.execute("ROLLBACK")
                raise PersistenceError(str(e)) from e

    def _insert(self, table: str, values: dict[str, Any]) -> None:
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        self._execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            [to_db_value(v) for v in values.values()],
        )

    # === Create ===

    def create_downtime_event(
        self,
        *,
        operator_id: str,
        equipment_id: str,
        equipment_name: str,
        reason: str,
        start_time: datetime | None = None,
        description: str | None = None,
        status: DowntimeStatus = DowntimeStatus.ACTIVE,
        end_time: datetime | None = None,
    ) -> str:
        """Create a downtime event.

        Args:
            operator_id: Reporting operator.
            equipment_id: Equipment reference.
            equipment_name: Equipment display name.
            reason: Downtime category.
            start_time: When the stoppage began (default: now).
            description: Optional notes.
            status: Initial status (default ACTIVE).
            end_time: Required iff status is RESOLVED.

        Returns:
            The new event identifier.

        Raises:
            ValidationError: If the event would break an invariant.
            PersistenceError: If the write fails.
        """
        now = self._clock()
        event = DowntimeEvent(
            id=new_record_id("downtime"),
            operator_id=operator_id,
            equipment_id=equipment_id,
            equipment_name=equipment_name,
            start_time=start_time or now,
            reason=reason,
            status=status,
            created_at=now,
            updated_at=now,
            end_time=end_time,
            description=description,
        )
        validate_downtime(event)

        self._insert("downtime_events", {
            "id": event.id,
            "operator_id": event.operator_id,
            "equipment_id": event.equipment_id,
            "equipment_name": event.equipment_name,
            "start_time": event.start_time,
            "end_time": event.end_time,
            "reason": event.reason,
            "description": event.description,
            "status": event.status,
            "dirty": True,
            "version": 1,
            "created_at": now,
            "updated_at": now,
        })
        logger.debug(f"Created downtime event {event.id} for {equipment_name}")
        return event.id

    def create_maintenance_task(
        self,
        *,
        operator_id: str,
        equipment_id: str,
        equipment_name: str,
        checklist_id: str,
        checklist_name: str,
        items: Sequence[str],
        status: TaskStatus = TaskStatus.PENDING,
    ) -> str:
        """Create a maintenance task together with its checklist items.

        The task and its items are written in one transaction.

        Args:
            operator_id: Assigned operator.
            equipment_id: Equipment reference.
            equipment_name: Equipment display name.
            checklist_id: Checklist reference.
            checklist_name: Checklist display name.
            items: Item texts, in checklist order. Items start unchecked.
            status: Initial status (PENDING or IN_PROGRESS).

        Returns:
            The new task identifier.

        Raises:
            ValidationError: If status is COMPLETED.
            PersistenceError: If the write fails.
        """
        if status == TaskStatus.COMPLETED:
            raise ValidationError("a task cannot be created completed")

        now = self._clock()
        task_id = new_record_id("maintenance")

        with self._transaction():
            self._insert("maintenance_tasks", {
                "id": task_id,
                "operator_id": operator_id,
                "equipment_id": equipment_id,
                "equipment_name": equipment_name,
                "checklist_id": checklist_id,
                "checklist_name": checklist_name,
                "status": status,
                "completed_at": None,
                "dirty": True,
                "version": 1,
                "created_at": now,
                "updated_at": now,
            })
            for position, text in enumerate(items):
                self._insert("maintenance_checklist_items", {
                    "id": new_record_id("item"),
                    "task_id": task_id,
                    "position": position,
                    "item_text": text,
                    "checked": False,
                    "notes": None,
                })

        logger.debug(f"Created maintenance task {task_id} with {len(items)} items")
        return task_id

    def create_alert(
        self,
        *,
        type: AlertType,
        severity: AlertSeverity,
        title: str,
        message: str,
        related_id: str | None = None,
    ) -> str:
        """Create an unacknowledged alert.

        Returns:
            The new alert identifier.

        Raises:
            PersistenceError: If the write fails.
        """
        alert_id = new_record_id("alert")
        self._insert("alerts", {
            "id": alert_id,
            "type": type,
            "severity": severity,
            "title": title,
            "message": message,
            "related_id": related_id,
            "acknowledged": False,
            "dirty": True,
            "version": 1,
            "created_at": self._clock(),
        })
        logger.debug(f"Created {severity.value} alert {alert_id}: {title}")
        return alert_id

    # === Update ===

    def update(self, kind: EntityKind, record_id: str, patch: Patch) -> None:
        """Apply a partial update to a record.

        Only the fields provided in the patch change. The record is marked
        dirty, its version is bumped and updated_at refreshed. An empty
        patch is a no-op and does not touch the database.

        Args:
            kind: Record kind.
            record_id: Record identifier.
            patch: Typed patch matching ``kind``.

        Raises:
            TypeError: If the patch type does not match ``kind``.
            NotFoundError: If no record has this identifier.
            ValidationError: If the merged record would break an invariant.
            PersistenceError: If the write fails.
        """
        expected = _PATCH_TYPES[kind]
        if not isinstance(patch, expected):
            raise TypeError(
                f"{kind.value} records take {expected.__name__}, "
                f"got {type(patch).__name__}"
            )

        changes = patch.changes()
        if not changes:
            return

        table = _TABLES[kind]
        with self._transaction():
            current = self.get_by_id(kind, record_id)
            if current is None:
                raise NotFoundError(kind.value, record_id)

            merged = patch.apply(current)
            if kind == EntityKind.DOWNTIME:
                validate_downtime(merged)
            elif kind == EntityKind.MAINTENANCE:
                validate_task(merged)
            else:
                validate_alert(merged)

            assignments = [f"{column} = ?" for column in changes]
            values = [to_db_value(v) for v in changes.values()]
            assignments.append("dirty = 1")
            assignments.append("version = version + 1")
            if kind != EntityKind.ALERT:
                assignments.append("updated_at = ?")
                values.append(to_iso(self._clock()))
            values.append(record_id)

            self._execute(
                f"UPDATE {table} SET {', '.join(assignments)} WHERE id = ?",
                values,
            )

        logger.debug(f"Updated {kind.value} {record_id}: {', '.join(changes)}")

    def update_checklist_item(
        self,
        item_id: str,
        *,
        checked: bool | None = None,
        notes: str | None = None,
    ) -> None:
        """Update a checklist item.

        Arguments left as None are unchanged, so notes can be replaced but
        not cleared. The owning task is not marked dirty; callers that
        change the task's status do so through update(). Items of a
        completed task cannot be unchecked.

        Raises:
            NotFoundError: If the item does not exist.
            ValidationError: If unchecking an item of a completed task.
            PersistenceError: If the write fails.
        """
        updates: list[str] = []
        values: list[Any] = []

        if checked is not None:
            updates.append("checked = ?")
            values.append(int(checked))
        if notes is not None:
            updates.append("notes = ?")
            values.append(notes)

        if not updates:
            return

        values.append(item_id)
        with self._transaction():
            row = self._execute(
                """
                SELECT t.id AS task_id, t.status AS task_status
                FROM maintenance_checklist_items i
                JOIN maintenance_tasks t ON t.id = i.task_id
                WHERE i.id = ?
                """,
                (item_id,),
            ).fetchone()
            if row is None:
                raise NotFoundError("checklist item", item_id)
            if checked is False and row["task_status"] == TaskStatus.COMPLETED.value:
                raise ValidationError(
                    f"maintenance task {row['task_id']} is completed; "
                    "its checklist items cannot be unchecked"
                )

            self._execute(
                f"UPDATE maintenance_checklist_items SET {', '.join(updates)} WHERE id = ?",
                values,
            )

    def acknowledge_alert(
        self,
        alert_id: str,
        acknowledged_by: str,
        acknowledged_at: datetime | None = None,
    ) -> None:
        """Acknowledge an alert on behalf of a user.

        Raises:
            NotFoundError: If the alert does not exist.
        """
        self.update(
            EntityKind.ALERT,
            alert_id,
            AlertPatch(
                acknowledged=True,
                acknowledged_by=acknowledged_by,
                acknowledged_at=acknowledged_at or self._clock(),
            ),
        )

    def mark_clean(self, kind: EntityKind, record_id: str, version: int) -> bool:
        """Clear the dirty flag after the remote accepted ``version``.

        Only the sync engine calls this.

        Returns:
            True if the flag was cleared; False if the record changed
            since it was pushed (or no longer exists).

        Raises:
            PersistenceError: If the write fails.
        """
        cursor = self._execute(
            f"UPDATE {_TABLES[kind]} SET dirty = 0 WHERE id = ? AND version = ?",
            (record_id, version),
        )
        return cursor.rowcount == 1

    # === Read ===

    def get(
        self,
        kind: EntityKind,
        record_filter: RecordFilter | None = None,
    ) -> list[Any]:
        """List records of a kind, newest created_at first.

        Args:
            kind: Record kind.
            record_filter: Optional filter and limit.

        Returns:
            Matching records (copies).

        Raises:
            ValueError: If the filter uses a field the kind does not have.
            PersistenceError: If the read fails.
        """
        where, params = self._where(kind, record_filter or RecordFilter())
        sql = f"SELECT * FROM {_TABLES[kind]}{where} ORDER BY created_at DESC, rowid DESC"
        if record_filter is not None and record_filter.limit is not None:
            sql += " LIMIT ?"
            params.append(record_filter.limit)

        with self._lock:
            rows = self._execute(sql, params).fetchall()
            if kind == EntityKind.MAINTENANCE:
                items = self._items_for([row["id"] for row in rows])
                return [MaintenanceTask.from_row(row, items.get(row["id"], [])) for row in rows]

        if kind == EntityKind.DOWNTIME:
            return [DowntimeEvent.from_row(row) for row in rows]
        return [Alert.from_row(row) for row in rows]

    def count(self, kind: EntityKind, record_filter: RecordFilter | None = None) -> int:
        """Count records of a kind matching a filter (limit ignored)."""
        where, params = self._where(kind, record_filter or RecordFilter())
        row = self._execute(
            f"SELECT COUNT(*) AS n FROM {_TABLES[kind]}{where}", params
        ).fetchone()
        return int(row["n"])

    def get_by_id(self, kind: EntityKind, record_id: str) -> Any | None:
        """Get a single record, or None if it does not exist."""
        with self._lock:
            row = self._execute(
                f"SELECT * FROM {_TABLES[kind]} WHERE id = ?", (record_id,)
            ).fetchone()
            if row is None:
                return None
            if kind == EntityKind.MAINTENANCE:
                items = self._items_for([record_id])
                return MaintenanceTask.from_row(row, items.get(record_id, []))
        if kind == EntityKind.DOWNTIME:
            return DowntimeEvent.from_row(row)
        return Alert.from_row(row)

    def get_checklist_item(self, item_id: str) -> ChecklistItem | None:
        """Get a checklist item by identifier."""
        row = self._execute(
            "SELECT * FROM maintenance_checklist_items WHERE id = ?", (item_id,)
        ).fetchone()
        return ChecklistItem.from_row(row) if row else None

    def _items_for(self, task_ids: list[str]) -> dict[str, list[ChecklistItem]]:
        """Load checklist items for several tasks, in checklist order."""
        if not task_ids:
            return {}
        placeholders = ", ".join("?" for _ in task_ids)
        rows = self._execute(
            f"SELECT * FROM maintenance_checklist_items WHERE task_id IN ({placeholders}) "
            "ORDER BY task_id, position",
            task_ids,
        ).fetchall()
        grouped: dict[str, list[ChecklistItem]] = {}
        for row in rows:
            grouped.setdefault(row["task_id"], []).append(ChecklistItem.from_row(row))
        return grouped

    @staticmethod
    def _where(kind: EntityKind, record_filter: RecordFilter) -> tuple[str, list[Any]]:
        """Build a WHERE clause for a filter."""
        clauses: list[str] = []
        params: list[Any] = []

        if record_filter.operator_id is not None:
            if kind == EntityKind.ALERT:
                raise ValueError("alerts cannot be filtered by operator")
            clauses.append("operator_id = ?")
            params.append(record_filter.operator_id)

        if record_filter.status is not None:
            status_type = _STATUS_TYPES.get(kind)
            if status_type is None or not isinstance(record_filter.status, status_type):
                raise ValueError(f"invalid status filter for {kind.value}")
            clauses.append("status = ?")
            params.append(record_filter.status.value)

        if record_filter.dirty is not None:
            clauses.append("dirty = ?")
            params.append(int(record_filter.dirty))

        if record_filter.acknowledged is not None:
            if kind != EntityKind.ALERT:
                raise ValueError(f"{kind.value} records have no acknowledged flag")
            clauses.append("acknowledged = ?")
            params.append(int(record_filter.acknowledged))

        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    # === Users ===

    def add_user(
        self,
        username: str,
        name: str,
        role: UserRole = UserRole.OPERATOR,
        user_id: str | None = None,
    ) -> User:
        """Add a user, or leave an existing one with this username untouched.

        Returns:
            The stored user.
        """
        user_id = user_id or f"user_{username}"
        self._execute(
            "INSERT OR IGNORE INTO users (id, username, role, name) VALUES (?, ?, ?, ?)",
            (user_id, username, role.value, name),
        )
        user = self.find_user_by_username(username)
        if user is None:
            raise PersistenceError(f"User {username!r} was not stored")
        return user

    def seed_users(self) -> list[User]:
        """Ensure the default floor users exist."""
        return [self.add_user(username, name, role) for username, name, role in DEFAULT_USERS]

    def find_user_by_username(self, username: str) -> User | None:
        """Look up a user by username."""
        row = self._execute(
            "SELECT * FROM users WHERE username = ?", (username,)
        ).fetchone()
        return User.from_row(row) if row else None

    def list_users(self) -> list[User]:
        """List all users by username."""
        rows = self._execute("SELECT * FROM users ORDER BY username").fetchall()
        return [User.from_row(row) for row in rows]

    # === Sync state ===

    def get_state(self, key: str) -> str | None:
        """Get a sync state value."""
        row = self._execute(
            "SELECT value FROM sync_state WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def set_state(self, key: str, value: str) -> None:
        """Set a sync state value."""
        self._execute(
            "INSERT OR REPLACE INTO sync_state (key, value) VALUES (?, ?)",
            (key, value),
        )

    def get_last_sync_at(self) -> datetime | None:
        """Get time of the last successful sync."""
        return parse_iso(self.get_state("last_sync_at"))

    def set_last_sync_at(self, timestamp: datetime) -> None:
        """Set time of the last successful sync."""
        self.set_state("last_sync_at", to_iso(timestamp))
