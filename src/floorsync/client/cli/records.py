"""Floor record commands for floorsync CLI.

Commands:
- downtime start/resolve/list: Equipment downtime
- maintenance create/show/check/complete/list: Maintenance checklists
- alerts list/ack: Supervisor alerts
"""

from __future__ import annotations

from datetime import datetime

import click

from floorsync.client.cli.session import current_user, fail, open_store, operations_for
from floorsync.client.operations import ALERT_FILTERS
from floorsync.client.store import RecordFilter
from floorsync.core.catalog import DOWNTIME_REASONS, EQUIPMENT
from floorsync.core.errors import FloorSyncError
from floorsync.core.models import Alert, DowntimeEvent, MaintenanceTask
from floorsync.core.types import DowntimeStatus, EntityKind, UserRole


def _when(value: datetime) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def _sync_mark(dirty: bool) -> str:
    return "*" if dirty else " "


def _echo_downtime(event: DowntimeEvent) -> None:
    line = (
        f"{_sync_mark(event.dirty)} {event.id}  {event.equipment_name:<18} "
        f"{event.reason:<20} {event.status.value:<9} since {_when(event.start_time)}"
    )
    if event.duration_minutes is not None:
        line += f" ({event.duration_minutes} min)"
    click.echo(line)


def _echo_task(task: MaintenanceTask, with_items: bool = False) -> None:
    done = sum(1 for item in task.items if item.checked)
    click.echo(
        f"{_sync_mark(task.dirty)} {task.id}  {task.equipment_name:<18} "
        f"{task.status.value:<12} {done}/{len(task.items)} checked"
    )
    if with_items:
        for item in task.items:
            box = "[x]" if item.checked else "[ ]"
            click.echo(f"    {box} {item.id}  {item.item_text}")
            if item.notes:
                click.echo(f"          note: {item.notes}")


def _echo_alert(alert: Alert) -> None:
    state = "ack" if alert.acknowledged else "open"
    click.echo(
        f"{_sync_mark(alert.dirty)} {alert.id}  [{alert.severity.value:<8}] "
        f"{state:<4} {_when(alert.created_at)}  {alert.title}"
    )


# === Downtime ===


@click.group()
def downtime() -> None:
    """Report and resolve equipment downtime."""


@downtime.command("start")
@click.option("--equipment", "-e", type=click.Choice(EQUIPMENT), required=True)
@click.option("--reason", "-r", type=click.Choice(DOWNTIME_REASONS), required=True)
@click.option("--description", "-d", default=None, help="Optional notes.")
def downtime_start(equipment: str, reason: str, description: str | None) -> None:
    """Report that EQUIPMENT stopped.

    Supervisors are alerted automatically.
    """
    with open_store() as store:
        user = current_user(store)
        try:
            event = operations_for(store).start_downtime(user, equipment, reason, description)
        except FloorSyncError as e:
            fail(e)

    click.echo(f"Downtime started: {event.id}")


@downtime.command("resolve")
@click.argument("event_id")
def downtime_resolve(event_id: str) -> None:
    """Mark downtime EVENT_ID resolved."""
    with open_store() as store:
        current_user(store)
        try:
            event = operations_for(store).resolve_downtime(event_id)
        except FloorSyncError as e:
            fail(e)

    click.echo(f"Downtime resolved after {event.duration_minutes} min.")


@downtime.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include resolved events.")
@click.option("--mine", is_flag=True, help="Only events you reported.")
@click.option("--limit", type=click.IntRange(min=1), default=None)
def downtime_list(show_all: bool, mine: bool, limit: int | None) -> None:
    """List downtime events (active only by default).

    Records marked * have not been synced yet.
    """
    with open_store() as store:
        operator_id = current_user(store).id if mine else None
        events = store.get(
            EntityKind.DOWNTIME,
            RecordFilter(
                operator_id=operator_id,
                status=None if show_all else DowntimeStatus.ACTIVE,
                limit=limit,
            ),
        )

    if not events:
        click.echo("No downtime events.")
        return
    for event in events:
        _echo_downtime(event)


# === Maintenance ===


@click.group()
def maintenance() -> None:
    """Run maintenance checklists."""


@maintenance.command("create")
@click.option("--equipment", "-e", type=click.Choice(EQUIPMENT), required=True)
def maintenance_create(equipment: str) -> None:
    """Start a maintenance checklist for EQUIPMENT."""
    with open_store() as store:
        user = current_user(store)
        try:
            task = operations_for(store).create_maintenance_task(user, equipment)
        except FloorSyncError as e:
            fail(e)

    click.echo(f"Created {task.checklist_name}: {task.id}")
    _echo_task(task, with_items=True)


@maintenance.command("show")
@click.argument("task_id")
def maintenance_show(task_id: str) -> None:
    """Show task TASK_ID with its checklist."""
    with open_store() as store:
        task = store.get_by_id(EntityKind.MAINTENANCE, task_id)

    if task is None:
        fail(LookupError(f"Task '{task_id}' not found."))
    _echo_task(task, with_items=True)


@maintenance.command("check")
@click.argument("item_id")
@click.option(
    "--check/--uncheck",
    "checked",
    default=None,
    help="Set or clear the item. Defaults to --check unless only --notes is given.",
)
@click.option("--notes", "-n", default=None, help="Attach notes to the item.")
def maintenance_check(item_id: str, checked: bool | None, notes: str | None) -> None:
    """Check, uncheck or annotate checklist item ITEM_ID."""
    if checked is None and notes is None:
        checked = True

    with open_store() as store:
        current_user(store)
        try:
            task = operations_for(store).set_checklist_item(
                item_id, checked=checked, notes=notes
            )
        except FloorSyncError as e:
            fail(e)

    _echo_task(task, with_items=True)


@maintenance.command("complete")
@click.argument("task_id")
def maintenance_complete(task_id: str) -> None:
    """Complete task TASK_ID once every item is checked."""
    with open_store() as store:
        user = current_user(store)
        try:
            task = operations_for(store).complete_task(user, task_id)
        except FloorSyncError as e:
            fail(e)

    click.echo(f"Maintenance completed: {task.equipment_name}")


@maintenance.command("list")
@click.option("--all", "show_all", is_flag=True, help="Tasks of every operator.")
def maintenance_list(show_all: bool) -> None:
    """List open maintenance tasks."""
    with open_store() as store:
        operator_id = None if show_all else current_user(store).id
        tasks = operations_for(store).open_tasks(operator_id)

    if not tasks:
        click.echo("No open maintenance tasks.")
        return
    for task in tasks:
        _echo_task(task)


# === Alerts ===


@click.group()
def alerts() -> None:
    """Review and acknowledge alerts."""


@alerts.command("list")
@click.option(
    "--filter",
    "which",
    type=click.Choice(ALERT_FILTERS),
    default="unacknowledged",
    show_default=True,
)
def alerts_list(which: str) -> None:
    """List alerts, newest first."""
    with open_store() as store:
        found = operations_for(store).list_alerts(which)

    if not found:
        click.echo("No alerts.")
        return
    for alert in found:
        _echo_alert(alert)


@alerts.command("ack")
@click.argument("alert_id")
def alerts_ack(alert_id: str) -> None:
    """Acknowledge alert ALERT_ID (supervisors only)."""
    with open_store() as store:
        user = current_user(store, role=UserRole.SUPERVISOR)
        try:
            alert = operations_for(store).acknowledge_alert(user, alert_id)
        except FloorSyncError as e:
            fail(e)

    click.echo(f"Acknowledged: {alert.title}")
