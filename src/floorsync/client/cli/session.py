"""Helpers shared by commands that work on the local store."""

from __future__ import annotations

import contextlib
import sys
from collections.abc import Iterator
from typing import NoReturn

import click

from floorsync.client.cli.config import get_db_path, load_config
from floorsync.client.operations import FloorOperations
from floorsync.client.queries import DirtySetQuery
from floorsync.client.store import RecordStore
from floorsync.client.tracker import SyncStateTracker
from floorsync.core.errors import FloorSyncError
from floorsync.core.models import User
from floorsync.core.types import UserRole


@contextlib.contextmanager
def open_store() -> Iterator[RecordStore]:
    """Open the local store, exiting if floorsync was not initialized."""
    db_path = get_db_path()
    if not db_path.exists():
        click.echo("Error: floorsync not initialized. Run 'floorsync init' first.", err=True)
        sys.exit(1)

    try:
        store = RecordStore(db_path)
    except FloorSyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    with store:
        yield store


def current_user(store: RecordStore, role: UserRole | None = None) -> User:
    """Get the logged-in user, exiting if nobody is logged in.

    Args:
        store: Store holding the user table.
        role: Role the command requires, if any.
    """
    username = load_config().get("username")
    user = store.find_user_by_username(username) if username else None
    if user is None:
        click.echo("Error: Not logged in. Run 'floorsync login <username>' first.", err=True)
        sys.exit(1)
    if role is not None and user.role != role:
        click.echo(f"Error: This command requires the {role.value} role.", err=True)
        sys.exit(1)
    return user


def operations_for(store: RecordStore) -> FloorOperations:
    """Floor operations wired to a fresh tracker over ``store``."""
    tracker = SyncStateTracker(store.get_last_sync_at())
    return FloorOperations(store, DirtySetQuery(store), tracker)


def fail(error: Exception) -> NoReturn:
    """Report a command failure and exit."""
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)
