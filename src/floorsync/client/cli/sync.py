"""Sync commands for floorsync CLI.

Commands:
- sync: Push unsynced records to the server
- status: Show connectivity, pending records and last sync time
"""

from __future__ import annotations

import sys
import time

import click

from floorsync.client.cli.config import get_server_config, get_sync_config
from floorsync.client.cli.session import open_store
from floorsync.client.queries import DirtySetQuery
from floorsync.client.sync.types import SyncResult
from floorsync.client.tracker import SyncStateTracker, SyncStatus


def _echo_result(result: SyncResult) -> None:
    if result.skipped:
        click.echo("A sync is already running.")
    elif result.success and result.synced_items == 0:
        click.echo("Everything is up to date.")
    elif result.success:
        click.echo(f"Sync complete: {result.synced_items} record(s) uploaded")
    else:
        click.echo(click.style("Sync failed:", fg="red"), err=True)
        for error in result.errors:
            click.echo(f"  ✗ {error}", err=True)


def _format_status(status: SyncStatus) -> str:
    online = click.style("online", fg="green") if status.is_online else click.style(
        "offline", fg="yellow"
    )
    last = (
        status.last_sync_time.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        if status.last_sync_time
        else "never"
    )
    return f"{online}, {status.pending_items} pending, last sync: {last}"


@click.command()
@click.option("--watch", "-w", is_flag=True, help="Keep polling and sync continuously.")
def sync(watch: bool) -> None:
    """Push unsynced records to the server.

    Uploads every record changed since the last successful sync as one
    batch. Use --watch to keep polling and sync whenever records are
    pending and the server is reachable.
    """
    from floorsync.client.api import RemoteClient
    from floorsync.client.sync import SyncEngine, SyncPoller

    server_config = get_server_config()
    if server_config is None:
        click.echo("Error: No server configured. Run 'floorsync configure --server URL' first.", err=True)
        sys.exit(1)

    sync_config = get_sync_config()

    with open_store() as store, RemoteClient(server_config) as client:
        queries = DirtySetQuery(store)
        tracker = SyncStateTracker(store.get_last_sync_at())
        engine = SyncEngine(store, queries, client, client, tracker, sync_config)

        click.echo(f"Syncing with {server_config.server_url}...")

        if not watch:
            result = engine.attempt_sync()
            _echo_result(result)
            if not result.success:
                sys.exit(1)
            return

        def on_status(status: SyncStatus) -> None:
            if not status.syncing:
                click.echo(f"  {_format_status(status)}")

        tracker.subscribe(on_status)
        poller = SyncPoller(engine, tracker, queries, client, sync_config)

        click.echo("Watching for pending records... (Ctrl+C to stop)\n")
        poller.start()
        try:
            while True:
                time.sleep(1.0)
        except KeyboardInterrupt:
            click.echo("\nStopping...")
        finally:
            poller.stop()


@click.command()
def status() -> None:
    """Show sync status."""
    from floorsync.client.api import RemoteClient

    server_config = get_server_config()

    with open_store() as store:
        queries = DirtySetQuery(store)
        tracker = SyncStateTracker(store.get_last_sync_at())
        tracker.refresh_pending(queries)

        if server_config is not None:
            with RemoteClient(server_config) as client:
                tracker.refresh_online(client)

        batch = queries.collect()

    click.echo(f"Server: {server_config.server_url if server_config else '(not configured)'}")
    click.echo(f"Status: {_format_status(tracker.status)}")
    if not batch.is_empty:
        click.echo(
            f"  {len(batch.downtime_events)} downtime, "
            f"{len(batch.maintenance_tasks)} maintenance, "
            f"{len(batch.alerts)} alerts"
        )
