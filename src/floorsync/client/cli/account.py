"""Setup and login commands for floorsync CLI.

Commands:
- init: Create the local store and the default floor users
- login: Select the user recorded as operator on new records
- logout: Forget the logged-in user
- configure: Set the remote server and sync settings
"""

from __future__ import annotations

import sys

import click

from floorsync.client.cli.config import get_db_path, load_config, save_config
from floorsync.client.cli.session import open_store
from floorsync.client.store import RecordStore
from floorsync.core.errors import PersistenceError


@click.command()
def init() -> None:
    """Initialize the local floor store.

    Creates the database and the default operator and supervisor users.
    Safe to run again; existing records are kept.
    """
    db_path = get_db_path()

    try:
        with RecordStore(db_path) as store:
            users = store.seed_users()
    except PersistenceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Local store ready: {db_path}")
    click.echo("\nUsers:")
    for user in users:
        click.echo(f"  {user.username:<14} {user.name} ({user.role.value})")


@click.command()
@click.argument("username")
def login(username: str) -> None:
    """Log in as USERNAME on this device."""
    with open_store() as store:
        user = store.find_user_by_username(username)

    if user is None:
        click.echo(f"Error: Unknown user '{username}'.", err=True)
        sys.exit(1)

    config = load_config()
    config["username"] = user.username
    save_config(config)

    click.echo(f"Logged in as {user.name} ({user.role.value})")


@click.command()
def logout() -> None:
    """Log out the current user."""
    config = load_config()
    if config.pop("username", None) is None:
        click.echo("Not logged in.")
        return
    save_config(config)
    click.echo("Logged out.")


@click.command()
@click.option("--server", default=None, help="Server URL (e.g., http://localhost:8000).")
@click.option("--token", default=None, help="Device token issued by the server admin.")
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds between connectivity polls in watch mode.",
)
@click.option(
    "--push-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds to wait for the server to accept a batch.",
)
def configure(
    server: str | None,
    token: str | None,
    poll_interval: float | None,
    push_timeout: float | None,
) -> None:
    """Configure the remote server and sync settings.

    Without options, prints the current configuration.
    """
    config = load_config()

    if server is not None:
        config["server_url"] = server.rstrip("/")
    if token is not None:
        config["auth_token"] = token
    if poll_interval is not None:
        config["poll_interval"] = poll_interval
    if push_timeout is not None:
        config["push_timeout"] = push_timeout

    if any(v is not None for v in (server, token, poll_interval, push_timeout)):
        save_config(config)
        click.echo("Configuration saved.")

    click.echo(f"Server: {config.get('server_url', '(not configured)')}")
    click.echo(f"Token: {'set' if config.get('auth_token') else '(not set)'}")
    if "poll_interval" in config:
        click.echo(f"Poll interval: {config['poll_interval']:g}s")
    if "push_timeout" in config:
        click.echo(f"Push timeout: {config['push_timeout']:g}s")
