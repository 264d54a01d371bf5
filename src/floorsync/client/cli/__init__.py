"""Command-line interface for floorsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- init: Create the local store and default users
- login / logout: Select the user on this device
- configure: Set the remote server and sync settings
- downtime: Report and resolve equipment downtime
- maintenance: Run maintenance checklists
- alerts: Review and acknowledge alerts
- sync: Push unsynced records to the server
- status: Show sync status
- dashboard: Operator dashboard
- report: Period summary report
"""

from __future__ import annotations

import logging

import click

from floorsync.client.cli.account import configure, init, login, logout
from floorsync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_db_path,
    load_config,
    save_config,
)
from floorsync.client.cli.records import alerts, downtime, maintenance
from floorsync.client.cli.report import dashboard, report
from floorsync.client.cli.sync import status, sync


def setup_logging(verbose: bool) -> None:
    """Send floorsync log records to stderr.

    Warnings and errors are always shown; --verbose adds debug output.
    """
    floorsync_logger = logging.getLogger("floorsync")
    for handler in floorsync_logger.handlers[:]:
        floorsync_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    floorsync_logger.addHandler(handler)
    floorsync_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    floorsync_logger.propagate = False


@click.group()
@click.version_option(package_name="floorsync")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """floorsync - Offline-first factory floor records."""
    setup_logging(verbose)


# Setup commands
cli.add_command(init)
cli.add_command(login)
cli.add_command(logout)
cli.add_command(configure)

# Record commands
cli.add_command(downtime)
cli.add_command(maintenance)
cli.add_command(alerts)

# Sync commands
cli.add_command(sync)
cli.add_command(status)

# Reporting commands
cli.add_command(dashboard)
cli.add_command(report)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    "setup_logging",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_db_path",
    "load_config",
    "save_config",
]
