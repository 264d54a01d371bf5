"""Configuration utilities for floorsync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from floorsync.core.config import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PUSH_TIMEOUT,
    ServerConfig,
    SyncConfig,
)


def get_config_dir() -> Path:
    """Get the configuration directory for floorsync.

    Returns:
        Path to ~/.floorsync or equivalent.
    """
    return Path.home() / ".floorsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_db_path() -> Path:
    """Get the local record database path.

    Returns:
        Path to the database (configured or default ~/.floorsync/floor.db).
    """
    config = load_config()
    if config.get("db_path"):
        return Path(config["db_path"]).expanduser().resolve()
    return get_config_dir() / "floor.db"


def get_server_config() -> ServerConfig | None:
    """Get the remote server settings, or None if not configured."""
    config = load_config()
    if not config.get("server_url"):
        return None
    return ServerConfig(
        server_url=config["server_url"],
        token=config.get("auth_token", ""),
    )


def get_sync_config() -> SyncConfig:
    """Get the sync settings, falling back to defaults."""
    config = load_config()
    return SyncConfig(
        poll_interval=float(config.get("poll_interval", DEFAULT_POLL_INTERVAL)),
        push_timeout=float(config.get("push_timeout", DEFAULT_PUSH_TIMEOUT)),
    )
