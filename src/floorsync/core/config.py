"""Shared configuration classes for floorsync.

This module defines the configuration used by the remote client and the
sync engine.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_POLL_INTERVAL = 30.0  # seconds
DEFAULT_PUSH_TIMEOUT = 60.0  # seconds


@dataclass
class ServerConfig:
    """Configuration for connecting to the remote floor data server.

    Attributes:
        server_url: Base URL of the server (e.g., "https://floor.example.com").
        token: Authentication token for this device.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    token: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")


@dataclass
class SyncConfig:
    """Configuration for the sync engine and poller.

    Attributes:
        poll_interval: Seconds between connectivity/pending-count polls.
        push_timeout: Seconds to wait for a batch push before treating it
            as failed. None waits indefinitely.
        auto_sync: Whether the poller triggers a sync when online with
            pending records.
    """

    poll_interval: float = DEFAULT_POLL_INTERVAL
    push_timeout: float | None = DEFAULT_PUSH_TIMEOUT
    auto_sync: bool = True

    def __post_init__(self) -> None:
        """Validate intervals."""
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.push_timeout is not None and self.push_timeout <= 0:
            raise ValueError("push_timeout must be positive")
