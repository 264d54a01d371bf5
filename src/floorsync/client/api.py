"""HTTP client for the floor data server.

This module provides:
- RemoteClient: httpx-based implementation of the connectivity and
  remote push capabilities
- APIError, AuthenticationError: Server-side failures

Endpoints:
    GET  /health           200 when the server is reachable
    POST /api/sync/batch   {"accepted": bool, "errors": [str]}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from floorsync.client.sync.types import PushResult, SyncBatch
from floorsync.core.errors import RemotePushError

if TYPE_CHECKING:
    from floorsync.core.config import ServerConfig
    from floorsync.core.models import Alert, DowntimeEvent, MaintenanceTask

logger = logging.getLogger(__name__)


class APIError(RemotePushError):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed."""


def _detail(response: httpx.Response, default: str) -> str:
    """Extract the error detail from a response body."""
    try:
        return str(response.json().get("detail", default))
    except ValueError:
        return response.text or default


class RemoteClient:
    """HTTP client for the floor data server."""

    def __init__(self, config: ServerConfig) -> None:
        """Initialize the client.

        Args:
            config: Server URL, token, timeout and SSL settings.
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"Authorization": f"Bearer {config.token}"},
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> RemoteClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError("Invalid or expired token", 401)
        if response.status_code >= 400:
            raise APIError(_detail(response, "Unknown error"), response.status_code)
        return response

    # === Connectivity ===

    def health_check(self) -> bool:
        """Check if the server is reachable and healthy.

        Returns:
            True if server answered 200.
        """
        try:
            response = self._client.get("/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    def is_connected(self) -> bool:
        """Connectivity capability: the server health endpoint answers."""
        return self.health_check()

    # === Push ===

    def push(
        self,
        downtime_events: list[DowntimeEvent],
        maintenance_tasks: list[MaintenanceTask],
        alerts: list[Alert],
    ) -> PushResult:
        """Push a batch of records to the server.

        Returns:
            PushResult as reported by the server.

        Raises:
            RemotePushError: On timeout, network failure or an error status.
        """
        payload = SyncBatch(
            downtime_events=downtime_events,
            maintenance_tasks=maintenance_tasks,
            alerts=alerts,
        ).to_payload()

        try:
            response = self._client.post("/api/sync/batch", json=payload)
        except httpx.TimeoutException as e:
            raise RemotePushError(f"push timed out: {e}") from e
        except httpx.RequestError as e:
            raise RemotePushError(f"network error: {e}") from e

        result = PushResult.from_dict(self._handle_response(response).json())
        logger.debug(f"Server answered accepted={result.accepted}")
        return result
