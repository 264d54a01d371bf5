"""Exception hierarchy for floorsync.

Local persistence errors propagate to the immediate caller. Sync-path
errors (ConnectivityError, RemotePushError) are captured by the sync engine
into its result object and never raised past ``attempt_sync()``.
"""

from __future__ import annotations


class FloorSyncError(Exception):
    """Base exception for floorsync errors."""


class PersistenceError(FloorSyncError):
    """A local storage read or write failed."""


class NotFoundError(FloorSyncError):
    """No record exists with the requested identifier."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id!r} not found")


class ValidationError(FloorSyncError):
    """A create or update would break a record invariant."""


class ConnectivityError(FloorSyncError):
    """The remote system is not reachable."""


class RemotePushError(FloorSyncError):
    """The remote rejected a batch or could not be reached while pushing."""
