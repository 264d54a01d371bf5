"""Tests for the process-wide sync status."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

from floorsync.client.tracker import SyncStateTracker, SyncStatus
from floorsync.core.errors import PersistenceError


class TestSyncStatus:
    """Tests for SyncStatus snapshots."""

    def test_initial_status(self) -> None:
        """Starts offline, nothing pending, never synced."""
        status = SyncStateTracker().status

        assert status == SyncStatus(
            is_online=False, last_sync_time=None, pending_items=0, syncing=False
        )

    def test_restores_last_sync_time(self) -> None:
        when = datetime(2025, 3, 9, 17, 30, tzinfo=timezone.utc)

        assert SyncStateTracker(last_sync_time=when).status.last_sync_time == when

    def test_snapshots_are_immutable_copies(self) -> None:
        """An old snapshot does not change when the tracker does."""
        tracker = SyncStateTracker()
        before = tracker.status

        tracker.set_pending(4)

        assert before.pending_items == 0
        assert tracker.status.pending_items == 4

    def test_to_dict(self) -> None:
        when = datetime(2025, 3, 9, 17, 30, tzinfo=timezone.utc)
        status = SyncStatus(is_online=True, last_sync_time=when, pending_items=2)

        assert status.to_dict() == {
            "is_online": True,
            "last_sync_time": "2025-03-09T17:30:00.000000+00:00",
            "pending_items": 2,
            "syncing": False,
        }


class TestRefresh:
    """Tests for refresh_online() and refresh_pending()."""

    def test_refresh_online(self, connectivity) -> None:
        tracker = SyncStateTracker()

        assert tracker.refresh_online(connectivity) is True
        assert tracker.status.is_online is True

        connectivity.connected = False
        assert tracker.refresh_online(connectivity) is False
        assert tracker.status.is_online is False

    def test_probe_error_counts_as_offline(self, connectivity) -> None:
        tracker = SyncStateTracker()
        tracker.set_online(True)
        connectivity.error = OSError("network unreachable")

        assert tracker.refresh_online(connectivity) is False
        assert tracker.status.is_online is False

    def test_refresh_pending(self, queries, make_downtime, make_alert) -> None:
        tracker = SyncStateTracker()
        make_downtime()
        make_alert()

        assert tracker.refresh_pending(queries) == 2
        assert tracker.status.pending_items == 2

    def test_refresh_pending_keeps_count_on_storage_error(self) -> None:
        tracker = SyncStateTracker()
        tracker.set_pending(7)
        queries = MagicMock()
        queries.pending_count.side_effect = PersistenceError("disk I/O error")

        assert tracker.refresh_pending(queries) == 7
        assert tracker.status.pending_items == 7


class TestSubscribe:
    """Tests for status listeners."""

    def test_listener_receives_changes(self) -> None:
        tracker = SyncStateTracker()
        seen: list[SyncStatus] = []
        tracker.subscribe(seen.append)

        tracker.set_syncing(True)
        tracker.set_syncing(False)

        assert [s.syncing for s in seen] == [True, False]

    def test_no_notification_without_change(self) -> None:
        tracker = SyncStateTracker()
        seen: list[SyncStatus] = []
        tracker.subscribe(seen.append)

        tracker.set_online(False)
        tracker.set_pending(0)

        assert seen == []

    def test_unsubscribe(self) -> None:
        tracker = SyncStateTracker()
        seen: list[SyncStatus] = []
        unsubscribe = tracker.subscribe(seen.append)

        unsubscribe()
        tracker.set_pending(3)

        assert seen == []

    def test_failing_listener_does_not_block_others(self) -> None:
        tracker = SyncStateTracker()
        seen: list[SyncStatus] = []
        tracker.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        tracker.subscribe(seen.append)

        tracker.set_online(True)

        assert len(seen) == 1
        assert tracker.status.is_online is True

    def test_record_success(self) -> None:
        tracker = SyncStateTracker()
        tracker.set_pending(3)
        when = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

        tracker.record_success(when, pending_items=0)

        assert tracker.status.last_sync_time == when
        assert tracker.status.pending_items == 0
