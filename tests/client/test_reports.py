"""Tests for dashboard stats and summary reports."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from floorsync.client.reports import ReportPeriod, dashboard_stats, summary_report
from floorsync.core.models import MaintenanceTaskPatch
from floorsync.core.types import DowntimeStatus, EntityKind, TaskStatus

NOW = datetime(2025, 3, 10, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def resolved_downtime(make_downtime):  # type: ignore[no-untyped-def]
    """Factory creating a resolved event lasting ``minutes``."""

    def _make(minutes: int, start: datetime, **kwargs):  # type: ignore[no-untyped-def]
        return make_downtime(
            start_time=start,
            status=DowntimeStatus.RESOLVED,
            end_time=start + timedelta(minutes=minutes),
            **kwargs,
        )

    return _make


@pytest.fixture
def complete_task(store):  # type: ignore[no-untyped-def]
    """Check every item of a task and complete it."""

    def _complete(task_id: str) -> None:
        task = store.get_by_id(EntityKind.MAINTENANCE, task_id)
        for item in task.items:
            store.update_checklist_item(item.id, checked=True)
        store.update(
            EntityKind.MAINTENANCE,
            task_id,
            MaintenanceTaskPatch(status=TaskStatus.COMPLETED, completed_at=NOW),
        )

    return _complete


class TestReportPeriod:
    """Tests for reporting windows."""

    @pytest.mark.parametrize(
        ("period", "expected"),
        [
            (ReportPeriod.TODAY, datetime(2025, 3, 10, tzinfo=timezone.utc)),
            (ReportPeriod.WEEK, datetime(2025, 3, 3, tzinfo=timezone.utc)),
            (ReportPeriod.MONTH, datetime(2025, 2, 8, tzinfo=timezone.utc)),
        ],
    )
    def test_start(self, period: ReportPeriod, expected: datetime) -> None:
        assert period.start(NOW) == expected


class TestDashboardStats:
    """Tests for dashboard_stats()."""

    def test_empty_store(self, store) -> None:  # type: ignore[no-untyped-def]
        stats = dashboard_stats(store, now=NOW)

        assert stats.to_dict() == {
            "active_downtime": 0,
            "pending_maintenance": 0,
            "unacknowledged_alerts": 0,
            "today_downtime_minutes": 0,
        }

    def test_counts(  # type: ignore[no-untyped-def]
        self, store, make_downtime, make_task, make_alert, complete_task
    ) -> None:
        make_downtime(operator_id="user_operator1")
        make_downtime(operator_id="user_operator2")
        make_task(operator_id="user_operator1")
        make_task(operator_id="user_operator2")
        complete_task(make_task(operator_id="user_operator1"))
        make_alert()
        store.acknowledge_alert(make_alert(), "user_supervisor1")

        stats = dashboard_stats(store, operator_id="user_operator1", now=NOW)

        assert stats.active_downtime == 2
        assert stats.pending_maintenance == 1
        assert stats.unacknowledged_alerts == 1

    def test_today_downtime_minutes(  # type: ignore[no-untyped-def]
        self, store, resolved_downtime, make_downtime
    ) -> None:
        """Only resolved events that started today count."""
        resolved_downtime(30, datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc))
        resolved_downtime(15, datetime(2025, 3, 10, 13, 0, tzinfo=timezone.utc))
        resolved_downtime(90, datetime(2025, 3, 9, 22, 0, tzinfo=timezone.utc))
        make_downtime()

        stats = dashboard_stats(store, now=NOW)

        assert stats.today_downtime_minutes == 45

    def test_today_minutes_per_operator(self, store, resolved_downtime) -> None:  # type: ignore[no-untyped-def]
        start = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
        resolved_downtime(30, start, operator_id="user_operator1")
        resolved_downtime(40, start, operator_id="user_operator2")

        stats = dashboard_stats(store, operator_id="user_operator2", now=NOW)

        assert stats.today_downtime_minutes == 40

    def test_today_follows_reference_timezone(self, store, resolved_downtime) -> None:  # type: ignore[no-untyped-def]
        """'Today' is the calendar day in the timezone of ``now``."""
        resolved_downtime(25, datetime(2025, 3, 10, 2, 0, tzinfo=timezone.utc))
        new_york = timezone(timedelta(hours=-5))

        stats = dashboard_stats(store, now=NOW.astimezone(new_york))

        assert stats.today_downtime_minutes == 0


class TestSummaryReport:
    """Tests for summary_report()."""

    def test_empty_store(self, store) -> None:  # type: ignore[no-untyped-def]
        report = summary_report(store, ReportPeriod.WEEK, now=NOW)

        assert report.downtime_events == 0
        assert report.avg_downtime_minutes == 0
        assert report.maintenance_completion_rate == 0.0
        assert report.alert_acknowledgment_rate == 0.0
        assert report.top_reasons == []

    def test_figures(  # type: ignore[no-untyped-def]
        self, store, resolved_downtime, make_downtime, make_task, make_alert, complete_task
    ) -> None:
        start = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)
        resolved_downtime(30, start, reason="Mechanical Failure")
        resolved_downtime(60, start, reason="Mechanical Failure")
        make_downtime(reason="Other")
        complete_task(make_task())
        make_task()
        alert_ids = [make_alert() for _ in range(4)]
        store.acknowledge_alert(alert_ids[0], "user_supervisor1")

        report = summary_report(store, "today", now=NOW)

        assert report.period == ReportPeriod.TODAY
        assert report.downtime_events == 3
        assert report.downtime_minutes == 90
        assert report.avg_downtime_minutes == 45
        assert report.maintenance_tasks == 2
        assert report.completed_maintenance == 1
        assert report.maintenance_completion_rate == 50.0
        assert report.alerts == 4
        assert report.acknowledged_alerts == 1
        assert report.alert_acknowledgment_rate == 25.0
        assert report.top_reasons == [("Mechanical Failure", 2), ("Other", 1)]

    def test_period_filters_by_creation_time(self, store, clock, make_downtime) -> None:  # type: ignore[no-untyped-def]
        clock.now = datetime(2025, 2, 1, 12, 0, tzinfo=timezone.utc)
        make_downtime()
        clock.now = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)
        make_downtime()
        clock.now = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
        make_downtime()

        assert summary_report(store, ReportPeriod.TODAY, now=NOW).downtime_events == 1
        assert summary_report(store, ReportPeriod.WEEK, now=NOW).downtime_events == 2
        assert summary_report(store, ReportPeriod.MONTH, now=NOW).downtime_events == 2

    def test_top_reasons_limited_to_five(self, store, make_downtime) -> None:  # type: ignore[no-untyped-def]
        reasons = ["A", "B", "B", "C", "D", "E", "F", "F", "F"]
        for reason in reasons:
            make_downtime(reason=reason)

        top = summary_report(store, now=NOW).top_reasons

        assert len(top) == 5
        assert top[0] == ("F", 3)
        assert top[1] == ("B", 2)

    def test_to_dict(self, store, make_downtime) -> None:  # type: ignore[no-untyped-def]
        make_downtime(reason="Quality Issue")

        data = summary_report(store, ReportPeriod.TODAY, now=NOW).to_dict()

        assert data["period"] == "today"
        assert data["since"] == "2025-03-10T00:00:00+00:00"
        assert data["top_reasons"] == [{"reason": "Quality Issue", "count": 1}]
        assert data["downtime_events"] == 1
