"""Dashboard figures and summary reports computed from local records.

This module provides:
- DashboardStats / dashboard_stats(): The at-a-glance operator dashboard
- SummaryReport / summary_report(): Per-period downtime, maintenance and
  alert figures for supervisors

Everything is computed from the local store, so reports work offline.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from floorsync.client.store import RecordFilter
from floorsync.core.types import DowntimeStatus, EntityKind, TaskStatus

if TYPE_CHECKING:
    from floorsync.client.store import RecordStore

TOP_REASONS = 5


class ReportPeriod(str, Enum):
    """Reporting window, counted back from the start of the current day."""

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"

    @property
    def days(self) -> int:
        return {"today": 0, "week": 7, "month": 30}[self.value]

    def start(self, now: datetime) -> datetime:
        """First instant included in the window."""
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return start_of_day - timedelta(days=self.days)


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _in_zone(value: datetime, now: datetime) -> datetime:
    """Express value in now's timezone so calendar days line up."""
    if now.tzinfo is None:
        return value.replace(tzinfo=None) if value.tzinfo is not None else value
    return value.astimezone(now.tzinfo)


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


@dataclass
class DashboardStats:
    """Operator dashboard figures."""

    active_downtime: int = 0
    pending_maintenance: int = 0
    unacknowledged_alerts: int = 0
    today_downtime_minutes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def dashboard_stats(
    store: RecordStore,
    operator_id: str | None = None,
    now: datetime | None = None,
) -> DashboardStats:
    """Compute the dashboard.

    Active downtime and open alerts are floor-wide. Pending maintenance and
    today's downtime minutes are limited to ``operator_id`` when given.

    Args:
        store: Record store to read from.
        operator_id: Operator whose tasks and downtime to count.
        now: Reference time; its timezone decides what "today" means.
    """
    now = now or _local_now()
    today = now.date()

    tasks = store.get(EntityKind.MAINTENANCE, RecordFilter(operator_id=operator_id))
    events = store.get(EntityKind.DOWNTIME, RecordFilter(operator_id=operator_id))

    today_minutes = sum(
        event.duration_minutes or 0
        for event in events
        if event.end_time is not None and _in_zone(event.start_time, now).date() == today
    )

    return DashboardStats(
        active_downtime=store.count(
            EntityKind.DOWNTIME, RecordFilter(status=DowntimeStatus.ACTIVE)
        ),
        pending_maintenance=sum(1 for t in tasks if t.status != TaskStatus.COMPLETED),
        unacknowledged_alerts=store.count(EntityKind.ALERT, RecordFilter(acknowledged=False)),
        today_downtime_minutes=today_minutes,
    )


@dataclass
class SummaryReport:
    """Floor figures over one reporting period.

    Attributes:
        period: The reporting window.
        since: Start of the window.
        downtime_events: Downtime events created in the window.
        downtime_minutes: Total minutes of the resolved ones.
        avg_downtime_minutes: downtime_minutes per resolved event.
        maintenance_tasks: Tasks created in the window.
        completed_maintenance: Of which completed.
        maintenance_completion_rate: Completed share, in percent.
        alerts: Alerts raised in the window.
        acknowledged_alerts: Of which acknowledged.
        alert_acknowledgment_rate: Acknowledged share, in percent.
        top_reasons: Most frequent downtime reasons with their counts.
    """

    period: ReportPeriod
    since: datetime
    downtime_events: int = 0
    downtime_minutes: int = 0
    avg_downtime_minutes: int = 0
    maintenance_tasks: int = 0
    completed_maintenance: int = 0
    maintenance_completion_rate: float = 0.0
    alerts: int = 0
    acknowledged_alerts: int = 0
    alert_acknowledgment_rate: float = 0.0
    top_reasons: list[tuple[str, int]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        data = asdict(self)
        data["period"] = self.period.value
        data["since"] = self.since.isoformat()
        data["top_reasons"] = [
            {"reason": reason, "count": count} for reason, count in self.top_reasons
        ]
        return data


def summary_report(
    store: RecordStore,
    period: ReportPeriod | str = ReportPeriod.TODAY,
    now: datetime | None = None,
) -> SummaryReport:
    """Summarize records created within a reporting period.

    Args:
        store: Record store to read from.
        period: Window to report on.
        now: Reference time; defaults to local now.
    """
    period = ReportPeriod(period)
    now = now or _local_now()
    since = period.start(now)

    def in_window(created_at: datetime) -> bool:
        return since <= _in_zone(created_at, now) <= now

    events = [e for e in store.get(EntityKind.DOWNTIME) if in_window(e.created_at)]
    tasks = [t for t in store.get(EntityKind.MAINTENANCE) if in_window(t.created_at)]
    alerts = [a for a in store.get(EntityKind.ALERT) if in_window(a.created_at)]

    resolved = [e for e in events if e.end_time is not None]
    downtime_minutes = sum(e.duration_minutes or 0 for e in resolved)
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    acknowledged = sum(1 for a in alerts if a.acknowledged)

    return SummaryReport(
        period=period,
        since=since,
        downtime_events=len(events),
        downtime_minutes=downtime_minutes,
        avg_downtime_minutes=round(downtime_minutes / len(resolved)) if resolved else 0,
        maintenance_tasks=len(tasks),
        completed_maintenance=completed,
        maintenance_completion_rate=_rate(completed, len(tasks)),
        alerts=len(alerts),
        acknowledged_alerts=acknowledged,
        alert_acknowledgment_rate=_rate(acknowledged, len(alerts)),
        top_reasons=Counter(e.reason for e in events).most_common(TOP_REASONS),
    )
