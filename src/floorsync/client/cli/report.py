"""Reporting commands for floorsync CLI.

Commands:
- dashboard: Operator dashboard figures
- report: Downtime, maintenance and alert summary for a period
"""

from __future__ import annotations

import json

import click

from floorsync.client.cli.session import current_user, open_store
from floorsync.client.reports import ReportPeriod, dashboard_stats, summary_report


@click.command()
def dashboard() -> None:
    """Show the dashboard for the logged-in operator."""
    with open_store() as store:
        user = current_user(store)
        stats = dashboard_stats(store, operator_id=user.id)

    click.echo(f"Welcome, {user.name}")
    click.echo(f"  Active downtime:        {stats.active_downtime}")
    click.echo(f"  Pending maintenance:    {stats.pending_maintenance}")
    click.echo(f"  Unacknowledged alerts:  {stats.unacknowledged_alerts}")
    click.echo(f"  Downtime today:         {stats.today_downtime_minutes} min")


@click.command()
@click.option(
    "--period",
    "-p",
    type=click.Choice([p.value for p in ReportPeriod]),
    default=ReportPeriod.TODAY.value,
    show_default=True,
)
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
def report(period: str, as_json: bool) -> None:
    """Summarize downtime, maintenance and alerts for a period."""
    with open_store() as store:
        summary = summary_report(store, ReportPeriod(period))

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
        return

    click.echo(f"Report: {period} (since {summary.since:%Y-%m-%d})")
    click.echo("\nDowntime")
    click.echo(f"  Events:            {summary.downtime_events}")
    click.echo(f"  Total minutes:     {summary.downtime_minutes}")
    click.echo(f"  Average minutes:   {summary.avg_downtime_minutes}")
    click.echo("\nMaintenance")
    click.echo(f"  Tasks:             {summary.maintenance_tasks}")
    click.echo(f"  Completed:         {summary.completed_maintenance}")
    click.echo(f"  Completion rate:   {summary.maintenance_completion_rate:g}%")
    click.echo("\nAlerts")
    click.echo(f"  Raised:            {summary.alerts}")
    click.echo(f"  Acknowledged:      {summary.acknowledged_alerts}")
    click.echo(f"  Acknowledged rate: {summary.alert_acknowledgment_rate:g}%")

    if summary.top_reasons:
        click.echo("\nTop downtime reasons")
        for reason, count in summary.top_reasons:
            click.echo(f"  {reason:<20} {count}")
