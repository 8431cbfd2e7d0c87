#!/usr/bin/env python3
"""
TaskFlow - Command Line Interface
Urgency status, deadlines, weekly timesheets and the running work timer
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from taskflow.core import Config, ManualClock, SQLiteDatabase, SystemClock, ThreadScheduler, parse_instant
from taskflow.core.clock import Clock
from taskflow.core.models import TimeEntry
from taskflow.dashboard import BucketAggregator, compute_due_date_summary, sort_by_due_date
from taskflow.dashboard.formatter import DashboardFormatter
from taskflow.dashboard.status import WEEKDAYS
from taskflow.schemas import SnapshotFile, load_snapshot
from taskflow.timetracking import (
    ActiveTimerSession,
    JsonFileTimerStore,
    SQLiteTimerStore,
    TimerStore,
    TimesheetAggregator,
    parse_iso_week,
)

logger = logging.getLogger("taskflow.cli")

# Initialize CLI app and console
app = typer.Typer(help="TaskFlow - due dates, timesheets and the work timer")
timer_app = typer.Typer(help="Running work timer")
app.add_typer(timer_app, name="timer")

console = Console()

# Set by the app callback on every invocation
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or initialize the Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_clock(now: Optional[str] = None) -> Clock:
    """
    Clock in the configured zone, optionally pinned.

    Args:
        now: ISO-8601 instant to pin the clock to (for reproducible output)
    """
    config = get_config()
    zone = config.get_timezone()
    if now is None:
        return SystemClock(zone)

    pinned = parse_instant(now, zone)
    if pinned is None:
        console.print(f"[red]Could not parse --now: {now}[/red]")
        raise typer.Exit(1)
    return ManualClock(pinned.astimezone(zone))


def get_week_starts_on() -> int:
    name = str(get_config().get("first_day_of_week", default="monday")).lower()
    return WEEKDAYS.get(name, 0)


def get_timer_store() -> TimerStore:
    """Timer store selected by the ``timer_backend`` setting."""
    config = get_config()
    backend = config.get("timer_backend", default="sqlite")
    if backend == "json":
        return JsonFileTimerStore(config.get_timer_state_path())
    if backend == "sqlite":
        return SQLiteTimerStore(SQLiteDatabase(config.get_database_path(), create=True))
    console.print(f"[red]Unknown timer_backend '{backend}' (expected 'sqlite' or 'json')[/red]")
    raise typer.Exit(1)


def read_snapshot(path: Path) -> SnapshotFile:
    """Load and validate a snapshot JSON file, exiting with a message on failure."""
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except FileNotFoundError:
        console.print(f"[red]Snapshot not found: {path}[/red]")
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        console.print(f"[red]Snapshot is not valid JSON: {e}[/red]")
        raise typer.Exit(1)

    try:
        return load_snapshot(data)
    except ValidationError as e:
        console.print(f"[red]Invalid snapshot {path}:[/red]\n{e}")
        raise typer.Exit(1)


def append_entry(path: Path, entry: TimeEntry) -> None:
    """Append a closed entry to a snapshot file's timeEntries, creating it if needed."""
    data = {}
    if path.exists():
        with open(path, 'r') as f:
            data = json.load(f)
        if isinstance(data, list):
            data = {"tasks": data}

    data.setdefault("timeEntries", []).append({
        "id": entry.id,
        "projectId": entry.project_id,
        "taskId": entry.task_id,
        "startTime": entry.start_time.isoformat(),
        "endTime": entry.end_time.isoformat() if entry.end_time else None,
        "description": entry.description,
        "billable": entry.billable,
    })

    with open(path, 'w') as f:
        json.dump(data, f, indent=2)
    logger.info("Saved entry %s to %s", entry.id, path)


def build_session(clock: Clock, save_to: Optional[Path] = None) -> ActiveTimerSession:
    config = get_config()
    return ActiveTimerSession(
        store=get_timer_store(),
        clock=clock,
        scheduler=ThreadScheduler(),
        user_id=str(config.get("user_id", section="preferences", default="default")),
        tick_seconds=config.get("timer_tick_seconds", section="preferences", default=1),
        on_commit=(lambda entry: append_entry(save_to, entry)) if save_to else None,
    )


@app.callback()
def main(
    config_dir: Optional[Path] = typer.Option(
        None, "--config-dir", help="Configuration directory (default: $TASKFLOW_CONFIG_DIR or ~/.taskflow)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """TaskFlow temporal engine"""
    global _config
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    _config = Config(config_dir)


@app.command()
def status(
    snapshot: Path = typer.Argument(..., help="Snapshot JSON with tasks"),
    now: Optional[str] = typer.Option(None, "--now", help="Evaluate at this ISO-8601 instant"),
):
    """
    Show urgency status and relative due label for every task

    Example:
      taskflow status tasks.json
    """
    data = read_snapshot(snapshot)
    clock = get_clock(now)
    current = clock.now()

    tasks = sort_by_due_date(data.task_models(clock.tzinfo), "overdue_first", current)
    if data.due_date_summary is not None:
        summary = data.due_date_summary.to_model()
    else:
        days = get_config().get("due_soon_days", section="preferences", default=3)
        summary = compute_due_date_summary(tasks, current, days)

    formatter = DashboardFormatter(console, get_config().get("time_format", default="%H:%M"))
    formatter.render_status(tasks, current, summary)


@app.command()
def deadlines(
    snapshot: Path = typer.Argument(..., help="Snapshot JSON with tasks"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Tasks shown per bucket"),
    now: Optional[str] = typer.Option(None, "--now", help="Evaluate at this ISO-8601 instant"),
):
    """
    Show upcoming deadlines grouped by due date

    Example:
      taskflow deadlines tasks.json --limit 3
    """
    data = read_snapshot(snapshot)
    clock = get_clock(now)
    if limit is None:
        limit = get_config().get("upcoming_deadlines_limit", section="preferences", default=5)
    if limit < 1:
        console.print("[red]--limit must be at least 1[/red]")
        raise typer.Exit(1)

    groups = BucketAggregator(clock, get_week_starts_on()).group(data.task_models(clock.tzinfo))
    formatter = DashboardFormatter(console, get_config().get("time_format", default="%H:%M"))
    formatter.render_deadlines(groups, clock.now(), limit)

    counts = formatter.summary_counts(groups)
    if counts:
        console.print("[dim]" + " • ".join(f"{name}: {n}" for name, n in counts.items()) + "[/dim]")


@app.command()
def timesheet(
    snapshot: Path = typer.Argument(..., help="Snapshot JSON with timeEntries"),
    week_offset: int = typer.Option(0, "--week-offset", "-o", help="Weeks from the current one (-1 = last week)"),
    week: Optional[str] = typer.Option(None, "--week", "-w", help="ISO week, e.g. 2025-W08"),
    now: Optional[str] = typer.Option(None, "--now", help="Evaluate at this ISO-8601 instant"),
):
    """
    Show the weekly timesheet

    Examples:
      taskflow timesheet entries.json
      taskflow timesheet entries.json --week-offset -1
      taskflow timesheet entries.json --week 2025-W08
    """
    if week is not None and week_offset != 0:
        console.print("[red]Use either --week or --week-offset, not both[/red]")
        raise typer.Exit(1)

    data = read_snapshot(snapshot)
    clock = get_clock(now)
    aggregator = TimesheetAggregator(clock, clock.tzinfo, get_week_starts_on())
    entries = data.time_entry_models(clock.tzinfo)

    if week is not None:
        try:
            week_start = parse_iso_week(week)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        bucket = aggregator.build_week(entries, week_start)
    else:
        bucket = aggregator.build_offset_week(entries, week_offset)

    DashboardFormatter(console).render_timesheet(bucket)


@timer_app.command("start")
def timer_start(
    project: str = typer.Argument(..., help="Project id"),
    description: str = typer.Option("", "--description", "-d", help="What you are working on"),
    billable: bool = typer.Option(False, "--billable", "-b", help="Mark the entry billable"),
    entry_id: Optional[str] = typer.Option(None, "--entry-id", help="Entry id (generated if omitted)"),
    save_to: Optional[Path] = typer.Option(None, "--save-to", help="Append a closed previous entry to this snapshot"),
):
    """
    Start the timer (a running timer is closed first)

    Example:
      taskflow timer start 12 -d "Code review" --billable
    """
    clock = get_clock()
    session = build_session(clock, save_to)
    try:
        session.resume_from_storage()
        closed = session.start_new(project, description, billable, entry_id)
    except OSError as e:
        console.print(f"[red]Error starting timer: {e}[/red]")
        raise typer.Exit(1)
    finally:
        session.close()

    if closed is not None:
        console.print(
            f"[yellow]Stopped previous timer {closed.id}[/yellow] "
            f"[dim]({closed.duration_seconds()}s)[/dim]"
        )
    console.print(f"[green]✓[/green] Timer started for project {project}")


@timer_app.command("stop")
def timer_stop(
    save_to: Optional[Path] = typer.Option(None, "--save-to", help="Append the closed entry to this snapshot"),
):
    """
    Stop the running timer and print the closed entry

    Example:
      taskflow timer stop --save-to week.json
    """
    session = build_session(get_clock())
    try:
        session.resume_from_storage()
        closed = session.stop()
    finally:
        session.close()

    if closed is None:
        console.print("[dim]No timer running[/dim]")
        return

    if save_to is not None:
        append_entry(save_to, closed)
    console.print(
        f"[green]✓[/green] Stopped timer {closed.id}: "
        f"{closed.start_time:%H:%M} - {closed.end_time:%H:%M} "
        f"[dim]({closed.duration_seconds()}s)[/dim]"
    )


@timer_app.command("discard")
def timer_discard():
    """Drop the running timer without recording an entry"""
    session = build_session(get_clock())
    try:
        session.resume_from_storage()
        dropped = session.discard()
    finally:
        session.close()

    if dropped is None:
        console.print("[dim]No timer running[/dim]")
    else:
        console.print(f"[yellow]Discarded timer {dropped.entry_id}[/yellow]")


@timer_app.command("status")
def timer_status():
    """Show the running timer and its elapsed time"""
    session = build_session(get_clock())
    try:
        snapshot = session.resume_from_storage()
    finally:
        session.close()
    DashboardFormatter(console).render_timer(snapshot)


if __name__ == "__main__":
    app()
