"""
Rich formatter module for the TaskFlow dashboard.

Handles all Rich-based CLI formatting: deadline panels, the status table,
the weekly timesheet, the running-timer bar and the due-date summary.
"""

from datetime import datetime
from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich import box

from taskflow.core.models import NotificationSummary, Task, UrgencyStatus
from taskflow.dashboard.buckets import DueDateGroups
from taskflow.dashboard.labels import format_duration, format_elapsed, relative_label
from taskflow.dashboard.status import classify_task
from taskflow.timetracking.timer import TimerSnapshot
from taskflow.timetracking.timesheet import WeekBucket


# Status icons for tasks
STATUS_ICONS = {
    "todo": "[dim]○[/dim]",
    "in_progress": "[yellow]◐[/yellow]",
    "review": "[blue]◎[/blue]",
    "done": "[green]✓[/green]",
}

# Urgency colors
URGENCY_STYLES = {
    UrgencyStatus.OVERDUE: "red bold",
    UrgencyStatus.DUE_TODAY: "yellow bold",
    UrgencyStatus.DUE_SOON: "yellow",
    UrgencyStatus.ON_TRACK: "white",
    UrgencyStatus.COMPLETED: "green",
    UrgencyStatus.NONE: "dim",
}

BUCKET_TITLES = {
    "overdue": ("Overdue", "red"),
    "today": ("Today", "yellow"),
    "tomorrow": ("Tomorrow", "yellow"),
    "this_week": ("This Week", "white"),
    "later": ("Later", "dim"),
    "none": ("No Due Date", "dim"),
}


def _truncate(text: str, width: int) -> str:
    return text[:width] + "..." if len(text) > width else text


class DashboardFormatter:
    """
    Rich-based formatter for the TaskFlow dashboard.

    Every format_* method returns a renderable so it can be tested without
    a terminal; the render_* methods print to the console.
    """

    def __init__(self, console: Optional[Console] = None, time_format: str = "%H:%M"):
        """
        Initialize formatter.

        Args:
            console: Rich Console instance (creates default if not provided)
            time_format: strftime format for times of day
        """
        self.console = console or Console()
        self.time_format = time_format

    def _format_label(self, task: Task, now: datetime) -> str:
        """Relative due label colored by urgency."""
        if task.due_date is None:
            return "[dim]---[/dim]"
        style = URGENCY_STYLES[classify_task(task, now)]
        label = relative_label(task.due_date, now, task.has_due_time, self.time_format)
        return f"[{style}]{label}[/{style}]"

    def format_deadline_panel(
        self,
        groups: DueDateGroups,
        now: datetime,
        limit: int = 5,
    ) -> Panel:
        """
        Create the upcoming deadlines panel.

        Args:
            groups: Grouped tasks
            now: Instant the labels are computed against
            limit: Maximum tasks shown per bucket

        Returns:
            Rich Panel with one section per non-empty bucket
        """
        if groups.is_empty():
            return Panel(
                Text("No upcoming deadlines", style="dim", justify="center"),
                title="[bold]Deadlines[/bold]",
                border_style="green",
                padding=(0, 1),
            )

        table = Table(show_header=False, box=None, padding=(0, 1), expand=True)
        table.add_column("Icon", width=2)
        table.add_column("ID", width=6)
        table.add_column("Title", ratio=1)
        table.add_column("Due", width=24, justify="right")

        for name, tasks in groups.items():
            if not tasks:
                continue
            title, color = BUCKET_TITLES[name]
            table.add_row("", "", f"[{color} bold]{title} ({len(tasks)})[/{color} bold]", "")
            for task in tasks[:limit]:
                table.add_row(
                    STATUS_ICONS.get(task.status, "○"),
                    f"[dim]#{task.id}[/dim]",
                    _truncate(task.title, 40),
                    self._format_label(task, now),
                )
            if len(tasks) > limit:
                table.add_row("", "", f"[dim]+ {len(tasks) - limit} more...[/dim]", "")

        border = "red" if groups.overdue else "blue"
        return Panel(table, title="[bold]Deadlines[/bold]", border_style=border, padding=(0, 1))

    def format_status_table(self, tasks: List[Task], now: datetime) -> Table:
        """
        Create a table of tasks with their urgency and relative label.

        Args:
            tasks: Tasks to show, in display order
            now: Current instant

        Returns:
            Rich Table
        """
        table = Table(box=box.SIMPLE, expand=True)
        table.add_column("ID", style="dim", width=6)
        table.add_column("Title", ratio=1)
        table.add_column("Status", width=10)
        table.add_column("Urgency", width=10)
        table.add_column("Due", width=24, justify="right")

        for task in tasks:
            urgency = classify_task(task, now)
            style = URGENCY_STYLES[urgency]
            table.add_row(
                f"#{task.id}",
                _truncate(task.title, 40),
                f"{STATUS_ICONS.get(task.status, '○')} {task.status}",
                f"[{style}]{urgency.value}[/{style}]",
                self._format_label(task, now),
            )
        return table

    def format_timesheet(self, week: WeekBucket) -> Panel:
        """
        Create the weekly timesheet panel.

        Args:
            week: Aggregated week

        Returns:
            Rich Panel with one row per day and a totals row
        """
        table = Table(box=box.SIMPLE_HEAD, expand=True)
        table.add_column("Day", width=12)
        table.add_column("Entries", justify="right", width=8)
        table.add_column("Billable", justify="right", width=10)
        table.add_column("Total", justify="right", width=10)

        for day in week.days:
            running = any(e.is_running for e in day.entries)
            total = format_duration(day.total_seconds)
            table.add_row(
                f"{day.date:%a %b} {day.date.day}",
                str(len(day.entries)) if day.entries else "[dim]-[/dim]",
                format_duration(day.billable_seconds),
                f"[green]{total} ●[/green]" if running else total,
            )

        table.add_row(
            "[bold]Total[/bold]",
            str(sum(len(day.entries) for day in week.days)),
            f"[bold]{format_duration(week.billable_seconds)}[/bold]",
            f"[bold]{format_duration(week.total_seconds)}[/bold]",
        )

        return Panel(
            table,
            title=f"[bold]Timesheet {week.label}[/bold]",
            border_style="magenta",
            padding=(0, 1),
        )

    def format_timer_bar(self, snapshot: TimerSnapshot) -> str:
        """
        Create the running-timer status line.

        Args:
            snapshot: Timer snapshot

        Returns:
            Formatted status string
        """
        if not snapshot.running or snapshot.state is None:
            return "[dim]■ No timer running[/dim]"

        state = snapshot.state
        parts = [f"[green bold]● {format_elapsed(snapshot.elapsed_seconds)}[/green bold]"]
        parts.append(f"project {state.project_id}")
        if state.description:
            parts.append(_truncate(state.description, 40))
        if state.billable:
            parts.append("[cyan]$ billable[/cyan]")
        return " │ ".join(parts)

    def format_summary_bar(self, summary: NotificationSummary) -> str:
        """
        Create the due-date summary bar.

        Args:
            summary: Due-date counts

        Returns:
            Formatted summary string
        """
        parts = []

        if summary.overdue > 0:
            parts.append(f"[red]⚠ {summary.overdue} overdue[/red]")
        parts.append(f"[yellow]{summary.due_today} due today[/yellow]")
        parts.append(f"[white]{summary.due_soon} due soon[/white]")
        parts.append(f"[dim]{summary.upcoming} upcoming[/dim]")

        return " │ ".join(parts)

    def summary_counts(self, groups: DueDateGroups) -> Dict[str, int]:
        """Non-empty bucket counts, in display order"""
        return {name: count for name, count in groups.counts().items() if count}

    def render_deadlines(self, groups: DueDateGroups, now: datetime, limit: int = 5) -> None:
        self.console.print(self.format_deadline_panel(groups, now, limit))

    def render_status(
        self,
        tasks: List[Task],
        now: datetime,
        summary: Optional[NotificationSummary] = None,
    ) -> None:
        """
        Render the status table and, when given, the summary bar.

        Args:
            tasks: Tasks to show
            now: Current instant
            summary: Due-date counts for the footer
        """
        self.console.print(self.format_status_table(tasks, now))
        if summary is not None:
            self.console.print("─" * 60)
            self.console.print(self.format_summary_bar(summary), justify="center")
            self.console.print("─" * 60)

    def render_timesheet(self, week: WeekBucket) -> None:
        self.console.print(self.format_timesheet(week))

    def render_timer(self, snapshot: TimerSnapshot) -> None:
        self.console.print(self.format_timer_bar(snapshot))
