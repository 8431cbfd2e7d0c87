"""
Unit tests for the formatter module.
Tests Rich rendering of deadlines, status, timesheets and the timer bar.
"""

import io
import pytest
from datetime import date, datetime, timedelta, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from rich.console import Console
from rich.panel import Panel

from taskflow.core.models import ActiveTimerState, NotificationSummary, Task, TimeEntry
from taskflow.dashboard.buckets import group_tasks
from taskflow.dashboard.formatter import DashboardFormatter
from taskflow.timetracking.timer import TimerSnapshot
from taskflow.timetracking.timesheet import build_week

NOW = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def formatter(output):
    console = Console(file=output, width=120, color_system=None)
    return DashboardFormatter(console)


class TestDeadlinePanel:
    """Tests for the deadlines panel."""

    def test_empty(self, formatter, output):
        formatter.render_deadlines(group_tasks([], NOW), NOW)
        assert "No upcoming deadlines" in output.getvalue()

    def test_sections_and_labels(self, formatter, output):
        tasks = [
            Task(id=1, title="File taxes", due_date=NOW - timedelta(days=2)),
            Task(id=2, title="Call Sam", due_date=NOW + timedelta(days=1), has_due_time=True),
        ]
        formatter.render_deadlines(group_tasks(tasks, NOW), NOW)
        text = output.getvalue()
        assert "Overdue (1)" in text
        assert "Tomorrow (1)" in text
        assert "Overdue by 2 days" in text
        assert "Due tomorrow at 12:00" in text

    def test_limit_adds_more_row(self, formatter, output):
        tasks = [Task(id=i, title=f"T{i}", due_date=NOW - timedelta(hours=1)) for i in range(8)]
        formatter.render_deadlines(group_tasks(tasks, NOW), NOW, limit=3)
        assert "+ 5 more..." in output.getvalue()

    def test_returns_panel(self, formatter):
        assert isinstance(formatter.format_deadline_panel(group_tasks([], NOW), NOW), Panel)


class TestStatusTable:
    """Tests for the status table and summary bar."""

    def test_rows(self, formatter, output):
        tasks = [Task(id=9, title="Ship release", due_date=NOW + timedelta(minutes=20))]
        formatter.render_status(tasks, NOW, NotificationSummary(overdue=2, due_today=1))
        text = output.getvalue()
        assert "Ship release" in text
        assert "due_today" in text
        assert "Due in 20m" in text
        assert "2 overdue" in text

    def test_summary_bar_hides_zero_overdue(self, formatter):
        bar = formatter.format_summary_bar(NotificationSummary(due_today=3))
        assert "overdue" not in bar
        assert "3 due today" in bar


class TestTimesheetPanel:
    """Tests for the weekly timesheet panel."""

    def test_totals(self, formatter, output):
        entries = [
            TimeEntry(id=1, project_id="p", billable=True,
                      start_time=datetime(2025, 3, 3, 9, tzinfo=timezone.utc),
                      end_time=datetime(2025, 3, 3, 11, 30, tzinfo=timezone.utc)),
        ]
        formatter.render_timesheet(build_week(entries, date(2025, 3, 3), NOW))
        text = output.getvalue()
        assert "Mar 3 - Mar 9, 2025" in text
        assert "2h 30m" in text
        assert "Total" in text


class TestTimerBar:
    """Tests for the running-timer bar."""

    def test_idle(self, formatter):
        assert "No timer running" in formatter.format_timer_bar(TimerSnapshot(running=False))

    def test_running(self, formatter):
        state = ActiveTimerState(entry_id="e1", project_id="42", start_time=NOW,
                                 description="Code review", billable=True)
        bar = formatter.format_timer_bar(TimerSnapshot(running=True, state=state, elapsed_seconds=125))
        assert "02:05" in bar
        assert "project 42" in bar
        assert "Code review" in bar
        assert "billable" in bar
