"""
Human-readable labels for due dates and durations.

The relative label bands are independent of status classification: a task
can be "due_soon" while its label reads "Due tomorrow at 09:00".
"""

import math
from datetime import datetime, timedelta
from typing import Any, Optional

from taskflow.dashboard.status import coerce_due, is_same_day, is_tomorrow, normalize_now


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def _short_date(due: datetime, with_year: bool = False) -> str:
    text = f"{due:%b} {due.day}"
    return f"{text}, {due.year}" if with_year else text


def relative_label(
    due_date: Any,
    now: datetime,
    has_due_time: bool = True,
    time_format: str = "%H:%M"
) -> str:
    """
    Banded relative label for a due date.

    Past:   "Overdue by 45m", "Overdue by 5h", "Overdue by 1 day",
            "Overdue by 3 days", "Overdue by 2 weeks", "Overdue by 4 months"
    Future: "Due in 30m", "Due today at 17:00", "Due tomorrow at 09:00",
            "Due in 4 days", "Due Mar 5"

    Each band switches to the next coarser unit before the finer one leaves
    its range, so "Overdue by 90m" never appears.

    Args:
        due_date: Due date (datetime, date, ISO string or None)
        now: Current instant
        has_due_time: Whether the due date carries an explicit time of day
        time_format: strftime format for the time of day

    Returns:
        Label, or "" when there is no usable due date
    """
    now = normalize_now(now)
    due = coerce_due(due_date, now)
    if due is None:
        return ""

    if due < now:
        delta = now - due
        minutes = int(delta // timedelta(minutes=1))
        hours = int(delta // timedelta(hours=1))
        days = delta.days

        if minutes < 60:
            return f"Overdue by {minutes}m"
        if hours < 24:
            return f"Overdue by {hours}h"
        if days == 1:
            return "Overdue by 1 day"
        if days < 7:
            return f"Overdue by {days} days"
        if days < 30:
            return f"Overdue by {_plural(_round_half_up(days / 7), 'week')}"
        return f"Overdue by {_plural(_round_half_up(days / 30), 'month')}"

    delta = due - now
    minutes = int(delta // timedelta(minutes=1))
    days = delta.days
    at_time = f" at {due.strftime(time_format)}" if has_due_time else ""

    if minutes < 60:
        return f"Due in {minutes}m"
    if is_same_day(due, now):
        return f"Due today{at_time}"
    if is_tomorrow(due, now):
        return f"Due tomorrow{at_time}"
    if days < 7:
        return f"Due in {_plural(days, 'day')}"
    return f"Due {_short_date(due)}"


def format_due_date(
    due_date: Any,
    now: datetime,
    has_due_time: bool = False,
    time_format: str = "%H:%M"
) -> Optional[str]:
    """
    Absolute due-date text: "Today", "Tomorrow", "Mar 5", "Mar 5, 2027".

    A time suffix (" at 14:30") is only added when the due date carries an
    explicit time. The year is shown only when it differs from now's year.
    """
    now = normalize_now(now)
    due = coerce_due(due_date, now)
    if due is None:
        return None

    at_time = f" at {due.strftime(time_format)}" if has_due_time else ""

    if is_same_day(due, now):
        return f"Today{at_time}"
    if is_tomorrow(due, now):
        return f"Tomorrow{at_time}"
    return f"{_short_date(due, with_year=due.year != now.year)}{at_time}"


def format_elapsed(seconds: int) -> str:
    """Running-timer clock: "02:05" below an hour, "01:02:05" above"""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_duration(seconds: int) -> str:
    """Timesheet total: "0:00", "0h 45m", "7h 05m" """
    if not seconds:
        return "0:00"
    hours, rest = divmod(int(seconds), 3600)
    return f"{hours}h {rest // 60:02d}m"
