"""
Due-date reminder eligibility and snooze times.

A periodic job asks ``should_send_reminder`` for each open task and reminder
kind; a reminder kind is sent at most once per task (tracked in
``Task.reminders_sent``) and never while the task is snoozed.
"""

from datetime import datetime, time, timedelta
from typing import List

from taskflow.core.models import Task
from taskflow.dashboard.status import coerce_due, normalize_now, start_of_week

REMINDER_KINDS = ("overdue", "due_24h", "due_1h", "due_today")

SNOOZE_OPTIONS = ("1h", "3h", "tomorrow", "next_week")


def should_send_reminder(task: Task, kind: str, now: datetime) -> bool:
    """
    Decide whether reminder ``kind`` is due for ``task``.

    Windows:
        overdue   - due date has passed
        due_24h   - due between 23h and 25h from now
        due_1h    - due between 45m and 75m from now
        due_today - due within today's calendar day
    """
    if kind not in REMINDER_KINDS:
        return False

    now = normalize_now(now)
    due = coerce_due(task.due_date, now)
    if due is None or task.is_done:
        return False
    if kind in task.reminders_sent:
        return False
    if task.snoozed_until is not None and task.snoozed_until > now:
        return False

    if kind == "overdue":
        return due < now
    if kind == "due_24h":
        return now + timedelta(hours=23) <= due <= now + timedelta(hours=25)
    if kind == "due_1h":
        return now + timedelta(minutes=45) <= due <= now + timedelta(minutes=75)
    # due_today
    return due.date() == now.date()


def pending_reminders(task: Task, now: datetime) -> List[str]:
    """All reminder kinds currently due for a task, in send order"""
    return [kind for kind in REMINDER_KINDS if should_send_reminder(task, kind, now)]


def snooze_until(option: str, now: datetime) -> datetime:
    """
    Instant a snoozed task wakes up again.

    "1h"/"3h" are relative; "tomorrow" is 09:00 the next day; "next_week"
    is 09:00 on the first day of next week. Unknown options snooze one hour.
    """
    now = normalize_now(now)
    nine = time(9, 0)

    if option == "3h":
        return now + timedelta(hours=3)
    if option == "tomorrow":
        return datetime.combine(now.date() + timedelta(days=1), nine, tzinfo=now.tzinfo)
    if option == "next_week":
        next_monday = start_of_week(now.date()) + timedelta(days=7)
        return datetime.combine(next_monday, nine, tzinfo=now.tzinfo)
    return now + timedelta(hours=1)
