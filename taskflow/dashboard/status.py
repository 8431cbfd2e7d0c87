"""
Due-date status classification.

Classifies a task against "now" into one of the UrgencyStatus values:

    completed  - task is done (always wins, whatever the due date)
    none       - no (parseable) due date
    overdue    - due date is before now
    due_today  - due later on the same calendar day as now
    due_soon   - due within [now, now + 3 days]
    on_track   - due later than that

Calendar-day questions ("same day", "tomorrow", "this week") are answered in
the zone of ``now``, and the same predicates back the deadline buckets so
the two views never disagree.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from taskflow.core.clock import Clock
from taskflow.core.models import Task, TaskStatus, UrgencyStatus, parse_instant
from taskflow.core.scheduler import CancelToken, Scheduler

logger = logging.getLogger("taskflow.status")

DUE_SOON_DAYS = 3

# Monday = 0 ... Sunday = 6, as in date.weekday()
WEEKDAYS = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
}


def normalize_now(now: datetime) -> datetime:
    """Treat a naive ``now`` as UTC"""
    return now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)


def coerce_due(due: Any, now: datetime) -> Optional[datetime]:
    """Parse ``due`` into an aware datetime in the zone of ``now`` (None if unusable)"""
    parsed = parse_instant(due, now.tzinfo)
    if parsed is None:
        return None
    return parsed.astimezone(now.tzinfo)


def local_date(instant: datetime, now: datetime) -> date:
    """Calendar date of ``instant`` as seen from the zone of ``now``"""
    return instant.astimezone(now.tzinfo).date()


def is_past(due: datetime, now: datetime) -> bool:
    return due < now


def is_same_day(due: datetime, now: datetime) -> bool:
    return local_date(due, now) == now.date()


def is_tomorrow(due: datetime, now: datetime) -> bool:
    return local_date(due, now) == now.date() + timedelta(days=1)


def start_of_week(day: date, week_starts_on: int = 0) -> date:
    """First date of the calendar week containing ``day``"""
    return day - timedelta(days=(day.weekday() - week_starts_on) % 7)


def end_of_week(now: datetime, week_starts_on: int = 0) -> datetime:
    """Last instant of the calendar week containing ``now``"""
    last_day = start_of_week(now.date(), week_starts_on) + timedelta(days=6)
    return datetime.combine(last_day, time.max, tzinfo=now.tzinfo)


def is_within_week(due: datetime, now: datetime, week_starts_on: int = 0) -> bool:
    return now <= due <= end_of_week(now, week_starts_on)


def is_due_soon(due: datetime, now: datetime, days: int = DUE_SOON_DAYS) -> bool:
    return now <= due <= now + timedelta(days=days)


def classify(
    due_date: Any,
    task_status: str,
    now: datetime,
    due_soon_days: int = DUE_SOON_DAYS
) -> UrgencyStatus:
    """
    Classify a due date against now.

    Pure function of its inputs; never raises on a bad ``due_date``.

    Args:
        due_date: datetime, date, ISO-8601 string or None
        task_status: Task workflow status
        now: Current instant
        due_soon_days: Width of the due-soon window

    Returns:
        UrgencyStatus
    """
    if task_status == TaskStatus.DONE:
        return UrgencyStatus.COMPLETED

    now = normalize_now(now)
    due = coerce_due(due_date, now)
    if due is None:
        return UrgencyStatus.NONE

    if is_past(due, now):
        return UrgencyStatus.OVERDUE
    if is_same_day(due, now):
        return UrgencyStatus.DUE_TODAY
    if is_due_soon(due, now, due_soon_days):
        return UrgencyStatus.DUE_SOON
    return UrgencyStatus.ON_TRACK


def classify_task(task: Task, now: datetime, due_soon_days: int = DUE_SOON_DAYS) -> UrgencyStatus:
    """Classify a Task snapshot"""
    return classify(task.due_date, task.status, now, due_soon_days)


@dataclass(frozen=True)
class TaskStatusView:
    """Display state of one task at one refresh"""
    task_id: Any
    status: UrgencyStatus
    label: str


class StatusRefresher:
    """
    Re-evaluates status and relative label for tracked tasks on a coarse tick.

    Usage:
        refresher = StatusRefresher(clock, scheduler, on_refresh=render)
        refresher.track(tasks)
        refresher.start()      # every 60 seconds
        ...
        refresher.close()      # teardown
    """

    def __init__(
        self,
        clock: Clock,
        scheduler: Scheduler,
        on_refresh: Optional[Callable[[Dict[Any, TaskStatusView]], None]] = None,
        period_seconds: float = 60,
        due_soon_days: int = DUE_SOON_DAYS,
        time_format: str = "%H:%M",
    ):
        self.clock = clock
        self.scheduler = scheduler
        self.on_refresh = on_refresh
        self.period_seconds = period_seconds
        self.due_soon_days = due_soon_days
        self.time_format = time_format
        self._tasks: List[Task] = []
        self._token: Optional[CancelToken] = None
        self.views: Dict[Any, TaskStatusView] = {}

    def track(self, tasks: Iterable[Task]) -> Dict[Any, TaskStatusView]:
        """Replace the tracked snapshot and refresh immediately"""
        self._tasks = list(tasks)
        return self.refresh()

    def refresh(self) -> Dict[Any, TaskStatusView]:
        # labels imports this module
        from taskflow.dashboard.labels import relative_label

        now = self.clock.now()
        views = {}
        for task in self._tasks:
            views[task.id] = TaskStatusView(
                task_id=task.id,
                status=classify_task(task, now, self.due_soon_days),
                label=relative_label(
                    task.due_date, now,
                    has_due_time=task.has_due_time,
                    time_format=self.time_format,
                ),
            )
        self.views = views
        logger.debug("Refreshed status for %d tasks", len(views))
        if self.on_refresh:
            self.on_refresh(views)
        return views

    @property
    def running(self) -> bool:
        return self._token is not None and not self._token.cancelled

    def start(self) -> None:
        if self.running:
            return
        self._token = self.scheduler.schedule_repeating(
            self.period_seconds, self.refresh, name="status-refresh"
        )

    def close(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
