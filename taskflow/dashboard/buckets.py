"""
Deadline bucketing for the dashboard.

Groups task snapshots into overdue / today / tomorrow / this week / later /
none. Backs both the summary counters and the "upcoming deadlines" panel.
The aggregator never truncates; slicing for display is the caller's job.
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional

from taskflow.core.clock import Clock
from taskflow.core.models import NotificationSummary, Task, UrgencyStatus
from taskflow.dashboard.status import (
    DUE_SOON_DAYS,
    classify_task,
    coerce_due,
    is_past,
    is_same_day,
    is_tomorrow,
    is_within_week,
    normalize_now,
)

BUCKET_ORDER = ("overdue", "today", "tomorrow", "this_week", "later", "none")


@dataclass
class DueDateGroups:
    """Tasks grouped by deadline relation to now"""
    overdue: List[Task] = field(default_factory=list)
    today: List[Task] = field(default_factory=list)
    tomorrow: List[Task] = field(default_factory=list)
    this_week: List[Task] = field(default_factory=list)
    later: List[Task] = field(default_factory=list)
    none: List[Task] = field(default_factory=list)

    def bucket(self, name: str) -> List[Task]:
        if name not in BUCKET_ORDER:
            raise KeyError(name)
        return getattr(self, name)

    def items(self):
        """(name, tasks) pairs in display order"""
        return [(name, self.bucket(name)) for name in BUCKET_ORDER]

    def counts(self) -> Dict[str, int]:
        return {name: len(tasks) for name, tasks in self.items()}

    def ids(self) -> Dict[str, List[Any]]:
        return {name: [t.id for t in tasks] for name, tasks in self.items()}

    def top(self, n: int) -> Dict[str, List[Task]]:
        """First ``n`` tasks of each bucket, for compact panels"""
        return {name: tasks[:n] for name, tasks in self.items()}

    def is_empty(self) -> bool:
        return not any(tasks for _, tasks in self.items())


def dedupe_tasks(*collections: Iterable[Task]) -> List[Task]:
    """
    Merge task collections, keeping the first occurrence of each id.

    Later duplicates are dropped as-is; fields are never merged.
    """
    seen_ids = set()
    merged = []
    for collection in collections:
        for task in collection:
            if task.id in seen_ids:
                continue
            seen_ids.add(task.id)
            merged.append(task)
    return merged


def group_tasks(tasks: Iterable[Task], now: datetime, week_starts_on: int = 0) -> DueDateGroups:
    """
    Group tasks by deadline.

    Done tasks are skipped, tasks without a usable due date go to ``none``,
    the rest use the same past/today/tomorrow/this-week predicates as the
    status classifier. Order within each bucket follows input order.
    """
    now = normalize_now(now)
    groups = DueDateGroups()

    for task in dedupe_tasks(tasks):
        if task.is_done:
            continue
        due = coerce_due(task.due_date, now)
        if due is None:
            groups.none.append(task)
        elif is_past(due, now):
            groups.overdue.append(task)
        elif is_same_day(due, now):
            groups.today.append(task)
        elif is_tomorrow(due, now):
            groups.tomorrow.append(task)
        elif is_within_week(due, now, week_starts_on):
            groups.this_week.append(task)
        else:
            groups.later.append(task)

    return groups


def sort_by_due_date(
    tasks: Iterable[Task],
    direction: str = "asc",
    now: Optional[datetime] = None
) -> List[Task]:
    """
    Sort tasks by due date; tasks without one always sort last.

    Args:
        tasks: Tasks to sort (not modified)
        direction: "asc", "desc" or "overdue_first" (overdue tasks first,
            then ascending)
        now: Required for "overdue_first"
    """
    if direction not in ("asc", "desc", "overdue_first"):
        raise ValueError(f"Unknown sort direction: {direction}")
    if direction == "overdue_first" and now is None:
        raise ValueError("overdue_first sorting needs 'now'")

    tasks = list(tasks)
    dated = [t for t in tasks if t.due_date is not None]
    undated = [t for t in tasks if t.due_date is None]

    if direction == "desc":
        dated.sort(key=lambda t: t.due_date, reverse=True)
    elif direction == "overdue_first":
        dated.sort(key=lambda t: (classify_task(t, now) != UrgencyStatus.OVERDUE, t.due_date))
    else:
        dated.sort(key=lambda t: t.due_date)

    return dated + undated


def compute_due_date_summary(
    tasks: Iterable[Task],
    now: datetime,
    due_soon_days: int = DUE_SOON_DAYS
) -> NotificationSummary:
    """
    Server-side due-date summary for one user's visible tasks.

    Counted independently of ``group_tasks``: overdue is anything due before
    now; due today is anything within today's calendar day (so a task that
    passed earlier today counts in both); due soon is after today up to
    ``now + due_soon_days``; upcoming is beyond that.
    """
    now = normalize_now(now)
    day_start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    day_end = datetime.combine(now.date(), time.max, tzinfo=now.tzinfo)
    soon_end = now + timedelta(days=due_soon_days)

    overdue = due_today = due_soon = upcoming = 0
    for task in dedupe_tasks(tasks):
        if task.is_done:
            continue
        due = coerce_due(task.due_date, now)
        if due is None:
            continue
        if due < now:
            overdue += 1
        if day_start <= due <= day_end:
            due_today += 1
        if day_end < due <= soon_end:
            due_soon += 1
        if due > soon_end:
            upcoming += 1

    return NotificationSummary(
        overdue=overdue,
        due_today=due_today,
        due_soon=due_soon,
        upcoming=upcoming,
    )


class BucketAggregator:
    """
    Clock-bound grouping of task snapshots.

    Usage:
        aggregator = BucketAggregator(clock)
        groups = aggregator.group(tasks)
        panel = groups.top(5)
    """

    def __init__(self, clock: Clock, week_starts_on: int = 0):
        self.clock = clock
        self.week_starts_on = week_starts_on

    def group(self, tasks: Iterable[Task], now: Optional[datetime] = None) -> DueDateGroups:
        return group_tasks(tasks, now or self.clock.now(), self.week_starts_on)

    def group_sources(self, *collections: Iterable[Task], now: Optional[datetime] = None) -> DueDateGroups:
        """Group several source collections at once (first occurrence of an id wins)"""
        return self.group(dedupe_tasks(*collections), now)
