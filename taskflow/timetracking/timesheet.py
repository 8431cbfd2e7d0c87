"""
Weekly timesheet aggregation.

Buckets time entries into the seven calendar days of a Monday-start week.
An entry belongs to the day its start time falls on (in the timesheet's
zone), even when it runs past midnight, so no entry is ever counted twice.
All totals are integer seconds and every aggregate is the exact sum of the
day totals below it.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Tuple

from taskflow.core.clock import Clock
from taskflow.core.models import TimeEntry
from taskflow.dashboard.status import normalize_now, start_of_week

ISO_WEEK_RE = re.compile(r"^(\d{4})-W(\d{1,2})$")


@dataclass(frozen=True)
class DayBucket:
    """One calendar day of a timesheet"""
    date: date
    total_seconds: int
    billable_seconds: int
    entries: Tuple[TimeEntry, ...] = ()

    @property
    def non_billable_seconds(self) -> int:
        return self.total_seconds - self.billable_seconds


@dataclass(frozen=True)
class WeekBucket:
    """Seven consecutive DayBuckets starting on the week's first day"""
    week_start: date
    days: Tuple[DayBucket, ...]
    total_seconds: int
    billable_seconds: int
    project_seconds: Dict[Any, int] = field(default_factory=dict)
    generated_at: Optional[datetime] = None

    @property
    def week_end(self) -> date:
        return self.week_start + timedelta(days=6)

    @property
    def non_billable_seconds(self) -> int:
        return self.total_seconds - self.billable_seconds

    @property
    def label(self) -> str:
        """e.g. "Mar 3 - Mar 9, 2025" """
        start, end = self.week_start, self.week_end
        return f"{start:%b} {start.day} - {end:%b} {end.day}, {end.year}"

    @property
    def has_running_entry(self) -> bool:
        return any(e.is_running for day in self.days for e in day.entries)

    def day(self, which: date) -> Optional[DayBucket]:
        for bucket in self.days:
            if bucket.date == which:
                return bucket
        return None


@dataclass(frozen=True)
class TimeSummary:
    """Headline numbers for the time-tracking page"""
    today_seconds: int = 0
    week_seconds: int = 0
    billable_seconds: int = 0
    project_count: int = 0


def week_start_for_offset(offset: int, now: datetime, week_starts_on: int = 0) -> date:
    """First day of the week ``offset`` weeks away from the one containing now"""
    now = normalize_now(now)
    return start_of_week(now.date(), week_starts_on) + timedelta(weeks=offset)


def parse_iso_week(value: str) -> date:
    """
    Monday of an ISO week string such as "2025-W08".

    Raises:
        ValueError: if the string is not a valid ISO week
    """
    match = ISO_WEEK_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid ISO week: {value!r} (expected YYYY-Www)")
    year, week = int(match.group(1)), int(match.group(2))
    return date.fromisocalendar(year, week, 1)


def iso_week(day: date) -> str:
    """ISO week string for the week containing ``day``"""
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


def _unique_entries(entries: Iterable[TimeEntry]) -> List[TimeEntry]:
    seen = set()
    unique = []
    for entry in entries:
        if entry.id is not None:
            if entry.id in seen:
                continue
            seen.add(entry.id)
        unique.append(entry)
    return unique


def build_week(
    entries: Iterable[TimeEntry],
    week_start: date,
    now: datetime,
    zone: Optional[tzinfo] = None,
    week_starts_on: int = 0,
) -> WeekBucket:
    """
    Aggregate entries into a WeekBucket.

    Args:
        entries: Time entries (any range; out-of-week entries are ignored)
        week_start: Any date inside the wanted week; normalized to its
            first day
        now: Instant used for the duration of the running entry
        zone: Zone that defines calendar days (defaults to now's zone)
        week_starts_on: 0 for Monday

    Returns:
        WeekBucket whose total equals the sum of its day totals
    """
    now = normalize_now(now)
    zone = zone or now.tzinfo
    first_day = start_of_week(week_start, week_starts_on)
    dates = [first_day + timedelta(days=i) for i in range(7)]

    per_day: Dict[date, List[TimeEntry]] = {d: [] for d in dates}
    for entry in _unique_entries(entries):
        started_on = entry.start_time.astimezone(zone).date()
        if started_on in per_day:
            per_day[started_on].append(entry)

    days = []
    project_seconds: Dict[Any, int] = {}
    for d in dates:
        members = sorted(per_day[d], key=lambda e: e.start_time)
        total = 0
        billable = 0
        for entry in members:
            seconds = entry.duration_seconds(now)
            total += seconds
            if entry.billable:
                billable += seconds
            project_seconds[entry.project_id] = project_seconds.get(entry.project_id, 0) + seconds
        days.append(DayBucket(
            date=d,
            total_seconds=total,
            billable_seconds=billable,
            entries=tuple(members),
        ))

    return WeekBucket(
        week_start=first_day,
        days=tuple(days),
        total_seconds=sum(day.total_seconds for day in days),
        billable_seconds=sum(day.billable_seconds for day in days),
        project_seconds=project_seconds,
        generated_at=now,
    )


def summarize(
    entries: Iterable[TimeEntry],
    now: datetime,
    zone: Optional[tzinfo] = None,
    week_starts_on: int = 0,
) -> TimeSummary:
    """Today / this week / billable totals over closed entries only"""
    now = normalize_now(now)
    zone = zone or now.tzinfo
    today = now.astimezone(zone).date()
    first_day = start_of_week(today, week_starts_on)
    last_day = first_day + timedelta(days=6)

    today_seconds = week_seconds = billable_seconds = 0
    projects = set()
    for entry in _unique_entries(entries):
        if entry.is_running:
            continue
        started_on = entry.start_time.astimezone(zone).date()
        if not first_day <= started_on <= last_day:
            continue
        seconds = entry.duration_seconds()
        week_seconds += seconds
        projects.add(entry.project_id)
        if entry.billable:
            billable_seconds += seconds
        if started_on == today:
            today_seconds += seconds

    return TimeSummary(
        today_seconds=today_seconds,
        week_seconds=week_seconds,
        billable_seconds=billable_seconds,
        project_count=len(projects),
    )


class TimesheetAggregator:
    """
    Clock-bound timesheet builder.

    Week navigation is a pure function of an integer offset from the current
    week; nothing about it is persisted.
    """

    def __init__(self, clock: Clock, zone: Optional[tzinfo] = None, week_starts_on: int = 0):
        self.clock = clock
        self.zone = zone
        self.week_starts_on = week_starts_on

    def build_week(self, entries: Iterable[TimeEntry], week_start: Optional[date] = None) -> WeekBucket:
        now = self.clock.now()
        if week_start is None:
            week_start = week_start_for_offset(0, now.astimezone(self.zone or now.tzinfo), self.week_starts_on)
        return build_week(entries, week_start, now, self.zone, self.week_starts_on)

    def build_offset_week(self, entries: Iterable[TimeEntry], offset: int = 0) -> WeekBucket:
        now = self.clock.now()
        local_now = now.astimezone(self.zone or now.tzinfo)
        return self.build_week(entries, week_start_for_offset(offset, local_now, self.week_starts_on))

    def summarize(self, entries: Iterable[TimeEntry]) -> TimeSummary:
        return summarize(entries, self.clock.now(), self.zone, self.week_starts_on)
