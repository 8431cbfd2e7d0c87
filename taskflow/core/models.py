"""
Data models for the TaskFlow temporal engine
Defines immutable snapshots of tasks, time entries, notifications and the
persisted active-timer record.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Optional, Dict, Any, Tuple

from dateutil import parser as date_parser


class TaskStatus:
    """Workflow states a task can be in"""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"

    ALL = (TODO, IN_PROGRESS, REVIEW, DONE)


class UrgencyStatus(str, Enum):
    """Classification of a task against the current instant"""
    COMPLETED = "completed"
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    DUE_SOON = "due_soon"
    ON_TRACK = "on_track"
    NONE = "none"


class CorruptTimerRecord(ValueError):
    """Raised when a persisted active-timer record cannot be loaded"""


def parse_instant(value: Any, default_tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Parse an instant from a collaborator payload.

    Accepts ISO-8601 strings, datetimes and dates. Naive values are placed
    in ``default_tz`` (UTC when not given). Anything unparseable yields None.

    Args:
        value: Raw value (str, datetime, date or None)
        default_tz: Zone for values without an offset

    Returns:
        Timezone-aware datetime or None
    """
    if value is None or value == "":
        return None

    zone = default_tz or timezone.utc

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            parsed = date_parser.isoparse(value.strip())
        except (ValueError, OverflowError):
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return parsed


@dataclass(frozen=True)
class Task:
    """Read-only task snapshot owned by the backend task store"""
    id: Any
    due_date: Optional[datetime] = None
    has_due_time: bool = False
    status: str = TaskStatus.TODO
    title: str = ""
    project_id: Optional[Any] = None
    assignee: Optional[str] = None
    reminders_sent: Tuple[str, ...] = ()
    snoozed_until: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_tz: Optional[tzinfo] = None) -> 'Task':
        """Create Task from a snapshot dictionary (camelCase or snake_case keys)"""
        due_raw = _pick(data, 'dueDate', 'due_date')
        assignee = data.get('assignee')
        if isinstance(assignee, dict):
            assignee = assignee.get('name') or assignee.get('id')
        return cls(
            id=data.get('id'),
            due_date=parse_instant(due_raw, default_tz),
            has_due_time=bool(_pick(data, 'hasDueTime', 'has_due_time', default=False)),
            status=data.get('status', TaskStatus.TODO),
            title=data.get('title', ''),
            project_id=_pick(data, 'projectId', 'project_id'),
            assignee=assignee,
            reminders_sent=tuple(_pick(data, 'remindersSent', 'reminders_sent', default=()) or ()),
            snoozed_until=parse_instant(_pick(data, 'snoozedUntil', 'snoozed_until'), default_tz),
        )

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE


@dataclass(frozen=True)
class TimeEntry:
    """
    Time entry snapshot.

    An entry without ``end_time`` is the currently running one; its
    duration is always measured against the instant passed in.
    """
    id: Any
    project_id: Any
    start_time: datetime
    end_time: Optional[datetime] = None
    task_id: Optional[Any] = None
    description: str = ""
    billable: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_tz: Optional[tzinfo] = None) -> Optional['TimeEntry']:
        """Create TimeEntry from a snapshot dictionary; None if startTime is unusable"""
        start = parse_instant(_pick(data, 'startTime', 'start_time'), default_tz)
        if start is None:
            return None
        return cls(
            id=data.get('id'),
            project_id=_pick(data, 'projectId', 'project_id'),
            task_id=_pick(data, 'taskId', 'task_id'),
            start_time=start,
            end_time=parse_instant(_pick(data, 'endTime', 'end_time'), default_tz),
            description=data.get('description') or '',
            billable=bool(data.get('billable', False)),
        )

    @property
    def is_running(self) -> bool:
        return self.end_time is None

    def duration_seconds(self, now: Optional[datetime] = None) -> int:
        """
        Whole seconds between start and end.

        Raises:
            ValueError: if the entry is running and no ``now`` is given
        """
        if self.end_time is not None:
            # Closed entries round to the nearest second.
            seconds = (self.end_time - self.start_time).total_seconds()
            return max(0, int(seconds + 0.5))
        if now is None:
            raise ValueError(f"Entry {self.id} is running; duration needs the current instant")
        return elapsed_seconds(self.start_time, now)


def elapsed_seconds(start: datetime, now: datetime) -> int:
    """Whole seconds elapsed since ``start``, never negative"""
    return max(0, int((now - start) // timedelta(seconds=1)))


@dataclass(frozen=True)
class Notification:
    """Notification delivered by push or pulled on resync"""
    id: Any
    type: str = ""
    message: str = ""
    created_at: Optional[datetime] = None
    read: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Notification':
        return cls(
            id=data.get('id'),
            type=data.get('type', ''),
            message=data.get('message', ''),
            created_at=parse_instant(_pick(data, 'createdAt', 'created_at')),
            read=bool(data.get('read', False)),
        )

    def mark_read(self) -> 'Notification':
        return self if self.read else replace(self, read=True)


@dataclass(frozen=True)
class NotificationSummary:
    """Server-computed due-date counts shown on the dashboard"""
    overdue: int = 0
    due_today: int = 0
    due_soon: int = 0
    upcoming: int = 0

    def __post_init__(self):
        for name in ('overdue', 'due_today', 'due_soon', 'upcoming'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NotificationSummary':
        return cls(
            overdue=int(data.get('overdue', 0) or 0),
            due_today=int(_pick(data, 'dueToday', 'due_today', default=0) or 0),
            due_soon=int(_pick(data, 'dueSoon', 'due_soon', default=0) or 0),
            upcoming=int(data.get('upcoming', 0) or 0),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "overdue": self.overdue,
            "dueToday": self.due_today,
            "dueSoon": self.due_soon,
            "upcoming": self.upcoming,
        }


@dataclass(frozen=True)
class ActiveTimerState:
    """
    The single running timer of a user.

    Existence of this record is "running"; absence is "idle". It is the
    only thing persisted for the timer; elapsed time is always derived
    from ``start_time``.
    """
    entry_id: Any
    project_id: Any
    start_time: datetime
    description: str = ""
    billable: bool = False

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the persisted record layout"""
        return {
            "entryId": self.entry_id,
            "projectId": self.project_id,
            "description": self.description,
            "billable": self.billable,
            "startTime": self.start_time.isoformat(),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'ActiveTimerState':
        """
        Load a persisted record.

        Raises:
            CorruptTimerRecord: if the record is not a mapping or its
                startTime is missing or unparseable
        """
        if not isinstance(record, dict):
            raise CorruptTimerRecord(f"timer record must be a mapping, got {type(record).__name__}")
        raw_start = record.get('startTime')
        if not isinstance(raw_start, str):
            raise CorruptTimerRecord("timer record has no startTime")
        start = parse_instant(raw_start)
        if start is None:
            raise CorruptTimerRecord(f"timer record has unparseable startTime: {raw_start!r}")
        return cls(
            entry_id=record.get('entryId'),
            project_id=record.get('projectId'),
            start_time=start,
            description=record.get('description') or '',
            billable=bool(record.get('billable', False)),
        )

    def to_time_entry(self, end_time: datetime, task_id: Optional[Any] = None) -> TimeEntry:
        """Close this timer into a finished TimeEntry"""
        return TimeEntry(
            id=self.entry_id,
            project_id=self.project_id,
            task_id=task_id,
            start_time=self.start_time,
            end_time=max(end_time, self.start_time),
            description=self.description,
            billable=self.billable,
        )


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key among camelCase/snake_case spellings"""
    for key in keys:
        if key in data:
            return data[key]
    return default
