"""
Pydantic schemas for collaborator payloads.

These schemas provide:
- Validation of task, time entry and notification snapshots
- camelCase field aliases matching the backend JSON
- Conversion into the immutable core models via ``to_model()``

Date fields stay raw strings: an unparseable date must not fail validation,
it becomes None during conversion and is treated as absent.
"""

from datetime import tzinfo
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field

from taskflow.core.models import (
    Notification,
    NotificationSummary,
    Task,
    TaskStatus,
    TimeEntry,
    parse_instant,
)

Id = Union[int, str]


class PayloadModel(BaseModel):
    """Base for collaborator payloads (accepts alias or field name)."""

    class Config:
        populate_by_name = True
        extra = "ignore"


# =============================================================================
# Task Schemas
# =============================================================================

class AssigneePayload(PayloadModel):
    """Nested assignee object."""
    id: Optional[Id] = None
    name: Optional[str] = None


class TaskPayload(PayloadModel):
    """One task from the task snapshot."""
    id: Id
    title: str = ""
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    has_due_time: bool = Field(default=False, alias="hasDueTime")
    status: str = TaskStatus.TODO
    project_id: Optional[Id] = Field(default=None, alias="projectId")
    assignee: Optional[Union[AssigneePayload, str]] = None

    def to_model(self, default_tz: Optional[tzinfo] = None) -> Task:
        assignee = self.assignee
        if isinstance(assignee, AssigneePayload):
            assignee = assignee.name or (str(assignee.id) if assignee.id is not None else None)
        return Task(
            id=self.id,
            title=self.title,
            due_date=parse_instant(self.due_date, default_tz),
            has_due_time=self.has_due_time,
            status=self.status,
            project_id=self.project_id,
            assignee=assignee,
        )


# =============================================================================
# Time Entry Schemas
# =============================================================================

class TimeEntryPayload(PayloadModel):
    """One time entry from the weekly time entry snapshot."""
    id: Id
    project_id: Optional[Id] = Field(default=None, alias="projectId")
    task_id: Optional[Id] = Field(default=None, alias="taskId")
    start_time: Optional[str] = Field(default=None, alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")
    description: Optional[str] = ""
    billable: bool = False

    def to_model(self, default_tz: Optional[tzinfo] = None) -> Optional[TimeEntry]:
        """TimeEntry, or None when startTime is missing or unparseable"""
        start = parse_instant(self.start_time, default_tz)
        if start is None:
            return None
        return TimeEntry(
            id=self.id,
            project_id=self.project_id,
            task_id=self.task_id,
            start_time=start,
            end_time=parse_instant(self.end_time, default_tz),
            description=self.description or "",
            billable=self.billable,
        )


# =============================================================================
# Notification Schemas
# =============================================================================

class NotificationPayload(PayloadModel):
    """Realtime push message or resync item."""
    id: Id
    type: str = ""
    message: str = ""
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    read: bool = False

    def to_model(self) -> Notification:
        return Notification(
            id=self.id,
            type=self.type,
            message=self.message,
            created_at=parse_instant(self.created_at),
            read=self.read,
        )


class NotificationListPayload(PayloadModel):
    """Full resync response."""
    notifications: List[NotificationPayload] = []
    unread_count: int = Field(default=0, ge=0, alias="unreadCount")


class DueDateSummaryPayload(PayloadModel):
    """Server-computed due-date counts."""
    overdue: int = Field(default=0, ge=0)
    due_today: int = Field(default=0, ge=0, alias="dueToday")
    due_soon: int = Field(default=0, ge=0, alias="dueSoon")
    upcoming: int = Field(default=0, ge=0)

    def to_model(self) -> NotificationSummary:
        return NotificationSummary(
            overdue=self.overdue,
            due_today=self.due_today,
            due_soon=self.due_soon,
            upcoming=self.upcoming,
        )


# =============================================================================
# Snapshot File
# =============================================================================

class SnapshotFile(PayloadModel):
    """
    Offline snapshot read by the CLI.

    {"tasks": [...], "timeEntries": [...], "notifications": [...],
     "unreadCount": 0, "dueDateSummary": {...}}
    """
    tasks: List[TaskPayload] = []
    time_entries: List[TimeEntryPayload] = Field(default_factory=list, alias="timeEntries")
    notifications: List[NotificationPayload] = []
    unread_count: int = Field(default=0, ge=0, alias="unreadCount")
    due_date_summary: Optional[DueDateSummaryPayload] = Field(default=None, alias="dueDateSummary")

    def task_models(self, default_tz: Optional[tzinfo] = None) -> List[Task]:
        return [t.to_model(default_tz) for t in self.tasks]

    def time_entry_models(self, default_tz: Optional[tzinfo] = None) -> List[TimeEntry]:
        """Entries with a usable start time; the rest are dropped"""
        entries = []
        for payload in self.time_entries:
            entry = payload.to_model(default_tz)
            if entry is not None:
                entries.append(entry)
        return entries

    def notification_models(self) -> List[Notification]:
        return [n.to_model() for n in self.notifications]


def load_snapshot(data: Any) -> SnapshotFile:
    """Validate a decoded snapshot document (a bare list is read as tasks)."""
    if isinstance(data, list):
        data = {"tasks": data}
    return SnapshotFile.model_validate(data)
