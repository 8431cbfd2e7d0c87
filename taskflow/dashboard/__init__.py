"""
Dashboard module for the TaskFlow temporal engine.

Provides urgency classification, relative labels, deadline bucketing and
reminder rules. The Rich formatter lives in ``taskflow.dashboard.formatter``
and is imported on demand by the CLI.
"""

from .status import (
    DUE_SOON_DAYS,
    StatusRefresher,
    TaskStatusView,
    classify,
    classify_task,
)
from .labels import (
    relative_label,
    format_due_date,
    format_elapsed,
    format_duration,
)
from .buckets import (
    BUCKET_ORDER,
    BucketAggregator,
    DueDateGroups,
    compute_due_date_summary,
    dedupe_tasks,
    group_tasks,
    sort_by_due_date,
)
from .reminders import (
    REMINDER_KINDS,
    SNOOZE_OPTIONS,
    pending_reminders,
    should_send_reminder,
    snooze_until,
)

__all__ = [
    # Status
    'DUE_SOON_DAYS',
    'StatusRefresher',
    'TaskStatusView',
    'classify',
    'classify_task',
    # Labels
    'relative_label',
    'format_due_date',
    'format_elapsed',
    'format_duration',
    # Buckets
    'BUCKET_ORDER',
    'BucketAggregator',
    'DueDateGroups',
    'compute_due_date_summary',
    'dedupe_tasks',
    'group_tasks',
    'sort_by_due_date',
    # Reminders
    'REMINDER_KINDS',
    'SNOOZE_OPTIONS',
    'pending_reminders',
    'should_send_reminder',
    'snooze_until',
]
