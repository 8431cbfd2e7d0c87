"""
Time tracking for the TaskFlow temporal engine.

The active timer session, its persistence port and weekly timesheets.
"""

from .persistence import JsonFileTimerStore, MemoryTimerStore, SQLiteTimerStore, TimerStore
from .timer import ActiveTimerSession, TimerAlreadyRunning, TimerSnapshot
from .timesheet import (
    DayBucket,
    TimeSummary,
    TimesheetAggregator,
    WeekBucket,
    build_week,
    iso_week,
    parse_iso_week,
    summarize,
    week_start_for_offset,
)

__all__ = [
    'ActiveTimerSession', 'TimerAlreadyRunning', 'TimerSnapshot',
    'TimerStore', 'MemoryTimerStore', 'JsonFileTimerStore', 'SQLiteTimerStore',
    'DayBucket', 'WeekBucket', 'TimeSummary', 'TimesheetAggregator',
    'build_week', 'summarize', 'iso_week', 'parse_iso_week', 'week_start_for_offset',
]
