"""
Core module for the TaskFlow temporal engine
Contains the clock, scheduler, configuration, storage and model definitions
"""

from .clock import Clock, SystemClock, ManualClock, resolve_timezone
from .config import Config
from .database import SQLiteDatabase
from .models import (
    Task,
    TaskStatus,
    TimeEntry,
    Notification,
    NotificationSummary,
    ActiveTimerState,
    UrgencyStatus,
    CorruptTimerRecord,
    parse_instant,
)
from .scheduler import Scheduler, CancelToken, ThreadScheduler, ManualScheduler

__all__ = [
    'Clock', 'SystemClock', 'ManualClock', 'resolve_timezone',
    'Config', 'SQLiteDatabase',
    'Task', 'TaskStatus', 'TimeEntry', 'Notification', 'NotificationSummary',
    'ActiveTimerState', 'UrgencyStatus', 'CorruptTimerRecord', 'parse_instant',
    'Scheduler', 'CancelToken', 'ThreadScheduler', 'ManualScheduler',
]
