"""
Notification state for the TaskFlow temporal engine.
"""

from .store import NotificationCounterStore, NotificationPoller, NotificationState

__all__ = ['NotificationCounterStore', 'NotificationPoller', 'NotificationState']
