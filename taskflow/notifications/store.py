"""
Notification counter store.

Single-writer state container for the notification list, the unread count
and the server-computed due-date summary. Every mutator replaces the state
with a new immutable NotificationState and returns it, so listeners and
tests always see whole snapshots.

Duplicate delivery is expected (push + resync racing, double clicks), so
every mutator is safe to repeat:
- push of a known id is ignored
- mark_read of an unknown or already-read id is ignored
- remove only decrements when the removed item was unread
- the unread count never goes below zero
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, List, Optional, Tuple

from taskflow.core.models import Notification, NotificationSummary
from taskflow.core.scheduler import CancelToken, Scheduler

logger = logging.getLogger("taskflow.notifications")

Listener = Callable[["NotificationState"], None]


@dataclass(frozen=True)
class NotificationState:
    """Immutable snapshot of notification state"""
    notifications: Tuple[Notification, ...] = ()
    unread_count: int = 0
    due_date_summary: NotificationSummary = field(default_factory=NotificationSummary)

    def find(self, notification_id: Any) -> Optional[Notification]:
        for notification in self.notifications:
            if notification.id == notification_id:
                return notification
        return None

    @property
    def ids(self) -> List[Any]:
        return [n.id for n in self.notifications]


class NotificationCounterStore:
    """
    Owner of the notification state.

    Inject one instance per session; do not share it as a module global.
    All mutations are expected on one logical event thread.
    """

    def __init__(self, initial: Optional[NotificationState] = None):
        self._state = initial or NotificationState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> NotificationState:
        return self._state

    @property
    def unread_count(self) -> int:
        return self._state.unread_count

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, new_state: NotificationState) -> NotificationState:
        if new_state is not self._state:
            self._state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return self._state

    def replace(self, notifications: Iterable[Notification], unread_count: int) -> NotificationState:
        """Full resync from a pull (initial load or reconnect)"""
        items = []
        seen = set()
        for notification in notifications:
            if notification.id in seen:
                continue
            seen.add(notification.id)
            items.append(notification)

        logger.info("Resynced %d notifications, %d unread", len(items), unread_count)
        return self._commit(replace(
            self._state,
            notifications=tuple(items),
            unread_count=max(0, int(unread_count)),
        ))

    def push(self, notification: Notification) -> NotificationState:
        """Prepend a realtime notification; counts it as unread unless it arrives read"""
        if self._state.find(notification.id) is not None:
            logger.debug("Ignoring duplicate push for notification %s", notification.id)
            return self._state

        unread = self._state.unread_count + (0 if notification.read else 1)
        return self._commit(replace(
            self._state,
            notifications=(notification,) + self._state.notifications,
            unread_count=unread,
        ))

    def mark_read(self, notification_id: Any) -> NotificationState:
        """Flip one item to read and decrement the unread count (floored at 0)"""
        current = self._state.find(notification_id)
        if current is None or current.read:
            return self._state

        return self._commit(replace(
            self._state,
            notifications=tuple(
                n.mark_read() if n.id == notification_id else n
                for n in self._state.notifications
            ),
            unread_count=max(0, self._state.unread_count - 1),
        ))

    def mark_all_read(self) -> NotificationState:
        """Flip every item to read and zero the unread count"""
        return self._commit(replace(
            self._state,
            notifications=tuple(n.mark_read() for n in self._state.notifications),
            unread_count=0,
        ))

    def remove(self, notification_id: Any) -> NotificationState:
        """Delete one item; decrement the unread count only if it was unread"""
        current = self._state.find(notification_id)
        if current is None:
            return self._state

        unread = self._state.unread_count
        if not current.read:
            unread = max(0, unread - 1)

        return self._commit(replace(
            self._state,
            notifications=tuple(n for n in self._state.notifications if n.id != notification_id),
            unread_count=unread,
        ))

    def set_due_date_summary(self, summary: NotificationSummary) -> NotificationState:
        """Replace the four due-date counts wholesale"""
        return self._commit(replace(self._state, due_date_summary=summary))


class NotificationPoller:
    """
    Periodic re-pull feeding the store.

    A failing fetch keeps the last known state and is retried on the next
    tick; it never stops the ticker.

    Usage:
        poller = NotificationPoller(store, scheduler, fetch_notifications, fetch_summary)
        poller.poll()     # initial load
        poller.start()    # every 60 seconds
        poller.close()
    """

    def __init__(
        self,
        store: NotificationCounterStore,
        scheduler: Scheduler,
        fetch_notifications: Optional[Callable[[], Tuple[List[Notification], int]]] = None,
        fetch_summary: Optional[Callable[[], NotificationSummary]] = None,
        period_seconds: float = 60,
    ):
        self.store = store
        self.scheduler = scheduler
        self.fetch_notifications = fetch_notifications
        self.fetch_summary = fetch_summary
        self.period_seconds = period_seconds
        self.consecutive_failures = 0
        self._token: Optional[CancelToken] = None

    def poll(self) -> bool:
        """
        Pull once.

        Returns:
            True if every configured fetch succeeded
        """
        ok = True

        if self.fetch_notifications is not None:
            try:
                notifications, unread = self.fetch_notifications()
            except Exception as e:
                ok = False
                logger.warning("Notification pull failed, keeping last state: %s", e, exc_info=True)
            else:
                self.store.replace(notifications, unread)

        if self.fetch_summary is not None:
            try:
                summary = self.fetch_summary()
            except Exception as e:
                ok = False
                logger.warning("Due-date summary pull failed, keeping last state: %s", e, exc_info=True)
            else:
                self.store.set_due_date_summary(summary)

        self.consecutive_failures = 0 if ok else self.consecutive_failures + 1
        return ok

    def start(self) -> None:
        if self._token is not None and not self._token.cancelled:
            return
        self._token = self.scheduler.schedule_repeating(
            self.period_seconds, self.poll, name="notification-poll"
        )

    def close(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
