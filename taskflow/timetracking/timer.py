"""
Active timer session.

A durable two-state machine:

    Idle  --start-->  Running(entry)  --stop/discard-->  Idle
                      Running(old)    --start-->         Running(new)

Only the ActiveTimerState record is persisted. Elapsed time is always
``now - start_time``; the per-second tick refreshes a cached value for
listeners but is never the source of truth, so a restart (or a suspended
process) resumes without drift.

Policy for ``start`` while running: the previous entry is closed at "now",
handed to ``on_commit`` and returned, then the new entry starts. Starting
the entry that is already running changes nothing.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from taskflow.core.clock import Clock
from taskflow.core.models import (
    ActiveTimerState,
    CorruptTimerRecord,
    TimeEntry,
    elapsed_seconds,
)
from taskflow.core.scheduler import CancelToken, Scheduler
from taskflow.timetracking.persistence import Record, TimerStore

logger = logging.getLogger("taskflow.timer")


class TimerAlreadyRunning(RuntimeError):
    """Raised by an exclusive start when the user already has a timer elsewhere"""


@dataclass(frozen=True)
class TimerSnapshot:
    """Point-in-time view of the session"""
    running: bool
    state: Optional[ActiveTimerState] = None
    elapsed_seconds: int = 0


Listener = Callable[[TimerSnapshot], None]


class ActiveTimerSession:
    """
    Owner of one user's running timer.

    Usage:
        session = ActiveTimerSession(store, clock, scheduler, user_id="u1")
        session.resume_from_storage()          # once, at process start
        session.start_new(project_id="p1", description="Review")
        ...
        entry = session.stop()                 # caller saves the closed entry
    """

    def __init__(
        self,
        store: TimerStore,
        clock: Clock,
        scheduler: Scheduler,
        user_id: str = "default",
        tick_seconds: float = 1,
        on_commit: Optional[Callable[[TimeEntry], None]] = None,
    ):
        self.store = store
        self.clock = clock
        self.scheduler = scheduler
        self.user_id = user_id
        self.tick_seconds = tick_seconds
        self.on_commit = on_commit

        self._state: Optional[ActiveTimerState] = None
        self._cached_elapsed = 0
        self._token: Optional[CancelToken] = None
        self._listeners: List[Listener] = []

    # ----- Queries -----

    @property
    def state(self) -> Optional[ActiveTimerState]:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is not None

    @property
    def elapsed_seconds(self) -> int:
        """Seconds since the running entry started, recomputed from the clock"""
        if self._state is None:
            return 0
        return elapsed_seconds(self._state.start_time, self.clock.now())

    @property
    def cached_elapsed(self) -> int:
        """Value computed on the last tick or transition"""
        return self._cached_elapsed

    @property
    def ticking(self) -> bool:
        return self._token is not None and not self._token.cancelled

    def snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(
            running=self.is_running,
            state=self._state,
            elapsed_seconds=self.elapsed_seconds,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called after every tick and transition"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ----- Transitions -----

    def start(self, entry: ActiveTimerState) -> Optional[TimeEntry]:
        """
        Start ``entry``, closing any running entry first.

        Starting the entry that is already running is a no-op, so a
        redelivered start event cannot split or repeat its time.

        Nothing in memory changes until the new record is persisted and the
        previous entry is committed; if either step fails the old timer keeps
        running and stays the persisted record.

        Returns:
            The closed previous entry, or None if the session was idle
        """
        previous = self._state
        if previous is not None and previous.entry_id == entry.entry_id:
            logger.debug("start() for running entry %s ignored", entry.entry_id)
            return None

        self.store.set(self.user_id, entry.to_record())

        closed = None
        if previous is not None:
            closed = previous.to_time_entry(self.clock.now())
            if self.on_commit is not None:
                try:
                    self.on_commit(closed)
                except Exception:
                    self.store.set(self.user_id, previous.to_record())
                    raise
            logger.info(
                "Closed timer %s after %ds to start %s",
                closed.id, closed.duration_seconds(), entry.entry_id
            )

        self._cancel_tick()
        self._state = entry
        self._enter_running()
        logger.info("Timer started: entry=%s project=%s", entry.entry_id, entry.project_id)
        return closed

    def start_new(
        self,
        project_id: Any,
        description: str = "",
        billable: bool = False,
        entry_id: Optional[Any] = None,
    ) -> Optional[TimeEntry]:
        """Start a fresh entry beginning now"""
        return self.start(self.new_entry(project_id, description, billable, entry_id))

    def new_entry(
        self,
        project_id: Any,
        description: str = "",
        billable: bool = False,
        entry_id: Optional[Any] = None,
    ) -> ActiveTimerState:
        return ActiveTimerState(
            entry_id=entry_id if entry_id is not None else uuid.uuid4().hex,
            project_id=project_id,
            start_time=self.clock.now(),
            description=description,
            billable=billable,
        )

    def start_exclusive(self, entry: ActiveTimerState) -> None:
        """
        Start only if no timer is persisted for this user anywhere.

        Uses the store's conditional write, so concurrent starts from several
        devices against a shared store leave exactly one running.

        Raises:
            TimerAlreadyRunning: if a record already exists
        """
        if not self.store.claim(self.user_id, entry.to_record()):
            raise TimerAlreadyRunning(f"User {self.user_id} already has an active timer")
        self._cancel_tick()
        self._state = entry
        self._enter_running()
        logger.info("Timer claimed: entry=%s project=%s", entry.entry_id, entry.project_id)

    def stop(self) -> Optional[TimeEntry]:
        """
        Stop the running timer.

        The tick is cancelled before the idle state is persisted so a late
        tick cannot revive the stopped entry.

        Returns:
            The closed TimeEntry (end_time = now) for the caller to save,
            or None if nothing was running
        """
        if self._state is None:
            logger.debug("stop() while idle ignored")
            return None

        self._cancel_tick()
        closed = self._state.to_time_entry(self.clock.now())
        self._enter_idle()
        logger.info("Timer stopped: entry=%s duration=%ds", closed.id, closed.duration_seconds())
        return closed

    def discard(self) -> Optional[ActiveTimerState]:
        """Drop the running timer without producing a time entry"""
        if self._state is None:
            return None

        self._cancel_tick()
        dropped = self._state
        self._enter_idle()
        logger.info("Timer discarded: entry=%s", dropped.entry_id)
        return dropped

    def resume_from_storage(self, record: Optional[Record] = None) -> TimerSnapshot:
        """
        Restore the session after a process start.

        Elapsed time is recomputed from the persisted start instant. A record
        that cannot be loaded is discarded and the session stays idle.

        Args:
            record: Record to resume from (read from the store when omitted)
        """
        self._cancel_tick()
        if record is None:
            record = self.store.get(self.user_id)

        if record is None:
            self._state = None
            self._cached_elapsed = 0
            self._notify()
            return self.snapshot()

        try:
            state = ActiveTimerState.from_record(record)
        except CorruptTimerRecord as e:
            logger.warning("Discarding corrupt timer record for %s: %s", self.user_id, e)
            self.store.clear(self.user_id)
            self._state = None
            self._cached_elapsed = 0
            self._notify()
            return self.snapshot()

        self._state = state
        self._enter_running()
        logger.info(
            "Timer resumed: entry=%s elapsed=%ds",
            state.entry_id, self._cached_elapsed
        )
        return self.snapshot()

    def tick(self) -> None:
        """Refresh the cached elapsed value; ignored once idle"""
        if self._state is None:
            return
        self._cached_elapsed = self.elapsed_seconds
        self._notify()

    def close(self) -> None:
        """Teardown: cancel the tick, leave persisted state alone"""
        self._cancel_tick()

    # ----- Internals -----

    def _enter_running(self) -> None:
        self._cached_elapsed = self.elapsed_seconds
        token = None

        def on_tick():
            # Ticks from a superseded schedule never touch the session.
            if self._token is token:
                self.tick()

        token = self.scheduler.schedule_repeating(self.tick_seconds, on_tick, name="timer-tick")
        self._token = token
        self._notify()

    def _enter_idle(self) -> None:
        self._state = None
        self._cached_elapsed = 0
        self.store.clear(self.user_id)
        self._notify()

    def _cancel_tick(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None

    def _notify(self) -> None:
        snap = TimerSnapshot(
            running=self._state is not None,
            state=self._state,
            elapsed_seconds=self._cached_elapsed,
        )
        for listener in list(self._listeners):
            listener(snap)
