"""
Cancellable repeating scheduler.

Replaces implicit interval timers with an explicit handle:

    token = scheduler.schedule_repeating(1, session.tick)
    ...
    token.cancel()   # synchronous; fn never runs again afterwards

Two implementations:
- ThreadScheduler: real time, one daemon thread per job
- ManualScheduler: driven by a ManualClock, used by tests and simulations
"""

import heapq
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Callable, List, Tuple

from .clock import ManualClock

logger = logging.getLogger("taskflow.scheduler")


class CancelToken:
    """Handle for a scheduled repeating job"""

    def __init__(self, name: str = ""):
        self.name = name
        self._cancelled = threading.Event()
        self._lock = threading.RLock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """
        Cancel the job.

        Idempotent. Once this returns, the job's function will not start
        again. An invocation already running on another thread finishes
        before this returns.
        """
        with self._lock:
            if not self._cancelled.is_set():
                self._cancelled.set()
                logger.debug("Cancelled job %s", self.name or id(self))

    def _run(self, fn: Callable[[], None]) -> None:
        with self._lock:
            if self._cancelled.is_set():
                return
            fn()

    def _wait(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds; True if cancelled meanwhile"""
        return self._cancelled.wait(timeout)


class Scheduler(ABC):
    """Abstract repeating scheduler"""

    @abstractmethod
    def schedule_repeating(
        self,
        period_seconds: float,
        fn: Callable[[], None],
        name: str = ""
    ) -> CancelToken:
        """Invoke ``fn`` every ``period_seconds`` until the token is cancelled"""
        pass

    @abstractmethod
    def cancel_all(self) -> None:
        """Cancel every job created by this scheduler"""
        pass


class ThreadScheduler(Scheduler):
    """Runs each repeating job on its own daemon thread"""

    def __init__(self):
        self._tokens: List[CancelToken] = []
        self._lock = threading.Lock()

    def schedule_repeating(
        self,
        period_seconds: float,
        fn: Callable[[], None],
        name: str = ""
    ) -> CancelToken:
        if period_seconds <= 0:
            raise ValueError("period_seconds must be positive")

        token = CancelToken(name)

        def loop():
            while not token._wait(period_seconds):
                try:
                    token._run(fn)
                except Exception:
                    logger.error("Job %s raised", name or id(token), exc_info=True)

        thread = threading.Thread(target=loop, name=f"tick-{name or id(token)}", daemon=True)
        with self._lock:
            self._tokens = [t for t in self._tokens if not t.cancelled]
            self._tokens.append(token)
        thread.start()
        return token

    def cancel_all(self) -> None:
        with self._lock:
            tokens, self._tokens = self._tokens, []
        for token in tokens:
            token.cancel()


class ManualScheduler(Scheduler):
    """
    Deterministic scheduler bound to a ManualClock.

    ``advance(seconds)`` walks the clock forward job by job, firing each due
    invocation at its exact instant.
    """

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self._queue: List[Tuple] = []
        self._seq = itertools.count()
        self._tokens: List[CancelToken] = []

    def schedule_repeating(
        self,
        period_seconds: float,
        fn: Callable[[], None],
        name: str = ""
    ) -> CancelToken:
        if period_seconds <= 0:
            raise ValueError("period_seconds must be positive")
        token = CancelToken(name)
        period = timedelta(seconds=period_seconds)
        heapq.heappush(
            self._queue,
            (self.clock.now() + period, next(self._seq), period, fn, token)
        )
        self._tokens.append(token)
        return token

    @property
    def active_jobs(self) -> int:
        return sum(1 for entry in self._queue if not entry[4].cancelled)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running due jobs in time order.

        Returns:
            Number of job invocations performed
        """
        deadline = self.clock.now() + timedelta(seconds=seconds)
        fired = 0

        while self._queue and self._queue[0][0] <= deadline:
            due, _, period, fn, token = heapq.heappop(self._queue)
            if token.cancelled:
                continue
            self.clock.set(due)
            token._run(fn)
            fired += 1
            if not token.cancelled:
                heapq.heappush(self._queue, (due + period, next(self._seq), period, fn, token))

        self.clock.set(deadline)
        return fired

    def cancel_all(self) -> None:
        for token in self._tokens:
            token.cancel()
        self._tokens = []
        self._queue = []

