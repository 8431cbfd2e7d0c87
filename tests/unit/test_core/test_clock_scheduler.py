"""
Unit tests for the clock and scheduler modules.
Tests manual time, deterministic scheduling and synchronous cancellation.
"""

import threading
import time
import pytest
from datetime import datetime, timedelta, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from dateutil import tz

from taskflow.core.clock import ManualClock, SystemClock, resolve_timezone
from taskflow.core.scheduler import ManualScheduler, ThreadScheduler

NOW = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)


class TestClock:
    """Tests for clock implementations."""

    def test_manual_clock_advance(self):
        clock = ManualClock(NOW)
        clock.advance(seconds=30, minutes=1)
        assert clock.now() == NOW + timedelta(seconds=90)

    def test_manual_clock_naive_start_is_utc(self):
        assert ManualClock(datetime(2025, 3, 5)).tzinfo == timezone.utc

    def test_system_clock_zone(self):
        berlin = tz.gettz("Europe/Berlin")
        now = SystemClock(berlin).now()
        assert now.tzinfo is berlin

    def test_resolve_timezone(self):
        assert resolve_timezone("UTC") == timezone.utc
        assert resolve_timezone("Europe/Berlin") is not None
        assert resolve_timezone(None) is not None
        with pytest.raises(ValueError):
            resolve_timezone("Nowhere/Special")


class TestManualScheduler:
    """Tests for the deterministic scheduler."""

    def test_fires_at_exact_instants(self):
        clock = ManualClock(NOW)
        scheduler = ManualScheduler(clock)
        seen = []
        scheduler.schedule_repeating(10, lambda: seen.append(clock.now()))

        assert scheduler.advance(35) == 3
        assert seen == [NOW + timedelta(seconds=s) for s in (10, 20, 30)]
        assert clock.now() == NOW + timedelta(seconds=35)

    def test_interleaves_jobs_in_time_order(self):
        clock = ManualClock(NOW)
        scheduler = ManualScheduler(clock)
        order = []
        scheduler.schedule_repeating(2, lambda: order.append("fast"))
        scheduler.schedule_repeating(3, lambda: order.append("slow"))
        scheduler.advance(5)
        assert order == ["fast", "slow", "fast"]

    def test_cancel_inside_job(self):
        """A job can cancel its own token without deadlocking."""
        scheduler = ManualScheduler(ManualClock(NOW))
        calls = []

        def job():
            calls.append(1)
            token.cancel()

        token = scheduler.schedule_repeating(1, job)
        scheduler.advance(10)
        assert calls == [1]

    def test_cancel_all(self):
        scheduler = ManualScheduler(ManualClock(NOW))
        token = scheduler.schedule_repeating(1, lambda: None)
        scheduler.cancel_all()
        assert token.cancelled
        assert scheduler.advance(5) == 0

    def test_rejects_non_positive_period(self):
        with pytest.raises(ValueError):
            ManualScheduler(ManualClock(NOW)).schedule_repeating(0, lambda: None)


class TestThreadScheduler:
    """Tests for the real-time scheduler."""

    def test_runs_and_cancels(self):
        scheduler = ThreadScheduler()
        fired = threading.Event()
        calls = []

        def job():
            calls.append(1)
            fired.set()

        token = scheduler.schedule_repeating(0.01, job, name="test")
        assert fired.wait(2)
        token.cancel()
        count = len(calls)
        time.sleep(0.05)
        assert len(calls) == count

    def test_job_errors_do_not_stop_ticker(self):
        scheduler = ThreadScheduler()
        calls = []
        second = threading.Event()

        def job():
            calls.append(1)
            if len(calls) >= 2:
                second.set()
            raise RuntimeError("tick failed")

        scheduler.schedule_repeating(0.01, job)
        assert second.wait(2)
        scheduler.cancel_all()
