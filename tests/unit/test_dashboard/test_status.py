"""
Unit tests for the status module.
Tests urgency classification and the periodic status refresher.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from dateutil import tz

from taskflow.core.clock import ManualClock
from taskflow.core.models import Task, TaskStatus, UrgencyStatus
from taskflow.core.scheduler import ManualScheduler
from taskflow.dashboard.labels import format_due_date
from taskflow.dashboard.status import (
    StatusRefresher,
    classify,
    classify_task,
    end_of_week,
    is_tomorrow,
    start_of_week,
)

# Wednesday
NOW = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)


class TestClassify:
    """Tests for classify()."""

    def test_done_always_completed(self):
        """Done tasks classify as completed whatever the due date."""
        for due in (NOW - timedelta(days=10), NOW, NOW + timedelta(hours=1), None, "garbage"):
            assert classify(due, TaskStatus.DONE, NOW) == UrgencyStatus.COMPLETED

    def test_no_due_date_is_none(self):
        assert classify(None, TaskStatus.TODO, NOW) == UrgencyStatus.NONE

    def test_unparseable_due_date_is_none(self):
        """A malformed due date is treated as absent, never raises."""
        assert classify("not a date", TaskStatus.TODO, NOW) == UrgencyStatus.NONE
        assert classify("", TaskStatus.IN_PROGRESS, NOW) == UrgencyStatus.NONE
        assert classify(12345, TaskStatus.TODO, NOW) == UrgencyStatus.NONE

    def test_past_is_overdue(self):
        assert classify(NOW - timedelta(minutes=1), TaskStatus.TODO, NOW) == UrgencyStatus.OVERDUE
        assert classify(NOW - timedelta(days=30), TaskStatus.REVIEW, NOW) == UrgencyStatus.OVERDUE

    def test_earlier_today_is_overdue(self):
        """Overdue wins over same calendar day."""
        assert classify(NOW.replace(hour=8), TaskStatus.TODO, NOW) == UrgencyStatus.OVERDUE

    def test_later_today_is_due_today(self):
        assert classify(NOW.replace(hour=23, minute=59), TaskStatus.TODO, NOW) == UrgencyStatus.DUE_TODAY

    def test_exactly_now_is_due_today(self):
        assert classify(NOW, TaskStatus.TODO, NOW) == UrgencyStatus.DUE_TODAY

    def test_within_three_days_is_due_soon(self):
        assert classify(NOW + timedelta(days=1), TaskStatus.TODO, NOW) == UrgencyStatus.DUE_SOON
        assert classify(NOW + timedelta(days=3), TaskStatus.TODO, NOW) == UrgencyStatus.DUE_SOON

    def test_beyond_three_days_is_on_track(self):
        assert classify(NOW + timedelta(days=3, seconds=1), TaskStatus.TODO, NOW) == UrgencyStatus.ON_TRACK
        assert classify(NOW + timedelta(days=40), TaskStatus.TODO, NOW) == UrgencyStatus.ON_TRACK

    def test_custom_due_soon_window(self):
        due = NOW + timedelta(days=5)
        assert classify(due, TaskStatus.TODO, NOW, due_soon_days=7) == UrgencyStatus.DUE_SOON

    def test_iso_string_due_date(self):
        assert classify("2025-03-04T09:00:00Z", TaskStatus.TODO, NOW) == UrgencyStatus.OVERDUE
        assert classify("2025-03-06T09:00:00+00:00", TaskStatus.TODO, NOW) == UrgencyStatus.DUE_SOON

    def test_naive_now_treated_as_utc(self):
        naive = NOW.replace(tzinfo=None)
        assert classify(NOW + timedelta(hours=2), TaskStatus.TODO, naive) == UrgencyStatus.DUE_TODAY

    def test_same_day_uses_zone_of_now(self):
        """Calendar days are those of now's zone."""
        berlin = tz.gettz("Europe/Berlin")
        now = datetime(2025, 3, 5, 22, 30, tzinfo=berlin)
        # 23:30 UTC is already March 6 in Berlin
        due = datetime(2025, 3, 5, 23, 30, tzinfo=timezone.utc)
        assert classify(due, TaskStatus.TODO, now) == UrgencyStatus.DUE_SOON

    def test_is_referentially_transparent(self):
        """Identical arguments give identical results."""
        due = NOW + timedelta(hours=30)
        results = {classify(due, TaskStatus.TODO, NOW) for _ in range(10)}
        assert len(results) == 1

    def test_classify_task_uses_task_fields(self):
        task = Task(id=1, due_date=NOW - timedelta(hours=1), status=TaskStatus.IN_PROGRESS)
        assert classify_task(task, NOW) == UrgencyStatus.OVERDUE
        done = Task(id=2, due_date=NOW - timedelta(hours=1), status=TaskStatus.DONE)
        assert classify_task(done, NOW) == UrgencyStatus.COMPLETED

    def test_date_only_task_two_days_out(self):
        """A date-only task due in two days is due soon and shows no time."""
        task = Task(id=3, due_date=NOW + timedelta(days=2), has_due_time=False)
        assert classify_task(task, NOW) == UrgencyStatus.DUE_SOON
        assert format_due_date(task.due_date, NOW, task.has_due_time) == "Mar 7"


class TestWeekHelpers:
    """Tests for calendar week helpers."""

    def test_start_of_week_monday(self):
        assert start_of_week(date(2025, 3, 5)) == date(2025, 3, 3)
        assert start_of_week(date(2025, 3, 3)) == date(2025, 3, 3)
        assert start_of_week(date(2025, 3, 9)) == date(2025, 3, 3)

    def test_start_of_week_sunday(self):
        assert start_of_week(date(2025, 3, 5), week_starts_on=6) == date(2025, 3, 2)

    def test_end_of_week(self):
        end = end_of_week(NOW)
        assert end.date() == date(2025, 3, 9)
        assert end.hour == 23 and end.minute == 59

    def test_is_tomorrow(self):
        assert is_tomorrow(NOW + timedelta(days=1), NOW)
        assert not is_tomorrow(NOW + timedelta(days=2), NOW)


class TestStatusRefresher:
    """Tests for the 60-second status refresh."""

    @pytest.fixture
    def clock(self):
        return ManualClock(NOW)

    @pytest.fixture
    def scheduler(self, clock):
        return ManualScheduler(clock)

    def test_track_refreshes_immediately(self, clock, scheduler):
        refresher = StatusRefresher(clock, scheduler)
        views = refresher.track([Task(id=1, due_date=NOW + timedelta(minutes=30), has_due_time=True)])
        assert views[1].status == UrgencyStatus.DUE_TODAY
        assert views[1].label == "Due in 30m"

    def test_status_flips_as_time_passes(self, clock, scheduler):
        """A task crosses into overdue on a later tick."""
        seen = []
        refresher = StatusRefresher(clock, scheduler, on_refresh=seen.append)
        refresher.track([Task(id=7, due_date=NOW + timedelta(minutes=90))])
        refresher.start()

        scheduler.advance(60 * 60)
        assert refresher.views[7].status == UrgencyStatus.DUE_TODAY

        scheduler.advance(60 * 60)
        assert refresher.views[7].status == UrgencyStatus.OVERDUE
        assert refresher.views[7].label == "Overdue by 30m"
        # initial refresh + one per minute
        assert len(seen) == 1 + 120

    def test_close_cancels_tick(self, clock, scheduler):
        refresher = StatusRefresher(clock, scheduler)
        refresher.track([])
        refresher.start()
        assert refresher.running
        refresher.close()
        assert not refresher.running
        assert scheduler.advance(600) == 0

    def test_start_is_idempotent(self, clock, scheduler):
        refresher = StatusRefresher(clock, scheduler)
        refresher.start()
        refresher.start()
        assert scheduler.active_jobs == 1
