"""
Unit tests for the buckets module.
Tests deadline grouping, deduplication, sorting and the due-date summary.
"""

import random
import pytest
from datetime import datetime, timedelta, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from taskflow.core.clock import ManualClock
from taskflow.core.models import NotificationSummary, Task, TaskStatus, UrgencyStatus
from taskflow.dashboard.buckets import (
    BUCKET_ORDER,
    BucketAggregator,
    compute_due_date_summary,
    dedupe_tasks,
    group_tasks,
    sort_by_due_date,
)
from taskflow.dashboard.status import classify_task

# Wednesday; the week ends Sunday March 9
NOW = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)


def make_task(task_id, due=None, status=TaskStatus.TODO, title=None):
    return Task(id=task_id, due_date=due, status=status, title=title or f"Task {task_id}")


@pytest.fixture
def sample_tasks():
    return [
        make_task(1, NOW - timedelta(days=2)),
        make_task(2, NOW + timedelta(hours=3)),
        make_task(3, NOW + timedelta(days=1)),
        make_task(4, NOW + timedelta(days=3)),
        make_task(5, NOW + timedelta(days=10)),
        make_task(6),
        make_task(7, NOW - timedelta(days=1), status=TaskStatus.DONE),
    ]


class TestGroupTasks:
    """Tests for group_tasks()."""

    def test_buckets(self, sample_tasks):
        groups = group_tasks(sample_tasks, NOW)
        assert groups.ids() == {
            "overdue": [1],
            "today": [2],
            "tomorrow": [3],
            "this_week": [4],
            "later": [5],
            "none": [6],
        }

    def test_done_tasks_skipped(self, sample_tasks):
        groups = group_tasks(sample_tasks, NOW)
        all_ids = [tid for ids in groups.ids().values() for tid in ids]
        assert 7 not in all_ids

    def test_next_week_is_later(self):
        """Monday of next week is outside this calendar week."""
        groups = group_tasks([make_task(1, datetime(2025, 3, 10, 9, tzinfo=timezone.utc))], NOW)
        assert groups.ids()["later"] == [1]

    def test_first_occurrence_wins(self):
        """Duplicates by id keep the first snapshot, no merge."""
        first = make_task(1, NOW + timedelta(hours=2), title="first")
        second = make_task(1, NOW - timedelta(days=3), title="second")
        groups = group_tasks([first, second], NOW)
        assert groups.today == [first]
        assert groups.overdue == []

    def test_input_order_kept_within_bucket(self):
        tasks = [make_task(i, NOW - timedelta(hours=i)) for i in (3, 1, 2)]
        assert [t.id for t in group_tasks(tasks, NOW).overdue] == [3, 1, 2]

    def test_unparseable_due_goes_to_none(self):
        groups = group_tasks([make_task(1, "not-a-date")], NOW)
        assert groups.ids()["none"] == [1]

    def test_no_truncation(self):
        tasks = [make_task(i, NOW - timedelta(hours=1)) for i in range(50)]
        assert len(group_tasks(tasks, NOW).overdue) == 50

    def test_counts_and_top(self, sample_tasks):
        groups = group_tasks(sample_tasks * 2, NOW)
        assert groups.counts()["overdue"] == 1
        assert list(groups.counts()) == list(BUCKET_ORDER)
        assert groups.top(0)["today"] == []

    def test_empty(self):
        assert group_tasks([], NOW).is_empty()

    def test_unknown_bucket(self):
        with pytest.raises(KeyError):
            group_tasks([], NOW).bucket("someday")

    def test_agrees_with_classifier(self):
        """Bucket membership never contradicts the status classifier."""
        rng = random.Random(1234)
        tasks = []
        for i in range(300):
            due = NOW + timedelta(minutes=rng.randint(-20 * 24 * 60, 20 * 24 * 60))
            tasks.append(make_task(i, due if rng.random() > 0.1 else None))

        groups = group_tasks(tasks, NOW)
        for task in groups.overdue:
            assert classify_task(task, NOW) == UrgencyStatus.OVERDUE
        for task in groups.today:
            assert classify_task(task, NOW) == UrgencyStatus.DUE_TODAY
        for task in groups.none:
            assert classify_task(task, NOW) == UrgencyStatus.NONE
        for task in groups.tomorrow:
            assert classify_task(task, NOW) == UrgencyStatus.DUE_SOON
        assert sum(groups.counts().values()) == len(tasks)


class TestDedupe:
    """Tests for dedupe_tasks()."""

    def test_across_collections(self):
        a = [make_task(1, title="a1"), make_task(2)]
        b = [make_task(2, title="b2"), make_task(3)]
        merged = dedupe_tasks(a, b)
        assert [t.id for t in merged] == [1, 2, 3]
        assert merged[1].title == "Task 2"

    def test_aggregator_group_sources(self):
        aggregator = BucketAggregator(ManualClock(NOW))
        overdue = make_task(1, NOW - timedelta(hours=1))
        groups = aggregator.group_sources([overdue], [make_task(1, NOW + timedelta(days=20))])
        assert groups.overdue == [overdue]
        assert groups.later == []


class TestSortByDueDate:
    """Tests for sort_by_due_date()."""

    def test_ascending_with_undated_last(self):
        tasks = [make_task(1), make_task(2, NOW + timedelta(days=2)), make_task(3, NOW - timedelta(days=1))]
        assert [t.id for t in sort_by_due_date(tasks)] == [3, 2, 1]

    def test_descending_with_undated_last(self):
        tasks = [make_task(1), make_task(2, NOW + timedelta(days=2)), make_task(3, NOW - timedelta(days=1))]
        assert [t.id for t in sort_by_due_date(tasks, "desc")] == [2, 3, 1]

    def test_overdue_first(self):
        tasks = [
            make_task(1, NOW + timedelta(days=1)),
            make_task(2, NOW - timedelta(days=1), status=TaskStatus.DONE),
            make_task(3, NOW - timedelta(hours=2)),
        ]
        assert [t.id for t in sort_by_due_date(tasks, "overdue_first", NOW)] == [3, 2, 1]

    def test_overdue_first_needs_now(self):
        with pytest.raises(ValueError):
            sort_by_due_date([], "overdue_first")

    def test_unknown_direction(self):
        with pytest.raises(ValueError):
            sort_by_due_date([], "sideways")

    def test_accepts_generator(self):
        tasks = (make_task(i, NOW + timedelta(days=i)) for i in (2, 1))
        assert [t.id for t in sort_by_due_date(tasks)] == [1, 2]


class TestDueDateSummary:
    """Tests for compute_due_date_summary()."""

    def test_counts(self, sample_tasks):
        summary = compute_due_date_summary(sample_tasks, NOW)
        assert summary == NotificationSummary(overdue=1, due_today=1, due_soon=2, upcoming=1)

    def test_passed_earlier_today_counts_twice(self):
        """A task due earlier today is both overdue and due today."""
        summary = compute_due_date_summary([make_task(1, NOW - timedelta(hours=2))], NOW)
        assert summary.overdue == 1
        assert summary.due_today == 1

    def test_done_and_undated_ignored(self):
        tasks = [make_task(1), make_task(2, NOW - timedelta(days=1), status=TaskStatus.DONE)]
        assert compute_due_date_summary(tasks, NOW) == NotificationSummary()
