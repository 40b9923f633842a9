"""
Unit tests for the procrastination classifier.
Tests trigger clustering, recovery speed and the avoidance score.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from src.core.config import Thresholds
from src.core.models import (
    AttentionEvent,
    DayEntry,
    HabitRecord,
    MonthData,
    Snapshot,
    WeeklyData,
    WeeklyTask,
)
from src.analytics.habit_stats import HabitProfile, collect_day_records
from src.analytics.procrastination import (
    analyze_procrastination,
    detect_triggers,
    recovery_days,
)


NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)  # Saturday


def event(n, event_type, task_id=None, days_ago=1, text=None):
    return AttentionEvent(
        id=f"e{n}",
        type=event_type,
        occurred_at=NOW - timedelta(days=days_ago),
        task_id=task_id,
        meta={"text": text} if text else None,
    )


@pytest.fixture
def snapshot():
    """A week with two overdue tasks and a history of pushing the gym back."""
    week = WeeklyData(
        week_start_date=date(2026, 3, 9),
        tasks=[
            WeeklyTask("t1", "Reply to email", day_index=0),
            WeeklyTask("t2", "Gym session", day_index=1),
            WeeklyTask("t3", "Pay bill", completed=True, day_index=2),
            WeeklyTask("t4", "Plan next week", day_index=6),
        ],
    )
    events = [
        event(1, "task_deferred", "t2"),
        event(2, "task_deferred", "t2", days_ago=2),
        event(3, "task_skipped", "t2", days_ago=3),
        event(4, "task_skipped", "t1"),
        event(5, "task_skipped", "t1", days_ago=40),
        event(6, "task_skipped", text="buy groceries"),
        event(7, "task_completed", "t3"),
    ]
    return Snapshot(weeks={week.key: week}, events=events)


def month_snapshot(days):
    month = MonthData(
        habits=[HabitRecord("a", "A")],
        days={d: DayEntry({"a"} if done else set()) for d, done in days.items()},
    )
    return Snapshot(months={"2026-03": month})


class TestTriggers:
    """Tests for trigger detection."""

    def test_ranked_by_count(self, snapshot):
        """Events and overdue tasks add up per category."""
        triggers = detect_triggers(snapshot, NOW)
        assert [(t.id, t.count) for t in triggers] == [
            ("fitness-avoidance", 4),
            ("admin-avoidance", 2),
            ("errand-avoidance", 1),
        ]
        assert triggers[0].emoji == "💪"
        assert "4" in triggers[0].description

    def test_limited_to_max_triggers(self, snapshot):
        """Only the top triggers are kept."""
        snapshot.events.append(event(8, "task_skipped", text="write blog post"))
        assert len(detect_triggers(snapshot, NOW)) == 3

    def test_no_events_no_overdue(self):
        assert detect_triggers(Snapshot(), NOW) == []


class TestRecovery:
    """Tests for recovery gaps."""

    def test_gaps_between_misses_and_recovery(self):
        """Each run of missed days is measured to the next good day."""
        snapshot = month_snapshot({1: True, 3: False, 4: True, 5: True, 6: False,
                                   7: True, 8: True, 9: False})
        assert recovery_days(snapshot, date(2026, 3, 10), months=1) == [2, 1, 1]

    def test_open_run_measured_to_today(self):
        """A run not yet recovered counts up to today."""
        snapshot = month_snapshot({1: True})
        assert recovery_days(snapshot, date(2026, 3, 5), months=1) == [3]

    def test_slow_recovery_raises_score(self):
        """A median recovery over two days is slow and adds to the score."""
        slow = month_snapshot({1: True, 7: True, 8: True})
        fast = month_snapshot({d: True for d in range(1, 9)})
        today = datetime(2026, 3, 8, 12, 0, tzinfo=timezone.utc)
        slow_result = analyze_procrastination(
            slow, collect_day_records(slow, today.date(), 1), [], today, months=1)
        fast_result = analyze_procrastination(
            fast, collect_day_records(fast, today.date(), 1), [], today, months=1)
        assert slow_result.recovery_speed == "slow"
        assert slow_result.median_recovery_days == 5.0
        assert fast_result.recovery_speed == "fast"

    def test_median_at_threshold_is_slow(self):
        """Only a median strictly below the threshold counts as fast."""
        snapshot = month_snapshot({1: True, 2: False, 3: False, 4: True})
        today = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)
        records = collect_day_records(snapshot, today.date(), 1)
        at_threshold = analyze_procrastination(snapshot, records, [], today, months=1)
        assert at_threshold.median_recovery_days == 2.0
        assert at_threshold.recovery_speed == "slow"
        above = analyze_procrastination(snapshot, records, [], today, months=1,
                                        thresholds=Thresholds(fast_recovery_below_days=2.5))
        assert above.recovery_speed == "fast"


class TestAnalyzeProcrastination:
    """Tests for the full analysis."""

    def test_score_from_events_and_overdue(self, snapshot):
        """Five recent avoidance events and 2 of 3 tasks overdue score 40."""
        analysis = analyze_procrastination(snapshot, [], [], NOW)
        assert analysis.score == 40
        assert analysis.median_recovery_days is None
        assert analysis.recovery_speed == "fast"

    def test_empty_is_zero(self):
        analysis = analyze_procrastination(Snapshot(), [], [], NOW)
        assert analysis.score == 0
        assert analysis.triggers == []
        assert analysis.worst_days == []

    def test_delayed_items(self):
        """Weak habits at risk are listed as delayed."""
        weak = HabitProfile("h1", "Floss", 20, 0, 2, -10, 0, 3, 40, 70, False)
        fine = HabitProfile("h2", "Read", 90, 5, 9, 0, 1, 2, 90, 5, True)
        analysis = analyze_procrastination(Snapshot(), [], [weak, fine], NOW)
        assert [(d.name, d.avg_delay_days) for d in analysis.delayed_items] == [("Floss", 5)]

    def test_worst_days(self):
        """The lowest-average weekdays are reported."""
        snapshot = month_snapshot({2: True, 3: True, 4: False, 5: True})
        records = collect_day_records(snapshot, date(2026, 3, 5), 1)
        analysis = analyze_procrastination(snapshot, records, [], NOW, months=1)
        assert analysis.worst_days == [2]
