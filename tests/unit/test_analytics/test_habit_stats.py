"""
Unit tests for the habit statistics builder.
Tests streaks, per-habit metrics and user-level aggregates.
"""

import pytest
from datetime import date, timedelta

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from src.core.models import DayEntry, HabitRecord, MonthData, Snapshot, WeeklyData, WeeklyTask
from src.analytics.habit_stats import (
    build_habit_profiles,
    calculate_abandonment_risk,
    calculate_consistency,
    calculate_streak,
    calculate_trend,
    collect_day_records,
    find_peak_days,
    longest_run,
    month_completion_rate,
    mood_productivity_correlation,
    perfect_days,
    productivity_score,
    summarize_mood,
    weekday_weekend_gap,
    weekly_task_rate,
)


TODAY = date(2026, 3, 14)  # Saturday


def make_month(habit_ids, days, mood=5):
    """MonthData with habits named after their ids and the given check-ins."""
    return MonthData(
        habits=[HabitRecord(h, h.title()) for h in habit_ids],
        days={d: DayEntry(set(done), mood, mood) for d, done in days.items()},
    )


def snapshot_of(month, key="2026-03"):
    return Snapshot(months={key: month})


class TestStreak:
    """Tests for the overall streak."""

    def test_full_days_count(self):
        """Every qualifying day up to today counts."""
        month = make_month(["a", "b"], {d: ["a", "b"] for d in range(1, 15)})
        assert calculate_streak(snapshot_of(month), TODAY) == 14

    def test_half_completion_qualifies(self):
        """A day at exactly 50% keeps the streak."""
        month = make_month(["a", "b"], {13: ["a"], 14: ["a", "b"]})
        assert calculate_streak(snapshot_of(month), TODAY) == 2

    def test_missing_today_is_skipped(self):
        """Today without an entry does not break the streak."""
        month = make_month(["a"], {12: ["a"], 13: ["a"]})
        assert calculate_streak(snapshot_of(month), TODAY) == 2

    def test_missing_earlier_day_breaks(self):
        """A missing day before today breaks the streak."""
        month = make_month(["a"], {11: ["a"], 13: ["a"], 14: ["a"]})
        assert calculate_streak(snapshot_of(month), TODAY) == 2

    def test_low_today_breaks(self):
        """A recorded day below the threshold ends the streak at zero."""
        month = make_month(["a", "b", "c"], {13: ["a", "b", "c"], 14: ["a"]})
        assert calculate_streak(snapshot_of(month), TODAY) == 0

    def test_streak_crosses_month_boundary(self):
        """The walk continues into the previous month."""
        feb = make_month(["a"], {27: ["a"], 28: ["a"]})
        mar = make_month(["a"], {1: ["a"], 2: ["a"]})
        snapshot = Snapshot(months={"2026-02": feb, "2026-03": mar})
        assert calculate_streak(snapshot, date(2026, 3, 2)) == 4

    def test_injected_misses_never_lengthen(self):
        """Adding misses can only shorten the streak."""
        month = make_month(["a"], {d: ["a"] for d in range(1, 15)})
        previous = calculate_streak(snapshot_of(month), TODAY)
        for miss in (3, 9, 12, 14):
            month.days[miss] = DayEntry(set())
            current = calculate_streak(snapshot_of(month), TODAY)
            assert current <= previous
            previous = current
        assert previous == 0

    def test_empty_snapshot(self):
        """No records means no streak."""
        assert calculate_streak(Snapshot(), TODAY) == 0


class TestHabitMetrics:
    """Tests for per-habit metric helpers."""

    def test_zero_elapsed_days(self):
        """With no elapsed days completion and risk are zero."""
        month = make_month(["a"], {})
        assert month_completion_rate(month, "a", 0) == 0
        assert calculate_abandonment_risk(0, -50, 30, 0) == 0

    def test_completion_rate_over_elapsed(self):
        """Completion counts days done over elapsed days."""
        month = make_month(["a"], {1: ["a"], 2: [], 3: ["a"]})
        assert month_completion_rate(month, "a", 4) == 50

    def test_trend(self):
        """Trend compares the last 7 days to the 7 before them."""
        assert calculate_trend([False] * 7 + [True] * 7) == 100
        assert calculate_trend([True] * 7 + [False] * 7) == -100
        assert calculate_trend([True] * 7) == 0

    def test_consistency(self):
        """Steady weeks score high; short histories are neutral."""
        assert calculate_consistency([True] * 14) == 100
        assert calculate_consistency([True] * 6) == 50
        assert calculate_consistency([False] * 21) == 0
        assert calculate_consistency([True, False] * 7) < 100

    def test_risk_is_monotonic(self):
        """Risk never decreases as inputs worsen."""
        base = calculate_abandonment_risk(60, 0, 1, 14)
        assert calculate_abandonment_risk(40, 0, 1, 14) >= base
        assert calculate_abandonment_risk(60, -20, 1, 14) >= base
        assert calculate_abandonment_risk(60, 0, 6, 14) >= base

    def test_risk_is_capped(self):
        """Risk stays within 0-100."""
        assert calculate_abandonment_risk(0, -100, 60, 30) == 100
        assert calculate_abandonment_risk(100, 50, 0, 30) == 0

    def test_longest_run(self):
        assert longest_run([True, True, False, True, True, True, False]) == 3
        assert longest_run([]) == 0


class TestHabitProfiles:
    """Tests for build_habit_profiles."""

    @pytest.fixture
    def snapshot(self):
        # 'read' every day, 'gym' only on the first five days, 'walk' with 'read' on even days
        days = {}
        for d in range(1, 15):
            done = ["read"]
            if d <= 5:
                done.append("gym")
            if d % 2 == 0:
                done.append("walk")
            days[d] = done
        return snapshot_of(make_month(["read", "gym", "walk"], days))

    def test_profiles_in_habit_order(self, snapshot):
        """One profile per current-month habit."""
        profiles = build_habit_profiles(snapshot, TODAY)
        assert [p.habit_id for p in profiles] == ["read", "gym", "walk"]

    def test_completion_and_gap(self, snapshot):
        """Completion and days since last completion reflect check-ins."""
        read, gym, _ = build_habit_profiles(snapshot, TODAY)
        assert read.completion_rate == 100
        assert read.days_since_last_completion == 0
        assert gym.completion_rate == 36
        assert gym.days_since_last_completion == 9
        assert gym.abandonment_risk > read.abandonment_risk

    def test_automatic_habit(self, snapshot):
        """A habit done every day is automatic."""
        read, gym, _ = build_habit_profiles(snapshot, TODAY)
        assert read.is_automatic
        assert not gym.is_automatic

    def test_weak_co_completion_not_reported(self, snapshot):
        """Half overlap is below the correlation threshold."""
        read, _, walk = build_habit_profiles(snapshot, TODAY)
        assert read.correlated_habits == []
        assert walk.correlated_habits == []

    def test_correlated_habits(self):
        """Habits done together on most days are paired."""
        days = {d: ["tea", "journal"] for d in range(1, 11)}
        days[11] = ["journal"]
        tea, journal = build_habit_profiles(snapshot_of(make_month(["tea", "journal"], days)), TODAY)
        assert [(c.habit_id, c.correlation) for c in tea.correlated_habits] == [("journal", 91)]
        assert journal.correlated_habits[0].habit_id == "tea"

    def test_shared_overall_streak(self, snapshot):
        """Every profile carries the overall streak."""
        profiles = build_habit_profiles(snapshot, TODAY)
        assert {p.current_streak for p in profiles} == {calculate_streak(snapshot, TODAY)}

    def test_no_habits(self):
        """An empty month has no profiles."""
        assert build_habit_profiles(Snapshot(), TODAY) == []


class TestAggregates:
    """Tests for user-level aggregates."""

    def test_records_skip_days_without_entries(self):
        """Only recorded days become records."""
        month = make_month(["a"], {1: ["a"], 5: []})
        records = collect_day_records(snapshot_of(month), TODAY, months=1)
        assert [r.day.day for r in records] == [1, 5]
        assert [r.completion_rate for r in records] == [100.0, 0.0]

    def test_weekday_weekend_gap(self):
        """Weekdays done and weekends skipped gives a 100 point gap."""
        # March 2026: the 7th and 8th are a weekend
        days = {d: (["a"] if d not in (7, 8) else []) for d in range(2, 9)}
        records = collect_day_records(snapshot_of(make_month(["a"], days)), TODAY, months=1)
        assert weekday_weekend_gap(records) == 100
        assert find_peak_days(records) == [0, 1, 2, 3, 4]

    def test_peak_days_empty_without_completions(self):
        assert find_peak_days([]) == []

    def test_mood_summary_defaults(self):
        """No records gives neutral mood."""
        summary = summarize_mood([])
        assert summary.avg_mood == 5.0
        assert summary.mood_trend == 0.0

    def test_mood_trend_over_two_weeks(self):
        """Trend compares the last week of moods to the one before."""
        month = MonthData(
            habits=[HabitRecord("a", "A")],
            days={d: DayEntry({"a"}, mood=8 if d <= 7 else 4, motivation=6) for d in range(1, 15)},
        )
        summary = summarize_mood(collect_day_records(snapshot_of(month), TODAY, months=1))
        assert summary.avg_mood == 6.0
        assert summary.mood_trend == -4.0
        assert summary.low_mood_days == 7
        assert summary.high_mood_days == 7

    def test_correlation_needs_five_days(self):
        month = make_month(["a"], {1: ["a"], 2: []})
        records = collect_day_records(snapshot_of(month), TODAY, months=1)
        assert mood_productivity_correlation(records) == 0.0

    def test_correlation_positive(self):
        """Higher mood on done days gives a positive correlation."""
        month = MonthData(
            habits=[HabitRecord("a", "A")],
            days={d: DayEntry({"a"} if d % 2 else set(), mood=8 if d % 2 else 3) for d in range(1, 11)},
        )
        records = collect_day_records(snapshot_of(month), TODAY, months=1)
        assert mood_productivity_correlation(records) == 1.0

    def test_productivity_and_perfect_days(self):
        """Productivity averages recorded days; perfect days count full ones."""
        month = make_month(["a", "b"], {1: ["a", "b"], 2: ["a"], 4: ["a", "b"]})
        assert productivity_score(month, 14) == 83
        assert perfect_days(month, 14) == (2, 10)
        assert perfect_days(make_month(["a"], {}), 14) == (0, -1)

    def test_weekly_task_rate(self):
        """Task rate spans the current and two previous weeks."""
        this_week = WeeklyData(week_start_date=date(2026, 3, 9),
                               tasks=[WeeklyTask("1", "x", True), WeeklyTask("2", "y")])
        last_week = WeeklyData(week_start_date=date(2026, 3, 2),
                               tasks=[WeeklyTask("3", "z", True)])
        old = WeeklyData(week_start_date=date(2026, 2, 16), tasks=[WeeklyTask("4", "w")])
        snapshot = Snapshot(weeks={w.key: w for w in (this_week, last_week, old)})
        assert weekly_task_rate(snapshot, TODAY) == 67
        assert weekly_task_rate(Snapshot(), TODAY) == 0
