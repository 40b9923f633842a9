"""
Unit tests for the insight generator.
"""

import pytest
from datetime import date, datetime, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from src.core.models import DayEntry, HabitRecord, MonthData, Snapshot, WeeklyData, WeeklyTask
from src.analytics.profile import UserBehaviorProfile
from src.coaching.insights import generate_insights, greeting_for, weekday_weekend_split


def at(day, hour=10):
    return datetime(2026, 3, day, hour, 0, tzinfo=timezone.utc)


def profile_for(now, streak=0):
    return UserBehaviorProfile(as_of=now.date(), has_data=True, current_streak=streak)


def habits(*names):
    return [HabitRecord(n.lower(), n) for n in names]


def month_snapshot(month, week=None):
    weeks = {week.key: week} if week is not None else {}
    return Snapshot(months={"2026-03": month}, weeks=weeks)


def ids(report):
    return [i.id for i in report.insights]


class TestGreeting:
    """Tests for greeting_for"""

    def test_hours(self):
        assert greeting_for(8).startswith("Good morning")
        assert greeting_for(12).startswith("Good afternoon")
        assert greeting_for(17).startswith("Good evening")
        assert greeting_for(23).startswith("Winding down")


class TestGenerateInsights:
    """Tests for generate_insights"""

    def test_empty_profile(self):
        """No records yields only a greeting."""
        now = at(14)
        report = generate_insights(UserBehaviorProfile(as_of=now.date()), Snapshot(), now)
        assert report.insights == []
        assert report.daily_plan == []
        assert report.greeting == greeting_for(10)

    def test_no_habits_onboarding(self):
        now = at(14)
        week = WeeklyData(week_start_date=date(2026, 3, 9),
                          tasks=[WeeklyTask("t1", "Pay rent")])
        report = generate_insights(profile_for(now), month_snapshot(MonthData(), week), now)
        assert "no-habits" in ids(report)
        assert "plan-week" not in ids(report)

    def test_almost_done(self):
        """Fires with one to three habits left and offers reschedules."""
        now = at(14)
        month = MonthData(habits=habits("Read", "Gym", "Walk", "Floss", "Stretch"),
                          days={14: DayEntry(completed_habits={"read", "gym"})})
        report = generate_insights(profile_for(now), month_snapshot(month), now)
        almost = next(i for i in report.insights if i.id == "almost-done")
        assert almost.message.startswith("Just 3 habits left today")
        assert [a.type for a in almost.actions] == ["reschedule"] * 3 + ["create_minimum"]
        assert almost.actions[0].payload == {"habit_id": "walk", "habit_name": "Walk",
                                             "target_day": "tomorrow"}

    def test_almost_done_not_with_four_left(self):
        now = at(14)
        month = MonthData(habits=habits("Read", "Gym", "Walk", "Floss", "Stretch"),
                          days={14: DayEntry(completed_habits={"read"})})
        report = generate_insights(profile_for(now), month_snapshot(month), now)
        assert "almost-done" not in ids(report)
        assert report.daily_plan[0] == "Complete remaining habits: Gym, Walk, Floss (+1 more)"

    def test_almost_done_not_when_finished(self):
        now = at(14)
        month = MonthData(habits=habits("Read"), days={14: DayEntry(completed_habits={"read"})})
        report = generate_insights(profile_for(now), month_snapshot(month), now)
        assert "almost-done" not in ids(report)
        assert report.today_score == 100

    @pytest.mark.parametrize("streak,expected", [(7, "streak-fire"), (3, "streak-building")])
    def test_streak(self, streak, expected):
        now = at(14)
        month = MonthData(habits=habits("Read"))
        report = generate_insights(profile_for(now, streak), month_snapshot(month), now)
        assert expected in ids(report)
        assert report.streak == streak

    def test_mood_declining(self):
        now = at(14)
        days = {d: DayEntry(mood=m) for d, m in zip(range(8, 15), [8, 8, 7, 7, 6, 6, 5])}
        month = MonthData(habits=habits("Read"), days=days)
        report = generate_insights(profile_for(now), month_snapshot(month), now)
        mood = next(i for i in report.insights if i.id == "mood-declining")
        assert mood.type == "warning"
        assert {a.type for a in mood.actions} == {"lower_difficulty", "focus_mode"}

    def test_weak_and_best_habit(self):
        now = at(10)
        days = {d: DayEntry(completed_habits={"read"} | ({"gym"} if d == 1 else set()))
                for d in range(1, 11)}
        month = MonthData(habits=habits("Read", "Gym"), days=days)
        report = generate_insights(profile_for(now), month_snapshot(month), now)
        weak = next(i for i in report.insights if i.id == "weak-habit")
        assert '"Gym" is at 10%' in weak.message
        assert [a.type for a in weak.actions] == ["lower_difficulty", "create_minimum", "dismiss_habit"]
        best = next(i for i in report.insights if i.id == "best-habit")
        assert '"Read" is at 100%' in best.message

    def test_weekend_slump_needs_two_weeks(self):
        """The weekend comparison waits until day 14."""
        # March 2026 starts on a Sunday; weekend days 1, 7, 8, 14
        weekend = {1, 7, 8, 14}
        days = {d: DayEntry(completed_habits=set() if d in weekend else {"read"})
                for d in range(1, 15)}
        month = MonthData(habits=habits("Read"), days=days)
        snapshot = month_snapshot(month)

        assert weekday_weekend_split(month, 2026, 3, 14) == (100, 0)
        assert "weekend-drop" not in ids(generate_insights(profile_for(at(13)), snapshot, at(13)))
        assert "weekend-drop" in ids(generate_insights(profile_for(at(14)), snapshot, at(14)))

    def test_weekly_plan(self):
        now = at(14)
        month = MonthData(habits=habits("Read"))
        assert "plan-week" in ids(generate_insights(profile_for(now), month_snapshot(month), now))

        week = WeeklyData(week_start_date=date(2026, 3, 9), tasks=[
            WeeklyTask(str(i), f"Task {i}", completed=True) for i in range(4)
        ] + [WeeklyTask("4", "Task 4")])
        report = generate_insights(profile_for(now), month_snapshot(month, week), now)
        crushing = next(i for i in report.insights if i.id == "weekly-crushing")
        assert crushing.message.startswith("4/5 weekly tasks done (80%)")

    def test_rule_order(self):
        """Insights come out in rule order."""
        now = at(14)
        month = MonthData(habits=habits("Read", "Gym"), days={14: DayEntry(completed_habits={"read"})})
        report = generate_insights(profile_for(now, streak=8), month_snapshot(month), now)
        assert ids(report)[:2] == ["almost-done", "streak-fire"]
        assert ids(report)[-1] == "plan-week"

    def test_daily_plan_evening(self):
        now = at(14, hour=21)
        month = MonthData(habits=habits("Read"), days={14: DayEntry(mood=3)})
        report = generate_insights(profile_for(now), month_snapshot(month), now)
        assert report.daily_plan == [
            "Complete remaining habits: Read",
            "Review today and plan tomorrow",
            "Take a 10-minute break to recharge",
        ]
