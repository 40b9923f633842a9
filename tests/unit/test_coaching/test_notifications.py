"""
Unit tests for the smart notification engine.
"""

from datetime import date, datetime, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from src.core.models import DayEntry, HabitRecord, MonthData, Snapshot, WeeklyData, WeeklyTask
from src.analytics.habit_stats import CorrelatedHabit, HabitProfile
from src.analytics.patterns import Recommendation
from src.analytics.profile import UserBehaviorProfile
from src.coaching.notifications import find_easiest_habit, generate_smart_notifications


def at(day, hour):
    """March 2026; the 10th is a Tuesday."""
    return datetime(2026, 3, day, hour, 0, tzinfo=timezone.utc)


def habit(name, completion=80, streak=3, risk=10, trend=0, correlated=None):
    return HabitProfile(
        habit_id=name.lower(),
        habit_name=name,
        completion_rate=completion,
        current_streak=streak,
        longest_streak=streak,
        trend=trend,
        best_day_of_week=0,
        worst_day_of_week=6,
        consistency_score=70,
        abandonment_risk=risk,
        is_automatic=False,
        correlated_habits=correlated or [],
    )


def profile_for(now, **overrides):
    return UserBehaviorProfile(as_of=now.date(), has_data=True, **overrides)


def month_snapshot(month, week=None):
    weeks = {week.key: week} if week is not None else {}
    return Snapshot(months={"2026-03": month}, weeks=weeks)


def two_habits(**days):
    return MonthData(habits=[HabitRecord("a", "A"), HabitRecord("b", "B")],
                     days={int(d[1:]): e for d, e in days.items()})


def ids(notifications):
    return [n.id for n in notifications]


class TestFindEasiestHabit:
    """Tests for find_easiest_habit"""

    def test_highest_completion_first_on_ties(self):
        habits = [habit("Read", 60), habit("Gym", 85), habit("Walk", 85)]
        assert find_easiest_habit(habits).habit_name == "Gym"

    def test_no_habits(self):
        assert find_easiest_habit([]) is None


class TestTimeAwareNudges:
    """Tests for the hour-gated rules."""

    def test_morning_kickstart(self):
        """Before the first check-in, suggest the most consistent habit."""
        now = at(10, 7)
        profile = profile_for(now, habit_profiles=[habit("Read", 60), habit("Gym", 85)])
        notifications = generate_smart_notifications(profile, month_snapshot(two_habits()), now)
        assert ids(notifications) == ["morning-start-10"]
        assert notifications[0].message == (
            'Begin with "Gym", your most consistent habit at 85%. One check starts the momentum.')
        assert notifications[0].action == {"label": "Go to Tracker", "route": "/tracker"}

    def test_no_kickstart_after_first_check(self):
        now = at(10, 7)
        profile = profile_for(now, habit_profiles=[habit("Gym", 85)])
        month = two_habits(d10=DayEntry({"a"}))
        assert generate_smart_notifications(profile, month_snapshot(month), now) == []

    def test_midday_push(self):
        now = at(10, 12)
        month = MonthData(habits=[HabitRecord("a", "A"), HabitRecord("b", "B"), HabitRecord("c", "C")],
                          days={10: DayEntry({"a"})})
        notifications = generate_smart_notifications(profile_for(now), month_snapshot(month), now)
        assert ids(notifications) == ["midday-push-10"]
        assert notifications[0].message.startswith("You're at 33%, 2 habits to go.")
        assert notifications[0].auto_dismiss_seconds == 300

    def test_evening_perfect_day_and_mood_reminder(self):
        """A perfect day with untouched mood sliders gets both evening notes."""
        now = at(10, 20)
        month = two_habits(d10=DayEntry({"a", "b"}))
        notifications = generate_smart_notifications(
            profile_for(now, perfect_days_this_month=4), month_snapshot(month), now)
        assert ids(notifications) == ["perfect-day-10", "mood-reminder-10"]
        assert "4 perfect days" in notifications[0].message

    def test_logged_mood_skips_reminder(self):
        now = at(10, 20)
        month = two_habits(d10=DayEntry({"a"}, mood=7))
        assert generate_smart_notifications(profile_for(now), month_snapshot(month), now) == []


class TestSignalRules:
    """Tests for streak, habit, mood and recommendation rules."""

    def profile(self, now, **overrides):
        read = habit("Read", streak=7)
        gym = habit("Gym", completion=40, streak=5, risk=65, trend=-10,
                    correlated=[CorrelatedHabit("read", "Read", 75)])
        rec = Recommendation("focus-at-risk", "high", "Save your habits", "Focus on Gym",
                             "habit_focus", "🎯", "Gym risk 65%")
        values = dict(habit_profiles=[read, gym], mood_trend=-2.0, avg_mood=8.0,
                      productivity_score=75, recommendations=[rec])
        values.update(overrides)
        return profile_for(now, **values)

    def test_priority_order_and_cap(self):
        """Urgent first, rule order within a priority, at most five."""
        now = at(10, 17)
        notifications = generate_smart_notifications(self.profile(now), month_snapshot(two_habits()), now)
        assert ids(notifications) == [
            "streak-risk-10",
            "streak-milestone-7-read",
            "at-risk-gym-10",
            "mood-declining-10",
            "insight-focus-at-risk-10",
        ]
        at_risk = notifications[2]
        assert at_risk.message == (
            "This habit is at risk of being dropped (40% this month, trending down). "
            'Try doing it right after "Read", they pair well together.')
        assert at_risk.source == "Abandonment risk: 65%"
        assert notifications[0].message.startswith("Your 6-day average streak")

    def test_dismissed_ids_are_skipped(self):
        """Dismissing one lets the next notification in."""
        now = at(10, 17)
        notifications = generate_smart_notifications(
            self.profile(now), month_snapshot(two_habits()), now, dismissed={"streak-risk-10"})
        assert "streak-risk-10" not in ids(notifications)
        assert ids(notifications)[-1] == "peak-performance-10"

    def test_daily_challenge_skips_hopeless_habits(self):
        """The challenge picks the weakest habit that is not about to be dropped."""
        now = at(10, 10)
        profile = profile_for(now, habit_profiles=[
            habit("Gym", completion=30, risk=50),
            habit("Walk", completion=20, risk=80),
            habit("Yoga", completion=45),
        ])
        notifications = generate_smart_notifications(profile, month_snapshot(two_habits()), now)
        challenge = next(n for n in notifications if n.id == "daily-challenge-10")
        assert '"Gym"' in challenge.message
        assert "at-risk-walk-10" in ids(notifications)


class TestWeeklyRules:
    """Tests for weekend and weekly planning rules."""

    def test_sunday_evening(self):
        """Sunday evening brings the weekend plan and a next-week reminder."""
        now = at(15, 19)
        profile = profile_for(now, weekday_weekend_gap=25)
        notifications = generate_smart_notifications(profile, Snapshot(), now)
        assert ids(notifications) == [
            "weekend-guide-15",
            "plan-next-week-2026-W12",
            "mood-reminder-15",
        ]

    def test_next_week_already_planned(self):
        now = at(15, 19)
        week = WeeklyData(week_start_date=date(2026, 3, 16), tasks=[WeeklyTask("t1", "Gym")])
        notifications = generate_smart_notifications(
            profile_for(now), Snapshot(weeks={week.key: week}), now)
        assert not any(n.id.startswith("plan-next-week") for n in notifications)

    def test_overdue_tasks_midweek(self):
        now = at(12, 15)
        week = WeeklyData(
            week_start_date=date(2026, 3, 9),
            tasks=[
                WeeklyTask("t1", "Email Sam", day_index=0),
                WeeklyTask("t2", "Pay rent", day_index=1),
                WeeklyTask("t3", "Groceries", day_index=2),
                WeeklyTask("t4", "Dentist", completed=True, day_index=0),
            ],
        )
        notifications = generate_smart_notifications(
            profile_for(now), Snapshot(weeks={week.key: week}), now)
        assert ids(notifications) == ["overdue-tasks-2026-W11-12"]
        assert notifications[0].title == "3 overdue tasks"


class TestGenerateSmartNotifications:
    """Tests for the entry point."""

    def test_empty_profile(self):
        now = at(15, 19)
        assert generate_smart_notifications(UserBehaviorProfile(as_of=now.date()), Snapshot(), now) == []

    def test_to_dict(self):
        now = at(10, 12)
        month = MonthData(habits=[HabitRecord("a", "A"), HabitRecord("b", "B"), HabitRecord("c", "C")],
                          days={10: DayEntry({"a"})})
        data = generate_smart_notifications(profile_for(now), month_snapshot(month), now)[0].to_dict()
        assert data["generated_at"] == "2026-03-10T12:00:00+00:00"
        assert data["priority"] == "medium"
