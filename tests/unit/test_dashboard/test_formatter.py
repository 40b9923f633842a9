"""
Unit tests for the formatter module.
Renders to an in-memory Rich console and checks the text output.
"""

import io
import pytest
from datetime import date, datetime, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from rich.console import Console

from src.core.models import DayEntry, HabitRecord, MonthData, Snapshot
from src.analytics.burnout import BurnoutAnalysis, BurnoutFactor
from src.analytics.habit_stats import HabitProfile
from src.analytics.profile import UserBehaviorProfile, build_behavior_profile
from src.coaching.briefing import BriefingInput, generate_daily_briefing
from src.coaching.insights import generate_insights
from src.coaching.interpreter import analyze_task_text
from src.coaching.notifications import SmartNotification
from src.coaching.predictions import generate_enhanced_agenda, predict_completion
from src.dashboard.formatter import CoachFormatter


NOW = datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120, force_terminal=False, color_system=None)


@pytest.fixture
def formatter(console):
    return CoachFormatter(console)


def output(console):
    return console.file.getvalue()


def habit(name, risk):
    return HabitProfile(name.lower(), name, 50, 1, 4, -5, 0, 6, 60, risk, False)


@pytest.fixture
def snapshot():
    habits = [HabitRecord("read", "Read"), HabitRecord("gym", "Gym")]
    days = {d: DayEntry(completed_habits={"read"} if d % 3 else {"read", "gym"}, mood=6)
            for d in range(1, 14)}
    return Snapshot(months={"2026-03": MonthData(habits=habits, days=days)})


class TestRenderProfile:
    """Tests for profile rendering"""

    def test_empty_state(self, formatter, console):
        formatter.render_profile(UserBehaviorProfile(as_of=date(2026, 3, 14)))
        assert "No records yet" in output(console)

    def test_full_profile(self, formatter, console, snapshot):
        profile = build_behavior_profile(snapshot, now=NOW)
        formatter.render_profile(profile, verbose=True)
        text = output(console)
        assert "Behaviour Profile" in text
        assert "Saturday, March 14, 2026" in text
        assert "Habits (2)" in text
        assert "Burnout" in text
        assert "Focus" in text
        assert "Procrastination" in text

    def test_habit_table_riskiest_first(self, formatter, console):
        console.print(formatter.format_habit_table([habit("Calm", 10), habit("Shaky", 75)]))
        text = output(console)
        assert text.index("Shaky") < text.index("Calm")
        assert "▼ 5" in text

    def test_burnout_panel(self, formatter, console):
        profile = UserBehaviorProfile(
            as_of=date(2026, 3, 14),
            burnout_analysis=BurnoutAnalysis(
                risk_level=62, stage="warning", trend="increasing", days_until_critical=3,
                factors=[BurnoutFactor("Declining mood", 25, "😞", "Mood dropped 3.0 points")],
                recovery_actions=["Take a rest day"],
            ),
        )
        console.print(formatter.format_burnout(profile))
        text = output(console)
        assert "Warning" in text
        assert "risk 62/100" in text
        assert "~3d to critical" in text
        assert "Take a rest day" in text

    def test_no_routines_or_patterns(self, formatter):
        profile = UserBehaviorProfile(as_of=date(2026, 3, 14))
        assert formatter.format_routines(profile) is None
        assert formatter.format_patterns(profile) is None


class TestRenderOther:
    """Tests for insights, briefing, parse and answers"""

    def test_insights(self, formatter, console, snapshot):
        profile = build_behavior_profile(snapshot, now=NOW)
        formatter.render_insights(generate_insights(profile, snapshot, NOW))
        text = output(console)
        assert "Good morning" in text
        assert "Plan your week" in text

    def test_briefing(self, formatter, console):
        data = BriefingInput(
            greeting="Good morning!", streak=3, today_progress=50, agenda_count=2,
            completed_today=1, total_habits=2, remaining_habits=["Gym"],
            week_tasks=[], today_index=5,
        )
        briefing = generate_daily_briefing(data, now=NOW)
        formatter.render_briefing(briefing)
        text = output(console)
        assert "Your Attention Report" in text
        assert "50%" in text
        assert briefing.signature_line in text

    def test_parse(self, formatter, console):
        formatter.render_parse(*analyze_task_text("Gym workout tomorrow at 7am", NOW))
        text = output(console)
        assert "Gym workout" in text
        assert "fitness" in text
        assert "7:00 AM" in text
        assert "2026-W11 day 6" in text

    def test_answer(self, formatter, console):
        formatter.render_answer("**Hello** there")
        assert "Hello there" in output(console)


class TestRenderPlanning:
    """Tests for predictions, the agenda and notifications"""

    def test_prediction(self, formatter, console, snapshot):
        _, task = analyze_task_text("Gym workout", NOW)
        formatter.render_prediction("Gym workout", predict_completion(task, snapshot, NOW))
        text = output(console)
        assert "Gym workout" in text
        assert "Tomorrow" in text
        assert "Good time for this type of task" in text

    def test_agenda(self, formatter, console, snapshot):
        formatter.render_agenda(generate_enhanced_agenda(snapshot, NOW))
        text = output(console)
        assert "Today's Agenda" in text
        assert "Gym" in text
        assert "Peak window: 9 AM to 12 PM" in text

    def test_empty_agenda(self, formatter, console):
        formatter.render_agenda(generate_enhanced_agenda(Snapshot(), NOW))
        assert "Nothing on the agenda today." in output(console)

    def test_notifications(self, formatter, console):
        notification = SmartNotification(
            id="midday-push-14", type="nudge", priority="medium", title="Halfway through the day",
            message="You're at 33%", emoji="☀️", generated_at=NOW, source="Midday progress check",
            action={"label": "Go to Tracker", "route": "/tracker"},
        )
        formatter.render_notifications([notification])
        text = output(console)
        assert "Halfway through the day" in text
        assert "→ Go to Tracker" in text
        assert "midday-push-14" in text

    def test_no_notifications(self, formatter, console):
        formatter.render_notifications([])
        assert "No notifications right now." in output(console)
