"""
Unit tests for the daily briefing and avoidance scorer.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from src.core.models import AttentionEvent, DayEntry, HabitRecord, MonthData, Snapshot, WeeklyData, WeeklyTask
from src.analytics.profile import UserBehaviorProfile
from src.coaching.briefing import (
    BriefingInput,
    avoidance_score,
    briefing_input_for,
    build_cards,
    generate_daily_briefing,
    select_moved_up,
    vibe_tag,
)
from src.coaching.personas import get_persona


# Friday
NOW = datetime(2026, 3, 13, 9, 0, tzinfo=timezone.utc)


def deferred(task_id, days_ago, n=1):
    return [
        AttentionEvent(f"{task_id}-{i}", "task_deferred", NOW - timedelta(days=days_ago), task_id=task_id)
        for i in range(n)
    ]


def make_input(tasks, events=None, **overrides):
    values = dict(
        greeting="Good morning! Let's make today count.",
        streak=0,
        today_progress=0,
        agenda_count=len(tasks),
        completed_today=0,
        total_habits=0,
        remaining_habits=[],
        week_tasks=tasks,
        today_index=4,
        events=events or [],
    )
    values.update(overrides)
    return BriefingInput(**values)


class TestAvoidanceScore:
    """Tests for avoidance_score"""

    def test_weights(self):
        assert avoidance_score(2, 0, 3) == pytest.approx(5.45)
        assert avoidance_score(1, 1, 0) == pytest.approx(4.4)
        assert avoidance_score(0, 0, 10) == pytest.approx(3.5)

    def test_age_clamped(self):
        assert avoidance_score(0, 0, 30) == pytest.approx(14 * 0.35)
        assert avoidance_score(0, 0, -3) == 0


class TestSelectMovedUp:
    """Tests for picking the most avoided task"""

    def test_deferrals_beat_age(self):
        tasks = [WeeklyTask("t1", "Pay rent", day_index=0), WeeklyTask("t2", "Call bank", day_index=2)]
        data = make_input(tasks, deferred("t2", 2, n=2))
        moved = select_moved_up(data, get_persona(None).style, NOW)
        assert moved.task_id == "t2"
        assert moved.score == pytest.approx(5.1)
        assert moved.reason == "Deferred 2x. Ten minutes. No negotiation."

    def test_old_events_ignored(self):
        tasks = [WeeklyTask("t1", "Pay rent", day_index=0), WeeklyTask("t2", "Call bank", day_index=2)]
        data = make_input(tasks, deferred("t2", 40, n=3))
        assert select_moved_up(data, get_persona(None).style, NOW).task_id == "t1"

    def test_tie_keeps_first(self):
        tasks = [WeeklyTask("a", "First", day_index=1), WeeklyTask("b", "Second", day_index=1)]
        moved = select_moved_up(make_input(tasks), get_persona(None).style, NOW)
        assert moved.task_id == "a"

    def test_completed_and_future_excluded(self):
        tasks = [WeeklyTask("a", "Done", completed=True, day_index=0),
                 WeeklyTask("b", "Later", day_index=6)]
        assert select_moved_up(make_input(tasks), get_persona(None).style, NOW) is None

    def test_persona_reason(self):
        tasks = [WeeklyTask("a", "Taxes", day_index=0)]
        data = make_input(tasks, deferred("a", 1))
        assert select_moved_up(data, get_persona("tough_coach").style, NOW).reason == "Deferred 1x. No more."
        assert select_moved_up(data, get_persona("zen").style, NOW).reason == \
            "You've pushed this 1 time. Just ten minutes."


class TestCardsAndVibe:
    """Tests for cards and vibe tags"""

    def test_cards(self):
        cards = build_cards(75, 3, 7)
        assert [(c.label, c.value, c.tone) for c in cards] == [
            ("Today", "75%", "good"), ("Agenda", "3", "neutral"), ("Streak", "7d", "good"),
        ]
        assert build_cards(10, 0, 0)[2].value == "0"
        assert build_cards(10, 0, 0)[2].tone == "warning"

    def test_vibe_tag(self):
        assert vibe_tag(7, 0, 0) == "Momentum: 🔥"
        assert vibe_tag(0, 70, 0) == "Locked in: 🎯"
        assert vibe_tag(0, 10, 6) == "Loaded: ⚡"
        assert vibe_tag(0, 10, 2) == "Building: 🧠"
        assert vibe_tag(0, 0, 0) == "Fresh start: ✨"


class TestGenerateDailyBriefing:
    """Tests for generate_daily_briefing"""

    def test_deterministic(self):
        tasks = [WeeklyTask("a", "Taxes", day_index=0)]
        data = make_input(tasks, deferred("a", 1), streak=4, today_progress=50)
        first = generate_daily_briefing(data, get_persona("chaos"), NOW)
        second = generate_daily_briefing(data, get_persona("chaos"), NOW)
        assert first == second

    def test_catchphrase_and_signature(self):
        data = make_input([], streak=2, today_progress=40, agenda_count=3)
        persona = get_persona("zen")
        briefing = generate_daily_briefing(data, persona, NOW)
        catchphrase = persona.catchphrases[(40 + 2 + 3) % len(persona.catchphrases)]
        assert catchphrase in briefing.narration_text
        assert briefing.signature_line in persona.signature_lines
        assert briefing.signature_line in briefing.narration_text
        assert briefing.persona_id == "zen"

    def test_title_and_moved_up_line(self):
        tasks = [WeeklyTask("a", "Taxes", day_index=0)]
        data = make_input(tasks, deferred("a", 1), streak=4)
        briefing = generate_daily_briefing(data, now=NOW)
        assert briefing.title == "Good morning! Let's make today count."
        assert briefing.headline == "Your Attention Report 🎬"
        assert briefing.moved_up.title == "Taxes"
        assert briefing.one_liner == '4-day streak, but "Taxes" is still dodging me.'
        assert briefing.narration_text.endswith("Start with ten minutes.")

    def test_empty_day(self):
        data = make_input([], agenda_count=0)
        briefing = generate_daily_briefing(data, get_persona("zen"), NOW)
        assert briefing.moved_up is None
        assert briefing.one_liner == "Fresh day. No pressure. Just start."
        assert briefing.vibe_tag == "Fresh start: ✨"


class TestBriefingInput:
    """Tests for collecting briefing numbers"""

    def test_from_snapshot(self):
        month = MonthData(
            habits=[HabitRecord("read", "Read"), HabitRecord("gym", "Gym")],
            days={13: DayEntry(completed_habits={"read"})},
        )
        week = WeeklyData(week_start_date=date(2026, 3, 9), tasks=[
            WeeklyTask("t1", "Pay rent", day_index=1),
            WeeklyTask("t2", "Dentist", day_index=6),
        ])
        snapshot = Snapshot(months={"2026-03": month}, weeks={week.key: week})
        profile = UserBehaviorProfile(as_of=date(2026, 3, 13), has_data=True, current_streak=5)

        data = briefing_input_for(profile, snapshot, NOW)
        assert data.streak == 5
        assert data.today_progress == 50
        assert data.completed_today == 1
        assert data.remaining_habits == ["Gym"]
        # One habit left plus one overdue task
        assert data.agenda_count == 2
        assert data.today_index == 4
