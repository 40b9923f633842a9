"""
Unit tests for the coaching chat responder.
"""

import pytest
from datetime import date, datetime, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from src.analytics.burnout import BurnoutAnalysis
from src.analytics.habit_stats import HabitProfile
from src.analytics.procrastination import ProcrastinationAnalysis, ProcrastinationTrigger
from src.analytics.profile import UserBehaviorProfile
from src.coaching.coach_chat import QUICK_QUESTIONS, coach_response, route_question


# Friday
NOW = datetime(2026, 3, 13, 9, 0, tzinfo=timezone.utc)


def habit(name, completion=80, risk=10, automatic=False):
    return HabitProfile(name.lower(), name, completion, 3, 5, 0, 0, 6, 80, risk, automatic)


@pytest.fixture
def profile():
    trigger = ProcrastinationTrigger(
        "admin-avoidance", "Admin Avoidance", "Admin tasks get pushed", "Batch admin", "🗂️", 3)
    return UserBehaviorProfile(
        as_of=date(2026, 3, 13),
        has_data=True,
        habit_profiles=[habit("Gym", completion=30, risk=70), habit("Read", automatic=True)],
        burnout_analysis=BurnoutAnalysis(risk_level=60, stage="warning", trend="increasing",
                                         days_until_critical=4, recovery_actions=["Sleep more"]),
        procrastination_analysis=ProcrastinationAnalysis(score=45, triggers=[trigger], recovery_speed="slow"),
        peak_days=[5],
        weekday_weekend_gap=25,
    )


class TestRouting:
    """Tests for keyword routing"""

    @pytest.mark.parametrize("question,expected", [
        ("Why do I keep delaying tasks?", "procrastination"),
        ("How should I plan tomorrow?", "planning"),
        ("Am I at risk of burnout?", "burnout"),
        ("When am I most productive?", "focus"),
        ("How's my mood affecting me?", "mood"),
        ("Tell me about my streak", "habit"),
        ("Why are my weekends bad?", "weekend"),
        ("What's my top priority?", "priority"),
        ("How am I doing overall?", "progress"),
        ("Can you recommend something?", "routine"),
        ("hello", "general"),
    ])
    def test_routes(self, question, expected):
        assert route_question(question) == expected

    def test_first_match_wins(self):
        """Procrastination is checked before planning."""
        assert route_question("I avoid planning tomorrow") == "procrastination"

    def test_quick_questions_route(self):
        for _, question, _ in QUICK_QUESTIONS:
            assert route_question(question) != "general"


class TestCoachResponse:
    """Tests for coach_response"""

    def test_deterministic(self, profile):
        question = "How should I plan tomorrow?"
        assert coach_response(question, profile, NOW) == coach_response(question, profile, NOW)

    def test_planning_uses_tomorrow(self, profile):
        answer = coach_response("How should I plan tomorrow?", profile, NOW)
        assert answer.startswith("**Planning for Saturday:**")
        assert "peak productivity days" in answer
        assert 'Tackle "Gym"' in answer
        assert "Burnout alert" in answer

    def test_procrastination_admin(self, profile):
        answer = coach_response("Why do I delay admin work?", profile, NOW)
        assert "**45/100**" in answer
        assert "Admin Avoidance" in answer
        assert "2-minute rule" in answer
        assert "never miss twice" in answer

    def test_procrastination_fitness(self, profile):
        answer = coach_response("Why do I skip the gym?", profile, NOW)
        assert 'About "Gym"' in answer
        assert "lowering the bar" in answer

    def test_burnout(self, profile):
        answer = coach_response("I feel so stressed", profile, NOW)
        assert "Warning" in answer
        assert "~4 days" in answer
        assert "1. Sleep more" in answer

    def test_habit_deep_dive(self, profile):
        answer = coach_response("How is my read habit?", profile, NOW)
        assert answer.startswith('**"Read" Deep Dive:**')
        assert "automatic" in answer

    def test_no_habits(self):
        answer = coach_response("how are my habits", UserBehaviorProfile(as_of=date(2026, 3, 13)), NOW)
        assert "don't have any habits" in answer

    def test_weekend(self, profile):
        answer = coach_response("why is my weekend bad", profile, NOW)
        assert "**25 points** (weekdays stronger)" in answer
        assert "Fix it" in answer

    def test_general_mentions_burnout(self, profile):
        answer = coach_response("hi there", profile, NOW)
        assert "burnout risk is elevated (60%)" in answer

    def test_no_routines_yet(self):
        answer = coach_response("Can you recommend something?", UserBehaviorProfile(as_of=date(2026, 3, 13)), NOW)
        assert "enough information" in answer
