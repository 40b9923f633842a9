"""
Routine suggester.

Each rule inspects the assembled analyses and returns the signals that
corroborate it; a rule with no signals does not fire. Confidence grows
with the number of signals and is capped at 100.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional

from src.core.config import Thresholds, DEFAULT_THRESHOLDS
from src.core.models import Snapshot
from src.analytics.burnout import BurnoutAnalysis
from src.analytics.focus import FocusAnalysis
from src.analytics.habit_stats import DayRecord, HabitProfile, MoodSummary
from src.analytics.procrastination import ProcrastinationAnalysis


logger = logging.getLogger(__name__)

SIGNAL_BONUS = 6

ROUTINE_CATEGORIES = ("planning", "review", "wellness", "focus", "social")
FREQUENCIES = ("daily", "weekly", "biweekly")


@dataclass
class SuggestedRoutine:
    id: str
    name: str
    emoji: str
    category: str
    frequency: str
    description: str
    tasks: List[str]
    rationale: str
    confidence: int
    suggested_day: Optional[str] = None
    suggested_time: Optional[str] = None
    signals: List[str] = field(default_factory=list)


@dataclass
class RoutineContext:
    """Everything the routine rules read."""
    snapshot: Snapshot
    today: date
    records: List[DayRecord]
    profiles: List[HabitProfile]
    mood: MoodSummary
    focus: FocusAnalysis
    procrastination: ProcrastinationAnalysis
    burnout: BurnoutAnalysis
    weekly_task_rate: int
    weekday_weekend_gap: int
    thresholds: Thresholds = DEFAULT_THRESHOLDS


def _average(records: List[DayRecord], weekdays: tuple) -> Optional[float]:
    rates = [r.completion_rate for r in records if r.weekday in weekdays]
    return sum(rates) / len(rates) if len(rates) >= 4 else None


def _weekly_review(ctx: RoutineContext) -> Optional[SuggestedRoutine]:
    has_review = any(
        "review" in t.text.lower() or "reflect" in t.text.lower()
        for week in ctx.snapshot.weeks.values() for t in week.tasks
    )
    if has_review:
        return None
    signals = ["No review or reflection task in your weekly plans"]
    if ctx.weekly_task_rate < 60:
        signals.append(f"Weekly task completion is {ctx.weekly_task_rate}%")
    return SuggestedRoutine(
        id="weekly-review",
        name="Weekly Review",
        emoji="📝",
        category="review",
        frequency="weekly",
        suggested_day="Sunday",
        suggested_time="7:00 PM",
        description="A structured end-of-week reflection to plan ahead and celebrate wins.",
        tasks=[
            "Review this week's completed habits and tasks",
            "Identify what worked well and what didn't",
            "Plan top 3 priorities for next week",
            "Set mood/motivation intentions for the week ahead",
        ],
        rationale="Weekly reviews keep streaks alive. You don't currently have a review routine.",
        confidence=78,
        signals=signals,
    )


def _morning_launch(ctx: RoutineContext) -> Optional[SuggestedRoutine]:
    morning = ctx.focus.time_of_day_split["morning"]
    if morning < 45:
        return None
    signals = [f"{morning}% of your timed check-ins happen in the morning"]
    windows = ctx.focus.peak_focus_windows
    if windows and windows[0].label == "Morning Focus":
        signals.append("Morning is your top focus window")
    keywords = ("gym", "workout", "exercise", "meditation", "journal", "read", "plan")
    morning_habits = [
        p.habit_name for p in ctx.profiles
        if any(k in p.habit_name.lower() for k in keywords)
    ][:3]
    start = next((w.start for w in windows if w.label == "Morning Focus"), 8)
    return SuggestedRoutine(
        id="morning-launch",
        name="Morning Launch Sequence",
        emoji="🌅",
        category="focus",
        frequency="daily",
        suggested_time=f"{start}:00 AM",
        description="Start your day with your highest-impact habits during your peak focus window.",
        tasks=morning_habits or [
            "Quick 5-min planning session",
            "Top priority task first",
            "Movement or exercise",
        ],
        rationale=f"Your morning share is {morning}%, your strongest time of day. Stack your hardest habits here.",
        confidence=74,
        signals=signals,
    )


def _midweek_reset(ctx: RoutineContext) -> Optional[SuggestedRoutine]:
    midweek = _average(ctx.records, (2, 3))
    bookends = _average(ctx.records, (0, 4))
    if midweek is None or bookends is None or bookends - midweek <= 15:
        return None
    signals = [f"Wed/Thu completion is {round(midweek)}% vs {round(bookends)}% on Mon/Fri"]
    if any(d in (2, 3) for d in ctx.procrastination.worst_days):
        signals.append("Mid-week days are among your weakest")
    return SuggestedRoutine(
        id="midweek-reset",
        name="Wednesday Reset",
        emoji="🔄",
        category="planning",
        frequency="weekly",
        suggested_day="Wednesday",
        suggested_time="12:00 PM",
        description="A quick mid-week check-in to combat the energy dip and re-align priorities.",
        tasks=[
            "Review remaining weekly tasks",
            "Move or reschedule anything unrealistic",
            "Pick ONE priority for the rest of the week",
            "5-minute walk or stretch break",
        ],
        rationale="Your Wed/Thu completion drops noticeably. A mid-week reset keeps momentum through the second half.",
        confidence=69,
        signals=signals,
    )


def _burnout_prevention(ctx: RoutineContext) -> Optional[SuggestedRoutine]:
    if ctx.burnout.stage == "thriving":
        return None
    signals = [f"Burnout risk {ctx.burnout.risk_level}% ({ctx.burnout.stage})"]
    if ctx.burnout.trend == "increasing":
        signals.append("Burnout risk is increasing")
    if ctx.mood.mood_trend < -1:
        signals.append(f"Mood trend {ctx.mood.mood_trend:+.1f}")
    return SuggestedRoutine(
        id="burnout-prevention",
        name="Recovery & Recharge",
        emoji="🧘",
        category="wellness",
        frequency="daily",
        suggested_time="8:00 PM",
        description="Protect your energy with intentional rest and reduced expectations.",
        tasks=[
            "Rate your energy level (1-10)",
            "Do one thing purely for enjoyment",
            "Set tomorrow's expectations to 70% of normal",
            "10-minute wind-down (no screens)",
        ],
        rationale=(f"Your burnout risk is {ctx.burnout.risk_level}% ({ctx.burnout.stage}). "
                   "Proactive recovery prevents full burnout."),
        confidence=84,
        signals=signals,
    )


def _weekend_anchor(ctx: RoutineContext) -> Optional[SuggestedRoutine]:
    if ctx.weekday_weekend_gap <= ctx.thresholds.weekend_gap_threshold:
        return None
    signals = [f"Weekends trail weekdays by {ctx.weekday_weekend_gap} points"]
    if any(d >= 5 for d in ctx.procrastination.worst_days):
        signals.append("Weekend days are among your weakest")
    return SuggestedRoutine(
        id="weekend-anchor",
        name="Weekend Anchor",
        emoji="⚓",
        category="planning",
        frequency="weekly",
        suggested_day="Saturday",
        suggested_time="10:00 AM",
        description="A minimal weekend routine to maintain consistency without feeling like work.",
        tasks=[
            "Complete your top 2 easiest habits",
            "One enjoyable physical activity",
            "Quick 5-min weekly planner check",
        ],
        rationale="Your weekend completion drops sharply. A minimal anchor keeps the habit loop alive on rest days.",
        confidence=72,
        signals=signals,
    )


def _habit_stack(ctx: RoutineContext) -> Optional[SuggestedRoutine]:
    bundled = [p for p in ctx.profiles if p.correlated_habits and p.completion_rate >= 60]
    if len(bundled) < 2:
        return None
    stack = bundled[:3]
    top = stack[0].correlated_habits[0].correlation
    signals = [f"{len(bundled)} habits are regularly completed together"]
    if top >= 80:
        signals.append(f"Strongest pair co-occurs {top}% of the time")
    return SuggestedRoutine(
        id="habit-stack",
        name="Power Stack",
        emoji="🔗",
        category="focus",
        frequency="daily",
        description="Your naturally correlated habits bundled into one efficient block.",
        tasks=[p.habit_name for p in stack],
        rationale=f"These habits are already completed together {top}% of the time. Formalizing the stack makes it automatic.",
        confidence=76,
        signals=signals,
    )


def _planning_block(ctx: RoutineContext) -> Optional[SuggestedRoutine]:
    signals = []
    current = ctx.snapshot.week(ctx.today)
    if current is None or not current.tasks:
        signals.append("Nothing planned for this week yet")
    if ctx.weekly_task_rate < 50:
        signals.append(f"Weekly task completion is {ctx.weekly_task_rate}%")
    if not signals:
        return None
    return SuggestedRoutine(
        id="planning-block",
        name="Sunday Planning Block",
        emoji="📋",
        category="planning",
        frequency="weekly",
        suggested_day="Sunday",
        suggested_time="6:00 PM",
        description="Spend 15 minutes planning your week to improve task completion.",
        tasks=[
            "Open weekly planner",
            "Add 3-5 key tasks for the week",
            "Assign tasks to specific days",
            "Set one weekly focus theme",
        ],
        rationale=f"Your weekly task completion is {ctx.weekly_task_rate}%. Planning ahead typically doubles it.",
        confidence=79,
        signals=signals,
    )


def _accountability_checkin(ctx: RoutineContext) -> Optional[SuggestedRoutine]:
    signals = []
    at_risk = [p for p in ctx.profiles if p.abandonment_risk >= 60]
    if len(at_risk) >= 2:
        signals.append(f"{len(at_risk)} habits at high abandonment risk")
    if ctx.procrastination.recovery_speed == "slow":
        signals.append("Slow recovery after missed days")
    if not signals:
        return None
    return SuggestedRoutine(
        id="accountability-checkin",
        name="Accountability Check-in",
        emoji="🤝",
        category="social",
        frequency="biweekly",
        suggested_day="Friday",
        suggested_time="5:00 PM",
        description="Share your progress with a friend or partner every other week.",
        tasks=[
            "Pick one accountability partner",
            "Share your top 2 habits and this week's score",
            "Agree on one small commitment for next week",
        ],
        rationale="Telling someone else what you plan to do makes skipping it harder.",
        confidence=62,
        signals=signals,
    )


ROUTINE_RULES: List[Callable[[RoutineContext], Optional[SuggestedRoutine]]] = [
    _weekly_review,
    _morning_launch,
    _midweek_reset,
    _burnout_prevention,
    _weekend_anchor,
    _habit_stack,
    _planning_block,
    _accountability_checkin,
]


def suggest_routines(ctx: RoutineContext) -> List[SuggestedRoutine]:
    """
    Evaluate every routine rule in declared order.

    Returns:
        Up to ``max_routines`` routines, highest confidence first (ties
        keep declared order)
    """
    routines = []
    for rule in ROUTINE_RULES:
        routine = rule(ctx)
        if routine is None:
            continue
        routine.confidence = min(100, routine.confidence + SIGNAL_BONUS * len(routine.signals))
        routines.append(routine)
        logger.debug("Routine %s fired with %d signal(s)", routine.id, len(routine.signals))
    routines.sort(key=lambda r: -r.confidence)
    return routines[:ctx.thresholds.max_routines]
