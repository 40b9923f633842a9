"""
Insight and action generator.

A fixed, ordered list of independent rules. Each rule reads the finished
behaviour profile plus today's snapshot and returns an ``Insight`` or
None; list order is presentation priority. Actions attached to insights
are declarative commands for the record store (see
``RecordStore.apply_action``); nothing here mutates records.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from src.core.config import Thresholds, DEFAULT_THRESHOLDS
from src.core.models import DayEntry, HabitRecord, MonthData, Snapshot, WeeklyData, daily_progress
from src.core.temporal import as_date, is_weekend
from src.analytics.habit_stats import month_completion_rate
from src.analytics.profile import UserBehaviorProfile


logger = logging.getLogger(__name__)

INSIGHT_TYPES = ("tip", "observation", "suggestion", "warning")
ACTION_TYPES = (
    "reschedule",
    "lower_difficulty",
    "create_minimum",
    "navigate",
    "dismiss_habit",
    "focus_mode",
)


@dataclass
class Action:
    id: str
    label: str
    emoji: str
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Insight:
    id: str
    type: str
    title: str
    message: str
    emoji: str
    confidence: int
    actions: List[Action] = field(default_factory=list)


@dataclass
class InsightReport:
    insights: List[Insight] = field(default_factory=list)
    daily_plan: List[str] = field(default_factory=list)
    greeting: str = ""
    streak: int = 0
    today_score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class InsightContext:
    """Today's view of the records plus the finished profile."""
    profile: UserBehaviorProfile
    now: datetime
    today: date
    month: MonthData
    entry: Optional[DayEntry]
    week: Optional[WeeklyData]
    thresholds: Thresholds = DEFAULT_THRESHOLDS

    @property
    def habits(self) -> List[HabitRecord]:
        return self.month.habits

    @property
    def remaining(self) -> List[HabitRecord]:
        if self.entry is None:
            return list(self.habits)
        return [h for h in self.habits if h.id not in self.entry.completed_habits]

    def recent_moods(self) -> List[int]:
        """Moods recorded in the last 7 days of the current month."""
        start = max(1, self.today.day - 6)
        return [
            self.month.days[d].mood
            for d in range(start, self.today.day + 1)
            if d in self.month.days
        ]

    def habit_rates(self) -> List[tuple]:
        """(habit, month-to-date completion percent) in habit order."""
        return [
            (habit, month_completion_rate(self.month, habit.id, self.today.day))
            for habit in self.habits
        ]


def greeting_for(hour: int) -> str:
    if 12 <= hour < 17:
        return "Good afternoon! How's your progress today?"
    if 17 <= hour < 21:
        return "Good evening! Time to review your day."
    if hour >= 21:
        return "Winding down? Let's see how today went."
    return "Good morning! Let's make today count."


# =============================================================================
# Rules
# =============================================================================

def _almost_done(ctx: InsightContext) -> Optional[Insight]:
    if ctx.entry is None or not ctx.habits:
        return None
    missing = ctx.remaining
    if not 1 <= len(missing) <= 3:
        return None
    actions = [
        Action(
            id=f"reschedule-{h.id}",
            label=f'Move "{h.name}" to tomorrow',
            emoji="📅",
            type="reschedule",
            payload={"habit_id": h.id, "habit_name": h.name, "target_day": "tomorrow"},
        )
        for h in missing
    ]
    if len(missing) > 1:
        actions.append(Action(
            id="create-minimum",
            label="Do minimum versions",
            emoji="⚡",
            type="create_minimum",
            payload={"habits": [{"id": h.id, "name": h.name} for h in missing]},
        ))
    names = ", ".join(h.name for h in missing)
    return Insight(
        id="almost-done",
        type="suggestion",
        title="Almost there!",
        message=f"Just {len(missing)} habit{'s' if len(missing) > 1 else ''} left today: {names}. You can do it!",
        emoji="🎯",
        confidence=90,
        actions=actions,
    )


def _streak(ctx: InsightContext) -> Optional[Insight]:
    streak = ctx.profile.current_streak
    if streak >= 7:
        return Insight(
            id="streak-fire",
            type="observation",
            title=f"{streak}-day streak!",
            message="You're on fire! Consistency is the key to lasting change. Keep this momentum going.",
            emoji="🔥",
            confidence=95,
        )
    if streak >= 3:
        return Insight(
            id="streak-building",
            type="tip",
            title="Building momentum",
            message=f"{streak} days in a row of 50%+ completion. Push for 7 to build a strong habit loop!",
            emoji="📈",
            confidence=85,
        )
    return None


def _mood(ctx: InsightContext) -> Optional[Insight]:
    moods = ctx.recent_moods()
    if len(moods) < 3:
        return None
    if moods[-1] - moods[0] <= -2:
        return Insight(
            id="mood-declining",
            type="warning",
            title="Mood dipping",
            message="Your mood has been trending down. Consider taking a break or doing something you enjoy today.",
            emoji="💛",
            confidence=75,
            actions=[
                Action("lower-goals", "Lower goals this week", "📉", "lower_difficulty",
                       {"reason": "mood_dip"}),
                Action("focus-wellness", "Add wellness focus", "🧘", "focus_mode",
                       {"mode": "wellness"}),
            ],
        )
    average = sum(moods) / len(moods)
    if average >= 7:
        return Insight(
            id="mood-great",
            type="observation",
            title="Feeling great!",
            message=(f"Your average mood this week is {average:.1f}/10. High mood goes with "
                     "better habit completion, ride this wave!"),
            emoji="😊",
            confidence=88,
        )
    return None


def _weak_habit(ctx: InsightContext) -> Optional[Insight]:
    if not ctx.habits or ctx.today.day < ctx.thresholds.weak_habit_min_days:
        return None
    worst, worst_pct = None, 100
    for habit, pct in ctx.habit_rates():
        if pct < worst_pct:
            worst, worst_pct = habit, pct
    if worst is None or worst_pct >= ctx.thresholds.weak_habit_below:
        return None
    target = {"habit_id": worst.id, "habit_name": worst.name}
    return Insight(
        id="weak-habit",
        type="warning",
        title="Needs attention",
        message=(f'"{worst.name}" is at {worst_pct}% this month. '
                 "Try pairing it with a habit you already do consistently."),
        emoji="⚠️",
        confidence=82,
        actions=[
            Action(f"lower-{worst.id}", f'Lower "{worst.name}" difficulty', "📉",
                   "lower_difficulty", dict(target)),
            Action(f"min-{worst.id}", "Create minimum version", "⚡", "create_minimum",
                   {"habits": [{"id": worst.id, "name": worst.name}]}),
            Action(f"dismiss-{worst.id}", "Remove this habit", "🗑️", "dismiss_habit",
                   dict(target)),
        ],
    )


def _best_habit(ctx: InsightContext) -> Optional[Insight]:
    if not ctx.habits or ctx.today.day < ctx.thresholds.best_habit_min_days:
        return None
    best, best_pct = None, 0
    for habit, pct in ctx.habit_rates():
        if pct > best_pct:
            best, best_pct = habit, pct
    if best is None or best_pct < ctx.thresholds.best_habit_at:
        return None
    return Insight(
        id="best-habit",
        type="observation",
        title="Star performer",
        message=(f'"{best.name}" is at {best_pct}%, your strongest habit this month. '
                 "This is becoming automatic!"),
        emoji="⭐",
        confidence=92,
    )


def weekday_weekend_split(month: MonthData, year: int, month_number: int,
                          current_day: int) -> tuple:
    """Rounded (weekday %, weekend %) of habit check-ins this month."""
    total = len(month.habits)
    weekday_total = weekday_done = weekend_total = weekend_done = 0
    for d in range(1, current_day + 1):
        entry = month.days.get(d)
        if entry is None or total == 0:
            continue
        if is_weekend(date(year, month_number, d).weekday()):
            weekend_total += total
            weekend_done += len(entry.completed_habits)
        else:
            weekday_total += total
            weekday_done += len(entry.completed_habits)
    weekday_pct = round(weekday_done / weekday_total * 100) if weekday_total else 0
    weekend_pct = round(weekend_done / weekend_total * 100) if weekend_total else 0
    return weekday_pct, weekend_pct


def _weekend_slump(ctx: InsightContext) -> Optional[Insight]:
    if ctx.today.day < ctx.thresholds.weekend_gap_min_days:
        return None
    weekday_pct, weekend_pct = weekday_weekend_split(
        ctx.month, ctx.today.year, ctx.today.month, ctx.today.day
    )
    if weekday_pct - weekend_pct <= ctx.thresholds.weekend_gap_threshold:
        return None
    return Insight(
        id="weekend-drop",
        type="tip",
        title="Weekend slump",
        message=(f"Weekday completion is {weekday_pct}% vs {weekend_pct}% on weekends. "
                 "Try setting weekend-specific routines to stay consistent."),
        emoji="📅",
        confidence=78,
        actions=[
            Action("lower-weekend", "Lower weekend goals", "📉", "lower_difficulty",
                   {"reason": "weekend_slump"}),
        ],
    )


def _no_habits(ctx: InsightContext) -> Optional[Insight]:
    if ctx.habits:
        return None
    return Insight(
        id="no-habits",
        type="suggestion",
        title="Get started!",
        message=("You haven't set up any habits for this month yet. "
                 "Head to the monthly tracker to add your first habits!"),
        emoji="🚀",
        confidence=100,
        actions=[Action("go-tracker", "Go to Tracker", "📊", "navigate", {"route": "/tracker"})],
    )


def _weekly_plan(ctx: InsightContext) -> Optional[Insight]:
    if ctx.week is None or not ctx.week.tasks:
        return Insight(
            id="plan-week",
            type="suggestion",
            title="Plan your week",
            message=("You haven't planned this week yet. "
                     "Taking 5 minutes to plan can boost your productivity."),
            emoji="📋",
            confidence=85,
            actions=[Action("go-weekly", "Open Weekly Planner", "📋", "navigate",
                            {"route": "/weekly"})],
        )
    done = sum(1 for t in ctx.week.tasks if t.completed)
    total = len(ctx.week.tasks)
    pct = ctx.week.completion_rate()
    if pct < 80:
        return None
    return Insight(
        id="weekly-crushing",
        type="observation",
        title="Weekly tasks on point!",
        message=f"{done}/{total} weekly tasks done ({pct}%). You're crushing your to-do list!",
        emoji="💪",
        confidence=95,
    )


INSIGHT_RULES: List[Callable[[InsightContext], Optional[Insight]]] = [
    _almost_done,
    _streak,
    _mood,
    _weak_habit,
    _best_habit,
    _weekend_slump,
    _no_habits,
    _weekly_plan,
]


def build_daily_plan(ctx: InsightContext) -> List[str]:
    plan = []
    if ctx.habits and ctx.entry is not None:
        remaining = ctx.remaining
        if remaining:
            names = ", ".join(h.name for h in remaining[:3])
            more = f" (+{len(remaining) - 3} more)" if len(remaining) > 3 else ""
            plan.append(f"Complete remaining habits: {names}{more}")
    elif ctx.habits:
        plan.append("Start with your easiest habit to build momentum")

    if ctx.week is not None:
        today_index = ctx.today.weekday()
        due = [t for t in ctx.week.tasks if t.day_index == today_index and not t.completed]
        if due:
            plan.append(f"{len(due)} weekly task{'s' if len(due) > 1 else ''} scheduled for today")

    if ctx.now.hour < 12:
        plan.append("Set your mood & motivation for today")
    elif ctx.now.hour >= 20:
        plan.append("Review today and plan tomorrow")

    moods = ctx.recent_moods()
    if moods and moods[-1] <= 4:
        plan.append("Take a 10-minute break to recharge")
    return plan


def generate_insights(
    profile: UserBehaviorProfile,
    snapshot: Snapshot,
    now: Optional[datetime] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> InsightReport:
    """
    Evaluate every insight rule in order and assemble the daily plan.

    An empty-state profile (no records at all) yields an empty insight
    list and plan; only the greeting is filled in.

    Args:
        profile: Finished behaviour profile for ``now``
        snapshot: Source records
        now: Reference time (defaults to utcnow)
        thresholds: Engine thresholds

    Returns:
        InsightReport
    """
    if now is None:
        now = datetime.now(timezone.utc)
    today = as_date(now)
    greeting = greeting_for(now.hour)

    if not profile.has_data:
        return InsightReport(greeting=greeting)

    month = snapshot.month(today.year, today.month)
    ctx = InsightContext(
        profile=profile,
        now=now,
        today=today,
        month=month,
        entry=month.days.get(today.day),
        week=snapshot.week(today),
        thresholds=thresholds,
    )

    insights = []
    for rule in INSIGHT_RULES:
        insight = rule(ctx)
        if insight is not None:
            logger.debug("Insight %s fired", insight.id)
            insights.append(insight)

    return InsightReport(
        insights=insights,
        daily_plan=build_daily_plan(ctx),
        greeting=greeting,
        streak=profile.current_streak,
        today_score=daily_progress(ctx.entry, len(month.habits)),
    )
