"""
Smart notification engine.

Same shape as the insight generator: an ordered list of independent
rules over the finished profile and today's records. Rules are gated by
the hour of ``now`` (morning kickstart, midday push, evening review) or
by profile signals (streaks, at-risk habits, mood, weekly plans). The
result is sorted by priority and capped to avoid notification fatigue.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from src.core.models import DayEntry, MonthData, Snapshot
from src.core.temporal import as_date, week_key
from src.analytics.habit_stats import HabitProfile
from src.analytics.profile import UserBehaviorProfile


logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("nudge", "celebration", "warning", "insight", "challenge")
PRIORITY_ORDER = {"urgent": 0, "high": 1, "medium": 2, "low": 3}
STREAK_MILESTONES = (7, 14, 21, 30)
MAX_NOTIFICATIONS = 5


@dataclass
class SmartNotification:
    id: str
    type: str
    priority: str  # 'urgent', 'high', 'medium', 'low'
    title: str
    message: str
    emoji: str
    generated_at: datetime
    source: str
    auto_dismiss_seconds: int = 0  # 0 = dismissed manually
    action: Optional[Dict[str, str]] = None  # {'label', 'route'}

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["generated_at"] = self.generated_at.isoformat()
        return data


@dataclass
class NotificationContext:
    profile: UserBehaviorProfile
    snapshot: Snapshot
    now: datetime
    today: date
    month: MonthData
    entry: Optional[DayEntry]

    @property
    def hour(self) -> int:
        return self.now.hour

    @property
    def weekday(self) -> int:
        return self.today.weekday()

    @property
    def total_habits(self) -> int:
        return len(self.month.habits)

    @property
    def completed_today(self) -> int:
        return len(self.entry.completed_habits) if self.entry else 0

    @property
    def today_percent(self) -> int:
        if not self.total_habits:
            return 0
        return round(self.completed_today / self.total_habits * 100)

    def notify(self, **kwargs) -> SmartNotification:
        return SmartNotification(generated_at=self.now, **kwargs)


def find_easiest_habit(profiles: List[HabitProfile]) -> Optional[HabitProfile]:
    """Habit with the highest completion rate (first one on ties)."""
    if not profiles:
        return None
    best = profiles[0]
    for habit in profiles[1:]:
        if habit.completion_rate > best.completion_rate:
            best = habit
    return best


# =============================================================================
# Time-aware nudges
# =============================================================================

def _morning_start(ctx: NotificationContext) -> Optional[SmartNotification]:
    if not 6 <= ctx.hour < 9 or not ctx.total_habits or ctx.completed_today:
        return None
    easiest = find_easiest_habit(ctx.profile.habit_profiles)
    if easiest is None:
        return None
    return ctx.notify(
        id=f"morning-start-{ctx.today.day}",
        type="nudge",
        priority="high",
        title="Start your day strong",
        message=(f'Begin with "{easiest.habit_name}", your most consistent habit at '
                 f"{easiest.completion_rate}%. One check starts the momentum."),
        emoji="🌅",
        source="Morning routine analysis",
        action={"label": "Go to Tracker", "route": "/tracker"},
    )


def _midday_push(ctx: NotificationContext) -> Optional[SmartNotification]:
    if not 12 <= ctx.hour < 14 or not ctx.total_habits:
        return None
    pct = ctx.today_percent
    if not 0 < pct < 50:
        return None
    left = ctx.total_habits - ctx.completed_today
    return ctx.notify(
        id=f"midday-push-{ctx.today.day}",
        type="nudge",
        priority="medium",
        title="Halfway through the day",
        message=(f"You're at {pct}%, {left} habits to go. "
                 "Your afternoon push can make this a great day!"),
        emoji="☀️",
        source="Midday progress check",
        auto_dismiss_seconds=300,
    )


def _perfect_day(ctx: NotificationContext) -> Optional[SmartNotification]:
    if not 19 <= ctx.hour < 22 or ctx.today_percent < 100:
        return None
    return ctx.notify(
        id=f"perfect-day-{ctx.today.day}",
        type="celebration",
        priority="high",
        title="Perfect day! 🏆",
        message=(f"All {ctx.total_habits} habits completed! You've had "
                 f"{ctx.profile.perfect_days_this_month} perfect days this month."),
        emoji="🎉",
        source="Daily completion check",
    )


def _mood_reminder(ctx: NotificationContext) -> Optional[SmartNotification]:
    if not 19 <= ctx.hour < 22:
        return None
    # Mood and motivation both at the default 5 means the sliders were never moved
    if ctx.entry is not None and (ctx.entry.mood, ctx.entry.motivation) != (5, 5):
        return None
    return ctx.notify(
        id=f"mood-reminder-{ctx.today.day}",
        type="nudge",
        priority="low",
        title="Log your mood",
        message=("Take a moment to reflect on today. "
                 "Tracking your mood helps the coach give you better insights."),
        emoji="💭",
        source="Evening mood reminder",
        auto_dismiss_seconds=600,
        action={"label": "Set Mood", "route": "/tracker"},
    )


# =============================================================================
# Streaks
# =============================================================================

def _streak_at_risk(ctx: NotificationContext) -> Optional[SmartNotification]:
    profiles = ctx.profile.habit_profiles
    if not profiles or ctx.hour < 16:
        return None
    average = sum(p.current_streak for p in profiles) / len(profiles)
    if average < 3 or ctx.today_percent >= 50:
        return None
    return ctx.notify(
        id=f"streak-risk-{ctx.today.day}",
        type="warning",
        priority="urgent",
        title="Streak at risk!",
        message=(f"Your {round(average)}-day average streak is in danger. "
                 "Complete a few more habits to keep it alive."),
        emoji="🔥",
        source="Streak protection",
        action={"label": "Save Your Streak", "route": "/tracker"},
    )


def _streak_milestone(ctx: NotificationContext) -> Optional[SmartNotification]:
    profiles = ctx.profile.habit_profiles
    longest = max((p.current_streak for p in profiles), default=0)
    if longest not in STREAK_MILESTONES:
        return None
    habit = next(p for p in profiles if p.current_streak == longest)
    closing = "This is becoming automatic!" if longest >= 21 else "Keep it up!"
    return ctx.notify(
        id=f"streak-milestone-{longest}-{habit.habit_id}",
        type="celebration",
        priority="high",
        title=f"{longest}-day streak! 🔥",
        message=f'"{habit.habit_name}" has been going strong for {longest} days. {closing}',
        emoji="🏅" if longest >= 21 else "🔥",
        source="Streak milestone detection",
    )


# =============================================================================
# Patterns and mood
# =============================================================================

def _at_risk_habit(ctx: NotificationContext) -> Optional[SmartNotification]:
    if not 8 <= ctx.hour < 20:
        return None
    worst = next((p for p in ctx.profile.habit_profiles if p.abandonment_risk >= 60), None)
    if worst is None:
        return None
    if worst.correlated_habits:
        tip = (f'Try doing it right after "{worst.correlated_habits[0].habit_name}", '
               "they pair well together.")
    else:
        tip = "Try making it the very first thing you do. Willpower is highest in the morning."
    direction = "up" if worst.trend > 0 else "down"
    return ctx.notify(
        id=f"at-risk-{worst.habit_id}-{ctx.today.day}",
        type="warning",
        priority="high",
        title=f'"{worst.habit_name}" needs attention',
        message=(f"This habit is at risk of being dropped ({worst.completion_rate}% this month, "
                 f"trending {direction}). {tip}"),
        emoji="⚠️",
        source=f"Abandonment risk: {worst.abandonment_risk}%",
        action={"label": "Focus on This", "route": "/tracker"},
    )


def _weekend_guide(ctx: NotificationContext) -> Optional[SmartNotification]:
    gap = ctx.profile.weekday_weekend_gap
    if ctx.weekday < 5 or gap <= 15:
        return None
    return ctx.notify(
        id=f"weekend-guide-{ctx.today.day}",
        type="insight",
        priority="medium",
        title="Weekend game plan",
        message=(f"Your weekend completion is {gap}% lower than weekdays. "
                 "Even completing 3-4 habits today keeps your momentum alive."),
        emoji="📅",
        source="Weekend pattern analysis",
        auto_dismiss_seconds=600,
    )


def _mood_declining(ctx: NotificationContext) -> Optional[SmartNotification]:
    trend = ctx.profile.mood_trend
    if trend >= -1.5:
        return None
    return ctx.notify(
        id=f"mood-declining-{ctx.today.day}",
        type="warning",
        priority="high",
        title="Your wellbeing matters",
        message=("Your mood has been declining. It's okay to reduce your habit load temporarily. "
                 "Focus on the 2-3 habits that make you feel best."),
        emoji="💛",
        source=f"Mood trend: {trend:.1f}",
    )


def _peak_performance(ctx: NotificationContext) -> Optional[SmartNotification]:
    profile = ctx.profile
    if profile.avg_mood < 8 or profile.productivity_score < 70:
        return None
    return ctx.notify(
        id=f"peak-performance-{ctx.today.day}",
        type="celebration",
        priority="medium",
        title="You're in the zone!",
        message=(f"High mood ({profile.avg_mood}/10) + strong productivity "
                 f"({profile.productivity_score}%). This is your peak performance state, "
                 "make the most of it!"),
        emoji="⚡",
        source="Peak performance detection",
        auto_dismiss_seconds=300,
    )


# =============================================================================
# Weekly planning
# =============================================================================

def _plan_next_week(ctx: NotificationContext) -> Optional[SmartNotification]:
    sunday_evening = ctx.weekday == 6 and ctx.hour >= 18
    monday_morning = ctx.weekday == 0 and ctx.hour < 12
    if not (sunday_evening or monday_morning):
        return None
    target = ctx.today + timedelta(days=1) if sunday_evening else ctx.today
    week = ctx.snapshot.week(target)
    if week is not None and week.tasks:
        return None
    return ctx.notify(
        id=f"plan-next-week-{week_key(target)}",
        type="nudge",
        priority="medium",
        title="Plan your week ahead",
        message=("People who plan their week are more likely to complete their goals. "
                 "Take 5 minutes to set up next week."),
        emoji="📋",
        source="Weekly planning reminder",
        action={"label": "Plan Week", "route": "/weekly"},
    )


def _overdue_tasks(ctx: NotificationContext) -> Optional[SmartNotification]:
    if not 2 <= ctx.weekday <= 4:
        return None
    week = ctx.snapshot.week(ctx.today)
    if week is None:
        return None
    overdue = [t for t in week.tasks if not t.completed and t.day_index < ctx.weekday]
    if len(overdue) < 3:
        return None
    return ctx.notify(
        id=f"overdue-tasks-{week.key}-{ctx.today.day}",
        type="warning",
        priority="medium",
        title=f"{len(overdue)} overdue tasks",
        message=("Several tasks from earlier this week are incomplete. "
                 "Reschedule them for today or remove ones that are no longer relevant."),
        emoji="📋",
        source="Overdue task detection",
        action={"label": "Review Tasks", "route": "/weekly"},
    )


# =============================================================================
# Challenges and recommendations
# =============================================================================

def _daily_challenge(ctx: NotificationContext) -> Optional[SmartNotification]:
    if not 7 <= ctx.hour < 11 or not ctx.total_habits:
        return None
    candidates = [
        p for p in ctx.profile.habit_profiles
        if p.completion_rate < 50 and p.abandonment_risk < 70
    ]
    if not candidates:
        return None
    weakest = min(candidates, key=lambda p: p.completion_rate)
    return ctx.notify(
        id=f"daily-challenge-{ctx.today.day}",
        type="challenge",
        priority="medium",
        title="Today's Challenge",
        message=(f'Can you complete "{weakest.habit_name}" today? It\'s at {weakest.completion_rate}%, '
                 "every day you do it brings you closer to making it stick."),
        emoji="💪",
        source=f"Weakest habit: {weakest.completion_rate}%",
        action={"label": "Accept Challenge", "route": "/tracker"},
    )


def _top_recommendation(ctx: NotificationContext) -> Optional[SmartNotification]:
    if not ctx.profile.recommendations or not 9 <= ctx.hour < 18:
        return None
    top = ctx.profile.recommendations[0]
    return ctx.notify(
        id=f"insight-{top.id}-{ctx.today.day}",
        type="insight",
        priority="high" if top.priority == "high" else "medium",
        title=top.title,
        message=top.description,
        emoji=top.emoji,
        source=top.rationale,
        auto_dismiss_seconds=600,
    )


NOTIFICATION_RULES: List[Callable[[NotificationContext], Optional[SmartNotification]]] = [
    _morning_start,
    _midday_push,
    _perfect_day,
    _mood_reminder,
    _streak_at_risk,
    _streak_milestone,
    _at_risk_habit,
    _weekend_guide,
    _mood_declining,
    _peak_performance,
    _plan_next_week,
    _overdue_tasks,
    _daily_challenge,
    _top_recommendation,
]


def generate_smart_notifications(
    profile: UserBehaviorProfile,
    snapshot: Snapshot,
    now: Optional[datetime] = None,
    dismissed: Iterable[str] = ()
) -> List[SmartNotification]:
    """
    Evaluate every notification rule for the current hour.

    Args:
        profile: Finished behaviour profile for ``now``
        snapshot: Source records
        now: Reference time (defaults to utcnow)
        dismissed: Notification ids the user already dismissed

    Returns:
        Up to MAX_NOTIFICATIONS notifications, urgent first (ties keep
        rule order); empty for an empty-state profile
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if not profile.has_data:
        return []
    today = as_date(now)
    month = snapshot.month(today.year, today.month)
    ctx = NotificationContext(
        profile=profile,
        snapshot=snapshot,
        now=now,
        today=today,
        month=month,
        entry=month.days.get(today.day),
    )

    skip = set(dismissed)
    notifications = []
    for rule in NOTIFICATION_RULES:
        notification = rule(ctx)
        if notification is None or notification.id in skip:
            continue
        logger.debug("Notification %s fired", notification.id)
        notifications.append(notification)

    notifications.sort(key=lambda n: PRIORITY_ORDER[n.priority])
    return notifications[:MAX_NOTIFICATIONS]
