"""
Behaviour patterns and recommendations.

Both are declarative rule lists evaluated in fixed order against a
finished profile. A rule returns a record or None; nothing is mutated.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional

from src.analytics.habit_stats import DayRecord

if TYPE_CHECKING:
    from src.analytics.profile import UserBehaviorProfile


logger = logging.getLogger(__name__)

MAX_PATTERNS = 8
MAX_RECOMMENDATIONS = 6

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


@dataclass
class BehaviorPattern:
    id: str
    type: str  # 'positive', 'negative', 'neutral'
    title: str
    description: str
    confidence: int
    emoji: str


@dataclass
class Recommendation:
    id: str
    priority: str  # 'high', 'medium', 'low'
    title: str
    description: str
    action_type: str  # 'habit_focus', 'schedule_change', 'wellness', 'planning', 'celebration'
    emoji: str
    rationale: str


def _mean_rate(records: List[DayRecord]) -> float:
    return sum(r.completion_rate for r in records) / len(records)


def _quoted(names: List[str]) -> str:
    return ", ".join(f'"{n}"' for n in names)


# =============================================================================
# Patterns
# =============================================================================

PatternRule = Callable[['UserBehaviorProfile', List[DayRecord]], Optional[BehaviorPattern]]


def _monday_motivation(profile, records):
    mondays = [r for r in records if r.weekday == 0]
    others = [r for r in records if r.weekday != 0]
    if len(mondays) < 3 or len(others) < 3:
        return None
    monday_avg, other_avg = _mean_rate(mondays), _mean_rate(others)
    if monday_avg <= other_avg + 10:
        return None
    return BehaviorPattern(
        "monday-motivation", "positive", "Monday Motivation",
        f"You start weeks strong with {round(monday_avg)}% completion on Mondays "
        f"vs {round(other_avg)}% other days.",
        min(90, len(mondays) * 10), "🚀",
    )


def _weekend_slump(profile, records):
    if profile.weekday_weekend_gap <= 15:
        return None
    return BehaviorPattern(
        "weekend-slump", "negative", "Weekend Slump",
        f"Your completion drops {profile.weekday_weekend_gap} points on weekends. "
        "Weekend routines may need adjustment.",
        min(85, len(records)), "📉",
    )


def _mood_driven(profile, records):
    high = [r for r in records if r.entry.mood >= 7]
    low = [r for r in records if r.entry.mood <= 4]
    if len(high) < 3 or len(low) < 3:
        return None
    high_rate, low_rate = _mean_rate(high), _mean_rate(low)
    if high_rate - low_rate <= 20:
        return None
    return BehaviorPattern(
        "mood-driven", "neutral", "Mood-Driven Performance",
        f"High mood days: {round(high_rate)}% vs {round(low_rate)}% on low mood days.",
        80, "🎭",
    )


def _habit_bundle(profile, records):
    bundled = [p for p in profile.habit_profiles if p.correlated_habits]
    if not bundled:
        return None
    strongest = bundled[0]
    top = strongest.correlated_habits[0]
    if top.correlation <= 70:
        return None
    return BehaviorPattern(
        "habit-bundle", "positive", "Habit Bundle Detected",
        f'"{strongest.habit_name}" and "{top.habit_name}" are completed together '
        f"{top.correlation}% of the time.",
        top.correlation, "🔗",
    )


def _declining_motivation(profile, records):
    if profile.motivation_trend >= -1:
        return None
    return BehaviorPattern(
        "declining-motivation", "negative", "Declining Motivation",
        f"Motivation dropped by {abs(profile.motivation_trend):.1f} points over 2 weeks.",
        75, "⚡",
    )


def _consistency_champion(profile, records):
    consistent = [p for p in profile.habit_profiles
                  if p.consistency_score >= 80 and p.completion_rate >= 70]
    if len(consistent) < 3:
        return None
    return BehaviorPattern(
        "consistency-champion", "positive", "Consistency Champion",
        f"{len(consistent)} habits have 80%+ consistency. You've built strong routines!",
        90, "🏅",
    )


def _at_risk_habits(profile, records):
    at_risk = [p.habit_name for p in profile.habit_profiles if p.abandonment_risk >= 60]
    if not at_risk:
        return None
    plural = len(at_risk) > 1
    return BehaviorPattern(
        "at-risk-habits", "negative",
        f"{len(at_risk)} Habit{'s' if plural else ''} at Risk",
        f"{_quoted(at_risk)} {'have' if plural else 'has'} high abandonment risk.",
        85, "⚠️",
    )


def _automatic_habits(profile, records):
    automatic = [p.habit_name for p in profile.habit_profiles if p.is_automatic]
    if not automatic:
        return None
    return BehaviorPattern(
        "automatic-habits", "positive",
        f"{len(automatic)} Automatic Habit{'s' if len(automatic) > 1 else ''}",
        f"{_quoted(automatic)} require minimal willpower!",
        95, "🤖",
    )


def _peak_focus(profile, records):
    windows = profile.focus_analysis.peak_focus_windows
    if not windows or windows[0].score < 60:
        return None
    best = windows[0]
    return BehaviorPattern(
        "peak-focus", "positive", "Peak Focus Window",
        f"Your best productivity window is {best.label} ({best.start}:00-{best.end}:00) "
        f"with {best.score}% of your timed check-ins.",
        80, "🎯",
    )


def _burnout_signal(profile, records):
    burnout = profile.burnout_analysis
    if burnout.stage not in ("warning", "burnout"):
        return None
    detail = burnout.factors[0].detail if burnout.factors else "Multiple stress indicators detected."
    return BehaviorPattern(
        "burnout-signal", "negative", "Burnout Signal Detected",
        f"Burnout risk at {burnout.risk_level}%. {detail}",
        90, "🔥",
    )


def _procrastination_pattern(profile, records):
    analysis = profile.procrastination_analysis
    if analysis.score < 40:
        return None
    if analysis.triggers:
        top = analysis.triggers[0]
        description = f"Primary trigger: {top.trigger}. {top.description}"
    else:
        description = (f"Procrastination score: {analysis.score}%. "
                       "Tasks are being deferred frequently.")
    return BehaviorPattern(
        "procrastination-pattern", "negative", "Procrastination Pattern",
        description, min(85, analysis.score), "⏳",
    )


PATTERN_RULES: List[PatternRule] = [
    _monday_motivation,
    _weekend_slump,
    _mood_driven,
    _habit_bundle,
    _declining_motivation,
    _consistency_champion,
    _at_risk_habits,
    _automatic_habits,
    _peak_focus,
    _burnout_signal,
    _procrastination_pattern,
]


def detect_patterns(profile: 'UserBehaviorProfile', records: List[DayRecord]) -> List[BehaviorPattern]:
    """Fired patterns, most confident first (stable), top 8."""
    patterns = [p for p in (rule(profile, records) for rule in PATTERN_RULES) if p is not None]
    patterns.sort(key=lambda p: -p.confidence)
    return patterns[:MAX_PATTERNS]


# =============================================================================
# Recommendations
# =============================================================================

RecommendationRule = Callable[['UserBehaviorProfile'], Optional[Recommendation]]


def _burnout_recovery(profile):
    burnout = profile.burnout_analysis
    if burnout.stage not in ("warning", "burnout"):
        return None
    description = (burnout.recovery_actions[0] if burnout.recovery_actions
                   else "Reduce your habit load and prioritize rest.")
    detail = burnout.factors[0].detail if burnout.factors else ""
    return Recommendation(
        "burnout-recovery", "high", "Burnout Recovery Mode", description, "wellness", "🛑",
        f"Burnout risk: {burnout.risk_level}% ({burnout.stage}). {detail}".strip(),
    )


def _focus_at_risk(profile):
    at_risk = sorted(
        (p for p in profile.habit_profiles if p.abandonment_risk >= 50),
        key=lambda p: -p.abandonment_risk,
    )
    if not at_risk:
        return None
    worst = at_risk[0]
    return Recommendation(
        "focus-at-risk", "high", f'Rescue "{worst.habit_name}"',
        f"At {worst.abandonment_risk}% abandonment risk. "
        "Try doing it first thing or pairing with a strong habit.",
        "habit_focus", "🆘",
        f"{worst.completion_rate}% completion, trend: {worst.trend:+d}%",
    )


def _beat_procrastination(profile):
    triggers = profile.procrastination_analysis.triggers
    if not triggers:
        return None
    trigger = triggers[0]
    return Recommendation(
        "beat-procrastination", "medium", f"Beat {trigger.trigger}", trigger.suggestion,
        "schedule_change", "⏰", trigger.description,
    )


def _optimize_focus(profile):
    windows = profile.focus_analysis.peak_focus_windows
    if not windows:
        return None
    peak = windows[0]
    return Recommendation(
        "optimize-focus", "medium", f"Protect Your {peak.label}",
        f"Schedule your hardest habits between {peak.start}:00-{peak.end}:00. "
        "This is when you're most effective.",
        "schedule_change", "🎯", f"{peak.label} share: {peak.score}%",
    )


def _weekend_strategy(profile):
    gap = profile.weekday_weekend_gap
    if gap <= 15:
        return None
    return Recommendation(
        "weekend-strategy", "medium", "Create a Weekend Routine",
        f"Your weekday performance is {gap} points higher. Set specific weekend times for habits.",
        "schedule_change", "📅", f"Weekday-weekend gap: {gap} points",
    )


def _mood_wellness(profile):
    if profile.avg_mood >= 5 and profile.mood_trend >= -1:
        return None
    if profile.mood_trend < -1:
        description = "Your mood has been declining. Consider reducing habit load temporarily."
    else:
        description = "Your mood has been low. Consistency matters more than perfection."
    return Recommendation(
        "mood-wellness", "high", "Prioritize Your Wellbeing", description, "wellness", "💛",
        f"Avg mood: {profile.avg_mood}/10, trend: {profile.mood_trend:+.1f}",
    )


def _improve_planning(profile):
    if profile.weekly_task_rate >= 40:
        return None
    return Recommendation(
        "improve-planning", "medium", "Improve Weekly Planning",
        "Weekly task completion is below 40%. Try planning fewer, more specific tasks.",
        "planning", "📋", f"Weekly task completion: {profile.weekly_task_rate}%",
    )


def _celebrate(profile):
    count = profile.perfect_days_this_month
    if count < 3:
        return None
    return Recommendation(
        "celebrate", "low", f"{count} Perfect Days!",
        "You're doing amazing! Consider rewarding yourself for this consistency.",
        "celebration", "🎉", f"{count} perfect days in {profile.elapsed_days} days",
    )


RECOMMENDATION_RULES: List[RecommendationRule] = [
    _burnout_recovery,
    _focus_at_risk,
    _beat_procrastination,
    _optimize_focus,
    _weekend_strategy,
    _mood_wellness,
    _improve_planning,
    _celebrate,
]


def generate_recommendations(profile: 'UserBehaviorProfile') -> List[Recommendation]:
    """Fired recommendations sorted high/medium/low (stable), top 6."""
    recs = [r for r in (rule(profile) for rule in RECOMMENDATION_RULES) if r is not None]
    recs.sort(key=lambda r: PRIORITY_ORDER[r.priority])
    logger.debug("Recommendations: %s", [r.id for r in recs])
    return recs[:MAX_RECOMMENDATIONS]
