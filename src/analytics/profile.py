"""
Behaviour profile orchestrator.

``build_behavior_profile`` is the single composing call: it derives the
habit statistics, runs each sub-analysis as an independent pure
function and attaches the results to one read-only record. The profile
is never persisted; it is recomputed from the snapshot on every access.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from src.core.config import Thresholds, DEFAULT_THRESHOLDS
from src.core.models import Snapshot
from src.core.temporal import as_date, elapsed_days
from src.analytics.burnout import BurnoutAnalysis, analyze_burnout, classify_stage
from src.analytics.focus import FocusAnalysis, analyze_focus
from src.analytics.habit_stats import (
    HabitProfile,
    build_habit_profiles,
    calculate_streak,
    collect_day_records,
    find_peak_days,
    mood_productivity_correlation,
    perfect_days,
    productivity_score,
    summarize_mood,
    weekday_weekend_gap,
    weekly_task_rate,
)
from src.analytics.patterns import (
    BehaviorPattern,
    Recommendation,
    detect_patterns,
    generate_recommendations,
)
from src.analytics.procrastination import ProcrastinationAnalysis, analyze_procrastination
from src.analytics.routines import RoutineContext, SuggestedRoutine, suggest_routines


logger = logging.getLogger(__name__)


@dataclass
class UserBehaviorProfile:
    """Everything the engine derives about a user as of one date."""
    as_of: date
    habit_profiles: List[HabitProfile] = field(default_factory=list)
    avg_mood: float = 5.0
    avg_motivation: float = 5.0
    mood_trend: float = 0.0
    motivation_trend: float = 0.0
    low_mood_days: int = 0
    high_mood_days: int = 0
    mood_productivity_correlation: float = 0.0
    productivity_score: int = 0
    weekly_task_rate: int = 0
    perfect_days_this_month: int = 0
    days_since_last_perfect: int = -1
    peak_days: List[int] = field(default_factory=list)
    weekday_weekend_gap: int = 0
    current_streak: int = 0
    elapsed_days: int = 0
    burnout_analysis: BurnoutAnalysis = field(
        default_factory=lambda: BurnoutAnalysis(risk_level=0, stage=classify_stage(0))
    )
    procrastination_analysis: ProcrastinationAnalysis = field(default_factory=ProcrastinationAnalysis)
    focus_analysis: FocusAnalysis = field(default_factory=FocusAnalysis)
    suggested_routines: List[SuggestedRoutine] = field(default_factory=list)
    patterns: List[BehaviorPattern] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    has_data: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["as_of"] = self.as_of.isoformat()
        return data


def _has_records(snapshot: Snapshot) -> bool:
    return (
        any(m.habits or m.days for m in snapshot.months.values())
        or any(w.tasks for w in snapshot.weeks.values())
        or bool(snapshot.events)
    )


def build_behavior_profile(
    snapshot: Snapshot,
    now: Optional[datetime] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    months: int = 3
) -> UserBehaviorProfile:
    """
    Derive the full behaviour profile from a snapshot.

    The only clock read is ``now``; passing the same snapshot and ``now``
    twice yields equal profiles. Empty records produce an empty-state
    profile with zeroed statistics and no patterns, recommendations or
    routines.

    Args:
        snapshot: Source records
        now: Reference time (defaults to utcnow, read once)
        thresholds: Engine thresholds
        months: History window in months

    Returns:
        UserBehaviorProfile
    """
    if now is None:
        now = datetime.now(timezone.utc)
    today = as_date(now)

    if not _has_records(snapshot):
        logger.debug("Empty snapshot, returning empty profile for %s", today)
        return UserBehaviorProfile(as_of=today)

    current = snapshot.month(today.year, today.month)
    elapsed = elapsed_days(today.year, today.month, today)

    records = collect_day_records(snapshot, today, months)
    profiles = build_habit_profiles(snapshot, today, months, thresholds, records)
    mood = summarize_mood(records)
    perfect_count, since_perfect = perfect_days(current, elapsed)
    task_rate = weekly_task_rate(snapshot, today)
    gap = weekday_weekend_gap(records)

    burnout = analyze_burnout(records, profiles, len(current.habits), today, thresholds)
    procrastination = analyze_procrastination(snapshot, records, profiles, now, months, thresholds)
    focus = analyze_focus(snapshot, records, today, months, thresholds)
    routines = suggest_routines(RoutineContext(
        snapshot=snapshot,
        today=today,
        records=records,
        profiles=profiles,
        mood=mood,
        focus=focus,
        procrastination=procrastination,
        burnout=burnout,
        weekly_task_rate=task_rate,
        weekday_weekend_gap=gap,
        thresholds=thresholds,
    ))

    profile = UserBehaviorProfile(
        as_of=today,
        has_data=True,
        habit_profiles=profiles,
        avg_mood=mood.avg_mood,
        avg_motivation=mood.avg_motivation,
        mood_trend=mood.mood_trend,
        motivation_trend=mood.motivation_trend,
        low_mood_days=mood.low_mood_days,
        high_mood_days=mood.high_mood_days,
        mood_productivity_correlation=mood_productivity_correlation(records),
        productivity_score=productivity_score(current, elapsed),
        weekly_task_rate=task_rate,
        perfect_days_this_month=perfect_count,
        days_since_last_perfect=since_perfect,
        peak_days=find_peak_days(records),
        weekday_weekend_gap=gap,
        current_streak=calculate_streak(snapshot, today, thresholds),
        elapsed_days=elapsed,
        burnout_analysis=burnout,
        procrastination_analysis=procrastination,
        focus_analysis=focus,
        suggested_routines=routines,
    )
    profile.patterns = detect_patterns(profile, records)
    profile.recommendations = generate_recommendations(profile)

    logger.debug(
        "Profile for %s: %d habits, streak %d, burnout %s, procrastination %d",
        today, len(profiles), profile.current_streak, burnout.stage, procrastination.score,
    )
    return profile
