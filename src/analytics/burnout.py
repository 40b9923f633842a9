"""
Burnout classifier.

Aggregates mood/motivation decline, habit load, falling or volatile
completion and at-risk habits into a 0-100 risk level and an ordered
stage. There is no stored state machine: the trend is read by comparing
the risk of the current window with the risk of the window one week
earlier, each computed independently.

Stage cutpoints (Thresholds):
    0-29 thriving, 30-54 strained, 55-74 warning, 75-100 burnout
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Tuple

from src.core.config import Thresholds, DEFAULT_THRESHOLDS
from src.analytics.habit_stats import DayRecord, HabitProfile


logger = logging.getLogger(__name__)

STAGES = ("thriving", "strained", "warning", "burnout")

MAX_FACTOR_IMPACT = 30
MAX_FACTORS = 5


@dataclass
class BurnoutFactor:
    label: str
    impact: int  # 0-30
    emoji: str
    detail: str


@dataclass
class BurnoutAnalysis:
    risk_level: int
    stage: str
    factors: List[BurnoutFactor] = field(default_factory=list)
    recovery_actions: List[str] = field(default_factory=list)
    trend: str = "stable"  # 'increasing', 'decreasing', 'stable'
    days_until_critical: Optional[int] = None


def classify_stage(risk_level: int, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> str:
    """
    Map a risk level to its stage.

    Pure and monotonic: a higher risk never maps to an earlier stage.
    """
    strained, warning, critical = thresholds.stage_cutpoints()
    if risk_level >= critical:
        return "burnout"
    if risk_level >= warning:
        return "warning"
    if risk_level >= strained:
        return "strained"
    return "thriving"


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def _split_window(records: List[DayRecord], end: date,
                  window_days: int) -> Tuple[List[DayRecord], List[DayRecord]]:
    """Records of the window ending at ``end``, as (previous half, recent half)."""
    half = window_days // 2
    recent_start = end - timedelta(days=half - 1)
    window_start = end - timedelta(days=window_days - 1)
    previous = [r for r in records if window_start <= r.day < recent_start]
    recent = [r for r in records if recent_start <= r.day <= end]
    return previous, recent


def assess_factors(
    records: List[DayRecord],
    end: date,
    habit_count: int,
    at_risk_count: int = 0,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> List[BurnoutFactor]:
    """
    Contributing factors for the window ending at ``end``.

    Args:
        records: Recorded days (any range; filtered to the window)
        end: Last day of the window
        habit_count: Active habits
        at_risk_count: Habits at high abandonment risk
        thresholds: Engine thresholds

    Returns:
        Unsorted list of factors with impacts capped at 30
    """
    previous, recent = _split_window(records, end, thresholds.burnout_window_days)
    window = previous + recent
    factors = []

    def add(label: str, impact: float, emoji: str, detail: str) -> None:
        factors.append(BurnoutFactor(
            label=label,
            impact=max(0, min(MAX_FACTOR_IMPACT, round(impact))),
            emoji=emoji,
            detail=detail,
        ))

    if len(previous) >= 3 and len(recent) >= 3:
        mood_trend = _mean([r.entry.mood for r in recent]) - _mean([r.entry.mood for r in previous])
        if mood_trend < -1:
            add("Declining mood", min(25, abs(mood_trend) * 10), "😞",
                f"Mood dropped {abs(mood_trend):.1f} points over 2 weeks")

        motivation_trend = (_mean([r.entry.motivation for r in recent])
                            - _mean([r.entry.motivation for r in previous]))
        if motivation_trend < -1:
            add("Declining motivation", min(20, abs(motivation_trend) * 8), "⚡",
                f"Motivation dropped {abs(motivation_trend):.1f} points")

        recent_rate = _mean([r.completion_rate for r in recent])
        previous_rate = _mean([r.completion_rate for r in previous])
        drop = previous_rate - recent_rate
        if drop > 15:
            add("Falling completion rate", min(20, drop * 0.8), "📉",
                f"Dropped from {round(previous_rate)}% to {round(recent_rate)}% in one week")

    load_minutes = habit_count * thresholds.burnout_minutes_per_habit
    if load_minutes >= thresholds.burnout_overload_minutes:
        extra = (load_minutes - thresholds.burnout_overload_minutes) / thresholds.burnout_minutes_per_habit
        add("Habit overload", min(20, 10 + extra * 5), "📋",
            f"{habit_count} active habits (about {load_minutes} min a day), 3-5 is a sustainable load")

    if window:
        avg_mood = _mean([r.entry.mood for r in window])
        if avg_mood < 4.5:
            add("Persistently low mood", (5 - avg_mood) * 8, "💛",
                f"Average mood {avg_mood:.1f}/10 over recent weeks")

    if len(window) >= 5:
        rates = [r.completion_rate for r in window]
        mean = _mean(rates)
        spread = math.sqrt(sum((x - mean) ** 2 for x in rates) / len(rates))
        if spread > 30:
            add("Erratic completion", min(15, 5 + (spread - 30) * 0.5), "🎢",
                f"Daily completion swings by ±{round(spread)} points")

    if at_risk_count >= 2:
        add("Multiple habits failing", min(15, at_risk_count * 5), "⚠️",
            f"{at_risk_count} habits at high abandonment risk")

    if len(window) >= 10:
        perfect = [r.day for r in window if r.completion_rate >= 100]
        if perfect:
            days_since = (end - perfect[-1]).days
        else:
            days_since = (end - window[0].day).days + 1
        if days_since > 10:
            add("No recent wins", 10, "🏆",
                f"{days_since} days since last perfect day" if perfect
                else "No perfect days in the last two weeks")

    return factors


def risk_from_factors(factors: List[BurnoutFactor]) -> int:
    return min(100, sum(f.impact for f in factors))


def recovery_actions_for(stage: str, avg_mood: Optional[float]) -> List[str]:
    """Ordered recovery suggestions; empty only when thriving."""
    if stage in ("burnout", "warning"):
        actions = [
            "Reduce your active habits to just 2-3 essentials for the next week",
            "Schedule a full rest day with zero obligations",
        ]
        if avg_mood is not None and avg_mood < 5:
            actions.append("Prioritize activities that bring you joy, not just productivity")
        actions.append("Consider talking to someone you trust about how you're feeling")
        return actions
    if stage == "strained":
        return [
            "Take one habit off your plate temporarily",
            "Add a 10-minute daily wind-down routine",
            "Celebrate small wins, you don't need perfection",
        ]
    return []


def analyze_burnout(
    records: List[DayRecord],
    profiles: List[HabitProfile],
    habit_count: int,
    today: date,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> BurnoutAnalysis:
    """
    Classify burnout risk as of ``today``.

    The trend compares the current window against the window ending one
    week earlier, both scored without the at-risk-habit factor (profiles
    only describe the present).

    Args:
        records: Recorded days, oldest first
        profiles: Current habit profiles
        habit_count: Active habits this month
        today: Reference date
        thresholds: Engine thresholds

    Returns:
        BurnoutAnalysis
    """
    at_risk = sum(1 for p in profiles if p.abandonment_risk >= 60)
    factors = assess_factors(records, today, habit_count, at_risk, thresholds)
    risk = risk_from_factors(factors)
    stage = classify_stage(risk, thresholds)

    current_signal = risk_from_factors(assess_factors(records, today, habit_count, 0, thresholds))
    previous_signal = risk_from_factors(
        assess_factors(records, today - timedelta(days=7), habit_count, 0, thresholds)
    )
    delta = current_signal - previous_signal
    if delta >= thresholds.burnout_trend_delta:
        trend = "increasing"
    elif delta <= -thresholds.burnout_trend_delta:
        trend = "decreasing"
    else:
        trend = "stable"

    days_until_critical = None
    if trend == "increasing":
        if risk >= thresholds.burnout_critical_at:
            days_until_critical = 0
        else:
            per_day = delta / 7
            days_until_critical = math.ceil((thresholds.burnout_critical_at - risk) / per_day)

    window_moods = [r.entry.mood for r in records
                    if (today - r.day).days < thresholds.burnout_window_days and r.day <= today]
    avg_mood = _mean(window_moods) if window_moods else None

    factors.sort(key=lambda f: -f.impact)
    logger.debug("Burnout risk %d (%s), trend %s (delta %d)", risk, stage, trend, delta)

    return BurnoutAnalysis(
        risk_level=risk,
        stage=stage,
        factors=factors[:MAX_FACTORS],
        recovery_actions=recovery_actions_for(stage, avg_mood),
        trend=trend,
        days_until_critical=days_until_critical,
    )
