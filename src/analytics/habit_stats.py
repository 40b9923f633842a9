"""
Habit statistics builder.

Turns raw month records into per-habit profiles (completion, streaks,
trend, weekday strengths, consistency, abandonment risk) and the
user-level aggregates the rest of the engine builds on (overall streak,
mood summary, weekday/weekend gap, perfect days, weekly task rate).

All functions are pure: they read a Snapshot and a single ``today``
reference and never touch the clock themselves.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Tuple

from src.core.config import Thresholds, DEFAULT_THRESHOLDS
from src.core.models import DayEntry, MonthData, Snapshot, HabitRecord
from src.core.temporal import (
    elapsed_days,
    is_weekend,
    month_key,
    recent_months,
    week_key,
)


logger = logging.getLogger(__name__)


@dataclass
class DayRecord:
    """A recorded day with its completion rate across all habits."""
    day: date
    weekday: int
    entry: DayEntry
    total_habits: int
    completion_rate: float  # percent, unrounded


@dataclass
class CorrelatedHabit:
    habit_id: str
    habit_name: str
    correlation: int


@dataclass
class HabitProfile:
    """Derived statistics for one habit (recomputed every run)."""
    habit_id: str
    habit_name: str
    completion_rate: int
    current_streak: int
    longest_streak: int
    trend: int
    best_day_of_week: int
    worst_day_of_week: int
    consistency_score: int
    abandonment_risk: int
    is_automatic: bool
    days_since_last_completion: int = 0
    correlated_habits: List[CorrelatedHabit] = field(default_factory=list)

    def __lt__(self, other: 'HabitProfile') -> bool:
        """Sort riskiest habits first."""
        return self.abandonment_risk > other.abandonment_risk


@dataclass
class MoodSummary:
    avg_mood: float = 5.0
    avg_motivation: float = 5.0
    mood_trend: float = 0.0
    motivation_trend: float = 0.0
    low_mood_days: int = 0
    high_mood_days: int = 0


# =============================================================================
# Day collection
# =============================================================================

def iter_month_days(snapshot: Snapshot, today: date,
                    months: int = 3) -> List[Tuple[date, MonthData, Optional[DayEntry]]]:
    """
    Every elapsed calendar day of the trailing months, oldest first.

    Returns:
        List of (day, month data, entry or None)
    """
    days = []
    for year, month in recent_months(today, months):
        month_data = snapshot.month(year, month)
        for d in range(1, elapsed_days(year, month, today) + 1):
            days.append((date(year, month, d), month_data, month_data.days.get(d)))
    return days


def collect_day_records(snapshot: Snapshot, today: date, months: int = 3) -> List[DayRecord]:
    """
    Recorded days of the trailing months, oldest first.

    Days without an entry, and days in months without habits, are absent
    rather than counted as zero.
    """
    records = []
    for day, month_data, entry in iter_month_days(snapshot, today, months):
        total = len(month_data.habits)
        if entry is None or total == 0:
            continue
        records.append(DayRecord(
            day=day,
            weekday=day.weekday(),
            entry=entry,
            total_habits=total,
            completion_rate=len(entry.completed_habits) / total * 100,
        ))
    return records


# =============================================================================
# Streaks
# =============================================================================

def calculate_streak(
    snapshot: Snapshot,
    today: date,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> int:
    """
    Consecutive days ending today with overall completion >= the streak
    threshold.

    Walks backwards from today across month boundaries. A missing entry
    breaks the streak, except for today itself which is still in
    progress and is skipped.

    Args:
        snapshot: Source records
        today: Reference date
        thresholds: Engine thresholds (streak_min_percent)

    Returns:
        Streak length in days
    """
    streak = 0
    day = today
    # Bounded by the months present in the snapshot
    oldest = min(
        (date(int(k[:4]), int(k[5:7]), 1) for k in snapshot.months),
        default=today.replace(day=1),
    )
    while day >= oldest:
        month_data = snapshot.month(day.year, day.month)
        entry = month_data.days.get(day.day)
        total = len(month_data.habits)
        if entry is not None and total > 0:
            pct = round(len(entry.completed_habits) / total * 100)
            if pct < thresholds.streak_min_percent:
                break
            streak += 1
        elif day != today:
            break
        day -= timedelta(days=1)
    return streak


def longest_run(flags: List[bool]) -> int:
    best = run = 0
    for flag in flags:
        run = run + 1 if flag else 0
        best = max(best, run)
    return best


# =============================================================================
# Per-habit metrics
# =============================================================================

def month_completion_rate(month_data: MonthData, habit_id: str, elapsed: int) -> int:
    """Days the habit was done / elapsed days of the month (0 when none elapsed)."""
    if elapsed <= 0:
        return 0
    done = sum(
        1 for d in range(1, elapsed + 1)
        if d in month_data.days and habit_id in month_data.days[d].completed_habits
    )
    return round(done / elapsed * 100)


def calculate_trend(flags: List[bool]) -> int:
    """
    Completion delta (percentage points) of the last 7 days versus the
    7 days before them, or the shorter history available before them.
    """
    if len(flags) <= 7:
        return 0
    recent = flags[-7:]
    previous = flags[-14:-7]
    recent_rate = sum(recent) / len(recent)
    previous_rate = sum(previous) / len(previous)
    return round((recent_rate - previous_rate) * 100)


def calculate_consistency(flags: List[bool]) -> int:
    """
    100 minus the coefficient of variation of weekly completion rates.

    Weeks are 7-day chunks counted back from the most recent day; a
    leading chunk shorter than 3 days is ignored. With fewer than two
    weeks the score is a neutral 50. A habit never completed scores 0.
    """
    weekly_rates = []
    end = len(flags)
    while end > 0:
        chunk = flags[max(0, end - 7):end]
        if len(chunk) >= 3:
            weekly_rates.append(sum(chunk) / len(chunk))
        end -= 7
    if len(weekly_rates) < 2:
        return 50
    mean = sum(weekly_rates) / len(weekly_rates)
    if mean == 0:
        return 0
    variance = sum((r - mean) ** 2 for r in weekly_rates) / len(weekly_rates)
    cv = math.sqrt(variance) / mean * 100
    return round(max(0.0, min(100.0, 100 - cv)))


def calculate_abandonment_risk(
    completion_rate: float,
    trend: float,
    days_since_last: int,
    elapsed: int,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> int:
    """
    Weighted abandonment risk (0-100).

    Risk rises with incompletion, with a negative trend, and with the gap
    since the last completion. Gap days beyond a few count double.
    Monotonic in each input. Zero elapsed days means zero risk.
    """
    if elapsed <= 0:
        return 0
    gap = max(0, days_since_last)
    risk = (
        (100 - completion_rate) * thresholds.risk_weight_incompletion
        + max(0.0, -trend) * thresholds.risk_weight_decline
        + gap * thresholds.risk_weight_gap_per_day
        + max(0, gap - thresholds.risk_gap_accel_after_days) * thresholds.risk_gap_accel_per_day
    )
    return round(max(0.0, min(100.0, risk)))


def _habit_history(
    snapshot: Snapshot,
    today: date,
    habit: HabitRecord,
    months: int
) -> List[Tuple[date, bool]]:
    """Daily completion flags of a habit over the trailing months."""
    history = []
    for day, month_data, entry in iter_month_days(snapshot, today, months):
        match = month_data.find_habit(habit.id, habit.name)
        if match is None:
            continue
        done = entry is not None and match.id in entry.completed_habits
        history.append((day, done))
    return history


def build_habit_profile(
    snapshot: Snapshot,
    today: date,
    habit: HabitRecord,
    overall_streak: int,
    months: int = 3,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> HabitProfile:
    """
    Compute the profile of one habit of the current month.

    Args:
        snapshot: Source records
        today: Reference date
        habit: Habit of the current month
        overall_streak: Streak across all habits (shared by every profile)
        months: History window in months
        thresholds: Engine thresholds

    Returns:
        HabitProfile for the habit
    """
    current = snapshot.month(today.year, today.month)
    elapsed = elapsed_days(today.year, today.month, today)
    completion_rate = month_completion_rate(current, habit.id, elapsed)

    history = _habit_history(snapshot, today, habit, months)
    flags = [done for _, done in history]

    weekday_done = [0] * 7
    weekday_total = [0] * 7
    for day, done in history:
        weekday_total[day.weekday()] += 1
        if done:
            weekday_done[day.weekday()] += 1
    rates = {
        wd: weekday_done[wd] / weekday_total[wd] * 100
        for wd in range(7) if weekday_total[wd] > 0
    }
    if rates:
        best_day = max(rates, key=lambda wd: (rates[wd], -wd))
        worst_day = min(rates, key=lambda wd: (rates[wd], wd))
    else:
        best_day = worst_day = 0

    last_done = next((day for day, done in reversed(history) if done), None)
    if last_done is not None:
        days_since_last = (today - last_done).days
    else:
        days_since_last = len(history)

    trend = calculate_trend(flags)
    consistency = calculate_consistency(flags)
    risk = calculate_abandonment_risk(
        completion_rate, trend, days_since_last, elapsed, thresholds
    )
    is_automatic = (
        elapsed > 0
        and completion_rate >= thresholds.automatic_min_completion
        and consistency >= thresholds.automatic_min_consistency
    )

    return HabitProfile(
        habit_id=habit.id,
        habit_name=habit.name,
        completion_rate=completion_rate,
        current_streak=overall_streak,
        longest_streak=longest_run(flags),
        trend=trend,
        best_day_of_week=best_day,
        worst_day_of_week=worst_day,
        consistency_score=consistency,
        abandonment_risk=risk,
        is_automatic=is_automatic,
        days_since_last_completion=days_since_last,
    )


def fill_habit_correlations(
    profiles: List[HabitProfile],
    records: List[DayRecord],
    snapshot: Snapshot,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> None:
    """
    Attach co-completion partners to each profile.

    Correlation is the share of days where both habits were done among
    days where either was done (recorded days only). Above the threshold
    qualifies; the top 3 are kept.
    """
    if len(profiles) < 2:
        return

    def resolve(record: DayRecord, profile: HabitProfile) -> Optional[str]:
        month_data = snapshot.month(record.day.year, record.day.month)
        match = month_data.find_habit(profile.habit_id, profile.habit_name)
        return match.id if match else None

    for profile in profiles:
        partners = []
        for other in profiles:
            if other is profile:
                continue
            both = either = 0
            for record in records:
                a_id = resolve(record, profile)
                b_id = resolve(record, other)
                if a_id is None or b_id is None:
                    continue
                a_done = a_id in record.entry.completed_habits
                b_done = b_id in record.entry.completed_habits
                if a_done or b_done:
                    either += 1
                if a_done and b_done:
                    both += 1
            correlation = round(both / either * 100) if either else 0
            if correlation > thresholds.correlation_min_percent:
                partners.append(CorrelatedHabit(other.habit_id, other.habit_name, correlation))
        partners.sort(key=lambda p: -p.correlation)
        profile.correlated_habits = partners[:3]


def build_habit_profiles(
    snapshot: Snapshot,
    today: date,
    months: int = 3,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    records: Optional[List[DayRecord]] = None
) -> List[HabitProfile]:
    """Profiles for every habit of the current month, in habit order."""
    current = snapshot.month(today.year, today.month)
    if not current.habits:
        return []
    streak = calculate_streak(snapshot, today, thresholds)
    profiles = [
        build_habit_profile(snapshot, today, habit, streak, months, thresholds)
        for habit in current.habits
    ]
    if records is None:
        records = collect_day_records(snapshot, today, months)
    fill_habit_correlations(profiles, records, snapshot, thresholds)
    logger.debug("Built %d habit profiles for %s", len(profiles), month_key(today.year, today.month))
    return profiles


# =============================================================================
# User-level aggregates
# =============================================================================

def weekday_averages(records: List[DayRecord]) -> List[Optional[float]]:
    """Average completion rate per weekday (Monday-first), None without data."""
    totals = [0.0] * 7
    counts = [0] * 7
    for r in records:
        totals[r.weekday] += r.completion_rate
        counts[r.weekday] += 1
    return [totals[i] / counts[i] if counts[i] else None for i in range(7)]


def find_peak_days(records: List[DayRecord]) -> List[int]:
    """Weekdays within 10 points of the best weekday average, best first."""
    averages = [a or 0.0 for a in weekday_averages(records)]
    best = max(averages)
    if best == 0:
        return []
    peaks = [i for i, avg in enumerate(averages) if avg >= best - 10]
    return sorted(peaks, key=lambda i: (-averages[i], i))


def weekday_weekend_gap(records: List[DayRecord]) -> int:
    weekday = [r.completion_rate for r in records if not is_weekend(r.weekday)]
    weekend = [r.completion_rate for r in records if is_weekend(r.weekday)]
    weekday_avg = sum(weekday) / len(weekday) if weekday else 0
    weekend_avg = sum(weekend) / len(weekend) if weekend else 0
    return round(weekday_avg - weekend_avg)


def _window_delta(values: List[int]) -> float:
    if len(values) < 14:
        return 0.0
    return sum(values[-7:]) / 7 - sum(values[-14:-7]) / 7


def summarize_mood(records: List[DayRecord]) -> MoodSummary:
    """Mood/motivation averages and two-week trends (0.1 precision)."""
    if not records:
        return MoodSummary()
    moods = [r.entry.mood for r in records]
    motivations = [r.entry.motivation for r in records]
    return MoodSummary(
        avg_mood=round(sum(moods) / len(moods), 1),
        avg_motivation=round(sum(motivations) / len(motivations), 1),
        mood_trend=round(_window_delta(moods), 1),
        motivation_trend=round(_window_delta(motivations), 1),
        low_mood_days=sum(1 for m in moods if m <= 4),
        high_mood_days=sum(1 for m in moods if m >= 7),
    )


def mood_productivity_correlation(records: List[DayRecord]) -> float:
    """Pearson correlation of mood and completion rate (needs 5 days)."""
    if len(records) < 5:
        return 0.0
    moods = [r.entry.mood for r in records]
    rates = [r.completion_rate for r in records]
    n = len(records)
    mean_mood = sum(moods) / n
    mean_rate = sum(rates) / n
    numerator = sum((m - mean_mood) * (r - mean_rate) for m, r in zip(moods, rates))
    denom_mood = sum((m - mean_mood) ** 2 for m in moods)
    denom_rate = sum((r - mean_rate) ** 2 for r in rates)
    denom = math.sqrt(denom_mood * denom_rate)
    return round(numerator / denom, 2) if denom > 0 else 0.0


def productivity_score(month_data: MonthData, elapsed: int) -> int:
    """Average daily completion percentage over recorded days of the month."""
    if not month_data.habits or elapsed == 0:
        return 0
    values = [
        len(entry.completed_habits) / len(month_data.habits) * 100
        for day, entry in month_data.days.items() if 1 <= day <= elapsed
    ]
    return round(sum(values) / len(values)) if values else 0


def perfect_days(month_data: MonthData, elapsed: int) -> Tuple[int, int]:
    """
    Perfect-day count this month and days since the last one.

    Returns:
        (perfect days this month, days since last perfect day or -1)
    """
    total = len(month_data.habits)
    if total == 0:
        return 0, -1
    perfect = [
        d for d in range(1, elapsed + 1)
        if d in month_data.days and len(month_data.days[d].completed_habits) >= total
    ]
    if not perfect:
        return 0, -1
    return len(perfect), elapsed - perfect[-1]


def weekly_task_rate(snapshot: Snapshot, today: date, weeks: int = 3) -> int:
    """Completed share of weekly tasks over the current and previous weeks."""
    done = total = 0
    for offset in range(weeks):
        week = snapshot.weeks.get(week_key(today - timedelta(days=7 * offset)))
        if week and week.tasks:
            total += len(week.tasks)
            done += sum(1 for t in week.tasks if t.completed)
    return round(done / total * 100) if total else 0

