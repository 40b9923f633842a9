"""
Focus-time analyzer.

There are no completion timestamps, so habits are bucketed into
morning/afternoon/evening by their recorded ``time_of_day`` or, failing
that, by keywords in the habit name. Habits matching no bucket carry no
time-of-day signal and are left out of the split.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from src.core.config import Thresholds, DEFAULT_THRESHOLDS
from src.core.models import HabitRecord, Snapshot
from src.core.temporal import WEEKDAY_NAMES
from src.analytics.habit_stats import DayRecord, iter_month_days, weekday_averages


logger = logging.getLogger(__name__)

BUCKETS = ("morning", "afternoon", "evening")

BUCKET_KEYWORDS = {
    "morning": ("gym", "workout", "exercise", "run", "meditation", "journal", "plan", "morning"),
    "afternoon": ("lunch", "walk", "work", "study", "email", "afternoon"),
    "evening": ("read", "relax", "yoga", "stretch", "reflect", "review", "evening", "sleep"),
}

# (bucket, label, start hour, end hour); non-overlapping
FOCUS_WINDOWS = [
    ("morning", "Morning Focus", 8, 11),
    ("afternoon", "Afternoon Block", 13, 16),
    ("evening", "Evening Wind-down", 19, 21),
]

# Assumed productive hours available per day
PRODUCTIVE_DAY_HOURS = 8


@dataclass
class FocusWindow:
    label: str
    start: int
    end: int
    score: int


@dataclass
class OptimalSlot:
    day: str
    time: Optional[str]
    score: int


@dataclass
class FocusAnalysis:
    time_of_day_split: Dict[str, int] = field(
        default_factory=lambda: {bucket: 0 for bucket in BUCKETS}
    )
    peak_focus_windows: List[FocusWindow] = field(default_factory=list)
    weekly_focus_heatmap: List[int] = field(default_factory=lambda: [0] * 7)
    optimal_slot: OptimalSlot = field(default_factory=lambda: OptimalSlot(WEEKDAY_NAMES[0], None, 0))
    avg_productive_hours: float = 0.0


def habit_bucket(habit: HabitRecord) -> Optional[str]:
    """Time-of-day bucket of a habit, or None when unknown."""
    if habit.time_of_day in BUCKETS:
        return habit.time_of_day
    lower = habit.name.lower()
    for bucket in ("morning", "evening", "afternoon"):
        if any(k in lower for k in BUCKET_KEYWORDS[bucket]):
            return bucket
    return None


def largest_remainder(counts: Dict[str, int]) -> Dict[str, int]:
    """Integer percentages summing to exactly 100 (all zeros when empty)."""
    total = sum(counts.values())
    if total == 0:
        return {key: 0 for key in counts}
    exact = {key: counts[key] * 100 / total for key in counts}
    result = {key: int(exact[key]) for key in counts}
    short = 100 - sum(result.values())
    by_remainder = sorted(counts, key=lambda k: (-(exact[k] - result[k]), list(counts).index(k)))
    for key in by_remainder[:short]:
        result[key] += 1
    return result


def time_of_day_split(snapshot: Snapshot, today: date, months: int = 3) -> Dict[str, int]:
    """Share of completed check-ins per bucket over the trailing months."""
    counts = {bucket: 0 for bucket in BUCKETS}
    for _, month_data, entry in iter_month_days(snapshot, today, months):
        if entry is None:
            continue
        for habit in month_data.habits:
            bucket = habit_bucket(habit)
            if bucket is not None and habit.id in entry.completed_habits:
                counts[bucket] += 1
    return largest_remainder(counts)


def peak_windows(split: Dict[str, int],
                 thresholds: Thresholds = DEFAULT_THRESHOLDS) -> List[FocusWindow]:
    """
    Windows whose bucket share is notable, best first.

    A window qualifies with a share at or above the minimum, and the top
    bucket always qualifies. An all-zero split yields no windows.
    """
    top = max(split.values())
    if top == 0:
        return []
    windows = [
        FocusWindow(label=label, start=start, end=end, score=split[bucket])
        for bucket, label, start, end in FOCUS_WINDOWS
        if split[bucket] >= thresholds.focus_window_min_share or split[bucket] == top
    ]
    # Stable sort keeps chronological order for equal scores
    windows.sort(key=lambda w: -w.score)
    return windows


def analyze_focus(
    snapshot: Snapshot,
    records: List[DayRecord],
    today: date,
    months: int = 3,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> FocusAnalysis:
    """
    Time-of-day split, peak windows, weekday heatmap and optimal slot.

    Args:
        snapshot: Source records
        records: Recorded days
        today: Reference date
        months: History window in months
        thresholds: Engine thresholds

    Returns:
        FocusAnalysis
    """
    split = time_of_day_split(snapshot, today, months)
    windows = peak_windows(split, thresholds)

    heatmap = [round(avg) if avg is not None else 0 for avg in weekday_averages(records)]
    best = max(range(7), key=lambda i: (heatmap[i], -i))
    slot = OptimalSlot(
        day=WEEKDAY_NAMES[best],
        time=windows[0].label if windows else None,
        score=heatmap[best],
    )

    if records:
        mean_rate = sum(r.completion_rate for r in records) / len(records)
        productive_hours = round(mean_rate / 100 * PRODUCTIVE_DAY_HOURS, 1)
    else:
        productive_hours = 0.0

    logger.debug("Focus split %s, %d peak windows", split, len(windows))

    return FocusAnalysis(
        time_of_day_split=split,
        peak_focus_windows=windows,
        weekly_focus_heatmap=heatmap,
        optimal_slot=slot,
        avg_productive_hours=productive_hours,
    )
