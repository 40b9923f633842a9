"""
Procrastination classifier.

Reads the attention-event log and the weekly plans to find which kinds
of tasks get skipped or pushed back, how quickly the user bounces back
after a missed day, and an overall 0-100 avoidance score.
"""

import logging
import statistics
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from src.core.categories import CATEGORY_RULES, OTHER, RULES_BY_CATEGORY, classify_category
from src.core.config import Thresholds, DEFAULT_THRESHOLDS
from src.core.events import as_utc
from src.core.models import Snapshot, WeeklyTask
from src.core.temporal import as_date, week_key
from src.analytics.habit_stats import DayRecord, HabitProfile, iter_month_days


logger = logging.getLogger(__name__)

AVOIDANCE_EVENTS = ("task_skipped", "task_deferred")

# Weekly plans scanned for overdue tasks
LOOKBACK_WEEKS = 6

# category -> (trigger, description template, suggestion)
TRIGGER_COPY: Dict[str, Tuple[str, str, str]] = {
    "fitness": (
        "Workout Avoidance",
        "Exercise tasks were pushed back {count} time(s) recently.",
        "Lower the bar to a 10-minute version. Putting on workout clothes counts as starting.",
    ),
    "work": (
        "Work Task Dodging",
        "Work tasks were skipped or deferred {count} time(s).",
        "Split the task into a first 25-minute step and do only that before anything else.",
    ),
    "learning": (
        "Study Delays",
        "Learning tasks slipped {count} time(s).",
        "Attach study to an existing routine, like 15 minutes right after breakfast.",
    ),
    "finance": (
        "Money Admin Avoidance",
        "Finance tasks were put off {count} time(s).",
        "Batch all money chores into one short weekly slot and set a timer.",
    ),
    "admin": (
        "Admin Overwhelm",
        "Admin tasks (email, forms, paperwork) were pushed back {count} time(s).",
        "Use a 15-minute admin sprint at a fixed time. Stop when the timer rings.",
    ),
    "social": (
        "Social Postponing",
        "Social plans were deferred {count} time(s).",
        "Send one short message now. Commitments are easier to keep once someone expects you.",
    ),
    "creative": (
        "Creative Block",
        "Creative tasks slipped {count} time(s).",
        "Aim for a messy first draft. Ten imperfect minutes beat a perfect plan.",
    ),
    "errand": (
        "Errand Pile-up",
        "Errands were postponed {count} time(s).",
        "Chain errands into a single trip and put it on a specific day.",
    ),
    "planning": (
        "Planning Procrastination",
        "Planning and review tasks were skipped {count} time(s).",
        "Keep planning to 10 minutes with a fixed template: top 3 priorities, one habit focus.",
    ),
    "wellness": (
        "Self-care Skipping",
        "Rest and self-care tasks were skipped {count} time(s).",
        "Schedule recovery like a meeting. It is part of the work, not a reward for it.",
    ),
    "home": (
        "Household Backlog",
        "Home tasks were pushed back {count} time(s).",
        "Pair chores with something enjoyable, like a podcast, and keep each under 20 minutes.",
    ),
    "other": (
        "General Avoidance",
        "Uncategorized tasks were skipped or deferred {count} time(s).",
        "Rewrite vague tasks as a concrete first action, e.g. \"Open the doc and write the title\".",
    ),
}


@dataclass
class ProcrastinationTrigger:
    id: str
    trigger: str
    description: str
    suggestion: str
    emoji: str
    count: int


@dataclass
class DelayedItem:
    name: str
    avg_delay_days: int
    category: str


@dataclass
class ProcrastinationAnalysis:
    score: int = 0
    triggers: List[ProcrastinationTrigger] = field(default_factory=list)
    recovery_speed: str = "fast"  # 'fast' or 'slow'
    median_recovery_days: Optional[float] = None
    delayed_items: List[DelayedItem] = field(default_factory=list)
    worst_days: List[int] = field(default_factory=list)


def _task_index(snapshot: Snapshot) -> Dict[str, WeeklyTask]:
    tasks = {}
    for key in sorted(snapshot.weeks):
        for task in snapshot.weeks[key].tasks:
            tasks[task.id] = task
    return tasks


def _overdue_tasks(snapshot: Snapshot, today: date) -> Tuple[List[WeeklyTask], int]:
    """
    Pending tasks planned for a day already past, and the number of tasks
    planned up to today, over the trailing weekly plans.
    """
    overdue = []
    planned = 0
    for offset in range(LOOKBACK_WEEKS):
        week = snapshot.weeks.get(week_key(today - timedelta(days=7 * offset)))
        if week is None:
            continue
        for task in week.tasks:
            task_day = week.week_start_date + timedelta(days=task.day_index)
            if task_day > today:
                continue
            planned += 1
            if not task.completed and task_day < today:
                overdue.append(task)
    return overdue, planned


def detect_triggers(
    snapshot: Snapshot,
    now: datetime,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> List[ProcrastinationTrigger]:
    """
    Cluster skipped/deferred tasks by category.

    Each skip or defer event in the lookback window counts once toward
    the category of its task text; overdue planned tasks count once more.
    Ranked by count descending, ties in category declaration order, top
    ``max_triggers`` kept.

    Args:
        snapshot: Source records
        now: Reference time
        thresholds: Engine thresholds

    Returns:
        Ranked triggers
    """
    tasks = _task_index(snapshot)
    cutoff = as_utc(now) - timedelta(days=thresholds.avoidance_lookback_days)
    counts: Dict[str, int] = {}

    for event in snapshot.events:
        if event.type not in AVOIDANCE_EVENTS or as_utc(event.occurred_at) < cutoff:
            continue
        task = tasks.get(event.task_id) if event.task_id else None
        text = task.text if task else (event.meta or {}).get("text", "")
        rule, _ = classify_category(text)
        counts[rule.category] = counts.get(rule.category, 0) + 1

    overdue, _ = _overdue_tasks(snapshot, as_date(now))
    for task in overdue:
        rule, _ = classify_category(task.text)
        counts[rule.category] = counts.get(rule.category, 0) + 1

    order = [r.category for r in CATEGORY_RULES] + [OTHER.category]
    ranked = sorted(counts, key=lambda c: (-counts[c], order.index(c)))

    triggers = []
    for category in ranked[:thresholds.max_triggers]:
        title, description, suggestion = TRIGGER_COPY[category]
        triggers.append(ProcrastinationTrigger(
            id=f"{category}-avoidance",
            trigger=title,
            description=description.format(count=counts[category]),
            suggestion=suggestion,
            emoji=RULES_BY_CATEGORY[category].emoji,
            count=counts[category],
        ))
    return triggers


def recovery_days(snapshot: Snapshot, today: date, months: int = 3,
                  thresholds: Thresholds = DEFAULT_THRESHOLDS) -> List[int]:
    """
    Days from the start of each run of missed days to the next qualifying day.

    A day is missed when its overall completion is below the streak
    threshold or it has no entry. Today is skipped while in progress.
    A run still open at the end is measured up to today.
    """
    gaps = []
    miss_start: Optional[date] = None
    for day, month_data, entry in iter_month_days(snapshot, today, months):
        if not month_data.habits:
            continue
        if day == today and entry is None:
            continue
        pct = month_data.day_progress(day.day)
        missed = pct is None or pct < thresholds.streak_min_percent
        if missed:
            if miss_start is None:
                miss_start = day
        elif miss_start is not None:
            gaps.append((day - miss_start).days)
            miss_start = None
    if miss_start is not None:
        gaps.append(max(1, (today - miss_start).days))
    return gaps


def _worst_days(records: List[DayRecord]) -> List[int]:
    """Weekdays within 10 points of the lowest average completion."""
    totals = [0.0] * 7
    counts = [0] * 7
    for r in records:
        totals[r.weekday] += r.completion_rate
        counts[r.weekday] += 1
    averages = {i: totals[i] / counts[i] for i in range(7) if counts[i]}
    if not averages:
        return []
    lowest = min(averages.values())
    return [i for i in sorted(averages) if averages[i] <= lowest + 10]


def _delayed_items(profiles: List[HabitProfile]) -> List[DelayedItem]:
    items = [
        DelayedItem(
            name=p.habit_name,
            avg_delay_days=round((100 - p.completion_rate) / 15),
            category="habit",
        )
        for p in profiles
        if p.completion_rate < 40 and p.abandonment_risk >= 40
    ]
    return items[:5]


def analyze_procrastination(
    snapshot: Snapshot,
    records: List[DayRecord],
    profiles: List[HabitProfile],
    now: datetime,
    months: int = 3,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> ProcrastinationAnalysis:
    """
    Classify avoidance behaviour.

    Score components (clamped to 0-100):
        avoidance events in the lookback window, 4 points each up to 40
        overdue share of planned tasks x 0.3
        (100 - average daily completion) x 0.3, only with recorded days
        10 points when recovery is slow

    Args:
        snapshot: Source records (events and weekly plans)
        records: Recorded days
        profiles: Habit profiles
        now: Reference time
        months: History window in months
        thresholds: Engine thresholds

    Returns:
        ProcrastinationAnalysis
    """
    today = as_date(now)
    triggers = detect_triggers(snapshot, now, thresholds)

    gaps = recovery_days(snapshot, today, months, thresholds)
    median = float(statistics.median(gaps)) if gaps else None
    slow = median is not None and median >= thresholds.fast_recovery_below_days

    cutoff = as_utc(now) - timedelta(days=thresholds.avoidance_lookback_days)
    event_count = sum(
        1 for e in snapshot.events
        if e.type in AVOIDANCE_EVENTS and as_utc(e.occurred_at) >= cutoff
    )
    overdue, planned = _overdue_tasks(snapshot, today)
    overdue_rate = len(overdue) / planned * 100 if planned else 0

    score = min(40, event_count * 4) + overdue_rate * 0.3
    if records:
        avg_completion = sum(r.completion_rate for r in records) / len(records)
        score += (100 - avg_completion) * 0.3
    if slow:
        score += 10
    score = round(max(0, min(100, score)))

    logger.debug("Procrastination score %d (%d events, overdue %.0f%%, median recovery %s)",
                 score, event_count, overdue_rate, median)

    return ProcrastinationAnalysis(
        score=score,
        triggers=triggers,
        recovery_speed="slow" if slow else "fast",
        median_recovery_days=median,
        delayed_items=_delayed_items(profiles),
        worst_days=_worst_days(records),
    )
