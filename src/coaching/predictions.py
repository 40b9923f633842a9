"""
Completion predictions, adaptive reminders and the enhanced daily agenda.

``predict_completion`` scores how likely a task is to get done right now,
later today or tomorrow from bounded factor scores (time-of-day fit,
weekday history, today's momentum, recent mood, task length, weekly
follow-through and priority). ``generate_adaptive_reminders`` picks a
time slot, an urgency bucket and a nudge style for each task, and
``generate_enhanced_agenda`` combines today's open habits, today's
weekly tasks and overdue tasks into one ordered agenda.

Everything here is a pure function of the snapshot and ``now``.
"""

import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from src.core.models import MonthData, Snapshot, daily_progress
from src.core.temporal import WEEKDAY_SHORT, as_date
from src.analytics.habit_stats import month_completion_rate, weekly_task_rate
from src.coaching.interpreter import TaskInterpretation, interpret_task


logger = logging.getLogger(__name__)

MORNING_CATEGORIES = ("work", "fitness", "planning", "learning")
AFTERNOON_CATEGORIES = ("errand", "finance", "social")
EVENING_CATEGORIES = ("wellness", "creative", "home")

URGENCY_ORDER = {"now": 0, "soon": 1, "later": 2, "tomorrow": 3}
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

MAX_OVERDUE_ITEMS = 3
NUDGE_TEXT_LIMIT = 30


@dataclass
class PredictionFactor:
    label: str
    impact: int
    emoji: str


@dataclass
class CompletionPrediction:
    """Likelihood (5-98) of finishing a task now, later today or tomorrow."""
    complete_now_score: int
    complete_later_score: int
    complete_tomorrow_score: int
    factors: List[PredictionFactor] = field(default_factory=list)
    optimal_time_slot: str = "morning"  # 'morning', 'afternoon', 'evening'
    recommendation: str = ""


@dataclass
class AdaptiveReminder:
    task_text: str
    suggested_time: str  # 'HH:00'
    suggested_time_label: str
    reason: str
    urgency: str  # 'now', 'soon', 'later', 'tomorrow'
    nudge_style: str  # 'gentle', 'direct', 'motivational', 'accountability'
    message: str


@dataclass
class AgendaItem:
    id: str
    text: str
    interpretation: TaskInterpretation
    prediction: CompletionPrediction
    source: str  # 'habit', 'weekly', 'overdue'
    source_detail: str
    reminder: Optional[AdaptiveReminder] = None
    is_completed: bool = False


@dataclass
class AgendaSummary:
    total_items: int = 0
    total_minutes: int = 0
    high_priority_count: int = 0
    predicted_completion_rate: int = 0
    peak_productivity_window: str = ""
    motivational_message: str = ""


@dataclass
class EnhancedAgenda:
    items: List[AgendaItem] = field(default_factory=list)
    summary: AgendaSummary = field(default_factory=AgendaSummary)
    optimal_order: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class _DayState:
    """Per-call view of today's records shared by every prediction."""
    now: datetime
    today: date
    month: MonthData
    today_rate: float
    weekly_rate: int

    @property
    def hour(self) -> int:
        return self.now.hour

    @classmethod
    def load(cls, snapshot: Snapshot, now: datetime) -> '_DayState':
        today = as_date(now)
        month = snapshot.month(today.year, today.month)
        entry = month.days.get(today.day)
        total = len(month.habits)
        today_rate = len(entry.completed_habits) / total * 100 if entry and total else 0.0
        return cls(
            now=now,
            today=today,
            month=month,
            today_rate=today_rate,
            weekly_rate=weekly_task_rate(snapshot, today),
        )


# =============================================================================
# Factor scores
# =============================================================================

def time_alignment_score(hour: int, category: str) -> int:
    """How well the hour suits the category (morning deep work, evening wind-down)."""
    if 5 <= hour < 12:
        if category in MORNING_CATEGORIES:
            return 10
        return -3 if category in AFTERNOON_CATEGORIES else 0
    if 12 <= hour < 17:
        if category in AFTERNOON_CATEGORIES:
            return 8
        return 0 if category in MORNING_CATEGORIES else -3
    if 17 <= hour < 22:
        return 8 if category in EVENING_CATEGORIES else -5
    return -10


def day_of_week_score(month: MonthData, today: date, weekday: int) -> int:
    """
    Compare a weekday's completion this month with the month average.

    Returns:
        12 / 6 / 0 / -5 / -10 for a gap over 15, over 5, within 5, under -5
        and under -15 points; 0 without habits or data for that weekday
    """
    total = len(month.habits)
    if total == 0:
        return 0
    rates = []
    weekday_rates = []
    for d in range(1, today.day + 1):
        entry = month.days.get(d)
        if entry is None:
            continue
        rate = len(entry.completed_habits) / total * 100
        rates.append(rate)
        if date(today.year, today.month, d).weekday() == weekday:
            weekday_rates.append(rate)
    if not weekday_rates:
        return 0
    diff = sum(weekday_rates) / len(weekday_rates) - sum(rates) / len(rates)
    if diff > 15:
        return 12
    if diff > 5:
        return 6
    if diff < -15:
        return -10
    if diff < -5:
        return -5
    return 0


def recent_mood_average(month: MonthData, day: int, days: int) -> float:
    """Mean mood over the last ``days`` recorded days up to ``day``; 0 with none."""
    moods = [
        month.days[d].mood
        for d in range(max(1, day - days + 1), day + 1)
        if d in month.days
    ]
    return sum(moods) / len(moods) if moods else 0.0


def energy_level(hour: int) -> int:
    """Rough energy curve: high morning, post-lunch dip, low at night."""
    if hour < 10:
        return 90
    if hour < 13:
        return 75
    if hour < 15:
        return 50
    if hour < 18:
        return 65
    if hour < 21:
        return 45
    return 25


def duration_score(minutes: int, hour: int) -> int:
    energy = energy_level(hour)
    if minutes <= 15:
        return 8
    if minutes <= 30 and energy >= 50:
        return 5
    if minutes <= 60 and energy >= 65:
        return 3
    if minutes > 60 and energy < 50:
        return -10
    if minutes > 60 and energy >= 75:
        return 5
    return 0


def optimal_time_slot(interpretation: TaskInterpretation) -> str:
    if interpretation.category in ("wellness", "social"):
        return "evening"
    if interpretation.category in ("errand", "finance"):
        return "afternoon"
    return "morning"


# =============================================================================
# Predictions
# =============================================================================

def _predict(interpretation: TaskInterpretation, state: _DayState) -> CompletionPrediction:
    hour = state.hour
    weekday = state.today.weekday()
    factors = []
    score = 60

    time_score = time_alignment_score(hour, interpretation.category)
    if time_score > 0:
        factors.append(PredictionFactor("Good time for this type of task", time_score, "⏰"))
    else:
        factors.append(PredictionFactor("Not ideal time for this task", time_score, "🕐"))
    score += time_score

    dow_score = day_of_week_score(state.month, state.today, weekday)
    day_name = WEEKDAY_SHORT[weekday]
    if dow_score > 0:
        factors.append(PredictionFactor(f"{day_name} is a strong day for you", dow_score, "📅"))
    elif dow_score < 0:
        factors.append(PredictionFactor(f"{day_name} tends to be lower productivity", dow_score, "📉"))
    else:
        factors.append(PredictionFactor(f"{day_name} is an average day for you", 0, "📅"))
    score += dow_score

    rate = state.today_rate
    if rate >= 70:
        factors.append(PredictionFactor("Strong momentum today", 10, "🚀"))
        score += 10
    elif rate >= 40:
        factors.append(PredictionFactor("Decent progress today", 5, "👍"))
        score += 5
    elif rate > 0:
        factors.append(PredictionFactor("Low activity so far today", 0, "😴"))
    else:
        factors.append(PredictionFactor("Low activity so far today", -5, "😴"))
        score -= 5

    mood = recent_mood_average(state.month, state.today.day, 3)
    if mood >= 7:
        factors.append(PredictionFactor("High mood boosts completion", 10, "😊"))
        score += 10
    elif mood >= 5:
        factors.append(PredictionFactor("Neutral mood", 3, "😐"))
        score += 3
    elif mood > 0:
        factors.append(PredictionFactor("Low mood may reduce focus", -8, "😔"))
        score -= 8

    minutes = interpretation.estimated_minutes
    length_score = duration_score(minutes, hour)
    if length_score > 0:
        factors.append(PredictionFactor(f"{minutes}min task fits your current energy", length_score, "⚡"))
    else:
        factors.append(PredictionFactor(f"{minutes}min task may be too long for current energy",
                                        length_score, "🔋"))
    score += length_score

    weekly = state.weekly_rate
    if weekly >= 70:
        factors.append(PredictionFactor(f"{weekly}% weekly task rate, you follow through", 8, "✅"))
        score += 8
    elif weekly >= 40:
        factors.append(PredictionFactor(f"{weekly}% weekly task rate", 3, "📊"))
        score += 3
    elif weekly > 0:
        factors.append(PredictionFactor(f"{weekly}% weekly task rate", -5, "📊"))
        score -= 5

    if interpretation.priority == "high":
        factors.append(PredictionFactor("High priority, urgency drives action", 8, "🔴"))
        score += 8
    elif interpretation.priority == "low":
        factors.append(PredictionFactor("Low priority, easy to defer", -8, "🟢"))
        score -= 8

    now_score = max(5, min(98, score))
    later_drop = 8 if hour < 14 else 15 if hour < 18 else 25
    later_score = max(5, min(95, now_score - later_drop))

    tomorrow = (weekday + 1) % 7
    tomorrow_score = 50 + day_of_week_score(state.month, state.today, tomorrow)
    if interpretation.priority == "high":
        tomorrow_score += 10
    tomorrow_score = max(5, min(90, tomorrow_score))

    if now_score >= 75:
        recommendation = "Do it now, conditions are ideal for this task"
    elif now_score >= 55:
        if later_score > now_score - 5:
            recommendation = "Good to start now, or schedule for later today"
        else:
            recommendation = "Start now while momentum is on your side"
    elif tomorrow_score > now_score + 10:
        recommendation = (f"Consider deferring to tomorrow ({WEEKDAY_SHORT[tomorrow]}), "
                          "historically a better day for you")
    else:
        recommendation = "Break this into a smaller first step to build momentum"

    return CompletionPrediction(
        complete_now_score=now_score,
        complete_later_score=later_score,
        complete_tomorrow_score=tomorrow_score,
        factors=factors,
        optimal_time_slot=optimal_time_slot(interpretation),
        recommendation=recommendation,
    )


def predict_completion(
    interpretation: TaskInterpretation,
    snapshot: Snapshot,
    now: Optional[datetime] = None
) -> CompletionPrediction:
    """
    Predict how likely a task is to be completed now, later or tomorrow.

    Starts from 60 and adds each factor's impact. The now score is
    clamped to 5-98, later today drops 8/15/25 points (before 14:00,
    before 18:00, evening) and tomorrow regresses to 50 plus tomorrow's
    weekday score.

    Args:
        interpretation: Interpreted task (see ``interpret_task``)
        snapshot: Source records
        now: Reference time (defaults to utcnow)

    Returns:
        CompletionPrediction
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return _predict(interpretation, _DayState.load(snapshot, now))


# =============================================================================
# Adaptive reminders
# =============================================================================

def _suggested_slot(text: str, interpretation: TaskInterpretation, hour: int) -> Tuple[int, str]:
    if interpretation.priority == "high":
        if hour < 10:
            return 9, "Morning (9 AM)"
        if hour < 14:
            return hour + 1, f"Soon ({hour + 1}:00)"
        return hour, "Now"
    if interpretation.category in ("fitness", "wellness"):
        lowered = text.lower()
        if any(word in lowered for word in ("gym", "workout", "run")):
            return (7, "Early Morning (7 AM)") if hour < 8 else (17, "After Work (5 PM)")
        return 20, "Evening (8 PM)"
    if interpretation.estimated_minutes >= 60:
        slot = hour + 1 if 10 <= hour < 14 else 9
        return slot, "Morning Focus (9 AM)" if slot == 9 else f"Focus Block ({slot}:00)"
    if interpretation.estimated_minutes <= 15:
        return 14, "Afternoon Batch (2 PM)"
    return (10, "Mid-Morning (10 AM)") if hour < 12 else (15, "Afternoon (3 PM)")


def _urgency(suggested_hour: int, hour: int) -> str:
    if suggested_hour <= hour:
        return "now"
    if suggested_hour - hour <= 2:
        return "soon"
    return "tomorrow" if hour >= 20 else "later"


def _nudge_style(recent_mood: float, today_rate: float, priority: str) -> str:
    # A day with no mood entries is not treated as a low-mood day
    if 0 < recent_mood < 5:
        return "gentle"
    if today_rate >= 70:
        return "motivational"
    if priority == "high":
        return "direct"
    return "accountability"


def nudge_message(text: str, style: str, urgency: str, minutes: int) -> str:
    short = text if len(text) <= NUDGE_TEXT_LIMIT else text[:NUDGE_TEXT_LIMIT] + "..."
    now = urgency == "now"
    if style == "gentle":
        if now:
            return f'When you\'re ready, "{short}" would be a great next step. Just {minutes} minutes.'
        return f'No rush, "{short}" is on your list for later. Take your time.'
    if style == "direct":
        if now:
            return f'Time to tackle "{short}". It\'s high priority and will take ~{minutes} min.'
        return f'"{short}" is coming up. Block {minutes} minutes for it.'
    if style == "motivational":
        if now:
            return f'You\'re on a roll! "{short}" is next, {minutes} min and you\'ll feel amazing.'
        return f'Keep the momentum going! "{short}" is queued up for later.'
    if now:
        return f'"{short}": you planned this. {minutes} min to check it off. Let\'s go.'
    return f'Reminder: "{short}" is scheduled. Past you made this plan for a reason.'


def reminder_reason(interpretation: TaskInterpretation, suggested_hour: int) -> str:
    if interpretation.priority == "high":
        return "High priority, scheduled for the earliest available slot"
    if interpretation.estimated_minutes >= 60:
        if suggested_hour < 12:
            return "Deep work tasks perform best in morning focus blocks"
        return "Scheduled for your next available focus block"
    if interpretation.estimated_minutes <= 15:
        return "Quick task, batched with other short tasks for efficiency"
    if interpretation.category == "fitness":
        return "Health tasks have highest completion at consistent daily times"
    return "Scheduled based on your typical productivity patterns"


def _reminder(text: str, interpretation: TaskInterpretation, state: _DayState,
              recent_mood: float) -> AdaptiveReminder:
    hour = state.hour
    suggested_hour, label = _suggested_slot(text, interpretation, hour)
    urgency = _urgency(suggested_hour, hour)
    style = _nudge_style(recent_mood, state.today_rate, interpretation.priority)
    return AdaptiveReminder(
        task_text=text,
        suggested_time=f"{suggested_hour:02d}:00",
        suggested_time_label=label,
        reason=reminder_reason(interpretation, suggested_hour),
        urgency=urgency,
        nudge_style=style,
        message=nudge_message(text, style, urgency, interpretation.estimated_minutes),
    )


def generate_adaptive_reminders(
    tasks: List[Tuple[str, TaskInterpretation]],
    snapshot: Snapshot,
    now: Optional[datetime] = None
) -> List[AdaptiveReminder]:
    """
    Choose when and how to remind the user about each task.

    The nudge style follows the user's state: gentle after a low-mood
    stretch (last 5 days), motivational on a strong day, direct for high
    priority work, accountability otherwise.

    Args:
        tasks: (task text, interpretation) pairs
        snapshot: Source records
        now: Reference time (defaults to utcnow)

    Returns:
        One reminder per task, ordered now, soon, later, tomorrow (stable)
    """
    if now is None:
        now = datetime.now(timezone.utc)
    state = _DayState.load(snapshot, now)
    mood = recent_mood_average(state.month, state.today.day, 5)
    reminders = [_reminder(text, interp, state, mood) for text, interp in tasks]
    reminders.sort(key=lambda r: URGENCY_ORDER[r.urgency])
    return reminders


# =============================================================================
# Enhanced agenda
# =============================================================================

def peak_productivity_window(hour: int) -> str:
    if hour < 10:
        return "9 AM to 12 PM"
    if hour < 14:
        return "Now to 2 PM"
    if hour < 18:
        return "Now to 6 PM"
    return "Tomorrow morning"


def _motivational_message(items: List[AgendaItem], total_minutes: int, high_count: int,
                          average: int, today: date, hour: int) -> str:
    messages = [
        f"{len(items)} items, ~{round(total_minutes / 60, 1)}h of work. You've got this!",
        "Focus on the top 3 and you'll have a great day.",
        f"{high_count} high-priority items need your attention first.",
        (f"Your prediction score is {average}%, conditions are "
         f"{'great' if average >= 65 else 'decent'} for productivity."),
        "Start with the hardest task while your energy is highest.",
    ]
    return messages[(today.day + hour) % len(messages)]


def generate_enhanced_agenda(snapshot: Snapshot, now: Optional[datetime] = None) -> EnhancedAgenda:
    """
    Build today's agenda from open habits, today's tasks and overdue tasks.

    Habit priority follows month-to-date strength (below 30% high, below
    60% medium); overdue tasks (earlier this week, at most 3) are always
    high. Each item carries its own prediction and reminder. Items are
    ordered by priority, then by the now score, highest first.

    Args:
        snapshot: Source records
        now: Reference time (defaults to utcnow)

    Returns:
        EnhancedAgenda
    """
    if now is None:
        now = datetime.now(timezone.utc)
    state = _DayState.load(snapshot, now)
    today = state.today
    weekday = today.weekday()
    month = state.month
    entry = month.days.get(today.day)
    done_today = entry.completed_habits if entry else set()

    candidates: List[Tuple[str, str, TaskInterpretation, str, str]] = []
    for habit in month.habits:
        if habit.id in done_today:
            continue
        interp = interpret_task(habit.name)
        strength = month_completion_rate(month, habit.id, today.day)
        if strength < 30:
            interp = replace(interp, priority="high")
        elif strength < 60:
            interp = replace(interp, priority="medium")
        candidates.append((f"habit-{habit.id}", habit.name, interp, "habit", f"{strength}% this month"))

    week = snapshot.week(today)
    if week is not None:
        for task in week.tasks:
            if task.day_index == weekday and not task.completed:
                candidates.append((f"weekly-{task.id}", task.text, interpret_task(task.text),
                                   "weekly", "Scheduled for today"))
        overdue = [t for t in week.tasks if not t.completed and t.day_index < weekday]
        for task in overdue[:MAX_OVERDUE_ITEMS]:
            interp = replace(interpret_task(task.text), priority="high")
            candidates.append((f"overdue-{task.id}", task.text, interp, "overdue",
                               f"Overdue from {WEEKDAY_SHORT[task.day_index]}"))

    mood = recent_mood_average(month, today.day, 5)
    items = [
        AgendaItem(
            id=item_id,
            text=text,
            interpretation=interp,
            prediction=_predict(interp, state),
            source=source,
            source_detail=detail,
            reminder=_reminder(text, interp, state, mood),
        )
        for item_id, text, interp, source, detail in candidates
    ]
    items.sort(key=lambda item: (PRIORITY_ORDER[item.interpretation.priority],
                                 -item.prediction.complete_now_score))

    total_minutes = sum(item.interpretation.estimated_minutes for item in items)
    high_count = sum(1 for item in items if item.interpretation.priority == "high")
    average = round(sum(item.prediction.complete_now_score for item in items) / len(items)) if items else 0
    logger.debug("Agenda for %s: %d items, %d min, %d%% predicted",
                 today, len(items), total_minutes, average)

    return EnhancedAgenda(
        items=items,
        summary=AgendaSummary(
            total_items=len(items),
            total_minutes=total_minutes,
            high_priority_count=high_count,
            predicted_completion_rate=average,
            peak_productivity_window=peak_productivity_window(state.hour),
            motivational_message=_motivational_message(
                items, total_minutes, high_count, average, today, state.hour),
        ),
        optimal_order=[item.id for item in items],
    )
