"""
Daily briefing and avoidance scorer.

Picks the single pending task the user has been avoiding the most and
wraps today's numbers in persona-flavoured, fully deterministic text.

Avoidance score of a pending task:

    (skips + defers in the lookback window) x 2.2 + min(age in days, 14) x 0.35

where age is today's weekday index minus the task's day index (>= 0).
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from src.core.config import Thresholds, DEFAULT_THRESHOLDS
from src.core.events import count_events
from src.core.models import AttentionEvent, Snapshot, WeeklyTask, daily_progress
from src.core.temporal import as_date
from src.analytics.profile import UserBehaviorProfile
from src.coaching.insights import greeting_for
from src.coaching.personas import (
    BriefingPersona,
    PersonaStyle,
    get_persona,
    pick_daily_from_list,
)


logger = logging.getLogger(__name__)

HEADLINE = "Your Attention Report 🎬"


@dataclass
class BriefingCard:
    label: str
    value: str
    tone: str  # 'good', 'neutral', 'warning'


@dataclass
class MovedUpItem:
    task_id: str
    title: str
    reason: str
    score: float


@dataclass
class DailyBriefing:
    title: str
    headline: str
    one_liner: str
    vibe_tag: str
    narration_text: str
    signature_line: str
    persona_id: str
    cards: List[BriefingCard] = field(default_factory=list)
    moved_up: Optional[MovedUpItem] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BriefingInput:
    greeting: str
    streak: int
    today_progress: int
    agenda_count: int
    completed_today: int
    total_habits: int
    remaining_habits: List[str]
    week_tasks: List[WeeklyTask]
    today_index: int
    events: List[AttentionEvent] = field(default_factory=list)


def avoidance_score(skips: int, defers: int, age_days: int,
                    thresholds: Thresholds = DEFAULT_THRESHOLDS) -> float:
    """Weighted avoidance score; age is clamped to [0, age cap]."""
    age = min(max(0, age_days), thresholds.avoidance_age_cap_days)
    return (skips + defers) * thresholds.avoidance_event_weight + age * thresholds.avoidance_age_weight


def _avoidance_counts(task: WeeklyTask, events: List[AttentionEvent], now: datetime,
                      thresholds: Thresholds) -> int:
    window = thresholds.avoidance_lookback_days
    return (
        count_events(events, "task_skipped", window, now, task_id=task.id)
        + count_events(events, "task_deferred", window, now, task_id=task.id)
    )


def select_moved_up(
    data: BriefingInput,
    style: PersonaStyle,
    now: datetime,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> Optional[MovedUpItem]:
    """
    Highest-scoring pending task due today or earlier.

    Ties keep the task listed first.
    """
    pending = [t for t in data.week_tasks if not t.completed and t.day_index <= data.today_index]
    if not pending:
        return None

    best, best_score, best_count = None, -1.0, 0
    for task in pending:
        pushes = _avoidance_counts(task, data.events, now, thresholds)
        score = avoidance_score(pushes, 0, data.today_index - task.day_index, thresholds)
        if score > best_score:
            best, best_score, best_count = task, score, pushes

    age = max(0, data.today_index - best.day_index)
    days = f"{age} day{'s' if age != 1 else ''}"
    if style.bluntness > 0.7:
        reason = f"Deferred {best_count}x. No more." if best_count else f"{days} old. Move."
    elif style.warmth > 0.7:
        reason = (f"You've pushed this {best_count} time{'s' if best_count > 1 else ''}. Just ten minutes."
                  if best_count else "It's been waiting. Give it ten minutes.")
    else:
        reason = (f"Deferred {best_count}x. Ten minutes. No negotiation."
                  if best_count else f"Open {days}. Ten minutes.")
    return MovedUpItem(task_id=best.id, title=best.text, reason=reason, score=round(best_score, 2))


def build_cards(today_progress: int, agenda_count: int, streak: int) -> List[BriefingCard]:
    if today_progress >= 70:
        progress_tone = "good"
    elif today_progress >= 30:
        progress_tone = "neutral"
    else:
        progress_tone = "warning"
    if streak >= 7:
        streak_tone = "good"
    elif streak > 0:
        streak_tone = "neutral"
    else:
        streak_tone = "warning"
    return [
        BriefingCard("Today", f"{today_progress}%", progress_tone),
        BriefingCard("Agenda", str(agenda_count), "neutral"),
        BriefingCard("Streak", f"{streak}d" if streak > 0 else "0", streak_tone),
    ]


def vibe_tag(streak: int, today_progress: int, agenda_count: int) -> str:
    if streak >= 7:
        return "Momentum: 🔥"
    if today_progress >= 70:
        return "Locked in: 🎯"
    if agenda_count > 5:
        return "Loaded: ⚡"
    if today_progress > 0:
        return "Building: 🧠"
    return "Fresh start: ✨"


def _one_liner(data: BriefingInput, moved_up: Optional[MovedUpItem], style: PersonaStyle) -> str:
    streak, progress = data.streak, data.today_progress
    if moved_up and streak > 0:
        if style.bluntness > 0.7:
            return f'{streak}-day streak. "{moved_up.title}" is the weak link. Fix it.'
        if style.warmth > 0.7:
            return f'{streak} days strong, and "{moved_up.title}" could use some love.'
        return f'{streak}-day streak, but "{moved_up.title}" is still dodging me.'
    if streak >= 7:
        if style.urgency > 0.7:
            return f"{streak} days. Do not break this chain."
        return f"{streak} days straight. Beautiful consistency."
    if progress >= 80:
        if style.humor > 0.5:
            return f"{progress}% done. Are you even human today?"
        return f"{progress}% done. Strong execution."
    if moved_up:
        if style.bluntness > 0.7:
            return f'"{moved_up.title}" has been hiding. Not anymore.'
        return f'"{moved_up.title}" keeps sliding. Today it moves.'
    if data.agenda_count > 0:
        return f"{data.agenda_count} things on deck. Pick one. Start with ten minutes."
    if style.warmth > 0.7:
        return "Fresh day. No pressure. Just start."
    return "Nothing on the board yet. First move wins."


def _hook(greeting: str, hour: int, style: PersonaStyle) -> str:
    if style.warmth > 0.7:
        lines = ("Hope you slept well.", "How's your day going?", "Almost there.")
    elif style.bluntness > 0.7:
        lines = ("Time to earn it.", "Halfway. No coasting.", "Final push.")
    elif style.humor > 0.5:
        lines = ("Your attention's already trying to escape.", "Afternoon energy check.",
                 "The evening audit. No judgment.")
    else:
        lines = ("Here's your briefing.", "Midday check-in.", "End of day review.")
    if hour < 12:
        return f"{greeting} {lines[0]}"
    if hour < 18:
        return f"{greeting} {lines[1]}"
    return f"{greeting} {lines[2]}"


def _stats(data: BriefingInput, style: PersonaStyle) -> str:
    done, remaining = data.completed_today, len(data.remaining_habits)
    progress, agenda = data.today_progress, data.agenda_count
    if done > 0 and remaining > 0:
        if style.bluntness > 0.7:
            return f"{done} done. {remaining} still waiting. {progress}%."
        if style.warmth > 0.7:
            return f"Nice work on {done} so far. {remaining} more to go. {progress}% today."
        return f"{done} done, {remaining} remaining. {progress}% through today."
    if done > 0:
        if style.warmth > 0.7:
            return f"{done} of {data.total_habits} habits done. Well played."
        return f"{done} of {data.total_habits} checked off. {progress}% today."
    if style.bluntness > 0.7:
        return f"{agenda} items. Nothing done yet. Clock's ticking."
    return f"{agenda} item{'s' if agenda != 1 else ''} waiting. Nothing checked yet."


def _coach(data: BriefingInput, moved_up: Optional[MovedUpItem], style: PersonaStyle) -> str:
    remaining = data.remaining_habits
    if moved_up:
        if style.bluntness > 0.7:
            return f'I moved up "{moved_up.title}". Deal with it.'
        if style.warmth > 0.7:
            return f'I gently moved up "{moved_up.title}". You can handle this.'
        return f'I moved up "{moved_up.title}". You know why.'
    if data.streak >= 7:
        if style.urgency > 0.7:
            return f"{data.streak}-day streak. Protect it at all costs."
        return f"{data.streak}-day streak. Keep it going."
    if len(remaining) == 1:
        if style.warmth > 0.7:
            return f"Just one habit left: {remaining[0]}. You're so close."
        return f"One habit left: {remaining[0]}. Finish it."
    if remaining:
        if style.bluntness > 0.7:
            return f"{len(remaining)} habits to go. Hardest one first."
        return f"{len(remaining)} habits remaining. Pick one."
    if style.warmth > 0.7:
        return "All done. You earned your rest."
    return "All clear. Use the space wisely."


def _close(style: PersonaStyle) -> str:
    if style.urgency > 0.7:
        return "Ten minutes. Go."
    if style.warmth > 0.7:
        return "Start with ten gentle minutes."
    return "Start with ten minutes."


def generate_daily_briefing(
    data: BriefingInput,
    persona: Optional[BriefingPersona] = None,
    now: Optional[datetime] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS
) -> DailyBriefing:
    """
    Assemble the daily briefing.

    Args:
        data: Today's numbers, weekly tasks and attention events
        persona: Narration persona (defaults to the strategist)
        now: Reference time (defaults to utcnow)
        thresholds: Engine thresholds (avoidance coefficients)

    Returns:
        DailyBriefing; identical inputs give identical text
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if persona is None:
        persona = get_persona(None)
    style = persona.style
    date_iso = as_date(now).isoformat()

    catchphrases = persona.catchphrases
    catchphrase = catchphrases[
        abs(data.today_progress + data.streak + data.agenda_count) % len(catchphrases)
    ]
    signature = pick_daily_from_list(date_iso, f"sig:{persona.id}", persona.signature_lines)

    moved_up = select_moved_up(data, style, now, thresholds)
    greeting = data.greeting.rstrip(".!")
    narration = " ".join([
        _hook(f"{greeting}.", now.hour, style),
        _stats(data, style),
        _coach(data, moved_up, style),
        catchphrase,
        signature,
        _close(style),
    ])
    if moved_up:
        logger.debug("Moved up %s (score %.2f)", moved_up.task_id, moved_up.score)

    return DailyBriefing(
        title=f"{greeting}.",
        headline=HEADLINE,
        one_liner=_one_liner(data, moved_up, style),
        vibe_tag=vibe_tag(data.streak, data.today_progress, data.agenda_count),
        narration_text=narration,
        signature_line=signature,
        persona_id=persona.id,
        cards=build_cards(data.today_progress, data.agenda_count, data.streak),
        moved_up=moved_up,
    )


def briefing_input_for(profile: UserBehaviorProfile, snapshot: Snapshot,
                       now: datetime) -> BriefingInput:
    """Collect today's briefing numbers from the snapshot and profile."""
    today = as_date(now)
    month = snapshot.month(today.year, today.month)
    entry = month.days.get(today.day)
    completed = [h for h in month.habits if entry is not None and h.id in entry.completed_habits]
    remaining = [h.name for h in month.habits if h not in completed]
    week = snapshot.week(today)
    tasks = list(week.tasks) if week is not None else []
    today_index = today.weekday()
    due = [t for t in tasks if not t.completed and t.day_index <= today_index]
    return BriefingInput(
        greeting=greeting_for(now.hour),
        streak=profile.current_streak,
        today_progress=daily_progress(entry, len(month.habits)),
        agenda_count=len(remaining) + len(due),
        completed_today=len(completed),
        total_habits=len(month.habits),
        remaining_habits=remaining,
        week_tasks=tasks,
        today_index=today_index,
        events=list(snapshot.events),
    )
