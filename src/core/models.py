"""
Data models for the Habit Insight Engine
Defines the source records (habits, day entries, months, weekly plans,
attention events) the engine reads, plus the snapshot handed to it.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any, Set
import logging

from .temporal import month_key, week_key


logger = logging.getLogger(__name__)

EVENT_TYPES = (
    "task_completed",
    "task_skipped",
    "task_deferred",
    "habit_missed",
    "app_open",
)

MOOD_MIN = 0
MOOD_MAX = 10
DEFAULT_MOOD = 5


def _clamp_int(value: Any, low: int, high: int, default: int) -> int:
    """Coerce a stored value into an integer range."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


@dataclass(frozen=True)
class HabitRecord:
    """Habit identity and display name"""
    id: str
    name: str
    time_of_day: Optional[str] = None  # 'morning', 'afternoon', 'evening' or None
    minimum_version: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HabitRecord':
        return cls(
            id=str(data['id']),
            name=data.get('name', ''),
            time_of_day=data.get('time_of_day'),
            minimum_version=bool(data.get('minimum_version', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {"id": self.id, "name": self.name}
        if self.time_of_day:
            result["time_of_day"] = self.time_of_day
        if self.minimum_version:
            result["minimum_version"] = True
        return result


@dataclass
class DayEntry:
    """One calendar day of habit check-ins plus mood and motivation (0-10)"""
    completed_habits: Set[str] = field(default_factory=set)
    mood: int = DEFAULT_MOOD
    motivation: int = DEFAULT_MOOD

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DayEntry':
        completed = data.get('completed_habits', data.get('completedHabits', []))
        return cls(
            completed_habits={str(h) for h in completed},
            mood=_clamp_int(data.get('mood'), MOOD_MIN, MOOD_MAX, DEFAULT_MOOD),
            motivation=_clamp_int(data.get('motivation'), MOOD_MIN, MOOD_MAX, DEFAULT_MOOD),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed_habits": sorted(self.completed_habits),
            "mood": self.mood,
            "motivation": self.motivation,
        }


@dataclass
class MonthData:
    """
    Habits and day entries for one calendar month.

    Invariant: every id in a day's ``completed_habits`` names one of
    ``habits``. Use ``prune_stale()`` after removing a habit.
    """
    habits: List[HabitRecord] = field(default_factory=list)
    days: Dict[int, DayEntry] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> 'MonthData':
        return cls()

    def habit_ids(self) -> Set[str]:
        return {h.id for h in self.habits}

    def find_habit(self, habit_id: str, name: Optional[str] = None) -> Optional[HabitRecord]:
        """Find a habit by id, falling back to a name match across months."""
        for habit in self.habits:
            if habit.id == habit_id:
                return habit
        if name:
            for habit in self.habits:
                if habit.name == name:
                    return habit
        return None

    def prune_stale(self) -> List[str]:
        """
        Remove completed ids that no longer match a habit.

        Returns:
            Sorted list of the removed habit ids
        """
        valid = self.habit_ids()
        removed: Set[str] = set()
        for entry in self.days.values():
            stale = entry.completed_habits - valid
            if stale:
                removed |= stale
                entry.completed_habits -= stale
        if removed:
            logger.warning("Pruned stale habit ids from month: %s", sorted(removed))
        return sorted(removed)

    def day_progress(self, day: int) -> Optional[int]:
        """
        Rounded completion percentage for a day, or None without an entry.

        A month with no habits yields 0 for any recorded day.
        """
        entry = self.days.get(day)
        if entry is None:
            return None
        return daily_progress(entry, len(self.habits))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MonthData':
        habits = [HabitRecord.from_dict(h) for h in data.get('habits', [])]
        days = {
            int(day): DayEntry.from_dict(entry)
            for day, entry in (data.get('days') or {}).items()
        }
        month = cls(habits=habits, days=days)
        month.prune_stale()
        return month

    def to_dict(self) -> Dict[str, Any]:
        return {
            "habits": [h.to_dict() for h in self.habits],
            "days": {str(day): entry.to_dict() for day, entry in sorted(self.days.items())},
        }


def daily_progress(entry: Optional[DayEntry], total_habits: int) -> int:
    """Rounded percentage of habits completed in a day entry."""
    if entry is None or total_habits <= 0:
        return 0
    return round(len(entry.completed_habits) / total_habits * 100)


@dataclass
class WeeklyTask:
    """Weekly planner task (day_index is Monday-first, 0-6)"""
    id: str
    text: str
    completed: bool = False
    day_index: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WeeklyTask':
        return cls(
            id=str(data['id']),
            text=data.get('text', ''),
            completed=bool(data.get('completed', False)),
            day_index=_clamp_int(data.get('day_index', data.get('dayIndex')), 0, 6, 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "day_index": self.day_index,
        }


@dataclass
class WeeklyData:
    """Weekly plan keyed by ISO week"""
    week_start_date: date
    tasks: List[WeeklyTask] = field(default_factory=list)
    habits: List[HabitRecord] = field(default_factory=list)
    habit_completions: Dict[str, List[bool]] = field(default_factory=dict)
    notes: str = ""

    @property
    def key(self) -> str:
        return week_key(self.week_start_date)

    def completion_rate(self) -> int:
        if not self.tasks:
            return 0
        done = sum(1 for t in self.tasks if t.completed)
        return round(done / len(self.tasks) * 100)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WeeklyData':
        completions = {}
        for habit_id, flags in (data.get('habit_completions') or {}).items():
            padded = [bool(f) for f in list(flags)[:7]]
            completions[str(habit_id)] = padded + [False] * (7 - len(padded))
        return cls(
            week_start_date=date.fromisoformat(data['week_start_date']),
            tasks=[WeeklyTask.from_dict(t) for t in data.get('tasks', [])],
            habits=[HabitRecord.from_dict(h) for h in data.get('habits', [])],
            habit_completions=completions,
            notes=data.get('notes', ''),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week_start_date": self.week_start_date.isoformat(),
            "tasks": [t.to_dict() for t in self.tasks],
            "habits": [h.to_dict() for h in self.habits],
            "habit_completions": self.habit_completions,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class AttentionEvent:
    """Task/habit interaction logged for avoidance analysis"""
    id: str
    type: str
    occurred_at: datetime
    task_id: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AttentionEvent':
        occurred_at = cls._parse_datetime(data.get('occurred_at'))
        if occurred_at is None:
            raise ValueError(f"Event {data.get('id')!r} has no valid occurred_at")
        return cls(
            id=str(data['id']),
            type=data['type'],
            occurred_at=occurred_at,
            task_id=data.get('task_id'),
            meta=data.get('meta'),
        )

    @staticmethod
    def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
        """Parse an ISO timestamp, assuming UTC when no offset is stored"""
        if dt_str:
            try:
                parsed = datetime.fromisoformat(dt_str)
            except (ValueError, TypeError):
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "occurred_at": self.occurred_at.isoformat(),
            "task_id": self.task_id,
            "meta": self.meta,
        }


@dataclass
class Snapshot:
    """
    Immutable-by-convention view of a user's records handed to the engine.

    Attributes:
        months: MonthData keyed by ``YYYY-MM``
        weeks: WeeklyData keyed by ``YYYY-Www``
        events: Attention events, oldest first
    """
    months: Dict[str, MonthData] = field(default_factory=dict)
    weeks: Dict[str, WeeklyData] = field(default_factory=dict)
    events: List[AttentionEvent] = field(default_factory=list)

    def month(self, year: int, month: int) -> MonthData:
        return self.months.get(month_key(year, month)) or MonthData.empty()

    def week(self, value: date) -> Optional[WeeklyData]:
        return self.weeks.get(week_key(value))


@dataclass
class EngineResponse:
    """
    Standard result structure for commands run against the engine.

    Attributes:
        success: Whether the operation completed successfully
        message: Human-readable description of the result
        data: Optional structured payload
        suggestions: Optional follow-up hints for the user
    """
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    suggestions: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "suggestions": self.suggestions,
        }

    @classmethod
    def error(cls, message: str, data: Optional[Dict[str, Any]] = None) -> 'EngineResponse':
        """Factory method for creating error responses."""
        return cls(success=False, message=message, data=data)

    @classmethod
    def ok(cls, message: str, data: Optional[Dict[str, Any]] = None,
           suggestions: Optional[List[str]] = None) -> 'EngineResponse':
        """Factory method for creating success responses."""
        return cls(success=True, message=message, data=data, suggestions=suggestions)
