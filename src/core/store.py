"""
SQLite record store for habit months, weekly plans, settings and events.

This is the persistence collaborator the engine reads snapshots from.
Every record is a JSON document keyed by (user, kind, key):

    kind='month'     key='YYYY-MM'
    kind='week'      key='YYYY-Www'
    kind='settings'  key='settings'
    kind='events'    key='events'

A missing record is reported as absence (empty month, ``None`` week,
empty settings). A record that cannot be decoded raises
``CorruptRecordError`` so corrupt data is never mistaken for "no data".
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from .events import AttentionLog
from .models import (
    EngineResponse,
    HabitRecord,
    MonthData,
    Snapshot,
    WeeklyData,
    WeeklyTask,
)
from .temporal import month_key, recent_months, week_key, week_start, weekday_index


logger = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA = """
    CREATE TABLE IF NOT EXISTS records (
        user TEXT NOT NULL,
        kind TEXT NOT NULL,
        key TEXT NOT NULL,
        payload TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        PRIMARY KEY (user, kind, key)
    )
"""


class StoreError(Exception):
    """Base error for the record store"""


class CorruptRecordError(StoreError):
    """A stored record exists but cannot be decoded"""

    def __init__(self, kind: str, key: str, reason: str):
        super().__init__(f"Corrupt {kind} record {key!r}: {reason}")
        self.kind = kind
        self.key = key


class RecordStore:
    """JSON-document store on SQLite, one connection per operation"""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.init_schema()

    @contextmanager
    def get_connection(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self.get_connection() as conn:
            conn.execute(SCHEMA)
            conn.commit()

    # =========================================================================
    # Raw document access
    # =========================================================================

    def _read(self, user: str, kind: str, key: str) -> Optional[Any]:
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT payload FROM records WHERE user = ? AND kind = ? AND key = ?",
                (user, kind, key),
            ).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["payload"])
        except json.JSONDecodeError as e:
            raise CorruptRecordError(kind, key, str(e)) from e

    def _write(self, user: str, kind: str, key: str, payload: Any) -> None:
        with self.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO records (user, kind, key, payload, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user, kind, key)
                DO UPDATE SET payload = excluded.payload, updated_at = excluded.updated_at
                """,
                (user, kind, key, json.dumps(payload),
                 datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()

    def _decode(self, kind: str, key: str, payload: Any,
                decoder: Callable[[Any], T]) -> T:
        """Run a model decoder, reporting structural problems as corruption."""
        try:
            return decoder(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CorruptRecordError(kind, key, f"{type(e).__name__}: {e}") from e

    def _list_keys(self, user: str, kind: str) -> List[str]:
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT key FROM records WHERE user = ? AND kind = ? ORDER BY key",
                (user, kind),
            ).fetchall()
        return [row["key"] for row in rows]

    # =========================================================================
    # Typed records
    # =========================================================================

    def load_month(self, user: str, key: str) -> MonthData:
        payload = self._read(user, "month", key)
        if payload is None:
            return MonthData.empty()
        return self._decode("month", key, payload, MonthData.from_dict)

    def save_month(self, user: str, key: str, month: MonthData) -> None:
        month.prune_stale()
        self._write(user, "month", key, month.to_dict())

    def load_week(self, user: str, key: str) -> Optional[WeeklyData]:
        payload = self._read(user, "week", key)
        if payload is None:
            return None
        return self._decode("week", key, payload, WeeklyData.from_dict)

    def save_week(self, user: str, week: WeeklyData) -> None:
        self._write(user, "week", week.key, week.to_dict())

    def load_settings(self, user: str) -> Dict[str, Any]:
        payload = self._read(user, "settings", "settings")
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise CorruptRecordError("settings", "settings", "expected an object")
        return payload

    def save_settings(self, user: str, settings: Dict[str, Any]) -> None:
        self._write(user, "settings", "settings", settings)

    def load_events(self, user: str, capacity: int = 500) -> AttentionLog:
        payload = self._read(user, "events", "events")
        if payload is None:
            return AttentionLog(capacity=capacity)
        return self._decode(
            "events", "events", payload,
            lambda data: AttentionLog.from_list(data, capacity=capacity),
        )

    def save_events(self, user: str, log: AttentionLog) -> None:
        self._write(user, "events", "events", log.to_list())

    def list_month_keys(self, user: str) -> List[str]:
        return self._list_keys(user, "month")

    def list_week_keys(self, user: str) -> List[str]:
        return self._list_keys(user, "week")

    def load_snapshot(self, user: str, today: date, months: int = 3,
                      event_capacity: int = 500) -> Snapshot:
        """
        Read everything the engine needs for ``today``.

        Args:
            user: User key
            today: Reference date
            months: Number of trailing months to load
            event_capacity: Attention log capacity

        Returns:
            Snapshot with the trailing months, the current and three
            previous weeks, and the attention events
        """
        snapshot = Snapshot()
        for year, month in recent_months(today, months):
            key = month_key(year, month)
            snapshot.months[key] = self.load_month(user, key)
        for offset in range(4):
            key = week_key(today - timedelta(days=7 * offset))
            week = self.load_week(user, key)
            if week is not None:
                snapshot.weeks[key] = week
        snapshot.events = self.load_events(user, event_capacity).snapshot()
        return snapshot

    # =========================================================================
    # Actions emitted by the insight generator
    # =========================================================================

    def apply_action(self, user: str, action_type: str, payload: Optional[Dict[str, Any]],
                     now: Optional[datetime] = None) -> EngineResponse:
        """
        Execute a declarative insight action against the stored records.

        Args:
            user: User key
            action_type: Action type emitted with an insight
            payload: Action payload
            now: Reference time (defaults to utcnow)

        Returns:
            EngineResponse describing the change
        """
        if now is None:
            now = datetime.now(timezone.utc)
        payload = payload or {}
        handlers = {
            "reschedule": self._apply_reschedule,
            "lower_difficulty": self._apply_lower_difficulty,
            "create_minimum": self._apply_create_minimum,
            "dismiss_habit": self._apply_dismiss_habit,
            "navigate": self._apply_passthrough,
            "focus_mode": self._apply_passthrough,
        }
        handler = handlers.get(action_type)
        if handler is None:
            return EngineResponse.error(f"Unknown action type: {action_type}")
        logger.debug("Applying %s action for %s: %s", action_type, user, payload)
        return handler(user, payload, now)

    def _current_month(self, user: str, now: datetime) -> Tuple[str, MonthData]:
        key = month_key(now.year, now.month)
        return key, self.load_month(user, key)

    def _apply_reschedule(self, user: str, payload: Dict[str, Any],
                          now: datetime) -> EngineResponse:
        habit_id = payload.get("habit_id")
        habit_name = payload.get("habit_name") or habit_id
        if not habit_id:
            return EngineResponse.error("reschedule needs a habit_id")

        tomorrow = now.date() + timedelta(days=1)
        key = week_key(tomorrow)
        week = self.load_week(user, key) or WeeklyData(week_start_date=week_start(tomorrow))
        task = WeeklyTask(
            id=f"catchup-{habit_id}-{tomorrow.isoformat()}",
            text=habit_name,
            day_index=weekday_index(tomorrow),
        )
        if any(t.id == task.id for t in week.tasks):
            return EngineResponse.ok(f'"{habit_name}" is already on tomorrow\'s plan')
        week.tasks.append(task)
        self.save_week(user, week)
        return EngineResponse.ok(
            f'Moved "{habit_name}" to tomorrow',
            data={"week_key": key, "task": task.to_dict()},
        )

    def _set_minimum(self, month: MonthData, habit_ids: List[str]) -> List[str]:
        changed = []
        for i, habit in enumerate(month.habits):
            if habit.id in habit_ids and not habit.minimum_version:
                month.habits[i] = HabitRecord(
                    id=habit.id,
                    name=habit.name,
                    time_of_day=habit.time_of_day,
                    minimum_version=True,
                )
                changed.append(habit.name)
        return changed

    def _apply_lower_difficulty(self, user: str, payload: Dict[str, Any],
                                now: datetime) -> EngineResponse:
        habit_id = payload.get("habit_id")
        if habit_id:
            key, month = self._current_month(user, now)
            changed = self._set_minimum(month, [habit_id])
            self.save_month(user, key, month)
            if not changed:
                return EngineResponse.ok("Nothing to lower")
            return EngineResponse.ok(f'Lowered difficulty of "{changed[0]}"',
                                     data={"habits": changed})

        settings = self.load_settings(user)
        settings["lowered_goals"] = {
            "reason": payload.get("reason", "manual"),
            "week_key": week_key(now),
        }
        self.save_settings(user, settings)
        return EngineResponse.ok("Lowered goals for this week",
                                 data=settings["lowered_goals"])

    def _apply_create_minimum(self, user: str, payload: Dict[str, Any],
                              now: datetime) -> EngineResponse:
        habit_ids = [h.get("id") for h in payload.get("habits", []) if h.get("id")]
        if not habit_ids:
            return EngineResponse.error("create_minimum needs habits")
        key, month = self._current_month(user, now)
        changed = self._set_minimum(month, habit_ids)
        self.save_month(user, key, month)
        return EngineResponse.ok(
            f"Minimum versions set for {len(changed)} habit(s)",
            data={"habits": changed},
        )

    def _apply_dismiss_habit(self, user: str, payload: Dict[str, Any],
                             now: datetime) -> EngineResponse:
        habit_id = payload.get("habit_id")
        key, month = self._current_month(user, now)
        remaining = [h for h in month.habits if h.id != habit_id]
        if len(remaining) == len(month.habits):
            return EngineResponse.error(f"Habit not found: {habit_id}")
        month.habits = remaining
        month.prune_stale()
        self.save_month(user, key, month)
        return EngineResponse.ok(
            f'Removed "{payload.get("habit_name", habit_id)}" from {key}'
        )

    def _apply_passthrough(self, user: str, payload: Dict[str, Any],
                           now: datetime) -> EngineResponse:
        # Navigation and focus mode are handled by the presentation layer
        return EngineResponse.ok("No stored records changed", data=payload)
