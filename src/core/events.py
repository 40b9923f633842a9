"""
Bounded attention-event log.

Keeps the most recent task/habit interactions (skips, deferrals,
completions) used for avoidance scoring. The log is append-only with
eviction from the head once capacity is reached. Appends are serialized
with a lock; readers get a copy.
"""

import threading
import uuid
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Deque, Dict, Iterable, List, Optional

from .models import AttentionEvent, EVENT_TYPES


DEFAULT_CAPACITY = 500


class AttentionLog:
    """Capped, thread-safe log of AttentionEvent records (oldest first)"""

    def __init__(self, events: Optional[Iterable[AttentionEvent]] = None,
                 capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._events: Deque[AttentionEvent] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        for event in events or []:
            self._events.append(event)

    def __len__(self) -> int:
        return len(self._events)

    def append(self, event: AttentionEvent) -> None:
        if event.type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event.type}")
        with self._lock:
            self._events.append(event)

    def record(
        self,
        event_type: str,
        task_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None
    ) -> AttentionEvent:
        """
        Create and append an event.

        Args:
            event_type: One of EVENT_TYPES
            task_id: Related weekly task id, if any
            meta: Free-form metadata
            now: Event time (defaults to utcnow)

        Returns:
            The appended AttentionEvent
        """
        if now is None:
            now = datetime.now(timezone.utc)
        event = AttentionEvent(
            id=uuid.uuid4().hex,
            type=event_type,
            occurred_at=now,
            task_id=task_id,
            meta=meta,
        )
        self.append(event)
        return event

    def snapshot(self) -> List[AttentionEvent]:
        """Copy of the events, oldest first."""
        return list(self._events)

    def count_for_task(
        self,
        task_id: str,
        event_type: str,
        within_days: int = 30,
        now: Optional[datetime] = None
    ) -> int:
        return count_events(self.snapshot(), event_type, within_days, now, task_id=task_id)

    def count(
        self,
        event_type: str,
        within_days: int = 1,
        now: Optional[datetime] = None
    ) -> int:
        return count_events(self.snapshot(), event_type, within_days, now)

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.snapshot()]

    @classmethod
    def from_list(cls, data: List[Dict[str, Any]],
                  capacity: int = DEFAULT_CAPACITY) -> 'AttentionLog':
        return cls((AttentionEvent.from_dict(d) for d in data), capacity=capacity)


def count_events(
    events: Iterable[AttentionEvent],
    event_type: str,
    within_days: int,
    now: Optional[datetime] = None,
    task_id: Optional[str] = None
) -> int:
    """
    Count events of a type newer than ``now - within_days``.

    Args:
        events: Events to scan
        event_type: Event type to match
        within_days: Lookback window in days
        now: Reference time (defaults to utcnow)
        task_id: Restrict to one task when given

    Returns:
        Number of matching events
    """
    if now is None:
        now = datetime.now(timezone.utc)
    cutoff = as_utc(now) - timedelta(days=within_days)
    return sum(
        1 for e in events
        if e.type == event_type
        and as_utc(e.occurred_at) >= cutoff
        and (task_id is None or e.task_id == task_id)
    )


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so naive and aware values compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
