"""
Core module for the habit coach
Contains records, configuration, the attention-event log and the record store
"""

from .config import Config, Thresholds, DEFAULT_THRESHOLDS
from .events import AttentionLog
from .models import (
    EVENT_TYPES,
    AttentionEvent,
    DayEntry,
    EngineResponse,
    HabitRecord,
    MonthData,
    Snapshot,
    WeeklyData,
    WeeklyTask,
)
from .store import RecordStore, StoreError, CorruptRecordError

__all__ = [
    'Config', 'Thresholds', 'DEFAULT_THRESHOLDS',
    'AttentionLog',
    'EVENT_TYPES', 'AttentionEvent', 'DayEntry', 'EngineResponse', 'HabitRecord',
    'MonthData', 'Snapshot', 'WeeklyData', 'WeeklyTask',
    'RecordStore', 'StoreError', 'CorruptRecordError',
]
