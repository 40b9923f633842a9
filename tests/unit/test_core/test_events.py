"""
Unit tests for the attention-event log.
Tests capacity eviction, validation and windowed counting.
"""

import pytest
import threading
from datetime import datetime, timedelta, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from src.core.events import AttentionLog, count_events
from src.core.models import AttentionEvent


NOW = datetime(2026, 3, 16, 12, 0, tzinfo=timezone.utc)


class TestAttentionLog:
    """Tests for AttentionLog."""

    def test_capacity_evicts_oldest(self):
        """Appending past capacity drops events from the head."""
        log = AttentionLog(capacity=3)
        for i in range(5):
            log.record("app_open", meta={"n": i}, now=NOW + timedelta(minutes=i))
        events = log.snapshot()
        assert len(log) == 3
        assert [e.meta["n"] for e in events] == [2, 3, 4]

    def test_default_capacity_is_500(self):
        """The default log keeps 500 events."""
        log = AttentionLog()
        for _ in range(510):
            log.record("app_open", now=NOW)
        assert len(log) == 500

    def test_unknown_type_rejected(self):
        """Only known event types can be appended."""
        log = AttentionLog()
        with pytest.raises(ValueError):
            log.record("task_exploded", now=NOW)
        assert len(log) == 0

    def test_invalid_capacity_rejected(self):
        """Capacity must be positive."""
        with pytest.raises(ValueError):
            AttentionLog(capacity=0)

    def test_snapshot_is_a_copy(self):
        """Mutating a snapshot does not affect the log."""
        log = AttentionLog()
        log.record("app_open", now=NOW)
        log.snapshot().clear()
        assert len(log) == 1

    def test_concurrent_appends_respect_capacity(self):
        """Appends from several threads never exceed capacity."""
        log = AttentionLog(capacity=50)

        def worker():
            for _ in range(100):
                log.record("task_completed", now=NOW)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(log) == 50

    def test_round_trip_list(self):
        """to_list/from_list preserve events."""
        log = AttentionLog()
        log.record("task_deferred", task_id="t1", now=NOW)
        restored = AttentionLog.from_list(log.to_list())
        assert restored.snapshot() == log.snapshot()


class TestCounting:
    """Tests for windowed event counts."""

    def test_count_for_task_respects_window(self):
        """Events older than the window are not counted."""
        log = AttentionLog()
        log.record("task_skipped", task_id="t1", now=NOW - timedelta(days=2))
        log.record("task_skipped", task_id="t1", now=NOW - timedelta(days=40))
        log.record("task_skipped", task_id="t2", now=NOW - timedelta(days=1))
        assert log.count_for_task("t1", "task_skipped", within_days=30, now=NOW) == 1

    def test_count_by_type(self):
        """count() filters by type only."""
        log = AttentionLog()
        log.record("app_open", now=NOW - timedelta(hours=2))
        log.record("app_open", now=NOW - timedelta(hours=30))
        log.record("task_completed", now=NOW)
        assert log.count("app_open", within_days=1, now=NOW) == 1

    def test_naive_event_times_compare_as_utc(self):
        """Naive timestamps are treated as UTC."""
        event = AttentionEvent("e1", "task_deferred", datetime(2026, 3, 15, 12, 0), task_id="t1")
        assert count_events([event], "task_deferred", 30, NOW, task_id="t1") == 1
