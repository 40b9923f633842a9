"""
Unit tests for the task text interpreter.
Tests schedule extraction and semantic interpretation.
"""

from datetime import date, datetime, timezone

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from src.coaching.interpreter import (
    analyze_task_text,
    format_time_12h,
    interpret_task,
    parse_schedule,
)


# Saturday
NOW = datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)


class TestParseSchedule:
    """Tests for parse_schedule"""

    def test_tomorrow_at_time(self):
        schedule = parse_schedule("Gym workout tomorrow at 7am", NOW)
        assert schedule.cleaned_text == "Gym workout"
        assert schedule.date == date(2026, 3, 15)
        assert schedule.time == "07:00"
        assert schedule.formatted_time == "7:00 AM"
        assert schedule.formatted_date == "Tomorrow"
        assert schedule.is_tomorrow
        assert schedule.day_index == 6
        assert schedule.week_key == "2026-W11"

    def test_weekday_is_next_occurrence(self):
        """A bare weekday means the next one strictly after today."""
        schedule = parse_schedule("call the bank friday 3pm #money", NOW)
        assert schedule.date == date(2026, 3, 20)
        assert schedule.time == "15:00"
        assert schedule.cleaned_text == "Call the bank #money"
        assert schedule.formatted_date == "Friday, Mar 20, 2026"

    def test_next_weekday_skips_a_week(self):
        schedule = parse_schedule("dentist next friday", NOW)
        assert schedule.date == date(2026, 3, 27)

    def test_same_weekday_is_a_week_ahead(self):
        schedule = parse_schedule("laundry saturday", NOW)
        assert schedule.date == date(2026, 3, 21)

    def test_past_date_without_year_rolls_forward(self):
        schedule = parse_schedule("Report due 17 feb", NOW)
        assert schedule.date == date(2027, 2, 17)
        assert schedule.cleaned_text == "Report due"
        assert not schedule.is_past

    def test_leap_day_without_year_waits_for_leap_year(self):
        """29 Feb after this year's leap day moves to the next leap year."""
        after_leap_day = datetime(2028, 3, 5, 9, 0, tzinfo=timezone.utc)
        schedule = parse_schedule("Pay rent 29 feb", after_leap_day)
        assert schedule.date == date(2032, 2, 29)
        assert schedule.cleaned_text == "Pay rent"

    def test_leap_day_in_common_year(self):
        schedule = parse_schedule("Pay rent 29 feb", NOW)
        assert schedule.date == date(2028, 2, 29)

    def test_explicit_past_date(self):
        schedule = parse_schedule("taxes 01/02/2026", NOW)
        assert schedule.date == date(2026, 2, 1)
        assert schedule.is_past

    def test_24h_time(self):
        schedule = parse_schedule("standup today at 13:30", NOW)
        assert schedule.time == "13:30"
        assert schedule.formatted_time == "1:30 PM"
        assert schedule.is_today
        assert schedule.formatted_date == "Today"

    def test_invalid_time_ignored(self):
        schedule = parse_schedule("meeting at 25:00", NOW)
        assert schedule.time is None

    def test_no_schedule(self):
        schedule = parse_schedule("add buy milk", NOW)
        assert schedule.cleaned_text == "Buy milk"
        assert schedule.date is None
        assert schedule.week_key is None

    def test_empty_text(self):
        schedule = parse_schedule("", NOW)
        assert schedule.cleaned_text == ""
        assert schedule.date is None


class TestFormatTime:
    """Tests for 12-hour formatting"""

    def test_midnight_and_noon(self):
        assert format_time_12h("00:05") == "12:05 AM"
        assert format_time_12h("12:00") == "12:00 PM"
        assert format_time_12h("23:59") == "11:59 PM"


class TestInterpretTask:
    """Tests for interpret_task"""

    def test_fitness_task(self):
        schedule, task = analyze_task_text("Gym workout tomorrow at 7am", NOW)
        assert task.category == "fitness"
        assert task.priority == "medium"
        assert task.estimated_minutes == 45
        assert "fitness" in task.tags
        assert task.confidence >= 60

    def test_urgent_keyword(self):
        task = interpret_task("urgent: submit the report")
        assert task.priority == "high"
        assert "urgent" in task.tags

    def test_due_today_is_high_priority(self):
        schedule, task = analyze_task_text("water plants today", NOW)
        assert task.priority == "high"

    def test_low_priority_keyword(self):
        task = interpret_task("maybe reorganize bookshelf someday")
        assert task.priority == "low"

    def test_duration_and_suggestion(self):
        task = interpret_task("write project proposal 2 hours")
        assert task.estimated_minutes == 120
        assert "deep-work" in task.tags
        assert task.suggestion.startswith("Consider breaking")

    def test_quick_win(self):
        task = interpret_task("quick email reply")
        assert task.estimated_minutes == 10
        assert "quick-win" in task.tags

    def test_hashtags_and_tag_limit(self):
        task = interpret_task("#a #b #c #d #e #f stuff")
        assert task.tags == ["a", "b", "c", "d", "e"]

    def test_unknown_text(self):
        """Unrecognized text is low-confidence other."""
        task = interpret_task("xyzzy")
        assert task.category == "other"
        assert task.confidence <= 45

    def test_never_raises(self):
        after_leap_day = datetime(2028, 3, 5, 9, 0, tzinfo=timezone.utc)
        for text in ["", "   ", "at", "31/31/2026", "at 99pm", "29 feb", "feb 29", "29 feb 2027"]:
            analyze_task_text(text, NOW)
            analyze_task_text(text, after_leap_day)
