"""
Natural-language task interpreter.

Two independent passes over free text typed into the weekly planner:

1. Schedule extraction: pulls a date ("today", "tomorrow", "next friday",
   "17 feb 2026", "17/02/2026") and a time ("at 7am", "at 13:30") out of
   the text and returns the cleaned task text.
2. Semantic interpretation: category, priority, estimated duration, tags,
   confidence and an optional one-line suggestion.

Neither pass ever raises on user text. Unrecognized input yields a
low-confidence result in the ``other`` category.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, List, Optional, Tuple

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta, MO, TU, WE, TH, FR, SA, SU

from src.core.categories import classify_category
from src.core.temporal import WEEKDAY_NAMES, as_date, week_key


logger = logging.getLogger(__name__)

_MONTHS = (r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|jun(?:e)?|"
           r"jul(?:y)?|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)")

# (pattern, has explicit year)
DATE_PATTERNS = [
    (re.compile(rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+{_MONTHS},?\s+(\d{{4}})\b", re.I), True),
    (re.compile(rf"\b{_MONTHS}\s+(\d{{1,2}})(?:st|nd|rd|th)?,?\s+(\d{{4}})\b", re.I), True),
    (re.compile(rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+{_MONTHS}\b", re.I), False),
    (re.compile(rf"\b{_MONTHS}\s+(\d{{1,2}})(?:st|nd|rd|th)?\b", re.I), False),
    (re.compile(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{4})\b"), True),
]

TIME_PATTERNS = [
    re.compile(r"\bat\s+(\d{1,2}):(\d{2})\s*(am|pm)?\b", re.I),
    re.compile(r"\bat\s+(\d{1,2})()\s*(am|pm)\b", re.I),
    re.compile(r"(?:^|(?<=\s))(\d{1,2}):(\d{2})\s*(am|pm)?(?=\s|$)", re.I),
    re.compile(r"\b(\d{1,2})()\s*(am|pm)\b", re.I),
]

WEEKDAY_PATTERN = re.compile(
    r"\b(?:(next|this|on)\s+)?(monday|mon|tuesday|tues|tue|wednesday|wed|thursday|"
    r"thurs|thur|thu|friday|fri|saturday|sat|sunday|sun)\b",
    re.I,
)

WEEKDAYS = {
    "mon": MO, "tue": TU, "wed": WE, "thu": TH, "fri": FR, "sat": SA, "sun": SU,
}

DURATION_MODIFIERS: List[Tuple[re.Pattern, Callable[[re.Match], int]]] = [
    (re.compile(r"(\d+)\s*min", re.I), lambda m: int(m.group(1))),
    (re.compile(r"(\d+)\s*(?:hours?|hrs?)\b", re.I), lambda m: int(m.group(1)) * 60),
    (re.compile(r"\b(?:quick|brief|short|fast)\b", re.I), lambda m: 10),
    (re.compile(r"\b(?:long|deep|thorough|extended|detailed)\b", re.I), lambda m: 90),
    (re.compile(r"\bhalf.?(?:an.)?hour\b", re.I), lambda m: 30),
    (re.compile(r"\b(?:an|one).?hour\b", re.I), lambda m: 60),
    (re.compile(r"\bquarter\b", re.I), lambda m: 15),
]

HIGH_PRIORITY_KEYWORDS = [
    "urgent", "asap", "deadline", "important", "critical", "must", "overdue",
    "now", "immediately", "priority", "crucial",
]
LOW_PRIORITY_KEYWORDS = [
    "maybe", "someday", "optional", "if time", "when possible", "low priority",
    "nice to have", "eventually",
]

MAX_TAGS = 5


@dataclass
class ParsedSchedule:
    """Date/time extracted from task text."""
    cleaned_text: str
    date: Optional[date] = None
    time: Optional[str] = None  # 'HH:MM', 24h
    formatted_date: Optional[str] = None
    formatted_time: Optional[str] = None
    is_past: bool = False
    is_today: bool = False
    is_tomorrow: bool = False
    week_key: Optional[str] = None
    day_index: Optional[int] = None


@dataclass
class TaskInterpretation:
    """Semantic attributes inferred from task text."""
    category: str
    estimated_minutes: int
    priority: str  # 'high', 'medium', 'low'
    tags: List[str] = field(default_factory=list)
    confidence: int = 30
    emoji: str = "📝"
    suggestion: Optional[str] = None


def _word(keyword: str) -> re.Pattern:
    return re.compile(r"\b" + re.escape(keyword) + r"\b", re.I)


_HIGH_PATTERNS = [_word(k) for k in HIGH_PRIORITY_KEYWORDS]
_LOW_PATTERNS = [_word(k) for k in LOW_PRIORITY_KEYWORDS]


def _remove(text: str, match: re.Match) -> str:
    return f"{text[:match.start()]} {text[match.end():]}"


def _extract_time(text: str) -> Tuple[Optional[str], str]:
    """First time-of-day token as 'HH:MM', plus the text without it."""
    for pattern in TIME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        hours = int(match.group(1))
        minutes = int(match.group(2)) if match.group(2) else 0
        meridiem = (match.group(3) or "").lower()
        if meridiem == "pm" and hours < 12:
            hours += 12
        if meridiem == "am" and hours == 12:
            hours = 0
        if 0 <= hours <= 23 and 0 <= minutes <= 59:
            return f"{hours:02d}:{minutes:02d}", _remove(text, match)
        return None, text
    return None, text


def _upcoming(month_day: date, today: date) -> Optional[date]:
    """Next occurrence of a month/day on or after today (29 Feb waits for a leap year)."""
    for year in range(today.year, today.year + 9):
        try:
            candidate = month_day.replace(year=year)
        except ValueError:
            continue
        if candidate >= today:
            return candidate
    return None


def _extract_absolute_date(text: str, today: date) -> Tuple[Optional[date], str]:
    """Explicit calendar dates, rolled forward when the year is omitted and past."""
    for pattern, has_year in DATE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        # Yearless tokens parse against a leap year so 29 Feb is accepted
        default_year = today.year if has_year else 2000
        try:
            parsed = date_parser.parse(
                match.group(0),
                default=datetime(default_year, 1, 1),
                dayfirst=True,
            ).date()
        except (ValueError, OverflowError):
            logger.debug("Ignoring unparseable date token %r", match.group(0))
            continue
        if not has_year:
            parsed = _upcoming(parsed, today)
            if parsed is None:
                continue
        return parsed, _remove(text, match)
    return None, text


def _extract_relative_date(text: str, today: date) -> Tuple[Optional[date], str]:
    """today / tomorrow / day after tomorrow / (next|this|on) <weekday>."""
    relative = [
        (_word("day after tomorrow"), 2),
        (_word("tomorrow"), 1),
        (_word("today"), 0),
        (_word("tonight"), 0),
    ]
    for pattern, offset in relative:
        match = pattern.search(text)
        if match:
            return today + relativedelta(days=offset), _remove(text, match)

    match = WEEKDAY_PATTERN.search(text)
    if match:
        weekday = WEEKDAYS[match.group(2).lower()[:3]]
        # Next occurrence strictly after today
        target = today + relativedelta(days=1, weekday=weekday(+1))
        if (match.group(1) or "").lower() == "next" and (target - today).days <= 7:
            target += relativedelta(days=7)
        return target, _remove(text, match)
    return None, text


def _clean_text(text: str) -> str:
    cleaned = re.sub(r"^\s*add\s+", "", text, flags=re.I)
    cleaned = re.sub(r"\s{2,}", " ", cleaned).strip()
    cleaned = re.sub(r"\s+(?:on|at|for|by)\s*$", "", cleaned, flags=re.I).strip()
    cleaned = cleaned.strip(" ,-:")
    if cleaned:
        cleaned = cleaned[0].upper() + cleaned[1:]
    return cleaned


def format_time_12h(time_str: str) -> str:
    """'07:00' -> '7:00 AM'."""
    hours, minutes = (int(part) for part in time_str.split(":"))
    meridiem = "PM" if hours >= 12 else "AM"
    hours12 = 12 if hours % 12 == 0 else hours % 12
    return f"{hours12}:{minutes:02d} {meridiem}"


def parse_schedule(text: str, now: Optional[datetime] = None) -> ParsedSchedule:
    """
    Extract a date and time from task text.

    Args:
        text: Free text, e.g. "Gym workout tomorrow at 7am"
        now: Reference time (defaults to utcnow)

    Returns:
        ParsedSchedule; ``date`` is None when no date phrase is present
    """
    if now is None:
        now = datetime.now(timezone.utc)
    today = as_date(now)
    working = text or ""

    time_value, working = _extract_time(working)
    found, working = _extract_absolute_date(working, today)
    if found is None:
        found, working = _extract_relative_date(working, today)

    schedule = ParsedSchedule(cleaned_text=_clean_text(working), time=time_value)
    if time_value:
        schedule.formatted_time = format_time_12h(time_value)

    if found is not None:
        schedule.date = found
        schedule.day_index = found.weekday()
        schedule.week_key = week_key(found)
        schedule.is_today = found == today
        schedule.is_tomorrow = found == today + relativedelta(days=1)
        schedule.is_past = found < today
        if schedule.is_today:
            schedule.formatted_date = "Today"
        elif schedule.is_tomorrow:
            schedule.formatted_date = "Tomorrow"
        else:
            schedule.formatted_date = (
                f"{WEEKDAY_NAMES[found.weekday()]}, {found.strftime('%b')} {found.day}, {found.year}"
            )
    return schedule


def interpret_task(text: str, schedule: Optional[ParsedSchedule] = None) -> TaskInterpretation:
    """
    Infer category, priority, duration and tags from task text.

    Priority is high on an urgency keyword or when the scheduled date is
    today or already past, low on a "someday" keyword, else medium.

    Args:
        text: Task text (ideally the cleaned text of parse_schedule)
        schedule: Parsed schedule for deadline proximity

    Returns:
        TaskInterpretation (never raises)
    """
    text = text or ""
    rule, matches = classify_category(text)
    signals = len(matches)

    estimated = rule.default_minutes
    for pattern, to_minutes in DURATION_MODIFIERS:
        match = pattern.search(text)
        if match:
            estimated = to_minutes(match)
            signals += 1
            break

    priority = "medium"
    if any(p.search(text) for p in _HIGH_PATTERNS):
        priority = "high"
        signals += 1
    elif schedule is not None and schedule.date is not None and (schedule.is_today or schedule.is_past):
        priority = "high"
    elif any(p.search(text) for p in _LOW_PATTERNS):
        priority = "low"
        signals += 1

    tags = [tag.lower() for tag in re.findall(r"#(\w+)", text)]
    if rule.category != "other":
        tags.append(rule.category)
    if estimated <= 15:
        tags.append("quick-win")
    if estimated >= 60:
        tags.append("deep-work")
    if priority == "high":
        tags.append("urgent")
    tags = list(dict.fromkeys(tags))[:MAX_TAGS]

    if matches:
        confidence = min(95, 50 + 10 * signals)
    else:
        confidence = min(45, 30 + 5 * signals)

    suggestion = None
    if estimated >= 90:
        suggestion = "Consider breaking this into smaller 30-min blocks for better focus"
    elif priority == "high" and estimated > 60:
        suggestion = "High priority and long: schedule this for your peak energy time"

    return TaskInterpretation(
        category=rule.category,
        estimated_minutes=estimated,
        priority=priority,
        tags=tags,
        confidence=confidence,
        emoji=rule.emoji,
        suggestion=suggestion,
    )


def analyze_task_text(text: str, now: Optional[datetime] = None) -> Tuple[ParsedSchedule, TaskInterpretation]:
    """Run both passes: schedule first, then interpretation of the cleaned text."""
    schedule = parse_schedule(text, now)
    return schedule, interpret_task(schedule.cleaned_text, schedule)
