"""
Daily briefing personas.

Each persona carries style weights (bluntness, humor, warmth, urgency in
[0, 1]) that steer the briefing's phrase banks, plus catchphrases and
signature lines. Daily picks are seeded by a 32-bit string hash of the
ISO date so the same day always yields the same choice.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple

from src.core.config import Config


logger = logging.getLogger(__name__)

PERSONA_MODES = ("fixed", "random_daily")
DEFAULT_PERSONA = "ceo"


@dataclass(frozen=True)
class PersonaStyle:
    bluntness: float
    humor: float
    warmth: float
    urgency: float


@dataclass(frozen=True)
class BriefingPersona:
    id: str
    name: str
    emoji: str
    style: PersonaStyle
    catchphrases: Tuple[str, ...]
    signature_lines: Tuple[str, ...]


BRIEFING_PERSONAS: List[BriefingPersona] = [
    BriefingPersona(
        id="tough_coach",
        name="Tough Coach",
        emoji="🏋",
        style=PersonaStyle(bluntness=0.9, humor=0.2, warmth=0.3, urgency=0.8),
        catchphrases=(
            "Pain is temporary. Regret is forever.",
            "Nobody cares. Work harder.",
            "You didn't come this far to only come this far.",
            "Excuses build nothing.",
        ),
        signature_lines=(
            "Discipline is choosing between what you want now and what you want most.",
            "The scoreboard never lies.",
            "Champions train. Everyone else complains.",
            "Results talk. Everything else walks.",
            "Show up or shut up.",
        ),
    ),
    BriefingPersona(
        id="zen",
        name="Zen Guide",
        emoji="🧘",
        style=PersonaStyle(bluntness=0.2, humor=0.1, warmth=0.9, urgency=0.1),
        catchphrases=(
            "Breathe. Begin.",
            "The river does not rush, yet it arrives.",
            "One thing at a time. That is the whole secret.",
            "Progress, not perfection.",
        ),
        signature_lines=(
            "A calm mind sees clearly.",
            "Where attention goes, energy flows.",
            "Stillness is not inaction. It is readiness.",
            "Do less, but do it fully.",
            "The present moment is enough.",
        ),
    ),
    BriefingPersona(
        id="ceo",
        name="The Strategist",
        emoji="💼",
        style=PersonaStyle(bluntness=0.6, humor=0.1, warmth=0.3, urgency=0.6),
        catchphrases=(
            "Execution over intention.",
            "What gets measured gets managed.",
            "Prioritize ruthlessly.",
            "Ship it.",
        ),
        signature_lines=(
            "Strategy without execution is a daydream.",
            "Your calendar shows your real priorities.",
            "Compound interest works on habits too.",
            "The bottleneck is always you.",
            "Optimize the system, not the task.",
        ),
    ),
    BriefingPersona(
        id="best_friend",
        name="Best Friend",
        emoji="🤝",
        style=PersonaStyle(bluntness=0.3, humor=0.7, warmth=0.9, urgency=0.3),
        catchphrases=(
            "You've got this, seriously.",
            "I believe in you more than you do right now.",
            "Let's go, we're doing this together.",
            "One step. That's all it takes.",
        ),
        signature_lines=(
            "Hey, showing up is half the battle. You're here.",
            "Bad days don't erase good streaks.",
            "You're allowed to be a work in progress and a masterpiece.",
            "Progress looks different every day. That's okay.",
            "I'd high-five you if I could.",
        ),
    ),
    BriefingPersona(
        id="chaos",
        name="Chaos Agent",
        emoji="🔥",
        style=PersonaStyle(bluntness=0.7, humor=0.9, warmth=0.4, urgency=0.7),
        catchphrases=(
            "Burn the to-do list. Do the scary thing first.",
            "Rules? We don't need rules. We need momentum.",
            "Overthinking is just procrastination in a suit.",
            "Speed over perfection. Always.",
        ),
        signature_lines=(
            "Your comfort zone called. I hung up.",
            "Plans are cute. Let's cause some progress.",
            "The universe rewards the recklessly productive.",
            "Boring tasks need chaotic energy.",
            "Productivity hack: just start. That's it. That's the hack.",
        ),
    ),
    BriefingPersona(
        id="drill",
        name="Drill Instructor",
        emoji="🫡",
        style=PersonaStyle(bluntness=1.0, humor=0.3, warmth=0.1, urgency=1.0),
        catchphrases=(
            "Move. Now.",
            "No one is coming to save you.",
            "You signed up for this. Execute.",
            "Ten minutes. No excuses. Go.",
        ),
        signature_lines=(
            "Zero tolerance for zero progress.",
            "Your potential is not your performance. Close the gap.",
            "Every minute you waste is a minute you owe yourself.",
            "Fall in line or fall behind.",
            "Mission first. Feelings later.",
        ),
    ),
    BriefingPersona(
        id="warm_parent",
        name="Wise Mentor",
        emoji="🧓",
        style=PersonaStyle(bluntness=0.3, humor=0.3, warmth=1.0, urgency=0.2),
        catchphrases=(
            "I'm proud of you for showing up.",
            "Small steps still move you forward.",
            "You're doing better than you think.",
            "Rest if you must, but do not quit.",
        ),
        signature_lines=(
            "Kindness to yourself is not laziness.",
            "Every garden grows at its own pace.",
            "The fact that you care means you are already ahead.",
            "Tomorrow is a fresh page. Today's ink still matters.",
            "Wisdom is knowing when to push and when to pause.",
        ),
    ),
]

PERSONAS_BY_ID: Dict[str, BriefingPersona] = {p.id: p for p in BRIEFING_PERSONAS}


def string_hash(value: str) -> int:
    """Signed 32-bit ``h = h * 31 + ch`` hash of a string."""
    h = 0
    for ch in value:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return h - 0x100000000 if h >= 0x80000000 else h


def pick_daily_from_list(date_iso: str, key: str, items) -> str:
    """Stable pick for a (date, key) pair; empty string for an empty list."""
    if not items:
        return ""
    return items[abs(string_hash(f"{date_iso}:{key}")) % len(items)]


def pick_daily_persona_id(date_iso: str) -> str:
    return BRIEFING_PERSONAS[abs(string_hash(date_iso)) % len(BRIEFING_PERSONAS)].id


def get_persona(persona_id: Optional[str]) -> BriefingPersona:
    """Look up a persona, falling back to the default for unknown ids."""
    return PERSONAS_BY_ID.get(persona_id or DEFAULT_PERSONA, PERSONAS_BY_ID[DEFAULT_PERSONA])


def resolve_persona(config: Config, today: date) -> BriefingPersona:
    """
    Persona for today according to the briefing settings.

    In ``random_daily`` mode the day's pick is cached in the briefing
    settings, so repeated calls on the same day agree even if the pick
    rule changes.

    Args:
        config: Configuration holding the ``briefing`` section
        today: Reference date

    Returns:
        BriefingPersona
    """
    mode = config.get("persona_mode", "briefing", "fixed")
    if mode != "random_daily":
        return get_persona(config.get("fixed_persona", "briefing", DEFAULT_PERSONA))

    date_iso = today.isoformat()
    cached = config.get("random_daily_persona", "briefing")
    if config.get("random_daily_date", "briefing") == date_iso and cached in PERSONAS_BY_ID:
        return PERSONAS_BY_ID[cached]

    picked = pick_daily_persona_id(date_iso)
    config.set("random_daily_date", date_iso, "briefing")
    config.set("random_daily_persona", picked, "briefing")
    logger.debug("Picked persona %s for %s", picked, date_iso)
    return PERSONAS_BY_ID[picked]
