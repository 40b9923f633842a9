"""
Unit tests for briefing personas and daily picks.
"""

from datetime import date

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from src.core.config import Config
from src.coaching.personas import (
    BRIEFING_PERSONAS,
    PERSONAS_BY_ID,
    get_persona,
    pick_daily_from_list,
    pick_daily_persona_id,
    resolve_persona,
    string_hash,
)


class TestStringHash:
    """Tests for the 32-bit string hash"""

    def test_known_values(self):
        assert string_hash("") == 0
        assert string_hash("a") == 97
        assert string_hash("ab") == 97 * 31 + 98

    def test_wraps_to_signed_32_bit(self):
        value = string_hash("2026-03-14:sig:ceo" * 4)
        assert -2 ** 31 <= value < 2 ** 31


class TestDailyPicks:
    """Tests for deterministic daily picks"""

    def test_same_day_same_pick(self):
        items = ["a", "b", "c"]
        assert pick_daily_from_list("2026-03-14", "k", items) == pick_daily_from_list("2026-03-14", "k", items)

    def test_empty_list(self):
        assert pick_daily_from_list("2026-03-14", "k", []) == ""

    def test_persona_pick_is_known(self):
        assert pick_daily_persona_id("2026-03-14") in PERSONAS_BY_ID

    def test_personas_are_complete(self):
        assert len(BRIEFING_PERSONAS) == len(PERSONAS_BY_ID) == 7
        for persona in BRIEFING_PERSONAS:
            assert persona.catchphrases
            assert persona.signature_lines
            for weight in (persona.style.bluntness, persona.style.humor,
                           persona.style.warmth, persona.style.urgency):
                assert 0 <= weight <= 1


class TestResolvePersona:
    """Tests for persona selection from settings"""

    def test_default_and_unknown(self):
        assert get_persona(None).id == "ceo"
        assert get_persona("nobody").id == "ceo"

    def test_fixed_mode(self, tmp_path):
        config = Config(tmp_path)
        config.set("fixed_persona", "zen", "briefing")
        assert resolve_persona(config, date(2026, 3, 14)).id == "zen"

    def test_random_daily_caches_pick(self, tmp_path):
        """The day's pick is stored and reused for the rest of the day."""
        config = Config(tmp_path)
        config.set("persona_mode", "random_daily", "briefing")
        today = date(2026, 3, 14)

        first = resolve_persona(config, today)
        assert first.id == pick_daily_persona_id("2026-03-14")
        assert config.get("random_daily_date", "briefing") == "2026-03-14"

        config.set("random_daily_persona", "chaos", "briefing")
        assert resolve_persona(config, today).id == "chaos"

    def test_random_daily_new_day(self, tmp_path):
        config = Config(tmp_path)
        config.set("persona_mode", "random_daily", "briefing")
        config.set("random_daily_date", "2026-03-13", "briefing")
        config.set("random_daily_persona", "chaos", "briefing")

        persona = resolve_persona(config, date(2026, 3, 14))
        assert persona.id == pick_daily_persona_id("2026-03-14")
        assert Config(tmp_path).get("random_daily_date", "briefing") == "2026-03-14"
