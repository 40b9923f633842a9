"""
Configuration management for the Habit Insight Engine
Handles loading and saving settings, engine thresholds and briefing settings
"""

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Any, Optional, Tuple


@dataclass(frozen=True)
class Thresholds:
    """
    Every tunable constant of the engine in one place.

    The engine only relies on the shape of these values (ordering of the
    burnout cutpoints, monotonic weights), not on the literals.
    """
    # Streaks
    streak_min_percent: int = 50

    # Habit statistics
    automatic_min_completion: int = 85
    automatic_min_consistency: int = 70
    risk_weight_incompletion: float = 0.4
    risk_weight_decline: float = 0.5
    risk_weight_gap_per_day: float = 4.0
    risk_gap_accel_after_days: int = 3
    risk_gap_accel_per_day: float = 4.0
    correlation_min_percent: int = 60

    # Burnout
    burnout_strained_at: int = 30
    burnout_warning_at: int = 55
    burnout_critical_at: int = 75
    burnout_trend_delta: int = 5
    burnout_window_days: int = 14
    burnout_minutes_per_habit: int = 15
    burnout_overload_minutes: int = 120

    # Procrastination
    fast_recovery_below_days: float = 2.0  # median recovery strictly below this is fast
    avoidance_lookback_days: int = 30
    max_triggers: int = 3

    # Daily briefing
    avoidance_event_weight: float = 2.2
    avoidance_age_weight: float = 0.35
    avoidance_age_cap_days: int = 14

    # Focus
    focus_window_min_share: int = 25

    # Routines and insights
    max_routines: int = 5
    weekend_gap_threshold: int = 20
    weekend_gap_min_days: int = 14
    weak_habit_below: int = 40
    weak_habit_min_days: int = 7
    best_habit_at: int = 80
    best_habit_min_days: int = 5

    # Event log
    event_log_capacity: int = 500

    def stage_cutpoints(self) -> Tuple[int, int, int]:
        return self.burnout_strained_at, self.burnout_warning_at, self.burnout_critical_at

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Thresholds':
        """Build thresholds from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_config(cls, config: 'Config') -> 'Thresholds':
        return cls.from_dict(config.thresholds)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_THRESHOLDS = Thresholds()


class Config:
    """Configuration manager for the engine and its command line"""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Path to configuration directory (defaults to ./config)
        """
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.settings_file = self.config_dir / "settings.json"
        self.thresholds_file = self.config_dir / "thresholds.json"
        self.briefing_file = self.config_dir / "briefing.json"

        # Load configurations
        self.settings = self._load_json(self.settings_file, self._default_settings())
        self.thresholds = self._load_json(self.thresholds_file, self._default_thresholds())
        self.briefing = self._load_json(self.briefing_file, self._default_briefing())

    def _load_json(self, file_path: Path, default: Dict[str, Any]) -> Dict[str, Any]:
        """Load JSON file or return default if file doesn't exist"""
        if file_path.exists():
            with open(file_path, 'r') as f:
                loaded = json.load(f)
            # New keys added since the file was written fall back to defaults
            return {**default, **loaded}
        else:
            self._save_json(file_path, default)
            return default

    def _save_json(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Save data to JSON file"""
        with open(file_path, 'w') as f:
            json.dump(data, f, indent=2)

    def _default_settings(self) -> Dict[str, Any]:
        """Default system settings"""
        return {
            "database_path": "data/database/habits.db",
            "timezone": "UTC",
            "date_format": "%Y-%m-%d",
            "time_format": "%H:%M",
            "first_day_of_week": "monday",
            "history_months": 3,
            "log_level": "INFO",
            "default_user": "local",
        }

    def _default_thresholds(self) -> Dict[str, Any]:
        """Default engine thresholds"""
        return DEFAULT_THRESHOLDS.to_dict()

    def _default_briefing(self) -> Dict[str, Any]:
        """Default daily briefing settings"""
        return {
            "persona_mode": "fixed",
            "fixed_persona": "ceo",
            "random_daily_date": None,
            "random_daily_persona": None,
            "dismissed_notifications": [],
        }

    def get(self, key: str, section: str = "settings", default: Any = None) -> Any:
        """
        Get configuration value

        Args:
            key: Configuration key
            section: Configuration section ('settings', 'thresholds', 'briefing')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        section_map = {
            "settings": self.settings,
            "thresholds": self.thresholds,
            "briefing": self.briefing,
        }

        return section_map.get(section, {}).get(key, default)

    def set(self, key: str, value: Any, section: str = "settings") -> None:
        """
        Set configuration value and save to disk

        Args:
            key: Configuration key
            value: Value to set
            section: Configuration section ('settings', 'thresholds', 'briefing')
        """
        section_map = {
            "settings": (self.settings, self.settings_file),
            "thresholds": (self.thresholds, self.thresholds_file),
            "briefing": (self.briefing, self.briefing_file),
        }

        if section in section_map:
            config_dict, file_path = section_map[section]
            config_dict[key] = value
            self._save_json(file_path, config_dict)

    def get_thresholds(self) -> Thresholds:
        return Thresholds.from_config(self)

    def get_database_path(self) -> Path:
        """Get full path to database file"""
        path = Path(self.settings["database_path"])
        if path.is_absolute():
            return path
        base_path = Path(__file__).parent.parent.parent
        return base_path / path
