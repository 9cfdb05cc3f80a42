"""
Reshuffle settings.

Loads tunables from config/reshuffle.yaml (or TEMPO_CONFIG). Falls back to
hardcoded defaults if the file is missing or unreadable, so an analysis
never fails because of configuration.
"""

import logging
from dataclasses import dataclass, fields
from datetime import date, datetime, time, timedelta
from functools import lru_cache
from pathlib import Path

import yaml

from tempo import paths

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

_DEFAULT_MORNING_START = 6
_DEFAULT_WORKDAY_START = 9
_DEFAULT_EVENING_START = 18
_DEFAULT_DAY_END = 23
_DEFAULT_MIN_EVENING_FREE = 0.5
_DEFAULT_SLOT_MAX_HOUR = 22
_DEFAULT_MAX_ITERATIONS = 100
_DEFAULT_LOOKAHEAD_DAYS = 7
_DEFAULT_GRANULARITY = 15
_DEFAULT_CANDIDATES = 3
_DEFAULT_PREFERRED_WINDOW = 2

# key in yaml section -> settings field
_SECTIONS: dict[str, dict[str, str]] = {
    "day": {
        "morning_start_hour": "morning_start_hour",
        "workday_start_hour": "workday_start_hour",
        "evening_start_hour": "evening_start_hour",
        "day_end_hour": "day_end_hour",
    },
    "evening": {"minimum_free_fraction": "minimum_evening_free_fraction"},
    "slot_search": {
        "max_hour": "slot_max_hour",
        "max_iterations": "max_search_iterations",
        "lookahead_days": "lookahead_days",
        "granularity_minutes": "granularity_minutes",
        "candidates": "candidate_count",
    },
    "flexible": {"preferred_window_hours": "preferred_window_hours"},
    "durations": {
        "default_task_minutes": "default_task_minutes",
        "minimum_task_minutes": "minimum_task_minutes",
        "maximum_task_minutes": "maximum_task_minutes",
        "identity_habit_minimum_minutes": "identity_habit_minimum_minutes",
    },
    "compensation": {
        "search_days": "compensation_search_days",
        "max_suggestions": "compensation_max_suggestions",
        "track_flexible_tasks": "track_flexible_compensation",
    },
}


@dataclass(frozen=True)
class ReshuffleSettings:
    """Immutable tunables threaded through every analysis."""

    morning_start_hour: int = _DEFAULT_MORNING_START
    workday_start_hour: int = _DEFAULT_WORKDAY_START
    evening_start_hour: int = _DEFAULT_EVENING_START
    day_end_hour: int = _DEFAULT_DAY_END
    minimum_evening_free_fraction: float = _DEFAULT_MIN_EVENING_FREE
    slot_max_hour: int = _DEFAULT_SLOT_MAX_HOUR
    max_search_iterations: int = _DEFAULT_MAX_ITERATIONS
    lookahead_days: int = _DEFAULT_LOOKAHEAD_DAYS
    granularity_minutes: int = _DEFAULT_GRANULARITY
    candidate_count: int = _DEFAULT_CANDIDATES
    preferred_window_hours: int = _DEFAULT_PREFERRED_WINDOW
    default_task_minutes: int = 30
    minimum_task_minutes: int = 5
    maximum_task_minutes: int = 480
    identity_habit_minimum_minutes: int = 10
    compensation_search_days: int = 14
    compensation_max_suggestions: int = 5
    track_flexible_compensation: bool = False

    def __post_init__(self):
        if not (0 <= self.morning_start_hour < self.evening_start_hour <= self.day_end_hour <= 24):
            raise ValueError(
                "Day hours must satisfy morning < evening <= day end: "
                f"{self.morning_start_hour}/{self.evening_start_hour}/{self.day_end_hour}"
            )
        if not 0.0 <= self.minimum_evening_free_fraction <= 1.0:
            raise ValueError(
                f"minimum_evening_free_fraction out of range: {self.minimum_evening_free_fraction}"
            )

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def evening_minutes(self) -> int:
        """Length of the protected evening window."""
        return (self.day_end_hour - self.evening_start_hour) * 60

    @property
    def minimum_evening_free_minutes(self) -> int:
        return int(self.evening_minutes * self.minimum_evening_free_fraction)

    def morning_start(self, day: date) -> datetime:
        return datetime.combine(day, time(self.morning_start_hour))

    def workday_start(self, day: date) -> datetime:
        return datetime.combine(day, time(self.workday_start_hour))

    def evening_start(self, day: date) -> datetime:
        return datetime.combine(day, time(self.evening_start_hour))

    def evening_end(self, day: date) -> datetime:
        return datetime.combine(day, time()) + timedelta(hours=self.day_end_hour)

    def slot_limit(self, day: date) -> datetime:
        return datetime.combine(day, time()) + timedelta(hours=self.slot_max_hour)

    def is_evening_hour(self, moment: datetime) -> bool:
        return self.evening_start_hour <= moment.hour < self.day_end_hour

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    @classmethod
    def from_mapping(cls, raw: dict) -> "ReshuffleSettings":
        """Build settings from the nested YAML structure, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {}
        for section, mapping in _SECTIONS.items():
            block = raw.get(section) or {}
            if not isinstance(block, dict):
                logger.warning("Ignoring non-mapping config section %r", section)
                continue
            for key, field_name in mapping.items():
                if key in block and field_name in known:
                    values[field_name] = block[key]
        return cls(**values)

    @staticmethod
    def _load_config(config_path: Path) -> dict:
        """Load YAML config, return empty dict on failure."""
        if not config_path.exists():
            logger.warning("Reshuffle config not found at %s, using defaults", config_path)
            return {}
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except (yaml.YAMLError, ValueError, OSError) as exc:
            logger.error("Failed to load reshuffle config: %s", exc)
            return {}
        if not isinstance(data, dict):
            logger.error("Reshuffle config at %s is not a mapping, using defaults", config_path)
            return {}
        return data

    @classmethod
    def load(cls, config_path: Path | None = None) -> "ReshuffleSettings":
        if config_path is None:
            config_path = paths.config_path()
        raw = cls._load_config(config_path)
        try:
            return cls.from_mapping(raw)
        except (TypeError, ValueError) as exc:
            logger.error("Invalid reshuffle config at %s: %s", config_path, exc)
            return cls()


DEFAULT_SETTINGS = ReshuffleSettings()


@lru_cache(maxsize=1)
def get_settings() -> ReshuffleSettings:
    """Process-wide settings loaded once from disk."""
    return ReshuffleSettings.load()
