# Tempo - Reshuffle Engine
"""
Exports for the CLI and other consumers.
"""

from .config import ReshuffleSettings, get_settings
from .reshuffle.engine import ReshuffleEngine, analyze, needs_reshuffle
from .schedule.changes import Change, ConflictResolution, ReshuffleResult
from .schedule.items import RecurrenceFrequency, ScheduleItem, TaskCategory

__version__ = "0.1.0"

__all__ = [
    "Change",
    "ConflictResolution",
    "RecurrenceFrequency",
    "ReshuffleEngine",
    "ReshuffleResult",
    "ReshuffleSettings",
    "ScheduleItem",
    "TaskCategory",
    "analyze",
    "get_settings",
    "needs_reshuffle",
]
