"""
Schedule entities and the collaborators around them: items, time slots,
changes, sleep windows, the in-memory repository and compensation ledger.
"""

from .changes import (
    ActionKind,
    Change,
    ConflictResolution,
    Deferred,
    Moved,
    MovedAndResized,
    MoveConflicting,
    MoveNew,
    Pooled,
    Protected,
    RequiresUserDecision,
    ReshuffleResult,
    Resized,
    UserDecision,
    UserOption,
)
from .items import RecurrenceFrequency, ScheduleItem, TaskCategory, sort_by_priority
from .repository import InMemoryScheduleRepository, ItemNotFoundError, RepositoryError
from .sleep import NoSleepProvider, SleepSchedule, SleepWindow, SleepWindowProvider
from .timeslots import TimeSlot, find_available_slots

__all__ = [
    "ActionKind",
    "Change",
    "ConflictResolution",
    "Deferred",
    "InMemoryScheduleRepository",
    "ItemNotFoundError",
    "MoveConflicting",
    "MoveNew",
    "Moved",
    "MovedAndResized",
    "NoSleepProvider",
    "Pooled",
    "Protected",
    "RecurrenceFrequency",
    "RepositoryError",
    "RequiresUserDecision",
    "ReshuffleResult",
    "Resized",
    "ScheduleItem",
    "SleepSchedule",
    "SleepWindow",
    "SleepWindowProvider",
    "TaskCategory",
    "TimeSlot",
    "UserDecision",
    "UserOption",
    "find_available_slots",
    "sort_by_priority",
]
