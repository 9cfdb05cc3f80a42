"""
Schedule items and their categories.

A ScheduleItem is one time-boxed task instance on one day. Items are mutated
in place only by applying a Change (see tempo.schedule.repository); the
reshuffle core reads them and never writes.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Any

from .timeslots import TimeSlot

logger = logging.getLogger(__name__)


class TaskCategory(StrEnum):
    """
    Closed set of task categories, strongest first.

    The category decides what the reshuffle core may do with an item:
    non-negotiables never move on their own, identity habits only shrink or
    relocate, flexible tasks and optional goals may move or wait a day.
    """

    NON_NEGOTIABLE = "non_negotiable"
    IDENTITY_HABIT = "identity_habit"
    FLEXIBLE_TASK = "flexible_task"
    OPTIONAL_GOAL = "optional_goal"

    @property
    def priority(self) -> int:
        """Rank used for processing order, 0 = strongest."""
        return _PRIORITY[self]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def can_compress(self) -> bool:
        return self is TaskCategory.IDENTITY_HABIT

    @property
    def can_move(self) -> bool:
        return self is not TaskCategory.NON_NEGOTIABLE

    @property
    def can_defer(self) -> bool:
        return self in (TaskCategory.FLEXIBLE_TASK, TaskCategory.OPTIONAL_GOAL)


_PRIORITY = {
    TaskCategory.NON_NEGOTIABLE: 0,
    TaskCategory.IDENTITY_HABIT: 1,
    TaskCategory.FLEXIBLE_TASK: 2,
    TaskCategory.OPTIONAL_GOAL: 3,
}

_DISPLAY_NAMES = {
    TaskCategory.NON_NEGOTIABLE: "Non-Negotiable",
    TaskCategory.IDENTITY_HABIT: "Identity Habit",
    TaskCategory.FLEXIBLE_TASK: "Flexible Task",
    TaskCategory.OPTIONAL_GOAL: "Optional Goal",
}


class RecurrenceFrequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"


@dataclass(eq=False)
class ScheduleItem:
    """A task instance on one day."""

    id: str
    title: str
    category: TaskCategory
    start_time: datetime
    duration_minutes: int
    minimum_duration_minutes: int | None = None  # compression floor
    is_completed: bool = False
    scheduled_date: date | None = None  # day bucket, defaults to start_time's date
    is_evening_task: bool = False
    is_gentle_task: bool = False
    notes: str = ""

    # Recurrence
    is_recurring: bool = False
    frequency: RecurrenceFrequency | None = None
    recurrence_days: tuple[int, ...] = ()  # date.weekday() values, Monday = 0
    recurrence_end_date: date | None = None
    parent_template_id: str | None = None

    is_pooled: bool = False
    updated_at: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.category, str) and not isinstance(self.category, TaskCategory):
            self.category = TaskCategory(self.category)
        if isinstance(self.frequency, str) and not isinstance(self.frequency, RecurrenceFrequency):
            self.frequency = RecurrenceFrequency(self.frequency)
        if self.duration_minutes <= 0:
            raise ValueError(f"Item {self.id!r} has non-positive duration {self.duration_minutes}")
        if self.minimum_duration_minutes is not None:
            if self.minimum_duration_minutes <= 0:
                raise ValueError(
                    f"Item {self.id!r} has non-positive minimum duration "
                    f"{self.minimum_duration_minutes}"
                )
            if self.minimum_duration_minutes > self.duration_minutes:
                raise ValueError(
                    f"Item {self.id!r} minimum duration {self.minimum_duration_minutes} "
                    f"exceeds duration {self.duration_minutes}"
                )
        if self.scheduled_date is None:
            self.scheduled_date = self.start_time.date()
        self.recurrence_days = tuple(sorted(set(self.recurrence_days)))

    # Items are entities: identity is the id, not the field values.
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScheduleItem):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    # -------------------------------------------------------------------------
    # Derived properties
    # -------------------------------------------------------------------------

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(minutes=self.duration_minutes)

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(self.start_time, self.end_time)

    @property
    def is_compressible(self) -> bool:
        return (
            self.minimum_duration_minutes is not None
            and self.minimum_duration_minutes < self.duration_minutes
        )

    @property
    def compressible_minutes(self) -> int:
        """Minutes that could be shaved off before hitting the floor."""
        if self.minimum_duration_minutes is None:
            return 0
        return max(0, self.duration_minutes - self.minimum_duration_minutes)

    @property
    def is_daily_habit(self) -> bool:
        return self.is_recurring and self.frequency is RecurrenceFrequency.DAILY

    @property
    def is_weekly_habit(self) -> bool:
        return self.is_recurring and self.frequency is RecurrenceFrequency.WEEKLY

    def overlaps(self, other: "ScheduleItem") -> bool:
        """Half-open overlap: back-to-back items do not conflict."""
        return self.start_time < other.end_time and other.start_time < self.end_time

    def overlaps_range(self, start: datetime, end: datetime) -> bool:
        return self.start_time < end and start < self.end_time

    def recurs_on(self, day: date) -> bool:
        """Whether this item's recurrence rule produces an instance on ``day``."""
        if not self.is_recurring or self.frequency is None:
            return False
        if self.recurrence_end_date is not None and day > self.recurrence_end_date:
            return False
        if self.frequency is RecurrenceFrequency.DAILY:
            return True
        return day.weekday() in self.recurrence_days

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category.value,
            "start_time": self.start_time.isoformat(),
            "duration_minutes": self.duration_minutes,
            "minimum_duration_minutes": self.minimum_duration_minutes,
            "is_completed": self.is_completed,
            "scheduled_date": self.scheduled_date.isoformat(),
            "is_evening_task": self.is_evening_task,
            "is_gentle_task": self.is_gentle_task,
            "notes": self.notes,
            "is_recurring": self.is_recurring,
            "frequency": self.frequency.value if self.frequency else None,
            "recurrence_days": list(self.recurrence_days),
            "recurrence_end_date": (
                self.recurrence_end_date.isoformat() if self.recurrence_end_date else None
            ),
            "parent_template_id": self.parent_template_id,
            "is_pooled": self.is_pooled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScheduleItem":
        """Build an item from a mapping such as a YAML schedule entry."""
        start = data["start_time"]
        if isinstance(start, str):
            start = datetime.fromisoformat(start)
        scheduled = data.get("scheduled_date")
        if isinstance(scheduled, str):
            scheduled = date.fromisoformat(scheduled)
        end_date = data.get("recurrence_end_date")
        if isinstance(end_date, str):
            end_date = date.fromisoformat(end_date)
        return cls(
            id=str(data["id"]),
            title=data["title"],
            category=TaskCategory(data["category"]),
            start_time=start,
            duration_minutes=int(data.get("duration_minutes", 30)),
            minimum_duration_minutes=data.get("minimum_duration_minutes"),
            is_completed=bool(data.get("is_completed", False)),
            scheduled_date=scheduled,
            is_evening_task=bool(data.get("is_evening_task", False)),
            is_gentle_task=bool(data.get("is_gentle_task", False)),
            notes=data.get("notes") or "",
            is_recurring=bool(data.get("is_recurring", False)),
            frequency=data.get("frequency"),
            recurrence_days=tuple(data.get("recurrence_days") or ()),
            recurrence_end_date=end_date,
            parent_template_id=data.get("parent_template_id"),
            is_pooled=bool(data.get("is_pooled", False)),
        )


def sort_by_priority(items: list[ScheduleItem]) -> list[ScheduleItem]:
    """Stable sort: category rank first, insertion order within a rank."""
    return sorted(items, key=lambda item: item.category.priority)
