"""
ReshuffleContext - per-analysis snapshot of one day.

Built fresh by create_context() on every analyze call and never mutated.
Holds the figures every later stage reads (minutes needed vs. available,
compressible/optional/flexible subsets) plus same-day and cross-day slot
lookups.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta

from tempo.config import DEFAULT_SETTINGS, ReshuffleSettings
from tempo.schedule.items import ScheduleItem, TaskCategory, sort_by_priority
from tempo.schedule.sleep import SleepWindowProvider, does_range_overlap_sleep, windows_touching
from tempo.schedule.timeslots import (
    TimeSlot,
    ceil_to_granularity,
    find_available_slots,
    total_minutes,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReshuffleContext:
    now: datetime
    target_date: date
    all_items: tuple[ScheduleItem, ...]
    day_items: tuple[ScheduleItem, ...]
    incomplete_items: tuple[ScheduleItem, ...]
    available_slots: tuple[TimeSlot, ...]
    minutes_needed: int
    minutes_available: int
    settings: ReshuffleSettings = DEFAULT_SETTINGS
    sleep_provider: SleepWindowProvider | None = None
    # intervals already promised to other items in this analysis
    claimed: tuple[TimeSlot, ...] = ()

    # -------------------------------------------------------------------------
    # Overflow figures
    # -------------------------------------------------------------------------

    @property
    def has_overflow(self) -> bool:
        return self.minutes_needed > self.minutes_available

    @property
    def overflow_minutes(self) -> int:
        return max(0, self.minutes_needed - self.minutes_available)

    @property
    def is_today(self) -> bool:
        return self.target_date == self.now.date()

    # -------------------------------------------------------------------------
    # Derived subsets
    # -------------------------------------------------------------------------

    @property
    def items_by_priority(self) -> list[ScheduleItem]:
        return sort_by_priority(list(self.incomplete_items))

    def of_category(self, category: TaskCategory) -> list[ScheduleItem]:
        return [item for item in self.incomplete_items if item.category is category]

    @property
    def compressible_habits(self) -> list[ScheduleItem]:
        return [
            item
            for item in self.of_category(TaskCategory.IDENTITY_HABIT)
            if item.is_compressible
        ]

    @property
    def max_compression_minutes(self) -> int:
        return sum(item.compressible_minutes for item in self.compressible_habits)

    @property
    def optional_goals(self) -> list[ScheduleItem]:
        return self.of_category(TaskCategory.OPTIONAL_GOAL)

    @property
    def optional_goal_minutes(self) -> int:
        return sum(item.duration_minutes for item in self.optional_goals)

    @property
    def flexible_tasks(self) -> list[ScheduleItem]:
        return self.of_category(TaskCategory.FLEXIBLE_TASK)

    @property
    def flexible_minutes(self) -> int:
        return sum(item.duration_minutes for item in self.flexible_tasks)

    @property
    def evening_items(self) -> list[ScheduleItem]:
        return [item for item in self.incomplete_items if item.is_evening_task]

    def conflicts_for(self, item: ScheduleItem) -> list[ScheduleItem]:
        """Other incomplete items on the day that overlap ``item``."""
        return [
            other
            for other in self.incomplete_items
            if other.id != item.id and other.overlaps(item)
        ]

    # -------------------------------------------------------------------------
    # Slot lookups
    # -------------------------------------------------------------------------

    def placement_floor(self) -> datetime:
        """Earliest start any placement may use: now, rounded up to the grid."""
        return ceil_to_granularity(self.now, self.settings.granularity_minutes)

    def open_slots(
        self,
        day: date,
        exclude_ids: Iterable[str] = (),
        extra_blocked: Iterable[TimeSlot] = (),
    ) -> list[TimeSlot]:
        """
        Free daytime intervals on ``day`` for placing an item.

        Obstacles are that day's items (minus ``exclude_ids``), intervals
        claimed earlier in the analysis, any extra reserved intervals, and
        sleep windows. The window runs from the morning start (never before
        now) to the evening boundary.
        """
        excluded = set(exclude_ids)
        occupied = [
            item.slot
            for item in self.all_items
            if item.id not in excluded
            and not item.is_completed
            and (item.scheduled_date == day or item.start_time.date() == day)
        ]
        occupied.extend(extra_blocked)
        occupied.extend(self.claimed)
        occupied.extend(
            TimeSlot(window.buffer_start, window.wake_time)
            for window in windows_touching(self.sleep_provider, day)
        )
        window_start = max(self.settings.morning_start(day), self.placement_floor())
        return find_available_slots(occupied, window_start, self.settings.evening_start(day))

    def find_slot(
        self,
        minutes: int,
        after: datetime | None = None,
        exclude_ids: Iterable[str] = (),
        extra_blocked: Iterable[TimeSlot] = (),
    ) -> datetime | None:
        """First start on the target day where ``minutes`` fit, not before ``after``."""
        return self.find_slot_on(
            self.target_date, minutes, after=after, exclude_ids=exclude_ids, extra_blocked=extra_blocked
        )

    def find_slot_on(
        self,
        day: date,
        minutes: int,
        after: datetime | None = None,
        exclude_ids: Iterable[str] = (),
        extra_blocked: Iterable[TimeSlot] = (),
    ) -> datetime | None:
        """Cross-day lookup: slots are recomputed from ``day``'s own items."""
        for slot in self.open_slots(day, exclude_ids, extra_blocked):
            start = slot.start if after is None else max(slot.start, after)
            if start + timedelta(minutes=minutes) <= slot.end:
                return start
        return None

    def is_slot_available(
        self, start: datetime, minutes: int, exclude_ids: Iterable[str] = ()
    ) -> bool:
        """
        Whether an item could keep ``start``: not before now, clear of every
        other incomplete item, of claimed intervals and of sleep. Evening hours
        count as available.
        """
        end = start + timedelta(minutes=minutes)
        if start < self.now:
            return False
        if any(slot.overlaps_range(start, end) for slot in self.claimed):
            return False
        excluded = set(exclude_ids)
        if any(
            item.id not in excluded and not item.is_completed and item.overlaps_range(start, end)
            for item in self.all_items
        ):
            return False
        return not does_range_overlap_sleep(self.sleep_provider, start, end)

    def with_claims(self, claimed: tuple[TimeSlot, ...]) -> "ReshuffleContext":
        return replace(self, claimed=claimed)

    def to_dict(self) -> dict:
        return {
            "now": self.now.isoformat(),
            "target_date": self.target_date.isoformat(),
            "incomplete_items": len(self.incomplete_items),
            "minutes_needed": self.minutes_needed,
            "minutes_available": self.minutes_available,
            "overflow_minutes": self.overflow_minutes,
            "max_compression_minutes": self.max_compression_minutes,
            "optional_goal_minutes": self.optional_goal_minutes,
            "flexible_minutes": self.flexible_minutes,
        }


def create_context(
    items: Iterable[ScheduleItem],
    target_date: date,
    now: datetime,
    settings: ReshuffleSettings = DEFAULT_SETTINGS,
    sleep_provider: SleepWindowProvider | None = None,
) -> ReshuffleContext:
    """
    Snapshot ``items`` for ``target_date`` as seen at ``now``.

    Available time runs from now (or the morning start, whichever is later)
    to the evening boundary; only already-completed items occupy it.
    """
    all_items = tuple(items)
    day_items = tuple(item for item in all_items if item.scheduled_date == target_date)
    incomplete = tuple(item for item in day_items if not item.is_completed)
    completed = [item.slot for item in day_items if item.is_completed]

    window_start = max(settings.morning_start(target_date), now)
    window_end = settings.evening_start(target_date)
    slots = tuple(find_available_slots(completed, window_start, window_end))

    context = ReshuffleContext(
        now=now,
        target_date=target_date,
        all_items=all_items,
        day_items=day_items,
        incomplete_items=incomplete,
        available_slots=slots,
        minutes_needed=sum(item.duration_minutes for item in incomplete),
        minutes_available=total_minutes(slots),
        settings=settings,
        sleep_provider=sleep_provider,
    )
    logger.debug("Reshuffle context built", extra=context.to_dict())
    return context
