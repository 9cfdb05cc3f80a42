"""
Conflict Resolver - what should move when a new or edited item collides.

Runs independently of analyze(). For each conflicting item the stronger
category stays and the weaker one gets ranked candidate slots; ties and
non-negotiables go back to the user. Daily habits never move, weekly habits
only move within their own week.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from tempo.config import DEFAULT_SETTINGS, ReshuffleSettings
from tempo.schedule.changes import (
    ConflictResolution,
    MoveConflicting,
    MoveNew,
    Suggestion,
    UserDecision,
)
from tempo.schedule.items import ScheduleItem, TaskCategory
from tempo.schedule.sleep import SleepWindowProvider
from tempo.schedule.timeslots import TimeSlot

from .slot_finder import find_multiple_slots, find_next_available_slot

logger = logging.getLogger(__name__)

COMPRESS_OR_KEEP_BOTH = ("compress", "keep_both")


def find_conflicts(new_item: ScheduleItem, existing: Iterable[ScheduleItem]) -> list[ScheduleItem]:
    """Items on the same day that ``new_item`` would overlap."""
    return [
        item
        for item in existing
        if item.id != new_item.id
        and not item.is_completed
        and item.scheduled_date == new_item.scheduled_date
        and item.overlaps(new_item)
    ]


class _Resolver:
    """State for one suggest_resolution call: the pool and the assigned-slot ledger."""

    def __init__(
        self,
        new_item: ScheduleItem,
        all_items: Iterable[ScheduleItem],
        now: datetime,
        settings: ReshuffleSettings,
        sleep_provider: SleepWindowProvider | None,
    ):
        self.new_item = new_item
        self.pool = [item for item in all_items if item.id != new_item.id] + [new_item]
        self.now = now
        self.settings = settings
        self.sleep_provider = sleep_provider
        self.assigned: list[TimeSlot] = []

    def candidates(self, moving: ScheduleItem, staying: ScheduleItem) -> list[datetime] | None:
        """
        Ranked starts for ``moving`` so it clears ``staying``.

        None means the item may not be moved at all.
        """
        if moving.category is TaskCategory.IDENTITY_HABIT and moving.is_daily_habit:
            return None
        if moving.category is TaskCategory.IDENTITY_HABIT and moving.is_weekly_habit:
            return self._same_week_candidates(moving)
        return find_multiple_slots(
            staying.end_time,
            moving.duration_minutes,
            moving.scheduled_date,
            self.pool,
            self.now,
            exclude_ids={moving.id},
            avoid=self.assigned,
            sleep_provider=self.sleep_provider,
            settings=self.settings,
        )

    def _same_week_candidates(self, habit: ScheduleItem) -> list[datetime] | None:
        week = habit.scheduled_date.isocalendar()[:2]
        hosting = {
            item.scheduled_date
            for item in self.pool
            if item.id != habit.id
            and (
                (habit.parent_template_id and item.parent_template_id == habit.parent_template_id)
                or (item.title == habit.title and item.category is habit.category)
            )
        }
        found: list[datetime] = []
        for offset in range(1, 7):
            day = habit.scheduled_date + timedelta(days=offset)
            if day.isocalendar()[:2] != week:
                break
            if day.weekday() in habit.recurrence_days or day in hosting:
                continue
            start = find_next_available_slot(
                datetime.combine(day, habit.start_time.time()),
                habit.duration_minutes,
                day,
                self.pool,
                self.now,
                exclude_ids={habit.id},
                avoid=self.assigned,
                sleep_provider=self.sleep_provider,
                settings=self.settings,
                lookahead_days=0,
            )
            if start is not None:
                found.append(start)
            if len(found) >= self.settings.candidate_count:
                break
        return found or None

    def reserve(self, item: ScheduleItem, candidates: list[datetime]) -> None:
        """Hold the first candidate so later resolutions in this call steer clear of it."""
        if candidates:
            self.assigned.append(TimeSlot.of(candidates[0], item.duration_minutes))

    def resolve(self, conflicting: ScheduleItem) -> ConflictResolution:
        new_item = self.new_item
        new_cat = new_item.category
        old_cat = conflicting.category

        if new_cat is TaskCategory.NON_NEGOTIABLE:
            conflicting_slots = self.candidates(conflicting, new_item) or []
            new_slots = []
            if old_cat is TaskCategory.NON_NEGOTIABLE:
                new_slots = self.candidates(new_item, conflicting) or []
            self.reserve(conflicting, conflicting_slots)
            self.reserve(new_item, new_slots)
            return self._result(
                conflicting,
                UserDecision(tuple(conflicting_slots), tuple(new_slots)),
                f'"{new_item.title}" is non-negotiable and conflicts with "{conflicting.title}"',
            )

        if new_cat.priority < old_cat.priority:
            slots = self.candidates(conflicting, new_item)
            if slots is None:
                return self._unmovable(conflicting)
            if not slots:
                return self._no_room(conflicting, moving=conflicting, staying=new_item)
            self.reserve(conflicting, slots)
            return self._result(
                conflicting,
                MoveConflicting(tuple(slots)),
                f'"{new_item.title}" ({new_cat.display_name}) has higher priority than '
                f'"{conflicting.title}" ({old_cat.display_name})',
            )

        if new_cat.priority > old_cat.priority:
            slots = self.candidates(new_item, conflicting)
            if slots is None:
                return self._unmovable(conflicting)
            if not slots:
                return self._no_room(conflicting, moving=new_item, staying=conflicting)
            self.reserve(new_item, slots)
            return self._result(
                conflicting,
                MoveNew(tuple(slots)),
                f'"{conflicting.title}" ({old_cat.display_name}) has higher priority',
            )

        conflicting_slots = self.candidates(conflicting, new_item)
        new_slots = self.candidates(new_item, conflicting)
        self.reserve(conflicting, conflicting_slots or [])
        self.reserve(new_item, new_slots or [])
        pinned = conflicting_slots is None or new_slots is None
        return self._result(
            conflicting,
            UserDecision(
                tuple(conflicting_slots or []),
                tuple(new_slots or []),
                COMPRESS_OR_KEEP_BOTH if pinned else (),
            ),
            "Both tasks have the same priority level",
        )

    def _unmovable(self, conflicting: ScheduleItem) -> ConflictResolution:
        habit = self.new_item if self.new_item.is_daily_habit else conflicting
        return self._result(
            conflicting,
            UserDecision(alternatives=COMPRESS_OR_KEEP_BOTH),
            f'"{habit.title}" is a daily habit and keeps its time. Compress it or keep both.',
        )

    def _no_room(
        self, conflicting: ScheduleItem, moving: ScheduleItem, staying: ScheduleItem
    ) -> ConflictResolution:
        other = self.candidates(staying, moving) or []
        if staying is conflicting:
            suggestion = UserDecision(conflicting_candidates=tuple(other))
        else:
            suggestion = UserDecision(new_candidates=tuple(other))
        return self._result(
            conflicting,
            suggestion,
            f'No open time found for "{moving.title}"',
        )

    def _result(
        self, conflicting: ScheduleItem, suggestion: Suggestion, reason: str
    ) -> ConflictResolution:
        logger.debug(
            "Conflict %s vs %s -> %s", self.new_item.id, conflicting.id, type(suggestion).__name__
        )
        return ConflictResolution(
            conflicting_item=conflicting,
            new_item=self.new_item,
            suggestion=suggestion,
            reason=reason,
        )


def suggest_resolution(
    new_item: ScheduleItem,
    conflicting_items: Iterable[ScheduleItem],
    all_items: Iterable[ScheduleItem],
    now: datetime,
    settings: ReshuffleSettings = DEFAULT_SETTINGS,
    sleep_provider: SleepWindowProvider | None = None,
) -> list[ConflictResolution]:
    """One resolution per conflicting item, in the order given."""
    resolver = _Resolver(new_item, all_items, now, settings, sleep_provider)
    return [resolver.resolve(conflicting) for conflicting in conflicting_items]
