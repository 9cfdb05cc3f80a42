"""
Fix My Day - remediation for today's items whose start has already passed.

Each placement returns the intervals it reserved next to its Change. The
caller folds those claims into the tuple it passes to the next item, so two
remediated items never land on the same slot within one analysis.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from tempo.schedule.changes import (
    Change,
    Deferred,
    Moved,
    MovedAndResized,
    PLACEMENT_KINDS,
    Protected,
    RequiresUserDecision,
    UserOption,
)
from tempo.schedule.items import ScheduleItem, TaskCategory
from tempo.schedule.timeslots import TimeSlot

from .context import ReshuffleContext
from .slot_finder import find_next_available_slot, sequenced_fallback

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placement:
    change: Change
    claims: tuple[TimeSlot, ...] = ()


def placement_claims(change: Change) -> tuple[TimeSlot, ...]:
    """The interval a move or deferral takes up; nothing for other actions."""
    if change.kind not in PLACEMENT_KINDS:
        return ()
    minutes = change.new_duration_minutes or change.item.duration_minutes
    return (TimeSlot.of(change.new_start, minutes),)


def is_past_item(item: ScheduleItem, context: ReshuffleContext) -> bool:
    return context.is_today and not item.is_completed and item.start_time < context.now


def _remediated_ids(context: ReshuffleContext) -> set[str]:
    """Past items that are being re-placed; their old intervals no longer block."""
    return {
        item.id
        for item in context.incomplete_items
        if is_past_item(item, context) and item.category is not TaskCategory.NON_NEGOTIABLE
    }


def _today_slots(
    item: ScheduleItem, context: ReshuffleContext, claimed: tuple[TimeSlot, ...]
) -> list[TimeSlot]:
    return context.open_slots(
        context.target_date,
        exclude_ids=_remediated_ids(context) | {item.id},
        extra_blocked=claimed,
    )


def _full_slot_today(
    item: ScheduleItem, context: ReshuffleContext, claimed: tuple[TimeSlot, ...]
) -> datetime | None:
    for slot in _today_slots(item, context, claimed):
        if slot.fits(item.duration_minutes):
            return slot.start
    return None


def _compressed_slot_today(
    item: ScheduleItem, context: ReshuffleContext, claimed: tuple[TimeSlot, ...]
) -> tuple[datetime, int] | None:
    """First gap that holds at least the floor; the item takes as much of it as it can."""
    if not item.is_compressible:
        return None
    for slot in _today_slots(item, context, claimed):
        if slot.fits(item.minimum_duration_minutes):
            return slot.start, min(slot.duration_minutes, item.duration_minutes)
    return None


def _tomorrow_start(
    item: ScheduleItem, context: ReshuffleContext, claimed: tuple[TimeSlot, ...]
) -> datetime:
    tomorrow = context.target_date + timedelta(days=1)
    start = find_next_available_slot(
        context.settings.workday_start(tomorrow),
        item.duration_minutes,
        tomorrow,
        context.all_items,
        context.now,
        exclude_ids={item.id},
        avoid=claimed,
        sleep_provider=context.sleep_provider,
        settings=context.settings,
        lookahead_days=0,
        day_end_hour=context.settings.evening_start_hour,
    )
    if start is None:
        start = sequenced_fallback(
            tomorrow, item.duration_minutes, claimed, context.now, context.settings
        )
        logger.info("Sequenced fallback for %s at %s", item.id, start.isoformat())
    return start


def already_recurs_tomorrow(item: ScheduleItem, context: ReshuffleContext) -> bool:
    tomorrow = context.target_date + timedelta(days=1)
    if item.recurs_on(tomorrow):
        return True
    for other in context.all_items:
        if other.id == item.id or other.scheduled_date != tomorrow:
            continue
        if item.parent_template_id and other.parent_template_id == item.parent_template_id:
            return True
        if other.title == item.title and other.category is item.category:
            return True
    return False


def _defer(
    item: ScheduleItem, context: ReshuffleContext, claimed: tuple[TimeSlot, ...], reason: str
) -> Placement:
    start = _tomorrow_start(item, context, claimed)
    return Placement(
        Change(item, Deferred(start), reason),
        (TimeSlot.of(start, item.duration_minutes),),
    )


def fix_past_item(
    item: ScheduleItem, context: ReshuffleContext, claimed: tuple[TimeSlot, ...] = ()
) -> Placement:
    """Re-place one past item, keeping clear of ``claimed``."""
    if item.category is TaskCategory.NON_NEGOTIABLE:
        tomorrow = item.start_time + timedelta(days=1)
        options = (
            UserOption("mark_done", "Mark as done", "Record this as completed"),
            UserOption(
                "defer",
                "Defer to tomorrow",
                f"Move \"{item.title}\" to tomorrow's schedule",
                tomorrow,
            ),
        )
        return Placement(
            Change(
                item,
                RequiresUserDecision(options),
                "This non-negotiable's time has passed - how would you like to handle it?",
            )
        )

    start = _full_slot_today(item, context, claimed)
    if start is not None:
        return Placement(
            Change(item, Moved(start), "Moved to the next open time today"),
            (TimeSlot.of(start, item.duration_minutes),),
        )

    if item.category is TaskCategory.IDENTITY_HABIT:
        compressed = _compressed_slot_today(item, context, claimed)
        if compressed is not None:
            start, minutes = compressed
            return Placement(
                Change(
                    item,
                    MovedAndResized(start, minutes),
                    "Shortened to fit the rest of today - showing up in any form counts",
                ),
                (TimeSlot.of(start, minutes),),
            )
        if already_recurs_tomorrow(item, context):
            return Placement(
                Change(item, Protected(), "Already on tomorrow's schedule - this habit continues")
            )
        return _defer(
            item, context, claimed, "Carried forward to tomorrow - your habit continues"
        )

    return _defer(
        item, context, claimed, "Carried forward to tomorrow - today's priorities come first"
    )
