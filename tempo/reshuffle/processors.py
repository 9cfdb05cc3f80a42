"""
Category processors.

One plain function per category, each turning an item into exactly one
Change. PROCESSORS maps a category to its function; the engine takes the
mapping as a parameter so a rule set can be swapped in tests.

Rules in short:
- Non-negotiable: protected, or escalated to the user on overlap. Never moved.
- Identity habit: protected, compressed by a fair share of the overflow, or
  relocated within its own constraints. Never deferred or pooled.
- Flexible task: stays, moves near its old hour, waits a day, or joins the pool.
- Optional goal: stays unless overflow still needs room after the goals
  scheduled before it; then it waits a day.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from tempo.schedule.changes import (
    Change,
    Deferred,
    Moved,
    MovedAndResized,
    Pooled,
    Protected,
    RequiresUserDecision,
    Resized,
    UserOption,
)
from tempo.schedule.items import ScheduleItem, TaskCategory
from tempo.schedule.timeslots import format_clock

from .context import ReshuffleContext
from .overflow import OverflowAnalysis

logger = logging.getLogger(__name__)

Processor = Callable[[ScheduleItem, ReshuffleContext, OverflowAnalysis], Change]

DEFER_REASON = "Deferred to tomorrow - today's priorities come first"


# =============================================================================
# NON-NEGOTIABLE
# =============================================================================


def process_non_negotiable(
    item: ScheduleItem, context: ReshuffleContext, overflow: OverflowAnalysis
) -> Change:
    conflicts = context.conflicts_for(item)
    if not conflicts:
        return Change(item, Protected(), "Non-negotiable items are always protected")

    options = [
        UserOption(
            "keep",
            f'Keep "{item.title}"',
            "Adjust or move the conflicting items instead",
        )
    ]
    next_start = context.find_slot(
        item.duration_minutes, after=item.end_time, exclude_ids={item.id}
    )
    if next_start is not None:
        options.append(
            UserOption(
                "move",
                f"Move to {format_clock(next_start)}",
                f'Move "{item.title}" to an available time slot',
                next_start,
            )
        )
    options.append(
        UserOption(
            "defer",
            "Defer to tomorrow",
            f"Move \"{item.title}\" to tomorrow's schedule",
            item.start_time + timedelta(days=1),
        )
    )
    names = ", ".join(other.title for other in conflicts)
    return Change(
        item,
        RequiresUserDecision(tuple(options)),
        f"This non-negotiable overlaps with: {names}",
    )


# =============================================================================
# IDENTITY HABIT
# =============================================================================


def fair_share(item: ScheduleItem, minutes_to_absorb: int, total_compressible: int) -> int:
    """This habit's part of ``minutes_to_absorb``, proportional to its own slack."""
    if minutes_to_absorb <= 0 or total_compressible <= 0:
        return 0
    return int(minutes_to_absorb * item.compressible_minutes / total_compressible)


def same_week_slot(
    item: ScheduleItem, context: ReshuffleContext, duration_minutes: int
) -> datetime | None:
    """
    A start on another day of the item's ISO week that is not already one of
    its recurrence days.
    """
    week = item.scheduled_date.isocalendar()[:2]
    for offset in range(1, 7):
        day = item.scheduled_date + timedelta(days=offset)
        if day.isocalendar()[:2] != week:
            break
        if day.weekday() in item.recurrence_days:
            continue
        start = context.find_slot_on(day, duration_minutes, exclude_ids={item.id})
        if start is not None:
            return start
    return None


def _compression_reason(item: ScheduleItem, saved: int) -> str:
    if item.is_daily_habit:
        if saved <= 5:
            return "Daily habit adjusted slightly - you're still showing up"
        if saved <= 15:
            return f"Daily habit compressed {saved} min - showing up every day counts"
        return f"Daily habit compressed {saved} min - consistency over perfection"
    if item.is_weekly_habit:
        if saved <= 5:
            return "Weekly habit adjusted - keeping you on track"
        return f"Weekly habit compressed {saved} min - every bit counts"
    if saved <= 5:
        return "Slightly adjusted, but you're still showing up"
    if saved <= 15:
        return f"Adjusted to {saved} minutes shorter - showing up in any form counts"
    return f"Compressed to save {saved} min - your commitment is what matters"


def _weekly_move_reason(saved: int) -> str:
    if saved <= 5:
        return "Moved to another day this week - still counts toward your weekly goal"
    return f"Moved and adjusted {saved} min - still on track for the week"


def process_identity_habit(
    item: ScheduleItem, context: ReshuffleContext, overflow: OverflowAnalysis
) -> Change:
    if not context.has_overflow:
        return Change(item, Protected(), "Your identity habit is protected at full duration")

    to_absorb = context.overflow_minutes - context.optional_goal_minutes
    if to_absorb <= 0:
        return Change(item, Protected(), "Protected - other items were adjusted instead")

    if not item.is_compressible:
        return _relocate_habit(item, context)

    needed = fair_share(item, to_absorb, context.max_compression_minutes)
    if needed <= 0:
        return Change(item, Protected(), "Protected - other items were adjusted instead")

    new_duration = max(item.minimum_duration_minutes, item.duration_minutes - needed)
    saved = item.duration_minutes - new_duration

    if item.is_daily_habit:
        # tomorrow needs the same slot, so daily habits only shrink in place
        return Change(item, Resized(new_duration), _compression_reason(item, saved))

    if item.is_weekly_habit:
        start = same_week_slot(item, context, new_duration)
        if start is not None:
            return Change(item, MovedAndResized(start, new_duration), _weekly_move_reason(saved))
        return Change(item, Resized(new_duration), _compression_reason(item, saved))

    if not context.is_slot_available(item.start_time, new_duration, exclude_ids={item.id}):
        start = context.find_slot(new_duration, exclude_ids={item.id})
        if start is not None and start != item.start_time:
            return Change(
                item, MovedAndResized(start, new_duration), _compression_reason(item, saved)
            )
    return Change(item, Resized(new_duration), _compression_reason(item, saved))


def _relocate_habit(item: ScheduleItem, context: ReshuffleContext) -> Change:
    """A habit with no room to shrink: move it if its rules allow, else keep it."""
    if item.is_daily_habit:
        return Change(item, Protected(), "Daily habit protected - it keeps its usual time")

    if item.is_weekly_habit:
        start = same_week_slot(item, context, item.duration_minutes)
        if start is not None:
            return Change(
                item, Moved(start), "Moved to a day when you don't have this habit scheduled"
            )
        return Change(
            item, Protected(), "Weekly habit protected - same habit scheduled on nearby days"
        )

    if context.is_slot_available(item.start_time, item.duration_minutes, exclude_ids={item.id}):
        return Change(
            item, Protected(), "Your identity habit is protected - it defines who you are"
        )
    start = context.find_slot(item.duration_minutes, exclude_ids={item.id})
    if start is not None and start != item.start_time:
        return Change(item, Moved(start), "Moved to fit your adjusted schedule")
    return Change(item, Protected(), "Your identity habit is protected - it defines who you are")


# =============================================================================
# FLEXIBLE TASK
# =============================================================================


def _near_slot(item: ScheduleItem, context: ReshuffleContext) -> datetime | None:
    """Prefer a start within the preferred window of the old hour, else the first fit."""
    window = timedelta(hours=context.settings.preferred_window_hours)
    first_fit = None
    for slot in context.open_slots(context.target_date, exclude_ids={item.id}):
        if not slot.fits(item.duration_minutes):
            continue
        if first_fit is None:
            first_fit = slot.start
        latest_start = slot.end - timedelta(minutes=item.duration_minutes)
        # closest start to the original time inside this slot
        start = min(max(item.start_time, slot.start), latest_start)
        if abs(start - item.start_time) <= window:
            return start
    return first_fit


def process_flexible_task(
    item: ScheduleItem, context: ReshuffleContext, overflow: OverflowAnalysis
) -> Change:
    conflicts = context.conflicts_for(item)
    if not context.has_overflow and not conflicts:
        return Change(item, Protected(), "Flexible task stays in place - schedule allows it")

    residual = (
        context.overflow_minutes
        - context.optional_goal_minutes
        - context.max_compression_minutes
    )
    if residual > 0:
        return Change(item, Deferred(item.start_time + timedelta(days=1)), DEFER_REASON)

    if not conflicts and context.is_slot_available(
        item.start_time, item.duration_minutes, exclude_ids={item.id}
    ):
        return Change(item, Protected(), "Flexible task stays in place - schedule allows it")

    start = _near_slot(item, context)
    if start is not None and start != item.start_time:
        return Change(item, Moved(start), "Moved to fit your adjusted schedule")
    return Change(
        item, Pooled(), "Added to flexible pool - will be scheduled when time opens up"
    )


# =============================================================================
# OPTIONAL GOAL
# =============================================================================


def process_optional_goal(
    item: ScheduleItem, context: ReshuffleContext, overflow: OverflowAnalysis
) -> Change:
    if not context.has_overflow:
        if context.conflicts_for(item):
            start = context.find_slot(item.duration_minutes, exclude_ids={item.id})
            if start is not None and start != item.start_time:
                return Change(item, Moved(start), "Moved to avoid schedule conflict")
        return Change(item, Protected(), "Optional goal fits in today's schedule")

    # goals sharing a start keep their insertion order
    earlier = 0
    for other in sorted(context.optional_goals, key=lambda goal: goal.start_time):
        if other.id == item.id:
            break
        earlier += other.duration_minutes
    if context.overflow_minutes - earlier > 0:
        return Change(
            item,
            Deferred(next_day_start(item, context)),
            DEFER_REASON + ". This can wait.",
        )
    return Change(item, Protected(), "Optional goal kept - higher priority items were adjusted")


def next_day_start(item: ScheduleItem, context: ReshuffleContext) -> datetime:
    """First real opening tomorrow, else the workday start."""
    tomorrow = context.target_date + timedelta(days=1)
    start = context.find_slot_on(tomorrow, item.duration_minutes, exclude_ids={item.id})
    if start is None:
        return context.settings.workday_start(tomorrow)
    return start


PROCESSORS: dict[TaskCategory, Processor] = {
    TaskCategory.NON_NEGOTIABLE: process_non_negotiable,
    TaskCategory.IDENTITY_HABIT: process_identity_habit,
    TaskCategory.FLEXIBLE_TASK: process_flexible_task,
    TaskCategory.OPTIONAL_GOAL: process_optional_goal,
}


def process(
    item: ScheduleItem,
    context: ReshuffleContext,
    overflow: OverflowAnalysis,
    processors: dict[TaskCategory, Processor] = PROCESSORS,
) -> Change:
    change = processors[item.category](item, context, overflow)
    logger.debug("%s -> %s", item.id, change.kind.value)
    return change
