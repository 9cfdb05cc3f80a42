"""
Invariants Module — Plan Correctness Checks.

Domain invariants verify MEANING, not just shape. Each check takes a
ReshuffleResult plus whatever it needs to know about the day and raises
InvariantViolation when the plan breaks a promise made to the user.

check_plan() runs them all; the CLI runs it under --strict and the test
suite runs it against generated schedules.
"""

from collections.abc import Iterable
from datetime import date, datetime

from tempo.schedule.changes import (
    ActionKind,
    PLACEMENT_KINDS,
    RESIZE_KINDS,
    ReshuffleResult,
)
from tempo.schedule.items import ScheduleItem, TaskCategory

from .vocabulary import forbidden_words_in


class InvariantViolation(Exception):
    """Raised when a plan invariant is violated."""

    pass


# =============================================================================
# INVARIANT FUNCTIONS
# =============================================================================


def check_one_change_per_item(
    result: ReshuffleResult, items: Iterable[ScheduleItem], target_date: date
) -> None:
    """
    INVARIANT: Every incomplete item of the day gets exactly one change.

    Raises:
        InvariantViolation: If an item has no change or more than one
    """
    expected = {i.id for i in items if i.scheduled_date == target_date and not i.is_completed}
    seen: dict[str, int] = {}
    for change in result.changes:
        seen[change.item.id] = seen.get(change.item.id, 0) + 1

    missing = expected - set(seen)
    if missing:
        raise InvariantViolation(f"Items without a change: {sorted(missing)}")
    doubled = sorted(item_id for item_id, count in seen.items() if count > 1)
    if doubled:
        raise InvariantViolation(f"Items with more than one change: {doubled}")


def check_compression_floor(result: ReshuffleResult) -> None:
    """
    INVARIANT: No resize goes below the item's minimum duration, or to zero.

    Raises:
        InvariantViolation: If a new duration is under the floor
    """
    for change in result.changes:
        if change.kind not in RESIZE_KINDS:
            continue
        new_duration = change.new_duration_minutes
        floor = change.item.minimum_duration_minutes or 1
        if new_duration < floor:
            raise InvariantViolation(
                f"{change.item.id} resized to {new_duration} min, below floor {floor} min"
            )


def check_identity_habits_kept(result: ReshuffleResult, now: datetime) -> None:
    """
    INVARIANT: Identity habits that have not started yet are never deferred,
    pooled, or handed back to the user.

    Past habits go through Fix My Day, which may carry them to tomorrow.

    Raises:
        InvariantViolation: If a future habit leaves the day
    """
    allowed = {
        ActionKind.PROTECTED,
        ActionKind.RESIZED,
        ActionKind.MOVED,
        ActionKind.MOVED_AND_RESIZED,
    }
    for change in result.changes:
        item = change.item
        if item.category is not TaskCategory.IDENTITY_HABIT:
            continue
        if item.start_time < now:
            continue
        if change.kind not in allowed:
            raise InvariantViolation(f"Identity habit {item.id} was {change.kind.value}")


def check_non_negotiables_untouched(
    result: ReshuffleResult, items: Iterable[ScheduleItem], now: datetime
) -> None:
    """
    INVARIANT: A future non-negotiable is Protected when nothing overlaps it
    and RequiresUserDecision when something does. Nothing else.

    Raises:
        InvariantViolation: If a non-negotiable was moved, resized or deferred
    """
    items = list(items)
    for change in result.changes:
        item = change.item
        if item.category is not TaskCategory.NON_NEGOTIABLE:
            continue
        if change.kind not in (ActionKind.PROTECTED, ActionKind.REQUIRES_USER_DECISION):
            raise InvariantViolation(f"Non-negotiable {item.id} was {change.kind.value}")
        if item.start_time < now or item.is_completed:
            continue
        conflicting = any(
            other.id != item.id
            and not other.is_completed
            and other.scheduled_date == item.scheduled_date
            and other.overlaps(item)
            for other in items
        )
        expected = ActionKind.REQUIRES_USER_DECISION if conflicting else ActionKind.PROTECTED
        # an on-track day protects everything; overlaps always trigger analysis
        if change.kind is not expected:
            raise InvariantViolation(
                f"Non-negotiable {item.id} expected {expected.value}, got {change.kind.value}"
            )


def check_no_past_placement(result: ReshuffleResult, now: datetime) -> None:
    """
    INVARIANT: No proposed start time lies before now.

    Raises:
        InvariantViolation: If a move or deferral lands in the past
    """
    for change in result.changes:
        if change.kind in PLACEMENT_KINDS and change.new_start < now:
            raise InvariantViolation(
                f"{change.item.id} placed at {change.new_start.isoformat()}, before {now.isoformat()}"
            )


def check_vocabulary(result: ReshuffleResult) -> None:
    """
    INVARIANT: Generated text uses approved language only.

    Item titles are user text and are blanked out before checking.

    Raises:
        InvariantViolation: If a reason or the summary contains a forbidden word
    """
    titles = sorted({change.item.title for change in result.changes}, key=len, reverse=True)

    def _own_words(text: str) -> str:
        for title in titles:
            text = text.replace(title, "")
        return text

    texts = [result.summary]
    for change in result.changes:
        texts.append(change.reason)
        options = getattr(change.action, "options", ())
        texts.extend(f"{o.title} {o.description}" for o in options)

    for text in texts:
        found = forbidden_words_in(_own_words(text))
        if found:
            raise InvariantViolation(f"Forbidden wording {found} in: {text!r}")


# =============================================================================
# RUNNER
# =============================================================================


def check_plan(
    result: ReshuffleResult,
    items: Iterable[ScheduleItem],
    target_date: date,
    now: datetime,
) -> None:
    """Run every plan invariant. Raises on the first violation."""
    items = list(items)
    check_one_change_per_item(result, items, target_date)
    check_compression_floor(result)
    check_identity_habits_kept(result, now)
    check_non_negotiables_untouched(result, items, now)
    if target_date >= now.date():
        check_no_past_placement(result, now)
    check_vocabulary(result)
