"""
Summary generator.

Builds the user-facing text for a plan out of short sections joined by a
blank line. Everything here draws on the approved vocabulary only.
"""

import logging
from collections.abc import Sequence

from tempo.contracts.vocabulary import CompassionateMessage, validate_language
from tempo.schedule.changes import (
    ActionKind,
    Change,
    Deferred,
    Moved,
    MovedAndResized,
    Resized,
    format_date,
)
from tempo.schedule.timeslots import format_clock

from .evening import EveningDecision

logger = logging.getLogger(__name__)

_LIST_LIMIT = 5
_PROTECTED_LIMIT = 3


def _of(changes: Sequence[Change], *kinds: ActionKind) -> list[Change]:
    return [change for change in changes if change.kind in kinds]


def _bullets(header: str, lines: list[str], total: int) -> list[str]:
    out = [header, *lines[:_LIST_LIMIT]]
    if total > _LIST_LIMIT:
        out.append(f"• ...and {total - _LIST_LIMIT} more")
    return out


def opening_message(changes: Sequence[Change]) -> str:
    if any(change.kind is not ActionKind.PROTECTED for change in changes):
        return "Your schedule has been adjusted."
    return "Your schedule is on track."


def protected_section(changes: Sequence[Change]) -> str:
    titles = [f'"{change.item.title}"' for change in changes]
    if len(titles) == 1:
        return f"Protected: {titles[0]}"
    shown = ", ".join(titles[:_PROTECTED_LIMIT])
    if len(titles) > _PROTECTED_LIMIT:
        return f"Protected: {shown} and {len(titles) - _PROTECTED_LIMIT} more"
    return f"Protected: {shown}"


def adjusted_section(changes: Sequence[Change]) -> str:
    lines = []
    for change in changes:
        if isinstance(change.action, (Resized, MovedAndResized)):
            lines.append(
                f'• "{change.item.title}" → {change.action.new_duration_minutes} min '
                f"(saved {change.time_saved_minutes} min)"
            )
    return "\n".join(_bullets("Adjusted:", lines, len(changes)))


def moved_section(changes: Sequence[Change]) -> str:
    lines = []
    for change in changes:
        if isinstance(change.action, (Moved, MovedAndResized)):
            lines.append(f'• "{change.item.title}" → {format_clock(change.action.new_start)}')
    return "\n".join(_bullets("Moved:", lines, len(changes)))


def deferred_section(changes: Sequence[Change]) -> str:
    lines = []
    for change in changes:
        if isinstance(change.action, Deferred):
            lines.append(f'• "{change.item.title}" → {format_date(change.action.new_start)}')
    out = _bullets("Deferred to another day:", lines, len(changes))
    out.append(CompassionateMessage.TASK_DEFERRED)
    return "\n".join(out)


def decision_section(changes: Sequence[Change]) -> str:
    return "\n".join(["Needs your input:", *(f'• "{c.item.title}"' for c in changes)])


def closing_message(changes: Sequence[Change]) -> str:
    deferred = len(_of(changes, ActionKind.DEFERRED))
    adjusted = len(_of(changes, ActionKind.RESIZED, ActionKind.MOVED_AND_RESIZED))
    if deferred > 3 or adjusted > 3:
        return CompassionateMessage.FULL_DAY_DISRUPTION
    if adjusted > 0:
        return CompassionateMessage.DAY_ADJUSTED
    return CompassionateMessage.ON_TRACK


def generate_summary(
    changes: Sequence[Change], evening_decision: EveningDecision | None = None
) -> str:
    sections = [opening_message(changes)]

    protected = _of(changes, ActionKind.PROTECTED)
    if protected:
        sections.append(protected_section(protected))

    adjusted = _of(changes, ActionKind.RESIZED, ActionKind.MOVED_AND_RESIZED)
    if adjusted:
        sections.append(adjusted_section(adjusted))

    moved = _of(changes, ActionKind.MOVED, ActionKind.MOVED_AND_RESIZED)
    if moved:
        sections.append(moved_section(moved))

    deferred = _of(changes, ActionKind.DEFERRED)
    if deferred:
        sections.append(deferred_section(deferred))

    needs_decision = _of(changes, ActionKind.REQUIRES_USER_DECISION)
    if needs_decision:
        sections.append(decision_section(needs_decision))

    if evening_decision is not None and evening_decision.requires_consent:
        sections.append(f"Evening: {evening_decision.message}")

    sections.append(closing_message(changes))
    summary = "\n\n".join(sections)
    if not validate_language(summary):
        # titles are user text; only our own wording is guaranteed clean
        logger.warning("Summary contains non-approved wording from item titles")
    return summary


def quick_summary(changes: Sequence[Change]) -> str:
    """One line for a header: "2 protected, 1 adjusted"."""
    protected = len(_of(changes, ActionKind.PROTECTED))
    adjusted = len(
        _of(changes, ActionKind.RESIZED, ActionKind.MOVED_AND_RESIZED, ActionKind.MOVED)
    )
    deferred = len(_of(changes, ActionKind.DEFERRED))

    parts = []
    if protected:
        parts.append(f"{protected} protected")
    if adjusted:
        parts.append(f"{adjusted} adjusted")
    if deferred:
        parts.append(f"{deferred} deferred")
    return ", ".join(parts) if parts else "No changes needed"
