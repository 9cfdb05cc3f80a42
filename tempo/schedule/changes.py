"""
Change model: what the reshuffle core proposes.

Every action is a small frozen value; a Change pairs one action with the item
it applies to and a reason written in the approved vocabulary. Changes are
proposals only. Persistence applies them (tempo.schedule.repository).
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar, Union

from .items import ScheduleItem
from .timeslots import format_clock

if TYPE_CHECKING:
    from tempo.reshuffle.evening import EveningDecision
    from tempo.reshuffle.overflow import OverflowAnalysis


class ActionKind(StrEnum):
    PROTECTED = "protected"
    RESIZED = "resized"
    MOVED = "moved"
    MOVED_AND_RESIZED = "moved_and_resized"
    DEFERRED = "deferred"
    POOLED = "pooled"
    REQUIRES_USER_DECISION = "requires_user_decision"

    @property
    def display_name(self) -> str:
        return _ACTION_NAMES[self]


_ACTION_NAMES = {
    ActionKind.PROTECTED: "Protected",
    ActionKind.RESIZED: "Adjusted",
    ActionKind.MOVED: "Moved",
    ActionKind.MOVED_AND_RESIZED: "Adjusted & Moved",
    ActionKind.DEFERRED: "Deferred",
    ActionKind.POOLED: "Pooled",
    ActionKind.REQUIRES_USER_DECISION: "Needs Your Input",
}


# =============================================================================
# ACTIONS
# =============================================================================


@dataclass(frozen=True)
class Protected:
    kind: ClassVar[ActionKind] = ActionKind.PROTECTED


@dataclass(frozen=True)
class Resized:
    new_duration_minutes: int
    kind: ClassVar[ActionKind] = ActionKind.RESIZED


@dataclass(frozen=True)
class Moved:
    new_start: datetime
    kind: ClassVar[ActionKind] = ActionKind.MOVED


@dataclass(frozen=True)
class MovedAndResized:
    new_start: datetime
    new_duration_minutes: int
    kind: ClassVar[ActionKind] = ActionKind.MOVED_AND_RESIZED


@dataclass(frozen=True)
class Deferred:
    new_start: datetime  # start on the new day; the day bucket follows it
    kind: ClassVar[ActionKind] = ActionKind.DEFERRED

    @property
    def new_date(self) -> date:
        return self.new_start.date()


@dataclass(frozen=True)
class Pooled:
    kind: ClassVar[ActionKind] = ActionKind.POOLED


@dataclass(frozen=True)
class UserOption:
    """One choice offered when the core will not decide on the user's behalf."""

    key: str
    title: str
    description: str
    new_start: datetime | None = None


@dataclass(frozen=True)
class RequiresUserDecision:
    options: tuple[UserOption, ...]
    kind: ClassVar[ActionKind] = ActionKind.REQUIRES_USER_DECISION


ChangeAction = Union[Protected, Resized, Moved, MovedAndResized, Deferred, Pooled, RequiresUserDecision]

PLACEMENT_KINDS = frozenset({ActionKind.MOVED, ActionKind.MOVED_AND_RESIZED, ActionKind.DEFERRED})
RESIZE_KINDS = frozenset({ActionKind.RESIZED, ActionKind.MOVED_AND_RESIZED})


# =============================================================================
# CHANGE
# =============================================================================


@dataclass(frozen=True)
class Change:
    item: ScheduleItem
    action: ChangeAction
    reason: str

    @property
    def kind(self) -> ActionKind:
        return self.action.kind

    @property
    def new_start(self) -> datetime | None:
        return getattr(self.action, "new_start", None)

    @property
    def new_duration_minutes(self) -> int | None:
        return getattr(self.action, "new_duration_minutes", None)

    @property
    def time_saved_minutes(self) -> int:
        new_duration = self.new_duration_minutes
        if new_duration is None:
            return 0
        return max(0, self.item.duration_minutes - new_duration)

    @property
    def summary(self) -> str:
        title = self.item.title
        action = self.action
        if isinstance(action, Protected):
            return f'"{title}" is protected'
        if isinstance(action, Resized):
            return (
                f'"{title}" adjusted to {action.new_duration_minutes} min '
                f"(saved {self.time_saved_minutes} min)"
            )
        if isinstance(action, Moved):
            return f'"{title}" moved to {format_clock(action.new_start)}'
        if isinstance(action, MovedAndResized):
            return (
                f'"{title}" adjusted to {action.new_duration_minutes} min and moved to '
                f"{format_clock(action.new_start)} (saved {self.time_saved_minutes} min)"
            )
        if isinstance(action, Deferred):
            return f'"{title}" deferred to {format_date(action.new_start)}'
        if isinstance(action, Pooled):
            return f'"{title}" added to flexible pool'
        return f'"{title}" needs your decision'

    def to_dict(self) -> dict:
        data = {
            "item_id": self.item.id,
            "title": self.item.title,
            "category": self.item.category.value,
            "action": self.kind.value,
            "reason": self.reason,
            "summary": self.summary,
        }
        if self.new_start is not None:
            data["new_start"] = self.new_start.isoformat()
        if self.new_duration_minutes is not None:
            data["new_duration_minutes"] = self.new_duration_minutes
        if isinstance(self.action, RequiresUserDecision):
            data["options"] = [
                {
                    "key": option.key,
                    "title": option.title,
                    "description": option.description,
                    "new_start": option.new_start.isoformat() if option.new_start else None,
                }
                for option in self.action.options
            ]
        return data


def format_date(moment: datetime | date) -> str:
    return f"{moment:%b} {moment.day}, {moment.year}"


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class ReshuffleResult:
    """The complete plan for one analyzed day."""

    changes: tuple[Change, ...]
    summary: str
    evening_protection_triggered: bool = False
    evening_decision: "EveningDecision | None" = None
    overflow: "OverflowAnalysis | None" = None

    @classmethod
    def empty(cls) -> "ReshuffleResult":
        return cls(changes=(), summary="Your schedule looks good! No adjustments needed.")

    @classmethod
    def on_track(cls, items: list[ScheduleItem]) -> "ReshuffleResult":
        changes = tuple(Change(item, Protected(), "On track") for item in items)
        return cls(changes=changes, summary="You're on track. All items protected.")

    # -------------------------------------------------------------------------
    # Grouping
    # -------------------------------------------------------------------------

    def of_kind(self, *kinds: ActionKind) -> list[Change]:
        return [change for change in self.changes if change.kind in kinds]

    def for_item(self, item_id: str) -> Change | None:
        for change in self.changes:
            if change.item.id == item_id:
                return change
        return None

    @property
    def protected_items(self) -> list[Change]:
        return self.of_kind(ActionKind.PROTECTED)

    @property
    def adjusted_items(self) -> list[Change]:
        return self.of_kind(ActionKind.RESIZED, ActionKind.MOVED_AND_RESIZED)

    @property
    def moved_items(self) -> list[Change]:
        return self.of_kind(ActionKind.MOVED)

    @property
    def deferred_items(self) -> list[Change]:
        return self.of_kind(ActionKind.DEFERRED)

    @property
    def pooled_items(self) -> list[Change]:
        return self.of_kind(ActionKind.POOLED)

    @property
    def items_needing_decision(self) -> list[Change]:
        return self.of_kind(ActionKind.REQUIRES_USER_DECISION)

    @property
    def requires_user_consent(self) -> bool:
        if self.items_needing_decision:
            return True
        return bool(self.evening_decision and self.evening_decision.requires_consent)

    @property
    def time_saved_minutes(self) -> int:
        return sum(change.time_saved_minutes for change in self.changes)

    @property
    def has_changes(self) -> bool:
        return any(change.kind is not ActionKind.PROTECTED for change in self.changes)

    def counts(self) -> dict[str, int]:
        counts = {kind.value: 0 for kind in ActionKind}
        for change in self.changes:
            counts[change.kind.value] += 1
        return counts

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "changes": [change.to_dict() for change in self.changes],
            "counts": self.counts(),
            "time_saved_minutes": self.time_saved_minutes,
            "requires_user_consent": self.requires_user_consent,
            "evening_protection_triggered": self.evening_protection_triggered,
            "evening_decision": self.evening_decision.to_dict() if self.evening_decision else None,
            "overflow": self.overflow.to_dict() if self.overflow else None,
        }


# =============================================================================
# CONFLICT RESOLUTION
# =============================================================================


@dataclass(frozen=True)
class MoveConflicting:
    candidates: tuple[datetime, ...]


@dataclass(frozen=True)
class MoveNew:
    candidates: tuple[datetime, ...]


@dataclass(frozen=True)
class UserDecision:
    conflicting_candidates: tuple[datetime, ...] = ()
    new_candidates: tuple[datetime, ...] = ()
    alternatives: tuple[str, ...] = ()  # extra choices, e.g. "compress", "keep_both"


Suggestion = Union[MoveConflicting, MoveNew, UserDecision]


@dataclass(frozen=True)
class ConflictResolution:
    conflicting_item: ScheduleItem
    new_item: ScheduleItem
    suggestion: Suggestion
    reason: str

    @property
    def suggested_start(self) -> datetime | None:
        """First candidate for whichever item the suggestion moves."""
        suggestion = self.suggestion
        if isinstance(suggestion, (MoveConflicting, MoveNew)) and suggestion.candidates:
            return suggestion.candidates[0]
        return None

    def to_dict(self) -> dict:
        suggestion = self.suggestion
        data: dict = {
            "conflicting_item_id": self.conflicting_item.id,
            "new_item_id": self.new_item.id,
            "reason": self.reason,
        }
        if isinstance(suggestion, MoveConflicting):
            data["suggestion"] = "move_conflicting"
            data["candidates"] = [c.isoformat() for c in suggestion.candidates]
        elif isinstance(suggestion, MoveNew):
            data["suggestion"] = "move_new"
            data["candidates"] = [c.isoformat() for c in suggestion.candidates]
        else:
            data["suggestion"] = "user_decision"
            data["conflicting_candidates"] = [c.isoformat() for c in suggestion.conflicting_candidates]
            data["new_candidates"] = [c.isoformat() for c in suggestion.new_candidates]
            data["alternatives"] = list(suggestion.alternatives)
        return data


__all__ = [
    "ActionKind",
    "Change",
    "ChangeAction",
    "ConflictResolution",
    "Deferred",
    "MoveConflicting",
    "MoveNew",
    "Moved",
    "MovedAndResized",
    "PLACEMENT_KINDS",
    "Pooled",
    "Protected",
    "RESIZE_KINDS",
    "RequiresUserDecision",
    "Resized",
    "ReshuffleResult",
    "Suggestion",
    "UserDecision",
    "UserOption",
]
