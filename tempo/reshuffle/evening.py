"""
Evening Protection Analyzer.

Evening (18:00-23:00 by default) is wind-down time. The decision table below
is evaluated top to bottom and the first matching case wins. Only the last
case decides silently, because by then no choice is left to offer.

Cases:
 1. Evening empty, no spill            -> keep free
 2. Non-negotiable in the evening      -> user allowed
 3. Only gentle habits                 -> gentle only
 4. High-energy identity habit         -> gentle only, consent
 5. Everything gentle or optional      -> gentle only
 6. High-energy movable tasks          -> make lighter, consent
 7. Overflow spills into the evening   -> keep free, consent
 8. Free time below the slack minimum  -> preserve slack, consent
 9. Anything else the user scheduled   -> user allowed
10. Full-day disruption fallback       -> protect one habit, else keep free
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from tempo.config import DEFAULT_SETTINGS, ReshuffleSettings
from tempo.schedule.items import ScheduleItem, TaskCategory

from .overflow import OverflowAnalysis, StrategyKind

logger = logging.getLogger(__name__)


class EveningRecommendation(StrEnum):
    KEEP_FREE = "keep_free"
    ALLOW_GENTLE_ONLY = "allow_gentle_only"
    MAKE_LIGHTER = "make_lighter"
    USER_ALLOWED = "user_allowed"
    PRESERVE_SLACK = "preserve_slack"

    @property
    def display_name(self) -> str:
        return {
            EveningRecommendation.KEEP_FREE: "Evening Protected",
            EveningRecommendation.ALLOW_GENTLE_ONLY: "Gentle Tasks Only",
            EveningRecommendation.MAKE_LIGHTER: "Evening Made Lighter",
            EveningRecommendation.USER_ALLOWED: "User Approved",
            EveningRecommendation.PRESERVE_SLACK: "Slack Preserved",
        }[self]


@dataclass(frozen=True)
class EveningDecision:
    case_number: int
    situation: str
    recommendation: EveningRecommendation
    requires_consent: bool
    affected_items: tuple[ScheduleItem, ...] = ()
    removed_item_ids: tuple[str, ...] = ()  # make-lighter only
    minimum_free_minutes: int | None = None  # preserve-slack only
    spill_minutes: int = 0

    @property
    def message(self) -> str:
        if self.recommendation is EveningRecommendation.KEEP_FREE:
            return "Your evening is protected and will remain free."
        if self.recommendation is EveningRecommendation.ALLOW_GENTLE_ONLY:
            return "Only gentle, low-energy activities in your evening."
        if self.recommendation is EveningRecommendation.MAKE_LIGHTER:
            return "Would you like to move high-energy tasks out of your evening?"
        if self.recommendation is EveningRecommendation.USER_ALLOWED:
            return "Evening tasks are scheduled as you requested."
        return f"Keeping at least {self.minimum_free_minutes} minutes of evening free time."

    @property
    def affected_item_ids(self) -> set[str]:
        return {item.id for item in self.affected_items}

    def to_dict(self) -> dict:
        return {
            "case": self.case_number,
            "situation": self.situation,
            "recommendation": self.recommendation.value,
            "requires_consent": self.requires_consent,
            "message": self.message,
            "affected_item_ids": [item.id for item in self.affected_items],
        }

    # -------------------------------------------------------------------------
    # Case constructors
    # -------------------------------------------------------------------------

    @classmethod
    def evening_empty(cls) -> "EveningDecision":
        return cls(1, "Evening is currently free", EveningRecommendation.KEEP_FREE, False)

    @classmethod
    def evening_non_negotiable(cls, item: ScheduleItem) -> "EveningDecision":
        return cls(
            2,
            f"Evening has non-negotiable: {item.title}",
            EveningRecommendation.USER_ALLOWED,
            False,
            (item,),
        )

    @classmethod
    def gentle_habit(cls, item: ScheduleItem) -> "EveningDecision":
        return cls(
            3,
            f"Evening identity habit: {item.title}",
            EveningRecommendation.ALLOW_GENTLE_ONLY,
            False,
            (item,),
        )

    @classmethod
    def high_energy_habit(cls, item: ScheduleItem) -> "EveningDecision":
        return cls(
            4,
            f"High-energy evening habit: {item.title}",
            EveningRecommendation.ALLOW_GENTLE_ONLY,
            True,
            (item,),
        )

    @classmethod
    def gentle_tasks_only(cls, items: list[ScheduleItem]) -> "EveningDecision":
        return cls(
            5,
            f"Evening has {len(items)} gentle task(s)",
            EveningRecommendation.ALLOW_GENTLE_ONLY,
            False,
            tuple(items),
        )

    @classmethod
    def high_energy_tasks(cls, items: list[ScheduleItem]) -> "EveningDecision":
        return cls(
            6,
            f"Evening has {len(items)} high-energy task(s) that could be moved earlier",
            EveningRecommendation.MAKE_LIGHTER,
            True,
            tuple(items),
            removed_item_ids=tuple(item.id for item in items),
        )

    @classmethod
    def overflow_detected(cls, spill_minutes: int) -> "EveningDecision":
        return cls(
            7,
            f"Schedule overflow of {spill_minutes} min would affect evening",
            EveningRecommendation.KEEP_FREE,
            True,
            spill_minutes=spill_minutes,
        )

    @classmethod
    def slack_consumed(cls, free_minutes: int, minimum_required: int) -> "EveningDecision":
        return cls(
            8,
            f"Evening slack reduced to {free_minutes} min (need {minimum_required} min)",
            EveningRecommendation.PRESERVE_SLACK,
            True,
            minimum_free_minutes=minimum_required,
        )

    @classmethod
    def user_chose_evening(cls, items: list[ScheduleItem]) -> "EveningDecision":
        return cls(
            9,
            f"User scheduled {len(items)} evening task(s)",
            EveningRecommendation.USER_ALLOWED,
            False,
            tuple(items),
        )

    @classmethod
    def full_day_disruption(cls, protected_habit: ScheduleItem | None) -> "EveningDecision":
        if protected_habit is None:
            return cls(
                10,
                "Full day disruption - evening kept free",
                EveningRecommendation.KEEP_FREE,
                False,
            )
        return cls(
            10,
            f"Full day disruption - protecting evening habit: {protected_habit.title}",
            EveningRecommendation.ALLOW_GENTLE_ONLY,
            False,
            (protected_habit,),
        )


# =============================================================================
# ANALYSIS
# =============================================================================


@dataclass(frozen=True)
class EveningSnapshot:
    """Evening items split the way the decision table looks at them."""

    items: list[ScheduleItem]
    free_minutes: int
    minimum_free_minutes: int
    overflow: OverflowAnalysis
    non_negotiables: list[ScheduleItem] = field(default_factory=list)
    gentle_habits: list[ScheduleItem] = field(default_factory=list)
    high_energy_habits: list[ScheduleItem] = field(default_factory=list)
    others: list[ScheduleItem] = field(default_factory=list)


def snapshot_evening(
    items: Iterable[ScheduleItem],
    overflow: OverflowAnalysis,
    settings: ReshuffleSettings = DEFAULT_SETTINGS,
) -> EveningSnapshot:
    evening = [item for item in items if item.is_evening_task and not item.is_completed]
    habits = [item for item in evening if item.category is TaskCategory.IDENTITY_HABIT]
    scheduled = sum(item.duration_minutes for item in evening)
    return EveningSnapshot(
        items=evening,
        free_minutes=settings.evening_minutes - scheduled,
        minimum_free_minutes=settings.minimum_evening_free_minutes,
        overflow=overflow,
        non_negotiables=[i for i in evening if i.category is TaskCategory.NON_NEGOTIABLE],
        gentle_habits=[i for i in habits if i.is_gentle_task],
        high_energy_habits=[i for i in habits if not i.is_gentle_task],
        others=[
            i
            for i in evening
            if i.category not in (TaskCategory.NON_NEGOTIABLE, TaskCategory.IDENTITY_HABIT)
        ],
    )


def _empty(s: EveningSnapshot) -> EveningDecision | None:
    if not s.items and not s.overflow.spills_into_evening:
        return EveningDecision.evening_empty()
    return None


def _non_negotiable(s: EveningSnapshot) -> EveningDecision | None:
    if s.non_negotiables:
        return EveningDecision.evening_non_negotiable(s.non_negotiables[0])
    return None


def _only_gentle_habits(s: EveningSnapshot) -> EveningDecision | None:
    if s.gentle_habits and not s.high_energy_habits and not s.others:
        return EveningDecision.gentle_habit(s.gentle_habits[0])
    return None


def _high_energy_habit(s: EveningSnapshot) -> EveningDecision | None:
    if s.high_energy_habits:
        return EveningDecision.high_energy_habit(s.high_energy_habits[0])
    return None


def _gentle_or_optional(s: EveningSnapshot) -> EveningDecision | None:
    if s.items and all(can_flow_into_evening(item) for item in s.items):
        return EveningDecision.gentle_tasks_only(s.items)
    return None


def _high_energy_tasks(s: EveningSnapshot) -> EveningDecision | None:
    heavy = [item for item in s.items if not can_flow_into_evening(item)]
    if heavy:
        return EveningDecision.high_energy_tasks(heavy)
    return None


def _spill(s: EveningSnapshot) -> EveningDecision | None:
    if s.overflow.spills_into_evening:
        return EveningDecision.overflow_detected(s.overflow.evening_spill_minutes)
    return None


def _slack(s: EveningSnapshot) -> EveningDecision | None:
    if s.free_minutes < s.minimum_free_minutes:
        return EveningDecision.slack_consumed(s.free_minutes, s.minimum_free_minutes)
    return None


def _user_scheduled(s: EveningSnapshot) -> EveningDecision | None:
    if s.items:
        return EveningDecision.user_chose_evening(s.items)
    return None


def _full_day(s: EveningSnapshot) -> EveningDecision | None:
    if s.overflow.kind is StrategyKind.FULL_DAY_DISRUPTION:
        habits = s.gentle_habits or s.high_energy_habits
        return EveningDecision.full_day_disruption(habits[0] if habits else None)
    return None


EVENING_CASES: tuple[Callable[[EveningSnapshot], EveningDecision | None], ...] = (
    _empty,
    _non_negotiable,
    _only_gentle_habits,
    _high_energy_habit,
    _gentle_or_optional,
    _high_energy_tasks,
    _spill,
    _slack,
    _user_scheduled,
    _full_day,
)


def decide(snapshot: EveningSnapshot) -> EveningDecision:
    for case in EVENING_CASES:
        decision = case(snapshot)
        if decision is not None:
            return decision
    return EveningDecision.evening_empty()


def analyze_evening(
    items: Iterable[ScheduleItem],
    overflow: OverflowAnalysis,
    settings: ReshuffleSettings = DEFAULT_SETTINGS,
) -> EveningDecision:
    """Decide what may happen to the evening of the day ``items`` belong to."""
    decision = decide(snapshot_evening(items, overflow, settings))
    logger.debug(
        "Evening case %d: %s (consent=%s)",
        decision.case_number,
        decision.situation,
        decision.requires_consent,
    )
    return decision


# =============================================================================
# HELPERS
# =============================================================================


def can_flow_into_evening(item: ScheduleItem) -> bool:
    """Only gentle work and optional goals may spill into the evening."""
    return item.is_gentle_task or item.category is TaskCategory.OPTIONAL_GOAL


def remaining_slack(free_minutes: int, adding_minutes: int) -> int:
    return free_minutes - adding_minutes


def would_violate_slack_rule(
    free_minutes: int,
    adding_minutes: int,
    settings: ReshuffleSettings = DEFAULT_SETTINGS,
) -> bool:
    return remaining_slack(free_minutes, adding_minutes) < settings.minimum_evening_free_minutes
