"""
Overflow Detector - how much time is missing and which tier absorbs it.

The waterfall is fixed: optional goals give way first, then identity habits
compress, then flexible tasks move to another day. Only when all three are
exhausted does the day structurally break (full-day disruption).
"""

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Union

from tempo.schedule.items import ScheduleItem

from .context import ReshuffleContext

logger = logging.getLogger(__name__)


class StrategyKind(StrEnum):
    NO_ACTION = "no_action"
    COMPRESS_HABITS = "compress_habits"
    DEFER_OPTIONALS = "defer_optionals"
    DEFER_FLEXIBLE = "defer_flexible"
    FULL_DAY_DISRUPTION = "full_day_disruption"


@dataclass(frozen=True)
class NoAction:
    kind: ClassVar[StrategyKind] = StrategyKind.NO_ACTION

    @property
    def description(self) -> str:
        return "No adjustments needed"


@dataclass(frozen=True)
class CompressHabits:
    minutes: int
    kind: ClassVar[StrategyKind] = StrategyKind.COMPRESS_HABITS

    @property
    def description(self) -> str:
        return f"Compress habits by {self.minutes} min"


@dataclass(frozen=True)
class DeferOptionals:
    count: int
    kind: ClassVar[StrategyKind] = StrategyKind.DEFER_OPTIONALS

    @property
    def description(self) -> str:
        return f"Defer {self.count} optional goal(s)"


@dataclass(frozen=True)
class DeferFlexible:
    count: int
    kind: ClassVar[StrategyKind] = StrategyKind.DEFER_FLEXIBLE

    @property
    def description(self) -> str:
        return f"Defer {self.count} flexible task(s)"


@dataclass(frozen=True)
class FullDayDisruption:
    kind: ClassVar[StrategyKind] = StrategyKind.FULL_DAY_DISRUPTION

    @property
    def description(self) -> str:
        return "Major schedule restructuring needed"


OverflowStrategy = Union[NoAction, CompressHabits, DeferOptionals, DeferFlexible, FullDayDisruption]


@dataclass(frozen=True)
class OverflowAnalysis:
    overflow_minutes: int
    strategy: OverflowStrategy
    spills_into_evening: bool = False
    evening_spill_minutes: int = 0

    @property
    def kind(self) -> StrategyKind:
        return self.strategy.kind

    @property
    def has_overflow(self) -> bool:
        return self.overflow_minutes > 0

    def to_dict(self) -> dict:
        return {
            "overflow_minutes": self.overflow_minutes,
            "strategy": self.kind.value,
            "description": self.strategy.description,
            "spills_into_evening": self.spills_into_evening,
            "evening_spill_minutes": self.evening_spill_minutes,
        }


def count_to_cover(items: list[ScheduleItem], minutes: int) -> int:
    """
    How many items, taken latest-start-first, it takes to cover ``minutes``.
    """
    covered = 0
    count = 0
    for item in sorted(items, key=lambda i: i.start_time, reverse=True):
        if covered >= minutes:
            break
        covered += item.duration_minutes
        count += 1
    return count


def detect_overflow(context: ReshuffleContext) -> OverflowAnalysis:
    """Run the mitigation waterfall over ``context``."""
    overflow = context.overflow_minutes
    if overflow <= 0:
        return OverflowAnalysis(overflow_minutes=0, strategy=NoAction())

    optional_minutes = context.optional_goal_minutes
    if optional_minutes >= overflow:
        strategy = DeferOptionals(count_to_cover(context.optional_goals, overflow))
        return _analysis(overflow, strategy)

    remaining = overflow - optional_minutes
    compression = context.max_compression_minutes
    if remaining <= compression:
        return _analysis(overflow, CompressHabits(remaining))

    remaining -= compression
    flexible_minutes = context.flexible_minutes
    if remaining <= flexible_minutes:
        return _analysis(overflow, DeferFlexible(count_to_cover(context.flexible_tasks, remaining)))

    spill = remaining - flexible_minutes
    analysis = OverflowAnalysis(
        overflow_minutes=overflow,
        strategy=FullDayDisruption(),
        spills_into_evening=spill > 0,
        evening_spill_minutes=spill,
    )
    logger.info("Full-day disruption: %d min spill into evening", spill)
    return analysis


def _analysis(overflow: int, strategy: OverflowStrategy) -> OverflowAnalysis:
    logger.debug("Overflow of %d min -> %s", overflow, strategy.description)
    return OverflowAnalysis(overflow_minutes=overflow, strategy=strategy)
