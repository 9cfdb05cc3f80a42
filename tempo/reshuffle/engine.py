"""
Reshuffle Engine - the end-to-end pipeline.

analyze(items, date, now):
    context -> overflow waterfall -> evening decision -> one Change per
    incomplete item in priority order (Fix My Day for today's past items,
    the category processor otherwise) -> evening guard -> summary.

The engine proposes; it never writes. The clock is a collaborator: pass
``now`` explicitly or give the engine a ``clock`` callable.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta

from tempo.config import DEFAULT_SETTINGS, ReshuffleSettings
from tempo.contracts.vocabulary import CompassionateMessage
from tempo.observability.context import AnalysisContext, RESOLVE_PREFIX
from tempo.schedule.changes import (
    ActionKind,
    Change,
    ConflictResolution,
    RequiresUserDecision,
    ReshuffleResult,
    UserOption,
)
from tempo.schedule.items import ScheduleItem, TaskCategory
from tempo.schedule.sleep import SleepWindowProvider
from tempo.schedule.timeslots import TimeSlot

from .context import ReshuffleContext, create_context
from .evening import EveningDecision, analyze_evening
from .fix_my_day import fix_past_item, is_past_item, placement_claims
from .overflow import OverflowAnalysis, StrategyKind, detect_overflow
from .processors import PROCESSORS, Processor, process
from .resolver import find_conflicts, suggest_resolution
from .summary import generate_summary

_STATUS_MESSAGES = {
    StrategyKind.NO_ACTION: CompassionateMessage.ON_TRACK,
    StrategyKind.COMPRESS_HABITS: "Some adjustments suggested to fit everything in",
    StrategyKind.DEFER_OPTIONALS: "Consider deferring some optional goals",
    StrategyKind.DEFER_FLEXIBLE: "Schedule is tight - some tasks may need to move",
    StrategyKind.FULL_DAY_DISRUPTION: CompassionateMessage.FULL_DAY_DISRUPTION,
}

_EVENING_GUARDED_KINDS = frozenset(
    {ActionKind.MOVED, ActionKind.MOVED_AND_RESIZED, ActionKind.DEFERRED, ActionKind.POOLED}
)


def needs_reshuffle(context: ReshuffleContext) -> bool:
    """
    True when the day has incomplete work and something is off: overflow,
    an overlap between incomplete items, or (today only) an item whose start
    has already passed.
    """
    incomplete = context.incomplete_items
    if not incomplete:
        return False
    if context.has_overflow:
        return True
    for index, item in enumerate(incomplete):
        for other in incomplete[index + 1 :]:
            if item.overlaps(other):
                return True
    if context.is_today:
        return any(item.start_time < context.now for item in incomplete)
    return False


class ReshuffleEngine:
    """
    Stateless orchestrator. Collaborators (settings, processors, sleep
    provider, clock, log sink) are fixed at construction; every call builds
    its own context and ledgers.
    """

    def __init__(
        self,
        settings: ReshuffleSettings = DEFAULT_SETTINGS,
        processors: dict[TaskCategory, Processor] | None = None,
        sleep_provider: SleepWindowProvider | None = None,
        clock: Callable[[], datetime] = datetime.now,
        log: logging.Logger | None = None,
    ):
        self.settings = settings
        self.processors = processors or PROCESSORS
        self.sleep_provider = sleep_provider
        self.clock = clock
        self.log = log or logging.getLogger(__name__)

    def context_for(
        self, items: Iterable[ScheduleItem], target_date: date, now: datetime | None = None
    ) -> ReshuffleContext:
        return create_context(
            items,
            target_date,
            now or self.clock(),
            settings=self.settings,
            sleep_provider=self.sleep_provider,
        )

    # -------------------------------------------------------------------------
    # analyze
    # -------------------------------------------------------------------------

    def analyze(
        self,
        items: Iterable[ScheduleItem],
        target_date: date,
        now: datetime | None = None,
    ) -> ReshuffleResult:
        now = now or self.clock()
        with AnalysisContext(target_date=target_date, now=now):
            context = self.context_for(items, target_date, now)
            self.log.info(
                "Analyzing %s: %d incomplete item(s), %d min needed, %d min available",
                target_date.isoformat(),
                len(context.incomplete_items),
                context.minutes_needed,
                context.minutes_available,
            )
            if not needs_reshuffle(context):
                self.log.info("Schedule on track for %s", target_date.isoformat())
                return ReshuffleResult.on_track(list(context.day_items))

            overflow = detect_overflow(context)
            evening = analyze_evening(context.day_items, overflow, self.settings)
            self.log.info(
                "Strategy %s, evening case %d",
                overflow.kind.value,
                evening.case_number,
            )

            changes = self._plan(context, overflow)
            if evening.requires_consent:
                changes = [self._guard_evening(change, evening, context) for change in changes]

            for change in changes:
                self.log.debug("%s: %s (%s)", change.item.id, change.kind.value, change.reason)

            return ReshuffleResult(
                changes=tuple(changes),
                summary=generate_summary(changes, evening),
                evening_protection_triggered=evening.requires_consent,
                evening_decision=evening,
                overflow=overflow,
            )

    def _plan(self, context: ReshuffleContext, overflow: OverflowAnalysis) -> list[Change]:
        """
        One change per item. Every placement is folded into ``claimed`` before
        the next item runs, so no two proposals share an interval.
        """
        changes: list[Change] = []
        claimed: tuple[TimeSlot, ...] = ()
        for item in context.items_by_priority:
            current = context.with_claims(claimed)
            if is_past_item(item, current):
                placement = fix_past_item(item, current, claimed)
                change, claims = placement.change, placement.claims
            else:
                change = process(item, current, overflow, self.processors)
                claims = placement_claims(change)
            claimed = claimed + claims
            changes.append(change)
        return changes

    def _guard_evening(
        self, change: Change, decision: EveningDecision, context: ReshuffleContext
    ) -> Change:
        """Relocations touching a protected evening need the user's say."""
        item = change.item
        if item.category in (TaskCategory.NON_NEGOTIABLE, TaskCategory.IDENTITY_HABIT):
            return change
        if change.kind not in _EVENING_GUARDED_KINDS:
            return change

        new_start = change.new_start
        lands_in_evening = (
            change.kind in (ActionKind.MOVED, ActionKind.MOVED_AND_RESIZED)
            and new_start is not None
            and self.settings.is_evening_hour(new_start)
        )
        if not (item.is_evening_task or item.id in decision.affected_item_ids or lands_in_evening):
            return change

        options = (
            UserOption("keep_evening", "Keep in evening", "Leave it where you scheduled it"),
            UserOption(
                "defer",
                "Defer to tomorrow",
                f"Move \"{item.title}\" to tomorrow's schedule",
                item.start_time + timedelta(days=1),
            ),
        )
        return Change(
            item,
            RequiresUserDecision(options),
            "This would affect your protected evening time",
        )

    # -------------------------------------------------------------------------
    # Other entry points
    # -------------------------------------------------------------------------

    def suggest_resolution(
        self,
        new_item: ScheduleItem,
        conflicting_items: Iterable[ScheduleItem],
        all_items: Iterable[ScheduleItem],
        now: datetime | None = None,
    ) -> list[ConflictResolution]:
        now = now or self.clock()
        with AnalysisContext(prefix=RESOLVE_PREFIX, target_date=new_item.scheduled_date, now=now):
            resolutions = suggest_resolution(
                new_item,
                conflicting_items,
                all_items,
                now,
                settings=self.settings,
                sleep_provider=self.sleep_provider,
            )
            self.log.info(
                "%d resolution(s) suggested for %s", len(resolutions), new_item.id
            )
            return resolutions

    def find_conflicts(
        self, new_item: ScheduleItem, existing: Iterable[ScheduleItem]
    ) -> list[ScheduleItem]:
        return find_conflicts(new_item, existing)

    def has_issues(
        self, items: Iterable[ScheduleItem], target_date: date, now: datetime | None = None
    ) -> bool:
        return needs_reshuffle(self.context_for(items, target_date, now))

    def status_message(
        self, items: Iterable[ScheduleItem], target_date: date, now: datetime | None = None
    ) -> str:
        context = self.context_for(items, target_date, now)
        if not needs_reshuffle(context):
            return CompassionateMessage.ON_TRACK
        return _STATUS_MESSAGES[detect_overflow(context).kind]


def analyze(
    items: Iterable[ScheduleItem],
    target_date: date,
    now: datetime,
    settings: ReshuffleSettings = DEFAULT_SETTINGS,
    processors: dict[TaskCategory, Processor] | None = None,
) -> ReshuffleResult:
    """Module-level shortcut for a one-off analysis."""
    return ReshuffleEngine(settings=settings, processors=processors).analyze(items, target_date, now)
