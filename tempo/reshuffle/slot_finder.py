"""
Slot Finder - bounded search for free time.

find_next_available_slot() walks forward from a candidate time:

1. clamp to now (rounded up to the grid) and to the morning start hour
2. skip out of any sleep window to its wake time
3. on conflict, jump to the latest end among everything the candidate
   overlaps (one jump per iteration, never a one-minute nudge)
4. when the candidate no longer fits in the day, continue on the next day
   from its morning start

Iterations per day and days searched are both capped, so the search always
terminates. Exhaustion returns None and the caller picks its own fallback.
The result is never earlier than now.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from tempo.config import DEFAULT_SETTINGS, ReshuffleSettings
from tempo.schedule.items import ScheduleItem
from tempo.schedule.sleep import SleepWindowProvider, windows_touching
from tempo.schedule.timeslots import TimeSlot, ceil_to_granularity

logger = logging.getLogger(__name__)


def find_next_available_slot(
    after: datetime,
    duration_minutes: int,
    on_date: date,
    items: Iterable[ScheduleItem],
    now: datetime,
    *,
    exclude_ids: Iterable[str] = (),
    avoid: Iterable[TimeSlot] = (),
    sleep_provider: SleepWindowProvider | None = None,
    settings: ReshuffleSettings = DEFAULT_SETTINGS,
    lookahead_days: int | None = None,
    day_end_hour: int | None = None,
) -> datetime | None:
    """
    Earliest start at or after ``after`` on ``on_date`` (or a later day) where
    ``duration_minutes`` fit without touching an item, an avoided interval,
    or a sleep window.

    Args:
        lookahead_days: Days past ``on_date`` to search (0 = that day only).
            Defaults to the configured lookahead.
        day_end_hour: Hour placements must end by. Defaults to the configured
            slot max hour.
    """
    duration = timedelta(minutes=duration_minutes)
    excluded = set(exclude_ids)
    blockers = [
        item.slot
        for item in items
        if item.id not in excluded and not item.is_completed and item.end_time > now
    ]
    blockers.extend(avoid)
    earliest = ceil_to_granularity(now, settings.granularity_minutes)
    days = settings.lookahead_days if lookahead_days is None else lookahead_days
    end_hour = settings.slot_max_hour if day_end_hour is None else day_end_hour

    for day_offset in range(days + 1):
        day = on_date + timedelta(days=day_offset)
        day_limit = datetime.combine(day, datetime.min.time()) + timedelta(hours=end_hour)
        candidate = max(after, settings.morning_start(day), earliest)
        if candidate.date() > day:
            continue

        found = _search_day(
            candidate, duration, day, day_limit, blockers, earliest, sleep_provider, settings
        )
        if found is not None:
            return found

    logger.warning(
        "No %d-minute slot within %d day(s) of %s", duration_minutes, days, on_date.isoformat()
    )
    return None


def _search_day(
    candidate: datetime,
    duration: timedelta,
    day: date,
    day_limit: datetime,
    blockers: list[TimeSlot],
    earliest: datetime,
    sleep_provider: SleepWindowProvider | None,
    settings: ReshuffleSettings,
) -> datetime | None:
    windows = windows_touching(sleep_provider, day)
    for _ in range(settings.max_search_iterations):
        candidate = max(candidate, earliest)
        end = candidate + duration
        if candidate.date() != day or end > day_limit:
            return None

        sleeping = [w for w in windows if w.overlaps_range(candidate, end)]
        if sleeping:
            candidate = max(w.wake_time for w in sleeping)
            continue

        conflicts = [slot for slot in blockers if slot.overlaps_range(candidate, end)]
        if not conflicts:
            return candidate
        candidate = max(slot.end for slot in conflicts)

    logger.debug("Iteration cap reached on %s", day.isoformat())
    return None


def find_multiple_slots(
    after: datetime,
    duration_minutes: int,
    on_date: date,
    items: Iterable[ScheduleItem],
    now: datetime,
    count: int | None = None,
    *,
    exclude_ids: Iterable[str] = (),
    avoid: Iterable[TimeSlot] = (),
    sleep_provider: SleepWindowProvider | None = None,
    settings: ReshuffleSettings = DEFAULT_SETTINGS,
) -> list[datetime]:
    """
    Up to ``count`` ranked alternative starts.

    Each hit is added to the avoid list before the next search. Only the first
    result may land on another day; later ones must stay on ``on_date`` or the
    list stops.
    """
    items = list(items)
    wanted = settings.candidate_count if count is None else count
    avoided = list(avoid)
    results: list[datetime] = []
    cursor = after
    while len(results) < wanted:
        start = find_next_available_slot(
            cursor,
            duration_minutes,
            on_date,
            items,
            now,
            exclude_ids=exclude_ids,
            avoid=avoided,
            sleep_provider=sleep_provider,
            settings=settings,
            lookahead_days=None if not results else 0,
        )
        if start is None:
            break
        if results and start.date() != on_date:
            break
        results.append(start)
        avoided.append(TimeSlot.of(start, duration_minutes))
        if start.date() != on_date:
            break
        cursor = start
    return results


def sequenced_fallback(
    day: date,
    duration_minutes: int,
    claimed: Iterable[TimeSlot],
    now: datetime,
    settings: ReshuffleSettings = DEFAULT_SETTINGS,
) -> datetime:
    """
    Deterministic placement used when the search comes up empty: the workday
    start on ``day`` (never before now), stepped past already-claimed slots.
    """
    claimed = sorted(claimed, key=lambda slot: slot.start)
    start = max(settings.workday_start(day), ceil_to_granularity(now, settings.granularity_minutes))
    for _ in range(len(claimed) + 1):
        end = start + timedelta(minutes=duration_minutes)
        overlapping = [slot for slot in claimed if slot.overlaps_range(start, end)]
        if not overlapping:
            break
        start = max(slot.end for slot in overlapping)
    return start
