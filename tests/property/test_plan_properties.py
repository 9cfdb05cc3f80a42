"""
Property-based tests for the reshuffle core using Hypothesis.

Random days are pushed through the full pipeline; every plan must pass the
plan invariants, and the slot search must never hand out occupied or past
time.
"""

from datetime import datetime, time, timedelta

from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st

from tempo.config import DEFAULT_SETTINGS
from tempo.contracts.invariants import check_plan
from tempo.reshuffle.engine import analyze
from tempo.reshuffle.slot_finder import find_next_available_slot
from tempo.schedule.changes import ActionKind
from tempo.schedule.items import RecurrenceFrequency, ScheduleItem, TaskCategory
from tempo.schedule.timeslots import TimeSlot, ceil_to_granularity
from tests.fixtures import DAY

DURATIONS = [15, 20, 30, 45, 60, 90, 120]

# ============================================================================
# Strategies
# ============================================================================


@st.composite
def clock_times(draw, first_hour=6, last_hour=21):
    hour = draw(st.integers(first_hour, last_hour))
    minute = draw(st.sampled_from([0, 15, 30, 45]))
    return datetime.combine(DAY, time(hour, minute))


@st.composite
def schedule_items(draw, index):
    category = draw(st.sampled_from(list(TaskCategory)))
    duration = draw(st.sampled_from(DURATIONS))
    start = draw(clock_times())
    kwargs = {}
    if category is TaskCategory.IDENTITY_HABIT:
        floor = draw(st.one_of(st.none(), st.integers(5, duration)))
        frequency = draw(st.sampled_from([None, RecurrenceFrequency.DAILY, RecurrenceFrequency.WEEKLY]))
        kwargs.update(
            minimum_duration_minutes=floor,
            is_recurring=frequency is not None,
            frequency=frequency,
            recurrence_days=(0, 3) if frequency is RecurrenceFrequency.WEEKLY else (),
        )
    return ScheduleItem(
        id=f"item-{index}",
        title=f"Item {index}",
        category=category,
        start_time=start,
        duration_minutes=duration,
        is_completed=draw(st.booleans()) and draw(st.booleans()),
        is_evening_task=start.hour >= 18 or draw(st.booleans()) and draw(st.booleans()),
        is_gentle_task=draw(st.booleans()),
        **kwargs,
    )


@st.composite
def days(draw):
    count = draw(st.integers(0, 10))
    return [draw(schedule_items(i)) for i in range(count)]


# ============================================================================
# Plan invariants
# ============================================================================


@settings(max_examples=75, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(items=days(), now=clock_times(first_hour=5, last_hour=22))
def test_every_plan_passes_invariants(items, now):
    """Whatever the day looks like, the plan keeps every promise."""
    result = analyze(items, DAY, now)
    check_plan(result, items, DAY, now)


@settings(max_examples=30, deadline=None)
@given(items=days(), now=clock_times(first_hour=5, last_hour=22))
def test_analysis_is_deterministic(items, now):
    """Same inputs, same plan."""
    first = analyze(items, DAY, now)
    second = analyze(items, DAY, now)
    assert first.changes == second.changes
    assert first.summary == second.summary


@settings(max_examples=50, deadline=None)
@given(items=days(), now=clock_times(first_hour=5, last_hour=22))
def test_items_are_not_mutated(items, now):
    """The core proposes; it never writes."""
    before = [item.to_dict() for item in items]
    analyze(items, DAY, now)
    assert [item.to_dict() for item in items] == before


@settings(max_examples=75, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(items=days(), now=clock_times(first_hour=5, last_hour=22))
def test_same_day_placements_never_collide(items, now):
    """Two items are never proposed into the same interval today."""
    result = analyze(items, DAY, now)
    placed = [
        TimeSlot.of(change.new_start, change.new_duration_minutes or change.item.duration_minutes)
        for change in result.changes
        if change.kind in (ActionKind.MOVED, ActionKind.MOVED_AND_RESIZED)
        and change.new_start.date() == DAY
    ]
    for index, slot in enumerate(placed):
        assert not any(slot.overlaps(other) for other in placed[index + 1 :]), slot


# ============================================================================
# Slot search
# ============================================================================


@settings(max_examples=100, deadline=None)
@given(
    items=days(),
    now=clock_times(first_hour=5, last_hour=22),
    after=clock_times(),
    minutes=st.sampled_from(DURATIONS),
)
def test_found_slot_is_free_and_not_past(items, now, after, minutes):
    start = find_next_available_slot(after, minutes, DAY, items, now)
    assume(start is not None)
    end = start + timedelta(minutes=minutes)

    assert start >= ceil_to_granularity(now, DEFAULT_SETTINGS.granularity_minutes)
    assert start >= after
    assert start >= DEFAULT_SETTINGS.morning_start(start.date())
    assert end <= DEFAULT_SETTINGS.slot_limit(start.date())
    for item in items:
        if item.is_completed or item.end_time <= now:
            continue
        assert not item.overlaps_range(start, end), item.id
