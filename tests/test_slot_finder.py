"""
Tests for the bounded slot search.
"""

from datetime import time, timedelta

from tempo.config import ReshuffleSettings
from tempo.reshuffle.slot_finder import (
    find_multiple_slots,
    find_next_available_slot,
    sequenced_fallback,
)
from tempo.schedule.sleep import SleepSchedule
from tempo.schedule.timeslots import TimeSlot
from tests.fixtures import DAY, TOMORROW, at, flexible, non_negotiable

NOW = at(8)


class TestFindNextAvailableSlot:
    """Single earliest start."""

    def test_empty_schedule(self):
        assert find_next_available_slot(at(9), 30, DAY, [], NOW) == at(9)

    def test_clamped_to_rounded_now(self):
        assert find_next_available_slot(at(7), 30, DAY, [], at(8, 5)) == at(8, 15)

    def test_clamped_to_morning_start(self):
        assert find_next_available_slot(at(5), 30, DAY, [], at(4)) == at(6)

    def test_jumps_to_latest_conflicting_end(self):
        items = [non_negotiable("a", at(9), 60), non_negotiable("b", at(9, 30), 90)]
        assert find_next_available_slot(at(9), 30, DAY, items, NOW) == at(11)

    def test_back_to_back_fits(self):
        items = [non_negotiable("a", at(9), 60)]
        assert find_next_available_slot(at(10), 30, DAY, items, NOW) == at(10)

    def test_excluded_and_completed_items_ignored(self):
        items = [
            non_negotiable("self", at(9), 60),
            non_negotiable("done", at(9), 60, is_completed=True),
        ]
        assert find_next_available_slot(at(9), 30, DAY, items, NOW, exclude_ids={"self"}) == at(9)

    def test_avoided_intervals_block(self):
        avoid = [TimeSlot(at(9), at(9, 45))]
        assert find_next_available_slot(at(9), 30, DAY, [], NOW, avoid=avoid) == at(9, 45)

    def test_sleep_window_jumps_to_wake(self):
        sleep = SleepSchedule(bedtime=time(22, 30), wake=time(7, 0))
        found = find_next_available_slot(at(5), 30, DAY, [], at(5), sleep_provider=sleep)
        assert found == at(7)

    def test_does_not_run_into_bedtime_buffer(self):
        sleep = SleepSchedule(bedtime=time(21, 30))  # buffer from 21:00
        items = [non_negotiable("day", at(6), 14 * 60 + 30)]  # until 20:30
        found = find_next_available_slot(
            at(20, 30), 60, DAY, items, at(6), sleep_provider=sleep
        )
        assert found == at(6, 30, day=TOMORROW)

    def test_rolls_to_next_morning(self):
        items = [non_negotiable("all-day", at(8), 14 * 60)]
        assert find_next_available_slot(at(8), 30, DAY, items, NOW) == at(6, day=TOMORROW)

    def test_zero_lookahead_gives_up(self):
        items = [non_negotiable("all-day", at(8), 14 * 60)]
        assert find_next_available_slot(at(8), 30, DAY, items, NOW, lookahead_days=0) is None

    def test_iteration_cap_terminates(self):
        settings = ReshuffleSettings(max_search_iterations=2)
        items = [flexible(f"f{i}", at(9) + timedelta(minutes=30 * i)) for i in range(6)]
        assert (
            find_next_available_slot(at(9), 30, DAY, items, NOW, settings=settings, lookahead_days=0)
            is None
        )

    def test_never_before_now(self):
        found = find_next_available_slot(at(6), 30, DAY, [], at(13, 20))
        assert found == at(13, 30)


class TestFindMultipleSlots:
    def test_ranked_candidates_do_not_overlap(self):
        items = [non_negotiable("a", at(9), 60)]
        assert find_multiple_slots(at(9), 30, DAY, items, NOW) == [at(10), at(10, 30), at(11)]

    def test_count_override(self):
        assert len(find_multiple_slots(at(9), 30, DAY, [], NOW, 5)) == 5

    def test_only_first_may_be_on_another_day(self):
        items = [non_negotiable("all-day", at(8), 14 * 60)]
        assert find_multiple_slots(at(8), 30, DAY, items, NOW) == [at(6, day=TOMORROW)]

    def test_stops_when_day_fills(self):
        items = [non_negotiable("morning", at(6), 15 * 60 + 30)]  # until 21:30
        assert find_multiple_slots(at(6), 30, DAY, items, NOW) == [at(21, 30)]


class TestSequencedFallback:
    def test_workday_start(self):
        assert sequenced_fallback(TOMORROW, 30, [], at(20)) == at(9, day=TOMORROW)

    def test_steps_past_claimed(self):
        claimed = [TimeSlot.of(at(9, day=TOMORROW), 30), TimeSlot.of(at(9, 30, day=TOMORROW), 45)]
        assert sequenced_fallback(TOMORROW, 30, claimed, at(20)) == at(10, 15, day=TOMORROW)

    def test_never_before_now(self):
        assert sequenced_fallback(DAY, 30, [], at(11, 5)) == at(11, 15)
