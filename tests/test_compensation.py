"""
Tests for the compensation ledger.
"""

from datetime import date

import pytest

from tempo.config import ReshuffleSettings
from tempo.schedule.changes import Change, Deferred, Pooled, Protected
from tempo.schedule.compensation import (
    CompensationReason,
    CompensationStatus,
    CompensationTracker,
    format_minutes,
)
from tempo.schedule.timeslots import TimeSlot
from tests.fixtures import DAY, TOMORROW, at, flexible, habit, non_negotiable, optional

STAMP = at(12)


@pytest.fixture
def ledger_path(tmp_path):
    return tmp_path / "compensation.json"


@pytest.fixture
def tracker(ledger_path):
    return CompensationTracker(ledger_path, clock=lambda: STAMP)


class TestRecording:
    def test_optional_goal_debt(self, tracker):
        record = tracker.record_debt(optional("guitar", at(19), 45), 45)
        assert record.id.startswith("comp_")
        assert record.original_date == "2026-10-19"
        assert record.reason == "deferred"
        assert record.created_at == STAMP.isoformat()
        assert tracker.total_pending_minutes() == 45

    def test_other_categories_ignored(self, tracker):
        assert tracker.record_debt(habit("h", at(7)), 30) is None
        assert tracker.record_flexible_debt(flexible("f", at(9)), 30) is None
        assert tracker.record_debt(optional("o", at(9)), 0) is None
        assert tracker.pending() == []

    def test_flexible_tracking_opt_in(self, ledger_path):
        settings = ReshuffleSettings(track_flexible_compensation=True)
        tracker = CompensationTracker(ledger_path, settings=settings, clock=lambda: STAMP)
        record = tracker.record_flexible_debt(flexible("f", at(9)), 30, CompensationReason.COMPRESSED)
        assert record.reason == "compressed"

    def test_from_changes(self, tracker):
        changes = [
            Change(optional("guitar", at(19), 45), Deferred(at(19, day=TOMORROW)), "r"),
            Change(flexible("email", at(9)), Pooled(), "r"),
            Change(optional("sketch", at(20)), Protected(), "r"),
        ]
        recorded = tracker.record_from_changes(changes)
        assert [r.item_id for r in recorded] == ["guitar"]

    def test_persisted(self, tracker, ledger_path):
        record = tracker.record_debt(optional("guitar", at(19), 45), 45)
        reloaded = CompensationTracker(ledger_path)
        assert reloaded.get(record.id).lost_minutes == 45

    def test_unreadable_ledger_starts_empty(self, ledger_path):
        ledger_path.write_text("{not json")
        assert CompensationTracker(ledger_path).records == {}

    def test_default_location_is_app_home(self):
        tracker = CompensationTracker()
        assert tracker.path.name == "compensation.json"
        assert "tempo-home" in str(tracker.path)


class TestPayingBack:
    def test_partial_then_full(self, tracker):
        record = tracker.record_debt(optional("guitar", at(19), 90), 90)
        tracker.mark_compensated(record.id, 30)
        assert record.remaining_minutes == 60
        assert record.status == CompensationStatus.PENDING
        assert tracker.formatted_pending_time() == "1h"

        tracker.mark_compensated(record.id)
        assert record.status == CompensationStatus.COMPENSATED
        assert tracker.pending() == []
        assert tracker.total_compensated_minutes() == 90

    def test_dismiss(self, tracker):
        record = tracker.record_debt(optional("guitar", at(19)), 30)
        tracker.dismiss(record.id)
        assert tracker.total_pending_minutes() == 0

    def test_schedule_make_up_item(self, tracker):
        record = tracker.record_debt(optional("guitar", at(19), 45, title="Guitar"), 45)
        item = tracker.schedule_compensation(record.id, at(10, day=TOMORROW))
        assert item.id == "guitar-makeup-202610201000"
        assert item.title == "Make up: Guitar"
        assert item.duration_minutes == 45
        assert record.scheduled_item_id == item.id
        assert record.is_pending


class TestSlots:
    def test_weekends_first(self, tracker):
        record = tracker.record_debt(optional("guitar", at(19), 60), 60)
        slots = tracker.find_compensation_slots(record, [], DAY, limit=5)
        assert [s.start.date() for s in slots] == [
            date(2026, 10, 24),
            date(2026, 10, 25),
            date(2026, 10, 31),
            date(2026, 11, 1),
            DAY,
        ]
        assert slots[0] == TimeSlot.of(at(9, day=date(2026, 10, 24)), 60)

    def test_busy_days_are_passed_over(self, tracker):
        record = tracker.record_debt(optional("guitar", at(19), 60), 60)
        saturday = date(2026, 10, 24)
        items = [non_negotiable("market", at(9, day=saturday), 510)]
        slots = tracker.find_compensation_slots(record, items, DAY, limit=1)
        assert slots[0].start == at(9, day=date(2026, 10, 25))

    def test_paid_record_has_no_slots(self, tracker):
        record = tracker.record_debt(optional("guitar", at(19)), 30)
        tracker.mark_compensated(record.id)
        assert tracker.find_compensation_slots(record, [], DAY) == []


@pytest.mark.parametrize("minutes, text", [(45, "45m"), (90, "1h 30m"), (120, "2h"), (0, "0m")])
def test_format_minutes(minutes, text):
    assert format_minutes(minutes) == text
