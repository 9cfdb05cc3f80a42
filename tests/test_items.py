"""
Tests for ScheduleItem and TaskCategory.
"""

from datetime import date, datetime, timedelta

import pytest

from tempo.schedule.items import (
    RecurrenceFrequency,
    ScheduleItem,
    TaskCategory,
    sort_by_priority,
)
from tests.fixtures import DAY, at, flexible, habit, make_item, non_negotiable, optional


class TestTaskCategory:
    """Category ranks and permissions."""

    def test_priority_order(self):
        ranks = [c.priority for c in TaskCategory]
        assert ranks == [0, 1, 2, 3]

    def test_non_negotiable_never_moves(self):
        assert not TaskCategory.NON_NEGOTIABLE.can_move
        assert not TaskCategory.NON_NEGOTIABLE.can_defer

    def test_identity_habit_compresses_but_never_defers(self):
        assert TaskCategory.IDENTITY_HABIT.can_compress
        assert TaskCategory.IDENTITY_HABIT.can_move
        assert not TaskCategory.IDENTITY_HABIT.can_defer

    def test_flexible_and_optional_defer(self):
        assert TaskCategory.FLEXIBLE_TASK.can_defer
        assert TaskCategory.OPTIONAL_GOAL.can_defer
        assert not TaskCategory.OPTIONAL_GOAL.can_compress

    def test_display_name(self):
        assert TaskCategory.IDENTITY_HABIT.display_name == "Identity Habit"


class TestValidation:
    """Invalid items are rejected at construction."""

    def test_zero_duration_rejected(self):
        with pytest.raises(ValueError):
            make_item("a", TaskCategory.FLEXIBLE_TASK, at(9), duration=0)

    def test_minimum_above_duration_rejected(self):
        with pytest.raises(ValueError):
            habit("h", at(9), duration=20, minimum=30)

    def test_zero_minimum_rejected(self):
        with pytest.raises(ValueError):
            habit("h", at(9), duration=20, minimum=0)

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError):
            make_item("a", "someday", at(9))

    def test_category_string_coerced(self):
        item = make_item("a", "optional_goal", at(9))
        assert item.category is TaskCategory.OPTIONAL_GOAL


class TestDerived:
    def test_end_time(self):
        assert flexible("f", at(9), 45).end_time == at(9, 45)

    def test_scheduled_date_defaults_to_start(self):
        assert flexible("f", at(9)).scheduled_date == DAY

    def test_scheduled_date_can_differ(self):
        item = flexible("f", at(9), scheduled_date=DAY + timedelta(days=1))
        assert item.scheduled_date == date(2026, 10, 20)

    def test_compressible(self):
        h = habit("h", at(9), duration=30, minimum=10)
        assert h.is_compressible
        assert h.compressible_minutes == 20

    def test_minimum_equal_to_duration_is_not_compressible(self):
        h = habit("h", at(9), duration=30, minimum=30)
        assert not h.is_compressible
        assert h.compressible_minutes == 0

    def test_no_minimum_is_not_compressible(self):
        assert not habit("h", at(9)).is_compressible

    def test_overlap_is_half_open(self):
        a = flexible("a", at(9), 60)
        assert a.overlaps(flexible("b", at(9, 30)))
        assert not a.overlaps(flexible("c", at(10)))


class TestIdentity:
    """Items are entities: equality and hashing go by id."""

    def test_same_id_equal(self):
        a = flexible("same", at(9))
        b = flexible("same", at(14), 90)
        assert a == b
        assert len({a, b}) == 1

    def test_different_ids_differ(self):
        assert flexible("a", at(9)) != flexible("b", at(9))


class TestRecurrence:
    def test_daily_recurs_every_day(self):
        h = habit("h", at(7), frequency=RecurrenceFrequency.DAILY)
        assert h.is_daily_habit
        assert h.recurs_on(DAY + timedelta(days=3))

    def test_weekly_recurs_on_selected_weekdays(self):
        h = habit("h", at(7), frequency=RecurrenceFrequency.WEEKLY, days=(0, 2))
        assert h.is_weekly_habit
        assert h.recurs_on(date(2026, 10, 21))  # Wednesday
        assert not h.recurs_on(date(2026, 10, 20))  # Tuesday

    def test_end_date_stops_recurrence(self):
        h = habit(
            "h",
            at(7),
            frequency=RecurrenceFrequency.DAILY,
            recurrence_end_date=DAY + timedelta(days=1),
        )
        assert h.recurs_on(DAY + timedelta(days=1))
        assert not h.recurs_on(DAY + timedelta(days=2))

    def test_one_off_never_recurs(self):
        assert not flexible("f", at(9)).recurs_on(DAY)


class TestFromDict:
    """Mappings as they come out of a YAML schedule file."""

    def test_iso_strings(self):
        item = ScheduleItem.from_dict(
            {
                "id": "run",
                "title": "Morning run",
                "category": "identity_habit",
                "start_time": "2026-10-19T07:00:00",
                "duration_minutes": 40,
                "minimum_duration_minutes": 15,
                "is_recurring": True,
                "frequency": "weekly",
                "recurrence_days": [0, 3],
            }
        )
        assert item.start_time == at(7)
        assert item.frequency is RecurrenceFrequency.WEEKLY
        assert item.recurrence_days == (0, 3)
        assert item.minimum_duration_minutes == 15

    def test_yaml_native_datetimes(self):
        item = ScheduleItem.from_dict(
            {
                "id": 7,
                "title": "Standup",
                "category": "non_negotiable",
                "start_time": datetime(2026, 10, 19, 9, 0),
                "scheduled_date": date(2026, 10, 19),
            }
        )
        assert item.id == "7"
        assert item.duration_minutes == 30
        assert item.scheduled_date == DAY

    def test_to_dict_uses_plain_values(self):
        data = optional("o", at(16)).to_dict()
        assert data["category"] == "optional_goal"
        assert data["start_time"] == "2026-10-19T16:00:00"
        assert data["frequency"] is None


def test_sort_by_priority_is_stable():
    items = [
        optional("o1", at(8)),
        flexible("f1", at(9)),
        non_negotiable("n1", at(10)),
        optional("o2", at(7)),
        habit("h1", at(11)),
    ]
    assert [i.id for i in sort_by_priority(items)] == ["n1", "h1", "f1", "o1", "o2"]
