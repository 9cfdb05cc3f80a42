"""
In-memory schedule repository.

The persistence collaborator for the reshuffle core: fetch predicates,
CRUD, recurrence expansion, and apply_changes(), which maps every Change
action onto exactly one field mutation (or none). YAML snapshots let the
CLI load and save a schedule.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from pathlib import Path

import yaml

from .changes import (
    Change,
    Deferred,
    Moved,
    MovedAndResized,
    Pooled,
    Protected,
    RequiresUserDecision,
    Resized,
)
from .items import ScheduleItem

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base error for schedule persistence."""


class ItemNotFoundError(RepositoryError):
    def __init__(self, item_id: str):
        super().__init__(f"Schedule item not found: {item_id}")
        self.item_id = item_id


class DuplicateItemError(RepositoryError):
    def __init__(self, item_id: str):
        super().__init__(f"Schedule item already exists: {item_id}")
        self.item_id = item_id


class InMemoryScheduleRepository:
    """Items keyed by id, insertion order preserved."""

    def __init__(self, items: Iterable[ScheduleItem] = (), clock=datetime.now):
        self._items: dict[str, ScheduleItem] = {}
        self._clock = clock
        for item in items:
            self.create(item)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._items

    # -------------------------------------------------------------------------
    # Fetch
    # -------------------------------------------------------------------------

    def all_items(self) -> list[ScheduleItem]:
        return list(self._items.values())

    def get(self, item_id: str) -> ScheduleItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise ItemNotFoundError(item_id) from None

    def items_for_date(self, day: date) -> list[ScheduleItem]:
        return sorted(
            (item for item in self._items.values() if item.scheduled_date == day),
            key=lambda item: item.start_time,
        )

    def items_for_range(self, start: date, end: date) -> list[ScheduleItem]:
        """Items whose day falls in [start, end]."""
        return sorted(
            (item for item in self._items.values() if start <= item.scheduled_date <= end),
            key=lambda item: item.start_time,
        )

    def incomplete_items(self, day: date) -> list[ScheduleItem]:
        return [item for item in self.items_for_date(day) if not item.is_completed]

    def evening_items(self, day: date) -> list[ScheduleItem]:
        return [item for item in self.items_for_date(day) if item.is_evening_task]

    def instances_of(self, template_id: str) -> list[ScheduleItem]:
        return [item for item in self._items.values() if item.parent_template_id == template_id]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create(self, item: ScheduleItem) -> ScheduleItem:
        if item.id in self._items:
            raise DuplicateItemError(item.id)
        self._items[item.id] = item
        return item

    def update(self, item: ScheduleItem) -> ScheduleItem:
        if item.id not in self._items:
            raise ItemNotFoundError(item.id)
        item.updated_at = self._clock()
        self._items[item.id] = item
        return item

    def delete(self, item_id: str) -> None:
        if item_id not in self._items:
            raise ItemNotFoundError(item_id)
        del self._items[item_id]

    def mark_completed(self, item_id: str) -> ScheduleItem:
        item = self.get(item_id)
        item.is_completed = True
        return self.update(item)

    def mark_incomplete(self, item_id: str) -> ScheduleItem:
        item = self.get(item_id)
        item.is_completed = False
        return self.update(item)

    def apply_change(self, change: Change) -> bool:
        """
        Apply one change. Returns True when the item was modified.

        RequiresUserDecision is never applied; the user answers it first.
        """
        item = self._items.get(change.item.id)
        if item is None:
            logger.warning("Skipping change for missing item %s", change.item.id)
            return False

        action = change.action
        if isinstance(action, (Protected, RequiresUserDecision)):
            return False
        if isinstance(action, Resized):
            item.duration_minutes = action.new_duration_minutes
        elif isinstance(action, Moved):
            item.start_time = action.new_start
        elif isinstance(action, MovedAndResized):
            item.start_time = action.new_start
            item.duration_minutes = action.new_duration_minutes
        elif isinstance(action, Deferred):
            item.start_time = action.new_start
            item.scheduled_date = action.new_date
        elif isinstance(action, Pooled):
            item.is_pooled = True
        self.update(item)
        return True

    def apply_changes(self, changes: Iterable[Change]) -> int:
        """
        Apply every automatic change in one pass. Returns how many items changed.

        Ids deleted since the plan was made are logged and passed over.
        """
        changes = list(changes)
        applied = sum(1 for change in changes if self.apply_change(change))
        logger.info("Applied %d of %d change(s)", applied, len(changes))
        return applied

    # -------------------------------------------------------------------------
    # Recurrence
    # -------------------------------------------------------------------------

    def expand_recurrence(
        self, template: ScheduleItem, start: date, end: date
    ) -> list[ScheduleItem]:
        """
        Create one instance per day the template recurs on in [start, end].

        Days that already hold an instance of the template are left alone.
        """
        existing = {item.scheduled_date for item in self.instances_of(template.id)}
        created = []
        day = start
        while day <= end:
            if template.recurs_on(day) and day not in existing and day != template.scheduled_date:
                instance = ScheduleItem(
                    id=f"{template.id}@{day.isoformat()}",
                    title=template.title,
                    category=template.category,
                    start_time=datetime.combine(day, template.start_time.time()),
                    duration_minutes=template.duration_minutes,
                    minimum_duration_minutes=template.minimum_duration_minutes,
                    is_evening_task=template.is_evening_task,
                    is_gentle_task=template.is_gentle_task,
                    notes=template.notes,
                    is_recurring=True,
                    frequency=template.frequency,
                    recurrence_days=template.recurrence_days,
                    recurrence_end_date=template.recurrence_end_date,
                    parent_template_id=template.id,
                )
                created.append(self.create(instance))
            day += timedelta(days=1)
        logger.debug("Expanded %s into %d instance(s)", template.id, len(created))
        return created

    # -------------------------------------------------------------------------
    # YAML snapshots
    # -------------------------------------------------------------------------

    @classmethod
    def load_yaml(cls, path: Path) -> "InMemoryScheduleRepository":
        """Load a schedule file: a list of items, or a mapping with an ``items`` list."""
        with open(path) as f:
            data = yaml.safe_load(f) or []
        if isinstance(data, dict):
            data = data.get("items") or []
        if not isinstance(data, list):
            raise RepositoryError(f"Schedule file {path} must hold a list of items")
        try:
            return cls(ScheduleItem.from_dict(entry) for entry in data)
        except (KeyError, TypeError, ValueError) as exc:
            raise RepositoryError(f"Invalid schedule entry in {path}: {exc}") from exc

    def dump_yaml(self, path: Path) -> None:
        payload = {"items": [item.to_dict() for item in self._items.values()]}
        with open(path, "w") as f:
            yaml.safe_dump(payload, f, sort_keys=False)
