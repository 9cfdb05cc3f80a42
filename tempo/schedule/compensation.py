"""
Compensation tracking.

When an optional goal (and, if enabled, a flexible task) is deferred or cut
short, the lost minutes are recorded as a debt. Debts are suggested back
into free time over the next two weeks, weekends first, and persist as JSON
in the data directory.
"""

import json
import logging
import uuid
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum
from pathlib import Path

from tempo import paths
from tempo.config import DEFAULT_SETTINGS, ReshuffleSettings

from .changes import ActionKind, Change
from .items import ScheduleItem, TaskCategory
from .timeslots import TimeSlot, find_available_slots

logger = logging.getLogger(__name__)


class CompensationReason(StrEnum):
    COMPRESSED = "compressed"
    DEFERRED = "deferred"
    CANCELLED = "cancelled"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class CompensationStatus(StrEnum):
    PENDING = "pending"
    COMPENSATED = "compensated"
    DISMISSED = "dismissed"


@dataclass
class CompensationRecord:
    """Minutes owed to one deferred or shortened item."""

    id: str
    item_id: str
    item_title: str
    category: str
    original_date: str  # ISO date
    lost_minutes: int
    reason: str = CompensationReason.DEFERRED.value
    compensated_minutes: int = 0
    status: str = CompensationStatus.PENDING.value
    scheduled_item_id: str = None
    created_at: str = None
    updated_at: str = None

    @property
    def remaining_minutes(self) -> int:
        return max(0, self.lost_minutes - self.compensated_minutes)

    @property
    def is_pending(self) -> bool:
        return self.status == CompensationStatus.PENDING.value

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CompensationRecord":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def format_minutes(minutes: int) -> str:
    """45 -> "45m", 90 -> "1h 30m", 120 -> "2h"."""
    hours, rest = divmod(minutes, 60)
    if hours and rest:
        return f"{hours}h {rest}m"
    if hours:
        return f"{hours}h"
    return f"{rest}m"


class CompensationTracker:
    """
    Ledger of compensation debts.

    Records are loaded from ``path`` on construction and written back after
    every mutation.
    """

    def __init__(
        self,
        path: Path | None = None,
        settings: ReshuffleSettings = DEFAULT_SETTINGS,
        clock=datetime.now,
    ):
        self.path = path or paths.compensation_path()
        self.settings = settings
        self._clock = clock
        self.records: dict[str, CompensationRecord] = self._load()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _load(self) -> dict[str, CompensationRecord]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
            return {rid: CompensationRecord.from_dict(r) for rid, r in data.items()}
        except (json.JSONDecodeError, TypeError):
            logger.warning("Unreadable compensation ledger at %s, starting empty", self.path)
            return {}

    def _save(self) -> None:
        data = {rid: r.to_dict() for rid, r in self.records.items()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2))

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def tracks(self, item: ScheduleItem) -> bool:
        if item.category is TaskCategory.OPTIONAL_GOAL:
            return True
        return (
            item.category is TaskCategory.FLEXIBLE_TASK
            and self.settings.track_flexible_compensation
        )

    def record_debt(
        self,
        item: ScheduleItem,
        lost_minutes: int,
        reason: CompensationReason = CompensationReason.DEFERRED,
    ) -> CompensationRecord | None:
        """Record lost time for an optional goal. Other categories are ignored."""
        if item.category is not TaskCategory.OPTIONAL_GOAL:
            return None
        return self._record(item, lost_minutes, reason)

    def record_flexible_debt(
        self,
        item: ScheduleItem,
        lost_minutes: int,
        reason: CompensationReason = CompensationReason.DEFERRED,
    ) -> CompensationRecord | None:
        if item.category is not TaskCategory.FLEXIBLE_TASK:
            return None
        if not self.settings.track_flexible_compensation:
            return None
        return self._record(item, lost_minutes, reason)

    def _record(
        self, item: ScheduleItem, lost_minutes: int, reason: CompensationReason
    ) -> CompensationRecord | None:
        if lost_minutes <= 0:
            return None
        now = self._clock().isoformat()
        record = CompensationRecord(
            id=f"comp_{uuid.uuid4().hex[:12]}",
            item_id=item.id,
            item_title=item.title,
            category=item.category.value,
            original_date=item.scheduled_date.isoformat(),
            lost_minutes=lost_minutes,
            reason=CompensationReason(reason).value,
            created_at=now,
            updated_at=now,
        )
        self.records[record.id] = record
        self._save()
        logger.info(
            "Recorded %d min of compensation for %s (%s)", lost_minutes, item.id, record.reason
        )
        return record

    def record_from_changes(self, changes: Iterable[Change]) -> list[CompensationRecord]:
        """Record debts for every tracked item a plan defers or pools."""
        recorded = []
        for change in changes:
            if change.kind not in (ActionKind.DEFERRED, ActionKind.POOLED):
                continue
            if not self.tracks(change.item):
                continue
            record = self._record(
                change.item, change.item.duration_minutes, CompensationReason.DEFERRED
            )
            if record is not None:
                recorded.append(record)
        return recorded

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def pending(self) -> list[CompensationRecord]:
        return sorted(
            (r for r in self.records.values() if r.is_pending),
            key=lambda r: (r.original_date, r.created_at or ""),
        )

    def total_pending_minutes(self) -> int:
        return sum(r.remaining_minutes for r in self.pending())

    def total_compensated_minutes(self) -> int:
        return sum(r.compensated_minutes for r in self.records.values())

    def formatted_pending_time(self) -> str:
        return format_minutes(self.total_pending_minutes())

    def get(self, record_id: str) -> CompensationRecord | None:
        return self.records.get(record_id)

    # -------------------------------------------------------------------------
    # Slot suggestions
    # -------------------------------------------------------------------------

    def find_compensation_slots(
        self,
        record: CompensationRecord,
        items: Iterable[ScheduleItem],
        start_date: date,
        limit: int | None = None,
    ) -> list[TimeSlot]:
        """
        Free workday slots long enough for the remaining minutes.

        Searches the configured horizon from ``start_date`` on; weekend slots
        come before weekday slots, earliest first within each group.
        """
        minutes = record.remaining_minutes
        if minutes <= 0:
            return []
        limit = limit or self.settings.compensation_max_suggestions
        items = [item for item in items if not item.is_completed]

        weekend: list[TimeSlot] = []
        weekday: list[TimeSlot] = []
        for offset in range(self.settings.compensation_search_days):
            day = start_date + timedelta(days=offset)
            occupied = [item.slot for item in items if item.scheduled_date == day]
            for gap in find_available_slots(
                occupied,
                self.settings.workday_start(day),
                self.settings.evening_start(day),
                min_minutes=minutes,
            ):
                slot = TimeSlot.of(gap.start, minutes)
                (weekend if day.weekday() >= 5 else weekday).append(slot)
        return (weekend + weekday)[:limit]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def schedule_compensation(
        self, record_id: str, start: datetime, minutes: int | None = None
    ) -> ScheduleItem:
        """Create the make-up item for a record. The record stays pending until compensated."""
        record = self.records[record_id]
        duration = minutes or record.remaining_minutes
        item = ScheduleItem(
            id=f"{record.item_id}-makeup-{start.strftime('%Y%m%d%H%M')}",
            title=f"Make up: {record.item_title}",
            category=TaskCategory.OPTIONAL_GOAL,
            start_time=start,
            duration_minutes=duration,
            notes=f"Makes up time from {record.original_date}",
        )
        record.scheduled_item_id = item.id
        record.updated_at = self._clock().isoformat()
        self._save()
        return item

    def mark_compensated(self, record_id: str, minutes: int | None = None) -> CompensationRecord:
        """Credit ``minutes`` (all remaining by default). Fully paid records close."""
        record = self.records[record_id]
        credit = record.remaining_minutes if minutes is None else min(minutes, record.remaining_minutes)
        record.compensated_minutes += credit
        if record.remaining_minutes == 0:
            record.status = CompensationStatus.COMPENSATED.value
        record.updated_at = self._clock().isoformat()
        self._save()
        return record

    def dismiss(self, record_id: str) -> CompensationRecord:
        record = self.records[record_id]
        record.status = CompensationStatus.DISMISSED.value
        record.updated_at = self._clock().isoformat()
        self._save()
        return record
