"""
Time/slot utilities.

Half-open interval arithmetic over naive local datetimes: [start, end).
Back-to-back intervals do not overlap.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class TimeSlot:
    """A time slot in the schedule."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Slot ends before it starts: {self.start} > {self.end}")

    @classmethod
    def of(cls, start: datetime, minutes: int) -> "TimeSlot":
        return cls(start, start + timedelta(minutes=minutes))

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.start < other.end and other.start < self.end

    def overlaps_range(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def fits(self, minutes: int) -> bool:
        return self.duration_minutes >= minutes


def intervals_overlap(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    """Half-open overlap test for [s1, e1) and [s2, e2)."""
    return s1 < e2 and s2 < e1


def find_available_slots(
    occupied: Iterable[TimeSlot],
    window_start: datetime,
    window_end: datetime,
    min_minutes: int = 1,
) -> list[TimeSlot]:
    """
    Free intervals inside [window_start, window_end), earliest first.

    Occupied intervals may overlap each other or extend past the window;
    they are clipped and merged. Gaps shorter than ``min_minutes`` are dropped.
    """
    if window_end <= window_start:
        return []

    busy = sorted(
        (slot for slot in occupied if slot.overlaps_range(window_start, window_end)),
        key=lambda slot: slot.start,
    )

    free: list[TimeSlot] = []
    cursor = window_start
    for slot in busy:
        if slot.start > cursor:
            gap = TimeSlot(cursor, min(slot.start, window_end))
            if gap.duration_minutes >= min_minutes:
                free.append(gap)
        cursor = max(cursor, slot.end)
        if cursor >= window_end:
            break

    if cursor < window_end:
        tail = TimeSlot(cursor, window_end)
        if tail.duration_minutes >= min_minutes:
            free.append(tail)
    return free


def total_minutes(slots: Iterable[TimeSlot]) -> int:
    return sum(slot.duration_minutes for slot in slots)


def ceil_to_granularity(moment: datetime, granularity_minutes: int) -> datetime:
    """Round up to the next grid mark; already-aligned times are kept."""
    base = moment.replace(second=0, microsecond=0)
    if base < moment:
        base += timedelta(minutes=1)
    remainder = base.minute % granularity_minutes
    if remainder:
        base += timedelta(minutes=granularity_minutes - remainder)
    return base


def format_clock(moment: datetime) -> str:
    return moment.strftime("%H:%M")


def format_day(moment: datetime) -> str:
    return f"{moment:%a} {moment:%b} {moment.day}"
