"""
Sleep windows.

The slot finder treats a resolved sleep window as one more obstacle. Where the
window comes from (a fixed schedule, health data, nothing at all) is the
provider's business; a provider that knows nothing returns None and the
search proceeds unconstrained.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Protocol

logger = logging.getLogger(__name__)

_DEFAULT_BEDTIME = time(22, 30)
_DEFAULT_WAKE = time(6, 30)
_DEFAULT_BUFFER_MINUTES = 30


@dataclass(frozen=True)
class SleepWindow:
    """Blocked range for one night: wind-down buffer, bedtime, wake time."""

    buffer_start: datetime
    bedtime: datetime
    wake_time: datetime

    def contains(self, moment: datetime) -> bool:
        return self.buffer_start <= moment < self.wake_time

    def overlaps_range(self, start: datetime, end: datetime) -> bool:
        return start < self.wake_time and self.buffer_start < end


class SleepWindowProvider(Protocol):
    def blocked_range(self, day: date) -> SleepWindow | None: ...


@dataclass(frozen=True)
class SleepSchedule:
    """A fixed nightly schedule."""

    bedtime: time = _DEFAULT_BEDTIME
    wake: time = _DEFAULT_WAKE
    buffer_minutes: int = _DEFAULT_BUFFER_MINUTES
    enabled: bool = True

    def blocked_range(self, day: date) -> SleepWindow | None:
        """Window for the night that starts on ``day``."""
        if not self.enabled:
            return None
        bedtime = datetime.combine(day, self.bedtime)
        wake_time = datetime.combine(day, self.wake)
        if wake_time <= bedtime:
            wake_time += timedelta(days=1)
        return SleepWindow(
            buffer_start=bedtime - timedelta(minutes=self.buffer_minutes),
            bedtime=bedtime,
            wake_time=wake_time,
        )

    @property
    def sleep_minutes(self) -> int:
        bed = self.bedtime.hour * 60 + self.bedtime.minute
        wake = self.wake.hour * 60 + self.wake.minute
        return (wake - bed) % (24 * 60) or 24 * 60

    @classmethod
    def from_dict(cls, data: dict) -> "SleepSchedule":
        return cls(
            bedtime=_parse_clock(data.get("bedtime"), _DEFAULT_BEDTIME),
            wake=_parse_clock(data.get("wake"), _DEFAULT_WAKE),
            buffer_minutes=int(data.get("buffer_minutes", _DEFAULT_BUFFER_MINUTES)),
            enabled=bool(data.get("enabled", True)),
        )


def _parse_clock(value, default: time) -> time:
    if value is None:
        return default
    if isinstance(value, time):
        return value
    if isinstance(value, int):
        # YAML reads unquoted 22:30 as sexagesimal minutes
        return time(value // 60, value % 60)
    return datetime.strptime(str(value), "%H:%M").time()


class NoSleepProvider:
    """Provider used when no sleep schedule is known."""

    def blocked_range(self, day: date) -> SleepWindow | None:
        return None


def windows_touching(provider: SleepWindowProvider | None, day: date) -> list[SleepWindow]:
    """The previous night's window (it may run into ``day``) and ``day``'s own."""
    if provider is None:
        return []
    windows = []
    for night in (day - timedelta(days=1), day):
        window = provider.blocked_range(night)
        if window is not None:
            windows.append(window)
    return windows


def is_time_during_sleep(provider: SleepWindowProvider | None, moment: datetime) -> bool:
    return any(w.contains(moment) for w in windows_touching(provider, moment.date()))


def does_range_overlap_sleep(
    provider: SleepWindowProvider | None, start: datetime, end: datetime
) -> bool:
    days = {start.date(), (end - timedelta(microseconds=1)).date()}
    return any(
        w.overlaps_range(start, end) for day in sorted(days) for w in windows_touching(provider, day)
    )


def next_time_after_sleep(provider: SleepWindowProvider | None, moment: datetime) -> datetime:
    """``moment`` itself if it is awake time, otherwise the wake time that ends the window."""
    for window in windows_touching(provider, moment.date()):
        if window.contains(moment):
            logger.debug("Jumping past sleep window %s -> %s", window.buffer_start, window.wake_time)
            return window.wake_time
    return moment
