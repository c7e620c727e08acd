"""
Injected clock capability.

The synthesizer and the reschedule engine never read the wall clock directly;
they receive a Clock so tests can pin "today" and "now".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from scheduling_engine.utils.time_utils import minutes_to_time

UTC = timezone.utc


def now_utc() -> datetime:
    """Current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


class Clock(ABC):
    """Source of the user's local date and time."""

    @abstractmethod
    def now(self) -> datetime:
        """Current local datetime."""
        pass

    def today(self) -> date:
        return self.now().date()

    def current_time(self) -> str:
        """Current local time as HH:MM."""
        current = self.now()
        return minutes_to_time(current.hour * 60 + current.minute)

    def current_minutes(self) -> int:
        current = self.now()
        return current.hour * 60 + current.minute

    def snapshot(self) -> tuple[date, str]:
        """(today, HH:MM) read once so both halves agree."""
        current = self.now()
        return current.date(), minutes_to_time(current.hour * 60 + current.minute)


class SystemClock(Clock):
    """Wall clock in the given IANA timezone."""

    def __init__(self, timezone_name: str = "UTC"):
        self._tz = ZoneInfo(timezone_name)

    def now(self) -> datetime:
        return now_utc().astimezone(self._tz)


class FixedClock(Clock):
    """Clock pinned to one instant."""

    def __init__(self, fixed: datetime):
        self._fixed = fixed

    def now(self) -> datetime:
        return self._fixed

    def advance_to(self, fixed: datetime) -> None:
        self._fixed = fixed
