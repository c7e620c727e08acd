"""
Local calendar-day and minute-precision time arithmetic.

All dates are local calendar days and are never shifted through UTC.
Times are "HH:MM" strings or minutes since midnight (0..1439). A seconds
component is accepted on input and truncated: minute precision is the contract.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Iterator, Optional, Union

from scheduling_engine.core.exceptions import InvalidTimeFormatError, ValidationError

MINUTES_PER_DAY = 24 * 60
END_OF_DAY = "23:59"
START_OF_DAY = "00:00"

_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

TimeValue = Union[str, int]


@dataclass
class TimeInterval:
    """Half-open interval [start_minutes, end_minutes) within one day."""

    start_minutes: int
    end_minutes: int
    id: Optional[str] = None

    def overlaps(self, start_minutes: int, end_minutes: int) -> bool:
        return self.start_minutes < end_minutes and self.end_minutes > start_minutes


def parse_local_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD string into a local calendar date.

    A trailing time part ("2025-06-10T08:00:00Z") is ignored so values read
    back from timestamp columns land on the same calendar day.

    Raises:
        ValidationError: If the string is not a valid calendar date
    """
    if not isinstance(value, str):
        raise ValidationError(f"Invalid date: {value!r}", details={"value": value})
    match = _DATE_RE.match(value.split("T", 1)[0].strip())
    if not match:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)", details={"value": value})
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value!r}", details={"value": value}) from exc


def format_local_date(value: date) -> str:
    """Format a calendar date as YYYY-MM-DD."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_time_to_minutes(value: TimeValue) -> int:
    """
    Convert an HH:MM string to minutes since midnight.

    Integers already in minutes are passed through after a range check.

    Raises:
        InvalidTimeFormatError: If malformed or outside 00:00..23:59
    """
    if isinstance(value, bool):
        raise InvalidTimeFormatError(value)
    if isinstance(value, int):
        if 0 <= value < MINUTES_PER_DAY:
            return value
        raise InvalidTimeFormatError(value)
    if not isinstance(value, str):
        raise InvalidTimeFormatError(value)
    match = _TIME_RE.match(value.strip())
    if not match:
        raise InvalidTimeFormatError(value)
    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3)) if match.group(3) else 0
    if hours > 23 or minutes > 59 or seconds > 59:
        raise InvalidTimeFormatError(value)
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight to HH:MM."""
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise ValidationError(f"Minutes out of range: {minutes}", details={"minutes": minutes})
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: TimeValue) -> str:
    """Canonical HH:MM form (drops seconds, pads hours)."""
    return minutes_to_time(parse_time_to_minutes(value))


def is_valid_time_format(value: str) -> bool:
    try:
        parse_time_to_minutes(value)
    except InvalidTimeFormatError:
        return False
    return True


def is_cross_day_task(start_time: TimeValue, end_time: TimeValue) -> bool:
    """True if the end wraps past midnight (end <= start)."""
    return parse_time_to_minutes(end_time) <= parse_time_to_minutes(start_time)


def calculate_duration(
    start_time: TimeValue,
    end_time: TimeValue,
    allow_cross_day: bool = True,
) -> int:
    """
    Wall-clock minutes between two times.

    Cross-day spans count as (1440 - start) + end. With allow_cross_day=False
    the plain difference is returned and may be zero or negative; the caller
    must reject it.
    """
    start = parse_time_to_minutes(start_time)
    end = parse_time_to_minutes(end_time)
    if allow_cross_day and end <= start:
        return (MINUTES_PER_DAY - start) + end
    return end - start


def check_time_overlap(
    existing: Iterable[TimeInterval],
    candidate_start: TimeValue,
    candidate_end: TimeValue,
    exclude_id: Optional[str] = None,
) -> bool:
    """True if any interval other than exclude_id intersects [start, end)."""
    start = parse_time_to_minutes(candidate_start)
    end = parse_time_to_minutes(candidate_end)
    for interval in existing:
        if exclude_id is not None and interval.id == exclude_id:
            continue
        if interval.overlaps(start, end):
            return True
    return False


def should_skip_past_task_instance(
    instance_date: date,
    end_time: TimeValue,
    today: date,
    now_time: TimeValue,
) -> bool:
    """True if the occurrence is dated before today or ended at or before now."""
    if instance_date < today:
        return True
    if instance_date == today:
        return parse_time_to_minutes(end_time) <= parse_time_to_minutes(now_time)
    return False


def day_of_week(value: date) -> int:
    """Day of week with 0 = Sunday .. 6 = Saturday."""
    return (value.weekday() + 1) % 7


def is_weekend(value: date) -> bool:
    return day_of_week(value) in (0, 6)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Inclusive date range."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def subtract_intervals(base: list[TimeInterval], remove: list[TimeInterval]) -> list[TimeInterval]:
    """Remove every block in `remove` from the intervals in `base`."""
    if not remove:
        return base
    intervals = base
    for block in remove:
        next_intervals: list[TimeInterval] = []
        for interval in intervals:
            if block.end_minutes <= interval.start_minutes or block.start_minutes >= interval.end_minutes:
                next_intervals.append(interval)
                continue
            if block.start_minutes > interval.start_minutes:
                next_intervals.append(
                    TimeInterval(interval.start_minutes, min(block.start_minutes, interval.end_minutes))
                )
            if block.end_minutes < interval.end_minutes:
                next_intervals.append(
                    TimeInterval(max(block.end_minutes, interval.start_minutes), interval.end_minutes)
                )
        intervals = next_intervals
    return [interval for interval in intervals if interval.end_minutes > interval.start_minutes]


def clip_intervals(intervals: list[TimeInterval], start_minutes: int) -> list[TimeInterval]:
    """Drop everything before start_minutes."""
    clipped: list[TimeInterval] = []
    for interval in intervals:
        if interval.end_minutes <= start_minutes:
            continue
        clipped.append(TimeInterval(max(interval.start_minutes, start_minutes), interval.end_minutes))
    return clipped
