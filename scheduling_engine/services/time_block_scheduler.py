"""
Time-block scheduler.

Places each task into one contiguous block inside the working window of a
single day. Lunch is carved out of the window, existing placements and busy
calendar slots are occupied, and tasks are never split across lunch or days.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

from scheduling_engine.core.exceptions import (
    CapacityExhaustedError,
    ConfigurationError,
    ValidationError,
)
from scheduling_engine.core.logger import setup_logger
from scheduling_engine.models.calendar import BusySlot
from scheduling_engine.models.enums import PlacementSource, PlacementStatus
from scheduling_engine.models.schedule import (
    DayWindow,
    SchedulePlacement,
    ScheduleResult,
    WorkdayPreferences,
)
from scheduling_engine.models.task import Task
from scheduling_engine.utils.time_utils import (
    END_OF_DAY,
    MINUTES_PER_DAY,
    START_OF_DAY,
    TimeInterval,
    clip_intervals,
    is_cross_day_task,
    is_weekend,
    iter_dates,
    minutes_to_time,
    parse_time_to_minutes,
    subtract_intervals,
)

logger = setup_logger(__name__)


@dataclass
class TimeBlock:
    """A block of time on a single calendar day."""

    date: date
    start_time: str
    end_time: str
    duration_minutes: int


@dataclass
class _ParsedWindow:
    start: int
    end: int
    lunch: Optional[TimeInterval]
    capacity: int

    def free_intervals(self) -> list[TimeInterval]:
        base = [TimeInterval(self.start, self.end)]
        if self.lunch is None:
            return base
        return subtract_intervals(base, [self.lunch])


def split_cross_day_entry(entry_date: date, start_time: str, end_time: str) -> tuple[TimeBlock, ...]:
    """Split a block that wraps past midnight into a head and a tail.

    The head runs from start to 23:59 on entry_date and counts the minutes up to
    midnight; the tail runs from 00:00 to end on the following day. A block that
    does not cross midnight is returned as-is.
    """
    start = parse_time_to_minutes(start_time)
    end = parse_time_to_minutes(end_time)
    if not is_cross_day_task(start, end):
        return (TimeBlock(entry_date, minutes_to_time(start), minutes_to_time(end), end - start),)

    blocks = [TimeBlock(entry_date, minutes_to_time(start), END_OF_DAY, MINUTES_PER_DAY - start)]
    if end > 0:
        blocks.append(TimeBlock(entry_date + timedelta(days=1), START_OF_DAY, minutes_to_time(end), end))
    return tuple(blocks)


def _parse_window(window: DayWindow, label: str) -> _ParsedWindow:
    start = parse_time_to_minutes(window.start)
    end = parse_time_to_minutes(window.end)
    if end <= start:
        raise ValidationError(
            f"{label} window end ({window.end}) must be after start ({window.start})",
            details={"start": window.start, "end": window.end},
        )

    lunch: Optional[TimeInterval] = None
    lunch_overlap = 0
    if window.lunch_start is not None and window.lunch_end is not None:
        lunch_start = parse_time_to_minutes(window.lunch_start)
        lunch_end = parse_time_to_minutes(window.lunch_end)
        if lunch_end <= lunch_start:
            raise ValidationError(
                f"{label} lunch end ({window.lunch_end}) must be after start ({window.lunch_start})",
                details={"lunch_start": window.lunch_start, "lunch_end": window.lunch_end},
            )
        lunch = TimeInterval(lunch_start, lunch_end)
        lunch_overlap = max(0, min(end, lunch_end) - max(start, lunch_start))
    elif (window.lunch_start is None) != (window.lunch_end is None):
        raise ValidationError(f"{label} lunch window needs both start and end")

    capacity = (end - start) - lunch_overlap
    if capacity <= 0:
        raise ConfigurationError(
            f"{label} window {window.start}-{window.end} has no capacity after lunch",
            details={"capacity_minutes": capacity},
        )
    return _ParsedWindow(start=start, end=end, lunch=lunch, capacity=capacity)


def _parse_windows(preferences: WorkdayPreferences) -> tuple[_ParsedWindow, _ParsedWindow]:
    weekday_window = _parse_window(preferences.weekday, "Weekday")
    weekend_window = weekday_window
    if preferences.allow_weekends and preferences.weekend is not None:
        weekend_window = _parse_window(preferences.weekend, "Weekend")
    return weekday_window, weekend_window


def validate_preferences(preferences: WorkdayPreferences) -> None:
    """
    Check that the working windows parse and leave capacity.

    Raises:
        ValidationError: Malformed or inverted times
        ConfigurationError: A window has no capacity after lunch
    """
    weekday_window = _parse_window(preferences.weekday, "Weekday")
    if preferences.weekend is not None:
        _parse_window(preferences.weekend, "Weekend")
    logger.debug(f"Workday preferences valid: weekday capacity {weekday_window.capacity} min")


def _occupied_interval(start_time: Optional[str], end_time: Optional[str]) -> TimeInterval:
    if start_time is None or end_time is None:
        return TimeInterval(0, MINUTES_PER_DAY)
    start = parse_time_to_minutes(start_time)
    end = parse_time_to_minutes(end_time)
    if end <= start:
        end = MINUTES_PER_DAY
    return TimeInterval(start, end)


class TimeBlockScheduler:
    """Deterministic placement of tasks into working-time blocks."""

    def schedule(
        self,
        tasks: Sequence[Task],
        start_date: date,
        end_date: date,
        preferences: WorkdayPreferences,
        existing: Iterable[SchedulePlacement] = (),
        busy_slots: Iterable[BusySlot] = (),
        current_time: Optional[datetime] = None,
    ) -> ScheduleResult:
        """
        Assign every task exactly one placement within [start_date, end_date].

        Raises:
            ValidationError: Invalid task duration, window or date range
            ConfigurationError: A working window has no capacity after lunch
            CapacityExhaustedError: Some task fits nowhere in the range
        """
        if end_date < start_date:
            raise ValidationError(
                f"end_date ({end_date}) must not be before start_date ({start_date})"
            )
        invalid = [str(task.id) for task in tasks if task.estimated_duration_minutes <= 0]
        if invalid:
            raise ValidationError(
                f"Task durations must be positive: {', '.join(invalid)}",
                details={"task_ids": invalid},
            )
        weekday_window, weekend_window = _parse_windows(preferences)

        placeable = [task for task in tasks if not task.is_indefinite_recurring]
        if len(placeable) != len(tasks):
            logger.debug(f"Skipping {len(tasks) - len(placeable)} indefinite recurring tasks")
        if not placeable:
            return ScheduleResult(start_date=start_date, end_date=end_date)

        free = self._build_free_intervals(
            start_date,
            end_date,
            preferences,
            weekday_window,
            weekend_window,
            existing,
            busy_slots,
            current_time,
        )

        if start_date == end_date and start_date in free:
            window = weekend_window if is_weekend(start_date) else weekday_window
            total = sum(task.estimated_duration_minutes for task in placeable)
            if total > window.capacity:
                days_needed = math.ceil(total / window.capacity)
                raise CapacityExhaustedError(
                    f"Cannot fit all tasks in a single day. Total duration: {total} min, "
                    f"available capacity: {window.capacity} min. "
                    f"The range needs at least {days_needed} days.",
                    task_ids=[str(task.id) for task in placeable],
                    days_needed=days_needed,
                )

        ordered = sorted(
            enumerate(placeable),
            key=lambda item: (item[1].priority, -item[1].complexity_score, item[0]),
        )

        placements: list[SchedulePlacement] = []
        unplaced: list[str] = []
        for _, task in ordered:
            duration = task.estimated_duration_minutes
            dates = self._candidate_dates(free, duration, preferences)
            slot = self._take_slot(free, dates, duration)
            if slot is None:
                unplaced.append(str(task.id))
                continue
            slot_date, slot_start = slot
            placements.append(
                SchedulePlacement(
                    user_id=task.user_id,
                    task_id=task.id,
                    plan_id=task.plan_id,
                    date=slot_date,
                    start_time=minutes_to_time(slot_start),
                    end_time=minutes_to_time(slot_start + duration),
                    duration_minutes=duration,
                    day_index=(slot_date - start_date).days,
                    status=PlacementStatus.SCHEDULED,
                    source=PlacementSource.SCHEDULER,
                )
            )

        if unplaced:
            logger.warning(
                f"Capacity exhausted for {len(unplaced)} of {len(placeable)} tasks "
                f"({start_date} - {end_date})"
            )
            raise CapacityExhaustedError(
                f"{len(unplaced)} task(s) could not be placed between {start_date} and {end_date}",
                task_ids=unplaced,
            )

        placements.sort(key=lambda p: (p.date, parse_time_to_minutes(p.start_time)))
        logger.info(
            f"Scheduled {len(placements)} tasks across "
            f"{len({p.date for p in placements})} days ({start_date} - {end_date})"
        )
        return ScheduleResult(start_date=start_date, end_date=end_date, placements=tuple(placements))

    def find_next_available_slot(
        self,
        duration_minutes: int,
        start_date: date,
        end_date: date,
        preferences: WorkdayPreferences,
        existing: Iterable[SchedulePlacement] = (),
        busy_slots: Iterable[BusySlot] = (),
        current_time: Optional[datetime] = None,
    ) -> Optional[TimeBlock]:
        """Earliest free block of the given length, honoring the weekend bias."""
        if duration_minutes <= 0:
            raise ValidationError(f"Duration must be positive: {duration_minutes}")
        weekday_window, weekend_window = _parse_windows(preferences)
        free = self._build_free_intervals(
            start_date,
            end_date,
            preferences,
            weekday_window,
            weekend_window,
            existing,
            busy_slots,
            current_time,
        )
        dates = self._candidate_dates(free, duration_minutes, preferences)
        slot = self._take_slot(free, dates, duration_minutes)
        if slot is None:
            return None
        slot_date, slot_start = slot
        return TimeBlock(
            slot_date,
            minutes_to_time(slot_start),
            minutes_to_time(slot_start + duration_minutes),
            duration_minutes,
        )

    @staticmethod
    def _build_free_intervals(
        start_date: date,
        end_date: date,
        preferences: WorkdayPreferences,
        weekday_window: _ParsedWindow,
        weekend_window: _ParsedWindow,
        existing: Iterable[SchedulePlacement],
        busy_slots: Iterable[BusySlot],
        current_time: Optional[datetime],
    ) -> dict[date, list[TimeInterval]]:
        occupied: dict[date, list[TimeInterval]] = {}
        for placement in existing:
            occupied.setdefault(placement.date, []).append(
                _occupied_interval(placement.start_time, placement.end_time)
            )
        for slot in busy_slots:
            if not slot.is_busy or slot.is_engine_owned:
                continue
            occupied.setdefault(slot.date, []).append(_occupied_interval(slot.start_time, slot.end_time))

        free: dict[date, list[TimeInterval]] = {}
        for current in iter_dates(start_date, end_date):
            weekend_day = is_weekend(current)
            if weekend_day and not preferences.allow_weekends:
                continue
            if current_time is not None and current < current_time.date():
                continue
            window = weekend_window if weekend_day else weekday_window
            intervals = subtract_intervals(window.free_intervals(), occupied.get(current, []))
            if current_time is not None and current == current_time.date():
                intervals = clip_intervals(intervals, current_time.hour * 60 + current_time.minute)
            free[current] = intervals
        return free

    @staticmethod
    def _candidate_dates(
        free: dict[date, list[TimeInterval]],
        duration_minutes: int,
        preferences: WorkdayPreferences,
    ) -> list[date]:
        """Dates to try, preferred day type first, each group chronological."""
        dates = sorted(free)
        if not preferences.allow_weekends or preferences.weekday_max_minutes is None:
            return dates
        prefers_weekend = duration_minutes > preferences.weekday_max_minutes
        if prefers_weekend and preferences.weekend_max_minutes is not None:
            if duration_minutes > preferences.weekend_max_minutes:
                return dates
        preferred = [d for d in dates if is_weekend(d) == prefers_weekend]
        others = [d for d in dates if is_weekend(d) != prefers_weekend]
        return preferred + others

    @staticmethod
    def _take_slot(
        free: dict[date, list[TimeInterval]],
        dates: list[date],
        duration_minutes: int,
    ) -> Optional[tuple[date, int]]:
        for candidate in dates:
            for interval in free[candidate]:
                if interval.end_minutes - interval.start_minutes >= duration_minutes:
                    start = interval.start_minutes
                    free[candidate] = subtract_intervals(
                        free[candidate], [TimeInterval(start, start + duration_minutes)]
                    )
                    return candidate, start
        return None
