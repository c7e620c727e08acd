"""
Tests for the time-block scheduler.
"""

from datetime import date, datetime
from itertools import combinations

import pytest

from scheduling_engine.core.exceptions import (
    CapacityExhaustedError,
    ConfigurationError,
    ValidationError,
)
from scheduling_engine.models.calendar import BusySlot
from scheduling_engine.models.schedule import DayWindow, SchedulePlacement, WorkdayPreferences
from scheduling_engine.models.task import RecurrenceRule, Task
from scheduling_engine.services.time_block_scheduler import (
    TimeBlockScheduler,
    split_cross_day_entry,
    validate_preferences,
)
from scheduling_engine.utils.time_utils import is_weekend, parse_time_to_minutes

WEDNESDAY = date(2025, 6, 11)
THURSDAY = date(2025, 6, 12)
FRIDAY = date(2025, 6, 13)
SATURDAY = date(2025, 6, 14)
MONDAY = date(2025, 6, 16)


def _task(name: str, minutes: int, priority: int = 3, complexity: int = 0) -> Task:
    return Task(
        user_id="test_user",
        name=name,
        estimated_duration_minutes=minutes,
        priority=priority,
        complexity_score=complexity,
    )


def _busy(slot_date: date, start, end, **kwargs) -> BusySlot:
    return BusySlot(
        id=f"primary:evt:{slot_date}",
        user_id="test_user",
        date=slot_date,
        start_time=start,
        end_time=end,
        **kwargs,
    )


def _times(result):
    return [(p.date, p.start_time, p.end_time) for p in result.placements]


@pytest.fixture
def scheduler():
    return TimeBlockScheduler()


@pytest.fixture
def preferences():
    return WorkdayPreferences()


class TestPlacement:
    def test_packs_from_window_start_and_respects_lunch(self, scheduler, preferences):
        tasks = [_task("A", 60), _task("B", 90), _task("C", 60)]
        result = scheduler.schedule(tasks, WEDNESDAY, WEDNESDAY, preferences)

        assert _times(result) == [
            (WEDNESDAY, "09:00", "10:00"),
            (WEDNESDAY, "10:00", "11:30"),
            (WEDNESDAY, "13:00", "14:00"),
        ]
        assert result.total_minutes == 210

    def test_priority_then_complexity_order(self, scheduler, preferences):
        low = _task("low", 60, priority=4)
        simple = _task("simple", 60, priority=1, complexity=2)
        hard = _task("hard", 60, priority=1, complexity=8)
        result = scheduler.schedule([low, simple, hard], WEDNESDAY, WEDNESDAY, preferences)

        by_task = {p.task_id: p.start_time for p in result.placements}
        assert by_task[hard.id] == "09:00"
        assert by_task[simple.id] == "10:00"
        assert by_task[low.id] == "11:00"

    def test_every_task_placed_exactly_once(self, scheduler, preferences):
        tasks = [_task(f"T{i}", 30 + 15 * (i % 5)) for i in range(12)]
        result = scheduler.schedule(tasks, WEDNESDAY, date(2025, 6, 20), preferences)

        assert sorted(str(p.task_id) for p in result.placements) == sorted(str(t.id) for t in tasks)
        for placement in result.placements:
            task = next(t for t in tasks if t.id == placement.task_id)
            assert placement.duration_minutes == task.estimated_duration_minutes

    def test_placements_never_overlap_or_cross_lunch(self, scheduler, preferences):
        tasks = [_task(f"T{i}", 45 + 20 * (i % 4)) for i in range(15)]
        result = scheduler.schedule(tasks, WEDNESDAY, date(2025, 6, 24), preferences)

        for a, b in combinations(result.placements, 2):
            if a.date != b.date:
                continue
            assert (
                parse_time_to_minutes(a.end_time) <= parse_time_to_minutes(b.start_time)
                or parse_time_to_minutes(b.end_time) <= parse_time_to_minutes(a.start_time)
            )
        for p in result.placements:
            start = parse_time_to_minutes(p.start_time)
            end = parse_time_to_minutes(p.end_time)
            assert 540 <= start and end <= 1020
            assert end <= 720 or start >= 780
            assert not is_weekend(p.date)

    def test_output_sorted_and_day_index_set(self, scheduler, preferences):
        tasks = [_task("big", 240), _task("small", 30), _task("mid", 180)]
        result = scheduler.schedule(tasks, WEDNESDAY, THURSDAY, preferences)

        keys = [(p.date, parse_time_to_minutes(p.start_time)) for p in result.placements]
        assert keys == sorted(keys)
        assert all(p.day_index == (p.date - WEDNESDAY).days for p in result.placements)

    def test_existing_placements_are_occupied(self, scheduler, preferences):
        booked = SchedulePlacement(
            user_id="test_user",
            task_id=_task("x", 60).id,
            date=WEDNESDAY,
            start_time="09:00",
            end_time="10:00",
            duration_minutes=60,
        )
        result = scheduler.schedule([_task("A", 60)], WEDNESDAY, WEDNESDAY, preferences, existing=[booked])
        assert _times(result) == [(WEDNESDAY, "10:00", "11:00")]

    def test_busy_slots_are_occupied(self, scheduler, preferences):
        result = scheduler.schedule(
            [_task("A", 60)], WEDNESDAY, WEDNESDAY, preferences, busy_slots=[_busy(WEDNESDAY, "09:00", "11:00")]
        )
        assert _times(result) == [(WEDNESDAY, "11:00", "12:00")]

    def test_all_day_busy_slot_blocks_the_day(self, scheduler, preferences):
        result = scheduler.schedule(
            [_task("A", 60)], WEDNESDAY, THURSDAY, preferences, busy_slots=[_busy(WEDNESDAY, None, None)]
        )
        assert _times(result) == [(THURSDAY, "09:00", "10:00")]

    def test_engine_owned_and_free_slots_are_ignored(self, scheduler, preferences):
        slots = [
            _busy(WEDNESDAY, "09:00", "12:00", is_system_created=True),
            _busy(WEDNESDAY, "09:00", "12:00", is_busy=False),
        ]
        result = scheduler.schedule([_task("A", 60)], WEDNESDAY, WEDNESDAY, preferences, busy_slots=slots)
        assert _times(result) == [(WEDNESDAY, "09:00", "10:00")]

    def test_current_time_clips_today_and_skips_past_days(self, scheduler, preferences):
        now = datetime(2025, 6, 11, 14, 10)
        result = scheduler.schedule(
            [_task("A", 60)], date(2025, 6, 10), WEDNESDAY, preferences, current_time=now
        )
        assert _times(result) == [(WEDNESDAY, "14:10", "15:10")]

    def test_indefinite_recurring_tasks_are_not_placed(self, scheduler, preferences):
        recurring = Task(
            user_id="test_user",
            name="Standup",
            estimated_duration_minutes=15,
            recurrence=RecurrenceRule(
                is_indefinite=True, days_of_week={1}, default_start_time="09:00", default_end_time="09:15"
            ),
        )
        result = scheduler.schedule([recurring], WEDNESDAY, WEDNESDAY, preferences)
        assert result.placements == ()


class TestWeekends:
    def test_weekends_skipped_by_default(self, scheduler, preferences):
        tasks = [_task("fill", 240), _task("fill2", 180), _task("next", 60)]
        result = scheduler.schedule(tasks, FRIDAY, MONDAY, preferences)

        assert {p.date for p in result.placements} == {FRIDAY, MONDAY}

    def test_long_tasks_prefer_weekend_short_tasks_prefer_weekdays(self, scheduler):
        preferences = WorkdayPreferences(
            allow_weekends=True,
            weekend=DayWindow(start="10:00", end="18:00", lunch_start=None, lunch_end=None),
            weekday_max_minutes=180,
            weekend_max_minutes=360,
        )
        big = _task("big", 240)
        small = _task("small", 45)
        result = scheduler.schedule([big, small], FRIDAY, date(2025, 6, 18), preferences)

        placed = {p.task_id: p for p in result.placements}
        assert (placed[big.id].date, placed[big.id].start_time) == (SATURDAY, "10:00")
        assert (placed[small.id].date, placed[small.id].start_time) == (FRIDAY, "09:00")

    def test_long_task_spills_back_to_weekdays(self, scheduler):
        preferences = WorkdayPreferences(allow_weekends=True, weekday_max_minutes=120)
        weekend_blocked = [
            _busy(SATURDAY, None, None),
            BusySlot(id="primary:evt:sun", user_id="test_user", date=date(2025, 6, 15)),
        ]
        big = _task("big", 180)
        result = scheduler.schedule([big], FRIDAY, MONDAY, preferences, busy_slots=weekend_blocked)
        assert _times(result) == [(FRIDAY, "09:00", "12:00")]


class TestValidation:
    def test_end_before_start(self, scheduler, preferences):
        with pytest.raises(ValidationError):
            scheduler.schedule([_task("A", 60)], THURSDAY, WEDNESDAY, preferences)

    @pytest.mark.parametrize("minutes", [0, -30])
    def test_non_positive_duration(self, scheduler, preferences, minutes):
        with pytest.raises(ValidationError):
            scheduler.schedule([_task("A", minutes)], WEDNESDAY, WEDNESDAY, preferences)

    def test_inverted_window(self, scheduler):
        preferences = WorkdayPreferences(weekday=DayWindow(start="17:00", end="09:00"))
        with pytest.raises(ValidationError):
            scheduler.schedule([_task("A", 60)], WEDNESDAY, WEDNESDAY, preferences)

    def test_malformed_window_time(self, scheduler):
        preferences = WorkdayPreferences(weekday=DayWindow(start="9am"))
        with pytest.raises(ValidationError):
            scheduler.schedule([_task("A", 60)], WEDNESDAY, WEDNESDAY, preferences)

    def test_lunch_consuming_window(self):
        preferences = WorkdayPreferences(
            weekday=DayWindow(start="12:00", end="13:00", lunch_start="11:00", lunch_end="14:00")
        )
        with pytest.raises(ConfigurationError):
            validate_preferences(preferences)


class TestCapacity:
    def test_single_day_overflow_reports_days_needed(self, scheduler, preferences):
        tasks = [_task("A", 240), _task("B", 240)]
        with pytest.raises(CapacityExhaustedError) as exc_info:
            scheduler.schedule(tasks, WEDNESDAY, WEDNESDAY, preferences)

        assert exc_info.value.days_needed == 2
        assert sorted(exc_info.value.task_ids) == sorted(str(t.id) for t in tasks)

    def test_unplaceable_task_is_reported(self, scheduler, preferences):
        fits = _task("fits", 60)
        too_long = _task("too long", 300)
        with pytest.raises(CapacityExhaustedError) as exc_info:
            scheduler.schedule([fits, too_long], WEDNESDAY, THURSDAY, preferences)
        assert exc_info.value.task_ids == [str(too_long.id)]


class TestFindNextAvailableSlot:
    def test_first_free_block(self, scheduler, preferences):
        slot = scheduler.find_next_available_slot(
            60,
            WEDNESDAY,
            THURSDAY,
            preferences,
            busy_slots=[_busy(WEDNESDAY, "09:00", "11:30")],
        )
        assert (slot.date, slot.start_time, slot.end_time) == (WEDNESDAY, "13:00", "14:00")

    def test_none_when_full(self, scheduler, preferences):
        slot = scheduler.find_next_available_slot(
            60, WEDNESDAY, WEDNESDAY, preferences, busy_slots=[_busy(WEDNESDAY, None, None)]
        )
        assert slot is None


class TestSplitCrossDayEntry:
    def test_split_head_and_tail(self):
        head, tail = split_cross_day_entry(date(2025, 6, 10), "22:00", "02:00")

        assert (head.date, head.start_time, head.end_time, head.duration_minutes) == (
            date(2025, 6, 10), "22:00", "23:59", 120,
        )
        assert (tail.date, tail.start_time, tail.end_time, tail.duration_minutes) == (
            date(2025, 6, 11), "00:00", "02:00", 120,
        )

    def test_ending_at_midnight_has_no_tail(self):
        blocks = split_cross_day_entry(date(2025, 6, 10), "23:00", "00:00")
        assert len(blocks) == 1
        assert blocks[0].duration_minutes == 60

    def test_same_day_block_unchanged(self):
        (block,) = split_cross_day_entry(date(2025, 6, 10), "09:00", "10:30")
        assert (block.start_time, block.end_time, block.duration_minutes) == ("09:00", "10:30", 90)
