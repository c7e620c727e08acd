"""
Unit tests for time utilities.
"""

from datetime import date

import pytest

from scheduling_engine.core.exceptions import InvalidTimeFormatError, ValidationError
from scheduling_engine.utils.time_utils import (
    TimeInterval,
    calculate_duration,
    check_time_overlap,
    clip_intervals,
    day_of_week,
    format_local_date,
    is_cross_day_task,
    is_valid_time_format,
    is_weekend,
    iter_dates,
    minutes_to_time,
    normalize_time,
    parse_local_date,
    parse_time_to_minutes,
    should_skip_past_task_instance,
    subtract_intervals,
)


class TestParseTime:
    def test_parses_hh_mm(self):
        assert parse_time_to_minutes("09:30") == 570

    def test_single_digit_hour(self):
        assert parse_time_to_minutes("9:05") == 545

    def test_seconds_are_truncated(self):
        assert parse_time_to_minutes("23:59:59") == 1439
        assert normalize_time("9:00:30") == "09:00"

    def test_minutes_pass_through(self):
        assert parse_time_to_minutes(0) == 0
        assert parse_time_to_minutes(1439) == 1439

    @pytest.mark.parametrize("value", ["24:00", "12:60", "abc", "", "7", 1440, -1])
    def test_rejects_invalid(self, value):
        with pytest.raises(InvalidTimeFormatError):
            parse_time_to_minutes(value)

    def test_invalid_time_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            parse_time_to_minutes("25:00")

    def test_is_valid_time_format(self):
        assert is_valid_time_format("00:00") is True
        assert is_valid_time_format("23:60") is False


class TestMinutesToTime:
    def test_bounds(self):
        assert minutes_to_time(0) == "00:00"
        assert minutes_to_time(1439) == "23:59"

    def test_out_of_range(self):
        with pytest.raises(ValidationError):
            minutes_to_time(1440)

    def test_round_trip_every_minute_of_the_day(self):
        assert all(parse_time_to_minutes(minutes_to_time(m)) == m for m in range(1440))


class TestCrossDay:
    def test_detects_wrap(self):
        assert is_cross_day_task("22:00", "02:00") is True
        assert is_cross_day_task("09:00", "10:00") is False

    def test_equal_times_wrap(self):
        assert is_cross_day_task("08:00", "08:00") is True

    def test_duration_across_midnight(self):
        assert calculate_duration("22:00", "02:00") == 240
        assert calculate_duration("23:00", "00:00") == 60

    def test_duration_without_cross_day(self):
        assert calculate_duration("09:00", "10:30", allow_cross_day=False) == 90
        assert calculate_duration("22:00", "02:00", allow_cross_day=False) == -1200


class TestOverlap:
    def test_partial_overlap(self):
        existing = [TimeInterval(600, 660, "a")]
        assert check_time_overlap(existing, "10:30", "11:30") is True

    def test_adjacent_is_not_overlap(self):
        existing = [TimeInterval(600, 660, "a")]
        assert check_time_overlap(existing, "11:00", "12:00") is False
        assert check_time_overlap(existing, "09:00", "10:00") is False

    def test_excluded_interval_is_ignored(self):
        existing = [TimeInterval(600, 660, "a")]
        assert check_time_overlap(existing, "10:30", "11:30", exclude_id="a") is False


class TestSkipPastInstance:
    today = date(2025, 6, 10)

    def test_earlier_date(self):
        assert should_skip_past_task_instance(date(2025, 6, 9), "23:00", self.today, "14:00") is True

    def test_today_already_ended(self):
        assert should_skip_past_task_instance(self.today, "13:00", self.today, "14:00") is True

    def test_today_ending_now(self):
        assert should_skip_past_task_instance(self.today, "14:00", self.today, "14:00") is True

    def test_today_still_running(self):
        assert should_skip_past_task_instance(self.today, "15:00", self.today, "14:00") is False

    def test_future_date(self):
        assert should_skip_past_task_instance(date(2025, 6, 11), "00:30", self.today, "14:00") is False


class TestDates:
    def test_day_of_week_starts_on_sunday(self):
        assert day_of_week(date(2025, 6, 8)) == 0
        assert day_of_week(date(2025, 6, 9)) == 1
        assert day_of_week(date(2025, 6, 14)) == 6

    def test_is_weekend(self):
        assert is_weekend(date(2025, 6, 14)) is True
        assert is_weekend(date(2025, 6, 15)) is True
        assert is_weekend(date(2025, 6, 13)) is False

    def test_parse_local_date_ignores_time_part(self):
        assert parse_local_date("2025-06-10T23:30:00Z") == date(2025, 6, 10)

    @pytest.mark.parametrize("value", ["2025-13-01", "2025-02-30", "06/10/2025", ""])
    def test_parse_local_date_rejects_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_local_date(value)

    def test_format_local_date(self):
        assert format_local_date(date(2025, 1, 5)) == "2025-01-05"

    def test_iter_dates_is_inclusive(self):
        assert list(iter_dates(date(2025, 6, 30), date(2025, 7, 2))) == [
            date(2025, 6, 30),
            date(2025, 7, 1),
            date(2025, 7, 2),
        ]


class TestIntervals:
    def test_subtract_splits_interval(self):
        result = subtract_intervals([TimeInterval(0, 100)], [TimeInterval(20, 30)])
        assert [(i.start_minutes, i.end_minutes) for i in result] == [(0, 20), (30, 100)]

    def test_subtract_covering_block_removes_everything(self):
        assert subtract_intervals([TimeInterval(10, 20)], [TimeInterval(0, 50)]) == []

    def test_clip_drops_earlier_minutes(self):
        result = clip_intervals([TimeInterval(540, 720), TimeInterval(780, 1020)], 800)
        assert [(i.start_minutes, i.end_minutes) for i in result] == [(800, 1020)]
