"""
Unit tests for 12h/24h conversion and stay durations
"""
from datetime import date, datetime

from frontdesk.domain.time_math import (
    Duration,
    Err,
    Ok,
    TimeMathError,
    combine,
    describe_duration,
    duration_between,
    to_12_hour,
    to_24_hour,
)
from frontdesk.models import Meridiem


class TestTo24Hour:
    """12-hour wall clock to 24-hour strings"""

    def test_pm_adds_twelve(self):
        assert to_24_hour("2:30", "PM") == "14:30"

    def test_noon_and_midnight(self):
        assert to_24_hour("12:15", "PM") == "12:15"
        assert to_24_hour("12:00", "AM") == "00:00"

    def test_accepts_seconds_and_lowercase_marker(self):
        assert to_24_hour("09:05:00", "am") == "09:05"

    def test_rejects_out_of_range_and_garbage(self):
        assert to_24_hour("13:00", "PM") is None
        assert to_24_hour("0:30", "AM") is None
        assert to_24_hour("10:60", "AM") is None
        assert to_24_hour("ab", "AM") is None
        assert to_24_hour("10:00", "XM") is None
        assert to_24_hour("", "AM") is None

    def test_round_trip_with_12_hour(self):
        assert to_12_hour("14:30") == ("2:30", Meridiem.PM)
        assert to_12_hour("00:10") == ("12:10", Meridiem.AM)
        assert to_24_hour(*to_12_hour("23:59")) == "23:59"

    def test_round_trip_over_whole_clock(self):
        for meridiem in Meridiem:
            for hour in range(1, 13):
                for minute in range(60):
                    wall = f"{hour}:{minute:02d}"
                    assert to_12_hour(to_24_hour(wall, meridiem)) == (wall, meridiem)

    def test_every_24_hour_value_round_trips(self):
        for hour in range(24):
            for minute in range(60):
                value = f"{hour:02d}:{minute:02d}"
                assert to_24_hour(*to_12_hour(value)) == value


class TestDurationBetween:
    """Tagged duration results"""

    def test_two_night_stay(self):
        result = duration_between("12:00", "PM", "11:00", "AM", date(2024, 1, 8), date(2024, 1, 10))
        assert isinstance(result, Ok)
        assert result.value == Duration(hours=47, minutes=0)
        assert describe_duration(result) == "47h"

    def test_hours_and_minutes(self):
        result = duration_between("10:00", "AM", "2:30", "PM", "2024-01-08", "2024-01-08")
        assert result.ok
        assert str(result.value) == "4h 30m"
        assert result.value.total_minutes == 270

    def test_invalid_time(self):
        result = duration_between("25:00", "PM", "11:00", "AM", date(2024, 1, 8), date(2024, 1, 10))
        assert isinstance(result, Err)
        assert result.error == TimeMathError.INVALID_TIME
        assert describe_duration(result) == "Invalid time format"

    def test_invalid_date(self):
        result = duration_between("12:00", "PM", "11:00", "AM", "2024-13-01", date(2024, 1, 10))
        assert not result.ok
        assert result.error == TimeMathError.INVALID_DATE
        assert result.message == "Invalid date/time"

    def test_negative_duration_is_flagged(self):
        result = duration_between("12:00", "PM", "10:00", "AM", date(2024, 1, 10), date(2024, 1, 10))
        assert result.value.negative
        assert str(result.value) == "-2h"
        assert result.value.total_minutes == -120


def test_combine_builds_naive_datetime():
    assert combine("2024-01-10", "2:30", Meridiem.PM) == datetime(2024, 1, 10, 14, 30)
    assert combine("not-a-date", "2:30", "PM") is None
