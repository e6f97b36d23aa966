"""
12h/24h wall-clock conversion and stay durations.

Times are stored the way the front desk enters them: a 12-hour ``H:MM``
string plus a separate ``AM``/``PM`` marker. ``duration_between`` returns a
tagged result instead of a sentinel string so callers can branch on the
failure kind; ``describe_duration`` renders either side for display.
"""
import math
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Optional, Union

from frontdesk.models import Meridiem

DateLike = Union[date, str]


class TimeMathError(str, Enum):
    INVALID_TIME = "invalid_time"
    INVALID_DATE = "invalid_date"


ERROR_TEXT = {
    TimeMathError.INVALID_TIME: "Invalid time format",
    TimeMathError.INVALID_DATE: "Invalid date/time",
}


@dataclass(frozen=True)
class Duration:
    hours: int
    minutes: int
    negative: bool = False

    @property
    def total_minutes(self) -> int:
        value = self.hours * 60 + self.minutes
        return -value if self.negative else value

    def __str__(self) -> str:
        sign = "-" if self.negative else ""
        if self.minutes > 0:
            return f"{sign}{self.hours}h {self.minutes}m"
        return f"{sign}{self.hours}h"


@dataclass(frozen=True)
class Ok:
    value: Duration

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: TimeMathError

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return ERROR_TEXT[self.error]


DurationResult = Union[Ok, Err]


def parse_meridiem(value) -> Optional[Meridiem]:
    if isinstance(value, Meridiem):
        return value
    if not value:
        return None
    try:
        return Meridiem(str(value).strip().upper())
    except ValueError:
        return None


def _split_time(value: str) -> Optional[tuple[int, int]]:
    parts = str(value).strip().split(":")
    # HH:MM and HH:MM:SS are both accepted
    if len(parts) < 2 or len(parts) > 3:
        return None
    if not (parts[0].isdigit() and parts[1].isdigit()):
        return None
    return int(parts[0]), int(parts[1])


def to_24_hour(value: Optional[str], meridiem) -> Optional[str]:
    """``("2:30", PM)`` -> ``"14:30"``; ``None`` for anything invalid."""
    if not value or not meridiem:
        return None
    marker = parse_meridiem(meridiem)
    parsed = _split_time(value)
    if marker is None or parsed is None:
        return None

    hour, minute = parsed
    if hour < 1 or hour > 12 or minute < 0 or minute > 59:
        return None

    if marker == Meridiem.PM and hour != 12:
        hour += 12
    elif marker == Meridiem.AM and hour == 12:
        hour = 0
    return f"{hour:02d}:{minute:02d}"


def to_12_hour(value: Optional[str]) -> Optional[tuple[str, Meridiem]]:
    """``"14:30"`` -> ``("2:30", PM)``; inverse of :func:`to_24_hour`."""
    if not value:
        return None
    parsed = _split_time(value)
    if parsed is None:
        return None

    hour, minute = parsed
    if hour > 23 or minute > 59:
        return None

    marker = Meridiem.PM if hour >= 12 else Meridiem.AM
    hour = hour % 12 or 12
    return f"{hour}:{minute:02d}", marker


def parse_date(value: Optional[DateLike]) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        return None


def combine(day: Optional[DateLike], value: Optional[str], meridiem) -> Optional[datetime]:
    """Date plus 12-hour wall-clock time as a naive datetime"""
    parsed_day = parse_date(day)
    time24 = to_24_hour(value, meridiem)
    if parsed_day is None or time24 is None:
        return None
    hour, minute = (int(p) for p in time24.split(":"))
    return datetime.combine(parsed_day, time(hour, minute))


def duration_between(
    check_in_time: Optional[str],
    check_in_meridiem,
    check_out_time: Optional[str],
    check_out_meridiem,
    check_in_date: Optional[DateLike],
    check_out_date: Optional[DateLike],
) -> DurationResult:
    start24 = to_24_hour(check_in_time, check_in_meridiem)
    end24 = to_24_hour(check_out_time, check_out_meridiem)
    if start24 is None or end24 is None:
        return Err(TimeMathError.INVALID_TIME)

    start = combine(check_in_date, check_in_time, check_in_meridiem)
    end = combine(check_out_date, check_out_time, check_out_meridiem)
    if start is None or end is None:
        return Err(TimeMathError.INVALID_DATE)

    seconds = (end - start).total_seconds()
    negative = seconds < 0
    total_hours = abs(seconds) / 3600
    hours = math.floor(total_hours)
    minutes = round((total_hours - hours) * 60)
    if minutes == 60:
        hours, minutes = hours + 1, 0
    return Ok(Duration(hours=hours, minutes=minutes, negative=negative and (hours or minutes) > 0))


def describe_duration(result: DurationResult) -> str:
    if isinstance(result, Ok):
        return str(result.value)
    return result.message
