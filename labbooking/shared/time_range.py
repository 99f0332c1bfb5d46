"""
12-hour clock parsing and time range comparison.

Slot times are stored as "H:MM AM/PM" strings. Everything that compares
them goes through minutes-since-midnight offsets produced here.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Union

from .errors import InvalidTimeFormat, ValidationError

TIME_PATTERN = re.compile(r"^(1[0-2]|0?[1-9]):([0-5][0-9])\s?(AM|PM)$", re.IGNORECASE)

MINUTES_PER_DAY = 24 * 60

TimeValue = Union[int, str]


def parse_time(value: str) -> int:
    """
    Convert a 12-hour clock string to minutes since midnight.

    Accepts "9:00 AM", "09:00 am", "9:00PM". Raises InvalidTimeFormat for
    anything else.
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat("Time must be a string in H:MM AM/PM format", value=str(value))

    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidTimeFormat(
            f"Invalid time '{value}'. Please enter valid time format (H:MM AM/PM)", value=value
        )

    hours = int(match.group(1))
    minutes = int(match.group(2))
    modifier = match.group(3).upper()

    if modifier == "AM" and hours == 12:
        hours = 0
    elif modifier == "PM" and hours != 12:
        hours += 12

    return hours * 60 + minutes


def format_time(minutes: int) -> str:
    """Canonical "H:MM AM/PM" rendering of a minute offset"""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValidationError(f"Minute offset {minutes} is outside a single day", value=minutes)

    hours, mins = divmod(minutes, 60)
    modifier = "AM" if hours < 12 else "PM"
    display_hour = hours % 12 or 12
    return f"{display_hour}:{mins:02d} {modifier}"


def normalize_time(value: str) -> str:
    return format_time(parse_time(value))


def _as_minutes(value: TimeValue) -> int:
    return value if isinstance(value, int) else parse_time(value)


def overlaps(start_a: TimeValue, end_a: TimeValue, start_b: TimeValue, end_b: TimeValue) -> bool:
    """
    True when two ranges share any instant.

    Touching endpoints count: a lab handed over at 10:00 AM cannot be held by
    both the 9-10 and the 10-11 range. Containment is covered by the same
    comparison.
    """
    a_start, a_end = _as_minutes(start_a), _as_minutes(end_a)
    b_start, b_end = _as_minutes(start_b), _as_minutes(end_b)
    return a_start <= b_end and b_start <= a_end


@dataclass(frozen=True)
class TimeRange:
    start: int
    end: int

    @classmethod
    def parse(cls, start_time: str, end_time: str) -> "TimeRange":
        """Parse a start/end pair, rejecting empty or inverted ranges"""
        start = parse_time(start_time)
        end = parse_time(end_time)
        if start >= end:
            raise ValidationError(
                "Start time must be before end time",
                start_time=start_time,
                end_time=end_time,
            )
        return cls(start, end)

    @property
    def start_label(self) -> str:
        return format_time(self.start)

    @property
    def end_label(self) -> str:
        return format_time(self.end)

    def overlaps(self, other: "TimeRange") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and other.end <= self.end

    def start_on(self, day: date) -> datetime:
        return datetime.combine(day, time(*divmod(self.start, 60)))

    def end_on(self, day: date) -> datetime:
        return datetime.combine(day, time(*divmod(self.end, 60)))
