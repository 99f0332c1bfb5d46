from datetime import date, datetime

import pytest

from labbooking.shared.errors import InvalidTimeFormat, ValidationError
from labbooking.shared.time_range import (
    TimeRange,
    format_time,
    normalize_time,
    overlaps,
    parse_time,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("9:00 AM", 540),
        ("09:00 am", 540),
        ("9:00PM", 21 * 60),
        ("  9:00 AM  ", 540),
        ("12:00 AM", 0),
        ("12:30 PM", 12 * 60 + 30),
        ("11:59 PM", 23 * 60 + 59),
    ],
)
def test_parse_time(value, expected):
    assert parse_time(value) == expected


@pytest.mark.parametrize("value", ["13:00 PM", "9:60 AM", "9 AM", "", "0:30 AM", "21:00", "9:00"])
def test_parse_time_rejects_bad_format(value):
    with pytest.raises(InvalidTimeFormat) as exc:
        parse_time(value)
    assert exc.value.status_code == 400
    assert exc.value.detail["error"] == "invalid_time_format"


def test_invalid_time_format_is_a_validation_error():
    with pytest.raises(ValidationError):
        parse_time("25:00 PM")


def test_format_time_is_canonical():
    assert format_time(0) == "12:00 AM"
    assert format_time(9 * 60 + 5) == "9:05 AM"
    assert format_time(12 * 60 + 30) == "12:30 PM"
    assert normalize_time("09:05 pm") == "9:05 PM"


def test_overlap_is_symmetric():
    ranges = [(540, 600), (570, 630), (600, 660), (480, 720), (700, 760)]
    for a in ranges:
        for b in ranges:
            assert overlaps(*a, *b) == overlaps(*b, *a)


def test_touching_ranges_overlap():
    assert overlaps("9:00 AM", "10:00 AM", "10:00 AM", "11:00 AM")
    assert overlaps("10:00 AM", "11:00 AM", "9:00 AM", "10:00 AM")


def test_containment_overlaps():
    assert overlaps("8:00 AM", "12:00 PM", "9:00 AM", "10:00 AM")
    outer = TimeRange.parse("8:00 AM", "12:00 PM")
    inner = TimeRange.parse("9:00 AM", "10:00 AM")
    assert outer.contains(inner)
    assert not inner.contains(outer)
    assert inner.overlaps(outer)


def test_disjoint_ranges_do_not_overlap():
    assert not overlaps("9:00 AM", "10:00 AM", "10:01 AM", "11:00 AM")


@pytest.mark.parametrize("start,end", [("10:00 AM", "10:00 AM"), ("11:00 AM", "9:00 AM")])
def test_time_range_requires_start_before_end(start, end):
    with pytest.raises(ValidationError) as exc:
        TimeRange.parse(start, end)
    assert exc.value.code == "validation_error"


def test_time_range_labels_and_instants():
    time_range = TimeRange.parse("1:30 pm", "03:00 PM")
    assert time_range.start_label == "1:30 PM"
    assert time_range.end_label == "3:00 PM"
    assert time_range.start_on(date(2030, 1, 15)) == datetime(2030, 1, 15, 13, 30)
    assert time_range.end_on(date(2030, 1, 15)) == datetime(2030, 1, 15, 15, 0)
