from datetime import date, datetime, timezone, timedelta

import pytest

from medvisit.core.errors import ValidationError
from medvisit.scheduling.timegrid import (
    MinuteRange,
    Weekday,
    day_of_week,
    in_date_range,
    merge_ranges,
    minutes_to_time,
    overlaps,
    parse_ymd,
    time_to_minutes,
    to_clinic_naive,
    week_monday,
)


def test_day_of_week_is_iso_monday_first():
    assert day_of_week(date(2024, 1, 1)) == Weekday.MONDAY
    assert day_of_week(date(2024, 1, 7)) == Weekday.SUNDAY
    assert int(Weekday.SUNDAY) == 7


def test_merge_touching_and_overlapping():
    merged = merge_ranges([MinuteRange(600, 660), MinuteRange(540, 600), MinuteRange(650, 700)])
    assert merged == [MinuteRange(540, 700)]


def test_merge_keeps_gaps_sorted():
    merged = merge_ranges([MinuteRange(800, 900), MinuteRange(540, 600)])
    assert merged == [MinuteRange(540, 600), MinuteRange(800, 900)]


def test_merge_drops_empty_ranges():
    assert merge_ranges([MinuteRange(600, 600), MinuteRange(700, 650)]) == []


@pytest.mark.parametrize(
    "ranges",
    [
        [],
        [MinuteRange(540, 720)],
        [MinuteRange(540, 600), MinuteRange(590, 610), MinuteRange(900, 960), MinuteRange(960, 1000)],
        [MinuteRange(0, 1440), MinuteRange(60, 120)],
    ],
)
def test_merge_is_idempotent_and_disjoint(ranges):
    once = merge_ranges(ranges)
    assert merge_ranges(once) == once
    for a, b in zip(once, once[1:]):
        assert a.end_min < b.start_min


def test_overlaps_symmetric_and_back_to_back():
    assert overlaps(0, 30, 15, 45)
    assert overlaps(15, 45, 0, 30)
    assert not overlaps(0, 30, 30, 60)
    assert not overlaps(30, 60, 0, 30)


@pytest.mark.parametrize("value", ["00:00", "09:05", "12:30", "23:59", "24:00"])
def test_time_round_trip(value):
    assert minutes_to_time(time_to_minutes(value)) == value


@pytest.mark.parametrize("value", ["9:00", "24:01", "12:60", "noon", ""])
def test_time_rejects_malformed(value):
    with pytest.raises(ValidationError):
        time_to_minutes(value)


def test_parse_ymd_requires_zero_padding():
    assert parse_ymd("2024-01-03") == "2024-01-03"
    with pytest.raises(ValidationError):
        parse_ymd("2024-1-3")
    with pytest.raises(ValidationError):
        parse_ymd("2024-02-30")


def test_in_date_range_inclusive():
    assert in_date_range("2024-01-01", "2024-01-01", "2024-01-31")
    assert in_date_range("2024-01-31", "2024-01-01", "2024-01-31")
    assert not in_date_range("2024-02-01", "2024-01-01", "2024-01-31")


def test_week_monday():
    assert week_monday(date(2024, 1, 3)) == date(2024, 1, 1)
    assert week_monday(date(2024, 1, 7)) == date(2024, 1, 1)


def test_to_clinic_naive_converts_aware_times():
    aware = datetime(2024, 1, 3, 9, 0, tzinfo=timezone(timedelta(hours=2)))
    assert to_clinic_naive(aware, "UTC") == datetime(2024, 1, 3, 7, 0)
    assert to_clinic_naive(datetime(2024, 1, 3, 9, 0), "UTC") == datetime(2024, 1, 3, 9, 0)
