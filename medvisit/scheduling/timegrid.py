"""
Pure date/time arithmetic for the scheduling engine.

Calendar dates travel as zero-padded "YYYY-MM-DD" strings (``IsoDate``) so
that range checks can compare them lexicographically; wall-clock times travel
as "HH:MM" strings and are converted to minutes since midnight for math.
"""
import re
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta
from enum import IntEnum
from typing import Annotated, NamedTuple
from zoneinfo import ZoneInfo

from pydantic import AfterValidator

from medvisit.core.errors import ValidationError

MINUTES_PER_DAY = 24 * 60

_YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# 24:00 is accepted so a range can run to the end of the day
_HHMM_RE = re.compile(r"^(?:(?:[01]\d|2[0-3]):[0-5]\d|24:00)$")


class Weekday(IntEnum):
    """ISO weekday numbering, Monday first."""

    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7


class MinuteRange(NamedTuple):
    start_min: int
    end_min: int

    def contains(self, start_min: int, end_min: int) -> bool:
        return self.start_min <= start_min and end_min <= self.end_min


def day_of_week(d: date) -> Weekday:
    return Weekday(d.isoweekday())


def parse_ymd(value: str) -> str:
    """Validate a "YYYY-MM-DD" calendar date and return it unchanged."""
    if not isinstance(value, str) or not _YMD_RE.match(value):
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    try:
        date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid date {value!r}: {e}") from e
    return value


IsoDate = Annotated[str, AfterValidator(parse_ymd)]


def ymd(d: date | datetime) -> str:
    if isinstance(d, datetime):
        d = d.date()
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def date_of(value: str) -> date:
    return date.fromisoformat(parse_ymd(value))


def in_date_range(day: str, date_from: str, date_to: str) -> bool:
    """Inclusive containment; valid only for zero-padded IsoDate strings."""
    return date_from <= day <= date_to


def check_hhmm(value: str) -> str:
    if not isinstance(value, str) or not _HHMM_RE.match(value):
        raise ValidationError(f"Invalid time {value!r}, expected HH:MM (24h)")
    return value


HhMm = Annotated[str, AfterValidator(check_hhmm)]


def time_to_minutes(value: str) -> int:
    hours, minutes = check_hhmm(value).split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValidationError(f"Minute of day out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minute_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


def merge_ranges(ranges: Iterable[MinuteRange]) -> list[MinuteRange]:
    """
    Coalesce minute ranges into a minimal sorted set of disjoint ranges.

    Empty or inverted ranges are dropped. Touching ranges (one ends where the
    next starts) are merged like overlapping ones.
    """
    ordered = sorted((r for r in ranges if r.end_min > r.start_min), key=lambda r: r.start_min)
    merged: list[MinuteRange] = []
    for current in ordered:
        if merged and current.start_min <= merged[-1].end_min:
            last = merged[-1]
            merged[-1] = MinuteRange(last.start_min, max(last.end_min, current.end_min))
        else:
            merged.append(MinuteRange(current.start_min, current.end_min))
    return merged


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Half-open interval overlap; back-to-back intervals do not overlap."""
    return a_start < b_end and b_start < a_end


def week_monday(d: date) -> date:
    return d - timedelta(days=day_of_week(d) - 1)


def week_days(week_start: date) -> list[date]:
    return [week_start + timedelta(days=i) for i in range(7)]


def to_clinic_naive(dt: datetime, tz_name: str) -> datetime:
    """Naive clinic wall-clock time for TIMESTAMP WITHOUT TIME ZONE columns."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(ZoneInfo(tz_name))
    return dt.replace(tzinfo=None)


def clinic_now(tz_name: str) -> datetime:
    return datetime.now(UTC).astimezone(ZoneInfo(tz_name)).replace(tzinfo=None)
