"""ISO-8601 week arithmetic.

Weeks run Monday–Sunday and week 1 is the week holding the year's first
Thursday. Dates close to New Year can belong to the neighbouring ISO year,
so a week number is only meaningful together with its year: every helper
here takes or returns the (year, week) pair.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, NamedTuple

from checkplan.errors import ValidationError

MIN_WEEK, MAX_WEEK = 1, 53
MIN_YEAR, MAX_YEAR = 1, 9999


class IsoWeek(NamedTuple):
    year: int
    week: int

    def __str__(self) -> str:
        return f"{self.year}-W{self.week:02d}"


def to_utc_date(value: date | datetime) -> date:
    """Normalize to a UTC calendar date; naive datetimes are taken as UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def week_of(value: date | datetime) -> IsoWeek:
    """Return the ISO (year, week) containing ``value``."""
    iso = to_utc_date(value).isocalendar()
    return IsoWeek(iso[0], iso[1])


def week_start(year: int, week: int) -> date:
    """Monday of ISO ``week`` in ISO ``year``."""
    return date.fromisocalendar(year, week, 1)


def week_range(year: int, week: int) -> tuple[date, date]:
    """(Monday, Sunday) of the ISO week."""
    start = week_start(year, week)
    return start, start + timedelta(days=6)


def weeks_in_year(year: int) -> int:
    """52 or 53. Dec 28 always falls in the last ISO week of its year."""
    return week_of(date(year, 12, 28)).week


def parse_week(year: Any, week: Any) -> IsoWeek:
    """Validate a (year, week) pair coming from a caller.

    Accepts ints or numeric strings. Raises ValidationError naming the bad field.
    Week 53 is only accepted for years that have one.
    """
    y = _parse_int(year, "year")
    w = _parse_int(week, "week")
    if not MIN_YEAR <= y <= MAX_YEAR:
        raise ValidationError(f"Year out of range: {y}", field="year")
    if not MIN_WEEK <= w <= MAX_WEEK:
        raise ValidationError(f"Week must be between {MIN_WEEK} and {MAX_WEEK}: {w}", field="week")
    if w == MAX_WEEK and weeks_in_year(y) < MAX_WEEK:
        raise ValidationError(f"Year {y} has no ISO week 53", field="week")
    return IsoWeek(y, w)


def _parse_int(value: Any, field: str) -> int:
    if value is None or value == "":
        raise ValidationError(f"Missing required field: {field}", field=field)
    if isinstance(value, bool):
        raise ValidationError(f"Malformed {field}: {value!r}", field=field)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"Malformed {field}: {value!r}", field=field)
