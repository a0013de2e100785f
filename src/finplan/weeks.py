"""ISO-8601 week helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta


@dataclass(frozen=True)
class IsoWeek:
    """ISO week number and the year that owns it."""

    week_number: int
    week_year: int


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def get_iso_week_data(value: date | datetime) -> IsoWeek:
    """Return the ISO week of ``value``.

    A week belongs to the year of its Thursday, so 2022-01-01 falls in
    week 52 of 2021 and 2019-12-31 in week 1 of 2020.
    """
    iso = _as_date(value).isocalendar()
    return IsoWeek(week_number=iso[1], week_year=iso[0])


def week_start(value: date | datetime) -> date:
    """Monday of the ISO week containing ``value``."""
    day = _as_date(value)
    return day - timedelta(days=day.weekday())


def week_bounds(value: date | datetime) -> tuple[date, date]:
    """Half-open ``[monday, next monday)`` range for the week of ``value``."""
    start = week_start(value)
    return start, start + timedelta(days=7)
