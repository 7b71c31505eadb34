"""Scalar simulation clock and calendar helpers.

Simulation time is a count of seconds since 0001-01-01 00:00 on the
proleptic Gregorian calendar.
"""

from __future__ import annotations

from datetime import datetime, timedelta

_EPOCH = datetime.min


class SimClock:
    """Shared, externally advanced game time."""

    def __init__(self, time_in_seconds: int = 0) -> None:
        self.time_in_seconds = time_in_seconds

    def now(self) -> int:
        return self.time_in_seconds

    def set(self, time_in_seconds: int) -> None:
        self.time_in_seconds = time_in_seconds

    def advance(self, seconds: int = 1) -> int:
        self.time_in_seconds += seconds
        return self.time_in_seconds


def to_datetime(time_in_seconds: int) -> datetime:
    return _EPOCH + timedelta(seconds=time_in_seconds)


def from_date(year: int, month: int = 1, day: int = 1) -> int:
    return int((datetime(year, month, day) - _EPOCH).total_seconds())


def get_current_year(time_in_seconds: int) -> int:
    return to_datetime(time_in_seconds).year


def get_current_month(time_in_seconds: int) -> int:
    return to_datetime(time_in_seconds).month


def get_current_day_of_month(time_in_seconds: int) -> int:
    return to_datetime(time_in_seconds).day


def years_between(start: int, end: int) -> int:
    """Whole years elapsed, counting a year only once its anniversary is reached."""
    born = to_datetime(start)
    now = to_datetime(end)
    years = now.year - born.year
    if (now.month, now.day) < (born.month, born.day):
        years -= 1
    return max(years, 0)
