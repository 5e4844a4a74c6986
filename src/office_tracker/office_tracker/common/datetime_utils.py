from __future__ import annotations

import calendar
import time as _time
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional, Tuple
from zoneinfo import ZoneInfo

from ..core.enums import StatsPeriod


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mock it easier.
    """
    return datetime.now()


def now_ms() -> int:
    return int(_time.time() * 1000)


def local_now_in(tz_name: str) -> datetime:
    """Wall-clock time in a named zone (server jobs compute "today" this way)."""
    return datetime.now(ZoneInfo(tz_name))


def local_date_string(value: Optional[date] = None) -> str:
    """Format a date as YYYY-MM-DD from its own calendar fields.

    Datetimes are taken at face value (their local fields), never converted to UTC.
    """
    if value is None:
        value = now_local()
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_local_date(value: str) -> date:
    """Parse YYYY-MM-DD from its year/month/day components."""
    year, month, day = (int(part) for part in value.split("-"))
    return date(year, month, day)


def is_weekend(value: str) -> bool:
    return parse_local_date(value).weekday() >= 5


def today_string(now: Optional[datetime] = None) -> str:
    return local_date_string(now or now_local())


def yesterday_string(now: Optional[datetime] = None) -> str:
    return local_date_string((now or now_local()) - timedelta(days=1))


def add_days(value: str, days: int) -> str:
    return local_date_string(parse_local_date(value) + timedelta(days=days))


def days_between(start: str, end: str) -> int:
    """Whole calendar days from start to end (negative when end is earlier)."""
    return (parse_local_date(end) - parse_local_date(start)).days


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def period_bounds(period: StatsPeriod, reference: date) -> Tuple[date, date]:
    if period == StatsPeriod.MONTH:
        return month_bounds(reference.year, reference.month)
    if period == StatsPeriod.QUARTER:
        first_month = 3 * ((reference.month - 1) // 3) + 1
        start, _ = month_bounds(reference.year, first_month)
        _, end = month_bounds(reference.year, first_month + 2)
        return start, end
    return date(reference.year, 1, 1), date(reference.year, 12, 31)


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def at_time_on(value: str, moment: time) -> datetime:
    """Naive local datetime for a YYYY-MM-DD date at the given time of day."""
    return datetime.combine(parse_local_date(value), moment)
