from datetime import date, datetime

from src.office_tracker.office_tracker.common.datetime_utils import (
    add_days,
    days_between,
    is_weekend,
    local_date_string,
    parse_local_date,
    period_bounds,
    today_string,
    yesterday_string,
)
from src.office_tracker.office_tracker.core.enums import StatsPeriod


def test_local_date_string_uses_local_fields_near_midnight():
    # 23:30 local must not roll into the next (UTC) day.
    assert local_date_string(datetime(2025, 6, 11, 23, 30)) == "2025-06-11"
    assert today_string(datetime(2025, 6, 12, 0, 5)) == "2025-06-12"


def test_yesterday_crosses_month_boundary():
    assert yesterday_string(datetime(2025, 7, 1, 7, 0)) == "2025-06-30"


def test_weekend_detection():
    assert is_weekend("2025-06-14")
    assert is_weekend("2025-06-15")
    assert not is_weekend("2025-06-16")


def test_add_days_and_days_between():
    assert add_days("2025-12-31", 1) == "2026-01-01"
    assert days_between("2025-06-01", "2025-06-15") == 14
    assert days_between("2025-06-15", "2025-06-01") == -14


def test_period_bounds_quarter():
    assert period_bounds(StatsPeriod.QUARTER, date(2025, 5, 20)) == (date(2025, 4, 1), date(2025, 6, 30))
    assert period_bounds(StatsPeriod.YEAR, date(2025, 5, 20)) == (date(2025, 1, 1), date(2025, 12, 31))


def test_format_and_parse_are_inverse():
    for value in ("2025-01-01", "2024-02-29", "2025-12-31"):
        assert local_date_string(parse_local_date(value)) == value
