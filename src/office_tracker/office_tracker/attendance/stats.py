from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Collection, Mapping, Optional

from ..common.datetime_utils import iter_dates, local_date_string, month_bounds, period_bounds
from ..core.enums import AttendanceStatus, PlannedIntent, StatsPeriod, TargetMode
from ..users.model import Settings


@dataclass(frozen=True)
class PeriodCounts:
    office: int = 0
    wfh: int = 0
    leave: int = 0

    @property
    def total(self) -> int:
        return self.office + self.wfh + self.leave


@dataclass(frozen=True)
class WorkingDays:
    total_days: int
    working_days: int
    weekends: int
    holidays: int
    personal_leaves: int

    @property
    def non_working_days(self) -> int:
        return self.weekends + self.holidays + self.personal_leaves


@dataclass(frozen=True)
class TargetProgress:
    office_days: int
    adjusted_target: int
    percentage: int
    remaining: int
    remaining_working_days: int
    working: WorkingDays
    suggestion: Optional[str] = None


@dataclass(frozen=True)
class MonthlySummary:
    """Figures the weekly summary push is built from."""

    office_days: int
    required_days: int
    days_remaining: int
    working_days: int
    remaining_working_days: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def count_period(
    attendance: Mapping[str, AttendanceStatus], period: StatsPeriod, reference: date
) -> PeriodCounts:
    start, end = period_bounds(period, reference)
    first, last = local_date_string(start), local_date_string(end)
    office = wfh = leave = 0
    for day, status in attendance.items():
        if not first <= day <= last:
            continue
        if status == AttendanceStatus.OFFICE:
            office += 1
        elif status == AttendanceStatus.WFH:
            wfh += 1
        elif status == AttendanceStatus.LEAVE:
            leave += 1
    return PeriodCounts(office=office, wfh=wfh, leave=leave)


def working_days(
    year: int,
    month: int,
    holidays: Collection[str],
    planned: Mapping[str, PlannedIntent],
    *,
    start: Optional[date] = None,
) -> WorkingDays:
    """Working days of a month (optionally from ``start``): weekdays minus
    holidays and planned personal leave."""
    first, last = month_bounds(year, month)
    if start is not None:
        first = max(first, start)

    total = weekends = holiday_count = leaves = 0
    for current in iter_dates(first, last):
        total += 1
        day = local_date_string(current)
        if current.weekday() >= 5:
            weekends += 1
        elif day in holidays:
            holiday_count += 1
        elif planned.get(day) == PlannedIntent.LEAVE:
            leaves += 1
    return WorkingDays(
        total_days=total,
        working_days=total - weekends - holiday_count - leaves,
        weekends=weekends,
        holidays=holiday_count,
        personal_leaves=leaves,
    )


def adjusted_target(settings: Settings, working: int) -> int:
    if settings.target_mode == TargetMode.PERCENTAGE:
        return max(1, _round_half_up(working * settings.monthly_target / 100))
    # Day targets are defined against a 20-working-day month.
    return max(1, _round_half_up(working * settings.monthly_target / 20))


def target_progress(
    attendance: Mapping[str, AttendanceStatus],
    planned: Mapping[str, PlannedIntent],
    holidays: Collection[str],
    settings: Settings,
    today: date,
) -> TargetProgress:
    working = working_days(today.year, today.month, holidays, planned)
    office = count_period(attendance, StatsPeriod.MONTH, today).office
    target = adjusted_target(settings, working.working_days)
    remaining = max(0, target - office)
    remaining_working = working_days(today.year, today.month, holidays, planned, start=today).working_days
    percentage = min(100, _round_half_up(office / target * 100)) if target else 0

    suggestion = None
    if remaining > remaining_working:
        suggestion = (
            f"You need {remaining} more office days but only {remaining_working} working days remain this month."
        )
    elif remaining > 0:
        suggestion = f"{remaining} more office days to reach this month's target."

    return TargetProgress(
        office_days=office,
        adjusted_target=target,
        percentage=percentage,
        remaining=remaining,
        remaining_working_days=remaining_working,
        working=working,
        suggestion=suggestion,
    )


def monthly_summary(
    attendance: Mapping[str, AttendanceStatus],
    planned: Mapping[str, PlannedIntent],
    holidays: Collection[str],
    settings: Settings,
    today: date,
) -> MonthlySummary:
    """Weekly summary figures: percentage targets round up against the
    month's adjusted working days (weekdays minus holidays and leave, whether
    logged or planned); day targets are taken as-is."""
    leave_days = dict(planned)
    leave_days.update({day: PlannedIntent.LEAVE for day, status in attendance.items() if status == AttendanceStatus.LEAVE})
    working = working_days(today.year, today.month, holidays, leave_days).working_days
    remaining_working = working_days(today.year, today.month, holidays, {}, start=today).working_days
    office = count_period(attendance, StatsPeriod.MONTH, today).office
    if settings.target_mode == TargetMode.PERCENTAGE:
        required = math.ceil(settings.monthly_target / 100 * working)
    else:
        required = settings.monthly_target
    return MonthlySummary(
        office_days=office,
        required_days=required,
        days_remaining=max(0, required - office),
        working_days=working,
        remaining_working_days=remaining_working,
    )
