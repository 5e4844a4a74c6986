from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Collection, Dict, List, Mapping, Optional

from ..attendance.store import AttendanceStore
from ..common.datetime_utils import days_between, is_weekend, local_date_string, now_local, parse_local_date, today_string
from ..common.guards import ReentrancyGuard
from ..core.constants import PLANNED_WINDOW_DAYS
from ..core.enums import (
    AttendanceStatus,
    Delivery,
    NotificationCategory,
    PlannedIntent,
    ReminderSlot,
    SummaryDay,
    TrackingMode,
)
from ..core.exceptions import NotificationError
from ..holidays.service import HolidayCache
from ..users.model import Settings, UserProfile
from . import messages
from .center import NotificationCenter
from .model import Notification, ReconcileResult

logger = logging.getLogger(__name__)

# Categories reconciliation owns on the device.
LOCAL_CATEGORIES = frozenset({NotificationCategory.PLANNED_OFFICE_DAY})

TODAY_SCOPED_CATEGORIES = frozenset(
    {
        NotificationCategory.MANUAL_REMINDER,
        NotificationCategory.AUTO_REMINDER,
        NotificationCategory.PLANNED_OFFICE_DAY,
        NotificationCategory.LOCATION_CONFIRMATION,
    }
)

MODE_CATEGORIES = {
    TrackingMode.MANUAL: frozenset({NotificationCategory.MANUAL_REMINDER}),
    TrackingMode.AUTO: frozenset({NotificationCategory.AUTO_REMINDER, NotificationCategory.LOCATION_CONFIRMATION}),
}

_MANUAL_SLOTS = (ReminderSlot.MORNING, ReminderSlot.MIDDAY, ReminderSlot.AFTERNOON)
_SUMMARY_WEEKDAYS = {SummaryDay.MONDAY: 0, SummaryDay.FRIDAY: 4}


def desired_set(
    tracking_mode: TrackingMode,
    planned_days: Mapping[str, PlannedIntent],
    attendance: Mapping[str, AttendanceStatus],
    today: str,
    *,
    holidays: Collection[str] = (),
    weekly_summary: bool = False,
) -> List[Notification]:
    """Every notification that should exist right now.

    Server-delivered reminders are included for completeness; only
    ``Delivery.LOCAL`` entries are scheduled on the device.
    """
    notices: List[Notification] = []

    if not is_weekend(today) and today not in holidays and today not in attendance:
        if tracking_mode == TrackingMode.MANUAL:
            notices.extend(messages.manual_reminder(slot, today) for slot in _MANUAL_SLOTS)
        else:
            notices.append(messages.auto_reminder(today))

    for day, intent in sorted(planned_days.items()):
        if intent != PlannedIntent.OFFICE or day in attendance:
            continue
        if 1 <= days_between(today, day) <= PLANNED_WINDOW_DAYS:
            notices.append(messages.planned_office_day(day))

    if weekly_summary:
        base = parse_local_date(today)
        for summary_day, weekday in _SUMMARY_WEEKDAYS.items():
            on_date = local_date_string(base + timedelta(days=(weekday - base.weekday()) % 7))
            notices.append(messages.weekly_summary(summary_day, on_date))

    return notices


class NotificationScheduler:
    """Keeps scheduled notifications equal to the desired set.

    ``reconcile`` diffs by notification key: matching entries are kept,
    duplicates and no-longer-wanted entries are cancelled, missing ones are
    scheduled. Concurrent calls are dropped by a re-entrancy guard.
    """

    def __init__(
        self,
        center: NotificationCenter,
        store: AttendanceStore,
        holidays: HolidayCache,
        profile_source: Callable[[], UserProfile],
        settings_source: Callable[[], Settings],
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._center = center
        self._store = store
        self._holidays = holidays
        self._profile_source = profile_source
        self._settings_source = settings_source
        self._clock = clock
        self._guard = ReentrancyGuard("notification reconciliation")

    @property
    def guard(self) -> ReentrancyGuard:
        return self._guard

    def current_desired_set(self) -> List[Notification]:
        profile = self._profile_source()
        today = today_string(self._clock())
        holidays = self._holidays.get(profile.country, parse_local_date(today).year)
        return desired_set(
            profile.tracking_mode,
            self._store.planned(),
            self._store.attendance(),
            today,
            holidays=holidays.keys(),
            weekly_summary=self._settings_source().weekly_summary,
        )

    async def reconcile(self) -> Optional[ReconcileResult]:
        with self._guard.attempt() as acquired:
            if not acquired:
                return None

            now = self._clock()
            today = today_string(now)
            pending_today = self._store.get(today) is None and self._store.planned().get(today) == PlannedIntent.OFFICE
            desired = [notice for notice in self.current_desired_set() if notice.delivery == Delivery.LOCAL]
            wanted: Dict[str, Notification] = {notice.key: notice for notice in desired}

            kept: Dict[str, str] = {}
            cancelled: List[str] = []
            for item in await self._center.list_scheduled():
                if item.notice.category not in LOCAL_CATEGORIES:
                    continue
                if pending_today and item.notice.key not in kept and item.notice.date == today and item.notice.fire_at > now:
                    # Scheduled earlier for today; still pending.
                    kept[item.notice.key] = item.identifier
                    continue
                notice = wanted.get(item.notice.key)
                if notice is not None and item.notice.key not in kept and item.notice.fire_at == notice.fire_at:
                    kept[item.notice.key] = item.identifier
                    continue
                await self._center.cancel(item.identifier)
                cancelled.append(item.identifier)

            scheduled: List[str] = []
            for notice in desired:
                if notice.key in kept:
                    continue
                try:
                    scheduled.append(await self._center.schedule(notice))
                except NotificationError:
                    logger.warning("Could not schedule %s", notice.key, exc_info=True)

            if scheduled or cancelled:
                logger.info(
                    "Notifications reconciled: %d scheduled, %d cancelled, %d kept",
                    len(scheduled),
                    len(cancelled),
                    len(kept),
                )
            return ReconcileResult(scheduled=tuple(scheduled), cancelled=tuple(cancelled), kept=tuple(kept))

    async def cancel_where(self, predicate: Callable[[Notification], bool]) -> int:
        cancelled = 0
        for item in await self._center.list_scheduled():
            if predicate(item.notice):
                await self._center.cancel(item.identifier)
                cancelled += 1
        return cancelled

    async def on_attendance_marked(self, day: str) -> int:
        """Cancel today's pending reminders once today has a record."""
        if day != today_string(self._clock()):
            return 0
        cancelled = await self.cancel_where(
            lambda notice: notice.category in TODAY_SCOPED_CATEGORIES and notice.date == day
        )
        if cancelled:
            logger.info("Cancelled %d reminders for %s", cancelled, day)
        return cancelled

    async def on_mode_change(self, previous: TrackingMode, new_mode: TrackingMode) -> Optional[ReconcileResult]:
        previous_categories = MODE_CATEGORIES[previous]
        cancelled = await self.cancel_where(lambda notice: notice.category in previous_categories)
        logger.info("Tracking mode %s -> %s (%d notifications torn down)", previous.value, new_mode.value, cancelled)
        return await self.reconcile()
