import asyncio
from datetime import datetime

from src.office_tracker.office_tracker.attendance.store import AttendanceStore
from src.office_tracker.office_tracker.core.enums import (
    AttendanceStatus,
    NotificationCategory,
    PlannedIntent,
    ReminderSlot,
    TrackingMode,
)
from src.office_tracker.office_tracker.holidays.service import HolidayCache
from src.office_tracker.office_tracker.notifications import messages
from src.office_tracker.office_tracker.notifications.center import LocalNotificationCenter
from src.office_tracker.office_tracker.notifications.scheduler import NotificationScheduler, desired_set
from src.office_tracker.office_tracker.users.model import Settings, UserProfile
from tests.fakes import FakeHolidayClient

OFFICE = PlannedIntent.OFFICE


def _planned_dates(notices):
    return [notice.date for notice in notices if notice.category == NotificationCategory.PLANNED_OFFICE_DAY]


def test_planned_reminders_only_inside_the_window():
    assert _planned_dates(desired_set(TrackingMode.MANUAL, {"2025-06-15": OFFICE}, {}, "2025-06-01")) == ["2025-06-15"]
    assert _planned_dates(desired_set(TrackingMode.MANUAL, {"2025-07-15": OFFICE}, {}, "2025-06-01")) == []
    assert _planned_dates(desired_set(TrackingMode.MANUAL, {"2025-06-01": OFFICE}, {}, "2025-06-01")) == []


def test_planned_reminders_skip_logged_and_non_office_days():
    planned = {"2025-06-12": OFFICE, "2025-06-13": PlannedIntent.WFH, "2025-06-16": OFFICE}
    attendance = {"2025-06-16": AttendanceStatus.LEAVE}
    assert _planned_dates(desired_set(TrackingMode.MANUAL, planned, attendance, "2025-06-11")) == ["2025-06-12"]


def test_daily_reminders_follow_tracking_mode():
    manual = desired_set(TrackingMode.MANUAL, {}, {}, "2025-06-11")
    assert [notice.category for notice in manual] == [NotificationCategory.MANUAL_REMINDER] * 3
    assert [notice.fire_at.hour for notice in manual] == [10, 13, 16]

    auto = desired_set(TrackingMode.AUTO, {}, {}, "2025-06-11")
    assert [(notice.category, notice.fire_at.hour) for notice in auto] == [(NotificationCategory.AUTO_REMINDER, 18)]

    assert desired_set(TrackingMode.MANUAL, {}, {"2025-06-11": AttendanceStatus.WFH}, "2025-06-11") == []
    assert desired_set(TrackingMode.MANUAL, {}, {}, "2025-06-09", holidays={"2025-06-09"}) == []
    assert desired_set(TrackingMode.MANUAL, {}, {}, "2025-06-14") == []


def test_weekly_summaries_target_next_monday_and_friday():
    notices = desired_set(TrackingMode.AUTO, {}, {"2025-06-11": AttendanceStatus.OFFICE}, "2025-06-11", weekly_summary=True)
    assert sorted(notice.date for notice in notices) == ["2025-06-13", "2025-06-16"]


class _Harness:
    def __init__(self, cache, sink, clock, *, mode=TrackingMode.MANUAL):
        self.center = LocalNotificationCenter(on_present=lambda notice: None)
        self.store = AttendanceStore(cache, sink, clock=clock)
        self.holidays = HolidayCache(FakeHolidayClient(), clock_ms=clock.ms)
        self.holidays.load({"australia_2025": {"2025-06-09": "King's Birthday"}}, {"australia_2025": clock.ms()})
        self.profile = UserProfile(tracking_mode=mode)
        self.settings = Settings(weekly_summary=False)
        self.scheduler = NotificationScheduler(
            self.center,
            self.store,
            self.holidays,
            lambda: self.profile,
            lambda: self.settings,
            clock=clock,
        )
        self.store.add_today_listener(self.scheduler.on_attendance_marked)

    def scheduled_keys(self):
        return sorted(item.notice.key for item in asyncio.run(self.center.list_scheduled()))


def test_reconcile_converges_and_is_stable(cache, sink, clock):
    h = _Harness(cache, sink, clock)
    h.store.load({}, {"2025-06-12": "office", "2025-06-20": "office", "2025-06-13": "wfh"})

    first = asyncio.run(h.scheduler.reconcile())
    assert len(first.scheduled) == 2
    assert h.scheduled_keys() == ["planned_office_day:2025-06-12", "planned_office_day:2025-06-20"]

    second = asyncio.run(h.scheduler.reconcile())
    assert (second.scheduled, second.cancelled) == ((), ())
    assert len(second.kept) == 2

    asyncio.run(h.store.unplan("2025-06-20"))
    third = asyncio.run(h.scheduler.reconcile())
    assert len(third.cancelled) == 1
    assert h.scheduled_keys() == ["planned_office_day:2025-06-12"]


def test_reconcile_removes_duplicates(cache, sink, clock):
    h = _Harness(cache, sink, clock)
    h.store.load({}, {"2025-06-12": "office"})
    notice = messages.planned_office_day("2025-06-12")

    async def scenario():
        await h.center.schedule(notice)
        await h.center.schedule(notice)
        return await h.scheduler.reconcile()

    result = asyncio.run(scenario())
    assert len(result.cancelled) == 1
    assert h.scheduled_keys() == ["planned_office_day:2025-06-12"]


def test_concurrent_reconcile_is_dropped(cache, sink, clock):
    h = _Harness(cache, sink, clock)
    with h.scheduler.guard.attempt() as acquired:
        assert acquired
        assert asyncio.run(h.scheduler.reconcile()) is None
    assert asyncio.run(h.scheduler.reconcile()) is not None


def test_todays_pending_planned_reminder_survives_until_logged(cache, sink, clock):
    clock.now = datetime(2025, 6, 11, 7, 0)
    h = _Harness(cache, sink, clock)
    h.store.load({}, {"2025-06-11": "office"})
    asyncio.run(h.center.schedule(messages.planned_office_day("2025-06-11")))

    result = asyncio.run(h.scheduler.reconcile())
    assert result.cancelled == ()
    assert h.scheduled_keys() == ["planned_office_day:2025-06-11"]

    asyncio.run(h.store.mark("2025-06-11", "office"))
    assert h.scheduled_keys() == []


def test_marking_another_day_cancels_nothing(cache, sink, clock):
    h = _Harness(cache, sink, clock)
    assert asyncio.run(h.scheduler.on_attendance_marked("2025-06-10")) == 0


def test_mode_change_tears_down_previous_mode(cache, sink, clock):
    h = _Harness(cache, sink, clock)
    h.store.load({}, {"2025-06-12": "office"})

    async def scenario():
        await h.center.schedule(messages.manual_reminder(ReminderSlot.AFTERNOON, "2025-06-11"))
        h.profile = UserProfile(tracking_mode=TrackingMode.AUTO)
        return await h.scheduler.on_mode_change(TrackingMode.MANUAL, TrackingMode.AUTO)

    result = asyncio.run(scenario())
    assert len(result.scheduled) == 1
    assert h.scheduled_keys() == ["planned_office_day:2025-06-12"]
