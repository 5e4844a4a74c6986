import asyncio
from datetime import datetime, timedelta

from src.office_tracker.office_tracker.attendance.store import AttendanceStore
from src.office_tracker.office_tracker.core.enums import AttendanceStatus, NotificationCategory
from src.office_tracker.office_tracker.holidays.service import HolidayCache
from src.office_tracker.office_tracker.notifications.auto_wfh import AutoWfhFallback
from src.office_tracker.office_tracker.notifications.center import LocalNotificationCenter
from src.office_tracker.office_tracker.users.model import Settings, UserProfile
from tests.fakes import FakeHolidayClient


def _ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _build(cache, sink, clock, *, setup_hours_ago=48, history=True, onboarding=False, remote_history=False):
    store = AttendanceStore(cache, sink, clock=clock)
    store.load({"2025-06-05": "office"} if history else {}, {})
    holidays = HolidayCache(FakeHolidayClient(), clock_ms=clock.ms)
    holidays.load({"australia_2025": {"2025-06-09": "King's Birthday"}}, {"australia_2025": clock.ms()})
    center = LocalNotificationCenter(on_present=lambda notice: None)
    settings = Settings(setup_completed_at=_ms(clock() - timedelta(hours=setup_hours_ago)))

    async def remote_has_history():
        return remote_history

    fallback = AutoWfhFallback(
        store,
        holidays,
        center,
        lambda: UserProfile(),
        lambda: settings,
        onboarding_active=lambda: onboarding,
        remote_has_history=remote_has_history,
        clock=clock,
    )
    return store, center, fallback


def test_unlogged_yesterday_becomes_wfh(cache, sink, clock):
    clock.now = datetime(2025, 6, 11, 7, 0)
    store, center, fallback = _build(cache, sink, clock)

    assert asyncio.run(fallback.run()) == "2025-06-10"
    assert store.get("2025-06-10") == AttendanceStatus.WFH
    assert [notice.category for notice in center.presented] == [NotificationCategory.AUTO_WFH_LOG]
    assert asyncio.run(fallback.run()) is None


def test_skipped_within_a_day_of_setup(cache, sink, clock):
    clock.now = datetime(2025, 6, 11, 7, 0)
    store, _, fallback = _build(cache, sink, clock, setup_hours_ago=2)

    assert asyncio.run(fallback.run()) is None
    assert store.get("2025-06-10") is None


def test_skipped_before_six_and_during_onboarding(cache, sink, clock):
    clock.now = datetime(2025, 6, 11, 5, 59)
    _, _, early = _build(cache, sink, clock)
    assert asyncio.run(early.run()) is None

    clock.now = datetime(2025, 6, 11, 7, 0)
    _, _, onboarding = _build(cache, sink, clock, onboarding=True)
    assert asyncio.run(onboarding.run()) is None


def test_requires_some_history(cache, sink, clock):
    clock.now = datetime(2025, 6, 11, 7, 0)
    _, _, fresh_user = _build(cache, sink, clock, history=False)
    assert asyncio.run(fresh_user.run()) is None

    _, _, returning_user = _build(cache, sink, clock, history=False, remote_history=True)
    assert asyncio.run(returning_user.run()) == "2025-06-10"


def test_skips_weekends_holidays_and_logged_days(cache, sink, clock):
    clock.now = datetime(2025, 6, 16, 7, 0)
    _, _, after_weekend = _build(cache, sink, clock)
    assert asyncio.run(after_weekend.run()) is None

    clock.now = datetime(2025, 6, 10, 7, 0)
    _, _, after_holiday = _build(cache, sink, clock)
    assert asyncio.run(after_holiday.run()) is None

    clock.now = datetime(2025, 6, 11, 7, 0)
    store, _, logged = _build(cache, sink, clock)
    store.load({"2025-06-10": "leave"}, {})
    assert asyncio.run(logged.run()) is None
    assert store.get("2025-06-10") == AttendanceStatus.LEAVE
