import asyncio
from datetime import datetime

from src.office_tracker.office_tracker.context import AppContext, generate_user_id
from src.office_tracker.office_tracker.core.enums import AttendanceStatus, CheckOutcome, NotificationCategory
from src.office_tracker.office_tracker.notifications import messages
from src.office_tracker.office_tracker.notifications.center import LocalNotificationCenter
from src.office_tracker.office_tracker.storage.model import UnitChange, WriteTag
from tests.fakes import SYDNEY_FAR, SYDNEY_NEARBY, SYDNEY_OFFICE, FakeHolidayClient, FakeLocator

USER = "iPhone-15_1749600000000_a1b2c3d4e"
TODAY = "2025-06-11"


def _context(cache, remote, clock, locator):
    center = LocalNotificationCenter(on_present=lambda notice: None)
    ctx = AppContext(
        user_id=USER,
        client_id="device-a",
        cache=cache,
        remote=remote,
        holiday_client=FakeHolidayClient(),
        locator=locator,
        center=center,
        clock=clock,
        clock_ms=clock.ms,
        remote_timeout=0.5,
        location_timeout=0.5,
    )
    return ctx, center


def _auto_user(clock):
    return {
        "migrationCompleted": True,
        "lastUpdated": clock.ms(),
        "userData": {
            "companyName": "Atlassian",
            "companyLocation": SYDNEY_OFFICE.to_dict(),
            "trackingMode": "auto",
            "country": "australia",
        },
        "plannedDays": {TODAY: "office"},
    }


def test_generate_user_id_shape():
    user_id = generate_user_id("iPhone 15", 1749600000000)
    model, stamp, suffix = user_id.split("_")
    assert (model, stamp, len(suffix)) == ("iPhone-15", "1749600000000", 9)


def test_arrival_logs_office_and_cancels_todays_reminder(cache, remote, clock):
    clock.now = datetime(2025, 6, 11, 7, 30)
    remote.users[USER] = _auto_user(clock)
    locator = FakeLocator(SYDNEY_FAR)
    ctx, center = _context(cache, remote, clock, locator)

    async def scenario():
        await center.schedule(messages.planned_office_day(TODAY))
        async with ctx:
            pending = [item.notice.key for item in await center.list_scheduled()]
            locator.position = SYDNEY_NEARBY
            outcome = await ctx.on_geofence_enter()
            remaining = await center.list_scheduled()
        return pending, outcome, remaining

    pending, outcome, remaining = asyncio.run(scenario())

    assert pending == [f"planned_office_day:{TODAY}"]
    assert outcome == CheckOutcome.LOGGED
    assert remaining == []
    assert ctx.store.get(TODAY) == AttendanceStatus.OFFICE
    assert remote.users[USER]["attendanceData"] == {TODAY: "office"}
    assert [notice.category for notice in center.presented] == [NotificationCategory.AUTO_OFFICE_LOG]


def test_offline_start_uses_local_data_and_replays_later(cache, remote, clock):
    cache.write_attendance({"2025-06-10": "wfh"})
    remote.offline = True
    ctx, _ = _context(cache, remote, clock, FakeLocator())

    async def scenario():
        await ctx.start()
        result = await ctx.handle_notification_response("office")
        pending = ctx.sync.pending_count
        remote.offline = False
        await ctx.on_foreground()
        await ctx.close()
        return result, pending

    result, pending = asyncio.run(scenario())

    assert result.handled
    assert pending >= 1
    assert ctx.sync.pending_count == 0
    assert remote.users[USER]["attendanceData"][TODAY] == "office"
    assert ctx.store.get("2025-06-10") == AttendanceStatus.WFH


def test_changes_from_another_device_are_applied(cache, remote, clock):
    ctx, _ = _context(cache, remote, clock, FakeLocator())

    async def scenario():
        async with ctx:
            later = clock.ms() + 5000
            await remote.emit(
                USER,
                [
                    UnitChange("attendanceData", {TODAY: "leave"}, WriteTag("device-b", later, later)),
                    UnitChange("userData", {"trackingMode": "auto"}, WriteTag("device-b", later, later)),
                ],
            )
            return ctx.store.get(TODAY), ctx.profiles.profile.is_auto

    status, is_auto = asyncio.run(scenario())
    assert status == AttendanceStatus.LEAVE
    assert is_auto
    assert cache.read_fast_attendance() == {TODAY: "leave"}


def test_planning_schedules_reminders(cache, remote, clock):
    ctx, center = _context(cache, remote, clock, FakeLocator())

    async def scenario():
        async with ctx:
            await ctx.plan("2025-06-12", "office")
            await ctx.plan("2025-06-13", "leave")
            scheduled = [item.notice.key for item in await center.list_scheduled()]
            await ctx.unplan("2025-06-12")
            return scheduled, await center.list_scheduled()

    scheduled, after = asyncio.run(scenario())
    assert scheduled == ["planned_office_day:2025-06-12"]
    assert after == []
    assert remote.users[USER]["plannedDays"] == {"2025-06-13": "leave"}


def test_switching_to_auto_tears_down_manual_reminders_before_location_starts(cache, remote, clock):
    ctx, _ = _context(cache, remote, clock, FakeLocator())
    order = []

    async def scenario():
        async with ctx:
            mode_change = ctx.scheduler.on_mode_change
            sync_loop = ctx._sync_location_loop

            async def recording_mode_change(previous, current):
                order.append("reminders")
                await mode_change(previous, current)

            def recording_sync_loop():
                order.append("location")
                sync_loop()

            ctx.scheduler.on_mode_change = recording_mode_change
            ctx._sync_location_loop = recording_sync_loop
            await ctx.change_tracking_mode("auto")
            return ctx.profiles.profile.is_auto

    assert asyncio.run(scenario()) is True
    assert order == ["reminders", "location"]
