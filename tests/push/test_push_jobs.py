import asyncio
from datetime import datetime

import pytest

from src.office_tracker.office_tracker.core.enums import ReminderSlot, SummaryDay, TrackingMode
from src.office_tracker.office_tracker.core.exceptions import NotFoundError, ValidationError
from src.office_tracker.office_tracker.push.eligibility import is_reminder_eligible, push_token
from src.office_tracker.office_tracker.push.jobs import PushJobs, server_settings
from tests.fakes import FakeClock, FakePushClient, InMemoryRemoteStore

TODAY = "2025-06-11"


def _users():
    return {
        "manual-1": {"pushToken": "tok-m1", "userData": {"trackingMode": "manual"}},
        "manual-logged": {
            "pushToken": "tok-ml",
            "userData": {"trackingMode": "manual"},
            "attendanceData": {TODAY: "office"},
        },
        "auto-1": {"pushToken": "tok-a1", "userData": {"trackingMode": "auto"}},
        "no-token": {"userData": {"trackingMode": "manual"}},
        "legacy": {"fcmToken": "tok-legacy", "userData": {"trackingMode": "manual"}},
        "on-holiday": {
            "pushToken": "tok-h",
            "userData": {"trackingMode": "manual"},
            "cachedHolidays": {"australia_2025": {TODAY: "Local Holiday"}},
        },
    }


def _jobs(now=datetime(2025, 6, 11, 9, 0)):
    remote = InMemoryRemoteStore()
    remote.users = _users()
    push = FakePushClient()
    return remote, push, PushJobs(remote, push, clock=FakeClock(now))


def test_eligibility_predicates():
    users = _users()
    assert push_token(users["legacy"]) == "tok-legacy"
    assert is_reminder_eligible(users["manual-1"], TrackingMode.MANUAL, TODAY)
    assert not is_reminder_eligible(users["manual-1"], TrackingMode.AUTO, TODAY)
    assert not is_reminder_eligible(users["manual-logged"], TrackingMode.MANUAL, TODAY)
    assert not is_reminder_eligible(users["on-holiday"], TrackingMode.MANUAL, TODAY)
    assert not is_reminder_eligible(users["manual-1"], TrackingMode.MANUAL, "2025-06-14")


def test_manual_reminders_go_to_unlogged_manual_users():
    _, push, jobs = _jobs()
    report = asyncio.run(jobs.send_reminders(ReminderSlot.MORNING))

    assert report.user_ids == ("legacy", "manual-1")
    assert report.sent == 2
    assert [token for token, _ in push.sent] == ["tok-legacy", "tok-m1"]
    assert push.sent[0][1].category_id == "MANUAL_CHECKIN"


def test_evening_reminder_targets_auto_users():
    _, push, jobs = _jobs()
    report = asyncio.run(jobs.send_reminders(ReminderSlot.EVENING))
    assert report.user_ids == ("auto-1",)
    assert push.sent[0][1].title == "Attendance not detected"


def test_failed_send_does_not_abort_batch():
    _, push, jobs = _jobs()
    push.rejected_tokens.add("tok-legacy")

    report = asyncio.run(jobs.send_reminders(ReminderSlot.MIDDAY))
    assert (report.eligible, report.sent, report.failed) == (2, 1, 1)


def test_no_reminders_on_weekends():
    _, push, jobs = _jobs(datetime(2025, 6, 14, 10, 0))
    report = asyncio.run(jobs.send_reminders(ReminderSlot.MORNING))
    assert report.skipped_reason == "weekend"
    assert push.sent == []


def test_weekly_summary_body_reflects_progress():
    remote, push, jobs = _jobs()
    remote.users = {
        "met": {
            "pushToken": "tok-met",
            "settings": {"monthlyTarget": 1, "targetMode": "days"},
            "attendanceData": {"2025-06-02": "office"},
        },
        "behind": {"pushToken": "tok-behind", "attendanceData": {"2025-06-02": "office"}},
        "opted-out": {"pushToken": "tok-out", "settings": {"weeklySummary": False}},
    }

    report = asyncio.run(jobs.send_weekly_summary(SummaryDay.MONDAY))

    assert report.user_ids == ("behind", "met")
    bodies = {token: message.body for token, message in push.sent}
    assert bodies["tok-met"].startswith("Great job!")
    # 21 weekdays at the 50% server default -> 11 required, 1 done.
    assert "10 more days" in bodies["tok-behind"]
    assert push.sent[0][1].data["daysRemaining"] == 10


def test_server_settings_default_to_percentage():
    settings = server_settings({})
    assert (settings.target_mode.value, settings.monthly_target) == ("percentage", 50)


def test_near_office_sends_once_per_day():
    remote, push, jobs = _jobs()

    result = asyncio.run(jobs.send_near_office("manual-1"))
    assert result.sent
    assert remote.users["manual-1"]["nearOffice"]["detected"] is True
    assert push.sent[0][1].data["type"] == "location_confirmation"

    logged = asyncio.run(jobs.send_near_office("manual-logged"))
    assert (logged.sent, logged.reason) == (False, "already_logged")


def test_near_office_validation():
    _, _, jobs = _jobs()
    with pytest.raises(ValidationError):
        asyncio.run(jobs.send_near_office(" "))
    with pytest.raises(NotFoundError):
        asyncio.run(jobs.send_near_office("ghost"))
    with pytest.raises(NotFoundError):
        asyncio.run(jobs.send_near_office("no-token"))


def test_reset_only_touches_set_flags():
    remote, _, jobs = _jobs()
    remote.users["manual-1"]["nearOffice"] = {"detected": True, "date": TODAY}
    remote.users["auto-1"]["nearOffice"] = {"detected": False}

    assert asyncio.run(jobs.reset_near_office_flags()) == 1
    assert remote.users["manual-1"]["nearOffice"]["detected"] is False
    assert [call[1] for call in remote.calls if call[0] == "write_units"] == ["manual-1"]
