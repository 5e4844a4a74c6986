"""Notification content shared by the client scheduler and the push jobs."""

from __future__ import annotations

from ..common.datetime_utils import at_time_on
from ..attendance.stats import MonthlySummary
from ..core.constants import AUTO_REMINDER_TIME, MANUAL_REMINDER_TIMES, PLANNED_REMINDER_TIME, WEEKLY_SUMMARY_TIME
from ..core.enums import Delivery, NotificationCategory, ReminderSlot, SummaryDay
from .model import Notification

CHECKIN_ACTIONS = ("office", "wfh", "leave")
PLANNED_ACTIONS = ("confirm_office", "change_wfh")

_MANUAL_TITLES = {
    ReminderSlot.MORNING: "Morning Check-in",
    ReminderSlot.MIDDAY: "Midday Check-in",
    ReminderSlot.AFTERNOON: "Afternoon Check-in",
}
_MANUAL_BODIES = {
    ReminderSlot.MORNING: "Where are you working today? Log your attendance.",
    ReminderSlot.MIDDAY: "You haven't logged today yet. Office, home or leave?",
    ReminderSlot.AFTERNOON: "Last call: log today's attendance before you forget.",
}


def manual_reminder(slot: ReminderSlot, day: str) -> Notification:
    return Notification(
        key=f"{NotificationCategory.MANUAL_REMINDER.value}:{day}:{slot.value}",
        category=NotificationCategory.MANUAL_REMINDER,
        title=_MANUAL_TITLES[slot],
        body=_MANUAL_BODIES[slot],
        date=day,
        fire_at=at_time_on(day, MANUAL_REMINDER_TIMES[slot.value]),
        delivery=Delivery.SERVER,
        actions=CHECKIN_ACTIONS,
        data={"type": "manual_reminder", "slot": slot.value, "date": day},
    )


def auto_reminder(day: str) -> Notification:
    return Notification(
        key=f"{NotificationCategory.AUTO_REMINDER.value}:{day}",
        category=NotificationCategory.AUTO_REMINDER,
        title="Attendance not detected",
        body="We couldn't detect an office visit today. Please log where you worked.",
        date=day,
        fire_at=at_time_on(day, AUTO_REMINDER_TIME),
        delivery=Delivery.SERVER,
        actions=CHECKIN_ACTIONS,
        data={"type": "auto_reminder", "date": day},
    )


def planned_office_day(day: str) -> Notification:
    return Notification(
        key=f"{NotificationCategory.PLANNED_OFFICE_DAY.value}:{day}",
        category=NotificationCategory.PLANNED_OFFICE_DAY,
        title="Planned office day",
        body="You planned to work from the office today. Still going in?",
        date=day,
        fire_at=at_time_on(day, PLANNED_REMINDER_TIME),
        delivery=Delivery.LOCAL,
        actions=PLANNED_ACTIONS,
        data={"type": "planned", "date": day, "replacesDailyNotifications": True},
    )


def weekly_summary(day: SummaryDay, on_date: str) -> Notification:
    return Notification(
        key=f"{NotificationCategory.WEEKLY_SUMMARY.value}:{on_date}",
        category=NotificationCategory.WEEKLY_SUMMARY,
        title=f"{day.value.capitalize()} Office Check",
        body="Your office attendance summary for this month.",
        date=on_date,
        fire_at=at_time_on(on_date, WEEKLY_SUMMARY_TIME),
        delivery=Delivery.SERVER,
        data={"type": "weekly_summary", "day": day.value, "action": "open_stats"},
    )


def weekly_summary_body(summary: MonthlySummary) -> str:
    if summary.days_remaining == 0:
        return f"Great job! You've met your office target for this month ({summary.office_days} days)."
    if summary.days_remaining == 1:
        return (
            "You need to come in 1 more day this month to meet your target. "
            f"You've completed {summary.office_days} days so far."
        )
    return (
        f"You need to come in {summary.days_remaining} more days this month. "
        f"You've completed {summary.office_days} days so far."
    )


def auto_office_logged(day: str) -> Notification:
    return Notification(
        key=f"{NotificationCategory.AUTO_OFFICE_LOG.value}:{day}",
        category=NotificationCategory.AUTO_OFFICE_LOG,
        title="Office Attendance Auto-Logged",
        body="You're at the office. Today has been logged as an office day.",
        date=day,
        data={"type": "auto_office_log", "date": day},
    )


def auto_wfh_logged(day: str) -> Notification:
    return Notification(
        key=f"{NotificationCategory.AUTO_WFH_LOG.value}:{day}",
        category=NotificationCategory.AUTO_WFH_LOG,
        title="Work From Home Logged",
        body=f"No attendance was recorded for {day}, so it was logged as working from home.",
        date=day,
        actions=CHECKIN_ACTIONS,
        data={"type": "auto_wfh_log", "date": day},
    )


def near_office_confirmation(day: str) -> Notification:
    return Notification(
        key=f"{NotificationCategory.LOCATION_CONFIRMATION.value}:{day}",
        category=NotificationCategory.LOCATION_CONFIRMATION,
        title="Near your office",
        body="Looks like you're at the office. Log today as an office day?",
        date=day,
        delivery=Delivery.SERVER,
        actions=CHECKIN_ACTIONS,
        data={"type": "location_confirmation", "autoLog": "office", "date": day},
    )
