from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Recorded outcome of a working day."""

    OFFICE = "office"
    WFH = "wfh"
    LEAVE = "leave"


class PlannedIntent(str, Enum):
    """Intent stated ahead of time for a future date."""

    OFFICE = "office"
    WFH = "wfh"
    LEAVE = "leave"


class TrackingMode(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


class TargetMode(str, Enum):
    """How the monthly target is expressed: absolute days or share of working days."""

    DAYS = "days"
    PERCENTAGE = "percentage"


class StatsPeriod(str, Enum):
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class NotificationCategory(str, Enum):
    MANUAL_REMINDER = "manual_reminder"
    AUTO_REMINDER = "auto_reminder"
    PLANNED_OFFICE_DAY = "planned_office_day"
    WEEKLY_SUMMARY = "weekly_summary"
    AUTO_OFFICE_LOG = "auto_office_log"
    AUTO_WFH_LOG = "auto_wfh_log"
    LOCATION_CONFIRMATION = "location_confirmation"


class Delivery(str, Enum):
    """Who is responsible for firing a notification."""

    LOCAL = "local"
    SERVER = "server"


class ReminderSlot(str, Enum):
    MORNING = "morning"
    MIDDAY = "midday"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class SummaryDay(str, Enum):
    MONDAY = "monday"
    FRIDAY = "friday"


class GuardState(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"


class DayCheckState(str, Enum):
    """Per-day geofence state; reset at local midnight."""

    UNCHECKED = "unchecked"
    CHECKING = "checking"
    AUTO_LOGGED = "auto_logged"


class CheckOutcome(str, Enum):
    """Why a location trigger did (or did not) log the day."""

    LOGGED = "logged"
    ALREADY_LOGGED = "already_logged"
    NOT_AUTO_MODE = "not_auto_mode"
    WEEKEND = "weekend"
    HOLIDAY = "holiday"
    NO_OFFICE_LOCATION = "no_office_location"
    BUSY = "busy"
    TOO_FAR = "too_far"
    FETCH_FAILED = "fetch_failed"
    RACED = "raced"


class SyncOperation(str, Enum):
    SET_ATTENDANCE = "set_attendance"
    DELETE_ATTENDANCE = "delete_attendance"
    UPDATE_UNIT = "update_unit"
    SAVE_ALL = "save_all"


class DataUnit(str, Enum):
    """Top-level keys of a user's remote document."""

    ATTENDANCE = "attendanceData"
    PLANNED = "plannedDays"
    USER_DATA = "userData"
    SETTINGS = "settings"
    CACHED_HOLIDAYS = "cachedHolidays"
    HOLIDAY_LAST_UPDATED = "holidayLastUpdated"
    PUSH_TOKEN = "pushToken"
    NEAR_OFFICE = "nearOffice"
    MIGRATION_COMPLETED = "migrationCompleted"
