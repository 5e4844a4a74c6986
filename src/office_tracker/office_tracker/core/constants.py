"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

EARTH_RADIUS_KM = 6371.0
OFFICE_RADIUS_KM = 0.1

HOLIDAY_TTL_DAYS = 30
HOLIDAY_RETRY_MINUTES = 15
DEFAULT_HOLIDAY_NAME = "Public Holiday"

PLANNED_WINDOW_DAYS = 30
PLANNED_PRUNE_DAYS = 7
PLANNED_REMINDER_TIME = time(8, 0)

MANUAL_REMINDER_TIMES = {
    "morning": time(10, 0),
    "midday": time(13, 0),
    "afternoon": time(16, 0),
}
AUTO_REMINDER_TIME = time(18, 0)
WEEKLY_SUMMARY_TIME = time(9, 0)
SCHEDULED_LOCATION_CHECK_HOURS = (10, 13, 15)

AUTO_WFH_EARLIEST_HOUR = 6
SETUP_GRACE_HOURS = 24

REMOTE_TIMEOUT_SECONDS = 30.0
LOCATION_TIMEOUT_SECONDS = 15.0
HTTP_TIMEOUT_SECONDS = 10.0
MIGRATION_STALE_HOURS = 24
REALTIME_POLL_SECONDS = 5.0

DEFAULT_MONTHLY_TARGET = 15
DEFAULT_COUNTRY = "australia"

# Server-side defaults used when a user never saved settings.
SERVER_DEFAULT_TARGET_MODE = "percentage"
SERVER_DEFAULT_MONTHLY_TARGET = 50
DEFAULT_JOBS_TIMEZONE = "Australia/Sydney"
