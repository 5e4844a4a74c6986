import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "office_tracker_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

JOBS_TIMEZONE = "Australia/Sydney"

HOLIDAY_API_URL = "http://holidays.invalid/api/v3/PublicHolidays"
GEOCODER_URL = "http://geocoder.invalid"
PUSH_API_URL = "http://push.invalid/--/api/v2/push/send"
HTTP_TIMEOUT_SECONDS = 1.0
REMOTE_TIMEOUT_SECONDS = 1.0

LOCAL_CACHE_DIR = os.getenv("LOCAL_CACHE_DIR", ".office_tracker_cache_test")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
