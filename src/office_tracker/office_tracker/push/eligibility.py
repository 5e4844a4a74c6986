"""Predicates deciding which stored users a server job notifies."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..attendance.model import parse_attendance_map
from ..common.datetime_utils import is_weekend
from ..core.enums import DataUnit, TrackingMode
from ..holidays.model import holiday_dates
from ..users.model import UserProfile


def push_token(document: Mapping[str, Any]) -> Optional[str]:
    # Older clients stored the token as fcmToken.
    token = document.get(DataUnit.PUSH_TOKEN.value) or document.get("fcmToken")
    return str(token) if token else None


def tracking_mode(document: Mapping[str, Any]) -> TrackingMode:
    return UserProfile.from_dict(document.get(DataUnit.USER_DATA.value)).tracking_mode


def is_holiday_for(document: Mapping[str, Any], today: str) -> bool:
    return today in holiday_dates(document.get(DataUnit.CACHED_HOLIDAYS.value))


def has_logged(document: Mapping[str, Any], today: str) -> bool:
    return today in parse_attendance_map(document.get(DataUnit.ATTENDANCE.value))


def is_reminder_eligible(document: Mapping[str, Any], mode: TrackingMode, today: str) -> bool:
    return (
        push_token(document) is not None
        and tracking_mode(document) == mode
        and not is_weekend(today)
        and not is_holiday_for(document, today)
        and not has_logged(document, today)
    )


def is_summary_eligible(document: Mapping[str, Any], today: str) -> bool:
    settings = document.get(DataUnit.SETTINGS.value) or {}
    return (
        push_token(document) is not None
        and bool(settings.get("weeklySummary", True))
        and not is_holiday_for(document, today)
    )
