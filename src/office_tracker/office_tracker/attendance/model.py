from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from ..core.enums import AttendanceStatus, PlannedIntent

logger = logging.getLogger(__name__)


def _coerce(value: Any, enum_type):
    # Older documents store {status: "office", ...} instead of the bare string.
    if isinstance(value, Mapping):
        value = value.get("status")
    try:
        return enum_type(value)
    except ValueError:
        return None


def parse_attendance_map(data: Optional[Mapping[str, Any]]) -> Dict[str, AttendanceStatus]:
    parsed: Dict[str, AttendanceStatus] = {}
    for day, value in (data or {}).items():
        status = _coerce(value, AttendanceStatus)
        if status is None:
            logger.warning("Skipping attendance %s with unknown status %r", day, value)
            continue
        parsed[str(day)] = status
    return parsed


def parse_planned_map(data: Optional[Mapping[str, Any]]) -> Dict[str, PlannedIntent]:
    parsed: Dict[str, PlannedIntent] = {}
    for day, value in (data or {}).items():
        intent = _coerce(value, PlannedIntent)
        if intent is None:
            logger.warning("Skipping planned day %s with unknown intent %r", day, value)
            continue
        parsed[str(day)] = intent
    return parsed


def serialize_map(data: Mapping[str, Any]) -> Dict[str, str]:
    return {day: value.value for day, value in sorted(data.items())}
