from __future__ import annotations

import re
from typing import Any, Type, TypeVar

from ..core.exceptions import ValidationError
from .datetime_utils import parse_local_date

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

E = TypeVar("E")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_date_string(value: Any, field_name: str = "date") -> str:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError(f"{field_name} must be YYYY-MM-DD, got {value!r}")
    try:
        parse_local_date(value)
    except ValueError:
        raise ValidationError(f"{field_name} is not a calendar date: {value!r}")
    return value


def require_in_range(value: Any, field_name: str, low: int, high: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if number < low or number > high:
        raise ValidationError(f"{field_name} must be between {low} and {high}")
    return number


def require_enum(value: Any, enum_type: Type[E], field_name: str) -> E:
    try:
        return enum_type(value)  # type: ignore[call-arg]
    except ValueError:
        raise ValidationError(f"{field_name} has unsupported value {value!r}")
