from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..core.constants import DEFAULT_HOLIDAY_NAME


def cache_key(country: str, year: int) -> str:
    return f"{country}_{year}"


def normalize_holidays(value: Any) -> Dict[str, str]:
    """Accept the current {date: name} map or the legacy list of dates."""
    if not value:
        return {}
    if isinstance(value, dict):
        return {str(day): str(name or DEFAULT_HOLIDAY_NAME) for day, name in value.items()}
    return {str(day): DEFAULT_HOLIDAY_NAME for day in value}


def holiday_dates(cached_holidays: Any) -> Dict[str, str]:
    """Flatten a stored ``cachedHolidays`` unit into one {date: name} map.

    The unit is normally partitioned by ``country_year`` but older documents
    store a flat date map; both shapes are accepted.
    """
    if not isinstance(cached_holidays, dict):
        return normalize_holidays(cached_holidays)
    flat: Dict[str, str] = {}
    for key, value in cached_holidays.items():
        if isinstance(value, (dict, list)):
            flat.update(normalize_holidays(value))
        else:
            flat[str(key)] = str(value or DEFAULT_HOLIDAY_NAME)
    return flat


@dataclass(frozen=True)
class HolidayCacheEntry:
    country: str
    year: int
    holidays: Dict[str, str] = field(default_factory=dict)
    last_updated: Optional[int] = None

    @property
    def key(self) -> str:
        return cache_key(self.country, self.year)

    def is_fresh(self, now_ms: int, ttl_ms: int) -> bool:
        return self.last_updated is not None and now_ms - self.last_updated < ttl_ms
