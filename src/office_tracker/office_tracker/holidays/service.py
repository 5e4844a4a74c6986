from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..common.countries import resolve_country
from ..common.datetime_utils import now_ms, parse_local_date
from ..core.constants import DEFAULT_HOLIDAY_NAME, HOLIDAY_RETRY_MINUTES, HOLIDAY_TTL_DAYS
from ..core.enums import DataUnit
from ..core.exceptions import FetchError
from ..storage.local_cache import LocalCache
from ..sync.model import Mutation
from ..sync.port import MutationSink
from .client import HolidayClient
from .model import HolidayCacheEntry, cache_key, normalize_holidays

logger = logging.getLogger(__name__)


class HolidayCache:
    """Per (country, year) public holiday calendar.

    Entries are fresh for ``ttl_days`` after their last successful fetch. A
    stale or missing entry triggers a background refresh while callers get
    the stale entry (or the bundled static list) in the meantime. Background
    refreshes of one entry start at most once per ``retry_minutes``.
    """

    def __init__(
        self,
        client: HolidayClient,
        *,
        cache: Optional[LocalCache] = None,
        sync: Optional[MutationSink] = None,
        clock_ms: Callable[[], int] = now_ms,
        ttl_days: int = HOLIDAY_TTL_DAYS,
        retry_minutes: int = HOLIDAY_RETRY_MINUTES,
    ):
        self._client = client
        self._cache = cache
        self._sync = sync
        self._clock_ms = clock_ms
        self._ttl_ms = ttl_days * 24 * 3600 * 1000
        self._retry_ms = retry_minutes * 60 * 1000
        self._entries: Dict[str, HolidayCacheEntry] = {}
        self._refreshing: Dict[str, "asyncio.Task[bool]"] = {}
        self._last_attempt: Dict[str, int] = {}

    def load(self, cached_holidays: Optional[Mapping[str, Any]], last_updated: Optional[Mapping[str, Any]]) -> None:
        stamps = dict(last_updated or {})
        self._entries.clear()
        for key, value in (cached_holidays or {}).items():
            country, _, year = str(key).rpartition("_")
            if not country or not year.isdigit():
                # Flat legacy {date: name} maps carry no partition key.
                continue
            stamp = stamps.get(key)
            self._entries[key] = HolidayCacheEntry(
                country=country,
                year=int(year),
                holidays=normalize_holidays(value),
                last_updated=int(stamp) if stamp is not None else None,
            )

    def snapshot(self) -> Tuple[Dict[str, Dict[str, str]], Dict[str, int]]:
        holidays = {key: dict(entry.holidays) for key, entry in self._entries.items()}
        stamps = {key: entry.last_updated for key, entry in self._entries.items() if entry.last_updated is not None}
        return holidays, stamps

    def is_fresh(self, country: str, year: int) -> bool:
        entry = self._entries.get(cache_key(resolve_country(country).key, year))
        return entry is not None and entry.is_fresh(self._clock_ms(), self._ttl_ms)

    @staticmethod
    def static_fallback(country: str, year: int) -> Dict[str, str]:
        prefix = f"{year:04d}-"
        return {
            day: DEFAULT_HOLIDAY_NAME
            for day in resolve_country(country).static_holidays
            if day.startswith(prefix)
        }

    def get(self, country: str, year: int) -> Dict[str, str]:
        country = resolve_country(country).key
        entry = self._entries.get(cache_key(country, year))
        if entry is not None and entry.is_fresh(self._clock_ms(), self._ttl_ms):
            return dict(entry.holidays)

        self._schedule_refresh(country, year)
        if entry is not None and entry.holidays:
            return dict(entry.holidays)
        return self.static_fallback(country, year)

    def is_holiday(self, day: str, country: str, year: Optional[int] = None) -> bool:
        return day in self.get(country, year or parse_local_date(day).year)

    def holiday_name(self, day: str, country: str, year: Optional[int] = None) -> Optional[str]:
        return self.get(country, year or parse_local_date(day).year).get(day)

    def holidays_in_month(self, country: str, year: int, month: int) -> Dict[str, str]:
        prefix = f"{year:04d}-{month:02d}-"
        return {day: name for day, name in self.get(country, year).items() if day.startswith(prefix)}

    def _schedule_refresh(self, country: str, year: int) -> None:
        key = cache_key(country, year)
        if key in self._refreshing:
            return
        now = self._clock_ms()
        last = self._last_attempt.get(key)
        if last is not None and now - last < self._retry_ms:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; holiday refresh for %s deferred", key)
            return
        self._last_attempt[key] = now
        task = loop.create_task(self.refresh(country, year))
        self._refreshing[key] = task
        task.add_done_callback(lambda _task, k=key: self._refreshing.pop(k, None))

    async def wait_for_refreshes(self) -> None:
        tasks = list(self._refreshing.values())
        if tasks:
            await asyncio.gather(*tasks)

    async def refresh(self, country: str, year: int) -> bool:
        """Fetch and replace one entry; on failure the previous entry is kept."""
        info = resolve_country(country)
        try:
            holidays = await self._client.fetch(info.iso_code, year)
        except FetchError as exc:
            logger.warning("Holiday refresh failed for %s %s: %s", info.key, year, exc)
            return False

        entry = HolidayCacheEntry(country=info.key, year=year, holidays=dict(holidays), last_updated=self._clock_ms())
        self._entries[entry.key] = entry
        await self._persist()
        return True

    async def ensure_fresh(self, country: str, year: int) -> bool:
        """Refresh only when the entry is missing or stale; True if a refresh succeeded."""
        if self.is_fresh(country, year):
            return False
        return await self.refresh(country, year)

    async def refresh_current_and_next_year(self, country: str, today: Optional[date] = None) -> int:
        year = (today or date.today()).year
        results = await asyncio.gather(self.ensure_fresh(country, year), self.ensure_fresh(country, year + 1))
        return sum(1 for refreshed in results if refreshed)

    async def _persist(self) -> None:
        holidays, stamps = self.snapshot()
        if self._cache is not None:
            self._cache.write_unit(DataUnit.CACHED_HOLIDAYS.value, holidays)
            self._cache.write_unit(DataUnit.HOLIDAY_LAST_UPDATED.value, stamps)
        if self._sync is not None:
            await self._sync.persist(
                Mutation.save_all(
                    {DataUnit.CACHED_HOLIDAYS.value: holidays, DataUnit.HOLIDAY_LAST_UPDATED.value: stamps}
                )
            )
