from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Protocol

import requests

from ..core.constants import HTTP_TIMEOUT_SECONDS
from ..core.exceptions import FetchError

logger = logging.getLogger(__name__)

DEFAULT_HOLIDAY_API_URL = "https://date.nager.at/api/v3/PublicHolidays"


class HolidayClient(Protocol):
    async def fetch(self, iso_code: str, year: int) -> Dict[str, str]:
        """Public holidays for a country/year as {date: name}; raises FetchError."""
        raise NotImplementedError


class NagerHolidayClient:
    """Public holiday lookup against the Nager.Date API."""

    def __init__(
        self,
        base_url: str = DEFAULT_HOLIDAY_API_URL,
        *,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def _fetch_sync(self, iso_code: str, year: int) -> Dict[str, str]:
        url = f"{self._base_url}/{year}/{iso_code}"
        try:
            response = self._session.get(url, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise FetchError(f"Holiday fetch failed for {iso_code} {year}: {exc}") from exc

        holidays = {
            item["date"]: item.get("name") or item.get("localName") or ""
            for item in payload or []
            if "Public" in (item.get("types") or [])
        }
        logger.info("Fetched %d public holidays for %s %s", len(holidays), iso_code, year)
        return holidays

    async def fetch(self, iso_code: str, year: int) -> Dict[str, str]:
        return await asyncio.to_thread(self._fetch_sync, iso_code, year)
