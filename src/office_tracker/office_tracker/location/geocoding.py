from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from ..common.countries import country_from_iso
from ..common.geo import Coordinates
from ..core.constants import HTTP_TIMEOUT_SECONDS
from ..core.exceptions import FetchError

logger = logging.getLogger(__name__)

DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org"


@dataclass(frozen=True)
class GeocodeResult:
    country_key: Optional[str]
    iso_code: Optional[str]
    location: Optional[Coordinates]
    display_name: str = ""


class Geocoder(Protocol):
    async def lookup(self, address: str) -> GeocodeResult:
        raise NotImplementedError


class NominatimGeocoder:
    def __init__(
        self,
        base_url: str = DEFAULT_GEOCODER_URL,
        *,
        user_agent: str = "office-tracker",
        timeout: float = HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent
        self._timeout = timeout
        self._session = session or requests.Session()

    def _lookup_sync(self, address: str) -> GeocodeResult:
        try:
            response = self._session.get(
                f"{self._base_url}/search",
                params={"format": "json", "addressdetails": 1, "limit": 1, "q": address},
                headers={"User-Agent": self._user_agent},
                timeout=self._timeout,
            )
            response.raise_for_status()
            results = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise FetchError(f"Geocoding failed for {address!r}: {exc}") from exc

        if not results:
            raise FetchError(f"No geocoding match for {address!r}")

        best = results[0]
        iso_code = ((best.get("address") or {}).get("country_code") or "").upper() or None
        country = country_from_iso(iso_code)
        location = Coordinates.from_dict({"lat": best.get("lat"), "lon": best.get("lon")})
        return GeocodeResult(
            country_key=country.key if country else None,
            iso_code=iso_code,
            location=location,
            display_name=str(best.get("display_name") or ""),
        )

    async def lookup(self, address: str) -> GeocodeResult:
        return await asyncio.to_thread(self._lookup_sync, address)
