from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Tuple

from ..common.countries import resolve_country
from ..common.datetime_utils import now_ms
from ..common.geo import Coordinates
from ..common.validators import require_enum, require_in_range, require_non_empty
from ..core.constants import DEFAULT_COUNTRY
from ..core.enums import DataUnit, TargetMode, TrackingMode
from ..core.exceptions import FetchError
from ..location.geocoding import Geocoder
from ..storage.local_cache import LocalCache
from ..sync.model import Mutation
from ..sync.port import MutationSink
from .model import Settings, UserProfile

logger = logging.getLogger(__name__)


class ProfileService:
    """Owns the user profile (``userData``) and settings units."""

    def __init__(
        self,
        cache: LocalCache,
        sync: MutationSink,
        *,
        geocoder: Optional[Geocoder] = None,
        clock_ms: Callable[[], int] = now_ms,
    ):
        self._cache = cache
        self._sync = sync
        self._geocoder = geocoder
        self._clock_ms = clock_ms
        self._profile = UserProfile()
        self._settings = Settings()

    @property
    def profile(self) -> UserProfile:
        return self._profile

    @property
    def settings(self) -> Settings:
        return self._settings

    def load(self, user_data: Any, settings: Any) -> None:
        self._profile = UserProfile.from_dict(user_data)
        self._settings = Settings.from_dict(settings)

    async def _save_profile(self, profile: UserProfile) -> UserProfile:
        self._profile = profile
        data = profile.to_dict()
        self._cache.write_unit(DataUnit.USER_DATA.value, data)
        await self._sync.persist(Mutation.update_unit(DataUnit.USER_DATA, data))
        return profile

    async def _save_settings(self, settings: Settings) -> Settings:
        self._settings = settings
        data = settings.to_dict()
        self._cache.write_unit(DataUnit.SETTINGS.value, data)
        await self._sync.persist(Mutation.update_unit(DataUnit.SETTINGS, data))
        return settings

    async def set_tracking_mode(self, mode: TrackingMode | str) -> TrackingMode:
        """Switch mode and return the previous one."""
        mode = require_enum(mode, TrackingMode, "trackingMode")
        previous = self._profile.tracking_mode
        if mode != previous:
            await self._save_profile(self._profile.with_changes(tracking_mode=mode))
        return previous

    async def resolve_country(self, address: str) -> Tuple[str, Optional[Coordinates]]:
        """Country key (and coordinates) for a free-text address; the default
        country when geocoding is unavailable or inconclusive."""
        if self._geocoder is None:
            return DEFAULT_COUNTRY, None
        try:
            result = await self._geocoder.lookup(address)
        except FetchError as exc:
            logger.warning("Falling back to %s: %s", DEFAULT_COUNTRY, exc)
            return DEFAULT_COUNTRY, None
        return result.country_key or DEFAULT_COUNTRY, result.location

    async def set_company(
        self, name: str, address: str, *, location: Optional[Coordinates] = None
    ) -> UserProfile:
        name = require_non_empty(name, "companyName")
        address = require_non_empty(address, "companyAddress")
        country, geocoded = await self.resolve_country(address)
        return await self._save_profile(
            self._profile.with_changes(
                company_name=name,
                company_address=address,
                company_location=location or geocoded,
                country=country,
            )
        )

    async def set_company_location(self, location: Optional[Coordinates]) -> UserProfile:
        return await self._save_profile(self._profile.with_changes(company_location=location))

    async def set_country(self, country: str) -> UserProfile:
        return await self._save_profile(self._profile.with_changes(country=resolve_country(country).key))

    async def set_target(self, value: int, mode: TargetMode | str | None = None) -> Settings:
        mode = require_enum(mode, TargetMode, "targetMode") if mode is not None else self._settings.target_mode
        upper = 100 if mode == TargetMode.PERCENTAGE else 31
        value = require_in_range(value, "monthlyTarget", 1, upper)
        return await self._save_settings(self._settings.with_changes(monthly_target=value, target_mode=mode))

    async def set_weekly_summary(self, enabled: bool) -> Settings:
        return await self._save_settings(self._settings.with_changes(weekly_summary=bool(enabled)))

    async def complete_setup(self) -> Settings:
        if self._settings.setup_completed_at is not None:
            return self._settings
        return await self._save_settings(self._settings.with_changes(setup_completed_at=self._clock_ms()))

    def popular_companies(self) -> Tuple[str, ...]:
        return resolve_country(self._profile.country).popular_companies

    async def apply_remote(self, unit: str, data: Any) -> bool:
        if unit == DataUnit.USER_DATA.value:
            incoming = UserProfile.from_dict(data)
            changed = incoming != self._profile
            self._profile = incoming
        elif unit == DataUnit.SETTINGS.value:
            incoming_settings = Settings.from_dict(data)
            changed = incoming_settings != self._settings
            self._settings = incoming_settings
        else:
            return False
        if changed:
            self._cache.write_unit(unit, data)
        return changed
