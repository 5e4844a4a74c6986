from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, Sequence

from ..attendance.store import AttendanceStore
from ..common.datetime_utils import is_weekend, now_local, today_string
from ..common.geo import haversine_km, is_within_radius
from ..core.constants import LOCATION_TIMEOUT_SECONDS, OFFICE_RADIUS_KM, SCHEDULED_LOCATION_CHECK_HOURS
from ..core.enums import AttendanceStatus, CheckOutcome, DayCheckState
from ..holidays.service import HolidayCache
from ..users.model import UserProfile
from .provider import LocationProvider

logger = logging.getLogger(__name__)

AutoLoggedCallback = Callable[[str], Awaitable[None]]


def next_check_at(now: datetime, hours: Sequence[int] = SCHEDULED_LOCATION_CHECK_HOURS) -> datetime:
    """Next weekday check time strictly after ``now``."""
    candidate_day = now.replace(minute=0, second=0, microsecond=0)
    for offset in range(8):
        day = candidate_day + timedelta(days=offset)
        if day.weekday() >= 5:
            continue
        for hour in sorted(hours):
            slot = day.replace(hour=hour)
            if slot > now:
                return slot
    raise ValueError("No check hours configured")


class GeofenceReconciler:
    """Decides office arrival from the device position.

    Per-day state: UNCHECKED -> CHECKING -> AUTO_LOGGED | UNCHECKED, reset at
    local midnight. An existing record for today short-circuits every trigger
    before any location fetch.
    """

    def __init__(
        self,
        store: AttendanceStore,
        holidays: HolidayCache,
        profile_source: Callable[[], UserProfile],
        locator: LocationProvider,
        *,
        on_auto_logged: Optional[AutoLoggedCallback] = None,
        clock: Callable[[], datetime] = now_local,
        fetch_timeout: float = LOCATION_TIMEOUT_SECONDS,
        radius_km: float = OFFICE_RADIUS_KM,
    ):
        self._store = store
        self._holidays = holidays
        self._profile_source = profile_source
        self._locator = locator
        self._on_auto_logged = on_auto_logged
        self._clock = clock
        self._fetch_timeout = fetch_timeout
        self._radius_km = radius_km
        self._day: Optional[str] = None
        self._state = DayCheckState.UNCHECKED

    @property
    def state(self) -> DayCheckState:
        self._roll_day(today_string(self._clock()))
        return self._state

    def _roll_day(self, today: str) -> None:
        if self._day != today:
            self._day = today
            self._state = DayCheckState.UNCHECKED

    def _precondition_failure(self, today: str, profile: UserProfile) -> Optional[CheckOutcome]:
        if self._state == DayCheckState.AUTO_LOGGED or self._store.get(today) is not None:
            return CheckOutcome.ALREADY_LOGGED
        if not profile.is_auto:
            return CheckOutcome.NOT_AUTO_MODE
        if is_weekend(today):
            return CheckOutcome.WEEKEND
        if self._holidays.is_holiday(today, profile.country):
            return CheckOutcome.HOLIDAY
        if profile.company_location is None:
            return CheckOutcome.NO_OFFICE_LOCATION
        if self._state == DayCheckState.CHECKING:
            return CheckOutcome.BUSY
        return None

    async def _check(self, trigger: str) -> CheckOutcome:
        today = today_string(self._clock())
        self._roll_day(today)
        profile = self._profile_source()

        failure = self._precondition_failure(today, profile)
        if failure is not None:
            logger.debug("%s check skipped: %s", trigger, failure.value)
            return failure

        self._state = DayCheckState.CHECKING
        try:
            position = await asyncio.wait_for(self._locator.current_position(), timeout=self._fetch_timeout)
        except Exception:
            logger.warning("%s location fetch failed", trigger, exc_info=True)
            self._state = DayCheckState.UNCHECKED
            return CheckOutcome.FETCH_FAILED

        distance = haversine_km(position, profile.company_location)
        if not is_within_radius(distance, self._radius_km):
            logger.debug("%s check: %.3f km from office", trigger, distance)
            self._state = DayCheckState.UNCHECKED
            return CheckOutcome.TOO_FAR

        if self._store.get(today) is not None:
            # A record appeared while the fix was in flight.
            self._state = DayCheckState.UNCHECKED
            return CheckOutcome.RACED

        await self._store.mark(today, AttendanceStatus.OFFICE)
        self._state = DayCheckState.AUTO_LOGGED
        logger.info("Auto-logged %s as office (%s, %.0f m)", today, trigger, distance * 1000)

        if self._on_auto_logged is not None:
            try:
                await self._on_auto_logged(today)
            except Exception:
                logger.exception("Auto-log follow-up failed for %s", today)
        return CheckOutcome.LOGGED

    async def on_geofence_enter(self) -> CheckOutcome:
        return await self._check("geofence")

    async def check_now(self) -> CheckOutcome:
        return await self._check("manual")

    async def run_scheduled_checks(self, *, hours: Sequence[int] = SCHEDULED_LOCATION_CHECK_HOURS) -> None:
        """Loop forever, checking at the configured weekday hours."""
        while True:
            now = self._clock()
            delay = (next_check_at(now, hours) - now).total_seconds()
            await asyncio.sleep(max(delay, 0))
            outcome = await self._check("scheduled")
            logger.debug("Scheduled location check: %s", outcome.value)
