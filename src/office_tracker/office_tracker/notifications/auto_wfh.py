from __future__ import annotations

import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from ..attendance.store import AttendanceStore
from ..common.datetime_utils import is_weekend, now_local, yesterday_string
from ..core.constants import AUTO_WFH_EARLIEST_HOUR, SETUP_GRACE_HOURS
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotificationError
from ..holidays.service import HolidayCache
from ..users.model import Settings, UserProfile
from . import messages
from .center import NotificationCenter

logger = logging.getLogger(__name__)


class AutoWfhFallback:
    """Logs an unrecorded previous weekday as work-from-home.

    Runs on app start/foreground. Skipped before 06:00, while onboarding is
    on screen, for users who never logged anything, and within 24 hours of
    finishing setup.
    """

    def __init__(
        self,
        store: AttendanceStore,
        holidays: HolidayCache,
        center: NotificationCenter,
        profile_source: Callable[[], UserProfile],
        settings_source: Callable[[], Settings],
        *,
        onboarding_active: Callable[[], bool] = lambda: False,
        remote_has_history: Optional[Callable[[], Awaitable[bool]]] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._store = store
        self._holidays = holidays
        self._center = center
        self._profile_source = profile_source
        self._settings_source = settings_source
        self._onboarding_active = onboarding_active
        self._remote_has_history = remote_has_history
        self._clock = clock

    async def _has_history(self) -> bool:
        if self._store.has_history():
            return True
        if self._remote_has_history is None:
            return False
        return await self._remote_has_history()

    async def run(self) -> Optional[str]:
        """Returns the date marked as WFH, if any."""
        now = self._clock()
        if now.hour < AUTO_WFH_EARLIEST_HOUR or self._onboarding_active():
            return None

        completed_at = self._settings_source().setup_completed_at
        if completed_at is None:
            return None
        elapsed_hours = (now.timestamp() * 1000 - completed_at) / 3_600_000
        if elapsed_hours < SETUP_GRACE_HOURS:
            logger.debug("Setup completed %.1fh ago; auto-WFH skipped", elapsed_hours)
            return None

        if not await self._has_history():
            return None

        yesterday = yesterday_string(now)
        if is_weekend(yesterday) or self._store.get(yesterday) is not None:
            return None
        if self._holidays.is_holiday(yesterday, self._profile_source().country):
            return None

        await self._store.mark(yesterday, AttendanceStatus.WFH)
        logger.info("Auto-logged %s as WFH", yesterday)
        try:
            await self._center.present(messages.auto_wfh_logged(yesterday))
        except NotificationError:
            logger.warning("Could not present auto-WFH notification", exc_info=True)
        return yesterday
