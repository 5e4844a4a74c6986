from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence

from .attendance.store import AttendanceStore
from .common.datetime_utils import now_local, now_ms
from .core.constants import LOCATION_TIMEOUT_SECONDS, REMOTE_TIMEOUT_SECONDS, SCHEDULED_LOCATION_CHECK_HOURS
from .core.enums import CheckOutcome, DataUnit, PlannedIntent, TrackingMode
from .core.exceptions import NotificationError
from .database.connection import DBConfig, DatabaseConnection
from .holidays.client import HolidayClient, NagerHolidayClient
from .holidays.service import HolidayCache
from .location.geocoding import Geocoder, NominatimGeocoder
from .location.provider import LocationProvider
from .location.reconciler import GeofenceReconciler
from .notifications import messages
from .notifications.auto_wfh import AutoWfhFallback
from .notifications.center import NotificationCenter
from .notifications.intents import IntentHandler, IntentResult, intent_from_action
from .notifications.scheduler import NotificationScheduler
from .storage.local_cache import LocalCache
from .storage.mysql_remote_store import MySQLRemoteStore
from .storage.remote_store import RemoteStore
from .sync.engine import RemoteSyncEngine
from .users.service import ProfileService

logger = logging.getLogger(__name__)


def generate_user_id(device_model: str, timestamp_ms: Optional[int] = None) -> str:
    """``<device>_<epoch ms>_<random>``, assigned once on first launch."""
    model = (device_model or "device").strip().replace(" ", "-")
    return f"{model}_{timestamp_ms or now_ms()}_{uuid.uuid4().hex[:9]}"


class AppContext:
    """Owns every client-side component and their lifecycle.

    Usage:
        async with AppContext(...) as ctx:
            await ctx.on_geofence_enter()
    """

    def __init__(
        self,
        *,
        user_id: str,
        client_id: str,
        cache: LocalCache,
        remote: RemoteStore,
        holiday_client: HolidayClient,
        locator: LocationProvider,
        center: NotificationCenter,
        geocoder: Optional[Geocoder] = None,
        clock: Callable[[], datetime] = now_local,
        clock_ms: Callable[[], int] = now_ms,
        remote_timeout: float = REMOTE_TIMEOUT_SECONDS,
        location_timeout: float = LOCATION_TIMEOUT_SECONDS,
        check_hours: Sequence[int] = SCHEDULED_LOCATION_CHECK_HOURS,
    ):
        self._user_id = user_id
        self._clock = clock
        self._check_hours = tuple(check_hours)
        self.cache = cache
        self.center = center

        self.sync = RemoteSyncEngine(
            remote, cache, client_id=client_id, timeout_seconds=remote_timeout, clock_ms=clock_ms
        )
        self.store = AttendanceStore(cache, self.sync, clock=clock)
        self.profiles = ProfileService(cache, self.sync, geocoder=geocoder, clock_ms=clock_ms)
        self.holidays = HolidayCache(holiday_client, cache=cache, sync=self.sync, clock_ms=clock_ms)

        def profile_source():
            return self.profiles.profile

        def settings_source():
            return self.profiles.settings

        self.scheduler = NotificationScheduler(
            center, self.store, self.holidays, profile_source, settings_source, clock=clock
        )
        self.reconciler = GeofenceReconciler(
            self.store,
            self.holidays,
            profile_source,
            locator,
            on_auto_logged=self._on_auto_logged,
            clock=clock,
            fetch_timeout=location_timeout,
        )
        self.auto_wfh = AutoWfhFallback(
            self.store,
            self.holidays,
            center,
            profile_source,
            settings_source,
            onboarding_active=lambda: self._onboarding_active,
            remote_has_history=self.sync.remote_has_history,
            clock=clock,
        )
        self.intents = IntentHandler(self.store, self.reconciler, enable_location=self._enable_location, clock=clock)
        self.store.add_today_listener(self.scheduler.on_attendance_marked)

        self._onboarding_active = False
        self._started = False
        self._tasks: List["asyncio.Task[Any]"] = []
        self._location_task: Optional["asyncio.Task[None]"] = None

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        *,
        user_id: str,
        client_id: str,
        locator: LocationProvider,
        center: NotificationCenter,
    ) -> "AppContext":
        timeout = float(getattr(settings, "HTTP_TIMEOUT_SECONDS", 10))
        return cls(
            user_id=user_id,
            client_id=client_id,
            cache=LocalCache(getattr(settings, "LOCAL_CACHE_DIR")),
            remote=MySQLRemoteStore(DatabaseConnection(DBConfig.from_mapping(getattr(settings, "DB_CONFIG")))),
            holiday_client=NagerHolidayClient(getattr(settings, "HOLIDAY_API_URL"), timeout=timeout),
            geocoder=NominatimGeocoder(getattr(settings, "GEOCODER_URL"), timeout=timeout),
            locator=locator,
            center=center,
            remote_timeout=float(getattr(settings, "REMOTE_TIMEOUT_SECONDS", REMOTE_TIMEOUT_SECONDS)),
        )

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def started(self) -> bool:
        return self._started

    async def __aenter__(self) -> "AppContext":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # --- lifecycle ---

    def _local_snapshot(self) -> dict:
        document = self.cache.read()
        document[DataUnit.ATTENDANCE.value] = self.cache.recover_attendance()
        return document

    async def start(self) -> None:
        if self._started:
            return
        local = self._local_snapshot()
        await self.sync.initialize(self._user_id)
        snapshot = await self.sync.startup_reconcile(local)

        self.store.load(snapshot.get(DataUnit.ATTENDANCE.value), snapshot.get(DataUnit.PLANNED.value))
        self.profiles.load(snapshot.get(DataUnit.USER_DATA.value), snapshot.get(DataUnit.SETTINGS.value))
        self.holidays.load(
            snapshot.get(DataUnit.CACHED_HOLIDAYS.value), snapshot.get(DataUnit.HOLIDAY_LAST_UPDATED.value)
        )
        await self.store.prune_planned()

        self.sync.realtime_subscribe(self._on_remote_change)
        self._spawn(self.holidays.refresh_current_and_next_year(self.profiles.profile.country, self._clock().date()))
        self._started = True
        logger.info("App context started for %s (%d pending writes)", self._user_id, self.sync.pending_count)

        await self.on_foreground()
        self._sync_location_loop()

    async def close(self) -> None:
        self.sync.stop_realtime()
        tasks = [task for task in self._tasks if not task.done()]
        if self._location_task is not None:
            tasks.append(self._location_task)
            self._location_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._started = False

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.append(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: "asyncio.Task[Any]") -> None:
        if task in self._tasks:
            self._tasks.remove(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task failed", exc_info=task.exception())

    def _sync_location_loop(self) -> None:
        wanted = self._started and self.profiles.profile.is_auto
        running = self._location_task is not None and not self._location_task.done()
        if wanted and not running:
            self._location_task = asyncio.get_running_loop().create_task(
                self.reconciler.run_scheduled_checks(hours=self._check_hours)
            )
        elif not wanted and running:
            self._location_task.cancel()
            self._location_task = None

    # --- triggers ---

    async def on_foreground(self) -> None:
        await self.sync.drain_queue()
        if self.profiles.profile.is_auto:
            await self.reconciler.check_now()
        await self.auto_wfh.run()
        await self.scheduler.reconcile()

    async def on_geofence_enter(self) -> CheckOutcome:
        return await self.reconciler.on_geofence_enter()

    async def handle_notification_response(
        self, action: str, data: Optional[Mapping[str, Any]] = None
    ) -> IntentResult:
        return await self.intents.handle(intent_from_action(action, data))

    # --- user operations ---

    def begin_onboarding(self) -> None:
        self._onboarding_active = True

    async def complete_onboarding(self) -> None:
        self._onboarding_active = False
        await self.profiles.complete_setup()
        await self.scheduler.reconcile()

    async def change_tracking_mode(self, mode: TrackingMode | str) -> None:
        previous = await self.profiles.set_tracking_mode(mode)
        current = self.profiles.profile.tracking_mode
        if previous == current:
            return
        await self.scheduler.on_mode_change(previous, current)
        self._sync_location_loop()

    async def plan(self, day: str, intent: PlannedIntent | str) -> bool:
        changed = await self.store.plan(day, intent)
        if changed:
            await self.scheduler.reconcile()
        return changed

    async def unplan(self, day: str) -> bool:
        changed = await self.store.unplan(day)
        if changed:
            await self.scheduler.reconcile()
        return changed

    # --- collaborators ---

    async def _on_auto_logged(self, day: str) -> None:
        try:
            await self.center.present(messages.auto_office_logged(day))
        except NotificationError:
            logger.warning("Could not present auto-log notification", exc_info=True)

    async def _enable_location(self) -> None:
        await self.change_tracking_mode(TrackingMode.AUTO)

    async def _on_remote_change(self, unit: str, value: Any) -> None:
        if unit in (DataUnit.ATTENDANCE.value, DataUnit.PLANNED.value):
            changed = await self.store.apply_remote(unit, value)
        elif unit in (DataUnit.USER_DATA.value, DataUnit.SETTINGS.value):
            previous = self.profiles.profile.tracking_mode
            changed = await self.profiles.apply_remote(unit, value)
            current = self.profiles.profile.tracking_mode
            if current != previous:
                await self.scheduler.on_mode_change(previous, current)
                self._sync_location_loop()
                return
        elif unit in (DataUnit.CACHED_HOLIDAYS.value, DataUnit.HOLIDAY_LAST_UPDATED.value):
            cached, stamps = self.holidays.snapshot()
            if unit == DataUnit.CACHED_HOLIDAYS.value:
                cached = value or {}
            else:
                stamps = value or {}
            self.holidays.load(cached, stamps)
            changed = True
        else:
            return
        if changed:
            await self.scheduler.reconcile()
