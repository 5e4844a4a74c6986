from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from ..common.datetime_utils import days_between, now_local, today_string
from ..common.validators import require_date_string, require_enum
from ..core.constants import PLANNED_PRUNE_DAYS
from ..core.enums import AttendanceStatus, DataUnit, PlannedIntent
from ..storage.local_cache import LocalCache
from ..sync.model import Mutation
from ..sync.port import MutationSink
from .model import parse_attendance_map, parse_planned_map, serialize_map

logger = logging.getLogger(__name__)

TodayListener = Callable[[str], Awaitable[Any]]


class AttendanceStore:
    """Single writer of attendance records and planned days.

    Every mutation is applied in memory, mirrored to the local cache
    synchronously and then handed to the sync engine. Changes to today's
    record notify the registered listeners (reminder cancellation).
    """

    def __init__(
        self,
        cache: LocalCache,
        sync: MutationSink,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._cache = cache
        self._sync = sync
        self._clock = clock
        self._attendance: Dict[str, AttendanceStatus] = {}
        self._planned: Dict[str, PlannedIntent] = {}
        self._today_listeners: List[TodayListener] = []

    def add_today_listener(self, listener: TodayListener) -> None:
        self._today_listeners.append(listener)

    def _today(self) -> str:
        return today_string(self._clock())

    async def _notify_today(self, day: str) -> None:
        for listener in self._today_listeners:
            try:
                await listener(day)
            except Exception:
                logger.exception("Today listener failed for %s", day)

    # --- reads ---

    def load(self, attendance: Optional[Mapping[str, Any]], planned: Optional[Mapping[str, Any]]) -> None:
        self._attendance = parse_attendance_map(attendance)
        self._planned = parse_planned_map(planned)

    def get(self, day: str) -> Optional[AttendanceStatus]:
        return self._attendance.get(day)

    def attendance(self) -> Dict[str, AttendanceStatus]:
        return dict(self._attendance)

    def planned(self) -> Dict[str, PlannedIntent]:
        return dict(self._planned)

    def has_history(self) -> bool:
        return bool(self._attendance)

    # --- attendance writes ---

    def _mirror_attendance(self) -> None:
        self._cache.write_attendance(serialize_map(self._attendance))

    def _mirror_planned(self) -> None:
        self._cache.write_unit(DataUnit.PLANNED.value, serialize_map(self._planned))

    async def mark(self, day: str, status: AttendanceStatus | str) -> bool:
        """Record ``status`` for ``day``; returns False when nothing changed."""
        day = require_date_string(day)
        status = require_enum(status, AttendanceStatus, "status")
        if self._attendance.get(day) == status:
            return False

        self._attendance[day] = status
        self._mirror_attendance()
        if day == self._today():
            await self._notify_today(day)
        await self._sync.persist(Mutation.set_attendance(day, status.value))
        return True

    async def clear(self, day: str) -> bool:
        day = require_date_string(day)
        if day not in self._attendance:
            return False

        del self._attendance[day]
        self._mirror_attendance()
        if day == self._today():
            await self._notify_today(day)
        await self._sync.persist(Mutation.delete_attendance(day))
        return True

    async def bulk_mark(self, days: Iterable[str], status: AttendanceStatus | str) -> int:
        status = require_enum(status, AttendanceStatus, "status")
        changed = [d for d in (require_date_string(day) for day in days) if self._attendance.get(d) != status]
        if not changed:
            return 0

        for day in changed:
            self._attendance[day] = status
        self._mirror_attendance()
        today = self._today()
        if today in changed:
            await self._notify_today(today)
        await self._sync.persist(Mutation.update_unit(DataUnit.ATTENDANCE, serialize_map(self._attendance)))
        return len(changed)

    # --- planned days ---

    async def plan(self, day: str, intent: PlannedIntent | str) -> bool:
        day = require_date_string(day)
        intent = require_enum(intent, PlannedIntent, "intent")
        if self._planned.get(day) == intent:
            return False
        self._planned[day] = intent
        await self._save_planned()
        return True

    async def unplan(self, day: str) -> bool:
        if self._planned.pop(require_date_string(day), None) is None:
            return False
        await self._save_planned()
        return True

    async def prune_planned(self, today: Optional[str] = None) -> List[str]:
        today = today or self._today()
        stale = [day for day in self._planned if days_between(day, today) > PLANNED_PRUNE_DAYS]
        if not stale:
            return []
        for day in stale:
            del self._planned[day]
        logger.info("Pruned %d planned days older than %d days", len(stale), PLANNED_PRUNE_DAYS)
        await self._save_planned()
        return stale

    async def _save_planned(self) -> None:
        self._mirror_planned()
        await self._sync.persist(Mutation.update_unit(DataUnit.PLANNED, serialize_map(self._planned)))

    # --- remote merge ---

    async def apply_remote(self, unit: str, data: Any) -> bool:
        """Adopt a remote unit value; mirrors locally but never persists back."""
        if unit == DataUnit.ATTENDANCE.value:
            incoming = parse_attendance_map(data)
            if incoming == self._attendance:
                return False
            today = self._today()
            today_changed = incoming.get(today) != self._attendance.get(today)
            self._attendance = incoming
            self._mirror_attendance()
            if today_changed:
                await self._notify_today(today)
            return True
        if unit == DataUnit.PLANNED.value:
            incoming_planned = parse_planned_map(data)
            if incoming_planned == self._planned:
                return False
            self._planned = incoming_planned
            self._mirror_planned()
            return True
        return False
