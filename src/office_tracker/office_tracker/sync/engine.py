from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from ..common.datetime_utils import now_ms
from ..common.guards import ReentrancyGuard
from ..core.constants import MIGRATION_STALE_HOURS, REMOTE_TIMEOUT_SECONDS
from ..core.enums import DataUnit, SyncOperation
from ..core.exceptions import RemoteTimeoutError, SyncError
from ..storage.local_cache import LocalCache
from ..storage.model import RemoteChange, UnitChange, WriteTag
from ..storage.remote_store import RemoteStore, Subscription
from .model import Mutation, SyncQueueItem
from .queue import SyncQueue

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[str, Any], Awaitable[None]]

_MAP_UNITS = (DataUnit.ATTENDANCE.value, DataUnit.PLANNED.value)
_PLAIN_UNITS = (
    DataUnit.USER_DATA.value,
    DataUnit.SETTINGS.value,
    DataUnit.CACHED_HOLIDAYS.value,
    DataUnit.HOLIDAY_LAST_UPDATED.value,
)
_TRANSIENT_ERRORS = (SyncError, OSError)


class RemoteSyncEngine:
    """Persists local mutations to the remote store.

    - optimistic: a failed or timed-out write is queued, never raised
    - the queue replays strictly FIFO and stops at the first failure
    - every write carries a ``WriteTag`` so realtime echoes of this client's
      own writes are recognised and dropped
    - every write goes through the queue, so none overtakes one still in flight
    - non-echo remote changes always apply: the store holds whichever write
      reached it last
    """

    def __init__(
        self,
        remote: RemoteStore,
        cache: LocalCache,
        *,
        client_id: str,
        timeout_seconds: float = REMOTE_TIMEOUT_SECONDS,
        clock_ms: Callable[[], int] = now_ms,
        migration_stale_hours: int = MIGRATION_STALE_HOURS,
    ):
        self._remote = remote
        self._cache = cache
        self._client_id = client_id
        self._timeout = timeout_seconds
        self._clock_ms = clock_ms
        self._migration_stale_ms = migration_stale_hours * 3600 * 1000
        self._queue = SyncQueue(cache)
        self._drain_guard = ReentrancyGuard("sync queue drain")
        self._user_id: Optional[str] = None
        self._last_write_id = 0
        self._own_write_ids: Dict[str, int] = {}
        self._overwritten_units: Set[str] = set()
        self._subscription: Optional[Subscription] = None

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    def _require_user(self) -> str:
        if not self._user_id:
            raise SyncError("Sync engine used before initialize()")
        return self._user_id

    def _next_tag(self) -> WriteTag:
        written_at = self._clock_ms()
        self._last_write_id = max(self._last_write_id + 1, written_at)
        return WriteTag(writer_id=self._client_id, write_id=self._last_write_id, written_at=written_at)

    def _stamp(self, mutation: Mutation, tag: WriteTag) -> None:
        for unit in mutation.units():
            self._own_write_ids[unit] = tag.write_id
            self._overwritten_units.discard(unit)

    async def _with_timeout(self, awaitable: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise RemoteTimeoutError(f"Remote operation timed out after {self._timeout:g}s") from exc

    async def _apply(self, mutation: Mutation, tag: WriteTag) -> None:
        user_id = self._require_user()
        payload = mutation.payload
        op = mutation.operation
        attendance = DataUnit.ATTENDANCE.value

        if op == SyncOperation.SET_ATTENDANCE:
            await self._remote.set_entry(user_id, attendance, payload["date"], payload["status"], tag)
        elif op == SyncOperation.DELETE_ATTENDANCE:
            await self._remote.set_entry(user_id, attendance, payload["date"], None, tag)
        elif op == SyncOperation.UPDATE_UNIT:
            await self._remote.write_units(user_id, {payload["unit"]: payload["data"]}, tag)
        elif op == SyncOperation.SAVE_ALL:
            await self._remote.write_units(user_id, dict(payload["document"]), tag)
        else:
            raise SyncError(f"Unsupported sync operation: {op!r}")

    async def _write(self, mutation: Mutation) -> None:
        tag = self._next_tag()
        # Stamped before the await so an echo arriving mid-write is recognised.
        self._stamp(mutation, tag)
        await self._with_timeout(self._apply(mutation, tag))

    def _enqueue(self, mutation: Mutation) -> SyncQueueItem:
        self._stamp(mutation, self._next_tag())
        item = SyncQueueItem(mutation=mutation, enqueued_at=self._clock_ms())
        self._queue.enqueue(item)
        return item

    # --- public API ---

    async def initialize(self, user_id: str) -> int:
        self._user_id = user_id
        return await self.drain_queue()

    async def persist(self, mutation: Mutation) -> bool:
        """Write ``mutation`` remotely; return False when it was left queued.

        The mutation joins the queue behind anything pending or in flight.
        When a drain is already running it picks the mutation up in order.
        """
        item = self._enqueue(mutation)
        if self._user_id is None:
            return False
        await self.drain_queue()
        return all(queued is not item for queued in self._queue.items())

    async def drain_queue(self) -> int:
        if self._user_id is None:
            return 0
        applied = 0
        with self._drain_guard.attempt() as acquired:
            if not acquired:
                return 0
            while True:
                item = self._queue.peek()
                if item is None:
                    break
                try:
                    await self._write(item.mutation)
                except _TRANSIENT_ERRORS as exc:
                    logger.warning(
                        "Sync queue replay stopped at %s: %s (%d pending)",
                        item.mutation.operation.value,
                        exc,
                        len(self._queue),
                    )
                    break
                self._queue.pop_head()
                applied += 1
        if applied:
            logger.debug("Wrote %d queued remote mutations", applied)
        return applied

    async def fetch_remote(self) -> Optional[Dict[str, Any]]:
        return await self._with_timeout(self._remote.fetch_user(self._require_user()))

    async def check_connectivity(self) -> bool:
        try:
            await self.fetch_remote()
        except _TRANSIENT_ERRORS as exc:
            logger.info("Remote store unreachable: %s", exc)
            return False
        return True

    async def remote_has_history(self) -> bool:
        try:
            remote = await self.fetch_remote()
        except _TRANSIENT_ERRORS:
            logger.warning("Could not check remote attendance history", exc_info=True)
            return False
        return bool((remote or {}).get(DataUnit.ATTENDANCE.value))

    def _needs_migration(self, local: Dict[str, Any], remote: Dict[str, Any]) -> bool:
        local_attendance = local.get(DataUnit.ATTENDANCE.value) or {}
        local_planned = local.get(DataUnit.PLANNED.value) or {}
        if not local_attendance and not local_planned:
            return False
        if len(local_attendance) < len(remote.get(DataUnit.ATTENDANCE.value) or {}):
            return False
        last_updated = remote.get("lastUpdated")
        return last_updated is None or self._clock_ms() - int(last_updated) > self._migration_stale_ms

    async def startup_reconcile(self, local: Dict[str, Any]) -> Dict[str, Any]:
        """Merge the local snapshot with the remote document at startup.

        Uploads local data once when the remote copy is missing or stale
        (guarded by ``migrationCompleted``); otherwise the map units prefer
        whichever side has more entries and plain units prefer remote.
        """
        try:
            remote = await self.fetch_remote() or {}
        except _TRANSIENT_ERRORS as exc:
            logger.warning("Starting offline, remote fetch failed: %s", exc)
            return dict(local)

        if not remote.get(DataUnit.MIGRATION_COMPLETED.value) and self._needs_migration(local, remote):
            units = {unit: local[unit] for unit in _MAP_UNITS + _PLAIN_UNITS if local.get(unit)}
            units[DataUnit.MIGRATION_COMPLETED.value] = True
            uploaded = await self.persist(Mutation.save_all(units))
            logger.info("Local data migration to remote %s", "completed" if uploaded else "queued")
            return dict(local)

        merged = dict(local)
        for unit in _MAP_UNITS:
            local_map = local.get(unit) or {}
            remote_map = remote.get(unit) or {}
            if len(local_map) != len(remote_map):
                logger.warning(
                    "%s differs between local (%d) and remote (%d); keeping the larger",
                    unit,
                    len(local_map),
                    len(remote_map),
                )
            if len(remote_map) >= len(local_map):
                merged[unit] = dict(remote_map)
            else:
                merged[unit] = dict(local_map)
                await self.persist(Mutation.update_unit(unit, dict(local_map)))

        for unit in _PLAIN_UNITS:
            if remote.get(unit) is not None:
                merged[unit] = remote[unit]
            elif local.get(unit) is not None:
                await self.persist(Mutation.update_unit(unit, local[unit]))

        self._cache.write({**self._cache.read(), **merged})
        return merged

    def _is_own(self, change: UnitChange) -> bool:
        tag = change.tag
        return (
            tag is not None
            and tag.writer_id == self._client_id
            and tag.write_id <= self._own_write_ids.get(change.unit, -1)
        )

    def _is_echo(self, change: UnitChange) -> bool:
        if not self._is_own(change):
            return False
        # Our latest write landing after an applied foreign change is kept.
        latest = change.tag.write_id == self._own_write_ids.get(change.unit)
        return not (latest and change.unit in self._overwritten_units)

    async def merge_remote(self, change: RemoteChange, on_change: ChangeHandler) -> int:
        """Apply every inbound change except echoes of this client's writes.

        The store serialises writes, so each change reflects whichever write
        reached it last; client timestamps play no part.
        """
        applied = 0
        for unit_change in change.units:
            unit = unit_change.unit
            if self._is_echo(unit_change):
                logger.debug("Suppressed echo of own write to %s", unit)
                continue
            if self._is_own(unit_change):
                self._overwritten_units.discard(unit)
            else:
                self._overwritten_units.add(unit)
            await on_change(unit, unit_change.value)
            applied += 1
        return applied

    def realtime_subscribe(self, on_change: ChangeHandler) -> None:
        user_id = self._require_user()
        self.stop_realtime()

        async def _handle(change: RemoteChange) -> None:
            await self.merge_remote(change, on_change)

        self._subscription = self._remote.subscribe(user_id, _handle)

    def stop_realtime(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
