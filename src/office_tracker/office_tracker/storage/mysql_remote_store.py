from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar

import mysql.connector

from ..core.constants import REALTIME_POLL_SECONDS
from ..core.exceptions import SyncError, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, load_json_column
from .model import RemoteChange, UnitChange, WriteTag
from .remote_store import ChangeCallback

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EPOCH = datetime(1970, 1, 2)

_UPSERT_UNIT = """
    INSERT INTO user_units (user_id, unit, payload, writer_id, write_id, updated_at)
    VALUES (%s, %s, CAST(%s AS JSON), %s, %s, %s)
    ON DUPLICATE KEY UPDATE
        payload = VALUES(payload),
        writer_id = VALUES(writer_id),
        write_id = VALUES(write_id),
        updated_at = VALUES(updated_at)
"""

_SET_ENTRY = """
    INSERT INTO user_units (user_id, unit, payload, writer_id, write_id, updated_at)
    VALUES (%s, %s, JSON_OBJECT(%s, CAST(%s AS JSON)), %s, %s, %s)
    ON DUPLICATE KEY UPDATE
        payload = JSON_SET(COALESCE(payload, JSON_OBJECT()), %s, CAST(%s AS JSON)),
        writer_id = VALUES(writer_id),
        write_id = VALUES(write_id),
        updated_at = VALUES(updated_at)
"""

_REMOVE_ENTRY = """
    UPDATE user_units
    SET payload = JSON_REMOVE(payload, %s), writer_id = %s, write_id = %s, updated_at = %s
    WHERE user_id = %s AND unit = %s AND payload IS NOT NULL
"""


def _json_path(key: str) -> str:
    if not key or '"' in key or "\\" in key:
        raise ValidationError(f"Unsupported document key: {key!r}")
    return f'$."{key}"'


def _rows_to_document(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    document: Dict[str, Any] = {}
    last_updated = 0
    for row in rows:
        document[row["unit"]] = load_json_column(row["payload"])
        last_updated = max(last_updated, int(row["updated_at"] or 0))
    document["lastUpdated"] = last_updated or None
    return document


def _row_tag(row: Dict[str, Any]) -> Optional[WriteTag]:
    if not row.get("writer_id"):
        return None
    return WriteTag(
        writer_id=str(row["writer_id"]),
        write_id=int(row["write_id"] or 0),
        written_at=int(row["updated_at"] or 0),
    )


class PollingSubscription:
    def __init__(self, task: "asyncio.Task[None]"):
        self._task = task

    def cancel(self) -> None:
        self._task.cancel()


class MySQLRemoteStore:
    """Remote document store on MySQL: one JSON row per (user, unit).

    Realtime updates are delivered by polling ``changed_at`` (server clock).
    """

    def __init__(self, conn: DatabaseConnection, *, poll_interval: float = REALTIME_POLL_SECONDS):
        self._conn = conn
        self._poll_interval = poll_interval

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except mysql.connector.Error as exc:
            raise SyncError(f"MySQL operation failed: {exc}") from exc

    # --- reads ---

    def _fetch_user_sync(self, user_id: str) -> Optional[Dict[str, Any]]:
        with db_cursor(self._conn) as (_, cur):
            cur.execute("SELECT unit, payload, updated_at FROM user_units WHERE user_id=%s", (user_id,))
            rows = fetchall(cur)
        return _rows_to_document(rows) if rows else None

    async def fetch_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._run(self._fetch_user_sync, user_id)

    def _list_users_sync(self) -> Dict[str, Dict[str, Any]]:
        with db_cursor(self._conn) as (_, cur):
            cur.execute("SELECT user_id, unit, payload, updated_at FROM user_units ORDER BY user_id")
            rows = fetchall(cur)
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for row in rows:
            grouped.setdefault(row["user_id"], []).append(row)
        return {user_id: _rows_to_document(user_rows) for user_id, user_rows in grouped.items()}

    async def list_users(self) -> Dict[str, Dict[str, Any]]:
        return await self._run(self._list_users_sync)

    # --- writes ---

    def _write_units_sync(self, user_id: str, units: Dict[str, Any], tag: WriteTag) -> None:
        with db_cursor(self._conn) as (_, cur):
            for unit, value in units.items():
                cur.execute(
                    _UPSERT_UNIT,
                    (user_id, unit, json.dumps(value), tag.writer_id, tag.write_id, tag.written_at),
                )

    async def write_units(self, user_id: str, units: Dict[str, Any], tag: WriteTag) -> None:
        await self._run(self._write_units_sync, user_id, units, tag)

    def _set_entry_sync(self, user_id: str, unit: str, key: str, value: Any, tag: WriteTag) -> None:
        path = _json_path(key)
        with db_cursor(self._conn) as (_, cur):
            if value is None:
                cur.execute(_REMOVE_ENTRY, (path, tag.writer_id, tag.write_id, tag.written_at, user_id, unit))
                return
            encoded = json.dumps(value)
            cur.execute(
                _SET_ENTRY,
                (user_id, unit, key, encoded, tag.writer_id, tag.write_id, tag.written_at, path, encoded),
            )

    async def set_entry(self, user_id: str, unit: str, key: str, value: Any, tag: WriteTag) -> None:
        await self._run(self._set_entry_sync, user_id, unit, key, value, tag)

    # --- realtime ---

    def _latest_change_sync(self, user_id: str) -> datetime:
        with db_cursor(self._conn) as (_, cur):
            cur.execute("SELECT MAX(changed_at) AS latest FROM user_units WHERE user_id=%s", (user_id,))
            row = fetchone(cur)
        return (row or {}).get("latest") or _EPOCH

    def _changes_since_sync(self, user_id: str, since: datetime) -> List[Dict[str, Any]]:
        with db_cursor(self._conn) as (_, cur):
            cur.execute(
                """
                SELECT unit, payload, writer_id, write_id, updated_at, changed_at
                FROM user_units
                WHERE user_id=%s AND changed_at > %s
                ORDER BY changed_at
                """,
                (user_id, since),
            )
            return fetchall(cur)

    async def _poll(self, user_id: str, callback: ChangeCallback) -> None:
        try:
            since = await self._run(self._latest_change_sync, user_id)
        except SyncError:
            logger.warning("Could not read change cursor for %s; replaying all units", user_id, exc_info=True)
            since = _EPOCH

        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                rows = await self._run(self._changes_since_sync, user_id, since)
            except SyncError:
                logger.warning("Realtime poll failed for %s", user_id, exc_info=True)
                continue
            if not rows:
                continue
            since = rows[-1]["changed_at"]
            change = RemoteChange(
                user_id=user_id,
                units=tuple(
                    UnitChange(unit=row["unit"], value=load_json_column(row["payload"]), tag=_row_tag(row))
                    for row in rows
                ),
            )
            try:
                await callback(change)
            except Exception:
                logger.exception("Realtime change handler failed for %s", user_id)

    def subscribe(self, user_id: str, callback: ChangeCallback) -> PollingSubscription:
        task = asyncio.get_running_loop().create_task(self._poll(user_id, callback))
        return PollingSubscription(task)
