from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..common.datetime_utils import now_ms

logger = logging.getLogger(__name__)

BLOB_FILE = "office_tracker_data.json"
FAST_ATTENDANCE_FILE = "attendance_data.json"
BACKUP_FILE = "attendance_data_backup.json"
QUEUE_FILE = "sync_queue.json"
BACKUP_VERSION = 1


class LocalCache:
    """File-backed mirror of the user's document.

    Layout:
    - one JSON blob holding every data unit (plus ``cachedAt``)
    - a fast attendance lookup file (attendance map only)
    - an attendance backup ``{data, timestamp, version}`` used for recovery
    - the persisted sync queue

    Writes are synchronous and atomic (write temp file, then replace).
    """

    def __init__(self, directory: str | Path):
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._dir

    def _read_json(self, name: str, default: Any) -> Any:
        path = self._dir / name
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Local cache file %s is unreadable, ignoring it", path, exc_info=True)
            return default

    def _write_json(self, name: str, value: Any) -> None:
        path = self._dir / name
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(value, ensure_ascii=False, sort_keys=True), encoding="utf-8")
        os.replace(tmp, path)

    # --- blob ---

    def read(self) -> Dict[str, Any]:
        data = self._read_json(BLOB_FILE, {})
        return data if isinstance(data, dict) else {}

    def write(self, document: Dict[str, Any]) -> None:
        payload = dict(document)
        payload["cachedAt"] = now_ms()
        self._write_json(BLOB_FILE, payload)

    def read_unit(self, unit: str, default: Any = None) -> Any:
        return self.read().get(unit, default)

    def write_unit(self, unit: str, value: Any) -> None:
        document = self.read()
        if value is None:
            document.pop(unit, None)
        else:
            document[unit] = value
        self.write(document)

    # --- attendance fast path + backup ---

    def read_fast_attendance(self) -> Dict[str, str]:
        data = self._read_json(FAST_ATTENDANCE_FILE, {})
        return data if isinstance(data, dict) else {}

    def write_attendance(self, attendance: Dict[str, str]) -> None:
        """Mirror attendance into the blob, the fast file and the backup."""
        self.write_unit("attendanceData", dict(attendance))
        self._write_json(FAST_ATTENDANCE_FILE, dict(attendance))
        self._write_json(BACKUP_FILE, {"data": dict(attendance), "timestamp": now_ms(), "version": BACKUP_VERSION})

    def read_backup(self) -> Optional[Dict[str, Any]]:
        backup = self._read_json(BACKUP_FILE, None)
        return backup if isinstance(backup, dict) else None

    def recover_attendance(self) -> Dict[str, str]:
        """Attendance from the richest local copy.

        The backup is consulted only when neither primary copy exists (lost or
        unreadable files), so an intentionally emptied map stays empty.
        """
        blob = self.read().get("attendanceData")
        fast = self._read_json(FAST_ATTENDANCE_FILE, None)
        copies = [c for c in (blob, fast) if isinstance(c, dict)]
        if copies:
            if len(copies) == 2 and len(copies[0]) != len(copies[1]):
                logger.warning(
                    "Local attendance copies disagree (blob=%d, fast=%d); using the larger",
                    len(copies[0]),
                    len(copies[1]),
                )
            return dict(max(copies, key=len))

        backup = self.read_backup()
        if backup and isinstance(backup.get("data"), dict) and backup["data"]:
            logger.warning("Recovered %d attendance records from backup", len(backup["data"]))
            return dict(backup["data"])
        return {}

    # --- sync queue ---

    def read_queue(self) -> List[Dict[str, Any]]:
        items = self._read_json(QUEUE_FILE, [])
        return items if isinstance(items, list) else []

    def write_queue(self, items: List[Dict[str, Any]]) -> None:
        self._write_json(QUEUE_FILE, list(items))

    def clear(self) -> None:
        for name in (BLOB_FILE, FAST_ATTENDANCE_FILE, BACKUP_FILE, QUEUE_FILE):
            path = self._dir / name
            if path.exists():
                path.unlink()
