from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from src.office_tracker.office_tracker.common.geo import Coordinates
from src.office_tracker.office_tracker.core.exceptions import FetchError, LocationError, NotificationError, SyncError
from src.office_tracker.office_tracker.push.model import PushMessage
from src.office_tracker.office_tracker.storage.model import RemoteChange, UnitChange, WriteTag

SYDNEY_OFFICE = Coordinates(-33.8688, 151.2093)
# ~80 m north of the office.
SYDNEY_NEARBY = Coordinates(-33.8688 + 0.00072, 151.2093)
SYDNEY_FAR = Coordinates(-33.8908, 151.2743)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def ms(self) -> int:
        return int(self.now.timestamp() * 1000)

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class _Subscription:
    def __init__(self, cancel: Callable[[], None]):
        self._cancel = cancel
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        self._cancel()


class InMemoryRemoteStore:
    """Remote store fake.

    ``outcomes`` maps a write key (date for entry writes, unit name for unit
    writes) to an exception to raise or ``"hang"`` to block forever.
    ``offline`` makes every operation fail.
    """

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, ...]] = []
        self.outcomes: Dict[str, Any] = {}
        self.offline = False
        self._subscribers: Dict[str, List[Callable]] = {}

    async def _check(self, key: str) -> None:
        if self.offline:
            raise SyncError("offline")
        outcome = self.outcomes.get(key)
        if outcome == "hang":
            await asyncio.sleep(3600)
        elif isinstance(outcome, BaseException):
            raise outcome

    async def fetch_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        self.calls.append(("fetch_user", user_id))
        await self._check("__fetch__")
        doc = self.users.get(user_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def write_units(self, user_id: str, units: Dict[str, Any], tag: WriteTag) -> None:
        self.calls.append(("write_units", user_id, *sorted(units)))
        for unit in units:
            await self._check(unit)
        doc = self.users.setdefault(user_id, {})
        for unit, value in units.items():
            doc[unit] = copy.deepcopy(value)
        doc["lastUpdated"] = tag.written_at
        await self.emit(user_id, [UnitChange(unit, copy.deepcopy(value), tag) for unit, value in units.items()])

    async def set_entry(self, user_id: str, unit: str, key: str, value: Any, tag: WriteTag) -> None:
        self.calls.append(("set_entry", user_id, unit, key))
        await self._check(key)
        doc = self.users.setdefault(user_id, {})
        entries = doc.setdefault(unit, {})
        if value is None:
            entries.pop(key, None)
        else:
            entries[key] = value
        doc["lastUpdated"] = tag.written_at
        await self.emit(user_id, [UnitChange(unit, copy.deepcopy(entries), tag)])

    async def list_users(self) -> Dict[str, Dict[str, Any]]:
        await self._check("__list__")
        return copy.deepcopy(self.users)

    def subscribe(self, user_id: str, callback) -> _Subscription:
        self._subscribers.setdefault(user_id, []).append(callback)
        return _Subscription(lambda: self._subscribers[user_id].remove(callback))

    async def emit(self, user_id: str, changes: List[UnitChange]) -> None:
        for callback in list(self._subscribers.get(user_id, [])):
            await callback(RemoteChange(user_id=user_id, units=tuple(changes)))

    def entry_keys(self) -> List[str]:
        return [call[3] for call in self.calls if call[0] == "set_entry"]


@dataclass
class RecordingSink:
    """Mutation sink that records instead of persisting."""

    mutations: list = field(default_factory=list)
    result: bool = True

    async def persist(self, mutation) -> bool:
        self.mutations.append(mutation)
        return self.result


@dataclass
class FakeHolidayClient:
    responses: Dict[Tuple[str, int], Dict[str, str]] = field(default_factory=dict)
    fail: bool = False
    calls: List[Tuple[str, int]] = field(default_factory=list)

    async def fetch(self, iso_code: str, year: int) -> Dict[str, str]:
        self.calls.append((iso_code, year))
        if self.fail:
            raise FetchError("holiday API unavailable")
        return dict(self.responses.get((iso_code, year), {}))


class FakeLocator:
    def __init__(self, position: Coordinates = SYDNEY_OFFICE, *, error: Optional[Exception] = None):
        self.position = position
        self.error = error
        self.calls = 0
        self.gate: Optional[asyncio.Event] = None
        self.before_return: Optional[Callable[[], Any]] = None

    async def current_position(self) -> Coordinates:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.before_return is not None:
            await self.before_return()
        if self.error is not None:
            raise self.error
        return self.position


class FailingLocator(FakeLocator):
    def __init__(self):
        super().__init__(error=LocationError("permission denied"))


@dataclass
class FakePushClient:
    sent: List[Tuple[str, PushMessage]] = field(default_factory=list)
    rejected_tokens: set = field(default_factory=set)

    async def send(self, token: str, message: PushMessage) -> None:
        if token in self.rejected_tokens:
            raise NotificationError("DeviceNotRegistered")
        self.sent.append((token, message))
