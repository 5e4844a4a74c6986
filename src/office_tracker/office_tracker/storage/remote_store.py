from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from .model import RemoteChange, WriteTag

ChangeCallback = Callable[[RemoteChange], Awaitable[None]]


class Subscription(Protocol):
    def cancel(self) -> None:
        raise NotImplementedError


class RemoteStore(Protocol):
    """Keyed per-user document store.

    A user document is a mapping of top-level units (``attendanceData``,
    ``plannedDays``, ``userData``, ``settings``, ...) plus a derived
    ``lastUpdated`` epoch-ms timestamp. Implementations raise ``SyncError``
    on failure.
    """

    async def fetch_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def write_units(self, user_id: str, units: Dict[str, Any], tag: WriteTag) -> None:
        raise NotImplementedError

    async def set_entry(self, user_id: str, unit: str, key: str, value: Any, tag: WriteTag) -> None:
        """Set (or, with ``value=None``, delete) one key inside a map unit."""
        raise NotImplementedError

    async def list_users(self) -> Dict[str, Dict[str, Any]]:
        raise NotImplementedError

    def subscribe(self, user_id: str, callback: ChangeCallback) -> Subscription:
        raise NotImplementedError
