from __future__ import annotations

import itertools
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol

from ..core.exceptions import NotificationError
from .model import Notification, ScheduledNotification

logger = logging.getLogger(__name__)


class NotificationCenter(Protocol):
    """Platform notification facility."""

    async def schedule(self, notice: Notification) -> str:
        raise NotImplementedError

    async def cancel(self, identifier: str) -> None:
        """Cancel a scheduled notification; unknown identifiers are ignored."""
        raise NotImplementedError

    async def list_scheduled(self) -> List[ScheduledNotification]:
        raise NotImplementedError

    async def present(self, notice: Notification) -> None:
        """Show a notification immediately."""
        raise NotImplementedError


class LocalNotificationCenter:
    """In-process notification center: keeps scheduled items in memory and
    presents them once due."""

    def __init__(self, *, on_present: Optional[Callable[[Notification], None]] = None):
        self._on_present = on_present
        self._scheduled: Dict[str, ScheduledNotification] = {}
        self._presented: List[Notification] = []
        self._ids = itertools.count(1)

    @property
    def presented(self) -> List[Notification]:
        return list(self._presented)

    async def schedule(self, notice: Notification) -> str:
        if notice.fire_at is None:
            raise NotificationError(f"Notification {notice.key} has no trigger time")
        identifier = f"{notice.key}#{next(self._ids)}"
        self._scheduled[identifier] = ScheduledNotification(identifier=identifier, notice=notice)
        logger.debug("Scheduled %s at %s", identifier, notice.fire_at.isoformat())
        return identifier

    async def cancel(self, identifier: str) -> None:
        if self._scheduled.pop(identifier, None) is not None:
            logger.debug("Cancelled %s", identifier)

    async def list_scheduled(self) -> List[ScheduledNotification]:
        return sorted(self._scheduled.values(), key=lambda item: (item.notice.fire_at, item.identifier))

    async def present(self, notice: Notification) -> None:
        self._presented.append(notice)
        if self._on_present is not None:
            self._on_present(notice)
        else:
            logger.info("Notification: %s - %s", notice.title, notice.body)

    async def release_due(self, now: datetime) -> List[Notification]:
        due = [item for item in await self.list_scheduled() if item.notice.fire_at <= now]
        for item in due:
            del self._scheduled[item.identifier]
            await self.present(item.notice)
        return [item.notice for item in due]
