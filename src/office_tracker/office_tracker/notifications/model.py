from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ..core.enums import Delivery, NotificationCategory


@dataclass(frozen=True)
class Notification:
    """A notification the system wants to exist.

    ``key`` identifies the logical notification (one per category/date/slot)
    and is what reconciliation diffs on.
    """

    key: str
    category: NotificationCategory
    title: str
    body: str
    date: Optional[str] = None
    fire_at: Optional[datetime] = None
    delivery: Delivery = Delivery.LOCAL
    actions: Tuple[str, ...] = ()
    data: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ScheduledNotification:
    identifier: str
    notice: Notification


@dataclass(frozen=True)
class ReconcileResult:
    scheduled: Tuple[str, ...] = ()
    cancelled: Tuple[str, ...] = ()
    kept: Tuple[str, ...] = ()
