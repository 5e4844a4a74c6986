from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from ..attendance.store import AttendanceStore
from ..common.datetime_utils import now_local, today_string
from ..common.validators import require_date_string
from ..core.enums import AttendanceStatus, CheckOutcome
from ..core.exceptions import ValidationError
from ..location.reconciler import GeofenceReconciler

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "default"


@dataclass(frozen=True)
class ConfirmOffice:
    date: Optional[str] = None


@dataclass(frozen=True)
class ConfirmWfh:
    date: Optional[str] = None


@dataclass(frozen=True)
class ConfirmLeave:
    date: Optional[str] = None


@dataclass(frozen=True)
class EnableLocation:
    pass


@dataclass(frozen=True)
class CheckLocationNow:
    pass


@dataclass(frozen=True)
class OpenApp:
    pass


UserIntent = Union[ConfirmOffice, ConfirmWfh, ConfirmLeave, EnableLocation, CheckLocationNow, OpenApp]

_ACTIONS = {
    "office": ConfirmOffice,
    "confirm_office": ConfirmOffice,
    "wfh": ConfirmWfh,
    "change_wfh": ConfirmWfh,
    "leave": ConfirmLeave,
    "enable_location": EnableLocation,
    "check_location": CheckLocationNow,
    DEFAULT_ACTION: OpenApp,
}


def intent_from_action(action: str, data: Optional[Mapping[str, Any]] = None) -> UserIntent:
    """Translate a notification action identifier (plus payload) into an intent."""
    intent_type = _ACTIONS.get((action or DEFAULT_ACTION).strip().lower())
    if intent_type is None:
        raise ValidationError(f"Unknown notification action: {action!r}")
    if intent_type in (ConfirmOffice, ConfirmWfh, ConfirmLeave):
        day = (data or {}).get("date")
        return intent_type(date=require_date_string(day) if day else None)
    return intent_type()


@dataclass(frozen=True)
class IntentResult:
    handled: bool
    message: str = ""


class IntentHandler:
    """Single dispatcher for every user intent."""

    def __init__(
        self,
        store: AttendanceStore,
        reconciler: GeofenceReconciler,
        *,
        enable_location: Optional[Callable[[], Awaitable[None]]] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._store = store
        self._reconciler = reconciler
        self._enable_location = enable_location
        self._clock = clock

    async def _confirm(self, day: Optional[str], status: AttendanceStatus) -> IntentResult:
        day = day or today_string(self._clock())
        existing = self._store.get(day)
        if existing is not None and existing != status:
            # An explicit tap overrides whatever was recorded.
            logger.info("Overriding %s for %s with %s", existing.value, day, status.value)
        changed = await self._store.mark(day, status)
        return IntentResult(handled=True, message=f"{day} logged as {status.value}" if changed else "Already logged")

    async def handle(self, intent: UserIntent) -> IntentResult:
        if isinstance(intent, ConfirmOffice):
            return await self._confirm(intent.date, AttendanceStatus.OFFICE)
        if isinstance(intent, ConfirmWfh):
            return await self._confirm(intent.date, AttendanceStatus.WFH)
        if isinstance(intent, ConfirmLeave):
            return await self._confirm(intent.date, AttendanceStatus.LEAVE)
        if isinstance(intent, EnableLocation):
            if self._enable_location is None:
                return IntentResult(handled=False, message="Location tracking unavailable")
            await self._enable_location()
            return IntentResult(handled=True, message="Location tracking enabled")
        if isinstance(intent, CheckLocationNow):
            outcome = await self._reconciler.check_now()
            return IntentResult(handled=outcome == CheckOutcome.LOGGED, message=outcome.value)
        if isinstance(intent, OpenApp):
            return IntentResult(handled=True)
        raise TypeError(f"Unhandled intent: {intent!r}")
