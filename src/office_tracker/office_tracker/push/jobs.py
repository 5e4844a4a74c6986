from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional

from ..attendance.model import parse_attendance_map, parse_planned_map
from ..attendance.stats import monthly_summary
from ..common.datetime_utils import is_weekend, local_now_in, now_ms, today_string
from ..core.constants import DEFAULT_JOBS_TIMEZONE, SERVER_DEFAULT_MONTHLY_TARGET, SERVER_DEFAULT_TARGET_MODE
from ..core.enums import DataUnit, ReminderSlot, SummaryDay, TargetMode, TrackingMode
from ..core.exceptions import NotFoundError, NotificationError, ValidationError
from ..holidays.model import holiday_dates
from ..notifications import messages
from ..notifications.model import Notification
from ..storage.model import WriteTag
from ..storage.remote_store import RemoteStore
from ..users.model import Settings
from .client import PushClient
from .eligibility import has_logged, is_reminder_eligible, is_summary_eligible, push_token
from .model import EligibleUser, JobReport, NearOfficeResult, PushMessage

logger = logging.getLogger(__name__)

CHECKIN_CATEGORY = "MANUAL_CHECKIN"
ATTENDANCE_CATEGORY = "ATTENDANCE_CATEGORY"
JOBS_WRITER_ID = "push-jobs"


def server_settings(document: Mapping[str, Any]) -> Settings:
    """Settings as the server reads them; users who never saved any get a
    percentage target."""
    raw = document.get(DataUnit.SETTINGS.value) or {}
    try:
        mode = TargetMode(raw.get("targetMode") or SERVER_DEFAULT_TARGET_MODE)
    except ValueError:
        mode = TargetMode(SERVER_DEFAULT_TARGET_MODE)
    return Settings(
        monthly_target=int(raw.get("monthlyTarget") or SERVER_DEFAULT_MONTHLY_TARGET),
        target_mode=mode,
        weekly_summary=bool(raw.get("weeklySummary", True)),
    )


def _to_message(notice: Notification, category_id: Optional[str] = None) -> PushMessage:
    return PushMessage(title=notice.title, body=notice.body, data=dict(notice.data), category_id=category_id)


class PushJobs:
    """Server-side scheduled fan-out of push notifications.

    Each job evaluates a predicate over every stored user, in the configured
    timezone, and sends one push per eligible user. A failed send is counted
    and logged; it never aborts the rest of the batch.
    """

    def __init__(
        self,
        remote: RemoteStore,
        push: PushClient,
        *,
        timezone: str = DEFAULT_JOBS_TIMEZONE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._remote = remote
        self._push = push
        self._timezone = timezone
        self._clock = clock

    def now(self) -> datetime:
        return self._clock() if self._clock is not None else local_now_in(self._timezone)

    def _tag(self) -> WriteTag:
        stamp = now_ms()
        return WriteTag(writer_id=JOBS_WRITER_ID, write_id=stamp, written_at=stamp)

    async def eligible_users(self, mode: TrackingMode, *, today: Optional[str] = None) -> List[EligibleUser]:
        today = today or today_string(self.now())
        users = await self._remote.list_users()
        return [
            EligibleUser(user_id=user_id, token=push_token(document) or "", document=document)
            for user_id, document in sorted(users.items())
            if is_reminder_eligible(document, mode, today)
        ]

    async def _fan_out(
        self, job: str, users: Iterable[EligibleUser], build: Callable[[EligibleUser], PushMessage]
    ) -> JobReport:
        users = list(users)
        sent = failed = 0
        for user in users:
            try:
                await self._push.send(user.token, build(user))
                sent += 1
            except NotificationError as exc:
                failed += 1
                logger.warning("%s: push to %s failed: %s", job, user.user_id, exc)
        logger.info("%s: %d eligible, %d sent, %d failed", job, len(users), sent, failed)
        return JobReport(
            job=job,
            eligible=len(users),
            sent=sent,
            failed=failed,
            user_ids=tuple(user.user_id for user in users),
        )

    async def send_reminders(self, slot: ReminderSlot) -> JobReport:
        job = f"reminders:{slot.value}"
        today = today_string(self.now())
        if is_weekend(today):
            return JobReport(job=job, skipped_reason="weekend")

        if slot == ReminderSlot.EVENING:
            mode, notice = TrackingMode.AUTO, messages.auto_reminder(today)
        else:
            mode, notice = TrackingMode.MANUAL, messages.manual_reminder(slot, today)

        message = _to_message(notice, CHECKIN_CATEGORY)
        users = await self.eligible_users(mode, today=today)
        return await self._fan_out(job, users, lambda _user: message)

    async def send_weekly_summary(self, day: SummaryDay) -> JobReport:
        job = f"weekly-summary:{day.value}"
        now = self.now()
        today = today_string(now)
        users = [
            EligibleUser(user_id=user_id, token=push_token(document) or "", document=document)
            for user_id, document in sorted((await self._remote.list_users()).items())
            if is_summary_eligible(document, today)
        ]
        notice = messages.weekly_summary(day, today)

        def build(user: EligibleUser) -> PushMessage:
            document = user.document
            summary = monthly_summary(
                parse_attendance_map(document.get(DataUnit.ATTENDANCE.value)),
                parse_planned_map(document.get(DataUnit.PLANNED.value)),
                holiday_dates(document.get(DataUnit.CACHED_HOLIDAYS.value)).keys(),
                server_settings(document),
                now.date(),
            )
            data = dict(notice.data, officeCount=summary.office_days, daysRemaining=summary.days_remaining)
            return PushMessage(title=notice.title, body=messages.weekly_summary_body(summary), data=data)

        return await self._fan_out(job, users, build)

    async def send_near_office(self, user_id: str) -> NearOfficeResult:
        if not user_id or not str(user_id).strip():
            raise ValidationError("userId is required")
        document = await self._remote.fetch_user(user_id)
        if document is None:
            raise NotFoundError(f"User {user_id} not found")
        token = push_token(document)
        if token is None:
            raise NotFoundError(f"User {user_id} has no push token")

        today = today_string(self.now())
        if has_logged(document, today):
            return NearOfficeResult(sent=False, reason="already_logged")

        await self._push.send(token, _to_message(messages.near_office_confirmation(today), ATTENDANCE_CATEGORY))
        await self._remote.write_units(
            user_id,
            {DataUnit.NEAR_OFFICE.value: {"detected": True, "date": today, "timestamp": now_ms()}},
            self._tag(),
        )
        return NearOfficeResult(sent=True, reason="sent")

    async def reset_near_office_flags(self) -> int:
        reset = 0
        for user_id, document in (await self._remote.list_users()).items():
            flag = document.get(DataUnit.NEAR_OFFICE.value) or {}
            if not flag.get("detected"):
                continue
            await self._remote.write_units(
                user_id,
                {DataUnit.NEAR_OFFICE.value: {"detected": False, "date": None, "timestamp": now_ms()}},
                self._tag(),
            )
            reset += 1
        logger.info("Reset near-office flag for %d users", reset)
        return reset
