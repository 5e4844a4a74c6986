import asyncio
from datetime import datetime

import pytest

from src.office_tracker.office_tracker.core.exceptions import NotificationError
from src.office_tracker.office_tracker.notifications import messages
from src.office_tracker.office_tracker.notifications.center import LocalNotificationCenter


def test_schedule_cancel_and_release():
    shown = []
    center = LocalNotificationCenter(on_present=shown.append)

    async def scenario():
        early = await center.schedule(messages.planned_office_day("2025-06-12"))
        await center.schedule(messages.planned_office_day("2025-06-13"))
        await center.cancel("does-not-exist")
        due = await center.release_due(datetime(2025, 6, 12, 8, 30))
        return early, due, await center.list_scheduled()

    early, due, remaining = asyncio.run(scenario())
    assert early.startswith("planned_office_day:2025-06-12#")
    assert [notice.date for notice in due] == ["2025-06-12"]
    assert [item.notice.date for item in remaining] == ["2025-06-13"]
    assert shown == due


def test_schedule_requires_a_trigger_time():
    center = LocalNotificationCenter()
    with pytest.raises(NotificationError):
        asyncio.run(center.schedule(messages.auto_wfh_logged("2025-06-10")))
