import asyncio

import pytest

from src.office_tracker.office_tracker.core.exceptions import NotificationError
from src.office_tracker.office_tracker.push.client import ExpoPushClient
from src.office_tracker.office_tracker.push.model import PushMessage
from tests.http_fakes import FakeResponse, FakeSession

MESSAGE = PushMessage(title="Morning Check-in", body="Where are you working today?", category_id="MANUAL_CHECKIN")


def test_accepted_ticket():
    session = FakeSession(FakeResponse({"data": {"status": "ok", "id": "abc"}}))
    asyncio.run(ExpoPushClient("https://push.test", session=session).send("ExponentPushToken[x]", MESSAGE))

    payload = session.calls[0][2]["json"]
    assert payload["to"] == "ExponentPushToken[x]"
    assert payload["categoryId"] == "MANUAL_CHECKIN"


def test_rejected_ticket_raises():
    session = FakeSession(FakeResponse({"data": [{"status": "error", "message": "DeviceNotRegistered"}]}))
    with pytest.raises(NotificationError, match="DeviceNotRegistered"):
        asyncio.run(ExpoPushClient(session=session).send("ExponentPushToken[x]", MESSAGE))
