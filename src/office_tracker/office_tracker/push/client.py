from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

import requests

from ..core.constants import HTTP_TIMEOUT_SECONDS
from ..core.exceptions import NotificationError
from .model import PushMessage

logger = logging.getLogger(__name__)

DEFAULT_PUSH_API_URL = "https://exp.host/--/api/v2/push/send"


class PushClient(Protocol):
    async def send(self, token: str, message: PushMessage) -> None:
        """Deliver one push; raises NotificationError when it is not accepted."""
        raise NotImplementedError


class ExpoPushClient:
    def __init__(
        self,
        url: str = DEFAULT_PUSH_API_URL,
        *,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()

    def _send_sync(self, token: str, message: PushMessage) -> None:
        try:
            response = self._session.post(
                self._url,
                json=message.to_payload(token),
                headers={"Accept": "application/json", "Content-Type": "application/json"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            result = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise NotificationError(f"Push request failed: {exc}") from exc

        ticket = (result or {}).get("data") or {}
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") != "ok":
            raise NotificationError(f"Push rejected: {ticket.get('message') or ticket}")

    async def send(self, token: str, message: PushMessage) -> None:
        await asyncio.to_thread(self._send_sync, token, message)
