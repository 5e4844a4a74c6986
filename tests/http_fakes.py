from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

import requests


@dataclass
class FakeResponse:
    payload: Any = None
    status_code: int = 200

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        return self.payload


@dataclass
class FakeSession:
    """Stands in for ``requests.Session``; records calls, replays responses."""

    response: FakeResponse = field(default_factory=FakeResponse)
    error: Optional[Exception] = None
    calls: List[tuple] = field(default_factory=list)

    def _reply(self, method: str, url: str, kwargs: dict) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        return self._reply("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._reply("POST", url, kwargs)
