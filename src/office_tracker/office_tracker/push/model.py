from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class PushMessage:
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)
    category_id: Optional[str] = None

    def to_payload(self, token: str) -> dict:
        payload = {
            "to": token,
            "sound": "default",
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "priority": "high",
        }
        if self.category_id:
            payload["categoryId"] = self.category_id
        return payload


@dataclass(frozen=True)
class EligibleUser:
    user_id: str
    token: str
    document: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class JobReport:
    job: str
    eligible: int = 0
    sent: int = 0
    failed: int = 0
    skipped_reason: Optional[str] = None
    user_ids: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "job": self.job,
            "eligible": self.eligible,
            "sent": self.sent,
            "failed": self.failed,
            "skippedReason": self.skipped_reason,
        }


@dataclass(frozen=True)
class NearOfficeResult:
    sent: bool
    reason: str = ""
