from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from ..common.geo import Coordinates
from ..core.constants import DEFAULT_COUNTRY, DEFAULT_MONTHLY_TARGET
from ..core.enums import TargetMode, TrackingMode


@dataclass(frozen=True)
class UserProfile:
    company_name: str = ""
    company_address: str = ""
    company_location: Optional[Coordinates] = None
    tracking_mode: TrackingMode = TrackingMode.MANUAL
    country: str = DEFAULT_COUNTRY

    @property
    def is_auto(self) -> bool:
        return self.tracking_mode == TrackingMode.AUTO

    def with_changes(self, **changes: Any) -> "UserProfile":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "companyName": self.company_name,
            "companyAddress": self.company_address,
            "companyLocation": self.company_location.to_dict() if self.company_location else None,
            "trackingMode": self.tracking_mode.value,
            "country": self.country,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "UserProfile":
        data = data or {}
        try:
            mode = TrackingMode(data.get("trackingMode") or TrackingMode.MANUAL.value)
        except ValueError:
            mode = TrackingMode.MANUAL
        return cls(
            company_name=str(data.get("companyName") or ""),
            company_address=str(data.get("companyAddress") or ""),
            company_location=Coordinates.from_dict(data.get("companyLocation")),
            tracking_mode=mode,
            country=str(data.get("country") or DEFAULT_COUNTRY),
        )


@dataclass(frozen=True)
class Settings:
    monthly_target: int = DEFAULT_MONTHLY_TARGET
    target_mode: TargetMode = TargetMode.DAYS
    weekly_summary: bool = True
    # Epoch ms at which onboarding finished; None while onboarding is active.
    setup_completed_at: Optional[int] = None

    def with_changes(self, **changes: Any) -> "Settings":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "monthlyTarget": self.monthly_target,
            "targetMode": self.target_mode.value,
            "weeklySummary": self.weekly_summary,
            "setupCompletedAt": self.setup_completed_at,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Settings":
        data = data or {}
        try:
            mode = TargetMode(data.get("targetMode") or TargetMode.DAYS.value)
        except ValueError:
            mode = TargetMode.DAYS
        completed = data.get("setupCompletedAt")
        return cls(
            monthly_target=int(data.get("monthlyTarget") or DEFAULT_MONTHLY_TARGET),
            target_mode=mode,
            weekly_summary=bool(data.get("weeklySummary", True)),
            setup_completed_at=int(completed) if completed is not None else None,
        )
