from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple

from ..core.enums import DataUnit, SyncOperation


@dataclass(frozen=True)
class Mutation:
    operation: SyncOperation
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def set_attendance(cls, date: str, status: str) -> "Mutation":
        return cls(SyncOperation.SET_ATTENDANCE, {"date": date, "status": status})

    @classmethod
    def delete_attendance(cls, date: str) -> "Mutation":
        return cls(SyncOperation.DELETE_ATTENDANCE, {"date": date})

    @classmethod
    def update_unit(cls, unit: DataUnit | str, data: Any) -> "Mutation":
        name = unit.value if isinstance(unit, DataUnit) else str(unit)
        return cls(SyncOperation.UPDATE_UNIT, {"unit": name, "data": data})

    @classmethod
    def save_all(cls, document: Mapping[str, Any]) -> "Mutation":
        return cls(SyncOperation.SAVE_ALL, {"document": dict(document)})

    def units(self) -> Tuple[str, ...]:
        """Top-level units this mutation touches."""
        if self.operation in (SyncOperation.SET_ATTENDANCE, SyncOperation.DELETE_ATTENDANCE):
            return (DataUnit.ATTENDANCE.value,)
        if self.operation == SyncOperation.UPDATE_UNIT:
            return (self.payload["unit"],)
        return tuple(self.payload.get("document", {}).keys())


@dataclass(frozen=True)
class SyncQueueItem:
    mutation: Mutation
    enqueued_at: int

    def to_dict(self) -> dict:
        return {
            "operation": self.mutation.operation.value,
            "payload": self.mutation.payload,
            "enqueuedAt": self.enqueued_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SyncQueueItem":
        return cls(
            mutation=Mutation(SyncOperation(data["operation"]), dict(data.get("payload") or {})),
            enqueued_at=int(data.get("enqueuedAt") or 0),
        )
