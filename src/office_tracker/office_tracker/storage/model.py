from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple


@dataclass(frozen=True)
class WriteTag:
    """Stamp carried by every remote write: who wrote it and in which order."""

    writer_id: str
    write_id: int
    written_at: int

    def to_dict(self) -> dict:
        return {"writerId": self.writer_id, "writeId": self.write_id, "writtenAt": self.written_at}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["WriteTag"]:
        if not data or data.get("writerId") is None:
            return None
        return cls(
            writer_id=str(data["writerId"]),
            write_id=int(data.get("writeId") or 0),
            written_at=int(data.get("writtenAt") or 0),
        )


@dataclass(frozen=True)
class UnitChange:
    unit: str
    value: Any
    tag: Optional[WriteTag]


@dataclass(frozen=True)
class RemoteChange:
    user_id: str
    units: Tuple[UnitChange, ...]
