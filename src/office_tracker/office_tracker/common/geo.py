from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..core.constants import EARTH_RADIUS_KM, OFFICE_RADIUS_KM
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["Coordinates"]:
        """Accepts both {lat, lon} (stored form) and {latitude, longitude}."""
        if not data:
            return None
        lat = data.get("lat", data.get("latitude"))
        lon = data.get("lon", data.get("lng", data.get("longitude")))
        if lat is None or lon is None:
            return None
        try:
            return cls(float(lat), float(lon))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid coordinates: {dict(data)!r}")

    def to_dict(self) -> dict:
        return {"lat": self.latitude, "lon": self.longitude}


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.latitude)) * math.cos(math.radians(b.latitude)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def is_within_radius(distance_km: float, radius_km: float = OFFICE_RADIUS_KM) -> bool:
    # Strict: a point exactly on the perimeter is outside.
    return distance_km < radius_km
