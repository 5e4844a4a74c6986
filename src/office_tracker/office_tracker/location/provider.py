from __future__ import annotations

from typing import Protocol

from ..common.geo import Coordinates


class LocationProvider(Protocol):
    async def current_position(self) -> Coordinates:
        """Current device position; raises LocationError when unavailable."""
        raise NotImplementedError
