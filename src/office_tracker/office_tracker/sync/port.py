from __future__ import annotations

from typing import Protocol

from .model import Mutation


class MutationSink(Protocol):
    """Where local-origin mutations go to be persisted remotely."""

    async def persist(self, mutation: Mutation) -> bool:
        raise NotImplementedError
