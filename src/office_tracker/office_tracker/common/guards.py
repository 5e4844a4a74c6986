from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from ..core.enums import GuardState

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Explicit Idle/InProgress latch for single-threaded async code.

    Usage:
        with guard.attempt() as acquired:
            if not acquired:
                return None
            await work()
    """

    def __init__(self, name: str):
        self._name = name
        self._state = GuardState.IDLE

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state == GuardState.IN_PROGRESS

    @contextmanager
    def attempt(self) -> Iterator[bool]:
        if self.busy:
            logger.debug("%s already in progress, skipping", self._name)
            yield False
            return
        self._state = GuardState.IN_PROGRESS
        try:
            yield True
        finally:
            self._state = GuardState.IDLE
