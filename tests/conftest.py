from __future__ import annotations

from datetime import datetime

import pytest

from src.office_tracker.office_tracker.storage.local_cache import LocalCache
from tests.fakes import FakeClock, InMemoryRemoteStore, RecordingSink


@pytest.fixture
def fixed_now() -> datetime:
    # Wednesday
    return datetime(2025, 6, 11, 9, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def cache(tmp_path) -> LocalCache:
    return LocalCache(tmp_path / "cache")


@pytest.fixture
def remote() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
