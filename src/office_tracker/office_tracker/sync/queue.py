from __future__ import annotations

import logging
from typing import List, Optional

from ..storage.local_cache import LocalCache
from .model import SyncQueueItem

logger = logging.getLogger(__name__)


class SyncQueue:
    """FIFO of pending remote mutations, mirrored to the local cache."""

    def __init__(self, cache: Optional[LocalCache] = None):
        self._cache = cache
        self._items: List[SyncQueueItem] = []
        if cache is not None:
            for raw in cache.read_queue():
                try:
                    self._items.append(SyncQueueItem.from_dict(raw))
                except (KeyError, ValueError):
                    logger.warning("Dropping unreadable sync queue item: %r", raw)

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> List[SyncQueueItem]:
        return list(self._items)

    def enqueue(self, item: SyncQueueItem) -> None:
        self._items.append(item)
        self._save()

    def peek(self) -> Optional[SyncQueueItem]:
        return self._items[0] if self._items else None

    def pop_head(self) -> SyncQueueItem:
        item = self._items.pop(0)
        self._save()
        return item

    def clear(self) -> None:
        self._items.clear()
        self._save()

    def _save(self) -> None:
        if self._cache is not None:
            self._cache.write_queue([item.to_dict() for item in self._items])
