"""In-process response cache keyed by the literal source URL."""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from core.types import ProductRecord
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    record: ProductRecord
    created_at: float


class ResponseCache:
    """
    Age-bounded memo of assembled product records.

    Entries expire by wall-clock age measured from creation, not from last
    access, and are only evicted when a lookup finds them stale.
    """

    def __init__(
        self,
        duration_seconds: float = 36000.0,
        clock: Callable[[], float] = time.time,
    ):
        self.duration_seconds = duration_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def get(self, url: str) -> Optional[ProductRecord]:
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                self.misses += 1
                return None
            if self._clock() - entry.created_at >= self.duration_seconds:
                del self._entries[url]
                self.misses += 1
                logger.debug("Evicted stale cache entry for %s", url, extra={"event_type": "cache"})
                return None
            self.hits += 1
            return entry.record

    def set(self, url: str, record: ProductRecord) -> None:
        with self._lock:
            self._entries[url] = CacheEntry(record=record, created_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries
