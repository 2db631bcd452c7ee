"""In-memory TTL cache with single-flight fetches per key."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    stored_at: float


class TTLCache:
    """
    Entries expire `ttl_seconds` after they were stored. Nothing is persisted;
    a restart starts empty.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._entries_lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}

    def _key_lock(self, key: str) -> threading.Lock:
        with self._entries_lock:
            return self._key_locks.setdefault(key, threading.Lock())

    def get(self, key: str) -> Optional[Any]:
        with self._entries_lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            return None
        return entry.value

    def set(self, key: str, value: Any) -> None:
        with self._entries_lock:
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def invalidate(self, key: Optional[str] = None) -> None:
        with self._entries_lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def age(self, key: str) -> Optional[float]:
        """Seconds since `key` was stored, expired or not."""
        with self._entries_lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        return self._clock() - entry.stored_at

    def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Any],
        force: bool = False,
    ) -> Tuple[Any, bool]:
        """
        Return (value, cached). On a miss, or when forced, `fetch` runs while
        holding the key's lock; callers queued behind it then see the fresh
        entry instead of fetching again.
        """
        if not force:
            value = self.get(key)
            if value is not None:
                return value, True

        lock = self._key_lock(key)
        with lock:
            if not force:
                value = self.get(key)
                if value is not None:
                    logger.debug("cache filled while waiting for %s", key)
                    return value, True
            value = fetch()
            self.set(key, value)
            return value, False


__all__ = ["CacheEntry", "TTLCache"]
