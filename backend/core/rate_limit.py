"""In-memory per-client request limiting.

Single process only; counters are lost on restart.
"""

import threading
import time
from collections import defaultdict
from typing import Callable, Dict, List


class SlidingWindowLimiter:
    """Allow at most `max_requests` per key within any `window_seconds` span."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # key -> hit timestamps, oldest first
        self._hits: Dict[str, List[float]] = defaultdict(list)

    def is_allowed(self, key: str) -> bool:
        with self._lock:
            now = self._clock()
            cutoff = now - self.window_seconds
            self._hits[key] = hits = [t for t in self._hits[key] if t > cutoff]
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            return True

    def retry_after(self, key: str) -> int:
        """Whole seconds until the oldest hit for `key` leaves the window."""
        with self._lock:
            hits = self._hits.get(key)
            if not hits:
                return 0
            remaining = hits[0] + self.window_seconds - self._clock()
        return max(int(remaining) + 1, 1)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


__all__ = ["SlidingWindowLimiter"]
