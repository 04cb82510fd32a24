import threading
import time
from typing import Callable, Dict, Tuple

from .errors import RateLimitError


class FixedWindowRateLimiter:
    """Allow ``limit`` hits per client key in each ``window`` seconds.

    A limit of 0 disables limiting. Once more than ``max_keys`` clients are
    tracked, windows that have already ended are dropped.
    """

    def __init__(
        self,
        limit: int,
        window: int = 60,
        clock: Callable[[], float] = time.monotonic,
        max_keys: int = 10000,
    ):
        self.limit = limit
        self.window = window
        self.clock = clock
        self.max_keys = max_keys
        self._lock = threading.Lock()
        self._windows: Dict[str, Tuple[float, int]] = {}

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def __len__(self) -> int:
        return len(self._windows)

    def _evict_expired(self, now: float):
        # caller holds self._lock
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window]
        for key in expired:
            del self._windows[key]

    def hit(self, key: str) -> int:
        """Count a request for ``key`` and return how many remain in the window."""
        if not self.enabled:
            return -1
        now = self.clock()
        with self._lock:
            if len(self._windows) >= self.max_keys:
                self._evict_expired(now)
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window:
                started, count = now, 0
            if count >= self.limit:
                raise RateLimitError()
            self._windows[key] = (started, count + 1)
            return self.limit - count - 1

    def reset(self):
        with self._lock:
            self._windows.clear()
