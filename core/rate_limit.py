import time
from typing import Callable, Dict, Tuple


class RateLimiter:
    """increment(key) counts one request for `key` and says whether it is allowed."""

    def increment(self, key: str) -> bool:
        raise NotImplementedError

    def reset(self, key: str = None):
        raise NotImplementedError


class InMemoryRateLimiter(RateLimiter):
    """Per-key counter whose window opens on the first request and closes `window_seconds` later.

    State lives in this process only: it is lost on restart and not shared
    between workers. Swap in another RateLimiter for multi-instance deployments.
    """

    def __init__(self, limit: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._entries: Dict[str, Tuple[int, float]] = {}  # key -> (count, reset_at)

    def increment(self, key: str) -> bool:
        now = self.clock()
        entry = self._entries.get(key)
        if entry is None or now > entry[1]:
            self._entries[key] = (1, now + self.window_seconds)
            return True
        count, reset_at = entry
        if count >= self.limit:
            return False
        self._entries[key] = (count + 1, reset_at)
        return True

    def reset(self, key: str = None):
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)
