"""Per-client sliding-window limiter for the force-update trigger."""

import time
from collections import defaultdict


class InMemoryRateLimiter:
    """Allows at most ``max_requests`` per key within ``window_seconds``.

    State lives in this worker's memory; each process counts on its own.
    """

    def __init__(self, max_requests: int, window_seconds: int) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: dict[str, list[float]] = defaultdict(list)

    def is_allowed(self, key: str) -> bool:
        """Record a hit for ``key`` and report whether it fits the window.

        Rejected hits are not recorded.
        """
        now = time.monotonic()
        recent = [t for t in self._hits[key] if t > now - self.window_seconds]
        if len(recent) >= self.max_requests:
            self._hits[key] = recent
            return False

        recent.append(now)
        self._hits[key] = recent
        return True

    def reset(self, key: str) -> None:
        self._hits.pop(key, None)

    def clear(self) -> None:
        self._hits.clear()
