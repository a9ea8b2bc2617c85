"""
Sliding window rate limiter.

State lives in this process only: it protects one session or one process,
not a multi-instance deployment. Access is expected from a single event loop,
so no locking is done.
"""

import time
from collections import deque
from typing import Callable, Deque, Dict, List, Optional

from ..config import settings
from ..errors import RateLimitExceeded


class RateLimiter:
    """
    Per-identifier sliding window rate limiter.

    Each identifier keeps an ordered list of request timestamps; every check
    prunes the ones older than the window before deciding.
    """

    def __init__(
        self,
        max_requests: Optional[int] = None,
        window_ms: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests if max_requests is not None else settings.rate_limit_max_requests
        self.window_ms = window_ms if window_ms is not None else settings.rate_limit_window_ms
        if self.max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be at least 1")
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = {}

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _prune(self, identifier: str, now: float) -> Deque[float]:
        timestamps = self._requests.get(identifier)
        if timestamps is None:
            return deque()
        while timestamps and now - timestamps[0] >= self.window_ms:
            timestamps.popleft()
        if not timestamps:
            del self._requests[identifier]
        return timestamps

    def tracked_identifiers(self) -> List[str]:
        """Identifiers with requests inside their window."""
        now = self._now_ms()
        for identifier in list(self._requests):
            self._prune(identifier, now)
        return list(self._requests)

    def is_allowed(self, identifier: str = "default") -> bool:
        """
        Record a request for ``identifier`` if it fits in the window.

        Returns:
            True if accepted, False if the window is full
        """
        now = self._now_ms()
        timestamps = self._prune(identifier, now)

        if len(timestamps) < self.max_requests:
            timestamps.append(now)
            self._requests[identifier] = timestamps
            return True

        return False

    def check(self, identifier: str = "default") -> None:
        """Like ``is_allowed`` but raises RateLimitExceeded on denial."""
        if self.is_allowed(identifier):
            return

        timestamps = self._requests[identifier]
        retry_after = max(0, int(self.window_ms - (self._now_ms() - timestamps[0])))
        raise RateLimitExceeded(
            limit=self.max_requests,
            window_ms=self.window_ms,
            retry_after_ms=retry_after,
            identifier=identifier,
        )

    def remaining(self, identifier: str = "default") -> int:
        timestamps = self._prune(identifier, self._now_ms())
        return max(0, self.max_requests - len(timestamps))

    def reset(self, identifier: Optional[str] = None) -> None:
        """Forget one identifier's history, or everyone's."""
        if identifier is None:
            self._requests.clear()
        else:
            self._requests.pop(identifier, None)
