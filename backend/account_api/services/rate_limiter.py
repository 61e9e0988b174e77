"""In-memory sliding-window rate limiting for credential endpoints."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

from account_api.config import settings
from account_api.core.exceptions import APIError, ErrorKind


class SlidingWindowLimiter:
    """Per-key request budget over a rolling time window, single-node only."""

    def __init__(self, clock: Callable[[], float] = time.monotonic, enabled: bool = True) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: Dict[str, Deque[float]] = {}
        self.enabled = enabled

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        if not self.enabled:
            return True

        now = self._clock()
        cutoff = now - window_seconds

        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()

            if len(hits) >= limit:
                return False

            hits.append(now)
            return True

    def check(self, key: str, limit: int, window_seconds: int, message: str | None = None) -> None:
        """Record a hit for ``key`` or raise RATE_LIMITED when the window is full."""
        if not self.allow(key, limit, window_seconds):
            raise APIError(ErrorKind.RATE_LIMITED, message)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


rate_limiter = SlidingWindowLimiter(enabled=settings.RATE_LIMIT_ENABLED)
