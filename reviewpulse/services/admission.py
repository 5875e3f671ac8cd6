"""Sliding-window admission control keyed by client."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable


class SlidingWindowLimiter:
    """Admit at most ``max_requests`` calls per client within ``window_seconds``.

    Rejected calls are not recorded, so a client hammering the limiter does
    not extend its own lockout.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        max_tracked_keys: int = 10_000,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._max_tracked_keys = max_tracked_keys
        self._requests: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def allow(self, client_key: str) -> bool:
        with self._lock:
            now = self._clock()
            history = self._requests.get(client_key)
            if history is None:
                if len(self._requests) >= self._max_tracked_keys:
                    self._prune_locked(now)
                history = self._requests[client_key] = deque()
            self._expire(history, now)
            if len(history) >= self._max_requests:
                return False
            history.append(now)
            return True

    def retry_after(self, client_key: str) -> float:
        """Seconds until ``allow`` would admit this client again."""

        with self._lock:
            history = self._requests.get(client_key)
            if not history:
                return 0.0
            now = self._clock()
            self._expire(history, now)
            if len(history) < self._max_requests:
                return 0.0
            return max(history[0] + self._window - now, 0.0)

    def prune(self) -> int:
        """Forget clients with no request inside the window; returns how many were dropped."""

        with self._lock:
            return self._prune_locked(self._clock())

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._requests)

    def _prune_locked(self, now: float) -> int:
        stale = []
        for key, history in self._requests.items():
            self._expire(history, now)
            if not history:
                stale.append(key)
        for key in stale:
            del self._requests[key]
        return len(stale)

    def _expire(self, history: deque[float], now: float) -> None:
        while history and now - history[0] >= self._window:
            history.popleft()
