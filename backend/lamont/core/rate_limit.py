from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


@dataclass
class _Window:
    count: int
    started_at: float


class RegistrationRateLimiter:
    """Per-key fixed-window counter for account creation.

    A window opens on the first hit for a key and lasts ``window_seconds``.
    State is per-process and lost on restart, so this is an anti-abuse
    measure rather than a security boundary.
    """

    def __init__(self, limit: int, window_seconds: int, clock: Callable[[], float] | None = None) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock or time.time
        self._windows: Dict[str, _Window] = {}
        # The APScheduler purge job runs on its own thread
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    def hit(self, key: str) -> RateLimitDecision:
        """Record an attempt for ``key`` and say whether it may proceed."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now - window.started_at > self._window_seconds:
                self._windows[key] = _Window(count=1, started_at=now)
                return RateLimitDecision(allowed=True, remaining=self._limit - 1)

            if window.count >= self._limit:
                retry_after = math.ceil(window.started_at + self._window_seconds - now)
                return RateLimitDecision(allowed=False, remaining=0, retry_after=max(retry_after, 1))

            window.count += 1
            return RateLimitDecision(allowed=True, remaining=self._limit - window.count)

    def release(self, key: str) -> None:
        """Give back one attempt recorded by ``hit``, e.g. when the account was never created."""
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                return
            window.count -= 1
            if window.count <= 0:
                self._windows.pop(key, None)

    def purge_expired(self) -> int:
        """Drop windows that have closed. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, window in self._windows.items()
                       if now - window.started_at > self._window_seconds]
            for key in expired:
                self._windows.pop(key, None)
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
