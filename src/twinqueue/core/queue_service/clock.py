"""Time sources for the queue services.

All timestamps are integer milliseconds. The file backend compares
timestamps written by different processes, so the system clock is based on
wall time rather than ``time.monotonic``.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Abstract time source."""

    @abstractmethod
    def now(self) -> int:
        """Return the current time in milliseconds."""


class SystemClock(Clock):
    """Wall clock that never goes backwards within a process."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        current = time.time_ns() // 1_000_000
        with self._lock:
            if current < self._last:
                current = self._last
            self._last = current
        return current


class ManualClock(Clock):
    """Deterministic clock driven explicitly, mainly for tests."""

    def __init__(self, start: int = 0) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, millis: int) -> int:
        if millis < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += millis
        return self._now

    def set(self, millis: int) -> None:
        if millis < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = millis
