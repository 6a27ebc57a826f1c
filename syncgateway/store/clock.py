"""Millisecond modification clock."""

from __future__ import annotations

import threading
import time
from typing import Callable


class ModificationClock:
    """Hands out strictly increasing millisecond timestamps.

    Wall-clock time is used while it moves forward; when two writes land in
    the same millisecond (or the wall clock steps back) the previous value is
    bumped by one instead.
    """

    def __init__(self, time_source: Callable[[], float] = time.time) -> None:
        self._time_source = time_source
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            current = int(self._time_source() * 1000)
            if current <= self._last:
                current = self._last + 1
            self._last = current
            return current

    def observe(self, timestamp: int) -> None:
        """Never hand out a value at or below ``timestamp`` afterwards."""

        with self._lock:
            if timestamp > self._last:
                self._last = timestamp


__all__ = ["ModificationClock"]
