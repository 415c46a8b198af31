"""Clocks used by the rate limiter."""

import threading
import time
from typing import Protocol


class Clock(Protocol):
    """Anything that returns the current time in seconds."""
    
    def now(self) -> float:
        ...


class MonotonicClock:
    """Default clock backed by time.monotonic()."""
    
    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to. Used by tests and simulations."""
    
    def __init__(self, start: float = 0.0):
        self._now = start
        self._lock = threading.Lock()
    
    def now(self) -> float:
        with self._lock:
            return self._now
    
    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        with self._lock:
            self._now += seconds
    
    def set(self, value: float) -> None:
        with self._lock:
            if value < self._now:
                raise ValueError("ManualClock cannot move backwards")
            self._now = value
