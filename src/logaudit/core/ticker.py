"""
Tick and cancellation source for the audit loop.
"""

from __future__ import annotations

import threading
import time
from typing import Optional


class Ticker:
    """
    Fires every `interval` seconds until cancelled.

    Ticks are scheduled at a fixed rate from the first call to wait(), so a
    slow cycle does not push later ticks back. If a cycle overruns one or
    more ticks, the missed ticks are dropped and the next one fires
    immediately.

    wait() blocks for the next tick and returns True, or returns False as
    soon as cancel() has been called (from any thread or a signal handler).
    """

    def __init__(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._interval = interval
        self._cancelled = threading.Event()
        self._next_tick: Optional[float] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def wait(self) -> bool:
        now = time.monotonic()
        if self._next_tick is None:
            self._next_tick = now + self._interval
        if self._cancelled.wait(max(0.0, self._next_tick - now)):
            return False

        self._next_tick += self._interval
        now = time.monotonic()
        if self._next_tick <= now:
            # drop missed ticks, keep the phase
            missed = (now - self._next_tick) // self._interval + 1
            self._next_tick += missed * self._interval
        return True

    def cancel(self) -> None:
        self._cancelled.set()
