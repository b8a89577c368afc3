"""Monotonic clock abstraction.

Wrappers that compare timestamps (the rate limiter) read time through a
:class:`Clock` so tests can drive time by hand instead of sleeping.

Example::

    clock = ManualClock()
    save = throttle(save_draft, 1.0, clock=clock)
    save("a")           # runs
    clock.advance(0.5)
    save("b")           # dropped
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of monotonic timestamps in seconds."""

    def now(self) -> float:
        """Return the current monotonic time in seconds."""
        ...


class MonotonicClock:
    """Clock backed by :func:`time.monotonic`."""

    def now(self) -> float:
        return time.monotonic()

    def __repr__(self) -> str:
        return "MonotonicClock()"


@dataclass
class ManualClock:
    """Clock that only moves when told to."""

    value: float = 0.0

    def now(self) -> float:
        return self.value

    def advance(self, seconds: float) -> float:
        """Move the clock forward and return the new time."""
        if seconds < 0:
            raise ValueError(f"Cannot move a monotonic clock backwards ({seconds})")
        self.value += seconds
        return self.value


SYSTEM_CLOCK = MonotonicClock()


__all__ = ["Clock", "MonotonicClock", "ManualClock", "SYSTEM_CLOCK"]
