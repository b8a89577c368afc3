"""Rate Limiter — at most one leading-edge call per window.

Manifesto:
Some work must keep happening under sustained pressure (progress
reporting, autosave, polling) but never more often than a fixed period.
Unlike :mod:`cadence.flow.debounce`, which waits for quiet, ``throttle``
runs the *first* call of each window immediately and silently drops
every call that arrives before the window has elapsed.

ARCHITECTURE
────────────
::

    throttle(func, delay, clock=None)
      └── LeadingEdgeLimiter
            ├── try_acquire()    ─ now - last_fire >= delay ?
            │                        yes → record now, run func
            │                        no  → drop (return None)
            ├── get_wait_time()  ─ seconds until the next call would run
            └── executed / dropped counters

    t=0.00  call ──► runs        (no previous fire: always allowed)
    t=0.02  call ──► dropped
    t=0.05  call ──► dropped
    t=0.10  call ──► runs        (window elapsed)

    No trailing flush and no queued replay: a dropped call is simply
    not executed.  Dropping is not a failure, so nothing is raised.

The timestamp is recorded before the operation is invoked, so an executed
call that raises still occupies its window.  The limiter's check-then-act
is guarded by a lock so sync wrappers stay correct when shared between
threads.

Related modules:
    debounce.py    — trailing-edge alternative
    core/clock.py  — monotonic clock, ManualClock for tests

Example::

    report = throttle(send_progress, 1.0)
    for chunk in stream:
        process(chunk)
        report(done=chunk.offset)   # at most one report per second

Tags:
    cadence, flow, throttle, rate-limit, leading-edge

Doc-Types:
    api-reference
"""

import functools
import inspect
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from cadence.core.clock import SYSTEM_CLOCK, Clock
from cadence.core.errors import InvalidConfigError
from cadence.core.logging import get_logger, operation_name

logger = get_logger(__name__)


@dataclass
class LeadingEdgeLimiter:
    """Allows one acquisition per ``delay`` seconds, dropping the rest.

    Attributes:
        delay: Window length in seconds
        clock: Monotonic clock to read time from
        operation: Name used in log events
    """

    delay: float
    clock: Clock = field(default=SYSTEM_CLOCK)
    operation: str = "operation"

    executed: int = field(default=0, init=False)
    dropped: int = field(default=0, init=False)
    _last_fire: float | None = field(default=None, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self):
        if self.delay < 0:
            raise InvalidConfigError(
                f"Throttle delay must be non-negative, got {self.delay}"
            ).with_context(component="throttle", operation=self.operation)

    @property
    def last_fire(self) -> float | None:
        """Clock reading of the last executed call, if any."""
        return self._last_fire

    def try_acquire(self) -> bool:
        """Claim the current window; False if it is already taken."""
        with self._lock:
            now = self.clock.now()
            if self._last_fire is not None and now - self._last_fire < self.delay:
                self.dropped += 1
                since_last = now - self._last_fire
            else:
                self._last_fire = now
                self.executed += 1
                return True

        logger.debug(
            "throttle.dropped",
            operation=self.operation,
            since_last=since_last,
            delay=self.delay,
        )
        return False

    def get_wait_time(self) -> float:
        """Seconds until the next call would be allowed (0 if allowed now)."""
        with self._lock:
            if self._last_fire is None:
                return 0.0
            return max(0.0, self._last_fire + self.delay - self.clock.now())


def throttle(
    func: Callable[..., Any],
    delay: float,
    *,
    clock: Clock | None = None,
) -> Callable[..., Any]:
    """Wrap ``func`` so it runs at most once per ``delay`` seconds.

    Args:
        func: Sync or async callable.
        delay: Window length in seconds (``>= 0``).
        clock: Clock override (defaults to ``time.monotonic``).

    Returns:
        A wrapper of the same kind as ``func`` (coroutine function if
        ``func`` is one).  Executed calls return ``func``'s result; dropped
        calls return ``None``.  The limiter is exposed as
        ``wrapper.limiter``.

    Raises:
        InvalidConfigError: If ``delay`` is negative.
    """
    limiter = LeadingEdgeLimiter(
        delay=delay,
        clock=clock or SYSTEM_CLOCK,
        operation=operation_name(func),
    )

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            if not limiter.try_acquire():
                return None
            return await func(*args, **kwargs)

        async_wrapper.limiter = limiter  # type: ignore[attr-defined]
        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        if not limiter.try_acquire():
            return None
        return func(*args, **kwargs)

    sync_wrapper.limiter = limiter  # type: ignore[attr-defined]
    return sync_wrapper


__all__ = ["LeadingEdgeLimiter", "throttle"]
