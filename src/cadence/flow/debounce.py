"""Deferred Invoker — collapse a burst of calls into one trailing call.

WHY
───
Event sources (keystrokes, file watchers, resize notifications) fire in
bursts, while the work they trigger only needs to run once the burst is
over.  ``debounce`` restarts a timer on every call and invokes the
operation once the timer survives ``delay`` seconds of quiet, with the
arguments of the *last* call.

ARCHITECTURE
────────────
::

    debounce(func, delay)  ──►  wrapper(*args, **kwargs) -> None
                                  │
                                  ▼
                             DebounceTimer
                               ├── cancel previous TimerHandle
                               ├── loop.call_later(delay, _fire)
                               └── _fire ─► func(*args)   (sync)
                                         └► create task   (awaitable result)

    Burst of N calls inside the window:

    call 1 ─┐ call 2 ─┐ ... call N ─┐
            x         x             └─── delay ───► func(args of call N)

Calls are fire-and-forget: the wrapper returns ``None`` and the operation's
result (or failure) is never observable by callers.  Failures are logged as
``debounce.failed``.  A ``delay`` of ``0`` still defers to the next loop
iteration; the operation never runs synchronously inside the call.

Related modules:
    throttle.py — leading-edge alternative (runs first, drops the rest)

Example::

    save = debounce(save_draft, 0.3)
    save("h"); save("he"); save("hel")
    await asyncio.sleep(0.4)      # save_draft("hel") ran exactly once
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Callable
from typing import Any

from cadence.core.errors import InvalidConfigError
from cadence.core.logging import get_logger, operation_name

logger = get_logger(__name__)


class DebounceTimer:
    """The single pending timer owned by one debounced wrapper.

    Parameters
    ----------
    delay : float
        Seconds of inactivity required before the call fires.
    operation : str
        Name used in log events.
    """

    def __init__(self, delay: float, operation: str = "operation") -> None:
        if delay < 0:
            raise InvalidConfigError(
                f"Debounce delay must be non-negative, got {delay}"
            ).with_context(component="debounce", operation=operation)
        self.delay = delay
        self.operation = operation
        self.fired = 0
        self.superseded = 0
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Future[Any]] = set()

    @property
    def pending(self) -> bool:
        """True while a scheduled call has not fired yet."""
        return self._handle is not None

    @property
    def running(self) -> int:
        """Number of fired async invocations that have not settled."""
        return len(self._tasks)

    def schedule(self, callback: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Replace any pending call with ``callback(*args, **kwargs)``.

        Must be called from inside a running event loop.
        """
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
            self.superseded += 1
        self._handle = loop.call_later(self.delay, self._fire, callback, args, kwargs)

    # ── Internals ────────────────────────────────────────────────────

    def _fire(self, callback: Callable[..., Any], args: tuple, kwargs: dict) -> None:
        self._handle = None
        self.fired += 1
        logger.debug(
            "debounce.fired",
            operation=self.operation,
            superseded=self.superseded,
        )
        try:
            result = callback(*args, **kwargs)
        except Exception as e:
            logger.error("debounce.failed", operation=self.operation, error=str(e), exc_info=e)
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._settled)

    def _settled(self, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "debounce.failed",
                operation=self.operation,
                error=str(error),
                exc_info=error,
            )

    def __repr__(self) -> str:
        return f"DebounceTimer(delay={self.delay}, pending={self.pending}, fired={self.fired})"


def debounce(func: Callable[..., Any], delay: float) -> Callable[..., None]:
    """Wrap ``func`` so that bursts of calls collapse into one trailing call.

    Args:
        func: Sync or async callable to defer.
        delay: Seconds of inactivity before ``func`` runs (``>= 0``).

    Returns:
        A plain callable returning ``None``.  Its :class:`DebounceTimer` is
        available as ``wrapper.timer``.

    Raises:
        InvalidConfigError: If ``delay`` is negative.
    """
    timer = DebounceTimer(delay, operation=operation_name(func))

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        timer.schedule(func, *args, **kwargs)

    wrapper.timer = timer  # type: ignore[attr-defined]
    return wrapper


__all__ = ["DebounceTimer", "debounce"]
