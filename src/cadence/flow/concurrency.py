"""Concurrency Gate — bound in-flight invocations, queue the excess FIFO.

WHY
───
Fanning out hundreds of calls to one dependency (an API, a database, a
model server) overloads it.  ``limit_concurrency`` lets at most
``max_concurrent`` calls of a wrapped operation run at once; later calls
wait in a FIFO queue and are admitted strictly in arrival order as
running calls settle.

ARCHITECTURE
────────────
::

    ConcurrencyGate(max_concurrent)
      ├── .acquire()   ─ admit now, or park a future in the wait queue
      ├── .release()   ─ hand the slot to the queue head, else free it
      ├── .active      ─ calls in the Running state
      └── .waiting     ─ calls in the Queued state

    Per-call state machine:

        call ──► active < max and queue empty? ──yes──► Running
                         │ no                              │
                         ▼                                 │ op settles
                      Queued ──(head, slot handed over)──► │ (ok or error)
                                                           ▼
                                                        Settled
                                   release(): queue head → Running,
                                              or active -= 1

    Invariant: 0 <= active <= max_concurrent at all times.

Slot hand-off
─────────────
When a running call settles and the queue is not empty, its slot moves
straight to the queue head: ``active`` stays the same, which is the same
as decrementing and immediately admitting the head.  A newcomer can
therefore never overtake a queued call.  A call cancelled while queued
leaves the queue and is never admitted; one cancelled after being handed
a slot passes the slot on.

All bookkeeping happens between suspension points of a single event
loop, so no lock is required.

Related modules:
    timeout.py  — guard individual calls with a deadline
    retry.py    — retry inside the gate to hold the slot across attempts

Example::

    fetch = limit_concurrency(fetch_filing, 4)
    results = await asyncio.gather(*(fetch(url) for url in urls))
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

from cadence.core.errors import CadenceError, InvalidConfigError
from cadence.core.logging import get_logger, operation_name

logger = get_logger(__name__)


class ConcurrencyGate:
    """Counting gate with a FIFO wait queue.

    Parameters
    ----------
    max_concurrent : int
        Maximum simultaneously admitted holders (>= 1).
    name : str
        Name used in log events.
    """

    def __init__(self, max_concurrent: int, name: str = "gate") -> None:
        if max_concurrent < 1:
            raise InvalidConfigError(
                f"max_concurrent must be >= 1, got {max_concurrent}"
            ).with_context(component="gate", operation=name)
        self._max_concurrent = max_concurrent
        self._name = name
        self._active = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    # ── Inspection ───────────────────────────────────────────────────

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def active(self) -> int:
        """Number of admitted holders that have not released."""
        return self._active

    @property
    def waiting(self) -> int:
        """Number of callers parked in the wait queue."""
        return len(self._waiters)

    def locked(self) -> bool:
        """True if a new caller would have to wait."""
        return self._active >= self._max_concurrent or bool(self._waiters)

    # ── Admission ────────────────────────────────────────────────────

    async def acquire(self) -> None:
        """Wait until admitted.  Admission order is arrival order."""
        if not self.locked():
            self._active += 1
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        logger.debug(
            "gate.queued",
            operation=self._name,
            active=self._active,
            waiting=len(self._waiters),
        )

        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # The slot was handed over before the cancellation landed
                self.release()
            elif fut in self._waiters:
                self._waiters.remove(fut)
            raise

    def release(self) -> None:
        """Give up a slot: hand it to the queue head, or free it."""
        if self._active <= 0:
            raise CadenceError(
                "ConcurrencyGate released more times than acquired"
            ).with_context(component="gate", operation=self._name)

        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_result(None)
                logger.debug(
                    "gate.admitted",
                    operation=self._name,
                    active=self._active,
                    waiting=len(self._waiters),
                )
                return

        self._active -= 1

    async def __aenter__(self) -> ConcurrencyGate:
        await self.acquire()
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        return (
            f"ConcurrencyGate(max_concurrent={self._max_concurrent}, "
            f"active={self._active}, waiting={len(self._waiters)})"
        )


def limit_concurrency(
    func: Callable[..., Any],
    max_concurrent: int,
) -> Callable[..., Awaitable[Any]]:
    """Wrap ``func`` so at most ``max_concurrent`` calls run at once.

    Each call's result or error is returned to its own caller; one call
    failing does not affect the others.

    Args:
        func: Async (or sync) callable.
        max_concurrent: Slots (``>= 1``; ``1`` serializes all calls).

    Returns:
        A coroutine function.  The gate is exposed as ``wrapper.gate``.

    Raises:
        InvalidConfigError: If ``max_concurrent`` is below 1.
    """
    gate = ConcurrencyGate(max_concurrent, name=operation_name(func))

    @functools.wraps(func)
    async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
        async with gate:
            result = func(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result

    async_wrapper.gate = gate  # type: ignore[attr-defined]
    return async_wrapper


__all__ = ["ConcurrencyGate", "limit_concurrency"]
