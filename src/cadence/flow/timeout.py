"""Deadline Guard — stop waiting for an operation after a deadline.

Manifesto:
    Awaiting a dependency without a deadline hands control of your latency
    to that dependency.  The deadline guard races the operation against a
    timer; whichever settles first decides the outcome.

    - **Operation first:** Settles in time → its result or error, unchanged
    - **Timer first:** Raises DeadlineExceeded (a TimeoutError)
    - **No forced cancellation:** The abandoned operation keeps running;
      its eventual outcome is retrieved, logged and discarded

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────┐
        │ await timeout(fetch(url), 2.0, operation="fetch")          │
        └────────────────────────────────────────────────────────────┘
                              │
                              ▼
        ┌────────────────────────────────────────────────────────────┐
        │ asyncio.ensure_future(awaitable)  → task                   │
        │ asyncio.wait({task}, timeout=deadline)                     │
        │   done    → task.result()  (value or original exception)   │
        │   pending → keep task referenced until it settles,         │
        │             raise DeadlineExceeded                         │
        └────────────────────────────────────────────────────────────┘

        Wrapper form:

        guarded = with_timeout(fetch, 2.0)
        await guarded(url)   # same as await timeout(fetch(url), 2.0)

    ``asyncio.wait`` never cancels what it waits on, which is what keeps
    the abandoned operation alive.  ``asyncio.wait_for`` would cancel it.

Examples:
    >>> try:
    ...     page = await timeout(client.get(url), 5.0, operation="crawl")
    ... except DeadlineExceeded as e:
    ...     log.warning("slow page", waited=e.elapsed)

Guardrails:
    - The abandoned operation still consumes resources until it finishes
    - Side effects of an abandoned operation still happen
    - Pair with retry() carefully: each attempt may leave a straggler

Tags:
    timeout, deadline, resilience, cadence

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from cadence.core.errors import DeadlineExceeded, InvalidConfigError
from cadence.core.logging import get_logger, operation_name

T = TypeVar("T")

logger = get_logger(__name__)

# Abandoned operations stay referenced here until they settle
_abandoned: set[asyncio.Future[Any]] = set()


def _validate_deadline(deadline: float, operation: str) -> None:
    if deadline < 0:
        raise InvalidConfigError(
            f"Deadline must be non-negative, got {deadline}"
        ).with_context(component="timeout", operation=operation)


def _abandon(task: asyncio.Future[Any], operation: str) -> None:
    _abandoned.add(task)
    task.add_done_callback(functools.partial(_abandoned_settled, operation))


def _abandoned_settled(operation: str, task: asyncio.Future[Any]) -> None:
    _abandoned.discard(task)
    if task.cancelled():
        outcome = "cancelled"
    elif task.exception() is not None:
        outcome = f"failed: {task.exception()!r}"
    else:
        outcome = "succeeded"
    logger.debug("timeout.abandoned_settled", operation=operation, outcome=outcome)


def abandoned_count() -> int:
    """Number of operations abandoned by a deadline that are still running."""
    return len(_abandoned)


async def timeout(
    awaitable: Awaitable[T],
    deadline: float,
    operation: str | None = None,
) -> T:
    """Await ``awaitable`` for at most ``deadline`` seconds.

    Args:
        awaitable: Coroutine, task or future to wait for
        deadline: Maximum time to wait, in seconds (``>= 0``)
        operation: Name for error messages and logs

    Returns:
        The awaitable's result, if it settles in time

    Raises:
        DeadlineExceeded: If the deadline elapses first
        InvalidConfigError: If ``deadline`` is negative
        Exception: Whatever the awaitable raised, if it settled in time
    """
    op_name = operation or getattr(awaitable, "__qualname__", None) or "operation"
    if deadline < 0 and inspect.iscoroutine(awaitable):
        awaitable.close()
    _validate_deadline(deadline, op_name)

    task = asyncio.ensure_future(awaitable)
    start = time.monotonic()

    try:
        await asyncio.wait({task}, timeout=deadline)
    except asyncio.CancelledError:
        if not task.done():
            _abandon(task, op_name)
        raise

    if task.done():
        return task.result()

    elapsed = time.monotonic() - start
    _abandon(task, op_name)
    logger.warning(
        "timeout.deadline_exceeded",
        operation=op_name,
        deadline=deadline,
        elapsed=elapsed,
    )
    raise DeadlineExceeded(deadline=deadline, elapsed=elapsed, operation=op_name)


def with_timeout(
    func: Callable[..., Any],
    deadline: float,
    operation: str | None = None,
) -> Callable[..., Awaitable[Any]]:
    """Wrap ``func`` so every call is guarded by ``deadline`` seconds.

    The wrapper is always a coroutine function.  If ``func`` returns a
    plain value it is already settled and is returned as is.

    Example:
        >>> @functools.partial(with_timeout, deadline=10.0)
        ... async def fetch_data(url):
        ...     return await http_get(url)
    """
    op_name = operation or operation_name(func)
    _validate_deadline(deadline, op_name)

    @functools.wraps(func)
    async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
        result = func(*args, **kwargs)
        if not inspect.isawaitable(result):
            return result
        return await timeout(result, deadline, operation=op_name)

    async_wrapper.deadline = deadline  # type: ignore[attr-defined]
    return async_wrapper


__all__ = [
    "abandoned_count",
    "timeout",
    "with_timeout",
]
