"""Small higher-order helpers that sit beside the control-flow wrappers.

- ``once``          ─ run at most once, replay the first result
- ``delay``         ─ run after a fixed pause (always async)
- ``sleep``         ─ validated ``asyncio.sleep``
- ``measure_time``  ─ return ``TimedResult(result, elapsed)``
- ``log_calls``     ─ log arguments, result and failure as structlog events
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from cadence.core.cache import MISSING
from cadence.core.errors import InvalidConfigError
from cadence.core.logging import get_logger, operation_name

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass(frozen=True)
class TimedResult(Generic[T]):
    """A result paired with the wall-clock seconds it took to produce."""

    result: T
    elapsed: float


def once(func: Callable[..., T]) -> Callable[..., T]:
    """Call ``func`` on the first successful invocation only.

    Later calls return the first result and ignore their arguments.  A first
    call that raises is not remembered, so the next call tries again.  Async
    first calls run as one shared task: callers that overlap with it await
    the same run instead of starting their own.
    """
    state: dict[str, Any] = {"result": MISSING, "pending": None}

    def share(awaitable: Awaitable[Any], *, keep_task: bool) -> asyncio.Future[Any]:
        task = asyncio.ensure_future(awaitable)
        state["pending"] = task

        def settled(t: asyncio.Future[Any]) -> None:
            if state["pending"] is t:
                state["pending"] = None
            if not t.cancelled() and t.exception() is None:
                state["result"] = t if keep_task else t.result()

        task.add_done_callback(settled)
        return task

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            if state["result"] is not MISSING:
                return state["result"]
            pending = state["pending"] or share(func(*args, **kwargs), keep_task=False)
            # One caller's cancellation must not cancel the shared run
            return await asyncio.shield(pending)

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> T:
        if state["result"] is not MISSING:
            return state["result"]
        if state["pending"] is not None:
            return state["pending"]
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            return share(result, keep_task=True)
        state["result"] = result
        return result

    return sync_wrapper


async def sleep(seconds: float) -> None:
    """Suspend the current task for ``seconds`` (``>= 0``)."""
    if seconds < 0:
        raise InvalidConfigError(f"Sleep duration must be non-negative, got {seconds}")
    await asyncio.sleep(seconds)


def delay(func: Callable[..., Any], seconds: float) -> Callable[..., Awaitable[Any]]:
    """Wrap ``func`` so each call waits ``seconds`` before running it."""
    if seconds < 0:
        raise InvalidConfigError(
            f"Delay must be non-negative, got {seconds}"
        ).with_context(component="delay", operation=operation_name(func))

    @functools.wraps(func)
    async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
        await asyncio.sleep(seconds)
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    return async_wrapper


def measure_time(func: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap ``func`` to return :class:`TimedResult` instead of the bare result."""
    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> TimedResult[Any]:
            start = time.perf_counter()
            result = await func(*args, **kwargs)
            return TimedResult(result=result, elapsed=time.perf_counter() - start)

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> TimedResult[Any]:
        start = time.perf_counter()
        result = func(*args, **kwargs)
        return TimedResult(result=result, elapsed=time.perf_counter() - start)

    return sync_wrapper


def log_calls(func: Callable[..., Any], label: str | None = None) -> Callable[..., Any]:
    """Wrap ``func`` to log each call's arguments and outcome.

    Events: ``call.started``, ``call.completed``, ``call.failed``.
    Failures are re-raised after logging.
    """
    name = label or operation_name(func)

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            logger.info("call.started", label=name, args=args, kwargs=kwargs)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.warning("call.failed", label=name, error=str(e), error_type=type(e).__name__)
                raise
            logger.info("call.completed", label=name, result=result)
            return result

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        logger.info("call.started", label=name, args=args, kwargs=kwargs)
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.warning("call.failed", label=name, error=str(e), error_type=type(e).__name__)
            raise
        logger.info("call.completed", label=name, result=result)
        return result

    return sync_wrapper


__all__ = [
    "TimedResult",
    "delay",
    "log_calls",
    "measure_time",
    "once",
    "sleep",
]
