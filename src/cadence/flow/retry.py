"""Resilience Wrapper — re-invoke a failing operation with exponential backoff.

Provides the backoff policy, the per-call retry loop and two entry points:
``retry`` builds a reusable wrapped operation, ``retry_with_backoff`` runs
one zero-argument operation directly.

The delay before retry ``n`` (1-indexed attempt that just failed) is
``base_delay * 2 ** (n - 1)``: the first retry waits ``base_delay``, the
second ``2 * base_delay``, and so on.  There is no jitter and no cap on the
delay.  If every attempt fails, the *last* attempt's exception is re-raised
unchanged; earlier failures are only logged.

Example:
    >>> from cadence.flow.retry import ExponentialBackoff
    >>>
    >>> policy = ExponentialBackoff(max_attempts=4, base_delay=0.5)
    >>> [policy.delay_for(attempt) for attempt in (1, 2, 3)]
    [0.5, 1.0, 2.0]
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from cadence.core.errors import InvalidConfigError
from cadence.core.logging import get_logger, operation_name
from cadence.core.settings import get_settings

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass
class ExponentialBackoff:
    """Exponential backoff without jitter or cap.

    Delay = base_delay * 2 ** (attempt - 1)

    Attributes:
        max_attempts: Total attempts allowed, including the first (>= 1)
        base_delay: Delay in seconds after the first failed attempt (>= 0)
    """

    max_attempts: int = 3
    base_delay: float = 1.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise InvalidConfigError(
                f"max_attempts must be >= 1, got {self.max_attempts}"
            ).with_context(component="retry")
        if self.base_delay < 0:
            raise InvalidConfigError(
                f"base_delay must be non-negative, got {self.base_delay}"
            ).with_context(component="retry")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-indexed) failed attempt."""
        return self.base_delay * (2 ** (attempt - 1))

    def should_retry(self, attempt: int) -> bool:
        """Check if another attempt is allowed after ``attempt`` failed."""
        return attempt < self.max_attempts

    def total_delay(self, failures: int) -> float:
        """Total backoff slept before success after ``failures`` failures."""
        return sum(self.delay_for(n) for n in range(1, failures + 1))


@dataclass
class RetryContext:
    """Attempt counter for one outer call.

    Created fresh for every call of a retried operation and discarded when
    the call resolves or exhausts its attempts.

    Example:
        >>> ctx = RetryContext(ExponentialBackoff(max_attempts=3, base_delay=0.1))
        >>> result = ctx.run(lambda: call_api())
    """

    policy: ExponentialBackoff
    on_retry: Callable[[int, Exception, float], None] | None = None
    operation: str = "operation"
    attempt: int = field(default=0, init=False)
    last_error: Exception | None = field(default=None, init=False)

    @property
    def attempts(self) -> int:
        """Number of attempts made."""
        return self.attempt

    def _record_failure(self, error: Exception) -> float | None:
        """Record a failed attempt; return the backoff delay, or None if exhausted."""
        self.last_error = error

        if not self.policy.should_retry(self.attempt):
            if self.policy.max_attempts > 1:
                logger.warning(
                    "retry.exhausted",
                    operation=self.operation,
                    attempts=self.attempt,
                    error=str(error),
                    error_type=type(error).__name__,
                )
            return None

        delay = self.policy.delay_for(self.attempt)
        logger.info(
            "retry.attempt_failed",
            operation=self.operation,
            attempt=self.attempt,
            max_attempts=self.policy.max_attempts,
            delay=delay,
            error=str(error),
            error_type=type(error).__name__,
        )
        if self.on_retry:
            self.on_retry(self.attempt, error, delay)
        return delay

    def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Execute a sync function with retry logic.

        Raises:
            The last attempt's exception if all attempts fail
        """
        while True:
            self.attempt += 1
            try:
                return func(*args, **kwargs)
            except Exception as e:
                delay = self._record_failure(e)
                if delay is None:
                    raise

            time.sleep(delay)

    async def run_async(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Execute a function with retry logic, awaiting its result if needed.

        Raises:
            The last attempt's exception if all attempts fail
        """
        while True:
            self.attempt += 1
            try:
                result = func(*args, **kwargs)
                if inspect.isawaitable(result):
                    result = await result
                return result
            except Exception as e:
                delay = self._record_failure(e)
                if delay is None:
                    raise

            await asyncio.sleep(delay)

    async def resume_async(
        self,
        pending: Awaitable[Any],
        func: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Finish an attempt whose result is still pending, then keep retrying.

        Used when a plain callable returned an awaitable from :meth:`run`:
        a failure while awaiting it counts as that attempt failing.
        """
        try:
            return await pending
        except Exception as e:
            delay = self._record_failure(e)
            if delay is None:
                raise

        await asyncio.sleep(delay)
        return await self.run_async(func, *args, **kwargs)


def _resolve_policy(max_attempts: int | None, base_delay: float | None) -> ExponentialBackoff:
    settings = get_settings()
    return ExponentialBackoff(
        max_attempts=settings.retry_max_attempts if max_attempts is None else max_attempts,
        base_delay=settings.retry_base_delay if base_delay is None else base_delay,
    )


def retry(
    func: Callable[..., T],
    max_attempts: int | None = None,
    base_delay: float | None = None,
    *,
    on_retry: Callable[[int, Exception, float], None] | None = None,
) -> Callable[..., T]:
    """Wrap ``func`` so failing calls are retried with exponential backoff.

    Args:
        func: Sync or async callable to retry.
        max_attempts: Total attempts (default: ``CADENCE_RETRY_MAX_ATTEMPTS``).
        base_delay: First backoff in seconds (default: ``CADENCE_RETRY_BASE_DELAY``).
        on_retry: Callback ``(attempt, error, delay)`` before each backoff.

    Returns:
        A wrapper of the same kind as ``func``.  The policy is exposed as
        ``wrapper.policy``.  If a plain callable returns an awaitable, the
        wrapper returns a coroutine that keeps retrying with ``asyncio.sleep``.

    Example:
        >>> fetch_quote = retry(fetch_quote, max_attempts=5, base_delay=0.2)
        >>> await fetch_quote("AAPL")
    """
    policy = _resolve_policy(max_attempts, base_delay)
    name = operation_name(func)

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            ctx = RetryContext(policy=policy, on_retry=on_retry, operation=name)
            return await ctx.run_async(func, *args, **kwargs)

        async_wrapper.policy = policy  # type: ignore[attr-defined]
        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> T:
        ctx = RetryContext(policy=policy, on_retry=on_retry, operation=name)
        result = ctx.run(func, *args, **kwargs)
        if inspect.isawaitable(result):
            return ctx.resume_async(result, func, *args, **kwargs)
        return result

    sync_wrapper.policy = policy  # type: ignore[attr-defined]
    return sync_wrapper


async def retry_with_backoff(
    func: Callable[[], Awaitable[T] | T],
    max_attempts: int | None = None,
    base_delay: float | None = None,
    *,
    on_retry: Callable[[int, Exception, float], None] | None = None,
) -> T:
    """Run a zero-argument operation now, retrying with exponential backoff.

    Same algorithm as :func:`retry`, offered as a direct async call.

    Example:
        >>> rows = await retry_with_backoff(lambda: db.fetch(query), 4, 0.25)
    """
    policy = _resolve_policy(max_attempts, base_delay)
    ctx = RetryContext(policy=policy, on_retry=on_retry, operation=operation_name(func))
    return await ctx.run_async(func)


__all__ = [
    "ExponentialBackoff",
    "RetryContext",
    "retry",
    "retry_with_backoff",
]
