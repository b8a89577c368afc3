"""Result Cache — return a stored result for a repeated argument signature.

``memoize`` keys the cache on a canonical, type-tagged serialization of the
call arguments (see :mod:`cadence.core.hashing`), so ``f(1)`` and ``f("1")``
are cached separately.  ``memoize_with`` takes a caller-supplied key
function instead, which may deliberately map different argument tuples to
one entry.

Failures are never cached: if the operation raises, the error propagates
unchanged and the next identical call invokes the operation again.  The
cache has no eviction, TTL or size limit; it lives as long as the wrapper.

Async results are shared: the first call schedules the awaitable as a task
and caches the task, so identical calls that overlap while it is in flight
await the same run.  A coroutine function's wrapper swaps the task for its
value once it succeeds; a plain callable that returns an awaitable keeps
the task cached, since its callers await what they are given.  A failed
or cancelled task is dropped from the cache.

Example::

    @functools.partial(memoize_with, key_fn=lambda user, **_: user.id)
    async def load_profile(user, *, fresh=False):
        ...
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Awaitable, Callable, Hashable
from typing import Any

from cadence.core.cache import MISSING, CacheBackend, MemoCache
from cadence.core.errors import InvalidConfigError
from cadence.core.hashing import canonical_key
from cadence.core.logging import get_logger, operation_name

logger = get_logger(__name__)


def memoize(func: Callable[..., Any], *, cache: CacheBackend | None = None) -> Callable[..., Any]:
    """Cache ``func``'s results by structural argument signature.

    The store (a fresh :class:`MemoCache` unless ``cache`` is given) is
    exposed as ``wrapper.cache``.
    """
    return _memoized(func, canonical_key, cache)


def memoize_with(
    func: Callable[..., Any],
    key_fn: Callable[..., Hashable],
    *,
    cache: CacheBackend | None = None,
) -> Callable[..., Any]:
    """Cache ``func``'s results under ``key_fn(*args, **kwargs)``.

    Args:
        func: Sync or async callable, assumed pure for a given key.
        key_fn: Receives the call arguments, returns a hashable key.
        cache: Store to use instead of a private :class:`MemoCache`.

    Raises:
        InvalidConfigError: If ``key_fn`` is not callable.
    """
    if not callable(key_fn):
        raise InvalidConfigError(
            f"key_fn must be callable, got {type(key_fn).__name__}"
        ).with_context(component="memoize", operation=operation_name(func))
    return _memoized(func, key_fn, cache)


def _share(
    store: CacheBackend,
    key: Hashable,
    awaitable: Awaitable[Any],
    *,
    keep_task: bool,
) -> asyncio.Future[Any]:
    """Cache ``awaitable`` as a task so every caller with ``key`` awaits one run.

    A failed or cancelled task is discarded from the store. A successful one
    stays cached as the task when callers await the returned object
    themselves (``keep_task``), otherwise it is swapped for its value.
    """
    task = asyncio.ensure_future(awaitable)
    store.set(key, task)

    def settled(t: asyncio.Future[Any]) -> None:
        if t.cancelled() or t.exception() is not None:
            store.discard(key)
        elif not keep_task:
            store.discard(key)
            store.set(key, t.result())

    task.add_done_callback(settled)
    return task


def _memoized(
    func: Callable[..., Any],
    key_fn: Callable[..., Hashable],
    cache: CacheBackend | None,
) -> Callable[..., Any]:
    store: CacheBackend = MemoCache() if cache is None else cache
    name = operation_name(func)

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            key = key_fn(*args, **kwargs)
            cached = store.get(key)
            if cached is MISSING:
                logger.debug("memoize.miss", operation=name, size=store.size())
                cached = _share(store, key, func(*args, **kwargs), keep_task=False)
            if asyncio.isfuture(cached):
                # One caller's cancellation must not cancel the shared run
                return await asyncio.shield(cached)
            return cached

        async_wrapper.cache = store  # type: ignore[attr-defined]
        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        key = key_fn(*args, **kwargs)
        cached = store.get(key)
        if cached is not MISSING:
            return cached

        logger.debug("memoize.miss", operation=name, size=store.size())
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            return _share(store, key, result, keep_task=True)
        store.set(key, result)
        return result

    sync_wrapper.cache = store  # type: ignore[attr-defined]
    return sync_wrapper


__all__ = ["memoize", "memoize_with"]
