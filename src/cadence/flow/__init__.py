"""Cadence Flow — higher-order wrappers adding timing and resilience.

WHY
───
Callers keep writing plain functions; a wrapper adds one behaviour on top
(defer, rate-limit, cache, retry, deadline, bound parallelism) and returns
a drop-in replacement.  Every wrapper owns its state privately, so two
wrapped instances of the same function never interfere.

ARCHITECTURE
────────────
::

    func ──► wrapper(func, config) ──► wrapped
                                          │ state exposed as an attribute
    debounce(func, delay)                 ├── .timer    DebounceTimer
    throttle(func, delay)                 ├── .limiter  LeadingEdgeLimiter
    memoize(func) / memoize_with(...)     ├── .cache    MemoCache
    retry(func, attempts, base_delay)     ├── .policy   ExponentialBackoff
    with_timeout(func, deadline)          ├── .deadline float
    limit_concurrency(func, max)          └── .gate     ConcurrencyGate

    Wrappers compose; each wraps whatever callable it is given:

    fetch = limit_concurrency(retry(with_timeout(fetch, 2.0), 3, 0.5), 8)

MODULE MAP
──────────
  1. debounce.py     ─ trailing call after quiescence
  2. throttle.py     ─ leading call per window, drop the rest
  3. memoize.py      ─ cache by argument signature, never cache failures
  4. retry.py        ─ exponential backoff, re-raise the last error
  5. timeout.py      ─ race against a deadline, abandon (not cancel)
  6. concurrency.py  ─ bounded in-flight calls, FIFO admission
  7. helpers.py      ─ once, delay, sleep, measure_time, log_calls
"""

from cadence.flow.concurrency import ConcurrencyGate, limit_concurrency
from cadence.flow.debounce import DebounceTimer, debounce
from cadence.flow.helpers import TimedResult, delay, log_calls, measure_time, once, sleep
from cadence.flow.memoize import memoize, memoize_with
from cadence.flow.retry import ExponentialBackoff, RetryContext, retry, retry_with_backoff
from cadence.flow.throttle import LeadingEdgeLimiter, throttle
from cadence.flow.timeout import abandoned_count, timeout, with_timeout

__all__ = [
    # debounce
    "DebounceTimer",
    "debounce",
    # throttle
    "LeadingEdgeLimiter",
    "throttle",
    # memoize
    "memoize",
    "memoize_with",
    # retry
    "ExponentialBackoff",
    "RetryContext",
    "retry",
    "retry_with_backoff",
    # timeout
    "abandoned_count",
    "timeout",
    "with_timeout",
    # concurrency
    "ConcurrencyGate",
    "limit_concurrency",
    # helpers
    "TimedResult",
    "delay",
    "log_calls",
    "measure_time",
    "once",
    "sleep",
]
