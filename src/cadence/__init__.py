"""
Cadence - asynchronous control-flow wrappers.

- cadence.core: errors, logging, settings, clock, hashing, cache
- cadence.flow: debounce, throttle, memoize, retry, timeout, limit_concurrency
"""

__version__ = "0.1.0"

from cadence.core.errors import CadenceError, DeadlineExceeded, InvalidConfigError  # noqa: E402
from cadence.flow import *  # noqa: E402,F401,F403
