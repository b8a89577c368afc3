"""
Cadence Core - shared primitives for the control-flow wrappers.

Modules:
    errors    ─ CadenceError hierarchy, DeadlineExceeded, InvalidConfigError
    logging   ─ structlog configuration and get_logger()
    settings  ─ CadenceSettings (pydantic-settings, CADENCE_ prefix)
    clock     ─ Clock protocol, MonotonicClock, ManualClock
    hashing   ─ canonical_key() for memoize default keys
    cache     ─ MemoCache write-once result store
"""

from cadence.core.cache import MISSING, CacheBackend, MemoCache
from cadence.core.clock import SYSTEM_CLOCK, Clock, ManualClock, MonotonicClock
from cadence.core.errors import (
    CadenceError,
    ConfigError,
    DeadlineExceeded,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    categorize_error,
    is_retryable,
)
from cadence.core.hashing import canonical_key, canonical_repr
from cadence.core.logging import configure_logging, get_logger
from cadence.core.settings import CadenceSettings, get_settings, reset_settings

__all__ = [
    # cache
    "MISSING",
    "CacheBackend",
    "MemoCache",
    # clock
    "Clock",
    "MonotonicClock",
    "ManualClock",
    "SYSTEM_CLOCK",
    # errors
    "CadenceError",
    "ConfigError",
    "InvalidConfigError",
    "DeadlineExceeded",
    "ErrorCategory",
    "ErrorContext",
    "categorize_error",
    "is_retryable",
    # hashing
    "canonical_key",
    "canonical_repr",
    # logging
    "configure_logging",
    "get_logger",
    # settings
    "CadenceSettings",
    "get_settings",
    "reset_settings",
]
