"""
Structured error types for the cadence control-flow layer.

Wrapped operations fail in exactly three ways, and callers must be able to
tell them apart:

- **Operation failure:** the caller's own operation raised. Its exception is
  passed through unchanged by every wrapper. Cadence never re-wraps it.
- **Exhausted retries:** the resilience wrapper gave up. The *last* attempt's
  exception is re-raised unchanged; earlier attempts are logged, not
  aggregated.
- **Deadline exceeded:** the deadline guard stopped waiting. This is a
  synthetic :class:`DeadlineExceeded`, distinct from anything the operation
  itself could raise.

Everything cadence raises on its own behalf derives from :class:`CadenceError`
so it can be caught as one family, and carries a category, a retryable flag
and structured context for logging.

Manifesto:
    - **Pass-through over wrapping:** The caller's exception is the contract
    - **Typed synthetic errors:** Only cadence-originated failures get new types
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry metadata for structured logs

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                      CadenceError                          │
        │        (category, retryable, context, cause)               │
        ├───────────────────────────────────────────────────────────┤
        │                                                            │
        │  ConfigError              DeadlineExceeded                 │
        │  (CONFIG)                 (TIMEOUT, retryable,             │
        │      │                     also a builtin TimeoutError)    │
        │  InvalidConfigError                                        │
        │  (also a builtin ValueError)                               │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> error = DeadlineExceeded(deadline=0.5, elapsed=0.51, operation="fetch")
    >>> error.retryable
    True
    >>> isinstance(error, TimeoutError)
    True

    >>> InvalidConfigError("max_attempts must be >= 1").with_context(
    ...     component="retry"
    ... ).to_dict()["context"]
    {'component': 'retry'}

Tags:
    error-handling, exception-hierarchy, timeout, retry, cadence

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    CONFIG = "CONFIG"             # Invalid wrapper configuration
    TIMEOUT = "TIMEOUT"           # Deadline elapsed before settlement
    OPERATION = "OPERATION"       # The wrapped operation itself failed
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a :class:`CadenceError`.

    Attributes:
        operation: Name of the wrapped operation (usually ``func.__qualname__``)
        component: Wrapper that raised (``retry``, ``timeout``, ``gate``, ...)
        attempt: Attempt number, when the error relates to a retried call
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    component: str | None = None
    attempt: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "component", "attempt"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CadenceError(Exception):
    """
    Base exception for every error cadence raises on its own behalf.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    callers (and :func:`is_retryable`) get sensible behaviour without
    passing flags at every raise site.

    Example:
        >>> error = CadenceError("unexpected state")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CadenceError:
        """
        Add context to this error (fluent API).

        Usage:
            raise InvalidConfigError("delay must be >= 0").with_context(
                component="debounce", delay=-1
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS (Never Retryable)
# =============================================================================


class ConfigError(CadenceError):
    """Wrapper configuration is unusable."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError, ValueError):
    """A configuration value is out of range (negative delay, zero slots, ...).

    Also a :class:`ValueError`, so plain ``except ValueError`` keeps working.
    """


# =============================================================================
# DEADLINE ERRORS
# =============================================================================


class DeadlineExceeded(CadenceError, TimeoutError):
    """Raised when an operation does not settle within its deadline.

    The operation is *not* cancelled; it keeps running and its eventual
    outcome is discarded.

    Attributes:
        deadline: The deadline that was exceeded, in seconds
        elapsed: How long the guard waited before giving up
        operation: Name/description of the operation
    """

    default_category = ErrorCategory.TIMEOUT
    default_retryable = True

    def __init__(
        self,
        deadline: float,
        elapsed: float | None = None,
        operation: str = "operation",
    ):
        self.deadline = deadline
        self.elapsed = elapsed
        self.operation = operation

        msg = f"Operation '{operation}' timed out after {deadline}s"
        if elapsed is not None:
            msg += f" (waited {elapsed:.3f}s)"

        super().__init__(
            msg,
            context=ErrorContext(operation=operation, component="timeout"),
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """
    Check if an error is retryable.

    Cadence errors answer for themselves; any other exception is treated as
    an operation failure and considered retryable, since the resilience
    wrapper retries every ``Exception`` by contract.
    """
    if isinstance(error, CadenceError):
        return error.retryable
    return isinstance(error, Exception)


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category for an error."""
    if isinstance(error, CadenceError):
        return error.category
    if isinstance(error, Exception):
        return ErrorCategory.OPERATION
    return ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CadenceError",
    "ConfigError",
    "InvalidConfigError",
    "DeadlineExceeded",
    "is_retryable",
    "categorize_error",
]
