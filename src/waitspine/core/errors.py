"""
Structured error types for waitspine.

Every way a wait can end badly has its own exception type. Each one carries
the terminal ``WaitResult`` (when the engine produced one) so that callers
who only see the exception can still inspect the final attempt state.

Manifesto:
    - **Typed taxonomy:** Timeout, retry limit, abort and predicate failures
      are distinct types, not message strings
    - **Explicit retry semantics:** Each error knows if it is retryable
    - **Rich context:** Errors carry the correlation id and attempt counters
    - **Error chaining:** Predicate and hook errors keep the original as cause

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                          WaitError                              │
        │  (category, retryable, context, cause, result)                  │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                 │
        │  ConfigurationError   TimeoutExceeded     RetryLimitExceeded    │
        │  (CONFIG)             (TIMEOUT)           (LIMIT)               │
        │                                                                 │
        │  AbortedError         PredicateError      HookError             │
        │  (ABORT)              (PREDICATE)         (HOOK)                │
        │     │                                                           │
        │  AbortedByCaller                                                │
        │  AbortedByCancellationSignal                                    │
        └─────────────────────────────────────────────────────────────────┘

        Fundamental Python errors (TypeError, NameError, ...) are NOT
        wrapped: they propagate untouched and bypass the retry policy.

Examples:
    >>> error = TimeoutExceeded(100, 250.0, variant="now")
    >>> error.category
    <ErrorCategory.TIMEOUT: 'TIMEOUT'>
    >>> "timed out" in error.message
    True

    >>> is_fundamental_error(TypeError("bad operand"))
    True
    >>> is_fundamental_error(ConnectionError("refused"))
    False

Guardrails:
    ❌ DON'T: Catch fundamental errors and retry them
    ✅ DO: Let ``is_fundamental_error`` decide, fail fast on programming bugs

    ❌ DON'T: Swallow the original predicate exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, retry-logic, waitspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from waitspine.execution.context import AttemptSnapshot, WaitResult


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        CONFIG: Invalid options, rejected before anything is scheduled
        TIMEOUT: Time budget exhausted (now, or projected after next delay)
        LIMIT: Retry budget exhausted
        ABORT: Caller or cancellation signal stopped the wait
        PREDICATE: Predicate raised and the policy does not retry
        HOOK: A heartbeat or error hook raised
        INTERNAL: Bugs, unexpected state
    """

    CONFIG = "CONFIG"
    TIMEOUT = "TIMEOUT"
    LIMIT = "LIMIT"
    ABORT = "ABORT"
    PREDICATE = "PREDICATE"
    HOOK = "HOOK"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a wait error.

    Attributes:
        operation_id: Correlation id shared by all iterations of one wait
        attempt: Predicate invocations made so far
        retries: Iteration index when the error was raised
        elapsed: Milliseconds elapsed since the wait started
        caller: Exit path that produced the error
        metadata: Additional key-value pairs
    """

    operation_id: str | None = None
    attempt: int | None = None
    retries: int | None = None
    elapsed: float | None = None
    caller: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation_id", "attempt", "retries", "elapsed", "caller"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class WaitError(Exception):
    """
    Base exception for every failure surfaced by the polling engine.

    Subclasses set ``default_category`` and ``default_retryable``. The
    completion handler attaches the terminal ``WaitResult`` via
    ``attach_result`` before the outward future is rejected, so
    ``error.result.state`` is always available on engine-produced failures.

    Examples:
        >>> error = WaitError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["error_type"]
        'WaitError'
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
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause
        self.result: WaitResult | None = None

        if cause is not None:
            self.__cause__ = cause

    @property
    def state(self) -> AttemptSnapshot | None:
        """Snapshot of the attempt context at the terminal transition."""
        return self.result.state if self.result is not None else None

    def attach_result(self, result: WaitResult) -> WaitError:
        """Bind the terminal result and copy its counters into the context."""
        self.result = result
        state = result.state
        self.context.operation_id = state.id
        self.context.attempt = state.attempt
        self.context.retries = state.retries
        self.context.elapsed = state.elapsed
        self.context.caller = result.caller
        return self

    def with_context(self, **kwargs: Any) -> WaitError:
        """
        Add context to this error (fluent API).

        Usage:
            raise PredicateError("boom").with_context(target="db")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
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
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(WaitError):
    """
    Invalid wait options.

    Raised synchronously by the normalizer and the delay calculator, before
    any attempt is scheduled. Never retryable.
    """

    default_category = ErrorCategory.CONFIG

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid option {key}: {value!r}")


# =============================================================================
# BUDGET ERRORS
# =============================================================================


class TimeoutExceeded(WaitError):
    """
    The time budget is spent.

    ``variant`` is ``"now"`` when elapsed time already passed the timeout and
    ``"next"`` when waiting for the next delay would overshoot it.
    """

    default_category = ErrorCategory.TIMEOUT

    def __init__(self, timeout: float, at: float, *, variant: str = "now"):
        self.timeout = timeout
        self.at = at
        self.variant = variant
        if variant == "next":
            message = (
                f"Operation timed out. Max timeout {timeout}ms "
                f"next execution would be at {at:.0f}ms."
            )
        else:
            message = (
                f"Operation timed out. Max timeout {timeout}ms "
                f"already exceeded at {at:.0f}ms."
            )
        super().__init__(message)


class RetryLimitExceeded(WaitError):
    """The retry budget is spent."""

    default_category = ErrorCategory.LIMIT

    def __init__(self, max_retries: int, elapsed: float):
        self.max_retries = max_retries
        super().__init__(
            f"Operation retry limit {max_retries} reached. Elapsed time {elapsed:.0f}ms"
        )


# =============================================================================
# ABORT ERRORS
# =============================================================================


class AbortedError(WaitError):
    """The wait was stopped before the predicate succeeded."""

    default_category = ErrorCategory.ABORT

    def __init__(self, message: str, *, reason: Any = None):
        self.reason = reason
        super().__init__(message)


class AbortedByCaller(AbortedError):
    """``abort()`` was called on an attempt context."""

    def __init__(self, reason: Any = None):
        message = str(reason) if reason else ".abort() called"
        super().__init__(message, reason=reason)


class AbortedByCancellationSignal(AbortedError):
    """The external cancellation signal fired."""

    def __init__(self, reason: Any = None):
        message = "Operation aborted"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message, reason=reason)


# =============================================================================
# PREDICATE / HOOK ERRORS
# =============================================================================


class PredicateError(WaitError):
    """The predicate raised and the retry policy does not swallow errors."""

    default_category = ErrorCategory.PREDICATE

    def __init__(self, cause: BaseException):
        super().__init__(str(cause) or cause.__class__.__name__, cause=cause)


class HookError(WaitError):
    """``on_heartbeat`` or ``on_error`` raised."""

    default_category = ErrorCategory.HOOK

    def __init__(self, hook: str, cause: BaseException):
        self.hook = hook
        super().__init__(str(cause) or cause.__class__.__name__, cause=cause)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

# Programming errors: retrying cannot fix them.
FUNDAMENTAL_ERRORS: tuple[type[BaseException], ...] = (
    TypeError,
    NameError,
    AttributeError,
    SyntaxError,
    ReferenceError,
    RecursionError,
)


def is_fundamental_error(error: BaseException) -> bool:
    """Check if an error is a language-level error that is never retried."""
    return isinstance(error, FUNDAMENTAL_ERRORS)


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, WaitError):
        return error.category
    if is_fundamental_error(error):
        return ErrorCategory.INTERNAL
    return ErrorCategory.PREDICATE


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "WaitError",
    "ConfigurationError",
    "TimeoutExceeded",
    "RetryLimitExceeded",
    "AbortedError",
    "AbortedByCaller",
    "AbortedByCancellationSignal",
    "PredicateError",
    "HookError",
    "FUNDAMENTAL_ERRORS",
    "is_fundamental_error",
    "categorize_error",
]
