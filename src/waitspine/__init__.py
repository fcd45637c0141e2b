"""
waitspine - poll a predicate until it succeeds.

Example:
    >>> from waitspine import wait_for
    >>> result = await wait_for(is_ready, delay=100, timeout=5_000)
"""

__version__ = "0.1.0"

from waitspine.core.errors import (  # noqa: E402
    AbortedByCaller,
    AbortedByCancellationSignal,
    AbortedError,
    ConfigurationError,
    HookError,
    PredicateError,
    RetryLimitExceeded,
    TimeoutExceeded,
    WaitError,
)
from waitspine.execution import (  # noqa: E402
    AttemptContext,
    CancellationSignal,
    WaitOperation,
    WaitOptions,
    WaitResult,
    schedule_wait_for,
    wait_for,
    wait_for_sync,
    with_wait,
)

__all__ = [
    "__version__",
    "AbortedByCaller",
    "AbortedByCancellationSignal",
    "AbortedError",
    "AttemptContext",
    "CancellationSignal",
    "ConfigurationError",
    "HookError",
    "PredicateError",
    "RetryLimitExceeded",
    "TimeoutExceeded",
    "WaitError",
    "WaitOperation",
    "WaitOptions",
    "WaitResult",
    "schedule_wait_for",
    "wait_for",
    "wait_for_sync",
    "with_wait",
]
