"""waitspine.core - errors, logging and settings shared by every layer."""

from waitspine.core.errors import (
    AbortedByCaller,
    AbortedByCancellationSignal,
    AbortedError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    HookError,
    PredicateError,
    RetryLimitExceeded,
    TimeoutExceeded,
    WaitError,
    categorize_error,
    is_fundamental_error,
)
from waitspine.core.logging import configure_logging, get_logger
from waitspine.core.settings import WaitSettings, get_settings, reset_settings

__all__ = [
    "AbortedByCaller",
    "AbortedByCancellationSignal",
    "AbortedError",
    "ConfigurationError",
    "ErrorCategory",
    "ErrorContext",
    "HookError",
    "PredicateError",
    "RetryLimitExceeded",
    "TimeoutExceeded",
    "WaitError",
    "categorize_error",
    "is_fundamental_error",
    "configure_logging",
    "get_logger",
    "WaitSettings",
    "get_settings",
    "reset_settings",
]
