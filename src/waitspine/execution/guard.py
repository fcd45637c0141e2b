"""Timeout and retry budget checkpoints.

Each iteration of the polling loop passes three checks, in order:

1. ``check_timeout_now``   - the time budget is already spent
2. ``check_timeout_next``  - waiting ``next_delay`` would overshoot the
   budget (plus a small grace buffer), so fail now instead of sleeping
   through a wait that cannot end in success
3. ``check_retry_limit``   - the retry budget is spent

Every check raises the matching ``WaitError`` subclass; the scheduler routes
it to the completion handler.

Example:
    >>> ctx.elapsed, ctx.next_delay, ctx.timeout = 80.0, 50.0, 100
    >>> check_timeout_next(ctx, grace=10)
    Traceback (most recent call last):
    ...
    TimeoutExceeded: Operation timed out. Max timeout 100ms next execution would be at 130ms.
"""

from __future__ import annotations

from waitspine.core.errors import RetryLimitExceeded, TimeoutExceeded
from waitspine.execution.context import AttemptContext

DEFAULT_GRACE_MS = 10.0


def is_within_timeout(at: float, timeout: float, grace: float = DEFAULT_GRACE_MS) -> bool:
    return at <= timeout + grace


def check_timeout_now(ctx: AttemptContext) -> None:
    """Raise TimeoutExceeded if elapsed time already passed the timeout."""
    if ctx.timeout is not None and ctx.elapsed > ctx.timeout:
        raise TimeoutExceeded(ctx.timeout, ctx.elapsed, variant="now")


def check_timeout_next(ctx: AttemptContext, grace: float = DEFAULT_GRACE_MS) -> None:
    """Raise TimeoutExceeded if the next wait would end past timeout + grace."""
    if ctx.timeout is None:
        return
    next_elapsed = ctx.elapsed + ctx.next_delay
    if not is_within_timeout(next_elapsed, ctx.timeout, grace):
        raise TimeoutExceeded(ctx.timeout, next_elapsed, variant="next")


def check_retry_limit(ctx: AttemptContext) -> None:
    """Raise RetryLimitExceeded once ``retries`` reaches ``max_retries``."""
    if ctx.max_retries is not None and ctx.retries >= ctx.max_retries:
        raise RetryLimitExceeded(ctx.max_retries, ctx.elapsed)


__all__ = [
    "DEFAULT_GRACE_MS",
    "is_within_timeout",
    "check_timeout_now",
    "check_timeout_next",
    "check_retry_limit",
]
