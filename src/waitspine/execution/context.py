"""Attempt context, snapshots and results of a wait.

``AttemptContext`` is the mutable state of one iteration. Hooks receive it
and may change it (``args``, ``delay``, ``timeout`` ...); the next iteration
is derived from it, so such changes carry over. ``settle()`` and ``abort()``
end the wait out of band through the operation's mailbox.

``AttemptSnapshot`` is the frozen copy stored in every ``WaitResult``.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass, field, fields
from typing import Any

from waitspine.execution.delay import DelayPolicy
from waitspine.execution.mailbox import Mailbox, MailboxEntry
from waitspine.execution.signal import CancellationSignal

Hook = Callable[..., Any]


def as_args(args: Any) -> tuple[Any, ...]:
    """Coerce predicate arguments to a tuple; a lone value becomes a 1-tuple."""
    if args is None:
        return ()
    if isinstance(args, (list, tuple)):
        return tuple(args)
    return (args,)


@dataclass(frozen=True)
class AttemptSnapshot:
    """Read-only view of an ``AttemptContext`` at a point in time."""

    id: str
    attempt: int
    retries: int
    elapsed: float
    next_delay: float
    args: tuple[Any, ...]
    delay: float
    timeout: float | None
    max_retries: int | None
    min_delay: float | None
    max_delay: float | None
    exponential_backoff: float | None
    jitter_range: float
    retry_on_error: bool
    is_settled: bool
    is_aborted: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Serialise for logging / CLI output (args rendered with repr)."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["args"] = [repr(arg) for arg in self.args]
        return data


@dataclass
class WaitResult:
    """Terminal outcome of a wait.

    Attributes:
        success: True when the predicate (or ``settle()``) ended the wait
        value: Truthy predicate return value or the settled value
        message: Failure description
        error: Exception that ended the wait, if any
        caller: Exit path that produced the result (for diagnostics)
        state: Snapshot of the attempt context at completion
    """

    success: bool
    state: AttemptSnapshot
    value: Any = None
    message: str | None = None
    error: BaseException | None = None
    caller: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "value": repr(self.value) if self.value is not None else None,
            "message": self.message,
            "error": self.error.__class__.__name__ if self.error is not None else None,
            "caller": self.caller,
            "state": self.state.to_dict(),
        }


@dataclass(eq=False)
class AttemptContext:
    """Mutable per-iteration state threaded through the polling loop.

    Time values are milliseconds. ``retries`` is the iteration index, so it
    equals ``attempt - 1`` while the predicate runs.
    """

    id: str
    predicate: Callable[..., Any]
    mailbox: Mailbox
    args: tuple[Any, ...] = ()

    # counters
    attempt: int = 0
    retries: int = 0
    elapsed: float = 0.0
    next_delay: float = 0.0

    # policy
    delay: float = 1000.0
    timeout: float | None = None
    max_retries: int | None = None
    min_delay: float | None = None
    max_delay: float | None = None
    exponential_backoff: float | None = None
    jitter_range: float = 0.0
    retry_on_error: bool = False
    enhance_args: bool = False

    # hooks; on_success, on_failure and callback are once-guarded by the normalizer
    on_heartbeat: Hook | None = None
    on_error: Hook | None = None
    on_success: Hook | None = None
    on_failure: Hook | None = None
    callback: Hook | None = None

    signal: CancellationSignal | None = None
    rng: random.Random | None = field(default=None, repr=False)

    # terminal flags, settable out of band
    is_settled: bool = False
    value: Any = None
    is_aborted: bool = False
    message: str = ""
    error: BaseException | None = None

    @property
    def delay_policy(self) -> DelayPolicy:
        return DelayPolicy(
            exponential_backoff=self.exponential_backoff,
            min_delay=self.min_delay,
            max_delay=self.max_delay,
            jitter_range=self.jitter_range,
        )

    def settle(self, value: Any = True) -> WaitResult:
        """End the wait successfully with ``value``.

        Takes effect at the next checkpoint; no predicate invocation happens
        after it. Returns the fulfilled outcome to the caller.
        """
        self.is_settled = True
        self.value = value
        self.mailbox.post(MailboxEntry(is_settled=True, value=value))
        return WaitResult(
            success=True, value=value, caller=".settle()", state=self.snapshot()
        )

    def abort(self, reason: Any = None) -> WaitResult:
        """End the wait as a failure carrying ``reason``.

        The outward future rejects with ``AbortedByCaller``; this call itself
        returns a fulfilled ``WaitResult`` describing the failure.
        """
        self.is_aborted = True
        self.message = str(reason) if reason else ".abort() called"
        self.mailbox.post(MailboxEntry(is_aborted=True, message=self.message))
        return WaitResult(
            success=False, message=self.message, caller=".abort()", state=self.snapshot()
        )

    def snapshot(self) -> AttemptSnapshot:
        return AttemptSnapshot(
            id=self.id,
            attempt=self.attempt,
            retries=self.retries,
            elapsed=self.elapsed,
            next_delay=self.next_delay,
            args=as_args(self.args),
            delay=self.delay,
            timeout=self.timeout,
            max_retries=self.max_retries,
            min_delay=self.min_delay,
            max_delay=self.max_delay,
            exponential_backoff=self.exponential_backoff,
            jitter_range=self.jitter_range,
            retry_on_error=self.retry_on_error,
            is_settled=self.is_settled,
            is_aborted=self.is_aborted,
            message=self.message,
        )


__all__ = ["AttemptContext", "AttemptSnapshot", "WaitResult", "as_args"]
