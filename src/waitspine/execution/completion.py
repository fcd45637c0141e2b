"""Exit path of a wait: the single funnel for success and failure.

Every terminal transition (predicate success, ``settle()``, ``abort()``,
timeout, retry limit, predicate error, fundamental error, hook error,
cancellation signal) ends in ``CompletionHandler.succeed`` or
``CompletionHandler.fail``. Both are idempotent: the first call wins and
later calls return the first result.

On completion the handler, in order:

1. cancels the pending wake-up;
2. detaches the cancellation-signal listener;
3. closes the mailbox (pending out-of-band entries are dropped);
4. fires exactly one of ``on_success`` / ``on_failure``;
5. fires ``callback(error, result)``;
6. fulfills the outward future (result on success, exception on failure).

Hook exceptions are logged and never keep the future from being fulfilled.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from enum import Enum
from typing import Any

from waitspine.core.errors import AbortedByCancellationSignal, WaitError
from waitspine.core.logging import get_logger
from waitspine.execution.context import AttemptContext, WaitResult
from waitspine.execution.mailbox import Mailbox
from waitspine.execution.signal import CancellationSignal

logger = get_logger(__name__)


class WaitState(str, Enum):
    """Lifecycle of one logical wait."""

    IDLE = "idle"            # created, first iteration not run yet
    INVOKING = "invoking"    # predicate running
    WAITING = "waiting"      # sleeping until the next attempt
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"  # awaiting task was cancelled, no outcome delivered


TERMINAL_STATES = frozenset({WaitState.SUCCEEDED, WaitState.FAILED, WaitState.CANCELLED})


class CompletionHandler:
    """Owns the resources of one wait and delivers its outcome once."""

    def __init__(
        self,
        future: asyncio.Future,
        mailbox: Mailbox,
        signal: CancellationSignal | None = None,
    ) -> None:
        self.future = future
        self.mailbox = mailbox
        self.signal = signal
        self.state = WaitState.IDLE
        self.result: WaitResult | None = None
        self._current: AttemptContext | None = None
        self._wakeup: asyncio.Task | None = None
        self._listener: Callable[[Any], None] | None = None
        self._pending_hooks: set[asyncio.Future] = set()

    @property
    def completed(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def listener_attached(self) -> bool:
        return self._listener is not None

    def track(self, ctx: AttemptContext) -> None:
        """Record the context of the running iteration (used by the signal listener)."""
        self._current = ctx

    def set_wakeup(self, wakeup: asyncio.Task | None) -> None:
        self._wakeup = wakeup

    def attach_signal(self, ctx: AttemptContext) -> None:
        """Install the cancellation listener; only the first call has any effect."""
        if self.signal is None or self._listener is not None or self.completed:
            return

        def on_abort(reason: Any) -> None:
            self.fail(self._current or ctx, AbortedByCancellationSignal(reason), caller="signal")

        self.signal.add_listener(on_abort)
        self._listener = on_abort

    # ------------------------------------------------------------------
    # terminal transitions
    # ------------------------------------------------------------------

    def succeed(self, ctx: AttemptContext, value: Any, caller: str) -> WaitResult:
        if self.completed:
            return self.result
        self.state = WaitState.SUCCEEDED
        self._cleanup()

        ctx.value = value
        result = WaitResult(success=True, value=value, caller=caller, state=ctx.snapshot())
        self.result = result
        logger.info(
            "wait_for.succeeded",
            operation_id=ctx.id,
            caller=caller,
            attempt=ctx.attempt,
            elapsed_ms=round(ctx.elapsed, 3),
        )

        self._fire("on_success", ctx.on_success, result)
        self._fire("callback", ctx.callback, None, result)
        if not self.future.done():
            self.future.set_result(result)
        return result

    def fail(self, ctx: AttemptContext, error: BaseException, caller: str) -> WaitResult:
        if self.completed:
            return self.result
        self.state = WaitState.FAILED
        self._cleanup()

        message = error.message if isinstance(error, WaitError) else (str(error) or repr(error))
        ctx.message = message
        ctx.error = error
        result = WaitResult(
            success=False, message=message, error=error, caller=caller, state=ctx.snapshot()
        )
        if isinstance(error, WaitError):
            error.attach_result(result)
        self.result = result
        logger.warning(
            "wait_for.failed",
            operation_id=ctx.id,
            caller=caller,
            error_type=error.__class__.__name__,
            message=message,
            attempt=ctx.attempt,
            retries=ctx.retries,
            elapsed_ms=round(ctx.elapsed, 3),
        )

        self._fire("on_failure", ctx.on_failure, result)
        self._fire("callback", ctx.callback, error, result)
        if not self.future.done():
            self.future.set_exception(error)
        return result

    def cancel(self) -> None:
        """Release resources without delivering an outcome."""
        if self.completed:
            return
        self.state = WaitState.CANCELLED
        self._cleanup()
        if not self.future.done():
            self.future.cancel()

    # ------------------------------------------------------------------

    def _cleanup(self) -> None:
        if self._wakeup is not None and not self._wakeup.done():
            self._wakeup.cancel()
        self._wakeup = None

        if self._listener is not None and self.signal is not None:
            self.signal.remove_listener(self._listener)
        self._listener = None

        self.mailbox.close()

    def _fire(self, name: str, hook: Callable[..., Any] | None, *args: Any) -> None:
        if hook is None:
            return
        try:
            outcome = hook(*args)
        except Exception:
            logger.exception("wait_for.hook_failed", hook=name)
            return
        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            self._pending_hooks.add(task)
            task.add_done_callback(self._hook_done(name))

    def _hook_done(self, name: str) -> Callable[[asyncio.Future], None]:
        def done(task: asyncio.Future) -> None:
            self._pending_hooks.discard(task)
            if not task.cancelled() and task.exception() is not None:
                logger.error("wait_for.hook_failed", hook=name, error=repr(task.exception()))

        return done


__all__ = ["WaitState", "TERMINAL_STATES", "CompletionHandler"]
