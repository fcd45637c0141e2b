"""Polling loop and public entry points.

WHY
───
"Call this until it says yes" shows up everywhere: a service becoming
healthy, a file appearing, a job leaving the queue. The loop is simple to
write and easy to get subtly wrong: waiting although the timeout cannot be
met, firing completion hooks twice, missing an abort that arrived
mid-sleep, or retrying a ``TypeError`` forever. ``wait_for`` handles all of
that once.

ARCHITECTURE
────────────
::

    wait_for / schedule_wait_for / wait_for_sync / @with_wait
      │
      ▼
    normalize()                  ─ one AttemptContext, once-guarded hooks
      │
      ▼
    WaitOperation._run()         ─ one asyncio task, one loop
      │  per iteration:
      │    checkpoint            ─ mailbox, settled/aborted flags, signal
      │    check_timeout_now
      │    compute_delay
      │    check_timeout_next    ─ only when a wait will follow
      │    check_retry_limit
      │    on_heartbeat(ctx)
      │    sleep(next_delay)     ─ skipped on the first attempt
      │    checkpoint
      │    invoke(ctx)           ─ truthy → succeed, falsy → continue_from()
      ▼
    CompletionHandler            ─ cleanup, hooks once, outward future

STATES
──────
``IDLE → INVOKING → (SUCCEEDED | WAITING → INVOKING → …) → SUCCEEDED | FAILED``;
any state may move to ``FAILED`` (timeout, retry limit, abort, signal,
predicate error, fundamental error, hook error).

Example::

    async def ready() -> bool:
        return (await client.get("/health")).status_code == 200

    result = await wait_for(ready, delay=250, timeout=10_000, exponential_backoff=1.5)
    print(result.state.attempt)
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import time
from collections.abc import Callable, Generator, Mapping
from typing import Any

from waitspine.core.errors import (
    AbortedByCaller,
    AbortedByCancellationSignal,
    HookError,
    PredicateError,
    RetryLimitExceeded,
    TimeoutExceeded,
    WaitError,
)
from waitspine.core.logging import bind_context, get_logger, unbind_context
from waitspine.core.settings import get_settings
from waitspine.execution.completion import CompletionHandler, WaitState
from waitspine.execution.context import AttemptContext, Hook, WaitResult
from waitspine.execution.delay import compute_delay
from waitspine.execution.guard import check_retry_limit, check_timeout_next, check_timeout_now
from waitspine.execution.invoker import invoke
from waitspine.execution.normalizer import WaitOptions, continue_from, normalize

logger = get_logger(__name__)


def _caller_for(error: BaseException) -> str:
    if isinstance(error, TimeoutExceeded):
        return f"timeout_{error.variant}"
    if isinstance(error, RetryLimitExceeded):
        return "max_retries"
    if isinstance(error, PredicateError):
        return "predicate_error"
    if isinstance(error, HookError):
        return f"{error.hook}_error"
    if isinstance(error, WaitError):
        return error.category.value.lower()
    return "native_error"


class WaitOperation:
    """One logical wait: the loop task, its context and its outward future.

    Awaiting the operation awaits its outcome::

        op = schedule_wait_for(ready, delay=100)
        ...
        result = await op
    """

    def __init__(self, ctx: AttemptContext, *, grace: float | None = None) -> None:
        self._loop = asyncio.get_running_loop()
        self.context = ctx
        self.id = ctx.id
        self.future: asyncio.Future[WaitResult] = self._loop.create_future()
        self.completion = CompletionHandler(self.future, ctx.mailbox, ctx.signal)
        self.grace = grace if grace is not None else get_settings().timeout_grace
        self._started: float | None = None
        self._task: asyncio.Task | None = None
        self.future.add_done_callback(self._on_future_done)

    @property
    def state(self) -> WaitState:
        return self.completion.state

    @property
    def done(self) -> bool:
        return self.future.done()

    def elapsed_ms(self) -> float:
        if self._started is None:
            return 0.0
        return (time.monotonic() - self._started) * 1000.0

    def start(self) -> WaitOperation:
        if self._task is None:
            self._started = time.monotonic()
            self._task = self._loop.create_task(self._run(), name=f"wait_for:{self.id}")
        return self

    def cancel(self) -> None:
        """Stop the loop without delivering an outcome to the hooks."""
        self.completion.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _on_future_done(self, future: asyncio.Future) -> None:
        # a consumer that stops awaiting (timeout, task cancel) stops the loop
        if future.cancelled():
            self.cancel()

    def __await__(self) -> Generator[Any, None, WaitResult]:
        return self.future.__await__()

    # ------------------------------------------------------------------
    # loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        bind_context(operation_id=self.id)
        ctx = self.context
        logger.debug("wait_for.started", delay=ctx.delay, timeout=ctx.timeout)
        try:
            while True:
                self.context = ctx
                self.completion.track(ctx)
                if self._checkpoint(ctx):
                    return

                check_timeout_now(ctx)
                self.completion.attach_signal(ctx)

                ctx.next_delay = compute_delay(
                    ctx.delay, ctx.retries, ctx.delay_policy, rng=ctx.rng
                )
                will_wait = ctx.attempt > 0
                if will_wait:
                    check_timeout_next(ctx, self.grace)
                check_retry_limit(ctx)

                await self._heartbeat(ctx)
                if self.completion.completed:
                    return

                if will_wait and not ctx.mailbox.pending:
                    await self._sleep(ctx)
                if self.completion.completed or self._checkpoint(ctx):
                    return

                self.completion.state = WaitState.INVOKING
                logger.debug("wait_for.attempt", attempt=ctx.attempt + 1, retries=ctx.retries)
                outcome = await invoke(ctx, self.elapsed_ms)
                if self.completion.completed:
                    # completed out of band while the predicate ran; result discarded
                    return
                if outcome.done:
                    self.completion.succeed(ctx, outcome.value, caller="predicate")
                    return

                ctx = continue_from(ctx)
        except Exception as exc:
            self.completion.fail(ctx, exc, caller=_caller_for(exc))
        finally:
            unbind_context("operation_id")

    def _checkpoint(self, ctx: AttemptContext) -> bool:
        """Honor out-of-band outcomes; True when the wait has completed."""
        entry = ctx.mailbox.take()
        if entry is not None:
            if entry.is_settled:
                self.completion.succeed(ctx, entry.value, caller=".settle()")
                return True
            if entry.is_aborted:
                self.completion.fail(ctx, AbortedByCaller(entry.message), caller=".abort()")
                return True

        if ctx.is_settled:
            self.completion.succeed(ctx, ctx.value, caller="is_settled")
            return True
        if ctx.is_aborted:
            self.completion.fail(ctx, AbortedByCaller(ctx.message or None), caller="is_aborted")
            return True
        if ctx.signal is not None and ctx.signal.aborted:
            self.completion.fail(
                ctx, AbortedByCancellationSignal(ctx.signal.reason), caller="signal"
            )
            return True
        return False

    async def _heartbeat(self, ctx: AttemptContext) -> None:
        if ctx.on_heartbeat is None:
            return
        try:
            outcome = ctx.on_heartbeat(ctx)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            raise HookError("on_heartbeat", exc) from exc

    async def _sleep(self, ctx: AttemptContext) -> None:
        self.completion.state = WaitState.WAITING
        logger.debug("wait_for.retry_scheduled", retries=ctx.retries, delay_ms=ctx.next_delay)
        wakeup = self._loop.create_task(asyncio.sleep(ctx.next_delay / 1000.0))
        self.completion.set_wakeup(wakeup)
        ctx.mailbox.watch(wakeup.cancel)
        try:
            await asyncio.wait({wakeup})
        finally:
            ctx.mailbox.watch(None)
            if not wakeup.done():
                wakeup.cancel()
            self.completion.set_wakeup(None)
        ctx.elapsed = max(ctx.elapsed, self.elapsed_ms())


# ----------------------------------------------------------------------
# public API
# ----------------------------------------------------------------------


def schedule_wait_for(
    predicate_or_options: Any,
    options: WaitOptions | Mapping[str, Any] | Hook | None = None,
    callback: Hook | None = None,
    /,
    **overrides: Any,
) -> WaitOperation:
    """Start a wait on the running loop and return it without awaiting.

    Suited to callback consumers: pass ``callback`` (or ``on_success`` /
    ``on_failure``) and keep the returned operation to ``cancel()`` it.

    Raises:
        ConfigurationError: invalid options, before anything is scheduled
        RuntimeError: no running event loop
    """
    ctx = normalize(predicate_or_options, options, callback, **overrides)
    return WaitOperation(ctx).start()


async def wait_for(
    predicate_or_options: Any,
    options: WaitOptions | Mapping[str, Any] | Hook | None = None,
    callback: Hook | None = None,
    /,
    **overrides: Any,
) -> WaitResult:
    """Poll a predicate until it returns a truthy value.

    Args:
        predicate_or_options: Predicate callable (sync or async), or a
            ``WaitOptions``/mapping carrying ``predicate``
        options: ``WaitOptions`` or mapping (time values in milliseconds)
        callback: ``callback(error, result)`` fired once on completion
        **overrides: Individual options, e.g. ``delay=50, timeout=1000``

    Returns:
        WaitResult of the successful attempt or of ``settle()``

    Raises:
        ConfigurationError: invalid options
        TimeoutExceeded / RetryLimitExceeded: budget spent
        AbortedByCaller / AbortedByCancellationSignal: stopped
        PredicateError / HookError: the predicate or a hook raised
        Exception: fundamental errors from the predicate, unchanged
    """
    operation = schedule_wait_for(predicate_or_options, options, callback, **overrides)
    try:
        return await operation.future
    except asyncio.CancelledError:
        operation.cancel()
        raise


def wait_for_sync(
    predicate_or_options: Any,
    options: WaitOptions | Mapping[str, Any] | Hook | None = None,
    callback: Hook | None = None,
    /,
    **overrides: Any,
) -> WaitResult:
    """Blocking variant of ``wait_for`` for code without an event loop."""
    return asyncio.run(wait_for(predicate_or_options, options, callback, **overrides))


def with_wait(
    options: WaitOptions | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator factory: calling the decorated predicate polls it.

    Positional arguments of the call become the predicate's ``args``.

    Example:
        >>> @with_wait(delay=100, timeout=5_000)
        ... async def port_open(host, port):
        ...     return await can_connect(host, port)
        >>>
        >>> result = await port_open("localhost", 5432)
    """

    def decorator(predicate: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(predicate)
        async def wrapper(*args: Any) -> WaitResult:
            return await wait_for(predicate, options, args=args, **overrides)

        return wrapper

    return decorator


__all__ = [
    "WaitOperation",
    "schedule_wait_for",
    "wait_for",
    "wait_for_sync",
    "with_wait",
]
