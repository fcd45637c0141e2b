"""Predicate invocation and error classification.

One call to ``invoke`` is one attempt:

- the predicate receives ``ctx.args`` (plus the context itself as trailing
  argument when ``enhance_args`` is set) and may be sync or async;
- a truthy return ends the wait successfully with that value;
- a falsy return means "not yet";
- fundamental errors (``TypeError``, ``NameError`` ...) are re-raised
  untouched, whatever ``retry_on_error`` says;
- any other exception is handed to ``on_error`` first (awaited when it
  returns an awaitable), then either swallowed
  (``retry_on_error=True``) or turned into ``PredicateError``.
"""

from __future__ import annotations

import inspect
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from waitspine.core.errors import HookError, PredicateError, is_fundamental_error
from waitspine.core.logging import get_logger
from waitspine.execution.context import AttemptContext, as_args

logger = get_logger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class Invocation:
    """Outcome of one attempt that did not fail the wait."""

    done: bool
    value: Any = None
    error: BaseException | None = None
    duration: float = 0.0


def _stopwatch() -> Clock:
    started = time.monotonic()
    return lambda: (time.monotonic() - started) * 1000.0


async def call_predicate(ctx: AttemptContext) -> Any:
    """Call the predicate with the context's arguments and await its result."""
    args = as_args(ctx.args)
    if ctx.enhance_args:
        args = args + (ctx,)
    result = ctx.predicate(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def invoke(ctx: AttemptContext, clock: Clock | None = None) -> Invocation:
    """Run one attempt and advance ``ctx.attempt`` and ``ctx.elapsed``.

    Args:
        ctx: Context of the current iteration
        clock: Milliseconds since the wait started; when omitted elapsed
            advances by the duration of this call only

    Returns:
        Invocation with ``done=True`` on a truthy result, ``done=False`` when
        the loop should continue

    Raises:
        PredicateError: the predicate raised and ``retry_on_error`` is false
        HookError: ``on_error`` raised
        Exception: fundamental errors, unchanged
    """
    ctx.attempt += 1
    stopwatch = _stopwatch()
    base_elapsed = ctx.elapsed

    def advance() -> float:
        duration = stopwatch()
        ctx.elapsed = max(ctx.elapsed, clock() if clock else base_elapsed + duration)
        return duration

    try:
        value = await call_predicate(ctx)
    except Exception as exc:
        duration = advance()
        if is_fundamental_error(exc):
            raise

        if ctx.on_error is not None:
            ctx.message = str(exc)
            ctx.error = exc
            try:
                outcome = ctx.on_error(ctx)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as hook_exc:
                raise HookError("on_error", hook_exc) from hook_exc

        if not ctx.retry_on_error:
            raise PredicateError(exc) from exc

        logger.debug(
            "wait_for.error_swallowed",
            attempt=ctx.attempt,
            error=repr(exc),
            duration_ms=round(duration, 3),
        )
        return Invocation(done=False, error=exc, duration=duration)

    duration = advance()
    if value:
        return Invocation(done=True, value=value, duration=duration)
    return Invocation(done=False, duration=duration)


__all__ = ["Invocation", "call_predicate", "invoke"]
