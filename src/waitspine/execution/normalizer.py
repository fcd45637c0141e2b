"""Canonicalize the call forms of ``wait_for`` into one ``AttemptContext``.

Accepted forms::

    wait_for(predicate)
    wait_for(predicate, {"delay": 50, "timeout": 1000})
    wait_for(predicate, WaitOptions(delay=50), callback)
    wait_for(predicate, delay=50, timeout=1000)
    wait_for({"predicate": predicate, "delay": 50})
    wait_for(WaitOptions(predicate=predicate, delay=50))

``normalize`` builds the context of a fresh call: it mints the correlation id
and wraps ``callback``/``on_success``/``on_failure`` in once-guards.
``continue_from`` derives the next iteration's context and reuses those
guarded closures as they are; wrapping them again would reset the guard.
"""

from __future__ import annotations

import functools
import random
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields, replace
from numbers import Real
from typing import Any

from waitspine.core.errors import ConfigurationError
from waitspine.core.settings import get_settings
from waitspine.execution.context import AttemptContext, Hook, as_args
from waitspine.execution.delay import validate_backoff, validate_jitter
from waitspine.execution.mailbox import Mailbox
from waitspine.execution.signal import CancellationSignal


@dataclass
class WaitOptions:
    """Options of one ``wait_for`` call. Time values are milliseconds.

    ``None`` means "use the default": ``delay`` falls back to
    ``WaitSettings.default_delay``, ``timeout``/``max_retries`` are
    unlimited and ``retry_on_error`` is true only when ``on_error`` is given.
    """

    predicate: Callable[..., Any] | None = None
    args: Any = None
    timeout: float | None = None
    delay: float | None = None
    min_delay: float | None = None
    max_delay: float | None = None
    exponential_backoff: float | None = None
    jitter_range: float | None = None
    max_retries: int | None = None
    retry_on_error: bool | None = None
    enhance_args: bool = False
    on_heartbeat: Hook | None = None
    on_error: Hook | None = None
    on_success: Hook | None = None
    on_failure: Hook | None = None
    callback: Hook | None = None
    signal: CancellationSignal | None = None
    rng: random.Random | None = None

    @classmethod
    def check_keys(cls, data: Mapping[str, Any]) -> None:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                unknown[0], data[unknown[0]], f"Unknown wait option(s): {', '.join(unknown)}"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> WaitOptions:
        cls.check_keys(data)
        return cls(**dict(data))


def once(fn: Hook | None) -> Hook | None:
    """Wrap ``fn`` so only its first call runs; later calls return that result."""
    if fn is None:
        return None
    called = False
    result: Any = None

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        nonlocal called, result
        if called:
            return result
        called = True
        result = fn(*args, **kwargs)
        return result

    return wrapper


def _coerce_options(
    predicate_or_options: Any,
    options: WaitOptions | Mapping[str, Any] | None,
    overrides: Mapping[str, Any],
) -> WaitOptions:
    if options is not None and isinstance(predicate_or_options, (WaitOptions, Mapping)):
        raise ConfigurationError(
            "options",
            options,
            "options given twice: pass overrides as keywords when the first argument "
            "already carries the options",
        )
    if isinstance(predicate_or_options, WaitOptions):
        base = predicate_or_options
    elif isinstance(predicate_or_options, Mapping):
        base = WaitOptions.from_mapping(predicate_or_options)
    elif callable(predicate_or_options):
        if isinstance(options, WaitOptions):
            base = replace(options, predicate=predicate_or_options)
        else:
            base = WaitOptions.from_mapping({**(options or {}), "predicate": predicate_or_options})
    else:
        raise ConfigurationError(
            "predicate",
            predicate_or_options,
            "wait_for expects a predicate callable or an options object with a predicate",
        )

    if overrides:
        WaitOptions.check_keys(overrides)
        base = replace(base, **overrides)
    return base


def _check_non_negative(key: str, value: Any, *, integer: bool = False) -> None:
    if value is None:
        return
    if not isinstance(value, Real) or isinstance(value, bool) or value < 0:
        raise ConfigurationError(key, value, f"{key} {value!r} must be a non-negative number")
    if integer and int(value) != value:
        raise ConfigurationError(key, value, f"{key} {value!r} must be a whole number")


def validate_options(opts: WaitOptions) -> None:
    """Reject options the engine cannot run with, before anything is scheduled."""
    if not callable(opts.predicate):
        raise ConfigurationError("predicate", opts.predicate, "predicate must be callable")
    for key in ("timeout", "delay", "min_delay", "max_delay"):
        _check_non_negative(key, getattr(opts, key))
    _check_non_negative("max_retries", opts.max_retries, integer=True)
    validate_backoff(opts.exponential_backoff)
    validate_jitter(opts.jitter_range if opts.jitter_range is not None else 0.0)
    for key in ("on_heartbeat", "on_error", "on_success", "on_failure", "callback"):
        hook = getattr(opts, key)
        if hook is not None and not callable(hook):
            raise ConfigurationError(key, hook, f"{key} must be callable")
    if opts.signal is not None and not isinstance(opts.signal, CancellationSignal):
        raise ConfigurationError("signal", opts.signal, "signal must be a CancellationSignal")


def normalize(
    predicate_or_options: Any,
    options: WaitOptions | Mapping[str, Any] | None = None,
    callback: Hook | None = None,
    **overrides: Any,
) -> AttemptContext:
    """Build the first ``AttemptContext`` of a fresh wait.

    Raises:
        ConfigurationError: the options cannot be run
    """
    # wait_for(predicate, callback)
    if callable(options) and callback is None:
        options, callback = None, options
    opts = _coerce_options(predicate_or_options, options, overrides)
    if callback is not None:
        opts = replace(opts, callback=callback)
    validate_options(opts)

    operation_id = str(uuid.uuid4())
    return AttemptContext(
        id=operation_id,
        predicate=opts.predicate,
        mailbox=Mailbox(operation_id),
        args=as_args(opts.args),
        delay=opts.delay if opts.delay is not None else get_settings().default_delay,
        timeout=opts.timeout,
        max_retries=opts.max_retries,
        min_delay=opts.min_delay,
        max_delay=opts.max_delay,
        exponential_backoff=opts.exponential_backoff,
        jitter_range=opts.jitter_range or 0.0,
        retry_on_error=(
            opts.retry_on_error if opts.retry_on_error is not None else opts.on_error is not None
        ),
        enhance_args=opts.enhance_args,
        on_heartbeat=opts.on_heartbeat,
        on_error=opts.on_error,
        on_success=once(opts.on_success),
        on_failure=once(opts.on_failure),
        callback=once(opts.callback),
        signal=opts.signal,
        rng=opts.rng,
    )


def continue_from(previous: AttemptContext) -> AttemptContext:
    """Derive the next iteration's context.

    Same id, mailbox and once-guarded hooks; counters and any hook-made
    changes carry over; ``retries`` advances by one.
    """
    return replace(previous, retries=previous.retries + 1, next_delay=0.0, error=None)


__all__ = ["WaitOptions", "once", "normalize", "continue_from", "validate_options"]
