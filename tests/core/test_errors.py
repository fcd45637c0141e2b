"""Tests for the waitspine error hierarchy."""

import pytest

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
from waitspine.execution.context import AttemptSnapshot, WaitResult


def _snapshot(**overrides) -> AttemptSnapshot:
    values = dict(
        id="op-1",
        attempt=3,
        retries=2,
        elapsed=120.0,
        next_delay=0.0,
        args=(),
        delay=50.0,
        timeout=None,
        max_retries=None,
        min_delay=None,
        max_delay=None,
        exponential_backoff=None,
        jitter_range=0.0,
        retry_on_error=False,
        is_settled=False,
        is_aborted=False,
        message="",
    )
    values.update(overrides)
    return AttemptSnapshot(**values)


class TestWaitError:
    """Tests for the WaitError base class."""

    def test_defaults(self):
        error = WaitError("boom")
        assert error.message == "boom"
        assert str(error) == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.result is None
        assert error.state is None

    def test_cause_is_chained(self):
        cause = ValueError("inner")
        error = WaitError("outer", cause=cause)
        assert error.cause is cause
        assert error.__cause__ is cause

    def test_with_context_sets_known_and_metadata(self):
        error = WaitError("boom").with_context(attempt=4, target="db")
        assert error.context.attempt == 4
        assert error.context.metadata == {"target": "db"}

    def test_to_dict(self):
        error = WaitError("boom", cause=ValueError("inner")).with_context(operation_id="x")
        data = error.to_dict()
        assert data["error_type"] == "WaitError"
        assert data["category"] == "INTERNAL"
        assert data["context"] == {"operation_id": "x"}
        assert data["cause"] == "inner"

    def test_attach_result_copies_counters(self):
        error = RetryLimitExceeded(3, 120.0)
        result = WaitResult(success=False, state=_snapshot(), caller="max_retries")
        error.attach_result(result)
        assert error.result is result
        assert error.state.attempt == 3
        assert error.context.operation_id == "op-1"
        assert error.context.retries == 2
        assert error.context.caller == "max_retries"

    def test_repr(self):
        assert repr(WaitError("boom")) == "WaitError('boom', category=INTERNAL)"


class TestErrorTypes:
    """Tests for the concrete error types and their messages."""

    def test_configuration_error(self):
        error = ConfigurationError("delay", -1)
        assert error.category == ErrorCategory.CONFIG
        assert error.key == "delay"
        assert error.value == -1
        assert "delay" in error.message

    def test_timeout_now_message(self):
        error = TimeoutExceeded(100, 250.4)
        assert error.variant == "now"
        assert error.category == ErrorCategory.TIMEOUT
        assert "timed out" in error.message
        assert "already exceeded at 250ms" in error.message

    def test_timeout_next_message(self):
        error = TimeoutExceeded(100, 130.0, variant="next")
        assert "next execution would be at 130ms" in error.message

    def test_retry_limit_message(self):
        error = RetryLimitExceeded(3, 42.0)
        assert error.category == ErrorCategory.LIMIT
        assert error.max_retries == 3
        assert "retry limit 3" in error.message

    def test_aborted_by_caller_uses_reason(self):
        error = AbortedByCaller("stop")
        assert isinstance(error, AbortedError)
        assert error.message == "stop"
        assert error.reason == "stop"

    def test_aborted_by_caller_default_message(self):
        assert AbortedByCaller().message == ".abort() called"

    def test_aborted_by_signal(self):
        assert AbortedByCancellationSignal().message == "Operation aborted"
        error = AbortedByCancellationSignal("shutdown")
        assert error.message == "Operation aborted: shutdown"
        assert error.category == ErrorCategory.ABORT

    def test_predicate_error_keeps_cause(self):
        cause = ConnectionError("refused")
        error = PredicateError(cause)
        assert error.cause is cause
        assert error.message == "refused"
        assert error.category == ErrorCategory.PREDICATE

    def test_predicate_error_empty_message_uses_type(self):
        assert PredicateError(ConnectionError()).message == "ConnectionError"

    def test_hook_error(self):
        error = HookError("on_heartbeat", RuntimeError("bad hook"))
        assert error.hook == "on_heartbeat"
        assert error.category == ErrorCategory.HOOK


class TestErrorContext:
    """Tests for ErrorContext serialisation."""

    def test_to_dict_skips_none(self):
        ctx = ErrorContext(attempt=2, metadata={"k": "v"})
        assert ctx.to_dict() == {"attempt": 2, "k": "v"}


class TestFundamentalErrors:
    """Tests for fundamental error classification."""

    @pytest.mark.parametrize(
        "error",
        [
            TypeError("x"),
            NameError("x"),
            UnboundLocalError("x"),
            AttributeError("x"),
            SyntaxError("x"),
            ReferenceError("x"),
            RecursionError("x"),
        ],
    )
    def test_fundamental(self, error):
        assert is_fundamental_error(error) is True

    @pytest.mark.parametrize("error", [ValueError(), ConnectionError(), KeyError(), OSError()])
    def test_operational(self, error):
        assert is_fundamental_error(error) is False

    def test_categorize(self):
        assert categorize_error(RetryLimitExceeded(1, 0)) == ErrorCategory.LIMIT
        assert categorize_error(TypeError()) == ErrorCategory.INTERNAL
        assert categorize_error(ValueError()) == ErrorCategory.PREDICATE
