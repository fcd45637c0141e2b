"""Tests for the completion handler."""

import asyncio
from unittest.mock import MagicMock

import pytest

from waitspine.core.errors import AbortedByCancellationSignal, RetryLimitExceeded
from waitspine.execution.completion import TERMINAL_STATES, CompletionHandler, WaitState
from waitspine.execution.mailbox import MailboxEntry
from waitspine.execution.normalizer import normalize
from waitspine.execution.signal import CancellationSignal


def _handler(ctx):
    future = asyncio.get_running_loop().create_future()
    return CompletionHandler(future, ctx.mailbox, ctx.signal), future


class TestSucceed:
    """Tests for the success path."""

    @pytest.mark.asyncio
    async def test_fulfills_future_and_fires_hooks(self):
        on_success, on_failure, callback = MagicMock(), MagicMock(), MagicMock()
        ctx = normalize(
            lambda: True, on_success=on_success, on_failure=on_failure, callback=callback
        )
        handler, future = _handler(ctx)

        result = handler.succeed(ctx, "v", caller="predicate")

        assert handler.state == WaitState.SUCCEEDED
        assert future.result() is result
        assert result.success is True
        assert result.value == "v"
        assert result.caller == "predicate"
        on_success.assert_called_once_with(result)
        callback.assert_called_once_with(None, result)
        on_failure.assert_not_called()

    @pytest.mark.asyncio
    async def test_idempotent(self):
        ctx = normalize(lambda: True)
        ctx.on_success = MagicMock()
        handler, _ = _handler(ctx)
        first = handler.succeed(ctx, 1, caller="predicate")
        second = handler.succeed(ctx, 2, caller="predicate")
        third = handler.fail(ctx, RuntimeError(), caller="native_error")
        assert first is second is third
        ctx.on_success.assert_called_once()

    @pytest.mark.asyncio
    async def test_closes_mailbox(self):
        ctx = normalize(lambda: True)
        handler, _ = _handler(ctx)
        ctx.mailbox.post(MailboxEntry(is_aborted=True))
        handler.succeed(ctx, True, caller="predicate")
        assert ctx.mailbox.closed is True
        assert ctx.mailbox.pending is False

    @pytest.mark.asyncio
    async def test_hook_exception_does_not_block_future(self):
        ctx = normalize(lambda: True, on_success=MagicMock(side_effect=RuntimeError("x")))
        handler, future = _handler(ctx)
        handler.succeed(ctx, True, caller="predicate")
        assert future.done() and future.result().success is True

    @pytest.mark.asyncio
    async def test_async_hook_scheduled(self):
        seen = []

        async def on_success(result):
            seen.append(result.value)

        ctx = normalize(lambda: True, on_success=on_success)
        handler, _ = _handler(ctx)
        handler.succeed(ctx, "v", caller="predicate")
        await asyncio.sleep(0)
        assert seen == ["v"]


class TestFail:
    """Tests for the failure path."""

    @pytest.mark.asyncio
    async def test_rejects_future_and_attaches_result(self):
        on_failure, callback = MagicMock(), MagicMock()
        ctx = normalize(lambda: False, on_failure=on_failure, callback=callback)
        ctx.retries = 3
        handler, future = _handler(ctx)
        error = RetryLimitExceeded(3, 10.0)

        result = handler.fail(ctx, error, caller="max_retries")

        assert handler.state == WaitState.FAILED
        assert future.exception() is error
        assert error.result is result
        assert error.state.retries == 3
        assert result.success is False
        assert result.error is error
        assert "retry limit" in result.message
        on_failure.assert_called_once_with(result)
        callback.assert_called_once_with(error, result)

    @pytest.mark.asyncio
    async def test_native_error_kept_as_is(self):
        ctx = normalize(lambda: False)
        handler, future = _handler(ctx)
        error = TypeError("bad operand")
        result = handler.fail(ctx, error, caller="native_error")
        assert future.exception() is error
        assert result.message == "bad operand"


class TestSignalListener:
    """Tests for the cancellation listener lifecycle."""

    @pytest.mark.asyncio
    async def test_attached_once_and_removed_on_completion(self):
        signal = CancellationSignal()
        ctx = normalize(lambda: False, signal=signal)
        handler, _ = _handler(ctx)
        handler.attach_signal(ctx)
        handler.attach_signal(ctx)
        assert signal.listener_count == 1
        assert handler.listener_attached is True
        handler.succeed(ctx, True, caller="predicate")
        assert signal.listener_count == 0
        assert handler.listener_attached is False

    @pytest.mark.asyncio
    async def test_signal_fails_immediately(self):
        signal = CancellationSignal()
        ctx = normalize(lambda: False, signal=signal)
        handler, future = _handler(ctx)
        handler.track(ctx)
        handler.attach_signal(ctx)
        signal.abort("deploy cancelled")
        assert handler.state == WaitState.FAILED
        error = future.exception()
        assert isinstance(error, AbortedByCancellationSignal)
        assert error.reason == "deploy cancelled"
        assert handler.result.caller == "signal"

    @pytest.mark.asyncio
    async def test_no_signal_is_noop(self):
        ctx = normalize(lambda: False)
        handler, _ = _handler(ctx)
        handler.attach_signal(ctx)
        assert handler.listener_attached is False


class TestCancel:
    """Tests for cancellation without outcome."""

    @pytest.mark.asyncio
    async def test_cancel_releases_without_hooks(self):
        callback = MagicMock()
        ctx = normalize(lambda: False, callback=callback)
        handler, future = _handler(ctx)
        handler.cancel()
        assert handler.state == WaitState.CANCELLED
        assert handler.state in TERMINAL_STATES
        assert future.cancelled()
        assert ctx.mailbox.closed
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel_cancels_wakeup(self):
        ctx = normalize(lambda: False)
        handler, _ = _handler(ctx)
        wakeup = asyncio.ensure_future(asyncio.sleep(10))
        handler.set_wakeup(wakeup)
        handler.cancel()
        with pytest.raises(asyncio.CancelledError):
            await wakeup
