"""Cooperative cancellation signal for waits.

A ``CancellationSignal`` is the external event source a caller hands to
``wait_for(signal=...)``. Firing it completes the wait immediately with
``AbortedByCancellationSignal``; an in-flight predicate is never interrupted.

Example:
    >>> signal = CancellationSignal()
    >>> task = asyncio.create_task(wait_for(ready, signal=signal, delay=50))
    >>> signal.abort("deploy cancelled")
    >>> await task  # raises AbortedByCancellationSignal
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from waitspine.core.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[[Any], None]


class CancellationSignal:
    """One-shot cancellation flag with listeners.

    Once aborted it cannot be reset. Listeners receive the abort reason and
    are called at most once; a listener added after the abort is not called,
    callers check ``aborted`` first.
    """

    def __init__(self) -> None:
        self._aborted = False
        self._reason: Any = None
        self._listeners: list[Listener] = []

    @property
    def aborted(self) -> bool:
        """Whether abort has been requested."""
        return self._aborted

    @property
    def reason(self) -> Any:
        """Reason passed to ``abort()``, if any."""
        return self._reason

    def abort(self, reason: Any = None) -> None:
        """Request cancellation and notify every listener once."""
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener(reason)
            except Exception:
                logger.exception("signal.listener_failed", listener=repr(listener))

    def add_listener(self, listener: Listener) -> None:
        """Register a callback fired with the reason when abort is requested."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        """Detach a callback; unknown callbacks are ignored."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def __repr__(self) -> str:
        return f"CancellationSignal(aborted={self._aborted}, reason={self._reason!r})"
