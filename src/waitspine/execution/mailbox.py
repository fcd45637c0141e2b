"""Per-operation side channel for out-of-band settle/abort.

A heartbeat hook or an ``enhance_args`` predicate only ever holds the context
of the iteration it was called for, while the loop moves on with a freshly
derived context. ``settle()``/``abort()`` therefore post their outcome to the
operation's ``Mailbox``; the next checkpoint takes it and short-circuits to
the completion handler instead of invoking the predicate again.

The mailbox belongs to one logical wait (there is no process-wide table) and
the completion handler clears it on every terminal transition.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class MailboxEntry:
    """Outcome requested out of band."""

    is_settled: bool = False
    value: Any = None
    is_aborted: bool = False
    message: str = ""


class Mailbox:
    """Single-slot mailbox; the latest post wins until it is taken."""

    def __init__(self, operation_id: str) -> None:
        self.operation_id = operation_id
        self._entry: MailboxEntry | None = None
        self._on_post: Callable[[], None] | None = None
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._entry is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def watch(self, on_post: Callable[[], None] | None) -> None:
        """Install the callback run after each post (wakes a pending sleep)."""
        self._on_post = on_post

    def post(self, entry: MailboxEntry) -> None:
        """Store an outcome; ignored once the wait has completed."""
        if self._closed:
            return
        self._entry = entry
        if self._on_post is not None:
            self._on_post()

    def take(self) -> MailboxEntry | None:
        """Consume the pending entry, if any."""
        entry, self._entry = self._entry, None
        return entry

    def close(self) -> None:
        """Drop any pending entry and refuse later posts."""
        self._entry = None
        self._on_post = None
        self._closed = True

    def __repr__(self) -> str:
        return f"Mailbox({self.operation_id!r}, pending={self.pending})"
