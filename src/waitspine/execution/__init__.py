"""waitspine.execution - the polling engine.

ARCHITECTURE
────────────
::

    wait_for / schedule_wait_for / wait_for_sync / @with_wait
      │
      ▼
    normalize (WaitOptions → AttemptContext)
      │
      ▼
    WaitOperation (one asyncio task per wait)
      ├── guard       ─ timeout now / timeout next / retry limit
      ├── delay       ─ backoff → max clamp → jitter → min clamp
      ├── invoker     ─ predicate call + error classification
      ├── mailbox     ─ out-of-band settle/abort, wakes the sleep
      ├── signal      ─ external CancellationSignal
      └── completion  ─ cleanup, once-only hooks, outward future

MODULE MAP (recommended reading order)
──────────────────────────────────────
  1. signal.py       ─ CancellationSignal
  2. mailbox.py      ─ Mailbox, MailboxEntry
  3. delay.py        ─ DelayPolicy, compute_delay
  4. context.py      ─ AttemptContext, AttemptSnapshot, WaitResult
  5. normalizer.py   ─ WaitOptions, normalize, continue_from
  6. guard.py        ─ budget checkpoints
  7. invoker.py      ─ invoke
  8. completion.py   ─ CompletionHandler, WaitState
  9. scheduler.py    ─ WaitOperation + public API
"""

from waitspine.execution.completion import CompletionHandler, WaitState
from waitspine.execution.context import AttemptContext, AttemptSnapshot, WaitResult
from waitspine.execution.delay import DelayPolicy, compute_delay
from waitspine.execution.guard import (
    DEFAULT_GRACE_MS,
    check_retry_limit,
    check_timeout_next,
    check_timeout_now,
)
from waitspine.execution.mailbox import Mailbox, MailboxEntry
from waitspine.execution.normalizer import WaitOptions, continue_from, normalize
from waitspine.execution.scheduler import (
    WaitOperation,
    schedule_wait_for,
    wait_for,
    wait_for_sync,
    with_wait,
)
from waitspine.execution.signal import CancellationSignal

__all__ = [
    "AttemptContext",
    "AttemptSnapshot",
    "CancellationSignal",
    "CompletionHandler",
    "DEFAULT_GRACE_MS",
    "DelayPolicy",
    "Mailbox",
    "MailboxEntry",
    "WaitOperation",
    "WaitOptions",
    "WaitResult",
    "WaitState",
    "check_retry_limit",
    "check_timeout_next",
    "check_timeout_now",
    "compute_delay",
    "continue_from",
    "normalize",
    "schedule_wait_for",
    "wait_for",
    "wait_for_sync",
    "with_wait",
]
