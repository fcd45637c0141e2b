"""Delay calculation with exponential backoff, clamps and jitter.

The order of operations is fixed and callers may rely on it:

1. backoff:  ``delay = base_delay * exponential_backoff ** retry_index``
2. cap:      ``delay = min(delay, max_delay)``
3. jitter:   ``delay = uniform(delay * (1 - jitter_range), delay)``
4. floor:    ``delay = max(delay, min_delay)``

Jitter is applied after the cap so it can only shorten a delay, and the floor
is applied last so ``min_delay`` always holds.

Example:
    >>> from waitspine.execution.delay import DelayPolicy, compute_delay
    >>>
    >>> policy = DelayPolicy(exponential_backoff=2, max_delay=1000)
    >>> for retry_index in range(5):
    ...     print(compute_delay(100, retry_index, policy))
    100.0
    200.0
    400.0
    800.0
    1000.0
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from numbers import Real

from waitspine.core.errors import ConfigurationError


@dataclass(frozen=True)
class DelayPolicy:
    """Backoff, clamp and jitter settings applied to a base delay.

    Attributes:
        exponential_backoff: Multiplier per retry (None = fixed delay)
        min_delay: Floor in ms, applied last
        max_delay: Cap in ms, applied before jitter
        jitter_range: Fraction of the delay that may be randomly removed, in [0, 1)
    """

    exponential_backoff: float | None = None
    min_delay: float | None = None
    max_delay: float | None = None
    jitter_range: float = 0.0

    def validate(self) -> DelayPolicy:
        """Raise ConfigurationError for values the calculator cannot use."""
        validate_backoff(self.exponential_backoff)
        validate_jitter(self.jitter_range)
        return self

    def next_delay(
        self, base_delay: float, retry_index: int, rng: random.Random | None = None
    ) -> float:
        return compute_delay(base_delay, retry_index, self, rng=rng)


def _is_number(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def validate_backoff(exponential_backoff: object) -> None:
    if exponential_backoff is None:
        return
    if not _is_number(exponential_backoff) or exponential_backoff <= 0:
        raise ConfigurationError(
            "exponential_backoff",
            exponential_backoff,
            f"exponential_backoff {exponential_backoff!r} must be a positive number. E.g. 1.5",
        )


def validate_jitter(jitter_range: object) -> None:
    if not _is_number(jitter_range) or not 0 <= jitter_range < 1:
        raise ConfigurationError(
            "jitter_range",
            jitter_range,
            f"jitter_range {jitter_range!r} must be a decimal number in [0, 1)",
        )


def compute_delay(
    base_delay: float,
    retry_index: int,
    policy: DelayPolicy,
    rng: random.Random | None = None,
) -> float:
    """Turn a base delay into the concrete wait before the next attempt.

    Args:
        base_delay: Delay in ms before backoff is applied
        retry_index: Retries so far; the wait before retry ``r`` uses ``r``,
            so the first wait is already ``base_delay * exponential_backoff``
        policy: Backoff, clamps and jitter
        rng: Random source for jitter (default: module-level ``random``)

    Returns:
        Delay in milliseconds

    Raises:
        ConfigurationError: backoff is not a positive number or jitter is
            outside [0, 1)
    """
    delay = float(base_delay)

    if policy.exponential_backoff is not None:
        validate_backoff(policy.exponential_backoff)
        delay = delay * (policy.exponential_backoff ** retry_index)

    if policy.max_delay is not None:
        delay = min(delay, policy.max_delay)

    validate_jitter(policy.jitter_range)
    if 0 < policy.jitter_range < 1:
        source = rng or random
        delay = source.uniform(delay * (1 - policy.jitter_range), delay)

    if policy.min_delay is not None:
        delay = max(delay, policy.min_delay)

    return delay


__all__ = [
    "DelayPolicy",
    "compute_delay",
    "validate_backoff",
    "validate_jitter",
]
