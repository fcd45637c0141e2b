"""Tests for delay calculation."""

import random
from unittest.mock import MagicMock

import pytest

from waitspine.core.errors import ConfigurationError
from waitspine.execution.delay import DelayPolicy, compute_delay


class TestFixedDelay:
    """Tests without backoff."""

    def test_base_delay_unchanged(self):
        assert compute_delay(100, 0, DelayPolicy()) == 100.0
        assert compute_delay(100, 7, DelayPolicy()) == 100.0

    def test_returns_float(self):
        assert isinstance(compute_delay(5, 0, DelayPolicy()), float)


class TestExponentialBackoff:
    """Tests for the backoff step."""

    def test_index_zero_is_base_delay(self):
        assert compute_delay(100, 0, DelayPolicy(exponential_backoff=2)) == 100.0

    def test_sequence(self):
        policy = DelayPolicy(exponential_backoff=2)
        delays = [compute_delay(100, i, policy) for i in range(4)]
        assert delays == [100.0, 200.0, 400.0, 800.0]

    def test_strictly_increasing_without_clamps(self):
        policy = DelayPolicy(exponential_backoff=1.5)
        delays = [compute_delay(10, i, policy) for i in range(10)]
        assert all(a < b for a, b in zip(delays, delays[1:]))

    def test_fractional_backoff_shrinks(self):
        assert compute_delay(100, 1, DelayPolicy(exponential_backoff=0.5)) == 50.0

    @pytest.mark.parametrize("backoff", [0, -1, True, "2"])
    def test_invalid_backoff(self, backoff):
        with pytest.raises(ConfigurationError) as exc_info:
            compute_delay(100, 1, DelayPolicy(exponential_backoff=backoff))
        assert exc_info.value.key == "exponential_backoff"


class TestClamps:
    """Tests for max/min clamps and their order."""

    def test_max_caps_backoff(self):
        policy = DelayPolicy(exponential_backoff=2, max_delay=1000)
        assert compute_delay(100, 5, policy) == 1000.0

    def test_min_floors(self):
        assert compute_delay(10, 0, DelayPolicy(min_delay=50)) == 50.0

    def test_min_wins_over_max(self):
        policy = DelayPolicy(min_delay=500, max_delay=100)
        assert compute_delay(300, 0, policy) == 500.0


class TestJitter:
    """Tests for the jitter step."""

    def test_jitter_bounds_over_trials(self):
        rng = random.Random(1234)
        policy = DelayPolicy(jitter_range=0.5)
        for _ in range(50):
            delay = compute_delay(100, 0, policy, rng=rng)
            assert 50.0 <= delay <= 100.0

    def test_jitter_applied_after_cap(self):
        rng = MagicMock()
        rng.uniform.return_value = 700.0
        policy = DelayPolicy(exponential_backoff=2, max_delay=1000, jitter_range=0.5)
        assert compute_delay(100, 5, policy, rng=rng) == 700.0
        rng.uniform.assert_called_once_with(500.0, 1000.0)

    def test_min_applied_after_jitter(self):
        rng = MagicMock()
        rng.uniform.return_value = 15.0
        policy = DelayPolicy(jitter_range=0.9, min_delay=80)
        assert compute_delay(100, 0, policy, rng=rng) == 80.0

    def test_zero_jitter_skips_rng(self):
        rng = MagicMock()
        assert compute_delay(100, 0, DelayPolicy(jitter_range=0), rng=rng) == 100.0
        rng.uniform.assert_not_called()

    @pytest.mark.parametrize("jitter", [1, 1.5, -0.1, "0.5"])
    def test_invalid_jitter(self, jitter):
        with pytest.raises(ConfigurationError):
            compute_delay(100, 0, DelayPolicy(jitter_range=jitter))


class TestDelayPolicy:
    """Tests for DelayPolicy helpers."""

    def test_validate_returns_self(self):
        policy = DelayPolicy(exponential_backoff=2, jitter_range=0.2)
        assert policy.validate() is policy

    def test_validate_rejects(self):
        with pytest.raises(ConfigurationError):
            DelayPolicy(jitter_range=2).validate()

    def test_next_delay(self):
        assert DelayPolicy(exponential_backoff=3).next_delay(10, 2) == 90.0
