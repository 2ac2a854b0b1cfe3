"""Tests for ReconnectPolicy."""

import pytest
from pydantic import ValidationError

from rtlink.connection import ReconnectPolicy


def fixed(value):
    return lambda: value


class TestReconnectPolicy:
    """Tests for backoff delay calculation."""

    def test_defaults(self):
        policy = ReconnectPolicy()

        assert policy.base_delay == 1.0
        assert policy.max_delay == 60.0
        assert policy.backoff_factor == 1.5
        assert policy.jitter_ratio == 0.1
        assert policy.max_attempts == 12

    def test_calculate_delay_without_jitter_effect(self):
        """A midpoint random draw yields the plain exponential series."""
        policy = ReconnectPolicy()

        assert policy.calculate_delay(1, fixed(0.5)) == pytest.approx(1.0)
        assert policy.calculate_delay(2, fixed(0.5)) == pytest.approx(1.5)
        assert policy.calculate_delay(3, fixed(0.5)) == pytest.approx(2.25)

    def test_delay_is_capped(self):
        policy = ReconnectPolicy()

        assert policy.calculate_delay(100, fixed(0.5)) == 60.0
        assert policy.calculate_delay(100, fixed(0.99)) == 60.0

    def test_huge_attempt_does_not_overflow(self):
        policy = ReconnectPolicy()

        assert policy.calculate_delay(100_000, fixed(0.5)) == 60.0

    def test_jitter_bounds(self):
        """Every delay lies within [base * (1 - ratio), max_delay]."""
        policy = ReconnectPolicy(base_delay=1.0, max_delay=60.0, backoff_factor=1.5, jitter_ratio=0.1)

        for attempt in range(1, 20):
            for draw in (0.0, 0.25, 0.5, 0.75, 0.999999):
                delay = policy.calculate_delay(attempt, fixed(draw))
                assert policy.min_delay <= delay <= policy.max_delay

        assert policy.calculate_delay(1, fixed(0.0)) == pytest.approx(0.9)

    def test_attempt_below_one_is_first_attempt(self):
        policy = ReconnectPolicy()

        assert policy.calculate_delay(0, fixed(0.5)) == policy.calculate_delay(1, fixed(0.5))

    def test_should_retry(self):
        policy = ReconnectPolicy(max_attempts=3)

        assert policy.should_retry(0) is True
        assert policy.should_retry(2) is True
        assert policy.should_retry(3) is False

    def test_zero_attempts_never_retries(self):
        assert ReconnectPolicy(max_attempts=0).should_retry(0) is False

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"base_delay": 0},
            {"base_delay": 10.0, "max_delay": 5.0},
            {"backoff_factor": 0.5},
            {"jitter_ratio": 1.0},
            {"max_attempts": -1},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            ReconnectPolicy(**kwargs)

    def test_policy_is_immutable(self):
        policy = ReconnectPolicy()

        with pytest.raises(ValidationError):
            policy.max_attempts = 1
