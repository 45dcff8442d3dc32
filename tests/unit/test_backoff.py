"""
Unit tests for exponential backoff.
"""

from unittest.mock import patch

import pytest

from tax_gateway_core.config import RetryConfig
from tax_gateway_core.utils.backoff import BackoffPolicy, calculate_exponential_backoff


class TestCalculateExponentialBackoff:
    @pytest.mark.parametrize(
        "retry_count,expected",
        [(0, 1.0), (1, 2.0), (2, 4.0), (3, 8.0), (4, 16.0), (5, 30.0), (10, 30.0)],
    )
    def test_doubles_until_capped(self, retry_count, expected):
        assert calculate_exponential_backoff(retry_count) == expected

    def test_negative_retry_count_uses_base_delay(self):
        assert calculate_exponential_backoff(-1, base_delay=0.5) == 0.5

    def test_custom_multiplier(self):
        assert calculate_exponential_backoff(2, base_delay=1.0, multiplier=3.0) == 9.0

    def test_jitter_stays_within_bounds(self):
        """Jittered delays stay within +/-25% and never leave [base, max]."""
        with patch("tax_gateway_core.utils.backoff.random.uniform", return_value=-1.0):
            assert calculate_exponential_backoff(2, jitter=True) == 3.0

        with patch("tax_gateway_core.utils.backoff.random.uniform", side_effect=lambda a, b: a):
            assert calculate_exponential_backoff(0, jitter=True) == 1.0

        with patch("tax_gateway_core.utils.backoff.random.uniform", side_effect=lambda a, b: b):
            assert calculate_exponential_backoff(10, jitter=True) == 30.0

    def test_no_jitter_by_default(self):
        with patch("tax_gateway_core.utils.backoff.random.uniform") as mock_uniform:
            calculate_exponential_backoff(3)

        mock_uniform.assert_not_called()


class TestBackoffPolicy:
    def test_from_retry_config(self):
        config = RetryConfig(initial_delay=0.5, max_delay=4.0, multiplier=3.0, jitter=True)

        policy = BackoffPolicy.from_retry_config(config)

        assert policy.initial_delay == 0.5
        assert policy.max_delay == 4.0
        assert policy.multiplier == 3.0
        assert policy.jitter is True

    def test_delay_schedule(self):
        policy = BackoffPolicy(initial_delay=1.0, max_delay=5.0)

        assert [policy.delay(attempt) for attempt in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]
