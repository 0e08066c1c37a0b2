"""Unit tests for the retry policy."""

import random

import pytest

from paperkit.core.errors import AuthError, NetworkError, Timeout

from .backoff import MAX_BACKOFF_MS, RetryConfig, RetryStrategy


class TestRetryConfig:
    """Tests for RetryConfig dataclass."""

    @pytest.mark.unit
    def test_defaults(self):
        """Default configuration values."""
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay_ms == 1000
        assert config.max_delay_ms == 30000
        assert config.jitter_ms == 1000

    @pytest.mark.unit
    @pytest.mark.parametrize("attempts", [0, -2])
    def test_rejects_fewer_than_one_attempt(self, attempts):
        with pytest.raises(ValueError, match="max_attempts"):
            RetryConfig(max_attempts=attempts)

    @pytest.mark.unit
    def test_rejects_negative_delays(self):
        with pytest.raises(ValueError):
            RetryConfig(base_delay_ms=-1)


class TestBackoff:
    """Tests for backoff delay calculation."""

    @pytest.mark.unit
    def test_exponential_growth(self):
        """Delay doubles with each attempt."""
        strategy = RetryStrategy()
        assert strategy.get_backoff_ms(1, jitter=0) == 1000
        assert strategy.get_backoff_ms(2, jitter=0) == 2000
        assert strategy.get_backoff_ms(3, jitter=0) == 4000

    @pytest.mark.unit
    def test_capped(self):
        """Delay never exceeds 30 seconds."""
        strategy = RetryStrategy()
        assert strategy.get_backoff_ms(10, jitter=999) == MAX_BACKOFF_MS
        assert strategy.get_backoff_ms(6, jitter=999) == MAX_BACKOFF_MS
        assert strategy.get_backoff_ms(5, jitter=999) == 16999

    @pytest.mark.unit
    def test_non_decreasing(self):
        """Delays are non-decreasing in attempt number for fixed jitter."""
        strategy = RetryStrategy(RetryConfig(base_delay_ms=700))
        for jitter in (0, 250, 999):
            delays = [strategy.get_backoff_ms(a, jitter=jitter) for a in range(1, 15)]
            assert delays == sorted(delays)
            assert max(delays) <= MAX_BACKOFF_MS

    @pytest.mark.unit
    def test_random_jitter_range(self):
        """Random jitter stays within [0, 1000) ms."""
        strategy = RetryStrategy(rng=random.Random(7))
        for _ in range(200):
            delay = strategy.get_backoff_ms(1)
            assert 1000 <= delay < 2000

    @pytest.mark.unit
    def test_one_jitter_draw_keeps_delays_ordered(self):
        """Delays sharing one jitter draw never decrease."""
        strategy = RetryStrategy(RetryConfig(base_delay_ms=10), rng=random.Random(3))
        for _ in range(50):
            jitter = strategy.draw_jitter()
            assert 0 <= jitter < 1000
            delays = [strategy.get_backoff_ms(a, jitter=jitter) for a in range(1, 12)]
            assert delays == sorted(delays)

    @pytest.mark.unit
    def test_seeded_rng_is_reproducible(self):
        """The same seed yields the same delays."""
        first = RetryStrategy(rng=random.Random(42))
        second = RetryStrategy(rng=random.Random(42))
        assert first.get_backoff_ms(2) == second.get_backoff_ms(2)


class TestShouldRetry:
    """Tests for retry decisions."""

    @pytest.mark.unit
    def test_retryable_before_limit(self):
        """Network errors and timeouts are retried below the cap."""
        strategy = RetryStrategy()
        assert strategy.should_retry(NetworkError("x"), attempt=1) is True
        assert strategy.should_retry(Timeout("x"), attempt=2) is True

    @pytest.mark.unit
    def test_stops_at_limit(self):
        """No retry once the attempt cap is reached."""
        strategy = RetryStrategy(RetryConfig(max_attempts=3))
        assert strategy.should_retry(NetworkError("x"), attempt=3) is False

    @pytest.mark.unit
    def test_non_retryable(self):
        """Auth errors are never retried."""
        assert RetryStrategy().should_retry(AuthError("x"), attempt=1) is False
