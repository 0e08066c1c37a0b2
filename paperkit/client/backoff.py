"""Retry policy for inference calls.

Provides exponential backoff with jitter and the retry decision used by the
API client between attempts.
"""

import logging
import random
from dataclasses import dataclass

from paperkit.core.errors import classify_error

logger = logging.getLogger(__name__)

MAX_BACKOFF_MS = 30000
MAX_JITTER_MS = 1000


@dataclass
class RetryConfig:
    """Configuration for retry strategy.

    Attributes:
        max_attempts: Total attempts per request (3 means 3, not 4).
        base_delay_ms: Base delay for exponential backoff.
        max_delay_ms: Cap on any single backoff delay.
        jitter_ms: Upper bound (exclusive) of the random jitter.
    """

    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = MAX_BACKOFF_MS
    jitter_ms: int = MAX_JITTER_MS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay_ms < 0 or self.jitter_ms < 0:
            raise ValueError("delays must be non-negative")


class RetryStrategy:
    """Backoff computation and retry decisions.

    Example:
        >>> strategy = RetryStrategy(RetryConfig(base_delay_ms=1000))
        >>> strategy.get_backoff_ms(1, jitter=0)
        1000
        >>> strategy.get_backoff_ms(3, jitter=0)
        4000
    """

    def __init__(self, config: RetryConfig | None = None, rng: random.Random | None = None):
        """Initialize retry strategy.

        Args:
            config: Retry configuration options.
            rng: Random source for jitter. Seed it for reproducible delays.
        """
        self._config = config or RetryConfig()
        self._rng = rng or random.Random()

    @property
    def config(self) -> RetryConfig:
        return self._config

    def draw_jitter(self) -> float:
        """Random jitter in [0, jitter_ms), drawn once per request.

        Reusing one draw for every retry of a request keeps its delays
        non-decreasing whatever the base delay.
        """
        return self._rng.random() * self._config.jitter_ms

    def get_backoff_ms(self, attempt: int, jitter: float | None = None) -> float:
        """Delay before the attempt following ``attempt``.

        Computes ``min(base * 2^(attempt-1) + jitter, max_delay)``.

        Args:
            attempt: Attempt number that just failed (1-based).
            jitter: Explicit jitter in ms. Drawn from [0, jitter_ms) when None.

        Returns:
            Delay in milliseconds.
        """
        if jitter is None:
            jitter = self.draw_jitter()
        exponent = max(attempt - 1, 0)
        delay = self._config.base_delay_ms * (2**exponent) + jitter
        return min(delay, self._config.max_delay_ms)

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """Determine if error should trigger another attempt.

        Args:
            error: The exception raised by the attempt.
            attempt: Attempt number that just failed (1-based).

        Returns:
            True if another attempt is allowed and may succeed.
        """
        if attempt >= self._config.max_attempts:
            return False
        analysis_error = classify_error(error)
        if not analysis_error.retryable:
            logger.debug(f"Not retrying non-retryable {analysis_error.code}")
            return False
        return True


__all__ = ["MAX_BACKOFF_MS", "MAX_JITTER_MS", "RetryConfig", "RetryStrategy"]
