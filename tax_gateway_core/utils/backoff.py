"""
Exponential backoff for retrying transient portal failures.
"""

import random

from pydantic import BaseModel, ConfigDict, Field

from ..config import RetryConfig


def calculate_exponential_backoff(
    retry_count: int,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    multiplier: float = 2.0,
    jitter: bool = False,
) -> float:
    """
    Calculate exponential backoff delay.

    Args:
        retry_count: Current retry attempt (0-based)
        base_delay: Base delay in seconds (default: 1)
        max_delay: Maximum delay in seconds (default: 30)
        multiplier: Exponential multiplier (default: 2.0)
        jitter: Spread delays by +/-25% so concurrent clients do not retry in lockstep

    Returns:
        Delay in seconds before next retry

    Example:
        retry_count=0: 1s
        retry_count=1: 2s
        retry_count=2: 4s
        retry_count=3: 8s
        retry_count=4: 16s
        retry_count=5: 30s (capped at max_delay)
    """
    if retry_count < 0:
        return base_delay

    delay = min(base_delay * (multiplier ** retry_count), max_delay)

    if jitter:
        jitter_range = delay * 0.25
        delay = delay + random.uniform(-jitter_range, jitter_range)
        # Never drop below the base delay or exceed the cap
        delay = min(max(delay, base_delay), max_delay)

    return delay


class BackoffPolicy(BaseModel):
    """Delay schedule used between executor attempts."""

    model_config = ConfigDict(frozen=True)

    initial_delay: float = Field(default=1.0, gt=0)
    max_delay: float = Field(default=30.0, gt=0)
    multiplier: float = Field(default=2.0, ge=1)
    jitter: bool = False

    @classmethod
    def from_retry_config(cls, config: RetryConfig) -> "BackoffPolicy":
        return cls(
            initial_delay=config.initial_delay,
            max_delay=config.max_delay,
            multiplier=config.multiplier,
            jitter=config.jitter,
        )

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given zero-based attempt failed."""
        return calculate_exponential_backoff(
            retry_count=attempt,
            base_delay=self.initial_delay,
            max_delay=self.max_delay,
            multiplier=self.multiplier,
            jitter=self.jitter,
        )
