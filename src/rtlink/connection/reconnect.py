"""Reconnection backoff policy for the push connection."""

import random
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rtlink.logger import get_logger

logger = get_logger("connection.reconnect")


class ReconnectPolicy(BaseModel):
    """Exponential backoff with jitter.

    ``delay = min(max_delay, base_delay * backoff_factor**(attempt-1) * jitter)``
    where ``jitter`` is drawn uniformly from
    ``[1 - jitter_ratio, 1 + jitter_ratio]`` for every attempt. The result
    always lies in ``[base_delay * (1 - jitter_ratio), max_delay]``.
    """

    model_config = ConfigDict(frozen=True)

    base_delay: float = Field(1.0, gt=0, description="Delay before the first retry (seconds)")
    max_delay: float = Field(60.0, gt=0, description="Upper bound on any retry delay (seconds)")
    backoff_factor: float = Field(1.5, ge=1.0, description="Multiplier applied per attempt")
    jitter_ratio: float = Field(0.1, ge=0.0, lt=1.0, description="Relative randomization of each delay")
    max_attempts: int = Field(12, ge=0, description="Retries before the connection is declared failed")

    @model_validator(mode="after")
    def _check_bounds(self) -> "ReconnectPolicy":
        if self.max_delay < self.base_delay:
            raise ValueError(f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})")
        return self

    @property
    def min_delay(self) -> float:
        """Smallest delay calculate_delay can return."""
        return self.base_delay * (1 - self.jitter_ratio)

    def jitter(self, rand: Callable[[], float] = random.random) -> float:
        """Draw a jitter multiplier in ``[1 - jitter_ratio, 1 + jitter_ratio]``."""
        return 1 + (rand() * 2 - 1) * self.jitter_ratio

    def calculate_delay(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        """
        Calculate the delay before retry number ``attempt``.

        Args:
            attempt: Retry number (1-indexed); values below 1 are treated as 1
            rand: Source of uniform [0, 1) numbers

        Returns:
            Delay in seconds
        """
        exponent = max(attempt, 1) - 1
        try:
            exponential = self.base_delay * (self.backoff_factor**exponent)
        except OverflowError:
            exponential = self.max_delay
        return min(self.max_delay, exponential * self.jitter(rand))

    def should_retry(self, attempt: int) -> bool:
        """Whether another retry is allowed after ``attempt`` retries."""
        return attempt < self.max_attempts
