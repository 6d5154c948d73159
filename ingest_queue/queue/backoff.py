"""
Retry backoff policy.

Backoff is a pure function of the attempt count so it can be tested without a
running dispatcher.
"""

import random
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ingest_queue.config import Settings


class BackoffPolicy(BaseModel):
    """
    Exponential backoff with bounded multiplicative jitter.

    delay(n) = min(max_delay, base_delay * multiplier ** (n - 1) * (1 + U(0, jitter_ratio)))

    Requiring multiplier >= 1 + jitter_ratio keeps consecutive delays
    non-decreasing even with jitter applied.
    """

    model_config = ConfigDict(frozen=True)

    base_delay_seconds: float = Field(default=30.0, gt=0)
    multiplier: float = Field(default=2.0, ge=1.0)
    max_delay_seconds: float = Field(default=3600.0, gt=0)
    jitter_ratio: float = Field(default=0.1, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "BackoffPolicy":
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        if self.multiplier < 1.0 + self.jitter_ratio:
            raise ValueError("multiplier must be >= 1 + jitter_ratio")
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackoffPolicy":
        return cls(
            base_delay_seconds=settings.retry_base_delay_seconds,
            multiplier=settings.retry_multiplier,
            max_delay_seconds=settings.retry_max_delay_seconds,
            jitter_ratio=settings.retry_jitter_ratio,
        )


def compute_backoff_delay(
    attempt_count: int,
    policy: BackoffPolicy,
    rng: random.Random | None = None,
) -> float:
    """
    Delay in seconds before the next attempt after attempt_count failures.

    Args:
        attempt_count: Attempts made so far (1 after the first failure).
        policy: The backoff policy.
        rng: Optional random source, for deterministic tests.

    Returns:
        The delay, never above policy.max_delay_seconds.
    """
    exponent = max(attempt_count, 1) - 1
    # Once the raw delay reaches the cap further growth is irrelevant
    raw = policy.base_delay_seconds
    for _ in range(exponent):
        raw *= policy.multiplier
        if raw >= policy.max_delay_seconds:
            break

    jitter = (rng or random).uniform(0.0, policy.jitter_ratio) if policy.jitter_ratio else 0.0
    return min(policy.max_delay_seconds, raw * (1.0 + jitter))


def compute_next_attempt_at(
    attempt_count: int,
    now: datetime,
    policy: BackoffPolicy,
    rng: random.Random | None = None,
) -> datetime:
    """Timestamp before which a job that failed attempt_count times is not claimable."""
    return now + timedelta(seconds=compute_backoff_delay(attempt_count, policy, rng))
