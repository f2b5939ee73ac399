# src/servicecall/contracts/retry.py
"""Retry policy and per-call attempt bookkeeping."""

from __future__ import annotations

import math
from dataclasses import dataclass

from servicecall.contracts.failures import AttemptOutcome, Failure


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounds of the retry loop, fixed per client instance.

    max_attempts is the TOTAL number of tries, not the number of retries.
    So max_attempts=3 means: try, retry, retry (3 total).

    Attributes:
        max_attempts: Exact cap on attempts (>= 1)
        min_delay: Lower bound of every backoff delay, seconds
        max_delay: Upper bound of every backoff delay, seconds
    """

    max_attempts: int
    min_delay: float
    max_delay: float

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if not math.isfinite(self.min_delay) or not math.isfinite(self.max_delay):
            raise ValueError("delays must be finite")
        if self.min_delay < 0:
            raise ValueError("min_delay must be >= 0")
        if self.min_delay > self.max_delay:
            raise ValueError("min_delay must be <= max_delay")

    @classmethod
    def no_retry(cls) -> RetryPolicy:
        """Single attempt: gating and classification, no resilience."""
        return cls(max_attempts=1, min_delay=0.0, max_delay=0.0)


@dataclass(slots=True)
class AttemptState:
    """Mutable state of one logical call's attempt sequence.

    Owned and mutated only by the RetryController; discarded when the call
    finalises.
    """

    attempt_number: int = 1
    last_failure: Failure | None = None


@dataclass(frozen=True, slots=True)
class RetryResult:
    """Final outcome of an attempt sequence.

    Attributes:
        outcome: The last classified outcome
        attempts: Number of attempts actually made
        exhausted: True when the budget ran out on a retryable failure
    """

    outcome: AttemptOutcome
    attempts: int
    exhausted: bool = False
