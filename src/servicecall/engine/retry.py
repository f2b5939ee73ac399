# src/servicecall/engine/retry.py
"""RetryController: bounded-attempt backoff loop with tenacity.

The controller is generic over "the operation to retry": it drives an
attempt function that returns an AttemptOutcome (Success, Retryable,
Terminal) and never inspects what the attempt actually did.

- Success and Terminal end the sequence immediately, whatever budget remains
- Retryable ends it as exhausted on the last allowed attempt, otherwise the
  controller sleeps a backoff delay and runs the next attempt
- Exceptions raised by the attempt function are bugs, not outcomes: they
  propagate unchanged and are never retried
- Cancellation during the backoff sleep stops the sequence
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from servicecall.contracts import (
    AttemptOutcome,
    AttemptState,
    Failure,
    Retryable,
    RetryPolicy,
    RetryResult,
    Success,
    Terminal,
)

logger = structlog.get_logger(__name__)

AttemptFn = Callable[[int], Awaitable[AttemptOutcome]]
SleepFn = Callable[[float], Awaitable[Any]]
OnRetry = Callable[[int, Failure, float], None]


def backoff_wait(policy: RetryPolicy) -> wait_base:
    """Build the backoff wait strategy for a policy.

    delay = min_delay + uniform(0, min(spread, growth * 2 ** (attempt - 1)))
    where spread = max_delay - min_delay. Every delay therefore lies in
    [min_delay, max_delay], grows roughly exponentially with the attempt
    number, and is randomised per attempt so concurrent calls that failed
    together do not retry in lockstep.
    """
    spread = policy.max_delay - policy.min_delay
    growth = policy.min_delay if policy.min_delay > 0 else spread / 8
    return wait_fixed(policy.min_delay) + wait_random_exponential(multiplier=growth, max=spread)


def _is_retryable(outcome: AttemptOutcome) -> bool:
    return isinstance(outcome, Retryable)


def _last_outcome(retry_state: RetryCallState) -> AttemptOutcome:
    """retry_error_callback: hand back the final Retryable instead of raising RetryError."""
    assert retry_state.outcome is not None
    outcome: AttemptOutcome = retry_state.outcome.result()
    return outcome


class RetryController:
    """Runs one logical call's attempts under a RetryPolicy.

    Example:
        controller = RetryController(RetryPolicy(max_attempts=3, min_delay=0.075, max_delay=0.75))

        result = await controller.run(attempt)
        if isinstance(result.outcome, Success):
            ...

    A controller holds no per-call state and can be shared by any number of
    concurrent calls; each run() builds its own AttemptState and tenacity
    retrying object.
    """

    def __init__(
        self,
        policy: RetryPolicy,
        *,
        sleep: SleepFn = asyncio.sleep,
        on_retry: OnRetry | None = None,
    ) -> None:
        """Initialize with policy.

        Args:
            policy: Attempt budget and backoff bounds
            sleep: Awaitable sleep used between attempts (tests inject a fake)
            on_retry: Optional callback (attempt_number, failure, delay) fired
                before each backoff sleep; never fired after the last attempt
        """
        self._policy = policy
        self._sleep = sleep
        self._on_retry = on_retry
        self._wait = backoff_wait(policy)

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def run(self, attempt_fn: AttemptFn) -> RetryResult:
        """Run attempts until success, terminal failure or budget exhaustion.

        Args:
            attempt_fn: Coroutine function called with the 1-based attempt number

        Returns:
            RetryResult with the last outcome, attempts made and exhaustion flag

        Raises:
            Exception: Whatever attempt_fn raises, unchanged
            asyncio.CancelledError: If cancelled while waiting between attempts
        """
        state = AttemptState()

        async def attempt() -> AttemptOutcome:
            outcome = await attempt_fn(state.attempt_number)
            if not isinstance(outcome, Success | Retryable | Terminal):
                raise TypeError(f"attempt function must return an AttemptOutcome, got {type(outcome).__name__}")
            state.last_failure = None if isinstance(outcome, Success) else outcome.failure
            return outcome

        def before_sleep(retry_state: RetryCallState) -> None:
            assert retry_state.next_action is not None
            delay = retry_state.next_action.sleep
            assert state.last_failure is not None
            if self._on_retry is not None:
                self._on_retry(state.attempt_number, state.last_failure, delay)
            state.attempt_number = retry_state.attempt_number + 1

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._policy.max_attempts),
            wait=self._wait,
            retry=retry_if_result(_is_retryable),
            sleep=self._sleep,
            before_sleep=before_sleep,
            retry_error_callback=_last_outcome,
        )
        outcome: AttemptOutcome = await retrying(attempt)

        exhausted = isinstance(outcome, Retryable)
        if exhausted:
            logger.debug("retry_budget_exhausted", attempts=state.attempt_number, max_attempts=self._policy.max_attempts)
        return RetryResult(outcome=outcome, attempts=state.attempt_number, exhausted=exhausted)


