# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Usage:
    from tests.property.conftest import retry_policies, http_statuses

    @given(policy=retry_policies())
    def test_backoff_bounded(policy: RetryPolicy) -> None:
        ...
"""

from __future__ import annotations

from hypothesis import strategies as st

from servicecall.contracts import (
    AttemptOutcome,
    ClientFailure,
    ConnectivityFailure,
    ResolutionFailure,
    Response,
    Retryable,
    RetryPolicy,
    ServerFailure,
    Success,
    Terminal,
    TransportFailure,
)

valid_max_attempts = st.integers(min_value=1, max_value=20)

valid_delays = st.floats(min_value=0.0, max_value=60.0, allow_nan=False, allow_infinity=False)

http_statuses = st.integers(min_value=100, max_value=599)


@st.composite
def retry_policies(draw: st.DrawFn, max_attempts: st.SearchStrategy[int] = valid_max_attempts) -> RetryPolicy:
    """Valid RetryPolicy with min_delay <= max_delay."""
    low = draw(valid_delays)
    high = draw(valid_delays)
    if low > high:
        low, high = high, low
    return RetryPolicy(max_attempts=draw(max_attempts), min_delay=low, max_delay=high)


def _response(status: int) -> Response:
    return Response(status=status, headers={}, body=b"")


retryable_outcomes: st.SearchStrategy[AttemptOutcome] = st.one_of(
    st.just(Retryable(ConnectivityFailure())),
    st.just(Retryable(ResolutionFailure("no instance available"))),
    st.just(Retryable(TransportFailure(TimeoutError()))),
    st.integers(500, 599).map(lambda s: Retryable(ServerFailure(s, b"", _response(s)))),
)

terminal_outcomes: st.SearchStrategy[AttemptOutcome] = st.integers(400, 499).map(
    lambda s: Terminal(ClientFailure(s, b"", _response(s)))
)

success_outcomes: st.SearchStrategy[AttemptOutcome] = st.integers(200, 399).map(lambda s: Success(_response(s)))

attempt_outcomes: st.SearchStrategy[AttemptOutcome] = st.one_of(retryable_outcomes, terminal_outcomes, success_outcomes)
