# tests/property/engine/test_classifier_properties.py
"""Property-based tests for response classification.

Properties tested:
1. Classification is total over status codes and deterministic
2. Exactly 5xx is retryable and exactly 4xx is terminal
"""

from __future__ import annotations

from hypothesis import given

from servicecall.contracts import ClientFailure, Response, Retryable, ServerFailure, Success, Terminal
from servicecall.engine.classifier import classify_response
from tests.property.conftest import http_statuses
from tests.property.settings import STANDARD_SETTINGS


class TestClassificationProperties:
    @given(status=http_statuses)
    @STANDARD_SETTINGS
    def test_total_and_deterministic(self, status: int) -> None:
        response = Response(status=status, headers={}, body=b"")

        first = classify_response(response)

        assert isinstance(first, Success | Retryable | Terminal)
        assert classify_response(response) == first

    @given(status=http_statuses)
    @STANDARD_SETTINGS
    def test_status_ranges(self, status: int) -> None:
        outcome = classify_response(Response(status=status, headers={}, body=b""))

        if 500 <= status <= 599:
            assert isinstance(outcome, Retryable)
            assert isinstance(outcome.failure, ServerFailure)
        elif 400 <= status <= 499:
            assert isinstance(outcome, Terminal)
            assert isinstance(outcome.failure, ClientFailure)
        else:
            assert isinstance(outcome, Success)
