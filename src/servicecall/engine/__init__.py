"""Dispatch engine: classification, retry control and orchestration."""

from servicecall.engine.classifier import (
    TRANSPORT_EXCEPTIONS,
    classify,
    classify_gate,
    classify_resolution,
    classify_response,
    classify_send,
    outcome_for_failure,
)
from servicecall.engine.dispatcher import Dispatcher
from servicecall.engine.resolver import InstanceResolver
from servicecall.engine.retry import RetryController, backoff_wait

__all__ = [
    "TRANSPORT_EXCEPTIONS",
    "Dispatcher",
    "InstanceResolver",
    "RetryController",
    "backoff_wait",
    "classify",
    "classify_gate",
    "classify_resolution",
    "classify_response",
    "classify_send",
    "outcome_for_failure",
]
