"""Shared contracts for cross-boundary data types.

All dataclasses and enums that cross subsystem boundaries (client, engine,
registry, transport) are defined here. This package is a LEAF MODULE with no
outbound dependencies to core/engine.

Settings classes (ClientSettings, RetrySettings) are NOT re-exported here -
import them from servicecall.core.config.
"""

from servicecall.contracts.enums import FailureKind, HttpMethod, RegistryEvent, Stage
from servicecall.contracts.failures import (
    AttemptOutcome,
    ClientFailure,
    ConnectivityFailure,
    Failure,
    ResolutionFailure,
    Retryable,
    ServerFailure,
    Success,
    Terminal,
    TransportFailure,
)
from servicecall.contracts.requests import Body, Endpoint, RequestOptions, RequestSpec, Response
from servicecall.contracts.retry import AttemptState, RetryPolicy, RetryResult

__all__ = [
    "AttemptOutcome",
    "AttemptState",
    "Body",
    "ClientFailure",
    "ConnectivityFailure",
    "Endpoint",
    "Failure",
    "FailureKind",
    "HttpMethod",
    "RegistryEvent",
    "RequestOptions",
    "RequestSpec",
    "ResolutionFailure",
    "Response",
    "RetryPolicy",
    "RetryResult",
    "Retryable",
    "ServerFailure",
    "Stage",
    "Success",
    "Terminal",
    "TransportFailure",
]
