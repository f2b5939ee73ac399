# src/servicecall/contracts/failures.py
"""Failure and attempt-outcome variants.

A Failure is a closed tagged union. Whether it is worth another attempt is
decided by an exhaustive match on its type (see outcome_for_failure in
servicecall.engine.classifier), never by flags set ad hoc on exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass

from servicecall.contracts.enums import FailureKind
from servicecall.contracts.requests import Response


@dataclass(frozen=True, slots=True)
class ConnectivityFailure:
    """The registry reported it is not connected."""

    message: str = "registry client not connected"

    @property
    def kind(self) -> FailureKind:
        return FailureKind.CONNECTIVITY

    def describe(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class ResolutionFailure:
    """No usable instance could be resolved from the registry.

    Attributes:
        reason: Human-readable reason (e.g. "no instance available")
        cause: The registry exception, when there was one
    """

    reason: str
    cause: BaseException | None = None

    @property
    def kind(self) -> FailureKind:
        return FailureKind.RESOLUTION

    def describe(self) -> str:
        if self.cause is not None:
            return f"{self.reason}: {self.cause}"
        return self.reason


@dataclass(frozen=True, slots=True)
class TransportFailure:
    """The request never produced a response (timeout, refused, DNS...)."""

    cause: BaseException

    @property
    def kind(self) -> FailureKind:
        return FailureKind.TRANSPORT

    def describe(self) -> str:
        return f"{type(self.cause).__name__}: {self.cause}"


@dataclass(frozen=True, slots=True)
class ServerFailure:
    """The instance answered with a 5xx status."""

    status: int
    body: bytes
    response: Response

    @property
    def kind(self) -> FailureKind:
        return FailureKind.SERVER

    def describe(self) -> str:
        return f"HTTP {self.status}"


@dataclass(frozen=True, slots=True)
class ClientFailure:
    """The instance answered with a 4xx status. Never retried."""

    status: int
    body: bytes
    response: Response

    @property
    def kind(self) -> FailureKind:
        return FailureKind.CLIENT

    def describe(self) -> str:
        return f"HTTP {self.status}"


Failure = ConnectivityFailure | ResolutionFailure | TransportFailure | ServerFailure | ClientFailure


# =============================================================================
# Attempt outcomes
# =============================================================================


@dataclass(frozen=True, slots=True)
class Success:
    """The attempt produced a response the caller should receive."""

    response: Response


@dataclass(frozen=True, slots=True)
class Retryable:
    """The attempt failed in a way another attempt may fix."""

    failure: Failure


@dataclass(frozen=True, slots=True)
class Terminal:
    """The attempt failed in a way no further attempt can fix."""

    failure: Failure


AttemptOutcome = Success | Retryable | Terminal
