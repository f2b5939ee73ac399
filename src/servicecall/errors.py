# src/servicecall/errors.py
"""Exception hierarchy surfaced to callers.

Two families:

- ArgumentError: programming errors detectable before any I/O. Raised
  synchronously at call time; no attempt is ever made.
- DispatchError and subclasses: the final outcome of a logical call that
  did not succeed. Raised when the awaited call completes. Each carries the
  tagged Failure, the attempt count, whether the budget was exhausted, and
  the request context of the last attempt.

Registry implementations raise RegistryError; the resolver adapter turns it
into a ResolutionFailure so it takes part in the retry loop.
"""

from __future__ import annotations

from dataclasses import dataclass

from servicecall.contracts.enums import FailureKind, HttpMethod
from servicecall.contracts.failures import (
    ClientFailure,
    ConnectivityFailure,
    Failure,
    ResolutionFailure,
    ServerFailure,
    TransportFailure,
)
from servicecall.contracts.requests import Response


class ServiceCallError(Exception):
    """Base class for every error raised by servicecall."""


class ArgumentError(ServiceCallError, ValueError):
    """Caller misuse: missing path, bad method, malformed options."""


class RegistryError(ServiceCallError):
    """A service registry could not produce an instance."""


class NoInstanceAvailableError(RegistryError):
    """The registry knows the service but has no instance to offer."""

    def __init__(self, service_name: str) -> None:
        self.service_name = service_name
        super().__init__(f"no instance available for service '{service_name}'")


@dataclass(frozen=True, slots=True)
class DispatchContext:
    """Request context attached to a failed logical call.

    Attributes:
        service_name: Logical service the call targeted
        method: HTTP method
        path: Request path relative to the instance URL
        url: Full URL of the last attempt that resolved an instance
            (None if no attempt got that far)
        correlation_id: Correlation id shared by all attempts
    """

    service_name: str
    method: HttpMethod
    path: str
    url: str | None
    correlation_id: str


class DispatchError(ServiceCallError):
    """A logical call finished without a successful response.

    Attributes:
        failure: The last observed Failure
        attempts: Number of attempts made
        exhausted: True if the attempt budget ran out on a retryable failure
        context: Request context for diagnosis
    """

    def __init__(
        self,
        failure: Failure,
        *,
        attempts: int,
        exhausted: bool,
        context: DispatchContext,
    ) -> None:
        self.failure = failure
        self.attempts = attempts
        self.exhausted = exhausted
        self.context = context
        super().__init__(self._format_message())

    @property
    def kind(self) -> FailureKind:
        return self.failure.kind

    def _format_message(self) -> str:
        ctx = self.context
        target = ctx.url or f"<{ctx.service_name}>/{ctx.path.lstrip('/')}"
        prefix = f"gave up after {self.attempts} attempt(s), last error" if self.exhausted else "request failed"
        return f"{ctx.method} {target}: {prefix}: {self.kind}: {self.failure.describe()}"

    @staticmethod
    def from_failure(
        failure: Failure,
        *,
        attempts: int,
        exhausted: bool,
        context: DispatchContext,
    ) -> DispatchError:
        """Build the DispatchError subclass matching a Failure variant."""
        error_cls: type[DispatchError]
        match failure:
            case ConnectivityFailure():
                error_cls = ConnectivityError
            case ResolutionFailure():
                error_cls = ResolutionError
            case TransportFailure():
                error_cls = TransportError
            case ServerFailure():
                error_cls = ServerError
            case ClientFailure():
                error_cls = ClientError
        return error_cls(failure, attempts=attempts, exhausted=exhausted, context=context)


class ConnectivityError(DispatchError):
    """The registry stayed disconnected for the whole attempt budget."""


class ResolutionError(DispatchError):
    """No instance could be resolved for the whole attempt budget."""


class TransportError(DispatchError):
    """Every attempt failed at the transport level (timeout, refused, DNS)."""


class ServerError(DispatchError):
    """Instances kept answering 5xx until the budget ran out."""

    @property
    def response(self) -> Response:
        assert isinstance(self.failure, ServerFailure)
        return self.failure.response


class ClientError(DispatchError):
    """An instance rejected the request with a 4xx. Never retried."""

    @property
    def response(self) -> Response:
        assert isinstance(self.failure, ClientFailure)
        return self.failure.response

    @property
    def status(self) -> int:
        return self.response.status
