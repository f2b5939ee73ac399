# src/servicecall/contracts/enums.py
"""Status codes, kinds and stages used across subsystem boundaries."""

from enum import StrEnum


class HttpMethod(StrEnum):
    """HTTP methods a logical call may use.

    Anything outside this set is rejected with ArgumentError before
    dispatch begins.
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: object) -> "HttpMethod":
        """Normalise and validate a caller-supplied method name.

        Args:
            value: Method name in any case (e.g. "get", "Post")

        Returns:
            The matching HttpMethod

        Raises:
            ArgumentError: If value is missing, not a string, or not allowed
        """
        # Local import keeps enums importable without the errors module
        from servicecall.errors import ArgumentError

        if not value:
            raise ArgumentError("A Method must be defined")
        if not isinstance(value, str):
            raise ArgumentError(f"method must be a string, got {type(value).__name__}")
        normalised = value.strip().upper()
        try:
            return cls(normalised)
        except ValueError:
            raise ArgumentError(f"Unrecognised method: {normalised}") from None


class FailureKind(StrEnum):
    """Kind tag of a Failure variant.

    Stored on log records and on DispatchError for diagnosis.
    """

    CONNECTIVITY = "connectivity"
    RESOLUTION = "resolution"
    TRANSPORT = "transport"
    SERVER = "server"
    CLIENT = "client"


class Stage(StrEnum):
    """States of one attempt inside a logical call.

    Gating -> Resolving -> Sending -> Classifying, then either back to
    Gating after a backoff or Done.
    """

    GATING = "gating"
    RESOLVING = "resolving"
    SENDING = "sending"
    CLASSIFYING = "classifying"
    DONE = "done"


class RegistryEvent(StrEnum):
    """Lifecycle notifications emitted by a service registry."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
