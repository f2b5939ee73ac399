# src/servicecall/contracts/requests.py
"""Immutable request, endpoint and response values.

A logical call owns exactly one RequestSpec, built once at call entry and
shared read-only by every attempt. Endpoints live for a single attempt and
Responses are handed back to the caller verbatim.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from servicecall.contracts.enums import HttpMethod

# Body types accepted by the transport. dict/list bodies are sent as JSON.
Body = bytes | str | dict[str, Any] | list[Any]


def _frozen_mapping(value: Mapping[str, Any] | None) -> Mapping[str, str]:
    """Copy a mapping into a read-only str->str view."""
    if not value:
        return MappingProxyType({})
    return MappingProxyType({str(k): str(v) for k, v in value.items()})


@dataclass(frozen=True, slots=True)
class RequestOptions:
    """Caller-facing per-call options.

    Attributes:
        headers: Extra request headers
        query: Query-string parameters (None when absent)
        correlation_id: Explicit correlation id; generated when None
        method: Method name, only consulted by ServiceClient.method()
    """

    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    query: Mapping[str, str] | None = None
    correlation_id: str | None = None
    method: str | None = None

    @classmethod
    def from_mapping(cls, options: RequestOptions | Mapping[str, Any] | None) -> RequestOptions:
        """Build options from a plain dict (or pass an instance through).

        Both ``correlation_id`` and ``correlationId`` keys are recognised so
        option dicts written for other clients keep working.

        Raises:
            ArgumentError: If options is neither None, a mapping nor RequestOptions
        """
        from servicecall.errors import ArgumentError

        if options is None:
            return cls()
        if isinstance(options, RequestOptions):
            return options
        if not isinstance(options, Mapping):
            raise ArgumentError(f"options must be a mapping, got {type(options).__name__}")

        headers = options.get("headers")
        if headers is not None and not isinstance(headers, Mapping):
            raise ArgumentError("options.headers must be a mapping")
        query = options.get("query")
        if query is not None and not isinstance(query, Mapping):
            raise ArgumentError("options.query must be a mapping")

        correlation_id = options.get("correlation_id", options.get("correlationId"))
        if correlation_id is not None and (not isinstance(correlation_id, str) or not correlation_id):
            raise ArgumentError("options.correlation_id must be a non-empty string")

        return cls(
            headers=_frozen_mapping(headers),
            query=_frozen_mapping(query) if query is not None else None,
            correlation_id=correlation_id,
            method=options.get("method"),
        )


@dataclass(frozen=True, slots=True)
class RequestSpec:
    """Everything needed to send one logical call, fixed for all attempts."""

    method: HttpMethod
    path: str
    headers: Mapping[str, str]
    query: Mapping[str, str] | None
    body: Body | None
    correlation_id: str

    def outbound_headers(self, correlation_header_name: str) -> dict[str, str]:
        """Headers for the wire, with the correlation header attached.

        Header names are case-insensitive on the wire, so a caller header that
        matches the correlation header in any case is replaced, never duplicated.
        """
        wanted = correlation_header_name.lower()
        headers = {name: value for name, value in self.headers.items() if name.lower() != wanted}
        headers[correlation_header_name] = self.correlation_id
        return headers


@dataclass(frozen=True, slots=True)
class Endpoint:
    """A resolved service instance location.

    Opaque to the engine beyond being joinable with a path.
    """

    service_url: str

    def url_for(self, path: str) -> str:
        """Join the instance URL with a request path."""
        return f"{self.service_url.removesuffix('/')}/{path.removeprefix('/')}"


@dataclass(frozen=True, slots=True)
class Response:
    """Response returned verbatim to the caller."""

    status: int
    headers: Mapping[str, str]
    body: bytes
    url: str = ""

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (undecodable bytes replaced)."""
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Body parsed as JSON.

        Raises:
            json.JSONDecodeError: If the body is not valid JSON
        """
        return json.loads(self.body)
