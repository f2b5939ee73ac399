"""Transports that put a single request on the wire."""

from servicecall.transport.http import HttpxTransport, Transport

__all__ = [
    "HttpxTransport",
    "Transport",
]
