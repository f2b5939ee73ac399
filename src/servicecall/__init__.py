"""servicecall: resilient HTTP calls to services resolved through a registry.

One logical call may make several attempts. Registry disconnection,
instance resolution failures, transport errors and 5xx responses all draw
on the same bounded retry budget; 4xx responses end the call at once.
"""

from servicecall.client import ServiceClient
from servicecall.contracts import (
    Endpoint,
    FailureKind,
    HttpMethod,
    RequestOptions,
    Response,
    RetryPolicy,
)
from servicecall.contracts.config import RuntimeClientConfig
from servicecall.core.config import ClientSettings, load_settings
from servicecall.errors import (
    ArgumentError,
    ClientError,
    ConnectivityError,
    DispatchError,
    NoInstanceAvailableError,
    RegistryError,
    ResolutionError,
    ServerError,
    ServiceCallError,
    TransportError,
)
from servicecall.registry import StaticRegistry

__version__ = "0.1.0"

__all__ = [
    "ArgumentError",
    "ClientError",
    "ClientSettings",
    "ConnectivityError",
    "DispatchError",
    "Endpoint",
    "FailureKind",
    "HttpMethod",
    "NoInstanceAvailableError",
    "RegistryError",
    "RequestOptions",
    "ResolutionError",
    "Response",
    "RetryPolicy",
    "RuntimeClientConfig",
    "ServerError",
    "ServiceCallError",
    "ServiceClient",
    "StaticRegistry",
    "TransportError",
    "__version__",
    "load_settings",
]
