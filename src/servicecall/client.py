# src/servicecall/client.py
"""Caller-facing client for one logical service.

Each verb method validates its arguments synchronously and returns an
awaitable. Misuse (empty path, unknown method, malformed options) raises
ArgumentError at the call site, before any attempt is made; everything that
goes wrong on the network surfaces when the awaitable is awaited, as a
DispatchError subclass.

Example:
    registry = StaticRegistry("orders", ["http://10.0.0.1:8080"])
    async with ServiceClient("orders", registry) as client:
        response = await client.get("/orders/42")
        created = await client.post("/orders", body={"sku": "A-1"})
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping
from typing import Any

import structlog

from servicecall.contracts import Body, HttpMethod, RequestOptions, RequestSpec, Response
from servicecall.contracts.config import RuntimeClientConfig
from servicecall.core.config import ClientSettings
from servicecall.core.correlation import resolve_correlation_id
from servicecall.engine.dispatcher import Dispatcher
from servicecall.engine.retry import SleepFn
from servicecall.errors import ArgumentError
from servicecall.registry import ServiceRegistry, build_registry
from servicecall.transport import HttpxTransport, Transport

logger = structlog.get_logger(__name__)

Options = RequestOptions | Mapping[str, Any] | None


class _LifecycleLogger:
    """Registry listener that logs connectivity changes for verbose clients."""

    def __init__(self, service_name: str) -> None:
        self._service_name = service_name

    def on_connected(self, message: str) -> None:
        logger.info("registry_connected", service=self._service_name, message=message)

    def on_disconnected(self, message: str) -> None:
        logger.info("registry_disconnected", service=self._service_name, message=message)


class ServiceClient:
    """Resilient HTTP client for a service resolved through a registry.

    All verbs share one Dispatcher and one Transport; calls are independent
    and may run concurrently.
    """

    def __init__(
        self,
        service_name: str,
        registry: ServiceRegistry,
        *,
        transport: Transport | None = None,
        settings: ClientSettings | None = None,
        config: RuntimeClientConfig | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize client.

        Args:
            service_name: Logical name of the target service
            registry: Registry that knows where instances live
            transport: Transport to send with; an HttpxTransport is created
                (and owned) when omitted
            settings: Validated settings; ignored when config is given
            config: Runtime configuration; defaults are used when neither
                config nor settings is given
            sleep: Awaitable sleep used for backoff

        Raises:
            ArgumentError: If service_name is empty or config names another service
        """
        if not isinstance(service_name, str) or not service_name:
            raise ArgumentError("argument 'service_name' is required")

        if config is None:
            config = (
                RuntimeClientConfig.from_settings(settings)
                if settings is not None
                else RuntimeClientConfig.default(service_name)
            )
        if config.service_name != service_name:
            raise ArgumentError(
                f"config is for service {config.service_name!r}, client was created for {service_name!r}"
            )

        self._config = config
        self._registry = registry
        self._owns_transport = transport is None
        self._transport: Transport = (
            transport if transport is not None else HttpxTransport(default_timeout=config.request_timeout)
        )
        self._dispatcher = Dispatcher(
            registry,
            self._transport,
            config.retry,
            request_timeout=config.request_timeout,
            correlation_header_name=config.correlation_header_name,
            service_name=service_name,
            verbose=config.verbose,
            sleep=sleep,
        )
        self._closed = False

        if config.verbose:
            self._registry.subscribe(_LifecycleLogger(service_name))

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        registry: ServiceRegistry | None = None,
        *,
        transport: Transport | None = None,
    ) -> ServiceClient:
        """Build a client (and, unless given, its registry) from settings."""
        if registry is None:
            registry = build_registry(settings)
        return cls(settings.service_name, registry, transport=transport, settings=settings)

    @property
    def service_name(self) -> str:
        return self._config.service_name

    @property
    def config(self) -> RuntimeClientConfig:
        return self._config

    @property
    def registry(self) -> ServiceRegistry:
        return self._registry

    # -- verbs ---------------------------------------------------------------

    def get(self, path: str, options: Options = None) -> Awaitable[Response]:
        return self._call(HttpMethod.GET, path, options, None)

    def delete(self, path: str, options: Options = None) -> Awaitable[Response]:
        return self._call(HttpMethod.DELETE, path, options, None)

    def head(self, path: str, options: Options = None) -> Awaitable[Response]:
        return self._call(HttpMethod.HEAD, path, options, None)

    def put(self, path: str, options: Options = None, body: Body | None = None) -> Awaitable[Response]:
        return self._call(HttpMethod.PUT, path, options, body)

    def post(self, path: str, options: Options = None, body: Body | None = None) -> Awaitable[Response]:
        return self._call(HttpMethod.POST, path, options, body)

    def patch(self, path: str, options: Options = None, body: Body | None = None) -> Awaitable[Response]:
        return self._call(HttpMethod.PATCH, path, options, body)

    def method(self, path: str, options: Options, body: Body | None = None) -> Awaitable[Response]:
        """Call with the method named in options["method"].

        Raises:
            ArgumentError: If the method is missing or not one of the supported verbs
        """
        parsed = RequestOptions.from_mapping(options)
        return self._call(HttpMethod.parse(parsed.method), path, parsed, body)

    # -- lifecycle -----------------------------------------------------------

    def subscribe(self, listener: Any) -> None:
        """Receive registry connected/disconnected notifications."""
        self._registry.subscribe(listener)

    def unsubscribe(self, listener: Any) -> None:
        self._registry.unsubscribe(listener)

    async def close(self) -> None:
        """Close the registry and, if this client created it, the transport. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._registry.close()
        finally:
            if self._owns_transport:
                await self._transport.close()

    async def __aenter__(self) -> ServiceClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- internals -----------------------------------------------------------

    def _call(self, method: HttpMethod, path: str, options: Options, body: Body | None) -> Awaitable[Response]:
        spec = self._build_spec(method, path, options, body)
        return self._dispatcher.dispatch(spec)

    def _build_spec(self, method: HttpMethod, path: str, options: Options, body: Body | None) -> RequestSpec:
        if not isinstance(path, str) or not path:
            raise ArgumentError("argument 'path' must be a non-empty string")
        if body is not None and not isinstance(body, bytes | str | dict | list):
            raise ArgumentError(f"body must be bytes, str, dict or list, got {type(body).__name__}")

        parsed = RequestOptions.from_mapping(options)
        return RequestSpec(
            method=method,
            path=path,
            headers=parsed.headers,
            query=parsed.query,
            body=body,
            correlation_id=resolve_correlation_id(parsed.correlation_id),
        )
