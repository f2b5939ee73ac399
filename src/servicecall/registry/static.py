# src/servicecall/registry/static.py
"""In-process registry over an explicit list of instance URLs.

Useful when instance locations come from configuration, and as the
reference ServiceRegistry implementation. Connectivity is a flag flipped by
mark_connected()/mark_disconnected(), which also notify listeners.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from servicecall.contracts import Endpoint, RegistryEvent
from servicecall.errors import NoInstanceAvailableError
from servicecall.registry.protocols import RegistryListener
from servicecall.registry.strategies import ProviderStrategy, RoundRobinStrategy

logger = structlog.get_logger(__name__)


class StaticRegistry:
    """ServiceRegistry backed by an in-memory instance list.

    Example:
        registry = StaticRegistry(
            "orders",
            ["http://10.0.0.1:8080", "http://10.0.0.2:8080"],
        )
        client = ServiceClient("orders", registry)

    Concurrency:
        All state changes happen synchronously (no await between read and
        write), so concurrent coroutines on one event loop always observe a
        consistent membership list. set_instances() swaps in a new tuple
        rather than mutating the old one.
    """

    def __init__(
        self,
        service_name: str,
        instances: Iterable[str] = (),
        *,
        strategy: ProviderStrategy | None = None,
        connected: bool = True,
    ) -> None:
        self._service_name = service_name
        self._instances: tuple[str, ...] = tuple(instances)
        self._strategy = strategy if strategy is not None else RoundRobinStrategy()
        self._connected = connected
        self._closed = False
        self._listeners: list[RegistryListener] = []

    @property
    def service_name(self) -> str:
        return self._service_name

    @property
    def instances(self) -> tuple[str, ...]:
        return self._instances

    @property
    def closed(self) -> bool:
        return self._closed

    def is_connected(self) -> bool:
        return self._connected and not self._closed

    async def resolve_instance(self) -> Endpoint:
        """Select an instance using the configured provider strategy.

        Raises:
            NoInstanceAvailableError: If the membership list is empty
        """
        instances = self._instances
        if not instances:
            raise NoInstanceAvailableError(self._service_name)
        return Endpoint(service_url=self._strategy.select(instances))

    def set_instances(self, instances: Iterable[str]) -> None:
        """Replace the membership list."""
        self._instances = tuple(instances)
        logger.debug("registry_membership_changed", service=self._service_name, instances=len(self._instances))

    def mark_connected(self, message: str = "connected") -> None:
        """Flip the gate open and notify listeners."""
        self._connected = True
        self._notify(RegistryEvent.CONNECTED, message)

    def mark_disconnected(self, message: str = "disconnected") -> None:
        """Flip the gate closed and notify listeners."""
        self._connected = False
        self._notify(RegistryEvent.DISCONNECTED, message)

    def subscribe(self, listener: RegistryListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: RegistryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: RegistryEvent, message: str) -> None:
        for listener in list(self._listeners):
            try:
                if event is RegistryEvent.CONNECTED:
                    listener.on_connected(message)
                else:
                    listener.on_disconnected(message)
            except Exception as e:
                logger.warning(
                    "registry_listener_failed",
                    service=self._service_name,
                    registry_event=str(event),
                    error=str(e),
                    error_type=type(e).__name__,
                )

    async def close(self) -> None:
        """Close the registry. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        logger.debug("registry_closed", service=self._service_name)
