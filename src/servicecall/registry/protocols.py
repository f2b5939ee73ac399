# src/servicecall/registry/protocols.py
"""Protocol definitions for service registries.

The engine consumes a registry only through is_connected() and
resolve_instance(). Lifecycle notifications are a separate observer
channel: nothing in the dispatch path depends on them.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from servicecall.contracts import Endpoint


@runtime_checkable
class RegistryListener(Protocol):
    """Observer of registry lifecycle notifications.

    Error handling:
        - Listeners SHOULD NOT raise. If one does, the registry logs the
          error and keeps notifying the remaining listeners.
    """

    def on_connected(self, message: str) -> None:
        """Called when the registry (re)connects."""
        ...

    def on_disconnected(self, message: str) -> None:
        """Called when the registry loses its connection."""
        ...


@runtime_checkable
class ServiceRegistry(Protocol):
    """Registry that knows where instances of one service live.

    Concurrency:
        is_connected() and resolve_instance() may be called concurrently by
        any number of in-flight logical calls. Implementations own whatever
        synchronisation their instance table needs.
    """

    @property
    def service_name(self) -> str:
        """Logical name of the service this registry resolves."""
        ...

    def is_connected(self) -> bool:
        """Whether the registry can currently answer resolution requests."""
        ...

    async def resolve_instance(self) -> "Endpoint":
        """Pick one instance of the service.

        Raises:
            RegistryError: If no instance can be resolved
        """
        ...

    def subscribe(self, listener: RegistryListener) -> None:
        """Register a lifecycle listener."""
        ...

    def unsubscribe(self, listener: RegistryListener) -> None:
        """Remove a previously registered listener (no-op if unknown)."""
        ...

    async def close(self) -> None:
        """Release registry resources. MUST be idempotent."""
        ...
