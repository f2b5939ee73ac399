# src/servicecall/registry/__init__.py
"""Service registries: where instances of a logical service live.

Example:
    from servicecall.registry import StaticRegistry, get_provider_strategy

    registry = StaticRegistry(
        "orders",
        ["http://10.0.0.1:8080", "http://10.0.0.2:8080"],
        strategy=get_provider_strategy("random"),
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from servicecall.registry.protocols import RegistryListener, ServiceRegistry
from servicecall.registry.static import StaticRegistry
from servicecall.registry.strategies import (
    PROVIDER_STRATEGIES,
    ProviderStrategy,
    RandomStrategy,
    RoundRobinStrategy,
    StickyStrategy,
    get_provider_strategy,
)

if TYPE_CHECKING:
    from servicecall.core.config import ClientSettings


def build_registry(settings: ClientSettings) -> ServiceRegistry:
    """Build the registry described by settings.registry.

    Raises:
        ValueError: If the registry kind is not supported
    """
    registry_settings = settings.registry
    match registry_settings.kind:
        case "static":
            return StaticRegistry(
                settings.service_name,
                registry_settings.instances,
                strategy=get_provider_strategy(settings.provider_strategy),
                connected=registry_settings.connected,
            )
        case _:
            raise ValueError(f"unsupported registry kind: {registry_settings.kind!r}")


__all__ = [
    "PROVIDER_STRATEGIES",
    "ProviderStrategy",
    "RandomStrategy",
    "RegistryListener",
    "RoundRobinStrategy",
    "ServiceRegistry",
    "StaticRegistry",
    "StickyStrategy",
    "build_registry",
    "get_provider_strategy",
]
