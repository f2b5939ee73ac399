# src/servicecall/engine/resolver.py
"""Instance resolver adapter.

Wraps a registry's resolve call behind the uniform failure shape the
dispatcher expects: an Endpoint, or a ResolutionFailure value. Resolution
happens on every attempt. Endpoints are never cached, because instance
health and membership can change between retries and re-resolving is what
lets a retry land on a healthy instance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from servicecall.contracts import Endpoint, ResolutionFailure
from servicecall.errors import RegistryError

if TYPE_CHECKING:
    from servicecall.registry.protocols import ServiceRegistry

logger = structlog.get_logger(__name__)


class InstanceResolver:
    """Resolve one instance of a service per call to resolve()."""

    def __init__(self, registry: ServiceRegistry) -> None:
        self._registry = registry

    async def resolve(self) -> Endpoint | ResolutionFailure:
        """Ask the registry for an instance.

        Returns:
            The resolved Endpoint, or ResolutionFailure if the registry raised
            RegistryError or returned nothing usable

        Raises:
            Exception: Anything other than RegistryError raised by the registry
        """
        try:
            endpoint = await self._registry.resolve_instance()
        except RegistryError as e:
            logger.debug("instance_resolution_failed", service=self._registry.service_name, error=str(e))
            return ResolutionFailure(reason="instance resolution failed", cause=e)

        if endpoint is None or not endpoint.service_url:
            return ResolutionFailure(reason="no instance available")
        return endpoint
