"""Discovery clients resolving logical service names to endpoints."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

import httpx
from pydantic import ValidationError

from ..constants import DEFAULT_REGISTRY_TIMEOUT
from ..errors import DiscoveryError
from .models import ServiceDescriptor, ServiceInterface

logger = logging.getLogger(__name__)


class ServiceRegistry(Protocol):
    """Protocol for discovery backends."""

    async def resolve_endpoint(
        self, service_id: str, interface_type: str = "REST", operation: Optional[str] = None
    ) -> str:
        """Return the live endpoint URL for ``service_id``."""


def endpoint_for(
    descriptor: ServiceDescriptor,
    interface_type: str = "REST",
    operation: Optional[str] = None,
) -> str:
    """Pick an endpoint from ``descriptor``.

    Raises:
        DiscoveryError: If the service is expired, not active or has no interface.
    """
    if descriptor.is_expired():
        raise DiscoveryError(descriptor.service_id, interface_type, operation, "registration expired")
    if descriptor.status != "ACTIVE":
        raise DiscoveryError(
            descriptor.service_id, interface_type, operation, f"status is {descriptor.status}"
        )
    interface = descriptor.interface(interface_type)
    if interface is None:
        raise DiscoveryError(descriptor.service_id, interface_type, operation, "no interfaces")
    if operation:
        method = interface.method(operation)
        if method is not None and method.path:
            return interface.endpoint + "/" + method.path.lstrip("/")
    return interface.endpoint


class HttpServiceRegistry:
    """Resolve endpoints through the registry's REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_REGISTRY_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def get_service(self, service_id: str) -> ServiceDescriptor:
        url = f"{self.base_url}/api/services/{service_id}"
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"Registry lookup for {service_id} failed: {e}")
            raise DiscoveryError(service_id, reason=f"registry unreachable: {e}") from e

        if response.status_code == 404:
            raise DiscoveryError(service_id)
        if response.is_error:
            raise DiscoveryError(service_id, reason=f"registry returned {response.status_code}")
        try:
            return ServiceDescriptor.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Registry returned an unusable descriptor for {service_id}: {e}")
            raise DiscoveryError(service_id, reason=f"invalid registry response: {e}") from e

    async def resolve_endpoint(
        self, service_id: str, interface_type: str = "REST", operation: Optional[str] = None
    ) -> str:
        descriptor = await self.get_service(service_id)
        endpoint = endpoint_for(descriptor, interface_type, operation)
        logger.debug(f"Resolved {service_id} ({interface_type}) to {endpoint}")
        return endpoint


class StaticServiceRegistry:
    """In-process registry populated from configuration or tests."""

    def __init__(self, services: Optional[Dict[str, Dict[str, str]]] = None) -> None:
        self._services: Dict[str, ServiceDescriptor] = {}
        for service_id, interfaces in (services or {}).items():
            self.register(
                ServiceDescriptor(
                    service_id=service_id,
                    interfaces=[
                        ServiceInterface(type=kind, endpoint=endpoint)
                        for kind, endpoint in interfaces.items()
                    ],
                )
            )

    def register(self, descriptor: ServiceDescriptor) -> None:
        """Add or replace ``descriptor``."""
        self._services[descriptor.service_id] = descriptor

    def unregister(self, service_id: str) -> None:
        self._services.pop(service_id, None)

    async def resolve_endpoint(
        self, service_id: str, interface_type: str = "REST", operation: Optional[str] = None
    ) -> str:
        descriptor = self._services.get(service_id)
        if descriptor is None:
            raise DiscoveryError(service_id, interface_type, operation)
        return endpoint_for(descriptor, interface_type, operation)
