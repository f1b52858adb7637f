"""Service discovery models and clients."""

from __future__ import annotations

from typing import Optional

from ..config import SagaflowConfig, load_config
from .client import HttpServiceRegistry, ServiceRegistry, StaticServiceRegistry, endpoint_for
from .models import ServiceDescriptor, ServiceInterface, ServiceMethod


def get_registry(config: Optional[SagaflowConfig] = None) -> ServiceRegistry:
    """Return a static registry when services are configured, else the HTTP client."""

    config = config or load_config()
    if config.registry.services:
        return StaticServiceRegistry(config.registry.services)
    return HttpServiceRegistry(config.registry.url)


__all__ = [
    "ServiceMethod",
    "ServiceInterface",
    "ServiceDescriptor",
    "ServiceRegistry",
    "HttpServiceRegistry",
    "StaticServiceRegistry",
    "endpoint_for",
    "get_registry",
]
