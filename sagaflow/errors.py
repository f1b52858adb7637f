"""Error taxonomy for sagaflow."""

from __future__ import annotations

from typing import Optional


class SagaflowError(Exception):
    """Base class for all sagaflow errors."""


class ConfigurationError(SagaflowError):
    """Raised for unsupported backends or invalid workflow definitions."""


class DiscoveryError(SagaflowError):
    """A logical service name could not be resolved to a live endpoint."""

    def __init__(
        self,
        service_id: str,
        interface_type: str = "REST",
        operation: Optional[str] = None,
        reason: str = "not registered",
    ) -> None:
        self.service_id = service_id
        self.interface_type = interface_type
        self.operation = operation
        self.reason = reason
        target = f"{service_id}.{operation}" if operation else service_id
        super().__init__(f"Cannot resolve {interface_type} endpoint for {target}: {reason}")


class InvocationError(SagaflowError):
    """A downstream call failed, timed out or returned a non-2xx status."""

    def __init__(
        self,
        service: str,
        operation: str,
        cause: str,
        status_code: Optional[int] = None,
    ) -> None:
        self.service = service
        self.operation = operation
        self.cause = cause
        self.status_code = status_code
        super().__init__(f"{service}.{operation} failed: {cause}")


class FaultRaised(SagaflowError):
    """An explicit ``throw`` activity terminated the run."""

    def __init__(self, fault_name: str, activity: Optional[str] = None) -> None:
        self.fault_name = fault_name
        self.activity = activity
        super().__init__(f"Fault: {fault_name}")


class NotFoundError(SagaflowError):
    """Unknown workflow name or run id."""

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} {key} not found")


class PredicateError(SagaflowError, ValueError):
    """A conditional expression could not be parsed."""


class BrokerUnavailableError(SagaflowError):
    """The broker connection could not be established within the retry budget."""
