"""Authenticated outbound calls to collaborating services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import httpx

from .auth import ServiceTokenIssuer
from .constants import (
    CATALOG_SERVICE,
    DEFAULT_INVOKE_TIMEOUT,
    ORDERS_SERVICE,
    PAYMENTS_SERVICE,
    SHIPPING_SERVICE,
)
from .errors import InvocationError
from .registry import ServiceRegistry
from .saga import steps

logger = logging.getLogger(__name__)

Payload = Mapping[str, Any]


@dataclass(frozen=True)
class OperationSpec:
    """How one ``service.operation`` maps onto an HTTP request and result."""

    method: str
    url: Callable[[str, Payload], str]
    body: Callable[[Payload], Any]
    result: Callable[[Payload, Any], Any]


def _status_of(response: Any) -> str:
    if isinstance(response, dict) and response.get("status"):
        return response["status"]
    return steps.COMPLETED


def _order_result(data: Payload, response: Any) -> Dict[str, Any]:
    return {
        "orderId": data.get("id"),
        "status": "created",
        "message": "Order created successfully",
        "response": response,
    }


def _payment_result(data: Payload, response: Any) -> Dict[str, Any]:
    request = steps.payment_request(data)
    return {
        "orderId": data.get("id"),
        "status": _status_of(response),
        "paymentId": response.get("paymentId") if isinstance(response, dict) else None,
        "amount": request["amount"],
        "response": response,
    }


def _shipping_result(data: Payload, response: Any) -> Dict[str, Any]:
    return {
        "orderId": data.get("id"),
        "status": _status_of(response),
        "shippingId": response.get("shippingId") if isinstance(response, dict) else None,
        "response": response,
    }


def _stock_result(data: Payload, response: Any) -> Dict[str, Any]:
    return {
        "productId": steps.product_id_of(data),
        "quantity": data.get("quantity"),
        "status": "updated",
        "message": "Stock updated successfully",
        "response": response,
    }


OPERATIONS: Dict[Tuple[str, str], OperationSpec] = {
    (ORDERS_SERVICE, "createOrder"): OperationSpec(
        method="POST",
        url=lambda endpoint, data: f"{endpoint}/orders",
        body=dict,
        result=_order_result,
    ),
    (PAYMENTS_SERVICE, "processPayment"): OperationSpec(
        method="POST",
        url=lambda endpoint, data: f"{endpoint}/payments",
        body=steps.payment_request,
        result=_payment_result,
    ),
    (SHIPPING_SERVICE, "processShipping"): OperationSpec(
        method="POST",
        url=lambda endpoint, data: f"{endpoint}/shipping",
        body=steps.shipping_request,
        result=_shipping_result,
    ),
    (CATALOG_SERVICE, "updateStock"): OperationSpec(
        method="PUT",
        url=lambda endpoint, data: f"{endpoint}/{steps.product_id_of(data)}/stock",
        body=lambda data: {"quantity": data.get("quantity")},
        result=_stock_result,
    ),
    (ORDERS_SERVICE, "getOrder"): OperationSpec(
        method="GET",
        url=lambda endpoint, data: f"{endpoint}/orders/{data.get('orderId')}",
        body=lambda data: None,
        result=lambda data, response: response,
    ),
    (PAYMENTS_SERVICE, "getPayment"): OperationSpec(
        method="GET",
        url=lambda endpoint, data: f"{endpoint}/payments/{data.get('orderId')}",
        body=lambda data: None,
        result=lambda data, response: response,
    ),
    (SHIPPING_SERVICE, "getShipping"): OperationSpec(
        method="GET",
        url=lambda endpoint, data: f"{endpoint}/shipping/{data.get('orderId')}",
        body=lambda data: None,
        result=lambda data, response: response,
    ),
}

DEFAULT_OPERATION = OperationSpec(
    method="POST",
    url=lambda endpoint, data: endpoint,
    body=dict,
    result=lambda data, response: response,
)


class ServiceInvoker:
    """Resolve, authenticate and call a named collaborator.

    Every call is a single attempt. Discovery failures surface as
    :class:`~sagaflow.errors.DiscoveryError`; transport errors, timeouts and
    non-2xx responses surface as :class:`~sagaflow.errors.InvocationError`.
    """

    def __init__(
        self,
        registry: ServiceRegistry,
        tokens: ServiceTokenIssuer,
        timeout: float = DEFAULT_INVOKE_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        interface_type: str = "REST",
    ) -> None:
        self._registry = registry
        self._tokens = tokens
        self.timeout = timeout
        self._client = client
        self.interface_type = interface_type

    async def call(self, service_name: str, operation: str, payload: Payload) -> Any:
        endpoint = await self._registry.resolve_endpoint(
            service_name, self.interface_type, operation
        )
        spec = OPERATIONS.get((service_name, operation), DEFAULT_OPERATION)
        url = spec.url(endpoint, payload)
        headers = {
            "Authorization": f"Bearer {self._tokens.issue_service_token()}",
            "Content-Type": "application/json",
        }
        logger.info(f"Invoking {service_name}.{operation}: {spec.method} {url}")

        try:
            response = await self._send(spec.method, url, spec.body(payload), headers)
        except httpx.TimeoutException as e:
            raise InvocationError(
                service_name, operation, f"timed out after {self.timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise InvocationError(service_name, operation, str(e) or type(e).__name__) from e

        if response.is_error:
            raise InvocationError(
                service_name,
                operation,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        data = self._decode(response)
        logger.debug(f"{service_name}.{operation} responded: {data}")
        return spec.result(payload, data)

    async def _send(
        self, method: str, url: str, body: Any, headers: Dict[str, str]
    ) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(
                method, url, json=body, headers=headers, timeout=self.timeout
            )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, json=body, headers=headers)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"body": response.text}
