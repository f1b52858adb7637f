"""Tests for authenticated outbound service calls."""

import httpx
import pytest

from sagaflow.errors import DiscoveryError, InvocationError
from sagaflow.invoker import ServiceInvoker


@pytest.mark.asyncio
async def test_process_payment_posts_amount_with_bearer_token(invoker, services, tokens, order):
    result = await invoker.call("payments-service", "processPayment", order)

    assert services.paths() == ["/payments"]
    assert services.body("/payments") == {
        "orderId": "ORDER-001",
        "amount": 200,
        "customerName": "Jane Doe",
    }
    auth = services.requests[0].headers["authorization"]
    assert auth.startswith("Bearer ")
    claims = tokens.verify(auth.split(" ", 1)[1])
    assert claims["type"] == "service"
    assert claims["sub"] == "orchestrator-service"

    assert result["status"] == "completed"
    assert result["paymentId"] == "PAY-1"
    assert result["amount"] == 200


@pytest.mark.asyncio
async def test_update_stock_puts_quantity_to_product_path(invoker, services, order):
    result = await invoker.call("catalog-service", "updateStock", order)

    request = services.requests[0]
    assert request.method == "PUT"
    assert request.url.path == "/api/products/LAPTOP-001/stock"
    assert services.body("/api/products/LAPTOP-001/stock") == {"quantity": 2}
    assert result["status"] == "updated"


@pytest.mark.asyncio
async def test_shipping_request_carries_address(invoker, services, order):
    await invoker.call("shipping-service", "processShipping", order)
    address = services.body("/shipping")["shippingAddress"]
    assert address == {"street": "1 Main St", "city": "Springfield", "zipCode": "12345"}


@pytest.mark.asyncio
async def test_record_lookups_get_by_order_id(invoker, services):
    services.records["/payments/ORDER-001"] = {"orderId": "ORDER-001", "status": "completed"}

    payment = await invoker.call("payments-service", "getPayment", {"orderId": "ORDER-001"})
    assert payment == {"orderId": "ORDER-001", "status": "completed"}
    request = services.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/payments/ORDER-001"
    assert request.content == b""

    with pytest.raises(InvocationError) as exc_info:
        await invoker.call("orders-service", "getOrder", {"orderId": "ORDER-001"})
    assert exc_info.value.status_code == 404
    assert services.paths()[-1] == "/orders/ORDER-001"


@pytest.mark.asyncio
async def test_payment_status_is_reported_from_response(invoker, services, order):
    services.payment_status = "failed"
    result = await invoker.call("payments-service", "processPayment", order)
    assert result["status"] == "failed"


@pytest.mark.asyncio
async def test_non_2xx_maps_to_invocation_error(invoker, services, order):
    services.fail("/orders", 503)
    with pytest.raises(InvocationError) as exc_info:
        await invoker.call("orders-service", "createOrder", order)
    assert exc_info.value.status_code == 503
    assert exc_info.value.service == "orders-service"
    assert "HTTP 503" in str(exc_info.value)


@pytest.mark.asyncio
async def test_timeout_maps_to_invocation_error(invoker, services, order):
    services.timeouts.add("/payments")
    with pytest.raises(InvocationError) as exc_info:
        await invoker.call("payments-service", "processPayment", order)
    assert "timed out" in exc_info.value.cause
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_unknown_service_raises_discovery_error(invoker, services, order):
    with pytest.raises(DiscoveryError):
        await invoker.call("billing-service", "charge", order)
    assert services.requests == []


@pytest.mark.asyncio
async def test_unmapped_operation_posts_payload_to_endpoint(registry, tokens):
    seen = []

    def handler(request):
        seen.append((request.method, request.url.host))
        return httpx.Response(204)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    invoker = ServiceInvoker(registry, tokens, client=client)
    result = await invoker.call("orders-service", "cancelOrder", {"id": "ORDER-001"})

    assert seen == [("POST", "orders.local")]
    assert result == {}
