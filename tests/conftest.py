"""Shared fixtures: scripted collaborator services behind an httpx mock transport."""

import json

import httpx
import pytest

import sagaflow.persistence as persistence
from sagaflow.auth import ServiceTokenIssuer, TokenConfig
from sagaflow.constants import (
    CATALOG_SERVICE,
    ORDERS_SERVICE,
    PAYMENTS_SERVICE,
    SHIPPING_SERVICE,
)
from sagaflow.invoker import ServiceInvoker
from sagaflow.registry import StaticServiceRegistry

TEST_SECRET = "sagaflow-test-secret-0123456789abcdef"

SERVICE_ENDPOINTS = {
    ORDERS_SERVICE: {"REST": "http://orders.local"},
    PAYMENTS_SERVICE: {"REST": "http://payments.local"},
    SHIPPING_SERVICE: {"REST": "http://shipping.local"},
    CATALOG_SERVICE: {"REST": "http://catalog.local/api/products"},
}


class FakeServices:
    """Records every request and answers like the order, payment, shipping and catalog services."""

    def __init__(self):
        self.requests = []
        self.failures = {}
        self.timeouts = set()
        self.payment_status = "completed"
        self.shipping_status = "completed"
        self.records = {}

    def fail(self, path, status_code=500):
        self.failures[path] = status_code

    def paths(self):
        return [request.url.path for request in self.requests]

    def body(self, path):
        for request in self.requests:
            if request.url.path == path:
                return json.loads(request.content)
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        path = request.url.path
        if path in self.timeouts:
            raise httpx.ReadTimeout("timed out", request=request)
        if path in self.failures:
            return httpx.Response(self.failures[path], json={"error": "unavailable"})
        if request.method == "GET":
            if path in self.records:
                return httpx.Response(200, json=self.records[path])
            return httpx.Response(404, json={"error": "not found"})
        if path == "/orders":
            return httpx.Response(201, json={"id": json.loads(request.content)["id"]})
        if path == "/payments":
            return httpx.Response(
                200, json={"paymentId": "PAY-1", "status": self.payment_status}
            )
        if path == "/shipping":
            return httpx.Response(
                200, json={"shippingId": "SHIP-1", "status": self.shipping_status}
            )
        if path.endswith("/stock"):
            return httpx.Response(200, json={"updated": True})
        return httpx.Response(404)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("SAGAFLOW_CONFIG", str(tmp_path / "absent.yaml"))
    for var in (
        "SAGAFLOW_TRANSPORT",
        "SAGAFLOW_DATABASE_URL",
        "DATABASE_URL",
        "SAGAFLOW_RABBITMQ_URL",
        "SAGAFLOW_REGISTRY_URL",
        "JWT_SECRET",
    ):
        monkeypatch.delenv(var, raising=False)
    persistence._repository_instance = None
    yield
    persistence._repository_instance = None


@pytest.fixture
def services():
    return FakeServices()


@pytest.fixture
def registry():
    return StaticServiceRegistry(SERVICE_ENDPOINTS)


@pytest.fixture
def tokens():
    return ServiceTokenIssuer(TokenConfig(secret=TEST_SECRET))


@pytest.fixture
def invoker(services, registry, tokens):
    client = httpx.AsyncClient(transport=httpx.MockTransport(services.handler))
    return ServiceInvoker(registry, tokens, timeout=1.0, client=client)


@pytest.fixture
def order():
    return {
        "id": "ORDER-001",
        "customerName": "Jane Doe",
        "item": "Laptop",
        "productId": "LAPTOP-001",
        "quantity": 2,
        "shippingAddress": {"street": "1 Main St", "city": "Springfield", "zipCode": "12345"},
    }
