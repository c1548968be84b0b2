"""
Shared fixtures: fake charge / fulfillment services served through
httpx.MockTransport, plus ready-wired stores and engines.
"""
import asyncio
import json

import httpx
import pytest

from services.order_service.gateways import HttpChargeGateway, HttpFulfillmentGateway
from services.order_service.repository import InMemoryOrderRepository
from services.order_service.schemas import LineItem, Order, OrderStatus
from services.order_service.service import OrderService


class FakeChargeService:
    """Behaves like POST /charge: 201 on success, records every charge."""

    def __init__(self, status_code: int = 201, delay: float = 0.0):
        self.status_code = status_code
        self.delay = delay
        self.calls = []
        self.concurrent = 0
        self.max_concurrent = 0
        self.entered = asyncio.Event()
        self.release = None # set to an asyncio.Event to park calls until it's set

    async def handler(self, request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/charge"
        assert request.method == "POST"
        body = json.loads(request.content)
        assert body["amountCents"] > 0
        assert body["cardToken"]

        self.concurrent += 1
        self.max_concurrent = max(self.max_concurrent, self.concurrent)
        self.entered.set()
        try:
            if self.release is not None:
                await self.release.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.concurrent -= 1

        if self.status_code != 201:
            return httpx.Response(self.status_code, text="card declined")
        self.calls.append(body)
        return httpx.Response(201, json={"id": f"ch_{len(self.calls)}"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), base_url="http://charge.test")


class FakeFulfillmentService:
    """Behaves like PUT /fulfill and de-duplicates on (orderID, description)."""

    def __init__(self):
        self.calls = []
        self.shipped = set()
        self.failing = set() # descriptions that get a 500

    async def handler(self, request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/fulfill"
        assert request.method == "PUT"
        body = json.loads(request.content)
        assert body["description"]
        assert body["quantity"] > 0
        assert body["orderID"]

        self.calls.append(body)
        if body["description"] in self.failing:
            return httpx.Response(500, text="warehouse offline")
        self.shipped.add((body["orderID"], body["description"]))
        return httpx.Response(200)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), base_url="http://fulfill.test")


def make_order(order_id="test", status=OrderStatus.PENDING, items=None) -> Order:
    if items is None:
        items = [("item 1", 100, 1)]
    return Order(
        id=order_id,
        customer_email="test@test",
        line_items=[LineItem(description=d, unit_price_cents=p, quantity=q) for d, p, q in items],
        status=status,
    )


@pytest.fixture
def charge_service():
    return FakeChargeService()


@pytest.fixture
def fulfillment_service():
    return FakeFulfillmentService()


@pytest.fixture
def store():
    return InMemoryOrderRepository()


@pytest.fixture
def order_service(store, charge_service, fulfillment_service):
    return OrderService(
        store,
        HttpChargeGateway(charge_service.client()),
        HttpFulfillmentGateway(fulfillment_service.client()),
    )
