"""
Pytest configuration and shared test fixtures.

This module provides the order engine fixtures shared by the test suites:
a fresh OrderService per test with its store, registry, state machine,
packing tracker and coordinator, factories for orders and delivery partners,
and a FastAPI test client wired to the same fresh service.
"""

from decimal import Decimal
from typing import Awaitable, Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient

from src.api.deps import get_service
from src.core.config import Settings
from src.main import app
from src.services.delivery.coordinator import AssignmentCoordinator
from src.services.delivery.models import DeliveryPartner
from src.services.delivery.registry import DeliveryPartnerRegistry
from src.services.orders.enums import OrderStatus
from src.services.orders.models import Customer, Order, OrderItem
from src.services.orders.packing import ItemPackingTracker
from src.services.orders.repository import OrderStore
from src.services.orders.service import OrderService
from src.services.orders.state_machine import OrderStateMachine

OrderFactory = Callable[..., Awaitable[Order]]
PartnerFactory = Callable[..., Awaitable[DeliveryPartner]]

# Seller actions that walk an order forward along the happy path
_FORWARD_STEPS = [
    (OrderStatus.ACCEPTED, "accept_order"),
    (OrderStatus.PREPARING, "start_preparing"),
    (OrderStatus.READY, "mark_ready"),
]


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings for the test environment.

    Returns:
        Settings: Test settings with a fixed delivery ETA
    """
    return Settings(environment="test", default_delivery_eta_minutes=45)


@pytest.fixture
def service(test_settings: Settings) -> OrderService:
    """
    Create a fresh order service with empty store and registry.

    Args:
        test_settings: Test settings

    Returns:
        OrderService: Service under test
    """
    return OrderService(settings=test_settings)


@pytest.fixture
def store(service: OrderService) -> OrderStore:
    return service.store


@pytest.fixture
def registry(service: OrderService) -> DeliveryPartnerRegistry:
    return service.registry


@pytest.fixture
def state_machine(service: OrderService) -> OrderStateMachine:
    return service.state_machine


@pytest.fixture
def tracker(service: OrderService) -> ItemPackingTracker:
    return service.packing


@pytest.fixture
def coordinator(service: OrderService) -> AssignmentCoordinator:
    return service.coordinator


def build_items(count: int = 3) -> list[OrderItem]:
    """Build ``count`` order items with ids item-1..item-N."""
    return [
        OrderItem(
            id=f"item-{index}",
            product_id=f"prod-{index}",
            name=f"Item {index}",
            quantity=index,
            unit="pcs",
            price=Decimal("10.00"),
            total_price=Decimal("10.00") * index,
        )
        for index in range(1, count + 1)
    ]


@pytest.fixture
def make_order(service: OrderService) -> OrderFactory:
    """
    Factory registering an order and optionally advancing it.

    The order is walked forward with the regular seller actions; a target of
    ``assigned`` or later also needs ``partner_id``.

    Args:
        service: Order service

    Returns:
        Async factory ``make_order(status=NEW, item_count=3, partner_id=None)``

    Example:
        async def test_ready(make_order):
            order = await make_order(OrderStatus.READY)
            assert order.status == OrderStatus.READY
    """

    async def factory(
        status: OrderStatus = OrderStatus.NEW,
        item_count: int = 3,
        partner_id: Optional[str] = None,
    ) -> Order:
        order = await service.register_order(
            customer=Customer(
                id="cust-1",
                name="Asha Rao",
                phone="+911234567890",
                address="12 Market Road",
            ),
            items=build_items(item_count),
            payment_amount=Decimal("60.00"),
        )

        for target, action in _FORWARD_STEPS:
            if status == OrderStatus.NEW:
                return order
            order = (await getattr(service, action)(order.id)).order
            if target == status:
                return order

        assert partner_id is not None, "partner_id is required past ready"
        assert await service.assign_delivery(order.id, partner_id)
        if status == OrderStatus.ASSIGNED:
            return await service.get_order(order.id)

        await service.mark_out_for_delivery(order.id)
        if status == OrderStatus.OUT_FOR_DELIVERY:
            return await service.get_order(order.id)

        return (await service.mark_delivered(order.id)).order

    return factory


@pytest.fixture
def make_partner(service: OrderService) -> PartnerFactory:
    """
    Factory registering delivery partners.

    Returns:
        Async factory ``make_partner(partner_id="partner-1", name=..., phone=...)``
    """

    async def factory(
        partner_id: str = "partner-1",
        name: str = "Ravi Kumar",
        phone_number: str = "+919876543210",
    ) -> DeliveryPartner:
        return await service.register_partner(
            name=name,
            phone_number=phone_number,
            partner_id=partner_id,
        )

    return factory


@pytest.fixture
def test_client(service: OrderService) -> Generator[TestClient, None, None]:
    """
    Create a synchronous test client bound to the fresh order service.

    Yields:
        TestClient: Synchronous test client for FastAPI app

    Example:
        def test_health_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    app.dependency_overrides[get_service] = lambda: service
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
