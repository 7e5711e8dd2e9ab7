"""
Test suite for the OrderService facade.

Covers intake, the seller actions end to end, status-group queries and the
boolean delivery assignment contract.
"""

import re
from decimal import Decimal
from unittest.mock import patch

import pytest

from src.services.orders.enums import (
    OrderAction,
    OrderStatus,
    PaymentStatus,
    TimelineActor,
)
from src.services.orders.exceptions import (
    IllegalTransitionError,
    InvalidReasonError,
    OrderNotFoundError,
    OrderTerminalError,
    OrderUpdateError,
)
from src.services.orders.models import Customer, OrderItem
from src.services.orders.service import (
    OrderService,
    get_order_service,
    reset_order_service,
)


# ============================================================================
# Intake
# ============================================================================


class TestRegisterOrder:
    """Test order intake."""

    @pytest.mark.asyncio
    async def test_register_order_defaults(self, service: OrderService):
        order = await service.register_order(
            customer=Customer(name="Asha", phone="123", address="Road 1"),
            items=[
                OrderItem(
                    id="a",
                    name="Rice",
                    quantity=2,
                    unit="kg",
                    total_price=Decimal("80"),
                    is_packed=True,
                )
            ],
            payment_amount=Decimal("80"),
            payment_status=PaymentStatus.RECEIVED,
            notes="Ring twice",
        )

        assert order.status == OrderStatus.NEW
        assert re.fullmatch(r"ORD-\d{14}-[0-9A-F]{6}", order.order_id)
        assert order.items[0].is_packed is False
        assert order.payment_status == PaymentStatus.RECEIVED
        assert order.notes == "Ring twice"
        assert order.delivery_assignment is None
        assert len(order.status_history) == 1
        assert order.status_history[0].actor == TimelineActor.SYSTEM
        assert order.status_history[0].status == OrderStatus.NEW

    @pytest.mark.asyncio
    async def test_register_order_with_order_number(self, service: OrderService):
        customer = Customer(name="Asha", phone="123", address="Road 1")
        order = await service.register_order(
            customer=customer,
            items=[],
            payment_amount=Decimal("0"),
            order_id="ORD-1001",
        )

        assert (await service.get_order("ORD-1001")).id == order.id

        with pytest.raises(OrderUpdateError):
            await service.register_order(
                customer=customer,
                items=[],
                payment_amount=Decimal("0"),
                order_id="ORD-1001",
            )


# ============================================================================
# Seller Actions
# ============================================================================


class TestSellerActions:
    """Test seller lifecycle actions through the facade."""

    @pytest.mark.asyncio
    async def test_happy_path_to_delivered(self, service, make_order, make_partner):
        partner = await make_partner()
        order = await make_order()

        await service.accept_order(order.id)
        await service.start_preparing(order.id)
        ready = await service.mark_ready(order.id)
        assert ready.packing.packed_count == 0
        assert ready.packing.total == 3

        assert await service.assign_delivery(
            order.id, partner.id, partner.name, partner.phone_number
        )
        out = await service.mark_out_for_delivery(order.id)
        assert out.order.status_history[-1].actor == TimelineActor.DELIVERY
        delivered = await service.mark_delivered(order.id)

        assert delivered.order.status == OrderStatus.DELIVERED
        assert delivered.order.delivery_assignment.delivery_boy_id == partner.id
        assert [e.status for e in delivered.order.status_history] == [
            OrderStatus.NEW,
            OrderStatus.ACCEPTED,
            OrderStatus.PREPARING,
            OrderStatus.READY,
            OrderStatus.ASSIGNED,
            OrderStatus.OUT_FOR_DELIVERY,
            OrderStatus.DELIVERED,
        ]

        freed = await service.registry.get(partner.id)
        assert freed.is_available is True
        assert freed.active_order_id is None

    @pytest.mark.asyncio
    async def test_decline_with_empty_reason(self, service, make_order):
        order = await make_order()

        with pytest.raises(InvalidReasonError):
            await service.decline_order(order.id, "")

        assert (await service.get_order(order.id)).status == OrderStatus.NEW

    @pytest.mark.asyncio
    async def test_decline_with_reason(self, service, make_order):
        order = await make_order()

        result = await service.decline_order(order.id, "out of stock")

        assert result.order.status == OrderStatus.DECLINED
        assert result.order.status_history[-1].note == "out of stock"
        assert result.order.cancellation_reason == "out of stock"

    @pytest.mark.asyncio
    async def test_cancel_ready_order(self, service, make_order):
        order = await make_order(OrderStatus.READY)

        result = await service.cancel_order(order.id, "shop closing")

        assert result.order.status == OrderStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cannot_cancel_assigned_order(self, service, make_order, make_partner):
        partner = await make_partner()
        order = await make_order(OrderStatus.ASSIGNED, partner_id=partner.id)

        with pytest.raises(IllegalTransitionError):
            await service.cancel_order(order.id, "too late")

    @pytest.mark.asyncio
    async def test_delivered_order_is_terminal(self, service, make_order, make_partner):
        partner = await make_partner()
        order = await make_order(OrderStatus.DELIVERED, partner_id=partner.id)

        with pytest.raises(OrderTerminalError):
            await service.accept_order(order.id)
        with pytest.raises(OrderTerminalError):
            await service.cancel_order(order.id, "changed mind")

        assert await service.get_available_actions_for_order(order.id) == [
            OrderAction.TRACK
        ]

    @pytest.mark.asyncio
    async def test_mark_ready_after_packing_everything(self, service, make_order):
        order = await make_order(OrderStatus.PREPARING)
        for item in order.items:
            await service.update_item_packed_status(order.id, item.id, True)

        result = await service.mark_ready(order.id)

        assert result.packing.all_packed is True

    @pytest.mark.asyncio
    async def test_unknown_order(self, service):
        with pytest.raises(OrderNotFoundError):
            await service.accept_order("nope")


# ============================================================================
# Delivery Assignment
# ============================================================================


class TestAssignDelivery:
    """Test the boolean assignment contract."""

    @pytest.mark.asyncio
    async def test_assign_success(self, service, make_order, make_partner):
        partner = await make_partner()
        order = await make_order(OrderStatus.READY)

        assert await service.assign_delivery(order.id, partner.id) is True

        assigned = await service.get_order(order.id)
        assert assigned.status == OrderStatus.ASSIGNED
        assert assigned.delivery_assignment.delivery_boy_name == partner.name
        reserved = await service.registry.get(partner.id)
        assert reserved.active_order_id == order.id

    @pytest.mark.asyncio
    async def test_assign_not_ready_returns_false(self, service, make_order, make_partner):
        partner = await make_partner()
        order = await make_order(OrderStatus.PREPARING)

        assert await service.assign_delivery(order.id, partner.id) is False
        assert (await service.registry.get(partner.id)).is_available is True

    @pytest.mark.asyncio
    async def test_assign_unknown_partner_returns_false(self, service, make_order):
        order = await make_order(OrderStatus.READY)

        assert await service.assign_delivery(order.id, "ghost") is False
        assert (await service.get_order(order.id)).status == OrderStatus.READY

    @pytest.mark.asyncio
    async def test_assign_busy_partner_returns_false(
        self, service, make_order, make_partner
    ):
        partner = await make_partner()
        first = await make_order(OrderStatus.READY)
        second = await make_order(OrderStatus.READY)

        assert await service.assign_delivery(first.id, partner.id) is True
        assert await service.assign_delivery(second.id, partner.id) is False
        assert (await service.get_order(second.id)).status == OrderStatus.READY

    @pytest.mark.asyncio
    async def test_registry_snapshot_wins_over_caller_details(
        self, service, make_order, make_partner
    ):
        partner = await make_partner()
        order = await make_order(OrderStatus.READY)

        with patch("src.services.orders.service.logger") as mock_logger:
            assert await service.assign_delivery(
                order.id, partner.id, "Someone Else", "000"
            )

        assigned = await service.get_order(order.id)
        assert assigned.delivery_assignment.delivery_boy_name == partner.name
        assert assigned.delivery_assignment.delivery_boy_phone == partner.phone_number
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_default_eta_uses_settings(self, service, make_order, make_partner):
        partner = await make_partner()
        order = await make_order(OrderStatus.READY)

        await service.assign_delivery(order.id, partner.id)

        assignment = (await service.get_order(order.id)).delivery_assignment
        eta = assignment.estimated_delivery_time - assignment.assigned_at
        assert eta.total_seconds() == 45 * 60


# ============================================================================
# Queries
# ============================================================================


class TestOrderQueries:
    """Test status group queries and action lookups."""

    @pytest.mark.asyncio
    async def test_status_groups(self, service, make_order, make_partner):
        partner = await make_partner()
        new = await make_order()
        ready = await make_order(OrderStatus.READY)
        assigned = await make_order(OrderStatus.ASSIGNED, partner_id=partner.id)
        declined = await make_order()
        await service.decline_order(declined.id, "closed")

        pending = {o.id for o in await service.get_pending_orders()}
        active = {o.id for o in await service.get_active_orders()}
        completed = {o.id for o in await service.get_completed_orders()}

        assert pending == {new.id, ready.id}
        assert active == {assigned.id}
        assert completed == {declined.id}

    @pytest.mark.asyncio
    async def test_list_orders_by_status(self, service, make_order):
        await make_order()
        accepted = await make_order(OrderStatus.ACCEPTED)

        orders = await service.list_orders([OrderStatus.ACCEPTED])

        assert [o.id for o in orders] == [accepted.id]
        assert len(await service.list_orders()) == 2

    @pytest.mark.asyncio
    async def test_available_actions(self, service, make_order):
        order = await make_order(OrderStatus.PREPARING)

        assert await service.get_available_actions_for_order(order.id) == [
            OrderAction.MARK_READY,
            OrderAction.CANCEL,
        ]

    @pytest.mark.asyncio
    async def test_can_transition_to(self, service, make_order):
        order = await make_order()

        assert await service.can_transition_to(order.id, OrderStatus.ACCEPTED) is True
        assert await service.can_transition_to(order.id, OrderStatus.READY) is False
        assert await service.can_transition_to("nope", OrderStatus.ACCEPTED) is False


# ============================================================================
# Singleton
# ============================================================================


class TestOrderServiceSingleton:
    """Test the process-wide service accessor."""

    def test_get_order_service_returns_same_instance(self):
        reset_order_service()
        try:
            assert get_order_service() is get_order_service()
        finally:
            reset_order_service()

    def test_reset_creates_fresh_instance(self):
        first = get_order_service()
        reset_order_service()

        assert get_order_service() is not first
        reset_order_service()
