"""
Test suite for ItemPackingTracker.
"""

import pytest

from src.services.orders.enums import OrderStatus
from src.services.orders.exceptions import InvalidStateError, ItemNotFoundError
from src.services.orders.models import Customer, Order


class TestSetPacked:
    """Test packing flag updates."""

    @pytest.mark.asyncio
    async def test_pack_item_while_preparing(self, tracker, make_order):
        order = await make_order(OrderStatus.PREPARING)

        result = await tracker.set_packed(order.id, "item-2", True)

        assert result.order.find_item("item-2").is_packed is True
        assert result.progress.packed_count == 1
        assert result.progress.total == 3
        assert result.progress.all_packed is False

    @pytest.mark.asyncio
    async def test_pack_item_while_accepted(self, tracker, make_order):
        order = await make_order(OrderStatus.ACCEPTED)

        result = await tracker.set_packed(order.order_id, "item-1", True)

        assert result.progress.packed_count == 1

    @pytest.mark.asyncio
    async def test_setting_same_flag_twice_is_idempotent(self, tracker, store, make_order):
        order = await make_order(OrderStatus.PREPARING)

        first = await tracker.set_packed(order.id, "item-1", True)
        second = await tracker.set_packed(order.id, "item-1", True)

        assert first.progress == second.progress
        assert first.order == second.order
        assert await store.get(order.id) == first.order

    @pytest.mark.asyncio
    async def test_updates_on_different_items_commute(self, tracker, make_order):
        first = await make_order(OrderStatus.PREPARING)
        second = await make_order(OrderStatus.PREPARING)

        await tracker.set_packed(first.id, "item-1", True)
        a = await tracker.set_packed(first.id, "item-3", True)
        await tracker.set_packed(second.id, "item-3", True)
        b = await tracker.set_packed(second.id, "item-1", True)

        assert [i.is_packed for i in a.order.items] == [
            i.is_packed for i in b.order.items
        ]

    @pytest.mark.asyncio
    async def test_unpack_item(self, tracker, make_order):
        order = await make_order(OrderStatus.PREPARING)
        await tracker.set_packed(order.id, "item-1", True)

        result = await tracker.set_packed(order.id, "item-1", False)

        assert result.progress.packed_count == 0

    @pytest.mark.asyncio
    async def test_all_items_packed(self, tracker, make_order):
        order = await make_order(OrderStatus.PREPARING)

        for item in order.items:
            result = await tracker.set_packed(order.id, item.id, True)

        assert result.progress.all_packed is True


class TestSetPackedRejected:
    """Test packing rejections."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [OrderStatus.NEW, OrderStatus.READY])
    async def test_packing_outside_packing_statuses(
        self, tracker, store, make_order, status
    ):
        order = await make_order(status)

        with pytest.raises(InvalidStateError) as exc_info:
            await tracker.set_packed(order.id, "item-1", True)

        assert exc_info.value.context["status"] == status.value
        stored = await store.get(order.id)
        assert stored.find_item("item-1").is_packed is False

    @pytest.mark.asyncio
    async def test_unknown_item(self, tracker, make_order):
        order = await make_order(OrderStatus.PREPARING)

        with pytest.raises(ItemNotFoundError) as exc_info:
            await tracker.set_packed(order.id, "item-99", True)

        assert exc_info.value.context == {"order_id": order.id, "item_id": "item-99"}

    def test_packing_progress_for_empty_snapshot(self, tracker):
        order = Order(
            id="o-1",
            order_id="ORD-1",
            customer=Customer(name="A", phone="1", address="x"),
        )

        progress = tracker.packing_progress(order)

        assert progress.packed_count == 0
        assert progress.total == 0
        assert progress.all_packed is True
