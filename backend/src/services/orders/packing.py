"""
Item packing tracker for orders being prepared.

Packing flags may only change while an order is accepted or preparing.
Updates are idempotent and commute; the packed/total count they produce is
what the ready transition reports back to the seller.
"""

from dataclasses import dataclass

from src.core.logging import get_logger
from src.services.orders.exceptions import InvalidStateError, ItemNotFoundError
from src.services.orders.models import Order, PackingProgress
from src.services.orders.repository import OrderMutation, OrderStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class PackingResult:
    """Updated order together with its packing progress."""

    order: Order
    progress: PackingProgress


class ItemPackingTracker:
    """Per-order packing checklist backed by the order store."""

    def __init__(self, store: OrderStore):
        self.store = store

    @staticmethod
    def packing_progress(order: Order) -> PackingProgress:
        """Packed and total item counts for an order snapshot."""
        return PackingProgress.for_order(order)

    def build_mutation(self, item_id: str, packed: bool) -> OrderMutation:
        """
        Build the store mutation setting one item's packing flag.

        Args:
            item_id: Item to update
            packed: New packing flag

        Returns:
            Callable applying the change to an order copy
        """

        def mutation(order: Order) -> Order:
            if not order.status.allows_packing():
                logger.warning(
                    "Packing rejected for order status",
                    order_id=order.id,
                    status=order.status.value,
                    item_id=item_id,
                )
                raise InvalidStateError(
                    f"Items cannot be packed while order is {order.status.value}",
                    order_id=order.id,
                    status=order.status.value,
                    item_id=item_id,
                )

            item = order.find_item(item_id)
            if item is None:
                logger.warning(
                    "Packing rejected for unknown item",
                    order_id=order.id,
                    item_id=item_id,
                )
                raise ItemNotFoundError(order.id, item_id)

            item.is_packed = packed
            return order

        return mutation

    async def set_packed(
        self,
        order_id: str,
        item_id: str,
        packed: bool,
    ) -> PackingResult:
        """
        Mark an item packed or unpacked.

        Args:
            order_id: Order id or order number
            item_id: Item belonging to the order
            packed: New packing flag

        Returns:
            PackingResult with the updated order and its progress

        Raises:
            OrderNotFoundError: If the order does not exist
            InvalidStateError: If the order is not accepted or preparing
            ItemNotFoundError: If the item is not part of the order
        """
        order = await self.store.apply(order_id, self.build_mutation(item_id, packed))
        progress = self.packing_progress(order)

        logger.info(
            "Item packing updated",
            order_id=order.id,
            item_id=item_id,
            is_packed=packed,
            packed_count=progress.packed_count,
            total=progress.total,
        )

        return PackingResult(order=order, progress=progress)
