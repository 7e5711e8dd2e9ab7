"""
Order store with per-order serialized, all-or-nothing mutations.

This module implements the OrderStore class that owns Order records and their
status history. Mutations are callables produced by the state machine,
packing tracker and assignment coordinator; the store applies them to a
private copy under a per-order asyncio lock, checks the order invariants on
the result and only then replaces the stored record. Callers only ever see
deep copies.
"""

import asyncio
from typing import Callable, Iterable, Optional

from src.core.logging import get_logger
from src.services.orders.enums import (
    OrderStatus,
    validate_order_status_transition,
)
from src.services.orders.exceptions import OrderNotFoundError, OrderUpdateError
from src.services.orders.models import Order, utc_now

logger = get_logger(__name__)

OrderMutation = Callable[[Order], Order]


class OrderStore:
    """
    In-process store for seller orders.

    Orders can be addressed by their opaque ``id`` or their human-readable
    ``order_id``. Mutations on the same order are serialized; mutations on
    different orders only contend for the event loop.
    """

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._ids_by_number: dict[str, str] = {}
        self._locks: dict[str, asyncio.Lock] = {}

        logger.info("Order store initialized")

    def _resolve(self, reference: str) -> str:
        """
        Resolve an id or order number to the internal record key.

        Raises:
            OrderNotFoundError: If neither an id nor an order number matches
        """
        if reference in self._orders:
            return reference
        key = self._ids_by_number.get(reference)
        if key is None:
            raise OrderNotFoundError(reference)
        return key

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def add(self, order: Order) -> Order:
        """
        Add a newly received order.

        Args:
            order: Order in status ``new`` with its initial history entry

        Returns:
            Snapshot of the stored order

        Raises:
            OrderUpdateError: If the id or order number is already taken or
                the order violates an invariant
        """
        if order.id in self._orders or order.order_id in self._ids_by_number:
            logger.warning(
                "Duplicate order rejected",
                order_id=order.id,
                order_number=order.order_id,
            )
            raise OrderUpdateError(
                f"Order {order.order_id} already exists",
                code="DUPLICATE_ORDER",
                order_id=order.id,
                order_number=order.order_id,
            )

        self._check_invariants(order)

        stored = order.model_copy(deep=True)
        self._orders[stored.id] = stored
        self._ids_by_number[stored.order_id] = stored.id

        logger.info(
            "Order added",
            order_id=stored.id,
            order_number=stored.order_id,
            status=stored.status.value,
            item_count=len(stored.items),
        )
        return stored.model_copy(deep=True)

    async def get(self, reference: str) -> Order:
        """
        Get a snapshot of an order.

        Args:
            reference: Order id or human-readable order number

        Returns:
            Deep copy of the stored order

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        return self._orders[self._resolve(reference)].model_copy(deep=True)

    async def list_orders(
        self,
        statuses: Optional[Iterable[OrderStatus]] = None,
    ) -> list[Order]:
        """
        List order snapshots, newest first.

        Args:
            statuses: Optional statuses to filter by

        Returns:
            Deep copies of matching orders
        """
        wanted = set(statuses) if statuses is not None else None
        orders = [
            order.model_copy(deep=True)
            for order in self._orders.values()
            if wanted is None or order.status in wanted
        ]
        orders.sort(key=lambda order: order.created_at, reverse=True)
        return orders

    def count(self) -> int:
        """Number of orders held by the store."""
        return len(self._orders)

    async def apply(self, reference: str, mutation: OrderMutation) -> Order:
        """
        Apply a mutation atomically.

        The mutation receives a private copy of the current record, taken
        while holding the order's lock, and returns the updated order. If the
        mutation raises or its result breaks an invariant, the stored record
        is left untouched. A mutation that changes nothing leaves the record,
        including ``updated_at``, as it was.

        Args:
            reference: Order id or human-readable order number
            mutation: Callable producing the updated order

        Returns:
            Snapshot of the updated order

        Raises:
            OrderNotFoundError: If the order does not exist
            OrderUpdateError: If the result violates an order invariant
            OrderEngineError: Whatever the mutation itself raises
        """
        key = self._resolve(reference)

        async with self._lock_for(key):
            current = self._orders[key]
            working = current.model_copy(deep=True)

            updated = mutation(working)
            self._check_invariants(updated, previous=current)

            if updated == current:
                logger.debug("Order mutation was a no-op", order_id=key)
                return current.model_copy(deep=True)

            updated.updated_at = utc_now()
            self._orders[key] = updated

            logger.debug(
                "Order mutation applied",
                order_id=key,
                status=updated.status.value,
                history_length=len(updated.status_history),
            )
            return updated.model_copy(deep=True)

    def _check_invariants(
        self,
        order: Order,
        previous: Optional[Order] = None,
    ) -> None:
        """
        Verify order invariants, optionally against the previous record.

        Raises:
            OrderUpdateError: If any invariant is violated
        """
        has_assignment = order.delivery_assignment is not None
        if has_assignment != order.status.has_delivery_assignment():
            raise self._violation(
                order,
                "Delivery assignment does not match order status",
                has_assignment=has_assignment,
            )

        if previous is None:
            return

        if (order.id, order.order_id) != (previous.id, previous.order_id):
            raise self._violation(order, "Order identifiers are immutable")

        if order.status != previous.status and not validate_order_status_transition(
            previous.status, order.status
        ):
            raise self._violation(
                order,
                "Status change is not a legal transition",
                from_status=previous.status.value,
            )

        history_before = previous.status_history
        if order.status_history[: len(history_before)] != history_before:
            raise self._violation(order, "Status history is append-only")

        if [item.id for item in order.items] != [item.id for item in previous.items]:
            raise self._violation(order, "Order items cannot be added or removed")

        packing_changed = any(
            new.is_packed != old.is_packed
            for new, old in zip(order.items, previous.items)
        )
        if packing_changed and not previous.status.allows_packing():
            raise self._violation(
                order,
                "Packing can only change while accepted or preparing",
                from_status=previous.status.value,
            )

    @staticmethod
    def _violation(order: Order, message: str, **context) -> OrderUpdateError:
        logger.error(
            "Order invariant violated",
            order_id=order.id,
            status=order.status.value,
            reason=message,
            **context,
        )
        return OrderUpdateError(
            message,
            order_id=order.id,
            status=order.status.value,
            **context,
        )
