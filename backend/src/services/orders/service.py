"""
Order service exposing the seller order operations.

This module implements the OrderService facade used by the API layer and
other in-process callers. Each seller action is a thin wrapper over the state
machine, the packing tracker or the assignment coordinator; the service also
owns order and partner intake and the read-side queries the seller screens
need (status groups, available actions).
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from src.core.config import Settings, get_settings
from src.core.logging import get_logger
from src.services.delivery.coordinator import AssignmentCoordinator
from src.services.delivery.models import DeliveryPartner
from src.services.delivery.registry import DeliveryPartnerRegistry
from src.services.orders.enums import (
    ACTIVE_STATUSES,
    COMPLETED_STATUSES,
    PENDING_STATUSES,
    OrderAction,
    OrderStatus,
    PaymentStatus,
    TimelineActor,
)
from src.services.orders.exceptions import NotFoundError, OrderEngineError
from src.services.orders.models import (
    Customer,
    Order,
    OrderItem,
    StatusHistoryEntry,
    TransitionResult,
    utc_now,
)
from src.services.orders.packing import ItemPackingTracker, PackingResult
from src.services.orders.repository import OrderStore
from src.services.orders.state_machine import OrderStateMachine

logger = get_logger(__name__)


class OrderService:
    """
    Order service orchestrating the order engine components.

    Attributes:
        store: Order store
        registry: Delivery partner registry
        state_machine: State machine for order lifecycle management
        packing: Item packing tracker
        coordinator: Delivery assignment coordinator
    """

    def __init__(
        self,
        store: Optional[OrderStore] = None,
        registry: Optional[DeliveryPartnerRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize order service.

        Args:
            store: Optional order store, a fresh one is created if omitted
            registry: Optional partner registry, a fresh one is created if omitted
            settings: Optional settings, defaults to the application settings
        """
        self.settings = settings or get_settings()
        self.store = store or OrderStore()
        self.registry = registry or DeliveryPartnerRegistry()
        self.state_machine = OrderStateMachine(self.store)
        self.packing = ItemPackingTracker(self.store)
        self.coordinator = AssignmentCoordinator(
            self.store,
            self.state_machine,
            self.registry,
            self.settings,
        )

        logger.info("OrderService initialized")

    # Intake

    async def register_order(
        self,
        customer: Customer,
        items: Sequence[OrderItem],
        payment_amount: Decimal,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        notes: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> Order:
        """
        Accept a newly placed order into the engine in status ``new``.

        Args:
            customer: Customer reference data
            items: Ordered line items; packing flags are reset
            payment_amount: Order amount as computed upstream
            payment_status: Payment status reported upstream
            notes: Optional customer notes
            order_id: Optional human-readable order number

        Returns:
            The stored order

        Raises:
            OrderUpdateError: If the order number is already taken
        """
        now = utc_now()
        order = Order(
            id=str(uuid.uuid4()),
            order_id=order_id or self._generate_order_number(),
            status=OrderStatus.NEW,
            items=[item.model_copy(update={"is_packed": False}) for item in items],
            payment_amount=payment_amount,
            payment_status=payment_status,
            customer=customer,
            notes=notes,
            created_at=now,
            updated_at=now,
            status_history=[
                StatusHistoryEntry(
                    status=OrderStatus.NEW,
                    timestamp=now,
                    actor=TimelineActor.SYSTEM,
                    description=OrderStatus.NEW.description,
                )
            ],
        )
        return await self.store.add(order)

    async def register_partner(
        self,
        name: str,
        phone_number: str,
        email: Optional[str] = None,
        partner_id: Optional[str] = None,
    ) -> DeliveryPartner:
        """Register a delivery partner, available and on duty."""
        partner = DeliveryPartner(
            id=partner_id or str(uuid.uuid4()),
            name=name,
            phone_number=phone_number,
            email=email,
        )
        return await self.registry.register_partner(partner)

    def _generate_order_number(self) -> str:
        """
        Generate unique order number.

        Returns:
            Order number string
        """
        timestamp = utc_now().strftime("%Y%m%d%H%M%S")
        random_suffix = uuid.uuid4().hex[:6].upper()
        return f"{self.settings.order_number_prefix}-{timestamp}-{random_suffix}"

    # Queries

    async def get_order(self, order_id: str) -> Order:
        """Get an order by id or order number."""
        return await self.store.get(order_id)

    async def list_orders(
        self,
        statuses: Optional[Iterable[OrderStatus]] = None,
    ) -> list[Order]:
        """List orders, newest first, optionally filtered by status."""
        return await self.store.list_orders(statuses)

    async def get_pending_orders(self) -> list[Order]:
        """Orders waiting on the seller: new, accepted, preparing, ready."""
        return await self.store.list_orders(PENDING_STATUSES)

    async def get_active_orders(self) -> list[Order]:
        """Orders with a delivery partner on them."""
        return await self.store.list_orders(ACTIVE_STATUSES)

    async def get_completed_orders(self) -> list[Order]:
        """Delivered, cancelled and declined orders."""
        return await self.store.list_orders(COMPLETED_STATUSES)

    async def get_available_actions_for_order(self, order_id: str) -> list[OrderAction]:
        """Seller actions offered for an order's current status."""
        order = await self.store.get(order_id)
        return self.state_machine.available_actions(order.status)

    async def can_transition_to(self, order_id: str, new_status: OrderStatus) -> bool:
        """Check the edge table for an order; unknown orders cannot transition."""
        try:
            order = await self.store.get(order_id)
        except NotFoundError:
            return False
        return self.state_machine.can_transition_to(order, new_status)

    async def list_available_partners(
        self,
        query: Optional[str] = None,
    ) -> list[DeliveryPartner]:
        """Snapshot of partners that can take an order right now."""
        return await self.registry.list_available(query)

    async def list_partners(self) -> list[DeliveryPartner]:
        """All registered delivery partners."""
        return await self.registry.list_partners()

    async def set_partner_on_duty(self, partner_id: str, on_duty: bool) -> DeliveryPartner:
        """Apply a partner's own on/off duty toggle."""
        return await self.registry.set_on_duty(partner_id, on_duty)

    # Seller actions

    async def accept_order(self, order_id: str) -> TransitionResult:
        return await self.state_machine.transition(order_id, OrderStatus.ACCEPTED)

    async def decline_order(self, order_id: str, reason: Optional[str]) -> TransitionResult:
        return await self.state_machine.transition(
            order_id, OrderStatus.DECLINED, reason=reason
        )

    async def start_preparing(self, order_id: str) -> TransitionResult:
        return await self.state_machine.transition(order_id, OrderStatus.PREPARING)

    async def mark_ready(self, order_id: str) -> TransitionResult:
        """
        Move a preparing order to ready.

        Never blocked by unpacked items: the result carries the packed/total
        count and a partial pack is noted in the status history.
        """
        return await self.state_machine.transition(order_id, OrderStatus.READY)

    async def mark_out_for_delivery(self, order_id: str) -> TransitionResult:
        return await self.state_machine.transition(
            order_id,
            OrderStatus.OUT_FOR_DELIVERY,
            actor=TimelineActor.DELIVERY,
        )

    async def mark_delivered(self, order_id: str) -> TransitionResult:
        """Move an order to delivered and free its delivery partner."""
        result = await self.state_machine.transition(
            order_id,
            OrderStatus.DELIVERED,
            actor=TimelineActor.DELIVERY,
        )
        await self.coordinator.complete_delivery(result.order)
        return result

    async def cancel_order(self, order_id: str, reason: Optional[str]) -> TransitionResult:
        return await self.state_machine.transition(
            order_id, OrderStatus.CANCELLED, reason=reason
        )

    async def update_item_packed_status(
        self,
        order_id: str,
        item_id: str,
        packed: bool,
    ) -> PackingResult:
        return await self.packing.set_packed(order_id, item_id, packed)

    async def assign_delivery(
        self,
        order_id: str,
        partner_id: str,
        partner_name: Optional[str] = None,
        partner_phone: Optional[str] = None,
        estimated_delivery_time: Optional[datetime] = None,
    ) -> bool:
        """
        Assign a delivery partner, reporting only success or failure.

        The assignment snapshot is copied from the registry record; the
        caller-supplied name and phone are only compared against it.

        Args:
            order_id: Order id or order number
            partner_id: Partner chosen by the seller
            partner_name: Name the seller saw when choosing
            partner_phone: Phone the seller saw when choosing
            estimated_delivery_time: Optional ETA

        Returns:
            True if the order is now assigned to the partner
        """
        try:
            order = await self.coordinator.assign(
                order_id,
                partner_id,
                estimated_delivery_time=estimated_delivery_time,
            )
        except OrderEngineError as e:
            logger.warning(
                "Delivery assignment failed",
                order_id=order_id,
                partner_id=partner_id,
                error_code=e.code,
                error=str(e),
            )
            return False

        assignment = order.delivery_assignment
        if (partner_name and partner_name != assignment.delivery_boy_name) or (
            partner_phone and partner_phone != assignment.delivery_boy_phone
        ):
            logger.warning(
                "Caller partner details differ from registry",
                order_id=order.id,
                partner_id=partner_id,
                caller_name=partner_name,
                caller_phone=partner_phone,
            )
        return True


_order_service: Optional[OrderService] = None


def get_order_service() -> OrderService:
    """
    Get or create global order service instance.

    Returns:
        Singleton order service instance
    """
    global _order_service

    if _order_service is None:
        _order_service = OrderService()

    return _order_service


def reset_order_service() -> None:
    """Drop the global order service so the next call starts empty."""
    global _order_service
    _order_service = None
