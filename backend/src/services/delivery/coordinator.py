"""
Assignment coordinator binding ready orders to delivery partners.

This module implements the AssignmentCoordinator, the only component that
sets an order's delivery assignment or changes a partner's reservation. An
assignment reserves the partner first and then moves the order to
``assigned``; when the order update fails after a successful reservation the
reservation is released again before the error is returned.
"""

from datetime import datetime, timedelta
from typing import Optional

from src.core.config import Settings, get_settings
from src.core.logging import get_logger
from src.services.delivery.registry import DeliveryPartnerRegistry
from src.services.orders.enums import OrderStatus, TimelineActor
from src.services.orders.exceptions import (
    AlreadyReservedError,
    InvalidStateError,
    PartnerUnavailableError,
)
from src.services.orders.models import DeliveryAssignment, Order, utc_now
from src.services.orders.repository import OrderStore
from src.services.orders.state_machine import OrderStateMachine, TransitionRequest

logger = get_logger(__name__)

# Statuses in which an assign request is worth a reservation attempt. An
# already assigned order lets a duplicate request lose on the partner.
_ASSIGNABLE_STATUSES = {OrderStatus.READY, OrderStatus.ASSIGNED}


class AssignmentCoordinator:
    """Matches ready orders with reserved delivery partners."""

    def __init__(
        self,
        store: OrderStore,
        state_machine: OrderStateMachine,
        registry: DeliveryPartnerRegistry,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            store: Order store
            state_machine: State machine building the assignment mutation
            registry: Delivery partner registry
            settings: Optional settings, defaults to the application settings
        """
        self.store = store
        self.state_machine = state_machine
        self.registry = registry
        self.settings = settings or get_settings()

    def _default_eta(self, now: datetime) -> datetime:
        return now + timedelta(minutes=self.settings.default_delivery_eta_minutes)

    async def assign(
        self,
        order_id: str,
        partner_id: str,
        estimated_delivery_time: Optional[datetime] = None,
    ) -> Order:
        """
        Assign a delivery partner to a ready order.

        Args:
            order_id: Order id or order number
            partner_id: Partner to reserve
            estimated_delivery_time: Optional ETA, defaults to now plus the
                configured delivery ETA

        Returns:
            The order in status ``assigned``

        Raises:
            OrderNotFoundError: If the order does not exist
            PartnerNotFoundError: If the partner is not registered
            OrderTerminalError: If the order is terminal
            IllegalTransitionError: If the order is not ready
            PartnerUnavailableError: If the partner could not be reserved
        """
        order = await self.store.get(order_id)
        if order.status not in _ASSIGNABLE_STATUSES:
            self.state_machine.validate_transition(order, OrderStatus.ASSIGNED)

        try:
            partner = await self.registry.reserve(partner_id, order.id)
        except AlreadyReservedError as e:
            logger.warning(
                "Delivery assignment lost partner reservation",
                order_id=order.id,
                partner_id=partner_id,
                active_order_id=e.context.get("active_order_id"),
            )
            raise PartnerUnavailableError(partner_id, order_id=order.id) from e

        now = utc_now()
        assignment = DeliveryAssignment(
            delivery_boy_id=partner.id,
            delivery_boy_name=partner.name,
            delivery_boy_phone=partner.phone_number,
            estimated_delivery_time=estimated_delivery_time or self._default_eta(now),
            assigned_at=now,
        )
        request = TransitionRequest(
            target_status=OrderStatus.ASSIGNED,
            actor=TimelineActor.SELLER,
            assignment=assignment,
        )

        try:
            assigned = await self.store.apply(
                order.id, self.state_machine.build_mutation(request)
            )
        except Exception as e:
            await self.registry.release(partner_id)
            logger.warning(
                "Delivery assignment rolled back",
                order_id=order.id,
                partner_id=partner_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        logger.info(
            "Delivery partner assigned",
            order_id=assigned.id,
            order_number=assigned.order_id,
            partner_id=partner_id,
            estimated_delivery_time=assignment.estimated_delivery_time.isoformat(),
        )
        return assigned

    async def complete_delivery(self, order: Order) -> None:
        """
        Release the partner of a delivered order.

        Args:
            order: Order snapshot in status ``delivered``

        Raises:
            InvalidStateError: If the order is not delivered
        """
        if order.status != OrderStatus.DELIVERED:
            raise InvalidStateError(
                f"Cannot complete delivery for order in status {order.status.value}",
                order_id=order.id,
                status=order.status.value,
            )

        partner_id = order.delivery_assignment.delivery_boy_id
        partner = await self.registry.get(partner_id)
        if partner.active_order_id != order.id:
            logger.warning(
                "Delivered order no longer holds its partner",
                order_id=order.id,
                partner_id=partner_id,
                active_order_id=partner.active_order_id,
            )
            return

        await self.registry.release(partner_id)

        logger.info(
            "Delivery completed",
            order_id=order.id,
            partner_id=partner_id,
        )
