"""
Typed failures returned by the order lifecycle and delivery assignment engine.

Every engine error carries a stable ``code`` and structured ``context`` so
callers and the API layer can branch on the kind of failure without parsing
messages. None of these are retried inside the engine.
"""

from typing import Any, Optional

from src.services.orders.enums import OrderStatus


class OrderEngineError(Exception):
    """Base exception for order engine operations."""

    code = "ORDER_ENGINE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, **context: Any):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.context = context


class NotFoundError(OrderEngineError):
    """Raised when an order or partner id is unknown."""

    code = "NOT_FOUND"


class OrderNotFoundError(NotFoundError):
    """Raised when an order cannot be found by id or order number."""

    def __init__(self, order_id: str):
        super().__init__(
            f"Order {order_id} not found",
            code="ORDER_NOT_FOUND",
            order_id=order_id,
        )


class PartnerNotFoundError(NotFoundError):
    """Raised when a delivery partner is not registered."""

    def __init__(self, partner_id: str):
        super().__init__(
            f"Delivery partner {partner_id} not found",
            code="PARTNER_NOT_FOUND",
            partner_id=partner_id,
        )


class IllegalTransitionError(OrderEngineError):
    """Raised when a status change is not an edge of the order graph."""

    code = "ILLEGAL_TRANSITION"

    def __init__(
        self,
        current_state: OrderStatus,
        target_state: OrderStatus,
        **context: Any,
    ):
        super().__init__(
            f"Cannot transition from {current_state.value} to {target_state.value}",
            from_status=current_state.value,
            to_status=target_state.value,
            **context,
        )
        self.current_state = current_state
        self.target_state = target_state


class OrderTerminalError(OrderEngineError):
    """Raised when mutating an order that is delivered, cancelled or declined."""

    code = "ORDER_TERMINAL"

    def __init__(self, order_id: str, status: OrderStatus):
        super().__init__(
            f"Order {order_id} is {status.value} and can no longer change",
            order_id=order_id,
            status=status.value,
        )
        self.status = status


class InvalidReasonError(OrderEngineError):
    """Raised when a decline or cancellation is requested without a reason."""

    code = "INVALID_REASON"

    def __init__(self, target_state: OrderStatus):
        super().__init__(
            f"A reason is required to move an order to {target_state.value}",
            to_status=target_state.value,
        )


class InvalidStateError(OrderEngineError):
    """Raised when an operation is not permitted in the order's current status."""

    code = "INVALID_STATE"


class ItemNotFoundError(OrderEngineError):
    """Raised when an item id does not belong to the order."""

    code = "ITEM_NOT_FOUND"

    def __init__(self, order_id: str, item_id: str):
        super().__init__(
            f"Item {item_id} not found in order {order_id}",
            order_id=order_id,
            item_id=item_id,
        )


class PartnerUnavailableError(OrderEngineError):
    """Raised when the chosen delivery partner could not be reserved."""

    code = "PARTNER_UNAVAILABLE"

    def __init__(self, partner_id: str, **context: Any):
        super().__init__(
            f"Delivery partner {partner_id} is not available",
            partner_id=partner_id,
            **context,
        )


class AlreadyReservedError(OrderEngineError):
    """Raised by the registry when a partner already holds an active order."""

    code = "ALREADY_RESERVED"

    def __init__(self, partner_id: str, active_order_id: Optional[str] = None):
        super().__init__(
            f"Delivery partner {partner_id} is already reserved",
            partner_id=partner_id,
            active_order_id=active_order_id,
        )


class OrderUpdateError(OrderEngineError):
    """Raised by the store when a mutation would break an order invariant."""

    code = "ORDER_UPDATE_FAILED"
