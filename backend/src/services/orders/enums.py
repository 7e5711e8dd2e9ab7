"""Order status, action and actor enums for seller order lifecycle management.

This module defines the order status graph, the payment status values the
engine carries as reference data, and the lookup table of seller actions
available for each status.
"""

from enum import Enum
from typing import Dict, List, Set


class OrderStatus(str, Enum):
    """Order lifecycle status with state machine transitions.

    Valid transitions:
    - NEW -> ACCEPTED, DECLINED, CANCELLED
    - ACCEPTED -> PREPARING, CANCELLED
    - PREPARING -> READY, CANCELLED
    - READY -> ASSIGNED, CANCELLED
    - ASSIGNED -> OUT_FOR_DELIVERY
    - OUT_FOR_DELIVERY -> DELIVERED
    - DELIVERED, CANCELLED, DECLINED -> (terminal states)
    """

    NEW = "new"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    ASSIGNED = "assigned"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    DECLINED = "declined"

    @classmethod
    def from_string(cls, value: str) -> "OrderStatus":
        """Convert string to OrderStatus enum.

        Args:
            value: String representation of status

        Returns:
            OrderStatus enum value

        Raises:
            ValueError: If value is not a valid status
        """
        try:
            return cls(value.lower())
        except ValueError:
            valid_values = ", ".join([s.value for s in cls])
            raise ValueError(
                f"Invalid order status: {value}. "
                f"Valid values are: {valid_values}"
            )

    def is_terminal(self) -> bool:
        """Check if status is a terminal state.

        Returns:
            True if status is terminal (DELIVERED, CANCELLED, DECLINED)
        """
        return self in TERMINAL_STATUSES

    def requires_reason(self) -> bool:
        """Check if moving into this status needs a seller-supplied reason."""
        return self in {OrderStatus.CANCELLED, OrderStatus.DECLINED}

    def allows_packing(self) -> bool:
        """Check if item packing flags may change in this status."""
        return self in PACKING_STATUSES

    def has_delivery_assignment(self) -> bool:
        """Check if an order in this status must carry a delivery assignment."""
        return self in ASSIGNMENT_STATUSES

    @property
    def display_name(self) -> str:
        """Get human-readable display name for status."""
        return self.value.replace("_", " ").title()

    @property
    def description(self) -> str:
        """Get the timeline description recorded when entering this status."""
        return STATUS_DESCRIPTIONS[self]


class PaymentStatus(str, Enum):
    """Payment status carried on an order as reference data."""

    PENDING = "pending"
    RECEIVED = "received"


class OrderAction(str, Enum):
    """Seller-facing actions offered for an order."""

    ACCEPT = "accept"
    DECLINE = "decline"
    START_PREPARING = "start_preparing"
    MARK_READY = "mark_ready"
    ASSIGN_DELIVERY = "assign_delivery"
    MARK_OUT_FOR_DELIVERY = "mark_out_for_delivery"
    MARK_DELIVERED = "mark_delivered"
    CANCEL = "cancel"
    TRACK = "track"


class TimelineActor(str, Enum):
    """Party responsible for a status history entry."""

    SYSTEM = "system"
    SELLER = "seller"
    CUSTOMER = "customer"
    DELIVERY = "delivery"


TERMINAL_STATUSES: Set[OrderStatus] = {
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.DECLINED,
}

PACKING_STATUSES: Set[OrderStatus] = {
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
}

ASSIGNMENT_STATUSES: Set[OrderStatus] = {
    OrderStatus.ASSIGNED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
}

# Seller dashboard groupings
PENDING_STATUSES: List[OrderStatus] = [
    OrderStatus.NEW,
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
]
ACTIVE_STATUSES: List[OrderStatus] = [
    OrderStatus.ASSIGNED,
    OrderStatus.OUT_FOR_DELIVERY,
]
COMPLETED_STATUSES: List[OrderStatus] = [
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.DECLINED,
]

STATUS_DESCRIPTIONS: Dict[OrderStatus, str] = {
    OrderStatus.NEW: "New order received",
    OrderStatus.ACCEPTED: "Order accepted by seller",
    OrderStatus.PREPARING: "Items being prepared",
    OrderStatus.READY: "Ready for pickup",
    OrderStatus.ASSIGNED: "Delivery partner assigned",
    OrderStatus.OUT_FOR_DELIVERY: "On the way",
    OrderStatus.DELIVERED: "Successfully delivered",
    OrderStatus.CANCELLED: "Order cancelled",
    OrderStatus.DECLINED: "Order declined",
}

# State transition validation rules
ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.NEW: {
        OrderStatus.ACCEPTED,
        OrderStatus.DECLINED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.ACCEPTED: {
        OrderStatus.PREPARING,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PREPARING: {
        OrderStatus.READY,
        OrderStatus.CANCELLED,
    },
    OrderStatus.READY: {
        OrderStatus.ASSIGNED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.ASSIGNED: {
        OrderStatus.OUT_FOR_DELIVERY,
    },
    OrderStatus.OUT_FOR_DELIVERY: {
        OrderStatus.DELIVERED,
    },
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.DECLINED: set(),  # Terminal
}

# Primary action first, then decline/cancel where the edge exists
AVAILABLE_ACTIONS: Dict[OrderStatus, tuple] = {
    OrderStatus.NEW: (
        OrderAction.ACCEPT,
        OrderAction.DECLINE,
        OrderAction.CANCEL,
    ),
    OrderStatus.ACCEPTED: (OrderAction.START_PREPARING, OrderAction.CANCEL),
    OrderStatus.PREPARING: (OrderAction.MARK_READY, OrderAction.CANCEL),
    OrderStatus.READY: (OrderAction.ASSIGN_DELIVERY, OrderAction.CANCEL),
    OrderStatus.ASSIGNED: (OrderAction.MARK_OUT_FOR_DELIVERY,),
    OrderStatus.OUT_FOR_DELIVERY: (OrderAction.MARK_DELIVERED,),
    OrderStatus.DELIVERED: (OrderAction.TRACK,),
    OrderStatus.CANCELLED: (),
    OrderStatus.DECLINED: (),
}

ACTION_TARGETS: Dict[OrderAction, OrderStatus] = {
    OrderAction.ACCEPT: OrderStatus.ACCEPTED,
    OrderAction.DECLINE: OrderStatus.DECLINED,
    OrderAction.START_PREPARING: OrderStatus.PREPARING,
    OrderAction.MARK_READY: OrderStatus.READY,
    OrderAction.ASSIGN_DELIVERY: OrderStatus.ASSIGNED,
    OrderAction.MARK_OUT_FOR_DELIVERY: OrderStatus.OUT_FOR_DELIVERY,
    OrderAction.MARK_DELIVERED: OrderStatus.DELIVERED,
    OrderAction.CANCEL: OrderStatus.CANCELLED,
}


def validate_order_status_transition(
    current: OrderStatus,
    new: OrderStatus
) -> bool:
    """Validate if order status transition is allowed.

    Args:
        current: Current order status
        new: Desired new status

    Returns:
        True if transition is valid
    """
    return new in ORDER_STATUS_TRANSITIONS.get(current, set())


def get_allowed_order_transitions(
    current: OrderStatus
) -> Set[OrderStatus]:
    """Get all allowed transitions from current order status.

    Args:
        current: Current order status

    Returns:
        Set of allowed next statuses
    """
    return ORDER_STATUS_TRANSITIONS.get(current, set()).copy()


def available_actions(status: OrderStatus) -> List[OrderAction]:
    """Get the seller actions offered for an order status.

    Pure lookup, no side effects. The primary forward action comes first.

    Args:
        status: Current order status

    Returns:
        Ordered list of available actions
    """
    return list(AVAILABLE_ACTIONS.get(status, ()))
