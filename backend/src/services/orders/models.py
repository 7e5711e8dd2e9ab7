"""
Order domain entities owned by the order engine.

Entities are Pydantic models so the same shapes are used in-process, in the
store and at the HTTP boundary. Field names are snake_case in Python and
camelCase on the wire (``orderId``, ``isPacked``, ``deliveryAssignment``);
both spellings are accepted on input.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from src.services.orders.enums import OrderStatus, PaymentStatus, TimelineActor


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class EngineModel(BaseModel):
    """Base model with camelCase aliases for engine entities."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


class OrderItem(EngineModel):
    """Line item of an order with its packing flag."""

    id: str = Field(..., min_length=1)
    product_id: Optional[str] = None
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    unit: str = ""
    price: Optional[Decimal] = Field(None, ge=0)
    total_price: Decimal = Field(..., ge=0)
    is_packed: bool = False


class Customer(EngineModel):
    """Customer reference data. Read-only for the engine."""

    id: Optional[str] = None
    name: str
    phone: str
    address: str
    email: Optional[str] = None
    landmark: Optional[str] = None


class DeliveryAssignment(EngineModel):
    """Snapshot of the delivery partner bound to an order.

    Name and phone are copied at assignment time; later registry changes do
    not alter an existing assignment.
    """

    delivery_boy_id: str
    delivery_boy_name: str
    delivery_boy_phone: str
    estimated_delivery_time: datetime
    assigned_at: datetime


class StatusHistoryEntry(EngineModel):
    """One append-only entry of an order's status history."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: OrderStatus
    timestamp: datetime
    note: Optional[str] = None
    actor: TimelineActor = TimelineActor.SELLER
    description: str = ""


class Order(EngineModel):
    """Seller order moving through the fulfillment pipeline."""

    id: str
    order_id: str
    status: OrderStatus = OrderStatus.NEW
    items: list[OrderItem] = Field(default_factory=list)
    payment_amount: Decimal = Field(Decimal("0"), ge=0)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    customer: Customer
    delivery_assignment: Optional[DeliveryAssignment] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)

    def find_item(self, item_id: str) -> Optional[OrderItem]:
        """Return the item with the given id, or None."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def matches(self, reference: str) -> bool:
        """Check whether ``reference`` is this order's id or order number."""
        return reference in (self.id, self.order_id)


class PackingProgress(EngineModel):
    """Packed/total item counts used by the ready-transition guard."""

    packed_count: int = Field(..., ge=0)
    total: int = Field(..., ge=0)

    @computed_field
    @property
    def all_packed(self) -> bool:
        return self.packed_count == self.total

    @classmethod
    def for_order(cls, order: Order) -> "PackingProgress":
        return cls(
            packed_count=sum(1 for item in order.items if item.is_packed),
            total=len(order.items),
        )


class TransitionResult(EngineModel):
    """Outcome of an applied status transition.

    ``packing`` is populated for the ready transition so that a partial-pack
    override is visible to the caller.
    """

    order: Order
    packing: Optional[PackingProgress] = None
