"""
Order Pydantic schemas for API request/response validation.

Request bodies use the same camelCase wire names as the engine entities.
Response schemas wrap the engine's own models, so orders are returned in
exactly the shape the engine stores them.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from src.services.orders.enums import OrderAction, OrderStatus, PaymentStatus
from src.services.orders.models import (
    Customer,
    EngineModel,
    Order,
    OrderItem,
    PackingProgress,
)


class OrderItemCreate(EngineModel):
    """Line item supplied at order intake."""

    id: Optional[str] = Field(
        None,
        min_length=1,
        description="Item id, generated when omitted",
    )
    product_id: Optional[str] = Field(None, description="Catalog product id")
    name: str = Field(..., min_length=1, max_length=200, description="Item name")
    quantity: int = Field(..., gt=0, description="Ordered quantity")
    unit: str = Field("", max_length=32, description="Unit label, e.g. kg")
    price: Optional[Decimal] = Field(None, ge=0, description="Unit price")
    total_price: Decimal = Field(..., ge=0, description="Line total")

    def to_item(self) -> OrderItem:
        """Convert to an engine order item."""
        return OrderItem(
            id=self.id or str(uuid.uuid4()),
            product_id=self.product_id,
            name=self.name,
            quantity=self.quantity,
            unit=self.unit,
            price=self.price,
            total_price=self.total_price,
        )


class CustomerCreate(EngineModel):
    """Customer details supplied at order intake."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=3, max_length=32)
    address: str = Field(..., min_length=1, max_length=500)
    email: Optional[str] = Field(None, max_length=255)
    landmark: Optional[str] = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v: Optional[str]) -> Optional[str]:
        """Validate email format."""
        if v is None:
            return v
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Invalid email format")
        return v.lower()

    def to_customer(self) -> Customer:
        return Customer(**self.model_dump())


class OrderCreateRequest(EngineModel):
    """Request schema for registering a newly placed order."""

    order_id: Optional[str] = Field(
        None,
        min_length=1,
        max_length=64,
        description="Human-readable order number, generated when omitted",
    )
    customer: CustomerCreate
    items: List[OrderItemCreate] = Field(..., min_length=1)
    payment_amount: Decimal = Field(..., ge=0)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("items")
    @classmethod
    def validate_unique_item_ids(cls, v: List[OrderItemCreate]) -> List[OrderItemCreate]:
        """Reject duplicate item ids within one order."""
        ids = [item.id for item in v if item.id is not None]
        if len(ids) != len(set(ids)):
            raise ValueError("Item ids must be unique within an order")
        return v


class ReasonRequest(EngineModel):
    """Reason body for decline and cancel actions."""

    reason: Optional[str] = Field(None, max_length=500)


class ItemPackedUpdate(EngineModel):
    """Packing flag update for a single item."""

    is_packed: bool


class AssignDeliveryRequest(EngineModel):
    """Delivery assignment request chosen from the available partner list."""

    partner_id: str = Field(..., min_length=1)
    partner_name: Optional[str] = None
    partner_phone: Optional[str] = None
    estimated_delivery_time: Optional[datetime] = None


class AssignDeliveryResponse(EngineModel):
    success: bool


class PackingUpdateResponse(EngineModel):
    """Order after a packing change with its packed/total counts."""

    order: Order
    progress: PackingProgress


class OrderListResponse(EngineModel):
    orders: List[Order]
    total: int


class OrderActionsResponse(EngineModel):
    """Seller actions and next statuses offered for an order."""

    order_id: str
    status: OrderStatus
    status_label: str
    actions: List[OrderAction]
    action_targets: Dict[OrderAction, OrderStatus]
    allowed_transitions: List[OrderStatus]
