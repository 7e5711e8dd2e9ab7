"""Delivery partner entity held by the partner registry."""

from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from src.services.orders.models import EngineModel, utc_now


class DeliveryPartner(EngineModel):
    """
    Delivery partner and their reservation state.

    ``is_available`` is false exactly when ``active_order_id`` is set.
    ``is_on_duty`` is the partner's own availability toggle; an off-duty
    partner keeps ``is_available`` untouched but is never offered or reserved.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1)
    email: Optional[str] = None
    is_available: bool = True
    active_order_id: Optional[str] = None
    is_on_duty: bool = True
    registered_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def check_reservation_state(self) -> "DeliveryPartner":
        """Keep availability and the active order reference consistent."""
        if self.is_available == (self.active_order_id is not None):
            raise ValueError(
                "is_available must be false exactly when active_order_id is set"
            )
        return self

    @property
    def can_be_reserved(self) -> bool:
        return self.is_available and self.is_on_duty
