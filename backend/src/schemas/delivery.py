"""
Delivery partner Pydantic schemas for API request/response validation.
"""

from typing import List, Optional

from pydantic import Field

from src.services.delivery.models import DeliveryPartner
from src.services.orders.models import EngineModel


class PartnerCreateRequest(EngineModel):
    """Request schema for registering a delivery partner."""

    id: Optional[str] = Field(
        None,
        min_length=1,
        description="Partner id, generated when omitted",
    )
    name: str = Field(..., min_length=1, max_length=200)
    phone_number: str = Field(..., min_length=3, max_length=32)
    email: Optional[str] = Field(None, max_length=255)


class DutyUpdateRequest(EngineModel):
    """Partner-initiated on/off duty toggle."""

    is_on_duty: bool


class PartnerListResponse(EngineModel):
    partners: List[DeliveryPartner]
    total: int
