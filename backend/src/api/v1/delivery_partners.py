"""
Delivery partner API endpoints for the seller order engine.

This module implements partner registration, the available-partner list
shown to sellers when assigning an order, and the partner's own on/off duty
toggle.
"""

from typing import Optional

from fastapi import APIRouter, Query, status

from src.api.deps import OrderServiceDep
from src.api.errors import to_http_exception
from src.core.logging import get_logger
from src.schemas.delivery import (
    DutyUpdateRequest,
    PartnerCreateRequest,
    PartnerListResponse,
)
from src.services.delivery.models import DeliveryPartner
from src.services.orders.exceptions import OrderEngineError

logger = get_logger(__name__)

router = APIRouter(prefix="/delivery-partners", tags=["delivery-partners"])


@router.get(
    "",
    response_model=PartnerListResponse,
    summary="List delivery partners",
)
async def list_partners(service: OrderServiceDep) -> PartnerListResponse:
    partners = await service.list_partners()
    return PartnerListResponse(partners=partners, total=len(partners))


@router.get(
    "/available",
    response_model=PartnerListResponse,
    summary="List available delivery partners",
    description="Partners that are on duty and not delivering another order",
)
async def list_available_partners(
    service: OrderServiceDep,
    q: Optional[str] = Query(
        None,
        max_length=100,
        description="Case-insensitive match on name or phone number",
    ),
) -> PartnerListResponse:
    """
    List partners a seller can assign right now.

    The list is a snapshot; a listed partner may be taken by a concurrent
    assignment before the seller submits theirs.

    Args:
        service: Order service
        q: Optional name or phone filter

    Returns:
        PartnerListResponse: Available partners and their count
    """
    partners = await service.list_available_partners(q)
    return PartnerListResponse(partners=partners, total=len(partners))


@router.post(
    "",
    response_model=DeliveryPartner,
    status_code=status.HTTP_201_CREATED,
    summary="Register delivery partner",
)
async def register_partner(
    request: PartnerCreateRequest,
    service: OrderServiceDep,
) -> DeliveryPartner:
    try:
        partner = await service.register_partner(
            name=request.name,
            phone_number=request.phone_number,
            email=request.email,
            partner_id=request.id,
        )
    except OrderEngineError as e:
        logger.warning(
            "Partner registration rejected",
            partner_id=request.id,
            error_code=e.code,
            error=str(e),
        )
        raise to_http_exception(e) from e

    return partner


@router.patch(
    "/{partner_id}/duty",
    response_model=DeliveryPartner,
    summary="Set partner duty status",
)
async def set_partner_duty(
    partner_id: str,
    request: DutyUpdateRequest,
    service: OrderServiceDep,
) -> DeliveryPartner:
    try:
        return await service.set_partner_on_duty(partner_id, request.is_on_duty)
    except OrderEngineError as e:
        logger.warning(
            "Partner duty update rejected",
            partner_id=partner_id,
            error_code=e.code,
            error=str(e),
        )
        raise to_http_exception(e) from e
