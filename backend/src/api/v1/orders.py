"""
Order management API endpoints for the seller order engine.

This module implements the FastAPI router for order intake, order queries,
seller lifecycle actions, item packing and delivery assignment. Engine
errors are logged and translated into structured HTTP errors.
"""

from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query, status

from src.api.deps import OrderServiceDep
from src.api.errors import to_http_exception
from src.core.logging import get_logger
from src.schemas.orders import (
    AssignDeliveryRequest,
    AssignDeliveryResponse,
    ItemPackedUpdate,
    OrderActionsResponse,
    OrderCreateRequest,
    OrderListResponse,
    PackingUpdateResponse,
    ReasonRequest,
)
from src.services.orders.enums import ACTION_TARGETS, OrderStatus
from src.services.orders.exceptions import OrderEngineError
from src.services.orders.models import Order, TransitionResult

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


def _rejected(error: OrderEngineError, action: str, order_id: str) -> HTTPException:
    """Log a rejected order operation and build its HTTP error."""
    logger.warning(
        "Order operation rejected",
        action=action,
        order_id=order_id,
        error_code=error.code,
        error=str(error),
        context=error.context,
    )
    return to_http_exception(error)


@router.post(
    "",
    response_model=Order,
    status_code=status.HTTP_201_CREATED,
    summary="Register new order",
    description="Accept a newly placed order into the engine in status new",
)
async def create_order(
    request: OrderCreateRequest,
    service: OrderServiceDep,
) -> Order:
    """
    Register a newly placed order.

    Args:
        request: Order intake request with customer and items
        service: Order service

    Returns:
        Order: Stored order in status new

    Raises:
        HTTPException: 409 if the order number is already taken
    """
    logger.info(
        "Registering order",
        order_number=request.order_id,
        item_count=len(request.items),
    )

    try:
        order = await service.register_order(
            customer=request.customer.to_customer(),
            items=[item.to_item() for item in request.items],
            payment_amount=request.payment_amount,
            payment_status=request.payment_status,
            notes=request.notes,
            order_id=request.order_id,
        )
    except OrderEngineError as e:
        raise _rejected(e, "register", request.order_id or "") from e

    logger.info(
        "Order registered",
        order_id=order.id,
        order_number=order.order_id,
    )
    return order


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List orders",
    description="List orders newest first, filtered by status or status group",
)
async def list_orders(
    service: OrderServiceDep,
    status_filter: Optional[str] = Query(
        None,
        alias="status",
        description="Filter by order status, case-insensitive",
    ),
    group: Optional[Literal["pending", "active", "completed"]] = Query(
        None,
        description="Filter by status group",
    ),
) -> OrderListResponse:
    """
    List orders for the seller screens.

    Args:
        service: Order service
        status_filter: Optional single status
        group: Optional status group; ignored when a status is given

    Returns:
        OrderListResponse: Matching orders and their count

    Raises:
        HTTPException: 422 if the status is not a known order status
    """
    wanted: Optional[OrderStatus] = None
    if status_filter is not None:
        try:
            wanted = OrderStatus.from_string(status_filter)
        except ValueError as e:
            raise HTTPException(
                status_code=422,
                detail={
                    "error": "INVALID_STATUS",
                    "message": str(e),
                    "context": {"status": status_filter},
                },
            ) from e

    if wanted is not None:
        orders = await service.list_orders([wanted])
    elif group == "pending":
        orders = await service.get_pending_orders()
    elif group == "active":
        orders = await service.get_active_orders()
    elif group == "completed":
        orders = await service.get_completed_orders()
    else:
        orders = await service.list_orders()

    logger.debug(
        "Orders listed",
        status=wanted.value if wanted else None,
        group=group,
        count=len(orders),
    )
    return OrderListResponse(orders=orders, total=len(orders))


@router.get(
    "/{order_id}",
    response_model=Order,
    summary="Get order",
    description="Get an order by id or order number",
)
async def get_order(order_id: str, service: OrderServiceDep) -> Order:
    try:
        return await service.get_order(order_id)
    except OrderEngineError as e:
        raise _rejected(e, "get", order_id) from e


@router.get(
    "/{order_id}/actions",
    response_model=OrderActionsResponse,
    summary="Get available actions",
    description="Seller actions and next statuses offered for the order",
)
async def get_order_actions(
    order_id: str,
    service: OrderServiceDep,
) -> OrderActionsResponse:
    try:
        order = await service.get_order(order_id)
        actions = await service.get_available_actions_for_order(order.id)
    except OrderEngineError as e:
        raise _rejected(e, "actions", order_id) from e

    allowed = service.state_machine.get_allowed_transitions(order)
    return OrderActionsResponse(
        order_id=order.id,
        status=order.status,
        status_label=order.status.display_name,
        actions=actions,
        action_targets={
            action: ACTION_TARGETS[action]
            for action in actions
            if action in ACTION_TARGETS
        },
        allowed_transitions=[s for s in OrderStatus if s in allowed],
    )


@router.post(
    "/{order_id}/accept",
    response_model=TransitionResult,
    summary="Accept order",
)
async def accept_order(order_id: str, service: OrderServiceDep) -> TransitionResult:
    try:
        return await service.accept_order(order_id)
    except OrderEngineError as e:
        raise _rejected(e, "accept", order_id) from e


@router.post(
    "/{order_id}/decline",
    response_model=TransitionResult,
    summary="Decline order",
    description="Decline a new order; a non-empty reason is required",
)
async def decline_order(
    order_id: str,
    request: ReasonRequest,
    service: OrderServiceDep,
) -> TransitionResult:
    try:
        return await service.decline_order(order_id, request.reason)
    except OrderEngineError as e:
        raise _rejected(e, "decline", order_id) from e


@router.post(
    "/{order_id}/start-preparing",
    response_model=TransitionResult,
    summary="Start preparing order",
)
async def start_preparing(order_id: str, service: OrderServiceDep) -> TransitionResult:
    try:
        return await service.start_preparing(order_id)
    except OrderEngineError as e:
        raise _rejected(e, "start_preparing", order_id) from e


@router.post(
    "/{order_id}/mark-ready",
    response_model=TransitionResult,
    summary="Mark order ready",
    description="Mark a preparing order ready; the response carries packed/total counts",
)
async def mark_ready(order_id: str, service: OrderServiceDep) -> TransitionResult:
    try:
        return await service.mark_ready(order_id)
    except OrderEngineError as e:
        raise _rejected(e, "mark_ready", order_id) from e


@router.post(
    "/{order_id}/out-for-delivery",
    response_model=TransitionResult,
    summary="Mark order out for delivery",
)
async def mark_out_for_delivery(
    order_id: str,
    service: OrderServiceDep,
) -> TransitionResult:
    try:
        return await service.mark_out_for_delivery(order_id)
    except OrderEngineError as e:
        raise _rejected(e, "mark_out_for_delivery", order_id) from e


@router.post(
    "/{order_id}/deliver",
    response_model=TransitionResult,
    summary="Mark order delivered",
    description="Mark an order delivered and free its delivery partner",
)
async def mark_delivered(order_id: str, service: OrderServiceDep) -> TransitionResult:
    try:
        return await service.mark_delivered(order_id)
    except OrderEngineError as e:
        raise _rejected(e, "mark_delivered", order_id) from e


@router.post(
    "/{order_id}/cancel",
    response_model=TransitionResult,
    summary="Cancel order",
    description="Cancel an order before assignment; a non-empty reason is required",
)
async def cancel_order(
    order_id: str,
    request: ReasonRequest,
    service: OrderServiceDep,
) -> TransitionResult:
    try:
        return await service.cancel_order(order_id, request.reason)
    except OrderEngineError as e:
        raise _rejected(e, "cancel", order_id) from e


@router.patch(
    "/{order_id}/items/{item_id}",
    response_model=PackingUpdateResponse,
    summary="Update item packing status",
)
async def update_item_packed_status(
    order_id: str,
    item_id: str,
    request: ItemPackedUpdate,
    service: OrderServiceDep,
) -> PackingUpdateResponse:
    """
    Mark an item packed or unpacked.

    Args:
        order_id: Order id or order number
        item_id: Item id within the order
        request: New packing flag
        service: Order service

    Returns:
        PackingUpdateResponse: Updated order with packed/total counts

    Raises:
        HTTPException: 404 for unknown order or item, 409 outside
            accepted/preparing
    """
    try:
        result = await service.update_item_packed_status(
            order_id, item_id, request.is_packed
        )
    except OrderEngineError as e:
        raise _rejected(e, "update_item_packed_status", order_id) from e

    return PackingUpdateResponse(order=result.order, progress=result.progress)


@router.post(
    "/{order_id}/assign-delivery",
    response_model=AssignDeliveryResponse,
    summary="Assign delivery partner",
    description="Assign an available delivery partner to a ready order",
)
async def assign_delivery(
    order_id: str,
    request: AssignDeliveryRequest,
    service: OrderServiceDep,
) -> AssignDeliveryResponse:
    """
    Assign a delivery partner.

    Failures are reported as ``success: false``; the reason is logged by
    the service.

    Args:
        order_id: Order id or order number
        request: Chosen partner and optional ETA
        service: Order service

    Returns:
        AssignDeliveryResponse: Whether the assignment succeeded
    """
    success = await service.assign_delivery(
        order_id,
        request.partner_id,
        partner_name=request.partner_name,
        partner_phone=request.partner_phone,
        estimated_delivery_time=request.estimated_delivery_time,
    )
    return AssignDeliveryResponse(success=success)
