"""
FastAPI dependencies for the order engine API.

Routes receive the process-wide OrderService through ``OrderServiceDep``;
tests replace it with ``app.dependency_overrides[get_service]``.
"""

from typing import Annotated

from fastapi import Depends

from src.services.orders.service import OrderService, get_order_service


def get_service() -> OrderService:
    """
    Provide the order service for request handling.

    Returns:
        OrderService: Shared order service instance
    """
    return get_order_service()


OrderServiceDep = Annotated[OrderService, Depends(get_service)]
