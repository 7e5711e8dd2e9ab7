"""
API v1 package initialization.

This module initializes the v1 API package for the seller order engine.
"""

from src.api.v1.delivery_partners import router as delivery_partners_router
from src.api.v1.orders import router as orders_router

__all__ = ["delivery_partners_router", "orders_router"]
