"""
Delivery partner registry with atomic reservations.

This module implements the DeliveryPartnerRegistry that tracks registered
delivery partners, their on-duty toggle and their reservation state. A
reservation binds a partner to exactly one active order; reserve and release
for a partner are serialized by a per-partner asyncio lock, so two concurrent
reservation attempts for the same partner yield exactly one success.
"""

import asyncio
from typing import Any, Optional

from src.core.logging import get_logger
from src.services.delivery.models import DeliveryPartner
from src.services.orders.exceptions import (
    AlreadyReservedError,
    OrderEngineError,
    PartnerNotFoundError,
)

logger = get_logger(__name__)


class DeliveryPartnerRegistry:
    """
    Registry of delivery partners and their reservations.

    Availability changes only through ``reserve``/``release`` (called by the
    assignment coordinator) and the partner's own ``set_on_duty`` toggle.
    Every read returns a copy.
    """

    def __init__(self) -> None:
        self._partners: dict[str, DeliveryPartner] = {}
        self._locks: dict[str, asyncio.Lock] = {}

        logger.info("Delivery partner registry initialized")

    def _lock_for(self, partner_id: str) -> asyncio.Lock:
        lock = self._locks.get(partner_id)
        if lock is None:
            lock = self._locks[partner_id] = asyncio.Lock()
        return lock

    def _require(self, partner_id: str) -> DeliveryPartner:
        partner = self._partners.get(partner_id)
        if partner is None:
            raise PartnerNotFoundError(partner_id)
        return partner

    @staticmethod
    def _replace(partner: DeliveryPartner, **changes: Any) -> DeliveryPartner:
        """Copy a partner with changes, re-running validation."""
        return DeliveryPartner.model_validate({**partner.model_dump(), **changes})

    async def register_partner(self, partner: DeliveryPartner) -> DeliveryPartner:
        """
        Register a new delivery partner.

        Args:
            partner: Partner to register; must not hold an active order

        Returns:
            Copy of the registered partner

        Raises:
            OrderEngineError: If the id is already registered or the partner
                arrives with an active order
        """
        if partner.id in self._partners:
            raise OrderEngineError(
                f"Delivery partner {partner.id} already registered",
                code="DUPLICATE_PARTNER",
                partner_id=partner.id,
            )
        if partner.active_order_id is not None:
            raise OrderEngineError(
                "New delivery partners cannot hold an active order",
                code="INVALID_PARTNER",
                partner_id=partner.id,
            )

        self._partners[partner.id] = partner.model_copy(deep=True)

        logger.info(
            "Delivery partner registered",
            partner_id=partner.id,
            is_on_duty=partner.is_on_duty,
        )
        return partner.model_copy(deep=True)

    async def get(self, partner_id: str) -> DeliveryPartner:
        """
        Get a partner snapshot.

        Raises:
            PartnerNotFoundError: If the partner is not registered
        """
        return self._require(partner_id).model_copy(deep=True)

    async def list_partners(self) -> list[DeliveryPartner]:
        """All registered partners in registration order."""
        return [partner.model_copy(deep=True) for partner in self._partners.values()]

    async def list_available(self, query: Optional[str] = None) -> list[DeliveryPartner]:
        """
        List partners that can currently take an order.

        The result is a snapshot; a listed partner may be reserved by a
        concurrent request before the caller acts on it.

        Args:
            query: Optional case-insensitive match on name or phone number

        Returns:
            Available, on-duty partners
        """
        needle = query.strip().lower() if query else ""
        available = [
            partner.model_copy(deep=True)
            for partner in self._partners.values()
            if partner.can_be_reserved
            and (
                not needle
                or needle in partner.name.lower()
                or needle in partner.phone_number.lower()
            )
        ]

        logger.debug(
            "Available partners listed",
            query=query,
            count=len(available),
        )
        return available

    async def reserve(self, partner_id: str, order_id: str) -> DeliveryPartner:
        """
        Reserve a partner for an order.

        Args:
            partner_id: Partner to reserve
            order_id: Order the partner will deliver

        Returns:
            Copy of the reserved partner

        Raises:
            PartnerNotFoundError: If the partner is not registered
            AlreadyReservedError: If the partner holds another order or is
                off duty
        """
        async with self._lock_for(partner_id):
            partner = self._require(partner_id)

            if not partner.can_be_reserved:
                logger.warning(
                    "Partner reservation rejected",
                    partner_id=partner_id,
                    order_id=order_id,
                    active_order_id=partner.active_order_id,
                    is_on_duty=partner.is_on_duty,
                )
                raise AlreadyReservedError(partner_id, partner.active_order_id)

            reserved = self._replace(
                partner,
                is_available=False,
                active_order_id=order_id,
            )
            self._partners[partner_id] = reserved

            logger.info(
                "Partner reserved",
                partner_id=partner_id,
                order_id=order_id,
            )
            return reserved.model_copy(deep=True)

    async def release(self, partner_id: str) -> DeliveryPartner:
        """
        Release a partner's reservation. Releasing a free partner is a no-op.

        Args:
            partner_id: Partner to release

        Returns:
            Copy of the released partner

        Raises:
            PartnerNotFoundError: If the partner is not registered
        """
        async with self._lock_for(partner_id):
            partner = self._require(partner_id)

            if partner.active_order_id is None:
                logger.debug("Partner already free", partner_id=partner_id)
                return partner.model_copy(deep=True)

            released = self._replace(
                partner,
                is_available=True,
                active_order_id=None,
            )
            self._partners[partner_id] = released

            logger.info(
                "Partner released",
                partner_id=partner_id,
                order_id=partner.active_order_id,
            )
            return released.model_copy(deep=True)

    async def set_on_duty(self, partner_id: str, on_duty: bool) -> DeliveryPartner:
        """
        Apply the partner's own availability toggle.

        Going off duty does not release an active order; the partner simply
        stops being offered for new ones.

        Raises:
            PartnerNotFoundError: If the partner is not registered
        """
        async with self._lock_for(partner_id):
            partner = self._replace(self._require(partner_id), is_on_duty=on_duty)
            self._partners[partner_id] = partner

            logger.info(
                "Partner duty status changed",
                partner_id=partner_id,
                is_on_duty=on_duty,
                active_order_id=partner.active_order_id,
            )
            return partner.model_copy(deep=True)
