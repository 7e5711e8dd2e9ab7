"""Order state machine implementation with transition validation.

This module implements the OrderStateMachine class for managing the seller
order lifecycle. It validates requested transitions against the status graph,
builds the mutations the order store applies atomically, records the
append-only status history and runs per-status side effects.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

from src.core.logging import get_logger
from src.services.orders.enums import (
    OrderAction,
    OrderStatus,
    TimelineActor,
    available_actions,
    get_allowed_order_transitions,
    validate_order_status_transition,
)
from src.services.orders.exceptions import (
    IllegalTransitionError,
    InvalidReasonError,
    OrderTerminalError,
)
from src.services.orders.models import (
    DeliveryAssignment,
    Order,
    PackingProgress,
    StatusHistoryEntry,
    TransitionResult,
    utc_now,
)
from src.services.orders.repository import OrderMutation, OrderStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransitionRequest:
    """Everything needed to apply one transition to an order."""

    target_status: OrderStatus
    reason: Optional[str] = None
    actor: TimelineActor = TimelineActor.SELLER
    assignment: Optional[DeliveryAssignment] = None


class OrderStateMachine:
    """State machine for managing seller order lifecycle transitions.

    Transitions are validated against the edge table in
    ``src.services.orders.enums``. Validation runs inside the store mutation,
    so it always sees the latest record while holding the order's lock.
    """

    def __init__(self, store: OrderStore):
        """Initialize state machine with the order store.

        Args:
            store: Store that owns and persists orders
        """
        self.store = store
        self._transition_guards: Dict[
            tuple[OrderStatus, OrderStatus],
            Callable[[Order, TransitionRequest], bool]
        ] = self._initialize_guards()
        self._side_effects: Dict[
            OrderStatus,
            Callable[[Order, TransitionRequest], None]
        ] = self._initialize_side_effects()

        logger.info(
            "OrderStateMachine initialized",
            guards=len(self._transition_guards),
            side_effects=len(self._side_effects),
        )

    def _initialize_guards(
        self
    ) -> Dict[tuple[OrderStatus, OrderStatus], Callable[[Order, TransitionRequest], bool]]:
        """Initialize transition guard functions.

        Returns:
            Dictionary mapping transitions to guard functions
        """
        return {
            (OrderStatus.READY, OrderStatus.ASSIGNED): self._guard_assignment_present,
        }

    def _initialize_side_effects(
        self
    ) -> Dict[OrderStatus, Callable[[Order, TransitionRequest], None]]:
        """Initialize side effect handlers for status changes.

        Returns:
            Dictionary mapping target statuses to side effect functions
        """
        return {
            OrderStatus.READY: self._effect_ready,
            OrderStatus.ASSIGNED: self._effect_assigned,
            OrderStatus.CANCELLED: self._effect_closed_with_reason,
            OrderStatus.DECLINED: self._effect_closed_with_reason,
        }

    def validate_transition(
        self,
        order: Order,
        target_status: OrderStatus,
        reason: Optional[str] = None,
        request: Optional[TransitionRequest] = None,
    ) -> None:
        """Validate if a transition is allowed for the order.

        Checks run in order: terminal source, edge table, mandatory reason,
        then any guard registered for the edge.

        Args:
            order: Order to validate
            target_status: Desired target status
            reason: Reason for the change, mandatory for decline and cancel
            request: Full transition request, used by guards

        Raises:
            OrderTerminalError: If the order is already in a terminal status
            IllegalTransitionError: If the edge does not exist or a guard fails
            InvalidReasonError: If a decline/cancel reason is missing
        """
        current_status = order.status

        if current_status.is_terminal():
            logger.warning(
                "Transition attempted on terminal order",
                order_id=order.id,
                current_status=current_status.value,
                target_status=target_status.value,
            )
            raise OrderTerminalError(order.id, current_status)

        if not validate_order_status_transition(current_status, target_status):
            logger.warning(
                "Invalid state transition attempted",
                order_id=order.id,
                current_status=current_status.value,
                target_status=target_status.value,
            )
            raise IllegalTransitionError(
                current_status,
                target_status,
                order_id=order.id,
            )

        if target_status.requires_reason() and not (reason and reason.strip()):
            logger.warning(
                "Transition rejected without reason",
                order_id=order.id,
                target_status=target_status.value,
            )
            raise InvalidReasonError(target_status)

        guard = self._transition_guards.get((current_status, target_status))
        if guard is not None:
            request = request or TransitionRequest(target_status, reason)
            if not guard(order, request):
                raise IllegalTransitionError(
                    current_status,
                    target_status,
                    order_id=order.id,
                    guard=guard.__name__,
                )

    def can_transition_to(self, order: Order, target_status: OrderStatus) -> bool:
        """Check whether the edge from the order's status to target exists."""
        return validate_order_status_transition(order.status, target_status)

    def get_allowed_transitions(self, order: Order) -> Set[OrderStatus]:
        """Get allowed transitions from current order status."""
        return get_allowed_order_transitions(order.status)

    def available_actions(self, status: OrderStatus) -> List[OrderAction]:
        """Seller actions offered for a status; pure table lookup."""
        return available_actions(status)

    def build_mutation(self, request: TransitionRequest) -> OrderMutation:
        """Build the store mutation applying a transition request.

        Args:
            request: Transition to apply

        Returns:
            Callable validating and applying the transition to an order copy
        """

        def mutation(order: Order) -> Order:
            self.validate_transition(
                order,
                request.target_status,
                request.reason,
                request,
            )
            old_status = order.status
            order.status = request.target_status

            side_effect = self._side_effects.get(request.target_status)
            if side_effect is not None:
                side_effect(order, request)

            self._record_status_change(order, old_status, request)
            return order

        return mutation

    async def transition(
        self,
        order_id: str,
        target_status: OrderStatus,
        reason: Optional[str] = None,
        actor: TimelineActor = TimelineActor.SELLER,
    ) -> TransitionResult:
        """Validate and apply a status transition.

        Moving to ``assigned`` needs a delivery assignment and is only done
        by the assignment coordinator; through this method it fails the
        assignment guard.

        Args:
            order_id: Order id or order number
            target_status: Desired target status
            reason: Reason for decline/cancel, stored as the history note
            actor: Party requesting the change

        Returns:
            TransitionResult with the updated order, and packing progress
            when the target is ``ready``

        Raises:
            OrderNotFoundError: If the order does not exist
            OrderTerminalError: If the order is terminal
            IllegalTransitionError: If the edge is not allowed
            InvalidReasonError: If a required reason is missing
        """
        request = TransitionRequest(
            target_status=target_status,
            reason=reason.strip() if reason else None,
            actor=actor,
        )

        order = await self.store.apply(order_id, self.build_mutation(request))
        entry = order.status_history[-1]

        packing = None
        if target_status == OrderStatus.READY:
            packing = PackingProgress.for_order(order)

        logger.info(
            "State transition applied successfully",
            order_id=order.id,
            order_number=order.order_id,
            transition=f"{self._previous_status(order).value}->{target_status.value}",
            actor=actor.value,
            note=entry.note,
        )

        return TransitionResult(order=order, packing=packing)

    @staticmethod
    def _previous_status(order: Order) -> OrderStatus:
        history = order.status_history
        return history[-2].status if len(history) > 1 else order.status

    def _record_status_change(
        self,
        order: Order,
        old_status: OrderStatus,
        request: TransitionRequest,
    ) -> None:
        """Append the status change to the order history.

        Args:
            order: Order being mutated
            old_status: Previous status
            request: Transition request being applied
        """
        note = request.reason
        if request.target_status == OrderStatus.READY:
            note = self._packing_note(order) or note

        order.status_history.append(
            StatusHistoryEntry(
                status=request.target_status,
                timestamp=utc_now(),
                note=note,
                actor=request.actor,
                description=request.target_status.description,
            )
        )

        logger.debug(
            "Status change recorded",
            order_id=order.id,
            old_status=old_status.value,
            new_status=request.target_status.value,
        )

    @staticmethod
    def _packing_note(order: Order) -> Optional[str]:
        progress = PackingProgress.for_order(order)
        if progress.all_packed:
            return None
        return (
            f"Marked ready with {progress.packed_count}/{progress.total} "
            "items packed"
        )

    # Transition Guards

    def _guard_assignment_present(
        self, order: Order, request: TransitionRequest
    ) -> bool:
        """Guard for the ready -> assigned transition.

        Args:
            order: Order instance
            request: Transition request

        Returns:
            True if the request carries a delivery assignment
        """
        has_assignment = request.assignment is not None

        logger.debug(
            "Assignment guard check",
            order_id=order.id,
            has_assignment=has_assignment,
        )

        return has_assignment

    # Side Effects

    def _effect_ready(self, order: Order, request: TransitionRequest) -> None:
        """Side effect for ready state: surface partial-pack overrides."""
        progress = PackingProgress.for_order(order)
        if not progress.all_packed:
            logger.warning(
                "Order marked ready with unpacked items",
                order_id=order.id,
                packed_count=progress.packed_count,
                total=progress.total,
            )

    def _effect_assigned(self, order: Order, request: TransitionRequest) -> None:
        """Side effect for assigned state: bind the assignment snapshot."""
        order.delivery_assignment = request.assignment.model_copy(deep=True)

    def _effect_closed_with_reason(
        self, order: Order, request: TransitionRequest
    ) -> None:
        """Side effect for cancelled/declined states: keep the reason."""
        order.cancellation_reason = request.reason

        logger.info(
            "Order closed by seller",
            order_id=order.id,
            status=request.target_status.value,
            reason=request.reason,
        )


def get_order_state_machine(store: OrderStore) -> OrderStateMachine:
    """Factory function to create OrderStateMachine instance.

    Args:
        store: Order store

    Returns:
        OrderStateMachine instance
    """
    return OrderStateMachine(store)
