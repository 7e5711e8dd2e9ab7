"""
Test suite for order status, action and transition tables.
"""

import pytest

from src.services.orders.enums import (
    ACTION_TARGETS,
    AVAILABLE_ACTIONS,
    ORDER_STATUS_TRANSITIONS,
    OrderAction,
    OrderStatus,
    available_actions,
    get_allowed_order_transitions,
    validate_order_status_transition,
)


# ============================================================================
# Status Helpers
# ============================================================================


class TestOrderStatusHelpers:
    """Test OrderStatus classification helpers."""

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.DECLINED],
    )
    def test_terminal_statuses(self, status: OrderStatus):
        assert status.is_terminal()
        assert ORDER_STATUS_TRANSITIONS[status] == set()

    def test_non_terminal_statuses_have_outgoing_edges(self):
        for status in OrderStatus:
            if not status.is_terminal():
                assert ORDER_STATUS_TRANSITIONS[status]

    def test_reason_required_only_for_decline_and_cancel(self):
        assert {s for s in OrderStatus if s.requires_reason()} == {
            OrderStatus.CANCELLED,
            OrderStatus.DECLINED,
        }

    def test_packing_allowed_while_accepted_or_preparing(self):
        assert {s for s in OrderStatus if s.allows_packing()} == {
            OrderStatus.ACCEPTED,
            OrderStatus.PREPARING,
        }

    def test_assignment_statuses(self):
        assert {s for s in OrderStatus if s.has_delivery_assignment()} == {
            OrderStatus.ASSIGNED,
            OrderStatus.OUT_FOR_DELIVERY,
            OrderStatus.DELIVERED,
        }

    def test_from_string_is_case_insensitive(self):
        assert OrderStatus.from_string("Out_For_Delivery") == OrderStatus.OUT_FOR_DELIVERY

    def test_from_string_rejects_unknown_value(self):
        with pytest.raises(ValueError, match="Invalid order status"):
            OrderStatus.from_string("shipped")

    def test_display_name(self):
        assert OrderStatus.OUT_FOR_DELIVERY.display_name == "Out For Delivery"

    def test_every_status_has_description(self):
        for status in OrderStatus:
            assert status.description


# ============================================================================
# Transition Table
# ============================================================================


class TestTransitionTable:
    """Test the order status edge table."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.NEW, OrderStatus.ACCEPTED),
            (OrderStatus.NEW, OrderStatus.DECLINED),
            (OrderStatus.NEW, OrderStatus.CANCELLED),
            (OrderStatus.ACCEPTED, OrderStatus.PREPARING),
            (OrderStatus.ACCEPTED, OrderStatus.CANCELLED),
            (OrderStatus.PREPARING, OrderStatus.READY),
            (OrderStatus.PREPARING, OrderStatus.CANCELLED),
            (OrderStatus.READY, OrderStatus.ASSIGNED),
            (OrderStatus.READY, OrderStatus.CANCELLED),
            (OrderStatus.ASSIGNED, OrderStatus.OUT_FOR_DELIVERY),
            (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED),
        ],
    )
    def test_valid_transitions(self, current: OrderStatus, target: OrderStatus):
        assert validate_order_status_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.NEW, OrderStatus.READY),
            (OrderStatus.ACCEPTED, OrderStatus.DECLINED),
            (OrderStatus.READY, OrderStatus.PREPARING),
            (OrderStatus.ASSIGNED, OrderStatus.CANCELLED),
            (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED),
            (OrderStatus.DELIVERED, OrderStatus.NEW),
        ],
    )
    def test_invalid_transitions(self, current: OrderStatus, target: OrderStatus):
        assert not validate_order_status_transition(current, target)

    def test_allowed_transitions_returns_copy(self):
        allowed = get_allowed_order_transitions(OrderStatus.NEW)
        allowed.clear()

        assert get_allowed_order_transitions(OrderStatus.NEW) == {
            OrderStatus.ACCEPTED,
            OrderStatus.DECLINED,
            OrderStatus.CANCELLED,
        }


# ============================================================================
# Available Actions
# ============================================================================


class TestAvailableActions:
    """Test the seller action lookup."""

    def test_new_order_actions(self):
        assert available_actions(OrderStatus.NEW) == [
            OrderAction.ACCEPT,
            OrderAction.DECLINE,
            OrderAction.CANCEL,
        ]

    def test_delivered_order_can_only_be_tracked(self):
        assert available_actions(OrderStatus.DELIVERED) == [OrderAction.TRACK]

    @pytest.mark.parametrize("status", [OrderStatus.CANCELLED, OrderStatus.DECLINED])
    def test_closed_orders_have_no_actions(self, status: OrderStatus):
        assert available_actions(status) == []

    def test_every_status_has_an_entry(self):
        assert set(AVAILABLE_ACTIONS) == set(OrderStatus)

    def test_offered_actions_follow_existing_edges(self):
        for status in OrderStatus:
            for action in available_actions(status):
                if action == OrderAction.TRACK:
                    continue
                assert validate_order_status_transition(status, ACTION_TARGETS[action])
