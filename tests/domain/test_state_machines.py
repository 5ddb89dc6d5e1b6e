"""Tests for domain state machines."""

import pytest

from storefront.domain import OrderStatus, PaymentStatus
from storefront.domain.exceptions import InvalidStateTransitionError
from storefront.domain.state_machines import (
    validate_order_transition,
    validate_payment_transition,
)


class TestOrderStatus:
    """Tests for OrderStatus state machine."""

    def test_pending_can_await_payment(self) -> None:
        """PENDING can transition to AWAITING_PAYMENT."""
        assert OrderStatus.PENDING.can_transition_to(OrderStatus.AWAITING_PAYMENT)

    def test_pending_cannot_be_placed(self) -> None:
        """PLACED is reached only through a payment intent."""
        assert not OrderStatus.PENDING.can_transition_to(OrderStatus.PLACED)
        assert OrderStatus.AWAITING_PAYMENT.can_transition_to(OrderStatus.PLACED)

    def test_awaiting_payment_accepts_fresh_intent(self) -> None:
        """A second intent keeps the order in AWAITING_PAYMENT."""
        assert OrderStatus.AWAITING_PAYMENT.can_transition_to(OrderStatus.AWAITING_PAYMENT)

    def test_placed_moves_to_processing(self) -> None:
        """PLACED can transition to PROCESSING."""
        assert OrderStatus.PLACED.can_transition_to(OrderStatus.PROCESSING)

    def test_placed_cannot_skip_to_shipped(self) -> None:
        """PLACED cannot skip PROCESSING."""
        assert not OrderStatus.PLACED.can_transition_to(OrderStatus.SHIPPED)

    def test_fulfillment_chain(self) -> None:
        """PROCESSING -> SHIPPED -> DELIVERED -> RETURNED is valid."""
        assert OrderStatus.PROCESSING.can_transition_to(OrderStatus.SHIPPED)
        assert OrderStatus.SHIPPED.can_transition_to(OrderStatus.DELIVERED)
        assert OrderStatus.DELIVERED.can_transition_to(OrderStatus.RETURNED)

    def test_shipped_cannot_be_cancelled(self) -> None:
        """Goods that left the warehouse cannot be cancelled."""
        assert not OrderStatus.SHIPPED.can_transition_to(OrderStatus.CANCELLED)
        assert OrderStatus.PROCESSING.can_transition_to(OrderStatus.CANCELLED)

    def test_fulfillment_states_require_payment(self) -> None:
        """Only states from PLACED to DELIVERED need a paid order."""
        assert OrderStatus.PLACED.requires_payment()
        assert OrderStatus.DELIVERED.requires_payment()
        assert not OrderStatus.CANCELLED.requires_payment()
        assert not OrderStatus.RETURNED.requires_payment()
        assert not OrderStatus.AWAITING_PAYMENT.requires_payment()

    def test_terminal_states(self) -> None:
        """RETURNED and CANCELLED are terminal."""
        assert OrderStatus.RETURNED.is_terminal()
        assert OrderStatus.CANCELLED.is_terminal()
        assert not OrderStatus.PENDING.is_terminal()

    def test_cancelled_has_no_transitions(self) -> None:
        """CANCELLED allows nothing."""
        assert OrderStatus.CANCELLED.allowed_transitions() == []


class TestPaymentStatus:
    """Tests for PaymentStatus state machine."""

    def test_pending_can_be_paid(self) -> None:
        """PENDING can transition to PAID."""
        assert PaymentStatus.PENDING.can_transition_to(PaymentStatus.PAID)

    def test_pending_can_fail(self) -> None:
        """PENDING can transition to FAILED."""
        assert PaymentStatus.PENDING.can_transition_to(PaymentStatus.FAILED)

    def test_failed_can_retry(self) -> None:
        """FAILED returns to PENDING with a new intent."""
        assert PaymentStatus.FAILED.can_transition_to(PaymentStatus.PENDING)

    def test_failed_cannot_become_paid(self) -> None:
        """FAILED cannot jump to PAID."""
        assert not PaymentStatus.FAILED.can_transition_to(PaymentStatus.PAID)

    def test_paid_is_final(self) -> None:
        """PAID never changes again."""
        assert PaymentStatus.PAID.is_final()
        assert PaymentStatus.PAID.allowed_transitions() == []
        assert not PaymentStatus.PENDING.is_final()


class TestTransitionValidation:
    """Tests for the raising validators."""

    def test_valid_order_transition_passes(self) -> None:
        """Valid transitions do not raise."""
        validate_order_transition("ORD-1", OrderStatus.PLACED, OrderStatus.PROCESSING)

    def test_invalid_order_transition_raises(self) -> None:
        """Invalid transitions raise with context."""
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            validate_order_transition("ORD-1", OrderStatus.DELIVERED, OrderStatus.PENDING)

        error = exc_info.value
        assert error.error_code == "INVALID_TRANSITION"
        assert error.details["current_state"] == "delivered"
        assert error.details["target_state"] == "pending"
        assert error.details["allowed_transitions"] == ["returned"]

    def test_invalid_payment_transition_raises(self) -> None:
        """Paid payments cannot fail."""
        with pytest.raises(InvalidStateTransitionError):
            validate_payment_transition("ORD-1", PaymentStatus.PAID, PaymentStatus.FAILED)
