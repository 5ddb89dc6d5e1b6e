"""State machines for orders.

An order carries two independent state machines: fulfillment status
(where the goods are) and payment status (whether the money arrived).
Both are deterministic; transitions not listed here are rejected.
"""

from enum import Enum

from storefront.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Fulfillment State Machine
# ============================================================================


class OrderStatus(str, Enum):
    """Order fulfillment states.

    State diagram:
        PENDING ───────────────────────────────────────► CANCELLED
          │                                                 ▲
          │ create payment intent                           │
          ▼                                                 │
        AWAITING_PAYMENT ──────────────────────────────►────┤
          │                                                 │
          │ payment verified                                │
          ▼                                                 │
        PLACED ────────────────────────────────────────►────┤
          │                                                 │
          │ start processing                                │
          ▼                                                 │
        PROCESSING ────────────────────────────────────►────┘
          │
          │ ship
          ▼
        SHIPPED
          │
          │ deliver
          ▼
        DELIVERED
          │
          │ return
          ▼
        RETURNED
    """

    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    PLACED = "placed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    RETURNED = "returned"
    CANCELLED = "cancelled"

    def can_transition_to(self, target: "OrderStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _ORDER_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["OrderStatus"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return list(_ORDER_TRANSITIONS.get(self, set()))

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) state.

        Returns:
            True if no further transitions are possible.
        """
        return len(_ORDER_TRANSITIONS.get(self, set())) == 0

    def requires_payment(self) -> bool:
        """Check if entering this state needs a paid order.

        Returns:
            True for the fulfillment states from PLACED to DELIVERED.
        """
        return self in _PAID_STATES


# Order state transitions (defined outside enum to avoid Enum restrictions)
_ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.AWAITING_PAYMENT, OrderStatus.CANCELLED},
    OrderStatus.AWAITING_PAYMENT: {
        OrderStatus.AWAITING_PAYMENT,  # a fresh intent replaces the previous one
        OrderStatus.PLACED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PLACED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.RETURNED: set(),  # Terminal state
    OrderStatus.CANCELLED: set(),  # Terminal state
}

_PAID_STATES = frozenset(
    {
        OrderStatus.PLACED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
    }
)


# ============================================================================
# Payment State Machine
# ============================================================================


class PaymentStatus(str, Enum):
    """Order payment states.

    State diagram:
        PENDING ──────── bad signature ──────► FAILED
          │   ▲                                  │
          │   └──────── new payment intent ──────┘
          │ signature verified
          ▼
        PAID
    """

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"

    def can_transition_to(self, target: "PaymentStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _PAYMENT_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["PaymentStatus"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return list(_PAYMENT_TRANSITIONS.get(self, set()))

    def is_final(self) -> bool:
        """Check if the payment can never change again.

        Returns:
            True once paid.
        """
        return self == PaymentStatus.PAID


_PAYMENT_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PENDING},
    PaymentStatus.PAID: set(),  # Terminal state
}


# ============================================================================
# State Machine Helpers
# ============================================================================


def validate_order_transition(
    order_number: str,
    current_status: OrderStatus,
    target_status: OrderStatus,
) -> None:
    """Validate and raise if order state transition is invalid.

    Args:
        order_number: Order identifier for error message.
        current_status: Current order status.
        target_status: Target order status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="Order",
            entity_id=order_number,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )


def validate_payment_transition(
    order_number: str,
    current_status: PaymentStatus,
    target_status: PaymentStatus,
) -> None:
    """Validate and raise if payment state transition is invalid.

    Args:
        order_number: Order identifier for error message.
        current_status: Current payment status.
        target_status: Target payment status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="Payment",
            entity_id=order_number,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )
