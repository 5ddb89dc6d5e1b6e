"""Domain exceptions.

All domain-level errors that represent business rule violations.
Each carries a stable ``error_code`` that the application layer hands
to clients unchanged.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    error_code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid state transition is attempted."""

    error_code = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of state being changed (e.g., "Order", "Payment").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = sorted(allowed_transitions or [])
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Cart Errors
# ============================================================================


class CartError(DomainError):
    """Base class for cart-related errors."""

    pass


class CartEmptyError(CartError):
    """Raised when trying to checkout an empty or unknown cart."""

    error_code = "EMPTY_CART"

    def __init__(self, cart_id: int | None = None) -> None:
        """Initialize cart empty error.

        Args:
            cart_id: ID of the cart, if one was found.
        """
        super().__init__("Cart is empty", details={"cart_id": cart_id})


class InvalidQuantityError(CartError):
    """Raised when an invalid quantity is provided."""

    error_code = "INVALID_QUANTITY"

    def __init__(self, quantity: int, reason: str = "Quantity must be positive") -> None:
        """Initialize invalid quantity error.

        Args:
            quantity: The invalid quantity value.
            reason: Explanation of why the quantity is invalid.
        """
        super().__init__(
            f"Invalid quantity {quantity}: {reason}",
            details={"quantity": quantity, "reason": reason},
        )


class CartItemNotFoundError(CartError):
    """Raised when a cart has no line for a variant."""

    error_code = "CART_ITEM_NOT_FOUND"

    def __init__(self, variant_id: int) -> None:
        """Initialize cart item not found error.

        Args:
            variant_id: Variant the caller referenced.
        """
        super().__init__(
            f"Variant {variant_id} is not in the cart",
            details={"variant_id": variant_id},
        )


# ============================================================================
# Inventory Errors
# ============================================================================


class InventoryError(DomainError):
    """Base class for stock-related errors."""

    pass


class VariantNotFoundError(InventoryError):
    """Raised when a referenced variant does not exist."""

    error_code = "VARIANT_NOT_FOUND"

    def __init__(self, variant_id: int) -> None:
        """Initialize variant not found error.

        Args:
            variant_id: The missing variant.
        """
        super().__init__(
            f"Variant not found: {variant_id}",
            details={"variant_id": variant_id},
        )


class InsufficientStockError(InventoryError):
    """Raised when requested quantity exceeds available stock."""

    error_code = "INSUFFICIENT_STOCK"

    def __init__(self, variant_id: int, requested: int, available: int) -> None:
        """Initialize insufficient stock error.

        Args:
            variant_id: Variant that ran short.
            requested: Quantity requested.
            available: Quantity currently in stock.
        """
        super().__init__(
            f"Insufficient stock for variant {variant_id}: "
            f"requested {requested}, available {available}",
            details={
                "variant_id": variant_id,
                "requested": requested,
                "available": available,
            },
        )
        self.variant_id = variant_id
        self.available = available


# ============================================================================
# Address Errors
# ============================================================================


class AddressError(DomainError):
    """Base class for shipping address errors."""

    pass


class MissingShippingAddressError(AddressError):
    """Raised when checkout has no usable shipping address."""

    error_code = "MISSING_SHIPPING_ADDRESS"

    def __init__(self) -> None:
        """Initialize missing shipping address error."""
        super().__init__("Shipping address (with postalCode) required")


class InvalidPostalCodeError(AddressError):
    """Raised when a postal code cannot be normalized into a pincode."""

    error_code = "INVALID_POSTAL_CODE"

    def __init__(self, value: object) -> None:
        """Initialize invalid postal code error.

        Args:
            value: The rejected input.
        """
        super().__init__(
            f"Invalid postal code: {value!r}",
            details={"postal_code": None if value is None else str(value)},
        )


# ============================================================================
# Order Errors
# ============================================================================


class OrderError(DomainError):
    """Base class for order-related errors."""

    pass


class OrderNotFoundError(OrderError):
    """Raised when an order number does not exist."""

    error_code = "ORDER_NOT_FOUND"

    def __init__(self, order_number: str) -> None:
        """Initialize order not found error.

        Args:
            order_number: The unknown order number.
        """
        super().__init__(
            f"Order not found: {order_number}",
            details={"order_number": order_number},
        )


# ============================================================================
# Payment Errors
# ============================================================================


class PaymentError(DomainError):
    """Base class for payment-related errors."""

    pass


class AlreadyPaidError(PaymentError):
    """Raised when an intent is requested for a paid order."""

    error_code = "ALREADY_PAID"

    def __init__(self, order_number: str) -> None:
        """Initialize already paid error.

        Args:
            order_number: The paid order.
        """
        super().__init__(
            f"Order {order_number} is already paid",
            details={"order_number": order_number},
        )


class InvalidAmountError(PaymentError):
    """Raised when the gateway amount would not be strictly positive."""

    error_code = "INVALID_AMOUNT"

    def __init__(self, order_number: str, amount_minor: int) -> None:
        """Initialize invalid amount error.

        Args:
            order_number: The order.
            amount_minor: Computed amount in minor units.
        """
        super().__init__(
            f"Invalid payable amount for order {order_number}: {amount_minor}",
            details={"order_number": order_number, "amount_minor": amount_minor},
        )


class OrderMismatchError(PaymentError):
    """Raised when a gateway order id does not belong to the order."""

    error_code = "ORDER_MISMATCH"

    def __init__(self, order_number: str) -> None:
        """Initialize order mismatch error.

        Args:
            order_number: The order the client referenced.
        """
        super().__init__(
            "Order mismatch",
            details={"order_number": order_number},
        )


class InvalidSignatureError(PaymentError):
    """Raised when a payment signature does not verify."""

    error_code = "INVALID_SIGNATURE"

    def __init__(self, order_number: str) -> None:
        super().__init__(
            "Bad signature",
            details={"order_number": order_number},
        )


class PaymentNotPendingError(PaymentError):
    """Raised when verification targets a payment that is no longer pending."""

    error_code = "PAYMENT_NOT_PENDING"

    def __init__(self, order_number: str, payment_status: str) -> None:
        """Initialize payment not pending error.

        Args:
            order_number: The order.
            payment_status: Its current payment status.
        """
        super().__init__(
            f"Payment for order {order_number} is {payment_status}",
            details={"order_number": order_number, "payment_status": payment_status},
        )


class PaymentNotCompletedError(PaymentError):
    """Raised when an unpaid order is asked for something that needs payment."""

    error_code = "PAYMENT_NOT_COMPLETED"

    def __init__(self, order_number: str, payment_status: str, message: str | None = None) -> None:
        """Initialize payment not completed error.

        Args:
            order_number: The order.
            payment_status: Its current payment status.
            message: Override for the default message.
        """
        super().__init__(
            message or f"Order {order_number} is not paid",
            details={"order_number": order_number, "payment_status": payment_status},
        )


# ============================================================================
# Shipping Rule Errors
# ============================================================================


class ShippingRuleError(DomainError):
    """Base class for shipping rule errors."""

    pass


class InvalidShippingRuleError(ShippingRuleError):
    """Raised when a rule definition is inconsistent."""

    error_code = "INVALID_RULE"

    def __init__(self, reason: str) -> None:
        """Initialize invalid rule error.

        Args:
            reason: What is wrong with the rule.
        """
        super().__init__(reason, details={"reason": reason})


class ShippingRuleNotFoundError(ShippingRuleError):
    """Raised when a rule id does not exist."""

    error_code = "RULE_NOT_FOUND"

    def __init__(self, rule_id: int) -> None:
        """Initialize rule not found error.

        Args:
            rule_id: The unknown rule id.
        """
        super().__init__(
            f"Shipping rule not found: {rule_id}",
            details={"rule_id": rule_id},
        )
