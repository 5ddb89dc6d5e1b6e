"""Domain layer - value objects, state machines, shipping rules, exceptions.

This module exports the pure building blocks of the checkout pipeline:

- **Value Objects**: Immutable objects compared by value (Pincode, OrderTotals, GuestAccessToken)
- **State Machines**: Deterministic state transitions (OrderStatus, PaymentStatus)
- **Shipping**: Rule resolution from pincode and subtotal
- **Exceptions**: Domain-specific errors with stable error codes

Example usage:
    from storefront.domain import Pincode, ShippingRuleSnapshot, resolve_shipping

    rule = ShippingRuleSnapshot(
        id=1, pincode_from=560000, pincode_to=560099, charge=Decimal("40")
    )
    quote = resolve_shipping([rule], Pincode.parse("560 001").value, Decimal("200"))
    print(quote.charge)  # 40.00
"""

# Base classes
from storefront.domain.base import ValueObject

# Exceptions
from storefront.domain.exceptions import (
    AddressError,
    AlreadyPaidError,
    CartEmptyError,
    CartError,
    CartItemNotFoundError,
    DomainError,
    InsufficientStockError,
    InvalidAmountError,
    InvalidPostalCodeError,
    InvalidQuantityError,
    InvalidShippingRuleError,
    InvalidSignatureError,
    InvalidStateTransitionError,
    InventoryError,
    MissingShippingAddressError,
    OrderError,
    OrderMismatchError,
    OrderNotFoundError,
    PaymentError,
    PaymentNotCompletedError,
    PaymentNotPendingError,
    ShippingRuleError,
    ShippingRuleNotFoundError,
    VariantNotFoundError,
)

# Shipping
from storefront.domain.shipping import (
    ShippingQuote,
    ShippingRuleSnapshot,
    resolve_shipping,
    select_rule,
)

# State Machines
from storefront.domain.state_machines import (
    OrderStatus,
    PaymentStatus,
    validate_order_transition,
    validate_payment_transition,
)

# Value Objects
from storefront.domain.value_objects import (
    Address,
    CustomerInfo,
    GuestAccessToken,
    OrderNumber,
    OrderTotals,
    Pincode,
    format_money,
    guest_token_matches,
    hash_guest_token,
    normalize_pincode,
    state_pincode_range,
    to_minor_units,
    to_money,
)

__all__ = [
    # Base classes
    "ValueObject",
    # Value Objects
    "Address",
    "CustomerInfo",
    "GuestAccessToken",
    "OrderNumber",
    "OrderTotals",
    "Pincode",
    "format_money",
    "guest_token_matches",
    "hash_guest_token",
    "normalize_pincode",
    "state_pincode_range",
    "to_minor_units",
    "to_money",
    # Shipping
    "ShippingQuote",
    "ShippingRuleSnapshot",
    "resolve_shipping",
    "select_rule",
    # State Machines
    "OrderStatus",
    "PaymentStatus",
    "validate_order_transition",
    "validate_payment_transition",
    # Exceptions
    "DomainError",
    "InvalidStateTransitionError",
    "CartError",
    "CartEmptyError",
    "CartItemNotFoundError",
    "InvalidQuantityError",
    "InventoryError",
    "VariantNotFoundError",
    "InsufficientStockError",
    "AddressError",
    "MissingShippingAddressError",
    "InvalidPostalCodeError",
    "OrderError",
    "OrderNotFoundError",
    "PaymentError",
    "AlreadyPaidError",
    "InvalidAmountError",
    "OrderMismatchError",
    "InvalidSignatureError",
    "PaymentNotCompletedError",
    "PaymentNotPendingError",
    "ShippingRuleError",
    "InvalidShippingRuleError",
    "ShippingRuleNotFoundError",
]
