"""API schemas for the storefront API.

Pydantic models for request/response validation and serialization.
Payloads use camelCase on the wire; request bodies reject unknown keys.
Money is serialized as a two-decimal string.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for response payloads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiRequest(ApiModel):
    """Base for request bodies."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | list[Any] = Field(
        default_factory=dict, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class PageMeta(ApiModel):
    """Pagination metadata."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    page_size: int = Field(..., description="Items per page")
    has_more: bool = Field(..., description="Whether there are more pages")


class OrderStatusEnum(str, Enum):
    """Fulfillment status values."""

    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    PLACED = "placed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    RETURNED = "returned"
    CANCELLED = "cancelled"


class PaymentStatusEnum(str, Enum):
    """Payment status values."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


# ============================================================================
# Cart Schemas
# ============================================================================


class CartItemSchema(ApiModel):
    """Cart line."""

    variant_id: int
    product_name: str
    sku: str | None = None
    quantity: int
    price: str = Field(..., description="Unit price snapshot")
    line_total: str
    stock: int | None = Field(default=None, description="Current tracked stock")


class CartResponse(ApiModel):
    """Cart contents."""

    id: int | None = None
    session_id: str | None = None
    items: list[CartItemSchema] = Field(default_factory=list)
    subtotal: str = "0.00"
    item_count: int = 0


class AddCartItemRequest(ApiRequest):
    """Request to add a variant to the cart."""

    variant_id: int
    quantity: int = 1
    session_id: str | None = None


class UpdateCartItemRequest(ApiRequest):
    """Request to set a line quantity."""

    quantity: int
    session_id: str | None = None


class MergeCartRequest(ApiRequest):
    """Request to fold a guest cart into the user's cart."""

    session_id: str = Field(..., min_length=1)


# ============================================================================
# Checkout Schemas
# ============================================================================


class AddressSchema(ApiRequest):
    """Shipping address."""

    line1: str = Field(..., min_length=1)
    line2: str | None = None
    city: str = Field(..., min_length=1)
    state: str | None = None
    postal_code: str | int | None = None
    country: str = Field(default="IN", min_length=2, max_length=2)


class CustomerSchema(ApiRequest):
    """Customer identity and shipping address."""

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str | None = None
    address: AddressSchema | None = None


class CheckoutRequestSchema(ApiRequest):
    """Request to place an order from a cart."""

    cart_id: int | None = None
    session_id: str | None = None
    payment_method: str = "razorpay"
    customer: CustomerSchema


class ShippingRuleSchema(ApiModel):
    """Shipping rule."""

    id: int
    name: str | None = None
    pincode_from: int
    pincode_to: int
    charge: str
    min_order_value: str | None = None
    priority: int
    is_active: bool


class OrderItemSchema(ApiModel):
    """Order line snapshot."""

    variant_id: int | None = None
    product_name: str
    sku: str | None = None
    quantity: int
    price: str
    total: str


class StatusHistorySchema(ApiModel):
    """Order status history entry."""

    field: str
    from_status: str | None = None
    to_status: str
    reason: str | None = None
    actor: str | None = None
    created_at: datetime | None = None


class ShippingAddressSchema(ApiModel):
    """Shipping address as stored on the order."""

    line1: str
    line2: str | None = None
    city: str
    state: str | None = None
    postal_code: str
    country: str


class OrderSchema(ApiModel):
    """Order."""

    order_number: str
    user_id: int | None = None
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    shipping_address: ShippingAddressSchema
    subtotal: str
    shipping: str
    tax: str
    discount: str
    grand_total: str
    currency: str
    order_status: OrderStatusEnum
    payment_method: str
    payment_status: PaymentStatusEnum
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    paid_at: datetime | None = None
    has_invoice: bool = False
    items: list[OrderItemSchema] = Field(default_factory=list)
    status_history: list[StatusHistorySchema] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class CheckoutResponse(ApiModel):
    """Placed order."""

    order_number: str
    data: OrderSchema
    applied_shipping_rule: ShippingRuleSchema | None = None
    guest_access_token: str | None = Field(
        default=None, description="Returned once for guest orders"
    )


class OrderListResponse(ApiModel):
    """Page of orders."""

    data: list[OrderSchema]
    meta: PageMeta


class OrderStatusUpdateRequest(ApiRequest):
    """Admin request to move an order to a new status."""

    status: OrderStatusEnum
    reason: str | None = None
    restock: bool = Field(True, description="Return stock when cancelling")


# ============================================================================
# Payment Schemas
# ============================================================================


class CreatePaymentOrderRequest(ApiRequest):
    """Request to create a gateway intent for an order."""

    order_number: str = Field(..., min_length=1)


class CreatePaymentOrderResponse(ApiModel):
    """Gateway intent handed to the client checkout widget."""

    key_id: str | None = None
    gateway_order_id: str
    amount: int = Field(..., description="Amount in minor units")
    currency: str
    order_number: str


class VerifyPaymentRequest(ApiRequest):
    """Signature the gateway returned to the client."""

    order_number: str = Field(..., min_length=1)
    gateway_order_id: str = Field(..., min_length=1)
    gateway_payment_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class VerifyPaymentResponse(ApiModel):
    """Verification outcome."""

    success: bool
    order_number: str
    payment_status: PaymentStatusEnum | None = None
    already_verified: bool = False


# ============================================================================
# Shipping Schemas
# ============================================================================


class ShippingQuoteResponse(ApiModel):
    """Resolved shipping for a pincode."""

    pincode: int
    subtotal: str
    shipping: str
    waived: bool
    applied_rule: ShippingRuleSchema | None = None


class ShippingRuleWriteRequest(ApiRequest):
    """Create or partially update a shipping rule.

    A recognized state name or code may stand in for an explicit range.
    """

    name: str | None = None
    pincode_from: int | str | None = None
    pincode_to: int | str | None = None
    state: str | None = None
    charge: Decimal | None = None
    min_order_value: Decimal | None = None
    priority: int | None = None
    is_active: bool | None = None


class ShippingRuleResponse(ApiModel):
    """Written rule with any overlap warning."""

    data: ShippingRuleSchema
    overlap_with: ShippingRuleSchema | None = None


class ShippingRuleListResponse(ApiModel):
    """Page of shipping rules."""

    data: list[ShippingRuleSchema]
    meta: PageMeta
