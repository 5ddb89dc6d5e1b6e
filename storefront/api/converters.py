"""Converters from ORM rows and domain objects to response schemas."""

from decimal import Decimal

from storefront.api.schemas import (
    CartItemSchema,
    CartResponse,
    OrderItemSchema,
    OrderSchema,
    PageMeta,
    ShippingAddressSchema,
    ShippingRuleSchema,
    StatusHistorySchema,
)
from storefront.domain.shipping import ShippingRuleSnapshot
from storefront.domain.value_objects import ZERO, OrderTotals, to_money
from storefront.infrastructure.models import CartModel, OrderModel


def money(amount: Decimal | None) -> str:
    """Format an amount with two decimals."""
    return f"{to_money(amount if amount is not None else ZERO):.2f}"


def page_meta(total: int, page: int, page_size: int) -> PageMeta:
    """Build pagination metadata."""
    return PageMeta(total=total, page=page, page_size=page_size, has_more=page * page_size < total)


def rule_to_schema(rule: ShippingRuleSnapshot) -> ShippingRuleSchema:
    """Convert a rule snapshot to its response schema."""
    return ShippingRuleSchema(
        id=rule.id,
        name=rule.name,
        pincode_from=rule.pincode_from,
        pincode_to=rule.pincode_to,
        charge=money(rule.charge),
        min_order_value=money(rule.min_order_value) if rule.min_order_value is not None else None,
        priority=rule.priority,
        is_active=rule.is_active,
    )


def order_to_schema(order: OrderModel) -> OrderSchema:
    """Convert an order row (items and history loaded) to its response schema."""
    return OrderSchema(
        order_number=order.order_number or "",
        user_id=order.user_id,
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        shipping_address=ShippingAddressSchema(
            line1=order.shipping_line1,
            line2=order.shipping_line2,
            city=order.shipping_city,
            state=order.shipping_state,
            postal_code=order.shipping_postal_code,
            country=order.shipping_country,
        ),
        subtotal=money(order.subtotal),
        shipping=money(order.shipping),
        tax=money(order.tax),
        discount=money(order.discount),
        grand_total=money(order.grand_total),
        currency=order.currency,
        order_status=order.order_status,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        gateway_order_id=order.gateway_order_id,
        gateway_payment_id=order.gateway_payment_id,
        paid_at=order.paid_at,
        has_invoice=order.invoice_pdf_path is not None,
        items=[
            OrderItemSchema(
                variant_id=item.variant_id,
                product_name=item.product_name,
                sku=item.sku,
                quantity=item.quantity,
                price=money(item.unit_price),
                total=money(item.line_total),
            )
            for item in order.items
        ],
        status_history=[
            StatusHistorySchema(**entry.to_dict()) for entry in order.status_history
        ],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def cart_to_response(cart: CartModel | None, session_id: str | None = None) -> CartResponse:
    """Convert a cart row (items, variants and products loaded) to its response.

    A missing cart renders as an empty skeleton.
    """
    if cart is None:
        return CartResponse(session_id=session_id)

    items = [
        CartItemSchema(
            variant_id=item.variant_id,
            product_name=item.variant.display_name,
            sku=item.variant.sku,
            quantity=item.quantity,
            price=money(item.price),
            line_total=money(item.price * item.quantity),
            stock=item.variant.stock,
        )
        for item in cart.items
    ]
    return CartResponse(
        id=cart.id,
        session_id=cart.session_id or session_id,
        items=items,
        subtotal=money(OrderTotals.sum_lines([(item.price, item.quantity) for item in cart.items])),
        item_count=sum(item.quantity for item in cart.items),
    )
