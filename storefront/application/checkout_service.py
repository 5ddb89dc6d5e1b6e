"""Checkout application service.

Turns a cart into an order inside one transaction:
- Resolving the caller's cart
- Validating the shipping address and postal code before any mutation
- Decrementing stock per line in variant-id order
- Pricing shipping from the rule table
- Persisting the order with line snapshots and clearing the cart

Invoice generation and the confirmation email are returned as post-commit
tasks rather than performed inline.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from storefront.application.post_commit import OrderSideEffects, PostCommitTask
from storefront.domain.exceptions import (
    CartEmptyError,
    DomainError,
    InsufficientStockError,
    MissingShippingAddressError,
    VariantNotFoundError,
)
from storefront.domain.shipping import ShippingRuleSnapshot, resolve_shipping
from storefront.domain.state_machines import OrderStatus, PaymentStatus
from storefront.domain.value_objects import (
    Address,
    CustomerInfo,
    GuestAccessToken,
    OrderNumber,
    OrderTotals,
    to_money,
)
from storefront.infrastructure.database import Database
from storefront.infrastructure.models import CartModel, OrderItemModel, OrderModel
from storefront.infrastructure.repositories import (
    CartRepository,
    OrderRepository,
    ShippingRuleRepository,
    VariantRepository,
)

logger = structlog.get_logger()


# ============================================================================
# Service Input / Result Types
# ============================================================================


@dataclass
class CheckoutRequest:
    """Everything checkout needs from the caller."""

    customer: CustomerInfo
    address: Address | None
    payment_method: str = "razorpay"
    user_id: int | None = None
    cart_id: int | None = None
    session_id: str | None = None


@dataclass
class CheckoutResult:
    """Result of a checkout.

    On success ``order`` is committed; ``deferred_tasks`` are the
    best-effort side effects still to run.
    """

    order: OrderModel | None = None
    applied_rule: ShippingRuleSnapshot | None = None
    guest_access_token: str | None = None
    deferred_tasks: list[PostCommitTask] = field(default_factory=list)
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Checkout Service
# ============================================================================


class CheckoutService:
    """Application service for placing orders."""

    def __init__(
        self,
        db: Database,
        side_effects: OrderSideEffects | None = None,
        currency: str = "INR",
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            db: Database handle.
            side_effects: Builder for post-commit tasks.
            currency: Currency recorded on new orders.
            request_id: Request ID for correlation.
        """
        self.db = db
        self.side_effects = side_effects
        self.currency = currency
        self.request_id = request_id

    async def _resolve_cart(
        self,
        carts: CartRepository,
        request: CheckoutRequest,
    ) -> CartModel | None:
        if request.cart_id is not None:
            cart = await carts.get(request.cart_id)
            if cart is None:
                return None
            owned_by_user = request.user_id is not None and cart.user_id == request.user_id
            owned_by_session = bool(request.session_id) and cart.session_id == request.session_id
            return cart if owned_by_user or owned_by_session else None

        if request.user_id is not None:
            cart = await carts.get_for_user(request.user_id)
            if cart is not None:
                return cart
        if request.session_id:
            return await carts.get_for_session(request.session_id)
        return None

    async def checkout(self, request: CheckoutRequest) -> CheckoutResult:
        """Place an order from the caller's cart.

        Args:
            request: Checkout request.

        Returns:
            CheckoutResult with the committed order or a failure code.
        """
        try:
            if request.address is None or not request.address.postal_code.strip():
                raise MissingShippingAddressError()
            pincode = request.address.pincode.value
        except DomainError as e:
            return self._failure(e)

        address = request.address
        guest_token = GuestAccessToken.generate() if request.user_id is None else None

        try:
            async with self.db.transaction() as session:
                carts = CartRepository(session)
                variants = VariantRepository(session)
                orders = OrderRepository(session)

                cart = await self._resolve_cart(carts, request)
                if cart is None or not cart.items:
                    raise CartEmptyError(cart.id if cart is not None else None)

                # Fixed lock order across concurrent multi-line checkouts.
                lines = sorted(cart.items, key=lambda item: item.variant_id)

                order_items: list[OrderItemModel] = []
                for line in lines:
                    if not await variants.decrement_stock(line.variant_id, line.quantity):
                        current = await variants.get(line.variant_id, refresh=True)
                        if current is None:
                            raise VariantNotFoundError(line.variant_id)
                        raise InsufficientStockError(
                            line.variant_id, line.quantity, current.stock or 0
                        )

                    variant = await variants.get(line.variant_id, refresh=True)
                    if variant is None:
                        raise VariantNotFoundError(line.variant_id)
                    unit_price = to_money(line.price)
                    order_items.append(
                        OrderItemModel(
                            variant_id=variant.id,
                            product_name=variant.display_name,
                            sku=variant.sku,
                            quantity=line.quantity,
                            unit_price=unit_price,
                            line_total=to_money(unit_price * line.quantity),
                        )
                    )

                subtotal = OrderTotals.sum_lines([(line.price, line.quantity) for line in lines])
                rules = await ShippingRuleRepository(session).covering(pincode)
                quote = resolve_shipping(rules, pincode, subtotal)
                totals = OrderTotals(subtotal=subtotal, shipping=quote.charge)

                now = datetime.now(timezone.utc)
                order = OrderModel(
                    order_number=None,
                    user_id=request.user_id,
                    guest_token_hash=guest_token.digest if guest_token else None,
                    cart_id=cart.id,
                    customer_name=request.customer.name,
                    customer_email=request.customer.email,
                    customer_phone=request.customer.phone,
                    shipping_line1=address.line1,
                    shipping_line2=address.line2,
                    shipping_city=address.city,
                    shipping_state=address.state,
                    shipping_postal_code=address.postal_code,
                    shipping_country=address.country,
                    subtotal=totals.subtotal,
                    shipping=totals.shipping,
                    tax=totals.tax,
                    discount=totals.discount,
                    grand_total=totals.grand_total,
                    currency=self.currency,
                    applied_shipping_rule_id=quote.applied_rule.id if quote.applied_rule else None,
                    order_status=OrderStatus.PENDING.value,
                    payment_method=request.payment_method,
                    payment_status=PaymentStatus.PENDING.value,
                    created_at=now,
                    updated_at=now,
                    items=order_items,
                    status_history=[],
                )
                await orders.add(order)
                order.order_number = str(OrderNumber.issue(order.id, now))
                orders.record_transition(
                    order,
                    field="order_status",
                    from_status=None,
                    to_status=OrderStatus.PENDING.value,
                    reason="Order placed at checkout",
                    actor=f"user:{request.user_id}" if request.user_id is not None else "guest",
                )

                await carts.clear(cart)
                await session.flush()

        except DomainError as e:
            logger.info(
                "Checkout rejected",
                error_code=e.error_code,
                details=e.details,
                request_id=self.request_id,
            )
            return self._failure(e)
        except SQLAlchemyError as e:
            logger.exception("Checkout persistence failure", request_id=self.request_id)
            return CheckoutResult(
                success=False,
                error="Checkout failed",
                error_code="INTERNAL_ERROR",
                details={"reason": type(e).__name__},
            )

        order_number = order.order_number or ""
        logger.info(
            "Order placed",
            order_number=order_number,
            cart_id=order.cart_id,
            subtotal=str(order.subtotal),
            shipping=str(order.shipping),
            grand_total=str(order.grand_total),
            applied_rule_id=order.applied_shipping_rule_id,
            guest=guest_token is not None,
            request_id=self.request_id,
        )

        token_value = guest_token.value if guest_token else None
        tasks = (
            self.side_effects.for_new_order(order_number, token_value)
            if self.side_effects is not None
            else []
        )
        return CheckoutResult(
            order=order,
            applied_rule=quote.applied_rule,
            guest_access_token=token_value,
            deferred_tasks=tasks,
        )

    @staticmethod
    def _failure(error: DomainError) -> CheckoutResult:
        return CheckoutResult(
            success=False,
            error=error.message,
            error_code=error.error_code,
            details=error.details,
        )
