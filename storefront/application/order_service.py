"""Order application service.

Orchestrates order reads and lifecycle management including:
- Customer access by user identity or guest access token
- Listing orders for a user and for administrators
- Invoice download gating
- Validated fulfillment status transitions with history
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from storefront.domain.exceptions import DomainError, OrderNotFoundError, PaymentNotCompletedError
from storefront.domain.state_machines import OrderStatus, PaymentStatus, validate_order_transition
from storefront.domain.value_objects import guest_token_matches
from storefront.infrastructure.database import Database
from storefront.infrastructure.invoice import InvoiceGenerator
from storefront.infrastructure.models import OrderModel
from storefront.infrastructure.repositories import OrderRepository, VariantRepository

logger = structlog.get_logger()


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class GetOrderResult:
    """Result of getting an order."""

    order: OrderModel | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ListOrdersResult:
    """Result of listing orders."""

    orders: list[OrderModel] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20


@dataclass
class InvoiceResult:
    """Result of resolving an invoice download."""

    path: Path | None = None
    filename: str | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None


@dataclass
class UpdateOrderResult:
    """Result of a status change."""

    order: OrderModel | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


def can_access(order: OrderModel, user_id: int | None, token: str | None) -> bool:
    """Check whether a caller may read an order.

    Args:
        order: The order.
        user_id: Authenticated user, if any.
        token: Guest access token from the query string, if any.

    Returns:
        True for the owning user or a matching guest token.
    """
    if user_id is not None and order.user_id is not None and order.user_id == user_id:
        return True
    return guest_token_matches(token, order.guest_token_hash)


# ============================================================================
# Order Service
# ============================================================================


class OrderService:
    """Application service for managing orders."""

    def __init__(self, db: Database, request_id: str | None = None) -> None:
        """Initialize service.

        Args:
            db: Database handle.
            request_id: Request ID for correlation.
        """
        self.db = db
        self.request_id = request_id

    async def get_order(
        self,
        order_number: str,
        user_id: int | None = None,
        token: str | None = None,
    ) -> GetOrderResult:
        """Get an order the caller is allowed to see.

        Args:
            order_number: Public order number.
            user_id: Authenticated user, if any.
            token: Guest access token, if any.

        Returns:
            GetOrderResult; ``FORBIDDEN`` when neither credential matches.
        """
        async with self.db.session() as session:
            order = await OrderRepository(session).get_by_number(order_number)

        if order is None:
            error = OrderNotFoundError(order_number)
            return GetOrderResult(
                success=False,
                error=error.message,
                error_code=error.error_code,
                details=error.details,
            )
        if not can_access(order, user_id, token):
            logger.info(
                "Order access denied",
                order_number=order_number,
                user_id=user_id,
                request_id=self.request_id,
            )
            return GetOrderResult(
                success=False,
                error="Forbidden",
                error_code="FORBIDDEN",
            )
        return GetOrderResult(order=order)

    async def list_orders(
        self,
        page: int = 1,
        page_size: int = 20,
        user_id: int | None = None,
        order_status: OrderStatus | None = None,
        payment_status: str | None = None,
    ) -> ListOrdersResult:
        """List orders with pagination and filtering.

        Args:
            page: Page number (1-indexed).
            page_size: Items per page.
            user_id: Restrict to one user's orders.
            order_status: Filter by fulfillment status.
            payment_status: Filter by payment status.

        Returns:
            ListOrdersResult.
        """
        async with self.db.session() as session:
            orders, total = await OrderRepository(session).list_all(
                page=page,
                page_size=page_size,
                user_id=user_id,
                order_status=order_status.value if order_status else None,
                payment_status=payment_status,
            )
        return ListOrdersResult(orders=orders, total=total, page=page, page_size=page_size)

    async def get_invoice(
        self,
        order_number: str,
        invoices: InvoiceGenerator,
        user_id: int | None = None,
        token: str | None = None,
    ) -> InvoiceResult:
        """Resolve the invoice file for a paid order.

        Args:
            order_number: Public order number.
            invoices: Generator owning the invoice directory.
            user_id: Authenticated user, if any.
            token: Guest access token, if any.

        Returns:
            InvoiceResult with the file path, or an error code.
        """
        found = await self.get_order(order_number, user_id, token)
        if not found.success or found.order is None:
            return InvoiceResult(success=False, error=found.error, error_code=found.error_code)

        order = found.order
        if order.payment_status != "paid":
            return InvoiceResult(
                success=False,
                error="Invoice available only after payment",
                error_code="PAYMENT_NOT_COMPLETED",
            )

        path = invoices.resolve_path(order.invoice_pdf_path) if order.invoice_pdf_path else None
        if path is None or not path.is_file():
            return InvoiceResult(
                success=False,
                error="Invoice not available",
                error_code="INVOICE_NOT_FOUND",
            )
        return InvoiceResult(path=path, filename=path.name)

    async def update_status(
        self,
        order_number: str,
        target: OrderStatus,
        reason: str | None = None,
        actor: str = "admin",
        restock: bool = True,
    ) -> UpdateOrderResult:
        """Apply a validated fulfillment transition.

        Fulfillment states past payment need a paid order. Cancelling
        returns the ordered units to tracked stock unless ``restock`` is off.

        Args:
            order_number: Public order number.
            target: Target status.
            reason: Free-text reason kept in history.
            actor: Who made the change.
            restock: Put stock back when cancelling.

        Returns:
            UpdateOrderResult with the updated order.
        """
        restocked: dict[str, int] = {}
        try:
            async with self.db.transaction() as session:
                orders = OrderRepository(session)
                order = await orders.get_by_number(order_number, lock=True)
                if order is None:
                    raise OrderNotFoundError(order_number)

                current = OrderStatus(order.order_status)
                validate_order_transition(order_number, current, target)
                if target.requires_payment() and order.payment_status != PaymentStatus.PAID.value:
                    raise PaymentNotCompletedError(
                        order_number,
                        order.payment_status,
                        f"Order {order_number} cannot be {target.value} before payment",
                    )

                if target == OrderStatus.CANCELLED and restock:
                    variants = VariantRepository(session)
                    for item in sorted(
                        (i for i in order.items if i.variant_id is not None),
                        key=lambda i: i.variant_id,
                    ):
                        if await variants.restock(item.variant_id, item.quantity):
                            key = str(item.variant_id)
                            restocked[key] = restocked.get(key, 0) + item.quantity

                order.order_status = target.value
                orders.record_transition(
                    order,
                    field="order_status",
                    from_status=current.value,
                    to_status=target.value,
                    reason=reason,
                    actor=actor,
                    details={"restocked": restocked} if restocked else None,
                )
                await session.flush()
        except DomainError as e:
            return UpdateOrderResult(
                success=False,
                error=e.message,
                error_code=e.error_code,
                details=e.details,
            )

        logger.info(
            "Order status changed",
            order_number=order_number,
            from_status=current.value,
            to_status=target.value,
            actor=actor,
            restocked=restocked,
            request_id=self.request_id,
        )
        return UpdateOrderResult(order=order)
