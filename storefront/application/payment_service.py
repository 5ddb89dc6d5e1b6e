"""Payment application service.

Drives the order payment state machine against a payment gateway:
- Creating a gateway intent for an unpaid order
- Verifying the gateway signature returned by the client
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from storefront.application.post_commit import OrderSideEffects, PostCommitTask
from storefront.domain.exceptions import (
    AlreadyPaidError,
    DomainError,
    InvalidAmountError,
    InvalidSignatureError,
    OrderMismatchError,
    OrderNotFoundError,
    PaymentNotPendingError,
)
from storefront.domain.state_machines import (
    OrderStatus,
    PaymentStatus,
    validate_order_transition,
    validate_payment_transition,
)
from storefront.domain.value_objects import to_minor_units
from storefront.infrastructure.database import Database
from storefront.infrastructure.payment_gateway import PaymentGateway, PaymentGatewayError
from storefront.infrastructure.repositories import OrderRepository

logger = structlog.get_logger()


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class CreateIntentResult:
    """Result of creating a gateway intent."""

    order_number: str | None = None
    gateway_order_id: str | None = None
    amount: int | None = None
    currency: str | None = None
    key_id: str | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class VerifyPaymentResult:
    """Result of verifying a payment.

    ``payment_status`` is the order's payment status after the call.
    """

    order_number: str | None = None
    payment_status: str | None = None
    already_verified: bool = False
    deferred_tasks: list[PostCommitTask] = field(default_factory=list)
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Payment Service
# ============================================================================


class PaymentService:
    """Application service for gateway payments."""

    def __init__(
        self,
        db: Database,
        gateway: PaymentGateway,
        side_effects: OrderSideEffects | None = None,
        key_id: str | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            db: Database handle.
            gateway: Payment gateway adapter.
            side_effects: Builder for post-commit tasks.
            key_id: Public gateway key handed to the client checkout widget.
            request_id: Request ID for correlation.
        """
        self.db = db
        self.gateway = gateway
        self.side_effects = side_effects
        self.key_id = key_id
        self.request_id = request_id

    async def create_intent(self, order_number: str) -> CreateIntentResult:
        """Create a gateway intent and mark the order awaiting payment.

        The gateway is called before the order is touched, so a timeout
        leaves the order as it was and the call can simply be retried.

        Args:
            order_number: Public order number.

        Returns:
            CreateIntentResult with the gateway order id and amount.
        """
        try:
            async with self.db.session() as session:
                order = await OrderRepository(session).get_by_number(order_number)
            if order is None:
                raise OrderNotFoundError(order_number)
            if order.payment_status == PaymentStatus.PAID.value:
                raise AlreadyPaidError(order_number)
            validate_order_transition(
                order_number,
                OrderStatus(order.order_status),
                OrderStatus.AWAITING_PAYMENT,
            )
            amount_minor = to_minor_units(order.grand_total)
            if amount_minor <= 0:
                raise InvalidAmountError(order_number, amount_minor)
        except DomainError as e:
            return self._intent_failure(e)

        try:
            intent = await self.gateway.create_order(
                amount_minor=amount_minor,
                currency=order.currency,
                receipt=order_number,
                notes={"orderId": str(order.id), "orderNumber": order_number},
            )
        except PaymentGatewayError as e:
            logger.error(
                "Gateway intent creation failed",
                order_number=order_number,
                gateway=e.gateway,
                error=e.message,
                error_code=e.error_code,
                request_id=self.request_id,
            )
            return CreateIntentResult(
                order_number=order_number,
                success=False,
                error=e.message,
                error_code=e.error_code,
                retryable=e.retryable,
            )

        try:
            async with self.db.transaction() as session:
                orders = OrderRepository(session)
                order = await orders.get_by_number(order_number, lock=True)
                if order is None:
                    raise OrderNotFoundError(order_number)
                if order.payment_status == PaymentStatus.PAID.value:
                    raise AlreadyPaidError(order_number)

                current_order = OrderStatus(order.order_status)
                validate_order_transition(order_number, current_order, OrderStatus.AWAITING_PAYMENT)

                current_payment = PaymentStatus(order.payment_status)
                if current_payment != PaymentStatus.PENDING:
                    validate_payment_transition(order_number, current_payment, PaymentStatus.PENDING)
                    order.payment_status = PaymentStatus.PENDING.value
                    orders.record_transition(
                        order,
                        field="payment_status",
                        from_status=current_payment.value,
                        to_status=PaymentStatus.PENDING.value,
                        reason="New payment intent",
                        actor="gateway",
                    )

                order.gateway_order_id = intent.id
                order.payment_method = self.gateway.name
                order.order_status = OrderStatus.AWAITING_PAYMENT.value
                if current_order != OrderStatus.AWAITING_PAYMENT:
                    orders.record_transition(
                        order,
                        field="order_status",
                        from_status=current_order.value,
                        to_status=OrderStatus.AWAITING_PAYMENT.value,
                        reason="Payment intent created",
                        actor="gateway",
                        details={"gateway_order_id": intent.id},
                    )
                await session.flush()
        except DomainError as e:
            return self._intent_failure(e)

        logger.info(
            "Payment intent created",
            order_number=order_number,
            gateway=self.gateway.name,
            gateway_order_id=intent.id,
            amount=intent.amount,
            request_id=self.request_id,
        )
        return CreateIntentResult(
            order_number=order_number,
            gateway_order_id=intent.id,
            amount=intent.amount,
            currency=intent.currency,
            key_id=self.key_id,
        )

    async def verify(
        self,
        order_number: str,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> VerifyPaymentResult:
        """Verify a gateway payment signature and settle the order.

        Runs under a row lock on the order. A repeated call with the same
        payment id on a paid order is a no-op success; anything else
        against a settled payment is rejected without changing state.

        Args:
            order_number: Public order number.
            gateway_order_id: Gateway intent id the client paid against.
            gateway_payment_id: Gateway payment id.
            signature: Signature returned by the gateway to the client.

        Returns:
            VerifyPaymentResult.
        """
        rejected = False
        already_verified = False
        try:
            async with self.db.transaction() as session:
                orders = OrderRepository(session)
                order = await orders.get_by_number(order_number, lock=True)
                if order is None:
                    raise OrderNotFoundError(order_number)
                if not order.gateway_order_id or order.gateway_order_id != gateway_order_id:
                    raise OrderMismatchError(order_number)

                current = PaymentStatus(order.payment_status)
                signature_ok = self.gateway.verify_signature(
                    gateway_order_id, gateway_payment_id, signature
                )

                if current == PaymentStatus.PAID:
                    if signature_ok and order.gateway_payment_id == gateway_payment_id:
                        already_verified = True
                    else:
                        raise PaymentNotPendingError(order_number, current.value)
                elif current != PaymentStatus.PENDING:
                    raise PaymentNotPendingError(order_number, current.value)
                elif not signature_ok:
                    validate_payment_transition(order_number, current, PaymentStatus.FAILED)
                    order.payment_status = PaymentStatus.FAILED.value
                    orders.record_transition(
                        order,
                        field="payment_status",
                        from_status=current.value,
                        to_status=PaymentStatus.FAILED.value,
                        reason="Signature verification failed",
                        actor="gateway",
                        details={"gateway_payment_id": gateway_payment_id},
                    )
                    rejected = True
                else:
                    validate_payment_transition(order_number, current, PaymentStatus.PAID)
                    current_order = OrderStatus(order.order_status)
                    validate_order_transition(order_number, current_order, OrderStatus.PLACED)

                    order.payment_status = PaymentStatus.PAID.value
                    order.order_status = OrderStatus.PLACED.value
                    order.gateway_payment_id = gateway_payment_id
                    order.gateway_signature = signature
                    order.paid_at = datetime.now(timezone.utc)
                    orders.record_transition(
                        order,
                        field="payment_status",
                        from_status=current.value,
                        to_status=PaymentStatus.PAID.value,
                        reason="Payment verified",
                        actor="gateway",
                        details={"gateway_payment_id": gateway_payment_id},
                    )
                    orders.record_transition(
                        order,
                        field="order_status",
                        from_status=current_order.value,
                        to_status=OrderStatus.PLACED.value,
                        reason="Payment verified",
                        actor="gateway",
                    )
                await session.flush()
                needs_invoice = order.invoice_pdf_path is None
                payment_status = order.payment_status
        except DomainError as e:
            logger.info(
                "Payment verification rejected",
                order_number=order_number,
                error_code=e.error_code,
                request_id=self.request_id,
            )
            return VerifyPaymentResult(
                order_number=order_number,
                success=False,
                error=e.message,
                error_code=e.error_code,
                details=e.details,
            )

        if rejected:
            logger.warning(
                "Payment signature mismatch",
                order_number=order_number,
                gateway_order_id=gateway_order_id,
                request_id=self.request_id,
            )
            error = InvalidSignatureError(order_number)
            return VerifyPaymentResult(
                order_number=order_number,
                payment_status=payment_status,
                success=False,
                error=error.message,
                error_code=error.error_code,
                details=error.details,
            )

        if already_verified:
            logger.info(
                "Payment already verified",
                order_number=order_number,
                request_id=self.request_id,
            )
        else:
            logger.info(
                "Payment verified",
                order_number=order_number,
                gateway_payment_id=gateway_payment_id,
                request_id=self.request_id,
            )

        tasks = (
            [self.side_effects.generate_invoice(order_number)]
            if needs_invoice and not already_verified and self.side_effects is not None
            else []
        )
        return VerifyPaymentResult(
            order_number=order_number,
            payment_status=payment_status,
            already_verified=already_verified,
            deferred_tasks=tasks,
        )

    @staticmethod
    def _intent_failure(error: DomainError) -> CreateIntentResult:
        return CreateIntentResult(
            success=False,
            error=error.message,
            error_code=error.error_code,
            details=error.details,
        )
