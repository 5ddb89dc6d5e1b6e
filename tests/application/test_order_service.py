"""Tests for the order service."""

import pytest

from storefront.application.checkout_service import CheckoutRequest, CheckoutResult, CheckoutService
from storefront.application.order_service import OrderService
from storefront.application.payment_service import PaymentService
from storefront.application.post_commit import run_post_commit_tasks
from storefront.domain import Address, CustomerInfo, OrderStatus
from storefront.infrastructure.database import Database
from storefront.infrastructure.invoice import InvoiceGenerator


async def _place(
    db: Database,
    seed,
    user_id: int | None = None,
    side_effects=None,
    stock: int | None = None,
    quantity: int = 1,
) -> CheckoutResult:
    variant_id = await seed.variant(stock=stock)
    session_id = None if user_id is not None else f"s-{variant_id}"
    await seed.cart([(variant_id, quantity, "100.00")], user_id=user_id, session_id=session_id)
    result = await CheckoutService(db, side_effects=side_effects).checkout(
        CheckoutRequest(
            customer=CustomerInfo(email="asha@example.com", name="Asha"),
            address=Address(line1="1 MG Road", city="Bengaluru", postal_code="560001"),
            user_id=user_id,
            session_id=session_id,
        )
    )
    assert result.success
    return result


class TestGetOrder:
    """Tests for order access control."""

    async def test_owner_can_read(self, db: Database, seed) -> None:
        """The owning user can read the order."""
        placed = await _place(db, seed, user_id=4)

        result = await OrderService(db).get_order(placed.order.order_number, user_id=4)

        assert result.success
        assert result.order.items[0].quantity == 1

    async def test_other_user_forbidden(self, db: Database, seed) -> None:
        """Another user is refused."""
        placed = await _place(db, seed, user_id=4)

        result = await OrderService(db).get_order(placed.order.order_number, user_id=5)

        assert result.error_code == "FORBIDDEN"

    async def test_guest_token(self, db: Database, seed) -> None:
        """The guest token opens the order; anything else is refused."""
        placed = await _place(db, seed)
        number = placed.order.order_number
        service = OrderService(db)

        assert (await service.get_order(number, token=placed.guest_access_token)).success
        assert (await service.get_order(number, token="guess")).error_code == "FORBIDDEN"
        assert (await service.get_order(number)).error_code == "FORBIDDEN"

    async def test_missing(self, db: Database) -> None:
        """Unknown orders are reported before access is checked."""
        result = await OrderService(db).get_order("ORD-20240101-000999", user_id=1)
        assert result.error_code == "ORDER_NOT_FOUND"


class TestListOrders:
    """Tests for order listing."""

    async def test_user_filter_and_pagination(self, db: Database, seed) -> None:
        """Users see only their orders, newest first."""
        first = await _place(db, seed, user_id=1)
        second = await _place(db, seed, user_id=1)
        await _place(db, seed, user_id=2)

        page = await OrderService(db).list_orders(page=1, page_size=1, user_id=1)

        assert page.total == 2
        assert [o.order_number for o in page.orders] == [second.order.order_number]
        assert first.order.id < second.order.id

    async def test_status_filter(self, db: Database, seed) -> None:
        """Orders filter by fulfillment status."""
        await _place(db, seed, user_id=1)
        service = OrderService(db)

        assert (await service.list_orders(order_status=OrderStatus.PENDING)).total == 1
        assert (await service.list_orders(order_status=OrderStatus.PLACED)).total == 0
        assert (await service.list_orders(payment_status="pending")).total == 1


class TestUpdateStatus:
    """Tests for admin status changes."""

    async def test_valid_transition(self, db: Database, seed) -> None:
        """Valid transitions apply and are recorded."""
        placed = await _place(db, seed)
        number = placed.order.order_number

        result = await OrderService(db).update_status(number, OrderStatus.CANCELLED, reason="Customer request")

        assert result.success
        assert result.order.order_status == "cancelled"
        last = result.order.status_history[-1]
        assert (last.from_status, last.to_status, last.actor) == ("pending", "cancelled", "admin")
        assert last.reason == "Customer request"

    async def test_invalid_transition(self, db: Database, seed) -> None:
        """Skipping states is rejected with the allowed set."""
        placed = await _place(db, seed)

        result = await OrderService(db).update_status(placed.order.order_number, OrderStatus.SHIPPED)

        assert result.error_code == "INVALID_TRANSITION"
        assert sorted(result.details["allowed_transitions"]) == ["awaiting_payment", "cancelled"]

    async def test_missing_order(self, db: Database) -> None:
        """Unknown orders are reported."""
        result = await OrderService(db).update_status("ORD-X", OrderStatus.CANCELLED)
        assert result.error_code == "ORDER_NOT_FOUND"

    async def test_unpaid_order_cannot_be_placed(
        self, db: Database, seed, gateway
    ) -> None:
        """An order awaiting payment stays out of fulfillment."""
        placed = await _place(db, seed)
        number = placed.order.order_number
        await PaymentService(db, gateway).create_intent(number)

        result = await OrderService(db).update_status(number, OrderStatus.PLACED)

        assert result.error_code == "PAYMENT_NOT_COMPLETED"
        assert result.details["payment_status"] == "pending"
        order = (await OrderService(db).get_order(number, token=placed.guest_access_token)).order
        assert order.order_status == "awaiting_payment"

    async def test_paid_order_moves_through_fulfillment(
        self, db: Database, seed, gateway
    ) -> None:
        """A paid order can be processed and shipped."""
        placed = await _place(db, seed)
        number = placed.order.order_number
        payments = PaymentService(db, gateway)
        intent = await payments.create_intent(number)
        await payments.verify(
            number, intent.gateway_order_id, "pay_1", gateway.sign(intent.gateway_order_id, "pay_1")
        )
        service = OrderService(db)

        assert (await service.update_status(number, OrderStatus.PROCESSING)).success
        result = await service.update_status(number, OrderStatus.SHIPPED)

        assert result.success
        assert result.order.order_status == "shipped"

    async def test_cancel_restocks(self, db: Database, seed) -> None:
        """Cancelling returns the ordered units to tracked stock."""
        placed = await _place(db, seed, stock=5, quantity=2)
        variant_id = placed.order.items[0].variant_id
        assert await seed.stock(variant_id) == 3

        result = await OrderService(db).update_status(placed.order.order_number, OrderStatus.CANCELLED)

        assert result.success
        assert await seed.stock(variant_id) == 5
        assert result.order.status_history[-1].details == {"restocked": {str(variant_id): 2}}

    async def test_cancel_without_restock(self, db: Database, seed) -> None:
        """Restocking can be turned off."""
        placed = await _place(db, seed, stock=5, quantity=2)
        variant_id = placed.order.items[0].variant_id

        result = await OrderService(db).update_status(
            placed.order.order_number, OrderStatus.CANCELLED, restock=False
        )

        assert result.success
        assert await seed.stock(variant_id) == 3

    async def test_cancel_leaves_untracked_stock(self, db: Database, seed) -> None:
        """Untracked variants stay untracked."""
        placed = await _place(db, seed)
        variant_id = placed.order.items[0].variant_id

        result = await OrderService(db).update_status(placed.order.order_number, OrderStatus.CANCELLED)

        assert result.success
        assert await seed.stock(variant_id) is None
        assert result.order.status_history[-1].details is None


class TestGetInvoice:
    """Tests for invoice lookup."""

    async def test_unpaid_order(self, db: Database, seed, invoices: InvoiceGenerator) -> None:
        """Unpaid orders have no downloadable invoice."""
        placed = await _place(db, seed, user_id=1)

        result = await OrderService(db).get_invoice(placed.order.order_number, invoices, user_id=1)

        assert result.error_code == "PAYMENT_NOT_COMPLETED"

    async def test_paid_order(
        self, db: Database, seed, gateway, side_effects, invoices: InvoiceGenerator
    ) -> None:
        """A paid order with a generated invoice resolves to the file."""
        placed = await _place(db, seed, user_id=1, side_effects=side_effects)
        await run_post_commit_tasks(placed.deferred_tasks)
        number = placed.order.order_number
        payments = PaymentService(db, gateway)
        intent = await payments.create_intent(number)
        await payments.verify(
            number, intent.gateway_order_id, "pay_1", gateway.sign(intent.gateway_order_id, "pay_1")
        )

        result = await OrderService(db).get_invoice(number, invoices, user_id=1)

        assert result.success
        assert result.filename == f"{number}.pdf"
        assert result.path.is_file()

    async def test_paid_without_file(
        self, db: Database, seed, gateway, invoices: InvoiceGenerator
    ) -> None:
        """A paid order whose invoice was never produced reports INVOICE_NOT_FOUND."""
        placed = await _place(db, seed, user_id=1)
        number = placed.order.order_number
        payments = PaymentService(db, gateway)
        intent = await payments.create_intent(number)
        await payments.verify(
            number, intent.gateway_order_id, "pay_1", gateway.sign(intent.gateway_order_id, "pay_1")
        )

        result = await OrderService(db).get_invoice(number, invoices, user_id=1)

        assert result.error_code == "INVOICE_NOT_FOUND"

    @pytest.mark.parametrize("user_id", [None, 2])
    async def test_access_checked_first(
        self, db: Database, seed, invoices: InvoiceGenerator, user_id: int | None
    ) -> None:
        """Strangers cannot reach invoices."""
        placed = await _place(db, seed, user_id=1)

        result = await OrderService(db).get_invoice(
            placed.order.order_number, invoices, user_id=user_id
        )

        assert result.error_code == "FORBIDDEN"
