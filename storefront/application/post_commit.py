"""Side effects that run after an order transaction has committed.

Services return ``PostCommitTask`` lists instead of performing these
inline; whoever consumes them (a background task, a test) calls
``run_post_commit_tasks``. A failing task never affects the order.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from storefront.infrastructure.database import Database
from storefront.infrastructure.invoice import InvoiceData, InvoiceGenerator
from storefront.infrastructure.notifications import Notifier, OrderConfirmation
from storefront.infrastructure.repositories import OrderRepository

logger = structlog.get_logger()


@dataclass(frozen=True)
class PostCommitTask:
    """A named, independently runnable side effect."""

    name: str
    order_number: str
    run: Callable[[], Awaitable[None]]


async def run_post_commit_tasks(tasks: list[PostCommitTask]) -> list[str]:
    """Run tasks in order, containing every failure.

    Args:
        tasks: Tasks to run.

    Returns:
        Names of the tasks that failed.
    """
    failed: list[str] = []
    for task in tasks:
        try:
            await task.run()
        except Exception:
            logger.exception(
                "Post-commit task failed",
                task=task.name,
                order_number=task.order_number,
            )
            failed.append(task.name)
    return failed


def order_access_link(base_url: str, order_number: str, guest_token: str | None) -> str:
    """Link a customer can open to view an order."""
    link = f"{base_url.rstrip('/')}/orders/{order_number}"
    if guest_token:
        link += f"?token={guest_token}"
    return link


class OrderSideEffects:
    """Builds the invoice and confirmation tasks for an order."""

    def __init__(
        self,
        db: Database,
        invoices: InvoiceGenerator,
        notifier: Notifier | None,
        public_base_url: str,
    ) -> None:
        """Initialize builder.

        Args:
            db: Database handle.
            invoices: Invoice generator.
            notifier: Confirmation dispatcher; None disables emails.
            public_base_url: Base URL for order links in emails.
        """
        self.db = db
        self.invoices = invoices
        self.notifier = notifier
        self.public_base_url = public_base_url

    def generate_invoice(self, order_number: str) -> PostCommitTask:
        """Task rendering the invoice and recording its filename."""

        async def run() -> None:
            async with self.db.session() as session:
                order = await OrderRepository(session).get_by_number(order_number)
                if order is None:
                    raise LookupError(f"Order disappeared before invoicing: {order_number}")
                data = InvoiceData.from_order(order)

            filename = await self.invoices.generate(data)
            if filename is None:
                raise RuntimeError(f"Invoice not produced for {order_number}")

            async with self.db.transaction() as session:
                order = await OrderRepository(session).get_by_number(order_number)
                if order is not None:
                    order.invoice_pdf_path = filename

        return PostCommitTask(name="generate_invoice", order_number=order_number, run=run)

    def send_confirmation(self, order_number: str, guest_token: str | None) -> PostCommitTask:
        """Task emailing the order confirmation (with the invoice if present)."""

        async def run() -> None:
            if self.notifier is None:
                return
            async with self.db.session() as session:
                order = await OrderRepository(session).get_by_number(order_number)
                if order is None:
                    raise LookupError(f"Order disappeared before notifying: {order_number}")

            invoice_path = (
                self.invoices.resolve_path(order.invoice_pdf_path)
                if order.invoice_pdf_path
                else None
            )
            await self.notifier.notify(
                OrderConfirmation(
                    order_number=order_number,
                    customer_name=order.customer_name,
                    customer_email=order.customer_email,
                    grand_total=f"{order.grand_total:.2f}",
                    currency=order.currency,
                    access_link=order_access_link(self.public_base_url, order_number, guest_token),
                    invoice_path=invoice_path,
                )
            )

        return PostCommitTask(name="send_confirmation", order_number=order_number, run=run)

    def for_new_order(self, order_number: str, guest_token: str | None) -> list[PostCommitTask]:
        """Tasks scheduled after checkout."""
        tasks = [self.generate_invoice(order_number)]
        if self.notifier is not None:
            tasks.append(self.send_confirmation(order_number, guest_token))
        return tasks
