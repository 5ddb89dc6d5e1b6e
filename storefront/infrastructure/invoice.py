"""PDF invoice rendering.

Renders a finalized order into ``<invoice_dir>/<ORDER_NUMBER>.pdf`` with
reportlab. Rendering never touches the database.
"""

import asyncio
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from xml.sax.saxutils import escape

import structlog
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from storefront.domain.value_objects import Address, format_money
from storefront.infrastructure.models import OrderModel

logger = structlog.get_logger()

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")


@dataclass(frozen=True)
class InvoiceLine:
    """One printed line item."""

    description: str
    sku: str | None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class InvoiceData:
    """Everything printed on an invoice, detached from the ORM session."""

    order_number: str
    created_at: datetime
    currency: str
    customer_name: str
    customer_email: str
    customer_phone: str | None
    shipping_address: str
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    discount: Decimal
    grand_total: Decimal
    lines: list[InvoiceLine] = field(default_factory=list)

    @classmethod
    def from_order(cls, order: OrderModel) -> "InvoiceData":
        """Snapshot an order and its loaded items.

        Args:
            order: Order with ``items`` loaded.

        Returns:
            InvoiceData.
        """
        address = Address(
            line1=order.shipping_line1,
            line2=order.shipping_line2,
            city=order.shipping_city,
            state=order.shipping_state,
            postal_code=order.shipping_postal_code,
            country=order.shipping_country,
        )

        return cls(
            order_number=order.order_number or f"ORDER-{order.id}",
            created_at=order.created_at,
            currency=order.currency,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_phone=order.customer_phone,
            shipping_address=address.format_single_line(),
            subtotal=order.subtotal,
            shipping=order.shipping,
            tax=order.tax,
            discount=order.discount,
            grand_total=order.grand_total,
            lines=[
                InvoiceLine(
                    description=item.product_name,
                    sku=item.sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                )
                for item in order.items
            ],
        )


class InvoiceGenerator:
    """Writes invoice PDFs into a single directory."""

    def __init__(self, invoice_dir: str | Path, seller_name: str, seller_address: str) -> None:
        """Initialize generator.

        Args:
            invoice_dir: Directory holding generated files.
            seller_name: Seller name printed in the header.
            seller_address: Seller address printed under the name.
        """
        self.invoice_dir = Path(invoice_dir).resolve()
        self.seller_name = seller_name
        self.seller_address = seller_address

    @staticmethod
    def filename_for(order_number: str) -> str:
        """Deterministic filename for an order number."""
        return f"{_UNSAFE_FILENAME_CHARS.sub('_', order_number)}.pdf"

    def resolve_path(self, filename: str) -> Path | None:
        """Resolve a stored filename strictly inside the invoice directory.

        Args:
            filename: Value of ``invoice_pdf_path``.

        Returns:
            Absolute path, or None if the name escapes the directory.
        """
        candidate = (self.invoice_dir / filename).resolve()
        if candidate.parent != self.invoice_dir:
            return None
        return candidate

    def render(self, data: InvoiceData) -> str:
        """Render the PDF synchronously.

        Args:
            data: Invoice snapshot.

        Returns:
            Filename relative to the invoice directory.
        """
        self.invoice_dir.mkdir(parents=True, exist_ok=True)
        filename = self.filename_for(data.order_number)
        out_path = self.invoice_dir / filename

        styles = getSampleStyleSheet()
        currency = data.currency
        story = [
            Paragraph("Invoice", styles["Title"]),
            Paragraph(f"Order: {data.order_number}", styles["Normal"]),
            Paragraph(f"Date: {data.created_at:%Y-%m-%d %H:%M}", styles["Normal"]),
            Spacer(1, 6 * mm),
            Paragraph("Seller", styles["Heading3"]),
            Paragraph(escape(self.seller_name), styles["Normal"]),
            Paragraph(escape(self.seller_address), styles["Normal"]),
            Spacer(1, 4 * mm),
            Paragraph("Bill To", styles["Heading3"]),
            Paragraph(escape(data.customer_name), styles["Normal"]),
            Paragraph(escape(data.customer_email), styles["Normal"]),
        ]
        if data.customer_phone:
            story.append(Paragraph(escape(data.customer_phone), styles["Normal"]))
        story.append(Paragraph(escape(data.shipping_address), styles["Normal"]))
        story.append(Spacer(1, 6 * mm))

        rows: list[list[str]] = [["Description", "SKU", "Qty", "Unit price", "Total"]]
        for line in data.lines:
            rows.append(
                [
                    line.description,
                    line.sku or "-",
                    str(line.quantity),
                    format_money(line.unit_price, currency),
                    format_money(line.line_total, currency),
                ]
            )
        if not data.lines:
            rows.append(["No items", "", "", "", ""])

        items_table = Table(rows, colWidths=[70 * mm, 30 * mm, 15 * mm, 30 * mm, 30 * mm], repeatRows=1)
        items_table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                    ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                    ("ALIGN", (2, 1), (-1, -1), "RIGHT"),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        story.append(items_table)
        story.append(Spacer(1, 6 * mm))

        totals = [
            ["Subtotal", format_money(data.subtotal, currency)],
            ["Shipping", format_money(data.shipping, currency)],
            ["Tax", format_money(data.tax, currency)],
            ["Discount", format_money(data.discount, currency)],
            ["Grand total", format_money(data.grand_total, currency)],
        ]
        totals_table = Table(totals, colWidths=[40 * mm, 35 * mm], hAlign="RIGHT")
        totals_table.setStyle(
            TableStyle(
                [
                    ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                    ("LINEABOVE", (0, -1), (-1, -1), 0.5, colors.black),
                    ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ]
            )
        )
        story.append(totals_table)

        doc = SimpleDocTemplate(
            str(out_path),
            pagesize=A4,
            title=f"Invoice {data.order_number}",
            leftMargin=18 * mm,
            rightMargin=18 * mm,
        )
        doc.build(story)
        return filename

    async def generate(self, data: InvoiceData) -> str | None:
        """Render in a worker thread; failures are logged, not raised.

        Args:
            data: Invoice snapshot.

        Returns:
            Filename on success, None on any failure.
        """
        try:
            filename = await asyncio.to_thread(self.render, data)
        except Exception:
            logger.exception("Invoice generation failed", order_number=data.order_number)
            return None

        logger.info("Invoice generated", order_number=data.order_number, filename=filename)
        return filename
