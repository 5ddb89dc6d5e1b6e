"""Tests for PDF invoice rendering."""

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

from storefront.infrastructure.invoice import InvoiceData, InvoiceGenerator, InvoiceLine
from storefront.infrastructure.models import OrderItemModel, OrderModel


def _invoice(order_number: str = "ORD-20240101-000001") -> InvoiceData:
    return InvoiceData(
        order_number=order_number,
        created_at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        currency="INR",
        customer_name="Asha <Rao> & Co",
        customer_email="asha@example.com",
        customer_phone="+91 90000 00000",
        shipping_address="1 MG Road, Bengaluru, KA, 560001, IN",
        subtotal=Decimal("200.00"),
        shipping=Decimal("40.00"),
        tax=Decimal("0.00"),
        discount=Decimal("0.00"),
        grand_total=Decimal("240.00"),
        lines=[
            InvoiceLine(
                description="Cotton T-Shirt - Tee",
                sku="TEE-M",
                quantity=2,
                unit_price=Decimal("100.00"),
                line_total=Decimal("200.00"),
            )
        ],
    )


class TestInvoiceData:
    """Tests for snapshotting an order."""

    def test_from_order(self) -> None:
        """Totals and lines are copied and the address is one line."""
        order = OrderModel(
            order_number="ORD-20240101-000007",
            customer_name="Asha",
            customer_email="asha@example.com",
            shipping_line1="1 MG Road",
            shipping_line2="Near Metro",
            shipping_city="Bengaluru",
            shipping_postal_code="560001",
            shipping_country="in",
            subtotal=Decimal("200.00"),
            shipping=Decimal("40.00"),
            tax=Decimal("0.00"),
            discount=Decimal("0.00"),
            grand_total=Decimal("240.00"),
            currency="INR",
            payment_method="razorpay",
            items=[
                OrderItemModel(
                    variant_id=3,
                    product_name="Cotton T-Shirt - Tee",
                    quantity=2,
                    unit_price=Decimal("100.00"),
                    line_total=Decimal("200.00"),
                )
            ],
        )

        data = InvoiceData.from_order(order)

        assert data.order_number == "ORD-20240101-000007"
        assert data.shipping_address == "1 MG Road, Near Metro, Bengaluru, 560001, IN"
        assert data.grand_total == Decimal("240.00")
        assert [(line.description, line.quantity) for line in data.lines] == [
            ("Cotton T-Shirt - Tee", 2)
        ]


class TestInvoiceGenerator:
    """Tests for InvoiceGenerator."""

    def test_filename_for(self) -> None:
        """Filenames derive from the order number with unsafe characters replaced."""
        assert InvoiceGenerator.filename_for("ORD-20240101-000001") == "ORD-20240101-000001.pdf"
        assert InvoiceGenerator.filename_for("../etc/passwd") == "___etc_passwd.pdf"

    def test_render_writes_pdf(self, tmp_path: Path) -> None:
        """Rendering writes a PDF into the invoice directory."""
        generator = InvoiceGenerator(tmp_path / "invoices", "Seller", "Somewhere")
        filename = generator.render(_invoice())

        path = tmp_path / "invoices" / filename
        assert filename == "ORD-20240101-000001.pdf"
        assert path.is_file()
        assert path.read_bytes().startswith(b"%PDF")

    def test_render_without_lines(self, tmp_path: Path) -> None:
        """An invoice without lines still renders."""
        generator = InvoiceGenerator(tmp_path, "Seller", "Somewhere")
        data = _invoice()
        empty = InvoiceData(**{**data.__dict__, "lines": []})
        assert (tmp_path / generator.render(empty)).is_file()

    def test_resolve_path_stays_inside_directory(self, tmp_path: Path) -> None:
        """Stored names cannot escape the invoice directory."""
        generator = InvoiceGenerator(tmp_path / "invoices", "Seller", "Somewhere")
        inside = generator.resolve_path("ORD-1.pdf")

        assert inside == (tmp_path / "invoices" / "ORD-1.pdf").resolve()
        assert generator.resolve_path("../secret.pdf") is None
        assert generator.resolve_path("nested/ORD-1.pdf") is None

    async def test_generate_returns_filename(self, tmp_path: Path) -> None:
        """Async generation renders in a worker thread."""
        generator = InvoiceGenerator(tmp_path, "Seller", "Somewhere")
        assert await generator.generate(_invoice()) == "ORD-20240101-000001.pdf"

    async def test_generate_contains_failures(self, tmp_path: Path) -> None:
        """Rendering failures return None instead of raising."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("occupied")
        generator = InvoiceGenerator(blocker, "Seller", "Somewhere")

        assert await generator.generate(_invoice()) is None
