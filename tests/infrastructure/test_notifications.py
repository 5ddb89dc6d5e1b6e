"""Tests for order confirmation emails."""

from pathlib import Path

import pytest

from storefront.infrastructure.config import Settings
from storefront.infrastructure.notifications import (
    OrderConfirmation,
    RecordingNotifier,
    SmtpNotifier,
    build_confirmation_message,
)


def _confirmation(invoice_path: Path | None = None) -> OrderConfirmation:
    return OrderConfirmation(
        order_number="ORD-20240101-000001",
        customer_name="Asha",
        customer_email="asha@example.com",
        grand_total="240.00",
        currency="INR",
        access_link="https://shop.example.com/orders/ORD-20240101-000001?token=abc",
        invoice_path=invoice_path,
    )


class TestBuildConfirmationMessage:
    """Tests for message composition."""

    def test_headers(self) -> None:
        """Subject, sender and recipient are set."""
        message = build_confirmation_message(_confirmation(), "shop@example.com")

        assert message["Subject"] == "Order Confirmation - ORD-20240101-000001"
        assert message["From"] == "shop@example.com"
        assert message["To"] == "asha@example.com"

    def test_text_body_mentions_total_and_link(self) -> None:
        """The plain text part carries the total and the access link."""
        message = build_confirmation_message(_confirmation(), "shop@example.com")
        text = message.get_body(preferencelist=("plain",)).get_content()

        assert "240.00 INR" in text
        assert "token=abc" in text

    def test_html_alternative(self) -> None:
        """An HTML alternative is included."""
        message = build_confirmation_message(_confirmation(), "shop@example.com")
        html = message.get_body(preferencelist=("html",)).get_content()

        assert "<strong>ORD-20240101-000001</strong>" in html

    def test_attaches_existing_invoice(self, tmp_path: Path) -> None:
        """An existing invoice file is attached as a PDF."""
        invoice = tmp_path / "ORD-20240101-000001.pdf"
        invoice.write_bytes(b"%PDF-1.4 test")
        message = build_confirmation_message(_confirmation(invoice), "shop@example.com")

        attachments = list(message.iter_attachments())
        assert len(attachments) == 1
        assert attachments[0].get_filename() == "ORD-20240101-000001.pdf"
        assert attachments[0].get_content_type() == "application/pdf"

    def test_missing_invoice_not_attached(self, tmp_path: Path) -> None:
        """A path that does not exist is skipped."""
        message = build_confirmation_message(
            _confirmation(tmp_path / "missing.pdf"), "shop@example.com"
        )
        assert list(message.iter_attachments()) == []


class TestNotifiers:
    """Tests for notifier implementations."""

    async def test_recording_notifier_keeps_messages(self) -> None:
        """Sent messages are kept in memory."""
        notifier = RecordingNotifier(sender="shop@example.com")
        await notifier.notify(_confirmation())

        assert len(notifier.sent) == 1
        assert notifier.sent[0]["To"] == "asha@example.com"

    async def test_recording_notifier_failure(self) -> None:
        """A failing notifier raises."""
        notifier = RecordingNotifier(fail=True)
        with pytest.raises(ConnectionError):
            await notifier.notify(_confirmation())

    def test_smtp_notifier_from_settings(self) -> None:
        """SMTP settings are carried over."""
        notifier = SmtpNotifier.from_settings(
            Settings(smtp_host="mail.internal", smtp_port=2525, email_from="shop@example.com")
        )
        assert notifier.hostname == "mail.internal"
        assert notifier.port == 2525
        assert notifier.sender == "shop@example.com"
