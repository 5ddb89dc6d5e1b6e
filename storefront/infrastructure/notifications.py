"""Order confirmation email dispatch.

Callers treat every failure here as best-effort: they log and move on.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape
from pathlib import Path

import aiosmtplib
import structlog

from storefront.infrastructure.config import Settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class OrderConfirmation:
    """What the confirmation email needs to know about an order."""

    order_number: str
    customer_name: str
    customer_email: str
    grand_total: str
    currency: str
    access_link: str
    invoice_path: Path | None = None


def build_confirmation_message(confirmation: OrderConfirmation, sender: str) -> EmailMessage:
    """Compose the text + HTML confirmation with an optional PDF attachment.

    Args:
        confirmation: Order summary.
        sender: From address.

    Returns:
        EmailMessage ready to send.
    """
    message = EmailMessage()
    message["Subject"] = f"Order Confirmation - {confirmation.order_number}"
    message["From"] = sender
    message["To"] = confirmation.customer_email

    text = "\n".join(
        [
            f"Hello {confirmation.customer_name}",
            "",
            f"Thank you for your order ({confirmation.order_number}).",
            f"Total: {confirmation.grand_total} {confirmation.currency}",
            f"You can view your order here: {confirmation.access_link}",
            "",
            "Regards,",
            "Storefront",
        ]
    )
    message.set_content(text)

    name = escape(confirmation.customer_name)
    number = escape(confirmation.order_number)
    link = escape(confirmation.access_link, quote=True)
    message.add_alternative(
        f"<p>Hello {name}</p>"
        f"<p>Thank you for your order (<strong>{number}</strong>).</p>"
        f"<p>Total: {escape(confirmation.grand_total)} {escape(confirmation.currency)}</p>"
        f'<p><a href="{link}">View your order</a></p>'
        "<p>Regards,<br/>Storefront</p>",
        subtype="html",
    )

    if confirmation.invoice_path is not None and confirmation.invoice_path.is_file():
        message.add_attachment(
            confirmation.invoice_path.read_bytes(),
            maintype="application",
            subtype="pdf",
            filename=confirmation.invoice_path.name,
        )

    return message


class Notifier(ABC):
    """Abstract notification dispatcher."""

    @abstractmethod
    async def notify(self, confirmation: OrderConfirmation) -> None:
        """Send an order confirmation.

        Raises:
            Exception: Any transport failure; callers contain it.
        """
        ...


class SmtpNotifier(Notifier):
    """Sends confirmations over SMTP with aiosmtplib."""

    def __init__(
        self,
        hostname: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self.hostname = hostname
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpNotifier":
        """Build from application settings."""
        return cls(
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.email_from,
            username=settings.smtp_user,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )

    async def notify(self, confirmation: OrderConfirmation) -> None:
        message = build_confirmation_message(confirmation, self.sender)
        await aiosmtplib.send(
            message,
            hostname=self.hostname,
            port=self.port,
            username=self.username,
            password=self.password,
            use_tls=self.use_tls,
            timeout=self.timeout,
        )
        logger.info(
            "Order confirmation sent",
            order_number=confirmation.order_number,
            to=confirmation.customer_email,
        )


class RecordingNotifier(Notifier):
    """Keeps composed messages in memory instead of sending them."""

    def __init__(self, sender: str = "no-reply@example.com", fail: bool = False) -> None:
        self.sender = sender
        self.fail = fail
        self.sent: list[EmailMessage] = []

    async def notify(self, confirmation: OrderConfirmation) -> None:
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append(build_confirmation_message(confirmation, self.sender))
