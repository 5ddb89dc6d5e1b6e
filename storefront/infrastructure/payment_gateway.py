"""Payment gateway port and adapters.

Defines the contract payment services depend on, a Razorpay adapter over
its REST API and a configurable fake used in tests and local development.
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import httpx
import structlog

from storefront.infrastructure.config import Settings

logger = structlog.get_logger()


# ============================================================================
# Port
# ============================================================================


@dataclass(frozen=True)
class GatewayIntent:
    """Gateway-side payment intent.

    Attributes:
        id: Gateway order/intent identifier.
        amount: Amount in minor units.
        currency: ISO currency code.
    """

    id: str
    amount: int
    currency: str


class PaymentGatewayError(Exception):
    """Error from a payment gateway call."""

    error_code = "GATEWAY_ERROR"
    retryable = False

    def __init__(self, gateway: str, message: str, status_code: int | None = None) -> None:
        self.gateway = gateway
        self.message = message
        self.status_code = status_code
        super().__init__(f"[{gateway}] {message}")


class GatewayTimeoutError(PaymentGatewayError):
    """Gateway did not answer within the configured timeout."""

    error_code = "GATEWAY_TIMEOUT"
    retryable = True


def compute_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    """HMAC-SHA256 over ``"<order_id>|<payment_id>"`` as lowercase hex.

    Args:
        secret: Shared key secret.
        gateway_order_id: Gateway order identifier.
        gateway_payment_id: Gateway payment identifier.

    Returns:
        Hex digest.
    """
    message = f"{gateway_order_id}|{gateway_payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name: str = "gateway"

    def __init__(self, key_secret: str) -> None:
        self._key_secret = key_secret

    @abstractmethod
    async def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> GatewayIntent:
        """Create a payment intent at the gateway.

        Raises:
            GatewayTimeoutError: If the gateway timed out.
            PaymentGatewayError: On any other gateway failure.
        """
        ...

    def verify_signature(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> bool:
        """Check a client-supplied payment signature in constant time.

        Returns:
            True only if the signature matches.
        """
        if not signature:
            return False
        expected = compute_signature(self._key_secret, gateway_order_id, gateway_payment_id)
        return hmac.compare_digest(expected.encode(), signature.strip().lower().encode("utf-8"))

    async def close(self) -> None:
        """Release network resources."""
        return None


# ============================================================================
# Razorpay Adapter
# ============================================================================


class RazorpayGateway(PaymentGateway):
    """Razorpay Orders API adapter.

    Uses HTTP basic auth with the key id and key secret. Every call is
    bounded by ``timeout`` seconds.
    """

    name = "razorpay"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Razorpay adapter.

        Args:
            key_id: API key id.
            key_secret: API key secret (also signs payment callbacks).
            base_url: API root.
            timeout: Request timeout in seconds.
            transport: Optional transport override.
        """
        super().__init__(key_secret)
        self.key_id = key_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                auth=(self.key_id, self._key_secret),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> GatewayIntent:
        """Create a Razorpay order.

        Args:
            amount_minor: Amount in minor units.
            currency: ISO currency code.
            receipt: Merchant receipt reference (the order number).
            notes: Free-form key/value notes.

        Returns:
            GatewayIntent.

        Raises:
            GatewayTimeoutError: On timeout.
            PaymentGatewayError: On transport error or non-2xx response.
        """
        payload: dict[str, Any] = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            client = await self._get_client()
            response = await client.post("/orders", json=payload)
        except httpx.TimeoutException as e:
            logger.warning("Razorpay request timed out", receipt=receipt, error=str(e))
            raise GatewayTimeoutError(self.name, "Payment gateway timed out") from e
        except httpx.RequestError as e:
            logger.error("Razorpay request failed", receipt=receipt, error=str(e))
            raise PaymentGatewayError(self.name, f"Request failed: {str(e)}") from e

        if response.status_code >= 400:
            logger.error(
                "Razorpay rejected order creation",
                receipt=receipt,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise PaymentGatewayError(
                self.name,
                f"Failed to create order: {response.text}",
                response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Razorpay returned a malformed body", receipt=receipt, body=response.text[:500])
            raise PaymentGatewayError(self.name, "Malformed gateway response") from e
        if not isinstance(data, dict) or not data.get("id"):
            raise PaymentGatewayError(self.name, "Gateway response carried no order id")

        return GatewayIntent(
            id=data["id"],
            amount=int(data.get("amount", amount_minor)),
            currency=data.get("currency", currency),
        )


# ============================================================================
# Fake Adapter
# ============================================================================


@dataclass
class FakeGatewayCall:
    """Recorded call to the fake gateway."""

    amount_minor: int
    currency: str
    receipt: str
    notes: dict[str, str] = field(default_factory=dict)


class FakePaymentGateway(PaymentGateway):
    """Configurable fake payment gateway.

    Issues ``order_fake_*`` ids and signs with the configured secret, so
    callers can produce valid signatures with :meth:`sign`.
    """

    name = "fake"

    def __init__(self, key_secret: str = "fake-secret") -> None:
        super().__init__(key_secret)
        self.failure: PaymentGatewayError | None = None
        self.calls: list[FakeGatewayCall] = []

    def configure(self, failure: PaymentGatewayError | None = None) -> None:
        """Make subsequent calls raise ``failure`` (None restores success)."""
        self.failure = failure

    def sign(self, gateway_order_id: str, gateway_payment_id: str) -> str:
        """Produce the signature the gateway would send to the client."""
        return compute_signature(self._key_secret, gateway_order_id, gateway_payment_id)

    async def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> GatewayIntent:
        self.calls.append(
            FakeGatewayCall(
                amount_minor=amount_minor,
                currency=currency,
                receipt=receipt,
                notes=dict(notes or {}),
            )
        )
        if self.failure is not None:
            raise self.failure
        return GatewayIntent(
            id=f"order_fake_{uuid4().hex[:14]}",
            amount=amount_minor,
            currency=currency,
        )


def build_payment_gateway(settings: Settings) -> PaymentGateway:
    """Build the gateway selected by configuration.

    Args:
        settings: Application settings.

    Returns:
        PaymentGateway adapter.
    """
    if settings.payment_gateway == "fake":
        return FakePaymentGateway(key_secret=settings.razorpay_key_secret)
    return RazorpayGateway(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
        base_url=settings.razorpay_base_url,
        timeout=settings.gateway_timeout_seconds,
    )
