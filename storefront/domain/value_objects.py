"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Self

from storefront.domain.base import ValueObject
from storefront.domain.exceptions import InvalidPostalCodeError


# ============================================================================
# Money
# ============================================================================

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str | float) -> Decimal:
    """Normalize a numeric amount to a two-place decimal.

    Floats go through ``str`` so binary noise never reaches the ledger.

    Args:
        value: Amount in major units.

    Returns:
        Decimal quantized to cents.
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to the gateway's integer minor unit.

    Args:
        amount: Amount in major units (e.g., rupees).

    Returns:
        Integer amount in minor units (e.g., paise).
    """
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_money(amount: Decimal, currency: str) -> str:
    """Format an amount for documents and emails.

    Returns:
        e.g. ``"240.00 INR"``.
    """
    return f"{to_money(amount):.2f} {currency}"


@dataclass(frozen=True)
class OrderTotals(ValueObject):
    """The money block of an order.

    Attributes:
        subtotal: Sum of line totals.
        shipping: Shipping charge after any free-shipping waiver.
        tax: Tax amount.
        discount: Discount amount.
    """

    subtotal: Decimal
    shipping: Decimal = ZERO
    tax: Decimal = ZERO
    discount: Decimal = ZERO

    def __post_init__(self) -> None:
        """Normalize every component to cents."""
        for name in ("subtotal", "shipping", "tax", "discount"):
            object.__setattr__(self, name, to_money(getattr(self, name)))

    @property
    def grand_total(self) -> Decimal:
        """Subtotal plus shipping plus tax minus discount."""
        return self.subtotal + self.shipping + self.tax - self.discount

    @classmethod
    def sum_lines(cls, lines: list[tuple[Decimal, int]]) -> Decimal:
        """Sum ``unit_price * quantity`` over lines, exactly.

        Args:
            lines: (unit_price, quantity) pairs.

        Returns:
            Subtotal in cents.
        """
        total = ZERO
        for unit_price, quantity in lines:
            total += to_money(unit_price) * quantity
        return to_money(total)


# ============================================================================
# Pincode
# ============================================================================

PINCODE_MIN = 10000
PINCODE_MAX = 999999

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class Pincode(ValueObject):
    """Postal code normalized to an integer within the 5-6 digit bound.

    Attributes:
        value: Digits-only postal code.
    """

    value: int

    def __post_init__(self) -> None:
        """Validate pincode bounds."""
        if not PINCODE_MIN <= self.value <= PINCODE_MAX:
            raise InvalidPostalCodeError(self.value)

    @classmethod
    def parse(cls, raw: object) -> Self:
        """Strip non-digits from raw input and validate it.

        Args:
            raw: User supplied postal code (string or number).

        Returns:
            Pincode instance.

        Raises:
            InvalidPostalCodeError: If nothing usable remains.
        """
        if raw is None or isinstance(raw, bool):
            raise InvalidPostalCodeError(raw)
        digits = _NON_DIGITS.sub("", str(raw))
        if not digits:
            raise InvalidPostalCodeError(raw)
        value = int(digits)
        if not PINCODE_MIN <= value <= PINCODE_MAX:
            raise InvalidPostalCodeError(raw)
        return cls(value=value)

    def __str__(self) -> str:
        """Return string representation.

        Returns:
            Pincode digits.
        """
        return str(self.value)


def normalize_pincode(raw: object) -> int:
    """Shorthand for ``Pincode.parse(raw).value``."""
    return Pincode.parse(raw).value


# ============================================================================
# State to PIN-zone ranges
# ============================================================================

STATE_PINCODE_RANGES: dict[str, tuple[int, int]] = {
    "DL": (110000, 119999),
    "HR": (120000, 139999),
    "PB": (140000, 159999),
    "CH": (160000, 169999),
    "HP": (170000, 179999),
    "JK": (180000, 199999),
    "UP": (200000, 289999),
    "UK": (200000, 289999),
    "RJ": (300000, 349999),
    "GJ": (360000, 399999),
    "MH": (400000, 459999),
    "AP": (500000, 599999),
    "TG": (500000, 599999),
    "KA": (560000, 599999),
    "TN": (600000, 659999),
    "KL": (670000, 699999),
    "WB": (700000, 749999),
    "OR": (750000, 769999),
    "AS": (780000, 799999),
    "BR": (800000, 849999),
    "JH": (820000, 849999),
    "AN": (744000, 744999),
    "CHD": (160000, 169999),
    "LD": (682000, 682999),
    "PY": (605000, 605999),
    "LA": (194101, 194199),
    "DN": (396000, 396999),
}

_STATE_NAMES: dict[str, str] = {
    "DELHI": "DL",
    "HARYANA": "HR",
    "PUNJAB": "PB",
    "HIMACHAL PRADESH": "HP",
    "JAMMU AND KASHMIR": "JK",
    "UTTAR PRADESH": "UP",
    "UTTARAKHAND": "UK",
    "RAJASTHAN": "RJ",
    "GUJARAT": "GJ",
    "MAHARASHTRA": "MH",
    "ANDHRA PRADESH": "AP",
    "TELANGANA": "TG",
    "KARNATAKA": "KA",
    "TAMIL NADU": "TN",
    "KERALA": "KL",
    "WEST BENGAL": "WB",
    "ODISHA": "OR",
    "ASSAM": "AS",
    "BIHAR": "BR",
    "JHARKHAND": "JH",
    "ANDAMAN AND NICOBAR ISLANDS": "AN",
    "PUDUCHERRY": "PY",
    "LADAKH": "LA",
    "DADRA AND NAGAR HAVELI AND DAMAN AND DIU": "DN",
}


def state_pincode_range(state: str | None) -> tuple[int, int] | None:
    """Map a state code or name to its broad PIN-zone range.

    Args:
        state: Code such as ``"KA"`` or name such as ``"Karnataka"``.

    Returns:
        (from, to) tuple, or None for unknown states.
    """
    if not state:
        return None
    key = state.strip().upper()
    code = key if key in STATE_PINCODE_RANGES else _STATE_NAMES.get(key)
    if code is None:
        return None
    return STATE_PINCODE_RANGES[code]


# ============================================================================
# Order Number
# ============================================================================


@dataclass(frozen=True)
class OrderNumber(ValueObject):
    """Human-readable order number ``ORD-YYYYMMDD-NNNNNN``.

    Uniqueness comes from the persisted identifier; the date part is
    informative only.
    """

    value: str

    @classmethod
    def issue(cls, order_id: int, created_at: datetime) -> Self:
        """Build the order number for a persisted order.

        Args:
            order_id: Database identifier.
            created_at: Creation timestamp.

        Returns:
            OrderNumber instance.
        """
        return cls(value=f"ORD-{created_at:%Y%m%d}-{order_id:06d}")

    def __str__(self) -> str:
        """Return string representation.

        Returns:
            Order number.
        """
        return self.value


# ============================================================================
# Guest Access Token
# ============================================================================


@dataclass(frozen=True)
class GuestAccessToken(ValueObject):
    """Capability token handed to customers who check out without an account.

    Only ``digest`` is persisted; ``value`` is shown to the customer once.
    """

    value: str

    @classmethod
    def generate(cls) -> Self:
        """Generate a token from the OS CSPRNG (256 bits).

        Returns:
            New GuestAccessToken.
        """
        return cls(value=secrets.token_urlsafe(32))

    @property
    def digest(self) -> str:
        """SHA-256 hex digest stored on the order."""
        return hash_guest_token(self.value)

    def __str__(self) -> str:
        """Return string representation.

        Returns:
            Token value.
        """
        return self.value


def hash_guest_token(token: str) -> str:
    """Hash a guest token for storage or comparison."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def guest_token_matches(token: str | None, stored_digest: str | None) -> bool:
    """Compare a presented token against a stored digest in constant time.

    Args:
        token: Token from the request.
        stored_digest: Digest persisted on the order.

    Returns:
        True only if both are present and match.
    """
    if not token or not stored_digest:
        return False
    return hmac.compare_digest(hash_guest_token(token), stored_digest)


# ============================================================================
# Address and Customer
# ============================================================================


@dataclass(frozen=True)
class Address(ValueObject):
    """Shipping address snapshot.

    Attributes:
        line1: Primary address line.
        line2: Secondary address line (optional).
        city: City name.
        state: State/province/region (optional).
        postal_code: Postal code as entered.
        country: ISO 3166-1 alpha-2 country code.
    """

    line1: str
    city: str
    postal_code: str
    country: str = "IN"
    state: str | None = None
    line2: str | None = None

    def __post_init__(self) -> None:
        """Normalize country to uppercase."""
        object.__setattr__(self, "country", self.country.upper())

    @property
    def pincode(self) -> Pincode:
        """Normalized postal code.

        Raises:
            InvalidPostalCodeError: If the postal code is unusable.
        """
        return Pincode.parse(self.postal_code)

    def format_single_line(self) -> str:
        """Format address as single line.

        Returns:
            Formatted address string.
        """
        parts = [self.line1]
        if self.line2:
            parts.append(self.line2)
        parts.append(self.city)
        if self.state:
            parts.append(self.state)
        parts.extend([self.postal_code, self.country])
        return ", ".join(parts)


@dataclass(frozen=True)
class CustomerInfo(ValueObject):
    """Customer information for an order.

    Attributes:
        email: Customer email address.
        name: Customer full name.
        phone: Phone number (optional).
    """

    email: str
    name: str
    phone: str | None = None
