"""Shipping application service.

Public shipping quotes plus administration of the shipping rule table.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from storefront.domain.exceptions import (
    DomainError,
    InvalidShippingRuleError,
    ShippingRuleNotFoundError,
)
from storefront.domain.shipping import ShippingQuote, ShippingRuleSnapshot, resolve_shipping
from storefront.domain.value_objects import ZERO, Pincode, state_pincode_range, to_money
from storefront.infrastructure.database import Database
from storefront.infrastructure.models import ShippingRuleModel
from storefront.infrastructure.repositories import ShippingRuleRepository, rule_snapshot

logger = structlog.get_logger()

_UNSET: Any = object()


# ============================================================================
# Service Input / Result Types
# ============================================================================


@dataclass
class ShippingRuleInput:
    """Fields for creating or updating a rule.

    For updates, fields left as ``_UNSET`` keep their current value.
    ``state`` is used only when an explicit range is not given.
    """

    name: Any = _UNSET
    pincode_from: Any = _UNSET
    pincode_to: Any = _UNSET
    state: Any = _UNSET
    charge: Any = _UNSET
    min_order_value: Any = _UNSET
    priority: Any = _UNSET
    is_active: Any = _UNSET

    @classmethod
    def from_fields(cls, fields: dict[str, Any]) -> "ShippingRuleInput":
        """Build from the subset of fields a caller actually sent."""
        return cls(**fields)

    def given(self, name: str) -> bool:
        """Whether a field was supplied."""
        return getattr(self, name) is not _UNSET


@dataclass
class QuoteResult:
    """Result of a shipping quote."""

    pincode: int | None = None
    subtotal: Decimal = ZERO
    quote: ShippingQuote | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ShippingRuleResult:
    """Result of a rule operation.

    ``overlap_with`` names the highest-priority active rule whose range
    intersects the written rule; overlaps are allowed.
    """

    rule: ShippingRuleSnapshot | None = None
    overlap_with: ShippingRuleSnapshot | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: DomainError) -> "ShippingRuleResult":
        """Build a failed result from a domain error."""
        return cls(
            success=False,
            error=error.message,
            error_code=error.error_code,
            details=error.details,
        )


@dataclass
class ListRulesResult:
    """Result of listing rules."""

    rules: list[ShippingRuleSnapshot] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 50


def _parse_bound(value: Any, label: str) -> int:
    try:
        return Pincode.parse(value).value
    except DomainError as e:
        raise InvalidShippingRuleError(f"Invalid {label}") from e


def _parse_amount(value: Any, label: str) -> Decimal:
    try:
        amount = to_money(value)
    except (ArithmeticError, ValueError, TypeError) as e:
        raise InvalidShippingRuleError(f"{label} must be numeric") from e
    if amount < 0:
        raise InvalidShippingRuleError(f"{label} cannot be negative")
    return amount


# ============================================================================
# Shipping Service
# ============================================================================


class ShippingService:
    """Application service for shipping quotes and rule administration."""

    def __init__(self, db: Database, request_id: str | None = None) -> None:
        """Initialize service.

        Args:
            db: Database handle.
            request_id: Request ID for correlation.
        """
        self.db = db
        self.request_id = request_id

    async def quote(self, raw_pincode: object, subtotal: Decimal | None = None) -> QuoteResult:
        """Resolve shipping for a pincode; read-only.

        Args:
            raw_pincode: Pincode as supplied by the client.
            subtotal: Order subtotal; defaults to zero.

        Returns:
            QuoteResult.
        """
        try:
            pincode = Pincode.parse(raw_pincode).value
        except DomainError as e:
            return QuoteResult(
                success=False,
                error=e.message,
                error_code=e.error_code,
                details=e.details,
            )

        amount = to_money(subtotal if subtotal is not None else ZERO)
        async with self.db.session() as session:
            rules = await ShippingRuleRepository(session).covering(pincode)
        return QuoteResult(
            pincode=pincode,
            subtotal=amount,
            quote=resolve_shipping(rules, pincode, amount),
        )

    async def list_rules(
        self,
        page: int = 1,
        page_size: int = 50,
        is_active: bool | None = None,
        q: str | None = None,
    ) -> ListRulesResult:
        """List rules with pagination and filtering."""
        async with self.db.session() as session:
            rules, total = await ShippingRuleRepository(session).list_all(
                page=page, page_size=page_size, is_active=is_active, q=q
            )
            return ListRulesResult(
                rules=[rule_snapshot(rule) for rule in rules],
                total=total,
                page=page,
                page_size=page_size,
            )

    async def get_rule(self, rule_id: int) -> ShippingRuleResult:
        """Get one rule."""
        async with self.db.session() as session:
            rule = await ShippingRuleRepository(session).get(rule_id)
            if rule is None:
                return ShippingRuleResult.failure(ShippingRuleNotFoundError(rule_id))
            return ShippingRuleResult(rule=rule_snapshot(rule))

    @staticmethod
    def _resolve_range(data: ShippingRuleInput) -> tuple[int | None, int | None]:
        pincode_from = (
            _parse_bound(data.pincode_from, "pincodeFrom")
            if data.given("pincode_from") and data.pincode_from is not None
            else None
        )
        pincode_to = (
            _parse_bound(data.pincode_to, "pincodeTo")
            if data.given("pincode_to") and data.pincode_to is not None
            else None
        )
        if (pincode_from is None or pincode_to is None) and data.given("state") and data.state:
            state_range = state_pincode_range(data.state)
            if state_range is None:
                raise InvalidShippingRuleError(
                    "Unknown state. Provide explicit pincodeFrom and pincodeTo."
                )
            pincode_from, pincode_to = state_range
        return pincode_from, pincode_to

    async def create_rule(self, data: ShippingRuleInput) -> ShippingRuleResult:
        """Create a rule from an explicit range or a state.

        Args:
            data: Rule fields.

        Returns:
            ShippingRuleResult with the created rule and any overlap warning.
        """
        try:
            pincode_from, pincode_to = self._resolve_range(data)
            if pincode_from is None or pincode_to is None:
                raise InvalidShippingRuleError(
                    "pincodeFrom and pincodeTo required (or provide a recognized state)"
                )
            if pincode_from > pincode_to:
                raise InvalidShippingRuleError("pincodeFrom must be <= pincodeTo")
            if not data.given("charge") or data.charge is None:
                raise InvalidShippingRuleError("charge is required")
            charge = _parse_amount(data.charge, "charge")
            min_order_value = (
                _parse_amount(data.min_order_value, "minOrderValue")
                if data.given("min_order_value") and data.min_order_value is not None
                else None
            )
        except DomainError as e:
            return ShippingRuleResult.failure(e)

        name = data.name if data.given("name") else None
        if name is None and data.given("state") and data.state:
            name = f"Shipping: {data.state}"

        async with self.db.transaction() as session:
            rules = ShippingRuleRepository(session)
            overlaps = await rules.overlapping(pincode_from, pincode_to)
            rule = await rules.add(
                ShippingRuleModel(
                    name=name,
                    pincode_from=pincode_from,
                    pincode_to=pincode_to,
                    charge=charge,
                    min_order_value=min_order_value,
                    priority=data.priority if data.given("priority") and data.priority is not None else 0,
                    is_active=data.is_active if data.given("is_active") and data.is_active is not None else True,
                )
            )
            snapshot = rule_snapshot(rule)

        logger.info(
            "Shipping rule created",
            rule_id=snapshot.id,
            pincode_from=pincode_from,
            pincode_to=pincode_to,
            overlaps=len(overlaps),
            request_id=self.request_id,
        )
        return ShippingRuleResult(
            rule=snapshot,
            overlap_with=rule_snapshot(overlaps[0]) if overlaps else None,
        )

    async def update_rule(self, rule_id: int, data: ShippingRuleInput) -> ShippingRuleResult:
        """Update the supplied fields of a rule.

        Args:
            rule_id: Rule to update.
            data: Fields to change.

        Returns:
            ShippingRuleResult with the updated rule and any overlap warning.
        """
        try:
            pincode_from, pincode_to = self._resolve_range(data)
            charge = None
            if data.given("charge"):
                if data.charge is None:
                    raise InvalidShippingRuleError("charge cannot be empty")
                charge = _parse_amount(data.charge, "charge")
            min_order_value = (
                _parse_amount(data.min_order_value, "minOrderValue")
                if data.given("min_order_value") and data.min_order_value is not None
                else None
            )

            async with self.db.transaction() as session:
                rules = ShippingRuleRepository(session)
                rule = await rules.get(rule_id)
                if rule is None:
                    raise ShippingRuleNotFoundError(rule_id)

                new_from = pincode_from if pincode_from is not None else rule.pincode_from
                new_to = pincode_to if pincode_to is not None else rule.pincode_to
                if new_from > new_to:
                    raise InvalidShippingRuleError("pincodeFrom must be <= pincodeTo")

                rule.pincode_from = new_from
                rule.pincode_to = new_to
                if data.given("name"):
                    rule.name = data.name
                if charge is not None:
                    rule.charge = charge
                if data.given("min_order_value"):
                    rule.min_order_value = min_order_value
                if data.given("priority") and data.priority is not None:
                    rule.priority = data.priority
                if data.given("is_active") and data.is_active is not None:
                    rule.is_active = data.is_active
                await session.flush()

                overlaps = (
                    await rules.overlapping(new_from, new_to, exclude_id=rule_id)
                    if rule.is_active
                    else []
                )
                snapshot = rule_snapshot(rule)
        except DomainError as e:
            return ShippingRuleResult.failure(e)

        logger.info("Shipping rule updated", rule_id=rule_id, request_id=self.request_id)
        return ShippingRuleResult(
            rule=snapshot,
            overlap_with=rule_snapshot(overlaps[0]) if overlaps else None,
        )

    async def delete_rule(self, rule_id: int) -> ShippingRuleResult:
        """Delete a rule."""
        async with self.db.transaction() as session:
            rules = ShippingRuleRepository(session)
            rule = await rules.get(rule_id)
            if rule is None:
                return ShippingRuleResult.failure(ShippingRuleNotFoundError(rule_id))
            snapshot = rule_snapshot(rule)
            await rules.delete(rule)

        logger.info("Shipping rule deleted", rule_id=rule_id, request_id=self.request_id)
        return ShippingRuleResult(rule=snapshot)
