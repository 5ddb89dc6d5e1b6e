"""Shipping rule resolution.

Maps a normalized pincode and an order subtotal to a shipping charge.
Pure: works over whatever rule snapshots the caller hands in.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from storefront.domain.base import ValueObject
from storefront.domain.value_objects import ZERO, to_money


@dataclass(frozen=True)
class ShippingRuleSnapshot(ValueObject):
    """Read-only copy of a shipping rule row.

    Attributes:
        id: Rule identifier; higher ids are newer.
        pincode_from: Inclusive lower bound.
        pincode_to: Inclusive upper bound.
        charge: Shipping charge.
        min_order_value: Subtotal at or above which shipping is free.
        priority: Higher wins among overlapping rules.
        is_active: Inactive rules never match.
        name: Optional label.
    """

    id: int
    pincode_from: int
    pincode_to: int
    charge: Decimal
    min_order_value: Decimal | None = None
    priority: int = 0
    is_active: bool = True
    name: str | None = None

    def covers(self, pincode: int) -> bool:
        """Check if the rule applies to a pincode.

        Args:
            pincode: Normalized pincode.

        Returns:
            True if active and the pincode is inside the range.
        """
        return self.is_active and self.pincode_from <= pincode <= self.pincode_to

    def overlaps(self, pincode_from: int, pincode_to: int) -> bool:
        """Check if the rule's range intersects another range."""
        return self.pincode_from <= pincode_to and pincode_from <= self.pincode_to

    def sort_key(self) -> tuple[int, int]:
        """Resolution order key: priority, then id."""
        return (self.priority, self.id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with money as strings."""
        return {
            "id": self.id,
            "name": self.name,
            "pincode_from": self.pincode_from,
            "pincode_to": self.pincode_to,
            "charge": str(to_money(self.charge)),
            "min_order_value": (
                str(to_money(self.min_order_value))
                if self.min_order_value is not None
                else None
            ),
            "priority": self.priority,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class ShippingQuote(ValueObject):
    """Result of resolving shipping for an order.

    Attributes:
        charge: Effective charge (zero when waived or unmatched).
        applied_rule: Winning rule, or None when nothing matched.
    """

    charge: Decimal
    applied_rule: ShippingRuleSnapshot | None = None

    @property
    def waived(self) -> bool:
        """True when a rule matched but its threshold waived the charge."""
        return (
            self.applied_rule is not None
            and self.charge == ZERO
            and self.applied_rule.charge != ZERO
        )


def select_rule(
    rules: Iterable[ShippingRuleSnapshot],
    pincode: int,
) -> ShippingRuleSnapshot | None:
    """Pick the winning rule for a pincode.

    Among active rules covering the pincode the highest priority wins;
    ties go to the highest id.

    Args:
        rules: Candidate rules (any order, may include inactive ones).
        pincode: Normalized pincode.

    Returns:
        The winning rule or None.
    """
    candidates = [rule for rule in rules if rule.covers(pincode)]
    if not candidates:
        return None
    return max(candidates, key=ShippingRuleSnapshot.sort_key)


def resolve_shipping(
    rules: Iterable[ShippingRuleSnapshot],
    pincode: int,
    subtotal: Decimal,
) -> ShippingQuote:
    """Compute the shipping charge for a pincode and subtotal.

    Args:
        rules: Rule table snapshot.
        pincode: Normalized pincode.
        subtotal: Order subtotal.

    Returns:
        ShippingQuote. No matching rule yields a zero charge and no rule.
    """
    rule = select_rule(rules, pincode)
    if rule is None:
        return ShippingQuote(charge=ZERO, applied_rule=None)

    if rule.min_order_value is not None and to_money(subtotal) >= to_money(rule.min_order_value):
        return ShippingQuote(charge=ZERO, applied_rule=rule)

    return ShippingQuote(charge=to_money(rule.charge), applied_rule=rule)
