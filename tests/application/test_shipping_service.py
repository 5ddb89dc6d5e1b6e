"""Tests for the shipping service."""

from decimal import Decimal

from storefront.application.shipping_service import ShippingRuleInput, ShippingService
from storefront.infrastructure.database import Database


class TestQuote:
    """Tests for ShippingService.quote."""

    async def test_quote_with_rule(self, db: Database, seed) -> None:
        """A covered pincode is charged."""
        rule_id = await seed.rule(charge="40.00")

        result = await ShippingService(db).quote("560 001", Decimal("200"))

        assert result.success
        assert result.pincode == 560001
        assert result.quote.charge == Decimal("40.00")
        assert result.quote.applied_rule.id == rule_id

    async def test_quote_waived(self, db: Database, seed) -> None:
        """Thresholds waive the charge."""
        await seed.rule(charge="40.00", min_order_value="150.00")

        result = await ShippingService(db).quote("560001", Decimal("200"))

        assert result.quote.charge == Decimal("0.00")
        assert result.quote.waived

    async def test_quote_prefers_priority(self, db: Database, seed) -> None:
        """The highest priority overlapping rule wins."""
        await seed.rule(pincode_from=560000, pincode_to=569999, charge="80.00", priority=0)
        city = await seed.rule(pincode_from=560000, pincode_to=560099, charge="20.00", priority=10)

        result = await ShippingService(db).quote("560001")

        assert result.quote.applied_rule.id == city
        assert result.subtotal == Decimal("0.00")

    async def test_quote_ignores_inactive(self, db: Database, seed) -> None:
        """Inactive rules never apply."""
        await seed.rule(is_active=False)

        result = await ShippingService(db).quote("560001", Decimal("10"))

        assert result.quote.applied_rule is None
        assert result.quote.charge == Decimal("0.00")

    async def test_invalid_pincode(self, db: Database) -> None:
        """Bad pincodes are rejected."""
        result = await ShippingService(db).quote("abc")
        assert result.error_code == "INVALID_POSTAL_CODE"


class TestRuleAdministration:
    """Tests for rule create/update/delete."""

    async def test_create_with_range(self, db: Database) -> None:
        """Explicit ranges are stored."""
        result = await ShippingService(db).create_rule(
            ShippingRuleInput(pincode_from="560000", pincode_to=560099, charge="40")
        )

        assert result.success
        assert result.rule.pincode_from == 560000
        assert result.rule.pincode_to == 560099
        assert result.rule.charge == Decimal("40.00")
        assert result.rule.is_active
        assert result.overlap_with is None

    async def test_create_from_state(self, db: Database) -> None:
        """A state expands to its PIN zone and names the rule."""
        result = await ShippingService(db).create_rule(
            ShippingRuleInput(state="Karnataka", charge=Decimal("50"))
        )

        assert (result.rule.pincode_from, result.rule.pincode_to) == (560000, 599999)
        assert result.rule.name == "Shipping: Karnataka"

    async def test_create_unknown_state(self, db: Database) -> None:
        """Unknown states need an explicit range."""
        result = await ShippingService(db).create_rule(
            ShippingRuleInput(state="Atlantis", charge="50")
        )
        assert result.error_code == "INVALID_RULE"

    async def test_create_reversed_range(self, db: Database) -> None:
        """pincodeFrom must not exceed pincodeTo."""
        result = await ShippingService(db).create_rule(
            ShippingRuleInput(pincode_from=560099, pincode_to=560000, charge="40")
        )
        assert result.error_code == "INVALID_RULE"

    async def test_create_requires_charge(self, db: Database) -> None:
        """Charge is mandatory."""
        result = await ShippingService(db).create_rule(
            ShippingRuleInput(pincode_from=560000, pincode_to=560099)
        )
        assert result.error_code == "INVALID_RULE"

    async def test_create_negative_charge(self, db: Database) -> None:
        """Charges cannot be negative."""
        result = await ShippingService(db).create_rule(
            ShippingRuleInput(pincode_from=560000, pincode_to=560099, charge="-1")
        )
        assert result.error_code == "INVALID_RULE"

    async def test_overlap_is_reported(self, db: Database, seed) -> None:
        """Overlapping rules are allowed but reported."""
        existing = await seed.rule(pincode_from=560000, pincode_to=560099)

        result = await ShippingService(db).create_rule(
            ShippingRuleInput(pincode_from=560050, pincode_to=560150, charge="10")
        )

        assert result.success
        assert result.overlap_with.id == existing

    async def test_update_partial(self, db: Database, seed) -> None:
        """Only supplied fields change."""
        rule_id = await seed.rule(charge="40.00", name="Bengaluru")

        result = await ShippingService(db).update_rule(
            rule_id, ShippingRuleInput(charge="25.50", priority=3)
        )

        assert result.rule.charge == Decimal("25.50")
        assert result.rule.priority == 3
        assert result.rule.name == "Bengaluru"
        assert result.rule.pincode_from == 560000

    async def test_update_clears_threshold(self, db: Database, seed) -> None:
        """An explicit null threshold removes it."""
        rule_id = await seed.rule(min_order_value="150.00")

        result = await ShippingService(db).update_rule(
            rule_id, ShippingRuleInput(min_order_value=None)
        )

        assert result.rule.min_order_value is None

    async def test_update_reversed_range(self, db: Database, seed) -> None:
        """Updates may not invert the range."""
        rule_id = await seed.rule(pincode_from=560000, pincode_to=560099)

        result = await ShippingService(db).update_rule(
            rule_id, ShippingRuleInput(pincode_from=560500)
        )

        assert result.error_code == "INVALID_RULE"

    async def test_update_missing(self, db: Database) -> None:
        """Unknown rules are reported."""
        result = await ShippingService(db).update_rule(404, ShippingRuleInput(charge="1"))
        assert result.error_code == "RULE_NOT_FOUND"

    async def test_delete(self, db: Database, seed) -> None:
        """Deleted rules are gone."""
        rule_id = await seed.rule()
        service = ShippingService(db)

        assert (await service.delete_rule(rule_id)).success
        assert (await service.get_rule(rule_id)).error_code == "RULE_NOT_FOUND"

    async def test_list_rules(self, db: Database, seed) -> None:
        """Rules list highest priority first with filters."""
        await seed.rule(priority=1, name="Low")
        await seed.rule(priority=9, name="High")
        await seed.rule(priority=5, name="Off", is_active=False)
        service = ShippingService(db)

        everything = await service.list_rules()
        active = await service.list_rules(is_active=True)
        named = await service.list_rules(q="hig")

        assert everything.total == 3
        assert [rule.name for rule in everything.rules] == ["High", "Off", "Low"]
        assert active.total == 2
        assert [rule.name for rule in named.rules] == ["High"]
