#!/usr/bin/env python3
"""Seed a development store.

Creates the tables, a handful of products with stock-tracked variants,
and a default set of shipping rules.

Usage:
    python scripts/seed_store.py
    python scripts/seed_store.py --no-rules
    python scripts/seed_store.py --database-url sqlite+aiosqlite:///./dev.db
"""

import argparse
import asyncio
from decimal import Decimal

from storefront.domain.value_objects import state_pincode_range
from storefront.infrastructure.config import get_settings
from storefront.infrastructure.database import Database
from storefront.infrastructure.models import ProductModel, ShippingRuleModel, VariantModel

PRODUCTS: list[tuple[str, list[tuple[str, str, str, int | None]]]] = [
    (
        "Cotton Kurta",
        [
            ("S", "KURTA-S", "799.00", 25),
            ("M", "KURTA-M", "799.00", 40),
            ("L", "KURTA-L", "849.00", 10),
        ],
    ),
    (
        "Steel Water Bottle",
        [("750 ml", "BOTTLE-750", "449.00", 100)],
    ),
    (
        "Gift Card",
        [("Gift Card", "GIFT-500", "500.00", None)],
    ),
]

# (name, state, charge, min order value for free shipping, priority)
RULES: list[tuple[str, str, str, str | None, int]] = [
    ("Karnataka standard", "KA", "40.00", "999.00", 10),
    ("Maharashtra standard", "MH", "60.00", "1499.00", 10),
    ("Delhi standard", "DL", "60.00", "1499.00", 10),
]


async def seed(db: Database, with_rules: bool) -> dict[str, int]:
    """Insert products, variants and optionally shipping rules.

    Args:
        db: Database handle.
        with_rules: Whether to seed shipping rules.

    Returns:
        Counts of created rows.
    """
    counts = {"products": 0, "variants": 0, "rules": 0}
    async with db.transaction() as session:
        for product_name, variants in PRODUCTS:
            product = ProductModel(name=product_name)
            session.add(product)
            counts["products"] += 1
            for name, sku, price, stock in variants:
                session.add(
                    VariantModel(
                        product=product,
                        name=name,
                        sku=sku,
                        price=Decimal(price),
                        stock=stock,
                    )
                )
                counts["variants"] += 1

        if with_rules:
            # Catch-all rule for every other pincode
            session.add(
                ShippingRuleModel(
                    name="Rest of India",
                    pincode_from=100000,
                    pincode_to=999999,
                    charge=Decimal("80.00"),
                    min_order_value=Decimal("1999.00"),
                    priority=0,
                )
            )
            counts["rules"] += 1
            for name, state, charge, min_order_value, priority in RULES:
                pincode_range = state_pincode_range(state)
                if pincode_range is None:
                    continue
                session.add(
                    ShippingRuleModel(
                        name=name,
                        pincode_from=pincode_range[0],
                        pincode_to=pincode_range[1],
                        charge=Decimal(charge),
                        min_order_value=Decimal(min_order_value) if min_order_value else None,
                        priority=priority,
                    )
                )
                counts["rules"] += 1
    return counts


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed a development store")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (default: DATABASE_URL from settings)",
    )
    parser.add_argument(
        "--no-rules",
        action="store_true",
        help="Don't seed shipping rules",
    )
    args = parser.parse_args()

    db = Database(args.database_url or get_settings().database_url)
    print("=" * 60)
    print("Storefront Seeder")
    print("=" * 60)

    print("Creating database tables...")
    await db.create_all()

    try:
        counts = await seed(db, with_rules=not args.no_rules)
    finally:
        await db.dispose()

    print(f"  Products: {counts['products']}")
    print(f"  Variants: {counts['variants']}")
    print(f"  Shipping rules: {counts['rules']}")
    print("=" * 60)
    print("Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
