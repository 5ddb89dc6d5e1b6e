"""Shared fixtures: a throwaway SQLite store and seed helpers."""

from collections.abc import AsyncGenerator
from decimal import Decimal
from pathlib import Path

import pytest

from storefront.application.post_commit import OrderSideEffects
from storefront.infrastructure.database import Database
from storefront.infrastructure.invoice import InvoiceGenerator
from storefront.infrastructure.models import (
    CartItemModel,
    CartModel,
    ProductModel,
    ShippingRuleModel,
    VariantModel,
)
from storefront.infrastructure.notifications import RecordingNotifier
from storefront.infrastructure.payment_gateway import FakePaymentGateway

GATEWAY_SECRET = "test-gateway-secret"


# ============================================================================
# Seed Helpers
# ============================================================================


class Seeder:
    """Writes catalog rows, rules and carts straight into a database."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def variant(
        self,
        name: str = "Tee",
        price: str = "100.00",
        stock: int | None = 10,
        sku: str | None = None,
        product_name: str = "Cotton T-Shirt",
    ) -> int:
        """Insert a product with one variant and return the variant id."""
        async with self.db.transaction() as session:
            product = ProductModel(name=product_name)
            variant = VariantModel(
                product=product,
                name=name,
                sku=sku,
                price=Decimal(price),
                stock=stock,
            )
            session.add_all([product, variant])
            await session.flush()
            return variant.id

    async def rule(
        self,
        pincode_from: int = 560000,
        pincode_to: int = 560099,
        charge: str = "40.00",
        min_order_value: str | None = None,
        priority: int = 0,
        is_active: bool = True,
        name: str | None = None,
    ) -> int:
        """Insert a shipping rule and return its id."""
        async with self.db.transaction() as session:
            rule = ShippingRuleModel(
                name=name,
                pincode_from=pincode_from,
                pincode_to=pincode_to,
                charge=Decimal(charge),
                min_order_value=Decimal(min_order_value) if min_order_value is not None else None,
                priority=priority,
                is_active=is_active,
            )
            session.add(rule)
            await session.flush()
            return rule.id

    async def cart(
        self,
        lines: list[tuple[int, int, str]],
        user_id: int | None = None,
        session_id: str | None = None,
    ) -> int:
        """Insert a cart with ``(variant_id, quantity, price)`` lines and return its id."""
        async with self.db.transaction() as session:
            cart = CartModel(
                user_id=user_id,
                session_id=session_id,
                items=[
                    CartItemModel(variant_id=variant_id, quantity=quantity, price=Decimal(price))
                    for variant_id, quantity, price in lines
                ],
            )
            session.add(cart)
            await session.flush()
            return cart.id

    async def stock(self, variant_id: int) -> int | None:
        """Current stock of a variant as stored."""
        async with self.db.session() as session:
            variant = await session.get(VariantModel, variant_id)
            assert variant is not None
            return variant.stock


def sqlite_url(directory: Path) -> str:
    """Database URL for a file inside ``directory``."""
    return f"sqlite+aiosqlite:///{directory / 'store.db'}"


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
async def db(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Fresh database with all tables created."""
    database = Database(sqlite_url(tmp_path))
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture
def seed(db: Database) -> Seeder:
    """Seed helper bound to the test database."""
    return Seeder(db)


@pytest.fixture
def seeder_class() -> type[Seeder]:
    """Seeder type, for suites that manage their own database handle."""
    return Seeder


@pytest.fixture
def gateway() -> FakePaymentGateway:
    """Fake payment gateway signing with a known secret."""
    return FakePaymentGateway(key_secret=GATEWAY_SECRET)


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Notifier keeping messages in memory."""
    return RecordingNotifier()


@pytest.fixture
def invoices(tmp_path: Path) -> InvoiceGenerator:
    """Invoice generator writing into a temporary directory."""
    return InvoiceGenerator(tmp_path / "invoices", "Test Seller", "1 Test Road, Bengaluru")


@pytest.fixture
def side_effects(
    db: Database,
    invoices: InvoiceGenerator,
    notifier: RecordingNotifier,
) -> OrderSideEffects:
    """Post-commit task builder wired to the test doubles."""
    return OrderSideEffects(
        db=db,
        invoices=invoices,
        notifier=notifier,
        public_base_url="https://shop.example.com",
    )
