"""Session-bound repositories.

Each repository wraps one ``AsyncSession``; transaction boundaries are
owned by the caller (``Database.transaction()``).
"""

from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.domain.shipping import ShippingRuleSnapshot
from storefront.infrastructure.models import (
    CartItemModel,
    CartModel,
    OrderModel,
    OrderStatusHistoryModel,
    ShippingRuleModel,
    VariantModel,
)


# ============================================================================
# Variants
# ============================================================================


class VariantRepository:
    """Variant reads and the conditional stock decrement."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, variant_id: int, refresh: bool = False) -> VariantModel | None:
        """Get a variant with its product.

        Args:
            variant_id: Variant identifier.
            refresh: Overwrite any identity-map copy with the row as stored.

        Returns:
            VariantModel or None.
        """
        stmt = (
            select(VariantModel)
            .options(selectinload(VariantModel.product))
            .where(VariantModel.id == variant_id)
        )
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def decrement_stock(self, variant_id: int, quantity: int) -> bool:
        """Atomically take ``quantity`` units from a variant.

        Untracked stock (NULL) always succeeds and stays NULL.

        Args:
            variant_id: Variant identifier.
            quantity: Units to take.

        Returns:
            True if the row was updated, False if the variant is missing or short.
        """
        stmt = (
            update(VariantModel)
            .where(VariantModel.id == variant_id)
            .where((VariantModel.stock.is_(None)) | (VariantModel.stock >= quantity))
            .values(stock=VariantModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def restock(self, variant_id: int, quantity: int) -> bool:
        """Return ``quantity`` units to a tracked variant.

        Untracked stock (NULL) is left alone.

        Returns:
            True if a tracked row was updated.
        """
        stmt = (
            update(VariantModel)
            .where(VariantModel.id == variant_id)
            .where(VariantModel.stock.is_not(None))
            .values(stock=VariantModel.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1


# ============================================================================
# Carts
# ============================================================================


def _cart_options() -> Any:
    return (
        selectinload(CartModel.items)
        .selectinload(CartItemModel.variant)
        .selectinload(VariantModel.product)
    )


class CartRepository:
    """Cart persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, cart_id: int) -> CartModel | None:
        """Get cart by ID with items loaded."""
        result = await self.session.execute(
            select(CartModel)
            .options(_cart_options())
            .where(CartModel.id == cart_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_for_user(self, user_id: int) -> CartModel | None:
        """Get the user's most recent cart."""
        result = await self.session.execute(
            select(CartModel)
            .options(_cart_options())
            .where(CartModel.user_id == user_id)
            .order_by(CartModel.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_for_session(self, session_id: str) -> CartModel | None:
        """Get the anonymous cart for a session id."""
        result = await self.session.execute(
            select(CartModel)
            .options(_cart_options())
            .where(CartModel.session_id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, user_id: int | None = None, session_id: str | None = None) -> CartModel:
        """Create an empty cart."""
        cart = CartModel(user_id=user_id, session_id=session_id, items=[])
        self.session.add(cart)
        await self.session.flush()
        return cart

    async def clear(self, cart: CartModel) -> None:
        """Delete every line of a cart, keeping the cart row."""
        await self.session.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart.id)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()

    async def delete(self, cart: CartModel) -> None:
        """Delete a cart and its lines."""
        await self.session.delete(cart)
        await self.session.flush()


# ============================================================================
# Shipping Rules
# ============================================================================


def rule_snapshot(rule: ShippingRuleModel) -> ShippingRuleSnapshot:
    """Detach a rule row into a domain snapshot."""
    return ShippingRuleSnapshot(
        id=rule.id,
        name=rule.name,
        pincode_from=rule.pincode_from,
        pincode_to=rule.pincode_to,
        charge=rule.charge,
        min_order_value=rule.min_order_value,
        priority=rule.priority,
        is_active=rule.is_active,
    )


class ShippingRuleRepository:
    """Shipping rule persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def covering(self, pincode: int) -> list[ShippingRuleSnapshot]:
        """Active rules whose range contains the pincode."""
        result = await self.session.execute(
            select(ShippingRuleModel).where(
                ShippingRuleModel.is_active.is_(True),
                ShippingRuleModel.pincode_from <= pincode,
                ShippingRuleModel.pincode_to >= pincode,
            )
        )
        return [rule_snapshot(rule) for rule in result.scalars().all()]

    async def overlapping(
        self,
        pincode_from: int,
        pincode_to: int,
        exclude_id: int | None = None,
    ) -> list[ShippingRuleModel]:
        """Active rules whose range intersects ``[pincode_from, pincode_to]``."""
        stmt = select(ShippingRuleModel).where(
            ShippingRuleModel.is_active.is_(True),
            ShippingRuleModel.pincode_from <= pincode_to,
            ShippingRuleModel.pincode_to >= pincode_from,
        )
        if exclude_id is not None:
            stmt = stmt.where(ShippingRuleModel.id != exclude_id)
        result = await self.session.execute(
            stmt.order_by(ShippingRuleModel.priority.desc(), ShippingRuleModel.id.desc())
        )
        return list(result.scalars().all())

    async def get(self, rule_id: int) -> ShippingRuleModel | None:
        """Get rule by ID."""
        return await self.session.get(ShippingRuleModel, rule_id)

    async def list_all(
        self,
        page: int = 1,
        page_size: int = 50,
        is_active: bool | None = None,
        q: str | None = None,
    ) -> tuple[list[ShippingRuleModel], int]:
        """List rules, highest priority first, then by range start."""
        conditions = []
        if is_active is not None:
            conditions.append(ShippingRuleModel.is_active.is_(is_active))
        if q:
            conditions.append(ShippingRuleModel.name.ilike(f"%{q}%"))

        total = (
            await self.session.execute(
                select(func.count()).select_from(ShippingRuleModel).where(*conditions)
            )
        ).scalar_one()
        result = await self.session.execute(
            select(ShippingRuleModel)
            .where(*conditions)
            .order_by(ShippingRuleModel.priority.desc(), ShippingRuleModel.pincode_from.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def add(self, rule: ShippingRuleModel) -> ShippingRuleModel:
        """Insert a rule."""
        self.session.add(rule)
        await self.session.flush()
        return rule

    async def delete(self, rule: ShippingRuleModel) -> None:
        """Delete a rule."""
        await self.session.delete(rule)
        await self.session.flush()


# ============================================================================
# Orders
# ============================================================================


class OrderRepository:
    """Order persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_number(self, order_number: str, lock: bool = False) -> OrderModel | None:
        """Get an order with items and history.

        Args:
            order_number: Public order number.
            lock: Take a row lock (SELECT ... FOR UPDATE) for the transaction.

        Returns:
            OrderModel or None.
        """
        stmt = (
            select(OrderModel)
            .options(
                selectinload(OrderModel.items),
                selectinload(OrderModel.status_history),
            )
            .where(OrderModel.order_number == order_number)
            .execution_options(populate_existing=True)
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, order_id: int) -> OrderModel | None:
        """Get an order by database id with items loaded."""
        result = await self.session.execute(
            select(OrderModel)
            .options(
                selectinload(OrderModel.items),
                selectinload(OrderModel.status_history),
            )
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_all(
        self,
        page: int = 1,
        page_size: int = 20,
        user_id: int | None = None,
        order_status: str | None = None,
        payment_status: str | None = None,
    ) -> tuple[list[OrderModel], int]:
        """List orders newest first with optional filters."""
        conditions = []
        if user_id is not None:
            conditions.append(OrderModel.user_id == user_id)
        if order_status is not None:
            conditions.append(OrderModel.order_status == order_status)
        if payment_status is not None:
            conditions.append(OrderModel.payment_status == payment_status)

        total = (
            await self.session.execute(
                select(func.count()).select_from(OrderModel).where(*conditions)
            )
        ).scalar_one()
        result = await self.session.execute(
            select(OrderModel)
            .options(
                selectinload(OrderModel.items),
                selectinload(OrderModel.status_history),
            )
            .where(*conditions)
            .order_by(OrderModel.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    async def add(self, order: OrderModel) -> OrderModel:
        """Insert an order and flush to obtain its id."""
        self.session.add(order)
        await self.session.flush()
        return order

    def record_transition(
        self,
        order: OrderModel,
        field: str,
        from_status: str | None,
        to_status: str,
        reason: str | None = None,
        actor: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> OrderStatusHistoryModel:
        """Append a status history entry to an order."""
        entry = OrderStatusHistoryModel(
            field=field,
            from_status=from_status,
            to_status=to_status,
            reason=reason,
            actor=actor,
            details=details,
        )
        order.status_history.append(entry)
        return entry
