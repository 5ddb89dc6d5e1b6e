"""Cart application service.

Manages carts keyed by an authenticated user or an anonymous session:
- Adding, updating and removing lines with stock checks
- Clearing a cart
- Merging a guest cart into the user's cart after login
"""

from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import structlog

from storefront.domain.exceptions import (
    CartItemNotFoundError,
    DomainError,
    InsufficientStockError,
    InvalidQuantityError,
    VariantNotFoundError,
)
from storefront.infrastructure.database import Database
from storefront.infrastructure.models import CartItemModel, CartModel, VariantModel
from storefront.infrastructure.repositories import CartRepository, VariantRepository

logger = structlog.get_logger()


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class CartResult:
    """Result of a cart operation.

    ``cart`` is None when the caller has no cart yet. ``issued_session_id``
    is set when an anonymous caller was handed a new session id.
    """

    cart: CartModel | None = None
    issued_session_id: str | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: DomainError) -> "CartResult":
        """Build a failed result from a domain error."""
        return cls(
            success=False,
            error=error.message,
            error_code=error.error_code,
            details=error.details,
        )


def _check_stock(variant: VariantModel, quantity: int) -> None:
    if variant.stock is not None and quantity > variant.stock:
        raise InsufficientStockError(variant.id, quantity, variant.stock)


def _find_line(cart: CartModel, variant_id: int) -> CartItemModel | None:
    for item in cart.items:
        if item.variant_id == variant_id:
            return item
    return None


# ============================================================================
# Cart Service
# ============================================================================


class CartService:
    """Application service for carts."""

    def __init__(self, db: Database, request_id: str | None = None) -> None:
        """Initialize service.

        Args:
            db: Database handle.
            request_id: Request ID for correlation.
        """
        self.db = db
        self.request_id = request_id

    @staticmethod
    async def _find(
        carts: CartRepository,
        user_id: int | None,
        session_id: str | None,
    ) -> CartModel | None:
        if user_id is not None:
            cart = await carts.get_for_user(user_id)
            if cart is not None:
                return cart
        if session_id:
            return await carts.get_for_session(session_id)
        return None

    async def get_cart(self, user_id: int | None, session_id: str | None) -> CartResult:
        """Get the caller's cart.

        Args:
            user_id: Authenticated user, if any.
            session_id: Anonymous session id, if any.

        Returns:
            CartResult; ``cart`` is None when nothing exists yet.
        """
        async with self.db.session() as session:
            cart = await self._find(CartRepository(session), user_id, session_id)
            return CartResult(cart=cart)

    async def add_item(
        self,
        user_id: int | None,
        session_id: str | None,
        variant_id: int,
        quantity: int = 1,
    ) -> CartResult:
        """Add a variant to the cart, accumulating quantity.

        Args:
            user_id: Authenticated user, if any.
            session_id: Anonymous session id, if any.
            variant_id: Variant to add.
            quantity: Units to add.

        Returns:
            CartResult with the updated cart.
        """
        if quantity <= 0:
            return CartResult.failure(InvalidQuantityError(quantity))

        issued_session_id = None
        if user_id is None and not session_id:
            session_id = uuid4().hex
            issued_session_id = session_id

        try:
            async with self.db.transaction() as session:
                carts = CartRepository(session)
                variant = await VariantRepository(session).get(variant_id)
                if variant is None:
                    raise VariantNotFoundError(variant_id)
                _check_stock(variant, quantity)

                cart = await self._find(carts, user_id, session_id)
                if cart is None:
                    cart = await carts.create(
                        user_id=user_id,
                        session_id=None if user_id is not None else session_id,
                    )

                line = _find_line(cart, variant_id)
                if line is not None:
                    desired = line.quantity + quantity
                    _check_stock(variant, desired)
                    line.quantity = desired
                    line.price = variant.price
                else:
                    cart.items.append(
                        CartItemModel(variant_id=variant_id, quantity=quantity, price=variant.price)
                    )
                await session.flush()
                cart_id = cart.id

            logger.info(
                "Cart item added",
                cart_id=cart_id,
                variant_id=variant_id,
                quantity=quantity,
                request_id=self.request_id,
            )
        except DomainError as e:
            return CartResult.failure(e)

        result = await self._reload(cart_id)
        result.issued_session_id = issued_session_id
        return result

    async def update_item(
        self,
        user_id: int | None,
        session_id: str | None,
        variant_id: int,
        quantity: int,
    ) -> CartResult:
        """Set a line's quantity; zero removes the line.

        Returns:
            CartResult with the updated cart.
        """
        if quantity < 0:
            return CartResult.failure(
                InvalidQuantityError(quantity, "Quantity cannot be negative")
            )

        try:
            async with self.db.transaction() as session:
                cart = await self._find(CartRepository(session), user_id, session_id)
                line = _find_line(cart, variant_id) if cart is not None else None
                if cart is None or line is None:
                    raise CartItemNotFoundError(variant_id)

                if quantity == 0:
                    cart.items.remove(line)
                else:
                    variant = await VariantRepository(session).get(variant_id)
                    if variant is None:
                        raise VariantNotFoundError(variant_id)
                    _check_stock(variant, quantity)
                    line.quantity = quantity
                    line.price = variant.price
                await session.flush()
                cart_id = cart.id
        except DomainError as e:
            return CartResult.failure(e)

        return await self._reload(cart_id)

    async def remove_item(
        self,
        user_id: int | None,
        session_id: str | None,
        variant_id: int,
    ) -> CartResult:
        """Remove a line from the cart."""
        return await self.update_item(user_id, session_id, variant_id, 0)

    async def clear(self, user_id: int | None, session_id: str | None) -> CartResult:
        """Remove every line, keeping the cart row."""
        async with self.db.transaction() as session:
            carts = CartRepository(session)
            cart = await self._find(carts, user_id, session_id)
            if cart is None:
                return CartResult(cart=None)
            await carts.clear(cart)
            cart_id = cart.id
        return await self._reload(cart_id)

    async def merge(self, user_id: int, session_id: str) -> CartResult:
        """Fold a guest cart into the user's cart, then delete the guest cart.

        Quantities for the same variant accumulate; the price snapshot is
        taken from the guest line.

        Args:
            user_id: Authenticated user.
            session_id: Guest session id.

        Returns:
            CartResult with the user's cart.
        """
        async with self.db.transaction() as session:
            carts = CartRepository(session)
            guest = await carts.get_for_session(session_id)
            user_cart = await carts.get_for_user(user_id)

            if guest is None or guest.id == (user_cart.id if user_cart else None):
                return CartResult(cart=user_cart)

            if user_cart is None:
                user_cart = await carts.create(user_id=user_id)

            merged = 0
            for guest_line in guest.items:
                line = _find_line(user_cart, guest_line.variant_id)
                if line is not None:
                    line.quantity += guest_line.quantity
                    line.price = guest_line.price
                else:
                    user_cart.items.append(
                        CartItemModel(
                            variant_id=guest_line.variant_id,
                            quantity=guest_line.quantity,
                            price=guest_line.price,
                        )
                    )
                merged += 1

            await carts.delete(guest)
            cart_id = user_cart.id

        logger.info(
            "Guest cart merged",
            user_id=user_id,
            cart_id=cart_id,
            lines=merged,
            request_id=self.request_id,
        )
        return await self._reload(cart_id)

    async def _reload(self, cart_id: int) -> CartResult:
        async with self.db.session() as session:
            return CartResult(cart=await CartRepository(session).get(cart_id))
