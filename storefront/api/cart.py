"""Cart API endpoints.

Provides endpoints for the caller's cart:
- GET /cart - current cart (user cart, else session cart)
- POST /cart/items - add a variant
- PATCH /cart/items/{variant_id} - set a line quantity
- DELETE /cart/items/{variant_id} - remove a line
- POST /cart/merge - fold a guest cart into the user's cart
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from storefront.api.converters import cart_to_response
from storefront.api.dependencies import RequiredUserId, UserId, get_cart_service
from storefront.api.errors import api_error
from storefront.api.schemas import (
    AddCartItemRequest,
    CartResponse,
    ErrorResponse,
    MergeCartRequest,
    UpdateCartItemRequest,
)
from storefront.application.cart_service import CartResult, CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

CartServiceDep = Annotated[CartService, Depends(get_cart_service)]


def _require_identity(user_id: int | None, session_id: str | None) -> None:
    if user_id is None and not session_id:
        raise api_error("SESSION_REQUIRED", "sessionId or an authenticated user is required")


def _respond(result: CartResult, session_id: str | None) -> CartResponse:
    if not result.success:
        raise api_error(result.error_code, result.error, result.details)
    return cart_to_response(result.cart, result.issued_session_id or session_id)


@router.get(
    "",
    response_model=CartResponse,
    summary="Get cart",
)
async def get_cart(
    user_id: UserId,
    service: CartServiceDep,
    session_id: Annotated[str | None, Query(alias="sessionId")] = None,
) -> CartResponse:
    """Get the caller's cart, or an empty skeleton when none exists."""
    result = await service.get_cart(user_id, session_id)
    return _respond(result, session_id)


@router.post(
    "/items",
    response_model=CartResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Add item to cart",
)
async def add_item(
    body: AddCartItemRequest,
    user_id: UserId,
    service: CartServiceDep,
) -> CartResponse:
    """Add a variant to the cart.

    Quantities accumulate per variant and may not exceed tracked stock.
    An anonymous caller without a session id receives a new one in the
    response.

    Args:
        body: Item to add.
        user_id: Authenticated user, if any.
        service: Cart service.

    Returns:
        Updated cart.
    """
    result = await service.add_item(user_id, body.session_id, body.variant_id, body.quantity)
    return _respond(result, body.session_id)


@router.patch(
    "/items/{variant_id}",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Set item quantity",
)
async def update_item(
    variant_id: int,
    body: UpdateCartItemRequest,
    user_id: UserId,
    service: CartServiceDep,
) -> CartResponse:
    """Set a line quantity; zero removes the line."""
    _require_identity(user_id, body.session_id)
    result = await service.update_item(user_id, body.session_id, variant_id, body.quantity)
    return _respond(result, body.session_id)


@router.delete(
    "/items/{variant_id}",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Remove item",
)
async def remove_item(
    variant_id: int,
    user_id: UserId,
    service: CartServiceDep,
    session_id: Annotated[str | None, Query(alias="sessionId")] = None,
) -> CartResponse:
    """Remove a line from the cart."""
    _require_identity(user_id, session_id)
    result = await service.remove_item(user_id, session_id, variant_id)
    return _respond(result, session_id)


@router.post(
    "/merge",
    response_model=CartResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Merge guest cart",
)
async def merge_cart(
    body: MergeCartRequest,
    user_id: RequiredUserId,
    service: CartServiceDep,
) -> CartResponse:
    """Fold the guest cart for ``sessionId`` into the user's cart."""
    result = await service.merge(user_id, body.session_id)
    return _respond(result, None)
