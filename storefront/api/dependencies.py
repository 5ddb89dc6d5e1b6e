"""FastAPI dependencies.

Caller identity from bearer tokens and application services built from
the handles the lifespan stores on ``app.state``.
"""

from typing import Annotated

import structlog
from fastapi import Depends, Header, HTTPException, Request, status
from jose import JWTError, jwt

from storefront.application.cart_service import CartService
from storefront.application.checkout_service import CheckoutService
from storefront.application.order_service import OrderService
from storefront.application.payment_service import PaymentService
from storefront.application.shipping_service import ShippingService
from storefront.infrastructure.config import Settings
from storefront.infrastructure.database import Database

logger = structlog.get_logger()


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error_code": "UNAUTHORIZED", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_settings(request: Request) -> Settings:
    """Settings the application was built with."""
    return request.app.state.settings


def get_db(request: Request) -> Database:
    """Database handle owned by the application."""
    return request.app.state.db


def get_request_id(request: Request) -> str | None:
    """Correlation id set by the request id middleware."""
    return getattr(request.state, "request_id", None)


def get_user_id(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[str | None, Header()] = None,
) -> int | None:
    """Resolve the caller's user id from an optional bearer token.

    No header means an anonymous caller.

    Args:
        settings: Application settings.
        authorization: Authorization header value.

    Returns:
        User id, or None for anonymous callers.

    Raises:
        HTTPException: 401 for a malformed, expired or badly signed token.
    """
    if not authorization:
        return None

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _unauthorized("Invalid Authorization header format. Use 'Bearer <token>'")

    try:
        payload = jwt.decode(parts[1], settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.warning("Rejected bearer token", error=str(e))
        raise _unauthorized("Invalid or expired token") from e

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError) as e:
        raise _unauthorized("Token subject is not a user id") from e


def require_user_id(user_id: Annotated[int | None, Depends(get_user_id)]) -> int:
    """Require an authenticated caller."""
    if user_id is None:
        raise _unauthorized("Authentication required")
    return user_id


UserId = Annotated[int | None, Depends(get_user_id)]
RequiredUserId = Annotated[int, Depends(require_user_id)]


# ============================================================================
# Services
# ============================================================================


def get_cart_service(request: Request) -> CartService:
    """Get cart service with request ID."""
    return CartService(get_db(request), request_id=get_request_id(request))


def get_checkout_service(request: Request) -> CheckoutService:
    """Get checkout service with request ID."""
    return CheckoutService(
        get_db(request),
        side_effects=request.app.state.side_effects,
        currency=get_settings(request).payment_currency,
        request_id=get_request_id(request),
    )


def get_order_service(request: Request) -> OrderService:
    """Get order service with request ID."""
    return OrderService(get_db(request), request_id=get_request_id(request))


def get_payment_service(request: Request) -> PaymentService:
    """Get payment service with request ID."""
    settings = get_settings(request)
    return PaymentService(
        get_db(request),
        gateway=request.app.state.payment_gateway,
        side_effects=request.app.state.side_effects,
        key_id=settings.razorpay_key_id,
        request_id=get_request_id(request),
    )


def get_shipping_service(request: Request) -> ShippingService:
    """Get shipping service with request ID."""
    return ShippingService(get_db(request), request_id=get_request_id(request))
