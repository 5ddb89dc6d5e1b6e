"""Checkout API endpoint.

- POST /checkout - place an order from the caller's cart
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, status

from storefront.api.converters import order_to_schema, rule_to_schema
from storefront.api.dependencies import UserId, get_checkout_service
from storefront.api.errors import api_error
from storefront.api.schemas import CheckoutRequestSchema, CheckoutResponse, ErrorResponse
from storefront.application.checkout_service import CheckoutRequest, CheckoutService
from storefront.application.post_commit import run_post_commit_tasks
from storefront.domain.value_objects import Address, CustomerInfo

logger = structlog.get_logger()

router = APIRouter(tags=["Checkout"])


def to_checkout_request(body: CheckoutRequestSchema, user_id: int | None) -> CheckoutRequest:
    """Map the request body onto the service input."""
    address = body.customer.address
    return CheckoutRequest(
        customer=CustomerInfo(
            email=body.customer.email,
            name=body.customer.name,
            phone=body.customer.phone,
        ),
        address=(
            Address(
                line1=address.line1,
                line2=address.line2,
                city=address.city,
                state=address.state,
                postal_code=str(address.postal_code) if address.postal_code is not None else "",
                country=address.country,
            )
            if address is not None
            else None
        ),
        payment_method=body.payment_method,
        user_id=user_id,
        cart_id=body.cart_id,
        session_id=body.session_id,
    )


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Place order",
    description="Turn the caller's cart into a pending order.",
)
async def checkout(
    body: CheckoutRequestSchema,
    user_id: UserId,
    background_tasks: BackgroundTasks,
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> CheckoutResponse:
    """Place an order.

    Stock is decremented, shipping priced and the cart cleared in one
    transaction. Invoice generation and the confirmation email run after
    the response is sent; their failure never affects the order.

    Args:
        body: Checkout request.
        user_id: Authenticated user, if any.
        background_tasks: FastAPI background tasks.
        service: Checkout service.

    Returns:
        Placed order; guests also receive their access token once.

    Raises:
        HTTPException: On validation, stock or persistence failure.
    """
    result = await service.checkout(to_checkout_request(body, user_id))
    if not result.success or result.order is None:
        raise api_error(result.error_code, result.error, result.details)

    if result.deferred_tasks:
        background_tasks.add_task(run_post_commit_tasks, result.deferred_tasks)

    order = result.order
    return CheckoutResponse(
        order_number=order.order_number or "",
        data=order_to_schema(order),
        applied_shipping_rule=rule_to_schema(result.applied_rule) if result.applied_rule else None,
        guest_access_token=result.guest_access_token,
    )
