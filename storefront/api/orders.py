"""Order API endpoints.

Provides endpoints for customers:
- GET /orders - list the authenticated user's orders
- GET /orders/{order_number} - get one order (bearer identity or guest token)
- GET /orders/{order_number}/invoice.pdf - download the invoice of a paid order
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse

from storefront.api.converters import order_to_schema, page_meta
from storefront.api.dependencies import RequiredUserId, UserId, get_order_service
from storefront.api.errors import api_error
from storefront.api.schemas import ErrorResponse, OrderListResponse, OrderSchema
from storefront.application.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
GuestToken = Annotated[str | None, Query(description="Guest access token")]


@router.get(
    "",
    response_model=OrderListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List my orders",
)
async def list_my_orders(
    user_id: RequiredUserId,
    service: OrderServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100, alias="pageSize")] = 20,
) -> OrderListResponse:
    """List the authenticated user's orders, newest first."""
    result = await service.list_orders(page=page, page_size=page_size, user_id=user_id)
    return OrderListResponse(
        data=[order_to_schema(order) for order in result.orders],
        meta=page_meta(result.total, result.page, result.page_size),
    )


@router.get(
    "/{order_number}",
    response_model=OrderSchema,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Get order",
)
async def get_order(
    order_number: str,
    user_id: UserId,
    service: OrderServiceDep,
    token: GuestToken = None,
) -> OrderSchema:
    """Get an order.

    The caller must be the owning user or present the guest access token
    issued at checkout.

    Args:
        order_number: Public order number.
        user_id: Authenticated user, if any.
        service: Order service.
        token: Guest access token, if any.

    Returns:
        Order details.

    Raises:
        HTTPException: 404 if missing, 403 if the caller may not see it.
    """
    result = await service.get_order(order_number, user_id=user_id, token=token)
    if not result.success or result.order is None:
        raise api_error(result.error_code, result.error, result.details)
    return order_to_schema(result.order)


@router.get(
    "/{order_number}/invoice.pdf",
    response_class=FileResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Download invoice",
)
async def download_invoice(
    order_number: str,
    request: Request,
    user_id: UserId,
    service: OrderServiceDep,
    token: GuestToken = None,
) -> FileResponse:
    """Stream the invoice PDF.

    Refused while the payment is not completed, even if a file exists.
    """
    result = await service.get_invoice(
        order_number,
        request.app.state.invoices,
        user_id=user_id,
        token=token,
    )
    if not result.success or result.path is None:
        raise api_error(result.error_code, result.error)
    return FileResponse(result.path, media_type="application/pdf", filename=result.filename)
