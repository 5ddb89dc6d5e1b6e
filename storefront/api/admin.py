"""Administrative API endpoints.

All paths require the ``X-Admin-Key`` header (see ``AdminKeyMiddleware``).

Shipping rules:
- GET /admin/shipping-rules - list rules
- POST /admin/shipping-rules - create a rule (explicit range or state)
- GET /admin/shipping-rules/{rule_id} - get a rule
- PUT /admin/shipping-rules/{rule_id} - update supplied fields
- DELETE /admin/shipping-rules/{rule_id} - delete a rule

Orders:
- GET /admin/orders - list all orders
- PATCH /admin/orders/{order_number}/status - apply a fulfillment transition
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from storefront.api.converters import order_to_schema, page_meta, rule_to_schema
from storefront.api.dependencies import get_order_service, get_shipping_service
from storefront.api.errors import api_error
from storefront.api.schemas import (
    ErrorResponse,
    OrderListResponse,
    OrderSchema,
    OrderStatusEnum,
    OrderStatusUpdateRequest,
    PaymentStatusEnum,
    ShippingRuleListResponse,
    ShippingRuleResponse,
    ShippingRuleWriteRequest,
)
from storefront.application.order_service import OrderService
from storefront.application.shipping_service import (
    ShippingRuleInput,
    ShippingRuleResult,
    ShippingService,
)
from storefront.domain.state_machines import OrderStatus

router = APIRouter(prefix="/admin", tags=["Admin"])

ShippingServiceDep = Annotated[ShippingService, Depends(get_shipping_service)]
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]


def _rule_response(result: ShippingRuleResult) -> ShippingRuleResponse:
    if not result.success or result.rule is None:
        raise api_error(result.error_code, result.error, result.details)
    return ShippingRuleResponse(
        data=rule_to_schema(result.rule),
        overlap_with=rule_to_schema(result.overlap_with) if result.overlap_with else None,
    )


# ============================================================================
# Shipping Rules
# ============================================================================


@router.get(
    "/shipping-rules",
    response_model=ShippingRuleListResponse,
    summary="List shipping rules",
)
async def list_shipping_rules(
    service: ShippingServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=200, alias="pageSize")] = 50,
    is_active: Annotated[bool | None, Query(alias="isActive")] = None,
    q: str | None = None,
) -> ShippingRuleListResponse:
    """List rules, highest priority first."""
    result = await service.list_rules(page=page, page_size=page_size, is_active=is_active, q=q)
    return ShippingRuleListResponse(
        data=[rule_to_schema(rule) for rule in result.rules],
        meta=page_meta(result.total, result.page, result.page_size),
    )


@router.post(
    "/shipping-rules",
    response_model=ShippingRuleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create shipping rule",
)
async def create_shipping_rule(
    body: ShippingRuleWriteRequest,
    service: ShippingServiceDep,
) -> ShippingRuleResponse:
    """Create a rule.

    Accepts an explicit ``pincodeFrom``/``pincodeTo`` range or a state
    name or code. Overlap with an active rule is allowed and reported in
    ``overlapWith``.

    Args:
        body: Rule fields.
        service: Shipping service.

    Returns:
        Created rule and any overlap warning.
    """
    data = ShippingRuleInput.from_fields(body.model_dump(exclude_unset=True))
    return _rule_response(await service.create_rule(data))


@router.get(
    "/shipping-rules/{rule_id}",
    response_model=ShippingRuleResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get shipping rule",
)
async def get_shipping_rule(rule_id: int, service: ShippingServiceDep) -> ShippingRuleResponse:
    """Get a rule."""
    return _rule_response(await service.get_rule(rule_id))


@router.put(
    "/shipping-rules/{rule_id}",
    response_model=ShippingRuleResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update shipping rule",
)
async def update_shipping_rule(
    rule_id: int,
    body: ShippingRuleWriteRequest,
    service: ShippingServiceDep,
) -> ShippingRuleResponse:
    """Update the fields present in the body."""
    data = ShippingRuleInput.from_fields(body.model_dump(exclude_unset=True))
    return _rule_response(await service.update_rule(rule_id, data))


@router.delete(
    "/shipping-rules/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Delete shipping rule",
)
async def delete_shipping_rule(rule_id: int, service: ShippingServiceDep) -> None:
    """Delete a rule."""
    result = await service.delete_rule(rule_id)
    if not result.success:
        raise api_error(result.error_code, result.error, result.details)


# ============================================================================
# Orders
# ============================================================================


@router.get(
    "/orders",
    response_model=OrderListResponse,
    summary="List all orders",
)
async def list_orders(
    service: OrderServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=200, alias="pageSize")] = 20,
    order_status: Annotated[OrderStatusEnum | None, Query(alias="orderStatus")] = None,
    payment_status: Annotated[PaymentStatusEnum | None, Query(alias="paymentStatus")] = None,
) -> OrderListResponse:
    """List orders newest first with optional status filters."""
    result = await service.list_orders(
        page=page,
        page_size=page_size,
        order_status=OrderStatus(order_status.value) if order_status else None,
        payment_status=payment_status.value if payment_status else None,
    )
    return OrderListResponse(
        data=[order_to_schema(order) for order in result.orders],
        meta=page_meta(result.total, result.page, result.page_size),
    )


@router.patch(
    "/orders/{order_number}/status",
    response_model=OrderSchema,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Change order status",
)
async def update_order_status(
    order_number: str,
    body: OrderStatusUpdateRequest,
    service: OrderServiceDep,
) -> OrderSchema:
    """Apply a validated fulfillment transition.

    Invalid transitions answer 409 with the allowed targets in ``details``;
    fulfillment states on an unpaid order answer 400. Cancelling returns
    stock unless ``restock`` is false.
    """
    result = await service.update_status(
        order_number,
        OrderStatus(body.status.value),
        reason=body.reason,
        actor="admin",
        restock=body.restock,
    )
    if not result.success or result.order is None:
        raise api_error(result.error_code, result.error, result.details)
    return order_to_schema(result.order)
