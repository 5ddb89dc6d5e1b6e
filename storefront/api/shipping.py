"""Shipping API endpoints.

- GET /shipping/calculate - public, read-only shipping quote
"""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from storefront.api.converters import money, rule_to_schema
from storefront.api.dependencies import get_shipping_service
from storefront.api.errors import api_error
from storefront.api.schemas import ErrorResponse, ShippingQuoteResponse
from storefront.application.shipping_service import ShippingService

router = APIRouter(prefix="/shipping", tags=["Shipping"])


@router.get(
    "/calculate",
    response_model=ShippingQuoteResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Calculate shipping",
)
async def calculate_shipping(
    service: Annotated[ShippingService, Depends(get_shipping_service)],
    pincode: Annotated[str | None, Query()] = None,
    subtotal: Annotated[Decimal | None, Query(ge=0)] = None,
) -> ShippingQuoteResponse:
    """Resolve the shipping charge for a pincode and subtotal.

    Args:
        service: Shipping service.
        pincode: Destination pincode.
        subtotal: Order subtotal; defaults to zero.

    Returns:
        Charge, whether it was waived, and the rule that applied.
    """
    result = await service.quote(pincode, subtotal)
    if not result.success or result.quote is None or result.pincode is None:
        raise api_error(result.error_code, result.error, result.details)

    quote = result.quote
    return ShippingQuoteResponse(
        pincode=result.pincode,
        subtotal=money(result.subtotal),
        shipping=money(quote.charge),
        waived=quote.waived,
        applied_rule=rule_to_schema(quote.applied_rule) if quote.applied_rule else None,
    )
