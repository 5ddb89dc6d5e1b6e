"""Payment API endpoints.

- POST /payments/{gateway}/create-order - create a gateway intent for an order
- POST /payments/{gateway}/verify - verify the signature the gateway returned
"""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import JSONResponse

from storefront.api.dependencies import get_payment_service
from storefront.api.errors import api_error
from storefront.api.schemas import (
    CreatePaymentOrderRequest,
    CreatePaymentOrderResponse,
    ErrorResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from storefront.application.payment_service import PaymentService
from storefront.application.post_commit import run_post_commit_tasks

router = APIRouter(prefix="/payments", tags=["Payments"])

PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]


def _check_gateway(gateway: str, service: PaymentService) -> None:
    if gateway != service.gateway.name:
        raise api_error("GATEWAY_NOT_FOUND", f"Payment gateway not available: {gateway}")


@router.post(
    "/{gateway}/create-order",
    response_model=CreatePaymentOrderResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
    summary="Create payment intent",
)
async def create_payment_order(
    gateway: str,
    body: CreatePaymentOrderRequest,
    service: PaymentServiceDep,
) -> CreatePaymentOrderResponse:
    """Create a gateway intent and mark the order awaiting payment.

    A gateway timeout answers 504 with ``retryable`` set and leaves the
    order untouched.

    Args:
        gateway: Gateway name in the path.
        body: Order to pay.
        service: Payment service.

    Returns:
        Gateway order id, amount in minor units and currency.
    """
    _check_gateway(gateway, service)
    result = await service.create_intent(body.order_number)
    if not result.success or result.gateway_order_id is None:
        details = dict(result.details)
        if result.error_code in ("GATEWAY_TIMEOUT", "GATEWAY_ERROR"):
            details["retryable"] = result.retryable
        raise api_error(result.error_code, result.error, details)

    return CreatePaymentOrderResponse(
        key_id=result.key_id,
        gateway_order_id=result.gateway_order_id,
        amount=result.amount or 0,
        currency=result.currency or "",
        order_number=body.order_number,
    )


@router.post(
    "/{gateway}/verify",
    response_model=VerifyPaymentResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Verify payment",
)
async def verify_payment(
    gateway: str,
    body: VerifyPaymentRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    service: PaymentServiceDep,
) -> VerifyPaymentResponse | JSONResponse:
    """Verify a payment signature.

    A bad signature marks the payment failed and answers 400 with
    ``success: false``. Repeating a successful verification is a no-op.

    Args:
        gateway: Gateway name in the path.
        body: Gateway ids and signature.
        request: Incoming request.
        background_tasks: FastAPI background tasks.
        service: Payment service.

    Returns:
        Verification outcome.
    """
    _check_gateway(gateway, service)
    result = await service.verify(
        body.order_number,
        body.gateway_order_id,
        body.gateway_payment_id,
        body.signature,
    )

    if result.error_code == "INVALID_SIGNATURE":
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "error_code": result.error_code,
                "message": result.error,
                "details": {**result.details, "payment_status": result.payment_status},
                "request_id": getattr(request.state, "request_id", None),
            },
        )
    if not result.success:
        raise api_error(result.error_code, result.error, result.details)

    if result.deferred_tasks:
        background_tasks.add_task(run_post_commit_tasks, result.deferred_tasks)

    return VerifyPaymentResponse(
        success=True,
        order_number=body.order_number,
        payment_status=result.payment_status,
        already_verified=result.already_verified,
    )
