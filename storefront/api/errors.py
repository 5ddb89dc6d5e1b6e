"""Mapping from service error codes to HTTP responses."""

from typing import Any

from fastapi import HTTPException, status

ERROR_STATUS: dict[str, int] = {
    "EMPTY_CART": status.HTTP_400_BAD_REQUEST,
    "VARIANT_NOT_FOUND": status.HTTP_400_BAD_REQUEST,
    "INSUFFICIENT_STOCK": status.HTTP_400_BAD_REQUEST,
    "MISSING_SHIPPING_ADDRESS": status.HTTP_400_BAD_REQUEST,
    "INVALID_POSTAL_CODE": status.HTTP_400_BAD_REQUEST,
    "INVALID_QUANTITY": status.HTTP_400_BAD_REQUEST,
    "CART_ITEM_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "SESSION_REQUIRED": status.HTTP_400_BAD_REQUEST,
    "ORDER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "UNAUTHORIZED": status.HTTP_401_UNAUTHORIZED,
    "ALREADY_PAID": status.HTTP_400_BAD_REQUEST,
    "INVALID_AMOUNT": status.HTTP_400_BAD_REQUEST,
    "ORDER_MISMATCH": status.HTTP_400_BAD_REQUEST,
    "INVALID_SIGNATURE": status.HTTP_400_BAD_REQUEST,
    "PAYMENT_NOT_PENDING": status.HTTP_409_CONFLICT,
    "GATEWAY_TIMEOUT": status.HTTP_504_GATEWAY_TIMEOUT,
    "GATEWAY_ERROR": status.HTTP_502_BAD_GATEWAY,
    "PAYMENT_NOT_COMPLETED": status.HTTP_400_BAD_REQUEST,
    "INVOICE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "RULE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_RULE": status.HTTP_400_BAD_REQUEST,
    "GATEWAY_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INTERNAL_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def api_error(
    error_code: str | None,
    message: str | None,
    details: dict[str, Any] | None = None,
    fallback_code: str = "INTERNAL_ERROR",
) -> HTTPException:
    """Build the HTTPException for a failed service result.

    Args:
        error_code: Service error code.
        message: Human-readable message.
        details: Structured details (e.g. ``available`` for stock errors).
        fallback_code: Code used when the service gave none.

    Returns:
        HTTPException rendered by the application's exception handler.
    """
    code = error_code or fallback_code
    return HTTPException(
        status_code=ERROR_STATUS.get(code, status.HTTP_400_BAD_REQUEST),
        detail={
            "error_code": code,
            "message": message or code,
            "details": details or {},
        },
    )
