"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from storefront.application.cart_service import CartResult, CartService
from storefront.application.checkout_service import (
    CheckoutRequest,
    CheckoutResult,
    CheckoutService,
)
from storefront.application.order_service import OrderService
from storefront.application.payment_service import PaymentService
from storefront.application.post_commit import (
    OrderSideEffects,
    PostCommitTask,
    run_post_commit_tasks,
)
from storefront.application.shipping_service import ShippingRuleInput, ShippingService

__all__ = [
    "CartResult",
    "CartService",
    "CheckoutRequest",
    "CheckoutResult",
    "CheckoutService",
    "OrderService",
    "PaymentService",
    "OrderSideEffects",
    "PostCommitTask",
    "run_post_commit_tasks",
    "ShippingRuleInput",
    "ShippingService",
]
