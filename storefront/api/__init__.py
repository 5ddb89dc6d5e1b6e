"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from storefront.api.admin import router as admin_router
from storefront.api.cart import router as cart_router
from storefront.api.checkout import router as checkout_router
from storefront.api.health import router as health_router
from storefront.api.orders import router as orders_router
from storefront.api.payments import router as payments_router
from storefront.api.shipping import router as shipping_router

__all__ = [
    "admin_router",
    "cart_router",
    "checkout_router",
    "health_router",
    "orders_router",
    "payments_router",
    "shipping_router",
]
