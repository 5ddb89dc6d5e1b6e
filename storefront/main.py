"""Storefront API main application module.

This module builds the FastAPI application and configures core
middleware, routers, and the startup/shutdown lifecycle.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api import (
    admin_router,
    cart_router,
    checkout_router,
    health_router,
    orders_router,
    payments_router,
    shipping_router,
)
from storefront.api.middleware import setup_middleware
from storefront.application.post_commit import OrderSideEffects
from storefront.infrastructure.config import Settings, get_settings
from storefront.infrastructure.database import Database
from storefront.infrastructure.invoice import InvoiceGenerator
from storefront.infrastructure.logging import configure_logging
from storefront.infrastructure.notifications import Notifier, SmtpNotifier
from storefront.infrastructure.payment_gateway import PaymentGateway, build_payment_gateway

logger = structlog.get_logger()


def create_app(
    settings: Settings | None = None,
    payment_gateway: PaymentGateway | None = None,
    notifier: Notifier | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use; defaults to the environment.
        payment_gateway: Gateway adapter; built from settings when omitted.
        notifier: Confirmation dispatcher; SMTP from settings when omitted
            and notifications are enabled.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Handle application startup and shutdown events.

        Args:
            app: The FastAPI application instance.

        Yields:
            None after startup, cleanup happens after yield.
        """
        configure_logging(settings.log_level, settings.log_json)
        logger.info(
            "Starting storefront API",
            version=settings.api_version,
            debug=settings.debug,
            payment_gateway=settings.payment_gateway,
        )

        db = Database(settings.database_url, echo=settings.debug)
        if settings.database_url.startswith("sqlite"):
            await db.create_all()

        gateway = payment_gateway or build_payment_gateway(settings)
        invoices = InvoiceGenerator(settings.invoice_dir, settings.seller_name, settings.seller_address)
        dispatcher = notifier
        if dispatcher is None and settings.notifications_enabled:
            dispatcher = SmtpNotifier.from_settings(settings)

        app.state.db = db
        app.state.payment_gateway = gateway
        app.state.invoices = invoices
        app.state.notifier = dispatcher
        app.state.side_effects = OrderSideEffects(
            db=db,
            invoices=invoices,
            notifier=dispatcher,
            public_base_url=settings.public_base_url,
        )

        yield

        logger.info("Shutting down storefront API")
        await gateway.close()
        await db.dispose()

    app = FastAPI(
        title="Storefront API",
        description="Cart, checkout, payment and invoicing backend",
        version=settings.api_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_middleware(app)

    app.include_router(health_router, tags=["Health"])
    app.include_router(cart_router)
    app.include_router(checkout_router)
    app.include_router(orders_router)
    app.include_router(payments_router)
    app.include_router(shipping_router)
    app.include_router(admin_router)

    return app


app = create_app()
