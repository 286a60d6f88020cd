"""FastAPI Application for the membership checkout service."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from membership_checkout.features.checkout.presentation.router import (
    router as checkout_router,
)
from membership_checkout.features.orders.presentation.router import (
    router as orders_router,
)
from membership_checkout.features.registrations.presentation.router import (
    router as registrations_router,
)
from membership_checkout.features.webhooks.presentation.router import (
    router as webhooks_router,
)
from membership_checkout.shared.core.logging import configure_logging
from membership_checkout.shared.core.settings import get_settings
from membership_checkout.shared.infrastructure.database import close_db, init_db
from membership_checkout.shared.presentation.exception_handlers import (
    register_exception_handlers,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    # Startup
    settings = get_settings()
    configure_logging(settings)
    logger.info(
        "service_starting",
        host=settings.host,
        port=settings.port,
        environment=settings.environment,
        payment_provider=settings.payment_provider,
        email_provider=settings.email_provider,
    )

    await init_db()

    yield

    # Shutdown
    await close_db()
    logger.info("service_stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Membership Checkout Service",
        description="Event registration and membership checkout with Stripe, order ledger and webhook reconciliation",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register exception handlers
    register_exception_handlers(app)

    # Register routers
    app.include_router(checkout_router, prefix="/api", tags=["Checkout"])
    app.include_router(orders_router, prefix="/api/orders", tags=["Orders"])
    app.include_router(
        registrations_router, prefix="/api/registrations", tags=["Registrations"]
    )
    app.include_router(webhooks_router, prefix="/api/webhooks", tags=["Webhooks"])

    # Health endpoints
    @app.get("/", tags=["Health"])
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"service": "Membership Checkout Service", "status": "running"}

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "membership-checkout",
            "provider": settings.payment_provider,
        }

    return app


app = create_app()
