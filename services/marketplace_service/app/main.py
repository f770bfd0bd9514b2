"""FastAPI application for the Marketplace Service."""

from fastapi import FastAPI
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.marketplace_service.routers import (
    admin_router,
    cart_router,
    checkout_router,
    orders_router,
)
from slowapi.errors import RateLimitExceeded


def create_app() -> FastAPI:
    """Create and configure the Marketplace Service FastAPI app."""
    app = FastAPI(
        title="Marketplace Service",
        version="0.1.0",
        description="Cart checkout, payment settlement, commissions and vendor ledgers.",
    )
    add_observability_middleware(app)

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "marketplace"}

    app.include_router(cart_router)
    app.include_router(checkout_router)
    app.include_router(orders_router)
    app.include_router(admin_router)

    return app


app = create_app()
