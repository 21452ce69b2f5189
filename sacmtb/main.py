"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from sacmtb.api.middleware.error_handler import error_handler_middleware
from sacmtb.api.middleware.latency_logging import latency_logging_middleware
from sacmtb.api.middleware.request_size import request_size_limit_middleware
from sacmtb.api.routes import (
    admin,
    games,
    health,
    orders,
    payments,
    products,
    reviews,
    uploads,
    users,
    webhooks,
)
from sacmtb.core.config import get_settings
from sacmtb.core.rate_limiter import init_rate_limiter, shutdown_rate_limiter
from sacmtb.core.stripe import configure_stripe
from sacmtb.services.auth_service import AuthService
from sacmtb.services.notification_service import shutdown_notification_dispatcher

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to the application.
    """
    # Startup
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)

    # Configure Stripe SDK
    configure_stripe()
    logger.info("Stripe SDK configured")

    # Initialize rate limiter with cleanup task
    await init_rate_limiter()
    logger.info("Rate limiter initialized")

    # Seed the admin account
    try:
        await AuthService().ensure_admin_exists()
    except Exception:
        logger.exception("Failed to ensure admin account %s", settings.admin_email)

    yield
    # Shutdown
    await shutdown_notification_dispatcher()
    logger.info("Notification dispatcher shutdown")
    await shutdown_rate_limiter()
    logger.info("Rate limiter shutdown")
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="SACMTB API",
        description="Bicycle storefront backend: catalog, orders, payments and accounts",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add error handler middleware (outermost - catches all errors)
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    # Add latency logging middleware (tracks request timing)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)

    # Add request size limit middleware (rejects oversized requests early)
    app.add_middleware(BaseHTTPMiddleware, dispatch=request_size_limit_middleware)

    # Mount health routes at root level (no prefix)
    app.include_router(health.router)

    api_router = APIRouter(prefix="/api")

    # Account routes
    api_router.include_router(users.router)
    api_router.include_router(admin.router)
    api_router.include_router(uploads.router)

    # Catalog routes
    api_router.include_router(products.router)
    api_router.include_router(reviews.router)

    # Order and payment routes
    api_router.include_router(orders.router)
    api_router.include_router(payments.router)
    api_router.include_router(webhooks.router)

    # Mini-game routes
    api_router.include_router(games.router)

    app.include_router(api_router)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "sacmtb.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
