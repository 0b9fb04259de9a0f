"""
PayHub Backend Application.

FastAPI application with orders, a product catalog synced to payment
providers, and multi-provider payments (Stripe, PayPal).
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from loguru import logger

from payhub.api.v1 import router as api_v1_router
from payhub.core.config import settings
from payhub.core.database import close_db, init_db
from payhub.core.exceptions import PayHubError
from payhub.core.logging import configure_logging
from payhub.modules.payments import get_registry


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    configure_logging(settings)
    logger.info("Starting PayHub Backend...")

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    registry = get_registry()
    logger.info(
        f"Payment providers: {[m.value for m in registry.get_available_providers()]}"
    )

    logger.info("PayHub Backend started successfully")

    yield

    # Shutdown
    logger.info("Shutting down PayHub Backend...")
    await close_db()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    PayHub Backend

    ## Features

    - **Orders**: Place orders and follow their payment status
    - **Payments**: Stripe and PayPal behind one interface, with webhooks and refunds
    - **Catalog**: Products mirrored into each payment provider

    ## Documentation

    - [API Docs](/docs) - Interactive Swagger UI
    - [ReDoc](/redoc) - Alternative documentation
    """,
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


@app.exception_handler(PayHubError)
async def payhub_error_handler(request: Request, exc: PayHubError) -> ORJSONResponse:
    """Map domain errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")

    return ORJSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.__class__.__name__},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Catch-all: log the traceback, never leak details to clients."""
    logger.opt(exception=exc).error(f"Unhandled exception on {request.url.path}")
    return ORJSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.get("/health", tags=["System"])
async def health_check() -> dict:
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "version": settings.app_version,
    }


@app.get("/", tags=["System"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "api": settings.api_v1_prefix,
    }
