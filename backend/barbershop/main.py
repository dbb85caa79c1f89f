# backend/barbershop/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .database import init_db
from .errors import register_error_handlers
from .routes import (
    admin_bookings,
    admin_catalog,
    admin_settings,
    availability,
    bookings,
    catalog,
    health,
    payment_proofs,
    payments,
    qris_settings,
    webhooks_midtrans,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")
    elif settings.environment in ("development", "test"):
        init_db()
    if settings.environment == "production" and settings.midtrans_fake:
        logger.warning("MIDTRANS_FAKE is enabled in production; payments will not be charged")
    yield
    logger.info(f"{BRAND_NAME} API shutting down...")


def create_app() -> FastAPI:
    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=app_lifespan,
    )
    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    api = APIRouter(prefix="/api")
    api.include_router(availability.router)
    api.include_router(catalog.router)
    api.include_router(bookings.router)
    api.include_router(payments.router)
    api.include_router(webhooks_midtrans.router)
    api.include_router(payment_proofs.router)
    api.include_router(qris_settings.router)
    api.include_router(admin_bookings.router)
    api.include_router(admin_catalog.router)
    api.include_router(admin_settings.router)
    app.include_router(api)
    # Infrastructure routes stay outside /api
    app.include_router(health.router)
    return app


app = create_app()
