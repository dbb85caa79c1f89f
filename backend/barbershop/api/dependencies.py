# backend/barbershop/api/dependencies.py
"""
FastAPI dependencies shared by the routes.

Every service is constructed per request from the request's session. The
gateway client and the outbox runner are dependencies of their own so tests
can override them with fakes.

Usage:
    @router.post("/bookings")
    async def create_booking(
        booking_service: BookingService = Depends(get_booking_service),
    ):
        ...
"""

from functools import partial
import hmac
import logging
from typing import Callable, List, Optional

from fastapi import BackgroundTasks, Depends, Header
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import UnauthorizedException
from ..database import SessionLocal, get_db
from ..integrations.midtrans_client import MidtransClient
from ..services.booking_service import BookingService
from ..services.catalog_service import CatalogService
from ..services.clients import build_dispatcher, build_gateway_client
from ..services.outbox_dispatcher import DeliveryResult, dispatch_events
from ..services.payment_proof_service import PaymentProofService
from ..services.payment_service import PaymentService
from ..services.shop_settings_service import ShopSettingsService

logger = logging.getLogger(__name__)

OutboxRunner = Callable[[List[str]], List[DeliveryResult]]

__all__ = [
    "OutboxRunner",
    "get_booking_service",
    "get_catalog_service",
    "get_db",
    "get_gateway_client",
    "get_outbox_runner",
    "get_payment_proof_service",
    "get_payment_service",
    "get_shop_settings_service",
    "require_admin",
    "schedule_outbox_dispatch",
]


def get_gateway_client() -> MidtransClient:
    """Payment gateway client for the current configuration."""
    return build_gateway_client()


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db)


def get_payment_service(
    db: Session = Depends(get_db),
    gateway: MidtransClient = Depends(get_gateway_client),
) -> PaymentService:
    return PaymentService(db, gateway)


def get_payment_proof_service(db: Session = Depends(get_db)) -> PaymentProofService:
    return PaymentProofService(db)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_shop_settings_service(db: Session = Depends(get_db)) -> ShopSettingsService:
    return ShopSettingsService(db)


def get_outbox_runner() -> OutboxRunner:
    """
    Deliver outbox events after the response is sent.

    The request session is closed by then, so delivery opens its own.
    """
    return partial(
        dispatch_events,
        session_factory=SessionLocal,
        dispatcher_factory=build_dispatcher,
    )


def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> None:
    """Reject requests without the shared admin token."""
    expected = settings.admin_api_token.get_secret_value()
    if not expected:
        logger.warning("Admin request rejected: ADMIN_API_TOKEN is not configured")
        raise UnauthorizedException("Admin access is not configured", code="ADMIN_DISABLED")
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise UnauthorizedException("Invalid admin token", code="INVALID_ADMIN_TOKEN")


def schedule_outbox_dispatch(
    background_tasks: BackgroundTasks, runner: OutboxRunner, event_ids: List[str]
) -> None:
    """Queue delivery of the events a committed operation produced."""
    if event_ids:
        background_tasks.add_task(runner, list(event_ids))
