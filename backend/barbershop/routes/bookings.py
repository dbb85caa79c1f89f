# backend/barbershop/routes/bookings.py
"""
Customer booking routes.

Router Endpoints:
    POST /bookings - Create a booking with its payment
    GET /bookings/{booking_id} - Full booking details
    GET /bookings/{booking_id}/status - Booking and payment status for polling
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from ..api.dependencies import (
    OutboxRunner,
    get_booking_service,
    get_outbox_runner,
    schedule_outbox_dispatch,
)
from ..core.exceptions import DomainException
from ..schemas.booking import BookingCreate, BookingResponse, BookingStatusResponse
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    background_tasks: BackgroundTasks,
    booking_service: BookingService = Depends(get_booking_service),
    outbox_runner: OutboxRunner = Depends(get_outbox_runner),
) -> BookingResponse:
    """
    Create a booking.

    CASH bookings are confirmed immediately; QRIS bookings wait for payment.
    Notifications are delivered after the response is sent.
    """
    try:
        result = await asyncio.to_thread(
            booking_service.create_booking,
            customer_name=payload.customer_name,
            email=str(payload.email),
            phone=payload.phone,
            barber_id=payload.barber_id,
            service_id=payload.service_id,
            date=payload.date,
            time=payload.time,
            payment_method=payload.payment_method,
            notes=payload.notes,
        )
    except DomainException as exc:
        handle_domain_exception(exc)

    schedule_outbox_dispatch(background_tasks, outbox_runner, result.outbox_event_ids)
    return BookingResponse.from_booking(result.booking)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.from_booking(booking_service.get_booking(booking_id))
    except DomainException as exc:
        handle_domain_exception(exc)


@router.get("/{booking_id}/status", response_model=BookingStatusResponse)
def get_booking_status(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingStatusResponse:
    try:
        return BookingStatusResponse.from_booking(booking_service.get_booking(booking_id))
    except DomainException as exc:
        handle_domain_exception(exc)
