# backend/barbershop/routes/admin_bookings.py
"""
Admin booking management.

Router Endpoints:
    GET /admin/bookings - List bookings with filters and pagination
    PATCH /admin/bookings/{booking_id} - Change status and/or customer details
    POST /admin/bookings/{booking_id}/confirm - Confirm and settle pending payments
    POST /admin/bookings/{booking_id}/cancel - Cancel
    POST /admin/bookings/{booking_id}/complete - Mark completed
    DELETE /admin/bookings/{booking_id} - Delete (refused once a payment is PAID)
"""

import asyncio
from datetime import date
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, status

from ..api.dependencies import (
    OutboxRunner,
    get_booking_service,
    get_outbox_runner,
    require_admin,
    schedule_outbox_dispatch,
)
from ..core.enums import BookingStatus
from ..core.exceptions import DomainException
from ..schemas.booking import AdminBookingUpdate, BookingListResponse, BookingResponse
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/bookings",
    tags=["admin-bookings"],
    dependencies=[Depends(require_admin)],
)


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("", response_model=BookingListResponse)
def list_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    barber_id: Optional[str] = Query(None, alias="barberId"),
    day: Optional[date] = Query(None, alias="date"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    bookings = booking_service.list_bookings(
        status=booking_status, barber_id=barber_id, day=day, skip=skip, limit=limit
    )
    total = booking_service.count_bookings(status=booking_status, barber_id=barber_id, day=day)
    return BookingListResponse(
        items=[BookingResponse.from_booking(b) for b in bookings], total=total
    )


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: str,
    payload: AdminBookingUpdate,
    background_tasks: BackgroundTasks,
    booking_service: BookingService = Depends(get_booking_service),
    outbox_runner: OutboxRunner = Depends(get_outbox_runner),
) -> BookingResponse:
    """Details and status are saved together; a refused status change saves nothing."""
    try:
        result = await asyncio.to_thread(
            booking_service.update_booking,
            booking_id,
            status=payload.status,
            customer_name=payload.customer_name,
            notes=payload.notes,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    schedule_outbox_dispatch(background_tasks, outbox_runner, result.outbox_event_ids)
    return BookingResponse.from_booking(result.booking)


async def _run_transition(
    transition,
    booking_id: str,
    background_tasks: BackgroundTasks,
    outbox_runner: OutboxRunner,
) -> BookingResponse:
    try:
        result = await asyncio.to_thread(transition, booking_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    schedule_outbox_dispatch(background_tasks, outbox_runner, result.outbox_event_ids)
    return BookingResponse.from_booking(result.booking)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    booking_service: BookingService = Depends(get_booking_service),
    outbox_runner: OutboxRunner = Depends(get_outbox_runner),
) -> BookingResponse:
    return await _run_transition(
        booking_service.confirm_booking, booking_id, background_tasks, outbox_runner
    )


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    booking_service: BookingService = Depends(get_booking_service),
    outbox_runner: OutboxRunner = Depends(get_outbox_runner),
) -> BookingResponse:
    return await _run_transition(
        booking_service.cancel_booking, booking_id, background_tasks, outbox_runner
    )


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    booking_service: BookingService = Depends(get_booking_service),
    outbox_runner: OutboxRunner = Depends(get_outbox_runner),
) -> BookingResponse:
    return await _run_transition(
        booking_service.complete_booking, booking_id, background_tasks, outbox_runner
    )


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    booking_service: BookingService = Depends(get_booking_service),
    outbox_runner: OutboxRunner = Depends(get_outbox_runner),
) -> Response:
    try:
        result = await asyncio.to_thread(booking_service.delete_booking, booking_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    schedule_outbox_dispatch(background_tasks, outbox_runner, result.outbox_event_ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
