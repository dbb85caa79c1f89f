# backend/barbershop/routes/availability.py
"""
Slot availability check and the list of offered start times.

Slot-rule violations and conflicts are answered with ``available: false`` and
a reason; malformed dates or times and unknown barbers or services are errors.
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from ..api.dependencies import get_booking_service
from ..core.exceptions import DomainException
from ..schemas.availability import (
    AvailabilityDetails,
    AvailabilityRequest,
    AvailabilityResponse,
    BookedInterval,
    SlotListResponse,
)
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/availability", response_model=AvailabilityResponse)
async def check_availability(
    payload: AvailabilityRequest,
    booking_service: BookingService = Depends(get_booking_service),
) -> AvailabilityResponse:
    try:
        result = await asyncio.to_thread(
            booking_service.check_availability,
            barber_id=payload.barber_id,
            service_id=payload.service_id,
            date=payload.date,
            time=payload.time,
        )
    except DomainException as exc:
        handle_domain_exception(exc)

    details = None
    if result.start_time is not None:
        details = AvailabilityDetails(
            start_time=result.start_time,
            end_time=result.end_time,
            duration=result.duration,
            conflicts=[BookedInterval(**interval) for interval in result.conflicts],
        )
    return AvailabilityResponse(
        available=result.available,
        message=result.message,
        reason=result.reason,
        details=details,
    )


@router.get("/slots", response_model=SlotListResponse)
def list_slots(
    booking_service: BookingService = Depends(get_booking_service),
) -> SlotListResponse:
    """Start times offered to customers; availability is checked per slot."""
    policy = booking_service.slot_policy
    return SlotListResponse(
        slots=booking_service.offered_start_times(),
        interval_minutes=policy.slot_interval_minutes,
        opening_hour=policy.opening_hour,
        closing_hour=policy.closing_hour,
    )
