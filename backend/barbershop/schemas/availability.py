# backend/barbershop/schemas/availability.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel


class AvailabilityRequest(StrictRequestModel):
    barber_id: str = Field(..., min_length=1)
    service_id: str = Field(..., min_length=1)
    date: str = Field(..., description="Shop-local date, YYYY-MM-DD")
    time: str = Field(..., description="Shop-local time, HH:MM")


class BookedInterval(StrictModel):
    start_time: datetime
    end_time: datetime


class AvailabilityDetails(StrictModel):
    start_time: datetime
    end_time: datetime
    duration: int
    conflicts: List[BookedInterval] = Field(default_factory=list)


class AvailabilityResponse(StrictModel):
    available: bool
    message: str
    reason: Optional[str] = None
    details: Optional[AvailabilityDetails] = None


class SlotListResponse(StrictModel):
    slots: List[str]
    interval_minutes: int
    opening_hour: int
    closing_hour: int
