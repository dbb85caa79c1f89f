# backend/barbershop/schemas/catalog.py
"""Barber and service DTOs."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from ..core.constants import MAX_SERVICE_DURATION, MIN_SERVICE_DURATION
from ._strict_base import StrictModel, StrictRequestModel


class BarberCreate(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    specialty: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    photo_url: Optional[str] = Field(None, max_length=500)
    is_active: bool = True


class BarberUpdate(StrictRequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    specialty: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    photo_url: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class BarberResponse(StrictModel):
    id: str
    name: str
    specialty: Optional[str] = None
    description: Optional[str] = None
    photo_url: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None


class ServiceCreate(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    duration: int = Field(
        ..., ge=MIN_SERVICE_DURATION, le=MAX_SERVICE_DURATION, description="Minutes"
    )
    price: int = Field(..., ge=0, description="Whole Rupiah")
    is_active: bool = True


class ServiceUpdate(StrictRequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    duration: Optional[int] = Field(
        None, ge=MIN_SERVICE_DURATION, le=MAX_SERVICE_DURATION
    )
    price: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class ServiceResponse(StrictModel):
    id: str
    name: str
    description: Optional[str] = None
    duration: int
    price: int
    is_active: bool
    created_at: Optional[datetime] = None
