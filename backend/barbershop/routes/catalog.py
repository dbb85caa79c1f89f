# backend/barbershop/routes/catalog.py
"""Public barber and service lists: active rows only."""

from typing import List

from fastapi import APIRouter, Depends

from ..api.dependencies import get_catalog_service
from ..schemas.catalog import BarberResponse, ServiceResponse
from ..services.catalog_service import CatalogService

router = APIRouter(tags=["catalog"])


@router.get("/barbers", response_model=List[BarberResponse])
def list_barbers(
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[BarberResponse]:
    return [BarberResponse.model_validate(b) for b in catalog_service.list_barbers()]


@router.get("/services", response_model=List[ServiceResponse])
def list_services(
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[ServiceResponse]:
    """Active services, shortest first."""
    return [ServiceResponse.model_validate(s) for s in catalog_service.list_services()]
