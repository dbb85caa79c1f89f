# backend/barbershop/routes/admin_catalog.py
"""Admin CRUD for barbers and services."""

import logging
from typing import List, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..api.dependencies import get_catalog_service, require_admin
from ..core.exceptions import DomainException
from ..schemas.catalog import (
    BarberCreate,
    BarberResponse,
    BarberUpdate,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
)
from ..services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin-catalog"],
    dependencies=[Depends(require_admin)],
)


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


# Barbers


@router.get("/barbers", response_model=List[BarberResponse])
def list_barbers(
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[BarberResponse]:
    barbers = catalog_service.list_barbers(include_inactive=True)
    return [BarberResponse.model_validate(b) for b in barbers]


@router.get("/barbers/{barber_id}", response_model=BarberResponse)
def get_barber(
    barber_id: str, catalog_service: CatalogService = Depends(get_catalog_service)
) -> BarberResponse:
    try:
        return BarberResponse.model_validate(catalog_service.get_barber(barber_id))
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/barbers", response_model=BarberResponse, status_code=status.HTTP_201_CREATED)
def create_barber(
    payload: BarberCreate, catalog_service: CatalogService = Depends(get_catalog_service)
) -> BarberResponse:
    try:
        barber = catalog_service.create_barber(**payload.model_dump())
    except DomainException as exc:
        handle_domain_exception(exc)
    return BarberResponse.model_validate(barber)


@router.put("/barbers/{barber_id}", response_model=BarberResponse)
def update_barber(
    barber_id: str,
    payload: BarberUpdate,
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> BarberResponse:
    try:
        barber = catalog_service.update_barber(barber_id, **payload.model_dump(exclude_unset=True))
    except DomainException as exc:
        handle_domain_exception(exc)
    return BarberResponse.model_validate(barber)


@router.delete("/barbers/{barber_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_barber(
    barber_id: str, catalog_service: CatalogService = Depends(get_catalog_service)
) -> Response:
    try:
        catalog_service.delete_barber(barber_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Services


@router.get("/services", response_model=List[ServiceResponse])
def list_services(
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> List[ServiceResponse]:
    services = catalog_service.list_services(include_inactive=True)
    return [ServiceResponse.model_validate(s) for s in services]


@router.get("/services/{service_id}", response_model=ServiceResponse)
def get_service(
    service_id: str, catalog_service: CatalogService = Depends(get_catalog_service)
) -> ServiceResponse:
    try:
        return ServiceResponse.model_validate(catalog_service.get_service(service_id))
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/services", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceCreate, catalog_service: CatalogService = Depends(get_catalog_service)
) -> ServiceResponse:
    try:
        service = catalog_service.create_service(**payload.model_dump())
    except DomainException as exc:
        handle_domain_exception(exc)
    return ServiceResponse.model_validate(service)


@router.put("/services/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: str,
    payload: ServiceUpdate,
    catalog_service: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    try:
        service = catalog_service.update_service(
            service_id, **payload.model_dump(exclude_unset=True)
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return ServiceResponse.model_validate(service)


@router.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: str, catalog_service: CatalogService = Depends(get_catalog_service)
) -> Response:
    try:
        catalog_service.delete_service(service_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
