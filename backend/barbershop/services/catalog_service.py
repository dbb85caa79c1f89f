# backend/barbershop/services/catalog_service.py
"""
Barber and service catalog management.

Public listings only show active rows; admins see everything. A barber or
service that bookings reference cannot be deleted.
"""

from typing import Any, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import HasBookingsException, NotFoundException
from ..models.barber import Barber
from ..models.service import Service
from ..repositories.barber_repository import BarberRepository
from ..repositories.service_repository import ServiceRepository
from .base import BaseService


class CatalogService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.barber_repository = BarberRepository(db)
        self.service_repository = ServiceRepository(db)

    # ---------------------------------------------------------------- barbers

    def list_barbers(self, include_inactive: bool = False) -> List[Barber]:
        return self.barber_repository.list_barbers(include_inactive=include_inactive)

    def get_barber(self, barber_id: str) -> Barber:
        barber = self.barber_repository.get_by_id(barber_id, load_relationships=False)
        if barber is None:
            raise NotFoundException(f"Barber {barber_id} not found", code="BARBER_NOT_FOUND")
        return barber

    @BaseService.measure_operation("create_barber")
    def create_barber(self, **fields: Any) -> Barber:
        with self.transaction():
            barber = self.barber_repository.create(**fields)
        self.log_operation("barber_created", barber_id=barber.id)
        return barber

    @BaseService.measure_operation("update_barber")
    def update_barber(self, barber_id: str, **fields: Any) -> Barber:
        with self.transaction():
            barber = self.barber_repository.update(barber_id, **fields)
            if barber is None:
                raise NotFoundException(f"Barber {barber_id} not found", code="BARBER_NOT_FOUND")
        return barber

    @BaseService.measure_operation("delete_barber")
    def delete_barber(self, barber_id: str) -> None:
        """
        Raises:
            NotFoundException: Unknown barber
            HasBookingsException: Bookings still reference the barber
        """
        with self.transaction():
            self.get_barber(barber_id)
            booking_count = self.barber_repository.count_bookings(barber_id)
            if booking_count:
                raise HasBookingsException("barber", barber_id, booking_count)
            self.barber_repository.delete(barber_id)
        self.log_operation("barber_deleted", barber_id=barber_id)

    # --------------------------------------------------------------- services

    def list_services(self, include_inactive: bool = False) -> List[Service]:
        return self.service_repository.list_services(include_inactive=include_inactive)

    def get_service(self, service_id: str) -> Service:
        service: Optional[Service] = self.service_repository.get_by_id(
            service_id, load_relationships=False
        )
        if service is None:
            raise NotFoundException(f"Service {service_id} not found", code="SERVICE_NOT_FOUND")
        return service

    @BaseService.measure_operation("create_service")
    def create_service(self, **fields: Any) -> Service:
        with self.transaction():
            service = self.service_repository.create(**fields)
        self.log_operation("service_created", service_id=service.id)
        return service

    @BaseService.measure_operation("update_service")
    def update_service(self, service_id: str, **fields: Any) -> Service:
        with self.transaction():
            service = self.service_repository.update(service_id, **fields)
            if service is None:
                raise NotFoundException(f"Service {service_id} not found", code="SERVICE_NOT_FOUND")
        return service

    @BaseService.measure_operation("delete_service")
    def delete_service(self, service_id: str) -> None:
        with self.transaction():
            self.get_service(service_id)
            booking_count = self.service_repository.count_bookings(service_id)
            if booking_count:
                raise HasBookingsException("service", service_id, booking_count)
            self.service_repository.delete(service_id)
        self.log_operation("service_deleted", service_id=service_id)
