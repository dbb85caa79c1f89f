# backend/barbershop/repositories/service_repository.py
"""Data access for the service catalog."""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.service import Service
from .base_repository import BaseRepository


class ServiceRepository(BaseRepository[Service]):
    def __init__(self, db: Session):
        super().__init__(db, Service)

    def list_services(self, include_inactive: bool = False) -> List[Service]:
        """Services ordered by duration, shortest first."""
        try:
            query = self.db.query(Service)
            if not include_inactive:
                query = query.filter(Service.is_active.is_(True))
            return query.order_by(Service.duration.asc(), Service.name.asc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing services: {str(e)}")
            raise RepositoryException(f"Failed to list services: {str(e)}")

    def get_active(self, service_id: str) -> Optional[Service]:
        return self.find_one_by(id=service_id, is_active=True)

    def count_bookings(self, service_id: str) -> int:
        try:
            return self.db.query(Booking).filter(Booking.service_id == service_id).count()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting bookings for service {service_id}: {str(e)}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}")
