# backend/barbershop/repositories/barber_repository.py
"""Data access for barbers."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.barber import Barber
from ..models.booking import Booking
from .base_repository import BaseRepository


class BarberRepository(BaseRepository[Barber]):
    def __init__(self, db: Session):
        super().__init__(db, Barber)

    def list_barbers(self, include_inactive: bool = False) -> List[Barber]:
        try:
            query = self.db.query(Barber)
            if not include_inactive:
                query = query.filter(Barber.is_active.is_(True))
            return query.order_by(Barber.name.asc(), Barber.id.asc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing barbers: {str(e)}")
            raise RepositoryException(f"Failed to list barbers: {str(e)}")

    def get_active(self, barber_id: str) -> Optional[Barber]:
        return self.find_one_by(id=barber_id, is_active=True)

    def lock_for_booking(self, barber_id: str) -> Optional[Barber]:
        """
        Load an active barber, holding a row lock on PostgreSQL.

        Concurrent booking writers for the same barber queue on this lock until
        the holder commits.
        """
        stmt = select(Barber).where(Barber.id == barber_id, Barber.is_active.is_(True))
        if self.dialect_name == "postgresql":
            stmt = stmt.with_for_update()
        try:
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking barber {barber_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock barber: {str(e)}")

    def count_bookings(self, barber_id: str) -> int:
        try:
            return self.db.query(Booking).filter(Booking.barber_id == barber_id).count()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting bookings for barber {barber_id}: {str(e)}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}")
