# backend/barbershop/repositories/payment_repository.py
"""
Payment Repository for the barbershop backend.

Status changes go through ``compare_and_set_status`` so that a webhook and a
status poll racing on the same order can never both apply the same
transition.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.enums import PaymentMethod, PaymentProofStatus, PaymentStatus
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.payment import Payment, PaymentProof
from .base_repository import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, db: Session):
        super().__init__(db, Payment)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(Payment.booking).joinedload(Booking.service),
            joinedload(Payment.booking).joinedload(Booking.barber),
        )

    def get_by_order_id(self, order_id: str) -> Optional[Payment]:
        try:
            return (
                self._apply_eager_loading(self.db.query(Payment))
                .filter(Payment.order_id_gateway == order_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting payment for order {order_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve payment: {str(e)}")

    def get_latest_for_booking(
        self, booking_id: str, method: Optional[PaymentMethod] = None
    ) -> Optional[Payment]:
        try:
            query = self.db.query(Payment).filter(Payment.booking_id == booking_id)
            if method is not None:
                query = query.filter(Payment.method == method)
            return query.order_by(Payment.created_at.desc(), Payment.id.desc()).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting latest payment for {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve payment: {str(e)}")

    def list_pending_for_booking(self, booking_id: str) -> List[Payment]:
        return self.find_by(booking_id=booking_id, status=PaymentStatus.PENDING)

    def list_pending_gateway_payments(self, limit: int = 100) -> List[Payment]:
        """Pending QRIS payments that already have a gateway order to poll."""
        try:
            return (
                self.db.query(Payment)
                .filter(
                    Payment.method == PaymentMethod.QRIS,
                    Payment.status == PaymentStatus.PENDING,
                    Payment.order_id_gateway.is_not(None),
                )
                .order_by(Payment.created_at.asc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing pending gateway payments: {str(e)}")
            raise RepositoryException(f"Failed to list pending payments: {str(e)}")

    def compare_and_set_status(
        self,
        payment_id: str,
        expected: PaymentStatus,
        target: PaymentStatus,
        *,
        paid_at: Optional[datetime] = None,
        gateway_data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Move a payment to ``target`` only if it still holds ``expected``.

        Returns True when this call performed the update.
        """
        values: Dict[str, Any] = {"status": target}
        if paid_at is not None:
            values["paid_at"] = paid_at
        if gateway_data is not None:
            values["gateway_data"] = gateway_data
        try:
            result = self.db.execute(
                update(Payment)
                .where(Payment.id == payment_id, Payment.status == expected)
                .values(**values)
            )
            self.db.flush()
            return bool(result.rowcount)
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating payment {payment_id} status: {str(e)}")
            raise RepositoryException(f"Failed to update payment status: {str(e)}")


class PaymentProofRepository(BaseRepository[PaymentProof]):
    def __init__(self, db: Session):
        super().__init__(db, PaymentProof)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(joinedload(PaymentProof.payment).joinedload(Payment.booking))

    def list_proofs(
        self, status: Optional[PaymentProofStatus] = None, skip: int = 0, limit: int = 100
    ) -> List[PaymentProof]:
        try:
            query = self._apply_eager_loading(self.db.query(PaymentProof))
            if status is not None:
                query = query.filter(PaymentProof.status == status)
            return (
                query.order_by(PaymentProof.created_at.desc(), PaymentProof.id.desc())
                .offset(skip)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing payment proofs: {str(e)}")
            raise RepositoryException(f"Failed to list payment proofs: {str(e)}")
