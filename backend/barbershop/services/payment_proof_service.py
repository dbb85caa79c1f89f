# backend/barbershop/services/payment_proof_service.py
"""
Payment proofs: customer-uploaded transfer receipts reviewed by an admin.

Approving a proof settles its payment exactly like a gateway settlement
would, including confirming the booking.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import PaymentProofStatus, PaymentStatus
from ..core.exceptions import AlreadyInStateException, NotFoundException, ValidationException
from ..core.timezone_utils import utc_now
from ..domain.status_transitions import can_transition_payment
from ..models.payment import PaymentProof
from ..repositories.payment_repository import PaymentProofRepository, PaymentRepository
from .base import BaseService
from .booking_service import BookingService
from .side_effects import TransitionResult


@dataclass
class ProofReviewResult:
    proof: PaymentProof
    booking_result: Optional[TransitionResult] = None

    @property
    def outbox_event_ids(self) -> List[str]:
        return list(self.booking_result.outbox_event_ids) if self.booking_result else []


class PaymentProofService(BaseService):
    def __init__(
        self,
        db: Session,
        *,
        booking_service: Optional[BookingService] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(db)
        self.clock = clock
        self.booking_service = booking_service or BookingService(db, clock=clock)
        self.payment_repository = PaymentRepository(db)
        self.proof_repository = PaymentProofRepository(db)

    @BaseService.measure_operation("submit_payment_proof")
    def submit_proof(self, *, payment_id: str, proof_image_url: str, amount: int) -> PaymentProof:
        with self.transaction():
            payment = self.payment_repository.get_by_id(payment_id)
            if payment is None:
                raise NotFoundException(f"Payment {payment_id} not found", code="PAYMENT_NOT_FOUND")
            if payment.status == PaymentStatus.PAID:
                raise ValidationException(
                    "Payment has already been settled",
                    code="PAYMENT_ALREADY_PAID",
                    details={"payment_id": payment_id},
                )
            proof = self.proof_repository.create(
                payment_id=payment.id,
                proof_image_url=proof_image_url,
                amount=amount,
                status=PaymentProofStatus.PENDING,
            )
        self.log_operation("payment_proof_submitted", payment_id=payment_id, proof_id=proof.id)
        return proof

    def list_proofs(
        self, status: Optional[PaymentProofStatus] = None, skip: int = 0, limit: int = 100
    ) -> List[PaymentProof]:
        return self.proof_repository.list_proofs(status=status, skip=skip, limit=limit)

    @BaseService.measure_operation("review_payment_proof")
    def review_proof(
        self,
        proof_id: str,
        *,
        decision: PaymentProofStatus,
        reviewed_by: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ProofReviewResult:
        """
        Record an admin decision on a pending proof.

        Raises:
            NotFoundException: Unknown proof
            AlreadyInStateException: The proof was already reviewed
            ValidationException: ``decision`` is not APPROVED or REJECTED
        """
        if decision == PaymentProofStatus.PENDING:
            raise ValidationException(
                "A review must approve or reject the proof", code="INVALID_REVIEW_DECISION"
            )
        with self.transaction():
            proof = self.proof_repository.get_by_id(proof_id)
            if proof is None:
                raise NotFoundException(
                    f"Payment proof {proof_id} not found", code="PROOF_NOT_FOUND"
                )
            if proof.status != PaymentProofStatus.PENDING:
                raise AlreadyInStateException(
                    "PaymentProof", proof_id, PaymentProofStatus(proof.status).value
                )
            now = self.clock()
            proof.status = decision
            proof.reviewed_by = reviewed_by
            proof.reviewed_at = now
            if notes is not None:
                proof.notes = notes
            self.db.flush()

            result = ProofReviewResult(proof=proof)
            if decision == PaymentProofStatus.APPROVED:
                payment = proof.payment
                current = PaymentStatus(payment.status)
                if can_transition_payment(
                    current, PaymentStatus.PAID
                ) and self.payment_repository.compare_and_set_status(
                    payment.id, current, PaymentStatus.PAID, paid_at=now
                ):
                    result.booking_result = self.booking_service.confirm_paid_booking(
                        payment.booking
                    )

        self.log_operation(
            "payment_proof_reviewed", proof_id=proof_id, decision=decision.value
        )
        return result
