import pytest

from barbershop.core.enums import BookingStatus, PaymentProofStatus, PaymentStatus
from barbershop.core.exceptions import AlreadyInStateException, NotFoundException, ValidationException
from conftest import NOW, booking_payload


@pytest.fixture
def pending_payment(booking_service, barber, service):
    booking = booking_service.create_booking(**booking_payload(barber, service)).booking
    return booking.payments[0]


@pytest.fixture
def proof(proof_service, pending_payment):
    return proof_service.submit_proof(
        payment_id=pending_payment.id,
        proof_image_url="https://cdn.test/transfer.jpg",
        amount=50000,
    )


class TestSubmitProof:
    def test_submitted_proof_awaits_review(self, proof, pending_payment) -> None:
        assert proof.status == PaymentProofStatus.PENDING
        assert proof.payment_id == pending_payment.id
        assert proof.reviewed_at is None

    def test_unknown_payment(self, proof_service) -> None:
        with pytest.raises(NotFoundException):
            proof_service.submit_proof(payment_id="missing", proof_image_url="x", amount=1)

    def test_paid_payment_rejects_proof(self, proof_service, booking_service, pending_payment) -> None:
        booking_service.confirm_booking(pending_payment.booking_id)
        with pytest.raises(ValidationException) as exc_info:
            proof_service.submit_proof(
                payment_id=pending_payment.id, proof_image_url="x", amount=50000
            )
        assert exc_info.value.code == "PAYMENT_ALREADY_PAID"


class TestReviewProof:
    def test_approval_settles_payment_and_confirms_booking(
        self, proof_service, proof, pending_payment
    ) -> None:
        result = proof_service.review_proof(
            proof.id, decision=PaymentProofStatus.APPROVED, reviewed_by="owner"
        )

        assert result.proof.status == PaymentProofStatus.APPROVED
        assert result.proof.reviewed_by == "owner"
        assert result.proof.reviewed_at == NOW
        assert pending_payment.status == PaymentStatus.PAID
        assert pending_payment.paid_at == NOW
        assert pending_payment.booking.status == BookingStatus.CONFIRMED
        assert len(result.outbox_event_ids) == 2

    def test_rejection_leaves_payment_pending(self, proof_service, proof, pending_payment) -> None:
        result = proof_service.review_proof(
            proof.id, decision=PaymentProofStatus.REJECTED, notes="Nominal tidak sesuai"
        )
        assert result.proof.status == PaymentProofStatus.REJECTED
        assert result.proof.notes == "Nominal tidak sesuai"
        assert result.outbox_event_ids == []
        assert pending_payment.status == PaymentStatus.PENDING
        assert pending_payment.booking.status == BookingStatus.PENDING_PAYMENT

    def test_second_review_is_refused(self, proof_service, proof) -> None:
        proof_service.review_proof(proof.id, decision=PaymentProofStatus.REJECTED)
        with pytest.raises(AlreadyInStateException):
            proof_service.review_proof(proof.id, decision=PaymentProofStatus.APPROVED)

    def test_pending_is_not_a_decision(self, proof_service, proof) -> None:
        with pytest.raises(ValidationException):
            proof_service.review_proof(proof.id, decision=PaymentProofStatus.PENDING)

    def test_unknown_proof(self, proof_service) -> None:
        with pytest.raises(NotFoundException):
            proof_service.review_proof("missing", decision=PaymentProofStatus.APPROVED)


def test_list_proofs_by_status(proof_service, proof) -> None:
    assert [p.id for p in proof_service.list_proofs()] == [proof.id]
    assert [p.id for p in proof_service.list_proofs(status=PaymentProofStatus.PENDING)] == [proof.id]
    assert proof_service.list_proofs(status=PaymentProofStatus.APPROVED) == []
