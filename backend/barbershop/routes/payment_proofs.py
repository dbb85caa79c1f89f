# backend/barbershop/routes/payment_proofs.py
"""Customer upload of a transfer receipt for manual review."""

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from ..api.dependencies import get_payment_proof_service
from ..core.exceptions import DomainException
from ..schemas.payment import PaymentProofCreate, PaymentProofResponse
from ..services.payment_proof_service import PaymentProofService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment-proofs", tags=["payment-proofs"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("", response_model=PaymentProofResponse, status_code=status.HTTP_201_CREATED)
def submit_payment_proof(
    payload: PaymentProofCreate,
    proof_service: PaymentProofService = Depends(get_payment_proof_service),
) -> PaymentProofResponse:
    try:
        proof = proof_service.submit_proof(
            payment_id=payload.payment_id,
            proof_image_url=payload.proof_image_url,
            amount=payload.amount,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return PaymentProofResponse.model_validate(proof)
