# backend/barbershop/routes/payments.py
"""
QRIS payment routes.

Router Endpoints:
    POST /payments/qris - Create (or reuse) the QRIS charge of a booking
    POST /payments/qris/status - Ask the gateway and reconcile
    GET /payments/qris/status?orderId= - Local status, no gateway call
"""

import asyncio
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from ..api.dependencies import (
    OutboxRunner,
    get_outbox_runner,
    get_payment_service,
    schedule_outbox_dispatch,
)
from ..core.exceptions import DomainException
from ..models.payment import Payment
from ..schemas.payment import (
    PaymentResponse,
    PaymentStatusResponse,
    QrisPaymentCreate,
    QrisStatusRequest,
)
from ..services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _status_response(
    payment: Payment, transaction_status: Optional[str] = None
) -> PaymentStatusResponse:
    return PaymentStatusResponse(
        order_id=payment.order_id_gateway,
        status=payment.status,
        booking_id=payment.booking_id,
        booking_status=payment.booking.status,
        transaction_status=transaction_status,
        paid_at=payment.paid_at,
    )


@router.post("/qris", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_qris_payment(
    payload: QrisPaymentCreate,
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaymentResponse:
    try:
        payment = await asyncio.to_thread(payment_service.create_qris_payment, payload.booking_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return PaymentResponse(**payment.to_dict())


@router.post("/qris/status", response_model=PaymentStatusResponse)
async def poll_qris_status(
    payload: QrisStatusRequest,
    background_tasks: BackgroundTasks,
    payment_service: PaymentService = Depends(get_payment_service),
    outbox_runner: OutboxRunner = Depends(get_outbox_runner),
) -> PaymentStatusResponse:
    """Reconcile with the gateway; a gateway failure leaves the payment as it was."""
    try:
        result = await asyncio.to_thread(payment_service.poll_status, payload.order_id)
    except DomainException as exc:
        handle_domain_exception(exc)

    schedule_outbox_dispatch(background_tasks, outbox_runner, result.outbox_event_ids)
    return _status_response(result.payment, result.transaction_status)


@router.get("/qris/status", response_model=PaymentStatusResponse)
def get_qris_status(
    order_id: str = Query(..., alias="orderId", min_length=1),
    payment_service: PaymentService = Depends(get_payment_service),
) -> PaymentStatusResponse:
    try:
        payment = payment_service.get_local_status(order_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return _status_response(payment)
