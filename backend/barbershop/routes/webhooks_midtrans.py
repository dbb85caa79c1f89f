# backend/barbershop/routes/webhooks_midtrans.py
"""
Midtrans HTTP notification endpoint.

The notification is verified with its SHA-512 signature before anything is
read from the database. Replays are harmless: reconciliation only acts on
the first report that moves a payment.
"""

import asyncio
import json
import logging
from typing import Any, Dict, NoReturn

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status

from ..api.dependencies import (
    OutboxRunner,
    get_outbox_runner,
    get_payment_service,
    schedule_outbox_dispatch,
)
from ..core.exceptions import DomainException, ValidationException
from ..schemas.payment import WebhookAck
from ..services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/midtrans", response_model=WebhookAck)
async def handle_midtrans_notification(
    request: Request,
    background_tasks: BackgroundTasks,
    payment_service: PaymentService = Depends(get_payment_service),
    outbox_runner: OutboxRunner = Depends(get_outbox_runner),
) -> WebhookAck:
    """
    Apply a payment notification.

    Returns:
        Acknowledgement with the resulting payment status

    Raises:
        HTTPException: 400 for a malformed body or a bad signature, 404 for
            an unknown order
    """
    try:
        payload: Dict[str, Any] = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Midtrans notification with unreadable body")
        handle_domain_exception(
            ValidationException("Notification body must be JSON", code="INVALID_PAYLOAD")
        )
    if not isinstance(payload, dict):
        handle_domain_exception(
            ValidationException("Notification body must be an object", code="INVALID_PAYLOAD")
        )

    logger.info(
        "Midtrans notification received",
        extra={
            "order_id": payload.get("order_id"),
            "transaction_status": payload.get("transaction_status"),
        },
    )
    try:
        result = await asyncio.to_thread(payment_service.handle_notification, payload)
    except DomainException as exc:
        handle_domain_exception(exc)

    schedule_outbox_dispatch(background_tasks, outbox_runner, result.outbox_event_ids)
    return WebhookAck(
        order_id=result.payment.order_id_gateway,
        payment_status=result.payment.status,
        changed=result.changed,
    )
