# backend/barbershop/tasks/payment_tasks.py
"""
Periodic payment and booking maintenance.

`payments.reconcile_pending` catches settlements whose webhook never arrived;
`bookings.expire_stale` cancels QRIS bookings left unpaid past their expiry.
"""

from __future__ import annotations

from typing import Any, Dict

from celery.utils.log import get_task_logger

from ..database import SessionLocal
from ..services.booking_service import BookingService
from ..services.clients import build_gateway_client
from ..services.outbox_dispatcher import session_scope
from ..services.payment_service import PaymentService
from .celery_app import celery_app
from .outbox_tasks import deliver_event

logger = get_task_logger(__name__)


@celery_app.task(name="payments.reconcile_pending", max_retries=0, queue="payments")
def reconcile_pending_payments(limit: int = 100) -> Dict[str, Any]:
    """Poll the gateway for every pending QRIS order and apply the result."""
    with session_scope(SessionLocal) as session:
        summary = PaymentService(session, build_gateway_client()).reconcile_pending(limit=limit)
    for event_id in summary.outbox_event_ids:
        deliver_event.apply_async((event_id,), queue="notifications")
    if summary.checked:
        logger.info(
            "Reconciled pending payments checked=%s changed=%s errors=%s",
            summary.checked,
            summary.changed,
            summary.errors,
        )
    return {"checked": summary.checked, "changed": summary.changed, "errors": summary.errors}


@celery_app.task(name="bookings.expire_stale", max_retries=0, queue="payments")
def expire_stale_bookings(limit: int = 100) -> Dict[str, Any]:
    """Cancel unpaid QRIS bookings; their notifications go out via the outbox."""
    with session_scope(SessionLocal) as session:
        cancelled = BookingService(session).expire_stale_bookings(limit=limit)
    return {"cancelled": len(cancelled), "booking_ids": cancelled}
