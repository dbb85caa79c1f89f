# backend/barbershop/tasks/outbox_tasks.py
"""
Celery tasks for dispatching outbox events.

Two-step workflow:
1. `outbox.dispatch_pending` periodically enqueues events whose next attempt
   is due.
2. `outbox.deliver_event` delivers one event. A failure is recorded on the
   row with its backoff, and the next `dispatch_pending` run after the
   backoff picks the event up again.
"""

from __future__ import annotations

from typing import Any, Dict

from celery.utils.log import get_task_logger

from ..database import SessionLocal
from ..services.clients import build_dispatcher
from ..services.outbox_dispatcher import session_scope
from .celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(name="outbox.dispatch_pending", max_retries=0, queue="notifications")
def dispatch_pending() -> int:
    """
    Fetch pending outbox events and enqueue delivery tasks.

    Returns the number of events scheduled.
    """
    with session_scope(SessionLocal) as session:
        event_ids = build_dispatcher(session).pending_event_ids(limit=200)
    for event_id in event_ids:
        deliver_event.apply_async((event_id,), queue="notifications")
    if event_ids:
        logger.info("Scheduled %s outbox events for delivery", len(event_ids))
    return len(event_ids)


@celery_app.task(name="outbox.deliver_event", max_retries=0, queue="notifications")
def deliver_event(event_id: str) -> Dict[str, Any]:
    """Deliver a single outbox event and report the outcome."""
    with session_scope(SessionLocal) as session:
        result = build_dispatcher(session).process_event(event_id)
    return {
        "event_id": result.event_id,
        "status": result.status,
        "attempt_count": result.attempt_count,
        "backoff_seconds": result.backoff_seconds,
    }
