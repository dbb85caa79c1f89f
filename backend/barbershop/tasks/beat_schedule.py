# backend/barbershop/tasks/beat_schedule.py
"""Periodic task schedule."""

from datetime import timedelta
from typing import Any, Dict


def get_beat_schedule() -> Dict[str, Dict[str, Any]]:
    return {
        "dispatch-pending-outbox": {
            "task": "outbox.dispatch_pending",
            "schedule": timedelta(seconds=30),
            "options": {"queue": "notifications"},
        },
        "reconcile-pending-qris-payments": {
            "task": "payments.reconcile_pending",
            "schedule": timedelta(minutes=2),
            "options": {"queue": "payments"},
        },
        "expire-stale-bookings": {
            "task": "bookings.expire_stale",
            "schedule": timedelta(minutes=5),
            "options": {"queue": "payments"},
        },
    }
