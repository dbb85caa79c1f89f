# backend/barbershop/tasks/celery_app.py
"""
Celery application for background work.

Redis is the broker and result backend. Beat drives outbox delivery, gateway
reconciliation of pending QRIS payments and the stale booking sweep.
"""

import logging
import os
from typing import Any, Dict, Type, cast

from celery import Celery, Task
from celery.signals import setup_logging

from ..core.config import settings
from .beat_schedule import get_beat_schedule

logger = logging.getLogger(__name__)


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Broker priority: CELERY_BROKER_URL, then REDIS_URL, then localhost.
    """
    broker_url = (
        os.getenv("CELERY_BROKER_URL") or settings.redis_url or "redis://localhost:6379/0"
    )
    result_backend = os.getenv("CELERY_RESULT_BACKEND") or broker_url

    celery_app = Celery("barbershop", broker=broker_url, backend=result_backend)
    celery_app.conf.update(
        {
            "task_serializer": "json",
            "accept_content": ["json"],
            "result_serializer": "json",
            "timezone": settings.shop_timezone,
            "enable_utc": True,
            "worker_prefetch_multiplier": 4,
            "worker_max_tasks_per_child": 1000,
            "task_soft_time_limit": 120,
            "task_time_limit": 300,
            "task_acks_late": True,
            "task_reject_on_worker_lost": True,
            "worker_hijack_root_logger": False,
            "broker_transport_options": {"visibility_timeout": 3600},
        }
    )
    celery_app.conf.imports = (
        "barbershop.tasks.outbox_tasks",
        "barbershop.tasks.payment_tasks",
    )
    celery_app.conf.task_routes = {
        "outbox.*": {"queue": "notifications"},
        "payments.*": {"queue": "payments"},
        "bookings.*": {"queue": "payments"},
    }
    celery_app.conf.beat_schedule = get_beat_schedule()
    return celery_app


@setup_logging.connect  # type: ignore[misc]
def config_loggers(*args: Any, **kwargs: Any) -> None:
    """Use the application's log format instead of Celery's."""
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


celery_app = create_celery_app()


class BaseTask(Task):  # type: ignore[misc]
    """Base task that logs failures with the task id attached."""

    def on_failure(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo: Any) -> None:
        logger.error(
            "Task %s[%s] failed: %s",
            self.name,
            task_id,
            exc,
            exc_info=True,
            extra={"task_id": task_id, "task_name": self.name},
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)


celery_app.Task = cast(Type[Task], BaseTask)


@celery_app.task(name="barbershop.health_check")  # type: ignore[misc]
def health_check() -> Dict[str, str]:
    """Simple task to verify workers are consuming."""
    current_task = celery_app.current_task
    return {
        "status": "healthy",
        "worker": current_task.request.hostname if current_task else "unknown",
    }
