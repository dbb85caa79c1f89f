from unittest.mock import MagicMock, patch

from barbershop.services.payment_service import PendingReconcileSummary
from barbershop.tasks import payment_tasks
from barbershop.tasks.beat_schedule import get_beat_schedule
from barbershop.tasks.celery_app import celery_app


class TestReconcilePendingPayments:
    def test_summary_and_follow_up_delivery(self) -> None:
        summary = PendingReconcileSummary(checked=3, changed=1, errors=1, outbox_event_ids=["e1", "e2"])
        service = MagicMock()
        service.reconcile_pending.return_value = summary

        with patch.object(payment_tasks, "SessionLocal"), patch.object(
            payment_tasks, "build_gateway_client"
        ), patch.object(payment_tasks, "PaymentService", return_value=service), patch.object(
            payment_tasks.deliver_event, "apply_async"
        ) as apply_async:
            result = payment_tasks.reconcile_pending_payments(limit=10)

        service.reconcile_pending.assert_called_once_with(limit=10)
        assert result == {"checked": 3, "changed": 1, "errors": 1}
        assert [c.args[0] for c in apply_async.call_args_list] == [("e1",), ("e2",)]


class TestExpireStaleBookings:
    def test_reports_cancelled_bookings(self) -> None:
        service = MagicMock()
        service.expire_stale_bookings.return_value = ["b1", "b2"]
        with patch.object(payment_tasks, "SessionLocal"), patch.object(
            payment_tasks, "BookingService", return_value=service
        ):
            result = payment_tasks.expire_stale_bookings()

        service.expire_stale_bookings.assert_called_once_with(limit=100)
        assert result == {"cancelled": 2, "booking_ids": ["b1", "b2"]}


class TestCeleryConfiguration:
    def test_tasks_are_registered(self) -> None:
        for name in (
            "outbox.dispatch_pending",
            "outbox.deliver_event",
            "payments.reconcile_pending",
            "bookings.expire_stale",
            "barbershop.health_check",
        ):
            assert name in celery_app.tasks

    def test_beat_schedule_targets_registered_tasks(self) -> None:
        schedule = get_beat_schedule()
        assert {entry["task"] for entry in schedule.values()} <= set(celery_app.tasks)
        assert schedule["dispatch-pending-outbox"]["schedule"].total_seconds() == 30

    def test_routes(self) -> None:
        routes = celery_app.conf.task_routes
        assert routes["outbox.*"] == {"queue": "notifications"}
        assert routes["payments.*"] == {"queue": "payments"}
