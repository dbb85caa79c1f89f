# backend/barbershop/services/payment_service.py
"""
QRIS payment service.

Creates gateway charges and reconciles gateway reports with local state.
Webhook notifications and status polls go through the same ``reconcile``
routine: the payment status is changed with a compare-and-set, and only the
call that actually moved a payment into PAID confirms the booking.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from ..constants.payment_status import (
    GatewayOutcome,
    classify_transaction_status,
    payment_status_for,
)
from ..core.config import settings
from ..core.enums import BookingStatus, PaymentMethod, PaymentStatus
from ..core.exceptions import (
    GatewayException,
    InvalidSignatureException,
    NotFoundException,
    ValidationException,
)
from ..core.timezone_utils import utc_now
from ..domain.status_transitions import can_transition_payment
from ..integrations.midtrans_client import MidtransClient, generate_order_id
from ..models.payment import Payment
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingRepository
from ..repositories.payment_repository import PaymentRepository
from .base import BaseService
from .booking_service import BookingService
from .side_effects import TransitionResult

logger = logging.getLogger(__name__)

SOURCE_WEBHOOK = "webhook"
SOURCE_STATUS_CHECK = "status_check"


@dataclass
class ReconcileResult:
    payment: Payment
    outcome: GatewayOutcome
    changed: bool = False
    transaction_status: Optional[str] = None
    booking_result: Optional[TransitionResult] = None

    @property
    def booking_status(self) -> BookingStatus:
        return BookingStatus(self.payment.booking.status)

    @property
    def outbox_event_ids(self) -> List[str]:
        return list(self.booking_result.outbox_event_ids) if self.booking_result else []


@dataclass
class PendingReconcileSummary:
    checked: int = 0
    changed: int = 0
    errors: int = 0
    outbox_event_ids: List[str] = field(default_factory=list)


class PaymentService(BaseService):
    """Service layer for QRIS charges and payment reconciliation."""

    def __init__(
        self,
        db: Session,
        gateway: MidtransClient,
        *,
        booking_service: Optional[BookingService] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(db)
        self.gateway = gateway
        self.clock = clock
        self.booking_service = booking_service or BookingService(db, clock=clock)
        self.payment_repository = PaymentRepository(db)
        self.booking_repository = BookingRepository(db)

    # ---------------------------------------------------------------- charges

    @BaseService.measure_operation("create_qris_payment")
    def create_qris_payment(self, booking_id: str) -> Payment:
        """
        Return a payable QRIS charge for a booking awaiting payment.

        A still-valid charge is reused; otherwise a new gateway order is
        created and stored on the booking's pending payment.

        Raises:
            NotFoundException: Unknown booking
            ValidationException: Booking no longer awaits payment
            GatewayException: The gateway call failed
        """
        with self.transaction():
            booking = self.booking_repository.get_by_id(booking_id)
            if booking is None:
                raise NotFoundException(f"Booking {booking_id} not found", code="BOOKING_NOT_FOUND")
            status = BookingStatus(booking.status)
            if status != BookingStatus.PENDING_PAYMENT:
                raise ValidationException(
                    f"Booking is {status.value} and cannot be paid",
                    code="BOOKING_NOT_PAYABLE",
                    details={"booking_id": booking_id, "status": status.value},
                )

            now = self.clock()
            latest = self.payment_repository.get_latest_for_booking(booking.id, PaymentMethod.QRIS)
            pending = None
            if latest is not None and latest.status == PaymentStatus.PENDING:
                pending = latest
            if pending is not None and pending.qr_code_data and not pending.is_expired(now):
                self.logger.info("Reusing QRIS charge %s", pending.order_id_gateway)
                return pending

            order_id = generate_order_id(booking.id)
            charge = self.gateway.create_charge(
                order_id=order_id,
                amount=booking.service.price,
                customer={
                    "name": booking.customer_name,
                    "email": booking.email,
                    "phone": booking.phone,
                },
                booking_id=booking.id,
                expiry_minutes=settings.booking_expiry_minutes,
            )

            if pending is not None and pending.order_id_gateway:
                # The previous charge lapsed; it can no longer be paid
                self.payment_repository.compare_and_set_status(
                    pending.id, PaymentStatus.PENDING, PaymentStatus.EXPIRED
                )
                pending = None
            payment = pending or self.payment_repository.create(
                booking_id=booking.id,
                amount=booking.service.price,
                method=PaymentMethod.QRIS,
                status=PaymentStatus.PENDING,
            )
            payment.order_id_gateway = charge["order_id"]
            payment.qr_code_data = charge["qr_string"]
            payment.expired_at = now + timedelta(minutes=settings.booking_expiry_minutes)
            payment.gateway_data = {"charge": charge["raw"]}
            self.db.flush()

        self.log_operation("qris_charge_created", booking_id=booking_id, order_id=order_id)
        return payment

    # ---------------------------------------------------------- reconciliation

    def reconcile(
        self,
        order_id: str,
        transaction_status: Optional[str],
        fraud_status: Optional[str],
        raw: Mapping[str, Any],
        source: str,
    ) -> ReconcileResult:
        """
        Apply a gateway report to the local payment.

        Safe to call repeatedly and concurrently for the same order.
        """
        with self.transaction():
            payment = self.payment_repository.get_by_order_id(order_id)
            if payment is None:
                raise NotFoundException(f"Payment {order_id} not found", code="PAYMENT_NOT_FOUND")
            outcome = classify_transaction_status(transaction_status, fraud_status)
            target = payment_status_for(outcome)
            current = PaymentStatus(payment.status)
            result = ReconcileResult(
                payment=payment, outcome=outcome, transaction_status=transaction_status
            )

            if target == current:
                return result
            if not can_transition_payment(current, target):
                self.logger.warning(
                    "Ignoring %s report for payment %s: %s -> %s not allowed",
                    source,
                    order_id,
                    current.value,
                    target.value,
                )
                return result

            gateway_data: Dict[str, Any] = dict(payment.gateway_data or {})
            gateway_data[source] = dict(raw)
            paid_at = self.clock() if target == PaymentStatus.PAID else None
            if not self.payment_repository.compare_and_set_status(
                payment.id, current, target, paid_at=paid_at, gateway_data=gateway_data
            ):
                self.logger.info("Payment %s changed concurrently; nothing to do", order_id)
                return result

            result.changed = True
            if target == PaymentStatus.PAID:
                result.booking_result = self.booking_service.confirm_paid_booking(payment.booking)

        self.log_operation(
            "payment_reconciled",
            order_id=order_id,
            source=source,
            payment_status=target.value,
        )
        prometheus_metrics.record_payment_reconciled(source, target.value)
        return result

    @BaseService.measure_operation("poll_payment_status")
    def poll_status(self, order_id: str) -> ReconcileResult:
        """
        Ask the gateway for the current status and reconcile it.

        GatewayException propagates and leaves the payment untouched.
        """
        payment = self.get_local_status(order_id)
        raw = self.gateway.get_status(order_id)
        transaction_status = raw.get("transaction_status")
        if not transaction_status:
            self.logger.warning(
                "Gateway has no transaction for %s: %s", order_id, raw.get("status_message")
            )
            return ReconcileResult(
                payment=payment,
                outcome=GatewayOutcome.PENDING,
                transaction_status=None,
            )
        return self.reconcile(
            order_id,
            transaction_status,
            raw.get("fraud_status"),
            raw,
            SOURCE_STATUS_CHECK,
        )

    @BaseService.measure_operation("handle_payment_notification")
    def handle_notification(self, payload: Mapping[str, Any]) -> ReconcileResult:
        """
        Verify and apply a Midtrans HTTP notification.

        Raises:
            InvalidSignatureException: The signature does not verify; nothing
                is changed
        """
        order_id = payload.get("order_id")
        if not self.gateway.verify_notification(payload):
            prometheus_metrics.record_payment_webhook("invalid_signature")
            self.logger.warning(
                "Rejected payment notification with invalid signature",
                extra={"order_id": order_id, "security_event": "invalid_signature"},
            )
            raise InvalidSignatureException(order_id if isinstance(order_id, str) else None)

        result = self.reconcile(
            str(order_id),
            payload.get("transaction_status"),
            payload.get("fraud_status"),
            payload,
            SOURCE_WEBHOOK,
        )
        prometheus_metrics.record_payment_webhook("applied" if result.changed else "ignored")
        return result

    def get_local_status(self, order_id: str) -> Payment:
        payment = self.payment_repository.get_by_order_id(order_id)
        if payment is None:
            raise NotFoundException(f"Payment {order_id} not found", code="PAYMENT_NOT_FOUND")
        return payment

    def reconcile_pending(self, limit: int = 100) -> PendingReconcileSummary:
        """Poll the gateway for every pending QRIS order; used by the periodic task."""
        summary = PendingReconcileSummary()
        order_ids = [
            payment.order_id_gateway
            for payment in self.payment_repository.list_pending_gateway_payments(limit=limit)
        ]
        for order_id in order_ids:
            summary.checked += 1
            try:
                result = self.poll_status(order_id)
            except GatewayException as exc:
                summary.errors += 1
                self.logger.warning("Status poll failed for %s: %s", order_id, exc.message)
                continue
            if result.changed:
                summary.changed += 1
                summary.outbox_event_ids.extend(result.outbox_event_ids)
        return summary
