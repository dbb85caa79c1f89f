"""Midtrans transaction status classification."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from ..core.enums import PaymentStatus


class GatewayOutcome(str, Enum):
    """Mutually exclusive reading of a gateway transaction status."""

    PAID = "paid"
    PENDING = "pending"
    FAILED = "failed"
    EXPIRED = "expired"

    @property
    def is_paid(self) -> bool:
        return self is GatewayOutcome.PAID

    @property
    def is_pending(self) -> bool:
        return self is GatewayOutcome.PENDING

    @property
    def is_failed(self) -> bool:
        return self is GatewayOutcome.FAILED

    @property
    def is_expired(self) -> bool:
        return self is GatewayOutcome.EXPIRED


# Statuses whose meaning does not depend on the fraud check
MIDTRANS_TO_OUTCOME = {
    "settlement": GatewayOutcome.PAID,
    "pending": GatewayOutcome.PENDING,
    "deny": GatewayOutcome.FAILED,
    "cancel": GatewayOutcome.FAILED,
    "failure": GatewayOutcome.FAILED,
    "expire": GatewayOutcome.EXPIRED,
}

OUTCOME_TO_PAYMENT_STATUS = {
    GatewayOutcome.PAID: PaymentStatus.PAID,
    GatewayOutcome.PENDING: PaymentStatus.PENDING,
    GatewayOutcome.FAILED: PaymentStatus.FAILED,
    GatewayOutcome.EXPIRED: PaymentStatus.EXPIRED,
}


def classify_transaction_status(
    transaction_status: Optional[str], fraud_status: Optional[str] = None
) -> GatewayOutcome:
    """
    Map a Midtrans transaction status (and fraud status) to a single outcome.

    Unknown statuses are treated as pending so that nothing unrecognised is
    ever recorded as paid or failed.
    """
    normalized = (transaction_status or "").strip().lower()
    if normalized == "capture":
        fraud = (fraud_status or "").strip().lower()
        if fraud == "accept":
            return GatewayOutcome.PAID
        if fraud == "challenge":
            return GatewayOutcome.PENDING
        return GatewayOutcome.FAILED
    return MIDTRANS_TO_OUTCOME.get(normalized, GatewayOutcome.PENDING)


def payment_status_for(outcome: GatewayOutcome) -> PaymentStatus:
    """Local payment status a gateway outcome maps onto."""
    return OUTCOME_TO_PAYMENT_STATUS[outcome]
