# backend/barbershop/services/side_effects.py
"""
Side effects emitted by booking and payment transitions.

A transition returns the ordered effects it caused and writes each one to
the event outbox inside the same transaction. Delivery happens after commit
and never affects the outcome of the transition itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.enums import BookingStatus, SideEffectKind
from ..models.booking import Booking
from ..repositories.event_outbox_repository import EventOutboxRepository


@dataclass(frozen=True)
class SideEffect:
    kind: SideEffectKind
    booking_id: str
    payload: Dict[str, Any] = field(default_factory=dict)
    discriminator: str = ""

    @property
    def idempotency_key(self) -> str:
        """
        One delivery per booking, effect kind and discriminator.

        The discriminator is the booking status the effect was emitted for, or
        the calendar event id for deletions.
        """
        return f"booking:{self.booking_id}:{self.kind.value}:{self.discriminator}"


@dataclass
class TransitionResult:
    """Outcome of a lifecycle operation."""

    booking: Booking
    effects: List[SideEffect] = field(default_factory=list)
    outbox_event_ids: List[str] = field(default_factory=list)
    changed: bool = True


def booking_effect(
    kind: SideEffectKind,
    booking: Booking,
    discriminator: Optional[str] = None,
    **extra: Any,
) -> SideEffect:
    payload: Dict[str, Any] = {"booking": booking.notification_fields()}
    payload.update(extra)
    return SideEffect(
        kind=kind,
        booking_id=booking.id,
        payload=payload,
        discriminator=discriminator or BookingStatus(booking.status).value,
    )


def creation_effects(booking: Booking) -> List[SideEffect]:
    effects = [
        booking_effect(SideEffectKind.EMAIL_ADMIN_NEW_BOOKING, booking),
        booking_effect(SideEffectKind.EMAIL_BOOKING_RECEIVED, booking, recipient=booking.email),
    ]
    # Cash bookings are confirmed on creation and go straight onto the calendar
    if BookingStatus(booking.status) == BookingStatus.CONFIRMED:
        effects.append(booking_effect(SideEffectKind.CALENDAR_CREATE_EVENT, booking))
    return effects


def confirmation_effects(booking: Booking) -> List[SideEffect]:
    effects: List[SideEffect] = []
    if not booking.calendar_event_id:
        effects.append(booking_effect(SideEffectKind.CALENDAR_CREATE_EVENT, booking))
    effects.append(
        booking_effect(SideEffectKind.EMAIL_BOOKING_CONFIRMED, booking, recipient=booking.email)
    )
    return effects


def cancellation_effects(booking: Booking) -> List[SideEffect]:
    effects: List[SideEffect] = []
    if booking.calendar_event_id:
        effects.append(
            booking_effect(
                SideEffectKind.CALENDAR_DELETE_EVENT,
                booking,
                discriminator=booking.calendar_event_id,
                event_id=booking.calendar_event_id,
            )
        )
    effects.append(
        booking_effect(SideEffectKind.EMAIL_BOOKING_CANCELLED, booking, recipient=booking.email)
    )
    return effects


def completion_effects(booking: Booking) -> List[SideEffect]:
    return [
        booking_effect(SideEffectKind.EMAIL_BOOKING_COMPLETED, booking, recipient=booking.email)
    ]


def record_effects(
    outbox: EventOutboxRepository, effects: List[SideEffect], aggregate_id: Optional[str] = None
) -> List[str]:
    """Write effects to the outbox in order and return the outbox row ids."""
    event_ids: List[str] = []
    for effect in effects:
        row = outbox.enqueue(
            event_type=effect.kind.value,
            aggregate_id=aggregate_id or effect.booking_id,
            payload=effect.payload,
            idempotency_key=effect.idempotency_key,
        )
        event_ids.append(row.id)
    return event_ids
