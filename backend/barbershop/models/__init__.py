# backend/barbershop/models/__init__.py
"""
Database models for the barbershop backend.

Importing this package registers every table on ``Base.metadata``.
"""

from .barber import Barber
from .booking import Booking
from .event_outbox import EventOutbox, EventOutboxStatus, NotificationDelivery
from .payment import Payment, PaymentProof
from .service import Service
from .shop_settings import NOTIFICATION_SETTINGS_KEY, NotificationSettings, QrisSetting

__all__ = [
    "Barber",
    "Booking",
    "EventOutbox",
    "EventOutboxStatus",
    "NOTIFICATION_SETTINGS_KEY",
    "NotificationDelivery",
    "NotificationSettings",
    "Payment",
    "PaymentProof",
    "QrisSetting",
    "Service",
]
