"""Application-wide constants for the barbershop backend."""

from __future__ import annotations

BRAND_NAME = "Modern Barbershop"

# Shop schedule defaults (overridable through settings)
SHOP_TIMEZONE = "Asia/Jakarta"
OPENING_HOUR = 9
CLOSING_HOUR = 19  # exclusive
MIN_LEAD_MINUTES = 60
SLOT_INTERVAL_MINUTES = 30
BOOKING_WINDOW_DAYS = 30
# Monday=0 ... Saturday=5; Sunday is closed
OPEN_WEEKDAYS = (0, 1, 2, 3, 4, 5)

# Payments
CURRENCY = "IDR"
BOOKING_EXPIRY_MINUTES = 30
QRIS_ITEM_NAME = "Layanan Barbershop"
QRIS_ITEM_CATEGORY = "Service"
ORDER_ID_PREFIX = "BOOK"

# Service duration constraints
MIN_SERVICE_DURATION = 5  # minutes
MAX_SERVICE_DURATION = 480  # minutes

# Text constraints
MIN_CUSTOMER_NAME_LENGTH = 2
MIN_PHONE_LENGTH = 10
MAX_NOTES_LENGTH = 1000

# Query limits
DEFAULT_QUERY_LIMIT = 100

# API metadata
API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = "Booking, availability and QRIS payment API"
API_VERSION = "0.1.0"
