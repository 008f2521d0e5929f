"""Application-wide constants for the Parkspace booking engine."""

from __future__ import annotations

from decimal import Decimal

BRAND_NAME = "Parkspace"

# Wall-clock formats accepted on every booking/availability field
TIME_REGEX = r"^([01]\d|2[0-3]):([0-5]\d)$"
DATE_REGEX = r"^\d{4}-\d{2}-\d{2}$"

MINUTES_PER_DAY = 24 * 60
END_OF_DAY_TIME = "23:59"  # windows ending at 23:59 stay open through midnight

# Booking duration bounds (minutes)
MIN_NORMAL_DURATION = 15
MAX_NORMAL_DURATION = MINUTES_PER_DAY
MIN_CUSTOM_DURATION = MINUTES_PER_DAY
MAX_CUSTOM_DURATION = 30 * MINUTES_PER_DAY

# Notice required before cancelling or changing a booking
MIN_CHANGE_NOTICE_HOURS = 24

# Fee constants
CANCELLATION_FEE_PERCENTAGE = Decimal("0.3")
PLATFORM_FEE = Decimal("0")
TAX_RATE = Decimal("0")
STRIPE_FEE_PERCENTAGE = Decimal("0.029")
STRIPE_FEE_FIXED = Decimal("0.29")

# Payouts
MIN_PAYOUT_AMOUNT = Decimal("10")
STRIPE_PAYOUT_FEE = Decimal("0.25")
MAX_DAILY_PAYOUTS = 3

# Projection horizon for blocked dates (days)
BLOCKED_DATES_HORIZON_DAYS = 90

# Query limits
DEFAULT_PAGE_SIZE = 5
MAX_PAGE_SIZE = 100

# OpenAPI metadata
API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = "Parking-spot booking engine: availability, bookings, payments and payouts."
API_VERSION = "1.0.0"

# Browser origins allowed by CORS when CORS_ALLOWED_ORIGINS is unset
ALLOWED_ORIGINS = ["http://localhost:3000", "http://localhost:8081"]
