# backend/tests/conftest.py
"""
Pytest configuration for the Parkspace backend.

Tests run against an in-memory SQLite database. The environment is pinned
BEFORE any app import so the engine is built for SQLite and no external
service (Stripe, Firebase, timezone providers) is ever contacted.
"""

import os

# CRITICAL: Set testing mode BEFORE any app imports!
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["IS_TESTING"] = "true"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["PUSH_NOTIFICATIONS_ENABLED"] = "false"

from datetime import date, datetime, timedelta
from decimal import Decimal
import itertools
from typing import Iterator
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
import pytest
import pytz
from sqlalchemy.orm import Session

from app.api.dependencies import get_db, get_stripe_service, get_timezone_service
from app.auth import create_access_token
from app.database import Base, SessionLocal, engine
from app import models  # noqa: F401 - registers every table on Base.metadata
from app.main import app
from app.models.spot import Spot
from app.models.user import User, Vehicle
from app.services.geocoding.mock_provider import MockTimezoneProvider
from app.services.stripe_service import StripeService
from app.services.timezone_service import TimezoneService
from tests.factories.builders import create_spot, create_user, create_vehicle, create_window

# Saturday 2024-06-08 08:00 in New York
FIXED_NOW = datetime(2024, 6, 8, 12, 0, tzinfo=pytz.UTC)


# ============================================================================
# DATABASE
# ============================================================================


@pytest.fixture(scope="function")
def db() -> Iterator[Session]:
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=engine)


# ============================================================================
# EXTERNAL SERVICES
# ============================================================================


@pytest.fixture
def fake_stripe() -> MagicMock:
    """
    Stripe adapter double.

    Every payment intent gets a unique id and client secret, intents report
    ``succeeded`` and transfers go through.
    """
    stripe = MagicMock(spec=StripeService)
    counter = itertools.count(1)

    def _create_intent(amount_cents, metadata=None, *, currency=None, idempotency_key=None):
        n = next(counter)
        return {
            "id": f"pi_test_{n}",
            "client_secret": f"pi_test_{n}_secret",
            "status": "requires_payment_method",
        }

    stripe.create_payment_intent.side_effect = _create_intent
    stripe.retrieve_payment_intent_status.return_value = "succeeded"
    stripe.cancel_payment_intent.return_value = None
    stripe.refund_payment_intent.return_value = "re_test_1"
    stripe.create_transfer.return_value = "tr_test_1"
    stripe.retrieve_account_payouts_enabled.return_value = True
    return stripe


@pytest.fixture
def timezone_service() -> TimezoneService:
    return TimezoneService(providers=[MockTimezoneProvider()], max_attempts=1, backoff_seconds=0)


@pytest.fixture
def client(db: Session, fake_stripe: MagicMock, timezone_service: TimezoneService):
    """Create a test client bound to the test session and service doubles."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stripe_service] = lambda: fake_stripe
    app.dependency_overrides[get_timezone_service] = lambda: timezone_service

    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


# ============================================================================
# USERS, SPOTS, VEHICLES
# ============================================================================


@pytest.fixture
def host(db: Session) -> User:
    return create_user(db, email="host@example.com", first_name="Hana")


@pytest.fixture
def client_user(db: Session) -> User:
    return create_user(db, email="client@example.com", first_name="Carl")


@pytest.fixture
def other_client(db: Session) -> User:
    return create_user(db, email="other@example.com", first_name="Olga")


@pytest.fixture
def vehicle(db: Session, client_user: User) -> Vehicle:
    return create_vehicle(db, client_user)


@pytest.fixture
def other_vehicle(db: Session, other_client: User) -> Vehicle:
    return create_vehicle(db, other_client, plate_number="XYZ-999")


@pytest.fixture
def spot(db: Session, host: User) -> Spot:
    """New York spot at $10/hour."""
    return create_spot(db, host)


@pytest.fixture
def weekday_spot(db: Session, spot: Spot) -> Spot:
    """The spot with an 08:00-18:00 window every day of the week."""
    for day in ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"):
        create_window(db, spot, day, "08:00", "18:00")
    return spot


# ============================================================================
# AUTH
# ============================================================================


def _bearer(user: User) -> dict:
    token = create_access_token(data={"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers_host(host: User) -> dict:
    return _bearer(host)


@pytest.fixture
def auth_headers_client(client_user: User) -> dict:
    return _bearer(client_user)


@pytest.fixture
def auth_headers_other(other_client: User) -> dict:
    return _bearer(other_client)


# ============================================================================
# DATES
# ============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def next_monday() -> date:
    """A Monday at least a week out, for tests that run against the real clock."""
    today = date.today()
    return today + timedelta(days=7 + (7 - today.weekday()) % 7)


@pytest.fixture
def hourly_rate() -> Decimal:
    return Decimal("10.00")
