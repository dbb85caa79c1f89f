# backend/tests/conftest.py
"""
Shared fixtures.

Every test runs against an in-memory SQLite database inside a transaction
that is rolled back afterwards. Services commit into a savepoint, so commit
and rollback paths behave as they do against a real database.

Time is fixed: NOW is Monday 2025-01-06 08:00 in Asia/Jakarta and SLOT_DAY
(the Tuesday after) is an ordinary operating day.
"""

import os

# Settings are read on import; configure the test environment first.
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["MIDTRANS_FAKE"] = "true"
os.environ["REDIS_URL"] = ""
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["ADMIN_EMAIL"] = "owner@barbershop.test"

from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from barbershop.api import dependencies
from barbershop.core.enums import PaymentMethod
from barbershop.database import Base, get_db

# Import models so Base.metadata is populated for create_all.
import barbershop.models  # noqa: F401
from barbershop.main import app
from barbershop.models.barber import Barber
from barbershop.models.service import Service
from barbershop.integrations.midtrans_client import FakeMidtransClient
from barbershop.services.booking_service import BookingService
from barbershop.services.email import ConsoleEmailProvider, EmailService
from barbershop.services.notification_service import NotificationService
from barbershop.services.outbox_dispatcher import OutboxDispatcher
from barbershop.services.payment_proof_service import PaymentProofService
from barbershop.services.payment_service import PaymentService

NOW = datetime(2025, 1, 6, 1, 0, tzinfo=timezone.utc)
SLOT_DAY = "2025-01-07"
ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


def fixed_clock() -> datetime:
    return NOW


class RecordingCalendarClient:
    """Calendar stand-in that remembers what it was asked to do."""

    def __init__(self, fail_with: Optional[Exception] = None) -> None:
        self.created: List[Dict[str, Any]] = []
        self.deleted: List[str] = []
        self.fail_with = fail_with

    def create_event(
        self, fields: Dict[str, Any], calendar_id: Optional[str] = None
    ) -> Optional[str]:
        if self.fail_with is not None:
            raise self.fail_with
        self.created.append(dict(fields))
        return f"evt-{len(self.created)}"

    def delete_event(self, event_id: str, calendar_id: Optional[str] = None) -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        self.deleted.append(event_id)
        return True


@pytest.fixture(scope="session")
def _unit_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite does not emit BEGIN itself, which breaks SAVEPOINT and the
    # per-test rollback; let SQLAlchemy control transactions instead.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def unit_db(_unit_engine) -> Iterator[Session]:
    """
    Provide a session bound to a connection-level transaction.

    Session commits release a savepoint; everything is rolled back when the
    test ends.
    """
    connection = _unit_engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        expire_on_commit=False,
        future=True,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def barber(unit_db: Session) -> Barber:
    return make_barber(unit_db)


@pytest.fixture
def service(unit_db: Session) -> Service:
    return make_service(unit_db)


def make_barber(db: Session, name: str = "Budi", is_active: bool = True) -> Barber:
    row = Barber(name=name, specialty="Fade", is_active=is_active)
    db.add(row)
    db.commit()
    return row


def make_service(
    db: Session,
    name: str = "Potong Rambut",
    duration: int = 30,
    price: int = 50000,
    is_active: bool = True,
) -> Service:
    row = Service(name=name, duration=duration, price=price, is_active=is_active)
    db.add(row)
    db.commit()
    return row


def booking_payload(barber: Barber, service: Service, **overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "customer_name": "Andi Wijaya",
        "email": "andi@example.com",
        "phone": "081234567890",
        "barber_id": barber.id,
        "service_id": service.id,
        "date": SLOT_DAY,
        "time": "10:00",
        "payment_method": PaymentMethod.QRIS,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def booking_service(unit_db: Session) -> BookingService:
    return BookingService(unit_db, clock=fixed_clock)


@pytest.fixture
def fake_gateway() -> FakeMidtransClient:
    return FakeMidtransClient(server_key="test-server-key")


@pytest.fixture
def payment_service(
    unit_db: Session, fake_gateway: FakeMidtransClient, booking_service: BookingService
) -> PaymentService:
    return PaymentService(unit_db, fake_gateway, booking_service=booking_service, clock=fixed_clock)


@pytest.fixture
def proof_service(unit_db: Session, booking_service: BookingService) -> PaymentProofService:
    return PaymentProofService(unit_db, booking_service=booking_service, clock=fixed_clock)


@pytest.fixture
def email_provider() -> ConsoleEmailProvider:
    return ConsoleEmailProvider()


@pytest.fixture
def calendar_client() -> RecordingCalendarClient:
    return RecordingCalendarClient()


@pytest.fixture
def dispatcher(
    unit_db: Session,
    email_provider: ConsoleEmailProvider,
    calendar_client: RecordingCalendarClient,
) -> OutboxDispatcher:
    notification_service = NotificationService(
        EmailService(email_provider, from_email="Barbershop <no-reply@barbershop.test>")
    )
    return OutboxDispatcher(
        unit_db, notification_service=notification_service, calendar_client=calendar_client
    )


@pytest.fixture
def client(
    unit_db: Session,
    fake_gateway: FakeMidtransClient,
    booking_service: BookingService,
    payment_service: PaymentService,
    proof_service: PaymentProofService,
    dispatcher: OutboxDispatcher,
) -> Iterator[TestClient]:
    """API client whose services share the test session and fixed clock."""

    def override_get_db() -> Iterator[Session]:
        yield unit_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[dependencies.get_gateway_client] = lambda: fake_gateway
    app.dependency_overrides[dependencies.get_booking_service] = lambda: booking_service
    app.dependency_overrides[dependencies.get_payment_service] = lambda: payment_service
    app.dependency_overrides[dependencies.get_payment_proof_service] = lambda: proof_service
    app.dependency_overrides[dependencies.get_outbox_runner] = lambda: dispatcher.process_events

    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()
