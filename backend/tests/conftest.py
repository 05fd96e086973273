# backend/tests/conftest.py
"""
Pytest configuration for the dispatch engine.

Every test gets a fresh in-memory SQLite database (StaticPool keeps the one
connection alive across threads, which the TestClient needs), a FrozenClock
and a RecordingScheduler in place of Celery.
"""

import os

# Set before any jayple import so the module-level engine never touches disk
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CI", "true")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterator, List, Optional, Tuple

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from jayple import models  # noqa: F401  registers tables
from jayple.api.dependencies import get_clock, get_task_scheduler
from jayple.core.caller import Caller
from jayple.core.clock import FrozenClock
from jayple.core.enums import FreelancerStatus, RoleName
from jayple.database import Base, get_db
from jayple.main import app
from jayple.models.user import Freelancer, User
from jayple.models.service_catalog import Service
from jayple.services.dispatch import DispatchEngine

from .helpers import CITY


class RecordingScheduler:
    """Stands in for Celery: remembers every timeout that would be enqueued."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, Optional[str]]] = []
        self.fail = False

    def schedule_assignment_timeout(
        self, city_id: str, booking_id: str, freelancer_id: Optional[str]
    ) -> bool:
        if self.fail:
            return False
        self.calls.append((city_id, booking_id, freelancer_id))
        return True


@pytest.fixture
def sql_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def _enable_fks(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(sql_engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=sql_engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 7, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def dispatch(db: Session, clock: FrozenClock, scheduler: RecordingScheduler) -> DispatchEngine:
    return DispatchEngine(db, clock=clock, scheduler=scheduler)


class Seeder:
    """Inserts catalog, users and freelancer profiles directly."""

    def __init__(self, db: Session, clock: FrozenClock):
        self.db = db
        self.clock = clock

    def user(self, user_id: str, role: str, city_id: str = CITY) -> Caller:
        self.db.add(User(id=user_id, role=role, city_id=city_id, name=user_id))
        self.db.commit()
        return Caller(user_id=user_id, role=role)

    def customer(self, user_id: str = "cust_1") -> Caller:
        return self.user(user_id, RoleName.CUSTOMER.value)

    def vendor(self, user_id: str = "vendor_1") -> Caller:
        return self.user(user_id, RoleName.VENDOR.value)

    def freelancer(
        self,
        user_id: str,
        tier: Optional[str] = "silver",
        idle_minutes: int = 10,
        categories: Tuple[str, ...] = ("hair",),
        online: bool = True,
        status: str = FreelancerStatus.ACTIVE.value,
        city_id: str = CITY,
    ) -> Caller:
        caller = self.user(user_id, RoleName.FREELANCER.value, city_id)
        self.db.add(
            Freelancer(
                id=user_id,
                city_id=city_id,
                status=status,
                is_online=online,
                service_categories=list(categories),
                priority_tier=tier,
                last_active_at=self.clock.now() - timedelta(minutes=idle_minutes),
            )
        )
        self.db.commit()
        return caller

    def service(
        self,
        service_id: str,
        price: str = "1000",
        category: str = "hair",
        vendor_id: Optional[str] = None,
        city_id: str = CITY,
    ) -> Service:
        service = Service(
            id=service_id,
            city_id=city_id,
            name=f"{category} service",
            category=category,
            price=Decimal(price),
            vendor_id=vendor_id,
            is_active=True,
        )
        self.db.add(service)
        self.db.commit()
        return service


@pytest.fixture
def seed(db: Session, clock: FrozenClock) -> Seeder:
    return Seeder(db, clock)


@pytest.fixture
def operator() -> Caller:
    return Caller(user_id="admin_1", role=RoleName.ADMIN.value)


class BookingFlows:
    """Drives bookings through the public service operations."""

    def __init__(self, dispatch: DispatchEngine, seed: Seeder):
        self.dispatch = dispatch
        self.seed = seed

    def home_booking(self, customer: Caller, service_id: str = "svc_home", key: Optional[str] = None):
        return self.dispatch.bookings.create_booking(
            customer,
            city_id=CITY,
            service_id=service_id,
            booking_type="HOME",
            idempotency_key=key,
        ).booking

    def shop_booking(self, customer: Caller, service_id: str = "svc_shop", key: Optional[str] = None):
        return self.dispatch.bookings.create_booking(
            customer,
            city_id=CITY,
            service_id=service_id,
            booking_type="IN_SHOP",
            idempotency_key=key,
        ).booking

    def completed_shop_booking(self, customer: Caller, vendor: Caller, key: Optional[str] = None):
        booking = self.shop_booking(customer, key=key)
        self.dispatch.bookings.respond_as_vendor(vendor, CITY, booking.id, "ACCEPT")
        return self.dispatch.bookings.complete_booking(vendor, CITY, booking.id)

    def confirmed_home_booking(self, customer: Caller, authorize: bool = True):
        booking = self.home_booking(customer)
        freelancer = Caller(user_id=booking.freelancer_id, role=RoleName.FREELANCER.value)
        self.dispatch.bookings.respond_as_freelancer(freelancer, CITY, booking.id, "ACCEPT")
        if authorize:
            self.dispatch.payments.authorize_payment(customer, CITY, booking.id)
        return booking, freelancer

    def completed_home_booking(self, customer: Caller):
        booking, freelancer = self.confirmed_home_booking(customer)
        self.dispatch.bookings.complete_booking(freelancer, CITY, booking.id)
        return booking, freelancer


@pytest.fixture
def flows(dispatch: DispatchEngine, seed: Seeder) -> BookingFlows:
    return BookingFlows(dispatch, seed)


@pytest.fixture
def client(db: Session, clock: FrozenClock, scheduler: RecordingScheduler) -> Iterator[TestClient]:
    """TestClient bound to the test session, clock and scheduler."""

    def _get_db() -> Iterator[Session]:
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_task_scheduler] = lambda: scheduler
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
