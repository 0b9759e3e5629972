"""
Pytest configuration for the trial booking engine.

Every test gets a fresh in-memory SQLite database (StaticPool, so the
TestClient's worker threads see the same connection) and a frozen clock
it can advance. The Redis slot lock is switched off; the database
reservation is what the tests exercise.
"""

import os

# CRITICAL: Set testing mode BEFORE any trialdesk imports!
os.environ["IS_TESTING"] = "true"
os.environ["ENVIRONMENT"] = "test"
os.environ["SLOT_LOCK_ENABLED"] = "false"
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from trialdesk.core.config import settings
from trialdesk.core.enums import RoleName, TeacherType, UserStatus
from trialdesk.database import Base, init_db
from trialdesk.models.availability import TeacherAvailabilitySlot
from trialdesk.models.payment import Package
from trialdesk.models.user import User
from trialdesk.principal import ActorPrincipal, SystemPrincipal
from trialdesk.services.timezone_service import TimezoneService

settings.is_testing = True
settings.slot_lock_enabled = False


class FrozenClock:
    """Callable clock for services; advance() moves it forward."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def __call__(self) -> datetime:
        return self.instant

    def set(self, instant: datetime) -> None:
        self.instant = instant

    def advance(self, **kwargs) -> datetime:
        self.instant = self.instant + timedelta(**kwargs)
        return self.instant


# 13:00 on 2025-06-20 in Cairo; 2025-06-21 is tomorrow and therefore bookable
FROZEN_NOW = datetime(2025, 6, 20, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    """
    Create a new database session for each test.
    """
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(FROZEN_NOW)


@pytest.fixture
def sales_actor() -> ActorPrincipal:
    return ActorPrincipal(actor_id="sales-agent-1", actor_role=RoleName.SALES)


@pytest.fixture
def teacher_actor() -> ActorPrincipal:
    return ActorPrincipal(actor_id="teacher-actor-1", actor_role=RoleName.TEACHER)


@pytest.fixture
def admin_actor() -> ActorPrincipal:
    return ActorPrincipal(actor_id="admin-1", actor_role=RoleName.ADMIN)


@pytest.fixture
def system_actor() -> SystemPrincipal:
    return SystemPrincipal()


@pytest.fixture
def make_teacher(db: Session) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(
        full_name: Optional[str] = None,
        teacher_type: str = TeacherType.MIXED.value,
        status: str = UserStatus.APPROVED.value,
        zone: str = "Africa/Cairo",
        teacher_id: Optional[str] = None,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        kwargs = {}
        if teacher_id is not None:
            kwargs["id"] = teacher_id
        teacher = User(
            full_name=full_name or f"Teacher {n}",
            email=f"teacher{n}@example.com",
            role=RoleName.TEACHER.value,
            teacher_type=teacher_type,
            status=status,
            timezone=zone,
            **kwargs,
        )
        db.add(teacher)
        db.commit()
        return teacher

    return _make


@pytest.fixture
def make_slot(db: Session) -> Callable[..., TeacherAvailabilitySlot]:
    def _make(teacher: User, start_utc: datetime, is_booked: bool = False) -> TeacherAvailabilitySlot:
        slot_date, _ = TimezoneService.from_utc(start_utc, teacher.timezone)
        slot = TeacherAvailabilitySlot(
            teacher_id=teacher.id,
            slot_date=slot_date,
            start_utc=start_utc,
            end_utc=start_utc + timedelta(minutes=settings.slot_minutes),
            is_booked=is_booked,
        )
        db.add(slot)
        db.commit()
        return slot

    return _make


@pytest.fixture
def make_package(db: Session) -> Callable[..., Package]:
    def _make(name: str = "Monthly 8", price: str = "100.00", session_count: int = 8, is_active: bool = True) -> Package:
        package = Package(
            name=name,
            price=Decimal(price),
            session_count=session_count,
            is_active=is_active,
        )
        db.add(package)
        db.commit()
        return package

    return _make


@pytest.fixture
def scenario_start() -> datetime:
    """18:30 in the UAE on the scenario date."""
    return datetime(2025, 6, 21, 14, 30, tzinfo=timezone.utc)
