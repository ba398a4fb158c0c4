import os
from collections.abc import AsyncGenerator
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

# Tests run against throwaway SQLite files, never a configured server database
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["CACHE_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "console"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app.core.security import create_actor_token
from app.database import get_db
from app.main import app
from app.models import (
    appointment_pricing,
    departments,
    doctor_schedules,
    metadata,
    persons,
    staff,
)


def create_test_engine(path) -> AsyncEngine:
    """
    SQLite engine whose transactions take the write lock up front.

    ``BEGIN IMMEDIATE`` makes concurrent writers queue behind each other the
    way row locks do on PostgreSQL, and lets SAVEPOINTs work under the
    driver's own transaction handling.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{path}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def next_weekday(weekday: int, after: date | None = None) -> date:
    """First date strictly after ``after`` (default today) falling on ``weekday``."""
    start = after or date.today()
    days_ahead = (weekday - start.weekday()) % 7 or 7
    return start + timedelta(days=days_ahead)


@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh database file with all tables."""
    engine = create_test_engine(tmp_path / "scheduling.db")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def seed(session_factory) -> SimpleNamespace:
    """
    Insert a department, a doctor working Mondays 09:00-12:00, a nurse,
    a person about to become a patient and consultation pricing of
    500 base plus 200 per extra 30 minutes.
    """
    ids = SimpleNamespace(
        department_id=uuid4(),
        other_department_id=uuid4(),
        doctor_person_id=uuid4(),
        doctor_id=uuid4(),
        nurse_person_id=uuid4(),
        nurse_id=uuid4(),
        person_id=uuid4(),
        second_person_id=uuid4(),
        staff_actor_id=uuid4(),
    )
    yesterday = datetime.now(UTC) - timedelta(days=1)

    async with session_factory() as session:
        await session.execute(
            insert(departments),
            [
                {"id": ids.department_id, "name": "Internal Medicine", "code": "IM"},
                {"id": ids.other_department_id, "name": "Radiology", "code": "RAD"},
            ],
        )
        await session.execute(
            insert(persons),
            [
                {
                    "id": ids.doctor_person_id,
                    "first_name": "Maria",
                    "last_name": "Santos",
                    "date_of_birth": None,
                    "gender": None,
                },
                {
                    "id": ids.nurse_person_id,
                    "first_name": "Ana",
                    "last_name": "Reyes",
                    "date_of_birth": None,
                    "gender": None,
                },
                {
                    "id": ids.person_id,
                    "first_name": "Juan",
                    "last_name": "Dela Cruz",
                    "date_of_birth": date(1990, 5, 17),
                    "gender": "male",
                },
                {
                    "id": ids.second_person_id,
                    "first_name": "Rosa",
                    "last_name": "Garcia",
                    "date_of_birth": None,
                    "gender": None,
                },
            ],
        )
        await session.execute(
            insert(staff),
            [
                {
                    "id": ids.doctor_id,
                    "person_id": ids.doctor_person_id,
                    "department_id": ids.department_id,
                    "role": "doctor",
                    "specialization": "Internal Medicine",
                    "license_number": "PRC-0001",
                },
                {
                    "id": ids.nurse_id,
                    "person_id": ids.nurse_person_id,
                    "department_id": ids.department_id,
                    "role": "nurse",
                    "specialization": None,
                    "license_number": None,
                },
            ],
        )
        await session.execute(
            insert(doctor_schedules).values(
                staff_id=ids.doctor_id,
                day_of_week="Monday",
                start_time=time(9, 0),
                end_time=time(12, 0),
                is_active=True,
            )
        )
        await session.execute(
            insert(appointment_pricing).values(
                department_id=ids.department_id,
                appointment_type="consultation",
                base_fee=Decimal("500.00"),
                extension_fee_per_30min=Decimal("200.00"),
                is_active=True,
                effective_from=yesterday,
            )
        )
        await session.commit()

    return ids


@pytest_asyncio.fixture
async def db_session(session_factory, seed) -> AsyncGenerator[AsyncSession, None]:
    """Session on the seeded test database."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def monday() -> date:
    """Next Monday, a working day of the seeded doctor."""
    return next_weekday(0)


@pytest.fixture
def booking_data(seed, monday) -> dict:
    """Complete booking request for the seeded doctor and person."""
    return {
        "person_id": seed.person_id,
        "doctor_id": seed.doctor_id,
        "department_id": seed.department_id,
        "appointment_date": monday,
        "start_time": time(9, 0),
        "duration_minutes": 30,
        "reason": "Persistent cough",
    }


@pytest_asyncio.fixture
async def client(session_factory, seed) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a fresh database session per request."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def staff_headers(seed) -> dict:
    """Bearer token of a staff member."""
    token = create_actor_token(seed.staff_actor_id, "staff")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(seed) -> dict:
    """Bearer token of a self-service user."""
    token = create_actor_token(uuid4(), "user")
    return {"Authorization": f"Bearer {token}"}
