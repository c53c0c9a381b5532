"""
Pytest fixtures for test database, client, and authentication.

Tables are created and dropped around every test for isolation. The database
defaults to a SQLite file (aiosqlite); point TEST_DATABASE_URL at a Postgres
database to run the same suite against asyncpg.
"""

import os
import tempfile
from datetime import date, time
from typing import AsyncGenerator

TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_campus_ops.db"
)

# Settings are read once at import time, so configure before importing the app
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["REDIS_ENABLED"] = "False"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="campus_ops_uploads_")
os.environ["BOOKING_RETRY_BACKOFF_SECONDS"] = "0.01"
os.environ["BOOKING_MAX_RETRIES"] = "10"
os.environ["GOOGLE_CLIENT_ID"] = "campus-ops-test.apps.googleusercontent.com"

import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from campus_ops.main import app  # noqa: E402
from campus_ops.db.base import Base  # noqa: E402
from campus_ops.db.session import get_db  # noqa: E402
from campus_ops.core.permissions import Principal  # noqa: E402
from campus_ops.core.security import hash_password  # noqa: E402
from campus_ops.models.enums import FacilityStatus, FacilityType, Role  # noqa: E402
from campus_ops.models.facility import AvailabilityWindow, Facility  # noqa: E402
from campus_ops.models.user import User  # noqa: E402
from campus_ops.services.auth_service import issue_token, to_principal  # noqa: E402

# A Monday, far enough in the future to never be "in the past"
BOOKING_DATE = date(2030, 1, 7)

# NullPool: pytest-asyncio gives each test its own loop, so connections must not outlive a test
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def session_factory(db_session: AsyncSession) -> async_sessionmaker:
    """Independent sessions against the same database, for concurrency tests."""
    return TestSessionLocal


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(
    db: AsyncSession,
    email: str,
    name: str,
    roles: list[Role] = (Role.USER,),
    password: str = "testpassword123",
) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=hash_password(password),
        roles=sorted({r.value for r in roles} | {Role.USER.value}),
        enabled=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def headers_for(user: User) -> dict:
    """Authorization headers with Bearer token."""
    return {"Authorization": f"Bearer {issue_token(user)}"}


def principal_for(user: User) -> Principal:
    return to_principal(user)


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "student@campus.edu", "Sam Student")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "other@campus.edu", "Olive Other")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "admin@campus.edu", "Ada Admin", [Role.ADMIN])


@pytest_asyncio.fixture
async def technician(db_session: AsyncSession) -> User:
    return await create_user(db_session, "tech@campus.edu", "Theo Tech", [Role.TECHNICIAN])


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    return headers_for(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return headers_for(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest_asyncio.fixture
async def tech_headers(technician: User) -> dict:
    return headers_for(technician)


@pytest_asyncio.fixture
async def test_facility(db_session: AsyncSession) -> Facility:
    """An active lab with no weekly restriction and room for 30."""
    facility = Facility(
        name="Lab A",
        type=FacilityType.LAB.value,
        capacity=30,
        location="Engineering Block, Floor 2",
        building="Engineering",
        amenities=["Projector", "Whiteboard"],
        image_urls=[],
        status=FacilityStatus.ACTIVE.value,
    )
    db_session.add(facility)
    await db_session.commit()
    await db_session.refresh(facility)
    return facility


@pytest_asyncio.fixture
async def weekday_facility(db_session: AsyncSession) -> Facility:
    """A meeting room bookable only on Monday 09:00-17:00."""
    facility = Facility(
        name="Meeting Room 1",
        type=FacilityType.MEETING_ROOM.value,
        capacity=10,
        location="Library",
        amenities=[],
        image_urls=[],
        status=FacilityStatus.ACTIVE.value,
        availability_windows=[
            AvailabilityWindow(position=0, day_of_week="MONDAY", start_time=time(9), end_time=time(17)),
        ],
    )
    db_session.add(facility)
    await db_session.commit()
    await db_session.refresh(facility)
    return facility


def booking_payload(facility: Facility, start: str, end: str, **overrides) -> dict:
    payload = {
        "facility_id": facility.id,
        "date": BOOKING_DATE.isoformat(),
        "start_time": start,
        "end_time": end,
        "purpose": "Study group",
        "expected_attendees": 5,
    }
    payload.update(overrides)
    return payload
