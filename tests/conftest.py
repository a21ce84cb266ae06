"""
Pytest Configuration and Fixtures

Provides fixtures for:
- Database sessions (async, in-memory SQLite)
- HTTP client against the FastAPI app
- Test data factories
"""
import pytest
from typing import AsyncGenerator
from unittest.mock import patch

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from wasteroute.db.database import Base, get_db
from wasteroute.db.models.user import User, UserRole
from wasteroute.db.models.tps import TPS, TPSStatus
from wasteroute.db.models.schedule import Schedule, ScheduleGenerationType, ScheduleStatus
from wasteroute.db.models.route_stop_completion import RouteStopCompletion
from wasteroute.core.config import settings
from wasteroute.main import app


# Test database URL (SQLite in memory for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_ADMIN_API_KEY = "test-admin-api-key"

# No custom event_loop fixture: pytest-asyncio handles it with
# asyncio_mode=auto and asyncio_default_fixture_loop_scope=function


@pytest.fixture(scope="function")
async def async_engine():
    """Create async test database engine"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests"""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def admin_api_key():
    """Configure a known admin API key for every test"""
    with patch.object(settings, "ADMIN_API_KEY", TEST_ADMIN_API_KEY):
        yield TEST_ADMIN_API_KEY


@pytest.fixture(scope="function")
async def test_client(db_session: AsyncSession):
    """Create an authenticated test client with database override"""
    from httpx import AsyncClient, ASGITransport

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Admin-API-Key": TEST_ADMIN_API_KEY},
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def anonymous_client(db_session: AsyncSession):
    """Test client without the admin API key header"""
    from httpx import AsyncClient, ASGITransport

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Test Data Factories
# ============================================================================


@pytest.fixture
def user_factory(db_session: AsyncSession):
    """Factory for creating test users"""
    async def _create_user(
        name: str = "Test Driver",
        role: UserRole = UserRole.DRIVER,
        email: str | None = None,
        approved: bool = True,
        created_at: int | None = None,
        id: str | None = None,
    ) -> User:
        user = User(name=name, role=role, email=email, approved=approved)
        if id is not None:
            user.id = id
        if created_at is not None:
            user.created_at = created_at
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def tps_factory(db_session: AsyncSession):
    """Factory for creating test stations"""
    async def _create_tps(
        name: str = "TPS Test",
        address: str = "Jl. Test 1",
        latitude: float = -6.9,
        longitude: float = 107.6,
        status: TPSStatus = TPSStatus.NOT_FULL,
        assigned_officer_id: str | None = None,
        id: str | None = None,
    ) -> TPS:
        tps = TPS(
            name=name,
            address=address,
            latitude=latitude,
            longitude=longitude,
            status=status,
            assigned_officer_id=assigned_officer_id,
        )
        if id is not None:
            tps.id = id
        db_session.add(tps)
        await db_session.commit()
        await db_session.refresh(tps)
        return tps

    return _create_tps


@pytest.fixture
def schedule_factory(db_session: AsyncSession):
    """
    Factory for creating test schedules.

    ``completions`` maps a tps id to RouteStopCompletion keyword arguments.
    """
    async def _create_schedule(
        tps_route: list[str],
        driver_id: str = "",
        status: ScheduleStatus = ScheduleStatus.PENDING,
        completions: dict[str, dict] | None = None,
        created_at: int | None = None,
        generated_at: int | None = None,
        total_distance: float | None = None,
        generation_type: ScheduleGenerationType = ScheduleGenerationType.MANUAL,
        date: int | None = None,
        assigned_date: int | None = None,
        id: str | None = None,
    ) -> Schedule:
        schedule = Schedule(
            tps_route=list(tps_route),
            route_completions=[],
            driver_id=driver_id,
            status=status,
            generated_at=generated_at,
            total_distance=total_distance,
            generation_type=generation_type,
            date=date,
            assigned_date=assigned_date,
        )
        if id is not None:
            schedule.id = id
        if created_at is not None:
            schedule.created_at = created_at
        for tps_id, fields in (completions or {}).items():
            schedule.route_completions.append(
                RouteStopCompletion(tps_id=tps_id, **{"completed_at": 1000, **fields})
            )
        db_session.add(schedule)
        await db_session.commit()
        return schedule

    return _create_schedule
