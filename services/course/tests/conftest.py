import os
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import get_db
from app.dependencies import get_prerequisite_cache
from app.main import app
from app.models import Course, CoursePrerequisite, Enrollment  # noqa: F401 - register with Base
from app.models.enums import CourseStatus, EnrollmentStatus
from shared.auth.dependencies import get_current_user_required
from shared.constants import Role
from shared.database.postgres import Base
from shared.models.user import CurrentUser

# In-memory SQLite by default; point at a real Postgres to exercise advisory locks.
TEST_DATABASE_URL = os.environ.get("COURSE_TEST_DATABASE_URL", "sqlite+aiosqlite://")


class InMemoryPrerequisiteCache:
    """Dict-backed ``PrerequisiteCache`` with TTL, for tests."""

    def __init__(self, ttl: int = 3600):
        self.ttl = ttl
        self.store: dict[str, tuple[Any, float]] = {}
        self.puts = 0

    async def get(self, key: str) -> Any | None:
        entry = self.store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= time.monotonic():
            del self.store[key]
            return None
        return value

    async def put(self, key: str, value: Any, ttl: int) -> None:
        self.puts += 1
        self.store[key] = (value, time.monotonic() + ttl)

    async def forget(self, key: str) -> None:
        self.store.pop(key, None)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    engine_kwargs: dict[str, Any] = {"echo": False}
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine_kwargs["poolclass"] = StaticPool
    engine = create_async_engine(TEST_DATABASE_URL, **engine_kwargs)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def cache() -> InMemoryPrerequisiteCache:
    return InMemoryPrerequisiteCache()


@pytest.fixture
def make_course(db_session: AsyncSession) -> Callable[..., Awaitable[Course]]:
    async def _make(
        title: str = "Course", status: CourseStatus = CourseStatus.PUBLISHED,
    ) -> Course:
        course = Course(title=title, slug=f"{title.lower().replace(' ', '-')}-{uuid4().hex[:8]}", status=status)
        db_session.add(course)
        await db_session.flush()
        return course

    return _make


@pytest.fixture
def make_enrollment(db_session: AsyncSession) -> Callable[..., Awaitable[Enrollment]]:
    async def _make(
        user_id: UUID,
        course_id: UUID,
        *,
        status: EnrollmentStatus = EnrollmentStatus.ENROLLED,
        final_score: float | None = None,
        enrolled_at: datetime | None = None,
    ) -> Enrollment:
        enrollment = Enrollment(
            user_id=user_id,
            course_id=course_id,
            status=status,
            final_score=final_score,
            enrolled_at=enrolled_at or datetime.now(timezone.utc),
            completed_at=datetime.now(timezone.utc) if status == EnrollmentStatus.COMPLETED else None,
        )
        db_session.add(enrollment)
        await db_session.flush()
        return enrollment

    return _make


@pytest.fixture
def instructor() -> CurrentUser:
    return CurrentUser(id=uuid4(), email="instructor@example.com", roles=[Role.INSTRUCTOR])


@pytest_asyncio.fixture
async def async_client(
    db_session: AsyncSession,
    cache: InMemoryPrerequisiteCache,
    instructor: CurrentUser,
) -> AsyncGenerator[AsyncClient, None]:
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_prerequisite_cache] = lambda: cache
    app.dependency_overrides[get_current_user_required] = lambda: instructor
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
