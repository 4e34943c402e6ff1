import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="alumni-uploads-"))

from datetime import datetime, timezone  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.auth.models import Admin  # noqa: E402
from app.auth.security import create_access_token  # noqa: E402
from app.auth.services import create_admin  # noqa: E402
from app.core.models import AcademicClass, Batch, Department, Faculty, Job, Student  # noqa: E402
from app.db.session import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402


TEST_DATABASE_URL = "sqlite+aiosqlite://"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Secret123"


@pytest.fixture()
async def engine():
    """Fresh in-memory database per test; StaticPool keeps every session on one connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
def session_maker(engine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture()
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app, one DB session per request."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
async def admin(db_session: AsyncSession) -> Admin:
    return await create_admin(db_session, "Test Admin", ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture()
def auth_headers(admin: Admin) -> dict:
    token = create_access_token(subject={"sub": str(admin.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
async def catalog(db_session: AsyncSession) -> SimpleNamespace:
    """Engineering (Computer Engineering: CE-1, CE-2) and Science (Biology: Bio-1), two batches, two jobs."""
    engineering = Faculty(name="Engineering")
    science = Faculty(name="Science")
    db_session.add_all([engineering, science])
    await db_session.flush()

    comp_eng = Department(name="Computer Engineering", faculty_id=engineering.id)
    biology = Department(name="Biology", faculty_id=science.id)
    db_session.add_all([comp_eng, biology])
    await db_session.flush()

    ce1 = AcademicClass(name="CE-1", department_id=comp_eng.id)
    ce2 = AcademicClass(name="CE-2", department_id=comp_eng.id)
    bio1 = AcademicClass(name="Bio-1", department_id=biology.id)
    batch_2022 = Batch(name="Batch 2022", year=2022)
    batch_2023 = Batch(name="Batch 2023", year=2023)
    engineer = Job(name="Software Engineer")
    teacher = Job(name="Teacher")
    db_session.add_all([ce1, ce2, bio1, batch_2022, batch_2023, engineer, teacher])
    await db_session.commit()

    return SimpleNamespace(
        engineering=engineering,
        science=science,
        comp_eng=comp_eng,
        biology=biology,
        ce1=ce1,
        ce2=ce2,
        bio1=bio1,
        batch_2022=batch_2022,
        batch_2023=batch_2023,
        engineer=engineer,
        teacher=teacher,
    )


@pytest.fixture()
def make_student(db_session: AsyncSession, catalog: SimpleNamespace):
    """Factory inserting a student straight into the database (defaults: CE-1, batch 2022, unemployed)."""

    async def _make(student_id: int, name: str = None, **overrides) -> Student:
        values = {
            "student_id": student_id,
            "name": name or f"Student {student_id}",
            "gender": "Male",
            "class_id": catalog.ce1.id,
            "batch_id": catalog.batch_2022.id,
            "created_at": datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        }
        values.update(overrides)
        values.setdefault("updated_at", values["created_at"])
        student = Student(**values)
        db_session.add(student)
        await db_session.commit()
        return student

    return _make
