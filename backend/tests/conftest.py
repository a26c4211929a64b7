"""
Test configuration and fixtures for the Rhema Church backend tests.
"""
import os
import pytest
import pytest_asyncio
from typing import AsyncGenerator, Optional
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.db.base import Base, build_engine, get_db
from app.core.config import settings
from app.core.security import get_password_hash, create_access_token
from app.models.user import User, UserRole
from app.models.member import Member, Gender, AgeGroup


# Use a file-based SQLite DB to avoid :memory: multiple-connection issues
# with SQLAlchemy + aiosqlite (each new connection would see an empty DB).
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

TEST_PASSWORD = "TestPass123"


@pytest.fixture(autouse=True)
def storage_dir(tmp_path, monkeypatch):
    """Keep bucket storage inside the test's temp dir."""
    path = tmp_path / "storage"
    monkeypatch.setattr(settings, "STORAGE_DIR", str(path))
    return path


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    # Clean up test database file
    try:
        os.remove("./test.db")
    except OSError:
        pass


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for users with a given role and optional explicit tabs."""
    async def factory(
        role: UserRole,
        email: Optional[str] = None,
        allowed_tabs: Optional[list[str]] = None,
        branch: Optional[str] = "Arusha",
        **fields,
    ) -> User:
        meta = {"allowed_tabs": allowed_tabs} if allowed_tabs else {}
        user = User(
            email=email or f"{role.value}@rhemachurch.org",
            full_name=f"Test {role.value.title()}",
            password_hash=get_password_hash(TEST_PASSWORD),
            role=role,
            branch=branch,
            is_active=fields.pop("is_active", True),
            login_attempts=fields.pop("login_attempts", 0),
            meta=meta,
            **fields,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return factory


def headers_for(user: User) -> dict:
    """Authorization headers for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id, role=user.role.value)}"}


@pytest.fixture
def auth_headers_for():
    """Build headers for users created inside a test."""
    return headers_for


@pytest_asyncio.fixture
async def admin_user(make_user) -> User:
    return await make_user(UserRole.ADMIN)


@pytest_asyncio.fixture
async def pastor_user(make_user) -> User:
    return await make_user(UserRole.PASTOR)


@pytest_asyncio.fixture
async def usher_user(make_user) -> User:
    return await make_user(UserRole.USHER)


@pytest_asyncio.fixture
async def finance_user(make_user) -> User:
    return await make_user(UserRole.FINANCE)


@pytest_asyncio.fixture
async def media_user(make_user) -> User:
    return await make_user(UserRole.MEDIA)


@pytest_asyncio.fixture
async def plain_user(make_user) -> User:
    return await make_user(UserRole.USER)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest_asyncio.fixture
async def pastor_headers(pastor_user: User) -> dict:
    return headers_for(pastor_user)


@pytest_asyncio.fixture
async def usher_headers(usher_user: User) -> dict:
    return headers_for(usher_user)


@pytest_asyncio.fixture
async def finance_headers(finance_user: User) -> dict:
    return headers_for(finance_user)


@pytest_asyncio.fixture
async def media_headers(media_user: User) -> dict:
    return headers_for(media_user)


@pytest_asyncio.fixture
async def user_headers(plain_user: User) -> dict:
    return headers_for(plain_user)


@pytest_asyncio.fixture
async def test_member(db_session: AsyncSession) -> Member:
    """Create a registered member."""
    member = Member(
        member_number="RHEMA001",
        full_name="Neema Mushi",
        phone="0712000001",
        gender=Gender.FEMALE,
        age_group=AgeGroup.YOUTH,
        branch="Arusha",
    )
    db_session.add(member)
    await db_session.flush()
    return member
