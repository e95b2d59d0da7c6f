"""
Shared pytest fixtures for Momofin Core tests.

This module provides:
- Environment configuration applied before the app is imported
- A throwaway SQLite database per test
- Organization and user fixtures
- An HTTP client bound to the app with the test database
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-signing-secret-0123456789abcdef"
os.environ["HMAC_SECRET_KEY"] = "test-document-secret"
os.environ["HMAC_ALGORITHM"] = "HmacSHA256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("BOOTSTRAP_ORGANIZATION", None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from momofin.auth.jwt import get_token_service
from momofin.auth.models import Organization
from momofin.auth.users import UserService
from momofin.base_microservice import Base, get_db_session
from momofin.main import app

TEST_USERNAME = "testUser"
TEST_PASSWORD = "testPassword"
TEST_EMAIL = "test.user@gmail.com"
ADMIN_USERNAME = "adminUser"
ADMIN_PASSWORD = "adminPassword"


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Session factory over a fresh SQLite file with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'momofin.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def organization(db):
    org = Organization(name="Momofin")
    db.add(org)
    await db.commit()
    await db.refresh(org)
    return org


@pytest_asyncio.fixture
async def test_user(db, organization):
    return await UserService.register_member(
        db,
        organization,
        username=TEST_USERNAME,
        password=TEST_PASSWORD,
        email=TEST_EMAIL,
        name="test User real name",
        position="Tester"
    )


@pytest_asyncio.fixture
async def admin_user(db, organization):
    return await UserService.register_member(
        db,
        organization,
        username=ADMIN_USERNAME,
        password=ADMIN_PASSWORD,
        email="admin@momofin.com",
        name="Admin",
        position="Administrator",
        is_admin=True
    )


@pytest.fixture
def token_service():
    return get_token_service()


@pytest.fixture
def admin_headers(admin_user, token_service):
    token = token_service.issue_token(ADMIN_USERNAME, "Momofin")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client for the app, with request sessions bound to the test database."""
    async def override_get_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(base_url="http://test", transport=transport) as ac:
        yield ac
    app.dependency_overrides.clear()
