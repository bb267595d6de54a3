# ruff: noqa: E402
import os
import sys
from pathlib import Path

# Ensure project root on sys.path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Settings are cached on first import; pin the test environment before that.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["BOOTSTRAP_ADMIN"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from policy_admin.db import get_session, json_dumps
from policy_admin.main import app
from policy_admin.models import Base
from policy_admin.models.enums import AdminRole
from policy_admin.schemas.auth import AdminCreate
from policy_admin.services.auth_service import AuthService

DEFAULT_PASSWORD = "secret123"


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def test_session():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        json_serializer=json_dumps,
    )
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session() as session:
        yield session
    await engine.dispose()


@pytest.fixture
async def client(test_session: AsyncSession):
    # Override FastAPI dependency to use in-memory session for tests
    app.dependency_overrides[get_session] = lambda: test_session

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


async def create_admin(
    session: AsyncSession,
    email: str,
    role: AdminRole = AdminRole.EDITOR,
    password: str = DEFAULT_PASSWORD,
    name: str = "Test Admin",
):
    admin = await AuthService.create_admin(
        session, AdminCreate(name=name, email=email, password=password, role=role)
    )
    await session.commit()
    return admin


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def login_headers(client: httpx.AsyncClient, email: str, password: str = DEFAULT_PASSWORD):
    r = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return bearer(r.json()["token"])


@pytest.fixture
async def super_admin(test_session: AsyncSession):
    return await create_admin(test_session, "root@example.com", AdminRole.SUPER_ADMIN)


@pytest.fixture
async def manager(test_session: AsyncSession):
    return await create_admin(test_session, "manager@example.com", AdminRole.ADMIN)


@pytest.fixture
async def editor(test_session: AsyncSession):
    return await create_admin(test_session, "editor@example.com", AdminRole.EDITOR)


@pytest.fixture
async def super_headers(client: httpx.AsyncClient, super_admin):
    return await login_headers(client, super_admin.email)


@pytest.fixture
async def manager_headers(client: httpx.AsyncClient, manager):
    return await login_headers(client, manager.email)


@pytest.fixture
async def editor_headers(client: httpx.AsyncClient, editor):
    return await login_headers(client, editor.email)
