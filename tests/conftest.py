"""Shared pytest fixtures."""
import os

# Must be set before domain_admin.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["LOGIN_RATE_LIMIT"] = "1000/minute"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret-that-is-long-enough-for-hs256"

from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from domain_admin.core.database.engine import create_session_factory, get_db, init_db
from domain_admin.features.permissions.service import PermissionCatalog, tree_snapshot
from domain_admin.features.roles.service import RoleRegistry, role_locks
from domain_admin.features.users.service import UserDirectory
from domain_admin.main import app as main_app
from domain_admin.seed import seed_all


ADMIN_PASSWORD = "admin-pass"


@pytest.fixture(autouse=True)
def _reset_shared_state():
    """The forest snapshot and role locks are process-wide; start every test clean."""
    tree_snapshot.invalidate()
    role_locks.clear()
    yield
    tree_snapshot.invalidate()
    role_locks.clear()


@pytest_asyncio.fixture()
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    """File-backed SQLite database, one per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite'}", poolclass=NullPool)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def db(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    async with create_session_factory(engine)() as session:
        yield session


@pytest_asyncio.fixture()
async def seeded(db: AsyncSession) -> AsyncSession:
    """Database holding the default roles, permission tree and admin account."""
    await seed_all(db, admin_password=ADMIN_PASSWORD)
    return db


@pytest.fixture()
def catalog(db: AsyncSession) -> PermissionCatalog:
    return PermissionCatalog(db)


@pytest.fixture()
def roles(db: AsyncSession, catalog: PermissionCatalog) -> RoleRegistry:
    return RoleRegistry(db, catalog)


@pytest.fixture()
def users(db: AsyncSession, roles: RoleRegistry) -> UserDirectory:
    return UserDirectory(db, roles)


@pytest.fixture()
def app(engine: AsyncEngine) -> Iterator[FastAPI]:
    """The application with get_db pointed at the test database."""
    factory = create_session_factory(engine)

    async def override_get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    main_app.dependency_overrides[get_db] = override_get_db
    yield main_app
    main_app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def async_client(app: FastAPI, seeded: AsyncSession) -> AsyncIterator[AsyncClient]:
    """HTTPX async client bound to the app, over a seeded database."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture()
def login_as(async_client: AsyncClient):
    """Sign in over HTTP; returns the Authorization header for the new token."""

    async def login(username: str = "admin", password: str = ADMIN_PASSWORD) -> dict:
        response = await async_client.post("/auth/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return login


@pytest_asyncio.fixture()
async def admin_headers(login_as) -> dict:
    return await login_as()
