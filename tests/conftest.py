"""Pytest configuration and shared fixtures.

Unit tests need no external services. Fixtures built on ``engine`` skip
the test when PostgreSQL is unreachable.
"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from tenantforge.config import Settings, get_settings, settings

# Import all models to ensure they're registered with Base.metadata
from tenantforge.models import Base, NamespaceAllocation, Plan, Tenant, User
from tests.factories import PlanFactory, TenantFactory, UserFactory, bearer


# Test database URL - same server, _test database
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    settings.async_database_url.rsplit("/", 1)[0] + "/tenantforge_test",
)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing tenant storage at a temporary directory."""
    return Settings(
        tenants_root=tmp_path / "tenants",
        rate_limit_enabled=False,
        sweep_concurrency=2,
        collaborator_timeout_seconds=2.0,
        job_retry_backoff_seconds=10,
    )


# ============================================================
# Database Fixtures
# ============================================================


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create the test schema, and drop it and every tenant namespace afterwards."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=NullPool, echo=False)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except (OSError, SQLAlchemyError) as exc:
        await engine.dispose()
        pytest.skip(f"PostgreSQL unavailable: {exc}")

    yield engine

    async with engine.begin() as conn:
        result = await conn.execute(
            text(
                "SELECT schema_name FROM information_schema.schemata "
                "WHERE schema_name LIKE 't\\_%'"
            )
        )
        for (schema,) in result:
            await conn.execute(text(f'DROP SCHEMA IF EXISTS "{schema}" CASCADE'))
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose sessions commit for real."""
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional database session for tests.

    Each test runs in its own transaction that is rolled back after the
    test completes. Commits inside the code under test only release a
    savepoint.
    """
    async with engine.connect() as conn:
        await conn.begin()

        factory = async_sessionmaker(
            bind=conn,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
            join_transaction_mode="create_savepoint",
        )
        async with factory() as session:
            yield session

        await conn.rollback()


# ============================================================
# Application Fixtures
# ============================================================


@pytest_asyncio.fixture
async def app(db: AsyncSession, test_settings: Settings, monkeypatch: pytest.MonkeyPatch):
    """Create test application instance."""
    from tenantforge.core.database import get_db
    from tenantforge.main import create_app

    monkeypatch.setattr(settings, "rate_limit_enabled", False)
    application = create_app()

    # Override database dependency
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_settings] = lambda: test_settings

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


# ============================================================
# Row Fixtures
# ============================================================


@pytest_asyncio.fixture
async def plan(db: AsyncSession) -> Plan:
    """A paid plan with backups."""
    plan = PlanFactory.build()
    db.add(plan)
    await db.flush()
    return plan


@pytest_asyncio.fixture
async def user(db: AsyncSession, plan: Plan) -> User:
    """A registered owner on the paid plan."""
    user = UserFactory.build(plan_id=plan.id)
    db.add(user)
    await db.flush()
    return user


@pytest_asyncio.fixture
async def admin(db: AsyncSession) -> User:
    user = UserFactory.build(is_admin=True)
    db.add(user)
    await db.flush()
    return user


@pytest.fixture
def make_tenant(db: AsyncSession, test_settings: Settings):
    """Insert a tenant row and its namespace allocation, without provisioning."""

    async def factory(**overrides) -> Tenant:
        tenant = TenantFactory.build(**overrides)
        tenant.root_path = str(test_settings.tenants_root / tenant.namespace)
        db.add(NamespaceAllocation(namespace=tenant.namespace, slug=tenant.slug))
        await db.flush()
        db.add(tenant)
        await db.flush()
        await db.refresh(tenant)
        return tenant

    return factory


@pytest.fixture
def auth_headers(user: User) -> dict[str, str]:
    return bearer(user)


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return bearer(admin)
