"""Health endpoints with the database and Redis mocked."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import RedisError
from sqlalchemy.exc import OperationalError

from tenantforge.config import settings
from tenantforge.core.database import get_db


@pytest.fixture
def session():
    return AsyncMock()


@pytest.fixture
def probe_app(session, monkeypatch):
    from tenantforge.main import create_app

    monkeypatch.setattr(settings, "rate_limit_enabled", False)
    application = create_app()

    async def override_get_db():
        yield session

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


def mock_redis_client(ping):
    client = MagicMock()
    client.ping = ping
    context = MagicMock()
    context.return_value.__aenter__ = AsyncMock(return_value=client)
    context.return_value.__aexit__ = AsyncMock(return_value=None)
    return patch("tenantforge.api.router.redis_client", context)


async def get(app, path: str):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.get(path)


@pytest.mark.asyncio
async def test_liveness(probe_app):
    response = await get(probe_app, "/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "alive"}
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_readiness_all_ok(probe_app, session):
    with mock_redis_client(AsyncMock(return_value=True)):
        response = await get(probe_app, "/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "checks": {"database": "ok", "redis": "ok"}}
    session.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_readiness_degraded_without_redis(probe_app):
    with mock_redis_client(AsyncMock(side_effect=RedisError("refused"))):
        response = await get(probe_app, "/health/ready")

    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"]["redis"] == "unavailable"


@pytest.mark.asyncio
async def test_readiness_degraded_without_database(probe_app, session):
    session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
    with mock_redis_client(AsyncMock(return_value=True)):
        response = await get(probe_app, "/health/ready")

    assert response.status_code == 503
    assert response.json()["checks"]["database"] == "unavailable"


@pytest.mark.asyncio
async def test_info(probe_app):
    response = await get(probe_app, "/info")

    assert response.status_code == 200
    data = response.json()
    assert data["app"] == settings.app_name
    assert "version" in data
    assert data["rate_limit_enabled"] is False


@pytest.mark.asyncio
async def test_request_id_is_echoed(probe_app):
    async with AsyncClient(
        transport=ASGITransport(app=probe_app), base_url="http://test"
    ) as client:
        response = await client.get("/health/live", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
