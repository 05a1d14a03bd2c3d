"""Tests for the rate-limit middleware and the per-endpoint decorator."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient
from redis.exceptions import RedisError

from tenantforge.config import settings
from tenantforge.core.rate_limit import RateLimitMiddleware, rate_limit
from tenantforge.core.rate_limit.backend import RateLimitDecision
from tenantforge.core.rate_limit.policy import RateTier


ALLOWED = RateLimitDecision(allowed=True, window="minute", limit=10, remaining=9)
DENIED = RateLimitDecision(
    allowed=False, window="hour", limit=50, remaining=0, retry_after=120
)


@pytest.fixture(autouse=True)
def enable_rate_limits(monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_enabled", True)


@pytest.fixture
def limited_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    @app.get("/health/live")
    async def live():
        return {"status": "ok"}

    @app.post("/sites")
    @rate_limit("tenant.create")
    async def create_site(request: Request):
        return {"created": True}

    return app


class TestRateLimitMiddleware:
    @pytest.mark.asyncio
    async def test_allowed_request_carries_headers(self, limited_app):
        with patch("tenantforge.core.rate_limit.middleware.rate_limiter") as limiter:
            limiter.allow = AsyncMock(return_value=ALLOWED)
            async with AsyncClient(
                transport=ASGITransport(app=limited_app), base_url="http://test"
            ) as client:
                response = await client.get("/ping")

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "10"
        assert response.headers["X-RateLimit-Remaining"] == "9"
        assert response.headers["X-RateLimit-Window"] == "minute"
        identity, tier = limiter.allow.await_args.args
        assert identity.startswith("ip:")
        assert tier == RateTier.GUEST

    @pytest.mark.asyncio
    async def test_rejected_request_is_429(self, limited_app):
        with patch("tenantforge.core.rate_limit.middleware.rate_limiter") as limiter:
            limiter.allow = AsyncMock(return_value=DENIED)
            async with AsyncClient(
                transport=ASGITransport(app=limited_app), base_url="http://test"
            ) as client:
                response = await client.get("/ping")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "120"
        assert response.headers["content-type"] == "application/problem+json"
        body = response.json()
        assert body["window"] == "hour"
        assert body["limit"] == 50
        assert body["retry_after"] == 120

    @pytest.mark.asyncio
    async def test_redis_outage_fails_open(self, limited_app):
        with patch("tenantforge.core.rate_limit.middleware.rate_limiter") as limiter:
            limiter.allow = AsyncMock(side_effect=RedisError("connection refused"))
            async with AsyncClient(
                transport=ASGITransport(app=limited_app), base_url="http://test"
            ) as client:
                response = await client.get("/ping")

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_health_probes_are_exempt(self, limited_app):
        with patch("tenantforge.core.rate_limit.middleware.rate_limiter") as limiter:
            limiter.allow = AsyncMock(return_value=DENIED)
            async with AsyncClient(
                transport=ASGITransport(app=limited_app), base_url="http://test"
            ) as client:
                response = await client.get("/health/live")

        assert response.status_code == 200
        limiter.allow.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_skips_limiter(self, limited_app, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_enabled", False)
        with patch("tenantforge.core.rate_limit.middleware.rate_limiter") as limiter:
            limiter.allow = AsyncMock(return_value=DENIED)
            async with AsyncClient(
                transport=ASGITransport(app=limited_app), base_url="http://test"
            ) as client:
                response = await client.get("/ping")

        assert response.status_code == 200


class TestRateLimitDecorator:
    def test_unknown_endpoint_rejected_at_import(self):
        with pytest.raises(ValueError, match="No rate limits defined"):
            rate_limit("does.not.exist")

    @pytest.mark.asyncio
    async def test_endpoint_rejection(self, limited_app):
        with (
            patch("tenantforge.core.rate_limit.middleware.rate_limiter") as tier_limiter,
            patch("tenantforge.core.rate_limit.decorators.rate_limiter") as endpoint_limiter,
        ):
            tier_limiter.allow = AsyncMock(return_value=ALLOWED)
            endpoint_limiter.check_endpoint = AsyncMock(return_value=DENIED)
            async with AsyncClient(
                transport=ASGITransport(app=limited_app), base_url="http://test"
            ) as client:
                response = await client.post("/sites")

        assert response.status_code == 429
        assert "tenant.create" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_endpoint_allowed(self, limited_app):
        allowed = RateLimitDecision(allowed=True, window="hour", limit=5, remaining=4)
        with (
            patch("tenantforge.core.rate_limit.middleware.rate_limiter") as tier_limiter,
            patch("tenantforge.core.rate_limit.decorators.rate_limiter") as endpoint_limiter,
        ):
            tier_limiter.allow = AsyncMock(return_value=ALLOWED)
            endpoint_limiter.check_endpoint = AsyncMock(return_value=allowed)
            async with AsyncClient(
                transport=ASGITransport(app=limited_app), base_url="http://test"
            ) as client:
                response = await client.post("/sites")

        assert response.status_code == 200
        assert response.json() == {"created": True}
