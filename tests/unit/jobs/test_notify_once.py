"""Tests for throttled owner warnings."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import RedisError

from tenantforge.core.jobs.context import notify_once
from tests.factories import TenantFactory


@pytest.fixture
def lifecycle():
    mock = MagicMock()
    mock.notify_owner = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def cache():
    mock = MagicMock()
    mock.set_if_absent = AsyncMock(return_value=True)
    return mock


@pytest.mark.asyncio
async def test_first_warning_is_sent(test_settings, lifecycle, cache):
    tenant = TenantFactory.build()
    ctx = {"settings": test_settings, "cache": cache}

    sent = await notify_once(ctx, lifecycle, tenant, "usage_warning", {"x": 1})

    assert sent is True
    cache.set_if_absent.assert_awaited_once_with(
        f"notice:usage_warning:{tenant.id}", "1", ttl_seconds=24 * 3600
    )
    lifecycle.notify_owner.assert_awaited_once_with(tenant, "usage_warning", {"x": 1})


@pytest.mark.asyncio
async def test_repeat_within_interval_is_throttled(test_settings, lifecycle, cache):
    cache.set_if_absent.return_value = False
    ctx = {"settings": test_settings, "cache": cache}

    sent = await notify_once(ctx, lifecycle, TenantFactory.build(), "usage_warning", {})

    assert sent is False
    lifecycle.notify_owner.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_outage_drops_warning(test_settings, lifecycle, cache):
    cache.set_if_absent.side_effect = RedisError("down")
    ctx = {"settings": test_settings, "cache": cache}

    sent = await notify_once(ctx, lifecycle, TenantFactory.build(), "usage_warning", {})

    assert sent is False
    lifecycle.notify_owner.assert_not_awaited()
