"""Tests for the usage sweep."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tenantforge.core.errors import InvalidTransitionError
from tenantforge.core.jobs.tasks.usage import usage_sweep
from tenantforge.integrations import NotificationKind
from tenantforge.modules.monitoring.evaluation import UsageSnapshot
from tenantforge.modules.tenants.lifecycle import REASON_RESOURCE_LIMITS
from tenantforge.modules.tenants.models import TenantStatus
from tests.factories import PlanFactory, TenantFactory


def pro_tenant(**fields):
    tenant = TenantFactory.build(**fields)
    # cpu 50 %, memory 512 MB, bandwidth 50000 MB
    tenant.plan = PlanFactory.build()
    return tenant


@pytest.fixture
def tenants() -> dict:
    return {
        "runaway": pro_tenant(),
        "busy": pro_tenant(),
        "quiet": pro_tenant(),
    }


@pytest.fixture
def snapshots(tenants) -> dict:
    return {
        # 200 % of the CPU limit
        tenants["runaway"].id: UsageSnapshot(cpu_percent=100),
        # 93.75 % of the memory limit
        tenants["busy"].id: UsageSnapshot(memory_mb=480),
        tenants["quiet"].id: UsageSnapshot(cpu_percent=5, memory_mb=64),
    }


@pytest.fixture
def monitor(snapshots):
    mock = MagicMock()
    mock.record = AsyncMock(side_effect=lambda tenant: snapshots[tenant.id])
    mock.prune_samples = AsyncMock(return_value=7)
    return mock


@pytest.fixture
def notify_once():
    with patch(
        "tenantforge.core.jobs.tasks.usage.notify_once", new_callable=AsyncMock
    ) as mock:
        mock.return_value = True
        yield mock


@pytest.fixture
def sweep_env(tenants, monitor, lifecycle, notify_once):
    by_id = {tenant.id: tenant for tenant in tenants.values()}
    with (
        patch("tenantforge.core.jobs.tasks.usage.TenantRepository") as repo_cls,
        patch("tenantforge.core.jobs.tasks.usage.resource_monitor", return_value=monitor),
        patch("tenantforge.core.jobs.tasks.usage.lifecycle_service", return_value=lifecycle),
    ):
        repo = repo_cls.return_value
        repo.ids_by_status = AsyncMock(return_value=list(by_id))
        repo.get_by_id = AsyncMock(side_effect=lambda tenant_id: by_id.get(tenant_id))
        yield repo


@pytest.mark.asyncio
async def test_usage_sweep_enforces_limits(worker_ctx, sweep_env, tenants, lifecycle, notify_once):
    result = await usage_sweep(worker_ctx)

    assert result["processed"] == 3
    assert result["suspended"] == 1
    assert result["warned"] == 1
    assert result["recorded"] == 1
    assert result["samples_pruned"] == 7
    lifecycle.suspend.assert_awaited_once_with(tenants["runaway"].id, REASON_RESOURCE_LIMITS)

    _, _, tenant, kind, data = notify_once.await_args.args
    assert tenant is tenants["busy"]
    assert kind == NotificationKind.USAGE_WARNING
    assert data == {"resources": {"memory_mb": 93.75}}


@pytest.mark.asyncio
async def test_suspended_tenant_is_sampled_but_not_suspended_again(
    worker_ctx, sweep_env, tenants, lifecycle
):
    tenants["runaway"].status = TenantStatus.SUSPENDED

    result = await usage_sweep(worker_ctx)

    assert "suspended" not in result
    assert result["recorded"] == 2
    lifecycle.suspend.assert_not_awaited()


@pytest.mark.asyncio
async def test_throttled_warning_is_just_recorded(worker_ctx, sweep_env, notify_once):
    notify_once.return_value = False

    result = await usage_sweep(worker_ctx)

    assert result["recorded"] == 2
    assert "warned" not in result


@pytest.mark.asyncio
async def test_concurrent_suspension_is_skipped(worker_ctx, sweep_env, lifecycle):
    lifecycle.suspend.side_effect = InvalidTransitionError(
        TenantStatus.SUSPENDED, TenantStatus.SUSPENDED
    )

    result = await usage_sweep(worker_ctx)

    assert result["skipped"] == 1
    assert result["failed"] == 0


@pytest.mark.asyncio
async def test_sample_commits_before_enforcement(worker_ctx, sweep_env):
    await usage_sweep(worker_ctx)

    session = worker_ctx["db_session_factory"].session
    # One commit per tenant plus one after pruning
    assert session.commit.await_count == 4
