"""Provisioning workflow tests with the database steps mocked out.

The filesystem steps run for real against a temporary tenants root.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tenantforge.core.errors import ConflictError, ProvisioningStepError, ValidationError
from tenantforge.modules.provisioning.service import ProvisioningService
from tenantforge.modules.tenants.models import TenantStatus
from tests.factories import TenantCreateFactory, TenantFactory


@pytest.fixture
def service(test_settings) -> ProvisioningService:
    return ProvisioningService(test_settings, session_factory=MagicMock())


@pytest.fixture
def calls() -> list[str]:
    return []


def stub_database_steps(service: ProvisioningService, calls: list[str]):
    """Replace every step that needs PostgreSQL and record the call order."""
    data = TenantCreateFactory.build()
    tenant = TenantFactory.build(
        slug=data.slug,
        namespace=f"t_{data.slug.replace('-', '_')}",
        status=TenantStatus.PROVISIONING,
    )
    tenant.root_path = str(service.filesystem.tenant_root(tenant.namespace))
    tenant.config_path = str(service.filesystem.config_path(tenant.namespace))

    def recorder(name: str, result=None):
        async def step(*args, **kwargs):
            calls.append(name)
            return result

        return step

    async def activate(target, plan):
        calls.append("activate")
        target.status = TenantStatus.ACTIVE

    service._reserve = AsyncMock(return_value=(tenant, None))
    service._create_schema = AsyncMock(side_effect=recorder("create_schema"))
    service._seed = AsyncMock(side_effect=recorder("seed"))
    service._activate = AsyncMock(side_effect=activate)
    service._delete_row = AsyncMock(side_effect=recorder("delete_row"))
    service._drop_schema = AsyncMock(side_effect=recorder("drop_schema"))
    return data, tenant


class TestProvision:
    @pytest.mark.asyncio
    async def test_success_creates_every_artifact(self, service, calls):
        data, tenant = stub_database_steps(service, calls)

        result = await service.provision(data)

        assert result is tenant
        assert result.status == TenantStatus.ACTIVE
        root = service.filesystem.tenant_root(tenant.namespace)
        assert (root / "content").is_dir()
        assert service.filesystem.config_path(tenant.namespace).is_file()
        assert calls == ["create_schema", "seed", "activate"]

    @pytest.mark.asyncio
    async def test_seed_failure_rolls_back_in_reverse(self, service, calls):
        data, tenant = stub_database_steps(service, calls)
        service._seed.side_effect = RuntimeError("insert failed")

        with pytest.raises(ProvisioningStepError) as exc_info:
            await service.provision(data)

        assert exc_info.value.step == "seed"
        assert exc_info.value.failure_code == "seed_failure"
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert calls == ["create_schema", "drop_schema", "delete_row"]
        assert not service.filesystem.tenant_root(tenant.namespace).exists()
        service._drop_schema.assert_awaited_once_with(tenant.namespace)
        service._delete_row.assert_awaited_once_with(tenant.id)

    @pytest.mark.asyncio
    async def test_storage_failure_skips_schema_undo(self, service, calls):
        data, tenant = stub_database_steps(service, calls)
        # A leftover directory makes the tree creation fail
        service.filesystem.tenant_root(tenant.namespace).mkdir(parents=True)

        with pytest.raises(ProvisioningStepError) as exc_info:
            await service.provision(data)

        assert exc_info.value.step == "storage"
        service._drop_schema.assert_not_awaited()
        service._delete_row.assert_awaited_once_with(tenant.id)

    @pytest.mark.asyncio
    async def test_rollback_continues_past_failed_undo(self, service, calls):
        data, tenant = stub_database_steps(service, calls)
        service._seed.side_effect = RuntimeError("insert failed")
        service._drop_schema.side_effect = RuntimeError("drop failed")

        with pytest.raises(ProvisioningStepError):
            await service.provision(data)

        service._delete_row.assert_awaited_once_with(tenant.id)
        assert not service.filesystem.tenant_root(tenant.namespace).exists()

    @pytest.mark.asyncio
    async def test_timeout_rolls_back(self, test_settings, calls):
        config = test_settings.model_copy(update={"provisioning_timeout_seconds": 0.05})
        service = ProvisioningService(config, session_factory=MagicMock())
        data, tenant = stub_database_steps(service, calls)

        async def slow_schema(namespace):
            await asyncio.sleep(5)

        service._create_schema.side_effect = slow_schema

        with pytest.raises(ProvisioningStepError) as exc_info:
            await service.provision(data)

        assert exc_info.value.failure_code == "timeout"
        service._drop_schema.assert_awaited_once_with(tenant.namespace)
        service._delete_row.assert_awaited_once_with(tenant.id)
        assert not service.filesystem.tenant_root(tenant.namespace).exists()

    @pytest.mark.asyncio
    async def test_reservation_conflict_propagates_unchanged(self, service, calls):
        data, _ = stub_database_steps(service, calls)
        service._reserve.side_effect = ConflictError(
            "Slug is already taken", error_code="slug_taken"
        )

        with pytest.raises(ConflictError) as exc_info:
            await service.provision(data)

        assert exc_info.value.error_code == "slug_taken"
        service._delete_row.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_slug_rejected_before_reservation(self, service, calls):
        stub_database_steps(service, calls)
        data = TenantCreateFactory.build(slug="admin")

        with pytest.raises(ValidationError) as exc_info:
            await service.provision(data)

        assert exc_info.value.error_code == "invalid_slug"
        service._reserve.assert_not_awaited()

    def test_failure_message_is_generic(self):
        error = ProvisioningStepError(step="schema", cause=RuntimeError("password=hunter2"))
        assert "hunter2" not in error.message
        assert error.details == {"failure": "schema_failure"}
