"""Tests for BackupService with a mocked session."""

import tarfile
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tenantforge.core.errors import ConflictError
from tenantforge.modules.backups.models import Backup, BackupType
from tenantforge.modules.backups.service import BackupService
from tenantforge.modules.tenants.models import TenantStatus
from tests.factories import PlanFactory, TenantFactory


@pytest.fixture(autouse=True)
def no_advisory_lock():
    with patch(
        "tenantforge.modules.backups.service.acquire_tenant_lock", new_callable=AsyncMock
    ) as mock_lock:
        yield mock_lock


@pytest.fixture
def session():
    mock = AsyncMock()
    mock.add = MagicMock()
    return mock


@pytest.fixture
def archive():
    mock = MagicMock()
    mock.put = AsyncMock(return_value="s3://backups/t_site/archive.tar.gz")
    mock.delete = AsyncMock(return_value=1)
    return mock


@pytest.fixture
def tenant(tmp_path):
    root = tmp_path / "t_site"
    (root / "content").mkdir(parents=True)
    (root / "content" / "index.html").write_text("<h1>hi</h1>")
    tenant = TenantFactory.build(slug="site", namespace="t_site", root_path=str(root))
    tenant.plan = PlanFactory.build(backup_frequency_hours=24, backup_retention_days=14)
    return tenant


def make_service(test_settings, session, archive=None) -> BackupService:
    service = BackupService(test_settings, session, archive=archive)
    service.backups = MagicMock()
    service.backups.add = AsyncMock(side_effect=lambda backup: backup)
    service.backups.last_created_at = AsyncMock(return_value=None)
    service.backups.expired = AsyncMock(return_value=[])
    service.backups.delete = AsyncMock()
    return service


class TestIsDue:
    @pytest.mark.asyncio
    async def test_never_backed_up(self, test_settings, session, tenant):
        service = make_service(test_settings, session)
        assert await service.is_due(tenant) is True

    @pytest.mark.asyncio
    async def test_recent_backup_not_due(self, test_settings, session, tenant):
        service = make_service(test_settings, session)
        service.backups.last_created_at.return_value = datetime.now(UTC) - timedelta(hours=2)
        assert await service.is_due(tenant) is False

    @pytest.mark.asyncio
    async def test_old_backup_due(self, test_settings, session, tenant):
        service = make_service(test_settings, session)
        service.backups.last_created_at.return_value = datetime.now(UTC) - timedelta(hours=25)
        assert await service.is_due(tenant) is True

    @pytest.mark.asyncio
    async def test_guest_tenant_never_due(self, test_settings, session):
        service = make_service(test_settings, session)
        assert await service.is_due(TenantFactory.build()) is False

    @pytest.mark.asyncio
    async def test_suspended_tenant_never_due(self, test_settings, session, tenant):
        tenant.status = TenantStatus.SUSPENDED
        service = make_service(test_settings, session)
        assert await service.is_due(tenant) is False


class TestCreateBackup:
    @pytest.mark.asyncio
    async def test_files_backup_written_and_recorded(
        self, test_settings, session, tenant, no_advisory_lock
    ):
        service = make_service(test_settings, session)

        backup = await service.create_backup(tenant, BackupType.FILES)

        no_advisory_lock.assert_awaited_once_with(session, tenant.id)
        assert backup.tenant_id == tenant.id
        assert backup.backup_type == BackupType.FILES
        assert backup.file_path.endswith("_files.tar.gz")
        assert backup.expires_at - backup.created_at == timedelta(days=14)
        assert backup.remote_path is None
        with tarfile.open(backup.file_path) as tar:
            assert "files/content/index.html" in tar.getnames()

    @pytest.mark.asyncio
    async def test_archive_is_replicated(self, test_settings, session, tenant, archive):
        service = make_service(test_settings, session, archive=archive)

        backup = await service.create_backup(tenant, BackupType.FILES)

        key, path = archive.put.await_args.args
        assert key.startswith("t_site/backup_site_")
        assert str(path) == backup.file_path
        assert backup.remote_path == "s3://backups/t_site/archive.tar.gz"

    @pytest.mark.asyncio
    async def test_replication_failure_keeps_local_backup(
        self, test_settings, session, tenant, archive
    ):
        archive.put.side_effect = RuntimeError("s3 unavailable")
        service = make_service(test_settings, session, archive=archive)

        backup = await service.create_backup(tenant, BackupType.FILES)

        assert backup.remote_path is None
        service.backups.add.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_plan_without_backups_rejected(self, test_settings, session, tenant):
        tenant.plan = PlanFactory.build(has_backups=False)
        service = make_service(test_settings, session)

        with pytest.raises(ConflictError) as exc_info:
            await service.create_backup(tenant, BackupType.FILES)

        assert exc_info.value.error_code == "backups_not_included"

    @pytest.mark.asyncio
    async def test_inactive_tenant_rejected(self, test_settings, session, tenant):
        tenant.status = TenantStatus.SUSPENDED
        service = make_service(test_settings, session)

        with pytest.raises(ConflictError) as exc_info:
            await service.create_backup(tenant, BackupType.FILES)

        assert exc_info.value.error_code == "tenant_not_active"
        service.backups.add.assert_not_awaited()


class TestPruneExpired:
    @pytest.mark.asyncio
    async def test_prunes_file_remote_copy_and_row(self, test_settings, session, archive, tmp_path):
        archive_file = tmp_path / "t_site" / "backups" / "backup_site_old_full.tar.gz"
        archive_file.parent.mkdir(parents=True)
        archive_file.write_bytes(b"old")
        expired = Backup(
            backup_type=BackupType.FULL,
            file_path=str(archive_file),
            remote_path="s3://backups/t_site/backup_site_old_full.tar.gz",
        )
        service = make_service(test_settings, session, archive=archive)
        service.backups.expired.return_value = [expired]

        pruned = await service.prune_expired()

        assert pruned == 1
        assert not archive_file.exists()
        archive.delete.assert_awaited_once_with("t_site/backup_site_old_full.tar.gz")
        service.backups.delete.assert_awaited_once_with(expired)

    @pytest.mark.asyncio
    async def test_missing_file_and_archive_failure_still_prune(
        self, test_settings, session, archive, tmp_path
    ):
        archive.delete.side_effect = RuntimeError("s3 unavailable")
        expired = Backup(
            backup_type=BackupType.FULL,
            file_path=str(tmp_path / "gone.tar.gz"),
            remote_path="s3://somewhere",
        )
        service = make_service(test_settings, session, archive=archive)
        service.backups.expired.return_value = [expired]

        assert await service.prune_expired() == 1
        service.backups.delete.assert_awaited_once_with(expired)
