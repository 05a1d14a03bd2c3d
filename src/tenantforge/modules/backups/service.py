"""Backup creation, retention and replication."""

import asyncio
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from tenantforge.config import Settings
from tenantforge.core.database import acquire_tenant_lock
from tenantforge.core.errors import ConflictError
from tenantforge.integrations import ArchiveStore, best_effort
from tenantforge.modules.backups.archiver import DUMP_NAME, dump_schema, write_archive
from tenantforge.modules.backups.models import Backup, BackupType
from tenantforge.modules.backups.repos import BackupRepository
from tenantforge.modules.plans.limits import resolve_limits
from tenantforge.modules.provisioning.config_render import DatabaseParams
from tenantforge.modules.tenants.models import Tenant, TenantStatus


log = structlog.get_logger()


class BackupService:
    """Creates tenant backups and enforces the plan's retention.

    Archives live in the tenant's ``backups`` directory. When an archive
    store is configured each new archive is also uploaded; an upload
    failure leaves the local backup in place and is only logged.
    """

    def __init__(
        self,
        settings: Settings,
        session: AsyncSession,
        archive: ArchiveStore | None = None,
    ) -> None:
        self.settings = settings
        self.session = session
        self.archive = archive
        self.backups = BackupRepository(session)

    async def is_due(
        self,
        tenant: Tenant,
        backup_type: BackupType = BackupType.FULL,
        now: datetime | None = None,
    ) -> bool:
        """Whether the tenant is entitled to a backup and the last one is old enough."""
        limits = resolve_limits(tenant.plan)
        if tenant.status != TenantStatus.ACTIVE or not limits.has_backups:
            return False
        now = now or datetime.now(UTC)
        last = await self.backups.last_created_at(tenant.id, backup_type)
        return last is None or last + timedelta(hours=limits.backup_frequency_hours) <= now

    async def create_backup(
        self,
        tenant: Tenant,
        backup_type: BackupType = BackupType.FULL,
    ) -> Backup:
        """Produce an archive, record it and replicate it.

        Holds the tenant lock for the duration so the tenant cannot be
        deleted underneath the backup. The caller commits.

        Raises:
            ConflictError: If the tenant is not active or its plan has no backups
            BackupError: If the dump or the archive could not be produced
        """
        await acquire_tenant_lock(self.session, tenant.id)
        await self.session.refresh(tenant)
        if tenant.status != TenantStatus.ACTIVE:
            raise ConflictError(
                "Only active tenants can be backed up",
                error_code="tenant_not_active",
                details={"status": tenant.status.value},
            )
        limits = resolve_limits(tenant.plan)
        if not limits.has_backups:
            raise ConflictError(
                "The tenant's plan does not include backups",
                error_code="backups_not_included",
            )

        now = datetime.now(UTC)
        root = Path(tenant.root_path)
        target_dir = root / "backups"
        archive_name = f"backup_{tenant.slug}_{now:%Y-%m-%d_%H-%M-%S}_{backup_type.value}.tar.gz"
        archive_path = target_dir / archive_name

        bound = log.bind(tenant=tenant.slug, backup_type=backup_type.value)
        bound.info("backup_started")

        with tempfile.TemporaryDirectory(prefix="tenantforge-backup-") as staging:
            dump_path = None
            if backup_type.includes_database:
                dump_path = Path(staging) / DUMP_NAME
                await dump_schema(
                    self.settings.pg_dump_path,
                    DatabaseParams.from_settings(self.settings),
                    tenant.namespace,
                    dump_path,
                    timeout=self.settings.collaborator_timeout_seconds * 10,
                )
            await asyncio.to_thread(target_dir.mkdir, parents=True, exist_ok=True)
            size = await asyncio.to_thread(
                write_archive,
                archive_path,
                root,
                now,
                backup_type.includes_files,
                dump_path,
            )

        backup = await self.backups.add(
            Backup(
                tenant_id=tenant.id,
                backup_type=backup_type,
                file_path=str(archive_path),
                size_bytes=size,
                created_at=now,
                expires_at=now + timedelta(days=limits.backup_retention_days),
            )
        )

        if self.archive is not None:
            await self._replicate(self.archive, tenant, backup, archive_path)

        bound.info("backup_completed", file=archive_name, size_mb=round(size / 1024 / 1024, 2))
        return backup

    async def list_backups(self, tenant: Tenant) -> list[Backup]:
        return await self.backups.list_for_tenant(tenant.id)

    async def prune_expired(
        self,
        tenant: Tenant | None = None,
        now: datetime | None = None,
    ) -> int:
        """Delete expired backups: the local file, the remote copy and the row.

        Returns:
            Number of backups removed
        """
        now = now or datetime.now(UTC)
        expired = await self.backups.expired(now, tenant.id if tenant else None)
        for backup in expired:
            await asyncio.to_thread(Path(backup.file_path).unlink, missing_ok=True)
            if backup.remote_path and self.archive is not None:
                await best_effort(
                    "archive_delete",
                    self.archive.delete(self._remote_key(backup)),
                    timeout=self.settings.collaborator_timeout_seconds,
                    backup_id=str(backup.id),
                )
            await self.backups.delete(backup)
        if expired:
            log.info("backups_pruned", count=len(expired))
        return len(expired)

    async def _replicate(
        self,
        archive: ArchiveStore,
        tenant: Tenant,
        backup: Backup,
        archive_path: Path,
    ) -> None:
        try:
            async with asyncio.timeout(self.settings.collaborator_timeout_seconds * 10):
                backup.remote_path = await archive.put(self._remote_key(backup), archive_path)
        except Exception as exc:
            log.warning(
                "backup_replication_failed",
                tenant=tenant.slug,
                backup_id=str(backup.id),
                error=str(exc),
            )
            return
        await self.session.flush()

    @staticmethod
    def _remote_key(backup: Backup) -> str:
        """``<namespace>/<archive name>``; archives sit in ``<root>/<namespace>/backups``."""
        path = Path(backup.file_path)
        return f"{path.parent.parent.name}/{path.name}"
