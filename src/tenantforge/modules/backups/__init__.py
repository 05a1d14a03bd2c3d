"""Tenant backups: archives, retention and remote replication."""

from tenantforge.modules.backups.models import Backup, BackupType
from tenantforge.modules.backups.service import BackupService


__all__ = ["Backup", "BackupService", "BackupType"]
