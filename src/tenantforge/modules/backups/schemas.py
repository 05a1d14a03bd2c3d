"""Backup request and response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from tenantforge.modules.backups.models import BackupType


class BackupCreate(BaseModel):
    backup_type: BackupType = BackupType.FULL


class BackupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    backup_type: BackupType
    size_bytes: int
    remote_path: str | None
    created_at: datetime
    expires_at: datetime
