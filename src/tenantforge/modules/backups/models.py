"""Backup metadata model."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import BigInteger, DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column

from tenantforge.core.constants import MAX_PATH_LENGTH
from tenantforge.core.database.base import Base, TenantMixin, UUIDMixin


class BackupType(StrEnum):
    FULL = "full"
    FILES = "files"
    DATABASE = "database"

    @property
    def includes_files(self) -> bool:
        return self in (BackupType.FULL, BackupType.FILES)

    @property
    def includes_database(self) -> bool:
        return self in (BackupType.FULL, BackupType.DATABASE)


class Backup(Base, UUIDMixin, TenantMixin):
    """A backup archive on local disk, optionally replicated to the archive store."""

    __tablename__ = "backups"

    backup_type: Mapped[BackupType] = mapped_column(
        Enum(
            BackupType,
            name="backup_type",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    file_path: Mapped[str] = mapped_column(String(MAX_PATH_LENGTH), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    remote_path: Mapped[str | None] = mapped_column(String(MAX_PATH_LENGTH), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
