"""initial_schema

Revision ID: 3f1c9a0d7e21
Revises:
Create Date: 2026-10-01 00:01:00.000000

Shared tables: plans, users, the namespace ledger, tenants (with the
partial unique index on live slugs), usage samples and backups.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "3f1c9a0d7e21"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "plans",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(50), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("billing_cycle", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("trial_days", sa.Integer(), nullable=False),
        sa.Column("cpu_percent", sa.Integer(), nullable=True),
        sa.Column("memory_mb", sa.Integer(), nullable=True),
        sa.Column("storage_mb", sa.Integer(), nullable=True),
        sa.Column("bandwidth_mb", sa.Integer(), nullable=True),
        sa.Column("page_views", sa.Integer(), nullable=True),
        sa.Column("has_backups", sa.Boolean(), nullable=False),
        sa.Column("backup_frequency_hours", sa.Integer(), nullable=True),
        sa.Column("backup_retention_days", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_plans"),
        sa.UniqueConstraint("slug", name="uq_plans_slug"),
    )
    op.create_index("ix_plans_slug", "plans", ["slug"])

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=True),
        sa.Column("payment_status", sa.String(20), nullable=False),
        sa.Column("payment_failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subscription_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subscription_cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.ForeignKeyConstraint(
            ["plan_id"], ["plans.id"], name="fk_users_plan_id_plans", ondelete="SET NULL"
        ),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "namespace_allocations",
        sa.Column("namespace", sa.String(63), nullable=False),
        sa.Column("slug", sa.String(30), nullable=False),
        sa.Column(
            "allocated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("namespace", name="pk_namespace_allocations"),
    )
    op.create_index("ix_namespace_allocations_slug", "namespace_allocations", ["slug"])

    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("slug", sa.String(30), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("admin_username", sa.String(60), nullable=False),
        sa.Column("admin_email", sa.String(255), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=True),
        sa.Column("plan_id", sa.Integer(), nullable=True),
        sa.Column("subscription_ref", sa.String(255), nullable=True),
        sa.Column("namespace", sa.String(63), nullable=False),
        sa.Column("root_path", sa.String(1024), nullable=False),
        sa.Column("config_path", sa.String(1024), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suspended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suspension_reason", sa.String(255), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_accessed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "settings",
            postgresql.JSONB(),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_tenants"),
        sa.UniqueConstraint("namespace", name="uq_tenants_namespace"),
        sa.ForeignKeyConstraint(
            ["owner_id"], ["users.id"], name="fk_tenants_owner_id_users", ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["plan_id"], ["plans.id"], name="fk_tenants_plan_id_plans", ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["namespace"],
            ["namespace_allocations.namespace"],
            name="fk_tenants_namespace_namespace_allocations",
        ),
    )
    op.create_index("ix_tenants_id", "tenants", ["id"])
    op.create_index("ix_tenants_slug", "tenants", ["slug"])
    op.create_index("ix_tenants_owner_id", "tenants", ["owner_id"])
    op.create_index("ix_tenants_status_expires_at", "tenants", ["status", "expires_at"])
    op.create_index(
        "uq_tenants_live_slug",
        "tenants",
        ["slug"],
        unique=True,
        postgresql_where=sa.text("status <> 'deleted'"),
    )

    op.create_table(
        "usage_samples",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("cpu_percent", sa.Float(), nullable=False),
        sa.Column("memory_mb", sa.Float(), nullable=False),
        sa.Column("storage_mb", sa.Float(), nullable=False),
        sa.Column("bandwidth_mb", sa.Float(), nullable=False),
        sa.Column("page_views", sa.Integer(), nullable=False),
        sa.Column("unique_visitors", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_usage_samples"),
        sa.ForeignKeyConstraint(
            ["tenant_id"],
            ["tenants.id"],
            name="fk_usage_samples_tenant_id_tenants",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_usage_samples_id", "usage_samples", ["id"])
    op.create_index("ix_usage_samples_tenant_id", "usage_samples", ["tenant_id"])
    op.create_index("ix_usage_samples_recorded_at", "usage_samples", ["recorded_at"])
    op.create_index(
        "ix_usage_samples_tenant_recorded", "usage_samples", ["tenant_id", "recorded_at"]
    )

    op.create_table(
        "backups",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("backup_type", sa.String(20), nullable=False),
        sa.Column("file_path", sa.String(1024), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("remote_path", sa.String(1024), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_backups"),
        sa.ForeignKeyConstraint(
            ["tenant_id"],
            ["tenants.id"],
            name="fk_backups_tenant_id_tenants",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_backups_id", "backups", ["id"])
    op.create_index("ix_backups_tenant_id", "backups", ["tenant_id"])
    op.create_index("ix_backups_expires_at", "backups", ["expires_at"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("backups")
    op.drop_table("usage_samples")
    op.drop_index("uq_tenants_live_slug", table_name="tenants")
    op.drop_table("tenants")
    op.drop_table("namespace_allocations")
    op.drop_table("users")
    op.drop_table("plans")
