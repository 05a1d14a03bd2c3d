"""Provisioning workflow: create a tenant completely or not at all."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID

import structlog
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenantforge.config import Settings
from tenantforge.core.auth.backend import hash_password
from tenantforge.core.errors import ConflictError, NotFoundError, ProvisioningStepError
from tenantforge.core.observability import get_tracer
from tenantforge.integrations import NullProxyApplier, ProxyConfigApplier, best_effort
from tenantforge.modules.plans.models import Plan
from tenantforge.modules.plans.repos import PlanRepository
from tenantforge.modules.provisioning.config_render import (
    DatabaseParams,
    TenantConfigParams,
    generate_secrets,
    render_config,
)
from tenantforge.modules.provisioning.filesystem import TenantFilesystem
from tenantforge.modules.provisioning.namespace import (
    derive_namespace,
    namespace_base,
    validate_slug,
)
from tenantforge.modules.provisioning.schema import (
    drop_statement,
    schema_statements,
    tenant_tables,
)
from tenantforge.modules.provisioning.seed import SeedParams, seed_tenant
from tenantforge.modules.tenants.lifecycle import initial_expiry
from tenantforge.modules.tenants.models import NamespaceAllocation, Tenant, TenantStatus
from tenantforge.modules.tenants.repos import TenantRepository
from tenantforge.modules.tenants.schemas import TenantCreate
from tenantforge.modules.users.repos import UserRepository


log = structlog.get_logger()
tracer = get_tracer(__name__)

UndoAction = tuple[str, Callable[[], Awaitable[None]]]


class ProvisioningService:
    """Creates and tears down tenants.

    ``provision`` runs its steps in order and records an undo action for
    each one. If any step fails, or the whole run exceeds
    ``provisioning_timeout_seconds``, the undo actions run in reverse and
    the caller receives the original error.

    The service opens its own sessions because the reservation has to be
    committed before the slower steps start.
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        filesystem: TenantFilesystem | None = None,
        proxy: ProxyConfigApplier | None = None,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self.filesystem = filesystem or TenantFilesystem(settings.tenants_root)
        self.proxy = proxy or NullProxyApplier()

    async def provision(self, data: TenantCreate) -> Tenant:
        """Provision a tenant.

        Args:
            data: Validated creation parameters

        Returns:
            The active tenant

        Raises:
            ValidationError: ``invalid_slug``
            ConflictError: ``slug_taken``
            NotFoundError: If the plan does not exist
            ProvisioningStepError: A later step failed and was rolled back
        """
        validate_slug(data.slug, self.settings.reserved_slugs)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.provisioning_timeout_seconds

        with tracer.start_as_current_span("tenant.provision") as span:
            span.set_attribute("tenant.slug", data.slug)
            try:
                async with asyncio.timeout_at(deadline):
                    tenant, plan = await self._reserve(data)
            except TimeoutError as exc:
                raise ProvisioningStepError(step="timeout", cause=exc) from exc

            span.set_attribute("tenant.namespace", tenant.namespace)
            bound = log.bind(tenant=tenant.slug, namespace=tenant.namespace)
            undo: list[UndoAction] = [("tenant_row", lambda: self._delete_row(tenant.id))]
            step = "storage"
            try:
                async with asyncio.timeout_at(deadline):
                    undo.append(("filesystem", lambda: self._remove_tree(Path(tenant.root_path))))
                    await asyncio.to_thread(self.filesystem.create_tree, tenant.namespace)

                    step = "config"
                    await self._write_config(tenant, data)

                    step = "schema"
                    undo.append(("schema", lambda: self._drop_schema(tenant.namespace)))
                    await self._create_schema(tenant.namespace)

                    step = "seed"
                    await self._seed(tenant, data)

                    step = "activate"
                    await self._activate(tenant, plan)
            except TimeoutError as exc:
                bound.error("provisioning_step_failed", step="timeout", interrupted=step)
                await self._rollback(tenant, undo)
                raise ProvisioningStepError(step="timeout", cause=exc) from exc
            except asyncio.CancelledError:
                bound.warning("provisioning_cancelled", step=step)
                await self._rollback(tenant, undo)
                raise
            except Exception as exc:
                bound.error("provisioning_step_failed", step=step, error=repr(exc))
                await self._rollback(tenant, undo)
                raise ProvisioningStepError(step=step, cause=exc) from exc

        bound.info("tenant_provisioned", tenant_id=str(tenant.id), expires_at=tenant.expires_at)
        return tenant

    async def deprovision(self, tenant: Tenant, session: AsyncSession) -> None:
        """Remove every artifact of a tenant and mark its row deleted.

        Safe to repeat: a missing schema or tree is not an error. The
        caller owns ``session`` and commits it.
        """
        with tracer.start_as_current_span("tenant.deprovision") as span:
            span.set_attribute("tenant.slug", tenant.slug)
            conn = await session.connection()
            await conn.execute(drop_statement(tenant.namespace))
            removed = await asyncio.to_thread(self.filesystem.remove_tree, Path(tenant.root_path))
            await best_effort(
                "proxy_remove_config",
                self.proxy.remove_config(tenant),
                timeout=self.settings.collaborator_timeout_seconds,
                tenant=tenant.slug,
            )
            tenant.status = TenantStatus.DELETED
            tenant.deleted_at = datetime.now(UTC)
            await session.flush()
        log.info(
            "tenant_deprovisioned",
            tenant=tenant.slug,
            namespace=tenant.namespace,
            tree_removed=removed,
        )

    async def _reserve(self, data: TenantCreate) -> tuple[Tenant, Plan | None]:
        """Insert the tenant row and its namespace allocation, then commit."""
        async with self.session_factory() as session:
            plan = None
            plan_id = data.plan_id
            if plan_id is None and data.owner_id is not None:
                owner = await UserRepository(session).get_by_id(data.owner_id)
                if owner is None:
                    raise NotFoundError(
                        "Owner not found", resource="user", resource_id=str(data.owner_id)
                    )
                plan_id = owner.plan_id
            if plan_id is not None:
                plan = await PlanRepository(session).get_by_id(plan_id)
                if plan is None or not plan.is_active:
                    raise NotFoundError("Plan not found", resource="plan", resource_id=str(plan_id))

            repo = TenantRepository(session)
            taken = await repo.allocated_namespaces(namespace_base(data.slug))
            namespace = derive_namespace(data.slug, taken)

            tenant = Tenant(
                slug=data.slug,
                title=data.title,
                admin_username=data.admin_username,
                admin_email=str(data.admin_email),
                owner_id=data.owner_id,
                plan_id=plan_id,
                namespace=namespace,
                root_path=str(self.filesystem.tenant_root(namespace)),
                config_path=str(self.filesystem.config_path(namespace)),
                status=TenantStatus.PROVISIONING,
                settings={},
            )
            session.add(NamespaceAllocation(namespace=namespace, slug=data.slug))
            session.add(tenant)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError(
                    "Slug is already taken",
                    error_code="slug_taken",
                    details={"slug": data.slug},
                ) from exc

        log.info("tenant_reserved", tenant=data.slug, namespace=namespace)
        return tenant, plan

    async def _write_config(self, tenant: Tenant, data: TenantCreate) -> None:
        params = TenantConfigParams(
            slug=tenant.slug,
            namespace=tenant.namespace,
            title=data.title,
            site_url=self.settings.tenant_base_url(tenant.slug),
            database=DatabaseParams.from_settings(self.settings),
            secrets=generate_secrets(),
            debug=self.settings.debug,
        )
        await asyncio.to_thread(
            self.filesystem.write_config, tenant.namespace, render_config(params)
        )

    async def _create_schema(self, namespace: str) -> None:
        async with self.session_factory() as session:
            conn = await session.connection()
            for statement in schema_statements(namespace):
                await conn.execute(statement)
            await session.commit()

    async def _seed(self, tenant: Tenant, data: TenantCreate) -> None:
        password_hash = await asyncio.to_thread(hash_password, data.admin_password)
        params = SeedParams(
            title=data.title,
            site_url=self.settings.tenant_base_url(tenant.slug),
            admin_username=data.admin_username,
            admin_email=str(data.admin_email),
            admin_password_hash=password_hash,
        )
        async with self.session_factory() as session:
            conn = await session.connection()
            await seed_tenant(conn, tenant_tables(tenant.namespace), params, datetime.now(UTC))
            await session.commit()

    async def _activate(self, tenant: Tenant, plan: Plan | None) -> None:
        now = datetime.now(UTC)
        expires_at = initial_expiry(self.settings, now, tenant.owner_id, plan)
        async with self.session_factory() as session:
            result = await session.execute(
                update(Tenant)
                .where(Tenant.id == tenant.id, Tenant.status == TenantStatus.PROVISIONING)
                .values(status=TenantStatus.ACTIVE, expires_at=expires_at)
            )
            if result.rowcount != 1:
                raise RuntimeError("Tenant row left provisioning state during activation")
            await session.commit()
        tenant.status = TenantStatus.ACTIVE
        tenant.expires_at = expires_at

    async def _rollback(self, tenant: Tenant, undo: list[UndoAction]) -> None:
        """Run undo actions in reverse; failures are logged, never raised."""
        for name, action in reversed(undo):
            try:
                await action()
            except Exception as exc:
                log.error(
                    "rollback_step_failed",
                    step=name,
                    tenant=tenant.slug,
                    tenant_id=str(tenant.id),
                    namespace=tenant.namespace,
                    error=repr(exc),
                )
            else:
                log.info("rollback_step_completed", step=name, tenant=tenant.slug)

    async def _delete_row(self, tenant_id: UUID) -> None:
        async with self.session_factory() as session:
            await TenantRepository(session).delete_row(tenant_id)
            await session.commit()

    async def _remove_tree(self, root: Path) -> None:
        await asyncio.to_thread(self.filesystem.remove_tree, root)

    async def _drop_schema(self, namespace: str) -> None:
        async with self.session_factory() as session:
            conn = await session.connection()
            await conn.execute(drop_statement(namespace))
            await session.commit()
