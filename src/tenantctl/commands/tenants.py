"""Commands: provision, deprovision, suspend, resume, extend, usage."""

from datetime import timedelta
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from tenantctl.runtime import run


console = Console()


def _show_tenant(tenant: Any) -> None:
    table = Table(show_header=False, box=None)
    table.add_column(style="cyan", no_wrap=True)
    table.add_column()
    table.add_row("slug", tenant.slug)
    table.add_row("status", str(tenant.status))
    table.add_row("namespace", tenant.namespace)
    table.add_row("root", tenant.root_path)
    table.add_row("expires", tenant.expires_at.isoformat() if tenant.expires_at else "never")
    if tenant.suspension_reason:
        table.add_row("reason", tenant.suspension_reason)
    console.print(table)


def provision(
    slug: str = typer.Argument(..., help="Subdomain slug, 3-30 of [a-z0-9-]"),
    title: str = typer.Option(..., "--title", "-t", help="Site title"),
    admin_email: str = typer.Option(..., "--admin-email", help="Tenant admin email"),
    admin_username: str = typer.Option("admin", "--admin-username", help="Tenant admin login"),
    admin_password: str = typer.Option(
        ..., "--admin-password", prompt=True, hide_input=True, help="Tenant admin password"
    ),
    plan_id: int | None = typer.Option(None, "--plan-id", help="Plan to bind the tenant to"),
) -> None:
    """Provision a tenant completely, or roll every step back."""
    from pydantic import ValidationError

    from tenantforge.modules.tenants.schemas import TenantCreate

    try:
        data = TenantCreate(
            slug=slug,
            title=title,
            admin_username=admin_username,
            admin_email=admin_email,
            admin_password=admin_password,
            plan_id=plan_id,
        )
    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            console.print(f"[red]Error:[/red] {field}: {error['msg']}")
        raise typer.Exit(1) from e

    async def body(ctx: dict[str, Any]) -> Any:
        return await ctx["provisioning"].provision(data)

    console.print(f"\n[bold cyan]Provisioning tenant:[/bold cyan] {slug}\n")
    tenant = run(body)
    console.print(f"[green]✓[/green] Tenant {tenant.slug} is active")
    _show_tenant(tenant)


def deprovision(
    slug: str = typer.Argument(..., help="Slug of the tenant to delete"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
) -> None:
    """Delete a tenant. Its row is kept as a tombstone."""
    if not force:
        confirm = typer.confirm(
            f"Are you sure you want to delete '{slug}'?\n"
            "This drops its schema and removes its files."
        )
        if not confirm:
            console.print("[yellow]Cancelled.[/yellow]")
            raise typer.Exit(0)

    async def body(ctx: dict[str, Any]) -> Any:
        from tenantforge.core.jobs.context import lifecycle_service

        async with ctx["db_session_factory"]() as session:
            service = lifecycle_service(ctx, session)
            tenant = await service.get_by_slug(slug)
            return await service.delete(tenant.id, reason="Deleted by operator")

    run(body)
    console.print(f"[green]✓[/green] Deleted tenant: {slug}")


def suspend(
    slug: str = typer.Argument(..., help="Slug of the tenant to suspend"),
    reason: str = typer.Option("Suspended by operator", "--reason", "-r"),
) -> None:
    """Take a tenant offline behind a placeholder page."""

    async def body(ctx: dict[str, Any]) -> Any:
        from tenantforge.core.jobs.context import lifecycle_service

        async with ctx["db_session_factory"]() as session:
            service = lifecycle_service(ctx, session)
            tenant = await service.get_by_slug(slug)
            return await service.suspend(tenant.id, reason)

    _show_tenant(run(body))


def resume(slug: str = typer.Argument(..., help="Slug of the tenant to resume")) -> None:
    """Bring a suspended tenant back, if it is within its limits."""

    async def body(ctx: dict[str, Any]) -> Any:
        from tenantforge.core.jobs.context import lifecycle_service

        async with ctx["db_session_factory"]() as session:
            service = lifecycle_service(ctx, session)
            tenant = await service.get_by_slug(slug)
            return await service.resume(tenant.id)

    _show_tenant(run(body))


def extend(
    slug: str = typer.Argument(..., help="Slug of the tenant to extend"),
    hours: int = typer.Option(24, "--hours", min=1, help="Hours to add"),
) -> None:
    """Push a tenant's expiry out."""

    async def body(ctx: dict[str, Any]) -> Any:
        from tenantforge.core.jobs.context import lifecycle_service

        async with ctx["db_session_factory"]() as session:
            service = lifecycle_service(ctx, session)
            tenant = await service.get_by_slug(slug)
            return await service.extend_expiry(tenant.id, timedelta(hours=hours))

    _show_tenant(run(body))


def usage(
    slug: str = typer.Argument(..., help="Slug of the tenant"),
    period: str = typer.Option("24h", "--period", "-p", help="1h, 24h, 7d or 30d"),
) -> None:
    """Show current usage against limits and the recorded statistics."""

    async def body(ctx: dict[str, Any]) -> Any:
        from tenantforge.core.jobs.context import lifecycle_service, resource_monitor

        async with ctx["db_session_factory"]() as session:
            tenant = await lifecycle_service(ctx, session).get_by_slug(slug)
            monitor = resource_monitor(ctx, session)
            return await monitor.check_limits(tenant), await monitor.get_usage(tenant, period)

    report, stats = run(body)

    table = Table(title=f"Usage of {slug}", show_header=True)
    table.add_column("Resource", style="cyan", no_wrap=True)
    table.add_column("Current", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Status", no_wrap=True)

    usage_values = report.usage.as_dict()
    flagged = {f.resource: "[red]over[/red]" for f in report.violations}
    flagged.update({f.resource: "[yellow]warning[/yellow]" for f in report.warnings})
    for resource, limit in report.limits.items():
        table.add_row(
            resource,
            f"{usage_values.get(resource, 0):g}",
            f"{limit:g}",
            flagged.get(resource, "[green]ok[/green]"),
        )

    console.print()
    console.print(table)
    console.print(
        f"\n[dim]{stats.period}: {stats.data_points} samples, "
        f"storage trend {stats.storage.trend}, "
        f"{stats.traffic.total_views} page views[/dim]\n"
    )
