"""Command: tenantctl sweep - Run a lifecycle sweep now."""

from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from tenantctl.runtime import run


console = Console()


def _flatten(result: dict[str, Any], prefix: str = "") -> list[tuple[str, str]]:
    rows: list[tuple[str, str]] = []
    for key, value in result.items():
        if isinstance(value, dict):
            rows.extend(_flatten(value, f"{prefix}{key}."))
        else:
            rows.append((f"{prefix}{key}", str(value)))
    return rows


def sweep(
    name: str = typer.Argument(..., help="expiry, unpaid, usage or backups"),
    enqueue: bool = typer.Option(
        False, "--enqueue", "-q", help="Hand the sweep to the worker instead of running it here"
    ),
) -> None:
    """Run one sweep in this process, once and without retries."""
    from tenantforge.core.jobs.tasks import SWEEPS

    if name not in SWEEPS:
        console.print(
            f"[red]Error:[/red] Unknown sweep '{name}'. Choose from: {', '.join(SWEEPS)}"
        )
        raise typer.Exit(1)
    job = SWEEPS[name]

    if enqueue:

        async def submit(_ctx: dict[str, Any]) -> Any:
            from tenantforge.core.jobs import close_arq_pool, enqueue, init_arq_pool

            await init_arq_pool()
            try:
                return await enqueue(job.__name__, _job_id=f"{job.__name__}:manual")
            finally:
                await close_arq_pool()

        queued = run(submit)
        if queued is None:
            console.print(f"[yellow]A manual {name} sweep is already queued.[/yellow]")
        else:
            console.print(f"[green]✓[/green] Queued {name} sweep as {queued.job_id}")
        return

    async def body(ctx: dict[str, Any]) -> dict[str, Any]:
        # Skip the retry wrapper; a failure surfaces directly
        return await job.__wrapped__(ctx)

    console.print(f"\n[bold cyan]Running sweep:[/bold cyan] {name}\n")
    result = run(body)

    table = Table(title=f"{name} sweep", show_header=True)
    table.add_column("Counter", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")
    for key, value in _flatten(result):
        table.add_row(key, value)
    console.print(table)
