"""Main tenantctl CLI application."""

import typer
from rich.console import Console

from tenantctl import __version__
from tenantctl.commands import sweep, tenants


console = Console()

app = typer.Typer(
    name="tenantctl",
    help="Provision, suspend and sweep TenantForge tenants.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register commands
app.command(name="provision")(tenants.provision)
app.command(name="deprovision")(tenants.deprovision)
app.command(name="suspend")(tenants.suspend)
app.command(name="resume")(tenants.resume)
app.command(name="extend")(tenants.extend)
app.command(name="usage")(tenants.usage)
app.command(name="sweep")(sweep.sweep)


@app.callback(invoke_without_command=True)
def version_callback(
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit."),
) -> None:
    """tenantctl - operate TenantForge tenants."""
    if version:
        console.print(f"[bold cyan]tenantctl[/bold cyan] version {__version__}")
        raise typer.Exit()


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
