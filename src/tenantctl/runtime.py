"""Process-local resources for CLI commands.

Commands reuse the worker context so a sweep run from the shell behaves
exactly like the scheduled one.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import typer
from rich.console import Console

from tenantforge.config import get_settings
from tenantforge.core.cache import close_redis_pool
from tenantforge.core.errors import AppException
from tenantforge.core.jobs.context import build_worker_context
from tenantforge.core.logging import configure_logging


console = Console()

T = TypeVar("T")


@asynccontextmanager
async def cli_context() -> AsyncIterator[dict[str, Any]]:
    """Engine, cache and collaborators for the duration of one command."""
    ctx: dict[str, Any] = {}
    build_worker_context(ctx, get_settings())
    try:
        yield ctx
    finally:
        await ctx["db_engine"].dispose()
        await close_redis_pool()


def run(command: Callable[[dict[str, Any]], Awaitable[T]]) -> T:
    """Run an async command body, turning domain errors into exit code 1."""
    configure_logging(get_settings())

    async def main() -> T:
        async with cli_context() as ctx:
            return await command(ctx)

    try:
        return asyncio.run(main())
    except AppException as e:
        console.print(f"[red]Error:[/red] {e.message} [dim]({e.error_code})[/dim]")
        raise typer.Exit(1) from e
