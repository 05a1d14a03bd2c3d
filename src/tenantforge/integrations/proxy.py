"""Reverse-proxy configuration for suspended tenants."""

import asyncio
import shlex
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import structlog

from tenantforge.core.errors import ExternalCollaboratorError


if TYPE_CHECKING:
    from tenantforge.modules.tenants.models import Tenant


log = structlog.get_logger()


class ProxyConfigApplier(Protocol):
    async def apply_suspended_config(self, tenant: "Tenant") -> None: ...

    async def remove_config(self, tenant: "Tenant") -> None: ...


class NullProxyApplier:
    """Used when no proxy integration is configured."""

    async def apply_suspended_config(self, tenant: "Tenant") -> None:
        log.debug("proxy_config_skipped", tenant=tenant.slug, action="suspend")

    async def remove_config(self, tenant: "Tenant") -> None:
        log.debug("proxy_config_skipped", tenant=tenant.slug, action="remove")


SUSPENDED_TEMPLATE = """\
# Generated for suspended tenant {slug}
server {{
    listen 80;
    server_name {host};
    root {content_root};
    location / {{
        try_files /index.html =503;
    }}
}}
"""


class FileProxyApplier:
    """Writes one config file per tenant and runs the proxy reload command."""

    def __init__(
        self,
        config_dir: Path,
        base_domain: str,
        reload_command: str | None,
        timeout: float,
    ) -> None:
        self.config_dir = Path(config_dir)
        self.base_domain = base_domain
        self.reload_command = reload_command
        self.timeout = timeout

    def _path(self, tenant: "Tenant") -> Path:
        return self.config_dir / f"{tenant.slug}.conf"

    async def apply_suspended_config(self, tenant: "Tenant") -> None:
        body = SUSPENDED_TEMPLATE.format(
            slug=tenant.slug,
            host=f"{tenant.slug}.{self.base_domain}",
            content_root=Path(tenant.root_path) / "content",
        )
        await asyncio.to_thread(self._write, self._path(tenant), body)
        await self.reload()

    async def remove_config(self, tenant: "Tenant") -> None:
        path = self._path(tenant)
        await asyncio.to_thread(path.unlink, missing_ok=True)
        await self.reload()

    def _write(self, path: Path, body: str) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(body)

    async def reload(self) -> None:
        """Run the reload command.

        Raises:
            ExternalCollaboratorError: If the command fails or times out
        """
        if not self.reload_command:
            return
        process = await asyncio.create_subprocess_exec(
            *shlex.split(self.reload_command),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            async with asyncio.timeout(self.timeout):
                _stdout, stderr = await process.communicate()
        except TimeoutError as exc:
            process.kill()
            await process.wait()
            raise ExternalCollaboratorError("proxy", "Proxy reload timed out") from exc
        if process.returncode != 0:
            raise ExternalCollaboratorError(
                "proxy", f"Proxy reload exited with {process.returncode}: {stderr.decode().strip()}"
            )
        log.info("proxy_reloaded")
