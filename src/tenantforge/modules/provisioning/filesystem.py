"""Per-tenant filesystem trees.

All methods are blocking and are called through ``asyncio.to_thread``.
"""

import os
import shutil
import time
from pathlib import Path

import structlog

from tenantforge.core.constants import (
    CONFIG_FILE_MODE,
    CONFIG_FILE_NAME,
    PRIVATE_DIRECTORIES,
    PRIVATE_DIRECTORY_MODE,
    PUBLIC_DIRECTORY_MODE,
    TENANT_DIRECTORIES,
)


log = structlog.get_logger()


class TenantFilesystem:
    """Creates, inspects and removes tenant directory trees under one root."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def tenant_root(self, namespace: str) -> Path:
        return self.root / namespace

    def config_path(self, namespace: str) -> Path:
        return self.tenant_root(namespace) / CONFIG_FILE_NAME

    def create_tree(self, namespace: str) -> Path:
        """Create the tenant's directory layout.

        Raises:
            FileExistsError: If the tenant root already exists
        """
        root = self.tenant_root(namespace)
        self.root.mkdir(parents=True, exist_ok=True)
        root.mkdir(mode=PUBLIC_DIRECTORY_MODE)
        for name in TENANT_DIRECTORIES:
            mode = PRIVATE_DIRECTORY_MODE if name in PRIVATE_DIRECTORIES else PUBLIC_DIRECTORY_MODE
            path = root / name
            path.mkdir(mode=mode)
            # mkdir honours the umask, chmod does not
            path.chmod(mode)
        return root

    def write_config(self, namespace: str, data: bytes) -> Path:
        path = self.config_path(namespace)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, CONFIG_FILE_MODE)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        path.chmod(CONFIG_FILE_MODE)
        return path

    def remove_tree(self, root: Path) -> bool:
        """Delete a tenant tree if it exists.

        Returns:
            True if something was removed
        """
        root = Path(root)
        if not root.exists():
            return False
        if self.root.resolve() not in root.resolve().parents:
            raise ValueError(f"Refusing to remove {root}: outside tenants root")
        shutil.rmtree(root)
        return True

    def find_orphans(self, known_roots: set[str], min_age_seconds: float) -> list[Path]:
        """Directories under the root that no live tenant points at.

        Directories younger than ``min_age_seconds`` are skipped so a
        tenant that is mid-provisioning is never mistaken for an orphan.
        """
        if not self.root.exists():
            return []
        known = {str(Path(path)) for path in known_roots}
        cutoff = time.time() - min_age_seconds
        orphans = []
        for entry in sorted(self.root.iterdir()):
            if not entry.is_dir() or str(entry) in known:
                continue
            if entry.stat().st_mtime > cutoff:
                continue
            orphans.append(entry)
        return orphans


def directory_size_bytes(path: Path) -> int:
    """Total size of regular files under ``path``; missing paths count as 0."""
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            try:
                total += os.lstat(os.path.join(dirpath, name)).st_size
            except FileNotFoundError:
                continue
    return total
