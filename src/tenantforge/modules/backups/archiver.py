"""Building backup archives.

File archives carry a ``manifest.json`` listing every file with its size.
Database dumps come from ``pg_dump`` restricted to the tenant's schema.
"""

import asyncio
import io
import json
import os
import tarfile
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from tenantforge.core.errors import BackupError
from tenantforge.modules.provisioning.config_render import DatabaseParams


log = structlog.get_logger()

# Top-level directories of a tenant tree that never go into a file backup
EXCLUDED_DIRECTORIES = frozenset({"cache", "logs", "tmp", "backups"})
EXCLUDED_NAMES = frozenset({".DS_Store", "Thumbs.db"})

MANIFEST_NAME = "manifest.json"
DUMP_NAME = "database.sql"


def iter_backup_files(root: Path) -> Iterator[Path]:
    """Regular files under ``root`` that belong in a file backup, sorted."""
    root = Path(root)
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        if current == root:
            dirnames[:] = [name for name in dirnames if name not in EXCLUDED_DIRECTORIES]
        dirnames.sort()
        for name in sorted(filenames):
            if name in EXCLUDED_NAMES:
                continue
            path = current / name
            if path.is_file() and not path.is_symlink():
                yield path


def build_manifest(root: Path, created_at: datetime) -> dict[str, Any]:
    files = [
        {"path": str(path.relative_to(root)), "size": path.stat().st_size}
        for path in iter_backup_files(root)
    ]
    return {
        "created_at": created_at.isoformat(),
        "file_count": len(files),
        "total_size": sum(item["size"] for item in files),
        "files": files,
    }


def write_archive(
    archive_path: Path,
    root: Path,
    created_at: datetime,
    include_files: bool,
    database_dump: Path | None = None,
) -> int:
    """Write a gzip tarball and return its size in bytes.

    Blocking; called from a worker thread. A partially written archive is
    removed before the error propagates.
    """
    archive_path = Path(archive_path)
    try:
        with tarfile.open(archive_path, "w:gz") as tar:
            if include_files:
                manifest = build_manifest(root, created_at)
                manifest_bytes = json.dumps(manifest, indent=2).encode()
                info = tarfile.TarInfo(MANIFEST_NAME)
                info.size = len(manifest_bytes)
                info.mtime = int(created_at.timestamp())
                tar.addfile(info, io.BytesIO(manifest_bytes))
                for path in iter_backup_files(root):
                    tar.add(path, arcname=f"files/{path.relative_to(root)}", recursive=False)
            if database_dump is not None:
                tar.add(database_dump, arcname=DUMP_NAME, recursive=False)
    except BaseException:
        archive_path.unlink(missing_ok=True)
        raise
    return archive_path.stat().st_size


async def dump_schema(
    pg_dump_path: str,
    database: DatabaseParams,
    namespace: str,
    destination: Path,
    timeout: float,
) -> int:
    """Dump one schema with ``pg_dump``.

    Returns:
        Size of the dump in bytes

    Raises:
        BackupError: If pg_dump fails, times out or produces an empty file
    """
    env = {**os.environ, "PGPASSWORD": database.password}
    process = await asyncio.create_subprocess_exec(
        pg_dump_path,
        f"--host={database.host}",
        f"--port={database.port}",
        f"--username={database.user}",
        f"--dbname={database.name}",
        f"--schema={namespace}",
        "--no-owner",
        "--no-privileges",
        f"--file={destination}",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=env,
    )
    try:
        async with asyncio.timeout(timeout):
            _stdout, stderr = await process.communicate()
    except TimeoutError as exc:
        process.kill()
        await process.wait()
        raise BackupError("Database dump timed out", details={"namespace": namespace}) from exc

    if process.returncode != 0:
        log.error(
            "database_dump_failed",
            namespace=namespace,
            returncode=process.returncode,
            stderr=stderr.decode(errors="replace").strip(),
        )
        raise BackupError("Database dump failed", details={"namespace": namespace})

    size = destination.stat().st_size if destination.exists() else 0
    if size == 0:
        raise BackupError("Database dump is empty", details={"namespace": namespace})
    return size
