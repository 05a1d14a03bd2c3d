"""Tests for per-tenant filesystem trees."""

import os
import stat
import time

import pytest

from tenantforge.modules.provisioning.filesystem import TenantFilesystem, directory_size_bytes


@pytest.fixture
def filesystem(tmp_path) -> TenantFilesystem:
    return TenantFilesystem(tmp_path / "tenants")


def mode_of(path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


def test_create_tree_layout(filesystem):
    root = filesystem.create_tree("t_demo")

    assert root == filesystem.root / "t_demo"
    assert sorted(child.name for child in root.iterdir()) == [
        "backups",
        "cache",
        "content",
        "logs",
        "uploads",
    ]
    assert mode_of(root / "backups") == 0o700
    assert mode_of(root / "logs") == 0o700
    assert mode_of(root / "content") == 0o755


def test_create_tree_refuses_existing_root(filesystem):
    filesystem.create_tree("t_demo")
    with pytest.raises(FileExistsError):
        filesystem.create_tree("t_demo")


def test_write_config_is_private_and_exclusive(filesystem):
    filesystem.create_tree("t_demo")
    path = filesystem.write_config("t_demo", b"tenant: {}\n")

    assert path.read_bytes() == b"tenant: {}\n"
    assert mode_of(path) == 0o640
    with pytest.raises(FileExistsError):
        filesystem.write_config("t_demo", b"again")


def test_remove_tree(filesystem):
    root = filesystem.create_tree("t_demo")
    assert filesystem.remove_tree(root) is True
    assert not root.exists()
    assert filesystem.remove_tree(root) is False


def test_remove_tree_outside_root_refused(filesystem, tmp_path):
    filesystem.root.mkdir(parents=True)
    outside = tmp_path / "elsewhere"
    outside.mkdir()
    with pytest.raises(ValueError, match="outside tenants root"):
        filesystem.remove_tree(outside)
    assert outside.exists()


def test_find_orphans_skips_known_and_young(filesystem):
    known = filesystem.create_tree("t_known")
    orphan = filesystem.create_tree("t_orphan")
    young = filesystem.create_tree("t_young")
    old = time.time() - 7200
    os.utime(known, (old, old))
    os.utime(orphan, (old, old))

    orphans = filesystem.find_orphans({str(known)}, min_age_seconds=3600)

    assert orphans == [orphan]
    assert young not in orphans


def test_find_orphans_without_root(filesystem):
    assert filesystem.find_orphans(set(), min_age_seconds=0) == []


def test_directory_size(tmp_path):
    (tmp_path / "a").write_bytes(b"x" * 100)
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b").write_bytes(b"y" * 50)

    assert directory_size_bytes(tmp_path) == 150
    assert directory_size_bytes(tmp_path / "missing") == 0
