# === NAVMAP v1 ===
# {
#   "module": "tests.zip_extract.conftest",
#   "purpose": "Archive builders and filesystem fixtures for extraction tests",
#   "sections": [
#     {"id": "builder", "name": "ArchiveBuilder", "anchor": "BLD", "kind": "helpers"},
#     {"id": "fixtures", "name": "Fixtures", "anchor": "FIX", "kind": "fixtures"}
#   ]
# }
# === /NAVMAP ===

"""Archive builders and filesystem fixtures for extraction tests.

Archives are written with :mod:`zipfile` using hand-built ``ZipInfo`` records
so tests control the exact entry names (including hostile ones such as
``../evil.txt``), the host-system byte, and the external attributes.
"""

from __future__ import annotations

import os
import stat
import warnings
import zipfile
from pathlib import Path
from typing import Dict, List, Tuple, Type

import pytest

UNIX = 3
MSDOS = 0
_FIXED_DATE = (2020, 1, 1, 0, 0, 0)


# ============================================================================
# ARCHIVE BUILDER
# ============================================================================


class ArchiveBuilder:
    """Collect entries and write them into a ZIP archive in insertion order."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self.compression = compression
        self._entries: List[Tuple[zipfile.ZipInfo, bytes]] = []

    def raw(
        self,
        name: str,
        data: bytes = b"",
        *,
        external_attr: int = 0,
        create_system: int = MSDOS,
    ) -> "ArchiveBuilder":
        info = zipfile.ZipInfo(name, date_time=_FIXED_DATE)
        info.create_system = create_system
        info.external_attr = external_attr
        info.compress_type = self.compression
        self._entries.append((info, data))
        return self

    def file(self, name: str, data: bytes = b"", mode: int = 0o644) -> "ArchiveBuilder":
        return self.raw(
            name, data, external_attr=(stat.S_IFREG | mode) << 16, create_system=UNIX
        )

    def directory(self, name: str, mode: int = 0o755) -> "ArchiveBuilder":
        if not name.endswith("/"):
            name += "/"
        return self.raw(
            name, b"", external_attr=((stat.S_IFDIR | mode) << 16) | 0x10, create_system=UNIX
        )

    def symlink(self, name: str, target: str) -> "ArchiveBuilder":
        return self.raw(
            name,
            target.encode("utf-8"),
            external_attr=(stat.S_IFLNK | 0o777) << 16,
            create_system=UNIX,
        )

    def write(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with warnings.catch_warnings():
            # Some tests deliberately repeat an entry name.
            warnings.simplefilter("ignore", UserWarning)
            with zipfile.ZipFile(path, "w") as zf:
                for info, data in self._entries:
                    zf.writestr(info, data)
        return path


def snapshot_tree(root: Path) -> Dict[str, Tuple[str, object]]:
    """Describe every object under ``root`` without following symlinks."""

    tree: Dict[str, Tuple[str, object]] = {}
    for current, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            path = Path(current) / name
            rel = path.relative_to(root).as_posix()
            if path.is_symlink():
                tree[rel] = ("link", os.readlink(path))
            elif path.is_dir():
                tree[rel] = ("dir", None)
            else:
                tree[rel] = ("file", path.read_bytes())
    return tree


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture(scope="session")
def archive_builder() -> Type[ArchiveBuilder]:
    """Return the builder class; session scoped so Hypothesis tests can use it."""

    return ArchiveBuilder


@pytest.fixture(scope="session")
def tree_snapshot():
    """Return :func:`snapshot_tree`."""

    return snapshot_tree


@pytest.fixture
def dest(tmp_path: Path) -> Path:
    """Destination root that does not exist yet."""

    return tmp_path / "out"


@pytest.fixture
def outside(tmp_path: Path) -> Path:
    """Existing directory next to ``dest`` that must never receive content."""

    directory = tmp_path / "outside"
    directory.mkdir()
    return directory


@pytest.fixture
def sample_archive(tmp_path: Path) -> Path:
    """Archive with a directory, nested files, an empty directory and a symlink."""

    return (
        ArchiveBuilder()
        .directory("docs/")
        .file("docs/readme.txt", b"hello", mode=0o644)
        .file("bin/run.sh", b"#!/bin/sh\necho hi\n", mode=0o755)
        .directory("empty/")
        .symlink("docs/latest", "readme.txt")
        .write(tmp_path / "archives" / "sample.zip")
    )
