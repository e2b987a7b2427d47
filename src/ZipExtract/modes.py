"""Derive file type and permission bits from ZIP entry metadata.

ZIP archives written on Unix store ``st_mode`` in the high 16 bits of the
external attribute field. Archives written elsewhere often leave those bits
empty, so the type falls back to the trailing-slash convention and to the
MS-DOS directory attribute, and empty permissions fall back to configurable
defaults.
"""

from __future__ import annotations

import os
import stat
import threading
from typing import NamedTuple, Optional

from .archive import ZipEntry
from .settings import DEFAULT_DIR_MODE, DEFAULT_FILE_MODE

# Host-system code (high byte of "version made by") for MS-DOS / FAT.
MADE_BY_MSDOS = 0
# Raw external attribute written by some MS-DOS era tools for directories.
MSDOS_DIRECTORY_ATTR = 16

_umask_lock = threading.Lock()


class EntryMode(NamedTuple):
    """Resolved type and permissions for one entry."""

    mode: int
    permissions: int
    is_dir: bool
    is_symlink: bool


def current_umask() -> int:
    """Return the process umask without changing it."""

    with _umask_lock:
        mask = os.umask(0)
        os.umask(mask)
    return mask


def resolve_mode(
    entry: ZipEntry,
    *,
    default_dir_mode: int = DEFAULT_DIR_MODE,
    default_file_mode: int = DEFAULT_FILE_MODE,
    umask: Optional[int] = None,
) -> EntryMode:
    """Resolve ``entry``'s type and the permissions it should be created with.

    ``mode`` keeps the archive's type bits; ``permissions`` is what gets passed
    to the filesystem and has already been masked by ``umask`` (the process
    umask when not given), so it can only lose bits.
    """

    mode = (entry.external_attr >> 16) & 0xFFFF
    file_type = stat.S_IFMT(mode)
    is_symlink = file_type == stat.S_IFLNK
    is_dir = file_type == stat.S_IFDIR

    if not is_dir and entry.file_name.endswith("/"):
        is_dir = True

    if not is_dir:
        made_by = entry.version_made_by >> 8
        is_dir = made_by == MADE_BY_MSDOS and entry.external_attr == MSDOS_DIRECTORY_ATTR

    if stat.S_IMODE(mode) == 0:
        mode = file_type | (default_dir_mode if is_dir else default_file_mode)

    if umask is None:
        umask = current_umask()
    permissions = stat.S_IMODE(mode) & ~umask

    return EntryMode(mode=mode, permissions=permissions, is_dir=is_dir, is_symlink=is_symlink)


__all__ = [
    "EntryMode",
    "MADE_BY_MSDOS",
    "MSDOS_DIRECTORY_ATTR",
    "current_umask",
    "resolve_mode",
]
