# === NAVMAP v1 ===
# {
#   "module": "ZipExtract.paths",
#   "purpose": "Resolve archive entry names to destinations and prove containment",
#   "sections": [
#     {"id": "names", "name": "Entry Name Validation", "anchor": "NAM", "kind": "validators"},
#     {"id": "targets", "name": "Target Resolution", "anchor": "TGT", "kind": "api"},
#     {"id": "containment", "name": "Canonical Containment", "anchor": "CON", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Resolve archive entry names to destinations and prove containment.

Two layers of defence are applied to every entry:

1. A lexical check on the raw name (no backslashes or NUL bytes, not absolute,
   no ``..`` segments) followed by a join-and-normalise that must stay under
   the extraction root.
2. A physical check on the canonical (symlink-resolved) parent directory. An
   earlier entry in the same archive may have planted a symlink that redirects
   a textually harmless name such as ``link/file.txt`` outside the root; only
   resolving the parent on disk catches that.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from .errors import InvalidPathError, PathEscapeError

MACOSX_METADATA_PREFIX = "__MACOSX/"

_ABSOLUTE_NAME = re.compile(r"^(?:[a-zA-Z]:|/)")
_INVALID_CHARACTERS = ("\\", "\x00")


# ============================================================================
# ENTRY NAME VALIDATION
# ============================================================================


def is_metadata_entry(name: str) -> bool:
    """Return ``True`` for Mac Archive Utility resource-fork entries."""

    return name.startswith(MACOSX_METADATA_PREFIX)


def validate_entry_name(name: str) -> None:
    """Reject entry names that cannot be extracted safely.

    Raises:
        InvalidPathError: If the name contains characters the host cannot
            represent, is absolute, or contains a ``..`` segment.
    """

    if any(char in name for char in _INVALID_CHARACTERS):
        raise InvalidPathError(f"invalid characters in fileName: {name}", entry_name=name)
    if _ABSOLUTE_NAME.match(name):
        raise InvalidPathError(f"absolute path: {name}", entry_name=name)
    if ".." in name.split("/"):
        raise InvalidPathError(f"invalid relative path: {name}", entry_name=name)


# ============================================================================
# TARGET RESOLUTION
# ============================================================================


@dataclass(frozen=True)
class ResolvedTarget:
    """Destination of one entry, computed fresh for every entry.

    ``canonical_parent`` and ``contained`` are only populated once
    :func:`verify_containment` has checked the parent on disk.
    """

    entry_name: str
    dest_path: Path
    parent_dir: Path
    canonical_parent: Optional[Path] = None
    contained: bool = False


def _is_within(root: Path, candidate: Path) -> bool:
    try:
        return os.path.commonpath([str(root), str(candidate)]) == str(root)
    except ValueError:
        return False


def resolve_target(root: Union[Path, str], name: str) -> ResolvedTarget:
    """Join ``name`` onto ``root`` lexically and check it stays inside.

    Args:
        root: Canonical extraction root.
        name: Raw entry name from the archive (``/``-separated).

    Returns:
        The lexical destination and its parent directory.

    Raises:
        InvalidPathError: If the name is rejected or the normalised join
            leaves ``root``.
    """

    validate_entry_name(name)
    root = Path(root)
    relative = PurePosixPath(name)
    dest = Path(os.path.normpath(os.path.join(str(root), *relative.parts)))
    if not _is_within(root, dest):
        raise InvalidPathError(f"invalid relative path: {name}", entry_name=name)
    parent = dest if dest == root else dest.parent
    return ResolvedTarget(entry_name=name, dest_path=dest, parent_dir=parent)


# ============================================================================
# CANONICAL CONTAINMENT
# ============================================================================


def canonicalize(path: Union[Path, str]) -> Path:
    """Return ``path`` with every symlink resolved and ``.``/``..`` removed."""

    return Path(os.path.realpath(path))


def verify_containment(root: Union[Path, str], target: ResolvedTarget) -> ResolvedTarget:
    """Prove the canonical parent of ``target`` is ``root`` or nested beneath it.

    ``root`` must already be canonical. Missing path components are fine:
    whatever prefix exists on disk is resolved, so a dangling symlink that
    points outside the root is caught before the parent is created.

    Raises:
        PathEscapeError: If the canonical parent lies outside ``root``.
    """

    canonical_parent = canonicalize(target.parent_dir)
    try:
        relative = os.path.relpath(canonical_parent, root)
    except ValueError:
        relative = None
    if relative is None or os.pardir in relative.split(os.sep):
        raise PathEscapeError(
            f'Out of bound path "{canonical_parent}" found while processing file '
            f"{target.entry_name}",
            entry_name=target.entry_name,
        )
    return replace(target, canonical_parent=canonical_parent, contained=True)


__all__ = [
    "MACOSX_METADATA_PREFIX",
    "ResolvedTarget",
    "canonicalize",
    "is_metadata_entry",
    "resolve_target",
    "validate_entry_name",
    "verify_containment",
]
