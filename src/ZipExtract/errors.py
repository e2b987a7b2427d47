"""Exception hierarchy shared across the ZIP extraction engine.

Extraction spans option validation, archive parsing, path containment checks,
and filesystem writes. This module groups those failure modes into a small
hierarchy rooted at :class:`ExtractionError` so caller code can react to
high-level categories (for example, unsafe paths vs. I/O failures) while every
instance still carries a machine-readable :class:`ExtractionErrorCode`.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Optional

from .telemetry import ExtractionErrorCode, error_message

__all__ = [
    "ExtractionError",
    "ConfigError",
    "OpenError",
    "PathError",
    "InvalidPathError",
    "PathEscapeError",
    "ArchiveErrorKind",
    "ArchiveEntryError",
    "ExtractIOError",
    "PermissionDeniedError",
]


class ExtractionError(RuntimeError):
    """Base exception for extraction failures."""

    code: ExtractionErrorCode = ExtractionErrorCode.EXTRACT_IO

    def __init__(self, message: str, *, entry_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.entry_name = entry_name


class ConfigError(ExtractionError):
    """Raised when job options are rejected, before anything touches disk."""

    code = ExtractionErrorCode.CONFIG


class OpenError(ExtractionError):
    """Raised when the archive cannot be opened or its directory is corrupt."""

    code = ExtractionErrorCode.OPEN


class PathError(ExtractionError):
    """Base class for entry names or targets that violate containment."""


class InvalidPathError(PathError):
    """Raised when an entry name is absolute, unrepresentable, or traverses upward."""

    code = ExtractionErrorCode.INVALID_PATH


class PathEscapeError(PathError):
    """Raised when an entry's canonical parent directory lies outside the root."""

    code = ExtractionErrorCode.TRAVERSAL


class ArchiveErrorKind(str, Enum):
    """Classification applied once at the archive reader boundary."""

    INVALID_PATH = "invalid_path"
    CORRUPT = "corrupt"
    UNSUPPORTED = "unsupported"


class ArchiveEntryError(ExtractionError):
    """Raised by the archive reader when an entry cannot be staged."""

    code = ExtractionErrorCode.ENTRY

    def __init__(
        self,
        message: str,
        *,
        kind: ArchiveErrorKind,
        entry_name: Optional[str] = None,
    ) -> None:
        super().__init__(message, entry_name=entry_name)
        self.kind = kind


class ExtractIOError(ExtractionError):
    """Raised when creating a directory, file, or symlink fails."""

    code = ExtractionErrorCode.EXTRACT_IO

    def __init__(
        self,
        message: str,
        *,
        entry_name: Optional[str] = None,
        path: Optional[str] = None,
    ) -> None:
        super().__init__(message, entry_name=entry_name)
        self.path = path

    @classmethod
    def from_os_error(
        cls,
        exc: OSError,
        *,
        entry_name: Optional[str] = None,
        action: str = "write",
    ) -> "ExtractIOError":
        """Wrap ``exc`` with the failing path and the entry being processed."""

        filename = exc.filename
        path = os.fsdecode(filename) if isinstance(filename, (str, bytes, os.PathLike)) else None
        detail = f"failed to {action} {path or entry_name}: {exc.strerror or exc}"
        return cls(error_message(cls.code, detail), entry_name=entry_name, path=path)


class PermissionDeniedError(ExtractIOError):
    """Raised when a write is still denied after relaxing permissions once."""

    code = ExtractionErrorCode.PERMISSION
