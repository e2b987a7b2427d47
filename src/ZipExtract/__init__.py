# === NAVMAP v1 ===
# {
#   "module": "ZipExtract",
#   "purpose": "Public API for safe ZIP extraction",
#   "sections": []
# }
# === /NAVMAP ===

"""Safe ZIP extraction.

Extract a ZIP archive into a destination root while refusing path traversal
and symlink escapes, reconciling permission bits from archive metadata, and
stopping at the first fatal error.

    >>> from ZipExtract import extract_zip
    >>> extract_zip("bundle.zip", dir="/srv/unpacked", dry_run=True)  # doctest: +SKIP
"""

from __future__ import annotations

from .archive import ZipArchiveReader, ZipEntry
from .cancellation import CancellationToken
from .errors import (
    ArchiveEntryError,
    ArchiveErrorKind,
    ConfigError,
    ExtractIOError,
    ExtractionError,
    InvalidPathError,
    OpenError,
    PathError,
    PathEscapeError,
    PermissionDeniedError,
)
from .extraction import ExtractionJob, ExtractionState, extract_zip
from .settings import ExtractionOptions
from .telemetry import ExtractionErrorCode, ExtractionMetrics, ExtractionResult

__version__ = "1.0.0"

__all__ = [
    "ArchiveEntryError",
    "ArchiveErrorKind",
    "CancellationToken",
    "ConfigError",
    "ExtractIOError",
    "ExtractionError",
    "ExtractionErrorCode",
    "ExtractionJob",
    "ExtractionMetrics",
    "ExtractionOptions",
    "ExtractionResult",
    "ExtractionState",
    "InvalidPathError",
    "OpenError",
    "PathError",
    "PathEscapeError",
    "PermissionDeniedError",
    "ZipArchiveReader",
    "ZipEntry",
    "__version__",
    "extract_zip",
]
