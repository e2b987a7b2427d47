# === NAVMAP v1 ===
# {
#   "module": "ZipExtract.telemetry",
#   "purpose": "Error codes, metrics, and results for ZIP extraction jobs",
#   "sections": [
#     {"id": "errors", "name": "Error Codes", "anchor": "ERR", "kind": "constants"},
#     {"id": "metrics", "name": "Extraction Metrics", "anchor": "MET", "kind": "dataclass"},
#     {"id": "result", "name": "Extraction Result", "anchor": "RES", "kind": "dataclass"}
#   ]
# }
# === /NAVMAP ===

"""Error codes, metrics, and results for ZIP extraction jobs.

Every failure raised by the extraction engine carries one of the
:class:`ExtractionErrorCode` values so that callers (and log pipelines) can
classify it by tag rather than by parsing the message text.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

# ============================================================================
# ERROR CODES
# ============================================================================


class ExtractionErrorCode(str, Enum):
    """Error codes for extraction failures."""

    CONFIG = "E_CONFIG"  # Job options rejected before any filesystem mutation
    OPEN = "E_OPEN"  # Archive could not be opened or parsed
    INVALID_PATH = "E_INVALID_PATH"  # Entry name cannot be represented safely
    TRAVERSAL = "E_TRAVERSAL"  # Canonical target escapes the root
    ENTRY = "E_ENTRY"  # Archive reader rejected an entry
    EXTRACT_IO = "E_EXTRACT_IO"  # Directory, file, or symlink creation failed
    PERMISSION = "E_PERMISSION"  # Permission denied after the retry


def error_message(code: ExtractionErrorCode, detail: str = "") -> str:
    """Generate a descriptive error message for an error code.

    Args:
        code: The error code
        detail: Additional detail to append

    Returns:
        Human-readable error message
    """
    messages = {
        ExtractionErrorCode.CONFIG: "Invalid extraction options",
        ExtractionErrorCode.OPEN: "Archive could not be opened",
        ExtractionErrorCode.INVALID_PATH: "Invalid entry path",
        ExtractionErrorCode.TRAVERSAL: "Path traversal detected",
        ExtractionErrorCode.ENTRY: "Archive entry could not be read",
        ExtractionErrorCode.EXTRACT_IO: "I/O error during extraction",
        ExtractionErrorCode.PERMISSION: "Permission denied during extraction",
    }
    msg = messages.get(code, str(code))
    if detail:
        msg += f": {detail}"
    return msg


# ============================================================================
# METRICS
# ============================================================================


@dataclass
class ExtractionMetrics:
    """Aggregated counters for a single extraction job."""

    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    entries_seen: int = 0
    entries_extracted: int = 0
    entries_skipped: int = 0
    entries_ignored: int = 0
    directories_created: int = 0
    symlinks_created: int = 0
    bytes_written: int = 0
    error_code: Optional[str] = None

    @property
    def duration_ms(self) -> float:
        """Duration in milliseconds."""
        end = self.end_time or time.time()
        return (end - self.start_time) * 1000

    def finalize(self) -> None:
        """Mark metrics as complete."""
        if self.end_time is None:
            self.end_time = time.time()

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to a dictionary for structured logging."""
        return {
            "entries_seen": self.entries_seen,
            "entries_extracted": self.entries_extracted,
            "entries_skipped": self.entries_skipped,
            "entries_ignored": self.entries_ignored,
            "directories_created": self.directories_created,
            "symlinks_created": self.symlinks_created,
            "bytes_written": self.bytes_written,
            "duration_ms": round(self.duration_ms, 2),
            "error_code": self.error_code,
        }


# ============================================================================
# RESULT
# ============================================================================


@dataclass
class ExtractionResult:
    """Outcome of a successful extraction job."""

    root: Path
    extracted: List[Path] = field(default_factory=list)
    metrics: ExtractionMetrics = field(default_factory=ExtractionMetrics)
    dry_run: bool = False


__all__ = [
    "ExtractionErrorCode",
    "ExtractionMetrics",
    "ExtractionResult",
    "error_message",
]
