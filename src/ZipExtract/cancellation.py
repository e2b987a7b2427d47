"""Cooperative cancellation for extraction jobs.

An extraction job stops at the first fatal error. Rather than relying on
ambient mutable state shared between nested helpers, the driver creates one
:class:`CancellationToken` per job and passes it explicitly to every step that
can suspend (directory creation, path canonicalisation, content streaming, and
symlink creation). Each step checks the token when it resumes and unwinds once
it is set. A token never returns to the un-cancelled state.
"""

from __future__ import annotations

import threading
from typing import Optional


class CancellationToken:
    """Monotonic cancellation flag for a single extraction job.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel("write failed")
        >>> token.is_cancelled(), token.reason
        (True, 'write failed')
    """

    def __init__(self) -> None:
        """Initialize a new cancellation token."""
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        """Signal that cancellation has been requested.

        Only the first reason is retained; later calls are no-ops.
        """
        with self._lock:
            if self._is_cancelled.is_set():
                return
            self._reason = reason
            self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._is_cancelled.is_set()

    @property
    def reason(self) -> Optional[str]:
        """Reason recorded by the first :meth:`cancel` call."""
        return self._reason

    def __bool__(self) -> bool:
        return self.is_cancelled()


__all__ = ["CancellationToken"]

# === NAVMAP v1 ===
# {
#   "module": "ZipExtract.cancellation",
#   "purpose": "Provide the monotonic cancellation token shared by extraction steps",
#   "sections": [
#     {"id": "token", "name": "CancellationToken", "anchor": "TOK", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
