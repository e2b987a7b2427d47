# === NAVMAP v1 ===
# {
#   "module": "ZipExtract.writer",
#   "purpose": "Side-effecting work for one resolved entry: directories, files, symlinks",
#   "sections": [
#     {"id": "dirs", "name": "Directory Creation", "anchor": "DIR", "kind": "helpers"},
#     {"id": "writer", "name": "EntryWriter", "anchor": "WRT", "kind": "api"},
#     {"id": "files", "name": "Regular Files", "anchor": "FIL", "kind": "helpers"},
#     {"id": "links", "name": "Symlinks", "anchor": "LNK", "kind": "helpers"}
#   ]
# }
# === /NAVMAP ===

"""Side-effecting work for one resolved entry.

:class:`EntryWriter` creates directories, streams regular file content, and
creates symlinks. Retries are bounded loops with a single extra attempt:

* a regular file write that fails with ``EACCES`` gets its permissions relaxed
  and is retried once;
* a symlink whose destination already exists has the existing object removed
  and is retried once.

Any other failure is fatal. Every fatal failure cancels the job's token
before the error propagates.
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable, Optional, Union

from .cancellation import CancellationToken
from .errors import ExtractIOError, ExtractionError, PermissionDeniedError
from .modes import EntryMode
from .paths import ResolvedTarget
from .telemetry import ExtractionErrorCode, error_message

CHUNK_SIZE = 64 * 1024
RELAXED_FILE_MODE = 0o777
MAX_ATTEMPTS = 2

_FILE_FLAGS = (
    os.O_WRONLY
    | os.O_CREAT
    | os.O_TRUNC
    | getattr(os, "O_NOFOLLOW", 0)
    | getattr(os, "O_BINARY", 0)
)

StreamOpener = Callable[[], IO[bytes]]


# ============================================================================
# DIRECTORY CREATION
# ============================================================================


def ensure_dir(path: Union[Path, str], mode: int = 0o777) -> Path:
    """Create ``path`` and any missing ancestors; no-op when it already exists.

    ``mode`` applies to the leaf directory only, and only when it is created.
    """

    directory = Path(path)
    directory.mkdir(mode=mode, parents=True, exist_ok=True)
    return directory


# ============================================================================
# ENTRY WRITER
# ============================================================================


@dataclass(frozen=True)
class WriteOutcome:
    """What the writer did for one entry."""

    path: Path
    kind: str
    bytes_written: int = 0


class EntryWriter:
    """Materialise resolved entries on disk for a single extraction job."""

    def __init__(
        self,
        token: CancellationToken,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.token = token
        self.logger = logger or logging.getLogger(__name__)

    def write(
        self,
        target: ResolvedTarget,
        entry_mode: EntryMode,
        open_stream: StreamOpener,
        *,
        dry_run: bool = False,
    ) -> WriteOutcome:
        """Write one entry.

        Args:
            target: Verified destination for the entry.
            entry_mode: Resolved type and permissions.
            open_stream: Callable returning a fresh content stream; called
                once per attempt.
            dry_run: Only create directories.

        Returns:
            A :class:`WriteOutcome` describing the work done.

        Raises:
            ExtractionError: On any fatal failure. The token is cancelled
                before the error is raised.
        """

        if self.token.is_cancelled():
            return WriteOutcome(path=target.dest_path, kind="cancelled")

        try:
            if dry_run:
                return self._plan(target, entry_mode)
            if entry_mode.is_dir:
                return self._write_directory(target, entry_mode)
            ensure_dir(target.parent_dir)
            if entry_mode.is_symlink:
                return self._write_symlink(target, open_stream)
            return self._write_file(target, entry_mode, open_stream)
        except ExtractionError as exc:
            self.token.cancel(str(exc))
            raise
        except OSError as exc:
            error = ExtractIOError.from_os_error(exc, entry_name=target.entry_name, action="create")
            self.token.cancel(str(error))
            raise error from exc

    def _plan(self, target: ResolvedTarget, entry_mode: EntryMode) -> WriteOutcome:
        directory = target.dest_path if entry_mode.is_dir else target.parent_dir
        self.logger.debug(
            "dry run, creating directory only",
            extra={"stage": "write", "entry": target.entry_name, "path": str(directory)},
        )
        ensure_dir(directory)
        return WriteOutcome(path=target.dest_path, kind="planned")

    def _write_directory(self, target: ResolvedTarget, entry_mode: EntryMode) -> WriteOutcome:
        self.logger.debug(
            "creating directory",
            extra={"stage": "write", "entry": target.entry_name, "path": str(target.dest_path)},
        )
        # Owner keeps rwx so later entries can be written inside.
        ensure_dir(target.dest_path, entry_mode.permissions | stat.S_IRWXU)
        return WriteOutcome(path=target.dest_path, kind="directory")

    # ------------------------------------------------------------------
    # Regular files
    # ------------------------------------------------------------------

    def _write_file(
        self,
        target: ResolvedTarget,
        entry_mode: EntryMode,
        open_stream: StreamOpener,
    ) -> WriteOutcome:
        dest = target.dest_path
        self._unlink_symlink(dest, target.entry_name)

        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                written = self._stream_to_file(dest, entry_mode.permissions, open_stream)
            except PermissionError as exc:
                if attempt == MAX_ATTEMPTS:
                    raise PermissionDeniedError.from_os_error(
                        exc, entry_name=target.entry_name, action="write"
                    ) from exc
                self.logger.debug(
                    "permission denied while writing, relaxing permissions and retrying",
                    extra={"stage": "write", "entry": target.entry_name, "path": str(dest)},
                )
                try:
                    os.chmod(dest, RELAXED_FILE_MODE)
                except OSError as chmod_exc:
                    raise ExtractIOError.from_os_error(
                        chmod_exc, entry_name=target.entry_name, action="chmod"
                    ) from chmod_exc
                continue
            except OSError as exc:
                raise ExtractIOError.from_os_error(
                    exc, entry_name=target.entry_name, action="write"
                ) from exc

            if written is None:
                return self._discard_partial(dest, target.entry_name)
            if attempt > 1:
                os.chmod(dest, entry_mode.permissions)
            return WriteOutcome(path=dest, kind="file", bytes_written=written)

        raise AssertionError("unreachable")  # pragma: no cover

    def _stream_to_file(
        self, dest: Path, permissions: int, open_stream: StreamOpener
    ) -> Optional[int]:
        """Copy the entry stream into ``dest``; ``None`` if cancelled part way."""
        written = 0
        with open_stream() as source:
            fd = os.open(dest, _FILE_FLAGS, permissions)
            with os.fdopen(fd, "wb") as sink:
                for chunk in iter(lambda: source.read(CHUNK_SIZE), b""):
                    if self.token.is_cancelled():
                        return None
                    sink.write(chunk)
                    written += len(chunk)
        return written

    def _discard_partial(self, dest: Path, entry_name: str) -> WriteOutcome:
        self.logger.debug(
            "cancelled while writing, removing partial file",
            extra={"stage": "write", "entry": entry_name, "path": str(dest)},
        )
        try:
            os.unlink(dest)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise ExtractIOError.from_os_error(exc, entry_name=entry_name, action="remove") from exc
        return WriteOutcome(path=dest, kind="cancelled")

    def _unlink_symlink(self, dest: Path, entry_name: str) -> None:
        """Replace rather than follow a symlink left at a file destination."""
        try:
            info = os.lstat(dest)
        except FileNotFoundError:
            return
        if stat.S_ISLNK(info.st_mode):
            self.logger.debug(
                "removing symlink at file destination",
                extra={"stage": "write", "entry": entry_name, "path": str(dest)},
            )
            os.unlink(dest)

    # ------------------------------------------------------------------
    # Symlinks
    # ------------------------------------------------------------------

    def _write_symlink(self, target: ResolvedTarget, open_stream: StreamOpener) -> WriteOutcome:
        dest = target.dest_path
        with open_stream() as source:
            data = source.read()
        try:
            link = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExtractIOError(
                error_message(
                    ExtractionErrorCode.EXTRACT_IO,
                    f"symlink target for {target.entry_name} is not valid UTF-8",
                ),
                entry_name=target.entry_name,
                path=str(dest),
            ) from exc

        self.logger.debug(
            "creating symlink",
            extra={"stage": "write", "entry": target.entry_name, "path": str(dest), "link": link},
        )
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                os.symlink(link, dest)
            except FileExistsError as exc:
                if attempt == MAX_ATTEMPTS:
                    raise ExtractIOError.from_os_error(
                        exc, entry_name=target.entry_name, action="create symlink"
                    ) from exc
                try:
                    os.unlink(dest)
                except OSError as unlink_exc:
                    raise ExtractIOError.from_os_error(
                        unlink_exc, entry_name=target.entry_name, action="remove"
                    ) from unlink_exc
                continue
            except OSError as exc:
                raise ExtractIOError.from_os_error(
                    exc, entry_name=target.entry_name, action="create symlink"
                ) from exc
            return WriteOutcome(path=dest, kind="symlink")

        raise AssertionError("unreachable")  # pragma: no cover


__all__ = ["CHUNK_SIZE", "EntryWriter", "WriteOutcome", "ensure_dir"]
