# === NAVMAP v1 ===
# {
#   "module": "ZipExtract.extraction",
#   "purpose": "Drive a ZIP extraction job one entry at a time with first-error cancellation",
#   "sections": [
#     {"id": "states", "name": "Job States", "anchor": "STA", "kind": "constants"},
#     {"id": "job", "name": "ExtractionJob", "anchor": "JOB", "kind": "api"},
#     {"id": "entries", "name": "Entry Pipeline", "anchor": "ENT", "kind": "helpers"},
#     {"id": "api", "name": "extract_zip", "anchor": "API", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Drive a ZIP extraction job one entry at a time.

The driver is an explicit state machine::

    IDLE -> OPENING -> READING_ENTRY -> RESOLVING_PATH -> WRITING
                            ^                                |
                            +--------------------------------+
                       READING_ENTRY -> CLOSING -> DONE

with ``CANCELLED`` reachable from every non-terminal state. Exactly one entry
is in flight at any time: the reader is asked for the next entry only after
the current one has been written or skipped. The first fatal error cancels
the job's token, closes the reader, and is the only error reported. The
optional ``on_complete`` callback fires exactly once per job.

Example:
    >>> from ZipExtract import extract_zip
    >>> result = extract_zip("bundle.zip", dir="/srv/unpacked")  # doctest: +SKIP
    >>> result.metrics.entries_extracted  # doctest: +SKIP
    12
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from .archive import ZipArchiveReader, ZipEntry
from .cancellation import CancellationToken
from .errors import (
    ArchiveEntryError,
    ArchiveErrorKind,
    ConfigError,
    ExtractIOError,
    ExtractionError,
    InvalidPathError,
)
from .modes import current_umask, resolve_mode
from .paths import canonicalize, is_metadata_entry, resolve_target, verify_containment
from .settings import ExtractionOptions
from .telemetry import ExtractionErrorCode, ExtractionMetrics, ExtractionResult, error_message
from .writer import EntryWriter, ensure_dir

CompletionCallback = Callable[[Optional[BaseException]], Any]

# ============================================================================
# JOB STATES
# ============================================================================


class ExtractionState(str, Enum):
    """Lifecycle of an :class:`ExtractionJob`."""

    IDLE = "idle"
    OPENING = "opening"
    READING_ENTRY = "reading_entry"
    RESOLVING_PATH = "resolving_path"
    WRITING = "writing"
    CLOSING = "closing"
    DONE = "done"
    CANCELLED = "cancelled"


_TERMINAL_STATES = {ExtractionState.DONE, ExtractionState.CANCELLED}


def _is_invalid_path(error: ExtractionError) -> bool:
    if isinstance(error, InvalidPathError):
        return True
    return isinstance(error, ArchiveEntryError) and error.kind is ArchiveErrorKind.INVALID_PATH


# ============================================================================
# EXTRACTION JOB
# ============================================================================


class ExtractionJob:
    """One extraction of one archive into one destination root.

    Options may be passed as an :class:`ExtractionOptions` instance or as
    keyword arguments (``dir=...``, ``dry_run=...``, or their camelCase
    aliases). Keyword options are validated when the job runs, so invalid
    options are reported through ``on_complete`` like any other failure.

    Args:
        archive_path: ZIP archive to extract.
        options: Pre-built options; mutually exclusive with keyword options.
        on_complete: ``on_complete(error)`` called exactly once, with ``None``
            on success or the single fatal error.
        logger: Logger override; defaults to this module's logger.
    """

    def __init__(
        self,
        archive_path: Union[Path, str],
        options: Optional[ExtractionOptions] = None,
        *,
        on_complete: Optional[CompletionCallback] = None,
        logger: Optional[logging.Logger] = None,
        **option_values: Any,
    ) -> None:
        if options is not None and option_values:
            raise TypeError("pass either an ExtractionOptions instance or keyword options")
        self.archive_path = Path(archive_path)
        self.options = options
        self._option_values = option_values
        self.on_complete = on_complete
        self.logger = logger or logging.getLogger(__name__)

        self.token = CancellationToken()
        self.metrics = ExtractionMetrics()
        self.root: Optional[Path] = None
        self.reader: Optional[ZipArchiveReader] = None
        self.error: Optional[BaseException] = None
        self._state = ExtractionState.IDLE
        self._completed = False
        self._umask = 0
        self._extracted: list[Path] = []

    @property
    def state(self) -> ExtractionState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self.token.is_cancelled()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> ExtractionResult:
        """Run the job to completion.

        Returns:
            The extraction result on success.

        Raises:
            ExtractionError: The first fatal error encountered.
            RuntimeError: If the job has already been run.
        """

        if self._state is not ExtractionState.IDLE:
            raise RuntimeError("ExtractionJob.run() may only be called once")

        try:
            result = self._drive()
        except Exception as exc:
            self._abort(exc)
            self._complete(exc)
            raise
        finally:
            self._close_reader()

        self._complete(None)
        return result

    def _transition(self, state: ExtractionState) -> None:
        if self._state in _TERMINAL_STATES:
            return
        self._state = state
        self.logger.debug(
            "extraction state %s",
            state.value,
            extra={"stage": "extract", "state": state.value, "archive": str(self.archive_path)},
        )

    def _abort(self, error: BaseException) -> None:
        self.error = error
        self.token.cancel(str(error))
        code = getattr(error, "code", None)
        self.metrics.error_code = code.value if isinstance(code, ExtractionErrorCode) else None
        self._close_reader()
        self._state = ExtractionState.CANCELLED
        # The error itself propagates to the caller; log the context only.
        self.logger.info(
            "extraction aborted: %s",
            error,
            extra={
                "stage": "extract",
                "archive": str(self.archive_path),
                "entry": getattr(error, "entry_name", None),
                "error_code": self.metrics.error_code,
            },
        )

    def _complete(self, error: Optional[BaseException]) -> None:
        if self._completed:
            return
        self._completed = True
        self.metrics.finalize()
        if error is None:
            self.logger.info(
                "extracted archive",
                extra={
                    "stage": "extract",
                    "archive": str(self.archive_path),
                    "extra_fields": self.metrics.to_dict(),
                },
            )
        if self.on_complete is not None:
            self.on_complete(error)

    def _close_reader(self) -> None:
        if self.reader is not None and not self.reader.closed:
            self.reader.close()

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _drive(self) -> ExtractionResult:
        self._transition(ExtractionState.OPENING)
        options = self._resolve_options()
        self.root = self._open_root(options)
        self.reader = ZipArchiveReader.open(self.archive_path)
        self._umask = current_umask()
        writer = EntryWriter(self.token, logger=self.logger)

        while True:
            self._transition(ExtractionState.READING_ENTRY)
            try:
                entry = self.reader.read_entry()
            except ArchiveEntryError as exc:
                self._handle_entry_error(exc, options)
                continue
            if entry is None:
                break
            self._process_entry(entry, options, writer)

        self._transition(ExtractionState.CLOSING)
        self._close_reader()
        self._transition(ExtractionState.DONE)
        return ExtractionResult(
            root=self.root,
            extracted=list(self._extracted),
            metrics=self.metrics,
            dry_run=options.dry_run,
        )

    def _resolve_options(self) -> ExtractionOptions:
        if self.options is None:
            try:
                self.options = ExtractionOptions(**self._option_values)
            except ValidationError as exc:
                raise ConfigError(error_message(ExtractionErrorCode.CONFIG, str(exc))) from exc
        return self.options

    def _open_root(self, options: ExtractionOptions) -> Path:
        destination = options.dir
        if not destination.is_absolute():
            raise ConfigError("Target directory is expected to be absolute")
        self.logger.debug(
            "creating target directory",
            extra={"stage": "open", "path": str(destination)},
        )
        try:
            ensure_dir(destination)
        except OSError as exc:
            raise ExtractIOError.from_os_error(exc, action="create directory") from exc
        return canonicalize(destination)

    # ------------------------------------------------------------------
    # Entry pipeline
    # ------------------------------------------------------------------

    def _handle_entry_error(self, error: ExtractionError, options: ExtractionOptions) -> None:
        """Swallow an ignorable entry error or re-raise it as fatal."""

        if options.ignore_invalid_paths and _is_invalid_path(error):
            self.metrics.entries_ignored += 1
            self.logger.warning(
                "skipping entry with invalid path: %s",
                error,
                extra={"stage": "read", "entry": error.entry_name},
            )
            return

        hook = options.on_entry_error
        if hook is not None and not hook(error, self.reader):
            self.metrics.entries_ignored += 1
            self.logger.warning(
                "entry error ignored, reading next entry: %s",
                error,
                extra={"stage": "read", "entry": error.entry_name},
            )
            return

        raise error

    def _process_entry(
        self,
        entry: ZipEntry,
        options: ExtractionOptions,
        writer: EntryWriter,
    ) -> None:
        if self.token.is_cancelled():
            self.logger.debug(
                "skipping entry, job cancelled",
                extra={"stage": "extract", "entry": entry.file_name},
            )
            return

        self.metrics.entries_seen += 1
        if is_metadata_entry(entry.file_name):
            self.metrics.entries_skipped += 1
            self.logger.debug(
                "skipping metadata entry",
                extra={"stage": "extract", "entry": entry.file_name},
            )
            return

        self._transition(ExtractionState.RESOLVING_PATH)
        assert self.root is not None and self.reader is not None
        try:
            target = resolve_target(self.root, entry.file_name)
        except InvalidPathError as exc:
            self._handle_entry_error(exc, options)
            return

        target = verify_containment(self.root, target)
        try:
            ensure_dir(target.parent_dir)
        except OSError as exc:
            raise ExtractIOError.from_os_error(
                exc, entry_name=entry.file_name, action="create directory"
            ) from exc
        target = verify_containment(self.root, target)

        entry_mode = resolve_mode(
            entry,
            default_dir_mode=options.default_dir_mode,
            default_file_mode=options.default_file_mode,
            umask=self._umask,
        )
        self.logger.debug(
            "extracting entry",
            extra={
                "stage": "extract",
                "entry": entry.file_name,
                "extra_fields": {
                    "is_dir": entry_mode.is_dir,
                    "is_symlink": entry_mode.is_symlink,
                    "mode": oct(entry_mode.permissions),
                },
            },
        )

        if options.on_entry is not None:
            options.on_entry(entry, self.reader)

        self._transition(ExtractionState.WRITING)
        reader = self.reader
        outcome = writer.write(
            target,
            entry_mode,
            lambda: reader.open_read_stream(entry),
            dry_run=options.dry_run,
        )

        if outcome.kind in ("planned", "cancelled"):
            return
        self.metrics.entries_extracted += 1
        self.metrics.bytes_written += outcome.bytes_written
        if outcome.kind == "directory":
            self.metrics.directories_created += 1
        elif outcome.kind == "symlink":
            self.metrics.symlinks_created += 1
        self._extracted.append(outcome.path)
        self.logger.debug(
            "finished processing",
            extra={"stage": "extract", "entry": entry.file_name},
        )


# ============================================================================
# PUBLIC API
# ============================================================================


def extract_zip(
    archive_path: Union[Path, str],
    options: Optional[ExtractionOptions] = None,
    *,
    on_complete: Optional[CompletionCallback] = None,
    logger: Optional[logging.Logger] = None,
    **option_values: Any,
) -> ExtractionResult:
    """Extract ``archive_path`` safely.

    Args:
        archive_path: ZIP archive to extract.
        options: Pre-built :class:`ExtractionOptions`.
        on_complete: Called exactly once with ``None`` or the fatal error.
        logger: Logger override.
        **option_values: Keyword options (``dir`` is required) used when
            ``options`` is not given.

    Returns:
        :class:`ExtractionResult` with the canonical root, extracted paths in
        archive order, and job metrics.

    Raises:
        ExtractionError: The first fatal error; nothing is rolled back.
    """

    job = ExtractionJob(
        archive_path,
        options,
        on_complete=on_complete,
        logger=logger,
        **option_values,
    )
    return job.run()


__all__ = ["ExtractionJob", "ExtractionState", "extract_zip"]
