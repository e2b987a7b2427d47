# === NAVMAP v1 ===
# {
#   "module": "ZipExtract.archive",
#   "purpose": "Lazy, one-entry-at-a-time adapter over the standard library ZIP reader",
#   "sections": [
#     {"id": "entry", "name": "ZipEntry", "anchor": "ENT", "kind": "dataclass"},
#     {"id": "reader", "name": "ZipArchiveReader", "anchor": "RDR", "kind": "api"},
#     {"id": "stream", "name": "Guarded Content Stream", "anchor": "STR", "kind": "helpers"}
#   ]
# }
# === /NAVMAP ===

"""Lazy, one-entry-at-a-time adapter over :mod:`zipfile`.

The extraction driver never sees :mod:`zipfile` exceptions. Failures are
classified once, here, into :class:`~ZipExtract.errors.OpenError` (the archive
itself is unusable) or :class:`~ZipExtract.errors.ArchiveEntryError` tagged
with an :class:`~ZipExtract.errors.ArchiveErrorKind` (one entry is unusable
and the reader can move on to the next).

Entries are staged explicitly: :meth:`ZipArchiveReader.read_entry` hands out
the next entry only when the caller asks for it.
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, List, Optional, Union

from .errors import ArchiveEntryError, ArchiveErrorKind, InvalidPathError, OpenError
from .paths import validate_entry_name
from .telemetry import ExtractionErrorCode, error_message

_ENCRYPTED_FLAG = 0x1

_SUPPORTED_COMPRESSION = {
    zipfile.ZIP_STORED,
    zipfile.ZIP_DEFLATED,
    zipfile.ZIP_BZIP2,
    zipfile.ZIP_LZMA,
}
if hasattr(zipfile, "ZIP_ZSTANDARD"):
    _SUPPORTED_COMPRESSION.add(zipfile.ZIP_ZSTANDARD)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZipEntry:
    """Metadata for one archive entry.

    Attributes:
        file_name: Raw entry name, exactly as stored (possibly adversarial).
        external_attr: 32-bit platform attribute field.
        version_made_by: 16-bit "version made by" field; the high byte is the
            host-system code.
        file_size: Declared uncompressed size.
        compress_size: Compressed size.
        index: Position in the central directory.
    """

    file_name: str
    external_attr: int
    version_made_by: int
    file_size: int = 0
    compress_size: int = 0
    index: int = 0
    info: Optional[zipfile.ZipInfo] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_info(cls, info: zipfile.ZipInfo, index: int) -> "ZipEntry":
        return cls(
            file_name=info.filename,
            external_attr=info.external_attr,
            version_made_by=(info.create_system << 8) | info.create_version,
            file_size=info.file_size,
            compress_size=info.compress_size,
            index=index,
            info=info,
        )


class _GuardedStream(io.RawIOBase):
    """Content stream that reports corrupt entry data as ``ArchiveEntryError``."""

    def __init__(self, raw: IO[bytes], entry_name: str) -> None:
        super().__init__()
        self._raw = raw
        self._entry_name = entry_name

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        try:
            data = self._raw.read(len(buffer))
        except (zipfile.BadZipFile, EOFError, zlib.error) as exc:
            raise ArchiveEntryError(
                f"corrupt entry data in {self._entry_name}: {exc}",
                kind=ArchiveErrorKind.CORRUPT,
                entry_name=self._entry_name,
            ) from exc
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        try:
            self._raw.close()
        finally:
            super().close()


class ZipArchiveReader:
    """Sequential reader over a ZIP archive.

    Examples:
        >>> with ZipArchiveReader.open("bundle.zip") as reader:  # doctest: +SKIP
        ...     entry = reader.read_entry()
        ...     while entry is not None:
        ...         entry = reader.read_entry()
    """

    def __init__(self, archive_path: Path, zip_file: zipfile.ZipFile) -> None:
        self.archive_path = archive_path
        self._zip = zip_file
        self._infos: List[zipfile.ZipInfo] = zip_file.infolist()
        self._next_index = 0
        self._closed = False

    @classmethod
    def open(cls, archive_path: Union[Path, str]) -> "ZipArchiveReader":
        """Open ``archive_path`` and read its central directory.

        Raises:
            OpenError: If the file is missing, unreadable, or not a valid ZIP.
        """

        path = Path(archive_path)
        try:
            zip_file = zipfile.ZipFile(path, "r")
        except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
            raise OpenError(
                error_message(ExtractionErrorCode.OPEN, f"{path}: {exc}")
            ) from exc
        logger.debug(
            "opened archive",
            extra={"stage": "open", "archive": str(path), "entries": len(zip_file.infolist())},
        )
        return cls(path, zip_file)

    @property
    def entry_count(self) -> int:
        return len(self._infos)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def ended(self) -> bool:
        """``True`` once every entry has been staged."""
        return self._next_index >= len(self._infos)

    def read_entry(self) -> Optional[ZipEntry]:
        """Stage the next entry.

        Returns:
            The next entry, or ``None`` when the archive is exhausted or the
            reader has been closed.

        Raises:
            ArchiveEntryError: If the entry cannot be extracted. The reader has
                already advanced, so calling again yields the following entry.
        """

        if self._closed or self.ended:
            return None
        index = self._next_index
        self._next_index += 1
        entry = ZipEntry.from_info(self._infos[index], index)

        try:
            validate_entry_name(entry.file_name)
        except InvalidPathError as exc:
            raise ArchiveEntryError(
                str(exc), kind=ArchiveErrorKind.INVALID_PATH, entry_name=entry.file_name
            ) from exc
        if entry.info is not None and entry.info.flag_bits & _ENCRYPTED_FLAG:
            raise ArchiveEntryError(
                f"encrypted entries not supported: {entry.file_name}",
                kind=ArchiveErrorKind.UNSUPPORTED,
                entry_name=entry.file_name,
            )
        if entry.info is not None and entry.info.compress_type not in _SUPPORTED_COMPRESSION:
            raise ArchiveEntryError(
                f"unsupported compression method {entry.info.compress_type}: {entry.file_name}",
                kind=ArchiveErrorKind.UNSUPPORTED,
                entry_name=entry.file_name,
            )
        return entry

    def open_read_stream(self, entry: ZipEntry) -> IO[bytes]:
        """Open a readable stream over ``entry``'s uncompressed content.

        Raises:
            ArchiveEntryError: If the local header is corrupt or the
                compression method cannot be decoded.
        """

        target = entry.info if entry.info is not None else entry.file_name
        try:
            raw = self._zip.open(target, "r")
        except (zipfile.BadZipFile, KeyError) as exc:
            raise ArchiveEntryError(
                f"corrupt entry {entry.file_name}: {exc}",
                kind=ArchiveErrorKind.CORRUPT,
                entry_name=entry.file_name,
            ) from exc
        except (NotImplementedError, RuntimeError) as exc:
            raise ArchiveEntryError(
                f"cannot decode entry {entry.file_name}: {exc}",
                kind=ArchiveErrorKind.UNSUPPORTED,
                entry_name=entry.file_name,
            ) from exc
        return io.BufferedReader(_GuardedStream(raw, entry.file_name))

    def close(self) -> None:
        """Close the underlying archive file. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._zip.close()
        logger.debug("closed archive", extra={"stage": "close", "archive": str(self.archive_path)})

    def __enter__(self) -> "ZipArchiveReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["ZipArchiveReader", "ZipEntry"]
