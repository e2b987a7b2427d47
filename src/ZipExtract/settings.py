# === NAVMAP v1 ===
# {
#   "module": "ZipExtract.settings",
#   "purpose": "Job options and environment overrides for ZIP extraction",
#   "sections": [
#     {"id": "options", "name": "Extraction Options", "anchor": "OPT", "kind": "pydantic"},
#     {"id": "env", "name": "Environment Overrides", "anchor": "ENV", "kind": "pydantic-settings"},
#     {"id": "factory", "name": "Option Factory", "anchor": "FAC", "kind": "factory"}
#   ]
# }
# === /NAVMAP ===

"""Job options and environment overrides for ZIP extraction.

:class:`ExtractionOptions` is the per-job configuration consumed by the
extraction driver. Field names follow Python conventions, but the camelCase
spellings used by older callers (``dryRun``, ``ignoreInvalidPaths``,
``defaultDirMode`` ...) are accepted as aliases.

:class:`EnvironmentOverrides` reads ``EXTRACT_ZIP_*`` variables so the command
line front end can toggle dry-run and invalid-path handling without flags.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError
from .telemetry import ExtractionErrorCode, error_message

DEFAULT_DIR_MODE = 0o755
DEFAULT_FILE_MODE = 0o644

EntryObserver = Callable[..., Any]
EntryErrorHandler = Callable[..., Any]

_TRUTHY = {"1", "true", "yes", "on", "y", "t"}


def _parse_mode(value: Any) -> int:
    """Accept octal strings (``"0755"``, ``"755"``, ``"0o755"``) or ints."""

    if isinstance(value, bool):
        raise ValueError(f"Mode must be int or octal string, got {type(value)}")
    if isinstance(value, str):
        text = value.strip().lower()
        if text.startswith("0o"):
            text = text[2:]
        try:
            value = int(text, 8)
        except ValueError as exc:
            raise ValueError(f"Mode must be an octal string, got {value!r}") from exc
    if not isinstance(value, int):
        raise ValueError(f"Mode must be int or octal string, got {type(value)}")
    if value <= 0 or value > 0o7777:
        raise ValueError(f"Mode must be in range [0o001, 0o7777], got {oct(value)}")
    return value


class ExtractionOptions(BaseModel):
    """Options for a single extraction job.

    Only ``dir`` is required. It must be an absolute path; the driver checks
    this before touching the filesystem and raises :class:`ConfigError`
    otherwise.

    Attributes:
        dir: Destination root for the extracted entries.
        dry_run: Create directories for bookkeeping but write no file
            content or symlinks.
        ignore_invalid_paths: Skip entries whose names are rejected as
            invalid instead of failing the job.
        default_dir_mode: Permission bits for directories whose archive
            metadata carries none.
        default_file_mode: Permission bits for files whose archive metadata
            carries none.
        on_entry: ``on_entry(entry, reader)`` observer called before each
            entry is written.
        on_entry_error: ``on_entry_error(error, reader)`` interceptor for
            archive-level entry errors. A truthy return makes the error fatal;
            a falsy return skips the entry.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    dir: Path = Field(description="Destination directory (absolute path)")

    dry_run: bool = Field(
        default=False,
        alias="dryRun",
        description="Plan the extraction without writing file content or symlinks",
    )

    ignore_invalid_paths: bool = Field(
        default=False,
        alias="ignoreInvalidPaths",
        description="Skip entries with invalid names instead of aborting",
    )

    default_dir_mode: int = Field(
        default=DEFAULT_DIR_MODE,
        alias="defaultDirMode",
        description="Directory mode used when the archive records none (octal)",
    )

    default_file_mode: int = Field(
        default=DEFAULT_FILE_MODE,
        alias="defaultFileMode",
        description="File mode used when the archive records none (octal)",
    )

    on_entry: Optional[EntryObserver] = Field(
        default=None,
        alias="onEntry",
        description="Observer invoked once per entry before it is written",
    )

    on_entry_error: Optional[EntryErrorHandler] = Field(
        default=None,
        alias="onEntryError",
        description="Interceptor for archive entry errors; truthy return escalates",
    )

    @field_validator("dir", mode="before")
    @classmethod
    def validate_dir(cls, v: Any) -> Any:
        """Reject empty paths; relative ones (``~`` included) are left for the driver to reject."""
        if isinstance(v, str) and not v:
            raise ValueError("Target directory must not be empty")
        return v

    @field_validator("default_dir_mode", "default_file_mode", mode="before")
    @classmethod
    def validate_mode(cls, v: Any) -> int:
        """Accept octal strings or int modes."""
        return _parse_mode(v)

    def summary(self) -> Dict[str, str]:
        """Human-readable summary used by the CLI and debug logging."""
        return {
            "Destination": str(self.dir),
            "Dry Run": "yes" if self.dry_run else "no",
            "Ignore Invalid Paths": "yes" if self.ignore_invalid_paths else "no",
            "Default Dir Mode": oct(self.default_dir_mode),
            "Default File Mode": oct(self.default_file_mode),
        }


class EnvironmentOverrides(BaseSettings):
    """``EXTRACT_ZIP_*`` environment toggles read by the command line."""

    dry_run: bool = False
    ignore_invalid_paths: bool = False
    log_level: Optional[str] = None
    default_dir_mode: Optional[str] = None
    default_file_mode: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="EXTRACT_ZIP_", case_sensitive=False, extra="ignore"
    )

    @field_validator("dry_run", "ignore_invalid_paths", mode="before")
    @classmethod
    def validate_toggle(cls, v: Any) -> Any:
        """Treat empty or unrecognised toggle values as off."""
        if isinstance(v, str):
            return v.strip().lower() in _TRUTHY
        return v


def build_options(destination: Union[Path, str], **overrides: Any) -> ExtractionOptions:
    """Build :class:`ExtractionOptions` from environment toggles and overrides.

    Explicit keyword overrides win over environment variables. ``None`` values
    in ``overrides`` are treated as "not given".

    Raises:
        ConfigError: If the combined options fail validation.
    """

    logger = logging.getLogger("ZipExtract")
    try:
        env = EnvironmentOverrides()
    except ValidationError as exc:
        raise ConfigError(error_message(ExtractionErrorCode.CONFIG, str(exc))) from exc

    values: Dict[str, Any] = {
        "dir": destination,
        "dry_run": env.dry_run,
        "ignore_invalid_paths": env.ignore_invalid_paths,
    }
    if env.default_dir_mode is not None:
        values["default_dir_mode"] = env.default_dir_mode
    if env.default_file_mode is not None:
        values["default_file_mode"] = env.default_file_mode
    for key, value in overrides.items():
        if value is not None:
            values[key] = value

    try:
        options = ExtractionOptions(**values)
    except ValidationError as exc:
        raise ConfigError(error_message(ExtractionErrorCode.CONFIG, str(exc))) from exc

    logger.debug("resolved extraction options", extra={"stage": "config", "options": options.summary()})
    return options


__all__ = [
    "DEFAULT_DIR_MODE",
    "DEFAULT_FILE_MODE",
    "EnvironmentOverrides",
    "ExtractionOptions",
    "build_options",
]
