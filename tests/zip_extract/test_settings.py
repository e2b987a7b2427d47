# === NAVMAP v1 ===
# {
#   "module": "tests.zip_extract.test_settings",
#   "purpose": "Tests for extraction options, mode parsing, and environment overrides",
#   "sections": [
#     {"id": "options", "name": "Option Model Tests", "anchor": "OPT", "kind": "tests"},
#     {"id": "env", "name": "Environment Tests", "anchor": "ENV", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Tests for extraction options, mode parsing, and environment overrides."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ZipExtract.errors import ConfigError
from ZipExtract.settings import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    EnvironmentOverrides,
    ExtractionOptions,
    build_options,
)
from ZipExtract.telemetry import ExtractionErrorCode

_ENV_VARS = (
    "EXTRACT_ZIP_DRY_RUN",
    "EXTRACT_ZIP_IGNORE_INVALID_PATHS",
    "EXTRACT_ZIP_LOG_LEVEL",
    "EXTRACT_ZIP_DEFAULT_DIR_MODE",
    "EXTRACT_ZIP_DEFAULT_FILE_MODE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ============================================================================
# OPTION MODEL
# ============================================================================


def test_defaults() -> None:
    options = ExtractionOptions(dir="/srv/out")

    assert options.dir == Path("/srv/out")
    assert options.dry_run is False
    assert options.ignore_invalid_paths is False
    assert options.default_dir_mode == DEFAULT_DIR_MODE == 0o755
    assert options.default_file_mode == DEFAULT_FILE_MODE == 0o644
    assert options.on_entry is None
    assert options.on_entry_error is None


@pytest.mark.parametrize("value", ["0755", "755", "0o755", " 0755 ", 0o755])
def test_modes_are_parsed_as_octal(value) -> None:
    assert ExtractionOptions(dir="/srv/out", default_dir_mode=value).default_dir_mode == 0o755


@pytest.mark.parametrize("value", ["999", "rwx", "0", 0, -1, 0o10000, True, 1.5])
def test_invalid_modes_are_rejected(value) -> None:
    with pytest.raises(ValidationError):
        ExtractionOptions(dir="/srv/out", default_file_mode=value)


def test_camel_case_aliases_and_field_names() -> None:
    def hook(error, reader):
        return False

    by_alias = ExtractionOptions(
        dir="/srv/out",
        dryRun=True,
        ignoreInvalidPaths=True,
        defaultDirMode="0700",
        defaultFileMode="0600",
        onEntryError=hook,
    )
    by_name = ExtractionOptions(
        dir="/srv/out",
        dry_run=True,
        ignore_invalid_paths=True,
        default_dir_mode="0700",
        default_file_mode="0600",
        on_entry_error=hook,
    )

    assert by_alias.model_dump() == by_name.model_dump()
    assert by_alias.on_entry_error is hook


def test_unknown_options_are_rejected() -> None:
    with pytest.raises(ValidationError):
        ExtractionOptions(dir="/srv/out", overwrite=True)


def test_dir_is_required_and_not_empty() -> None:
    with pytest.raises(ValidationError):
        ExtractionOptions()
    with pytest.raises(ValidationError):
        ExtractionOptions(dir="")


def test_home_and_relative_paths_are_kept_verbatim() -> None:
    home_relative = ExtractionOptions(dir="~/unpacked").dir

    assert home_relative == Path("~/unpacked")
    assert not home_relative.is_absolute()
    assert ExtractionOptions(dir="relative/out").dir == Path("relative/out")


def test_assignment_is_validated() -> None:
    options = ExtractionOptions(dir="/srv/out")
    options.default_file_mode = "0600"

    assert options.default_file_mode == 0o600
    with pytest.raises(ValidationError):
        options.default_file_mode = "nope"


def test_summary() -> None:
    summary = ExtractionOptions(dir="/srv/out", dry_run=True).summary()

    assert summary["Destination"] == "/srv/out"
    assert summary["Dry Run"] == "yes"
    assert summary["Default Dir Mode"] == "0o755"


# ============================================================================
# ENVIRONMENT
# ============================================================================


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXTRACT_ZIP_DRY_RUN", "true")
    monkeypatch.setenv("EXTRACT_ZIP_IGNORE_INVALID_PATHS", "1")
    monkeypatch.setenv("EXTRACT_ZIP_LOG_LEVEL", "debug")
    monkeypatch.setenv("EXTRACT_ZIP_DEFAULT_FILE_MODE", "0600")

    env = EnvironmentOverrides()

    assert env.dry_run is True
    assert env.ignore_invalid_paths is True
    assert env.log_level == "debug"
    assert env.default_file_mode == "0600"


@pytest.mark.parametrize(
    ("value", "expected"),
    [("", False), ("nope", False), ("false", False), ("0", False), ("yes", True), ("TRUE", True), (" on ", True)],
)
def test_environment_toggles_are_lenient(
    monkeypatch: pytest.MonkeyPatch, value: str, expected: bool
) -> None:
    monkeypatch.setenv("EXTRACT_ZIP_DRY_RUN", value)
    monkeypatch.setenv("EXTRACT_ZIP_IGNORE_INVALID_PATHS", value)

    env = EnvironmentOverrides()

    assert env.dry_run is expected
    assert env.ignore_invalid_paths is expected


def test_build_options_with_empty_toggle(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXTRACT_ZIP_DRY_RUN", "")

    assert build_options("/srv/out").dry_run is False


def test_build_options_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXTRACT_ZIP_DRY_RUN", "true")
    monkeypatch.setenv("EXTRACT_ZIP_DEFAULT_DIR_MODE", "0700")

    options = build_options("/srv/out")

    assert options.dry_run is True
    assert options.default_dir_mode == 0o700
    assert options.ignore_invalid_paths is False


def test_explicit_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXTRACT_ZIP_DRY_RUN", "true")

    options = build_options("/srv/out", dry_run=False, default_file_mode=None)

    assert options.dry_run is False
    assert options.default_file_mode == DEFAULT_FILE_MODE


def test_build_options_wraps_validation_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXTRACT_ZIP_DEFAULT_FILE_MODE", "rw-r--r--")

    with pytest.raises(ConfigError) as excinfo:
        build_options("/srv/out")

    assert excinfo.value.code is ExtractionErrorCode.CONFIG
    assert str(excinfo.value).startswith("Invalid extraction options")
