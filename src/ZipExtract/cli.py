# === NAVMAP v1 ===
# {
#   "module": "ZipExtract.cli",
#   "purpose": "Typer command line front end for ZIP extraction",
#   "sections": [
#     {"id": "app", "name": "Typer App", "anchor": "APP", "kind": "infra"},
#     {"id": "command", "name": "extract command", "anchor": "CMD", "kind": "command"},
#     {"id": "main", "name": "main", "anchor": "MAIN", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Typer command line front end for ZIP extraction.

Usage::

    extract-zip ARCHIVE [DESTINATION] [--dry-run] [--ignore-invalid-paths] [-v]

``DESTINATION`` defaults to the current working directory. Dry-run and
invalid-path handling can also be switched on with ``EXTRACT_ZIP_DRY_RUN=true``
and ``EXTRACT_ZIP_IGNORE_INVALID_PATHS=true``. Exit code is 0 on success and 1
on any fatal error, with the message printed to stderr.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from . import __version__
from .errors import ExtractionError
from .extraction import extract_zip
from .logging_config import setup_logging
from .settings import EnvironmentOverrides, build_options

# ============================================================================
# APP (APP)
# ============================================================================

app = typer.Typer(
    name="extract-zip",
    help="Safely extract a ZIP archive into a directory",
    add_completion=False,
)

_console = Console(soft_wrap=True)
_err_console = Console(stderr=True, soft_wrap=True)

USAGE = "Usage: extract-zip foo.zip <targetDirectory>"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"extract-zip {__version__}")
        raise typer.Exit(0)


# ============================================================================
# COMMAND (CMD)
# ============================================================================


@app.command()
def extract(
    archive: Optional[Path] = typer.Argument(None, help="ZIP archive to extract"),
    destination: Optional[Path] = typer.Argument(
        None, help="Target directory (defaults to the current directory)"
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Create directories only; write no file content or symlinks",
    ),
    ignore_invalid_paths: bool = typer.Option(
        False,
        "--ignore-invalid-paths",
        help="Skip entries with invalid names instead of failing",
    ),
    default_dir_mode: Optional[str] = typer.Option(
        None, "--default-dir-mode", help="Octal mode for directories without one"
    ),
    default_file_mode: Optional[str] = typer.Option(
        None, "--default-file-mode", help="Octal mode for files without one"
    ),
    verbosity: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Explicit log level (overrides -v)"
    ),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Extract ARCHIVE into DESTINATION, refusing entries that escape it."""

    if archive is None:
        _err_console.print(escape(USAGE))
        raise typer.Exit(1)

    try:
        env = EnvironmentOverrides()
    except ValidationError as exc:
        _err_console.print(f"[red]error![/red] {escape(str(exc))}")
        raise typer.Exit(1)
    setup_logging(log_level or env.log_level, verbosity=verbosity, json_logs=json_logs)

    target = destination if destination is not None else Path.cwd()
    if not target.is_absolute():
        target = Path.cwd() / target

    try:
        options = build_options(
            target,
            dry_run=True if dry_run else None,
            ignore_invalid_paths=True if ignore_invalid_paths else None,
            default_dir_mode=default_dir_mode,
            default_file_mode=default_file_mode,
        )
        result = extract_zip(archive, options)
    except ExtractionError as exc:
        _err_console.print(f"[red]error![/red] {escape(str(exc))}")
        raise typer.Exit(1)

    metrics = result.metrics
    if result.dry_run:
        _console.print(
            f"[yellow]DRY-RUN:[/yellow] {metrics.entries_seen} entries checked, "
            f"nothing written under {escape(str(result.root))}"
        )
    else:
        _console.print(
            f"Extracted {metrics.entries_extracted} entries to {escape(str(result.root))}"
        )
    if metrics.entries_ignored:
        _console.print(f"[yellow]{metrics.entries_ignored} entries ignored[/yellow]")


# ============================================================================
# MAIN (MAIN)
# ============================================================================


def main() -> None:
    """Console-script entry point."""
    app()


if __name__ == "__main__":
    main()
