# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for suite",
#   "sections": [
#     {"id": "globals", "name": "sys.path setup", "anchor": "GLB", "kind": "infra"},
#     {"id": "fixtures", "name": "Shared Fixtures", "anchor": "FIX", "kind": "fixtures"}
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

This module configures shared pytest behaviour: ``src`` is put on
``sys.path`` so the suite runs against a plain checkout, the ``ZipExtract``
logger is reset between tests, and the process umask can be pinned for tests
that assert permission bits.

Usage:
    pytest tests/zip_extract
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Iterator

import pytest

# --- Globals ---

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

TEST_UMASK = 0o022


# --- Fixtures ---


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Drop handlers installed by ``setup_logging`` so streams never leak across tests."""

    yield
    logger = logging.getLogger("ZipExtract")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fixed_umask() -> Iterator[int]:
    """Pin the process umask to ``0o022`` for the duration of a test."""

    previous = os.umask(TEST_UMASK)
    try:
        yield TEST_UMASK
    finally:
        os.umask(previous)
