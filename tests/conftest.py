"""Shared fixtures for the converter test suite.

Download directories are built under ``tmp_path``; each item is a
subdirectory holding a ``.ehviewer`` metadata file.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Optional

import pytest

from spider_info import SpiderInfo

# ---------------------------------------------------------------------------
# Configure verbose logging for test debugging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
    force=True,
)
log = logging.getLogger("conftest")

SAMPLE_TEXT = (
    b"VERSION2\n"
    b"0000002a\n"
    b"12345\n"
    b"abctoken\n"
    b"1\n"
    b"2\n"
    b"5\n"
    b"100\n"
    b"0 tok0\n"
    b"3 tok3\n"
)


@pytest.fixture
def sample_text() -> bytes:
    return SAMPLE_TEXT


@pytest.fixture
def sample_info() -> SpiderInfo:
    """The record ``SAMPLE_TEXT`` decodes to."""
    return SpiderInfo(
        start_page=42,
        gid=12345,
        token="abctoken",
        preview_pages=2,
        preview_per_page=5,
        pages=100,
        page_tokens={0: "tok0", 3: "tok3"},
    )


@pytest.fixture
def download_dir(tmp_path: Path) -> Path:
    """Return an empty download directory for a single test."""
    path = tmp_path / "download"
    path.mkdir()
    return path


@pytest.fixture
def make_item(download_dir: Path) -> Callable[..., Path]:
    """Factory creating ``<download_dir>/<name>`` with optional metadata bytes."""

    def _make(name: str, data: Optional[bytes] = None, app_name: str = "ehviewer") -> Path:
        item = download_dir / name
        item.mkdir()
        if data is not None:
            (item / f".{app_name}").write_bytes(data)
        log.debug("created item %s (metadata=%s)", item, data is not None)
        return item

    return _make
