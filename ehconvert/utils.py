"""Cross-cutting helpers: constants, item discovery, backup handling."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_APP_NAME = "ehviewer"
BACKUP_SUFFIX = ".bak"
LOG_FILE_NAME = "ehviewer-convert.log"


def info_file_name(app_name: str = DEFAULT_APP_NAME) -> str:
    """Name of the metadata file inside each item, e.g. ``.ehviewer``."""
    return f".{app_name}"


def backup_file_name(app_name: str = DEFAULT_APP_NAME) -> str:
    return info_file_name(app_name) + BACKUP_SUFFIX


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def discover_items(input_dir: Path) -> list[Path]:
    """Return the immediate subdirectories of *input_dir*, sorted by name."""
    if not input_dir.is_dir():
        return []
    return sorted(p for p in input_dir.iterdir() if p.is_dir())


def item_paths(item_dir: Path, app_name: str = DEFAULT_APP_NAME) -> tuple[Path, Path]:
    """Return (metadata_file, backup_file) for *item_dir*."""
    return item_dir / info_file_name(app_name), item_dir / backup_file_name(app_name)


def ensure_backup(src: Path, bak: Path) -> bool:
    """Copy *src* to *bak* unless a backup already exists.

    The first backup is the original file and is never overwritten.
    Returns True when a copy was made.
    """
    if bak.exists():
        log.debug("Backup already present: %s", bak)
        return False
    shutil.copyfile(src, bak)
    log.debug("Backed up %s -> %s", src, bak)
    return True
