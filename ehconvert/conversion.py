"""Per-item conversion and restore of ``.ehviewer`` metadata files."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Iterable

from spider_info import InfoFormat, SpiderInfoError, encode, read_info

from .models import ItemRecord
from .utils import DEFAULT_APP_NAME, ensure_backup, item_paths

log = logging.getLogger(__name__)


def convert_item(
    item_dir: Path,
    fmt: InfoFormat,
    *,
    app_name: str = DEFAULT_APP_NAME,
) -> ItemRecord:
    """Rewrite the metadata file of one item in *fmt*.

    The original file is copied to the backup on first use, and the backup is
    always the decode source, so repeated runs start from the original.
    Never raises for I/O or codec errors; they are captured in the record.
    """
    src, bak = item_paths(item_dir, app_name)
    record = ItemRecord(name=item_dir.name, path=str(item_dir), action="convert")
    t0 = time.time()

    try:
        if not src.exists():
            record.status = "missing"
            record.error = "has no metadata"
            log.error("%s: has no metadata", item_dir.name)
            return record

        ensure_backup(src, bak)
        info, source_format = read_info(bak)
        record.source_format = source_format.name.lower()

        data = encode(info, fmt)
        src.write_bytes(data)
        record.status = "converted"
        log.info(
            "%s: converted %s -> %s (%s bytes)",
            item_dir.name,
            record.source_format,
            fmt.name.lower(),
            len(data),
        )
    except (OSError, SpiderInfoError) as exc:
        record.status = "error"
        record.error = f"{type(exc).__name__}: {exc}"
        log.error("%s: convert failed - %s", item_dir.name, record.error)
    finally:
        record.elapsed_s = round(time.time() - t0, 4)

    return record


def restore_item(item_dir: Path, *, app_name: str = DEFAULT_APP_NAME) -> ItemRecord:
    """Move the backup of one item back over its metadata file."""
    src, bak = item_paths(item_dir, app_name)
    record = ItemRecord(name=item_dir.name, path=str(item_dir), action="restore")
    t0 = time.time()

    try:
        if not bak.exists():
            record.status = "missing"
            record.error = "has no backup"
            log.error("%s: has no backup", item_dir.name)
            return record

        os.replace(bak, src)
        record.status = "restored"
        log.info("%s: restored", item_dir.name)
    except OSError as exc:
        record.status = "error"
        record.error = f"{type(exc).__name__}: {exc}"
        log.error("%s: restore failed - %s", item_dir.name, record.error)
    finally:
        record.elapsed_s = round(time.time() - t0, 4)

    return record


def convert_items(
    items: Iterable[Path],
    fmt: InfoFormat,
    *,
    app_name: str = DEFAULT_APP_NAME,
) -> list[ItemRecord]:
    """Convert every item in order. Returns one record per item."""
    records = [convert_item(item, fmt, app_name=app_name) for item in items]
    _log_summary("Conversion", records)
    return records


def restore_items(
    items: Iterable[Path],
    *,
    app_name: str = DEFAULT_APP_NAME,
) -> list[ItemRecord]:
    records = [restore_item(item, app_name=app_name) for item in items]
    _log_summary("Restore", records)
    return records


def _log_summary(stage: str, records: list[ItemRecord]) -> None:
    success = [r for r in records if r.ok]
    failed = [r for r in records if not r.ok]
    log.info("%s: %s succeeded, %s failed", stage, len(success), len(failed))
