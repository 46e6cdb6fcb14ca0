"""Batch converter for EhViewer download metadata.

Public API -- all symbols that tests and external code import live here.
The codec itself is the top-level ``spider_info`` module; this package
walks a download directory and applies it to every item.
"""

from .conversion import convert_item, convert_items, restore_item, restore_items
from .models import ItemRecord
from .utils import (
    BACKUP_SUFFIX,
    DEFAULT_APP_NAME,
    backup_file_name,
    discover_items,
    ensure_backup,
    info_file_name,
    item_paths,
)

__all__ = [
    # Models
    "ItemRecord",
    # Constants
    "DEFAULT_APP_NAME",
    "BACKUP_SUFFIX",
    # Utils
    "info_file_name",
    "backup_file_name",
    "item_paths",
    "discover_items",
    "ensure_backup",
    # Conversion
    "convert_item",
    "convert_items",
    "restore_item",
    "restore_items",
]
