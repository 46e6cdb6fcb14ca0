"""Shared data models for the converter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ItemRecord:
    """Tracks the outcome of converting or restoring one download item."""

    name: str
    path: str
    action: str = "convert"
    status: str = "pending"
    source_format: Optional[str] = None
    error: Optional[str] = None
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status in ("converted", "restored")
