"""Cleanup candidate dataclass and its classification enums."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class Category(str, Enum):
    """Origin of a cleanup candidate."""

    SYSTEM_CACHE = "system-cache"
    USER_CACHE = "user-cache"
    LOGS = "logs"
    DOWNLOADS = "downloads"
    TRASH = "trash"
    APPLICATION_SUPPORT = "application-support-cache"
    BROWSER_DATA = "browser-data"
    TEMP = "temp"
    LARGE_FILES = "large-files"
    DUPLICATES = "duplicates"
    OLD_FILES = "old-files"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self][0]

    @property
    def description(self) -> str:
        return CATEGORY_LABELS[self][1]


# Display metadata for shells; the engine never reads it.
CATEGORY_LABELS: dict[Category, tuple[str, str]] = {
    Category.SYSTEM_CACHE: ("System Cache", "System temporary files and caches"),
    Category.USER_CACHE: ("User Cache", "Per-user application cache data"),
    Category.LOGS: ("Logs", "System and application log files"),
    Category.DOWNLOADS: ("Downloads", "Files in the Downloads folder"),
    Category.TRASH: ("Trash", "Contents of the trash"),
    Category.APPLICATION_SUPPORT: ("Application Data", "Per-application support data"),
    Category.BROWSER_DATA: ("Browser Data", "Browser caches and history"),
    Category.TEMP: ("Temporary Files", "Temporary files and folders"),
    Category.LARGE_FILES: ("Large Files", "Files of 1 GB and more"),
    Category.DUPLICATES: ("Duplicates", "Files sharing a name with another file"),
    Category.OLD_FILES: ("Old Files", "Files unused for a long time"),
}


class RiskLevel(str, Enum):
    """How dangerous it is to delete an item: safe < medium < high."""

    SAFE = "safe"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {RiskLevel.SAFE: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class CleanupItem:
    """Single file or directory discovered by a scan.

    Everything except ``selected`` is fixed once the walker creates the
    item; selection is flipped only through the scan orchestrator.
    """

    name: str
    path: Path
    size_bytes: int
    category: Category
    risk: RiskLevel
    modified_at: float
    is_protected: bool = False
    description: str = ""
    selected: bool = False
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "path": str(self.path),
            "size_bytes": self.size_bytes,
            "category": self.category.value,
            "risk": self.risk.value,
            "modified_at": self.modified_at,
            "is_protected": self.is_protected,
            "description": self.description,
            "selected": self.selected,
        }
