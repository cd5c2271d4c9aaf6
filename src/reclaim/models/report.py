"""Cleanup run report and history entry dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from reclaim.models.item import Category, CleanupItem


class ErrorKind(str, Enum):
    """Why a single item could not be cleaned."""

    PERMISSION_DENIED = "permission-denied"
    NOT_FOUND = "not-found"
    PROTECTED_SYSTEM_FILE = "protected-system-file"
    BACKUP_FAILED = "backup-failed"
    OS_ERROR = "os-error"


class RunStatus(str, Enum):
    """Terminal status of a cleanup run."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class CleanupFailure:
    """One item that failed to clean, with the reason."""

    item: CleanupItem
    kind: ErrorKind
    message: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item.id,
            "name": self.item.name,
            "path": str(self.item.path),
            "kind": self.kind.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(slots=True)
class CleanupRunReport:
    """Outcome of one cleanup invocation."""

    started_at: datetime
    items_processed: int = 0
    total_size_cleaned: int = 0
    successful_deletions: int = 0
    failed_deletions: int = 0
    categories_affected: set[Category] = field(default_factory=set)
    elapsed: float = 0.0
    backup_created: bool = False
    backup_path: Path | None = None
    errors: list[CleanupFailure] = field(default_factory=list)
    status: RunStatus = RunStatus.COMPLETED
    cleaned_ids: list[str] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.status is RunStatus.CANCELLED

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "status": self.status.value,
            "items_processed": self.items_processed,
            "total_size_cleaned": self.total_size_cleaned,
            "successful_deletions": self.successful_deletions,
            "failed_deletions": self.failed_deletions,
            "categories_affected": sorted(c.value for c in self.categories_affected),
            "elapsed": self.elapsed,
            "backup_created": self.backup_created,
            "backup_path": str(self.backup_path) if self.backup_path else None,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Compacted, persisted projection of a cleanup run report."""

    date: datetime
    items_count: int
    total_size: int
    categories: tuple[str, ...] = ()
    risk_levels: tuple[str, ...] = ()

    @classmethod
    def from_report(cls, report: CleanupRunReport, items: list[CleanupItem]) -> HistoryEntry:
        return cls(
            date=report.started_at,
            items_count=report.items_processed,
            total_size=report.total_size_cleaned,
            categories=tuple(sorted({i.category.value for i in items})),
            risk_levels=tuple(sorted({i.risk.value for i in items})),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "items_count": self.items_count,
            "total_size": self.total_size,
            "categories": list(self.categories),
            "risk_levels": list(self.risk_levels),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryEntry:
        return cls(
            date=datetime.fromisoformat(data["date"]),
            items_count=int(data.get("items_count", 0)),
            total_size=int(data.get("total_size", 0)),
            categories=tuple(data.get("categories", ())),
            risk_levels=tuple(data.get("risk_levels", ())),
        )
