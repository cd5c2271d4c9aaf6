"""Bounded cleanup history and the statistics derived from it."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from reclaim.models.item import CleanupItem, RiskLevel
from reclaim.models.report import CleanupRunReport, HistoryEntry
from reclaim.storage import load_history, save_history

log = logging.getLogger(__name__)

MAX_HISTORY = 50


class HistoryTracker:
    """Keeps the newest-first run history and persists it after each run.

    The history document is read once at construction.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._entries: list[HistoryEntry] = []
        for raw in load_history(path):
            try:
                self._entries.append(HistoryEntry.from_dict(raw))
            except (KeyError, TypeError, ValueError):
                log.warning("Dropping malformed history entry: %r", raw)
        self._entries = self._entries[:MAX_HISTORY]

    @property
    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    @property
    def total_saved(self) -> int:
        return sum(e.total_size for e in self._entries)

    def get_last_clean_time(self) -> datetime | None:
        return self._entries[0].date if self._entries else None

    def record(self, report: CleanupRunReport, items: list[CleanupItem]) -> HistoryEntry:
        """Prepend a run to the history, trim it and persist."""
        entry = HistoryEntry.from_report(report, items)
        self._entries.insert(0, entry)
        del self._entries[MAX_HISTORY:]
        save_history([e.to_dict() for e in self._entries], self._path)
        log.info("Saved run: %d bytes freed from %d items", entry.total_size, entry.items_count)
        return entry

    def clear(self) -> None:
        self._entries.clear()
        save_history([], self._path)

    def get_stats(self, period: str = "all") -> dict[str, Any]:
        """Get aggregated statistics for a time period.

        Args:
            period: One of 'today', 'week', 'month', 'all'.
        """
        match period:
            case "today":
                cutoff = _start_of_today()
            case "week":
                cutoff = _start_of_today() - timedelta(days=7)
            case "month":
                cutoff = _start_of_today() - timedelta(days=30)
            case _:
                cutoff = None

        if cutoff is not None:
            entries = [e for e in self._entries if _aware(e.date) >= cutoff]
        else:
            entries = self._entries

        total_size = sum(e.total_size for e in entries)
        total_items = sum(e.items_count for e in entries)
        interval = average_interval_days(entries)

        per_category: dict[str, int] = {}
        per_risk: dict[str, int] = {}
        for entry in entries:
            for name in entry.categories:
                per_category[name] = per_category.get(name, 0) + 1
            for name in entry.risk_levels:
                per_risk[name] = per_risk.get(name, 0) + 1

        return {
            "period": period,
            "bytes_freed": total_size,
            "items_cleaned": total_items,
            "run_count": len(entries),
            "average_run_bytes": total_size // len(entries) if entries else 0,
            "average_item_bytes": total_size // total_items if total_items else 0,
            "average_interval_days": interval,
            "frequency": frequency_label(interval),
            "safety_ratio": safety_ratio(entries),
            "lifetime_bytes_freed": self.total_saved,
            "per_category": per_category,
            "per_risk": per_risk,
        }


def average_interval_days(entries: list[HistoryEntry]) -> float | None:
    """Mean days between runs; needs at least two runs."""
    if len(entries) < 2:
        return None
    span = _aware(entries[0].date) - _aware(entries[-1].date)
    return abs(span.total_seconds()) / (len(entries) - 1) / 86400


def frequency_label(interval_days: float | None) -> str:
    if interval_days is None:
        return "unknown"
    if interval_days < 1:
        return "daily"
    if interval_days < 7:
        return _every(int(interval_days), "day")
    if interval_days < 30:
        return _every(int(interval_days / 7), "week")
    return _every(int(interval_days / 30), "month")


def _every(count: int, unit: str) -> str:
    return f"every {unit}" if count == 1 else f"every {count} {unit}s"


def safety_ratio(entries: list[HistoryEntry]) -> float | None:
    """Share of recorded risk levels that were ``safe``, as a percentage."""
    levels = [level for e in entries for level in e.risk_levels]
    if not levels:
        return None
    return 100.0 * sum(1 for level in levels if level == RiskLevel.SAFE.value) / len(levels)


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def _start_of_today() -> datetime:
    """Return the start of the current UTC day."""
    now = datetime.now(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)
