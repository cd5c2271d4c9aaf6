"""Reclaim data models."""

from reclaim.models.item import Category, CleanupItem, RiskLevel
from reclaim.models.report import CleanupFailure, CleanupRunReport, ErrorKind, HistoryEntry, RunStatus
from reclaim.models.settings import CustomRule, ScanSettings

__all__ = [
    "Category",
    "CleanupFailure",
    "CleanupItem",
    "CleanupRunReport",
    "CustomRule",
    "ErrorKind",
    "HistoryEntry",
    "RiskLevel",
    "RunStatus",
    "ScanSettings",
]
