"""Classification policy: category and risk for discovered entries.

Pure functions over paths, sizes and timestamps. Nothing here touches
the filesystem.
"""

from __future__ import annotations

import fnmatch
import time
from dataclasses import dataclass
from pathlib import Path

from reclaim.models.item import Category, RiskLevel
from reclaim.models.settings import ScanSettings
from reclaim.utils import bytes_to_human, format_relative_time

SECONDS_PER_DAY = 86400

DEFAULT_RISK: dict[Category, RiskLevel] = {
    Category.TRASH: RiskLevel.SAFE,
    Category.TEMP: RiskLevel.SAFE,
    Category.USER_CACHE: RiskLevel.SAFE,
    Category.LOGS: RiskLevel.MEDIUM,
    Category.BROWSER_DATA: RiskLevel.MEDIUM,
    Category.DOWNLOADS: RiskLevel.MEDIUM,
    Category.SYSTEM_CACHE: RiskLevel.HIGH,
    Category.APPLICATION_SUPPORT: RiskLevel.HIGH,
    Category.LARGE_FILES: RiskLevel.HIGH,
    Category.DUPLICATES: RiskLevel.HIGH,
    Category.OLD_FILES: RiskLevel.MEDIUM,
}

# Risk the walker assigns regardless of the table default.
_WALK_RISK: dict[Category, RiskLevel] = {
    Category.LARGE_FILES: RiskLevel.MEDIUM,
    Category.DUPLICATES: RiskLevel.SAFE,
    Category.OLD_FILES: RiskLevel.MEDIUM,
}

PROTECTED_ROOTS: tuple[Path, ...] = tuple(
    Path(p)
    for p in (
        "/System",
        "/bin",
        "/sbin",
        "/usr",
        "/lib",
        "/lib32",
        "/lib64",
        "/boot",
        "/etc",
        "/dev",
        "/proc",
        "/sys",
        "/private/var/db",
    )
)

# OS metadata sentinels, never reported.
NOISE_FILES = frozenset({
    ".DS_Store",
    "Thumbs.db",
    "desktop.ini",
    ".Spotlight-V100",
    ".Trashes",
    ".fseventsd",
    ".localized",
    ".directory",
})

_DESCRIPTIONS: dict[Category, str] = {
    Category.SYSTEM_CACHE: "System cache, can be cleared to recover space",
    Category.USER_CACHE: "Application cache, regenerated automatically",
    Category.LOGS: "Log file, kept for troubleshooting",
    Category.DOWNLOADS: "Downloaded file, review before deleting",
    Category.TRASH: "Already in the trash, safe to delete",
    Category.APPLICATION_SUPPORT: "Application data, settings may be reset",
    Category.BROWSER_DATA: "Browser data, check saved logins first",
    Category.TEMP: "Temporary file, safe to delete",
    Category.LARGE_FILES: "Large file, review manually",
    Category.DUPLICATES: "Duplicate file, the original is kept",
    Category.OLD_FILES: "Old file, make sure it is backed up",
}


@dataclass(frozen=True, slots=True)
class Classification:
    category: Category
    risk: RiskLevel
    description: str


def is_within(path: Path, root: Path) -> bool:
    """Component-wise prefix test (``/usrlocal`` is not under ``/usr``)."""
    return path == root or root in path.parents


def is_protected(path: Path, roots: tuple[Path, ...] = PROTECTED_ROOTS) -> bool:
    """Whether *path* lies under one of the protected system roots."""
    return any(is_within(path, root) for root in roots)


def should_skip(path: Path, settings: ScanSettings, roots: tuple[Path, ...] = PROTECTED_ROOTS) -> bool:
    """Apply the walker skip rules in their fixed order."""
    name = path.name
    if not settings.scan_hidden_files and name.startswith("."):
        return True
    if settings.exclude_system_files and is_protected(path, roots):
        return True
    if name in NOISE_FILES:
        return True
    return any(is_within(path, Path(p).expanduser()) for p in settings.custom_excluded_paths)


def risk_for(category: Category, path: Path, settings: ScanSettings) -> RiskLevel:
    """Resolve the risk of an entry.

    Precedence: enabled custom rule, per-category override, walk risk,
    table default.
    """
    for rule in settings.custom_rules:
        if rule.enabled and (fnmatch.fnmatch(path.name, rule.pattern) or fnmatch.fnmatch(str(path), rule.pattern)):
            return rule.risk
    if category in settings.risk_overrides:
        return settings.risk_overrides[category]
    return _WALK_RISK.get(category, DEFAULT_RISK[category])


def old_file_cutoff(settings: ScanSettings, now: float | None = None) -> float:
    if now is None:
        now = time.time()
    return now - settings.max_file_age * SECONDS_PER_DAY


def describe(category: Category, size_bytes: int, modified_at: float) -> str:
    base = _DESCRIPTIONS[category]
    if category is Category.LARGE_FILES:
        return f"{base} ({bytes_to_human(size_bytes)})"
    if category is Category.OLD_FILES:
        return f"{base} (modified {format_relative_time(modified_at)})"
    return base


def classify(
    hint: Category,
    path: Path,
    size_bytes: int,
    modified_at: float,
    settings: ScanSettings,
    now: float | None = None,
) -> Classification | None:
    """Classify an entry found while scanning for *hint*.

    Returns None when the entry does not qualify: below the minimum
    size, below the large-file threshold, or not old enough.
    Duplicates always qualify.
    """
    if hint is Category.LARGE_FILES:
        if size_bytes < settings.large_file_size:
            return None
    elif hint is not Category.DUPLICATES:
        if size_bytes < settings.min_file_size:
            return None
        if hint is Category.OLD_FILES and modified_at >= old_file_cutoff(settings, now):
            return None

    return Classification(
        category=hint,
        risk=risk_for(hint, path, settings),
        description=describe(hint, size_bytes, modified_at),
    )
