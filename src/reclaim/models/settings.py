"""Scan settings dataclass and its persisted document shape."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any

from reclaim.models.item import Category, RiskLevel

log = logging.getLogger(__name__)

MB = 1024 * 1024
GB = 1024 * MB


@dataclass(slots=True)
class CustomRule:
    """Glob rule overriding the risk of matching entries."""

    name: str
    pattern: str
    enabled: bool = True
    risk: RiskLevel = RiskLevel.MEDIUM

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "pattern": self.pattern, "enabled": self.enabled, "riskLevel": self.risk.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CustomRule:
        return cls(
            name=str(data.get("name", "")),
            pattern=str(data["pattern"]),
            enabled=_parse_bool(data.get("enabled", True)),
            risk=RiskLevel(data.get("riskLevel", RiskLevel.MEDIUM.value)),
        )


def _all_categories() -> list[Category]:
    return list(Category)


@dataclass(slots=True)
class ScanSettings:
    """User-configurable scan and cleanup policy."""

    active_categories: list[Category] = field(default_factory=_all_categories)
    min_file_size: int = MB
    max_file_age: int = 365
    large_file_size: int = GB
    auto_scan_on_launch: bool = True
    confirm_before_delete: bool = True
    create_backup: bool = True
    scan_hidden_files: bool = False
    exclude_system_files: bool = True
    custom_excluded_paths: list[str] = field(default_factory=list)
    risk_overrides: dict[Category, RiskLevel] = field(default_factory=dict)
    custom_rules: list[CustomRule] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted camelCase document."""
        return {
            "activeCategories": [c.value for c in self.active_categories],
            "minFileSize": self.min_file_size,
            "maxFileAge": self.max_file_age,
            "largeFileSize": self.large_file_size,
            "autoScanOnLaunch": self.auto_scan_on_launch,
            "confirmBeforeDelete": self.confirm_before_delete,
            "createBackup": self.create_backup,
            "scanHiddenFiles": self.scan_hidden_files,
            "excludeSystemFiles": self.exclude_system_files,
            "customExcludedPaths": list(self.custom_excluded_paths),
            "riskOverrides": {c.value: r.value for c, r in self.risk_overrides.items()},
            "customRules": [r.to_dict() for r in self.custom_rules],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScanSettings:
        """Build settings from a persisted document.

        Missing keys keep their defaults; unknown keys and invalid
        category or risk names are dropped with a warning.
        """
        settings = cls()
        for key, value in data.items():
            attr = _DOCUMENT_KEYS.get(key)
            if attr is None:
                log.warning("Ignoring unknown settings key: %s", key)
                continue
            try:
                setattr(settings, attr, _parse_value(attr, value))
            except (TypeError, ValueError, KeyError) as e:
                log.warning("Ignoring invalid value for %s: %s", key, e)
        return settings

    def copy(self) -> ScanSettings:
        return ScanSettings.from_dict(self.to_dict())

    def with_changes(self, **changes: Any) -> ScanSettings:
        """Return a copy with *changes* applied.

        Keys may be attribute names or document keys. Unlike ``from_dict``
        this raises ``ValueError`` for unknown keys and invalid values.
        """
        updated = self.copy()
        for key, value in changes.items():
            attr = key if key in SETTINGS_FIELDS else _DOCUMENT_KEYS.get(key)
            if attr is None:
                raise ValueError(f"Unknown setting: {key}")
            try:
                setattr(updated, attr, _parse_value(attr, value, strict=True))
            except (TypeError, ValueError, KeyError) as e:
                raise ValueError(f"Invalid value for {key}: {e}") from e
        return updated


def _parse_categories(values: list[Any], strict: bool = False) -> list[Category]:
    categories: list[Category] = []
    for value in values:
        try:
            category = Category(value)
        except ValueError:
            if strict:
                raise ValueError(f"Unknown category: {value}") from None
            log.warning("Ignoring unknown category: %s", value)
            continue
        if category not in categories:
            categories.append(category)
    return categories


def _parse_overrides(values: dict[str, Any], strict: bool = False) -> dict[Category, RiskLevel]:
    overrides: dict[Category, RiskLevel] = {}
    for key, value in values.items():
        try:
            overrides[Category(key)] = RiskLevel(value)
        except ValueError:
            if strict:
                raise ValueError(f"Invalid risk override: {key}={value}") from None
            log.warning("Ignoring invalid risk override: %s=%s", key, value)
    return overrides


_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0"})


def _parse_bool(value: Any) -> bool:
    """Accept real booleans, 0/1 and the usual true/false spellings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_value(attr: str, value: Any, strict: bool = False) -> Any:
    match attr:
        case "active_categories":
            return _parse_categories(list(value), strict)
        case "min_file_size" | "max_file_age" | "large_file_size":
            number = int(value)
            if number < 0:
                raise ValueError(f"must not be negative: {number}")
            return number
        case "custom_excluded_paths":
            return [str(v) for v in value]
        case "risk_overrides":
            return _parse_overrides(dict(value), strict)
        case "custom_rules":
            return [CustomRule.from_dict(v) for v in value]
        case _:
            return _parse_bool(value)


_DOCUMENT_KEYS = {
    "activeCategories": "active_categories",
    "minFileSize": "min_file_size",
    "maxFileAge": "max_file_age",
    "largeFileSize": "large_file_size",
    "autoScanOnLaunch": "auto_scan_on_launch",
    "confirmBeforeDelete": "confirm_before_delete",
    "createBackup": "create_backup",
    "scanHiddenFiles": "scan_hidden_files",
    "excludeSystemFiles": "exclude_system_files",
    "customExcludedPaths": "custom_excluded_paths",
    "riskOverrides": "risk_overrides",
    "customRules": "custom_rules",
}

SETTINGS_FIELDS = frozenset(f.name for f in fields(ScanSettings))
