"""JSON-backed store for the scan settings."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from reclaim.models.settings import ScanSettings
from reclaim.utils import xdg_config_home

log = logging.getLogger(__name__)

_SETTINGS_DIR = "reclaim"
_SETTINGS_FILE = "settings.json"


class SettingsStore:
    """Persistent ``ScanSettings`` backed by a JSON file.

    The document is read once at construction and rewritten on every
    change. A missing or corrupt file yields the defaults.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _SETTINGS_DIR / _SETTINGS_FILE)
        self._settings = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def settings(self) -> ScanSettings:
        """A copy of the current settings."""
        return self._settings.copy()

    def update(self, **changes: Any) -> ScanSettings:
        """Apply *changes* and persist; raises ``ValueError`` on bad input."""
        self._settings = self._settings.with_changes(**changes)
        self._save()
        return self.settings

    def replace(self, settings: ScanSettings) -> None:
        self._settings = settings.copy()
        self._save()

    def reset(self) -> ScanSettings:
        """Restore the defaults and persist them."""
        self._settings = ScanSettings()
        self._save()
        return self.settings

    def _load(self) -> ScanSettings:
        """Load settings from disk, gracefully handling errors."""
        if not self._path.exists():
            return ScanSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("settings document is not an object")
        except (json.JSONDecodeError, OSError, ValueError) as e:
            log.warning("Could not load settings from %s: %s", self._path, e)
            return ScanSettings()
        return ScanSettings.from_dict(data)

    def _save(self) -> None:
        """Persist settings to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(self._settings.to_dict(), indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self._path, e)
