"""JSON file storage for cleanup history."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from reclaim.utils import xdg_data_home

log = logging.getLogger(__name__)

_DATA_DIR = xdg_data_home() / "reclaim"

HISTORY_FILE = _DATA_DIR / "history.json"
BACKUP_DIR = _DATA_DIR / "backups"


def load_history(path: Path | None = None) -> list[dict[str, Any]]:
    """Load the history entries (newest first), empty if missing or unreadable."""
    path = path or HISTORY_FILE
    if not path.exists():
        return []
    try:
        with open(path) as f:
            data = json.load(f)
        return list(data.get("entries", []))
    except (json.JSONDecodeError, OSError, AttributeError):
        log.exception("Failed to load history file: %s", path)
        return []


def save_history(entries: list[dict[str, Any]], path: Path | None = None) -> None:
    """Write the history entries to disk as a single document."""
    path = path or HISTORY_FILE
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump({"entries": entries}, f, indent=2)
    except OSError:
        log.exception("Failed to save history file: %s", path)
