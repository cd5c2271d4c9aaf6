"""Shared test fixtures."""

from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

import reclaim.storage as storage
from reclaim.core.filesystem import LocalFileSystem
from reclaim.models.item import Category, CleanupItem, RiskLevel

DAY = 86400


@pytest.fixture
def isolate_storage(tmp_path, monkeypatch):
    """Redirect history, backups and settings to a temp directory."""
    data_dir = tmp_path / "reclaim_data"
    data_dir.mkdir()
    history_file = data_dir / "history.json"
    monkeypatch.setattr(storage, "HISTORY_FILE", history_file)
    monkeypatch.setattr(storage, "BACKUP_DIR", data_dir / "backups")
    monkeypatch.setattr(storage, "_DATA_DIR", data_dir)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    return history_file


class RecordingFileSystem(LocalFileSystem):
    """Local filesystem that records mutating calls and can fail on demand."""

    def __init__(self) -> None:
        self.removed: list[Path] = []
        self.trashed: list[Path] = []
        self.copied: list[tuple[Path, Path]] = []
        self.fail_remove: dict[Path, OSError] = {}

    def remove(self, path: Path) -> None:
        self.removed.append(path)
        if path in self.fail_remove:
            raise self.fail_remove[path]
        super().remove(path)

    def move_to_trash(self, path: Path) -> None:
        # Never touch the real trash from tests.
        self.trashed.append(path)
        super().remove(path)

    def copy(self, src: Path, dst: Path) -> None:
        self.copied.append((src, dst))
        super().copy(src, dst)


@pytest.fixture
def recording_fs():
    return RecordingFileSystem()


def _write_file(path: Path, size: int = 0, age_days: float = 0) -> Path:
    """Create *path* with *size* bytes, backdated by *age_days*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    if age_days:
        stamp = time.time() - age_days * DAY
        os.utime(path, (stamp, stamp))
    return path


@pytest.fixture
def write_file():
    return _write_file


@pytest.fixture
def make_item():
    """Factory for selected cleanup items pointing at real paths."""

    def factory(
        path: Path,
        category: Category = Category.TEMP,
        risk: RiskLevel = RiskLevel.SAFE,
        size: int | None = None,
        selected: bool = True,
        is_protected: bool = False,
    ) -> CleanupItem:
        if size is None:
            size = path.stat().st_size if path.is_file() else 0
        return CleanupItem(
            name=path.name,
            path=path,
            size_bytes=size,
            category=category,
            risk=risk,
            modified_at=time.time(),
            is_protected=is_protected,
            selected=selected,
        )

    return factory
