"""Filesystem capability used by the walker and the cleanup executor.

Everything that touches the disk goes through a ``FileSystem`` so tests
can substitute a recording or failing implementation.
"""

from __future__ import annotations

import os
import shutil
import stat as stat_mod
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from send2trash import send2trash


@dataclass(frozen=True, slots=True)
class FileStat:
    """Subset of ``lstat`` the engine cares about."""

    size: int
    mtime: float
    is_dir: bool
    is_symlink: bool = False


class FileSystem(ABC):
    """List, stat, copy, delete and trash primitives."""

    @abstractmethod
    def list_dir(self, path: Path) -> list[Path]:
        """Immediate children of *path*, sorted by name."""

    @abstractmethod
    def stat(self, path: Path) -> FileStat:
        """Attributes of *path* without following symlinks."""

    @abstractmethod
    def copy(self, src: Path, dst: Path) -> None:
        """Copy a file or a directory tree."""

    @abstractmethod
    def remove(self, path: Path) -> None:
        """Permanently delete a file, symlink or directory tree."""

    @abstractmethod
    def move_to_trash(self, path: Path) -> None:
        """Move *path* to the platform trash."""

    @abstractmethod
    def make_dirs(self, path: Path) -> None:
        """Create *path* and missing parents."""

    def exists(self, path: Path) -> bool:
        try:
            self.stat(path)
        except FileNotFoundError:
            return False
        return True

    def is_dir(self, path: Path, follow_symlinks: bool = False) -> bool:
        """Whether *path* is a directory; a link to one counts only when following links."""
        try:
            st = self.stat(path)
            if st.is_symlink and follow_symlinks:
                st = self.stat(path.resolve())
            return st.is_dir
        except (OSError, RuntimeError):
            return False

    def tree_size(self, path: Path, cancel: threading.Event | None = None) -> int:
        """Recursive sum of file sizes under *path*.

        Children that cannot be listed or stated count as zero. A plain
        file reports its own size.
        """
        total = 0
        stack = [path]
        while stack:
            if cancel is not None and cancel.is_set():
                break
            current = stack.pop()
            try:
                st = self.stat(current)
            except OSError:
                continue
            if not st.is_dir:
                total += st.size
                continue
            try:
                stack.extend(self.list_dir(current))
            except OSError:
                continue
        return total

    def can_trash(self, path: Path) -> bool:
        """Whether moving *path* to the trash is meaningful.

        Items already inside a trash can are deleted for real.
        """
        return not in_trash_can(path)


def in_trash_can(path: Path) -> bool:
    parts = path.parts
    if ".Trash" in parts or ".Trashes" in parts:
        return True
    return any(a == "Trash" and b == "files" for a, b in zip(parts, parts[1:]))


class LocalFileSystem(FileSystem):
    """The real local filesystem."""

    def list_dir(self, path: Path) -> list[Path]:
        with os.scandir(path) as it:
            names = sorted(entry.name for entry in it)
        return [path / name for name in names]

    def stat(self, path: Path) -> FileStat:
        st = os.lstat(path)
        return FileStat(
            size=st.st_size,
            mtime=st.st_mtime,
            is_dir=stat_mod.S_ISDIR(st.st_mode),
            is_symlink=stat_mod.S_ISLNK(st.st_mode),
        )

    def copy(self, src: Path, dst: Path) -> None:
        if src.is_dir() and not src.is_symlink():
            shutil.copytree(src, dst, symlinks=True)
        else:
            shutil.copy2(src, dst, follow_symlinks=False)

    def remove(self, path: Path) -> None:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()

    def move_to_trash(self, path: Path) -> None:
        send2trash(str(path))

    def make_dirs(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)
