"""Directory-tree walker producing cleanup candidates."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Generator, Iterator

from reclaim.core.filesystem import FileStat, FileSystem, LocalFileSystem
from reclaim.core.policy import PROTECTED_ROOTS, classify, is_protected, should_skip
from reclaim.models.item import Category, CleanupItem
from reclaim.models.settings import ScanSettings

log = logging.getLogger(__name__)

# Immediate children inspected per sampled directory.
SAMPLE_LIMIT = 50


class Walker:
    """Enumerates a root path and yields classified ``CleanupItem`` objects.

    Every per-entry step checks the ``cancel`` event first; a cancelled
    walk stops producing and never emits a half-measured entry. Errors
    listing or stating an entry are swallowed and the entry omitted.
    """

    def __init__(
        self,
        fs: FileSystem | None = None,
        protected_roots: tuple[Path, ...] = PROTECTED_ROOTS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.fs = fs or LocalFileSystem()
        self.protected_roots = protected_roots
        self._clock = clock

    def walk(
        self,
        root: Path | str,
        category: Category,
        settings: ScanSettings,
        cancel: threading.Event | None = None,
    ) -> Iterator[CleanupItem]:
        """Yield cleanup candidates for *category* found under *root*."""
        root = Path(root)
        cancel = cancel or threading.Event()
        if not self.fs.is_dir(root, follow_symlinks=True):
            log.debug("Scan root not found: %s", root)
            return

        if category is Category.LARGE_FILES:
            yield from self._walk_large(root, settings, cancel)
        elif category is Category.DUPLICATES:
            yield from self._walk_duplicates(root, settings, cancel)
        elif category is Category.OLD_FILES:
            yield from self._walk_old(root, settings, cancel)
        else:
            yield from self._walk_sample(root, category, settings, cancel)

    def dir_size(self, path: Path, cancel: threading.Event | None = None) -> int:
        """Recursive sum of file sizes under *path*; unreadable children count as zero."""
        return self.fs.tree_size(path, cancel)

    # ── sampling scans ──────────────────────────────────────────────────

    def _walk_sample(
        self,
        root: Path,
        category: Category,
        settings: ScanSettings,
        cancel: threading.Event,
    ) -> Iterator[CleanupItem]:
        try:
            children = self.fs.list_dir(root)
        except OSError:
            log.debug("Cannot read %s", root)
            return

        for path in children[:SAMPLE_LIMIT]:
            if cancel.is_set():
                return
            if should_skip(path, settings, self.protected_roots):
                continue
            try:
                st = self.fs.stat(path)
            except OSError:
                log.debug("Cannot access: %s", path)
                continue
            size = self.dir_size(path, cancel) if st.is_dir else st.size
            if cancel.is_set():
                return
            item = self._make_item(path, category, size, st.mtime, settings)
            if item is not None:
                yield item

    # ── full-tree scans ─────────────────────────────────────────────────

    def _iter_files(
        self,
        directory: Path,
        settings: ScanSettings,
        cancel: threading.Event,
    ) -> Iterator[tuple[Path, FileStat]]:
        """Depth-first, name-ordered walk over non-directory entries."""
        try:
            children = self.fs.list_dir(directory)
        except OSError:
            log.debug("Cannot read %s", directory)
            return
        for path in children:
            if cancel.is_set():
                return
            if should_skip(path, settings, self.protected_roots):
                continue
            try:
                st = self.fs.stat(path)
            except OSError:
                continue
            if st.is_dir:
                yield from self._iter_files(path, settings, cancel)
            else:
                yield path, st

    def _walk_old(self, root: Path, settings: ScanSettings, cancel: threading.Event) -> Iterator[CleanupItem]:
        now = self._clock()
        for path, st in self._iter_files(root, settings, cancel):
            item = self._make_item(path, Category.OLD_FILES, st.size, st.mtime, settings, now=now)
            if item is not None:
                yield item

    def _walk_duplicates(
        self,
        root: Path,
        settings: ScanSettings,
        cancel: threading.Event,
    ) -> Iterator[CleanupItem]:
        # Every name must be seen before any duplicate can be emitted.
        by_name: dict[str, list[tuple[Path, FileStat]]] = {}
        for path, st in self._iter_files(root, settings, cancel):
            by_name.setdefault(path.name, []).append((path, st))
        if cancel.is_set():
            return

        for occurrences in by_name.values():
            if len(occurrences) < 2:
                continue
            original = occurrences[0][0]
            for path, st in occurrences[1:]:
                if cancel.is_set():
                    return
                item = self._make_item(path, Category.DUPLICATES, st.size, st.mtime, settings, detail=str(original))
                if item is not None:
                    yield item

    def _walk_large(self, root: Path, settings: ScanSettings, cancel: threading.Event) -> Iterator[CleanupItem]:
        yield from self._large_tree(root, settings, cancel)

    def _large_tree(
        self,
        directory: Path,
        settings: ScanSettings,
        cancel: threading.Event,
    ) -> Generator[CleanupItem, None, tuple[int, bool]]:
        """Post-order walk; returns (recursive size, whether anything inside was emitted).

        A directory over the threshold is reported as a unit only when
        none of its contents were reported on their own.
        """
        total = 0
        emitted = False
        try:
            children = self.fs.list_dir(directory)
        except OSError:
            log.debug("Cannot read %s", directory)
            return 0, False

        for path in children:
            if cancel.is_set():
                return total, True
            if should_skip(path, settings, self.protected_roots):
                continue
            try:
                st = self.fs.stat(path)
            except OSError:
                continue

            if st.is_dir:
                size, inner = yield from self._large_tree(path, settings, cancel)
                total += size
                if inner:
                    emitted = True
                    continue
            else:
                size = st.size
                total += size

            if cancel.is_set():
                return total, True
            item = self._make_item(path, Category.LARGE_FILES, size, st.mtime, settings)
            if item is not None:
                emitted = True
                yield item

        return total, emitted

    def _make_item(
        self,
        path: Path,
        category: Category,
        size: int,
        modified_at: float,
        settings: ScanSettings,
        now: float | None = None,
        detail: str | None = None,
    ) -> CleanupItem | None:
        result = classify(category, path, size, modified_at, settings, now=now)
        if result is None:
            return None
        return CleanupItem(
            name=path.name,
            path=path,
            size_bytes=size,
            category=result.category,
            risk=result.risk,
            modified_at=modified_at,
            is_protected=is_protected(path, self.protected_roots),
            description=f"{result.description}: {detail}" if detail else result.description,
        )
