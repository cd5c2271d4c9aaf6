"""Cleanup executor: deletes a selected, risk-ordered set of items."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

from reclaim.core.errors import (
    BackupFailed,
    CleanupError,
    CleanupInProgressError,
    ItemNotFound,
    ProtectedSystemFile,
    from_os_error,
)
from reclaim.core.filesystem import FileSystem, LocalFileSystem
from reclaim.core.policy import PROTECTED_ROOTS, SECONDS_PER_DAY, is_protected
from reclaim.core.tracker import HistoryTracker
from reclaim.models.item import Category, CleanupItem, RiskLevel
from reclaim.models.report import CleanupFailure, CleanupRunReport, RunStatus

log = logging.getLogger(__name__)

LOG_RETENTION_DAYS = 7
BACKUP_LIMIT = 10
BACKUP_MAX_BYTES = 100_000_000
ITEM_PAUSE = 0.1  # seconds between items

# Cache folders cleared inside a browser root or any of its profiles.
BROWSER_CACHE_DIRS = ("Cache", "Caches", "Code Cache", "GPUCache", "cache2")

_PRUNED_CATEGORIES = frozenset({Category.USER_CACHE, Category.SYSTEM_CACHE, Category.APPLICATION_SUPPORT})


@dataclass(frozen=True, slots=True)
class CleanupSnapshot:
    """Published cleanup state."""

    is_running: bool = False
    progress: float = 0.0
    status: str = ""
    cleaned_bytes: int = 0


CleanupListener = Callable[[CleanupSnapshot], None]
FinishedCallback = Callable[[CleanupRunReport], None]


class CleanupExecutor:
    """Deletes selected items safest-first and reports per-item outcomes.

    Only one run may be active at a time: ``start()`` returns False and
    ``cleanup()`` raises ``CleanupInProgressError`` while busy. Individual
    failures never abort a run; they are recorded in the report.
    """

    def __init__(
        self,
        fs: FileSystem | None = None,
        tracker: HistoryTracker | None = None,
        backup_root: Path | None = None,
        protected_roots: tuple[Path, ...] = PROTECTED_ROOTS,
        pause: float = ITEM_PAUSE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.fs = fs or LocalFileSystem()
        self.tracker = tracker
        self.backup_root = backup_root
        self.protected_roots = protected_roots
        self._pause = pause
        self._clock = clock

        self._lock = threading.Lock()
        self._running = False
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None
        self._state = CleanupSnapshot()
        self._listeners: list[CleanupListener] = []
        self._last_report: CleanupRunReport | None = None

    # ── published state ─────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_report(self) -> CleanupRunReport | None:
        return self._last_report

    def snapshot(self) -> CleanupSnapshot:
        return self._state

    def subscribe(self, listener: CleanupListener) -> Callable[[], None]:
        """Register a state listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, **changes) -> None:
        self._state = CleanupSnapshot(
            is_running=changes.get("is_running", self._state.is_running),
            progress=changes.get("progress", self._state.progress),
            status=changes.get("status", self._state.status),
            cleaned_bytes=changes.get("cleaned_bytes", self._state.cleaned_bytes),
        )
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                log.exception("Cleanup listener failed")

    # ── running ─────────────────────────────────────────────────────────

    def _acquire(self) -> threading.Event | None:
        with self._lock:
            if self._running:
                return None
            self._running = True
            self._cancel = threading.Event()
            return self._cancel

    def _release(self) -> None:
        with self._lock:
            self._running = False

    def cleanup(self, items: Iterable[CleanupItem], create_backup: bool = True) -> CleanupRunReport:
        """Clean the selected subset of *items* in the calling thread."""
        selected = [i for i in items if i.selected]
        cancel = self._acquire()
        if cancel is None:
            raise CleanupInProgressError("A cleanup is already running")
        try:
            return self._run(selected, create_backup, cancel)
        finally:
            self._release()

    def start(
        self,
        items: Iterable[CleanupItem],
        create_backup: bool = True,
        on_finished: FinishedCallback | None = None,
    ) -> bool:
        """Clean the selected subset of *items* on a background thread.

        The selection is captured now; later toggles do not affect the
        run. Returns False without doing anything if a run is active.
        """
        selected = [i for i in items if i.selected]
        cancel = self._acquire()
        if cancel is None:
            log.debug("Cleanup already running, ignoring start request")
            return False

        def worker() -> None:
            try:
                report = self._run(selected, create_backup, cancel)
            finally:
                self._release()
            if on_finished is not None:
                on_finished(report)

        self._thread = threading.Thread(target=worker, name="reclaim-cleanup", daemon=True)
        self._thread.start()
        return True

    def cancel(self) -> None:
        """Stop before the next item; finished items keep their outcome."""
        self._cancel.set()

    def wait(self, timeout: float | None = None) -> bool:
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    @staticmethod
    def estimated_duration(items: Iterable[CleanupItem]) -> float:
        """Rough seconds needed: 0.1 s per selected item plus 0.01 s per MB."""
        selected = [i for i in items if i.selected]
        megabytes = sum(i.size_bytes for i in selected) / (1024 * 1024)
        return len(selected) * 0.1 + megabytes * 0.01

    def _run(self, selected: list[CleanupItem], create_backup: bool, cancel: threading.Event) -> CleanupRunReport:
        started = time.monotonic()
        report = CleanupRunReport(started_at=datetime.now(timezone.utc))
        self._set_state(is_running=True, progress=0.0, status="Preparing cleanup", cleaned_bytes=0)

        if not selected:
            self._last_report = report
            self._set_state(is_running=False, progress=1.0, status="Nothing to clean")
            return report

        if create_backup:
            self._set_state(status="Creating backup")
            try:
                report.backup_path = self._create_backup(selected)
                report.backup_created = True
            except BackupFailed as e:
                log.warning("Continuing without backup: %s", e)

        ordered = sorted(selected, key=lambda i: i.risk.rank)
        total = len(ordered)
        attempted: list[CleanupItem] = []

        for index, item in enumerate(ordered):
            if cancel.is_set():
                report.status = RunStatus.CANCELLED
                break

            self._set_state(status=f"Cleaning {item.name}", progress=index / total)
            attempted.append(item)
            report.items_processed += 1
            report.categories_affected.add(item.category)

            try:
                freed = self._clean_item(item)
            except CleanupError as e:
                report.failed_deletions += 1
                report.total_size_cleaned += e.bytes_freed
                report.errors.append(CleanupFailure(item, e.kind, str(e), datetime.now(timezone.utc)))
                log.warning("Failed to clean %s: %s", item.path, e)
            else:
                report.successful_deletions += 1
                report.total_size_cleaned += freed
                report.cleaned_ids.append(item.id)

            self._set_state(progress=(index + 1) / total, cleaned_bytes=report.total_size_cleaned)
            if self._pause and index < total - 1:
                cancel.wait(self._pause)

        report.elapsed = time.monotonic() - started
        self._last_report = report

        if report.cancelled:
            status = "Cleanup cancelled"
        else:
            status = f"Cleanup complete: {report.successful_deletions} succeeded, {report.failed_deletions} failed"
        log.info(
            "%s (%d bytes freed in %.1fs)",
            status,
            report.total_size_cleaned,
            report.elapsed,
        )

        if self.tracker is not None and attempted:
            self.tracker.record(report, attempted)

        self._set_state(is_running=False, status=status)
        return report

    # ── per-item work ───────────────────────────────────────────────────

    def _clean_item(self, item: CleanupItem) -> int:
        """Delete one item with its category strategy; returns bytes freed.

        A vanished item counts as cleaned with nothing freed.
        """
        if item.risk is RiskLevel.HIGH and (item.is_protected or is_protected(item.path, self.protected_roots)):
            raise ProtectedSystemFile(f"Refusing to delete protected system item: {item.path}")

        try:
            if not self.fs.exists(item.path):
                log.debug("Already gone: %s", item.path)
                return 0
            if item.category is Category.TRASH:
                return self._delete_trash(item)
            if item.category in _PRUNED_CATEGORIES:
                return self._prune(item)
            if item.category is Category.LOGS:
                return self._delete_old_logs(item)
            if item.category is Category.BROWSER_DATA:
                return self._clean_browser_caches(item)
            self.fs.remove(item.path)
            return item.size_bytes
        except OSError as e:
            error = from_os_error(e)
            if isinstance(error, ItemNotFound):
                log.debug("Vanished during cleanup: %s", item.path)
                return 0
            raise error from e

    def _delete_trash(self, item: CleanupItem) -> int:
        if self.fs.can_trash(item.path):
            self.fs.move_to_trash(item.path)
            return item.size_bytes

        self.fs.remove(item.path)
        info = _trash_info_path(item.path)
        if info is not None:
            try:
                self.fs.remove(info)
            except FileNotFoundError:
                pass
            except OSError as e:
                log.debug("Cannot remove trash info %s: %s", info, e)
        return item.size_bytes

    def _prune(self, item: CleanupItem) -> int:
        """Empty a cache directory but keep the directory itself."""
        if not self.fs.is_dir(item.path):
            self.fs.remove(item.path)
            return item.size_bytes
        removal = _Removal()
        self._remove_children(item.path, removal)
        return removal.finish()

    def _delete_old_logs(self, item: CleanupItem) -> int:
        cutoff = self._clock() - LOG_RETENTION_DAYS * SECONDS_PER_DAY
        st = self.fs.stat(item.path)
        if not st.is_dir:
            if st.mtime >= cutoff:
                log.debug("Keeping recent log: %s", item.path)
                return 0
            self.fs.remove(item.path)
            return st.size
        removal = _Removal()
        self._remove_old_files(item.path, cutoff, removal)
        return removal.finish()

    def _remove_old_files(self, directory: Path, cutoff: float, removal: _Removal) -> None:
        """Delete files older than *cutoff* at any depth; directories stay."""
        for child in self.fs.list_dir(directory):
            try:
                st = self.fs.stat(child)
                if st.is_dir:
                    self._remove_old_files(child, cutoff, removal)
                elif st.mtime < cutoff:
                    self.fs.remove(child)
                    removal.freed += st.size
            except FileNotFoundError:
                continue
            except OSError as e:
                removal.fail(child, e)

    def _clean_browser_caches(self, item: CleanupItem) -> int:
        """Clear well-known cache folders only; profiles and bookmarks stay."""
        if not self.fs.is_dir(item.path):
            return 0
        removal = _Removal()
        for cache_dir in self._browser_cache_dirs(item.path):
            try:
                self._remove_children(cache_dir, removal)
            except OSError as e:
                removal.fail(cache_dir, e)
        return removal.finish()

    def _browser_cache_dirs(self, root: Path) -> list[Path]:
        candidates = [root / name for name in BROWSER_CACHE_DIRS]
        for child in self.fs.list_dir(root):
            if child.name not in BROWSER_CACHE_DIRS and self.fs.is_dir(child):
                candidates.extend(child / name for name in BROWSER_CACHE_DIRS)
        return [c for c in candidates if self.fs.is_dir(c)]

    def _remove_children(self, directory: Path, removal: _Removal) -> None:
        """Delete every child of *directory*, recording into *removal*."""
        for child in self.fs.list_dir(directory):
            try:
                size = self.fs.tree_size(child)
                self.fs.remove(child)
                removal.freed += size
            except FileNotFoundError:
                continue
            except OSError as e:
                removal.fail(child, e)

    def _create_backup(self, items: list[CleanupItem]) -> Path:
        """Copy a few risky items aside before deleting them.

        Raises BackupFailed when there is nowhere to put the copies;
        individual copy failures are only logged.
        """
        if self.backup_root is None:
            raise BackupFailed("No backup location configured")
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        backup_dir = self.backup_root / f"backup-{stamp}"
        try:
            self.fs.make_dirs(backup_dir)
        except OSError as e:
            raise BackupFailed(f"Cannot create {backup_dir}: {e}") from e

        candidates = [i for i in items if i.risk is not RiskLevel.SAFE and i.size_bytes < BACKUP_MAX_BYTES]
        for index, item in enumerate(candidates[:BACKUP_LIMIT]):
            try:
                self.fs.copy(item.path, backup_dir / f"{index:02d}-{item.name}")
            except OSError as e:
                log.debug("Backup of %s failed: %s", item.path, e)
        log.info("Backup created at %s", backup_dir)
        return backup_dir


def _trash_info_path(path: Path) -> Path | None:
    """The XDG ``.trashinfo`` record belonging to a ``Trash/files`` entry."""
    if path.parent.name == "files" and path.parent.parent.name == "Trash":
        return path.parent.parent / "info" / f"{path.name}.trashinfo"
    return None


class _Removal:
    """Running total of a piecewise delete that keeps its first failure.

    Every piece is attempted; ``finish`` then raises the first error as a
    ``CleanupError`` carrying the bytes freed so far.
    """

    def __init__(self) -> None:
        self.freed = 0
        self.error: OSError | None = None

    def fail(self, path: Path, error: OSError) -> None:
        log.debug("Cannot remove %s: %s", path, error)
        if self.error is None:
            self.error = error

    def finish(self) -> int:
        if self.error is not None:
            failure = from_os_error(self.error)
            failure.bytes_freed = self.freed
            raise failure
        return self.freed
