"""Session facade tying the scan and cleanup halves together for shells."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable

from reclaim import storage
from reclaim.core.engine import ScanOrchestrator
from reclaim.core.executor import CleanupExecutor
from reclaim.core.filesystem import FileSystem, LocalFileSystem
from reclaim.core.sources import Sources, default_sources
from reclaim.core.tracker import HistoryTracker
from reclaim.core.walker import Walker
from reclaim.models.item import Category, CleanupItem
from reclaim.models.report import CleanupRunReport
from reclaim.models.settings import ScanSettings
from reclaim.settings import SettingsStore

log = logging.getLogger(__name__)


class CleanupSession:
    """One user's scan results, selection, settings and history.

    Shells (CLI, D-Bus) talk to this object only. The scan collection is
    owned by the orchestrator; a finished cleanup removes the items it
    cleaned from it.
    """

    def __init__(
        self,
        settings_store: SettingsStore | None = None,
        tracker: HistoryTracker | None = None,
        sources: Sources | None = None,
        fs: FileSystem | None = None,
        backup_root: Path | None = None,
        max_workers: int | None = None,
        pause: float | None = None,
    ) -> None:
        self.settings_store = settings_store or SettingsStore()
        self.tracker = tracker or HistoryTracker()
        fs = fs or LocalFileSystem()

        self.orchestrator = ScanOrchestrator(
            Walker(fs),
            sources if sources is not None else default_sources(),
            settings=self.settings_store.settings,
            max_workers=max_workers,
        )
        executor_kwargs: dict[str, Any] = {}
        if pause is not None:
            executor_kwargs["pause"] = pause
        self.executor = CleanupExecutor(
            fs,
            tracker=self.tracker,
            backup_root=backup_root or storage.BACKUP_DIR,
            **executor_kwargs,
        )
        self._cleanup_done = threading.Event()
        self._cleanup_done.set()

    # ── settings ────────────────────────────────────────────────────────

    @property
    def settings(self) -> ScanSettings:
        return self.settings_store.settings

    def update_settings(self, **changes: Any) -> ScanSettings:
        """Persist a settings change; it applies from the next scan."""
        settings = self.settings_store.update(**changes)
        self.orchestrator.settings = settings
        return settings

    def reset_settings(self) -> ScanSettings:
        settings = self.settings_store.reset()
        self.orchestrator.settings = settings
        return settings

    # ── scanning ────────────────────────────────────────────────────────

    @property
    def items(self) -> list[CleanupItem]:
        return self.orchestrator.items

    def start_scan(self) -> bool:
        return self.orchestrator.start_scan()

    def auto_scan(self) -> bool:
        """Start a scan if the settings ask for one on launch."""
        if not self.settings.auto_scan_on_launch:
            return False
        return self.start_scan()

    def cancel_scan(self) -> None:
        self.orchestrator.cancel_scan()

    def wait_for_scan(self, timeout: float | None = None) -> bool:
        return self.orchestrator.wait(timeout)

    def toggle_selection(self, item_id: str) -> bool:
        return self.orchestrator.toggle_selection(item_id)

    def select_all_in_category(self, category: Category, selected: bool = True) -> None:
        self.orchestrator.select_all_in_category(category, selected)

    def select_all_safe(self) -> None:
        self.orchestrator.select_all_safe()

    # ── cleanup ─────────────────────────────────────────────────────────

    def estimated_duration(self) -> float:
        return self.executor.estimated_duration(self.orchestrator.selected_items())

    def cleanup(
        self,
        create_backup: bool | None = None,
        on_finished: Callable[[CleanupRunReport], None] | None = None,
    ) -> bool:
        """Clean the current selection in the background.

        Returns False if a cleanup is already running. *create_backup*
        defaults to the ``createBackup`` setting.
        """
        if create_backup is None:
            create_backup = self.settings.create_backup

        def finished(report: CleanupRunReport) -> None:
            removed = self.orchestrator.remove_items(report.cleaned_ids)
            log.debug("Dropped %d cleaned items from the scan results", removed)
            try:
                if on_finished is not None:
                    on_finished(report)
            finally:
                self._cleanup_done.set()

        if self.executor.is_running:
            return False
        self._cleanup_done.clear()
        started = self.executor.start(self.orchestrator.selected_items(), create_backup, finished)
        if not started:
            self._cleanup_done.set()
        return started

    def cancel_cleanup(self) -> None:
        self.executor.cancel()

    def wait_for_cleanup(self, timeout: float | None = None) -> bool:
        """Block until the running cleanup and its bookkeeping are done."""
        return self._cleanup_done.wait(timeout)

    # ── history ─────────────────────────────────────────────────────────

    def stats(self, period: str = "all") -> dict[str, Any]:
        return self.tracker.get_stats(period)
