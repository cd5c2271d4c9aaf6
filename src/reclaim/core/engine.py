"""Scan orchestration: runs category scans and owns the item collection."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Mapping

from reclaim.core.walker import Walker
from reclaim.models.item import Category, CleanupItem, RiskLevel
from reclaim.models.settings import ScanSettings

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CategoryTotals:
    count: int = 0
    size_bytes: int = 0


@dataclass(frozen=True, slots=True)
class ScanSnapshot:
    """Published scan state, replaced wholesale on every update."""

    is_scanning: bool = False
    progress: float = 0.0
    item_count: int = 0
    total_size: int = 0
    selected_size: int = 0
    by_category: dict[Category, CategoryTotals] = field(default_factory=dict)


ScanListener = Callable[[ScanSnapshot], None]


class SortKey(str, Enum):
    SIZE = "size"
    NAME = "name"
    MODIFIED = "modified"
    CATEGORY = "category"


_CATEGORY_ORDER = {c: i for i, c in enumerate(Category)}


class ScanOrchestrator:
    """Runs the active category scans and publishes aggregate progress.

    State machine is Idle -> Scanning -> Idle. ``start_scan()`` is a
    no-op while a scan is running; after ``cancel_scan()`` a new scan
    supersedes the winding-down worker, whose late results are dropped.

    The item collection is owned here. Shells read it and flip selection
    through the selection methods only.
    """

    def __init__(
        self,
        walker: Walker,
        sources: Mapping[Category, Iterable[Path]],
        settings: ScanSettings | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.walker = walker
        self.sources = {category: tuple(roots) for category, roots in sources.items()}
        self.settings = settings or ScanSettings()
        self._max_workers = max_workers

        self._lock = threading.RLock()
        self._notify_lock = threading.RLock()
        self._items: list[CleanupItem] = []
        self._index: dict[str, CleanupItem] = {}
        self._is_scanning = False
        self._progress = 0.0
        self._generation = 0
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None
        self._listeners: list[ScanListener] = []

    # ── published state ─────────────────────────────────────────────────

    @property
    def items(self) -> list[CleanupItem]:
        with self._lock:
            return list(self._items)

    @property
    def is_scanning(self) -> bool:
        return self._is_scanning

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def total_size(self) -> int:
        with self._lock:
            return sum(i.size_bytes for i in self._items)

    @property
    def selected_size(self) -> int:
        with self._lock:
            return sum(i.size_bytes for i in self._items if i.selected)

    def get(self, item_id: str) -> CleanupItem | None:
        with self._lock:
            return self._index.get(item_id)

    def items_by_category(self) -> dict[Category, list[CleanupItem]]:
        grouped: dict[Category, list[CleanupItem]] = {}
        with self._lock:
            for item in self._items:
                grouped.setdefault(item.category, []).append(item)
        return grouped

    def category_totals(self) -> dict[Category, CategoryTotals]:
        return {
            category: CategoryTotals(len(items), sum(i.size_bytes for i in items))
            for category, items in self.items_by_category().items()
        }

    def snapshot(self) -> ScanSnapshot:
        with self._lock:
            return ScanSnapshot(
                is_scanning=self._is_scanning,
                progress=self._progress,
                item_count=len(self._items),
                total_size=self.total_size,
                selected_size=self.selected_size,
                by_category=self.category_totals(),
            )

    def subscribe(self, listener: ScanListener) -> Callable[[], None]:
        """Register a state listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        with self._notify_lock:
            snapshot = self.snapshot()
            for listener in list(self._listeners):
                try:
                    listener(snapshot)
                except Exception:
                    log.exception("Scan listener failed")

    # ── scanning ────────────────────────────────────────────────────────

    def start_scan(self) -> bool:
        """Start scanning the active categories in the background.

        Returns False without doing anything if a scan is already running.
        """
        with self._lock:
            if self._is_scanning:
                log.debug("Scan already running, ignoring start request")
                return False
            self._cancel.set()
            self._cancel = threading.Event()
            self._generation += 1
            self._items.clear()
            self._index.clear()
            self._progress = 0.0
            self._is_scanning = True
            settings = self.settings.copy()
            thread = threading.Thread(
                target=self._run,
                args=(self._generation, self._cancel, settings),
                name="reclaim-scan",
                daemon=True,
            )
            self._thread = thread

        self._publish()
        thread.start()
        return True

    def cancel_scan(self) -> None:
        """Stop the running scan; items gathered so far are kept."""
        with self._lock:
            if not self._is_scanning:
                return
            self._cancel.set()
            self._is_scanning = False
        log.info("Scan cancelled with %d items", len(self._items))
        self._publish()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the current scan worker exits. Returns False on timeout."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def scan_category(self, category: Category, settings: ScanSettings, cancel: threading.Event) -> list[CleanupItem]:
        """Walk every root of *category*; returns whatever was produced."""
        items: list[CleanupItem] = []
        for root in self.sources.get(category, ()):
            if cancel.is_set():
                break
            items.extend(self.walker.walk(root, category, settings, cancel))
        return items

    def _worker_count(self, categories: int) -> int:
        if self._max_workers is not None:
            return max(1, min(self._max_workers, categories))
        if (os.cpu_count() or 1) > 1:
            return min(4, categories)
        return 1

    def _run(self, generation: int, cancel: threading.Event, settings: ScanSettings) -> None:
        categories = list(settings.active_categories)
        total = len(categories)
        log.info("Scanning %d categories", total)

        completed = 0
        pool = ThreadPoolExecutor(max_workers=self._worker_count(total or 1), thread_name_prefix="reclaim-walk")
        try:
            futures: dict[Future[list[CleanupItem]], Category] = {
                pool.submit(self.scan_category, category, settings, cancel): category for category in categories
            }
            for future in as_completed(futures):
                category = futures[future]
                try:
                    found = future.result()
                except Exception:
                    log.exception("Scan of '%s' failed", category.value)
                    found = []

                with self._lock:
                    if cancel.is_set() or generation != self._generation:
                        break
                    self._items.extend(found)
                    self._index.update((i.id, i) for i in found)
                    completed += 1
                    self._progress = completed / total
                log.debug("Scanned %s: %d items", category.value, len(found))
                self._publish()
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        with self._lock:
            if generation != self._generation:
                return
            if not cancel.is_set():
                self._progress = 1.0
            self._is_scanning = False
        log.info("Scan finished: %d items, %d bytes", len(self._items), self.total_size)
        self._publish()

    # ── selection ───────────────────────────────────────────────────────

    def toggle_selection(self, item_id: str) -> bool:
        """Flip the selection of one item. Returns False for unknown ids."""
        with self._lock:
            item = self._index.get(item_id)
            if item is None:
                return False
            item.selected = not item.selected
        self._publish()
        return True

    def select_all_in_category(self, category: Category, selected: bool = True) -> None:
        with self._lock:
            for item in self._items:
                if item.category is category:
                    item.selected = selected
        self._publish()

    def select_all_safe(self) -> None:
        with self._lock:
            for item in self._items:
                if item.risk is RiskLevel.SAFE:
                    item.selected = True
        self._publish()

    def selected_items(self) -> list[CleanupItem]:
        with self._lock:
            return [i for i in self._items if i.selected]

    def remove_items(self, item_ids: Iterable[str]) -> int:
        """Drop cleaned items from the collection. Returns how many were removed."""
        ids = set(item_ids)
        with self._lock:
            before = len(self._items)
            self._items = [i for i in self._items if i.id not in ids]
            for item_id in ids:
                self._index.pop(item_id, None)
            removed = before - len(self._items)
        if removed:
            self._publish()
        return removed

    # ── views ───────────────────────────────────────────────────────────

    def view(
        self,
        search: str = "",
        safe_only: bool = False,
        sort: SortKey = SortKey.SIZE,
        category: Category | None = None,
    ) -> list[CleanupItem]:
        """Filtered, sorted copy of the collection for display."""
        needle = search.strip().casefold()
        items = self.items
        if category is not None:
            items = [i for i in items if i.category is category]
        if safe_only:
            items = [i for i in items if i.risk is RiskLevel.SAFE]
        if needle:
            items = [i for i in items if needle in i.name.casefold() or needle in str(i.path).casefold()]

        match sort:
            case SortKey.NAME:
                items.sort(key=lambda i: i.name.casefold())
            case SortKey.MODIFIED:
                items.sort(key=lambda i: i.modified_at, reverse=True)
            case SortKey.CATEGORY:
                items.sort(key=lambda i: (_CATEGORY_ORDER[i.category], -i.size_bytes))
            case _:
                items.sort(key=lambda i: i.size_bytes, reverse=True)
        return items
