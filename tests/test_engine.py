"""Tests for the scan orchestrator."""

from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from reclaim.core.engine import ScanOrchestrator, SortKey
from reclaim.core.walker import Walker
from reclaim.models.item import Category, CleanupItem, RiskLevel
from reclaim.models.settings import MB, ScanSettings

CATEGORIES = [Category.TRASH, Category.TEMP, Category.LOGS, Category.DOWNLOADS, Category.USER_CACHE]


def _item(name: str, category: Category, size: int = MB, risk: RiskLevel = RiskLevel.SAFE) -> CleanupItem:
    return CleanupItem(
        name=name,
        path=Path("/fake") / category.value / name,
        size_bytes=size,
        category=category,
        risk=risk,
        modified_at=time.time(),
    )


class FakeWalker(Walker):
    """Produces two items per category without touching the disk.

    Categories listed in ``block_on`` wait for ``release`` before producing.
    """

    def __init__(self, block_on: set[Category] | None = None, fail_on: set[Category] | None = None) -> None:
        super().__init__()
        self.block_on = block_on or set()
        self.fail_on = fail_on or set()
        self.release = threading.Event()
        self.blocked = threading.Event()

    def walk(self, root, category, settings, cancel=None):
        if category in self.fail_on:
            raise RuntimeError("walk failed")
        if category in self.block_on:
            self.blocked.set()
            self.release.wait(5)
        risk = RiskLevel.SAFE if category in (Category.TRASH, Category.TEMP) else RiskLevel.MEDIUM
        yield _item(f"{category.value}-1", category, MB, risk)
        yield _item(f"{category.value}-2", category, 2 * MB, risk)


def _orchestrator(walker: Walker, categories=CATEGORIES, max_workers: int = 1) -> ScanOrchestrator:
    sources = {c: (Path("/fake") / c.value,) for c in categories}
    return ScanOrchestrator(walker, sources, ScanSettings(active_categories=list(categories)), max_workers=max_workers)


def _wait_until(predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.01)


class TestScan:
    def test_full_scan(self):
        orchestrator = _orchestrator(FakeWalker())
        assert orchestrator.start_scan()
        assert orchestrator.wait(5)

        assert not orchestrator.is_scanning
        assert orchestrator.progress == 1.0
        assert len(orchestrator.items) == 10
        assert orchestrator.total_size == 5 * 3 * MB
        assert orchestrator.category_totals()[Category.TEMP].count == 2

    def test_start_while_scanning_is_noop(self):
        walker = FakeWalker(block_on={Category.TRASH})
        orchestrator = _orchestrator(walker)
        assert orchestrator.start_scan()
        walker.blocked.wait(5)

        assert not orchestrator.start_scan()

        walker.release.set()
        orchestrator.wait(5)
        assert len(orchestrator.items) == 10

    def test_progress_is_monotonic(self):
        orchestrator = _orchestrator(FakeWalker())
        seen: list[float] = []
        orchestrator.subscribe(lambda snap: seen.append(snap.progress))

        orchestrator.start_scan()
        orchestrator.wait(5)

        assert seen == sorted(seen)
        assert seen[-1] == 1.0
        assert not orchestrator.snapshot().is_scanning

    def test_failing_category_counts_as_empty(self):
        orchestrator = _orchestrator(FakeWalker(fail_on={Category.LOGS}))
        orchestrator.start_scan()
        orchestrator.wait(5)

        assert orchestrator.progress == 1.0
        assert Category.LOGS not in orchestrator.items_by_category()
        assert len(orchestrator.items) == 8

    def test_new_scan_replaces_results(self):
        orchestrator = _orchestrator(FakeWalker())
        orchestrator.start_scan()
        orchestrator.wait(5)
        first_ids = {i.id for i in orchestrator.items}

        orchestrator.start_scan()
        orchestrator.wait(5)

        assert len(orchestrator.items) == 10
        assert not first_ids & {i.id for i in orchestrator.items}

    def test_empty_category_list(self):
        orchestrator = _orchestrator(FakeWalker(), categories=[])
        orchestrator.start_scan()
        orchestrator.wait(5)
        assert orchestrator.items == []
        assert not orchestrator.is_scanning


class TestCancel:
    def test_cancel_keeps_completed_categories(self):
        walker = FakeWalker(block_on={CATEGORIES[2]})
        orchestrator = _orchestrator(walker, max_workers=1)

        orchestrator.start_scan()
        walker.blocked.wait(5)
        _wait_until(lambda: orchestrator.progress >= 2 / 5)

        orchestrator.cancel_scan()
        assert not orchestrator.is_scanning
        walker.release.set()
        orchestrator.wait(5)

        categories = {i.category for i in orchestrator.items}
        assert categories == set(CATEGORIES[:2])
        assert len(orchestrator.items) == 4
        assert orchestrator.progress == pytest.approx(2 / 5)

    def test_new_scan_after_cancel_drops_late_results(self):
        walker = FakeWalker(block_on={CATEGORIES[0]})
        orchestrator = _orchestrator(walker)

        orchestrator.start_scan()
        walker.blocked.wait(5)
        orchestrator.cancel_scan()
        old_thread = orchestrator._thread

        walker.block_on = set()
        assert orchestrator.start_scan()
        walker.release.set()
        old_thread.join(5)
        orchestrator.wait(5)

        assert len(orchestrator.items) == 10
        assert orchestrator.progress == 1.0

    def test_cancel_when_idle(self):
        orchestrator = _orchestrator(FakeWalker())
        orchestrator.cancel_scan()
        assert not orchestrator.is_scanning


@pytest.fixture
def scanned():
    orchestrator = _orchestrator(FakeWalker())
    orchestrator.start_scan()
    orchestrator.wait(5)
    return orchestrator


class TestSelection:
    def test_toggle(self, scanned):
        item = scanned.items[0]
        assert scanned.toggle_selection(item.id)
        assert scanned.get(item.id).selected
        assert scanned.selected_size == item.size_bytes
        assert scanned.toggle_selection(item.id)
        assert scanned.selected_size == 0

    def test_toggle_unknown_id(self, scanned):
        assert not scanned.toggle_selection("missing")
        assert scanned.selected_items() == []

    def test_select_category(self, scanned):
        scanned.select_all_in_category(Category.LOGS)
        assert {i.category for i in scanned.selected_items()} == {Category.LOGS}
        scanned.select_all_in_category(Category.LOGS, selected=False)
        assert scanned.selected_items() == []

    def test_select_all_safe(self, scanned):
        scanned.select_all_safe()
        selected = scanned.selected_items()
        assert len(selected) == 4
        assert all(i.risk is RiskLevel.SAFE for i in selected)

    def test_remove_items(self, scanned):
        ids = [i.id for i in scanned.items[:3]]
        assert scanned.remove_items(ids) == 3
        assert len(scanned.items) == 7
        assert scanned.get(ids[0]) is None


class TestView:
    def test_sort_by_size(self, scanned):
        sizes = [i.size_bytes for i in scanned.view()]
        assert sizes == sorted(sizes, reverse=True)

    def test_search(self, scanned):
        assert [i.name for i in scanned.view(search="TRASH-1")] == ["trash-1"]

    def test_safe_only_and_category(self, scanned):
        assert all(i.risk is RiskLevel.SAFE for i in scanned.view(safe_only=True))
        assert {i.category for i in scanned.view(category=Category.LOGS)} == {Category.LOGS}

    def test_sort_by_name(self, scanned):
        names = [i.name for i in scanned.view(sort=SortKey.NAME)]
        assert names == sorted(names)
