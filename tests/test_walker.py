"""Tests for the filesystem walker."""

from __future__ import annotations

import threading

import pytest

from reclaim.core.walker import SAMPLE_LIMIT, Walker
from reclaim.models.item import Category, RiskLevel
from reclaim.models.settings import MB, ScanSettings


@pytest.fixture
def walker():
    return Walker()


def _names(items):
    return sorted(i.name for i in items)


class TestSampling:
    def test_min_size_filter(self, tmp_path, walker, write_file):
        write_file(tmp_path / "big.bin", 2 * MB)
        write_file(tmp_path / "exact.bin", MB)
        write_file(tmp_path / "small.bin", MB - 1)

        items = list(walker.walk(tmp_path, Category.TEMP, ScanSettings()))

        assert _names(items) == ["big.bin", "exact.bin"]
        assert all(i.category is Category.TEMP for i in items)
        assert all(i.risk is RiskLevel.SAFE for i in items)

    def test_directory_sized_recursively(self, tmp_path, walker, write_file):
        write_file(tmp_path / "app" / "a.cache", MB // 2)
        write_file(tmp_path / "app" / "nested" / "b.cache", MB // 2 + 10)

        items = list(walker.walk(tmp_path, Category.USER_CACHE, ScanSettings()))

        assert len(items) == 1
        assert items[0].name == "app"
        assert items[0].size_bytes == MB + 10

    def test_sample_limit(self, tmp_path, walker, write_file):
        for i in range(SAMPLE_LIMIT + 10):
            write_file(tmp_path / f"f{i:03d}", 1)

        items = list(walker.walk(tmp_path, Category.TEMP, ScanSettings(min_file_size=0)))

        assert len(items) == SAMPLE_LIMIT
        assert _names(items) == [f"f{i:03d}" for i in range(SAMPLE_LIMIT)]

    def test_hidden_and_noise_skipped(self, tmp_path, walker, write_file):
        write_file(tmp_path / ".hidden", 2 * MB)
        write_file(tmp_path / "Thumbs.db", 2 * MB)
        write_file(tmp_path / "visible", 2 * MB)

        items = list(walker.walk(tmp_path, Category.TEMP, ScanSettings()))
        assert _names(items) == ["visible"]

        items = list(walker.walk(tmp_path, Category.TEMP, ScanSettings(scan_hidden_files=True)))
        assert _names(items) == [".hidden", "visible"]

    def test_excluded_path(self, tmp_path, walker, write_file):
        write_file(tmp_path / "keep" / "a", 2 * MB)
        write_file(tmp_path / "drop", 2 * MB)
        settings = ScanSettings(custom_excluded_paths=[str(tmp_path / "keep")])

        assert _names(walker.walk(tmp_path, Category.TEMP, settings)) == ["drop"]

    def test_symlinked_root_followed(self, tmp_path, walker, write_file):
        write_file(tmp_path / "private" / "tmp" / "scratch.bin", 2 * MB)
        link = tmp_path / "tmp"
        link.symlink_to(tmp_path / "private" / "tmp")

        items = list(walker.walk(link, Category.TEMP, ScanSettings()))

        assert _names(items) == ["scratch.bin"]
        assert items[0].path == link / "scratch.bin"

    def test_symlinked_child_not_followed(self, tmp_path, walker, write_file):
        write_file(tmp_path / "elsewhere" / "big.bin", 2 * MB)
        root = tmp_path / "root"
        root.mkdir()
        (root / "link").symlink_to(tmp_path / "elsewhere")

        assert list(walker.walk(root, Category.USER_CACHE, ScanSettings())) == []

    def test_missing_root(self, tmp_path, walker):
        assert list(walker.walk(tmp_path / "nope", Category.TEMP, ScanSettings())) == []

    def test_cancelled_before_start(self, tmp_path, walker, write_file):
        write_file(tmp_path / "big.bin", 2 * MB)
        cancel = threading.Event()
        cancel.set()
        assert list(walker.walk(tmp_path, Category.TEMP, ScanSettings(), cancel)) == []

    def test_cancel_mid_walk(self, tmp_path, walker, write_file):
        for i in range(5):
            write_file(tmp_path / f"f{i}", 2 * MB)
        cancel = threading.Event()

        produced = []
        for item in walker.walk(tmp_path, Category.TEMP, ScanSettings(), cancel):
            produced.append(item)
            if len(produced) == 2:
                cancel.set()

        assert len(produced) == 2


class TestDirSize:
    def test_sums_nested_files(self, tmp_path, walker, write_file):
        write_file(tmp_path / "a", 100)
        write_file(tmp_path / "sub" / "b", 200)
        write_file(tmp_path / "sub" / "deeper" / "c", 300)
        assert walker.dir_size(tmp_path) == 600

    def test_file_reports_own_size(self, tmp_path, walker, write_file):
        assert walker.dir_size(write_file(tmp_path / "a", 42)) == 42

    def test_missing_is_zero(self, tmp_path, walker):
        assert walker.dir_size(tmp_path / "missing") == 0


class TestDuplicates:
    def test_same_name_three_times(self, tmp_path, walker, write_file):
        write_file(tmp_path / "a.txt", 3)
        write_file(tmp_path / "x" / "a.txt", 3)
        write_file(tmp_path / "y" / "a.txt", 3)
        write_file(tmp_path / "y" / "unique.txt", 3)

        items = list(walker.walk(tmp_path, Category.DUPLICATES, ScanSettings()))

        assert [i.path for i in items] == [tmp_path / "x" / "a.txt", tmp_path / "y" / "a.txt"]
        assert all(i.category is Category.DUPLICATES for i in items)
        assert all(i.risk is RiskLevel.SAFE for i in items)
        assert all(str(tmp_path / "a.txt") in i.description for i in items)


class TestOldFiles:
    def test_age_and_size(self, tmp_path, write_file):
        write_file(tmp_path / "old.bin", 2 * MB, age_days=400)
        write_file(tmp_path / "new.bin", 2 * MB)
        write_file(tmp_path / "old_small.bin", 10, age_days=400)
        write_file(tmp_path / "sub" / "old_nested.bin", 2 * MB, age_days=400)

        items = list(Walker().walk(tmp_path, Category.OLD_FILES, ScanSettings()))

        assert _names(items) == ["old.bin", "old_nested.bin"]
        assert all(i.risk is RiskLevel.MEDIUM for i in items)


class TestLargeFiles:
    def test_file_threshold(self, tmp_path, walker, write_file):
        write_file(tmp_path / "at.bin", 1000)
        write_file(tmp_path / "below.bin", 999)

        items = list(walker.walk(tmp_path, Category.LARGE_FILES, ScanSettings(large_file_size=1000)))
        assert _names(items) == ["at.bin"]

    def test_directory_reported_when_no_child_is(self, tmp_path, walker, write_file):
        write_file(tmp_path / "bundle" / "a", 600)
        write_file(tmp_path / "bundle" / "b", 600)
        write_file(tmp_path / "holder" / "huge", 1500)
        write_file(tmp_path / "holder" / "tiny", 10)

        items = list(walker.walk(tmp_path, Category.LARGE_FILES, ScanSettings(large_file_size=1000)))

        by_name = {i.name: i for i in items}
        assert set(by_name) == {"bundle", "huge"}
        assert by_name["bundle"].size_bytes == 1200
        assert by_name["huge"].risk is RiskLevel.MEDIUM

    def test_directory_exactly_at_threshold(self, tmp_path, walker, write_file):
        write_file(tmp_path / "pair" / "a", 500)
        write_file(tmp_path / "pair" / "b", 500)

        items = list(walker.walk(tmp_path, Category.LARGE_FILES, ScanSettings(large_file_size=1000)))

        assert _names(items) == ["pair"]
        assert items[0].size_bytes == 1000
