"""Tests for scan settings and their JSON store."""

from __future__ import annotations

import json

import pytest

from reclaim.models.item import Category, RiskLevel
from reclaim.models.settings import GB, MB, CustomRule, ScanSettings
from reclaim.settings import SettingsStore


class TestScanSettings:
    def test_defaults(self):
        settings = ScanSettings()
        assert settings.active_categories == list(Category)
        assert settings.min_file_size == MB
        assert settings.max_file_age == 365
        assert settings.large_file_size == GB
        assert settings.create_backup
        assert not settings.scan_hidden_files

    def test_document_round_trip(self):
        settings = ScanSettings(
            active_categories=[Category.TRASH, Category.LOGS],
            min_file_size=10,
            risk_overrides={Category.LOGS: RiskLevel.SAFE},
            custom_rules=[CustomRule("iso", "*.iso", risk=RiskLevel.HIGH)],
        )
        doc = settings.to_dict()
        assert doc["activeCategories"] == ["trash", "logs"]
        assert doc["minFileSize"] == 10
        assert doc["customRules"][0]["riskLevel"] == "high"

        restored = ScanSettings.from_dict(json.loads(json.dumps(doc)))
        assert restored == settings

    def test_unknown_and_invalid_values_dropped(self):
        settings = ScanSettings.from_dict({
            "activeCategories": ["trash", "bogus"],
            "minFileSize": "not a number",
            "somethingElse": 1,
            "riskOverrides": {"logs": "extreme", "temp": "high"},
        })
        assert settings.active_categories == [Category.TRASH]
        assert settings.min_file_size == MB
        assert settings.risk_overrides == {Category.TEMP: RiskLevel.HIGH}

    def test_with_changes_accepts_both_key_styles(self):
        settings = ScanSettings().with_changes(min_file_size=5, maxFileAge=30)
        assert settings.min_file_size == 5
        assert settings.max_file_age == 30

    def test_with_changes_rejects_bad_input(self):
        with pytest.raises(ValueError):
            ScanSettings().with_changes(nope=1)
        with pytest.raises(ValueError):
            ScanSettings().with_changes(minFileSize=-1)

    def test_with_changes_rejects_unknown_category(self):
        with pytest.raises(ValueError, match="bogus"):
            ScanSettings().with_changes(activeCategories=["trash", "bogus"])
        with pytest.raises(ValueError):
            ScanSettings().with_changes(riskOverrides={"logs": "extreme"})

    @pytest.mark.parametrize("raw, expected", [("false", False), ("No", False), ("0", False), (0, False), ("true", True), (1, True), (True, True)])
    def test_boolean_spellings(self, raw, expected):
        assert ScanSettings.from_dict({"scanHiddenFiles": raw}).scan_hidden_files is expected
        assert ScanSettings().with_changes(createBackup=raw).create_backup is expected

    def test_invalid_boolean(self):
        settings = ScanSettings.from_dict({"createBackup": "maybe", "confirmBeforeDelete": [1]})
        assert settings.create_backup
        assert settings.confirm_before_delete
        with pytest.raises(ValueError):
            ScanSettings().with_changes(createBackup="maybe")

    def test_copy_is_independent(self):
        settings = ScanSettings()
        clone = settings.copy()
        clone.custom_excluded_paths.append("/x")
        assert settings.custom_excluded_paths == []


class TestSettingsStore:
    def test_missing_file_gives_defaults(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json")
        assert store.settings == ScanSettings()

    def test_update_persists(self, tmp_path):
        path = tmp_path / "conf" / "settings.json"
        SettingsStore(path).update(minFileSize=2048, scan_hidden_files=True)

        data = json.loads(path.read_text())
        assert data["minFileSize"] == 2048
        assert data["scanHiddenFiles"] is True
        assert SettingsStore(path).settings.min_file_size == 2048

    def test_failed_update_leaves_settings(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json")
        with pytest.raises(ValueError):
            store.update(minFileSize=-5)
        assert store.settings.min_file_size == MB

    def test_reset(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json")
        store.update(maxFileAge=1)
        store.reset()
        assert store.settings.max_file_age == 365

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2")
        assert SettingsStore(path).settings == ScanSettings()

    def test_default_location(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert SettingsStore().path == tmp_path / "reclaim" / "settings.json"
