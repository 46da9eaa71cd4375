"""
Tests for the backup, restore and sync command-line utilities.
"""

import importlib.util
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from registry_sync.core.dao import load_state, save_state
from registry_sync.core.schema import SystemMode

SCRIPTS_DIR = Path(__file__).parent.parent / "scripts"


def _load_script(name):
    spec = importlib.util.spec_from_file_location(f"scripts_{name}", SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def store(tmp_path, monkeypatch):
    monkeypatch.setenv("DB_PATH", str(tmp_path / "registry.db"))
    monkeypatch.setenv("EXPORT_DIR", str(tmp_path / "exports"))
    save_state({
        "institution": {"name": "City Hall", "city": "Santa Rita", "systemMode": SystemMode.SERVER.value},
        "residents": [{"id": "r1", "cpf": "111", "name": "A"}],
        "territories": [],
        "agents": [],
        "logs": [],
    })
    return tmp_path


class TestBackupScript:

    def test_writes_backup_to_export_dir(self, store):
        assert _load_script("backup").main([]) == 0

        files = list((store / "exports").glob("registry_backup_*.json"))
        assert len(files) == 1
        assert json.loads(files[0].read_text(encoding="utf-8"))["residents"][0]["cpf"] == "111"
        assert load_state()["config"]["lastBackupDate"]

    def test_dry_run_writes_nothing(self, store):
        assert _load_script("backup").main(["--dry-run"]) == 0

        assert not (store / "exports").exists()
        assert load_state()["logs"] == []


class TestRestoreScript:

    def test_forced_restore(self, store):
        path = store / "backup.json"
        path.write_text(json.dumps({"residents": [{"cpf": "999"}, {"cpf": "888"}]}), encoding="utf-8")

        assert _load_script("restore").main([str(path), "--force"]) == 0
        assert [r["cpf"] for r in load_state()["residents"]] == ["999", "888"]

    def test_cancelled_restore_keeps_state(self, store):
        path = store / "backup.json"
        path.write_text('{"residents": []}', encoding="utf-8")

        with patch("builtins.input", return_value="no"):
            assert _load_script("restore").main([str(path)]) == 0

        assert len(load_state()["residents"]) == 1

    def test_deeply_nested_file_fails_cleanly(self, store, capsys):
        path = store / "backup.json"
        path.write_text("[" * 100000 + "]" * 100000, encoding="utf-8")

        assert _load_script("restore").main([str(path), "--force"]) == 1
        assert "ERROR" in capsys.readouterr().out
        assert len(load_state()["residents"]) == 1

    def test_corrupted_file_fails(self, store, capsys):
        path = store / "backup.json"
        path.write_text("{", encoding="utf-8")

        assert _load_script("restore").main([str(path), "--force"]) == 1
        assert "ERROR" in capsys.readouterr().out


class TestSyncPackageScript:

    def test_import_merges_package(self, store, capsys):
        path = store / "station_package_Vila_2025-06-01.json"
        path.write_text(json.dumps({"residents": [{"cpf": "111", "name": "B"}, {"cpf": "222"}]}), encoding="utf-8")

        assert _load_script("sync_package").main(["import", str(path)]) == 0

        assert "1 new records and 1 updates" in capsys.readouterr().out
        assert load_state()["logs"][0]["targetName"] == f"Package {path.name} processed"

    def test_import_dry_run_saves_nothing(self, store):
        path = store / "pkg.json"
        path.write_text('{"residents": [{"cpf": "222"}]}', encoding="utf-8")

        assert _load_script("sync_package").main(["import", str(path), "--dry-run"]) == 0
        assert len(load_state()["residents"]) == 1

    def test_export_writes_package(self, store):
        output = store / "out" / "pkg.json"

        assert _load_script("sync_package").main(["export", "--output", str(output)]) == 0
        assert json.loads(output.read_text(encoding="utf-8"))["agents"] == []

    def test_missing_package_fails(self, store):
        assert _load_script("sync_package").main(["import", str(store / "nope.json")]) == 1
