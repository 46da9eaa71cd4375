"""
Tests for the station export, server import, backup and restore flows.
"""

import copy
import json
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import patch

from registry_sync.core.backup import (
    assess_health,
    create_backup,
    is_backup_due,
    restore_backup,
)
from registry_sync.core.config import PLACEHOLDER_CPF
from registry_sync.core.errors import FormatError, ParseError, SyncModeError
from registry_sync.core.lifecycle import BundleState
from registry_sync.core.schema import AuditAction, SystemMode
from registry_sync.core.sync import export_station_package, import_station_package, system_mode
from registry_sync.util.logging import logger

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
ADMIN = {"id": "agent-1", "name": "Maria", "role": "Admin"}


@pytest.fixture
def server_state():
    return {
        "institution": {"name": "City Hall", "city": "Santa Rita", "systemMode": SystemMode.SERVER.value},
        "agents": [ADMIN],
        "residents": [{"id": "r1", "cpf": "111", "name": "A"}],
        "logs": [],
        "territories": [{"id": "t1", "street": "Main", "number": "10"}],
        "config": None,
    }


@pytest.fixture
def station_state(server_state):
    state = copy.deepcopy(server_state)
    state["institution"]["systemMode"] = SystemMode.STATION.value
    state["institution"]["city"] = "Vila  Nova"
    state["residents"] = [{"cpf": "111", "name": "B", "phone": "999"}, {"cpf": "222", "name": "C"}]
    state["territories"] = [{"street": "Main", "number": "10", "block": "X"}, {"street": "Oak", "number": "3"}]
    return state


class TestStationExport:

    def test_package_contents(self, station_state):
        result = export_station_package(station_state, actor=ADMIN, now=NOW)

        assert result.filename == "station_package_Vila_Nova_2025-06-01.json"
        assert result.bundle["agents"] == []
        assert result.bundle["logs"] == []
        assert len(result.bundle["residents"]) == 2
        assert all(r["id"] for r in result.bundle["residents"])
        assert result.lifecycle.state == BundleState.EXPORTED

    def test_export_adds_one_sync_log(self, station_state):
        result = export_station_package(station_state, actor=ADMIN, now=NOW)

        assert len(result.state["logs"]) == 1
        entry = result.state["logs"][0]
        assert entry["action"] == AuditAction.SYNC.value
        assert entry["agentId"] == "agent-1"
        assert entry["targetName"] == "Collection package generated for server"
        assert station_state["logs"] == []


class TestServerImport:

    def test_station_package_round_trip(self, server_state, station_state):
        package = export_station_package(station_state, now=NOW).bundle
        raw = json.dumps(package)

        result = import_station_package(server_state, raw, source_name="pkg.json", actor=ADMIN, now=NOW)

        assert result.merge.new_count == 1
        assert result.merge.updated_count == 1
        residents = {r["cpf"]: r for r in result.state["residents"]}
        assert residents["111"]["name"] == "B"
        assert residents["111"]["phone"] == "999"
        assert len(result.state["territories"]) == 2
        assert result.lifecycle.state == BundleState.COLLECTED

    def test_import_log_entry_and_message(self, server_state):
        result = import_station_package(server_state, '{"residents": [{"cpf": "5"}]}', source_name="st1.json")

        assert result.state["logs"][0]["targetName"] == "Package st1.json processed"
        assert result.state["logs"][0]["agentName"] == "System"
        assert result.message() == "Synchronization complete! 1 new records and 0 updates applied."

    def test_hand_edited_package_is_sanitized(self, server_state):
        result = import_station_package(server_state, {"residents": [{"name": "No Id"}]})

        added = result.state["residents"][-1]
        assert added["id"]
        assert added["cpf"] == PLACEHOLDER_CPF

    @pytest.mark.parametrize("raw", ['{"territories": []}', '{"residents": "x"}', '[]'])
    def test_missing_residents_rejected_before_sanitizing(self, server_state, raw):
        before = copy.deepcopy(server_state)

        with pytest.raises(FormatError):
            import_station_package(server_state, raw)

        assert server_state == before

    def test_invalid_json_rejected(self, server_state):
        before = copy.deepcopy(server_state)

        with pytest.raises(ParseError):
            import_station_package(server_state, b"not json")

        assert server_state == before

    def test_station_cannot_import(self, station_state):
        with pytest.raises(SyncModeError):
            import_station_package(station_state, '{"residents": []}')

    def test_placeholder_matches_are_audited_without_personal_data(self, server_state):
        server_state["residents"].append({"id": "r2", "cpf": PLACEHOLDER_CPF, "name": "Unknown"})
        package = {"residents": [{"name": "Walk-in", "phone": "555-0100", "rg": "77"}]}

        with patch.object(logger, "log_operation") as mock_log:
            result = import_station_package(server_state, package, source_name="st2.json")

        assert result.merge.placeholder_matches == 1
        details = next(c.args[2] for c in mock_log.call_args_list if c.args[:2] == ("sync", "audit"))
        record = details["payload"]["placeholder_records"][0]
        assert record["name"] == "Walk-in"
        assert record["cpf"] == "[REDACTED]"
        assert record["phone"] == "[REDACTED]"
        assert record["rg"] == "[REDACTED]"

    def test_clean_import_audits_counts_only(self, server_state):
        with patch.object(logger, "log_operation") as mock_log:
            import_station_package(server_state, '{"residents": [{"cpf": "5"}]}')

        details = next(c.args[2] for c in mock_log.call_args_list if c.args[:2] == ("sync", "audit"))
        assert "placeholder_records" not in details["payload"]

    def test_state_is_not_mutated(self, server_state):
        before = copy.deepcopy(server_state)
        import_station_package(server_state, '{"residents": [{"cpf": "111", "name": "Z"}]}')
        assert server_state == before


class TestSystemMode:

    @pytest.mark.parametrize("institution, expected", [
        (None, SystemMode.SERVER),
        ({"systemMode": SystemMode.STATION.value}, SystemMode.STATION),
        ({"systemMode": "garbage"}, SystemMode.SERVER),
    ])
    def test_mode_resolution(self, institution, expected):
        assert system_mode({"institution": institution}) == expected


class TestBackup:

    def test_backup_bundle_and_state(self, server_state):
        result = create_backup(server_state, actor=ADMIN, now=NOW)

        assert result.filename == "registry_backup_2025-06-01T12-00-00-000Z.json"
        assert result.bundle["residents"][0]["cpf"] == "111"
        assert result.bundle["config"]["frequency"] == "daily"
        assert result.state["config"]["lastBackupDate"] == "2025-06-01T12:00:00.000Z"
        assert result.state["logs"][0]["action"] == AuditAction.BACKUP.value
        assert "lastBackupDate" not in result.bundle["config"]

    def test_backup_keeps_existing_preferences(self, server_state):
        server_state["config"] = {"autoBackupEnabled": False, "frequency": "weekly", "remindMe": False}
        result = create_backup(server_state, now=NOW)

        assert result.state["config"]["frequency"] == "weekly"
        assert result.state["config"]["autoBackupEnabled"] is False

    def test_restore_replaces_everything(self, server_state):
        backup = {
            "institution": {"name": "Other Town", "systemMode": SystemMode.STATION.value},
            "residents": [{"cpf": "999"}],
            "agents": [{"name": "Op"}],
            "logs": [{"id": "old"}],
        }

        new_state = restore_backup(server_state, json.dumps(backup), actor=ADMIN, now=NOW)

        assert [r["cpf"] for r in new_state["residents"]] == ["999"]
        assert new_state["territories"] == []
        assert new_state["institution"]["name"] == "Other Town"
        assert new_state["agents"][0]["id"]
        assert [entry.get("id") for entry in new_state["logs"]][1:] == ["old"]
        assert new_state["logs"][0]["targetName"] == "Full restore applied"

    def test_restore_keeps_local_preferences_when_file_has_none(self, server_state):
        server_state["config"] = {"autoBackupEnabled": True, "frequency": "monthly", "remindMe": True}
        new_state = restore_backup(server_state, '{"residents": []}')

        assert new_state["config"]["frequency"] == "monthly"

    def test_restore_rejects_invalid_json(self, server_state):
        with pytest.raises(ParseError):
            restore_backup(server_state, "{broken")


class TestBackupDue:

    def test_due_without_previous_backup(self):
        assert is_backup_due({"autoBackupEnabled": True, "remindMe": True, "frequency": "daily"}, NOW)

    def test_disabled_reminder_is_never_due(self):
        assert not is_backup_due({"autoBackupEnabled": True, "remindMe": False, "frequency": "daily"}, NOW)
        assert not is_backup_due({"autoBackupEnabled": False, "remindMe": True, "frequency": "daily"}, NOW)

    @pytest.mark.parametrize("frequency, age, due", [
        ("daily", timedelta(hours=23), False),
        ("daily", timedelta(days=1), True),
        ("weekly", timedelta(days=6), False),
        ("weekly", timedelta(days=8), True),
        ("monthly", timedelta(days=29), False),
        ("monthly", timedelta(days=31), True),
    ])
    def test_interval_by_frequency(self, frequency, age, due):
        last = (NOW - age).isoformat().replace("+00:00", "Z")
        config = {"autoBackupEnabled": True, "remindMe": True, "frequency": frequency, "lastBackupDate": last}

        assert is_backup_due(config, NOW) is due

    def test_missing_config_uses_defaults(self):
        assert is_backup_due(None, NOW) is True


class TestHealth:

    def test_empty_base(self):
        assert assess_health([]) == ("--", "Empty Base")

    def test_missing_national_id(self):
        assert assess_health([{"cpf": "1"}, {"cpf": ""}]) == ("B", "Needs Attention")
        assert assess_health([{"cpf": PLACEHOLDER_CPF}]) == ("B", "Needs Attention")

    def test_excellent(self):
        assert assess_health([{"cpf": "1"}, {"cpf": "2"}]) == ("A+", "Excellent")
