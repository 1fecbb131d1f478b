"""Tests for the persisted consent decision."""

from __future__ import annotations

import json

import pytest

from usagegate.errors import ConsentStoreError, ConsentUndecidedError
from usagegate.telemetry.store import ConsentDecision, ConsentStore, JsonSettingsStore


class TestJsonSettingsStore:
    def test_missing_file_reads_as_empty(self, tmp_path):
        settings = JsonSettingsStore(tmp_path / "nested" / "telemetry.json")
        assert settings.get("enabled") is None

    def test_set_creates_file_and_keeps_other_keys(self, tmp_path):
        path = tmp_path / "nested" / "telemetry.json"
        path.parent.mkdir()
        path.write_text(json.dumps({"theme": "dark"}))

        JsonSettingsStore(path).set("enabled", True)

        assert json.loads(path.read_text()) == {"theme": "dark", "enabled": True}

    def test_malformed_file_is_an_error(self, tmp_path):
        path = tmp_path / "telemetry.json"
        path.write_text("not valid json")

        with pytest.raises(ConsentStoreError) as exc_info:
            JsonSettingsStore(path).get("enabled")
        assert exc_info.value.path == path

    def test_non_object_file_is_an_error(self, tmp_path):
        path = tmp_path / "telemetry.json"
        path.write_text("[true]")

        with pytest.raises(ConsentStoreError):
            JsonSettingsStore(path).get("enabled")

    def test_write_failure_is_an_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file where a directory should be")

        with pytest.raises(ConsentStoreError):
            JsonSettingsStore(blocker / "telemetry.json").set("enabled", False)


class TestConsentStore:
    def test_never_asked(self, store):
        assert store.read() is ConsentDecision.UNKNOWN
        assert store.has_decision() is False

    def test_opt_in_round_trip(self, store):
        store.set_opted_in(True)
        assert store.read() is ConsentDecision.OPTED_IN
        assert store.has_decision() is True
        assert store.is_opted_in() is True

    def test_opt_out(self, store):
        store.set_opted_in(False)
        assert store.read() is ConsentDecision.OPTED_OUT
        assert store.has_decision() is True
        assert store.is_opted_in() is False

    def test_is_opted_in_before_decision_is_a_contract_violation(self, store):
        with pytest.raises(ConsentUndecidedError):
            store.is_opted_in()

    def test_non_boolean_value_is_an_error(self, settings_path):
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text(json.dumps({"enabled": "maybe"}))

        with pytest.raises(ConsentStoreError):
            ConsentStore(JsonSettingsStore(settings_path)).has_decision()

    def test_read_failure_propagates(self, settings_path):
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text("{")

        with pytest.raises(ConsentStoreError):
            ConsentStore(JsonSettingsStore(settings_path)).has_decision()
