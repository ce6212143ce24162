"""Tests for scenario loading."""

import pytest

from operator_core.errors import ScenarioLoadError
from operator_core.scenario.loader import load_scenario, parse_night_effects, parse_scenario


class TestParseScenario:
    def test_round_trip_through_json(self, night_scenario):
        parsed = parse_scenario(night_scenario.model_dump_json())
        assert parsed.night_id == "night_01"
        assert parsed.get_call("call_mother").get_start_segment().segment_id == "greeting"

    def test_night_id_defaults(self):
        assert parse_scenario({"scenario_id": "s1"}).night_id == "s1"
        assert parse_scenario({"scenario_id": "s1", "flags": {"night_id": "night_03"}}).night_id == "night_03"

    def test_invalid_ratio(self):
        with pytest.raises(ScenarioLoadError):
            parse_scenario({"scenario_id": "s1", "real_seconds_per_game_minute": 0})

    def test_malformed_json(self):
        with pytest.raises(ScenarioLoadError):
            parse_scenario("{not json")


class TestLoadScenario:
    def test_load_from_file(self, tmp_path, night_scenario):
        path = tmp_path / "night_01.json"
        path.write_text(night_scenario.model_dump_json(), encoding="utf-8")
        assert load_scenario(path).scenario_id == "night_01_scenario"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ScenarioLoadError):
            load_scenario(tmp_path / "missing.json")


class TestNightEffects:
    def test_parse(self, night_effects):
        parsed = parse_night_effects(night_effects.model_dump(mode="json"))
        assert [e.effect_id for e in parsed.effects] == ["police_remember", "quiet_aftermath"]

    def test_invalid(self):
        with pytest.raises(ScenarioLoadError):
            parse_night_effects({"effects": [{"effect_id": "x"}]})
