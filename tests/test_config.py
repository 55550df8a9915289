"""Tests for configuration loading and validation."""

import logging

import pytest

from ttv_analytics.config import Config, ConfigModel, get_config, load_config, save_config


class TestConfigModel:

    def test_defaults(self):
        config = ConfigModel()

        assert config.contract_signed_phrase == "contract signed"
        assert config.go_live_phrase == "first live patient samples"
        assert config.stalled_min_age_days == 90
        assert config.stalled_max_progress_percent == 50
        assert config.phase_slowdown_factor == 1.5
        assert config.long_open_task_days == 30
        assert config.overdue_task_threshold == 10
        assert config.blocked_task_threshold == 5
        assert config.min_completed_for_benchmarks == 2
        assert config.trend_threshold_percent == 5
        assert len(config.phase_definition()) == 10

    def test_yaml_round_trip(self):
        config = ConfigModel(long_open_task_days=45, go_live_phrase="go live")

        restored = ConfigModel.from_yaml(config.to_yaml())

        assert restored == config

    def test_partial_yaml_keeps_defaults(self):
        config = ConfigModel.from_yaml("overdue_task_threshold: 3\n")

        assert config.overdue_task_threshold == 3
        assert config.blocked_task_threshold == 5

    def test_empty_yaml(self):
        assert ConfigModel.from_yaml("") == ConfigModel()

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown configuration keys: colour"):
            ConfigModel.from_dict({"colour": "blue"})

    def test_phases_as_mapping(self):
        config = ConfigModel.from_yaml(
            "phases:\n  Kickoff: Kickoff & Contract\n  Launch: Launch\nphase_aliases: {}\n"
        )
        definition = config.phase_definition()

        assert list(definition) == ["Kickoff", "Launch"]
        assert definition["Kickoff"] == "Kickoff & Contract"

    def test_phases_as_list_of_keys(self):
        config = ConfigModel.from_dict({"phases": ["A", {"key": "B", "name": "Bee"}],
                                        "phase_aliases": {}})

        assert config.phase_definition().to_list() == [
            {"key": "A", "name": "A"},
            {"key": "B", "name": "Bee"},
        ]

    def test_duplicate_phase_key(self):
        with pytest.raises(ValueError, match="Duplicate phase key"):
            ConfigModel.from_dict({"phases": ["A", "A"], "phase_aliases": {}})

    def test_alias_to_removed_phase(self):
        # Default aliases point at "Phase N" keys
        with pytest.raises(ValueError, match="unknown phase"):
            ConfigModel.from_dict({"phases": ["A"]})

    def test_phase_entry_without_key(self):
        with pytest.raises(ValueError, match="needs a key"):
            ConfigModel.from_dict({"phases": [{"name": "Nameless"}], "phase_aliases": {}})


class TestConfigManager:

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.yaml")

        assert config == ConfigModel()
        assert get_config() is config

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        save_config(ConfigModel(trend_threshold_percent=8), path)

        assert path.exists()
        assert load_config(path).trend_threshold_percent == 8

    def test_invalid_yaml_falls_back_to_defaults(self, tmp_path, caplog):
        path = tmp_path / "config.yaml"
        path.write_text("phases: [unclosed\n")

        with caplog.at_level(logging.WARNING, logger="ttv_analytics.config"):
            config = load_config(path)

        assert config == ConfigModel()
        assert "Failed to load config" in caplog.text

    def test_invalid_values_fall_back_to_defaults(self, tmp_path, caplog):
        path = tmp_path / "config.yaml"
        path.write_text("unknown_setting: 1\n")

        with caplog.at_level(logging.WARNING, logger="ttv_analytics.config"):
            config = load_config(path)

        assert config == ConfigModel()
        assert "unknown_setting" in caplog.text

    def test_get_is_cached(self):
        Config.reset()
        Config._instance = ConfigModel(long_open_task_days=12)

        assert get_config().long_open_task_days == 12
        assert get_config() is get_config()
