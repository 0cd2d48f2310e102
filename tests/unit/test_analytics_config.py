"""
UNIT TESTS - ANALYTICS CONFIG
=============================
Tests for core/analytics_config.py
"""

import sys
from pathlib import Path

import pytest
import yaml

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from core.analytics_config import (
    AnalyticsConfig,
    DEFAULT_CONFIG,
    DEFAULT_CONFIG_PATH,
    REQUIRED_CONFIG_KEYS,
    load_config,
    validate_config,
)


def _write_config(tmp_path, data):
    path = tmp_path / "analytics.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


def _minimal():
    return {
        "EDGE_THRESHOLD": 0.01,
        "FRESHNESS_THRESHOLD_MINUTES": 5,
        "CONFIDENCE_BINS": {"MED": 0.55},
        "DRIFT_WINDOWS": {"SHORT": 5, "MEDIUM": 15, "LONG": 60},
    }


class TestDefaults:

    def test_production_values(self):
        config = AnalyticsConfig()
        assert config.edge_threshold == 0.005
        assert config.pick_min_edge == 0.03
        assert config.freshness_threshold_minutes == 60
        assert config.confidence_bins["MED"] == 0.5
        assert config.calibration_min_samples == 100
        assert config.window_minutes == (5, 15, 60)
        assert config.learning_rate == 0.01
        assert config.max_iterations == 1000

    def test_default_is_immutable(self):
        with pytest.raises(Exception):
            DEFAULT_CONFIG.edge_threshold = 0.5

    def test_nested_mappings_are_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_CONFIG.drift_windows["SHORT"] = 1
        with pytest.raises(TypeError):
            DEFAULT_CONFIG.confidence_bins["MED"] = 0.9
        assert DEFAULT_CONFIG.window_minutes == (5, 15, 60)

    def test_caller_dict_is_copied(self):
        windows = {"SHORT": 1, "MEDIUM": 2, "LONG": 3}
        config = AnalyticsConfig(drift_windows=windows)
        windows["SHORT"] = 99
        assert config.window_minutes == (1, 2, 3)

    def test_hashable_and_equal_by_value(self):
        assert hash(AnalyticsConfig()) == hash(DEFAULT_CONFIG)
        assert AnalyticsConfig() == DEFAULT_CONFIG
        assert AnalyticsConfig(max_iterations=5) != DEFAULT_CONFIG

    def test_to_dict_returns_plain_dicts(self):
        data = DEFAULT_CONFIG.to_dict()
        assert type(data["DRIFT_WINDOWS"]) is dict
        data["DRIFT_WINDOWS"]["SHORT"] = 1
        assert DEFAULT_CONFIG.drift_windows["SHORT"] == 5

    def test_to_dict_uses_yaml_keys(self):
        data = AnalyticsConfig().to_dict()
        assert data["EDGE_THRESHOLD"] == 0.005
        assert set(REQUIRED_CONFIG_KEYS) <= set(data)


class TestValidateConfig:

    def test_none_rejected(self):
        with pytest.raises(ValueError, match="empty"):
            validate_config(None)

    def test_non_mapping_rejected(self):
        with pytest.raises(ValueError, match="mapping"):
            validate_config(["EDGE_THRESHOLD"])

    def test_lists_every_missing_key(self):
        with pytest.raises(ValueError) as excinfo:
            validate_config({"EDGE_THRESHOLD": 0.01})
        message = str(excinfo.value)
        for key in ("FRESHNESS_THRESHOLD_MINUTES", "CONFIDENCE_BINS", "DRIFT_WINDOWS"):
            assert key in message

    def test_complete_config_passes(self):
        validate_config(_minimal())


class TestFromDict:

    def test_nested_values_merge_over_defaults(self):
        config = AnalyticsConfig.from_dict(_minimal())
        assert config.confidence_bins == {"HIGH": 0.65, "MED": 0.55, "LOW": 0.5}

    def test_unknown_keys_ignored(self):
        data = _minimal()
        data["SOMETHING_ELSE"] = 1
        config = AnalyticsConfig.from_dict(data)
        assert not hasattr(config, "something_else")

    def test_nested_key_must_be_mapping(self):
        data = _minimal()
        data["DRIFT_WINDOWS"] = 5
        with pytest.raises(ValueError, match="mapping"):
            AnalyticsConfig.from_dict(data)

    def test_range_checks(self):
        data = _minimal()
        data["LEARNING_RATE"] = 0
        data["CALIBRATION_VALIDATION_SPLIT"] = 1.5
        with pytest.raises(ValueError) as excinfo:
            AnalyticsConfig.from_dict(data)
        assert "LEARNING_RATE" in str(excinfo.value)
        assert "CALIBRATION_VALIDATION_SPLIT" in str(excinfo.value)


class TestLoadConfig:

    def test_load_from_file(self, tmp_path):
        config = load_config(_write_config(tmp_path, _minimal()))
        assert config.edge_threshold == 0.01
        assert config.freshness_threshold_minutes == 5
        assert config.pick_min_edge == 0.03

    def test_load_rejects_missing_keys(self, tmp_path):
        with pytest.raises(ValueError, match="Missing key: DRIFT_WINDOWS"):
            load_config(_write_config(tmp_path, {"EDGE_THRESHOLD": 0.01,
                                                 "FRESHNESS_THRESHOLD_MINUTES": 5,
                                                 "CONFIDENCE_BINS": {}}))

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_bundled_config_matches_defaults(self):
        assert Path(DEFAULT_CONFIG_PATH).exists()
        assert load_config() == AnalyticsConfig()
