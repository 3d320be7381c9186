"""Unit tests for eskf_localization.config."""

import json
import warnings

import pytest

from eskf_localization.config import (
    FilterConfig,
    MeasurementNoise,
    ProcessNoise,
    load_config,
)
from eskf_localization.errors import ConfigurationError


class TestFilterConfig:
    def test_defaults(self) -> None:
        config = FilterConfig()
        assert config.fusion_method == "error_state_kalman_filter"
        assert config.fusion_strategy == "pose_velocity"
        assert config.sync_tolerance_s == pytest.approx(0.05)
        assert config.fuses_orientation
        assert config.fuses_velocity

    @pytest.mark.parametrize(
        "strategy, orientation, velocity",
        [
            ("pose", True, False),
            ("position", False, False),
            ("position_velocity", False, True),
            ("pose_velocity", True, True),
        ],
    )
    def test_strategy_flags(self, strategy, orientation, velocity) -> None:
        config = FilterConfig(fusion_strategy=strategy)
        assert config.fuses_orientation is orientation
        assert config.fuses_velocity is velocity

    def test_unknown_method(self) -> None:
        with pytest.raises(ConfigurationError):
            FilterConfig(fusion_method="particle_filter")

    def test_unknown_strategy(self) -> None:
        with pytest.raises(ConfigurationError):
            FilterConfig(fusion_strategy="heading_only")

    def test_configuration_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            FilterConfig(fusion_strategy="heading_only")

    def test_invalid_tolerance(self) -> None:
        with pytest.raises(ValueError):
            FilterConfig(sync_tolerance_s=0.0)

    def test_invalid_gate_confidence(self) -> None:
        with pytest.raises(ValueError):
            FilterConfig(gate_confidence=1.5)

    def test_gate_can_be_disabled(self) -> None:
        assert FilterConfig(gate_confidence=None).gate_confidence is None

    def test_wide_tolerance_warns(self) -> None:
        with pytest.warns(UserWarning, match="sync_tolerance_s"):
            FilterConfig(sync_tolerance_s=0.5)

    def test_default_does_not_warn(self) -> None:
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            FilterConfig()

    def test_noise_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            ProcessNoise(accel=0.0)
        with pytest.raises(ValueError):
            MeasurementNoise(position=-1.0)


class TestFromDict:
    def test_partial_nested_section(self) -> None:
        config = FilterConfig.from_dict({"measurement_noise": {"position": 0.5}})
        assert config.measurement_noise.position == pytest.approx(0.5)
        assert config.measurement_noise.velocity == pytest.approx(MeasurementNoise().velocity)

    def test_unknown_top_level_key(self) -> None:
        with pytest.raises(ConfigurationError):
            FilterConfig.from_dict({"fusion_rate": 10})

    def test_unknown_nested_key(self) -> None:
        with pytest.raises(ConfigurationError):
            FilterConfig.from_dict({"process_noise": {"magnetometer": 1.0}})

    def test_to_dict_round_trip(self) -> None:
        config = FilterConfig.from_dict({
            "fusion_strategy": "position",
            "process_noise": {"gyro": 0.002},
            "enable_observability_analysis": True,
        })
        assert FilterConfig.from_dict(config.to_dict()) == config


class TestLoadConfig:
    def test_load_json(self, tmp_path) -> None:
        path = tmp_path / "filter.json"
        path.write_text(json.dumps({"fusion_strategy": "pose", "sync_tolerance_s": 0.04}))
        config = load_config(path)
        assert config.fusion_strategy == "pose"
        assert config.sync_tolerance_s == pytest.approx(0.04)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_non_object_root(self, tmp_path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ConfigurationError):
            load_config(path)
