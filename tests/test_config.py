"""Tests for ExtrapolatorConfig."""

from pathlib import Path

import numpy as np
import pytest
import yaml

from pose_extrapolator.config import ExtrapolatorConfig, PredictionMode


class TestExtrapolatorConfig:
    """Test suite for ExtrapolatorConfig."""

    def test_defaults(self):
        """Test default values."""
        config = ExtrapolatorConfig()

        assert config.pose_queue_duration_s == 0.001
        assert config.pose_queue_duration_ns == 1_000_000
        assert config.imu_gravity_time_constant_s == 10.0
        assert config.prediction_mode is PredictionMode.INCREMENTAL
        assert not config.cross_validate
        np.testing.assert_array_equal(config.linear_acceleration_calibration, np.eye(3))

    def test_prediction_mode_from_string(self):
        """Test that the mode can be given by value."""
        config = ExtrapolatorConfig(prediction_mode="state_integration")

        assert config.prediction_mode is PredictionMode.STATE_INTEGRATION

    def test_invalid_values(self):
        """Test that invalid values are rejected."""
        with pytest.raises(ValueError):
            ExtrapolatorConfig(pose_queue_duration_s=-1.0)
        with pytest.raises(ValueError):
            ExtrapolatorConfig(imu_gravity_time_constant_s=0.0)
        with pytest.raises(ValueError):
            ExtrapolatorConfig(prediction_mode="kalman")
        with pytest.raises(ValueError, match="must be 3x3"):
            ExtrapolatorConfig(angular_velocity_calibration=np.eye(4))

    def test_from_dict_unknown_key(self):
        """Test that unknown keys are reported."""
        with pytest.raises(ValueError, match="Unknown extrapolator config keys"):
            ExtrapolatorConfig.from_dict({"pose_queue_duration": 1.0})


class TestExtrapolatorConfigYaml:
    """Test suite for YAML loading."""

    def test_from_yaml(self, tmp_path: Path):
        """Test loading a flat YAML mapping."""
        path = tmp_path / "extrapolator.yaml"
        path.write_text(
            "pose_queue_duration_s: 0.5\n"
            "imu_gravity_time_constant_s: 2.0\n"
            "prediction_mode: state_integration\n"
            "cross_validate: true\n"
        )

        config = ExtrapolatorConfig.from_yaml(path)

        assert config.pose_queue_duration_ns == 500_000_000
        assert config.imu_gravity_time_constant_s == 2.0
        assert config.prediction_mode is PredictionMode.STATE_INTEGRATION
        assert config.cross_validate

    def test_from_yaml_nested(self, tmp_path: Path):
        """Test loading a mapping under a pose_extrapolator key."""
        path = tmp_path / "pipeline.yaml"
        path.write_text("pose_extrapolator:\n  imu_gravity_time_constant_s: 4.0\n")

        config = ExtrapolatorConfig.from_yaml(path)

        assert config.imu_gravity_time_constant_s == 4.0
        assert config.pose_queue_duration_s == 0.001

    def test_from_yaml_empty_file(self, tmp_path: Path):
        """Test that an empty file gives defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert ExtrapolatorConfig.from_yaml(path).to_dict() == ExtrapolatorConfig().to_dict()

    def test_from_yaml_missing_file(self, tmp_path: Path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            ExtrapolatorConfig.from_yaml(tmp_path / "missing.yaml")

    def test_from_yaml_not_a_mapping(self, tmp_path: Path):
        """Test that a YAML list is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ValueError, match="Invalid extrapolator config"):
            ExtrapolatorConfig.from_yaml(path)

    def test_yaml_round_trip(self, tmp_path: Path):
        """Test that to_dict output loads back to the same config."""
        config = ExtrapolatorConfig(
            pose_queue_duration_s=0.25,
            cross_validate=True,
            linear_acceleration_calibration=np.diag([1.0, 2.0, 3.0]),
        )
        path = tmp_path / "round_trip.yaml"
        path.write_text(yaml.safe_dump(config.to_dict()))

        loaded = ExtrapolatorConfig.from_yaml(path)

        assert loaded.to_dict() == config.to_dict()
