"""Extrapolator configuration and YAML loading."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np
import yaml

# Poses known to the extrapolator are usually much further apart than this,
# so in practice the last two poses are used for velocity estimation.
DEFAULT_POSE_QUEUE_DURATION_S = 0.001
DEFAULT_IMU_GRAVITY_TIME_CONSTANT_S = 10.0


class PredictionMode(Enum):
    """Which strategy answers extrapolate_pose."""

    INCREMENTAL = "incremental"
    STATE_INTEGRATION = "state_integration"


@dataclass
class ExtrapolatorConfig:
    """Configuration for a PoseExtrapolator and its frontend.

    Attributes:
        pose_queue_duration_s: Pose window duration in seconds
        imu_gravity_time_constant_s: Gravity low-pass time constant in seconds
        prediction_mode: Strategy used by extrapolate_pose
        cross_validate: Run the state-integration strategy alongside the
            incremental one in the frontend
        linear_acceleration_calibration: 3x3 accelerometer calibration
        angular_velocity_calibration: 3x3 gyroscope calibration
    """

    pose_queue_duration_s: float = DEFAULT_POSE_QUEUE_DURATION_S
    imu_gravity_time_constant_s: float = DEFAULT_IMU_GRAVITY_TIME_CONSTANT_S
    prediction_mode: PredictionMode = PredictionMode.INCREMENTAL
    cross_validate: bool = False
    linear_acceleration_calibration: np.ndarray = field(
        default_factory=lambda: np.eye(3)
    )
    angular_velocity_calibration: np.ndarray = field(default_factory=lambda: np.eye(3))

    def __post_init__(self) -> None:
        """Validate and normalize values."""
        self.pose_queue_duration_s = float(self.pose_queue_duration_s)
        self.imu_gravity_time_constant_s = float(self.imu_gravity_time_constant_s)
        if self.pose_queue_duration_s < 0.0:
            raise ValueError(
                f"pose_queue_duration_s must be >= 0, got {self.pose_queue_duration_s}"
            )
        if self.imu_gravity_time_constant_s <= 0.0:
            raise ValueError(
                "imu_gravity_time_constant_s must be positive, got "
                f"{self.imu_gravity_time_constant_s}"
            )
        self.prediction_mode = PredictionMode(self.prediction_mode)
        self.cross_validate = bool(self.cross_validate)
        self.linear_acceleration_calibration = _as_matrix3(
            self.linear_acceleration_calibration, "linear_acceleration_calibration"
        )
        self.angular_velocity_calibration = _as_matrix3(
            self.angular_velocity_calibration, "angular_velocity_calibration"
        )

    @property
    def pose_queue_duration_ns(self) -> int:
        """Pose window duration in nanoseconds."""
        return round(self.pose_queue_duration_s * 1e9)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtrapolatorConfig:
        """Create a config from a mapping of field names to values.

        Raises:
            ValueError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown extrapolator config keys: {unknown}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> ExtrapolatorConfig:
        """Load a config from a YAML file.

        The file holds a flat mapping, optionally nested under a top-level
        ``pose_extrapolator`` key. Missing keys take their defaults.

        Args:
            yaml_path: Path to the YAML file

        Returns:
            Loaded config

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the content is not a valid config mapping
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"Invalid extrapolator config in {yaml_path}")
        if "pose_extrapolator" in data:
            data = data["pose_extrapolator"] or {}
            if not isinstance(data, dict):
                raise ValueError(f"Invalid extrapolator config in {yaml_path}")
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Return a YAML-serializable mapping."""
        return {
            "pose_queue_duration_s": self.pose_queue_duration_s,
            "imu_gravity_time_constant_s": self.imu_gravity_time_constant_s,
            "prediction_mode": self.prediction_mode.value,
            "cross_validate": self.cross_validate,
            "linear_acceleration_calibration": self.linear_acceleration_calibration.tolist(),
            "angular_velocity_calibration": self.angular_velocity_calibration.tolist(),
        }


def _as_matrix3(value: Any, name: str) -> np.ndarray:
    matrix = np.asarray(value, dtype=np.float64)
    if matrix.shape != (3, 3):
        raise ValueError(f"{name} must be 3x3, got shape {matrix.shape}")
    return matrix
