"""Timestamped sensor samples consumed by the extrapolator."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..geometry import SE3


@dataclass(frozen=True)
class TimedPose:
    """A pose observation anchored in time.

    Attributes:
        timestamp_ns: Observation timestamp in nanoseconds
        pose: Tracking-frame pose in the local world frame
    """

    timestamp_ns: int
    pose: SE3


@dataclass
class ImuSample:
    """Single IMU reading at a given timestamp.

    Attributes:
        timestamp_ns: Measurement timestamp in nanoseconds
        linear_acceleration: Specific force (ax, ay, az) in m/s², gravity included
        angular_velocity: Angular velocity (wx, wy, wz) in rad/s
    """

    timestamp_ns: int
    linear_acceleration: np.ndarray  # (3,) m/s²
    angular_velocity: np.ndarray  # (3,) rad/s

    def __post_init__(self) -> None:
        """Ensure arrays have correct shape."""
        self.linear_acceleration = np.asarray(
            self.linear_acceleration, dtype=np.float64
        ).flatten()
        self.angular_velocity = np.asarray(
            self.angular_velocity, dtype=np.float64
        ).flatten()
        if self.linear_acceleration.shape != (3,):
            raise ValueError(
                f"Linear acceleration must be (3,), got {self.linear_acceleration.shape}"
            )
        if self.angular_velocity.shape != (3,):
            raise ValueError(
                f"Angular velocity must be (3,), got {self.angular_velocity.shape}"
            )


@dataclass(frozen=True)
class OdometrySample:
    """Single odometry reading.

    Attributes:
        timestamp_ns: Measurement timestamp in nanoseconds
        pose: Odometry pose in the odometry frame
    """

    timestamp_ns: int
    pose: SE3
