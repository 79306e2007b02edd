"""Extrapolation core: buffers, IMU integration, orientation tracking,
velocity estimation and prediction strategies.
"""

from .imu_integrator import IntegrateImuResult, integrate_imu
from .orientation_tracker import (
    OrientationTracker,
    TrackerState,
    advance_state,
    observe_angular_velocity,
    observe_linear_acceleration,
    propagate_tracker,
)
from .pose_extrapolator import ExtrapolatorStatus, PoseExtrapolator, make_strategy
from .strategies import (
    IncrementalStrategy,
    PredictionStrategy,
    State,
    StateIntegrationStrategy,
)
from .timed_buffer import TimedBuffer
from .velocity import (
    MIN_VELOCITY_ESTIMATION_SPAN_NS,
    VelocityEstimate,
    velocity_from_odometry,
    velocity_from_poses,
)

__all__ = [
    # Extrapolator
    "PoseExtrapolator",
    "ExtrapolatorStatus",
    "make_strategy",
    # Strategies
    "PredictionStrategy",
    "IncrementalStrategy",
    "StateIntegrationStrategy",
    "State",
    # Buffers
    "TimedBuffer",
    # IMU integration
    "integrate_imu",
    "IntegrateImuResult",
    # Orientation tracking
    "OrientationTracker",
    "TrackerState",
    "advance_state",
    "observe_linear_acceleration",
    "observe_angular_velocity",
    "propagate_tracker",
    # Velocity
    "VelocityEstimate",
    "velocity_from_poses",
    "velocity_from_odometry",
    "MIN_VELOCITY_ESTIMATION_SPAN_NS",
]
