"""Pose extrapolation for SLAM frontends from poses, IMU and odometry."""

__version__ = "0.1.0"

# Re-export main classes for convenient imports
from .config import ExtrapolatorConfig, PredictionMode
from .errors import NotReadyError, PoseExtrapolatorError, PreconditionError
from .extrapolation import (
    ExtrapolatorStatus,
    IncrementalStrategy,
    OrientationTracker,
    PoseExtrapolator,
    PredictionStrategy,
    State,
    StateIntegrationStrategy,
    TimedBuffer,
    integrate_imu,
)
from .geometry import SE3
from .io import ImuReader, PoseObservationReader
from .sensors import ImuSample, OdometrySample, TimedPose
from .trajectory_frontend import (
    CrossValidationSample,
    ExtrapolationFrame,
    LocalTrajectoryFrontend,
)

__all__ = [
    "__version__",
    # Configuration
    "ExtrapolatorConfig",
    "PredictionMode",
    # Errors
    "PoseExtrapolatorError",
    "PreconditionError",
    "NotReadyError",
    # Extrapolator
    "PoseExtrapolator",
    "ExtrapolatorStatus",
    "PredictionStrategy",
    "IncrementalStrategy",
    "StateIntegrationStrategy",
    "State",
    "OrientationTracker",
    "TimedBuffer",
    "integrate_imu",
    # Types
    "SE3",
    "TimedPose",
    "ImuSample",
    "OdometrySample",
    # Dataset / I/O
    "ImuReader",
    "PoseObservationReader",
    # Frontend
    "LocalTrajectoryFrontend",
    "ExtrapolationFrame",
    "CrossValidationSample",
]
