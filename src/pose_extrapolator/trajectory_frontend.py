"""Local trajectory frontend driving a PoseExtrapolator.

Host-side plumbing between sensor callbacks and the extrapolator:

- The extrapolator is created from the first IMU sample.
- Odometry and pose queries are dropped ("not ready") until then.
- Optionally, every pose observation is cross-validated against an
  independent state-integration prediction over the same buffers.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import numpy as np
from scipy.spatial.transform import Rotation

from .config import ExtrapolatorConfig
from .extrapolation import (
    ExtrapolatorStatus,
    IncrementalStrategy,
    PoseExtrapolator,
    StateIntegrationStrategy,
    make_strategy,
)
from .geometry import SE3
from .sensors import ImuSample, OdometrySample

_LOG: logging.Logger = logging.getLogger(__name__)


@dataclass
class ExtrapolationTiming:
    """Timing breakdown for one frontend call."""

    extrapolation_ms: float = 0.0
    total_ms: float = 0.0


@dataclass
class ExtrapolationFrame:
    """Output of the frontend for a given timestamp.

    Attributes:
        frame_id: Sequential frame identifier
        timestamp_ns: Timestamp in nanoseconds
        pose: Predicted (or observed) pose T_world_tracking
        status: Extrapolator lifecycle state after the call
        timing: Processing time breakdown
    """

    frame_id: int
    timestamp_ns: int
    pose: SE3
    status: ExtrapolatorStatus
    timing: ExtrapolationTiming = field(default_factory=ExtrapolationTiming)

    @property
    def position(self) -> np.ndarray:
        """Return tracking-frame position in world frame."""
        return self.pose.translation


@dataclass
class CrossValidationSample:
    """Incremental vs. state-integration prediction at one pose observation.

    Attributes:
        timestamp_ns: Observation timestamp
        observed_pose: Pose added to the extrapolator
        incremental_pose: Incremental prediction made before the observation
        integrated_pose: State-integration prediction at the same time
    """

    timestamp_ns: int
    observed_pose: SE3
    incremental_pose: SE3
    integrated_pose: SE3

    @property
    def translation_divergence(self) -> float:
        """Distance between the two predictions in meters."""
        return float(
            np.linalg.norm(
                self.incremental_pose.translation - self.integrated_pose.translation
            )
        )

    @property
    def rotation_divergence(self) -> float:
        """Angle between the two predictions in radians."""
        return float(
            (
                self.incremental_pose.rotation.inv() * self.integrated_pose.rotation
            ).magnitude()
        )


class LocalTrajectoryFrontend:
    """Feeds sensor data into a PoseExtrapolator for one trajectory.

    Until the first IMU sample arrives the orientation of the sensor is
    unknown, so odometry is dropped and pose predictions return None.
    """

    def __init__(self, config: ExtrapolatorConfig | None = None) -> None:
        """Initialize the frontend.

        Args:
            config: Extrapolator configuration (defaults if None)
        """
        self._config = config if config is not None else ExtrapolatorConfig()
        self._extrapolator: PoseExtrapolator | None = None
        self._cross_validation_strategy: StateIntegrationStrategy | None = (
            StateIntegrationStrategy() if self._config.cross_validate else None
        )
        self._cross_validation: list[CrossValidationSample] = []
        self._frame_id: int = 0
        self._first_observation_ns: int | None = None
        self._last_observation_ns: int | None = None

    def add_imu_sample(self, imu_sample: ImuSample) -> None:
        """Forward an IMU sample, creating the extrapolator on the first one."""
        if self._extrapolator is not None:
            self._extrapolator.add_imu_sample(imu_sample)
            return
        self._extrapolator = PoseExtrapolator.initialize_with_imu(
            self._config.pose_queue_duration_ns,
            self._config.imu_gravity_time_constant_s,
            imu_sample,
            strategy=make_strategy(self._config.prediction_mode),
            linear_acceleration_calibration=self._config.linear_acceleration_calibration,
            angular_velocity_calibration=self._config.angular_velocity_calibration,
        )
        _LOG.info("Extrapolator initialized at %d ns", imu_sample.timestamp_ns)

    def add_odometry_sample(self, odometry_sample: OdometrySample) -> bool:
        """Forward an odometry sample.

        Returns:
            False if the sample was dropped because no IMU sample arrived yet
        """
        if self._extrapolator is None:
            _LOG.info("Extrapolator not yet initialized, dropping odometry sample.")
            return False
        self._extrapolator.add_odometry_sample(odometry_sample)
        return True

    def predict_pose(self, timestamp_ns: int) -> ExtrapolationFrame | None:
        """Predict the pose at ``timestamp_ns``.

        Returns:
            ExtrapolationFrame, or None until the first IMU sample arrived
        """
        if self._extrapolator is None:
            _LOG.info("IMU not yet initialized.")
            return None

        start_time = time.perf_counter()
        pose = self._extrapolator.extrapolate_pose(timestamp_ns)
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        return self._make_frame(
            timestamp_ns,
            pose,
            self._extrapolator.status,
            ExtrapolationTiming(extrapolation_ms=elapsed_ms, total_ms=elapsed_ms),
        )

    def add_pose_observation(
        self, timestamp_ns: int, pose: SE3
    ) -> ExtrapolationFrame | None:
        """Add a refined pose (e.g. from scan matching).

        With cross-validation enabled the incremental and state-integration
        predictions at ``timestamp_ns`` are recorded before the pose is added.

        Returns:
            Frame holding the observed pose, or None until the first IMU
            sample arrived
        """
        if self._extrapolator is None:
            _LOG.info("IMU not yet initialized, dropping pose observation.")
            return None

        start_time = time.perf_counter()
        if self._cross_validation_strategy is not None:
            incremental_pose = self._extrapolator.predict_with(
                IncrementalStrategy(), timestamp_ns
            )
            integrated_pose = self._extrapolator.predict_with(
                self._cross_validation_strategy, timestamp_ns
            )
            self._cross_validation.append(
                CrossValidationSample(
                    timestamp_ns=timestamp_ns,
                    observed_pose=pose,
                    incremental_pose=incremental_pose,
                    integrated_pose=integrated_pose,
                )
            )
        extrapolation_ms = (time.perf_counter() - start_time) * 1000

        self._extrapolator.add_pose(timestamp_ns, pose)
        if self._first_observation_ns is None:
            self._first_observation_ns = timestamp_ns
        self._last_observation_ns = timestamp_ns

        total_ms = (time.perf_counter() - start_time) * 1000
        return self._make_frame(
            timestamp_ns,
            pose,
            self._extrapolator.status,
            ExtrapolationTiming(extrapolation_ms=extrapolation_ms, total_ms=total_ms),
        )

    def gravity_alignment(self, timestamp_ns: int) -> Rotation | None:
        """Gravity-aligned orientation at ``timestamp_ns``, None if not ready."""
        if self._extrapolator is None:
            return None
        return self._extrapolator.estimate_gravity_orientation(timestamp_ns)

    def _make_frame(
        self,
        timestamp_ns: int,
        pose: SE3,
        status: ExtrapolatorStatus,
        timing: ExtrapolationTiming,
    ) -> ExtrapolationFrame:
        frame = ExtrapolationFrame(
            frame_id=self._frame_id,
            timestamp_ns=timestamp_ns,
            pose=pose,
            status=status,
            timing=timing,
        )
        self._frame_id += 1
        return frame

    @property
    def extrapolator(self) -> PoseExtrapolator | None:
        """Underlying extrapolator, None until the first IMU sample."""
        return self._extrapolator

    @property
    def is_initialized(self) -> bool:
        """True once the first IMU sample has been received."""
        return self._extrapolator is not None

    @property
    def cross_validation(self) -> list[CrossValidationSample]:
        """Recorded cross-validation samples."""
        return self._cross_validation.copy()

    @property
    def observation_span_s(self) -> float:
        """Time between the first and last pose observation in seconds."""
        if self._first_observation_ns is None or self._last_observation_ns is None:
            return 0.0
        return (self._last_observation_ns - self._first_observation_ns) * 1e-9

    def reset(self) -> None:
        """Forget the trajectory; the next IMU sample re-initializes."""
        self._extrapolator = None
        if self._cross_validation_strategy is not None:
            self._cross_validation_strategy = StateIntegrationStrategy()
        self._cross_validation = []
        self._frame_id = 0
        self._first_observation_ns = None
        self._last_observation_ns = None
