"""Pose extrapolation from poses, IMU and odometry.

The PoseExtrapolator owns the pose, IMU and odometry buffers of one trajectory
plus its orientation tracker and cached velocity estimates. Queries are
answered by a pluggable PredictionStrategy sharing those buffers.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum

import numpy as np
from scipy.spatial.transform import Rotation

from ..config import ExtrapolatorConfig, PredictionMode
from ..errors import NotReadyError, PreconditionError
from ..geometry import SE3
from ..sensors import ImuSample, OdometrySample, TimedPose
from .orientation_tracker import OrientationTracker, TrackerState
from .strategies import IncrementalStrategy, PredictionStrategy, StateIntegrationStrategy
from .timed_buffer import TimedBuffer
from .velocity import VelocityEstimate, velocity_from_odometry, velocity_from_poses

_LOG: logging.Logger = logging.getLogger(__name__)


class ExtrapolatorStatus(Enum):
    """Lifecycle of a PoseExtrapolator."""

    EMPTY = "EMPTY"
    IMU_PRIMED = "IMU_PRIMED"  # Orientation tracker exists, no pose yet
    POSE_ANCHORED = "POSE_ANCHORED"  # At least one pose, no velocity estimate
    STEADY_STATE = "STEADY_STATE"  # Two or more poses and a valid velocity


class PoseExtrapolator:
    """Short-horizon pose extrapolator for one trajectory.

    Feed IMU and odometry samples as they arrive, call ``extrapolate_pose`` to
    seed a matcher, then ``add_pose`` with the refined result. All calls must
    be serialized by the caller; timestamps must never precede the newest
    pose.

    Example usage:
        extrapolator = PoseExtrapolator.initialize_with_imu(
            pose_queue_duration_ns=1_000_000,
            imu_gravity_time_constant=10.0,
            imu_sample=first_sample,
        )
        extrapolator.add_imu_sample(sample)
        prediction = extrapolator.extrapolate_pose(scan_time_ns)
        extrapolator.add_pose(scan_time_ns, matched_pose)
    """

    def __init__(
        self,
        pose_queue_duration_ns: int,
        imu_gravity_time_constant: float,
        strategy: PredictionStrategy | None = None,
        linear_acceleration_calibration: np.ndarray | None = None,
        angular_velocity_calibration: np.ndarray | None = None,
    ) -> None:
        """Initialize an empty extrapolator.

        Args:
            pose_queue_duration_ns: Pose window duration in nanoseconds
            imu_gravity_time_constant: Gravity low-pass time constant in seconds
            strategy: Strategy answering extrapolate_pose (incremental by default)
            linear_acceleration_calibration: 3x3 accelerometer calibration
            angular_velocity_calibration: 3x3 gyroscope calibration
        """
        if pose_queue_duration_ns < 0:
            raise ValueError(
                f"pose_queue_duration_ns must be >= 0, got {pose_queue_duration_ns}"
            )
        if imu_gravity_time_constant <= 0.0:
            raise ValueError(
                "imu_gravity_time_constant must be positive, got "
                f"{imu_gravity_time_constant}"
            )
        self._pose_queue_duration_ns = int(pose_queue_duration_ns)
        self._gravity_time_constant = float(imu_gravity_time_constant)
        self._strategy: PredictionStrategy = (
            strategy if strategy is not None else IncrementalStrategy()
        )
        self._linear_acceleration_calibration = (
            np.eye(3)
            if linear_acceleration_calibration is None
            else np.asarray(linear_acceleration_calibration, dtype=np.float64)
        )
        self._angular_velocity_calibration = (
            np.eye(3)
            if angular_velocity_calibration is None
            else np.asarray(angular_velocity_calibration, dtype=np.float64)
        )

        self._poses: TimedBuffer[TimedPose] = TimedBuffer("pose", min_retained=2)
        self._imu: TimedBuffer[ImuSample] = TimedBuffer("imu", min_retained=1)
        self._odometry: TimedBuffer[OdometrySample] = TimedBuffer(
            "odometry", min_retained=2
        )
        self._tracker: OrientationTracker | None = None

        self._velocity_from_poses = VelocityEstimate()
        self._velocity_from_odometry = VelocityEstimate()
        self._has_velocity_from_poses = False

    @classmethod
    def from_config(cls, config: ExtrapolatorConfig) -> PoseExtrapolator:
        """Create an empty extrapolator from a config."""
        return cls(
            pose_queue_duration_ns=config.pose_queue_duration_ns,
            imu_gravity_time_constant=config.imu_gravity_time_constant_s,
            strategy=make_strategy(config.prediction_mode),
            linear_acceleration_calibration=config.linear_acceleration_calibration,
            angular_velocity_calibration=config.angular_velocity_calibration,
        )

    @classmethod
    def initialize_with_imu(
        cls,
        pose_queue_duration_ns: int,
        imu_gravity_time_constant: float,
        imu_sample: ImuSample,
        **kwargs,
    ) -> PoseExtrapolator:
        """Create an extrapolator bootstrapped from its first IMU sample.

        Creates the orientation tracker from the sample and anchors a
        rotation-only pose at the sample time.

        Args:
            pose_queue_duration_ns: Pose window duration in nanoseconds
            imu_gravity_time_constant: Gravity low-pass time constant in seconds
            imu_sample: First IMU sample of the trajectory
            **kwargs: Forwarded to the constructor

        Returns:
            Extrapolator anchored at the IMU sample time
        """
        extrapolator = cls(pose_queue_duration_ns, imu_gravity_time_constant, **kwargs)
        extrapolator.add_imu_sample(imu_sample)
        extrapolator.add_pose(
            imu_sample.timestamp_ns,
            SE3.from_rotation(extrapolator.orientation_tracker.orientation),
        )
        return extrapolator

    def add_pose(self, time_ns: int, pose: SE3) -> None:
        """Add a high-confidence pose observation.

        Trims all buffers, re-estimates velocity from poses and advances the
        orientation tracker to ``time_ns`` (creating it if needed, starting
        at the earliest buffered IMU sample or at ``time_ns``).

        Raises:
            PreconditionError: If ``time_ns`` precedes the newest pose or the
                orientation tracker time
        """
        if self._tracker is not None and time_ns < self._tracker.time_ns:
            raise PreconditionError(
                f"Pose at {time_ns} ns precedes the orientation tracker time "
                f"{self._tracker.time_ns} ns"
            )
        self._poses.append(TimedPose(timestamp_ns=time_ns, pose=pose))

        if self._tracker is None:
            tracker_start_ns = time_ns
            if self._imu:
                tracker_start_ns = min(tracker_start_ns, self._imu[0].timestamp_ns)
            self._tracker = OrientationTracker(
                self._gravity_time_constant, tracker_start_ns
            )
            _LOG.debug("Orientation tracker started at %d ns from a pose", tracker_start_ns)

        self._poses.trim(time_ns - self._pose_queue_duration_ns)
        self._update_velocity_from_poses()
        self._tracker.propagate(time_ns, self._imu, self.angular_velocity)
        self._imu.trim(time_ns)
        self._odometry.trim(time_ns)

    def add_imu_sample(self, imu_sample: ImuSample) -> None:
        """Add an IMU sample.

        The first sample of a trajectory without a tracker creates the
        orientation tracker from it.

        Raises:
            PreconditionError: If the sample precedes the newest pose or the
                last IMU sample
        """
        self._imu.append(imu_sample, not_before_ns=self.last_pose_time_ns)
        if self._tracker is None:
            self._tracker = OrientationTracker(
                self._gravity_time_constant, imu_sample.timestamp_ns
            )
            self._tracker.observe_linear_acceleration(imu_sample.linear_acceleration)
            self._tracker.observe_angular_velocity(imu_sample.angular_velocity)
            self._tracker.advance(imu_sample.timestamp_ns)
            _LOG.debug(
                "Orientation tracker started at %d ns from an IMU sample",
                imu_sample.timestamp_ns,
            )
        self._trim_imu()

    def add_odometry_sample(self, odometry_sample: OdometrySample) -> None:
        """Add an odometry sample and refresh the odometry velocity estimate.

        Raises:
            PreconditionError: If the sample precedes the newest pose or the
                last odometry sample
        """
        self._odometry.append(odometry_sample, not_before_ns=self.last_pose_time_ns)
        self._trim_odometry()
        if len(self._odometry) < 2:
            return

        estimate = velocity_from_odometry(self._odometry[0], self._odometry[-1])
        if estimate is None:
            return
        self._velocity_from_odometry = replace(
            self._velocity_from_odometry, angular=estimate.angular
        )
        if not self._poses:
            return

        newest_odometry_ns = self._odometry[-1].timestamp_ns
        orientation_at_newest_odometry = self._poses[
            -1
        ].pose.rotation * self.extrapolate_rotation(newest_odometry_ns)
        self._velocity_from_odometry = replace(
            self._velocity_from_odometry,
            linear=orientation_at_newest_odometry.apply(estimate.linear),
        )

    def extrapolate_pose(self, time_ns: int) -> SE3:
        """Predict the pose at ``time_ns`` with the configured strategy.

        Raises:
            NotReadyError: If no pose has been added yet (incremental mode)
            PreconditionError: If ``time_ns`` precedes the newest pose
        """
        return self._strategy.predict(self, time_ns)

    def predict_with(self, strategy: PredictionStrategy, time_ns: int) -> SE3:
        """Predict the pose at ``time_ns`` with another strategy on the same data."""
        return strategy.predict(self, time_ns)

    def estimate_gravity_orientation(self, time_ns: int) -> Rotation:
        """Gravity-aligned orientation at ``time_ns``, without side effects.

        Raises:
            NotReadyError: If no orientation tracker exists yet
            PreconditionError: If ``time_ns`` precedes the tracker time
        """
        return self.lookahead_tracker(time_ns).orientation

    def lookahead_tracker(self, time_ns: int) -> TrackerState:
        """Tracker state propagated to ``time_ns``; the tracker is not modified.

        Raises:
            NotReadyError: If no orientation tracker exists yet
        """
        return self.orientation_tracker.lookahead(
            time_ns, self._imu, self.angular_velocity
        )

    def extrapolate_rotation(self, time_ns: int) -> Rotation:
        """Incremental rotation from the tracker time to ``time_ns``."""
        tracker = self.orientation_tracker
        return tracker.orientation.inv() * self.lookahead_tracker(time_ns).orientation

    def extrapolate_translation(self, time_ns: int) -> np.ndarray:
        """Constant-velocity translation from the newest pose to ``time_ns``."""
        dt = (time_ns - self.newest_pose.timestamp_ns) * 1e-9
        return dt * self.linear_velocity

    def _update_velocity_from_poses(self) -> None:
        if len(self._poses) < 2:
            return
        estimate = velocity_from_poses(self._poses[0], self._poses[-1])
        if estimate is None:
            return
        self._velocity_from_poses = estimate
        self._has_velocity_from_poses = True

    def _trim_imu(self) -> None:
        if self._poses:
            self._imu.trim(self._poses[-1].timestamp_ns)

    def _trim_odometry(self) -> None:
        if self._poses:
            self._odometry.trim(self._poses[-1].timestamp_ns)

    @property
    def linear_velocity(self) -> np.ndarray:
        """World-frame linear velocity; odometry-derived once available."""
        if len(self._odometry) < 2:
            return self._velocity_from_poses.linear
        return self._velocity_from_odometry.linear

    @property
    def angular_velocity(self) -> np.ndarray:
        """Angular velocity; odometry-derived once available."""
        if len(self._odometry) < 2:
            return self._velocity_from_poses.angular
        return self._velocity_from_odometry.angular

    @property
    def velocity_from_poses(self) -> VelocityEstimate:
        """Most recent pose-derived velocity estimate."""
        return self._velocity_from_poses

    @property
    def velocity_from_odometry(self) -> VelocityEstimate:
        """Most recent odometry-derived velocity estimate."""
        return self._velocity_from_odometry

    @property
    def newest_pose(self) -> TimedPose:
        """Newest pose observation.

        Raises:
            NotReadyError: If no pose has been added yet
        """
        if not self._poses:
            raise NotReadyError("No pose has been added to the extrapolator yet")
        return self._poses[-1]

    @property
    def last_pose_time_ns(self) -> int | None:
        """Timestamp of the newest pose, None if there is none."""
        return self._poses[-1].timestamp_ns if self._poses else None

    @property
    def orientation_tracker(self) -> OrientationTracker:
        """Authoritative orientation tracker.

        Raises:
            NotReadyError: If no IMU sample or pose has been added yet
        """
        if self._tracker is None:
            raise NotReadyError(
                "Orientation tracker not created: no IMU sample or pose yet"
            )
        return self._tracker

    @property
    def has_orientation_tracker(self) -> bool:
        """True once an IMU sample or a pose has been received."""
        return self._tracker is not None

    @property
    def status(self) -> ExtrapolatorStatus:
        """Current lifecycle state."""
        if not self._poses:
            if self._tracker is None:
                return ExtrapolatorStatus.EMPTY
            return ExtrapolatorStatus.IMU_PRIMED
        if len(self._poses) >= 2 and self._has_velocity_from_poses:
            return ExtrapolatorStatus.STEADY_STATE
        return ExtrapolatorStatus.POSE_ANCHORED

    @property
    def strategy(self) -> PredictionStrategy:
        """Strategy answering extrapolate_pose."""
        return self._strategy

    @property
    def poses(self) -> TimedBuffer[TimedPose]:
        """Pose window (read-only by convention)."""
        return self._poses

    @property
    def imu_samples(self) -> TimedBuffer[ImuSample]:
        """IMU buffer (read-only by convention)."""
        return self._imu

    @property
    def odometry_samples(self) -> TimedBuffer[OdometrySample]:
        """Odometry buffer (read-only by convention)."""
        return self._odometry

    @property
    def pose_queue_duration_ns(self) -> int:
        """Pose window duration in nanoseconds."""
        return self._pose_queue_duration_ns

    @property
    def gravity_time_constant(self) -> float:
        """Gravity low-pass time constant in seconds."""
        return self._gravity_time_constant

    @property
    def linear_acceleration_calibration(self) -> np.ndarray:
        """3x3 accelerometer calibration."""
        return self._linear_acceleration_calibration

    @property
    def angular_velocity_calibration(self) -> np.ndarray:
        """3x3 gyroscope calibration."""
        return self._angular_velocity_calibration


def make_strategy(mode: PredictionMode) -> PredictionStrategy:
    """Create a fresh strategy for a prediction mode."""
    if mode is PredictionMode.STATE_INTEGRATION:
        return StateIntegrationStrategy()
    return IncrementalStrategy()
