"""Prediction strategies run by the PoseExtrapolator.

Both strategies read the extrapolator's shared buffers and tracker:

- IncrementalStrategy: newest pose + constant-velocity translation +
  gravity-corrected gyro rotation. This is the primary path.
- StateIntegrationStrategy: explicit position/orientation/velocity state
  integrated from IMU samples with gravity compensation. It exists to produce
  an independent pose stream for cross-validation and keeps its own state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

import numpy as np
from scipy.spatial.transform import Rotation

from ..errors import PreconditionError
from ..geometry import SE3
from .imu_integrator import integrate_imu

if TYPE_CHECKING:
    from .pose_extrapolator import PoseExtrapolator

_LOG: logging.Logger = logging.getLogger(__name__)


class PredictionStrategy(Protocol):
    """Anything that can predict a pose from an extrapolator's data."""

    def predict(self, extrapolator: PoseExtrapolator, time_ns: int) -> SE3:
        """Predict the tracking-frame pose at ``time_ns``."""
        ...


class IncrementalStrategy:
    """Extrapolate from the newest pose with the current velocity estimate.

    Translation is constant-velocity extrapolation; rotation is the
    incremental orientation of a lookahead tracker between the newest pose
    time and ``time_ns``. Stateless.
    """

    def predict(self, extrapolator: PoseExtrapolator, time_ns: int) -> SE3:
        """Predict the pose at ``time_ns``.

        Raises:
            NotReadyError: If no pose has been added yet
            PreconditionError: If ``time_ns`` precedes the newest pose
        """
        newest = extrapolator.newest_pose
        if time_ns < newest.timestamp_ns:
            raise PreconditionError(
                f"Cannot extrapolate to {time_ns} ns, before the newest pose at "
                f"{newest.timestamp_ns} ns"
            )
        translation = extrapolator.extrapolate_translation(time_ns)
        rotation = extrapolator.extrapolate_rotation(time_ns)
        return (
            SE3.from_translation(translation)
            @ newest.pose
            @ SE3.from_rotation(rotation)
        )


@dataclass(frozen=True)
class State:
    """Full predicted platform state.

    Attributes:
        position: Position in world frame (3,)
        orientation: Unit-quaternion orientation (tracking -> world)
        velocity: Velocity in world frame (3,)
    """

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation: Rotation = field(default_factory=Rotation.identity)
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def as_pose(self) -> SE3:
        """Return position and orientation as a pose."""
        return SE3(rotation=self.orientation, translation=self.position)


class StateIntegrationStrategy:
    """Integrate an explicit State forward through the IMU buffer.

    Each prediction from the last predicted time t0 to t1 applies:

        orientation' = orientation * delta_rotation
        position'    = position + (t1 - t0) * velocity
        velocity'    = velocity + orientation * delta_velocity - gravity_velocity

    The position update uses the velocity *before* this step (semi-implicit,
    first order), which drifts relative to the incremental strategy. The
    gravity term is the growth of the tracker's accumulated gravity velocity
    over [t0, t1], read from a lookahead snapshot.

    Predictions must be requested at non-decreasing times. The strategy starts
    the first time it has two IMU samples, at the oldest buffered sample or the
    tracker time, whichever is later, so the gravity reference and the
    integrated interval begin together.
    """

    def __init__(self, initial_state: State | None = None) -> None:
        """Initialize with a state (zero position/velocity, identity by default)."""
        self._state = initial_state if initial_state is not None else State()
        self._last_predicted_time_ns: int | None = None
        self._gravity_velocity_reference: np.ndarray | None = None

    def predict(self, extrapolator: PoseExtrapolator, time_ns: int) -> SE3:
        """Advance the internal state to ``time_ns`` and return it as a pose.

        With fewer than two buffered IMU samples the state is returned
        unchanged.

        Raises:
            PreconditionError: If ``time_ns`` precedes the last predicted time,
                or the IMU buffer no longer brackets the last predicted time
        """
        imu_samples = extrapolator.imu_samples
        if len(imu_samples) < 2:
            return self._state.as_pose()

        if self._last_predicted_time_ns is None:
            self._last_predicted_time_ns = max(
                imu_samples[0].timestamp_ns,
                extrapolator.orientation_tracker.time_ns,
            )
        start_time_ns = self._last_predicted_time_ns
        if time_ns < start_time_ns:
            raise PreconditionError(
                f"Cannot integrate state back from {start_time_ns} ns to {time_ns} ns"
            )

        cursor = imu_samples.index_at_or_before(start_time_ns)
        if cursor is None:
            raise PreconditionError(
                f"IMU buffer starting at {imu_samples[0].timestamp_ns} ns no longer "
                f"brackets the last predicted time {start_time_ns} ns"
            )
        result = integrate_imu(
            imu_samples,
            start_time_ns,
            time_ns,
            cursor,
            linear_acceleration_calibration=extrapolator.linear_acceleration_calibration,
            angular_velocity_calibration=extrapolator.angular_velocity_calibration,
        )
        gravity_velocity = self._gravity_velocity_delta(
            extrapolator, start_time_ns, time_ns
        )

        dt = (time_ns - start_time_ns) * 1e-9
        start = self._state
        self._state = State(
            position=start.position + dt * start.velocity,
            orientation=start.orientation * result.delta_rotation,
            velocity=start.velocity
            + start.orientation.apply(result.delta_velocity)
            - gravity_velocity,
        )
        self._last_predicted_time_ns = time_ns
        _LOG.debug("State integrated to %d ns: %s", time_ns, self._state)
        return self._state.as_pose()

    def _gravity_velocity_delta(
        self, extrapolator: PoseExtrapolator, start_time_ns: int, end_time_ns: int
    ) -> np.ndarray:
        if self._gravity_velocity_reference is None:
            self._gravity_velocity_reference = extrapolator.lookahead_tracker(
                start_time_ns
            ).gravity_velocity
        end_gravity_velocity = extrapolator.lookahead_tracker(end_time_ns).gravity_velocity
        delta = end_gravity_velocity - self._gravity_velocity_reference
        self._gravity_velocity_reference = end_gravity_velocity
        return delta

    @property
    def state(self) -> State:
        """Most recently predicted state."""
        return self._state

    @property
    def last_predicted_time_ns(self) -> int | None:
        """Time of the most recent prediction, None before the first one."""
        return self._last_predicted_time_ns
