"""Gravity-aligned orientation tracking from gyroscope and accelerometer.

The tracker integrates angular velocity to propagate orientation and keeps an
exponentially low-passed estimate of the gravity direction from linear
acceleration. After every acceleration observation the orientation is rotated
so that the gravity estimate points along world +Z.

The state is an immutable TrackerState. All operations are pure functions
returning a new state, so "what would the orientation be at time T" lookahead
queries never disturb the authoritative tracker. OrientationTracker is a thin
mutable holder around the current state.
"""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass, replace
from typing import Sequence

import numpy as np
from scipy.spatial.transform import Rotation

from ..errors import PreconditionError
from ..geometry import UNIT_Z, exp_so3, rotation_between
from ..sensors import ImuSample


@dataclass(frozen=True)
class TrackerState:
    """Snapshot of the orientation tracker.

    Attributes:
        time_ns: Time the state refers to
        orientation: Gravity-aligned orientation estimate (tracking -> world)
        gravity_vector: Low-passed gravity estimate in the tracking frame
        angular_velocity: Most recent angular velocity observation (rad/s)
        last_linear_acceleration_time_ns: Time of the last acceleration
            observation, None before the first one
        gravity_velocity: Accumulated world-frame velocity attributable to
            gravity since the tracker started (m/s)
    """

    time_ns: int
    orientation: Rotation
    gravity_vector: np.ndarray
    angular_velocity: np.ndarray
    last_linear_acceleration_time_ns: int | None
    gravity_velocity: np.ndarray

    @classmethod
    def initial(cls, time_ns: int) -> TrackerState:
        """Identity orientation with gravity assumed along +Z."""
        return cls(
            time_ns=time_ns,
            orientation=Rotation.identity(),
            gravity_vector=UNIT_Z.copy(),
            angular_velocity=np.zeros(3),
            last_linear_acceleration_time_ns=None,
            gravity_velocity=np.zeros(3),
        )


def advance_state(state: TrackerState, time_ns: int) -> TrackerState:
    """Propagate orientation to ``time_ns`` with the last angular velocity.

    Raises:
        PreconditionError: If ``time_ns`` precedes the state time
    """
    if time_ns < state.time_ns:
        raise PreconditionError(
            f"Cannot advance orientation tracker from {state.time_ns} ns back "
            f"to {time_ns} ns"
        )
    dt = (time_ns - state.time_ns) * 1e-9
    rotation = exp_so3(state.angular_velocity * dt)
    gravity_in_world = state.orientation.apply(state.gravity_vector)
    return replace(
        state,
        time_ns=time_ns,
        orientation=state.orientation * rotation,
        gravity_vector=rotation.inv().apply(state.gravity_vector),
        gravity_velocity=state.gravity_velocity + gravity_in_world * dt,
    )


def observe_linear_acceleration(
    state: TrackerState,
    linear_acceleration: np.ndarray,
    gravity_time_constant: float,
) -> TrackerState:
    """Blend an accelerometer reading into the gravity estimate.

    Uses alpha = 1 - exp(-dt / tau), where dt is the time since the previous
    acceleration observation (infinite for the first one, so the first
    reading is taken as is).
    """
    if state.last_linear_acceleration_time_ns is None:
        dt = math.inf
    else:
        dt = (state.time_ns - state.last_linear_acceleration_time_ns) * 1e-9
    alpha = 1.0 - math.exp(-dt / gravity_time_constant)
    gravity_vector = (1.0 - alpha) * state.gravity_vector + alpha * np.asarray(
        linear_acceleration, dtype=np.float64
    )
    # Rotate the orientation so that the gravity estimate maps onto world +Z.
    correction = rotation_between(gravity_vector, state.orientation.inv().apply(UNIT_Z))
    return replace(
        state,
        orientation=state.orientation * correction,
        gravity_vector=gravity_vector,
        last_linear_acceleration_time_ns=state.time_ns,
    )


def observe_angular_velocity(
    state: TrackerState, angular_velocity: np.ndarray
) -> TrackerState:
    """Record the angular velocity used by the next advance."""
    return replace(
        state, angular_velocity=np.asarray(angular_velocity, dtype=np.float64).copy()
    )


def propagate_tracker(
    state: TrackerState,
    time_ns: int,
    imu_samples: Sequence[ImuSample],
    fallback_angular_velocity: np.ndarray,
    gravity_time_constant: float,
) -> TrackerState:
    """Advance a tracker snapshot to ``time_ns`` through buffered IMU samples.

    When no IMU sample exists before ``time_ns`` the tracker is advanced and
    fed a fake +Z gravity plus ``fallback_angular_velocity`` (the velocity
    estimated from poses or odometry). Otherwise every sample between the
    tracker time and ``time_ns`` is replayed in order.

    Args:
        state: Snapshot to start from (not modified)
        time_ns: Target time, at or after ``state.time_ns``
        imu_samples: Time-ordered IMU samples
        fallback_angular_velocity: Angular velocity used without IMU data
        gravity_time_constant: Gravity low-pass time constant in seconds

    Returns:
        New tracker state at ``time_ns``
    """
    if time_ns < state.time_ns:
        raise PreconditionError(
            f"Cannot propagate orientation tracker from {state.time_ns} ns back "
            f"to {time_ns} ns"
        )
    if not imu_samples or time_ns < imu_samples[0].timestamp_ns:
        state = advance_state(state, time_ns)
        state = observe_linear_acceleration(state, UNIT_Z, gravity_time_constant)
        return observe_angular_velocity(state, fallback_angular_velocity)

    if state.time_ns < imu_samples[0].timestamp_ns:
        state = advance_state(state, imu_samples[0].timestamp_ns)

    idx = bisect.bisect_left(
        imu_samples, state.time_ns, key=lambda sample: sample.timestamp_ns
    )
    while idx < len(imu_samples) and imu_samples[idx].timestamp_ns < time_ns:
        sample = imu_samples[idx]
        state = advance_state(state, sample.timestamp_ns)
        state = observe_linear_acceleration(
            state, sample.linear_acceleration, gravity_time_constant
        )
        state = observe_angular_velocity(state, sample.angular_velocity)
        idx += 1
    return advance_state(state, time_ns)


class OrientationTracker:
    """Mutable holder for the authoritative tracker state of a trajectory.

    Lookahead queries should work on ``snapshot()`` with the pure functions
    above instead of copying the tracker.
    """

    def __init__(self, gravity_time_constant: float, time_ns: int) -> None:
        """Initialize tracker with identity orientation.

        Args:
            gravity_time_constant: Gravity low-pass time constant in seconds
            time_ns: Start time in nanoseconds
        """
        if gravity_time_constant <= 0.0:
            raise ValueError(
                f"gravity_time_constant must be positive, got {gravity_time_constant}"
            )
        self._gravity_time_constant = gravity_time_constant
        self._state = TrackerState.initial(time_ns)

    @classmethod
    def from_snapshot(
        cls, state: TrackerState, gravity_time_constant: float
    ) -> OrientationTracker:
        """Create a tracker holding an existing snapshot."""
        tracker = cls(gravity_time_constant, state.time_ns)
        tracker._state = state
        return tracker

    def advance(self, time_ns: int) -> None:
        """Propagate orientation to ``time_ns``."""
        self._state = advance_state(self._state, time_ns)

    def observe_linear_acceleration(self, linear_acceleration: np.ndarray) -> None:
        """Blend an accelerometer reading into the gravity estimate."""
        self._state = observe_linear_acceleration(
            self._state, linear_acceleration, self._gravity_time_constant
        )

    def observe_angular_velocity(self, angular_velocity: np.ndarray) -> None:
        """Record the angular velocity used by the next advance."""
        self._state = observe_angular_velocity(self._state, angular_velocity)

    def propagate(
        self,
        time_ns: int,
        imu_samples: Sequence[ImuSample],
        fallback_angular_velocity: np.ndarray,
    ) -> None:
        """Advance the authoritative state through buffered IMU samples."""
        self._state = propagate_tracker(
            self._state,
            time_ns,
            imu_samples,
            fallback_angular_velocity,
            self._gravity_time_constant,
        )

    def lookahead(
        self,
        time_ns: int,
        imu_samples: Sequence[ImuSample],
        fallback_angular_velocity: np.ndarray,
    ) -> TrackerState:
        """Return the state at ``time_ns`` without modifying this tracker."""
        return propagate_tracker(
            self._state,
            time_ns,
            imu_samples,
            fallback_angular_velocity,
            self._gravity_time_constant,
        )

    def snapshot(self) -> TrackerState:
        """Return the current immutable state."""
        return self._state

    def copy(self) -> OrientationTracker:
        """Return an independent tracker with the same state."""
        return OrientationTracker.from_snapshot(self._state, self._gravity_time_constant)

    @property
    def gravity_time_constant(self) -> float:
        """Gravity low-pass time constant in seconds."""
        return self._gravity_time_constant

    @property
    def orientation(self) -> Rotation:
        """Current gravity-aligned orientation estimate."""
        return self._state.orientation

    @property
    def time_ns(self) -> int:
        """Time of the current estimate in nanoseconds."""
        return self._state.time_ns

    @property
    def gravity_velocity(self) -> np.ndarray:
        """Accumulated world-frame velocity attributable to gravity."""
        return self._state.gravity_velocity.copy()
