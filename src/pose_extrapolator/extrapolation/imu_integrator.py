"""IMU integration between two timestamps.

Integrates gyroscope and accelerometer samples into a relative rotation and a
relative (not gravity-compensated) velocity delta using first-order strapdown
integration: each sample is held constant until the next one arrives.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import numpy.typing as npt
from scipy.spatial.transform import Rotation

from ..errors import PreconditionError
from ..geometry import exp_so3
from ..sensors import ImuSample


@dataclass
class IntegrateImuResult:
    """Result of integrating IMU samples over an interval.

    Attributes:
        delta_rotation: Rotation from the start frame to the end frame
        delta_velocity: Integrated specific force expressed in the start frame
            (gravity not removed), in the requested dtype
        cursor: Index of the sample bracketing the end time, to be passed to
            the next call over a later interval
    """

    delta_rotation: Rotation
    delta_velocity: np.ndarray
    cursor: int


def integrate_imu(
    imu_samples: Sequence[ImuSample],
    start_time_ns: int,
    end_time_ns: int,
    cursor: int,
    *,
    dtype: npt.DTypeLike = np.float64,
    linear_acceleration_calibration: np.ndarray | None = None,
    angular_velocity_calibration: np.ndarray | None = None,
) -> IntegrateImuResult:
    """Integrate IMU samples over [start_time_ns, end_time_ns].

    For each interval between consecutive samples (clamped to the end time):

        delta_rotation <- delta_rotation * exp(omega * dt)
        delta_velocity <- delta_velocity + delta_rotation * (accel * dt)

    The velocity accumulation runs in ``dtype`` so the same routine can be
    reused with other numeric types (e.g. float32, or object arrays of
    differentiable scalars). Rotations always stay double precision.

    Args:
        imu_samples: Time-ordered IMU samples
        start_time_ns: Start of the integration interval
        end_time_ns: End of the integration interval
        cursor: Index of the sample at or before ``start_time_ns`` whose
            successor (if any) is strictly after ``start_time_ns``
        dtype: Scalar type for the velocity accumulation
        linear_acceleration_calibration: 3x3 matrix applied to accelerations
            (identity by default)
        angular_velocity_calibration: 3x3 matrix applied to angular
            velocities (identity by default)

    Returns:
        IntegrateImuResult with the advanced cursor

    Raises:
        PreconditionError: If the interval is reversed or the cursor does not
            bracket ``start_time_ns``
    """
    if start_time_ns > end_time_ns:
        raise PreconditionError(
            f"Integration start {start_time_ns} ns is after end {end_time_ns} ns"
        )
    if not 0 <= cursor < len(imu_samples):
        raise PreconditionError(
            f"IMU cursor {cursor} out of range for {len(imu_samples)} samples"
        )
    if imu_samples[cursor].timestamp_ns > start_time_ns:
        raise PreconditionError(
            f"IMU sample at cursor ({imu_samples[cursor].timestamp_ns} ns) is "
            f"after the integration start ({start_time_ns} ns)"
        )
    if (
        cursor + 1 < len(imu_samples)
        and imu_samples[cursor + 1].timestamp_ns <= start_time_ns
    ):
        raise PreconditionError(
            f"IMU cursor {cursor} does not bracket the integration start "
            f"({start_time_ns} ns): the next sample is not later"
        )

    scalar = np.dtype(dtype).type
    accel_calibration = (
        np.eye(3)
        if linear_acceleration_calibration is None
        else np.asarray(linear_acceleration_calibration, dtype=np.float64)
    ).astype(dtype)
    gyro_calibration = (
        np.eye(3)
        if angular_velocity_calibration is None
        else np.asarray(angular_velocity_calibration, dtype=np.float64)
    )

    delta_rotation = Rotation.identity()
    delta_velocity = np.zeros(3, dtype=dtype)
    current_time_ns = start_time_ns

    while current_time_ns < end_time_ns:
        sample = imu_samples[cursor]
        next_sample_ns = (
            imu_samples[cursor + 1].timestamp_ns
            if cursor + 1 < len(imu_samples)
            else None
        )
        next_time_ns = (
            end_time_ns if next_sample_ns is None else min(next_sample_ns, end_time_ns)
        )
        dt_s = (next_time_ns - current_time_ns) * 1e-9
        dt = scalar(dt_s)

        omega = gyro_calibration @ sample.angular_velocity
        delta_rotation = delta_rotation * exp_so3(omega * dt_s)

        accel = accel_calibration @ sample.linear_acceleration.astype(dtype)
        delta_velocity = delta_velocity + (
            delta_rotation.as_matrix().astype(dtype) @ (accel * dt)
        )

        current_time_ns = next_time_ns
        if current_time_ns == next_sample_ns:
            cursor += 1

    return IntegrateImuResult(
        delta_rotation=delta_rotation,
        delta_velocity=delta_velocity,
        cursor=cursor,
    )
