"""Velocity estimation from pairs of poses or odometry samples."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from ..geometry import log_so3
from ..sensors import OdometrySample, TimedPose

_LOG: logging.Logger = logging.getLogger(__name__)

# Pairs closer than this are numerically unstable for differentiation.
MIN_VELOCITY_ESTIMATION_SPAN_NS = 1_000_000


@dataclass(frozen=True)
class VelocityEstimate:
    """Linear and angular velocity estimate.

    Attributes:
        linear: Linear velocity (3,) in m/s
        angular: Angular velocity (3,) in rad/s, axis-angle rate
    """

    linear: np.ndarray = field(default_factory=lambda: np.zeros(3))
    angular: np.ndarray = field(default_factory=lambda: np.zeros(3))


def velocity_from_poses(
    oldest: TimedPose, newest: TimedPose
) -> VelocityEstimate | None:
    """Estimate world-frame velocity from the two extreme poses of the window.

    Args:
        oldest: Oldest pose in the window
        newest: Newest pose in the window

    Returns:
        Velocity estimate, or None if the poses span less than 1 ms
    """
    span_ns = newest.timestamp_ns - oldest.timestamp_ns
    if span_ns < MIN_VELOCITY_ESTIMATION_SPAN_NS:
        _LOG.warning(
            "Queue too short for velocity estimation. Queue duration: %.3f ms",
            span_ns * 1e-6,
        )
        return None
    dt = span_ns * 1e-9
    linear = (newest.pose.translation - oldest.pose.translation) / dt
    angular = log_so3(oldest.pose.rotation.inv() * newest.pose.rotation) / dt
    return VelocityEstimate(linear=linear, angular=angular)


def velocity_from_odometry(
    oldest: OdometrySample, newest: OdometrySample
) -> VelocityEstimate | None:
    """Estimate velocity from the two extreme odometry samples.

    The linear term is expressed in the tracking frame at the newest odometry
    time. The caller rotates it into the world frame once an orientation at
    that time is known.

    Args:
        oldest: Oldest odometry sample
        newest: Newest odometry sample

    Returns:
        Velocity estimate, or None if the samples span less than 1 ms
    """
    span_ns = newest.timestamp_ns - oldest.timestamp_ns
    if span_ns < MIN_VELOCITY_ESTIMATION_SPAN_NS:
        _LOG.warning(
            "Odometry samples too close for velocity estimation: %.3f ms",
            span_ns * 1e-6,
        )
        return None
    # Delta from the newest frame back to the oldest, over a negative span.
    dt = -span_ns * 1e-9
    pose_delta = newest.pose.inverse() @ oldest.pose
    return VelocityEstimate(
        linear=pose_delta.translation / dt,
        angular=log_so3(pose_delta.rotation) / dt,
    )
