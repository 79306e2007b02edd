"""Rotation helpers shared by the integrator, tracker and velocity estimators."""

from __future__ import annotations

import math

import numpy as np
from scipy.spatial.transform import Rotation

UNIT_Z = np.array([0.0, 0.0, 1.0])


def exp_so3(omega: np.ndarray) -> Rotation:
    """Exponential map from so(3) to SO(3).

    Converts an axis-angle vector (e.g. angular velocity * dt) to a rotation.

    Args:
        omega: Axis-angle vector (3,) in radians

    Returns:
        Unit-quaternion rotation
    """
    return Rotation.from_rotvec(np.asarray(omega, dtype=np.float64))


def log_so3(rotation: Rotation) -> np.ndarray:
    """Logarithm map from SO(3) to so(3).

    Args:
        rotation: Rotation to convert

    Returns:
        Axis-angle vector (3,) with angle in [0, pi]
    """
    return rotation.as_rotvec()


def rotation_between(from_vector: np.ndarray, to_vector: np.ndarray) -> Rotation:
    """Smallest rotation that maps the direction of from_vector onto to_vector.

    Degenerate inputs (zero length) give the identity. Antiparallel inputs
    give a half turn about an axis orthogonal to from_vector.

    Args:
        from_vector: Source direction (3,)
        to_vector: Target direction (3,)

    Returns:
        Rotation R such that R.apply(from_vector) is parallel to to_vector
    """
    a = np.asarray(from_vector, dtype=np.float64)
    b = np.asarray(to_vector, dtype=np.float64)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a < 1e-12 or norm_b < 1e-12:
        return Rotation.identity()
    a = a / norm_a
    b = b / norm_b

    axis = np.cross(a, b)
    sin_angle = np.linalg.norm(axis)
    cos_angle = float(np.dot(a, b))
    if sin_angle < 1e-12:
        if cos_angle > 0.0:
            return Rotation.identity()
        orthogonal = np.cross(a, np.array([1.0, 0.0, 0.0]))
        if np.linalg.norm(orthogonal) < 1e-6:
            orthogonal = np.cross(a, np.array([0.0, 1.0, 0.0]))
        orthogonal /= np.linalg.norm(orthogonal)
        return Rotation.from_rotvec(math.pi * orthogonal)

    angle = math.atan2(sin_angle, cos_angle)
    return Rotation.from_rotvec(axis / sin_angle * angle)
